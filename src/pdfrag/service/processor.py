"""Parallel embedding of document chunks."""

import asyncio
import logging

from pdfrag.constants import DEFAULT_MAX_DEGREE_OF_PARALLELISM
from pdfrag.embedding.base import EmbeddingProvider
from pdfrag.service.database.models import Document, DocumentChunk

logger = logging.getLogger(__name__)


def _chunk_order(chunk: DocumentChunk) -> tuple[int, int]:
    return chunk.page_number, chunk.chunk_number


class ParallelDocumentProcessor:
    """Embeds all chunks of a document concurrently, then the document itself.

    At most ``max_degree_of_parallelism`` chunk embeddings are in flight for a
    document. The embedding provider may bound concurrency further on its own.
    Chunks whose embedding fails are dropped. Once every chunk has finished,
    the embedded chunks are sorted by (page, chunk number) and their joined
    text is embedded as the document-level embedding.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        max_degree_of_parallelism: int = DEFAULT_MAX_DEGREE_OF_PARALLELISM,
    ) -> None:
        if max_degree_of_parallelism < 1:
            raise ValueError("max_degree_of_parallelism must be at least 1")
        self.embedding_provider = embedding_provider
        self.max_degree_of_parallelism = max_degree_of_parallelism

    async def _embed_chunk(
        self, chunk: DocumentChunk, semaphore: asyncio.Semaphore
    ) -> DocumentChunk | None:
        async with semaphore:
            result = await self.embedding_provider.embed(chunk.content)

        if not result.ok:
            logger.warning(
                f"⚠️ Dropping chunk {chunk.chunk_number} of page {chunk.page_number}: "
                f"{result.failure.value if result.failure else 'unknown'} {result.message}"
            )
            return None

        chunk.embedding = result.vector
        logger.debug(
            f"Generated embedding for chunk {chunk.chunk_number} of page {chunk.page_number}"
        )
        return chunk

    async def process(self, document: Document) -> Document:
        """Populate chunk and document embeddings.

        Args:
            document: Document with extracted chunks

        Returns:
            Document: The same document, its chunks replaced by the successfully
            embedded ones in (page, chunk number) order. ``embedding`` stays None
            if the document-level embedding fails.
        """
        logger.info(
            f"🔄 Starting parallel processing of document {document.id} "
            f"with {len(document.chunks)} chunks"
        )

        semaphore = asyncio.Semaphore(self.max_degree_of_parallelism)
        outcomes = await asyncio.gather(
            *(self._embed_chunk(chunk, semaphore) for chunk in document.chunks)
        )
        embedded = sorted((chunk for chunk in outcomes if chunk is not None), key=_chunk_order)

        full_text = " ".join(chunk.content for chunk in embedded)
        result = await self.embedding_provider.embed(full_text)
        if result.ok:
            document.mark_processed(result.vector)
            logger.info(f"✅ Generated embedding for entire document {document.id}")
        else:
            logger.warning(
                f"⚠️ No document-level embedding for {document.id}: {result.message}"
            )

        document.chunks = embedded
        logger.info(
            f"✅ Completed processing of document {document.id} "
            f"with {len(embedded)} embedded chunks"
        )
        return document
