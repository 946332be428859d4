"""High-level operations combining extraction, embedding, storage and search."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from pdfrag.client.ingest import extract_document_from_pdf, process_pdf_files
from pdfrag.config import Settings
from pdfrag.embedding.base import ReadOnlyModeError
from pdfrag.embedding.cache import EmbeddingCache
from pdfrag.embedding.factory import get_embedding_cache
from pdfrag.service.database.models import Document
from pdfrag.service.database.store import DocumentStore
from pdfrag.service.processor import ParallelDocumentProcessor
from pdfrag.service.search import SearchResult, SearchService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessDocumentResult:
    """Outcome of ingesting a single PDF file."""

    document_id: str
    success: bool
    error: str | None = None


class RagService:
    """Entry point for ingesting PDFs and searching them.

    One embedding cache instance is shared by document processing and search,
    so a text is embedded at most once per cache directory.
    """

    def __init__(
        self,
        cache: EmbeddingCache,
        store: DocumentStore,
        processor: ParallelDocumentProcessor,
        search_service: SearchService,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
    ) -> None:
        self.cache = cache
        self.store = store
        self.processor = processor
        self.search_service = search_service
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RagService":
        """Build the cache, store, processor and search service from settings.

        Args:
            settings: Optional configuration. If None, uses environment variables.

        Raises:
            DocumentStoreLoadError: If a persisted document cannot be loaded
        """
        if settings is None:
            settings = Settings.from_env()

        cache = get_embedding_cache(settings)
        store = DocumentStore(settings.data_dir, read_only=settings.read_only)
        return cls(
            cache=cache,
            store=store,
            processor=ParallelDocumentProcessor(cache, settings.max_degree_of_parallelism),
            search_service=SearchService(
                cache,
                store,
                min_similarity=settings.similarity_threshold,
                max_results=settings.max_results,
            ),
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
        )

    def process_pdf_files(self, directory: Path) -> list[Document]:
        """Extract and chunk every PDF in ``directory`` (no embeddings)."""
        return process_pdf_files(directory, self.chunk_size, self.chunk_overlap)

    async def ingest_document(self, document: Document) -> Document:
        """Embed an extracted document and store it.

        Raises:
            ReadOnlyModeError: If the store is read-only
        """
        if self.store.read_only:
            raise ReadOnlyModeError("Repository is in read-only mode. New documents cannot be added.")
        processed = await self.processor.process(document)
        return await self.store.add(processed)

    async def ingest_file(self, pdf_path: Path) -> ProcessDocumentResult:
        """Extract, embed and store a single PDF file.

        Args:
            pdf_path: Path to the PDF file

        Returns:
            ProcessDocumentResult: The stored document id, or the error message
        """
        try:
            document = await asyncio.to_thread(
                extract_document_from_pdf, Path(pdf_path), self.chunk_size, self.chunk_overlap
            )
            stored = await self.ingest_document(document)
        except ReadOnlyModeError as e:
            logger.error(f"🔒 {e}")
            return ProcessDocumentResult("", False, str(e))
        except Exception as e:
            logger.error(f"❌ Failed to ingest {pdf_path}: {e}", exc_info=True)
            return ProcessDocumentResult("", False, str(e))
        return ProcessDocumentResult(stored.id, True)

    async def ingest_directory(self, directory: Path) -> list[ProcessDocumentResult]:
        """Ingest every PDF in a directory, one file after another."""
        results = []
        for pdf_path in sorted(Path(directory).glob("*.pdf")):
            results.append(await self.ingest_file(pdf_path))
        return results

    async def search(self, query: str) -> list[SearchResult]:
        return await self.search_service.search(query)

    async def generate_embedding(self, text: str) -> list[float] | None:
        """Embed a text through the cache; None if it cannot be embedded."""
        result = await self.cache.embed(text)
        return result.vector if result.ok else None

    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts, omitting the ones that fail."""
        return await self.cache.embed_many(texts)

    async def is_healthy(self) -> bool:
        return await self.cache.is_healthy()
