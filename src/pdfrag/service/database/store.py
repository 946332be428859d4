"""File-backed document store with two-stage cosine-similarity search."""

import asyncio
import json
import logging
import threading
from dataclasses import replace
from pathlib import Path

from pdfrag.constants import DOCUMENTS_SUBDIR
from pdfrag.embedding.base import ReadOnlyModeError
from pdfrag.service.database.models import Document, DocumentChunk
from pdfrag.service.database.utils import cosine_similarity
from pdfrag.utils import write_json_atomic

logger = logging.getLogger(__name__)


class DocumentStoreError(Exception):
    """Base exception for document store errors."""


class DocumentStoreLoadError(DocumentStoreError):
    """Raised when a persisted document cannot be loaded at startup."""

    def __init__(self, path: Path, cause: Exception) -> None:
        super().__init__(f"Failed to load document from file: {path} ({cause})")
        self.path = path


class DocumentNotFoundError(DocumentStoreError):
    """Raised when a document id is not in the store."""


class DocumentStore:
    """Stores processed documents and answers similarity searches.

    Documents are kept in an in-memory index and, when ``data_dir`` is given,
    persisted one JSON file per document under ``<data_dir>/documents``. All
    persisted documents are loaded when the store is created; a file that
    cannot be loaded aborts initialization.

    Search is an exhaustive linear scan: documents whose whole-document
    embedding falls below the threshold are skipped entirely, then the chunks of
    the remaining documents are scored individually.
    """

    def __init__(
        self,
        data_dir: Path | None = None,
        read_only: bool = False,
        document_prefilter: bool = True,
    ) -> None:
        """Initialize the store and load persisted documents.

        Args:
            data_dir: Root data directory. If None, documents live in memory only.
            read_only: Reject additions and embedding updates
            document_prefilter: Skip documents whose document-level similarity is
                below the search threshold before scoring their chunks

        Raises:
            DocumentStoreLoadError: If a persisted document file is unreadable
        """
        self.read_only = read_only
        self.document_prefilter = document_prefilter
        self.directory = data_dir / DOCUMENTS_SUBDIR if data_dir is not None else None
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

        if self.directory is not None:
            self._load()

    def _load(self) -> None:
        if not self.read_only:
            self.directory.mkdir(parents=True, exist_ok=True)
        for path in sorted(self.directory.glob("*.json")):
            try:
                with open(path, encoding="utf-8") as f:
                    document = Document.from_dict(json.load(f))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                raise DocumentStoreLoadError(path, e) from e
            self._documents[document.id] = document
        logger.info(f"📚 Loaded {len(self._documents)} document(s) from {self.directory}")

    def _document_path(self, document_id: str) -> Path:
        return self.directory / f"{document_id}.json"

    async def _save(self, document: Document) -> None:
        if self.directory is None:
            return
        await asyncio.to_thread(
            write_json_atomic, self._document_path(document.id), document.to_dict(), 2
        )

    def _snapshot(self) -> list[Document]:
        with self._lock:
            return list(self._documents.values())

    async def add(self, document: Document) -> Document:
        """Persist and index a document.

        Args:
            document: The processed document

        Returns:
            Document: The stored document

        Raises:
            ReadOnlyModeError: If the store is read-only
        """
        if self.read_only:
            raise ReadOnlyModeError(
                "Repository is in read-only mode. New documents cannot be added."
            )

        await self._save(document)
        with self._lock:
            self._documents[document.id] = document
        logger.info(f"💾 Stored document {document.id} ({len(document.chunks)} chunks)")
        return document

    def get_by_id(self, document_id: str) -> Document | None:
        with self._lock:
            return self._documents.get(document_id)

    def get_all(self) -> list[Document]:
        return self._snapshot()

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    async def update_embedding(self, document_id: str, embedding: list[float]) -> Document:
        """Replace a document's embedding and persist it again.

        Raises:
            ReadOnlyModeError: If the store is read-only
            DocumentNotFoundError: If no document has this id
        """
        if self.read_only:
            raise ReadOnlyModeError("Repository is in read-only mode. Embeddings cannot be updated.")

        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                raise DocumentNotFoundError(f"Document not found: {document_id}")
            document.mark_processed(embedding)

        await self._save(document)
        return document

    def search_similar(
        self,
        query_embedding: list[float],
        min_similarity: float,
        max_results: int,
        document_prefilter: bool | None = None,
    ) -> list[Document]:
        """Find the chunks most similar to a query embedding.

        Args:
            query_embedding: Embedding of the query text
            min_similarity: Documents and chunks scoring below this are discarded
            max_results: Maximum number of chunks to return
            document_prefilter: Override the store's document pre-filter policy

        Returns:
            list[Document]: One synthetic document per matching chunk, ordered by
            descending chunk similarity. Each carries the chunk's content, a copy
            of the chunk, and the source document's id, path, embedding and
            timestamps.
        """
        if max_results <= 0:
            return []
        if document_prefilter is None:
            document_prefilter = self.document_prefilter

        matches: list[tuple[Document, DocumentChunk, float]] = []
        for document in self._snapshot():
            if document_prefilter:
                if document.embedding is None:
                    continue
                doc_similarity = cosine_similarity(query_embedding, document.embedding)
                if doc_similarity < min_similarity:
                    continue

            for chunk in document.chunks:
                if chunk.embedding is None:
                    continue
                chunk_similarity = cosine_similarity(query_embedding, chunk.embedding)
                if chunk_similarity >= min_similarity:
                    matches.append((document, chunk, chunk_similarity))

        matches.sort(key=lambda match: match[2], reverse=True)
        logger.debug(f"Similarity search matched {len(matches)} chunk(s), keeping {max_results}")

        return [
            Document(
                id=document.id,
                file_path=document.file_path,
                content=chunk.content,
                chunks=[replace(chunk)],
                embedding=document.embedding,
                created_at=document.created_at,
                processed_at=document.processed_at,
            )
            for document, chunk, _ in matches[:max_results]
        ]
