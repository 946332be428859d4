"""Data models for processed documents and their chunks."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


@dataclass
class DocumentChunk:
    """A bounded slice of a page's text, the unit of embedding and retrieval.

    Chunks are owned by exactly one Document. Only ``embedding`` changes after
    creation, and it is set once when the chunk is embedded.

    Note: ``id`` is excluded from equality so that chunking the same text twice
    yields equal chunk sequences.

    Attributes:
        content: The text content of the chunk
        page_number: 1-based page the chunk was taken from
        chunk_number: 1-based ordinal of the chunk within its page
        embedding: Vector embedding of the content, None until embedded
        id: Unique chunk identifier
    """

    content: str = ""
    page_number: int = 0
    chunk_number: int = 0
    embedding: list[float] | None = None
    id: str = field(default_factory=_new_id, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "page_number": self.page_number,
            "chunk_number": self.chunk_number,
            "embedding": self.embedding,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentChunk":
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            page_number=int(data.get("page_number", 0)),
            chunk_number=int(data.get("chunk_number", 0)),
            embedding=data.get("embedding"),
        )


@dataclass(eq=False)
class Document:
    """A processed PDF document.

    Attributes:
        file_path: Path of the source PDF
        content: Full text of the document, pages separated by newlines
        chunks: Chunks ordered by (page_number, chunk_number)
        embedding: Whole-document embedding, None until processed
        id: Unique document identifier, also the persisted file name
        created_at: When the document was created (UTC)
        processed_at: When the document-level embedding was set (UTC)
    """

    file_path: str = ""
    content: str = ""
    chunks: list[DocumentChunk] = field(default_factory=list)
    embedding: list[float] | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    processed_at: datetime | None = None

    def mark_processed(self, embedding: list[float]) -> None:
        self.embedding = embedding
        self.processed_at = _utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return {
            "id": self.id,
            "file_path": self.file_path,
            "content": self.content,
            "chunks": [chunk.to_dict() for chunk in self.chunks],
            "embedding": self.embedding,
            "created_at": self.created_at.isoformat(),
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        """Rebuild a document from its persisted JSON shape.

        Raises:
            KeyError: If the id is missing
            ValueError: If a timestamp cannot be parsed
        """
        return cls(
            id=data["id"],
            file_path=data.get("file_path", ""),
            content=data.get("content", ""),
            chunks=[DocumentChunk.from_dict(chunk) for chunk in data.get("chunks", [])],
            embedding=data.get("embedding"),
            created_at=_parse_datetime(data.get("created_at")) or _utcnow(),
            processed_at=_parse_datetime(data.get("processed_at")),
        )
