"""Document persistence and similarity search.

This package provides:
- Data models (Document, DocumentChunk)
- DocumentStore: file-backed store with two-stage cosine-similarity search
- Utilities (cosine_similarity)

Usage:
    from pdfrag.service.database import DocumentStore

    store = DocumentStore(Path("data"))
    matches = store.search_similar(query_embedding, min_similarity=0.3, max_results=5)
"""

# Re-export public API
from pdfrag.service.database.utils import cosine_similarity
from pdfrag.service.database.models import Document, DocumentChunk
from pdfrag.service.database.store import (
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    DocumentStoreLoadError,
)

__all__ = [
    # Models
    "Document",
    "DocumentChunk",
    # Store
    "DocumentStore",
    "DocumentStoreError",
    "DocumentStoreLoadError",
    "DocumentNotFoundError",
    # Utils
    "cosine_similarity",
]
