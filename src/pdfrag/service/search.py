"""Semantic search over stored documents."""

import logging
from dataclasses import dataclass

from pdfrag.constants import (
    CONFIDENCE_LEVELS,
    DEFAULT_MAX_RESULTS,
    DEFAULT_SIMILARITY_THRESHOLD,
    LOWEST_CONFIDENCE_LEVEL,
)
from pdfrag.embedding.base import EmbeddingProvider
from pdfrag.service.database.models import Document
from pdfrag.service.database.store import DocumentStore
from pdfrag.service.database.utils import cosine_similarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """A scored search hit ready for presentation."""

    content: str
    file_path: str
    score: float
    confidence_level: str
    document_id: str = ""
    page_number: int | None = None
    section_title: str | None = None


def get_confidence_level(score: float) -> str:
    """Map a similarity score to a human-readable confidence label.

    Args:
        score: Cosine similarity score

    Returns:
        str: "Very High" (>= 0.8), "High" (>= 0.6), "Moderate" (>= 0.4),
        "Low" (>= 0.3) or "Very Low"
    """
    for threshold, label in CONFIDENCE_LEVELS:
        if score >= threshold:
            return label
    return LOWEST_CONFIDENCE_LEVEL


class SearchService:
    """Embeds a query and looks up the most similar stored chunks.

    Search never raises for provider problems: if the query cannot be
    embedded, the result set is empty.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        store: DocumentStore,
        min_similarity: float = DEFAULT_SIMILARITY_THRESHOLD,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self.embedding_provider = embedding_provider
        self.store = store
        self.min_similarity = min_similarity
        self.max_results = max_results

    def _to_result(self, query_embedding: list[float], match: Document) -> SearchResult:
        chunk = match.chunks[0] if match.chunks else None
        reference = chunk.embedding if chunk and chunk.embedding else match.embedding
        score = cosine_similarity(query_embedding, reference or [])
        return SearchResult(
            content=match.content,
            file_path=match.file_path,
            score=score,
            confidence_level=get_confidence_level(score),
            document_id=match.id,
            page_number=chunk.page_number if chunk else None,
        )

    async def search(self, query: str) -> list[SearchResult]:
        """Search stored documents for chunks similar to ``query``.

        Args:
            query: Free-text query

        Returns:
            list[SearchResult]: Results ordered by descending score, empty if
            the query could not be embedded or nothing passed the threshold
        """
        logger.info(f"🔍 Searching for: '{query}'")
        result = await self.embedding_provider.embed(query)
        if not result.ok:
            logger.warning(f"⚠️ Could not embed query, returning no results: {result.message}")
            return []

        matches = self.store.search_similar(result.vector, self.min_similarity, self.max_results)
        results = [self._to_result(result.vector, match) for match in matches]
        logger.info(f"✅ Found {len(results)} result(s)")
        return results
