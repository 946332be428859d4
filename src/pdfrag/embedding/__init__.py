"""Embedding layer for pdfrag.

This package wraps the Ollama embedding endpoint:
- OllamaEmbeddingClient: validated, retried, circuit-broken embedding calls
- EmbeddingCache: two-tier (memory + disk) cache in front of the client
- EmbeddingResult: either a vector or a typed failure reason

Usage:
    from pdfrag.embedding import get_embedding_cache

    cache = get_embedding_cache()
    result = await cache.embed("vector search over PDF chunks")
    if result.ok:
        print(len(result.vector))
"""

from pdfrag.embedding.base import (
    CircuitOpenError,
    EmbeddingError,
    EmbeddingProvider,
    EmbeddingResult,
    EmbeddingValidationError,
    FailureReason,
    ReadOnlyModeError,
    TransientProviderError,
)
from pdfrag.embedding.breaker import BreakerState, CircuitBreaker
from pdfrag.embedding.cache import EmbeddingCache, compute_cache_key
from pdfrag.embedding.factory import get_embedding_cache, get_embedding_client
from pdfrag.embedding.ollama import OllamaEmbeddingClient

__all__ = [
    "BreakerState",
    "CircuitBreaker",
    "CircuitOpenError",
    "EmbeddingCache",
    "EmbeddingError",
    "EmbeddingProvider",
    "EmbeddingResult",
    "EmbeddingValidationError",
    "FailureReason",
    "OllamaEmbeddingClient",
    "ReadOnlyModeError",
    "TransientProviderError",
    "compute_cache_key",
    "get_embedding_cache",
    "get_embedding_client",
]
