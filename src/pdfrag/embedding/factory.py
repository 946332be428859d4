"""Factory functions for creating embedding client and cache instances."""

import logging

from pdfrag.config import Settings
from pdfrag.embedding.breaker import CircuitBreaker
from pdfrag.embedding.cache import EmbeddingCache
from pdfrag.embedding.ollama import OllamaEmbeddingClient

logger = logging.getLogger(__name__)


def get_embedding_client(settings: Settings | None = None) -> OllamaEmbeddingClient:
    """Create an Ollama embedding client.

    Args:
        settings: Optional configuration. If None, uses environment variables.

    Returns:
        OllamaEmbeddingClient: Client with its own circuit breaker and concurrency gate.
    """
    if settings is None:
        settings = Settings.from_env()

    breaker = CircuitBreaker(
        failure_threshold=settings.breaker_failure_threshold,
        reset_timeout=settings.breaker_reset_timeout,
    )
    return OllamaEmbeddingClient(
        host=settings.ollama_host,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
        max_text_length=settings.max_text_length,
        min_text_length=settings.min_text_length,
        max_retries=settings.max_retries,
        retry_delay_ms=settings.retry_delay_ms,
        max_concurrent_requests=settings.max_concurrent_requests,
        timeout=settings.request_timeout,
        breaker=breaker,
    )


def get_embedding_cache(settings: Settings | None = None) -> EmbeddingCache:
    """Create an embedding cache in front of a new Ollama embedding client.

    Args:
        settings: Optional configuration. If None, uses environment variables.

    Returns:
        EmbeddingCache: Cache writing entries under ``settings.cache_dir``.
    """
    if settings is None:
        settings = Settings.from_env()

    logger.info(
        f"🗄️  Embedding cache at {settings.cache_dir} (read-only: {settings.read_only})"
    )
    return EmbeddingCache(
        get_embedding_client(settings),
        cache_dir=settings.cache_dir,
        read_only=settings.read_only,
    )
