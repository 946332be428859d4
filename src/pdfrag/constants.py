"""Application-wide constants and defaults for pdfrag.

This module provides a single source of truth for configuration defaults,
magic numbers, and other constants used throughout the application.
"""

import os

# =============================================================================
# Default URLs and Hosts
# =============================================================================
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_REQUEST_TIMEOUT = 30.0  # Seconds per HTTP request to Ollama

# =============================================================================
# Embedding Model Defaults
# =============================================================================
DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"
DEFAULT_EMBEDDING_DIMENSIONS = 768
DEFAULT_MAX_TEXT_LENGTH = 8000  # Longer texts are truncated
DEFAULT_MIN_TEXT_LENGTH = 10  # Shorter texts are rejected without a call
HEALTH_CHECK_TEXT = "embedding service health check"

# =============================================================================
# Retry, Concurrency and Circuit Breaker
# =============================================================================
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 2000  # Linear backoff: delay * attempt
DEFAULT_MAX_CONCURRENT_REQUESTS = 3  # Gate inside the embedding client
DEFAULT_MAX_DEGREE_OF_PARALLELISM = 3  # Gate inside the document processor
DEFAULT_BREAKER_FAILURE_THRESHOLD = 5
DEFAULT_BREAKER_RESET_TIMEOUT = 30.0  # Seconds the breaker stays open

# =============================================================================
# Chunking
# =============================================================================
DEFAULT_CHUNK_SIZE = 1000  # Characters per chunk
DEFAULT_CHUNK_OVERLAP = 100  # Characters, converted to words below
AVERAGE_WORD_LENGTH = 5  # overlap // AVERAGE_WORD_LENGTH words are carried over

# =============================================================================
# Search
# =============================================================================
DEFAULT_SIMILARITY_THRESHOLD = 0.3
DEFAULT_MAX_RESULTS = 5
CONFIDENCE_LEVELS = (
    (0.8, "Very High"),
    (0.6, "High"),
    (0.4, "Moderate"),
    (0.3, "Low"),
)
LOWEST_CONFIDENCE_LEVEL = "Very Low"

# =============================================================================
# Cache and Storage
# =============================================================================
MEMORY_CACHE_TTL_SECONDS = 24 * 60 * 60  # 24 hours
MEMORY_CACHE_SWEEP_INTERVAL = 100  # writes between expired-entry sweeps
DEFAULT_DATA_PATH = "data"
DEFAULT_CACHE_PATH = "cache"
DEFAULT_PDF_DIRECTORY = "pdfs"
DOCUMENTS_SUBDIR = "documents"
EMBEDDINGS_SUBDIR = "embeddings"

# =============================================================================
# Display Settings
# =============================================================================
CONTENT_PREVIEW_LENGTH = 200  # Characters to show in content previews


def get_embedding_model() -> str:
    """Get the embedding model name.

    Checks the EMBEDDING_MODEL environment variable first, then falls back
    to the default model.

    Returns:
        str: The embedding model name to use.
    """
    return os.getenv("EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL
