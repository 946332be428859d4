"""Runtime configuration loaded from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from pdfrag.constants import (
    DEFAULT_BREAKER_FAILURE_THRESHOLD,
    DEFAULT_BREAKER_RESET_TIMEOUT,
    DEFAULT_CACHE_PATH,
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DATA_PATH,
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_MAX_CONCURRENT_REQUESTS,
    DEFAULT_MAX_DEGREE_OF_PARALLELISM,
    DEFAULT_MAX_RESULTS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_TEXT_LENGTH,
    DEFAULT_MIN_TEXT_LENGTH,
    DEFAULT_OLLAMA_HOST,
    DEFAULT_PDF_DIRECTORY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_SIMILARITY_THRESHOLD,
    get_embedding_model,
)

# Load environment variables
load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class Settings:
    """Configuration consumed by the embedding pipeline and search engine.

    Every field has a default from ``pdfrag.constants``; ``from_env`` overrides
    them from environment variables (and a ``.env`` file, if present).
    """

    ollama_host: str = DEFAULT_OLLAMA_HOST
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS
    max_text_length: int = DEFAULT_MAX_TEXT_LENGTH
    min_text_length: int = DEFAULT_MIN_TEXT_LENGTH
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS
    breaker_failure_threshold: int = DEFAULT_BREAKER_FAILURE_THRESHOLD
    breaker_reset_timeout: float = DEFAULT_BREAKER_RESET_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    max_results: int = DEFAULT_MAX_RESULTS
    max_degree_of_parallelism: int = DEFAULT_MAX_DEGREE_OF_PARALLELISM
    read_only: bool = False
    data_dir: Path = Path(DEFAULT_DATA_PATH)
    cache_dir: Path = Path(DEFAULT_CACHE_PATH)
    pdf_directory: Path = Path(DEFAULT_PDF_DIRECTORY)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Returns:
            Settings: Configuration with environment overrides applied.
        """
        return cls(
            ollama_host=os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST),
            embedding_model=get_embedding_model(),
            embedding_dimensions=_env_int("EMBEDDING_DIMENSIONS", DEFAULT_EMBEDDING_DIMENSIONS),
            max_text_length=_env_int("MAX_TEXT_LENGTH", DEFAULT_MAX_TEXT_LENGTH),
            min_text_length=_env_int("MIN_TEXT_LENGTH", DEFAULT_MIN_TEXT_LENGTH),
            max_retries=_env_int("MAX_RETRIES", DEFAULT_MAX_RETRIES),
            retry_delay_ms=_env_int("RETRY_DELAY_MS", DEFAULT_RETRY_DELAY_MS),
            request_timeout=_env_float("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            max_concurrent_requests=_env_int(
                "MAX_CONCURRENT_REQUESTS", DEFAULT_MAX_CONCURRENT_REQUESTS
            ),
            breaker_failure_threshold=_env_int(
                "BREAKER_FAILURE_THRESHOLD", DEFAULT_BREAKER_FAILURE_THRESHOLD
            ),
            breaker_reset_timeout=_env_float(
                "BREAKER_RESET_TIMEOUT", DEFAULT_BREAKER_RESET_TIMEOUT
            ),
            chunk_size=_env_int("CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            chunk_overlap=_env_int("CHUNK_OVERLAP", DEFAULT_CHUNK_OVERLAP),
            similarity_threshold=_env_float("SIMILARITY_THRESHOLD", DEFAULT_SIMILARITY_THRESHOLD),
            max_results=_env_int("MAX_RESULTS", DEFAULT_MAX_RESULTS),
            max_degree_of_parallelism=_env_int(
                "MAX_DEGREE_OF_PARALLELISM", DEFAULT_MAX_DEGREE_OF_PARALLELISM
            ),
            read_only=_env_bool("READ_ONLY_MODE"),
            data_dir=Path(os.getenv("DATA_PATH", DEFAULT_DATA_PATH)),
            cache_dir=Path(os.getenv("CACHE_PATH", DEFAULT_CACHE_PATH)),
            pdf_directory=Path(os.getenv("PDF_DIRECTORY", DEFAULT_PDF_DIRECTORY)),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
