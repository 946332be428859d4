"""Ollama embedding client implementation."""

import asyncio
import logging
import math
from typing import Any

import httpx
import ollama
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from pdfrag.constants import (
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_MAX_CONCURRENT_REQUESTS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_TEXT_LENGTH,
    DEFAULT_MIN_TEXT_LENGTH,
    DEFAULT_OLLAMA_HOST,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_DELAY_MS,
    HEALTH_CHECK_TEXT,
)
from pdfrag.embedding.base import (
    CircuitOpenError,
    EmbeddingResult,
    EmbeddingValidationError,
    FailureReason,
    TransientProviderError,
)
from pdfrag.embedding.breaker import CircuitBreaker

logger = logging.getLogger(__name__)

# Status codes that count as provider outages for the circuit breaker
TRANSIENT_STATUS_CODES = {408, 429}


def _is_transient_status(status_code: int | None) -> bool:
    if status_code is None or status_code < 0:
        return True
    return status_code >= 500 or status_code in TRANSIENT_STATUS_CODES


class OllamaEmbeddingClient:
    """Embedding client for the Ollama ``/api/embeddings`` endpoint.

    Each request posts ``{"model": ..., "prompt": ...}`` and expects
    ``{"embedding": [...]}`` back. Responses are validated (non-empty, expected
    dimension, finite values) and failed attempts are retried with a linear
    backoff. A circuit breaker stops calling Ollama while it is failing, and a
    semaphore bounds the number of calls in flight.
    """

    def __init__(
        self,
        host: str = DEFAULT_OLLAMA_HOST,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
        max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
        min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        breaker: CircuitBreaker | None = None,
        client: ollama.AsyncClient | None = None,
    ) -> None:
        """Initialize the Ollama embedding client.

        Args:
            host: The Ollama server host URL (e.g., "http://localhost:11434")
            model: The embedding model name (e.g., "nomic-embed-text")
            dimensions: Expected embedding dimension; other lengths are rejected
            max_text_length: Texts longer than this are truncated
            min_text_length: Texts shorter than this are rejected without a call
            max_retries: Maximum attempts per embedding request
            retry_delay_ms: Base delay; attempt N waits ``retry_delay_ms * N``
            max_concurrent_requests: Maximum requests in flight at once
            timeout: Per-request timeout in seconds
            breaker: Circuit breaker shared by all calls (created if omitted)
            client: Preconfigured Ollama client (created if omitted)
        """
        self.host = host
        self.model = model
        self.dimensions = dimensions
        self.max_text_length = max_text_length
        self.min_text_length = min_text_length
        self.max_retries = max(1, max_retries)
        self.retry_delay_ms = retry_delay_ms
        self.breaker = breaker or CircuitBreaker()
        self._semaphore = asyncio.Semaphore(max_concurrent_requests)
        logger.info(f"🤖 Initializing OllamaEmbeddingClient: host={host}, model={model}")
        self.client = client or ollama.AsyncClient(host=host, timeout=timeout)

    def _prepare_text(self, text: str) -> str | None:
        if not text or not text.strip():
            logger.warning("Empty text provided for embedding generation")
            return None

        if len(text) > self.max_text_length:
            logger.warning(
                f"Text exceeds maximum length of {self.max_text_length}, "
                f"truncating from {len(text)} characters"
            )
            text = text[: self.max_text_length]

        if len(text) < self.min_text_length:
            logger.warning(
                f"Text length {len(text)} is shorter than minimum length of {self.min_text_length}"
            )
            return None

        return text

    def _validate(self, response: Any) -> list[float]:
        """Extract and validate the embedding vector from an Ollama response.

        Raises:
            EmbeddingValidationError: If the response or the vector is invalid
        """
        try:
            error = response.get("error")
            embedding = response.get("embedding")
        except AttributeError as e:
            raise EmbeddingValidationError(f"Malformed response from Ollama: {e}") from e

        if error:
            raise EmbeddingValidationError(f"Ollama reported an error: {error}")
        if embedding is None:
            raise EmbeddingValidationError("API returned null embedding array")

        try:
            vector = [float(value) for value in embedding]
        except (TypeError, ValueError) as e:
            raise EmbeddingValidationError(f"Embedding contains non-numeric values: {e}") from e

        if not vector:
            raise EmbeddingValidationError("API returned empty embedding array")
        if len(vector) != self.dimensions:
            raise EmbeddingValidationError(
                f"API returned embedding with unexpected dimension: {len(vector)}, "
                f"expected {self.dimensions}"
            )
        if not all(math.isfinite(value) for value in vector):
            raise EmbeddingValidationError("API returned embedding with NaN or Infinity values")

        return vector

    async def _request_embedding(self, text: str) -> list[float]:
        """Make a single embedding request through the circuit breaker."""
        self.breaker.before_call()
        try:
            response = await self.client.embeddings(model=self.model, prompt=text)
        except asyncio.CancelledError:
            self.breaker.release_trial()
            raise
        except ollama.ResponseError as e:
            if _is_transient_status(e.status_code):
                self.breaker.record_failure()
            else:
                self.breaker.record_success()
            raise TransientProviderError(
                f"API returned error {e.status_code}: {e.error}", status_code=e.status_code
            ) from e
        except (httpx.HTTPError, ConnectionError) as e:
            self.breaker.record_failure()
            raise TransientProviderError(f"HTTP error talking to Ollama: {e}") from e
        except ValueError as e:
            # Unparseable body: the transport worked, the payload did not
            self.breaker.record_success()
            raise EmbeddingValidationError(f"Error deserializing API response: {e}") from e

        self.breaker.record_success()
        return self._validate(response)

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate an embedding for a single text.

        Args:
            text: The text to embed

        Returns:
            EmbeddingResult: The validated vector, or a TRANSIENT / VALIDATION failure
        """
        prepared = self._prepare_text(text)
        if prepared is None:
            return EmbeddingResult.failed(FailureReason.VALIDATION, "Text is empty or too short")

        delay = self.retry_delay_ms / 1000
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_incrementing(start=delay, increment=delay),
            retry=(
                retry_if_exception_type((TransientProviderError, EmbeddingValidationError))
                & retry_if_not_exception_type(CircuitOpenError)
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        async with self._semaphore:
            try:
                async for attempt in retrying:
                    with attempt:
                        attempt_number = attempt.retry_state.attempt_number
                        logger.debug(
                            f"Attempt {attempt_number}/{self.max_retries} to generate embedding "
                            f"for text of length {len(prepared)}"
                        )
                        vector = await self._request_embedding(prepared)
            except CircuitOpenError as e:
                logger.warning(f"⚠️ Skipping embedding request: {e}")
                return EmbeddingResult.failed(FailureReason.TRANSIENT, str(e))
            except TransientProviderError as e:
                logger.error(f"❌ Failed to generate embedding after {self.max_retries} attempts: {e}")
                return EmbeddingResult.failed(FailureReason.TRANSIENT, str(e))
            except EmbeddingValidationError as e:
                logger.error(f"❌ Invalid embedding after {self.max_retries} attempts: {e}")
                return EmbeddingResult.failed(FailureReason.VALIDATION, str(e))

        logger.debug(
            f"Generated embedding. Dimension: {len(vector)}, "
            f"first values: {[round(v, 6) for v in vector[:5]]}"
        )
        return EmbeddingResult.success(vector)

    async def is_healthy(self) -> bool:
        """Check that Ollama returns a non-empty embedding for a sentinel text."""
        logger.info("Checking Ollama API health")
        result = await self.embed(HEALTH_CHECK_TEXT)
        healthy = result.ok and bool(result.vector)
        if healthy:
            logger.info("✅ Ollama API is healthy")
        else:
            logger.warning(f"⚠️ Ollama API health check failed: {result.message}")
        return healthy
