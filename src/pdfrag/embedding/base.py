"""Base types, errors and protocols for embedding providers."""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class FailureReason(str, Enum):
    """Why an embedding could not be produced."""

    TRANSIENT = "transient"
    VALIDATION = "validation"
    READ_ONLY = "read_only"
    NOT_FOUND = "not_found"


class EmbeddingError(Exception):
    """Base exception for embedding errors."""

    reason = FailureReason.TRANSIENT


class TransientProviderError(EmbeddingError):
    """Raised on network failures and non-success responses from the provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmbeddingValidationError(EmbeddingError):
    """Raised when the provider response is malformed or the vector is invalid."""

    reason = FailureReason.VALIDATION


class CircuitOpenError(TransientProviderError):
    """Raised when the circuit breaker rejects a call without contacting the provider."""


class ReadOnlyModeError(EmbeddingError):
    """Raised when a write is attempted while the service is in read-only mode."""

    reason = FailureReason.READ_ONLY


class EmbeddingNotFoundError(EmbeddingError):
    """Raised when a requested embedding does not exist."""

    reason = FailureReason.NOT_FOUND


_ERRORS_BY_REASON: dict[FailureReason, type[EmbeddingError]] = {
    FailureReason.TRANSIENT: TransientProviderError,
    FailureReason.VALIDATION: EmbeddingValidationError,
    FailureReason.READ_ONLY: ReadOnlyModeError,
    FailureReason.NOT_FOUND: EmbeddingNotFoundError,
}


@dataclass(frozen=True)
class EmbeddingResult:
    """Outcome of an embedding request: either a vector or a failure reason.

    Attributes:
        vector: The embedding vector when the request succeeded
        failure: Why the request failed, None on success
        message: Human-readable detail for failures
    """

    vector: list[float] | None = None
    failure: FailureReason | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None and self.vector is not None

    @classmethod
    def success(cls, vector: list[float]) -> "EmbeddingResult":
        return cls(vector=vector)

    @classmethod
    def failed(cls, reason: FailureReason, message: str = "") -> "EmbeddingResult":
        return cls(failure=reason, message=message)

    def unwrap(self) -> list[float]:
        """Return the vector or raise the exception matching the failure reason.

        Raises:
            EmbeddingError: Subclass selected by ``failure``
        """
        if self.ok:
            return self.vector  # type: ignore[return-value]
        error_cls = _ERRORS_BY_REASON.get(self.failure, EmbeddingError)  # type: ignore[arg-type]
        raise error_cls(self.message or f"Embedding failed: {self.failure}")


class EmbeddingProvider(Protocol):
    """Protocol shared by the embedding client and the embedding cache.

    Both produce ``EmbeddingResult`` values instead of raising, so consumers
    can layer them freely.
    """

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate an embedding for a single text.

        Args:
            text: The text to embed

        Returns:
            EmbeddingResult: The vector, or a failure reason
        """
        ...

    async def is_healthy(self) -> bool:
        """Check whether the provider can currently produce embeddings."""
        ...
