"""Pytest configuration and shared fixtures for the test suite."""

import asyncio
from pathlib import Path

import fitz
import pytest
import requests

from pdfrag.embedding.base import EmbeddingResult, FailureReason
from pdfrag.service.database.models import Document, DocumentChunk

EMBEDDING_DIM = 768


# Service availability checks
def ollama_available() -> bool:
    """Check if Ollama server is running and accessible.

    Returns:
        True if Ollama is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


def _unit_vector(index: int, dim: int = EMBEDDING_DIM) -> list[float]:
    """Vector with a single 1.0 at ``index``; distinct indices are orthogonal."""
    vector = [0.0] * dim
    vector[index] = 1.0
    return vector


class FakeEmbeddingProvider:
    """In-process embedding provider recording every call.

    Texts listed in ``vectors`` get that vector; texts in ``failures`` get the
    given failure reason; anything else gets a vector derived from its length.
    """

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        failures: dict[str, FailureReason] | None = None,
        delay: float = 0.0,
        dim: int = EMBEDDING_DIM,
    ) -> None:
        self.vectors = vectors or {}
        self.failures = failures or {}
        self.delay = delay
        self.dim = dim
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        if text in self.failures:
            return EmbeddingResult.failed(self.failures[text], "fake failure")
        if text in self.vectors:
            return EmbeddingResult.success(self.vectors[text])
        return EmbeddingResult.success(_unit_vector(len(text) % self.dim, self.dim))

    async def is_healthy(self) -> bool:
        return True


@pytest.fixture
def unit_vector():
    """Provide the one-hot vector helper; distinct indices are orthogonal."""
    return _unit_vector


@pytest.fixture
def make_provider():
    """Factory fixture to create fake embedding providers.

    Returns:
        Callable taking the FakeEmbeddingProvider keyword arguments
    """
    return FakeEmbeddingProvider


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    """Provide a fake embedding provider with no canned vectors."""
    return FakeEmbeddingProvider()


@pytest.fixture
def mock_embedding() -> list[float]:
    """Provide a valid 768-dimensional embedding vector."""
    return [0.01 * (i % 10) + 0.001 for i in range(EMBEDDING_DIM)]


@pytest.fixture
def create_test_document():
    """Factory fixture to create embedded test documents.

    Returns:
        Function that creates a document with custom parameters
    """

    def _create_document(
        embedding: list[float] | None = None,
        chunk_embeddings: list[list[float] | None] | None = None,
        file_path: str = "test.pdf",
        page_number: int = 1,
    ) -> Document:
        chunk_embeddings = chunk_embeddings or []
        chunks = [
            DocumentChunk(
                content=f"{file_path} chunk {i + 1} text",
                page_number=page_number,
                chunk_number=i + 1,
                embedding=vector,
            )
            for i, vector in enumerate(chunk_embeddings)
        ]
        return Document(
            file_path=file_path,
            content=" ".join(chunk.content for chunk in chunks),
            chunks=chunks,
            embedding=embedding,
        )

    return _create_document


@pytest.fixture
def sample_pdf(tmp_path) -> Path:
    """Create a two-page PDF with known text.

    Returns:
        Path to the generated PDF file
    """
    pdf_path = tmp_path / "sample.pdf"
    pdf = fitz.open()
    page = pdf.new_page()
    page.insert_text((72, 72), "Test Document for pdfrag about Python programming")
    page.insert_text((72, 96), "and machine learning with embeddings.")
    page = pdf.new_page()
    page.insert_text((72, 72), "Page two covers vector embeddings and semantic search.")
    pdf.save(pdf_path)
    pdf.close()
    return pdf_path


# Service fixtures with skip markers
@pytest.fixture
def ollama_client():
    """Provide an OllamaEmbeddingClient, skip if Ollama not available.

    Raises:
        pytest.skip: If Ollama server is not running
    """
    if not ollama_available():
        pytest.skip("Ollama server not running on localhost:11434")

    from pdfrag.embedding import OllamaEmbeddingClient

    return OllamaEmbeddingClient(host="http://localhost:11434")
