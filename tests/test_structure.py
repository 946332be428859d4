"""Tests for the pdfrag package structure."""


def test_package_imports():
    """Test that main package can be imported."""
    import pdfrag
    assert pdfrag.__version__ == "0.1.0"


def test_service_subpackage():
    """Test that service subpackage exists."""
    import pdfrag.service
    assert pdfrag.service is not None


def test_client_subpackage():
    """Test that client subpackage exists."""
    import pdfrag.client
    assert pdfrag.client is not None


def test_embedding_subpackage():
    """Test that embedding subpackage exports the public API."""
    import pdfrag.embedding
    assert pdfrag.embedding.EmbeddingCache is not None
    assert pdfrag.embedding.OllamaEmbeddingClient is not None
