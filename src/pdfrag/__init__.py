"""pdfrag: PDF semantic search over Ollama embeddings."""

__version__ = "0.1.0"
