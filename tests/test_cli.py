"""Tests for the CLI module."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from pdfrag.client.cli import count, health, ingest, search
from pdfrag.client.cli_helpers import format_search_result
from pdfrag.embedding.cache import EmbeddingCache
from pdfrag.service.database import Document, DocumentChunk, DocumentStore
from pdfrag.service.processor import ParallelDocumentProcessor
from pdfrag.service.rag_service import RagService
from pdfrag.service.search import SearchResult, SearchService


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at temporary data and cache directories."""
    monkeypatch.setenv("DATA_PATH", str(tmp_path / "data"))
    monkeypatch.setenv("CACHE_PATH", str(tmp_path / "cache"))
    monkeypatch.setenv("READ_ONLY_MODE", "false")
    return tmp_path


@pytest.fixture
def fake_service(cli_env, fake_provider) -> RagService:
    """Build a service over a fake provider and the temporary directories."""
    cache = EmbeddingCache(fake_provider, cache_dir=cli_env / "cache")
    store = DocumentStore(cli_env / "data")
    return RagService(
        cache=cache,
        store=store,
        processor=ParallelDocumentProcessor(cache),
        search_service=SearchService(cache, store),
    )


def mock_service(**async_methods) -> MagicMock:
    service = MagicMock()
    for name, value in async_methods.items():
        setattr(service, name, AsyncMock(return_value=value))
    return service


class TestIngestCLI:
    """Tests for the ingest CLI command."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    def test_ingest_directory(self, fake_service, sample_pdf):
        """Test ingesting a directory with one good and one broken PDF."""
        (sample_pdf.parent / "zz_broken.pdf").write_text("dummy")

        with patch("pdfrag.client.cli.build_service", return_value=fake_service):
            result = self.runner.invoke(ingest, [str(sample_pdf.parent)])

        assert result.exit_code == 0
        assert "Found 2 PDF file(s)" in result.output
        assert "✓ Stored sample.pdf" in result.output
        assert "✗ Error processing zz_broken.pdf" in result.output
        assert "Stored 1 of 2 document(s)" in result.output

    def test_ingest_empty_directory(self, cli_env):
        empty = cli_env / "empty"
        empty.mkdir()

        result = self.runner.invoke(ingest, [str(empty)])

        assert result.exit_code == 0
        assert "No PDF files found" in result.output

    def test_ingest_nonexistent_directory(self, cli_env):
        """Test ingest command with non-existent directory."""
        result = self.runner.invoke(ingest, ["/nonexistent/path"])

        assert result.exit_code != 0
        assert "does not exist" in result.output.lower()

    def test_ingest_default_directory(self, cli_env, monkeypatch):
        pdfs = cli_env / "pdfs"
        pdfs.mkdir()
        monkeypatch.setenv("PDF_DIRECTORY", str(pdfs))

        result = self.runner.invoke(ingest, [])

        assert result.exit_code == 0
        assert f"No PDF files found in '{pdfs}'" in result.output

    def test_ingest_read_only(self, cli_env, sample_pdf, monkeypatch):
        monkeypatch.setenv("READ_ONLY_MODE", "true")

        result = self.runner.invoke(ingest, [str(sample_pdf.parent)])

        assert result.exit_code != 0
        assert "read-only" in result.output

    def test_ingest_options_reach_settings(self, cli_env, sample_pdf):
        service = mock_service(ingest_directory=[])

        with patch("pdfrag.client.cli.build_service", return_value=service) as mock_build:
            result = self.runner.invoke(
                ingest, [str(sample_pdf.parent), "--chunk-size", "500", "--chunk-overlap", "50"]
            )

        assert result.exit_code == 0
        settings = mock_build.call_args.args[0]
        assert settings.chunk_size == 500
        assert settings.chunk_overlap == 50


class TestSearchCLI:
    """Tests for the search CLI command."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    def test_search_with_results(self, cli_env):
        results = [
            SearchResult(
                content="Quantum mechanics describes nature at small scales.",
                file_path="physics.pdf",
                score=0.91,
                confidence_level="Very High",
                page_number=3,
            )
        ]
        service = mock_service(search=results)

        with patch("pdfrag.client.cli.build_service", return_value=service):
            result = self.runner.invoke(search, ["quantum mechanics"])

        assert result.exit_code == 0
        assert "Found 1 result(s)" in result.output
        assert "[physics.pdf - page 3]" in result.output
        assert "score: 0.9100" in result.output
        service.search.assert_awaited_once_with("quantum mechanics")

    def test_search_no_results(self, cli_env):
        with patch("pdfrag.client.cli.build_service", return_value=mock_service(search=[])):
            result = self.runner.invoke(search, ["nothing matches"])

        assert result.exit_code == 0
        assert "No results found." in result.output

    def test_search_options(self, cli_env):
        with patch(
            "pdfrag.client.cli.build_service", return_value=mock_service(search=[])
        ) as mock_build:
            result = self.runner.invoke(
                search, ["query text", "--top-k", "3", "--min-similarity", "0.5"]
            )

        assert result.exit_code == 0
        assert "top 3 results" in result.output
        settings = mock_build.call_args.args[0]
        assert settings.max_results == 3
        assert settings.similarity_threshold == 0.5

    def test_search_aborts_on_corrupt_store(self, cli_env):
        documents = cli_env / "data" / "documents"
        documents.mkdir(parents=True)
        (documents / "bad.json").write_text("{")

        result = self.runner.invoke(search, ["anything"])

        assert result.exit_code != 0
        assert "Failed to load document from file" in result.output


class TestCountCLI:
    """Tests for the count CLI command."""

    def test_count(self, cli_env):
        service = MagicMock()
        service.store.get_all.return_value = [
            Document(chunks=[DocumentChunk(content="a"), DocumentChunk(content="b")]),
            Document(chunks=[DocumentChunk(content="c")]),
        ]

        with patch("pdfrag.client.cli.build_service", return_value=service):
            result = CliRunner().invoke(count)

        assert result.exit_code == 0
        assert "2 document(s) and 3 chunk(s)" in result.output


class TestHealthCLI:
    """Tests for the health CLI command."""

    def test_healthy(self, cli_env):
        with patch("pdfrag.client.cli.build_service", return_value=mock_service(is_healthy=True)):
            result = CliRunner().invoke(health)

        assert result.exit_code == 0
        assert "is healthy" in result.output

    def test_unhealthy(self, cli_env):
        with patch("pdfrag.client.cli.build_service", return_value=mock_service(is_healthy=False)):
            result = CliRunner().invoke(health)

        assert result.exit_code != 0
        assert "not responding" in result.output


class TestFormatSearchResult:
    """Tests for format_search_result helper."""

    def test_truncates_long_content(self):
        result = SearchResult(
            content="word " * 100, file_path="a.pdf", score=0.5, confidence_level="Moderate"
        )

        formatted = format_search_result(2, result, max_length=20)

        assert formatted.startswith("2. [a.pdf] (score: 0.5000, confidence: Moderate)")
        assert "..." in formatted
