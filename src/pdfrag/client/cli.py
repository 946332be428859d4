"""Command-line interface for pdfrag using Click."""

import asyncio
from pathlib import Path

import click

from pdfrag.client.cli_helpers import build_service, configure_logging, format_search_result
from pdfrag.config import Settings


@click.command()
@click.argument(
    "directory",
    required=False,
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--chunk-size",
    type=int,
    default=None,
    help="Target characters per chunk (default: from CHUNK_SIZE env or 1000)",
)
@click.option(
    "--chunk-overlap",
    type=int,
    default=None,
    help="Approximate characters shared by consecutive chunks (default: from CHUNK_OVERLAP env or 100)",
)
def ingest(directory: Path | None, chunk_size: int | None, chunk_overlap: int | None) -> None:
    """Ingest PDF files from DIRECTORY (default: PDF_DIRECTORY) into the document store.

    Example:
        pdfrag-ingest pdfs/
        pdfrag-ingest pdfs/ --chunk-size 500 --chunk-overlap 50
    """
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if chunk_size is not None:
        settings.chunk_size = chunk_size
    if chunk_overlap is not None:
        settings.chunk_overlap = chunk_overlap

    if settings.read_only:
        click.echo("✗ Error: read-only mode is enabled (READ_ONLY_MODE), cannot ingest.", err=True)
        raise click.Abort()

    directory = directory or settings.pdf_directory
    if not directory.is_dir():
        click.echo(f"✗ Error: directory '{directory}' does not exist", err=True)
        raise click.Abort()

    pdf_files = sorted(directory.glob("*.pdf"))
    if not pdf_files:
        click.echo(f"No PDF files found in '{directory}'")
        return

    click.echo(f"Found {len(pdf_files)} PDF file(s)")
    click.echo(f"Using embedding model: {settings.embedding_model}\n")

    service = build_service(settings)
    results = asyncio.run(service.ingest_directory(directory))

    stored = 0
    for pdf_path, result in zip(pdf_files, results):
        if result.success:
            stored += 1
            document = service.store.get_by_id(result.document_id)
            chunk_count = len(document.chunks) if document else 0
            click.echo(f"  ✓ Stored {pdf_path.name} ({chunk_count} embedded chunks)")
        else:
            click.echo(f"  ✗ Error processing {pdf_path.name}: {result.error}", err=True)

    click.echo(f"\n✓ Ingestion complete! Stored {stored} of {len(pdf_files)} document(s).")


@click.command()
@click.argument("query", type=str)
@click.option("--top-k", type=int, default=None, help="Number of results to return (default: 5)")
@click.option(
    "--min-similarity",
    type=float,
    default=None,
    help="Minimum cosine similarity for a result (default: 0.3)",
)
def search(query: str, top_k: int | None, min_similarity: float | None) -> None:
    """Search ingested documents for chunks similar to QUERY.

    Example:
        pdfrag-search "quantum mechanics"
        pdfrag-search "machine learning" --top-k 3
    """
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if top_k is not None:
        settings.max_results = top_k
    if min_similarity is not None:
        settings.similarity_threshold = min_similarity

    click.echo(f"🔍 Searching for: '{query}'")
    click.echo(f"   Returning top {settings.max_results} results...\n")

    service = build_service(settings)
    results = asyncio.run(service.search(query))

    if not results:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(results)} result(s):\n")
    for i, result in enumerate(results, 1):
        click.echo(format_search_result(i, result))


@click.command()
def count() -> None:
    """Show the number of stored documents and chunks.

    Example:
        pdfrag-count
    """
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    service = build_service(settings)

    documents = service.store.get_all()
    chunk_count = sum(len(document.chunks) for document in documents)
    click.echo(f"📊 Store contains {len(documents)} document(s) and {chunk_count} chunk(s)")


@click.command()
def health() -> None:
    """Check that the Ollama embedding service responds.

    Example:
        pdfrag-health
    """
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    service = build_service(settings)

    if asyncio.run(service.is_healthy()):
        click.echo(f"✓ Ollama at {settings.ollama_host} is healthy ({settings.embedding_model})")
    else:
        click.echo(f"✗ Ollama at {settings.ollama_host} is not responding correctly", err=True)
        raise click.Abort()


if __name__ == "__main__":
    ingest()
