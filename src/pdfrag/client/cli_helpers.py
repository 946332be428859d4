"""Helper functions for CLI commands."""

import logging

import click

from pdfrag.config import Settings
from pdfrag.constants import CONTENT_PREVIEW_LENGTH
from pdfrag.service.database.store import DocumentStoreLoadError
from pdfrag.service.rag_service import RagService
from pdfrag.service.search import SearchResult


def configure_logging(level: str) -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_service(settings: Settings) -> RagService:
    """Create the RAG service, aborting the command if the store cannot load.

    Raises:
        click.Abort: If a persisted document is unreadable
    """
    try:
        return RagService.from_settings(settings)
    except DocumentStoreLoadError as e:
        click.echo(f"✗ Error loading documents: {e}", err=True)
        click.echo(f"\nFix or remove '{e.path}' and try again.", err=True)
        raise click.Abort()


def format_search_result(
    index: int, result: SearchResult, max_length: int = CONTENT_PREVIEW_LENGTH
) -> str:
    """Format a search result for display.

    Args:
        index: Result number (1-based)
        result: Search result to display
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    content = " ".join(result.content.split())
    display_content = content[:max_length] + "..." if len(content) > max_length else content
    location = result.file_path
    if result.page_number is not None:
        location = f"{location} - page {result.page_number}"

    lines = [
        f"{index}. [{location}] (score: {result.score:.4f}, confidence: {result.confidence_level})",
        f"   {display_content}",
        "",
    ]
    return "\n".join(lines)
