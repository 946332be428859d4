"""PDF ingestion pipeline for extracting and chunking documents."""

import logging
from pathlib import Path

import fitz  # PyMuPDF

from pdfrag.constants import AVERAGE_WORD_LENGTH, DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE
from pdfrag.service.database.models import Document, DocumentChunk

logger = logging.getLogger(__name__)


def chunk_text(
    text: str,
    page_number: int,
    chunk_size: int | None = None,
    overlap: int | None = None,
) -> list[DocumentChunk]:
    """Split page text into overlapping chunks of roughly ``chunk_size`` characters.

    Words are accumulated until their length (one separator counted per word)
    reaches ``chunk_size``. The last ``overlap // AVERAGE_WORD_LENGTH`` words of
    each emitted chunk start the next one, so ``overlap`` is an approximate
    character count. Remaining words form a final, possibly shorter, chunk.

    Args:
        text: The page text to chunk
        page_number: Page the text came from, copied onto every chunk
        chunk_size: Target characters per chunk (default: 1000)
        overlap: Approximate characters shared by consecutive chunks (default: 100)

    Returns:
        list[DocumentChunk]: Chunks numbered from 1, empty for blank text

    Raises:
        ValueError: If chunk_size is not positive or overlap is not in [0, chunk_size)
    """
    size = DEFAULT_CHUNK_SIZE if chunk_size is None else chunk_size
    overlap_chars = DEFAULT_CHUNK_OVERLAP if overlap is None else overlap
    if size <= 0:
        raise ValueError(f"chunk_size must be positive, got {size}")
    if overlap_chars < 0 or overlap_chars >= size:
        raise ValueError(f"overlap must be in [0, {size}), got {overlap_chars}")

    words = text.split()
    chunks: list[DocumentChunk] = []
    if not words:
        return chunks

    words_to_keep = overlap_chars // AVERAGE_WORD_LENGTH
    current: list[str] = []
    current_length = 0
    chunk_number = 1

    for word in words:
        current.append(word)
        current_length += len(word) + 1

        if current_length >= size:
            chunks.append(
                DocumentChunk(
                    content=" ".join(current),
                    page_number=page_number,
                    chunk_number=chunk_number,
                )
            )
            chunk_number += 1

            # Keep strictly fewer words than were emitted so every chunk advances
            keep = min(words_to_keep, len(current) - 1)
            current = current[len(current) - keep :] if keep > 0 else []
            current_length = sum(len(w) + 1 for w in current)

    if current:
        chunks.append(
            DocumentChunk(
                content=" ".join(current),
                page_number=page_number,
                chunk_number=chunk_number,
            )
        )

    return chunks


def extract_page_text(pdf: fitz.Document, page_index: int) -> str:
    """Extract the text of one page (0-based index) of an open PDF."""
    return pdf[page_index].get_text()


def extract_document_from_pdf(
    pdf_path: Path,
    chunk_size: int | None = None,
    overlap: int | None = None,
) -> Document:
    """Extract text from a PDF and chunk it page by page, without embeddings.

    Args:
        pdf_path: Path to the PDF file
        chunk_size: Target characters per chunk
        overlap: Approximate characters shared by consecutive chunks

    Returns:
        Document: Document with content and chunks (page numbers start at 1)
    """
    logger.info(f"Extracting chunks from {pdf_path.name}...")
    document = Document(file_path=str(pdf_path))
    page_texts: list[str] = []

    with fitz.open(pdf_path) as pdf:
        for page_index in range(pdf.page_count):
            page_text = extract_page_text(pdf, page_index)
            page_texts.append(page_text)
            document.chunks.extend(chunk_text(page_text, page_index + 1, chunk_size, overlap))

    document.content = "\n".join(page_texts)
    logger.info(
        f"  ✓ Extracted {len(document.content)} characters and "
        f"{len(document.chunks)} chunks from {pdf_path.name}"
    )
    return document


def process_pdf_files(
    directory: Path,
    chunk_size: int | None = None,
    overlap: int | None = None,
) -> list[Document]:
    """Extract and chunk every PDF in a directory.

    Files that cannot be read are logged and skipped.

    Args:
        directory: Directory containing ``*.pdf`` files
        chunk_size: Target characters per chunk
        overlap: Approximate characters shared by consecutive chunks

    Returns:
        list[Document]: One document per readable PDF, in file name order
    """
    documents = []
    for pdf_path in sorted(Path(directory).glob("*.pdf")):
        try:
            documents.append(extract_document_from_pdf(pdf_path, chunk_size, overlap))
        except Exception as e:
            logger.error(f"❌ Error processing PDF file {pdf_path}: {e}", exc_info=True)
    return documents
