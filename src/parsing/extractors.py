"""Text extraction for uploaded documents.

Dispatches on file extension: PDF via pypdf, Word via python-docx,
spreadsheets via openpyxl, and plain text formats by UTF-8 decoding.
"""

import io
import logging
from pathlib import PurePath

from pydantic import BaseModel, Field
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from src.errors import ExtractionError

logger = logging.getLogger(__name__)

# Constants
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB
PDF_MAGIC_BYTES = b"%PDF"
TEXT_EXTENSIONS = frozenset({".txt", ".md", ".csv"})
SUPPORTED_EXTENSIONS = frozenset({".pdf", ".docx", ".xlsx", *TEXT_EXTENSIONS})


class ExtractedDocument(BaseModel):
    """Text content extracted from an uploaded file.

    Attributes:
        text: Combined text content.
        pages: Page count for paged formats, 1 otherwise.
        metadata: Format-specific metadata (title, author, etc.).
    """

    text: str
    pages: int = Field(default=1, ge=0)
    metadata: dict[str, str] = Field(default_factory=dict)


def file_extension(filename: str) -> str:
    """Return the lower-cased extension of a filename, including the dot."""
    return PurePath(filename).suffix.lower()


def _validate_bytes(content: bytes) -> None:
    if not content:
        raise ExtractionError("Empty file provided")

    if len(content) > MAX_FILE_SIZE:
        size_mb = len(content) / (1024 * 1024)
        raise ExtractionError(
            f"File size ({size_mb:.1f}MB) exceeds maximum allowed "
            f"({MAX_FILE_SIZE // (1024 * 1024)}MB)"
        )


def _extract_pdf_metadata(reader: PdfReader) -> dict[str, str]:
    """Extract metadata from PDF reader.

    Args:
        reader: Initialized PdfReader instance.

    Returns:
        Dictionary of metadata fields with None values removed.
    """
    metadata: dict[str, str | None] = {}

    try:
        if reader.metadata:
            metadata["title"] = reader.metadata.get("/Title")
            metadata["author"] = reader.metadata.get("/Author")
            metadata["subject"] = reader.metadata.get("/Subject")
            metadata["creator"] = reader.metadata.get("/Creator")
    except Exception as e:
        logger.warning(f"Failed to extract some metadata: {e}")

    return {k: str(v) for k, v in metadata.items() if v is not None}


def extract_pdf(content: bytes) -> ExtractedDocument:
    """Extract text from PDF bytes.

    Args:
        content: Raw bytes of the PDF file.

    Returns:
        ExtractedDocument with text, page count and metadata.

    Raises:
        ExtractionError: If the file is not a PDF, is corrupt, or has no pages.
    """
    if not content.lstrip()[:10].startswith(PDF_MAGIC_BYTES):
        raise ExtractionError("Invalid PDF: file does not start with PDF header")

    try:
        reader = PdfReader(io.BytesIO(content))
        pages = len(reader.pages)
    except PdfReadError as e:
        raise ExtractionError(f"Corrupt or invalid PDF: {e}") from e
    except Exception as e:
        raise ExtractionError(f"Failed to read PDF: {e}") from e

    if pages == 0:
        raise ExtractionError("PDF contains no pages")

    text_parts: list[str] = []
    for i, page in enumerate(reader.pages):
        try:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        except Exception as e:
            logger.warning(f"Failed to extract text from page {i + 1}: {e}")
            continue

    text = "\n\n".join(text_parts).strip()
    if not text:
        logger.warning("PDF contains no extractable text (may be scanned/image-based)")

    return ExtractedDocument(text=text, pages=pages, metadata=_extract_pdf_metadata(reader))


def extract_docx(content: bytes) -> ExtractedDocument:
    """Extract paragraph and table text from a Word document."""
    from docx import Document

    try:
        doc = Document(io.BytesIO(content))
    except Exception as e:
        raise ExtractionError(
            f"Failed to parse DOCX file. The file may be corrupted or in an "
            f"unsupported format. Original error: {e}"
        ) from e

    parts = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in table.rows]
        if rows:
            parts.append("\n".join(rows))

    text = "\n\n".join(parts)
    if not text:
        raise ExtractionError("No text content found in DOCX file")
    return ExtractedDocument(text=text)


def extract_xlsx(content: bytes) -> ExtractedDocument:
    """Extract every sheet of a workbook as pipe-separated rows."""
    from openpyxl import load_workbook

    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from Excel file: {e}") from e

    sheets: list[str] = []
    for sheet_name in workbook.sheetnames:
        rows: list[str] = []
        for row in workbook[sheet_name].iter_rows(values_only=True):
            cells = ["" if value is None else str(value) for value in row]
            if any(c.strip() for c in cells):
                rows.append(" | ".join(cells))
        if rows:
            sheets.append(f"Sheet: {sheet_name}\n" + "\n".join(rows))
    workbook.close()

    text = "\n\n".join(sheets).strip()
    if not text:
        raise ExtractionError("No text content found in Excel file")
    return ExtractedDocument(text=text, pages=len(sheets))


def extract_plain_text(content: bytes) -> ExtractedDocument:
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ExtractionError(f"File is not valid UTF-8 text: {e}") from e
    return ExtractedDocument(text=text)


def extract_text(filename: str, content: bytes) -> ExtractedDocument:
    """Extract text from an uploaded file based on its extension.

    Args:
        filename: Original filename, used to pick the extractor.
        content: Raw file bytes.

    Returns:
        ExtractedDocument with the file's text.

    Raises:
        ExtractionError: If the type is unsupported or extraction fails.
    """
    extension = file_extension(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        supported = ", ".join(sorted(SUPPORTED_EXTENSIONS))
        raise ExtractionError(
            f"File type {extension or '(none)'} is not supported. Supported types: {supported}"
        )

    _validate_bytes(content)

    if extension == ".pdf":
        return extract_pdf(content)
    if extension == ".docx":
        return extract_docx(content)
    if extension == ".xlsx":
        return extract_xlsx(content)
    return extract_plain_text(content)
