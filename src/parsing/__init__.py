"""Document parsing utilities.

Transforms uploaded files into text and text into overlapping chunks
ready for embedding.

Responsibilities:
    - Text extraction for PDF, DOCX, XLSX and plain text formats
    - Fixed-size character chunking with overlap
"""

from src.parsing.chunker import TextChunk, chunk_text
from src.parsing.extractors import ExtractedDocument, extract_text

__all__ = ["ExtractedDocument", "TextChunk", "chunk_text", "extract_text"]
