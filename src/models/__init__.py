"""Pydantic models for API requests and responses.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - ChatRequest: Question for the streaming chat endpoint
    - SearchRequest / SearchResponse: Direct semantic search
    - DocumentSummary: Uploaded document as listed to clients
    - DocumentDetail / DocumentDetailResponse: Document with its extracted text
    - DocumentUploadResponse / DocumentListResponse / DeleteDocumentResponse
"""

from src.models.schemas import (
    ChatRequest,
    ChunkResult,
    DeleteDocumentResponse,
    DocumentDetail,
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentSummary,
    DocumentUploadResponse,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    "ChatRequest",
    "ChunkResult",
    "DeleteDocumentResponse",
    "DocumentDetail",
    "DocumentDetailResponse",
    "DocumentListResponse",
    "DocumentSummary",
    "DocumentUploadResponse",
    "SearchRequest",
    "SearchResponse",
]
