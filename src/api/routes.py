"""Document ingestion, management and search endpoints.

Handles file upload, validation, text extraction, background indexing,
document listing and deletion, and direct semantic search.
"""

import asyncio
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from src.agent.service import RAGService
from src.api.dependencies import AppServices, get_services
from src.errors import CorruptedIndexError, ExternalServiceError, ExtractionError, InvalidArgumentError
from src.models.schemas import (
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
from src.parsing.extractors import MAX_FILE_SIZE, SUPPORTED_EXTENSIONS, extract_text, file_extension
from src.retrieval.vector_store import DocumentStats
from src.storage.metadata import (
    DocumentMetadata,
    new_document_id,
    stored_file_name,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

upload_router = APIRouter(prefix="/upload", tags=["upload"])
documents_router = APIRouter(prefix="/documents", tags=["documents"])
search_router = APIRouter(prefix="/search", tags=["search"])

MAX_UPLOAD_SIZE = MAX_FILE_SIZE


def _validate_file_extension(filename: str | None) -> str:
    """Validate that the file type is supported.

    Args:
        filename: The uploaded filename.

    Returns:
        The lower-cased extension, including the dot.

    Raises:
        HTTPException: 400 if the name is missing or the extension unsupported.
    """
    if not filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filename is required",
        )

    extension = file_extension(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"File type {extension or '(none)'} is not supported. "
                f"Supported types: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
            ),
        )

    return extension


async def _read_and_validate_size(file: UploadFile) -> bytes:
    """Read file content and validate size.

    Raises:
        HTTPException: 413 if file exceeds size limit.
    """
    content = await file.read()

    if len(content) > MAX_UPLOAD_SIZE:
        size_mb = len(content) / (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=(
                f"File size ({size_mb:.1f}MB) exceeds maximum allowed "
                f"({MAX_UPLOAD_SIZE // (1024 * 1024)}MB)"
            ),
        )

    return content


def _to_summary(metadata: DocumentMetadata) -> DocumentSummary:
    return DocumentSummary(
        id=metadata.id,
        name=metadata.name,
        size=metadata.size,
        type=metadata.type,
        processed_at=metadata.uploaded_at,
        text_length=metadata.text_length,
    )


async def index_document_task(rag: RAGService, document_id: str, name: str, text: str) -> None:
    """Index an uploaded document after the response has been sent.

    Failures are logged; the upload itself has already succeeded.
    """
    try:
        stored = await rag.index(document_id, name, text)
        logger.info(f"Background indexing finished for {name}: {stored} chunks")
    except Exception as e:
        logger.error(f"Error indexing document {document_id} ({name}): {e}")


@upload_router.post("", response_model=DocumentUploadResponse)
async def upload_document(
    file: UploadFile,
    background_tasks: BackgroundTasks,
    services: AppServices = Depends(get_services),
) -> DocumentUploadResponse:
    """Upload a document and index it in the background.

    Accepts PDF, DOCX, XLSX, TXT, MD and CSV files, extracts their text,
    stores the file with its metadata, and schedules embedding.

    Args:
        file: The uploaded file (multipart/form-data).

    Returns:
        DocumentUploadResponse describing the stored document.

    Raises:
        400: Unsupported type, empty or unreadable file.
        413: File exceeds the size limit.
    """
    extension = _validate_file_extension(file.filename)
    filename = file.filename or ""

    content = await _read_and_validate_size(file)

    try:
        extracted = extract_text(filename, content)
    except ExtractionError as e:
        logger.warning(f"Extraction error for {filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    document_id = new_document_id()
    metadata = DocumentMetadata(
        id=document_id,
        name=filename,
        file_name=stored_file_name(document_id, filename),
        size=len(content),
        type=file.content_type or extension,
        uploaded_at=utc_timestamp(),
        text_length=len(extracted.text),
    )
    await services.metadata.add(metadata, content)

    background_tasks.add_task(
        index_document_task, services.rag, document_id, filename, extracted.text
    )
    logger.info(f"Accepted upload {filename} as {document_id} ({extracted.pages} pages)")

    return DocumentUploadResponse(
        success=True,
        document=_to_summary(metadata),
        pages=extracted.pages,
    )


@documents_router.get("", response_model=DocumentListResponse)
async def list_documents(services: AppServices = Depends(get_services)) -> DocumentListResponse:
    documents = await services.metadata.list()
    return DocumentListResponse(documents=[_to_summary(doc) for doc in documents])


@documents_router.get("/stats", response_model=DocumentStats)
async def document_stats(services: AppServices = Depends(get_services)) -> DocumentStats:
    """Return chunk counts per indexed document."""
    return await services.rag.stats()


@documents_router.get("/{document_id}/file")
async def download_document(
    document_id: str,
    services: AppServices = Depends(get_services),
) -> FileResponse:
    """Serve the original uploaded file.

    Raises:
        404: Unknown document or missing stored file.
    """
    metadata = await services.metadata.get(document_id)
    if metadata is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    path = services.metadata.file_path(metadata)
    if not path.exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stored file not found")

    return FileResponse(path, filename=metadata.name, content_disposition_type="inline")


@documents_router.get("/{document_id}", response_model=DocumentDetailResponse)
async def get_document(
    document_id: str,
    services: AppServices = Depends(get_services),
) -> DocumentDetailResponse:
    """Return a document's metadata with its extracted text.

    Raises:
        404: Unknown document or missing stored file.
        500: The stored file can no longer be read.
    """
    metadata = await services.metadata.get(document_id)
    if metadata is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    path = services.metadata.file_path(metadata)
    try:
        content = await asyncio.to_thread(path.read_bytes)
    except FileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stored file not found") from e

    try:
        extracted = await asyncio.to_thread(extract_text, metadata.name, content)
    except ExtractionError as e:
        logger.error(f"Error extracting stored document {document_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to read document: {e}",
        ) from e

    summary = _to_summary(metadata)
    return DocumentDetailResponse(
        document=DocumentDetail(**summary.model_dump(), text=extracted.text)
    )


@documents_router.delete("/{document_id}", response_model=DeleteDocumentResponse)
async def delete_document(
    document_id: str,
    services: AppServices = Depends(get_services),
) -> DeleteDocumentResponse:
    """Remove a document's file, metadata and index entries.

    Raises:
        404: Unknown document.
    """
    metadata = await services.metadata.get(document_id)
    if metadata is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    removed_chunks = await services.rag.delete_index(document_id)
    await services.metadata.remove(document_id)

    return DeleteDocumentResponse(chunks_removed=removed_chunks)


@search_router.post("", response_model=SearchResponse)
async def search_chunks(
    request: SearchRequest,
    services: AppServices = Depends(get_services),
) -> SearchResponse:
    """Semantic search over indexed chunks.

    Raises:
        400: Invalid query or limit.
        500: Index is inconsistent.
        502: Embedding provider failed.
    """
    try:
        results = await services.rag.search(request.query, request.limit, request.document_ids)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except ExternalServiceError as e:
        logger.error(f"Search failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    except CorruptedIndexError as e:
        logger.error(f"Search failed on corrupted index: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        ) from e

    return SearchResponse(
        chunks=[
            ChunkResult(
                id=r.chunk.id,
                document_id=r.chunk.document_id,
                document_name=r.chunk.document_name,
                text=r.chunk.text,
                chunk_index=r.chunk.chunk_index,
                score=r.score,
            )
            for r in results
        ]
    )
