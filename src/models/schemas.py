from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatRequest(BaseModel):
    """Request payload for the streaming chat endpoint.

    Attributes:
        question: User's question.
        document_ids: Documents eligible as context (none means web/model only).
        limit: Chunks retrieved for specific questions.
    """

    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., min_length=1)
    document_ids: list[str] = Field(default_factory=list, alias="documentIds")
    limit: int = Field(default=5, ge=1, le=50)

    @field_validator("question", mode="before")
    @classmethod
    def strip_question(cls, v: str) -> str:
        """Strip whitespace from question before validation."""
        if isinstance(v, str):
            return v.strip()
        return v


class SearchRequest(BaseModel):
    """Request payload for direct semantic search."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., min_length=1)
    limit: int = Field(default=5, ge=1, le=50)
    document_ids: list[str] | None = Field(default=None, alias="documentIds")

    @field_validator("query", mode="before")
    @classmethod
    def strip_query(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class ChunkResult(BaseModel):
    """A search hit as returned to API clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    document_id: str = Field(..., alias="documentId")
    document_name: str = Field(..., alias="documentName")
    text: str
    chunk_index: int = Field(..., alias="chunkIndex")
    score: float


class SearchResponse(BaseModel):
    success: bool = True
    chunks: list[ChunkResult] = Field(default_factory=list)


class DocumentSummary(BaseModel):
    """Document entry in upload and listing responses.

    Attributes:
        id: Document identifier.
        name: Original file name.
        size: File size in bytes.
        type: Content type or extension.
        processed_at: Upload timestamp.
        text_length: Characters of extracted text.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    size: int
    type: str
    processed_at: str = Field(..., alias="processedAt")
    text_length: int = Field(..., alias="textLength")


class DocumentDetail(DocumentSummary):
    """Document entry with its extracted text, used for previews."""

    text: str


class DocumentDetailResponse(BaseModel):
    success: bool = True
    document: DocumentDetail


class DocumentUploadResponse(BaseModel):
    """Response after document upload.

    Attributes:
        success: Whether the upload was accepted.
        document: The stored document; indexing continues in the background.
        pages: Pages (or sheets) found during extraction.
    """

    success: bool
    document: DocumentSummary
    pages: int = 1


class DocumentListResponse(BaseModel):
    success: bool = True
    documents: list[DocumentSummary] = Field(default_factory=list)


class DeleteDocumentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Document deleted successfully"
    chunks_removed: int = Field(default=0, alias="chunksRemoved")
