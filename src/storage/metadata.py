"""Document metadata persistence.

Uploaded files are kept under ``<data_dir>/documents`` and described by a
JSON array in ``<data_dir>/metadata.json``. The metadata list is what the
UI offers for selection and decides which document ids can be searched.
"""

import asyncio
import json
import logging
import re
import uuid
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class DocumentMetadata(BaseModel):
    """Stored description of an uploaded document.

    Attributes:
        id: Document identifier used by the vector index.
        name: Original file name.
        file_name: Name of the stored copy under the documents directory.
        size: File size in bytes.
        type: Content type (or extension when the client sent none).
        uploaded_at: ISO 8601 upload timestamp.
        text_length: Characters of extracted text.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    file_name: str = Field(..., alias="fileName")
    size: int = Field(..., ge=0)
    type: str
    uploaded_at: str = Field(..., alias="uploadedAt")
    text_length: int = Field(default=0, ge=0, alias="textLength")


_metadata_list_adapter = TypeAdapter(list[DocumentMetadata])


def new_document_id() -> str:
    return uuid.uuid4().hex


def stored_file_name(document_id: str, original_name: str) -> str:
    """Build the on-disk name for an uploaded file."""
    return f"{document_id}_{_UNSAFE_FILENAME_CHARS.sub('_', original_name)}"


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


class MetadataStore:
    """JSON-file store of uploaded documents.

    Mutations are serialized with a lock and every write rewrites the
    whole file. A missing or unreadable file reads as an empty list.
    """

    def __init__(self, data_dir: Path) -> None:
        """Initialize the store.

        Args:
            data_dir: Root data directory; created if missing.
        """
        self._metadata_file = data_dir / "metadata.json"
        self._documents_dir = data_dir / "documents"
        self._documents_dir.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def file_path(self, metadata: DocumentMetadata) -> Path:
        return self._documents_dir / metadata.file_name

    def _read(self) -> list[DocumentMetadata]:
        if not self._metadata_file.exists():
            return []
        try:
            return _metadata_list_adapter.validate_json(self._metadata_file.read_bytes())
        except (OSError, ValidationError) as e:
            logger.error(f"Error reading metadata from {self._metadata_file}: {e}")
            return []

    def _write(self, documents: list[DocumentMetadata]) -> None:
        payload = [doc.model_dump(by_alias=True) for doc in documents]
        self._metadata_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    async def list(self) -> list[DocumentMetadata]:
        return await asyncio.to_thread(self._read)

    async def get(self, document_id: str) -> DocumentMetadata | None:
        documents = await self.list()
        return next((doc for doc in documents if doc.id == document_id), None)

    async def add(self, metadata: DocumentMetadata, content: bytes) -> DocumentMetadata:
        """Save the uploaded file and append its metadata.

        Args:
            metadata: Description of the document.
            content: Raw file bytes.

        Returns:
            The stored metadata.
        """
        async with self._lock:
            await asyncio.to_thread(self.file_path(metadata).write_bytes, content)
            documents = await asyncio.to_thread(self._read)
            documents.append(metadata)
            await asyncio.to_thread(self._write, documents)
        logger.info(f"Saved document {metadata.id} ({metadata.name}, {metadata.size} bytes)")
        return metadata

    async def remove(self, document_id: str) -> DocumentMetadata | None:
        """Delete a document's metadata and stored file.

        Returns:
            The removed metadata, or None if the id is unknown.
        """
        async with self._lock:
            documents = await asyncio.to_thread(self._read)
            removed = next((doc for doc in documents if doc.id == document_id), None)
            if removed is None:
                return None

            await asyncio.to_thread(self._write, [doc for doc in documents if doc.id != document_id])
            path = self.file_path(removed)
            try:
                await asyncio.to_thread(path.unlink)
            except FileNotFoundError:
                logger.warning(f"Stored file already missing: {path}")

        logger.info(f"Removed document {document_id}")
        return removed
