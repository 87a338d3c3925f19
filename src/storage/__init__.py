"""Uploaded document storage: original files and their metadata."""

from src.storage.metadata import DocumentMetadata, MetadataStore

__all__ = ["DocumentMetadata", "MetadataStore"]
