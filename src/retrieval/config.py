"""Retrieval and indexing configuration.

Chunking parameters, embedding model, and the heuristics used to widen
retrieval for summary-style questions. All values can be overridden from
the environment.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

load_dotenv()

_DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data"


class RetrievalConfig(BaseModel):
    """Configuration for chunking, embedding and vector search.

    Attributes:
        data_dir: Directory holding the vector index and document metadata.
        embedding_model: Embedding model identifier.
        embedding_dimension: Vector size of the embedding model; looked up
            for known OpenAI models when unset.
        embedding_max_chars: Input characters kept before embedding.
        chunk_size: Characters per chunk.
        chunk_overlap: Characters shared between neighbouring chunks.
        embedding_batch_size: Chunks embedded concurrently per committed batch.
        default_limit: Chunks retrieved for specific questions.
        general_search_k: Chunks retrieved for general questions.
        general_min_chunks: Below this many hits, general questions fall back
            to every chunk of the selected documents.
        general_max_chunks: Cap on chunks used by that fallback.
    """

    data_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("DATA_DIR", str(_DEFAULT_DATA_DIR))),
    )
    embedding_model: str = Field(
        default_factory=lambda: os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
    )
    embedding_dimension: int | None = Field(
        default_factory=lambda: int(os.getenv("EMBEDDING_DIMENSION", "0")) or None,
        ge=1,
    )
    embedding_max_chars: int = Field(default=8000, ge=1)
    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)
    embedding_batch_size: int = Field(default=5, ge=1, le=100)
    default_limit: int = Field(default=5, ge=1)
    general_search_k: int = Field(
        default_factory=lambda: int(os.getenv("GENERAL_SEARCH_K", "25")),
        ge=1,
    )
    general_min_chunks: int = Field(
        default_factory=lambda: int(os.getenv("GENERAL_MIN_CHUNKS", "10")),
        ge=0,
    )
    general_max_chunks: int = Field(
        default_factory=lambda: int(os.getenv("GENERAL_MAX_CHUNKS", "50")),
        ge=1,
    )

    @model_validator(mode="after")
    def validate_overlap(self) -> "RetrievalConfig":
        """Ensure the chunk window can always advance."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")
        return self

    @property
    def vector_dir(self) -> Path:
        return self.data_dir / "vectors"


def get_retrieval_config() -> RetrievalConfig:
    """Create retrieval configuration from environment."""
    return RetrievalConfig()
