"""Vector store for document chunks.

Chunks and their embeddings are persisted in a local LanceDB table. Search
is an exact brute-force cosine scan over the candidate rows: the corpus is
a handful of uploaded documents, so no approximate index is needed, and the
abstract VectorStore interface leaves room to swap one in later.

Write semantics:
    - Re-indexing a document replaces all of its chunks.
    - Embeddings are generated in small concurrent batches; each batch is
      committed with a single table append, so an interrupted indexing run
      leaves a valid partial index.
    - Writes are serialized per document; reads never take a lock.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Protocol

import lancedb
import numpy as np
import pyarrow as pa
import pyarrow.compute as pc
from pydantic import BaseModel, ConfigDict, Field

from src.errors import CorruptedIndexError, ExternalServiceError
from src.parsing.chunker import TextChunk

logger = logging.getLogger(__name__)

TABLE_NAME = "document_chunks"

CHUNK_SCHEMA = pa.schema(
    [
        pa.field("id", pa.string()),
        pa.field("document_id", pa.string()),
        pa.field("document_name", pa.string()),
        pa.field("chunk_index", pa.int32()),
        pa.field("text", pa.string()),
        pa.field("start_index", pa.int64()),
        pa.field("end_index", pa.int64()),
        pa.field("embedding", pa.list_(pa.float32())),
    ]
)


class DocumentChunk(BaseModel):
    """A persisted chunk with its embedding.

    Attributes:
        id: Composite ``{document_id}_{chunk_index}``.
        document_id: Owning document.
        document_name: Display name of the owning document.
        chunk_index: Position of the chunk within the document.
        text: Chunk content.
        start_index: Start offset in the document text.
        end_index: End offset in the document text.
        vector: Embedding vector.
    """

    id: str
    document_id: str
    document_name: str
    chunk_index: int = Field(ge=0)
    text: str
    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)
    vector: list[float] = Field(default_factory=list, repr=False)


class ScoredChunk(BaseModel):
    """A chunk returned by similarity search."""

    chunk: DocumentChunk
    score: float


class DocumentChunkCount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId")
    document_name: str = Field(alias="documentName")
    chunk_count: int = Field(alias="chunkCount")


class DocumentStats(BaseModel):
    """Index statistics across all documents."""

    model_config = ConfigDict(populate_by_name=True)

    total_documents: int = Field(alias="totalDocuments")
    total_chunks: int = Field(alias="totalChunks")
    documents: list[DocumentChunkCount] = Field(default_factory=list)


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]: ...


def make_chunk_id(document_id: str, chunk_index: int) -> str:
    return f"{document_id}_{chunk_index}"


def cosine_scores(vectors: Sequence[Sequence[float]], query: Sequence[float]) -> np.ndarray:
    """Cosine similarity of every vector against the query.

    Args:
        vectors: Candidate vectors, all of the query's dimension.
        query: Query vector.

    Returns:
        One score in [-1, 1] per vector; 0.0 where either norm is zero.

    Raises:
        CorruptedIndexError: If a vector differs from the query in dimensionality.
    """
    target = np.asarray(query, dtype=np.float64)
    for vector in vectors:
        if len(vector) != target.shape[0]:
            raise CorruptedIndexError(
                f"Vector dimensionality mismatch: {len(vector)} != {target.shape[0]}"
            )
    if not vectors:
        return np.zeros(0, dtype=np.float64)

    matrix = np.asarray(vectors, dtype=np.float64)
    denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(target)
    dots = matrix @ target
    scores = np.zeros(len(matrix), dtype=np.float64)
    nonzero = denominators != 0.0
    scores[nonzero] = dots[nonzero] / denominators[nonzero]
    return scores


def _sql_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class VectorStore(ABC):
    """Persistence and k-nearest-neighbour search over document chunks."""

    @abstractmethod
    async def upsert_document(
        self,
        document_id: str,
        document_name: str,
        chunks: Sequence[TextChunk],
        embeddings: Embedder,
    ) -> int:
        """Replace every chunk of a document; returns the number stored."""

    @abstractmethod
    async def delete_document(self, document_id: str) -> int:
        """Remove every chunk of a document; returns the number removed."""

    @abstractmethod
    async def search(
        self,
        query_vector: Sequence[float],
        k: int,
        document_ids: Sequence[str] | None = None,
    ) -> list[ScoredChunk]:
        """Return the top-k chunks by descending cosine similarity."""

    @abstractmethod
    async def all_chunks(self, document_ids: Sequence[str]) -> list[DocumentChunk]:
        """Return every chunk of the given documents ordered by (document, index)."""

    @abstractmethod
    async def stats(self) -> DocumentStats:
        """Return per-document chunk counts."""


class LanceVectorStore(VectorStore):
    """LanceDB-backed vector store with brute-force cosine search."""

    def __init__(
        self,
        uri: Path,
        table_name: str = TABLE_NAME,
        batch_size: int = 5,
        dimension: int | None = None,
    ) -> None:
        """Open (or create) the chunk table.

        Args:
            uri: Directory of the LanceDB database.
            table_name: Name of the chunk table.
            batch_size: Chunks embedded concurrently per committed batch.
            dimension: Vector size of the embedding model. When omitted it is
                taken from the first vector written by this instance.
        """
        uri.mkdir(parents=True, exist_ok=True)
        self._db = lancedb.connect(str(uri))
        self._table = self._db.create_table(table_name, schema=CHUNK_SCHEMA, exist_ok=True)
        self._batch_size = batch_size
        self._configured_dimension = dimension
        self._dimension = dimension
        self._document_locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: Counter[str] = Counter()
        logger.info(f"Vector store opened at {uri} (table={table_name}, dimension={dimension})")

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _to_chunk(row: dict[str, Any]) -> DocumentChunk:
        vector = row.get("embedding")
        if not vector:
            raise CorruptedIndexError(
                f"Chunk {row.get('id')} of document {row.get('document_id')} has no readable vector"
            )
        return DocumentChunk(
            id=row["id"],
            document_id=row["document_id"],
            document_name=row["document_name"],
            chunk_index=row["chunk_index"],
            text=row["text"],
            start_index=row["start_index"],
            end_index=row["end_index"],
            vector=list(vector),
        )

    def _read_rows(self, document_ids: Sequence[str] | None) -> list[dict[str, Any]]:
        """Read rows in insertion order, optionally restricted to documents."""
        data = self._table.to_arrow()
        if document_ids is not None:
            mask = pc.is_in(data["document_id"], value_set=pa.array(list(document_ids), pa.string()))
            data = data.filter(mask)
        return data.to_pylist()

    def _read_chunks(
        self, document_ids: Sequence[str] | None, dimension: int | None
    ) -> list[DocumentChunk]:
        """Read chunks, dropping documents whose vectors are corrupted.

        A document is corrupted when one of its rows has no vector, differs
        from ``dimension``, or (without an expected dimension) differs from
        the document's other rows. Other documents stay readable.
        """
        chunks: list[DocumentChunk] = []
        document_dimensions: dict[str, int] = {}
        corrupted: set[str] = set()
        for row in self._read_rows(document_ids):
            document_id = row["document_id"]
            if document_id in corrupted:
                continue
            try:
                chunk = self._to_chunk(row)
                expected = dimension or document_dimensions.setdefault(document_id, len(chunk.vector))
                if len(chunk.vector) != expected:
                    raise CorruptedIndexError(
                        f"Chunk {chunk.id} has dimension {len(chunk.vector)}, expected {expected}"
                    )
            except CorruptedIndexError as e:
                logger.error(f"Skipping corrupted document {document_id}: {e}")
                corrupted.add(document_id)
                continue
            chunks.append(chunk)
        if corrupted:
            chunks = [c for c in chunks if c.document_id not in corrupted]
        return chunks

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _document_lock(self, document_id: str) -> AsyncIterator[None]:
        """Serialize writes to one document; the lock is dropped once unused."""
        lock = self._document_locks.setdefault(document_id, asyncio.Lock())
        self._lock_holders[document_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[document_id] -= 1
            if not self._lock_holders[document_id]:
                del self._lock_holders[document_id]
                del self._document_locks[document_id]

    def _delete_rows(self, document_id: str) -> int:
        where = f"document_id = {_sql_quote(document_id)}"
        existing = self._table.count_rows(where)
        if existing:
            self._table.delete(where)
            if self._configured_dimension is None and self._table.count_rows() == 0:
                # Dimension is re-learned from the next write
                self._dimension = None
        return existing

    def _check_dimension(self, vector: Sequence[float]) -> None:
        if not vector:
            raise CorruptedIndexError("Embedding provider returned an empty vector")
        if self._dimension is None:
            self._dimension = len(vector)
        if len(vector) != self._dimension:
            raise CorruptedIndexError(
                f"Embedding dimension {len(vector)} does not match index dimension {self._dimension}"
            )

    async def _embed_chunk(
        self,
        document_id: str,
        document_name: str,
        chunk: TextChunk,
        embeddings: Embedder,
        total: int,
    ) -> dict[str, Any] | None:
        """Embed one chunk; failures are logged and the chunk is skipped."""
        try:
            vector = await embeddings.embed(chunk.text)
        except ExternalServiceError as e:
            logger.error(
                f"Error generating embedding for chunk {chunk.chunk_index + 1}/{total} "
                f"of document {document_id}: {e}"
            )
            return None

        return {
            "id": make_chunk_id(document_id, chunk.chunk_index),
            "document_id": document_id,
            "document_name": document_name,
            "chunk_index": chunk.chunk_index,
            "text": chunk.text,
            "start_index": chunk.start_index,
            "end_index": chunk.end_index,
            "embedding": [float(x) for x in vector],
        }

    async def upsert_document(
        self,
        document_id: str,
        document_name: str,
        chunks: Sequence[TextChunk],
        embeddings: Embedder,
    ) -> int:
        """Replace every chunk of a document.

        Prior chunks are deleted first, then chunks are embedded in
        concurrent batches of ``batch_size``; each batch is committed with a
        single append.

        Args:
            document_id: Document to (re-)index.
            document_name: Display name stored alongside each chunk.
            chunks: Chunks produced by the chunker.
            embeddings: Provider used to embed each chunk.

        Returns:
            Number of chunks stored (chunks whose embedding failed are skipped).

        Raises:
            CorruptedIndexError: If an embedding's dimensionality differs from
                the index. The document's partial rows are removed.
        """
        async with self._document_lock(document_id):
            removed = await asyncio.to_thread(self._delete_rows, document_id)
            logger.info(f"Removed {removed} existing chunks for document {document_id}")

            if not chunks:
                logger.warning(f"No chunks to index for document {document_id}")
                return 0

            stored = 0
            total = len(chunks)
            try:
                for start in range(0, total, self._batch_size):
                    batch = chunks[start : start + self._batch_size]
                    rows = await asyncio.gather(
                        *(
                            self._embed_chunk(document_id, document_name, chunk, embeddings, total)
                            for chunk in batch
                        )
                    )
                    valid = [row for row in rows if row is not None]
                    for row in valid:
                        self._check_dimension(row["embedding"])
                    if valid:
                        await asyncio.to_thread(self._table.add, valid)
                        stored += len(valid)
                    logger.debug(
                        f"Committed batch {start // self._batch_size + 1} "
                        f"({len(valid)}/{len(batch)} chunks) for document {document_id}"
                    )
            except CorruptedIndexError:
                await asyncio.to_thread(self._delete_rows, document_id)
                raise

            logger.info(f"Indexed {stored}/{total} chunks for document {document_id}")
            return stored

    async def delete_document(self, document_id: str) -> int:
        """Remove every chunk of a document. Unknown ids are a no-op."""
        async with self._document_lock(document_id):
            removed = await asyncio.to_thread(self._delete_rows, document_id)
        logger.info(f"Deleted {removed} chunks for document {document_id}")
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def search(
        self,
        query_vector: Sequence[float],
        k: int,
        document_ids: Sequence[str] | None = None,
    ) -> list[ScoredChunk]:
        """Return the top-k chunks by descending cosine similarity.

        Args:
            query_vector: Embedded query.
            k: Maximum number of results.
            document_ids: Restrict candidates to these documents when given.

        Returns:
            Up to k scored chunks; equal scores keep insertion order.
            Documents stored with a different dimension than the query are
            skipped.

        Raises:
            CorruptedIndexError: If the query is empty or differs from the
                embedding model's dimension.
        """
        if k <= 0:
            return []
        if not query_vector:
            raise CorruptedIndexError("Query vector is empty")
        if self._dimension is not None and len(query_vector) != self._dimension:
            raise CorruptedIndexError(
                f"Query dimension {len(query_vector)} does not match index dimension {self._dimension}"
            )

        candidates = await asyncio.to_thread(self._read_chunks, document_ids, len(query_vector))
        logger.debug(f"Loaded {len(candidates)} candidate chunks")
        if not candidates:
            return []

        scores = cosine_scores([c.vector for c in candidates], query_vector)
        order = np.argsort(-scores, kind="stable")[:k]
        results = [ScoredChunk(chunk=candidates[i], score=float(scores[i])) for i in order]

        if results:
            logger.debug(f"Top similarity score: {results[0].score:.4f}")
        return results

    async def all_chunks(self, document_ids: Sequence[str]) -> list[DocumentChunk]:
        if not document_ids:
            return []
        chunks = await asyncio.to_thread(self._read_chunks, document_ids, self._dimension)
        return sorted(chunks, key=lambda c: (c.document_id, c.chunk_index))

    def _compute_stats(self) -> DocumentStats:
        data = self._table.to_arrow()
        if data.num_rows == 0:
            return DocumentStats(total_documents=0, total_chunks=0)

        grouped = data.group_by(["document_id", "document_name"]).aggregate(
            [("chunk_index", "count")]
        )
        documents = sorted(
            (
                DocumentChunkCount(
                    document_id=row["document_id"],
                    document_name=row["document_name"],
                    chunk_count=row["chunk_index_count"],
                )
                for row in grouped.to_pylist()
            ),
            key=lambda d: d.document_name,
        )
        return DocumentStats(
            total_documents=len(documents),
            total_chunks=sum(d.chunk_count for d in documents),
            documents=documents,
        )

    async def stats(self) -> DocumentStats:
        return await asyncio.to_thread(self._compute_stats)
