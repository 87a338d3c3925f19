"""Retrieval orchestration: classify, search, assemble context."""

import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field

from src.retrieval.classifier import QueryIntent, classify_question
from src.retrieval.config import RetrievalConfig
from src.retrieval.vector_store import DocumentChunk, Embedder, ScoredChunk, VectorStore

logger = logging.getLogger(__name__)

DOCUMENT_SEPARATOR = "\n\n---\n\n"
CHUNK_SEPARATOR = "\n\n"


class RetrievalResult(BaseModel):
    """Document context selected for a question.

    Attributes:
        context_text: Chunk texts grouped by document, ready for the prompt.
        chunks: Chunks that make up the context.
        is_general: Whether the question was classified as general.
    """

    context_text: str = ""
    chunks: list[DocumentChunk] = Field(default_factory=list)
    is_general: bool = False

    @property
    def has_context(self) -> bool:
        return bool(self.context_text)


def build_context(chunks: Sequence[DocumentChunk]) -> str:
    """Group chunk texts by document name, in first-seen document order."""
    grouped: dict[str, list[str]] = {}
    for chunk in chunks:
        grouped.setdefault(chunk.document_name or "Unknown", []).append(chunk.text)

    return DOCUMENT_SEPARATOR.join(
        f"[Document: {name}]\n{CHUNK_SEPARATOR.join(texts)}" for name, texts in grouped.items()
    )


class Retriever:
    """Selects document context for questions.

    General questions search with a wider k and, when semantic search comes
    back sparse, fall back to every chunk of the selected documents.
    """

    def __init__(
        self,
        store: VectorStore,
        embeddings: Embedder,
        config: RetrievalConfig,
    ) -> None:
        self._store = store
        self._embeddings = embeddings
        self._config = config

    async def search(
        self,
        query: str,
        limit: int,
        document_ids: Sequence[str] | None = None,
    ) -> list[ScoredChunk]:
        """Semantic search over the index.

        Args:
            query: Free-text query.
            limit: Maximum number of chunks.
            document_ids: Optional document restriction.

        Returns:
            Scored chunks, best first.

        Raises:
            ExternalServiceError: If the query cannot be embedded.
            CorruptedIndexError: If the index dimension does not match.
        """
        query_vector = await self._embeddings.embed(query)
        return await self._store.search(query_vector, limit, document_ids)

    async def _general_chunks(self, question: str, document_ids: Sequence[str]) -> list[DocumentChunk]:
        results = await self.search(question, self._config.general_search_k, document_ids)
        chunks = [r.chunk for r in results]

        if len(chunks) < self._config.general_min_chunks:
            logger.info(
                "General question with sparse matches, retrieving all chunks for comprehensive context"
            )
            all_chunks = await self._store.all_chunks(document_ids)
            chunks = all_chunks[: self._config.general_max_chunks]
        return chunks

    async def retrieve(
        self,
        question: str,
        document_ids: Sequence[str] | None,
        limit: int | None = None,
    ) -> RetrievalResult:
        """Build the document context for a question.

        Search failures are logged and yield an empty result so the
        conversation can continue without document grounding.

        Args:
            question: The user's question.
            document_ids: Documents eligible for retrieval.
            limit: Chunks retrieved for specific questions.

        Returns:
            RetrievalResult (empty when no documents are selected).
        """
        if not document_ids:
            return RetrievalResult()

        is_general = classify_question(question) is QueryIntent.GENERAL
        try:
            if is_general:
                chunks = await self._general_chunks(question, document_ids)
            else:
                results = await self.search(
                    question, limit or self._config.default_limit, document_ids
                )
                chunks = [r.chunk for r in results]
        except Exception as e:
            logger.error(f"Error searching chunks, continuing without context: {e}")
            return RetrievalResult(is_general=is_general)

        return RetrievalResult(
            context_text=build_context(chunks),
            chunks=chunks,
            is_general=is_general,
        )
