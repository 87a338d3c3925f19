"""Core RAG service exposed to the HTTP layer.

Single entry point for indexing, direct search, statistics and streamed
question answering. All collaborators are injected at construction.
"""

import logging
from collections.abc import Sequence

from src.agent.chat_agent import ConversationEngine
from src.errors import InvalidArgumentError, RAGError
from src.parsing.chunker import chunk_text
from src.retrieval.config import RetrievalConfig
from src.retrieval.orchestrator import RetrievalResult, Retriever
from src.retrieval.vector_store import DocumentStats, Embedder, ScoredChunk, VectorStore
from src.streaming import DoneEvent, ErrorEvent, EventSink, ToolEndEvent, ToolStartEvent

logger = logging.getLogger(__name__)

DOCUMENT_SEARCH_TOOL = "document_search"
GENERIC_ERROR_MESSAGE = "An error occurred"


class RAGService:
    """Facade over the indexing and question-answering pipeline."""

    def __init__(
        self,
        store: VectorStore,
        embeddings: Embedder,
        retriever: Retriever,
        engine: ConversationEngine,
        config: RetrievalConfig,
    ) -> None:
        self._store = store
        self._embeddings = embeddings
        self._retriever = retriever
        self._engine = engine
        self._config = config

    async def index(self, document_id: str, document_name: str, text: str) -> int:
        """Chunk, embed and store a document, replacing any prior index.

        Args:
            document_id: Document identifier.
            document_name: Display name stored with each chunk.
            text: Full extracted text.

        Returns:
            Number of chunks stored.

        Raises:
            InvalidArgumentError: If the document id is empty.
            CorruptedIndexError: If embeddings do not match the index dimension.
        """
        if not document_id:
            raise InvalidArgumentError("document_id must not be empty")

        chunks = chunk_text(text, self._config.chunk_size, self._config.chunk_overlap)
        logger.info(f"Indexing document {document_id} ({document_name}): {len(chunks)} chunks")
        return await self._store.upsert_document(document_id, document_name, chunks, self._embeddings)

    async def delete_index(self, document_id: str) -> int:
        return await self._store.delete_document(document_id)

    async def search(
        self,
        query: str,
        limit: int,
        document_ids: Sequence[str] | None = None,
    ) -> list[ScoredChunk]:
        """Semantic search over indexed chunks.

        Raises:
            InvalidArgumentError: If the query is blank or the limit is not positive.
            ExternalServiceError: If the query cannot be embedded.
            CorruptedIndexError: If the index is inconsistent.
        """
        if not query or not query.strip():
            raise InvalidArgumentError("query must not be empty")
        if limit <= 0:
            raise InvalidArgumentError("limit must be positive")
        return await self._retriever.search(query, limit, document_ids)

    async def stats(self) -> DocumentStats:
        return await self._store.stats()

    async def _retrieve_with_events(
        self,
        question: str,
        document_ids: Sequence[str] | None,
        limit: int,
        sink: EventSink,
    ) -> RetrievalResult:
        if not document_ids:
            return RetrievalResult()

        sink.emit(ToolStartEvent(tool=DOCUMENT_SEARCH_TOOL, message="Searching documents..."))
        retrieval = await self._retriever.retrieve(question, document_ids, limit)
        found = len(retrieval.chunks)
        sink.emit(
            ToolEndEvent(
                tool=DOCUMENT_SEARCH_TOOL,
                message=f"Found {found} relevant chunks" if found else "No relevant chunks found",
            )
        )
        return retrieval

    async def ask(
        self,
        question: str,
        sink: EventSink,
        document_ids: Sequence[str] | None = None,
        limit: int = 5,
    ) -> None:
        """Answer a question, writing the full event stream into the sink.

        Exactly one terminal event (``done`` or ``error``) is emitted and
        the sink is always closed on return.

        Args:
            question: The user's question.
            sink: Event sink of the current response.
            document_ids: Documents eligible as context.
            limit: Chunks retrieved for specific questions.
        """
        try:
            retrieval = await self._retrieve_with_events(question, document_ids, limit, sink)
            outcome = await self._engine.run(question, retrieval, sink)
            sink.emit(
                DoneEvent(
                    has_context=retrieval.has_context,
                    chunks_used=len(retrieval.chunks),
                    used_web_search=outcome.used_web_search,
                )
            )
            logger.info(
                f"Answered question in {outcome.rounds} round(s) "
                f"(chunks={len(retrieval.chunks)}, web_search={outcome.used_web_search})"
            )
        except RAGError as e:
            logger.warning(f"Question failed: {e}")
            if not sink.closed:
                sink.emit(ErrorEvent(error=str(e)))
        except Exception as e:
            logger.exception(f"Unexpected error while answering question: {e}")
            if not sink.closed:
                sink.emit(ErrorEvent(error=str(e) or GENERIC_ERROR_MESSAGE))
        finally:
            sink.close()
