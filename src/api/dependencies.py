"""Application service wiring.

Every long-lived collaborator (HTTP clients, vector store, conversation
engine) is constructed once in ``build_services`` and reached from route
handlers through ``request.app.state``.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx
from fastapi import Request
from openai import AsyncOpenAI

from src.agent.chat_agent import ConversationEngine
from src.agent.config import AgentConfig, get_agent_config
from src.agent.service import RAGService
from src.agent.web_search import WebSearchClient
from src.retrieval.config import RetrievalConfig, get_retrieval_config
from src.retrieval.embeddings import EmbeddingProvider
from src.retrieval.orchestrator import Retriever
from src.retrieval.vector_store import LanceVectorStore
from src.storage.metadata import MetadataStore

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Services shared by all requests."""

    rag: RAGService
    metadata: MetadataStore
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def aclose(self) -> None:
        for close in self.closers:
            await close()


def build_services(
    agent_config: AgentConfig | None = None,
    retrieval_config: RetrievalConfig | None = None,
) -> AppServices:
    """Construct the production service graph from configuration.

    Raises:
        ValueError: If no LLM API key is configured.
    """
    agent_config = agent_config or get_agent_config()
    retrieval_config = retrieval_config or get_retrieval_config()

    openai_client = AsyncOpenAI(
        api_key=agent_config.api_key,
        base_url=agent_config.base_url,
    )
    http_client = httpx.AsyncClient(follow_redirects=True)

    embeddings = EmbeddingProvider(
        openai_client,
        model=retrieval_config.embedding_model,
        max_chars=retrieval_config.embedding_max_chars,
        timeout=agent_config.request_timeout,
        dimension=retrieval_config.embedding_dimension,
    )
    store = LanceVectorStore(
        retrieval_config.vector_dir,
        dimension=embeddings.dimension,
        batch_size=retrieval_config.embedding_batch_size,
    )
    retriever = Retriever(store, embeddings, retrieval_config)
    engine = ConversationEngine(
        openai_client,
        WebSearchClient(http_client, timeout=agent_config.request_timeout),
        agent_config,
    )

    logger.info(
        f"Services ready (model={agent_config.model_name}, "
        f"embeddings={retrieval_config.embedding_model}, data_dir={retrieval_config.data_dir})"
    )
    return AppServices(
        rag=RAGService(store, embeddings, retriever, engine, retrieval_config),
        metadata=MetadataStore(retrieval_config.data_dir),
        closers=[http_client.aclose, openai_client.close],
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services
