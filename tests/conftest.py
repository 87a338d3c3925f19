"""Pytest fixtures and shared test configuration.

Provides reusable fakes and fixtures for unit and integration tests.

Fixtures:
    - embedder: Deterministic bag-of-words embedder
    - vector_store: LanceDB store in a temporary directory
    - retrieval_config / agent_config: Test configurations
    - chat_client: Scripted streaming chat-completion client
    - web_search: Recording web search fake
    - services / async_client: Fully wired app over ASGITransport

The fakes replace network services only; chunking, the vector store,
retrieval, the conversation engine and the SSE protocol run for real.
"""

import json
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from src.agent.chat_agent import ConversationEngine
from src.agent.config import AgentConfig
from src.agent.service import RAGService
from src.agent.web_search import WebSearchResult
from src.api.app import create_app
from src.api.dependencies import AppServices
from src.retrieval.config import RetrievalConfig
from src.retrieval.orchestrator import Retriever
from src.retrieval.vector_store import LanceVectorStore
from src.storage.metadata import MetadataStore
from src.streaming import decode_sse_data

VOCABULARY = (
    "revenue",
    "quarter",
    "profit",
    "security",
    "password",
    "network",
    "weather",
    "python",
)


class FakeEmbedder:
    """Counts vocabulary words; a small constant keeps every vector non-zero."""

    def __init__(self, vocabulary: Sequence[str] = VOCABULARY) -> None:
        self.vocabulary = tuple(vocabulary)
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        lowered = text.lower()
        return [float(lowered.count(word)) + 0.01 for word in self.vocabulary]


class ScriptedChatClient:
    """Stands in for AsyncOpenAI: each create() call plays the next scripted round."""

    def __init__(self, rounds: list[list[Any]] | None = None) -> None:
        self.rounds: list[list[Any]] = list(rounds or [])
        self.requests: list[dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs: Any) -> AsyncIterator[Any]:
        self.requests.append({**kwargs, "messages": [dict(m) for m in kwargs["messages"]]})
        round_chunks = self.rounds.pop(0) if self.rounds else [content_chunk("Done.")]
        return _aiter(round_chunks)

    async def close(self) -> None:
        pass


async def _aiter(items: list[Any]) -> AsyncIterator[Any]:
    for item in items:
        yield item


def content_chunk(text: str) -> Any:
    delta = SimpleNamespace(content=text, tool_calls=None)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def tool_call_chunk(
    index: int,
    call_id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
) -> Any:
    tool_call = SimpleNamespace(
        index=index,
        id=call_id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )
    delta = SimpleNamespace(content=None, tool_calls=[tool_call])
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def search_web_round(call_id: str, query: str) -> list[Any]:
    """A round whose only output is a search_web call, arguments split in two."""
    arguments = json.dumps({"query": query})
    middle = len(arguments) // 2
    return [
        tool_call_chunk(0, call_id=call_id, name="search_web", arguments=arguments[:middle]),
        tool_call_chunk(0, arguments=arguments[middle:]),
    ]


class FakeWebSearch:
    def __init__(self, results: list[WebSearchResult] | None = None) -> None:
        self.results = results or [
            WebSearchResult(
                title="Python 3.13 released",
                snippet="The latest Python release brings a new interactive shell.",
                url="https://example.org/python",
            )
        ]
        self.queries: list[str] = []

    async def search(self, query: str, max_results: int = 5) -> list[WebSearchResult]:
        self.queries.append(query)
        return self.results[:max_results]


def parse_sse(body: str) -> list[dict[str, Any]]:
    """Decode an SSE body into JSON payloads, validating each event."""
    events = []
    for frame in body.split("\n\n"):
        if not frame.startswith("data: "):
            continue
        payload = frame[len("data: ") :]
        decode_sse_data(payload)
        events.append(json.loads(payload))
    return events


@pytest.fixture
def test_data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def retrieval_config(test_data_dir: Path) -> RetrievalConfig:
    return RetrievalConfig(
        data_dir=test_data_dir,
        chunk_size=100,
        chunk_overlap=20,
        general_search_k=25,
        general_min_chunks=10,
        general_max_chunks=50,
    )


@pytest.fixture
def agent_config() -> AgentConfig:
    return AgentConfig(api_key="sk-test-key", request_timeout=5.0)


@pytest.fixture
def vector_store(retrieval_config: RetrievalConfig) -> LanceVectorStore:
    return LanceVectorStore(retrieval_config.vector_dir, batch_size=retrieval_config.embedding_batch_size)


@pytest.fixture
def chat_client() -> ScriptedChatClient:
    return ScriptedChatClient()


@pytest.fixture
def web_search() -> FakeWebSearch:
    return FakeWebSearch()


@pytest.fixture
def engine(
    chat_client: ScriptedChatClient,
    web_search: FakeWebSearch,
    agent_config: AgentConfig,
) -> ConversationEngine:
    return ConversationEngine(chat_client, web_search, agent_config)


@pytest.fixture
def rag_service(
    vector_store: LanceVectorStore,
    embedder: FakeEmbedder,
    engine: ConversationEngine,
    retrieval_config: RetrievalConfig,
) -> RAGService:
    retriever = Retriever(vector_store, embedder, retrieval_config)
    return RAGService(vector_store, embedder, retriever, engine, retrieval_config)


@pytest.fixture
def services(rag_service: RAGService, test_data_dir: Path) -> AppServices:
    return AppServices(rag=rag_service, metadata=MetadataStore(test_data_dir))


@pytest.fixture
async def async_client(services: AppServices) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=create_app(services))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
