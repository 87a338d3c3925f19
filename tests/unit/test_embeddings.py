"""Unit tests for the OpenAI embedding provider."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_check as check
from openai import APIConnectionError

from src.errors import ExternalServiceError
from src.retrieval.embeddings import EmbeddingProvider


def _client(create: object) -> SimpleNamespace:
    return SimpleNamespace(embeddings=SimpleNamespace(create=create))


def _response(vector: list[float]) -> SimpleNamespace:
    return SimpleNamespace(data=[SimpleNamespace(embedding=vector)])


class TestEmbeddingProvider:
    async def test_returns_vector_and_truncates_input(self) -> None:
        create = AsyncMock(return_value=_response([0.1, 0.2, 0.3]))
        provider = EmbeddingProvider(_client(create), model="text-embedding-3-small", max_chars=10)

        vector = await provider.embed("x" * 50)

        check.equal(vector, [0.1, 0.2, 0.3])
        check.equal(create.call_args.kwargs["input"], "x" * 10)
        check.equal(create.call_args.kwargs["model"], "text-embedding-3-small")

    async def test_api_error_raises_external_service_error(self) -> None:
        create = AsyncMock(
            side_effect=APIConnectionError(request=httpx.Request("POST", "http://llm.test"))
        )

        with pytest.raises(ExternalServiceError, match="Embedding request failed"):
            await EmbeddingProvider(_client(create)).embed("text")

    async def test_empty_response_raises(self) -> None:
        create = AsyncMock(return_value=SimpleNamespace(data=[]))

        with pytest.raises(ExternalServiceError, match="Invalid embedding response"):
            await EmbeddingProvider(_client(create)).embed("text")

    async def test_timeout_raises_external_service_error(self) -> None:
        async def slow(**kwargs: object) -> object:
            await asyncio.sleep(1)
            return _response([1.0])

        provider = EmbeddingProvider(_client(slow), timeout=0.01)

        with pytest.raises(ExternalServiceError, match="timed out"):
            await provider.embed("text")

    def test_dimension_of_known_and_unknown_models(self) -> None:
        client = _client(AsyncMock())

        check.equal(EmbeddingProvider(client).dimension, 1536)
        check.equal(EmbeddingProvider(client, model="text-embedding-3-large").dimension, 3072)
        check.is_none(EmbeddingProvider(client, model="local-embedder").dimension)
        check.equal(EmbeddingProvider(client, model="local-embedder", dimension=384).dimension, 384)
