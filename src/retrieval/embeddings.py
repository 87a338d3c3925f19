"""OpenAI embedding provider.

Maps text to fixed-dimension vectors. The client is constructed once at
startup and injected wherever embeddings are needed.
"""

import asyncio
import logging

from openai import AsyncOpenAI, OpenAIError

from src.errors import ExternalServiceError

logger = logging.getLogger(__name__)

KNOWN_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class EmbeddingProvider:
    """Generates embeddings with the OpenAI embeddings API.

    Text longer than ``max_chars`` is truncated before the request, so
    callers never hit the provider's input-length limit.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "text-embedding-3-small",
        max_chars: int = 8000,
        timeout: float = 60.0,
        dimension: int | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            client: Shared async OpenAI client.
            model: Embedding model identifier.
            max_chars: Maximum characters sent per request.
            timeout: Seconds before a request is abandoned.
            dimension: Vector size produced by the model. Looked up for
                known OpenAI models when omitted.
        """
        self._client = client
        self._model = model
        self._max_chars = max_chars
        self._timeout = timeout
        self._dimension = dimension or KNOWN_DIMENSIONS.get(model)

    @property
    def dimension(self) -> int | None:
        """Vector size of this model, or None when unknown."""
        return self._dimension

    async def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text: Text to embed (truncated to ``max_chars``).

        Returns:
            The embedding vector.

        Raises:
            ExternalServiceError: If the request fails, times out, or returns
                no embedding.
        """
        truncated = text[: self._max_chars]

        try:
            async with asyncio.timeout(self._timeout):
                response = await self._client.embeddings.create(
                    model=self._model,
                    input=truncated,
                )
        except TimeoutError as e:
            raise ExternalServiceError(
                f"Embedding request timed out after {self._timeout:.0f}s"
            ) from e
        except OpenAIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise ExternalServiceError(f"Embedding request failed: {e}") from e

        if not response.data or not response.data[0].embedding:
            raise ExternalServiceError("Invalid embedding response from provider")

        return list(response.data[0].embedding)
