"""OpenAI-compatible embedding backend."""

from __future__ import annotations

from openai import AsyncOpenAI

from code_memory.embedding.base import EmbeddingBackend


class OpenAIEmbeddingBackend(EmbeddingBackend):
    """Embedding backend speaking the OpenAI embeddings API.

    Any OpenAI-compatible endpoint (Gemini, Mistral, a local gateway) is
    reached by setting ``base_url``. Clients are cached per credential so
    rotating keys does not rebuild connections.
    """

    def __init__(
        self,
        name: str,
        model: str = "text-embedding-3-large",
        base_url: str | None = None,
        dimensions: int | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        super().__init__(name)
        self._model = model
        self._base_url = base_url
        self._dimensions = dimensions
        self._timeout = timeout_seconds
        self._clients: dict[str | None, AsyncOpenAI] = {}

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def native_dimensions(self) -> int | None:
        return self._dimensions

    def _client_for(self, credential: str | None) -> AsyncOpenAI:
        client = self._clients.get(credential)
        if client is None:
            client = AsyncOpenAI(
                api_key=credential,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
            self._clients[credential] = client
        return client

    async def embed(
        self,
        texts: list[str],
        credential: str | None = None,
    ) -> list[list[float] | None]:
        """Generate embeddings for multiple texts using OpenAI."""
        if not texts:
            return []

        kwargs: dict = {"model": self._model, "input": texts}
        if self._dimensions is not None:
            kwargs["dimensions"] = self._dimensions

        response = await self._client_for(credential).embeddings.create(**kwargs)

        vectors: list[list[float] | None] = [None] * len(texts)
        for item in response.data:
            if 0 <= item.index < len(texts):
                vectors[item.index] = list(item.embedding)
        return vectors
