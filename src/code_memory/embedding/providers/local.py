"""Local embedding backend."""

from __future__ import annotations

import asyncio
import threading

from code_memory.embedding.base import EmbeddingBackend


class SentenceTransformerBackend(EmbeddingBackend):
    """Local model-based embedding backend.

    Uses sentence-transformers. The model is loaded lazily on first use and
    encoding runs in a worker thread so the event loop is never blocked.
    Credentials are ignored.
    """

    def __init__(
        self,
        name: str,
        model_name: str = "all-MiniLM-L6-v2",
        model_path: str | None = None,
    ) -> None:
        super().__init__(name)
        self._model_name = model_name
        self._model_path = model_path
        self._model = None
        self._dimensions: int | None = None
        self._load_lock = threading.Lock()

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def native_dimensions(self) -> int | None:
        return self._dimensions

    @property
    def requires_credentials(self) -> bool:
        return False

    def _ensure_model(self):
        with self._load_lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                self._model = SentenceTransformer(self._model_path or self._model_name)
                self._dimensions = self._model.get_sentence_embedding_dimension()
        return self._model

    def _encode(self, texts: list[str]) -> list[list[float]]:
        model = self._ensure_model()
        embeddings = model.encode(texts, show_progress_bar=False)
        return [e.tolist() for e in embeddings]

    async def embed(
        self,
        texts: list[str],
        credential: str | None = None,
    ) -> list[list[float] | None]:
        """Generate embeddings for multiple texts using the local model."""
        if not texts:
            return []
        return await asyncio.to_thread(self._encode, texts)
