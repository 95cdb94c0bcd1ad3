"""Base embedding backend."""

from abc import ABC, abstractmethod


class EmbeddingBackend(ABC):
    """Abstract base class for embedding backends.

    A backend turns a batch of texts into one vector per text. An item the
    backend could not embed is returned as ``None``; a failure of the whole
    call is raised.
    """

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        """Unique name of this backend within an orchestrator."""
        return self._name

    @property
    @abstractmethod
    def model_name(self) -> str:
        """The name of the embedding model."""
        ...

    @property
    @abstractmethod
    def native_dimensions(self) -> int | None:
        """Dimensionality the model produces, if known before the first call."""
        ...

    @property
    def requires_credentials(self) -> bool:
        return True

    @abstractmethod
    async def embed(
        self,
        texts: list[str],
        credential: str | None = None,
    ) -> list[list[float] | None]:
        """Generate embeddings for *texts*, in order."""
        ...
