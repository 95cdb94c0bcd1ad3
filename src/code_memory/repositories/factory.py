"""Repository factory for creating repository instances."""

from code_memory.core.exceptions import ConfigurationError
from code_memory.core.interfaces.events import EventBus
from code_memory.core.interfaces.repositories import VectorIndex
from code_memory.repositories.config import StorageConfig
from code_memory.repositories.sqlite.repository import SQLiteEmbeddingRepository


class RepositoryFactory:
    """Factory for creating repository instances.

    Creates the embedding repository with the vector index named in the
    storage configuration.
    """

    def __init__(self, config: StorageConfig, event_bus: EventBus | None = None) -> None:
        self._config = config
        self._event_bus = event_bus
        self._repository: SQLiteEmbeddingRepository | None = None

    def create_vector_index(self) -> VectorIndex:
        kind = self._config.vector_index.lower()

        if kind == "sqlite_vec":
            from code_memory.repositories.vector.sqlite_vec import SqliteVecIndex

            return SqliteVecIndex(self._config.dimensions)
        elif kind == "brute_force":
            from code_memory.repositories.vector.brute_force import BruteForceVectorIndex

            return BruteForceVectorIndex(self._config.dimensions)
        else:
            raise ConfigurationError(f"Unknown vector index: {kind}")

    async def get_embedding_repository(self) -> SQLiteEmbeddingRepository:
        """Get or create the embedding repository."""
        if self._repository is None:
            repository = SQLiteEmbeddingRepository(
                self._config,
                self.create_vector_index(),
                event_bus=self._event_bus,
            )
            await repository.initialize()
            self._repository = repository
        return self._repository

    async def close(self) -> None:
        if self._repository is not None:
            await self._repository.close()
            self._repository = None
