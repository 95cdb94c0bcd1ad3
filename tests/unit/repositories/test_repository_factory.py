"""Tests for the repository factory."""

import pytest

from code_memory.core.exceptions import ConfigurationError
from code_memory.repositories.config import StorageConfig
from code_memory.repositories.factory import RepositoryFactory
from code_memory.repositories.vector.brute_force import BruteForceVectorIndex

from conftest import DIMS


@pytest.mark.unit
class TestRepositoryFactory:
    """Tests for RepositoryFactory."""

    def test_unknown_vector_index(self, tmp_path) -> None:
        config = StorageConfig(
            database_path=str(tmp_path / "x.db"), vector_index="faiss", dimensions=DIMS
        )

        with pytest.raises(ConfigurationError):
            RepositoryFactory(config).create_vector_index()

    def test_brute_force_index(self, storage_config) -> None:
        index = RepositoryFactory(storage_config).create_vector_index()

        assert isinstance(index, BruteForceVectorIndex)

    @pytest.mark.asyncio
    async def test_repository_is_cached_and_initialized(self, storage_config) -> None:
        factory = RepositoryFactory(storage_config)

        first = await factory.get_embedding_repository()
        second = await factory.get_embedding_repository()

        assert first is second
        assert (await first.health_check())["records"] == 0
        await factory.close()
