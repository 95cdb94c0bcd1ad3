"""Tests for the sqlite-vec vector index."""

import sqlite3

import pytest

from code_memory.core.models.embedding import EmbeddingKind
from code_memory.repositories.config import StorageConfig
from code_memory.repositories.sqlite.repository import SQLiteEmbeddingRepository

from conftest import DIMS, make_record

sqlite_vec = pytest.importorskip("sqlite_vec")

from code_memory.repositories.vector.sqlite_vec import SqliteVecIndex  # noqa: E402


def _extension_available() -> bool:
    conn = sqlite3.connect(":memory:")
    try:
        SqliteVecIndex(DIMS).prepare_connection(conn)
        return True
    except (AttributeError, sqlite3.OperationalError):
        return False
    finally:
        conn.close()


pytestmark = pytest.mark.skipif(
    not _extension_available(), reason="SQLite extension loading unavailable"
)


@pytest.fixture
def vec_repository(tmp_path):
    config = StorageConfig(
        database_path=str(tmp_path / "vec.db"),
        vector_index="sqlite_vec",
        dimensions=DIMS,
        retry_base_delay_seconds=0.0,
    )
    return SQLiteEmbeddingRepository(config, SqliteVecIndex(DIMS))


@pytest.mark.unit
class TestSqliteVecIndex:
    """Tests for SqliteVecIndex through the repository."""

    @pytest.mark.asyncio
    async def test_nearest_neighbour_and_similarity_range(self, vec_repository) -> None:
        near = make_record("near")
        far = make_record("far")
        await vec_repository.bulk_upsert(
            [near, far],
            [[1.0, 0.0, 0.0, 0.0], [0.0, 1.0, 0.0, 0.0]],
        )

        hits = await vec_repository.search_vectors([1.0, 0.1, 0.0, 0.0], limit=2)

        assert [h[0] for h in hits] == [near.id, far.id]
        assert all(0.0 <= score <= 1.0 for _, score in hits)
        await vec_repository.close()

    @pytest.mark.asyncio
    async def test_upsert_replaces_and_delete_removes(self, vec_repository) -> None:
        record = make_record("x", kind=EmbeddingKind.SUMMARY)
        await vec_repository.bulk_upsert([record], [[1.0, 0.0, 0.0, 0.0]])
        await vec_repository.bulk_upsert([record], [[0.0, 1.0, 0.0, 0.0]])

        health = await vec_repository.health_check()
        assert (health["records"], health["vectors"]) == (1, 1)

        await vec_repository.bulk_delete([record.id])

        health = await vec_repository.health_check()
        assert (health["records"], health["vectors"]) == (0, 0)
        await vec_repository.close()
