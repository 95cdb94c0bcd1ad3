"""Repository protocols for the vector/metadata store."""

from __future__ import annotations

import sqlite3
from typing import Protocol, runtime_checkable

from code_memory.core.models.embedding import EmbeddingRecord


@runtime_checkable
class VectorIndex(Protocol):
    """The vector half of the store.

    Implementations share the metadata connection so that a record and its
    vector are always written and deleted inside the same transaction.
    Similarity scores are cosine similarities clamped to ``[0, 1]``.
    """

    @property
    def name(self) -> str: ...

    @property
    def dimensions(self) -> int: ...

    def prepare_connection(self, conn: sqlite3.Connection) -> None:
        """Hook run once per connection (e.g. to load an extension)."""
        ...

    def create_schema(self, conn: sqlite3.Connection) -> None: ...

    def upsert(self, conn: sqlite3.Connection, record_id: str, vector: list[float]) -> None: ...

    def delete(self, conn: sqlite3.Connection, record_ids: list[str]) -> None: ...

    def search(
        self,
        conn: sqlite3.Connection,
        query_vector: list[float],
        limit: int,
    ) -> list[tuple[str, float]]:
        """Return ``(record_id, similarity)`` pairs sorted by similarity desc."""
        ...

    def count(self, conn: sqlite3.Connection) -> int: ...


class EmbeddingRepository(Protocol):
    """Content-addressed storage of (metadata, vector) pairs."""

    @property
    def dimensions(self) -> int: ...

    async def bulk_upsert(
        self,
        records: list[EmbeddingRecord],
        vectors: list[list[float]],
    ) -> int:
        """Upsert records with their vectors. Returns count written."""
        ...

    async def bulk_delete(self, record_ids: list[str]) -> int:
        """Delete records and their vectors. Returns count deleted."""
        ...

    async def get_by_ids(self, record_ids: list[str]) -> list[EmbeddingRecord]: ...

    async def children_of(self, parent_ids: list[str]) -> list[EmbeddingRecord]: ...

    async def search_vectors(
        self,
        query_vector: list[float],
        limit: int,
    ) -> list[tuple[str, float]]: ...

    async def latest_hashes_by_file(self, owner_id: str) -> dict[str, str]: ...

    async def chunk_hashes_for_file(
        self,
        file_path: str,
        owner_id: str | None = None,
    ) -> set[str]: ...

    async def file_paths_for_owner(self, owner_id: str) -> list[str]: ...

    async def get_by_content_hash(
        self,
        content_hash: str,
        owner_id: str | None = None,
    ) -> list[EmbeddingRecord]: ...

    async def records_for_file(self, file_path: str, owner_id: str) -> list[EmbeddingRecord]: ...
