"""sqlite-vec backed vector index."""

from __future__ import annotations

import sqlite3

import sqlite_vec


class SqliteVecIndex:
    """Vector index backed by the sqlite-vec extension (vec0 virtual table).

    The extension is loaded into the repository's own connection, so vector
    writes take part in the same transaction as the metadata rows. Distances
    are cosine distances; similarity is ``1 - distance`` clamped to ``[0, 1]``.
    """

    table = "vec_embeddings"

    def __init__(self, dimensions: int) -> None:
        self._dimensions = dimensions

    @property
    def name(self) -> str:
        return "sqlite_vec"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def prepare_connection(self, conn: sqlite3.Connection) -> None:
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)

    def create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            f"CREATE VIRTUAL TABLE IF NOT EXISTS {self.table} USING vec0("
            f"id TEXT PRIMARY KEY, "
            f"embedding float[{self._dimensions}] distance_metric=cosine)"
        )

    def upsert(self, conn: sqlite3.Connection, record_id: str, vector: list[float]) -> None:
        if len(vector) != self._dimensions:
            raise ValueError(
                f"Vector has {len(vector)} dimensions, index expects {self._dimensions}"
            )
        # vec0 has no upsert; replace the row explicitly.
        conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (record_id,))
        conn.execute(
            f"INSERT INTO {self.table}(id, embedding) VALUES (?, ?)",
            (record_id, sqlite_vec.serialize_float32(vector)),
        )

    def delete(self, conn: sqlite3.Connection, record_ids: list[str]) -> None:
        for record_id in record_ids:
            conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (record_id,))

    def search(
        self,
        conn: sqlite3.Connection,
        query_vector: list[float],
        limit: int,
    ) -> list[tuple[str, float]]:
        if limit <= 0 or len(query_vector) != self._dimensions:
            return []

        rows = conn.execute(
            f"SELECT id, distance FROM {self.table} "
            "WHERE embedding MATCH ? AND k = ? ORDER BY distance",
            (sqlite_vec.serialize_float32(query_vector), limit),
        ).fetchall()
        return [(row[0], min(1.0, max(0.0, 1.0 - float(row[1])))) for row in rows]

    def count(self, conn: sqlite3.Connection) -> int:
        return conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]
