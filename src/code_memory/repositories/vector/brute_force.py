"""Brute-force cosine vector index stored as float32 BLOBs."""

from __future__ import annotations

import sqlite3

import numpy as np


class BruteForceVectorIndex:
    """Exact cosine search over every stored vector.

    Vectors live in a plain table next to the metadata, so it works on any
    SQLite build. Search cost is linear in the number of vectors.
    """

    table = "embedding_vectors"

    def __init__(self, dimensions: int) -> None:
        self._dimensions = dimensions

    @property
    def name(self) -> str:
        return "brute_force"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def prepare_connection(self, conn: sqlite3.Connection) -> None:
        pass

    def create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id         TEXT PRIMARY KEY,
                dimensions INTEGER NOT NULL,
                vector     BLOB NOT NULL
            )
            """
        )

    def upsert(self, conn: sqlite3.Connection, record_id: str, vector: list[float]) -> None:
        if len(vector) != self._dimensions:
            raise ValueError(
                f"Vector has {len(vector)} dimensions, index expects {self._dimensions}"
            )
        blob = np.asarray(vector, dtype=np.float32).tobytes()
        conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (record_id,))
        conn.execute(
            f"INSERT INTO {self.table}(id, dimensions, vector) VALUES (?, ?, ?)",
            (record_id, len(vector), blob),
        )

    def delete(self, conn: sqlite3.Connection, record_ids: list[str]) -> None:
        if not record_ids:
            return
        placeholders = ",".join("?" * len(record_ids))
        conn.execute(f"DELETE FROM {self.table} WHERE id IN ({placeholders})", record_ids)

    def search(
        self,
        conn: sqlite3.Connection,
        query_vector: list[float],
        limit: int,
    ) -> list[tuple[str, float]]:
        if limit <= 0 or len(query_vector) != self._dimensions:
            return []

        rows = conn.execute(
            f"SELECT id, vector FROM {self.table} WHERE dimensions = ?",
            (self._dimensions,),
        ).fetchall()
        if not rows:
            return []

        ids = [row[0] for row in rows]
        matrix = np.vstack([np.frombuffer(row[1], dtype=np.float32) for row in rows])
        query = np.asarray(query_vector, dtype=np.float32)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        similarities = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
        similarities = np.clip(similarities, 0.0, 1.0)

        k = min(limit, len(ids))
        # stable sort keeps insertion order among equal scores
        order = np.argsort(-similarities, kind="stable")[:k]
        return [(ids[i], float(similarities[i])) for i in order]

    def count(self, conn: sqlite3.Connection) -> int:
        return conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]
