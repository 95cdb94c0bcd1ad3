"""SQLite implementation of the embedding repository.

Metadata rows and vectors share one SQLite database so that every
(record, vector) pair is written and deleted inside a single transaction.
All blocking work runs in a worker thread behind a lock; every public
operation goes through ``execute_with_retry``.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, TypeVar

import structlog

from code_memory.core.exceptions import ValidationError
from code_memory.core.interfaces.events import EventBus
from code_memory.core.interfaces.repositories import VectorIndex
from code_memory.core.models.embedding import (
    EmbeddingKind,
    EmbeddingRecord,
    StoreStatistics,
)
from code_memory.observability.events import RecordRejected
from code_memory.repositories.config import StorageConfig
from code_memory.repositories.retry import execute_with_retry

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Stay well below SQLITE_MAX_VARIABLE_NUMBER.
_MAX_PARAMS = 500

_COLUMNS = (
    "id",
    "owner_id",
    "source_text",
    "entity_name",
    "backend_name",
    "model_name",
    "vector_dimensions",
    "content_hash",
    "file_hash",
    "file_path_relative",
    "file_path_absolute",
    "summary_text",
    "kind",
    "parent_id",
    "created_at",
    "metadata",
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS embedding_records (
    id                 TEXT PRIMARY KEY,
    owner_id           TEXT NOT NULL,
    source_text        TEXT NOT NULL,
    entity_name        TEXT,
    backend_name       TEXT NOT NULL,
    model_name         TEXT NOT NULL,
    vector_dimensions  INTEGER NOT NULL,
    content_hash       TEXT NOT NULL,
    file_hash          TEXT NOT NULL,
    file_path_relative TEXT NOT NULL,
    file_path_absolute TEXT NOT NULL DEFAULT '',
    summary_text       TEXT,
    kind               TEXT NOT NULL CHECK (kind IN ('chunk', 'summary')),
    parent_id          TEXT,
    created_at         INTEGER NOT NULL,
    metadata           TEXT
);
CREATE INDEX IF NOT EXISTS idx_records_owner_file
    ON embedding_records(owner_id, file_path_relative);
CREATE INDEX IF NOT EXISTS idx_records_parent ON embedding_records(parent_id);
CREATE INDEX IF NOT EXISTS idx_records_content_hash ON embedding_records(content_hash);
"""

_UPSERT = f"""
INSERT INTO embedding_records ({", ".join(_COLUMNS)})
VALUES ({", ".join("?" * len(_COLUMNS))})
ON CONFLICT(id) DO UPDATE SET
{", ".join(f"{c} = excluded.{c}" for c in _COLUMNS if c != "id")}
"""


class _OrphanParentError(ValueError):
    pass


def _batched(items: list[T], size: int = _MAX_PARAMS) -> Iterator[list[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _placeholders(count: int) -> str:
    return ",".join("?" * count)


def _record_to_row(record: EmbeddingRecord) -> tuple:
    metadata = record.metadata.model_dump_json() if record.metadata is not None else None
    return (
        record.id,
        record.owner_id,
        record.source_text,
        record.entity_name,
        record.backend_name,
        record.model_name,
        record.vector_dimensions,
        record.content_hash,
        record.file_hash,
        record.file_path_relative,
        record.file_path_absolute,
        record.summary_text,
        record.kind.value,
        record.parent_id,
        record.created_at,
        metadata,
    )


def _row_to_record(row: sqlite3.Row) -> EmbeddingRecord:
    data = dict(row)
    data["metadata"] = json.loads(data["metadata"]) if data["metadata"] else None
    return EmbeddingRecord.model_validate(data)


class SQLiteEmbeddingRepository:
    """Content-addressed (metadata, vector) store on a single SQLite file."""

    def __init__(
        self,
        config: StorageConfig,
        vector_index: VectorIndex,
        event_bus: EventBus | None = None,
    ) -> None:
        if vector_index.dimensions != config.dimensions:
            raise ValidationError(
                "Vector index dimensions do not match storage configuration",
                details={"index": vector_index.dimensions, "config": config.dimensions},
            )
        self._config = config
        self._index = vector_index
        self._event_bus = event_bus
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @property
    def dimensions(self) -> int:
        return self._index.dimensions

    @property
    def vector_index(self) -> VectorIndex:
        return self._index

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn

        path = self._config.database_path
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        try:
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA busy_timeout = {self._config.busy_timeout_ms}")
            conn.execute("PRAGMA journal_mode=WAL")
            self._index.prepare_connection(conn)
            conn.executescript(_SCHEMA)
            self._index.create_schema(conn)
        except Exception:
            conn.close()
            raise

        logger.info(
            "repository.connected",
            path=path,
            vector_index=self._index.name,
            dimensions=self._index.dimensions,
        )
        self._conn = conn
        return conn

    def _locked(self, func: Callable[[sqlite3.Connection], T]) -> T:
        with self._lock:
            return func(self._connect())

    async def _run(self, operation: str, func: Callable[[sqlite3.Connection], T]) -> T:
        return await execute_with_retry(
            operation,
            lambda: asyncio.to_thread(self._locked, func),
            max_attempts=self._config.max_attempts,
            base_delay_seconds=self._config.retry_base_delay_seconds,
            event_bus=self._event_bus,
        )

    async def initialize(self) -> None:
        """Open the database and create the schema."""
        await self._run("initialize", lambda conn: None)

    async def close(self) -> None:
        def _close() -> None:
            with self._lock:
                if self._conn is not None:
                    self._conn.close()
                    self._conn = None

        await asyncio.to_thread(_close)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def bulk_upsert(
        self,
        records: list[EmbeddingRecord],
        vectors: list[list[float]],
    ) -> int:
        """Upsert records with their vectors in one transaction.

        Dimension problems reject the whole call before anything is written.
        A record that fails on its own (constraint violation, orphan parent)
        is rolled back to its savepoint, reported and skipped. Returns the
        number of records written.
        """
        if len(records) != len(vectors):
            raise ValidationError(
                "records and vectors must have the same length",
                details={"records": len(records), "vectors": len(vectors)},
            )
        for record, vector in zip(records, vectors, strict=True):
            if len(vector) != self.dimensions or record.vector_dimensions != len(vector):
                raise ValidationError(
                    "Vector dimension mismatch",
                    details={
                        "record_id": record.id,
                        "vector": len(vector),
                        "record": record.vector_dimensions,
                        "index": self.dimensions,
                    },
                )
        if not records:
            return 0

        # Summaries first so chunks in the same batch can reference them.
        pairs = sorted(
            zip(records, vectors, strict=True),
            key=lambda pair: pair[0].kind != EmbeddingKind.SUMMARY,
        )

        def _write(conn: sqlite3.Connection) -> tuple[int, list[tuple[str, str]]]:
            written = 0
            rejected: list[tuple[str, str]] = []
            conn.execute("BEGIN IMMEDIATE")
            try:
                for record, vector in pairs:
                    conn.execute("SAVEPOINT record_write")
                    try:
                        if record.parent_id is not None:
                            self._check_parent(conn, record.parent_id)
                        conn.execute(_UPSERT, _record_to_row(record))
                        self._index.upsert(conn, record.id, vector)
                    except (
                        sqlite3.IntegrityError,
                        sqlite3.InterfaceError,
                        ValueError,
                    ) as exc:
                        conn.execute("ROLLBACK TO record_write")
                        conn.execute("RELEASE record_write")
                        rejected.append((record.id, str(exc)))
                        continue
                    conn.execute("RELEASE record_write")
                    written += 1
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            return written, rejected

        written, rejected = await self._run("bulk_upsert", _write)

        for record_id, reason in rejected:
            logger.warning("repository.record.rejected", record_id=record_id, reason=reason)
            if self._event_bus is not None:
                self._event_bus.publish(RecordRejected(record_id=record_id, reason=reason))
        logger.debug(
            "repository.bulk_upsert.completed",
            written=written,
            rejected=len(rejected),
        )
        return written

    @staticmethod
    def _check_parent(conn: sqlite3.Connection, parent_id: str) -> None:
        row = conn.execute(
            "SELECT kind FROM embedding_records WHERE id = ?", (parent_id,)
        ).fetchone()
        if row is None:
            raise _OrphanParentError(f"parent {parent_id} does not exist")
        if row["kind"] != EmbeddingKind.SUMMARY.value:
            raise _OrphanParentError(f"parent {parent_id} is not a summary record")

    async def bulk_delete(self, record_ids: list[str]) -> int:
        """Delete records and their vectors in one transaction.

        Children of a deleted summary are detached (``parent_id`` cleared).
        Returns the number of metadata rows deleted.
        """
        ids = list(dict.fromkeys(record_ids))
        if not ids:
            return 0

        def _delete(conn: sqlite3.Connection) -> int:
            deleted = 0
            conn.execute("BEGIN IMMEDIATE")
            try:
                for batch in _batched(ids):
                    marks = _placeholders(len(batch))
                    self._index.delete(conn, batch)
                    conn.execute(
                        f"UPDATE embedding_records SET parent_id = NULL "
                        f"WHERE parent_id IN ({marks})",
                        batch,
                    )
                    cursor = conn.execute(
                        f"DELETE FROM embedding_records WHERE id IN ({marks})", batch
                    )
                    deleted += cursor.rowcount
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            return deleted

        deleted = await self._run("bulk_delete", _delete)
        logger.debug("repository.bulk_delete.completed", requested=len(ids), deleted=deleted)
        return deleted

    async def update_file_hash(self, record_id: str, file_hash: str) -> bool:
        def _update(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute(
                "UPDATE embedding_records SET file_hash = ? WHERE id = ?",
                (file_hash, record_id),
            )
            return cursor.rowcount > 0

        return await self._run("update_file_hash", _update)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _select(self, operation: str, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        return await self._run(operation, lambda conn: conn.execute(sql, params).fetchall())

    async def get_by_ids(self, record_ids: list[str]) -> list[EmbeddingRecord]:
        """Fetch records by id, in request order. Unknown ids are skipped."""
        ids = list(dict.fromkeys(record_ids))
        if not ids:
            return []

        def _fetch(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            rows: list[sqlite3.Row] = []
            for batch in _batched(ids):
                rows.extend(
                    conn.execute(
                        f"SELECT * FROM embedding_records WHERE id IN ({_placeholders(len(batch))})",
                        batch,
                    ).fetchall()
                )
            return rows

        rows = await self._run("get_by_ids", _fetch)
        by_id = {row["id"]: _row_to_record(row) for row in rows}
        return [by_id[i] for i in ids if i in by_id]

    async def get_by_id(self, record_id: str) -> EmbeddingRecord | None:
        records = await self.get_by_ids([record_id])
        return records[0] if records else None

    async def get_by_content_hash(
        self,
        content_hash: str,
        owner_id: str | None = None,
    ) -> list[EmbeddingRecord]:
        sql = "SELECT * FROM embedding_records WHERE content_hash = ?"
        params: list[Any] = [content_hash]
        if owner_id is not None:
            sql += " AND owner_id = ?"
            params.append(owner_id)
        rows = await self._select("get_by_content_hash", sql + " ORDER BY created_at", params)
        return [_row_to_record(r) for r in rows]

    async def records_for_file(self, file_path: str, owner_id: str) -> list[EmbeddingRecord]:
        rows = await self._select(
            "records_for_file",
            "SELECT * FROM embedding_records WHERE owner_id = ? AND file_path_relative = ? "
            "ORDER BY created_at",
            (owner_id, file_path),
        )
        return [_row_to_record(r) for r in rows]

    async def children_of(self, parent_ids: list[str]) -> list[EmbeddingRecord]:
        """Return all chunk records whose ``parent_id`` is in *parent_ids*."""
        ids = list(dict.fromkeys(parent_ids))
        if not ids:
            return []

        def _fetch(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            rows: list[sqlite3.Row] = []
            for batch in _batched(ids):
                rows.extend(
                    conn.execute(
                        "SELECT * FROM embedding_records "
                        f"WHERE parent_id IN ({_placeholders(len(batch))}) "
                        "ORDER BY created_at",
                        batch,
                    ).fetchall()
                )
            return rows

        rows = await self._run("children_of", _fetch)
        return [_row_to_record(r) for r in rows]

    async def search_vectors(
        self,
        query_vector: list[float],
        limit: int,
    ) -> list[tuple[str, float]]:
        """Nearest neighbours as ``(record_id, similarity)``, best first."""
        return await self._run(
            "search_vectors",
            lambda conn: self._index.search(conn, query_vector, limit),
        )

    async def latest_hashes_by_file(self, owner_id: str) -> dict[str, str]:
        """Map each file to the ``file_hash`` of its most recently ingested record."""
        rows = await self._select(
            "latest_hashes_by_file",
            """
            SELECT r.file_path_relative, r.file_hash
            FROM embedding_records r
            JOIN (
                SELECT file_path_relative, MAX(created_at) AS latest
                FROM embedding_records
                WHERE owner_id = ?
                GROUP BY file_path_relative
            ) m
              ON r.file_path_relative = m.file_path_relative AND r.created_at = m.latest
            WHERE r.owner_id = ?
            """,
            (owner_id, owner_id),
        )
        return {row["file_path_relative"]: row["file_hash"] for row in rows}

    async def chunk_hashes_for_file(
        self,
        file_path: str,
        owner_id: str | None = None,
    ) -> set[str]:
        sql = (
            "SELECT DISTINCT content_hash FROM embedding_records "
            "WHERE file_path_relative = ? AND kind = 'chunk'"
        )
        params: list[Any] = [file_path]
        if owner_id is not None:
            sql += " AND owner_id = ?"
            params.append(owner_id)
        rows = await self._select("chunk_hashes_for_file", sql, params)
        return {row["content_hash"] for row in rows}

    async def file_paths_for_owner(self, owner_id: str) -> list[str]:
        rows = await self._select(
            "file_paths_for_owner",
            "SELECT DISTINCT file_path_relative FROM embedding_records "
            "WHERE owner_id = ? ORDER BY file_path_relative",
            (owner_id,),
        )
        return [row["file_path_relative"] for row in rows]

    async def entity_names(self, owner_id: str) -> list[str]:
        rows = await self._select(
            "entity_names",
            "SELECT DISTINCT entity_name FROM embedding_records "
            "WHERE owner_id = ? AND entity_name IS NOT NULL ORDER BY entity_name",
            (owner_id,),
        )
        return [row["entity_name"] for row in rows]

    async def available_models(self, owner_id: str) -> list[str]:
        rows = await self._select(
            "available_models",
            "SELECT DISTINCT model_name FROM embedding_records "
            "WHERE owner_id = ? ORDER BY model_name",
            (owner_id,),
        )
        return [row["model_name"] for row in rows]

    async def statistics(self, owner_id: str) -> StoreStatistics:
        def _collect(conn: sqlite3.Connection) -> StoreStatistics:
            by_kind = {
                row["kind"]: row["n"]
                for row in conn.execute(
                    "SELECT kind, COUNT(*) AS n FROM embedding_records "
                    "WHERE owner_id = ? GROUP BY kind",
                    (owner_id,),
                )
            }
            by_file = {
                row["file_path_relative"]: row["n"]
                for row in conn.execute(
                    "SELECT file_path_relative, COUNT(*) AS n FROM embedding_records "
                    "WHERE owner_id = ? GROUP BY file_path_relative",
                    (owner_id,),
                )
            }
            average = conn.execute(
                "SELECT AVG(LENGTH(source_text)) FROM embedding_records "
                "WHERE owner_id = ? AND kind = 'chunk'",
                (owner_id,),
            ).fetchone()[0]
            return StoreStatistics(
                total_records=sum(by_kind.values()),
                by_kind=by_kind,
                by_file=by_file,
                average_chunk_length=float(average or 0.0),
                file_count=len(by_file),
            )

        return await self._run("statistics", _collect)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        """Compare metadata and vector row counts."""

        def _check(conn: sqlite3.Connection) -> dict[str, Any]:
            records = conn.execute("SELECT COUNT(*) FROM embedding_records").fetchone()[0]
            vectors = self._index.count(conn)
            return {
                "records": records,
                "vectors": vectors,
                "consistent": records == vectors,
                "vector_index": self._index.name,
                "dimensions": self._index.dimensions,
            }

        return await self._run("health_check", _check)

    async def optimize(self) -> None:
        def _optimize(conn: sqlite3.Connection) -> None:
            conn.execute("ANALYZE")
            conn.execute("PRAGMA optimize")
            conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")

        await self._run("optimize", _optimize)
        logger.info("repository.optimized")
