"""Indexation pipeline: chunks in, embedded records stored."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

import structlog
from pydantic import BaseModel, Field

from code_memory.core.exceptions import BackendInvocationError, PipelineError
from code_memory.core.interfaces.repositories import EmbeddingRepository
from code_memory.core.models.embedding import (
    EmbeddingKind,
    EmbeddingRecord,
    EmbeddingVector,
    RecordMetadata,
)
from code_memory.embedding.batching import BatchPartitioner
from code_memory.embedding.orchestrator import EmbeddingOrchestrator
from code_memory.utils.hashing import compute_content_hash

logger = structlog.get_logger(__name__)


class ChunkInput(BaseModel):
    """One text produced by the external chunker, ready to be embedded.

    A chunk names its parent summary by the summary's content hash; the
    pipeline resolves it to the stored summary id.
    """

    source_text: str
    file_path_relative: str
    file_hash: str
    file_path_absolute: str = ""
    entity_name: str | None = None
    summary_text: str | None = None
    kind: EmbeddingKind = EmbeddingKind.CHUNK
    content_hash: str | None = None
    parent_content_hash: str | None = None
    metadata: RecordMetadata | None = None

    @property
    def resolved_content_hash(self) -> str:
        return self.content_hash or compute_content_hash(self.source_text)


@dataclass
class IndexationReport:
    """Partial-success statistics of one ``index_chunks`` call."""

    total: int = 0
    embedded: int = 0
    failed: int = 0
    stored: int = 0
    skipped: int = 0
    batches: int = 0
    failed_batches: int = 0
    record_ids: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0 and self.skipped == 0


class IndexationPipeline:
    """Pipeline for indexing chunks into the embedding store.

    Orchestrates:
    1. Partition texts into token/size bounded batches
    2. Generate embeddings for each batch
    3. Build content-addressed records for the items that succeeded
    4. Upsert each batch once its network calls are done

    Summaries are processed before chunks so parent references resolve.
    """

    def __init__(
        self,
        orchestrator: EmbeddingOrchestrator,
        repository: EmbeddingRepository,
        partitioner: BatchPartitioner | None = None,
    ) -> None:
        orchestrator.ensure_dimensions(repository.dimensions)
        self._orchestrator = orchestrator
        self._repository = repository
        self._partitioner = partitioner or BatchPartitioner()

    async def index_chunks(self, owner_id: str, chunks: list[ChunkInput]) -> IndexationReport:
        if not owner_id.strip():
            raise PipelineError(
                "owner_id is required for indexation",
                details={"chunks": len(chunks)},
            )

        report = IndexationReport(total=len(chunks))
        if not chunks:
            return report

        log = logger.bind(owner_id=owner_id, chunks=len(chunks))
        ordered = sorted(chunks, key=lambda c: c.kind != EmbeddingKind.SUMMARY)
        summary_ids: dict[str, str] = {}

        for batch in self._partitioner.partition([c.source_text for c in ordered]):
            report.batches += 1
            request_id = uuid.uuid4().hex
            try:
                result = await self._orchestrator.generate(batch.texts, request_id=request_id)
            except BackendInvocationError as exc:
                log.warning(
                    "pipeline.batch.failed",
                    request_id=request_id,
                    items=len(batch),
                    error=exc.message,
                )
                report.failed_batches += 1
                report.failed += len(batch)
                continue

            records: list[EmbeddingRecord] = []
            vectors: list[list[float]] = []
            for index, embedding in zip(batch.original_indices, result.embeddings, strict=True):
                if embedding is None:
                    report.failed += 1
                    continue
                chunk = ordered[index]
                record = await self._build_record(owner_id, chunk, embedding, summary_ids)
                if record.kind == EmbeddingKind.SUMMARY:
                    summary_ids[record.content_hash] = record.id
                records.append(record)
                vectors.append(embedding.vector)

            report.embedded += len(records)
            if not records:
                continue

            stored = await self._repository.bulk_upsert(records, vectors)
            report.stored += stored
            report.skipped += len(records) - stored
            report.record_ids.extend(r.id for r in records)

        log.info(
            "pipeline.index.completed",
            embedded=report.embedded,
            failed=report.failed,
            stored=report.stored,
            skipped=report.skipped,
        )
        return report

    async def _build_record(
        self,
        owner_id: str,
        chunk: ChunkInput,
        embedding: EmbeddingVector,
        summary_ids: dict[str, str],
    ) -> EmbeddingRecord:
        parent_id = None
        if chunk.kind == EmbeddingKind.CHUNK and chunk.parent_content_hash:
            parent_id = await self._resolve_parent(owner_id, chunk.parent_content_hash, summary_ids)
            if parent_id is None:
                logger.warning(
                    "pipeline.parent.unresolved",
                    file=chunk.file_path_relative,
                    parent_hash=chunk.parent_content_hash,
                )

        return EmbeddingRecord(
            owner_id=owner_id,
            source_text=chunk.source_text,
            entity_name=chunk.entity_name,
            backend_name=embedding.backend,
            model_name=embedding.model,
            vector_dimensions=embedding.dimensions,
            content_hash=chunk.resolved_content_hash,
            file_hash=chunk.file_hash,
            file_path_relative=chunk.file_path_relative,
            file_path_absolute=chunk.file_path_absolute,
            summary_text=chunk.summary_text,
            kind=chunk.kind,
            parent_id=parent_id,
            metadata=chunk.metadata,
        )

    async def _resolve_parent(
        self,
        owner_id: str,
        parent_hash: str,
        summary_ids: dict[str, str],
    ) -> str | None:
        if parent_hash in summary_ids:
            return summary_ids[parent_hash]
        for record in reversed(await self._repository.get_by_content_hash(parent_hash, owner_id)):
            if record.kind == EmbeddingKind.SUMMARY:
                summary_ids[parent_hash] = record.id
                return record.id
        return None

    async def changed_files(self, owner_id: str, file_hashes: dict[str, str]) -> list[str]:
        """Paths whose hash differs from the latest stored one (or are new)."""
        stored = await self._repository.latest_hashes_by_file(owner_id)
        return [path for path, digest in file_hashes.items() if stored.get(path) != digest]

    async def remove_stale(
        self,
        owner_id: str,
        file_path: str,
        current_hashes: set[str],
    ) -> int:
        """Delete chunk records of *file_path* whose content is gone."""
        records = await self._repository.records_for_file(file_path, owner_id)
        stale = [
            r.id
            for r in records
            if r.kind == EmbeddingKind.CHUNK and r.content_hash not in current_hashes
        ]
        if not stale:
            return 0
        deleted = await self._repository.bulk_delete(stale)
        logger.info("pipeline.stale.removed", file=file_path, deleted=deleted)
        return deleted

    async def remove_file(self, owner_id: str, file_path: str) -> int:
        """Delete every record of *file_path*."""
        records = await self._repository.records_for_file(file_path, owner_id)
        if not records:
            return 0
        return await self._repository.bulk_delete([r.id for r in records])
