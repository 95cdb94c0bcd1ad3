"""Embedding record and embedding result models."""

from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from code_memory.utils.hashing import make_record_id

_clock_lock = threading.Lock()
_last_timestamp = 0


def next_ingestion_timestamp() -> int:
    """Return a strictly increasing nanosecond timestamp for this process."""
    global _last_timestamp
    with _clock_lock:
        _last_timestamp = max(time.time_ns(), _last_timestamp + 1)
        return _last_timestamp


class EmbeddingKind(str, Enum):
    """Role of a record in the parent-document structure."""

    CHUNK = "chunk"
    SUMMARY = "summary"


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


class _VersionedMetadata(BaseModel):
    """Common shape of every metadata variant.

    Keys the variant does not declare are folded into ``extra`` so newer
    writers can add fields without breaking older readers.
    """

    version: int = 1
    extra: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_unknown_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        known = set(cls.model_fields)
        unknown = {k: v for k, v in data.items() if k not in known}
        if not unknown:
            return data
        cleaned = {k: v for k, v in data.items() if k in known}
        cleaned["extra"] = {**data.get("extra", {}), **unknown}
        return cleaned


class ChunkMetadata(_VersionedMetadata):
    """Metadata attached to a code chunk."""

    type: Literal["chunk"] = "chunk"
    start_line: int | None = None
    end_line: int | None = None
    language: str | None = None
    code_type: str | None = None
    is_implementation: bool = False


class FileSummaryMetadata(_VersionedMetadata):
    """Metadata attached to a file-level summary."""

    type: Literal["file_summary"] = "file_summary"
    original_code_hash: str | None = None
    chunk_count: int = 0
    language: str | None = None


RecordMetadata = Annotated[
    ChunkMetadata | FileSummaryMetadata,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class EmbeddingRecord(BaseModel):
    """The persisted unit of retrieval.

    The vector itself lives in the vector index under the same ``id``;
    the pair is written and deleted atomically by the repository.
    """

    id: str = ""
    owner_id: str
    source_text: str
    entity_name: str | None = None

    # Which backend/model produced the vector
    backend_name: str
    model_name: str
    vector_dimensions: int = Field(gt=0)

    # Incremental re-indexing
    content_hash: str
    file_hash: str
    file_path_relative: str
    file_path_absolute: str = ""

    summary_text: str | None = None
    kind: EmbeddingKind = EmbeddingKind.CHUNK
    parent_id: str | None = None

    created_at: int = Field(default_factory=next_ingestion_timestamp)
    metadata: RecordMetadata | None = None

    @model_validator(mode="after")
    def _check_structure(self) -> EmbeddingRecord:
        if self.kind == EmbeddingKind.SUMMARY and self.parent_id is not None:
            raise ValueError("summary records cannot have a parent_id")
        if not self.id:
            self.id = make_record_id(self.owner_id, self.content_hash)
        return self


# ---------------------------------------------------------------------------
# Embedding generation results
# ---------------------------------------------------------------------------


class EmbeddingVector(BaseModel):
    """A single generated vector and where it came from."""

    vector: list[float]
    dimensions: int
    model: str
    backend: str


class EmbeddingBatchResult(BaseModel):
    """Outcome of one orchestrated embedding request.

    ``embeddings[i]`` always corresponds to input text ``i``; failed items
    are ``None``.
    """

    model_config = ConfigDict(frozen=True)

    embeddings: list[EmbeddingVector | None]
    tokens_processed: int = 0
    success_count: int = 0
    failure_count: int = 0
    backend_distribution: dict[str, int] = Field(default_factory=dict)
    primary_backend: str = "none"
    fallback_used: bool = False
    request_id: str

    @classmethod
    def empty(cls, request_id: str) -> EmbeddingBatchResult:
        return cls(embeddings=[], request_id=request_id)


class StoreStatistics(BaseModel):
    """Aggregate counts over one owner's records."""

    total_records: int = 0
    by_kind: dict[str, int] = Field(default_factory=dict)
    by_file: dict[str, int] = Field(default_factory=dict)
    average_chunk_length: float = 0.0
    file_count: int = 0
