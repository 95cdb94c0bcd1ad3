"""Search-related models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from code_memory.core.models.embedding import EmbeddingKind, EmbeddingRecord


class MatchSource(str, Enum):
    """How a record entered the result set."""

    DIRECT = "direct"
    EXPANSION = "expansion"


class SearchFilters(BaseModel):
    """Exact-match filters applied to retrieval candidates."""

    model_config = ConfigDict(frozen=True)

    owner_id: str | None = None
    file_paths: list[str] | None = None
    exclude_kinds: list[EmbeddingKind] | None = None
    backend: str | None = None
    model: str | None = None

    def matches(self, record: EmbeddingRecord) -> bool:
        """Return True when *record* passes every configured predicate."""
        if self.owner_id is not None and record.owner_id != self.owner_id:
            return False
        if self.file_paths and record.file_path_relative not in self.file_paths:
            return False
        if self.exclude_kinds and record.kind in self.exclude_kinds:
            return False
        if self.backend is not None and record.backend_name != self.backend:
            return False
        if self.model is not None and record.model_name != self.model:
            return False
        return True


class ScoredRecord(BaseModel):
    """A record ranked by the hybrid retrieval engine."""

    record: EmbeddingRecord
    score: float
    similarity: float
    match_source: MatchSource = MatchSource.DIRECT
