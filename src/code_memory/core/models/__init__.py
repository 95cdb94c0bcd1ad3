"""Domain models for code-memory."""

from code_memory.core.models.embedding import (
    ChunkMetadata,
    EmbeddingBatchResult,
    EmbeddingKind,
    EmbeddingRecord,
    EmbeddingVector,
    FileSummaryMetadata,
    RecordMetadata,
    StoreStatistics,
    next_ingestion_timestamp,
)
from code_memory.core.models.search import MatchSource, ScoredRecord, SearchFilters

__all__ = [
    "ChunkMetadata",
    "EmbeddingBatchResult",
    "EmbeddingKind",
    "EmbeddingRecord",
    "EmbeddingVector",
    "FileSummaryMetadata",
    "MatchSource",
    "RecordMetadata",
    "ScoredRecord",
    "SearchFilters",
    "StoreStatistics",
    "next_ingestion_timestamp",
]
