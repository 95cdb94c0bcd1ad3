"""Diagnostic events emitted by the embedding and storage layers.

All events are frozen dataclasses. Components publish them on an injected
``EventBus``; subscribers decide whether to count, log or drop them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


# ---------------------------------------------------------------------------
# Embedding events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BackendInvoked:
    """One backend invocation finished (successfully or not)."""

    backend: str
    request_id: str
    item_count: int
    success: bool
    duration_ms: float
    error: str | None = None


@dataclass(frozen=True)
class BackendRetryScheduled:
    """The invoker is about to retry a backend call after a delay."""

    backend: str
    attempt: int
    delay_seconds: float
    reason: str


@dataclass(frozen=True)
class CredentialRotated:
    """A rate-limited credential was replaced by the next one in the pool."""

    backend: str
    pool_size: int
    position: int


@dataclass(frozen=True)
class StrategyCompleted:
    """An orchestrated embedding request completed."""

    strategy: str
    request_id: str
    success_count: int
    failure_count: int
    primary_backend: str
    fallback_used: bool
    backend_distribution: dict[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Storage events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageRetryScheduled:
    """A storage operation failed transiently and will be retried."""

    operation: str
    attempt: int
    max_attempts: int
    delay_seconds: float
    error: str


@dataclass(frozen=True)
class RecordRejected:
    """A single record was skipped during a bulk upsert."""

    record_id: str
    reason: str
    rejected_at: datetime = field(default_factory=datetime.now)


# ---------------------------------------------------------------------------
# Retrieval events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetrievalCompleted:
    """A hybrid retrieval query returned."""

    top_k: int
    candidate_count: int
    expanded_count: int
    result_count: int
    duration_ms: float
