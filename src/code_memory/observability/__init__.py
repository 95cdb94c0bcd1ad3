"""Observability events and the in-memory event bus."""

from code_memory.observability.bus import EventRecorder, InMemoryEventBus
from code_memory.observability.events import (
    BackendInvoked,
    BackendRetryScheduled,
    CredentialRotated,
    RecordRejected,
    RetrievalCompleted,
    StorageRetryScheduled,
    StrategyCompleted,
)

__all__ = [
    "BackendInvoked",
    "BackendRetryScheduled",
    "CredentialRotated",
    "EventRecorder",
    "InMemoryEventBus",
    "RecordRejected",
    "RetrievalCompleted",
    "StorageRetryScheduled",
    "StrategyCompleted",
]
