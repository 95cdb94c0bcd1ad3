"""Ports implemented by infrastructure adapters."""

from code_memory.core.interfaces.events import EventBus
from code_memory.core.interfaces.repositories import EmbeddingRepository, VectorIndex

__all__ = [
    "EmbeddingRepository",
    "EventBus",
    "VectorIndex",
]
