"""Hybrid retrieval for code-memory."""

from code_memory.retrieval.config import RetrievalConfig
from code_memory.retrieval.hybrid import HybridRetriever
from code_memory.retrieval.scoring import ImplementationDiversifier, is_constant_entity

__all__ = [
    "HybridRetriever",
    "ImplementationDiversifier",
    "RetrievalConfig",
    "is_constant_entity",
]
