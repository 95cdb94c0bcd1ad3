"""Embedding generation module for code-memory."""

from code_memory.embedding.base import EmbeddingBackend
from code_memory.embedding.batching import BatchPartitioner, TextBatch
from code_memory.embedding.config import (
    BackendConfig,
    EmbeddingConfig,
    InvokerConfig,
    LoadBalancingStrategy,
    RoutingConfig,
)
from code_memory.embedding.credentials import CredentialPool
from code_memory.embedding.factory import EmbeddingBackendFactory
from code_memory.embedding.invoker import BackendInvoker, is_rate_limit_error
from code_memory.embedding.orchestrator import BackendStats, EmbeddingOrchestrator
from code_memory.embedding.projection import project_vector
from code_memory.embedding.routing import ContentClass, ContentClassifier

__all__ = [
    "BackendConfig",
    "BackendInvoker",
    "BackendStats",
    "BatchPartitioner",
    "ContentClass",
    "ContentClassifier",
    "CredentialPool",
    "EmbeddingBackend",
    "EmbeddingBackendFactory",
    "EmbeddingConfig",
    "EmbeddingOrchestrator",
    "InvokerConfig",
    "LoadBalancingStrategy",
    "RoutingConfig",
    "TextBatch",
    "is_rate_limit_error",
    "project_vector",
]
