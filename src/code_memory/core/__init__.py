"""Core domain models and interfaces for code-memory."""

from code_memory.core.exceptions import (
    BackendInvocationError,
    CodeMemoryError,
    ConfigurationError,
    EmbeddingError,
    PipelineError,
    StorageError,
    ValidationError,
)
from code_memory.core.models import (
    EmbeddingBatchResult,
    EmbeddingKind,
    EmbeddingRecord,
    EmbeddingVector,
    ScoredRecord,
    SearchFilters,
)

__all__ = [
    # Models
    "EmbeddingBatchResult",
    "EmbeddingKind",
    "EmbeddingRecord",
    "EmbeddingVector",
    "ScoredRecord",
    "SearchFilters",
    # Exceptions
    "CodeMemoryError",
    "ConfigurationError",
    "ValidationError",
    "BackendInvocationError",
    "StorageError",
    "EmbeddingError",
    "PipelineError",
]
