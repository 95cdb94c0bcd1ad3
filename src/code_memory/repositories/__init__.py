"""Repository implementations for code-memory."""

from code_memory.repositories.config import StorageConfig
from code_memory.repositories.factory import RepositoryFactory
from code_memory.repositories.retry import execute_with_retry
from code_memory.repositories.sqlite import SQLiteEmbeddingRepository

__all__ = [
    "RepositoryFactory",
    "SQLiteEmbeddingRepository",
    "StorageConfig",
    "execute_with_retry",
]
