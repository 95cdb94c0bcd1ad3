"""SQLite-backed repositories."""

from code_memory.repositories.sqlite.repository import SQLiteEmbeddingRepository

__all__ = ["SQLiteEmbeddingRepository"]
