"""Embedding backend implementations."""

from code_memory.embedding.providers.local import SentenceTransformerBackend
from code_memory.embedding.providers.openai import OpenAIEmbeddingBackend

__all__ = ["OpenAIEmbeddingBackend", "SentenceTransformerBackend"]
