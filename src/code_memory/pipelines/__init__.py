"""Pipelines wiring embedding generation, storage and retrieval."""

from code_memory.pipelines.indexation import ChunkInput, IndexationPipeline, IndexationReport
from code_memory.pipelines.retrieval import RetrievalService

__all__ = [
    "ChunkInput",
    "IndexationPipeline",
    "IndexationReport",
    "RetrievalService",
]
