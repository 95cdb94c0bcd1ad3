"""Retrieval service: query text in, ranked records out."""

from __future__ import annotations

import structlog

from code_memory.core.exceptions import EmbeddingError
from code_memory.core.models.search import ScoredRecord, SearchFilters
from code_memory.embedding.orchestrator import EmbeddingOrchestrator
from code_memory.retrieval.hybrid import HybridRetriever

logger = structlog.get_logger(__name__)


class RetrievalService:
    """Embeds a query and runs it through the hybrid retriever."""

    def __init__(self, orchestrator: EmbeddingOrchestrator, retriever: HybridRetriever) -> None:
        orchestrator.ensure_dimensions(retriever.dimensions)
        self._orchestrator = orchestrator
        self._retriever = retriever

    async def search(
        self,
        query_text: str,
        top_k: int = 10,
        filters: SearchFilters | None = None,
    ) -> list[ScoredRecord]:
        if not query_text.strip():
            return []

        result = await self._orchestrator.generate([query_text])
        embedding = result.embeddings[0]
        if embedding is None:
            raise EmbeddingError(
                "Failed to embed query",
                details={"request_id": result.request_id},
            )

        logger.debug("retrieval_service.query.embedded", backend=embedding.backend)
        return await self._retriever.retrieve(
            embedding.vector,
            query_text,
            top_k=top_k,
            filters=filters,
        )
