"""Hybrid retrieval: vector search, structural expansion and lexical re-rank."""

from __future__ import annotations

import time
from dataclasses import dataclass

import structlog

from code_memory.core.interfaces.events import EventBus
from code_memory.core.interfaces.repositories import EmbeddingRepository
from code_memory.core.models.embedding import EmbeddingKind, EmbeddingRecord
from code_memory.core.models.search import MatchSource, ScoredRecord, SearchFilters
from code_memory.observability.events import RetrievalCompleted
from code_memory.retrieval.config import RetrievalConfig
from code_memory.retrieval.scoring import (
    ImplementationDiversifier,
    clamp_score,
    entity_boost,
    lexical_overlap_boost,
    tokenize_query,
)

logger = structlog.get_logger(__name__)


@dataclass
class _Candidate:
    record: EmbeddingRecord
    similarity: float
    source: MatchSource
    position: int


class HybridRetriever:
    """Ranks stored records against a query vector and query text.

    Pipeline:
    1. Oversampled similarity search (``top_k * oversampling_multiplier``).
    2. Metadata fetch and exact-match filtering; dropped candidates are not
       replaced.
    3. Parent/child expansion: summary hits pull in their children, which
       inherit the summary's similarity.
    4. Deduplication by id keeping the highest similarity.
    5. Re-rank: entity boost, lexical overlap, implementation
       diversification, then clamp to ``[0, 1]``.
    6. Stable sort (first-seen wins ties) and truncation to ``top_k``.
    """

    def __init__(
        self,
        repository: EmbeddingRepository,
        config: RetrievalConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._repository = repository
        self._config = config or RetrievalConfig()
        self._event_bus = event_bus
        self._diversifier = ImplementationDiversifier(self._config)

    @property
    def dimensions(self) -> int:
        return self._repository.dimensions

    async def retrieve(
        self,
        query_vector: list[float],
        query_text: str,
        top_k: int = 10,
        filters: SearchFilters | None = None,
    ) -> list[ScoredRecord]:
        started = time.perf_counter()
        filters = filters or SearchFilters()
        log = logger.bind(top_k=top_k, dimensions=len(query_vector))

        if top_k <= 0 or not query_vector:
            return []

        # 1. Similarity search
        limit = top_k * self._config.oversampling_multiplier
        hits = await self._repository.search_vectors(query_vector, limit)
        if not hits:
            log.debug("retrieval.no_candidates")
            return []

        # 2. Metadata + filters
        records = {r.id: r for r in await self._repository.get_by_ids([h[0] for h in hits])}
        candidates: dict[str, _Candidate] = {}
        for record_id, similarity in hits:
            record = records.get(record_id)
            if record is None or not self._accepts(record, filters, query_vector):
                continue
            self._merge(candidates, record, similarity, MatchSource.DIRECT)
        candidate_count = len(candidates)

        # 3. Parent/child expansion
        expanded = await self._expand(candidates, filters, query_vector)

        # 4-6. Re-rank, sort, truncate
        results = self._rank(list(candidates.values()), query_text, top_k)

        duration_ms = (time.perf_counter() - started) * 1000
        log.info(
            "retrieval.completed",
            hits=len(hits),
            candidates=candidate_count,
            expanded=expanded,
            results=len(results),
            duration_ms=round(duration_ms, 2),
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                RetrievalCompleted(
                    top_k=top_k,
                    candidate_count=candidate_count,
                    expanded_count=expanded,
                    result_count=len(results),
                    duration_ms=duration_ms,
                )
            )
        return results

    @staticmethod
    def _accepts(
        record: EmbeddingRecord,
        filters: SearchFilters,
        query_vector: list[float],
    ) -> bool:
        if record.vector_dimensions != len(query_vector):
            return False
        return filters.matches(record)

    @staticmethod
    def _merge(
        candidates: dict[str, _Candidate],
        record: EmbeddingRecord,
        similarity: float,
        source: MatchSource,
    ) -> bool:
        """Add or update a candidate, keeping the max score. True if new."""
        existing = candidates.get(record.id)
        if existing is None:
            candidates[record.id] = _Candidate(record, similarity, source, len(candidates))
            return True
        if similarity > existing.similarity:
            existing.similarity = similarity
        return False

    async def _expand(
        self,
        candidates: dict[str, _Candidate],
        filters: SearchFilters,
        query_vector: list[float],
    ) -> int:
        summary_scores = {
            c.record.id: c.similarity
            for c in candidates.values()
            if c.record.kind == EmbeddingKind.SUMMARY
        }
        noted_parents = [
            c.record.parent_id
            for c in candidates.values()
            if c.record.kind == EmbeddingKind.CHUNK
            and c.record.parent_id is not None
            and c.record.parent_id not in summary_scores
        ]

        parents = list(summary_scores)
        if self._config.expand_noted_parents:
            parents.extend(dict.fromkeys(noted_parents))
        if not parents:
            return 0

        added = 0
        for child in await self._repository.children_of(parents):
            if child.parent_id is None or not self._accepts(child, filters, query_vector):
                continue
            score = summary_scores.get(child.parent_id, self._config.parent_default_score)
            if self._merge(candidates, child, score, MatchSource.EXPANSION):
                added += 1
        return added

    def _rank(
        self,
        candidates: list[_Candidate],
        query_text: str,
        top_k: int,
    ) -> list[ScoredRecord]:
        query_tokens = tokenize_query(query_text, self._config.min_query_token_length)
        diversification = self._diversifier.boosts([c.record for c in candidates], top_k)

        scored: list[tuple[float, int, _Candidate]] = []
        for candidate in candidates:
            record = candidate.record
            score = candidate.similarity
            score += entity_boost(record, query_text, self._config.entity_name_boost)
            score += lexical_overlap_boost(
                record, query_tokens, self._config.lexical_overlap_weight
            )
            score += diversification.get(record.id, 0.0)
            scored.append((clamp_score(score), candidate.position, candidate))

        scored.sort(key=lambda item: (-item[0], item[1]))

        return [
            ScoredRecord(
                record=candidate.record,
                score=score,
                similarity=clamp_score(candidate.similarity),
                match_source=candidate.source,
            )
            for score, _, candidate in scored[:top_k]
        ]
