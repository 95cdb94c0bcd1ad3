"""Re-ranking adjustments for hybrid retrieval."""

from __future__ import annotations

import math
import re

from code_memory.core.models.embedding import EmbeddingRecord
from code_memory.retrieval.config import RetrievalConfig


def tokenize_query(query_text: str, min_length: int = 3) -> set[str]:
    """Lowercased whitespace tokens of at least *min_length* characters."""
    return {t for t in query_text.lower().split() if len(t) >= min_length}


def entity_boost(record: EmbeddingRecord, query_text: str, boost: float) -> float:
    if record.entity_name and record.entity_name.lower() in query_text.lower():
        return boost
    return 0.0


def lexical_overlap_boost(
    record: EmbeddingRecord,
    query_tokens: set[str],
    weight: float,
) -> float:
    if not query_tokens or not record.source_text:
        return 0.0
    text_tokens = set(record.source_text.lower().split())
    overlap = len(query_tokens & text_tokens)
    return (overlap / len(query_tokens)) * weight


def is_constant_entity(entity_name: str | None) -> bool:
    """Constant-like names: ``ALL_CAPS_WITH_UNDERSCORES`` or prompt text holders."""
    if not entity_name:
        return False
    name = entity_name.strip()
    if not name:
        return False
    all_caps = name == name.upper()
    return (all_caps and "_" in name) or "prompt" in name.lower()


class ImplementationDiversifier:
    """Boosts declaration code when too little of it survived ranking.

    Records whose text matches the implementation pattern (and whose entity
    is not constant-like) are counted. When fewer than
    ``floor(top_k * diversification_threshold)`` match, each of them gets
    ``implementation_boost`` plus ``large_content_boost`` if its text is
    longer than ``large_content_threshold``.
    """

    def __init__(self, config: RetrievalConfig) -> None:
        self._config = config
        self._pattern = re.compile(config.implementation_pattern, re.IGNORECASE)

    def is_implementation(self, record: EmbeddingRecord) -> bool:
        if is_constant_entity(record.entity_name):
            return False
        return bool(self._pattern.search(record.source_text or ""))

    def boosts(self, records: list[EmbeddingRecord], top_k: int) -> dict[str, float]:
        """Return the extra score for each boosted record id."""
        matching = [r for r in records if self.is_implementation(r)]
        quota = math.floor(top_k * self._config.diversification_threshold)
        if len(matching) >= quota:
            return {}

        boosts: dict[str, float] = {}
        for record in matching:
            extra = self._config.implementation_boost
            if len(record.source_text) > self._config.large_content_threshold:
                extra += self._config.large_content_boost
            boosts[record.id] = extra
        return boosts


def clamp_score(score: float) -> float:
    return min(1.0, max(0.0, score))
