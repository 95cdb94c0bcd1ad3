"""Content-aware routing of texts to designated backends."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum

from code_memory.embedding.config import RoutingConfig


class ContentClass(str, Enum):
    """Coarse content label used to pick a backend."""

    CODE = "code"
    NATURAL_LANGUAGE = "natural_language"


class ContentClassifier:
    """Cheap regex heuristic separating code-like text from prose.

    A text is code-like when it has more than ``code_match_threshold``
    declaration/keyword hits, at most ``natural_language_match_threshold``
    prose function-word hits, and does not start with a comment prefix.
    """

    def __init__(self, config: RoutingConfig | None = None) -> None:
        self._config = config or RoutingConfig()
        self._code_re = re.compile(self._config.code_pattern, re.IGNORECASE)
        self._prose_re = re.compile(self._config.natural_language_pattern, re.IGNORECASE)

    def classify(self, text: str) -> ContentClass:
        stripped = text.strip()
        if stripped.startswith(self._config.comment_prefixes):
            return ContentClass.NATURAL_LANGUAGE

        code_hits = len(self._code_re.findall(text))
        prose_hits = len(self._prose_re.findall(text))
        has_code = code_hits > self._config.code_match_threshold
        has_prose = prose_hits > self._config.natural_language_match_threshold
        if has_code and not has_prose:
            return ContentClass.CODE
        return ContentClass.NATURAL_LANGUAGE


@dataclass
class RoutingPlan:
    """Original indices of the texts assigned to each content class."""

    assignments: dict[ContentClass, list[int]] = field(
        default_factory=lambda: {c: [] for c in ContentClass}
    )

    def indices(self, content_class: ContentClass) -> list[int]:
        return self.assignments[content_class]

    @property
    def total(self) -> int:
        return sum(len(v) for v in self.assignments.values())

    def non_empty(self) -> list[tuple[ContentClass, list[int]]]:
        return [(c, idx) for c, idx in self.assignments.items() if idx]


def build_plan(texts: list[str], classifier: ContentClassifier) -> RoutingPlan:
    plan = RoutingPlan()
    for index, text in enumerate(texts):
        plan.assignments[classifier.classify(text)].append(index)
    return plan


def rebalance(plan: RoutingPlan, threshold: float = 0.8, target: float = 0.7) -> RoutingPlan:
    """Move work off a class holding more than *threshold* of the texts.

    Only applies when the crowded class has more than four texts. Items are
    moved from its tail until it holds roughly *target* of the total.
    """
    total = plan.total
    if total == 0:
        return plan

    code = list(plan.indices(ContentClass.CODE))
    prose = list(plan.indices(ContentClass.NATURAL_LANGUAGE))

    for crowded, other in ((prose, code), (code, prose)):
        if len(crowded) / total > threshold and len(crowded) > 4:
            to_move = math.floor(len(crowded) - total * target)
            for _ in range(max(0, to_move)):
                other.append(crowded.pop())

    return RoutingPlan(
        assignments={
            ContentClass.CODE: sorted(code),
            ContentClass.NATURAL_LANGUAGE: sorted(prose),
        }
    )
