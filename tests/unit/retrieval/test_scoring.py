"""Tests for re-ranking helpers."""

import pytest

from code_memory.retrieval.config import RetrievalConfig
from code_memory.retrieval.scoring import (
    ImplementationDiversifier,
    clamp_score,
    entity_boost,
    is_constant_entity,
    lexical_overlap_boost,
    tokenize_query,
)

from conftest import make_record


@pytest.mark.unit
class TestLexicalSignals:
    """Tests for entity and token overlap boosts."""

    def test_tokenize_drops_short_tokens(self) -> None:
        assert tokenize_query("Where is the Parser of it") == {"where", "the", "parser"}

    def test_entity_boost_is_case_insensitive_substring(self) -> None:
        record = make_record("x", entity_name="parseConfig")

        assert entity_boost(record, "where is PARSECONFIG used", 0.15) == 0.15
        assert entity_boost(record, "unrelated", 0.15) == 0.0
        assert entity_boost(make_record("y"), "anything", 0.15) == 0.0

    def test_lexical_overlap_fraction(self) -> None:
        record = make_record("the parser reads tokens")
        tokens = tokenize_query("parser tokens lexer writer")

        assert lexical_overlap_boost(record, tokens, 0.1) == pytest.approx(0.05)
        assert lexical_overlap_boost(record, set(), 0.1) == 0.0

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("MAX_RETRIES", True),
            ("SYSTEM_PROMPT", True),
            ("reviewPrompt", True),
            ("HTTP", False),
            ("parseConfig", False),
            (None, False),
            ("", False),
        ],
    )
    def test_constant_entities(self, name, expected) -> None:
        assert is_constant_entity(name) is expected

    def test_clamp(self) -> None:
        assert clamp_score(1.4) == 1.0
        assert clamp_score(-0.2) == 0.0
        assert clamp_score(0.3) == 0.3


@pytest.mark.unit
class TestImplementationDiversifier:
    """Tests for implementation diversification."""

    def test_recognises_declarations(self) -> None:
        diversifier = ImplementationDiversifier(RetrievalConfig())

        assert diversifier.is_implementation(make_record("class Parser {}"))
        assert diversifier.is_implementation(make_record("def run(self):"))
        assert diversifier.is_implementation(make_record("public handle(req) {"))
        assert not diversifier.is_implementation(make_record("just some notes"))
        assert not diversifier.is_implementation(
            make_record("function build() {}", entity_name="BUILD_PROMPT")
        )

    def test_boosts_when_below_quota(self) -> None:
        diversifier = ImplementationDiversifier(RetrievalConfig())
        small = make_record("function a() {}")
        large = make_record("function b() {}" + " x" * 500)
        prose = make_record("notes about the design")

        # floor(5 * 0.4) == 2 and only two match, so nothing is boosted
        assert diversifier.boosts([small, large, prose], top_k=5) == {}

        boosts = diversifier.boosts([small, large, prose], top_k=10)

        assert boosts[small.id] == pytest.approx(0.1)
        assert boosts[large.id] == pytest.approx(0.3)
        assert prose.id not in boosts

    def test_no_matches_no_boosts(self) -> None:
        diversifier = ImplementationDiversifier(RetrievalConfig())

        assert diversifier.boosts([make_record("plain words")], top_k=10) == {}
