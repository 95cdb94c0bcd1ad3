"""Tests for core domain models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from code_memory.core.models.embedding import (
    ChunkMetadata,
    EmbeddingBatchResult,
    EmbeddingKind,
    EmbeddingRecord,
    FileSummaryMetadata,
    next_ingestion_timestamp,
)
from code_memory.core.models.search import SearchFilters
from code_memory.utils.hashing import compute_content_hash, make_record_id


def _record(**overrides) -> EmbeddingRecord:
    fields = dict(
        owner_id="agent-1",
        source_text="function parse() {}",
        backend_name="gemini",
        model_name="gemini-embedding-001",
        vector_dimensions=4,
        content_hash="h1",
        file_hash="f1",
        file_path_relative="src/parse.ts",
    )
    fields.update(overrides)
    return EmbeddingRecord(**fields)


@pytest.mark.unit
class TestEmbeddingRecord:
    """Tests for EmbeddingRecord model."""

    def test_id_is_content_addressed(self) -> None:
        """Same owner and content give the same id."""
        first = _record()
        second = _record(source_text="different text, same hash")

        assert first.id == second.id
        assert first.id == make_record_id("agent-1", "h1")

    def test_id_ignores_backend(self) -> None:
        base = _record()

        assert _record(backend_name="codestral", model_name="codestral-embed").id == base.id

    def test_id_depends_on_owner_and_content(self) -> None:
        base = _record()

        assert _record(owner_id="agent-2").id != base.id
        assert _record(content_hash="h2").id != base.id

    def test_explicit_id_is_kept(self) -> None:
        assert _record(id="custom").id == "custom"

    def test_summary_cannot_have_parent(self) -> None:
        with pytest.raises(PydanticValidationError):
            _record(kind=EmbeddingKind.SUMMARY, parent_id="x")

    def test_chunk_may_have_parent(self) -> None:
        assert _record(parent_id="summary-id").parent_id == "summary-id"

    def test_dimensions_must_be_positive(self) -> None:
        with pytest.raises(PydanticValidationError):
            _record(vector_dimensions=0)

    def test_created_at_is_strictly_increasing(self) -> None:
        stamps = [next_ingestion_timestamp() for _ in range(100)]

        assert stamps == sorted(set(stamps))

    def test_metadata_discriminated_by_type(self) -> None:
        chunk = _record(metadata={"type": "chunk", "start_line": 3, "end_line": 9})
        summary = _record(
            kind=EmbeddingKind.SUMMARY,
            metadata={"type": "file_summary", "chunk_count": 4},
        )

        assert isinstance(chunk.metadata, ChunkMetadata)
        assert chunk.metadata.start_line == 3
        assert isinstance(summary.metadata, FileSummaryMetadata)
        assert summary.metadata.chunk_count == 4

    def test_unknown_metadata_keys_go_to_extra(self) -> None:
        record = _record(metadata={"type": "chunk", "language": "ts", "visibility": "public"})

        assert record.metadata.language == "ts"
        assert record.metadata.extra == {"visibility": "public"}
        assert record.metadata.version == 1

    def test_metadata_survives_json_round_trip(self) -> None:
        record = _record(metadata=ChunkMetadata(start_line=1, is_implementation=True))

        restored = EmbeddingRecord.model_validate_json(record.model_dump_json())

        assert restored == record


@pytest.mark.unit
class TestSearchFilters:
    """Tests for SearchFilters."""

    def test_empty_filters_match_everything(self) -> None:
        assert SearchFilters().matches(_record())

    def test_each_predicate(self) -> None:
        record = _record()

        assert not SearchFilters(owner_id="other").matches(record)
        assert not SearchFilters(file_paths=["src/other.ts"]).matches(record)
        assert SearchFilters(file_paths=["src/parse.ts"]).matches(record)
        assert not SearchFilters(exclude_kinds=[EmbeddingKind.CHUNK]).matches(record)
        assert not SearchFilters(backend="codestral").matches(record)
        assert not SearchFilters(model="other-model").matches(record)


@pytest.mark.unit
class TestEmbeddingBatchResult:
    """Tests for EmbeddingBatchResult."""

    def test_empty(self) -> None:
        result = EmbeddingBatchResult.empty("req")

        assert result.embeddings == []
        assert result.success_count == 0
        assert result.fallback_used is False


@pytest.mark.unit
class TestHashing:
    """Tests for hashing helpers."""

    def test_content_hash_is_stable(self) -> None:
        assert compute_content_hash("abc") == compute_content_hash("abc")
        assert compute_content_hash("abc") != compute_content_hash("abd")
