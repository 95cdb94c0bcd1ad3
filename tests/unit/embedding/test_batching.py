"""Tests for the batch partitioner."""

import pytest

from code_memory.embedding.batching import BatchPartitioner


@pytest.mark.unit
class TestBatchPartitioner:
    """Tests for BatchPartitioner."""

    def test_empty_input(self) -> None:
        assert BatchPartitioner().partition([]) == []

    def test_splits_on_item_count(self) -> None:
        partitioner = BatchPartitioner(max_batch_size=2, max_tokens_per_batch=1000)
        batches = partitioner.partition(["a", "b", "c", "d", "e"])

        assert [b.texts for b in batches] == [["a", "b"], ["c", "d"], ["e"]]
        assert [b.original_indices for b in batches] == [[0, 1], [2, 3], [4]]

    def test_splits_on_token_budget(self) -> None:
        # 8 chars -> 2 tokens each
        partitioner = BatchPartitioner(max_batch_size=10, max_tokens_per_batch=5)
        batches = partitioner.partition(["x" * 8, "y" * 8, "z" * 8])

        assert [b.original_indices for b in batches] == [[0, 1], [2]]
        assert all(b.estimated_tokens <= 5 for b in batches)

    def test_oversized_item_gets_its_own_batch(self) -> None:
        partitioner = BatchPartitioner(max_batch_size=10, max_tokens_per_batch=10)
        batches = partitioner.partition(["short", "x" * 400, "tail"])

        assert [b.original_indices for b in batches] == [[0], [1], [2]]
        assert batches[1].estimated_tokens == 100

    def test_every_index_appears_exactly_once_in_order(self) -> None:
        texts = [("t" * (i * 13 % 50 + 1)) for i in range(57)]
        partitioner = BatchPartitioner(max_batch_size=7, max_tokens_per_batch=40)

        flattened = [i for b in partitioner.partition(texts) for i in b.original_indices]

        assert flattened == list(range(len(texts)))

    def test_token_estimate_rounds_up(self) -> None:
        partitioner = BatchPartitioner(max_batch_size=10, max_tokens_per_batch=2)
        # 5 chars -> ceil(5/4) = 2 tokens, so the second text starts a new batch
        batches = partitioner.partition(["abcde", "f"])

        assert [b.original_indices for b in batches] == [[0], [1]]

    def test_rejects_invalid_limits(self) -> None:
        with pytest.raises(ValueError):
            BatchPartitioner(max_batch_size=0)
        with pytest.raises(ValueError):
            BatchPartitioner(max_tokens_per_batch=0)
