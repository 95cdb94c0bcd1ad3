"""Token- and size-bounded batch partitioning."""

from dataclasses import dataclass, field

from code_memory.utils.tokenization import estimate_tokens


@dataclass
class TextBatch:
    """A slice of the input texts together with their original positions."""

    texts: list[str] = field(default_factory=list)
    original_indices: list[int] = field(default_factory=list)
    estimated_tokens: int = 0

    def __len__(self) -> int:
        return len(self.texts)

    def add(self, index: int, text: str, tokens: int) -> None:
        self.texts.append(text)
        self.original_indices.append(index)
        self.estimated_tokens += tokens


class BatchPartitioner:
    """Splits a text list into ordered batches.

    A new batch is started when adding the next text would exceed either
    limit for the current batch and the current batch is not empty. A
    single text larger than ``max_tokens_per_batch`` therefore ends up
    alone in its own batch.
    """

    def __init__(self, max_batch_size: int = 100, max_tokens_per_batch: int = 20000) -> None:
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        if max_tokens_per_batch < 1:
            raise ValueError("max_tokens_per_batch must be at least 1")
        self.max_batch_size = max_batch_size
        self.max_tokens_per_batch = max_tokens_per_batch

    def partition(self, texts: list[str]) -> list[TextBatch]:
        batches: list[TextBatch] = []
        current = TextBatch()

        for index, text in enumerate(texts):
            tokens = estimate_tokens(text)
            full = len(current) >= self.max_batch_size
            over_budget = current.estimated_tokens + tokens > self.max_tokens_per_batch
            if len(current) > 0 and (full or over_budget):
                batches.append(current)
                current = TextBatch()
            current.add(index, text, tokens)

        if len(current) > 0:
            batches.append(current)

        return batches
