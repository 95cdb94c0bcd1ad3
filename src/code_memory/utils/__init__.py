"""Utility functions for code-memory."""

from code_memory.utils.hashing import compute_content_hash, make_record_id
from code_memory.utils.tokenization import estimate_tokens

__all__ = [
    "compute_content_hash",
    "make_record_id",
    "estimate_tokens",
]
