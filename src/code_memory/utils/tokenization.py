"""Tokenization utilities."""

import math


def estimate_tokens(text: str) -> int:
    """Estimate the token count of *text* (roughly four characters per token)."""
    return math.ceil(len(text) / 4)
