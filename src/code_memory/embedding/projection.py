"""Projection of vectors onto a configured dimensionality."""

import numpy as np


def project_vector(vector: list[float], target_dimension: int) -> list[float]:
    """Fit *vector* to *target_dimension*.

    Longer vectors are truncated. Shorter vectors are stretched by linear
    interpolation and L2-normalised so cosine similarity stays meaningful.
    """
    if target_dimension <= 0:
        raise ValueError("target_dimension must be positive")

    current = len(vector)
    if current == target_dimension:
        return list(vector)
    if current > target_dimension:
        return list(vector[:target_dimension])
    if current == 0:
        return [0.0] * target_dimension

    source = np.asarray(vector, dtype=np.float64)
    positions = np.linspace(0, current - 1, num=target_dimension)
    stretched = np.interp(positions, np.arange(current), source)

    norm = np.linalg.norm(stretched)
    if norm > 0:
        stretched = stretched / norm
    return stretched.tolist()
