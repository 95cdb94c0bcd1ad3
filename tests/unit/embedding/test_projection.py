"""Tests for vector projection."""

import math

import pytest

from code_memory.embedding.projection import project_vector


@pytest.mark.unit
class TestProjectVector:
    """Tests for project_vector."""

    def test_same_dimension_is_unchanged(self) -> None:
        assert project_vector([0.1, 0.2, 0.3], 3) == [0.1, 0.2, 0.3]

    def test_truncates_larger_vectors(self) -> None:
        assert project_vector([1.0, 2.0, 3.0, 4.0], 2) == [1.0, 2.0]

    def test_interpolates_and_normalises_smaller_vectors(self) -> None:
        projected = project_vector([0.0, 3.0], 4)

        assert len(projected) == 4
        assert math.isclose(math.sqrt(sum(v * v for v in projected)), 1.0)
        assert projected == sorted(projected)
        assert projected[0] == 0.0

    def test_empty_vector_becomes_zeros(self) -> None:
        assert project_vector([], 3) == [0.0, 0.0, 0.0]

    def test_rejects_non_positive_target(self) -> None:
        with pytest.raises(ValueError):
            project_vector([1.0], 0)
