"""Vector index implementations."""

from code_memory.repositories.vector.brute_force import BruteForceVectorIndex

__all__ = ["BruteForceVectorIndex"]
