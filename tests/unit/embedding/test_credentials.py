"""Tests for credential pools."""

import pytest

from code_memory.embedding.credentials import CredentialPool


@pytest.mark.unit
class TestCredentialPool:
    """Tests for CredentialPool."""

    def test_rotation_wraps_around(self) -> None:
        pool = CredentialPool(["k1", "k2", "k3"])

        assert pool.current() == "k1"
        assert pool.rotate() == "k2"
        assert pool.rotate() == "k3"
        assert pool.rotate() == "k1"
        assert pool.current() == "k1"

    def test_empty_pool(self) -> None:
        pool = CredentialPool()

        assert pool.size == 0
        assert pool.current() is None
        assert pool.rotate() is None

    def test_blank_credentials_are_dropped(self) -> None:
        assert CredentialPool(["k1", "", "k2"]).size == 2

    def test_from_env_reads_numbered_keys(self) -> None:
        env = {
            "GEMINI_API_KEY": "base",
            "GEMINI_API_KEY2": "second",
            "GEMINI_API_KEY3": "third",
            "GEMINI_API_KEY5": "unreachable",
        }
        pool = CredentialPool.from_env("GEMINI_API_KEY", env)

        assert pool.size == 3
        assert [pool.current(), pool.rotate(), pool.rotate()] == ["base", "second", "third"]

    def test_from_env_without_base_key(self) -> None:
        pool = CredentialPool.from_env("KEY", {"KEY2": "only"})

        assert pool.size == 1
        assert pool.current() == "only"

    def test_pools_are_independent(self) -> None:
        a = CredentialPool(["a1", "a2"])
        b = CredentialPool(["b1", "b2"])

        a.rotate()

        assert a.current() == "a2"
        assert b.current() == "b1"
