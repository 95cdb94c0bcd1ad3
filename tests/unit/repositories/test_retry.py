"""Tests for the storage retry policy."""

import sqlite3

import pytest

from code_memory.core.exceptions import StorageError
from code_memory.repositories.retry import execute_with_retry


@pytest.mark.unit
class TestExecuteWithRetry:
    """Tests for execute_with_retry."""

    @pytest.mark.asyncio
    async def test_returns_result_after_transient_failures(self) -> None:
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise sqlite3.OperationalError("database is locked")
            return "ok"

        result = await execute_with_retry("op", flaky, max_attempts=3, base_delay_seconds=0)

        assert result == "ok"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_exhaustion_raises_storage_error(self) -> None:
        async def always_locked():
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(StorageError) as exc_info:
            await execute_with_retry("write", always_locked, max_attempts=2, base_delay_seconds=0)

        assert exc_info.value.attempts == 2
        assert exc_info.value.operation == "write"

    @pytest.mark.asyncio
    async def test_non_transient_sqlite_error_is_not_retried(self) -> None:
        calls = []

        async def corrupt():
            calls.append(1)
            raise sqlite3.DatabaseError("file is not a database")

        with pytest.raises(StorageError):
            await execute_with_retry("read", corrupt, max_attempts=3, base_delay_seconds=0)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self) -> None:
        async def broken():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await execute_with_retry("read", broken, base_delay_seconds=0)
