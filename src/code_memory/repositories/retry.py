"""Retry policy for transient storage failures."""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from code_memory.core.exceptions import StorageError
from code_memory.core.interfaces.events import EventBus
from code_memory.observability.events import StorageRetryScheduled

logger = structlog.get_logger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (sqlite3.OperationalError,)


async def execute_with_retry(
    operation: str,
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay_seconds: float = 1.0,
    event_bus: EventBus | None = None,
) -> T:
    """Run *func*, retrying transient failures with doubling delays.

    Non-transient ``sqlite3`` errors fail at once. Either way the caller
    sees a ``StorageError`` chained to the last cause.
    """
    log = logger.bind(operation=operation)
    last_error: BaseException | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except TRANSIENT_ERRORS as exc:
            last_error = exc
            if attempt >= max_attempts:
                break
            delay = base_delay_seconds * (2 ** (attempt - 1))
            log.warning(
                "storage.retry.scheduled",
                attempt=attempt,
                max_attempts=max_attempts,
                delay=delay,
                error=str(exc),
            )
            if event_bus is not None:
                event_bus.publish(
                    StorageRetryScheduled(
                        operation=operation,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        delay_seconds=delay,
                        error=str(exc),
                    )
                )
            await asyncio.sleep(delay)
        except sqlite3.Error as exc:
            log.error("storage.operation.failed", error=str(exc))
            raise StorageError(
                f"{operation} failed: {exc}",
                operation=operation,
                attempts=attempt,
            ) from exc

    log.error("storage.retry.exhausted", attempts=max_attempts, error=str(last_error))
    raise StorageError(
        f"{operation} failed after {max_attempts} attempts: {last_error}",
        operation=operation,
        attempts=max_attempts,
        details={"last_error": str(last_error)},
    ) from last_error
