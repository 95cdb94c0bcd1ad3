"""Single-backend invocation with rate-limit rotation and backoff."""

from __future__ import annotations

import asyncio
import time

import structlog

from code_memory.core.exceptions import BackendInvocationError
from code_memory.core.interfaces.events import EventBus
from code_memory.embedding.base import EmbeddingBackend
from code_memory.embedding.config import InvokerConfig
from code_memory.embedding.credentials import CredentialPool
from code_memory.observability.events import (
    BackendInvoked,
    BackendRetryScheduled,
    CredentialRotated,
)

logger = structlog.get_logger(__name__)

_RATE_LIMIT_MARKERS = ("quota", "rate limit", "too many requests")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Provider-agnostic rate-limit predicate.

    True for an HTTP 429 status (``status_code`` or ``status`` attribute)
    or an error message mentioning quota or rate limiting.
    """
    for attr in ("status_code", "status"):
        if getattr(exc, attr, None) == 429:
            return True
    message = str(exc).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


class BackendInvoker:
    """Calls one backend, rotating credentials when it is rate limited.

    The number of attempts is capped at the credential pool size (at least
    one). Timeouts are retried with backoff on the same credential; any
    other error is raised at once as ``BackendInvocationError``.
    """

    def __init__(
        self,
        backend: EmbeddingBackend,
        credentials: CredentialPool | None = None,
        config: InvokerConfig | None = None,
        timeout_seconds: float | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._backend = backend
        self._credentials = credentials or CredentialPool()
        self._config = config or InvokerConfig()
        self._timeout = timeout_seconds
        self._event_bus = event_bus

    @property
    def backend(self) -> EmbeddingBackend:
        return self._backend

    @property
    def credentials(self) -> CredentialPool:
        return self._credentials

    @property
    def max_attempts(self) -> int:
        return max(1, self._credentials.size)

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retrying after failed attempt number *attempt* (1-based)."""
        delay = self._config.base_delay_seconds * (2 ** (attempt - 1))
        return min(delay, self._config.max_delay_seconds)

    async def invoke(
        self,
        texts: list[str],
        request_id: str = "",
    ) -> list[list[float] | None]:
        """Embed *texts* with the wrapped backend."""
        name = self._backend.name
        log = logger.bind(backend=name, request_id=request_id, items=len(texts))
        started = time.perf_counter()

        attempt = 1
        while True:
            try:
                vectors = await self._call(texts)
            except asyncio.TimeoutError as exc:
                error = BackendInvocationError(
                    f"Backend {name} timed out after {self._timeout}s",
                    backend=name,
                    details={"attempt": attempt},
                )
                if attempt >= self.max_attempts:
                    self._publish_invoked(request_id, texts, started, error)
                    raise error from exc
                await self._wait_before_retry(attempt, "timeout", log)
            except BackendInvocationError as exc:
                self._publish_invoked(request_id, texts, started, exc)
                raise
            except Exception as exc:
                if not is_rate_limit_error(exc):
                    error = BackendInvocationError(
                        f"Backend {name} failed: {exc}",
                        backend=name,
                        status_code=getattr(exc, "status_code", None),
                        details={"attempt": attempt, "error_type": type(exc).__name__},
                    )
                    log.warning("invoker.call.failed", error=str(exc))
                    self._publish_invoked(request_id, texts, started, error)
                    raise error from exc

                if attempt >= self.max_attempts:
                    error = BackendInvocationError(
                        f"Backend {name} rate limited on all {self.max_attempts} credentials",
                        backend=name,
                        rate_limited=True,
                        status_code=getattr(exc, "status_code", None),
                        details={"attempts": attempt},
                    )
                    log.warning("invoker.rate_limit.exhausted", attempts=attempt)
                    self._publish_invoked(request_id, texts, started, error)
                    raise error from exc

                self._rotate_credential(log)
                await self._wait_before_retry(attempt, "rate_limit", log)
            else:
                if len(vectors) != len(texts):
                    error = BackendInvocationError(
                        f"Backend {name} returned {len(vectors)} vectors for {len(texts)} texts",
                        backend=name,
                    )
                    self._publish_invoked(request_id, texts, started, error)
                    raise error
                self._publish_invoked(request_id, texts, started, None)
                return vectors
            attempt += 1

    async def _call(self, texts: list[str]) -> list[list[float] | None]:
        call = self._backend.embed(texts, self._credentials.current())
        if self._timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self._timeout)

    def _rotate_credential(self, log: structlog.stdlib.BoundLogger) -> None:
        if self._credentials.size < 2:
            return
        self._credentials.rotate()
        log.info(
            "invoker.credential.rotated",
            position=self._credentials.position,
            pool_size=self._credentials.size,
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                CredentialRotated(
                    backend=self._backend.name,
                    pool_size=self._credentials.size,
                    position=self._credentials.position,
                )
            )

    async def _wait_before_retry(
        self,
        attempt: int,
        reason: str,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        delay = self.backoff_delay(attempt)
        log.info("invoker.retry.scheduled", attempt=attempt, delay=delay, reason=reason)
        if self._event_bus is not None:
            self._event_bus.publish(
                BackendRetryScheduled(
                    backend=self._backend.name,
                    attempt=attempt,
                    delay_seconds=delay,
                    reason=reason,
                )
            )
        await asyncio.sleep(delay)

    def _publish_invoked(
        self,
        request_id: str,
        texts: list[str],
        started: float,
        error: BackendInvocationError | None,
    ) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(
            BackendInvoked(
                backend=self._backend.name,
                request_id=request_id,
                item_count=len(texts),
                success=error is None,
                duration_ms=(time.perf_counter() - started) * 1000,
                error=None if error is None else error.message,
            )
        )
