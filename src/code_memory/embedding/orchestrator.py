"""Multi-backend embedding orchestration.

The orchestrator spreads a batch of texts over the enabled backends using
one of four strategies and reassembles the per-item results in input
order. Backend failures become ``None`` items except where a strategy has
no remaining option (race with every backend failed, failover with the
last backend failed).
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from code_memory.core.exceptions import BackendInvocationError, ConfigurationError
from code_memory.core.interfaces.events import EventBus
from code_memory.core.models.embedding import EmbeddingBatchResult, EmbeddingVector
from code_memory.embedding.config import BackendConfig, EmbeddingConfig, LoadBalancingStrategy
from code_memory.embedding.invoker import BackendInvoker
from code_memory.embedding.projection import project_vector
from code_memory.embedding.routing import (
    ContentClass,
    ContentClassifier,
    build_plan,
    rebalance,
)
from code_memory.observability.events import StrategyCompleted
from code_memory.utils.tokenization import estimate_tokens

logger = structlog.get_logger(__name__)

_Slot = EmbeddingVector | None


@dataclass
class BackendStats:
    """Invocation counters for one backend."""

    requests: int = 0
    successes: int = 0
    failures: int = 0

    @property
    def success_rate(self) -> float:
        if self.requests == 0:
            return 0.0
        return self.successes / self.requests

    def as_dict(self) -> dict[str, float]:
        return {
            "requests": self.requests,
            "successes": self.successes,
            "failures": self.failures,
            "success_rate": self.success_rate,
        }


@dataclass
class _Assembly:
    """Per-request result slots, filled once per backend slice."""

    slots: list[_Slot]
    fallback_used: bool = False

    def place(self, indices: list[int], vectors: list[_Slot]) -> None:
        for index, vector in zip(indices, vectors, strict=True):
            self.slots[index] = vector


class EmbeddingOrchestrator:
    """Generates embeddings over several independently failing backends."""

    def __init__(
        self,
        config: EmbeddingConfig,
        invokers: dict[str, BackendInvoker],
        event_bus: EventBus | None = None,
    ) -> None:
        self._config = config
        self._invokers = invokers
        self._event_bus = event_bus
        self._strategy = config.strategy
        self._classifier = ContentClassifier(config.routing)
        self._semaphore = asyncio.Semaphore(config.max_concurrent_backends)
        self._stats: dict[str, BackendStats] = {b.name: BackendStats() for b in config.backends}

        missing = [b.name for b in config.enabled_backends if b.name not in invokers]
        if missing:
            raise ConfigurationError(
                "Enabled backends have no invoker",
                details={"backends": missing},
            )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def strategy(self) -> LoadBalancingStrategy:
        return self._strategy

    @property
    def target_dimension(self) -> int:
        return self._config.target_dimension

    def set_strategy(self, strategy: LoadBalancingStrategy | str) -> None:
        self._strategy = LoadBalancingStrategy(strategy)
        logger.info("orchestrator.strategy.changed", strategy=self._strategy.value)

    def enabled_backends(self) -> list[BackendConfig]:
        return self._config.enabled_backends

    def output_dimensions(self) -> dict[str, int]:
        """Vector length each enabled backend is projected to."""
        return {b.name: self._config.dimension_for(b) for b in self._config.enabled_backends}

    def ensure_dimensions(self, dimensions: int) -> None:
        """Raise ``ConfigurationError`` unless every enabled backend yields *dimensions*."""
        mismatched = {
            name: size for name, size in self.output_dimensions().items() if size != dimensions
        }
        if mismatched:
            raise ConfigurationError(
                "Backend vector dimensions do not match the store",
                details={"store": dimensions, "backends": mismatched},
            )

    def backend_stats(self) -> dict[str, BackendStats]:
        return dict(self._stats)

    def is_ready(self) -> bool:
        return bool(self._config.enabled_backends)

    def describe(self) -> dict:
        return {
            "strategy": self._strategy.value,
            "target_dimension": self._config.target_dimension,
            "backends": [
                {
                    "name": b.name,
                    "model": b.model,
                    "priority": b.priority,
                    "target_dimension": self._config.dimension_for(b),
                    "stats": self._stats[b.name].as_dict(),
                }
                for b in self._config.enabled_backends
            ],
        }

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(
        self,
        texts: list[str],
        request_id: str | None = None,
    ) -> EmbeddingBatchResult:
        """Embed *texts* with the active strategy.

        ``result.embeddings[i]`` corresponds to ``texts[i]``.
        """
        request_id = request_id or uuid.uuid4().hex
        if not texts:
            return EmbeddingBatchResult.empty(request_id)

        enabled = self._config.enabled_backends
        if not enabled:
            raise ConfigurationError("No enabled embedding backends")

        log = logger.bind(
            request_id=request_id,
            strategy=self._strategy.value,
            texts=len(texts),
        )
        log.debug("orchestrator.generate.started")

        handlers: dict[
            LoadBalancingStrategy,
            Callable[[list[str], list[BackendConfig], str], Awaitable[_Assembly]],
        ] = {
            LoadBalancingStrategy.CONCURRENT: self._race,
            LoadBalancingStrategy.ROUND_ROBIN: self._round_robin,
            LoadBalancingStrategy.FAILOVER: self._failover,
            LoadBalancingStrategy.CONTENT_AWARE: self._content_aware,
        }
        assembly = await handlers[self._strategy](texts, enabled, request_id)

        result = self._build_result(texts, assembly, request_id)
        log.info(
            "orchestrator.generate.completed",
            successes=result.success_count,
            failures=result.failure_count,
            primary=result.primary_backend,
            fallback_used=result.fallback_used,
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                StrategyCompleted(
                    strategy=self._strategy.value,
                    request_id=request_id,
                    success_count=result.success_count,
                    failure_count=result.failure_count,
                    primary_backend=result.primary_backend,
                    fallback_used=result.fallback_used,
                    backend_distribution=dict(result.backend_distribution),
                )
            )
        return result

    async def _invoke(
        self,
        backend: BackendConfig,
        texts: list[str],
        request_id: str,
    ) -> list[_Slot]:
        """Call one backend and convert its output into projected vectors."""
        stats = self._stats.setdefault(backend.name, BackendStats())
        stats.requests += 1
        invoker = self._invokers[backend.name]
        try:
            raw = await invoker.invoke(texts, request_id=request_id)
        except asyncio.CancelledError:
            # Abandoned race entrant: neither a success nor a failure
            stats.requests -= 1
            raise
        except BackendInvocationError:
            stats.failures += 1
            raise
        stats.successes += 1

        target = self._config.dimension_for(backend)
        model = invoker.backend.model_name
        return [
            None
            if vector is None
            else EmbeddingVector(
                vector=project_vector(vector, target),
                dimensions=target,
                model=model,
                backend=backend.name,
            )
            for vector in raw
        ]

    async def _invoke_tolerant(
        self,
        backend: BackendConfig,
        texts: list[str],
        request_id: str,
    ) -> list[_Slot]:
        """Like ``_invoke`` but a failure nulls the slice instead of raising."""
        async with self._semaphore:
            try:
                return await self._invoke(backend, texts, request_id)
            except BackendInvocationError as exc:
                logger.warning(
                    "orchestrator.partition.failed",
                    backend=backend.name,
                    request_id=request_id,
                    items=len(texts),
                    error=exc.message,
                )
                return [None] * len(texts)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _race(
        self,
        texts: list[str],
        enabled: list[BackendConfig],
        request_id: str,
    ) -> _Assembly:
        order = {b.name: position for position, b in enumerate(enabled)}
        tasks = {
            asyncio.create_task(self._invoke(b, texts, request_id)): b for b in enabled
        }
        pending = set(tasks)
        errors: dict[str, str] = {}

        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in sorted(done, key=lambda t: order[tasks[t].name]):
                    backend = tasks[task]
                    exc = task.exception()
                    if exc is not None:
                        errors[backend.name] = str(exc)
                        continue
                    vectors = task.result()
                    if any(v is not None for v in vectors):
                        logger.debug(
                            "orchestrator.race.won",
                            backend=backend.name,
                            request_id=request_id,
                        )
                        return _Assembly(slots=vectors)
                    errors[backend.name] = "no vectors returned"
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        raise BackendInvocationError(
            f"All {len(enabled)} backends failed in concurrent race",
            backend="concurrent",
            details={"errors": errors},
        )

    async def _round_robin(
        self,
        texts: list[str],
        enabled: list[BackendConfig],
        request_id: str,
    ) -> _Assembly:
        partitions: list[list[int]] = [[] for _ in enabled]
        for index in range(len(texts)):
            partitions[index % len(enabled)].append(index)

        jobs = [
            (backend, indices)
            for backend, indices in zip(enabled, partitions, strict=True)
            if indices
        ]
        results = await asyncio.gather(
            *(
                self._invoke_tolerant(backend, [texts[i] for i in indices], request_id)
                for backend, indices in jobs
            )
        )

        assembly = _Assembly(slots=[None] * len(texts))
        for (_, indices), vectors in zip(jobs, results, strict=True):
            assembly.place(indices, vectors)
        return assembly

    async def _failover(
        self,
        texts: list[str],
        enabled: list[BackendConfig],
        request_id: str,
    ) -> _Assembly:
        ordered = sorted(enabled, key=lambda b: b.priority)
        last_error: BackendInvocationError | None = None

        for position, backend in enumerate(ordered):
            log = logger.bind(backend=backend.name, request_id=request_id, position=position)
            try:
                vectors = await self._invoke(backend, texts, request_id)
            except BackendInvocationError as exc:
                log.warning("orchestrator.failover.backend_failed", error=exc.message)
                last_error = exc
                continue

            if any(v is not None for v in vectors):
                if position > 0:
                    log.info("orchestrator.failover.fallback")
                return _Assembly(slots=vectors, fallback_used=position > 0)

            log.warning("orchestrator.failover.no_vectors")
            last_error = BackendInvocationError(
                f"Backend {backend.name} returned no vectors",
                backend=backend.name,
            )

        if last_error is None:
            raise ConfigurationError("No enabled embedding backends")
        raise BackendInvocationError(
            f"All {len(ordered)} backends failed in priority failover",
            backend=ordered[-1].name,
            rate_limited=last_error.rate_limited,
            status_code=last_error.status_code,
            details={"last_error": last_error.message},
        ) from last_error

    async def _content_aware(
        self,
        texts: list[str],
        enabled: list[BackendConfig],
        request_id: str,
    ) -> _Assembly:
        routing = self._config.routing
        plan = build_plan(texts, self._classifier)
        if routing.rebalance_workload:
            plan = rebalance(plan, routing.rebalance_threshold, routing.rebalance_target)

        designated = {
            ContentClass.CODE: routing.code_backend,
            ContentClass.NATURAL_LANGUAGE: routing.text_backend,
        }
        by_name = {b.name: b for b in enabled}
        default = min(enabled, key=lambda b: b.priority)

        assembly = _Assembly(slots=[None] * len(texts))
        jobs: list[tuple[BackendConfig, list[int]]] = []
        for content_class, indices in plan.non_empty():
            backend = by_name.get(designated[content_class] or "")
            if backend is None:
                logger.debug(
                    "orchestrator.routing.substituted",
                    content_class=content_class.value,
                    designated=designated[content_class],
                    backend=default.name,
                )
                backend = default
                if designated[content_class] is not None:
                    assembly.fallback_used = True
            jobs.append((backend, indices))

        logger.debug(
            "orchestrator.routing.plan",
            request_id=request_id,
            distribution={c.value: len(i) for c, i in plan.non_empty()},
        )
        results = await asyncio.gather(
            *(
                self._invoke_tolerant(backend, [texts[i] for i in indices], request_id)
                for backend, indices in jobs
            )
        )
        for (_, indices), vectors in zip(jobs, results, strict=True):
            assembly.place(indices, vectors)
        return assembly

    # ------------------------------------------------------------------
    # Result assembly
    # ------------------------------------------------------------------

    def _build_result(
        self,
        texts: list[str],
        assembly: _Assembly,
        request_id: str,
    ) -> EmbeddingBatchResult:
        distribution: dict[str, int] = {}
        tokens = 0
        for text, vector in zip(texts, assembly.slots, strict=True):
            if vector is None:
                continue
            distribution[vector.backend] = distribution.get(vector.backend, 0) + 1
            tokens += estimate_tokens(text)

        success_count = sum(distribution.values())
        primary = "none"
        if distribution:
            # max() keeps the first backend on ties
            primary = max(distribution, key=lambda name: distribution[name])

        return EmbeddingBatchResult(
            embeddings=assembly.slots,
            tokens_processed=tokens,
            success_count=success_count,
            failure_count=len(texts) - success_count,
            backend_distribution=distribution,
            primary_backend=primary,
            fallback_used=assembly.fallback_used,
            request_id=request_id,
        )
