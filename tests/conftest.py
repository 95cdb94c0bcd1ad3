"""Shared fixtures: fake embedding backends and a temporary SQLite store."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest
import pytest_asyncio

from code_memory.core.models.embedding import EmbeddingKind, EmbeddingRecord
from code_memory.embedding.base import EmbeddingBackend
from code_memory.embedding.config import BackendConfig, EmbeddingConfig, InvokerConfig
from code_memory.embedding.credentials import CredentialPool
from code_memory.embedding.invoker import BackendInvoker
from code_memory.embedding.orchestrator import EmbeddingOrchestrator
from code_memory.observability import InMemoryEventBus
from code_memory.repositories.config import StorageConfig
from code_memory.repositories.sqlite.repository import SQLiteEmbeddingRepository
from code_memory.repositories.vector.brute_force import BruteForceVectorIndex
from code_memory.utils.hashing import compute_content_hash

DIMS = 4


class FakeBackend(EmbeddingBackend):
    """Scriptable backend for tests.

    ``errors`` is consumed one entry per call; an entry that is an exception
    is raised, ``None`` means the call succeeds.
    """

    def __init__(
        self,
        name: str,
        dims: int = DIMS,
        fail: bool = False,
        delay: float = 0.0,
        errors: list[BaseException | None] | None = None,
        null_items: set[str] | None = None,
        vector_fn: Callable[[str], list[float]] | None = None,
    ) -> None:
        super().__init__(name)
        self.dims = dims
        self.fail = fail
        self.delay = delay
        self.errors = list(errors or [])
        self.null_items = null_items or set()
        self.vector_fn = vector_fn
        self.calls: list[list[str]] = []
        self.credentials_seen: list[str | None] = []

    @property
    def model_name(self) -> str:
        return f"{self.name}-model"

    @property
    def native_dimensions(self) -> int | None:
        return self.dims

    async def embed(
        self,
        texts: list[str],
        credential: str | None = None,
    ) -> list[list[float] | None]:
        self.calls.append(list(texts))
        self.credentials_seen.append(credential)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.errors:
            error = self.errors.pop(0)
            if error is not None:
                raise error
        if self.fail:
            raise RuntimeError(f"{self.name} is down")
        return [None if t in self.null_items else self._vector(t) for t in texts]

    def _vector(self, text: str) -> list[float]:
        if self.vector_fn is not None:
            return self.vector_fn(text)
        return [float(len(text) % 7 + 1)] + [1.0] * (self.dims - 1)

    @property
    def items_received(self) -> int:
        return sum(len(c) for c in self.calls)


def build_orchestrator(
    backends: list[FakeBackend],
    strategy: str = "failover",
    priorities: dict[str, int] | None = None,
    target_dimensions: dict[str, int] | None = None,
    event_bus: InMemoryEventBus | None = None,
    **config_kwargs,
) -> EmbeddingOrchestrator:
    priorities = priorities or {}
    target_dimensions = target_dimensions or {}
    config = EmbeddingConfig(
        backends=[
            BackendConfig(
                name=b.name,
                model=b.model_name,
                priority=priorities.get(b.name, position + 1),
                target_dimension=target_dimensions.get(b.name),
            )
            for position, b in enumerate(backends)
        ],
        strategy=strategy,
        target_dimension=DIMS,
        invoker=InvokerConfig(base_delay_seconds=0.0),
        **config_kwargs,
    )
    invokers = {
        b.name: BackendInvoker(b, CredentialPool(), config.invoker, event_bus=event_bus)
        for b in backends
    }
    return EmbeddingOrchestrator(config, invokers, event_bus=event_bus)


def make_record(
    text: str,
    *,
    owner_id: str = "agent-1",
    file_path: str = "src/a.ts",
    file_hash: str = "file-hash-1",
    entity_name: str | None = None,
    kind: EmbeddingKind = EmbeddingKind.CHUNK,
    parent_id: str | None = None,
    backend: str = "fake",
    model: str = "fake-model",
    content_hash: str | None = None,
    dims: int = DIMS,
) -> EmbeddingRecord:
    return EmbeddingRecord(
        owner_id=owner_id,
        source_text=text,
        entity_name=entity_name,
        backend_name=backend,
        model_name=model,
        vector_dimensions=dims,
        content_hash=content_hash or compute_content_hash(text),
        file_hash=file_hash,
        file_path_relative=file_path,
        kind=kind,
        parent_id=parent_id,
    )


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def storage_config(tmp_path) -> StorageConfig:
    return StorageConfig(
        database_path=str(tmp_path / "memory.db"),
        vector_index="brute_force",
        dimensions=DIMS,
        retry_base_delay_seconds=0.0,
    )


@pytest_asyncio.fixture
async def repository(storage_config, event_bus):
    repo = SQLiteEmbeddingRepository(
        storage_config,
        BruteForceVectorIndex(DIMS),
        event_bus=event_bus,
    )
    await repo.initialize()
    yield repo
    await repo.close()
