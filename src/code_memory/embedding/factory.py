"""Factory for creating embedding backends and the orchestrator."""

from collections.abc import Mapping

from code_memory.core.exceptions import ConfigurationError
from code_memory.core.interfaces.events import EventBus
from code_memory.embedding.base import EmbeddingBackend
from code_memory.embedding.config import BackendConfig, EmbeddingConfig
from code_memory.embedding.credentials import CredentialPool
from code_memory.embedding.invoker import BackendInvoker
from code_memory.embedding.orchestrator import EmbeddingOrchestrator


class EmbeddingBackendFactory:
    """Factory for creating embedding backends.

    Creates the appropriate backend implementation for each configured
    backend and wires it into an invoker with its credential pool.
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        event_bus: EventBus | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config
        self._event_bus = event_bus
        self._environ = environ

    def create_backend(self, backend: BackendConfig) -> EmbeddingBackend:
        """Create a backend based on its provider."""
        provider = backend.provider.lower()

        if provider == "openai":
            from code_memory.embedding.providers.openai import OpenAIEmbeddingBackend

            return OpenAIEmbeddingBackend(
                name=backend.name,
                model=backend.model,
                base_url=backend.base_url,
                dimensions=backend.request_dimensions,
                timeout_seconds=backend.timeout_seconds,
            )
        elif provider == "local":
            from code_memory.embedding.providers.local import SentenceTransformerBackend

            return SentenceTransformerBackend(
                name=backend.name,
                model_name=backend.model,
                model_path=backend.local_model_path,
            )
        else:
            raise ConfigurationError(
                f"Unknown embedding provider: {provider}",
                details={"backend": backend.name},
            )

    def create_credentials(self, backend: BackendConfig) -> CredentialPool:
        if backend.api_key_env is None:
            return CredentialPool()
        return CredentialPool.from_env(backend.api_key_env, self._environ)

    def create_invoker(self, backend: BackendConfig) -> BackendInvoker:
        return BackendInvoker(
            backend=self.create_backend(backend),
            credentials=self.create_credentials(backend),
            config=self._config.invoker,
            timeout_seconds=backend.timeout_seconds,
            event_bus=self._event_bus,
        )

    def create_orchestrator(self) -> EmbeddingOrchestrator:
        """Create an orchestrator over every enabled backend."""
        invokers = {b.name: self.create_invoker(b) for b in self._config.enabled_backends}
        return EmbeddingOrchestrator(self._config, invokers, event_bus=self._event_bus)
