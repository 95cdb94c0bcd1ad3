"""Embedding configuration."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LoadBalancingStrategy(str, Enum):
    """How a batch is spread across the enabled backends."""

    CONCURRENT = "concurrent"
    ROUND_ROBIN = "round_robin"
    FAILOVER = "failover"
    CONTENT_AWARE = "content_aware"


class BackendConfig(BaseModel):
    """One embedding backend as seen by the orchestrator."""

    model_config = ConfigDict(frozen=True)

    name: str
    provider: str = Field(default="openai", description="Backend provider (openai, local)")
    model: str = "text-embedding-3-large"
    enabled: bool = True
    priority: int = Field(default=1, description="Lower values are tried first on failover")
    target_dimension: int | None = Field(
        default=None, gt=0, description="Overrides EmbeddingConfig.target_dimension"
    )

    # Remote settings
    base_url: str | None = None
    api_key_env: str | None = Field(
        default=None, description="Env var prefix holding the credential pool (KEY, KEY2, ...)"
    )
    request_dimensions: int | None = Field(
        default=None, description="Ask the provider for this many dimensions natively"
    )
    timeout_seconds: float = Field(default=30.0, gt=0)

    # Local model settings
    local_model_path: str | None = None


class RoutingConfig(BaseModel):
    """Tunables of the content-aware classifier."""

    model_config = ConfigDict(frozen=True)

    code_backend: str | None = Field(default=None, description="Backend for code-like text")
    text_backend: str | None = Field(
        default=None, description="Backend for natural-language text"
    )
    code_pattern: str = (
        r"\b(?:function|class|struct|interface|def|fn|const|let|var|if|for|while"
        r"|return|import|export)\b"
    )
    natural_language_pattern: str = r"\b(?:the|and|or|but|in|on|at|to|for|of|with|by)\b"
    code_match_threshold: int = Field(
        default=2, ge=0, description="Code-like only when code matches exceed this"
    )
    natural_language_match_threshold: int = Field(
        default=3, ge=0, description="Natural language when matches exceed this"
    )
    comment_prefixes: tuple[str, ...] = ("//", "/*", "*", "#")

    # Workload rebalancing between the two classes
    rebalance_workload: bool = False
    rebalance_threshold: float = Field(default=0.8, gt=0, le=1)
    rebalance_target: float = Field(default=0.7, gt=0, le=1)


class InvokerConfig(BaseModel):
    """Retry behaviour of a single backend invocation."""

    model_config = ConfigDict(frozen=True)

    base_delay_seconds: float = Field(default=1.0, ge=0)
    max_delay_seconds: float = Field(default=30.0, ge=0)


class EmbeddingConfig(BaseModel):
    """Configuration for embedding generation."""

    model_config = ConfigDict(frozen=True)

    backends: list[BackendConfig] = Field(default_factory=list)
    strategy: LoadBalancingStrategy = LoadBalancingStrategy.FAILOVER
    target_dimension: int = Field(default=3072, gt=0)
    max_concurrent_backends: int = Field(default=2, ge=1)

    # Batch settings
    max_batch_size: int = Field(default=100, ge=1, le=2048)
    max_tokens_per_batch: int = Field(default=20000, ge=1)

    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    invoker: InvokerConfig = Field(default_factory=InvokerConfig)

    @model_validator(mode="after")
    def _check_unique_names(self) -> "EmbeddingConfig":
        names = [b.name for b in self.backends]
        if len(names) != len(set(names)):
            raise ValueError("backend names must be unique")
        return self

    @property
    def enabled_backends(self) -> list[BackendConfig]:
        return [b for b in self.backends if b.enabled]

    def dimension_for(self, backend: BackendConfig) -> int:
        return backend.target_dimension or self.target_dimension
