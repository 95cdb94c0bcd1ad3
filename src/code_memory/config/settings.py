"""Application settings using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from code_memory.embedding.config import (
    BackendConfig,
    EmbeddingConfig,
    InvokerConfig,
    LoadBalancingStrategy,
    RoutingConfig,
)
from code_memory.repositories.config import StorageConfig
from code_memory.retrieval.config import RetrievalConfig


def _default_backends() -> list[BackendConfig]:
    return [
        BackendConfig(
            name="gemini",
            provider="openai",
            model="gemini-embedding-001",
            base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
            api_key_env="GEMINI_API_KEY",
            priority=1,
        ),
        BackendConfig(
            name="codestral",
            provider="openai",
            model="codestral-embed",
            base_url="https://api.mistral.ai/v1",
            api_key_env="MISTRAL_API_KEY",
            priority=2,
        ),
    ]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    # Storage
    database_path: str = "code_memory.db"
    vector_index: str = "sqlite_vec"
    storage_max_attempts: int = 3
    storage_retry_delay_seconds: float = 1.0

    # Embedding
    embedding_backends: list[BackendConfig] = Field(default_factory=_default_backends)
    embedding_strategy: LoadBalancingStrategy = LoadBalancingStrategy.CONTENT_AWARE
    embedding_target_dimension: int = 3072
    embedding_max_concurrent_backends: int = 2
    embedding_max_batch_size: int = 100
    embedding_max_tokens_per_batch: int = 20000
    embedding_retry_delay_seconds: float = 1.0
    routing_code_backend: str | None = "codestral"
    routing_text_backend: str | None = "gemini"
    routing_rebalance_workload: bool = False

    # Retrieval
    retrieval_oversampling_multiplier: int = 5
    retrieval_parent_default_score: float = 0.5
    retrieval_entity_name_boost: float = 0.15
    retrieval_lexical_overlap_weight: float = 0.1
    retrieval_diversification_threshold: float = 0.4
    retrieval_implementation_boost: float = 0.1
    retrieval_large_content_threshold: int = 800
    retrieval_large_content_boost: float = 0.2

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    def embedding_config(self) -> EmbeddingConfig:
        return EmbeddingConfig(
            backends=self.embedding_backends,
            strategy=self.embedding_strategy,
            target_dimension=self.embedding_target_dimension,
            max_concurrent_backends=self.embedding_max_concurrent_backends,
            max_batch_size=self.embedding_max_batch_size,
            max_tokens_per_batch=self.embedding_max_tokens_per_batch,
            routing=RoutingConfig(
                code_backend=self.routing_code_backend,
                text_backend=self.routing_text_backend,
                rebalance_workload=self.routing_rebalance_workload,
            ),
            invoker=InvokerConfig(base_delay_seconds=self.embedding_retry_delay_seconds),
        )

    def storage_config(self) -> StorageConfig:
        return StorageConfig(
            database_path=self.database_path,
            vector_index=self.vector_index,
            dimensions=self.embedding_target_dimension,
            max_attempts=self.storage_max_attempts,
            retry_base_delay_seconds=self.storage_retry_delay_seconds,
        )

    def retrieval_config(self) -> RetrievalConfig:
        return RetrievalConfig(
            oversampling_multiplier=self.retrieval_oversampling_multiplier,
            parent_default_score=self.retrieval_parent_default_score,
            entity_name_boost=self.retrieval_entity_name_boost,
            lexical_overlap_weight=self.retrieval_lexical_overlap_weight,
            diversification_threshold=self.retrieval_diversification_threshold,
            implementation_boost=self.retrieval_implementation_boost,
            large_content_threshold=self.retrieval_large_content_threshold,
            large_content_boost=self.retrieval_large_content_boost,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
