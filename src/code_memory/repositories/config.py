"""Storage configuration."""

from pydantic import BaseModel, ConfigDict, Field


class StorageConfig(BaseModel):
    """Configuration for the SQLite vector/metadata store."""

    model_config = ConfigDict(frozen=True)

    database_path: str = Field(default="code_memory.db", description="SQLite file or :memory:")
    vector_index: str = Field(default="sqlite_vec", description="sqlite_vec or brute_force")
    dimensions: int = Field(default=3072, gt=0)

    # Retry policy for transient failures
    max_attempts: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=1.0, ge=0)
    busy_timeout_ms: int = Field(default=5000, ge=0)
