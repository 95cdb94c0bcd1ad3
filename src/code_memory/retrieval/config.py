"""Retrieval configuration."""

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_IMPLEMENTATION_PATTERN = (
    r"\b(?:class|struct|interface|enum|trait|type)\s+\w+"
    r"|\b(?:function|def|func|fn|method|proc)\s+\w+"
    r"|\b(?:public|private|protected|static|async|export)\s+\w+\s*\("
)


class RetrievalConfig(BaseModel):
    """Tunables of the hybrid ranking algorithm."""

    model_config = ConfigDict(frozen=True)

    oversampling_multiplier: int = Field(default=5, ge=1)
    parent_default_score: float = Field(default=0.5, ge=0, le=1)
    expand_noted_parents: bool = False

    # Re-rank boosts
    entity_name_boost: float = Field(default=0.15, ge=0)
    lexical_overlap_weight: float = Field(default=0.1, ge=0)
    min_query_token_length: int = Field(default=3, ge=1)

    # Implementation diversification
    diversification_threshold: float = Field(default=0.4, ge=0, le=1)
    implementation_pattern: str = DEFAULT_IMPLEMENTATION_PATTERN
    implementation_boost: float = Field(default=0.1, ge=0)
    large_content_threshold: int = Field(default=800, ge=0)
    large_content_boost: float = Field(default=0.2, ge=0)
