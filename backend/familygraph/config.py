"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Traversal caps are always finite: every graph walk terminates

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Weighting tables as dict fields: overridable with a JSON env var, e.g.
      PLATFORM_VIEW_FACTORS='{"youtube": 1.0, "tiktok": 0.75}'
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from familygraph.core.standardization import (
    DEFAULT_ENGAGEMENT_FACTORS, DEFAULT_PAIR_OVERLAP, DEFAULT_PAIR_OVERLAP_FALLBACK,
    DEFAULT_VIEW_FACTORS, OverlapTable, StandardizationTable,
)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://familygraph:familygraph@db:5432/familygraph"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Anthropic (relationship classification)
    anthropic_api_key: str = "sk-ant-placeholder"
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 30
    anthropic_base_delay_ms: int = 500
    anthropic_max_delay_ms: int = 8_000
    classifier_model: str = "claude-haiku-4-5-20251001"
    classifier_max_tokens: int = 400

    # Graph traversal caps
    cycle_max_depth: int = Field(50, ge=1)
    cycle_max_nodes: int = Field(5000, ge=1)
    family_max_nodes: int = Field(5000, ge=1)
    # 60 levels of 32-char labels still fit content_relationships.path (2048)
    family_max_depth: int = Field(50, ge=1, le=60)
    family_lock_retries: int = Field(3, ge=1)

    # Suggestions
    suggestion_ai_enabled: bool = True
    suggestion_threshold: float = Field(0.7, ge=0.0, le=1.0)
    suggestion_cache_ttl_seconds: int = 900
    suggestion_max_candidates: int = 25
    suggestion_prefilter_score: float = 0.15
    suggestion_ai_timeout_seconds: float = 10.0
    suggestion_ai_concurrency: int = 4
    suggestion_auto_accept_floor: float = Field(0.9, ge=0.0, le=1.0)

    # Metrics standardization
    platform_view_factors: dict[str, float] = dict(DEFAULT_VIEW_FACTORS)
    platform_engagement_factors: dict[str, float] = dict(DEFAULT_ENGAGEMENT_FACTORS)
    platform_pair_overlap: dict[str, float] = dict(DEFAULT_PAIR_OVERLAP)
    default_pair_overlap: float = Field(DEFAULT_PAIR_OVERLAP_FALLBACK, ge=0.0, le=1.0)

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def standardization_table(self) -> StandardizationTable:
        return StandardizationTable(
            view_factors=self.platform_view_factors,
            engagement_factors=self.platform_engagement_factors,
        )

    def overlap_table(self) -> OverlapTable:
        return OverlapTable(
            pairs=self.platform_pair_overlap,
            default_overlap=self.default_pair_overlap,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
