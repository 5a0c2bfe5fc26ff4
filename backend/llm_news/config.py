"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScoringWeights(BaseSettings):
    """Weights and caps for the repository relevance score."""

    model_config = SettingsConfigDict(env_prefix="SCORING_")

    # Engagement term saturates at this many stars
    stars_cap: float = Field(default=5000.0, gt=0)
    weight_stars: float = Field(default=0.25, ge=0.0, le=1.0)

    # Growth term saturates at this many stars per day
    growth_cap: float = Field(default=50.0, gt=0)
    weight_growth: float = Field(default=0.35, ge=0.0, le=1.0)

    # Recency decays linearly to zero over this window
    recency_window_days: float = Field(default=30.0, gt=0)
    weight_recency: float = Field(default=0.15, ge=0.0, le=1.0)

    # Keyword term: base + per-hit bonuses, capped
    keyword_base: float = Field(default=0.25, ge=0.0)
    keyword_name_hit: float = Field(default=0.03, ge=0.0)
    keyword_description_hit: float = Field(default=0.01, ge=0.0)
    keyword_tech_stack_hit: float = Field(default=0.02, ge=0.0)
    keyword_cap: float = Field(default=0.35, ge=0.0, le=1.0)

    @field_validator("weight_stars", "weight_growth", "weight_recency")
    @classmethod
    def validate_weights(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("Weights must be between 0 and 1")
        return v


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "LLM News"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False)
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = Field(default="INFO")

    # Server (empty host = first non-loopback IPv4 interface)
    host: str = Field(default="")
    port: int = Field(default=8081)

    # API keys (optional, raise third-party rate limits)
    github_api_token: Optional[str] = Field(default=None)
    semantic_scholar_api_key: Optional[str] = Field(default=None)

    # Outbound HTTP
    http_timeout_seconds: float = Field(default=15.0, ge=10.0, le=30.0)
    enrichment_timeout_seconds: float = Field(default=10.0, ge=10.0, le=30.0)
    user_agent: str = Field(default="LLM-News-Agent")

    # Scheduler
    repo_refresh_minutes: int = Field(
        default=60,
        description="Interval between repository collection runs",
    )
    paper_refresh_minutes: int = Field(
        default=360,
        description="Interval between paper collection runs",
    )

    # Staleness filtering and minimum-size floor
    repo_max_age_days: int = Field(default=180, ge=1)
    repo_min_items: int = Field(default=50, ge=0)
    paper_max_age_days: int = Field(default=365, ge=1)
    paper_min_items: int = Field(default=20, ge=0)

    # Source tuning
    search_supplement_count: int = Field(default=50, ge=0)
    enrichment_limit: int = Field(
        default=100,
        description="Maximum items looked up by the enricher per run",
    )
    enrichment_concurrency: int = Field(default=5, ge=1)
    placeholder_seed: Optional[int] = Field(
        default=None,
        description="Seed for placeholder citation counts (None = unseeded)",
    )

    # Sources
    github_trending_enabled: bool = True
    github_search_enabled: bool = True
    papers_with_code_repos_enabled: bool = True
    curated_repos_enabled: bool = True
    papers_with_code_enabled: bool = True
    hackernews_enabled: bool = True
    devto_enabled: bool = True
    csdn_enabled: bool = True

    # CORS
    cors_origins: list[str] = Field(default=["*"])

    # Scoring weights (nested)
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
