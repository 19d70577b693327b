"""Pydantic-based runtime settings for SponsorCast.

Loads from environment variables (with optional .env file).
Invalid values fail fast at startup.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class BackoffStrategy(str, Enum):
    exponential = "exponential"
    linear = "linear"
    fixed = "fixed"


class RuntimeSettings(BaseSettings):
    """All configuration for the SponsorCast runtime, validated at startup."""

    model_config = {"env_prefix": "", "env_file": ".env", "env_file_encoding": "utf-8"}

    # --- Generative collaborator ---
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
        description="API key for the Gemini text generation service",
    )
    matching_model_id: str = Field(default="gemini-1.5-flash", description="Model used for compatibility scoring")
    generation_model_id: str = Field(default="gemini-1.5-flash", description="Model used for ad copy and episodes")
    verification_model_id: str = Field(default="gemini-1.5-flash", description="Model used for verification")
    generation_temperature: float = Field(default=0.7, ge=0, le=2, description="Sampling temperature")
    request_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request timeout")

    # --- Retry ---
    backoff_strategy: BackoffStrategy = Field(default=BackoffStrategy.exponential, description="Retry delay strategy")
    matching_max_retries: int = Field(default=3, ge=0, le=10, description="Retries for matching calls")
    matching_retry_delay_seconds: float = Field(default=1.0, ge=0, description="Base retry delay for matching")
    generation_max_retries: int = Field(default=2, ge=0, le=10, description="Retries for generation calls")
    generation_retry_delay_seconds: float = Field(default=2.0, ge=0, description="Base retry delay for generation")
    verification_max_retries: int = Field(default=3, ge=0, le=10, description="Retries for verification calls")
    verification_retry_delay_seconds: float = Field(
        default=1.5, ge=0, description="Base retry delay for verification"
    )

    # --- Matching ---
    matching_threshold: float = Field(default=0.5, ge=0, le=1, description="Minimum compatibility score")
    audience_weight: float = Field(default=0.4, ge=0, le=1, description="Weight of audience alignment")
    content_weight: float = Field(default=0.3, ge=0, le=1, description="Weight of content relevance")
    brand_weight: float = Field(default=0.2, ge=0, le=1, description="Weight of brand fit")
    quality_weight: float = Field(default=0.1, ge=0, le=1, description="Weight of quality x engagement")
    max_ads_per_episode: int = Field(default=3, ge=0, le=10, description="Hard cap on ads per episode")
    max_matches_per_campaign: int = Field(default=10, ge=1, le=100, description="Owners listed per campaign")
    allocation_base_ratio: float = Field(default=0.1, ge=0, le=1, description="Budget share per unit score")
    allocation_cap_ratio: float = Field(default=0.3, ge=0, le=1, description="Max budget share per owner")
    allocation_reach_cap: float = Field(default=2.0, gt=0, description="Reach multiplier ceiling")

    # --- Quality gates ---
    min_quality_score: float = Field(default=0.7, ge=0, le=1, description="Overall quality needed to verify")
    min_naturalness_score: float = Field(default=0.6, ge=0, le=1, description="Naturalness feedback floor")
    min_ad_duration_seconds: int = Field(default=15, ge=1, description="Shortest acceptable ad read")
    max_ad_duration_seconds: int = Field(default=60, ge=1, description="Longest acceptable ad read")

    # --- Payouts ---
    creator_share: float = Field(default=0.95, ge=0, le=1, description="Creator share of each settlement")
    min_payout_exposures: int = Field(default=10, ge=1, description="Unpaid exposures needed to settle a group")
    settlement_delay_seconds: float = Field(default=1.0, ge=0, description="Pause between ledger transactions")

    # --- Fraud ---
    fraud_exposure_floor: int = Field(default=100, ge=1, description="Exposure ceiling for fresh units")
    fraud_exposures_per_hour: float = Field(default=50.0, gt=0, description="Exposure ceiling growth per hour")
    fraud_lookback_hours: int = Field(default=24, ge=1, description="Window of units scanned for fraud")

    # --- Automation ---
    scheduler_interval_seconds: float = Field(default=300.0, gt=0, description="Seconds between ticks")
    verification_batch_size: int = Field(default=10, ge=1, le=500, description="Pending placements per sweep")
    verification_delay_seconds: float = Field(default=2.0, ge=0, description="Pause between verifications")
    cleanup_every_ticks: int = Field(default=10, ge=1, description="Run cleanup on every Nth tick")
    rejected_retention_days: int = Field(default=30, ge=30, description="Days rejected placements are kept")
    analytics_retention_days: int = Field(default=90, ge=1, description="Days analytics rows are kept")

    # --- Optimization report ---
    optimization_quality_floor: float = Field(default=0.6, ge=0, le=1, description="Average quality that needs work")
    optimization_min_ctr: float = Field(default=0.02, ge=0, le=1, description="Click-through rate that needs work")
    optimization_cost_ratio: float = Field(default=2.0, gt=0, description="Cost per view over rate that flags overspend")
    high_quality_match_score: float = Field(default=0.8, ge=0, le=1, description="Score of a strong new match")
    low_view_days: int = Field(default=7, ge=1, description="Campaign age after which low views are flagged")
    low_view_count: int = Field(default=100, ge=0, description="Views below which a running campaign is flagged")
    slow_spend_days: int = Field(default=3, ge=1, description="Campaign age after which slow spend is flagged")
    slow_spend_ratio: float = Field(default=0.1, ge=0, le=1, description="Budget share below which spend is slow")

    # --- Storage ---
    analytics_db_path: str = Field(default="data/analytics.db", description="SQLite path for analytics storage")
    seed_path: str | None = Field(default=None, description="Optional JSON file with campaigns and owners")

    @field_validator("creator_share")
    @classmethod
    def _share_not_zero(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"creator_share must be positive, got {v}")
        return v

    @model_validator(mode="after")
    def _check_ranges(self) -> "RuntimeSettings":
        if self.min_ad_duration_seconds > self.max_ad_duration_seconds:
            raise ValueError("min_ad_duration_seconds must not exceed max_ad_duration_seconds")
        total = self.audience_weight + self.content_weight + self.brand_weight + self.quality_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"matching weights must sum to 1.0, got {total}")
        return self

    @property
    def platform_fee(self) -> float:
        return 1.0 - self.creator_share


@lru_cache(maxsize=1)
def get_settings() -> RuntimeSettings:
    """Return the singleton RuntimeSettings (cached after first call)."""
    return RuntimeSettings()
