"""Campaign, content owner, episode and placement domain models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

AdSlot = Literal["intro", "mid-roll", "outro", "natural"]
CampaignStatus = Literal["active", "paused", "completed", "cancelled"]
Severity = Literal["low", "medium", "high"]

AD_SLOTS: tuple[str, ...] = ("intro", "mid-roll", "outro", "natural")

# Float noise from repeated per-view multiplication must not trip the budget check.
_BUDGET_EPSILON = 1e-9


def as_utc(value: datetime | None) -> datetime | None:
    """Return *value* in UTC; naive datetimes are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlacementStatus(str, Enum):
    pending = "pending"
    verified = "verified"
    rejected = "rejected"
    paid = "paid"


# ---------------------------------------------------------------------------
# Campaign
# ---------------------------------------------------------------------------


class ContentRule(BaseModel):
    """Brand instruction applied when drafting ad copy."""

    type: Literal["mention_frequency", "tone", "placement", "duration"] = Field(..., description="Rule kind")
    value: str = Field(..., description="Rule value, e.g. 'casual' or '2'")
    required: bool = Field(default=False, description="Whether the rule must be honored")


class VerificationCriteria(BaseModel):
    """Bar a generated placement has to clear."""

    min_quality_score: float = Field(default=0.7, ge=0, le=1, description="Minimum overall quality")
    required_elements: list[str] = Field(default_factory=list, description="Elements that must appear")
    compliance_checks: list[str] = Field(default_factory=list, description="Extra compliance checks")
    naturalness: float = Field(default=0.6, ge=0, le=1, description="Minimum naturalness")


class Campaign(BaseModel):
    """A brand's paid offer to have a product mentioned in generated content."""

    campaign_id: str = Field(..., description="Campaign identifier")
    brand_id: str = Field(..., description="Brand (wallet) identifier")
    brand_name: str = Field(..., description="Display name of the brand")
    product_name: str = Field(..., description="Product being promoted")
    description: str = Field(default="", description="Product description")
    category: str = Field(..., description="Product category, e.g. 'technology'")
    target_audience: list[str] = Field(default_factory=list, description="Audience tags")
    requirements: list[str] = Field(default_factory=list, description="Explicit requirements for ad copy")
    budget: float = Field(..., ge=0, description="Total budget")
    currency: str = Field(default="USD", description="Budget currency")
    spent: float = Field(default=0.0, ge=0, description="Amount settled so far")
    payout_per_view: float = Field(..., gt=0, description="Payout per exposure")
    duration_days: int = Field(default=30, ge=1, description="Campaign length in days")
    status: CampaignStatus = Field(default="active", description="Lifecycle status")
    ai_matching_enabled: bool = Field(default=True, description="Whether automatic matching may pick it")
    content_rules: list[ContentRule] = Field(default_factory=list, description="Generation rules")
    verification_criteria: VerificationCriteria = Field(
        default_factory=VerificationCriteria, description="Verification bar"
    )
    quality_threshold: float = Field(default=0.7, ge=0, le=1, description="Minimum quality for this brand")
    created_at: datetime = Field(default_factory=utcnow, description="Creation time (UTC)")
    updated_at: datetime = Field(default_factory=utcnow, description="Last update time (UTC)")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _ensure_tz(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _spent_within_budget(self) -> "Campaign":
        if self.spent > self.budget + _BUDGET_EPSILON:
            raise ValueError(f"spent {self.spent} exceeds budget {self.budget}")
        return self

    @property
    def remaining_budget(self) -> float:
        return max(0.0, self.budget - self.spent)

    @property
    def is_active(self) -> bool:
        return self.status == "active"


# ---------------------------------------------------------------------------
# Content owner (podcast)
# ---------------------------------------------------------------------------


class Character(BaseModel):
    """Recurring voice in an owner's episodes."""

    name: str = Field(..., description="Character name")
    personality: str = Field(default="", description="Personality notes")
    gender: str = Field(default="", description="Voice gender")
    voice: str = Field(default="", description="Voice id or description")


class AdPreferences(BaseModel):
    """Owner-side constraints on which ads may run."""

    allowed_categories: list[str] = Field(default_factory=list, description="Empty means any category")
    blocked_brands: list[str] = Field(default_factory=list, description="Brand ids or names never accepted")
    max_ads_per_episode: int = Field(default=2, ge=0, le=10, description="Ad cap per episode")
    preferred_ad_placement: AdSlot | None = Field(default=None, description="Preferred slot")
    minimum_payout_rate: float = Field(default=0.001, ge=0, description="Lowest acceptable payout per view")


class AudienceProfile(BaseModel):
    """Audience figures reported for an owner."""

    demographics: dict[str, float] = Field(default_factory=dict, description="Segment shares")
    average_listen_time: float = Field(default=0.0, ge=0, description="Average listen time in minutes")
    completion_rate: float = Field(default=0.0, ge=0, le=1, description="Share of listens completed")
    share_rate: float = Field(default=0.0, ge=0, le=1, description="Share of listens shared")


class ContentOwner(BaseModel):
    """A podcast: the persona and preferences content is generated under."""

    owner_id: str = Field(..., description="Owner (podcast) identifier")
    owner_address: str = Field(default="", description="Payout address of the creator")
    title: str = Field(..., description="Podcast title")
    description: str = Field(default="", description="Podcast description")
    concept: str = Field(default="", description="Show concept")
    tone: str = Field(default="casual", description="Voice tone, e.g. 'professional'")
    length_minutes: int = Field(default=30, ge=1, description="Typical episode length")
    characters: list[Character] = Field(default_factory=list, description="Hosts and guests")
    topics: list[str] = Field(default_factory=list, description="Topics covered")
    monetization_enabled: bool = Field(default=False, description="Whether ads may be placed")
    ad_preferences: AdPreferences = Field(default_factory=AdPreferences, description="Ad constraints")
    quality_score: float = Field(default=0.5, ge=0, le=1, description="Content quality estimate")
    average_engagement: float = Field(default=0.5, ge=0, le=1, description="Engagement estimate")
    audience_profile: AudienceProfile = Field(default_factory=AudienceProfile, description="Audience figures")
    content_themes: list[str] = Field(default_factory=list, description="Recurring themes")
    total_views: int = Field(default=0, ge=0, description="Exposures across all episodes")
    total_earnings: float = Field(default=0.0, ge=0, description="Creator earnings to date")


class ContentUnit(BaseModel):
    """A generated episode belonging to a content owner."""

    unit_id: str = Field(..., description="Episode identifier")
    owner_id: str = Field(..., description="Owning podcast")
    title: str = Field(..., description="Episode title")
    summary: str = Field(default="", description="Episode summary")
    script: str = Field(default="", description="Full script, ad blocks included")
    total_views: int = Field(default=0, ge=0, description="Exposure counter")
    has_ads: bool = Field(default=False, description="Whether ad blocks were embedded")
    ad_count: int = Field(default=0, ge=0, description="Number of embedded ads")
    total_earnings: float = Field(default=0.0, ge=0, description="Creator earnings from this episode")
    fraud_flagged: bool = Field(default=False, description="Excluded from payouts")
    created_at: datetime = Field(default_factory=utcnow, description="Creation time (UTC)")

    @field_validator("created_at")
    @classmethod
    def _ensure_tz(cls, value: datetime) -> datetime:
        return as_utc(value)


# ---------------------------------------------------------------------------
# Generated ad copy and its verdicts
# ---------------------------------------------------------------------------


class AdContent(BaseModel):
    """Ad copy drafted for one campaign and one owner."""

    script: str = Field(default="", description="Spoken ad copy")
    placement: AdSlot = Field(default="mid-roll", description="Slot in the episode")
    duration: int = Field(default=30, ge=0, description="Estimated spoken duration in seconds")
    required_elements: list[str] = Field(default_factory=list, description="Elements the copy includes")
    style_notes: list[str] = Field(default_factory=list, description="Delivery notes")


class QualityScore(BaseModel):
    """Graded quality of merged content."""

    overall: float = Field(..., ge=0, le=1)
    naturalness: float = Field(..., ge=0, le=1)
    relevance: float = Field(..., ge=0, le=1)
    engagement: float = Field(..., ge=0, le=1)
    compliance: float = Field(..., ge=0, le=1)
    breakdown: dict[str, float] = Field(default_factory=dict, description="Named sub-scores")

    @field_validator("breakdown")
    @classmethod
    def _breakdown_in_range(cls, value: dict[str, float]) -> dict[str, float]:
        for key, score in value.items():
            if not 0.0 <= score <= 1.0:
                raise ValueError(f"breakdown[{key!r}]={score} outside [0, 1]")
        return value


class ComplianceResult(BaseModel):
    """Outcome of a compliance review."""

    compliant: bool
    violations: list[str] = Field(default_factory=list)
    severity: Severity = "low"
    suggestions: list[str] = Field(default_factory=list)


class VerificationResult(BaseModel):
    """Verdict recorded on a placement."""

    verified: bool = Field(..., description="Whether the placement passed")
    quality_score: float = Field(..., ge=0, le=1, description="Overall quality")
    compliance_score: float = Field(..., ge=0, le=1, description="1.0 when compliant, 0.5 otherwise")
    requirements_met: list[bool] = Field(default_factory=list, description="One flag per requirement")
    feedback: list[str] = Field(default_factory=list, description="Reviewer feedback lines")
    suggestions: list[str] = Field(default_factory=list, description="Improvement suggestions")
    verified_at: datetime = Field(default_factory=utcnow, description="Verdict time (UTC)")


class UserFeedback(BaseModel):
    """Listener rating of a placement."""

    user_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    timestamp: datetime = Field(default_factory=utcnow)


class AdPlacement(BaseModel):
    """One campaign's ad inside one episode, tracked from draft to payout."""

    placement_id: str = Field(..., description="Placement identifier")
    campaign_id: str = Field(..., description="Campaign identifier")
    owner_id: str = Field(..., description="Owner identifier")
    content_unit_id: str = Field(..., description="Episode identifier")
    ad_content: AdContent = Field(default_factory=AdContent, description="Generated copy")
    status: PlacementStatus = Field(default=PlacementStatus.pending, description="Lifecycle status")
    quality_score: float = Field(default=0.0, ge=0, le=1, description="Latest quality verdict")
    view_count: int = Field(default=0, ge=0, description="Accepted exposures")
    impressions: int = Field(default=0, ge=0)
    clicks: int = Field(default=0, ge=0)
    conversions: int = Field(default=0, ge=0)
    total_payout: float = Field(default=0.0, ge=0, description="Money settled for this placement")
    total_paid_out: int = Field(default=0, ge=0, description="Exposures already settled")
    verification_result: VerificationResult | None = Field(default=None)
    user_feedback: list[UserFeedback] = Field(default_factory=list)
    generation_model_id: str = Field(default="", description="Model that drafted the copy")
    verification_model_id: str = Field(default="", description="Model that gave the verdict")
    created_at: datetime = Field(default_factory=utcnow)
    verified_at: datetime | None = Field(default=None)
    last_viewed_at: datetime | None = Field(default=None)

    @field_validator("created_at", "verified_at", "last_viewed_at")
    @classmethod
    def _ensure_tz(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @model_validator(mode="after")
    def _settled_within_accumulated(self) -> "AdPlacement":
        if self.total_paid_out > self.view_count:
            raise ValueError(
                f"total_paid_out {self.total_paid_out} exceeds view_count {self.view_count}"
            )
        return self

    @property
    def unpaid_views(self) -> int:
        return self.view_count - self.total_paid_out

    @property
    def click_through_rate(self) -> float:
        return self.clicks / self.impressions if self.impressions else 0.0

    @property
    def conversion_rate(self) -> float:
        return self.conversions / self.clicks if self.clicks else 0.0

    @property
    def average_rating(self) -> float:
        if not self.user_feedback:
            return 0.0
        return sum(f.rating for f in self.user_feedback) / len(self.user_feedback)


class PodcastMatch(BaseModel):
    """A scored campaign/owner pairing."""

    owner_id: str
    campaign_id: str
    compatibility_score: float = Field(..., ge=0, le=1)
    estimated_reach: float = Field(default=0.0, ge=0)
    suggested_budget_allocation: float = Field(default=0.0, ge=0)
    matching_reasons: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0, le=1)


# ---------------------------------------------------------------------------
# Matching insights
# ---------------------------------------------------------------------------


class CampaignAnalysis(BaseModel):
    """What a campaign needs from the podcasts it runs on."""

    key_features: list[str] = Field(default_factory=list, description="Product features worth highlighting")
    target_demographics: list[str] = Field(default_factory=list, description="Primary audience segments")
    content_requirements: list[str] = Field(default_factory=list, description="What effective ad copy must do")
    budget_efficiency: float = Field(..., ge=0, le=1, description="Expected return on the budget")
    competitive_analysis: list[str] = Field(default_factory=list, description="Market observations")


class EngagementSnapshot(BaseModel):
    average_views: float = Field(..., ge=0)
    completion_rate: float = Field(..., ge=0, le=1)
    interaction_rate: float = Field(..., ge=0, le=1)


class OwnerProfile(BaseModel):
    """Advertiser-facing profile of a podcast."""

    content_themes: list[str] = Field(default_factory=list, description="Main themes covered")
    audience_demographics: list[str] = Field(default_factory=list, description="Likely audience segments")
    engagement_metrics: EngagementSnapshot = Field(..., description="Audience engagement figures")
    monetization_readiness: float = Field(..., ge=0, le=1, description="Readiness to carry ads")
    brand_compatibility: list[str] = Field(default_factory=list, description="Categories that fit the show")
