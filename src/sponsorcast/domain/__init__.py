"""Domain layer for SponsorCast."""

from .errors import (
    AIServiceError,
    ComplianceViolation,
    FraudFlag,
    IllegalTransition,
    InvalidInput,
    LedgerError,
    ServiceKind,
)
from .exposure import ExposureEvent, check_fraud, exposure_ceiling
from .policy_engine import can_accept_campaign, has_payable_budget
from .scoring import ScoringWeights
from .sponsorship import (
    AdContent,
    AdPlacement,
    AdPreferences,
    Campaign,
    CampaignAnalysis,
    Character,
    ComplianceResult,
    ContentOwner,
    ContentUnit,
    OwnerProfile,
    PlacementStatus,
    PodcastMatch,
    QualityScore,
    UserFeedback,
    VerificationResult,
)

__all__ = [
    "AIServiceError",
    "AdContent",
    "AdPlacement",
    "AdPreferences",
    "Campaign",
    "CampaignAnalysis",
    "Character",
    "ComplianceResult",
    "ComplianceViolation",
    "ContentOwner",
    "ContentUnit",
    "ExposureEvent",
    "FraudFlag",
    "IllegalTransition",
    "InvalidInput",
    "LedgerError",
    "OwnerProfile",
    "PlacementStatus",
    "PodcastMatch",
    "QualityScore",
    "ScoringWeights",
    "ServiceKind",
    "UserFeedback",
    "VerificationResult",
    "can_accept_campaign",
    "check_fraud",
    "exposure_ceiling",
    "has_payable_budget",
]
