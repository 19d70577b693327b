"""SponsorCast application package."""

from .domain.sponsorship import (
    AdContent,
    AdPlacement,
    Campaign,
    ContentOwner,
    ContentUnit,
    PlacementStatus,
    PodcastMatch,
    VerificationResult,
)

__version__ = "0.1.0"
__all__ = [
    "AdContent",
    "AdPlacement",
    "Campaign",
    "ContentOwner",
    "ContentUnit",
    "PlacementStatus",
    "PodcastMatch",
    "VerificationResult",
]
