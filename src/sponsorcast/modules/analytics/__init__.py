"""Analytics module for SponsorCast."""

from .store import AnalyticsStore, CampaignStats

__all__ = ["AnalyticsStore", "CampaignStats"]
