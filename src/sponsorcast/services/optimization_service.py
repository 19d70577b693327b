"""Campaign optimization report: current performance plus ranked suggestions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..config.runtime import RuntimeSettings, get_settings
from ..domain.sponsorship import AdPlacement, Campaign, PlacementStatus, utcnow
from ..modules.analytics.store import AnalyticsStore
from ..ports.repository import Repository
from .match_service import MatchService

PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}
MAX_LISTED_MATCHES = 5
LOW_QUALITY_PLACEMENT = 0.5

_TEMPLATES: dict[str, tuple[str, str, str, tuple[str, ...], str]] = {
    "quality_improvement": (
        "high",
        "Improve Ad Quality",
        "Your ads have a low average quality score. Consider refining your content generation rules.",
        (
            "Review and update content generation rules",
            "Ensure requirements are clear and specific",
            "Consider increasing quality threshold",
            "Review rejected placements for common issues",
        ),
        "Increase quality score by 20-30%",
    ),
    "engagement_optimization": (
        "medium",
        "Boost Engagement",
        "Your click-through rate is below average. Consider optimizing ad content and targeting.",
        (
            "Test different call-to-action phrases",
            "Improve audience targeting",
            "Consider more engaging content formats",
            "Review successful placements for patterns",
        ),
        "Increase CTR by 50-100%",
    ),
    "budget_optimization": (
        "high",
        "Optimize Budget Allocation",
        "Your cost per view is higher than expected. Consider adjusting payout rates or targeting.",
        (
            "Review payout per view rate",
            "Focus on higher-performing podcasts",
            "Pause underperforming placements",
            "Negotiate better rates with top performers",
        ),
        "Reduce cost per view by 25-40%",
    ),
    "targeting_improvement": (
        "high",
        "Improve Targeting Accuracy",
        "Many of your ad placements are being rejected. Consider refining your targeting criteria.",
        (
            "Review rejected placements for common patterns",
            "Refine target audience criteria",
            "Update content requirements",
            "Consider working with higher-quality podcasts",
        ),
        "Increase approval rate by 30-50%",
    ),
    "new_opportunities": (
        "medium",
        "New High-Quality Matches Available",
        "Found {count} new high-quality podcast matches for your campaign.",
        (
            "Review new podcast matches",
            "Accept high-compatibility matches",
            "Consider expanding to similar podcasts",
            "Test with small budget allocation first",
        ),
        "Expand reach by 20-40%",
    ),
    "content_optimization": (
        "medium",
        "Optimize Ad Content",
        "Some ad placements have low quality scores. Consider improving content generation.",
        (
            "Review low-quality placements",
            "Update content generation rules",
            "Add more specific style guidelines",
            "Consider A/B testing different approaches",
        ),
        "Improve average quality by 15-25%",
    ),
    "performance_boost": (
        "high",
        "Low Performance Alert",
        "Your campaign has been running for {days} days but has low view counts.",
        (
            "Review and expand target audience",
            "Increase payout per view rate",
            "Consider more popular podcast categories",
            "Review campaign messaging and appeal",
        ),
        "Increase views by 100-200%",
    ),
    "budget_utilization": (
        "medium",
        "Low Budget Utilization",
        "Your campaign is using budget slowly. Consider increasing activity.",
        (
            "Increase payout per view rate",
            "Expand targeting criteria",
            "Accept more podcast matches",
            "Consider premium podcast placements",
        ),
        "Increase campaign velocity by 50-100%",
    ),
}


@dataclass(frozen=True)
class Suggestion:
    """One recommended change to a campaign."""

    kind: str
    priority: str
    title: str
    description: str
    action_items: tuple[str, ...]
    expected_impact: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OptimizationReport:
    campaign_id: str
    performance: dict[str, Any]
    suggestions: list[Suggestion]
    generated_at: datetime


def suggestion(kind: str, data: dict[str, Any] | None = None, **fmt: Any) -> Suggestion:
    priority, title, description, actions, impact = _TEMPLATES[kind]
    return Suggestion(
        kind=kind,
        priority=priority,
        title=title,
        description=description.format(**fmt),
        action_items=actions,
        expected_impact=impact,
        data=data or {},
    )


def _verdicted(placements: list[AdPlacement]) -> list[AdPlacement]:
    return [p for p in placements if p.verification_result is not None]


class OptimizationService:
    """Reads a campaign's live placements and settlements and says what to change."""

    def __init__(
        self,
        repository: Repository,
        matcher: MatchService,
        settings: RuntimeSettings | None = None,
        analytics: AnalyticsStore | None = None,
        logger: Any = None,
    ) -> None:
        self._repo = repository
        self._matcher = matcher
        self._settings = settings or get_settings()
        self._analytics = analytics
        self._logger = logger

    def performance(self, campaign: Campaign, placements: list[AdPlacement]) -> dict[str, Any]:
        rollup = self._repo.campaign_rollup(campaign.campaign_id)
        judged = _verdicted(placements)
        stats = self._analytics.campaign_stats(campaign.campaign_id) if self._analytics else None
        return {
            "total_views": rollup["views"],
            "average_quality_score": sum(p.quality_score for p in judged) / len(judged) if judged else 0.0,
            "click_through_rate": rollup["clicks"] / rollup["impressions"] if rollup["impressions"] else 0.0,
            "conversion_rate": rollup["conversions"] / rollup["clicks"] if rollup["clicks"] else 0.0,
            "total_spend": campaign.spent,
            "remaining_budget": campaign.remaining_budget,
            "settlements": stats.settlements if stats else 0,
            "settled_exposures": stats.exposures if stats else 0,
        }

    def suggest(self, campaign_id: str, now: datetime | None = None) -> OptimizationReport:
        """Build the report for *campaign_id*; raises LookupError for unknown campaigns."""
        campaign = self._repo.get_campaign(campaign_id)
        if campaign is None:
            raise LookupError(f"unknown campaign {campaign_id}")
        now = now or utcnow()
        s = self._settings
        placements = self._repo.list_placements(campaign_id=campaign_id)
        perf = self.performance(campaign, placements)
        days_running = (now - campaign.created_at).days
        suggestions: list[Suggestion] = []

        if _verdicted(placements) and perf["average_quality_score"] < s.optimization_quality_floor:
            suggestions.append(suggestion("quality_improvement"))
        if perf["total_views"] and perf["click_through_rate"] < s.optimization_min_ctr:
            suggestions.append(suggestion("engagement_optimization"))
        if perf["total_views"]:
            cost_per_view = campaign.spent / perf["total_views"]
            if cost_per_view > campaign.payout_per_view * s.optimization_cost_ratio:
                suggestions.append(suggestion("budget_optimization", {"cost_per_view": cost_per_view}))

        verified = sum(1 for p in placements if p.status in (PlacementStatus.verified, PlacementStatus.paid))
        rejected = sum(1 for p in placements if p.status is PlacementStatus.rejected)
        if rejected > verified:
            suggestions.append(suggestion("targeting_improvement", {"rejected": rejected, "verified": verified}))

        if campaign.ai_matching_enabled:
            running = {p.owner_id for p in placements}
            strong = [
                m
                for m in self._matcher.find_matches(campaign, self._repo.list_owners(monetized_only=True))
                if m.compatibility_score > s.high_quality_match_score and m.owner_id not in running
            ]
            if strong:
                listed = [
                    {"owner_id": m.owner_id, "compatibility_score": m.compatibility_score}
                    for m in strong[:MAX_LISTED_MATCHES]
                ]
                suggestions.append(suggestion("new_opportunities", {"new_matches": listed}, count=len(strong)))

        low_quality = [p.placement_id for p in _verdicted(placements) if p.quality_score < LOW_QUALITY_PLACEMENT]
        if low_quality:
            suggestions.append(suggestion("content_optimization", {"placement_ids": low_quality}))

        if days_running > s.low_view_days and perf["total_views"] < s.low_view_count:
            suggestions.append(suggestion("performance_boost", days=days_running))
        utilization = campaign.spent / campaign.budget if campaign.budget else 0.0
        if utilization < s.slow_spend_ratio and days_running > s.slow_spend_days:
            suggestions.append(suggestion("budget_utilization", {"utilization": utilization}))

        suggestions.sort(key=lambda item: PRIORITY_RANK[item.priority], reverse=True)
        if self._logger:
            self._logger.info(
                "optimization_report",
                extra={"campaign_id": campaign_id, "suggestions": [item.kind for item in suggestions]},
            )
        return OptimizationReport(
            campaign_id=campaign_id,
            performance=perf,
            suggestions=suggestions,
            generated_at=now,
        )
