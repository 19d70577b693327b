"""MatchService: campaign/owner compatibility scoring and selection."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ..config.runtime import RuntimeSettings, get_settings
from ..domain.errors import AIServiceError
from ..domain.policy_engine import campaign_reason, can_accept_campaign
from ..domain.scoring import (
    ScoringWeights,
    clamp,
    fallback_campaign_analysis,
    fallback_compatibility,
    fallback_owner_profile,
)
from ..domain.sponsorship import (
    AdPlacement,
    Campaign,
    CampaignAnalysis,
    ContentOwner,
    OwnerProfile,
    PlacementStatus,
    PodcastMatch,
)
from ..ports.id_gen import IdProvider, RequestIdProvider, UuidIdProvider, UuidRequestIdProvider
from .invocation import ResilientInvoker, parse_json_payload, parse_unit_interval

COMPATIBILITY_PROMPT = """Analyze the compatibility between this advertising campaign and podcast.

CAMPAIGN:
- Product: {product} by {brand}
- Description: {description}
- Category: {category}
- Target audience: {audience}
- Requirements: {requirements}

PODCAST:
- Title: {title}
- Description: {podcast_description}
- Concept: {concept}
- Tone: {tone}
- Topics: {topics}
- Quality score: {quality:.2f}
- Average engagement: {engagement:.2f}

Score the match from 0 to 1 using these weights:
audience alignment 40%, content relevance 30%, brand fit 20%, quality and engagement 10%.

Return only a single decimal number between 0 and 1."""

ANALYSIS_PROMPT = """Analyze this brand campaign for podcast advertising matching.

CAMPAIGN:
- Brand: {brand}
- Product: {product}
- Category: {category}
- Target audience: {audience}
- Description: {description}
- Budget: {budget:.2f} {currency}
- Requirements: {requirements}

Identify the key product features to highlight, the primary target demographics, the content
requirements for effective promotion, a budget efficiency score from 0 to 1, and insights about
the competitive landscape.

Return only a JSON object:
{{"key_features": ["..."], "target_demographics": ["..."], "content_requirements": ["..."],
  "budget_efficiency": 0.8, "competitive_analysis": ["..."]}}"""

PROFILE_PROMPT = """Create an advertising profile for this podcast.

PODCAST:
- Title: {title}
- Description: {description}
- Concept: {concept}
- Tone: {tone}
- Topics: {topics}
- Characters: {characters}
- Quality score: {quality:.2f}
- Average engagement: {engagement:.2f}
- Total views: {views}

Describe the main content themes, the likely audience demographics, engagement figures, readiness
for monetization from 0 to 1, and the brand categories that fit the show.

Return only a JSON object:
{{"content_themes": ["..."], "audience_demographics": ["..."],
  "engagement_metrics": {{"average_views": 1000, "completion_rate": 0.8, "interaction_rate": 0.3}},
  "monetization_readiness": 0.7, "brand_compatibility": ["..."]}}"""

DEFAULT_REACH_VIEWS = 100


class MatchService:
    """Scores campaigns against an owner and picks the ones to place."""

    def __init__(
        self,
        invoker: ResilientInvoker,
        settings: RuntimeSettings | None = None,
        id_provider: IdProvider | None = None,
        request_id_provider: RequestIdProvider | None = None,
        logger: Any = None,
    ) -> None:
        self._invoker = invoker
        self._settings = settings or get_settings()
        self._ids = id_provider or UuidIdProvider()
        self._req_id = request_id_provider or UuidRequestIdProvider()
        self._weights = ScoringWeights(
            audience=self._settings.audience_weight,
            content=self._settings.content_weight,
            brand=self._settings.brand_weight,
            quality=self._settings.quality_weight,
        )
        self._logger = logger

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score_compatibility(self, campaign: Campaign, owner: ContentOwner) -> float:
        """Compatibility in [0, 1]; model answer when usable, heuristic otherwise."""
        self._invoker.validate_input(campaign, ["campaign_id", "product_name", "category"])
        self._invoker.validate_input(owner, ["owner_id", "title"])

        result = self._invoker.invoke(self._prompt(campaign, owner))
        if result.ok:
            score = parse_unit_interval(result.value)
            if score is not None:
                return score
            reason = "unparseable_score"
        else:
            reason = result.error.code
        if self._logger:
            self._logger.info(
                "score_fallback",
                extra={"campaign_id": campaign.campaign_id, "owner_id": owner.owner_id, "reason": reason},
            )
        return fallback_compatibility(campaign, owner, self._weights)

    def _prompt(self, campaign: Campaign, owner: ContentOwner) -> str:
        return COMPATIBILITY_PROMPT.format(
            product=campaign.product_name,
            brand=campaign.brand_name,
            description=campaign.description,
            category=campaign.category,
            audience=", ".join(campaign.target_audience) or "general",
            requirements="; ".join(campaign.requirements) or "none",
            title=owner.title,
            podcast_description=owner.description,
            concept=owner.concept,
            tone=owner.tone,
            topics=", ".join(owner.topics) or "general",
            quality=owner.quality_score,
            engagement=owner.average_engagement,
        )

    # ------------------------------------------------------------------
    # Campaign analysis and owner profiles
    # ------------------------------------------------------------------

    def analyze_campaign(self, campaign: Campaign) -> CampaignAnalysis:
        """Model-read campaign analysis; built from the campaign's own fields on failure."""
        prompt = ANALYSIS_PROMPT.format(
            brand=campaign.brand_name,
            product=campaign.product_name,
            category=campaign.category,
            audience=", ".join(campaign.target_audience) or "general",
            description=campaign.description,
            budget=campaign.budget,
            currency=campaign.currency,
            requirements="; ".join(campaign.requirements) or "none",
        )
        result = self._invoker.invoke(prompt)
        if result.ok:
            try:
                return CampaignAnalysis.model_validate(parse_json_payload(result.value, self._invoker.service))
            except (AIServiceError, ValidationError) as exc:
                reason = type(exc).__name__
        else:
            reason = result.error.code
        if self._logger:
            self._logger.info("analysis_fallback", extra={"campaign_id": campaign.campaign_id, "reason": reason})
        return fallback_campaign_analysis(campaign)

    def profile_owner(self, owner: ContentOwner) -> OwnerProfile:
        """Model-read advertising profile; built from the owner's figures on failure."""
        prompt = PROFILE_PROMPT.format(
            title=owner.title,
            description=owner.description,
            concept=owner.concept,
            tone=owner.tone,
            topics=", ".join(owner.topics) or "general",
            characters=", ".join(
                f"{c.name} ({c.personality})" if c.personality else c.name for c in owner.characters
            ) or "a single host",
            quality=owner.quality_score,
            engagement=owner.average_engagement,
            views=owner.total_views,
        )
        result = self._invoker.invoke(prompt)
        if result.ok:
            try:
                return OwnerProfile.model_validate(parse_json_payload(result.value, self._invoker.service))
            except (AIServiceError, ValidationError) as exc:
                reason = type(exc).__name__
        else:
            reason = result.error.code
        if self._logger:
            self._logger.info("profile_fallback", extra={"owner_id": owner.owner_id, "reason": reason})
        return fallback_owner_profile(owner)

    # ------------------------------------------------------------------
    # Match details
    # ------------------------------------------------------------------

    @staticmethod
    def estimated_reach(owner: ContentOwner) -> float:
        views = owner.total_views or DEFAULT_REACH_VIEWS
        return views * (1 + owner.average_engagement)

    def suggested_allocation(self, campaign: Campaign, score: float, reach: float) -> float:
        s = self._settings
        multiplier = min(reach / 1000.0, s.allocation_reach_cap)
        return min(
            s.allocation_base_ratio * campaign.budget * score * multiplier,
            s.allocation_cap_ratio * campaign.budget,
        )

    @staticmethod
    def confidence(owner: ContentOwner, score: float) -> float:
        value = score
        if owner.total_views > 1000:
            value += 0.1
        if owner.quality_score > 0.7:
            value += 0.1
        if owner.audience_profile.completion_rate > 0.7:
            value += 0.1
        return clamp(value)

    @staticmethod
    def matching_reasons(campaign: Campaign, owner: ContentOwner, score: float) -> list[str]:
        reasons: list[str] = []
        if score >= 0.8:
            reasons.append("Excellent audience and content alignment")
        elif score >= 0.6:
            reasons.append("Good audience and content alignment")
        else:
            reasons.append("Moderate alignment")
        category = campaign.category.lower()
        if any(category in t.lower() or t.lower() in category for t in owner.topics if t):
            reasons.append(f"Podcast covers {campaign.category} topics")
        if owner.quality_score > 0.7:
            reasons.append("High quality content")
        if owner.average_engagement > 0.7:
            reasons.append("Highly engaged audience")
        return reasons

    def build_match(self, campaign: Campaign, owner: ContentOwner, score: float) -> PodcastMatch:
        reach = self.estimated_reach(owner)
        return PodcastMatch(
            owner_id=owner.owner_id,
            campaign_id=campaign.campaign_id,
            compatibility_score=score,
            estimated_reach=reach,
            suggested_budget_allocation=self.suggested_allocation(campaign, score, reach),
            matching_reasons=self.matching_reasons(campaign, owner, score),
            confidence=self.confidence(owner, score),
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def ad_cap(self, owner: ContentOwner) -> int:
        return min(owner.ad_preferences.max_ads_per_episode, self._settings.max_ads_per_episode)

    def select_campaigns(
        self, owner: ContentOwner, campaigns: list[Campaign], limit: int | None = None
    ) -> list[PodcastMatch]:
        """Accept campaigns in input order while they clear the threshold, up to the ad cap."""
        trace_id = self._req_id.new_request_id()
        cap = self.ad_cap(owner)
        if limit is not None:
            cap = max(0, min(cap, limit))
        if self._logger:
            self._logger.info(
                "match_start",
                extra={"trace_id": trace_id, "owner_id": owner.owner_id, "candidates": len(campaigns), "cap": cap},
            )

        selected: list[PodcastMatch] = []
        decisions: list[dict[str, Any]] = []
        for campaign in campaigns:
            if len(selected) >= cap:
                break
            reason = campaign_reason(campaign, owner)
            if reason != "allowed":
                decisions.append({"campaign_id": campaign.campaign_id, "reason": reason})
                continue
            try:
                score = self.score_compatibility(campaign, owner)
            except AIServiceError as exc:
                decisions.append({"campaign_id": campaign.campaign_id, "reason": f"error: {exc.code}"})
                if self._logger:
                    self._logger.warning(
                        "match_campaign_skipped",
                        extra={"trace_id": trace_id, "campaign_id": campaign.campaign_id, "code": exc.code},
                    )
                continue
            if score >= self._settings.matching_threshold:
                selected.append(self.build_match(campaign, owner, score))
                decisions.append({"campaign_id": campaign.campaign_id, "reason": "allowed", "score": score})
            else:
                decisions.append({"campaign_id": campaign.campaign_id, "reason": "denied: below_threshold", "score": score})

        if self._logger:
            self._logger.info(
                "match_done",
                extra={"trace_id": trace_id, "selected": len(selected), "decisions": decisions},
            )
        return selected

    def create_placement(self, match: PodcastMatch, content_unit_id: str, model_id: str = "") -> AdPlacement:
        """Pending placement with empty ad content for a selected match."""
        return AdPlacement(
            placement_id=self._ids.new_id("plc"),
            campaign_id=match.campaign_id,
            owner_id=match.owner_id,
            content_unit_id=content_unit_id,
            status=PlacementStatus.pending,
            generation_model_id=model_id,
        )

    def find_matches(self, campaign: Campaign, owners: list[ContentOwner]) -> list[PodcastMatch]:
        """Rank monetized owners for one campaign, best first."""
        matches: list[PodcastMatch] = []
        for owner in owners:
            if not owner.monetization_enabled or not can_accept_campaign(campaign, owner):
                continue
            try:
                score = self.score_compatibility(campaign, owner)
            except AIServiceError as exc:
                if self._logger:
                    self._logger.warning(
                        "find_matches_owner_skipped",
                        extra={"campaign_id": campaign.campaign_id, "owner_id": owner.owner_id, "code": exc.code},
                    )
                continue
            if score >= self._settings.matching_threshold:
                matches.append(self.build_match(campaign, owner, score))
        matches.sort(key=lambda m: m.compatibility_score, reverse=True)
        return matches[: self._settings.max_matches_per_campaign]
