"""EpisodePipeline: generate an episode, then try to monetize it.

Ad augmentation is best effort. Per-campaign generation failures skip that
campaign; anything else discards the augmentation and the plain episode is
stored instead.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..domain.errors import AIServiceError, ComplianceViolation, LedgerError
from ..domain.placement_lifecycle import apply_verdict
from ..domain.sponsorship import AdPlacement, Campaign, ContentOwner, ContentUnit, VerificationResult
from ..ports.id_gen import IdProvider, UuidIdProvider
from ..ports.ledger import Ledger
from ..ports.repository import Repository
from .generation_service import GenerationService, clean_script
from .invocation import ResilientInvoker, parse_json_payload
from .match_service import MatchService
from .verification_service import VerificationService

EPISODE_PROMPT = """You are a podcast script writer.

Podcast title: {title}
Concept: {concept}
Tone: {tone}
Topics: {topics}

Characters:
{characters}

Previous episodes (avoid repeating them):
{history}
{hint}
Write a new episode of roughly {length} minutes. Keep every character's personality consistent,
and leave natural conversation breaks with phrases like "speaking of..." or "by the way...".

Return only a JSON object with:
- "title": a catchy episode title
- "summary": a one-sentence summary
- "script": the full script, one "<CHARACTER_NAME>: <DIALOGUE>" line per turn
- "characters": an array of {{"name", "voice"}} objects"""

HISTORY_SIZE = 5

# a passing verdict waiting for the ledger commit
Approval = tuple[AdPlacement, Campaign, VerificationResult]


@dataclass(frozen=True)
class EpisodeOptions:
    """Per-request knobs for the pipeline."""

    include_ads: bool = True
    max_ads: int | None = None
    verify_immediately: bool = False
    topic_hint: str | None = None


@dataclass(frozen=True)
class EpisodeOutcome:
    """What the pipeline stored."""

    unit: ContentUnit
    placements: list[AdPlacement] = field(default_factory=list)
    ad_free_fallback: bool = False
    skipped_campaigns: list[str] = field(default_factory=list)


class EpisodePipeline:
    """Orchestrates base generation, matching, ad generation and verification."""

    def __init__(
        self,
        repository: Repository,
        invoker: ResilientInvoker,
        matcher: MatchService,
        generator: GenerationService,
        verifier: VerificationService,
        ledger: Ledger | None = None,
        id_provider: IdProvider | None = None,
        lock: threading.Lock | None = None,
        logger: Any = None,
    ) -> None:
        self._repo = repository
        self._invoker = invoker
        self._matcher = matcher
        self._generator = generator
        self._verifier = verifier
        self._ledger = ledger
        self._ids = id_provider or UuidIdProvider()
        self._lock = lock or threading.Lock()
        self._logger = logger

    def run(self, owner_id: str, options: EpisodeOptions | None = None) -> EpisodeOutcome:
        options = options or EpisodeOptions()
        owner = self._repo.get_owner(owner_id)
        if owner is None:
            raise LookupError(f"unknown owner {owner_id}")

        base = self.generate_base_episode(owner, options.topic_hint)
        if not (owner.monetization_enabled and options.include_ads):
            self._repo.save_unit(base)
            return EpisodeOutcome(unit=base)

        try:
            unit, placements, skipped, approvals = self._augment(owner, base.model_copy(deep=True), options)
        except Exception:
            if self._logger:
                self._logger.exception(
                    "ad_augmentation_failed", extra={"owner_id": owner.owner_id, "unit_id": base.unit_id}
                )
            self._repo.save_unit(base)
            return EpisodeOutcome(unit=base, ad_free_fallback=True)

        with self._lock:
            self._repo.save_episode_with_placements(unit, placements)
            for placement, campaign, result in approvals:
                self._commit_approval(placement, campaign, result)
        if self._logger:
            self._logger.info(
                "episode_stored",
                extra={
                    "owner_id": owner.owner_id,
                    "unit_id": unit.unit_id,
                    "ads": len(placements),
                    "skipped": skipped,
                },
            )
        return EpisodeOutcome(unit=unit, placements=placements, skipped_campaigns=skipped)

    # ------------------------------------------------------------------
    # Base episode
    # ------------------------------------------------------------------

    def generate_base_episode(self, owner: ContentOwner, topic_hint: str | None = None) -> ContentUnit:
        """Generate an ad-free episode; raises AIServiceError if the model is unavailable."""
        history = self._repo.list_units(owner_id=owner.owner_id, limit=HISTORY_SIZE)
        prompt = EPISODE_PROMPT.format(
            title=owner.title,
            concept=owner.concept,
            tone=owner.tone,
            topics=", ".join(owner.topics) or "general",
            characters="\n".join(
                f"- {c.name}: {c.personality} (voice: {c.voice})" for c in owner.characters
            ) or "- a single host",
            history="\n".join(f"- {u.title}: {u.summary}" for u in history) or "None",
            hint=f"\nFocus this episode on: {topic_hint}\n" if topic_hint else "",
            length=owner.length_minutes,
        )
        text = self._invoker.generate(prompt)
        try:
            payload = parse_json_payload(text, self._invoker.service)
        except AIServiceError:
            payload = {"script": clean_script(text), "summary": "A new episode."}

        return ContentUnit(
            unit_id=self._ids.new_id("ep"),
            owner_id=owner.owner_id,
            title=str(payload.get("title") or "Untitled Episode"),
            summary=str(payload.get("summary") or ""),
            script=str(payload.get("script") or ""),
        )

    # ------------------------------------------------------------------
    # Ad augmentation
    # ------------------------------------------------------------------

    def _augment(
        self,
        owner: ContentOwner,
        unit: ContentUnit,
        options: EpisodeOptions,
    ) -> tuple[ContentUnit, list[AdPlacement], list[str], list[Approval]]:
        campaigns = self._repo.list_campaigns(status="active")
        by_id: dict[str, Campaign] = {c.campaign_id: c for c in campaigns}
        matches = self._matcher.select_campaigns(owner, campaigns, limit=options.max_ads)

        script = unit.script
        accepted: list[tuple[AdPlacement, Campaign]] = []
        skipped: list[str] = []
        for match in matches:
            campaign = by_id[match.campaign_id]
            placement = self._matcher.create_placement(match, unit.unit_id, model_id=self._generator.model_id)
            try:
                ad = self._generator.generate_ad_content(owner, campaign)
                merged = self._generator.embed_ad_in_script(script, ad)
            except (AIServiceError, ComplianceViolation) as exc:
                skipped.append(campaign.campaign_id)
                if self._logger:
                    self._logger.warning(
                        "campaign_ad_skipped",
                        extra={
                            "campaign_id": campaign.campaign_id,
                            "unit_id": unit.unit_id,
                            "error": type(exc).__name__,
                        },
                    )
                continue
            placement.ad_content = ad
            script = merged
            accepted.append((placement, campaign))

        unit.script = script
        unit.has_ads = bool(accepted)
        unit.ad_count = len(accepted)

        approvals: list[Approval] = []
        if options.verify_immediately:
            for placement, campaign in accepted:
                result = self._verifier.verify(script, campaign)
                if result.verified:
                    approvals.append((placement, campaign, result))
                else:
                    apply_verdict(placement, result, model_id=self._verifier.model_id)
        return unit, [p for p, _ in accepted], skipped, approvals

    def _commit_approval(self, placement: AdPlacement, campaign: Campaign, result: VerificationResult) -> None:
        """Record an approval on the ledger, then on the stored placement."""
        if self._ledger is not None:
            try:
                self._ledger.verify_placement(placement.placement_id, campaign.campaign_id, result.quality_score)
            except LedgerError as exc:
                # stays pending; the verification sweep retries it
                if self._logger:
                    self._logger.warning(
                        "ledger_verify_failed",
                        extra={"placement_id": placement.placement_id, "code": exc.code},
                    )
                return
        apply_verdict(placement, result, model_id=self._verifier.model_id)
        self._repo.save_placement(placement)
