"""GenerationService: drafts ad copy and merges it into episode scripts."""

from __future__ import annotations

import re
from typing import Any

from ..config.runtime import RuntimeSettings, get_settings
from ..domain.errors import MALFORMED_OUTPUT, AIServiceError, ComplianceViolation
from ..domain.scoring import has_ad_markers
from ..domain.script_markers import insert_ad_block
from ..domain.sponsorship import AD_SLOTS, AdContent, Campaign, ContentOwner
from .compliance import ComplianceService
from .invocation import ResilientInvoker, parse_json_payload, strip_code_fences

_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")

AD_CONTENT_PROMPT = """You are writing a sponsored segment for a podcast, read by its own hosts.

PODCAST:
- Title: {title}
- Concept: {concept}
- Tone: {tone}
- Topics: {topics}
- Hosts: {characters}

CAMPAIGN:
- Brand: {brand}
- Product: {product}
- Description: {description}
- Category: {category}
- Target audience: {audience}
- Requirements: {requirements}
- Content rules: {rules}

Write a {min_duration}-{max_duration} second ad read that sounds like the hosts, discloses the
sponsorship, avoids exaggerated or misleading claims, and fits the {placement} slot.

Return only a JSON object:
{{"script": "...", "placement": "intro|mid-roll|outro|natural", "duration": 30,
  "requiredElements": ["..."], "styleNotes": ["..."]}}"""

EMBED_PROMPT = """You are a podcast script editor. Integrate the advertisement into the script so
the conversation keeps flowing naturally.

ORIGINAL SCRIPT:
{script}

AD CONTENT:
{ad}

PLACEMENT: {placement}
STYLE NOTES: {style}

Keep the hosts' voices, add transition phrases where needed, and do not change the rest of the
script. Wrap the ad section between lines reading [AD START] and [AD END].
Return the complete script only."""

VARIATION_PROMPT = """Rewrite this podcast ad read as variation #{index}. Keep the same product facts,
required elements ({required}) and delivery style ({style}); change wording and structure.

AD:
{script}

Return only the rewritten ad text."""

STYLE_PROMPT = """Adapt this advertising copy to the voice of the podcast below without changing
its claims or its sponsorship disclosure.

PODCAST:
- Title: {title}
- Tone: {tone}
- Hosts: {characters}

COPY:
{content}

Return only the adapted copy."""


def clean_script(text: str) -> str:
    """Strip Markdown fences and collapse runs of blank lines."""
    return _EXCESS_NEWLINES_RE.sub("\n\n", strip_code_fences(text)).strip()


class GenerationService:
    """Produces compliant AdContent and merges it into scripts."""

    def __init__(
        self,
        invoker: ResilientInvoker,
        compliance: ComplianceService,
        settings: RuntimeSettings | None = None,
        logger: Any = None,
    ) -> None:
        self._invoker = invoker
        self._compliance = compliance
        self._settings = settings or get_settings()
        self._logger = logger

    @property
    def model_id(self) -> str:
        return self._invoker.model_id

    @staticmethod
    def preferred_placement(owner: ContentOwner) -> str:
        if owner.ad_preferences.preferred_ad_placement:
            return owner.ad_preferences.preferred_ad_placement
        if owner.length_minutes < 15:
            return "intro"
        if owner.length_minutes > 45:
            return "mid-roll"
        return "natural"

    # ------------------------------------------------------------------
    # Ad copy
    # ------------------------------------------------------------------

    def generate_ad_content(self, owner: ContentOwner, campaign: Campaign) -> AdContent:
        """Draft ad copy for *campaign* in *owner*'s voice.

        Raises AIServiceError when the model fails or answers with an unusable
        payload, and ComplianceViolation when the draft fails review.
        """
        self._invoker.validate_input(owner, ["owner_id", "title", "tone"])
        self._invoker.validate_input(campaign, ["campaign_id", "brand_name", "product_name"])

        text = self._invoker.generate(self._ad_prompt(owner, campaign))
        ad = self.parse_ad_content(text)

        review = self._compliance.validate(ad.script)
        if not review.compliant:
            if self._logger:
                self._logger.warning(
                    "ad_content_noncompliant",
                    extra={
                        "campaign_id": campaign.campaign_id,
                        "owner_id": owner.owner_id,
                        "severity": review.severity,
                        "violations": review.violations,
                    },
                )
            raise ComplianceViolation(campaign.campaign_id, review.violations)
        return ad

    def _ad_prompt(self, owner: ContentOwner, campaign: Campaign) -> str:
        characters = ", ".join(
            f"{c.name} ({c.personality})" if c.personality else c.name for c in owner.characters
        )
        rules = "; ".join(
            f"{r.type}={r.value}" + (" (required)" if r.required else "") for r in campaign.content_rules
        )
        return AD_CONTENT_PROMPT.format(
            title=owner.title,
            concept=owner.concept,
            tone=owner.tone,
            topics=", ".join(owner.topics) or "general",
            characters=characters or "a single host",
            brand=campaign.brand_name,
            product=campaign.product_name,
            description=campaign.description,
            category=campaign.category,
            audience=", ".join(campaign.target_audience) or "general",
            requirements="; ".join(campaign.requirements) or "none",
            rules=rules or "none",
            min_duration=self._settings.min_ad_duration_seconds,
            max_duration=self._settings.max_ad_duration_seconds,
            placement=self.preferred_placement(owner),
        )

    def parse_ad_content(self, text: str) -> AdContent:
        """Validate a model answer into AdContent or raise MALFORMED_OUTPUT."""
        service = self._invoker.service
        payload = parse_json_payload(text, service)

        script = payload.get("script")
        if not isinstance(script, str) or not script.strip():
            raise AIServiceError(service, MALFORMED_OUTPUT, "ad content has no script", retryable=False)
        if "placement" not in payload:
            raise AIServiceError(service, MALFORMED_OUTPUT, "ad content has no placement", retryable=False)

        placement = payload["placement"] or "mid-roll"
        if placement not in AD_SLOTS:
            raise AIServiceError(service, MALFORMED_OUTPUT, f"unknown placement {placement!r}", retryable=False)

        duration = payload.get("duration")
        if duration in (None, ""):
            duration = 30
        try:
            duration = int(float(duration))
        except (TypeError, ValueError):
            raise AIServiceError(service, MALFORMED_OUTPUT, f"bad duration {duration!r}", retryable=False)
        duration = max(self._settings.min_ad_duration_seconds, min(self._settings.max_ad_duration_seconds, duration))

        return AdContent(
            script=script.strip(),
            placement=placement,
            duration=duration,
            required_elements=[str(e) for e in payload.get("requiredElements") or []],
            style_notes=[str(n) for n in payload.get("styleNotes") or []],
        )

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    def embed_ad_in_script(self, script: str, ad: AdContent) -> str:
        """Merge *ad* into *script*; marked model output or the line-index fallback."""
        prompt = EMBED_PROMPT.format(
            script=script,
            ad=ad.script,
            placement=ad.placement,
            style=", ".join(ad.style_notes) or "natural",
        )
        result = self._invoker.invoke(prompt)
        if result.ok:
            merged = clean_script(result.value)
            if has_ad_markers(merged):
                return merged
            reason = "markers_missing"
        else:
            reason = result.error.code
        if self._logger:
            self._logger.info("embed_fallback", extra={"placement": ad.placement, "reason": reason})
        return insert_ad_block(script, ad)

    # ------------------------------------------------------------------
    # Variations and style
    # ------------------------------------------------------------------

    def generate_variations(self, base: AdContent, count: int) -> list[AdContent]:
        """Up to *count* rewrites of *base*; failed rewrites are skipped."""
        variations: list[AdContent] = []
        for index in range(1, count + 1):
            prompt = VARIATION_PROMPT.format(
                index=index,
                required=", ".join(base.required_elements) or "none",
                style=", ".join(base.style_notes) or "natural",
                script=base.script,
            )
            result = self._invoker.invoke(prompt)
            if not result.ok:
                if self._logger:
                    self._logger.warning("variation_skipped", extra={"index": index, "code": result.error.code})
                continue
            text = clean_script(result.value)
            if not text:
                continue
            variations.append(base.model_copy(update={"script": text}, deep=True))
        return variations

    def optimize_for_style(self, content: str, owner: ContentOwner) -> str:
        """Adapt copy to the owner's voice; returns *content* unchanged on failure."""
        prompt = STYLE_PROMPT.format(
            title=owner.title,
            tone=owner.tone,
            characters=", ".join(c.name for c in owner.characters) or "a single host",
            content=content,
        )
        result = self._invoker.invoke(prompt)
        if not result.ok:
            return content
        text = clean_script(result.value)
        return text or content
