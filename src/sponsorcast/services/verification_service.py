"""VerificationService: independent judgment of merged episode content."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ..config.runtime import RuntimeSettings, get_settings
from ..domain.errors import AIServiceError
from ..domain.scoring import fallback_naturalness, fallback_quality, requirement_met
from ..domain.sponsorship import Campaign, ComplianceResult, QualityScore, VerificationResult
from .compliance import ComplianceService
from .invocation import ResilientInvoker, parse_bool_answer, parse_json_payload, parse_unit_interval

QUALITY_PROMPT = """Analyze the quality of this podcast episode content with embedded advertising.

CONTENT:
{content}

REQUIREMENTS:
{requirements}

Score each dimension from 0.0 to 1.0: naturalness of the ad integration, relevance to the
episode and audience, engagement, compliance with advertising standards, and overall quality.

Return only a JSON object:
{{"overall": 0.85, "naturalness": 0.9, "relevance": 0.8, "engagement": 0.85, "compliance": 0.9,
  "breakdown": {{"ad_integration": 0.9, "character_consistency": 0.8, "flow_disruption": 0.1,
  "message_clarity": 0.9, "call_to_action": 0.8}}}}"""

REQUIREMENT_PROMPT = """Check whether this requirement is met in the podcast content.

REQUIREMENT: {requirement}

CONTENT:
{content}

Return only "true" or "false"."""

NATURALNESS_PROMPT = """Score how naturally the advertising integrates with this podcast's style.

PODCAST STYLE: {style}

CONTENT:
{content}

1.0 is seamless, 0.6 has noticeable ad moments, 0.2 obviously disrupts the flow.
Return only a decimal number between 0 and 1."""

SUGGESTION_FLOOR = 0.7


def build_feedback(
    quality: QualityScore,
    compliance: ComplianceResult,
    requirements_met: list[bool],
    floor: float = 0.6,
) -> list[str]:
    feedback: list[str] = []
    if quality.overall >= 0.8:
        feedback.append("Excellent overall quality with natural ad integration")
    elif quality.overall >= 0.6:
        feedback.append("Good quality with room for improvement in naturalness")
    else:
        feedback.append("Quality needs improvement: ad integration feels forced")

    if quality.naturalness < floor:
        feedback.append("Ad transitions could be smoother and more natural")
    if quality.relevance < floor:
        feedback.append("Ad content could be more relevant to the episode topic")
    if quality.engagement < floor:
        feedback.append("Ad content could be more engaging for the audience")
    if not compliance.compliant:
        feedback.append("Compliance issues detected: " + ", ".join(compliance.violations))

    unmet = sum(1 for met in requirements_met if not met)
    if unmet:
        feedback.append(f"{unmet} campaign requirement(s) not fully met")
    return feedback


def build_suggestions(quality: QualityScore, compliance: ComplianceResult) -> list[str]:
    suggestions: list[str] = []
    if quality.naturalness < SUGGESTION_FLOOR:
        suggestions.append("Bridge into and out of the ad with natural conversation")
        suggestions.append("Keep host personalities consistent during the ad segment")
    if quality.relevance < SUGGESTION_FLOOR:
        suggestions.append("Align the ad with the episode's topics and audience interests")
        suggestions.append("Use examples that relate to the episode theme")
    if quality.engagement < SUGGESTION_FLOOR:
        suggestions.append("Make the ad more conversational and less promotional")
        suggestions.append("Include a personal experience or story")
    suggestions.extend(compliance.suggestions)

    if quality.breakdown.get("flow_disruption", 0.0) > 0.3:
        suggestions.append("Reduce flow disruption around the ad break")
    if quality.breakdown.get("message_clarity", 1.0) < SUGGESTION_FLOOR:
        suggestions.append("Clarify the advertising message while keeping it natural")
    return suggestions


class VerificationService:
    """Re-scores quality, compliance and requirements, then issues a verdict."""

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

    def analyze_content_quality(self, content: str, requirements: list[str]) -> QualityScore:
        prompt = QUALITY_PROMPT.format(content=content, requirements="\n".join(requirements) or "none")
        result = self._invoker.invoke(prompt)
        if result.ok:
            try:
                return QualityScore.model_validate(parse_json_payload(result.value, self._invoker.service))
            except (AIServiceError, ValidationError) as exc:
                reason = type(exc).__name__
        else:
            reason = result.error.code
        if self._logger:
            self._logger.info("quality_fallback", extra={"reason": reason})
        return fallback_quality(content, requirements)

    def validate_compliance(self, content: str) -> ComplianceResult:
        return self._compliance.validate(content)

    def check_requirements(self, content: str, requirements: list[str]) -> list[bool]:
        """One boolean per requirement, in order."""
        results: list[bool] = []
        for requirement in requirements:
            result = self._invoker.invoke(REQUIREMENT_PROMPT.format(requirement=requirement, content=content))
            answer = parse_bool_answer(result.value) if result.ok else None
            if answer is None:
                answer = requirement_met(content, requirement)
            results.append(answer)
        return results

    def score_naturalness(self, content: str, style: str) -> float:
        result = self._invoker.invoke(NATURALNESS_PROMPT.format(style=style, content=content))
        score = parse_unit_interval(result.value) if result.ok else None
        if score is None:
            return fallback_naturalness(content)
        return score

    def verify(self, content: str, campaign: Campaign) -> VerificationResult:
        """Full verdict for merged *content* against *campaign*'s requirements."""
        requirements = [*campaign.requirements, *campaign.verification_criteria.required_elements]
        quality = self.analyze_content_quality(content, requirements)
        compliance = self.validate_compliance(content)
        requirements_met = self.check_requirements(content, requirements)

        verified = (
            quality.overall >= self._settings.min_quality_score
            and compliance.compliant
            and all(requirements_met)
        )
        if self._logger:
            self._logger.info(
                "verification_done",
                extra={
                    "campaign_id": campaign.campaign_id,
                    "verified": verified,
                    "overall": quality.overall,
                    "compliant": compliance.compliant,
                    "requirements_met": requirements_met,
                },
            )
        return VerificationResult(
            verified=verified,
            quality_score=quality.overall,
            compliance_score=1.0 if compliance.compliant else 0.5,
            requirements_met=requirements_met,
            feedback=build_feedback(quality, compliance, requirements_met, floor=self._settings.min_naturalness_score),
            suggestions=build_suggestions(quality, compliance),
        )
