"""Deterministic scoring heuristics.

Used whenever the generative collaborator is unavailable or returns
something unusable. Every function here is pure, and every score it
produces lies in [0, 1].
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .sponsorship import (
    Campaign,
    CampaignAnalysis,
    ComplianceResult,
    ContentOwner,
    EngagementSnapshot,
    OwnerProfile,
    QualityScore,
)

AD_START = "[AD START]"
AD_END = "[AD END]"

TRANSITION_PHRASES: tuple[str, ...] = (
    "speaking of",
    "by the way",
    "actually",
    "you know",
    "also",
    "meanwhile",
    "before we continue",
    "quick note",
    "while we're on",
)

MISLEADING_PHRASES: tuple[str, ...] = ("guaranteed", "miracle", "instant", "get rich quick")

_RED_FLAG_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (r"guaranteed", r"miracle", r"instant.*money", r"get.*rich.*quick", r"100%.*effective")
)
_DISCLOSURE_RE = re.compile(r"\b(sponsor\w*|advertisement\w*|ads?|partner\w*)\b", re.IGNORECASE)
_PROMO_RE = re.compile(r"\b(buy|purchase|order now|limited time)\b", re.IGNORECASE)
_WORD_RE = re.compile(r"[a-z0-9']+")

STOP_WORDS = frozenset({"the", "and", "for", "with", "that", "this"})

_PROFESSIONAL_CATEGORIES = frozenset({"technology", "finance", "education"})
_PROFESSIONAL_TONES = frozenset({"professional", "educational", "informative"})
_CASUAL_CATEGORIES = frozenset({"lifestyle", "entertainment", "food"})
_CASUAL_TONES = frozenset({"casual", "entertaining"})

MAX_PROMOTIONAL_LENGTH = 1000
REQUIREMENT_TERM_RATIO = 0.6


@dataclass(frozen=True)
class ScoringWeights:
    """Blend weights for the compatibility score."""

    audience: float = 0.4
    content: float = 0.3
    brand: float = 0.2
    quality: float = 0.1


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def significant_words(text: str, min_length: int = 4) -> set[str]:
    return {w for w in _WORD_RE.findall(text.lower()) if len(w) >= min_length}


def jaccard(left: set[str], right: set[str]) -> float:
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


# ---------------------------------------------------------------------------
# Compatibility
# ---------------------------------------------------------------------------


def audience_alignment(campaign: Campaign, owner: ContentOwner) -> float:
    """Share of the campaign's audience tags found in the owner's topics or description."""
    tags = [t.strip().lower() for t in campaign.target_audience if t.strip()]
    if not tags:
        return 0.0
    haystack = " ".join([*owner.topics, owner.description]).lower()
    hits = sum(1 for tag in tags if tag in haystack)
    return hits / len(tags)


def content_relevance(campaign: Campaign, owner: ContentOwner) -> float:
    score = 0.0
    category = campaign.category.strip().lower()
    topics = [t.strip().lower() for t in owner.topics if t.strip()]
    if category and any(category in t or t in category for t in topics):
        score += 0.5
    score += jaccard(significant_words(campaign.description), significant_words(owner.description))
    return clamp(score)


def tone_compatibility(category: str, tone: str) -> float:
    category = category.strip().lower()
    tone = tone.strip().lower()
    if category in _PROFESSIONAL_CATEGORIES:
        return 0.8 if tone in _PROFESSIONAL_TONES else 0.4
    if category in _CASUAL_CATEGORIES:
        return 0.8 if tone in _CASUAL_TONES else 0.4
    return 0.6


def brand_fit(campaign: Campaign, owner: ContentOwner) -> float:
    prefs = owner.ad_preferences
    blocked = {b.lower() for b in prefs.blocked_brands}
    if campaign.brand_id.lower() in blocked or campaign.brand_name.lower() in blocked:
        return 0.0
    if prefs.allowed_categories:
        allowed = {c.lower() for c in prefs.allowed_categories}
        return 1.0 if campaign.category.lower() in allowed else 0.2
    return tone_compatibility(campaign.category, owner.tone)


def quality_engagement(owner: ContentOwner) -> float:
    return clamp(owner.quality_score * owner.average_engagement)


def fallback_compatibility(
    campaign: Campaign,
    owner: ContentOwner,
    weights: ScoringWeights | None = None,
) -> float:
    """Weighted blend of the four heuristic components."""
    w = weights or ScoringWeights()
    score = (
        w.audience * audience_alignment(campaign, owner)
        + w.content * content_relevance(campaign, owner)
        + w.brand * brand_fit(campaign, owner)
        + w.quality * quality_engagement(owner)
    )
    return clamp(score)


# ---------------------------------------------------------------------------
# Content heuristics
# ---------------------------------------------------------------------------


def has_ad_markers(content: str) -> bool:
    return AD_START in content and AD_END in content


def has_transition(content: str) -> bool:
    lower = content.lower()
    return any(phrase in lower for phrase in TRANSITION_PHRASES)


def has_red_flags(content: str) -> bool:
    return any(p.search(content) for p in _RED_FLAG_PATTERNS)


def literal_tokens(requirement: str) -> list[str]:
    """Codes and identifiers (upper-case or digit-bearing tokens) that must appear verbatim."""
    tokens = [t.strip(".,;:!?\"'()") for t in requirement.split()]
    return [t for t in tokens if t and (t.isupper() or any(c.isdigit() for c in t))]


def requirement_met(content: str, requirement: str) -> bool:
    """Term-coverage check for a single requirement."""
    lower = content.lower()
    for literal in literal_tokens(requirement):
        if not re.search(rf"(?<!\w){re.escape(literal.lower())}(?!\w)", lower):
            return False
    terms = [w for w in significant_words(requirement) if w not in STOP_WORDS]
    if not terms:
        return requirement.strip().lower() in lower
    found = sum(1 for term in terms if term in lower)
    return found / len(terms) >= REQUIREMENT_TERM_RATIO


def fallback_requirements(content: str, requirements: list[str]) -> list[bool]:
    return [requirement_met(content, r) for r in requirements]


def fallback_naturalness(content: str) -> float:
    score = 0.5
    if has_ad_markers(content):
        score += 0.1
    if has_transition(content):
        score += 0.2
    if ":" in content and "?" in content:
        score += 0.1
    if len(_PROMO_RE.findall(content)) > 2:
        score -= 0.2
    return clamp(score)


def fallback_quality(content: str, requirements: list[str]) -> QualityScore:
    markers = has_ad_markers(content)
    if markers and has_transition(content):
        naturalness = 0.7
    elif not markers:
        naturalness = 0.3
    else:
        naturalness = 0.5

    met = fallback_requirements(content, requirements)
    ratio = sum(met) / len(met) if met else 1.0
    relevance = 0.7 if ratio > 0.7 else 0.5
    engagement = 0.6 if 100 < len(content) < 500 else 0.5
    compliance = 0.3 if has_red_flags(content) else 0.7
    overall = (naturalness + relevance + engagement + compliance) / 4

    return QualityScore(
        overall=overall,
        naturalness=naturalness,
        relevance=relevance,
        engagement=engagement,
        compliance=compliance,
        breakdown={
            "ad_integration": naturalness,
            "character_consistency": 0.6,
            "flow_disruption": 1.0 - naturalness,
            "message_clarity": engagement,
            "call_to_action": relevance,
        },
    )


def severity_for(violation_count: int) -> str:
    if violation_count > 2:
        return "high"
    if violation_count > 0:
        return "medium"
    return "low"


def fallback_compliance(content: str) -> ComplianceResult:
    violations: list[str] = []
    suggestions: list[str] = []
    lower = content.lower()

    for phrase in MISLEADING_PHRASES:
        if phrase in lower:
            violations.append(f'Potentially misleading claim: "{phrase}"')
            suggestions.append(f'Rephrase claims about "{phrase}" to be accurate')

    if not _DISCLOSURE_RE.search(content):
        violations.append("Missing advertising disclosure")
        suggestions.append("Add a clear disclosure that this is sponsored content")

    if len(content) > MAX_PROMOTIONAL_LENGTH:
        violations.append("Content may be overly promotional")
        suggestions.append("Shorten the promotional content")

    return ComplianceResult(
        compliant=not violations,
        violations=violations,
        severity=severity_for(len(violations)),
        suggestions=suggestions,
    )


def fallback_campaign_analysis(campaign: Campaign) -> CampaignAnalysis:
    return CampaignAnalysis(
        key_features=[campaign.product_name, campaign.category],
        target_demographics=list(campaign.target_audience),
        content_requirements=list(campaign.requirements),
        budget_efficiency=0.6,
        competitive_analysis=[f"{campaign.category} market analysis needed"],
    )


def fallback_owner_profile(owner: ContentOwner) -> OwnerProfile:
    """Profile from the owner's own figures, with neutral values where they are unset."""
    return OwnerProfile(
        content_themes=list(owner.topics),
        audience_demographics=["General audience"],
        engagement_metrics=EngagementSnapshot(
            average_views=owner.total_views or 100,
            completion_rate=owner.audience_profile.completion_rate or 0.5,
            interaction_rate=owner.average_engagement or 0.3,
        ),
        monetization_readiness=owner.quality_score or 0.5,
        brand_compatibility=[owner.topics[0] if owner.topics else "General"],
    )
