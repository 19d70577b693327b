"""Explicit mapping between domain models and persisted documents.

Documents use the camelCase field layout of the document store. Dates are
ISO-8601 strings in UTC.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..domain.sponsorship import (
    AdContent,
    AdPlacement,
    AdPreferences,
    AudienceProfile,
    Campaign,
    Character,
    ContentOwner,
    ContentRule,
    ContentUnit,
    PlacementStatus,
    UserFeedback,
    VerificationCriteria,
    VerificationResult,
    as_utc,
)


def _dt(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return as_utc(datetime.fromisoformat(value)) if value else None


def _present(**fields: Any) -> dict[str, Any]:
    """Drop unset timestamps so model defaults apply."""
    return {key: value for key, value in fields.items() if value is not None}


# ---------------------------------------------------------------------------
# AdPlacement
# ---------------------------------------------------------------------------


def ad_content_to_document(ad: AdContent) -> dict[str, Any]:
    return {
        "script": ad.script,
        "placement": ad.placement,
        "duration": ad.duration,
        "requiredElements": list(ad.required_elements),
        "styleNotes": list(ad.style_notes),
    }


def ad_content_from_document(doc: dict[str, Any]) -> AdContent:
    return AdContent(
        script=doc.get("script", ""),
        placement=doc.get("placement") or "mid-roll",
        duration=doc.get("duration", 30),
        required_elements=doc.get("requiredElements", []),
        style_notes=doc.get("styleNotes", []),
    )


def verification_to_document(result: VerificationResult) -> dict[str, Any]:
    return {
        "verified": result.verified,
        "qualityScore": result.quality_score,
        "complianceScore": result.compliance_score,
        "requirementsMet": list(result.requirements_met),
        "feedback": list(result.feedback),
        "improvementSuggestions": list(result.suggestions),
        "timestamp": _dt(result.verified_at),
    }


def verification_from_document(doc: dict[str, Any]) -> VerificationResult:
    return VerificationResult(
        verified=doc["verified"],
        quality_score=doc["qualityScore"],
        compliance_score=doc["complianceScore"],
        requirements_met=doc.get("requirementsMet", []),
        feedback=doc.get("feedback", []),
        suggestions=doc.get("improvementSuggestions", []),
        **_present(verified_at=_parse_dt(doc.get("timestamp"))),
    )


def feedback_to_document(feedback: UserFeedback) -> dict[str, Any]:
    return {
        "userId": feedback.user_id,
        "rating": feedback.rating,
        "comment": feedback.comment,
        "timestamp": _dt(feedback.timestamp),
    }


def feedback_from_document(doc: dict[str, Any]) -> UserFeedback:
    return UserFeedback(
        user_id=doc["userId"],
        rating=doc["rating"],
        comment=doc.get("comment", ""),
        **_present(timestamp=_parse_dt(doc.get("timestamp"))),
    )


def placement_to_document(placement: AdPlacement) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "id": placement.placement_id,
        "campaignId": placement.campaign_id,
        "ownerId": placement.owner_id,
        "contentUnitId": placement.content_unit_id,
        "adContent": ad_content_to_document(placement.ad_content),
        "status": placement.status.value,
        "qualityScore": placement.quality_score,
        "viewCount": placement.view_count,
        "impressions": placement.impressions,
        "clicks": placement.clicks,
        "conversions": placement.conversions,
        "totalPayout": placement.total_payout,
        "totalPaidOut": placement.total_paid_out,
        "userFeedback": [feedback_to_document(f) for f in placement.user_feedback],
        "generationModelId": placement.generation_model_id,
        "verificationModelId": placement.verification_model_id,
        "createdAt": _dt(placement.created_at),
        "lastViewedAt": _dt(placement.last_viewed_at),
    }
    if placement.verification_result is not None:
        doc["verificationResult"] = verification_to_document(placement.verification_result)
    if placement.verified_at is not None:
        doc["verifiedAt"] = _dt(placement.verified_at)
    return doc


def placement_from_document(doc: dict[str, Any]) -> AdPlacement:
    verification = doc.get("verificationResult")
    return AdPlacement(
        placement_id=doc["id"],
        campaign_id=doc["campaignId"],
        owner_id=doc["ownerId"],
        content_unit_id=doc["contentUnitId"],
        ad_content=ad_content_from_document(doc.get("adContent") or {}),
        status=PlacementStatus(doc.get("status", "pending")),
        quality_score=doc.get("qualityScore", 0.0),
        view_count=doc.get("viewCount", 0),
        impressions=doc.get("impressions", 0),
        clicks=doc.get("clicks", 0),
        conversions=doc.get("conversions", 0),
        total_payout=doc.get("totalPayout", 0.0),
        total_paid_out=doc.get("totalPaidOut", 0),
        verification_result=verification_from_document(verification) if verification else None,
        user_feedback=[feedback_from_document(f) for f in doc.get("userFeedback", [])],
        generation_model_id=doc.get("generationModelId", ""),
        verification_model_id=doc.get("verificationModelId", ""),
        verified_at=_parse_dt(doc.get("verifiedAt")),
        last_viewed_at=_parse_dt(doc.get("lastViewedAt")),
        **_present(created_at=_parse_dt(doc.get("createdAt"))),
    )


# ---------------------------------------------------------------------------
# Campaign
# ---------------------------------------------------------------------------


def campaign_to_document(campaign: Campaign) -> dict[str, Any]:
    criteria = campaign.verification_criteria
    return {
        "id": campaign.campaign_id,
        "brandId": campaign.brand_id,
        "brandName": campaign.brand_name,
        "productName": campaign.product_name,
        "description": campaign.description,
        "category": campaign.category,
        "targetAudience": list(campaign.target_audience),
        "requirements": list(campaign.requirements),
        "budget": campaign.budget,
        "currency": campaign.currency,
        "totalSpent": campaign.spent,
        "payoutPerView": campaign.payout_per_view,
        "duration": campaign.duration_days,
        "status": campaign.status,
        "aiMatchingEnabled": campaign.ai_matching_enabled,
        "contentGenerationRules": [
            {"type": r.type, "value": r.value, "required": r.required} for r in campaign.content_rules
        ],
        "verificationCriteria": {
            "minQualityScore": criteria.min_quality_score,
            "requiredElements": list(criteria.required_elements),
            "complianceChecks": list(criteria.compliance_checks),
            "naturalness": criteria.naturalness,
        },
        "qualityThreshold": campaign.quality_threshold,
        "createdAt": _dt(campaign.created_at),
        "updatedAt": _dt(campaign.updated_at),
    }


def campaign_from_document(doc: dict[str, Any]) -> Campaign:
    criteria = doc.get("verificationCriteria") or {}
    return Campaign(
        campaign_id=doc["id"],
        brand_id=doc["brandId"],
        brand_name=doc["brandName"],
        product_name=doc["productName"],
        description=doc.get("description", ""),
        category=doc["category"],
        target_audience=doc.get("targetAudience", []),
        requirements=doc.get("requirements", []),
        budget=doc["budget"],
        currency=doc.get("currency", "USD"),
        spent=doc.get("totalSpent", 0.0),
        payout_per_view=doc["payoutPerView"],
        duration_days=doc.get("duration", 30),
        status=doc.get("status", "active"),
        ai_matching_enabled=doc.get("aiMatchingEnabled", True),
        content_rules=[ContentRule(**r) for r in doc.get("contentGenerationRules", [])],
        verification_criteria=VerificationCriteria(
            min_quality_score=criteria.get("minQualityScore", 0.7),
            required_elements=criteria.get("requiredElements", []),
            compliance_checks=criteria.get("complianceChecks", []),
            naturalness=criteria.get("naturalness", 0.6),
        ),
        quality_threshold=doc.get("qualityThreshold", 0.7),
        **_present(
            created_at=_parse_dt(doc.get("createdAt")),
            updated_at=_parse_dt(doc.get("updatedAt")),
        ),
    )


# ---------------------------------------------------------------------------
# Content owner (podcast) and content unit (episode)
# ---------------------------------------------------------------------------


def owner_to_document(owner: ContentOwner) -> dict[str, Any]:
    prefs = owner.ad_preferences
    profile = owner.audience_profile
    return {
        "id": owner.owner_id,
        "ownerAddress": owner.owner_address,
        "title": owner.title,
        "description": owner.description,
        "concept": owner.concept,
        "tone": owner.tone,
        "length": owner.length_minutes,
        "characters": [c.model_dump() for c in owner.characters],
        "topics": list(owner.topics),
        "monetizationEnabled": owner.monetization_enabled,
        "adPreferences": {
            "allowedCategories": list(prefs.allowed_categories),
            "blockedBrands": list(prefs.blocked_brands),
            "maxAdsPerEpisode": prefs.max_ads_per_episode,
            "preferredAdPlacement": prefs.preferred_ad_placement,
            "minimumPayoutRate": prefs.minimum_payout_rate,
        },
        "qualityScore": owner.quality_score,
        "averageEngagement": owner.average_engagement,
        "audienceProfile": {
            "demographics": dict(profile.demographics),
            "averageListenTime": profile.average_listen_time,
            "completionRate": profile.completion_rate,
            "shareRate": profile.share_rate,
        },
        "contentThemes": list(owner.content_themes),
        "totalViews": owner.total_views,
        "totalEarnings": owner.total_earnings,
    }


def owner_from_document(doc: dict[str, Any]) -> ContentOwner:
    prefs = doc.get("adPreferences") or {}
    profile = doc.get("audienceProfile") or {}
    return ContentOwner(
        owner_id=doc["id"],
        owner_address=doc.get("ownerAddress", ""),
        title=doc["title"],
        description=doc.get("description", ""),
        concept=doc.get("concept", ""),
        tone=doc.get("tone", "casual"),
        length_minutes=doc.get("length", 30),
        characters=[Character(**c) for c in doc.get("characters", [])],
        topics=doc.get("topics", []),
        monetization_enabled=doc.get("monetizationEnabled", False),
        ad_preferences=AdPreferences(
            allowed_categories=prefs.get("allowedCategories", []),
            blocked_brands=prefs.get("blockedBrands", []),
            max_ads_per_episode=prefs.get("maxAdsPerEpisode", 2),
            preferred_ad_placement=prefs.get("preferredAdPlacement"),
            minimum_payout_rate=prefs.get("minimumPayoutRate", 0.001),
        ),
        quality_score=doc.get("qualityScore", 0.5),
        average_engagement=doc.get("averageEngagement", 0.5),
        audience_profile=AudienceProfile(
            demographics=profile.get("demographics", {}),
            average_listen_time=profile.get("averageListenTime", 0.0),
            completion_rate=profile.get("completionRate", 0.0),
            share_rate=profile.get("shareRate", 0.0),
        ),
        content_themes=doc.get("contentThemes", []),
        total_views=doc.get("totalViews", 0),
        total_earnings=doc.get("totalEarnings", 0.0),
    )


def unit_to_document(unit: ContentUnit) -> dict[str, Any]:
    return {
        "id": unit.unit_id,
        "ownerId": unit.owner_id,
        "title": unit.title,
        "summary": unit.summary,
        "script": unit.script,
        "totalViews": unit.total_views,
        "hasAds": unit.has_ads,
        "adCount": unit.ad_count,
        "totalEarnings": unit.total_earnings,
        "fraudFlagged": unit.fraud_flagged,
        "createdAt": _dt(unit.created_at),
    }


def unit_from_document(doc: dict[str, Any]) -> ContentUnit:
    return ContentUnit(
        unit_id=doc["id"],
        owner_id=doc["ownerId"],
        title=doc["title"],
        summary=doc.get("summary", ""),
        script=doc.get("script", ""),
        total_views=doc.get("totalViews", 0),
        has_ads=doc.get("hasAds", False),
        ad_count=doc.get("adCount", 0),
        total_earnings=doc.get("totalEarnings", 0.0),
        fraud_flagged=doc.get("fraudFlagged", False),
        **_present(created_at=_parse_dt(doc.get("createdAt"))),
    )
