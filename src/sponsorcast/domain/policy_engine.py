"""Policy: non-negotiable campaign eligibility rules.

Pure functions over domain models. Audit reasons follow the
``'allowed'`` / ``'denied: <reason>'`` convention.
"""

from __future__ import annotations

from .sponsorship import Campaign, ContentOwner


def has_payable_budget(campaign: Campaign) -> bool:
    """True if the remaining budget covers at least one exposure."""
    return campaign.remaining_budget >= campaign.payout_per_view


def _brand_blocked(campaign: Campaign, owner: ContentOwner) -> bool:
    blocked = {b.lower() for b in owner.ad_preferences.blocked_brands}
    return campaign.brand_id.lower() in blocked or campaign.brand_name.lower() in blocked


def _category_allowed(campaign: Campaign, owner: ContentOwner) -> bool:
    allowed = [c.lower() for c in owner.ad_preferences.allowed_categories]
    return not allowed or campaign.category.lower() in allowed


def campaign_reason(campaign: Campaign, owner: ContentOwner) -> str:
    """Return audit reason for pairing *campaign* with *owner*."""
    if not campaign.is_active:
        return f"denied: status_{campaign.status}"
    if not campaign.ai_matching_enabled:
        return "denied: matching_disabled"
    if not has_payable_budget(campaign):
        return "denied: budget_exhausted"
    return owner_reason(campaign, owner)


def owner_reason(campaign: Campaign, owner: ContentOwner) -> str:
    """Audit reason for the owner's own preferences only."""
    if _brand_blocked(campaign, owner):
        return "denied: blocked_brand"
    if not _category_allowed(campaign, owner):
        return "denied: category_not_allowed"
    if campaign.payout_per_view < owner.ad_preferences.minimum_payout_rate:
        return "denied: payout_below_minimum"
    return "allowed"


def can_accept_campaign(campaign: Campaign, owner: ContentOwner) -> bool:
    return owner_reason(campaign, owner) == "allowed"
