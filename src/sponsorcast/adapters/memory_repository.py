"""In-memory document repository.

Keeps every record as a persisted-layout document, so reads always return
fresh model instances and callers must save to make a change visible.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime
from pathlib import Path

from ..domain.sponsorship import AdPlacement, Campaign, ContentOwner, ContentUnit, PlacementStatus
from .documents import (
    campaign_from_document,
    campaign_to_document,
    owner_from_document,
    owner_to_document,
    placement_from_document,
    placement_to_document,
    unit_from_document,
    unit_to_document,
)


class InMemoryRepository:
    """Thread-safe dict-backed implementation of the Repository port."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._campaigns: dict[str, dict] = {}
        self._owners: dict[str, dict] = {}
        self._units: dict[str, dict] = {}
        self._placements: dict[str, dict] = {}

    # --- seeding ---

    def load_seed(self, path: str | Path) -> dict[str, int]:
        """Load ``{"campaigns": [...], "podcasts": [...]}`` documents from a JSON file."""
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        campaigns = [campaign_from_document(d) for d in raw.get("campaigns", [])]
        owners = [owner_from_document(d) for d in raw.get("podcasts", [])]
        for campaign in campaigns:
            self.save_campaign(campaign)
        for owner in owners:
            self.save_owner(owner)
        return {"campaigns": len(campaigns), "podcasts": len(owners)}

    # --- campaigns ---

    def get_campaign(self, campaign_id: str) -> Campaign | None:
        with self._lock:
            doc = self._campaigns.get(campaign_id)
        return campaign_from_document(doc) if doc else None

    def save_campaign(self, campaign: Campaign) -> None:
        with self._lock:
            self._campaigns[campaign.campaign_id] = campaign_to_document(campaign)

    def list_campaigns(self, status: str | None = None, category: str | None = None) -> list[Campaign]:
        with self._lock:
            docs = list(self._campaigns.values())
        return [
            campaign_from_document(d)
            for d in docs
            if (status is None or d["status"] == status) and (category is None or d["category"] == category)
        ]

    # --- owners ---

    def get_owner(self, owner_id: str) -> ContentOwner | None:
        with self._lock:
            doc = self._owners.get(owner_id)
        return owner_from_document(doc) if doc else None

    def save_owner(self, owner: ContentOwner) -> None:
        with self._lock:
            self._owners[owner.owner_id] = owner_to_document(owner)

    def list_owners(self, monetized_only: bool = False) -> list[ContentOwner]:
        with self._lock:
            docs = list(self._owners.values())
        return [owner_from_document(d) for d in docs if not monetized_only or d["monetizationEnabled"]]

    # --- content units ---

    def get_unit(self, unit_id: str) -> ContentUnit | None:
        with self._lock:
            doc = self._units.get(unit_id)
        return unit_from_document(doc) if doc else None

    def save_unit(self, unit: ContentUnit) -> None:
        with self._lock:
            self._units[unit.unit_id] = unit_to_document(unit)

    def list_units(
        self,
        owner_id: str | None = None,
        since: datetime | None = None,
        has_ads: bool | None = None,
        limit: int | None = None,
    ) -> list[ContentUnit]:
        """Newest first."""
        with self._lock:
            docs = list(self._units.values())
        units = [unit_from_document(d) for d in docs]
        units = [
            u for u in units
            if (owner_id is None or u.owner_id == owner_id)
            and (since is None or u.created_at >= since)
            and (has_ads is None or u.has_ads == has_ads)
        ]
        units.sort(key=lambda u: u.created_at, reverse=True)
        return units[:limit] if limit is not None else units

    # --- placements ---

    def get_placement(self, placement_id: str) -> AdPlacement | None:
        with self._lock:
            doc = self._placements.get(placement_id)
        return placement_from_document(doc) if doc else None

    def save_placement(self, placement: AdPlacement) -> None:
        with self._lock:
            self._placements[placement.placement_id] = placement_to_document(placement)

    def list_placements(
        self,
        status: PlacementStatus | None = None,
        campaign_id: str | None = None,
        owner_id: str | None = None,
        unit_id: str | None = None,
        limit: int | None = None,
    ) -> list[AdPlacement]:
        """Oldest first, in insertion order."""
        with self._lock:
            docs = list(self._placements.values())
        selected = [
            d for d in docs
            if (status is None or d["status"] == PlacementStatus(status).value)
            and (campaign_id is None or d["campaignId"] == campaign_id)
            and (owner_id is None or d["ownerId"] == owner_id)
            and (unit_id is None or d["contentUnitId"] == unit_id)
        ]
        if limit is not None:
            selected = selected[:limit]
        return [placement_from_document(d) for d in selected]

    def delete_placement(self, placement_id: str) -> None:
        with self._lock:
            self._placements.pop(placement_id, None)

    # --- composite ---

    def save_episode_with_placements(self, unit: ContentUnit, placements: list[AdPlacement]) -> None:
        """Persist the unit and its placements in one step; nothing is stored if mapping fails."""
        unit_doc = unit_to_document(unit)
        placement_docs = [placement_to_document(p) for p in placements]
        with self._lock:
            self._units[unit.unit_id] = unit_doc
            for doc in placement_docs:
                self._placements[doc["id"]] = doc

    def campaign_rollup(self, campaign_id: str) -> dict:
        placements = self.list_placements(campaign_id=campaign_id)
        count = len(placements)
        return {
            "campaign_id": campaign_id,
            "placements": count,
            "views": sum(p.view_count for p in placements),
            "impressions": sum(p.impressions for p in placements),
            "clicks": sum(p.clicks for p in placements),
            "conversions": sum(p.conversions for p in placements),
            "avg_quality": sum(p.quality_score for p in placements) / count if count else 0.0,
            "spend": sum(p.total_payout for p in placements),
            "by_status": {
                status.value: sum(1 for p in placements if p.status is status) for status in PlacementStatus
            },
        }
