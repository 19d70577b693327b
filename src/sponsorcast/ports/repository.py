"""Port: document persistence for campaigns, owners, episodes and placements."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from ..domain.sponsorship import AdPlacement, Campaign, ContentOwner, ContentUnit, PlacementStatus


@runtime_checkable
class Repository(Protocol):
    """Read/write interface for the document store."""

    # --- campaigns ---

    def get_campaign(self, campaign_id: str) -> Campaign | None: ...

    def save_campaign(self, campaign: Campaign) -> None: ...

    def list_campaigns(self, status: str | None = None, category: str | None = None) -> list[Campaign]: ...

    # --- owners ---

    def get_owner(self, owner_id: str) -> ContentOwner | None: ...

    def save_owner(self, owner: ContentOwner) -> None: ...

    def list_owners(self, monetized_only: bool = False) -> list[ContentOwner]: ...

    # --- content units ---

    def get_unit(self, unit_id: str) -> ContentUnit | None: ...

    def save_unit(self, unit: ContentUnit) -> None: ...

    def list_units(
        self,
        owner_id: str | None = None,
        since: datetime | None = None,
        has_ads: bool | None = None,
        limit: int | None = None,
    ) -> list[ContentUnit]: ...

    # --- placements ---

    def get_placement(self, placement_id: str) -> AdPlacement | None: ...

    def save_placement(self, placement: AdPlacement) -> None: ...

    def list_placements(
        self,
        status: PlacementStatus | None = None,
        campaign_id: str | None = None,
        owner_id: str | None = None,
        unit_id: str | None = None,
        limit: int | None = None,
    ) -> list[AdPlacement]: ...

    def delete_placement(self, placement_id: str) -> None: ...

    # --- composite ---

    def save_episode_with_placements(self, unit: ContentUnit, placements: list[AdPlacement]) -> None: ...

    def campaign_rollup(self, campaign_id: str) -> dict: ...
