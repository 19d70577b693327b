"""Port: settlement ledger holding campaign budgets and creator balances."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..domain.exposure import ExposureEvent


@dataclass(frozen=True)
class SettlementReceipt:
    """Ledger answer to a settlement request."""

    success: bool
    creator_share: float = 0.0
    platform_fee: float = 0.0
    tx_ref: str | None = None
    error: str | None = None


@runtime_checkable
class Ledger(Protocol):
    """Commit interface for verifications and payouts."""

    def verify_placement(self, placement_id: str, campaign_id: str, quality_score: float) -> str: ...

    def settle_exposure(
        self,
        campaign_id: str,
        owner_id: str,
        owner_address: str,
        exposures: int,
        amount: float,
    ) -> SettlementReceipt: ...

    def get_campaign_state(self, campaign_id: str) -> dict | None: ...

    def get_owner_state(self, owner_id: str) -> dict | None: ...

    def get_placement_state(self, placement_id: str) -> dict | None: ...

    def validate_exposure_authenticity(self, unit_id: str, events: list[ExposureEvent]) -> list[ExposureEvent]: ...
