"""In-memory settlement ledger.

Mirrors the on-chain contract's bookkeeping: funded campaign budgets,
creator balances, verified placements and exposure deduplication.
"""

from __future__ import annotations

import threading
from datetime import datetime

from ..domain.exposure import ExposureEvent, filter_authentic
from ..ports.id_gen import IdProvider, UuidIdProvider
from ..ports.ledger import SettlementReceipt

_BUDGET_EPSILON = 1e-9


class InMemoryLedger:
    """Dict-backed implementation of the Ledger port."""

    def __init__(self, creator_share: float = 0.95, id_provider: IdProvider | None = None) -> None:
        self._lock = threading.Lock()
        self._creator_share = creator_share
        self._ids = id_provider or UuidIdProvider()
        self._campaigns: dict[str, dict] = {}
        self._owners: dict[str, dict] = {}
        self._placements: dict[str, dict] = {}
        self._seen_addresses: dict[str, set[str]] = {}
        self._last_seen: dict[str, dict[str, datetime]] = {}

    def fund_campaign(self, campaign_id: str, budget: float) -> None:
        with self._lock:
            state = self._campaigns.setdefault(campaign_id, {"budget": 0.0, "spent": 0.0, "settlements": 0})
            state["budget"] = budget

    def verify_placement(self, placement_id: str, campaign_id: str, quality_score: float) -> str:
        tx_ref = self._ids.new_id("tx")
        with self._lock:
            self._placements[placement_id] = {
                "campaign_id": campaign_id,
                "quality_score": quality_score,
                "verified": True,
                "tx_ref": tx_ref,
            }
        return tx_ref

    def settle_exposure(
        self,
        campaign_id: str,
        owner_id: str,
        owner_address: str,
        exposures: int,
        amount: float,
    ) -> SettlementReceipt:
        with self._lock:
            state = self._campaigns.get(campaign_id)
            if state is None:
                return SettlementReceipt(success=False, error=f"campaign {campaign_id} is not funded")
            if amount > state["budget"] - state["spent"] + _BUDGET_EPSILON:
                return SettlementReceipt(success=False, error="insufficient campaign budget")
            creator = amount * self._creator_share
            fee = amount - creator
            state["spent"] += amount
            state["settlements"] += 1
            owner = self._owners.setdefault(
                owner_id, {"address": owner_address, "balance": 0.0, "exposures": 0}
            )
            owner["address"] = owner_address or owner["address"]
            owner["balance"] += creator
            owner["exposures"] += exposures
        return SettlementReceipt(
            success=True,
            creator_share=creator,
            platform_fee=fee,
            tx_ref=self._ids.new_id("tx"),
        )

    def get_campaign_state(self, campaign_id: str) -> dict | None:
        with self._lock:
            state = self._campaigns.get(campaign_id)
            return dict(state) if state else None

    def get_owner_state(self, owner_id: str) -> dict | None:
        with self._lock:
            state = self._owners.get(owner_id)
            return dict(state) if state else None

    def get_placement_state(self, placement_id: str) -> dict | None:
        with self._lock:
            state = self._placements.get(placement_id)
            return dict(state) if state else None

    def validate_exposure_authenticity(self, unit_id: str, events: list[ExposureEvent]) -> list[ExposureEvent]:
        with self._lock:
            return filter_authentic(
                events,
                self._seen_addresses.setdefault(unit_id, set()),
                self._last_seen.setdefault(unit_id, {}),
            )
