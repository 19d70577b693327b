"""PayoutService: exposure tracking, budget-bounded settlement and fraud suppression."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from ..config.runtime import RuntimeSettings, get_settings
from ..domain.errors import (
    INSUFFICIENT_BUDGET,
    TRANSACTION_FAILED,
    UNKNOWN_PLACEMENT,
    FraudFlag,
    LedgerError,
)
from ..domain.exposure import ExposureEvent, check_fraud
from ..domain.placement_lifecycle import accepts_exposure, force_reject, record_exposures, settle
from ..domain.sponsorship import AdPlacement, Campaign, ContentOwner, ContentUnit, PlacementStatus, UserFeedback
from ..modules.analytics.store import AnalyticsStore
from ..ports.ledger import Ledger
from ..ports.repository import Repository

# Float noise from per-view multiplication must not refuse an exact-budget settlement.
_BUDGET_EPSILON = 1e-9


@dataclass(frozen=True)
class EarningsBreakdown:
    """Split of a gross payout between creator and platform."""

    total: float
    creator_share: float
    platform_fee: float


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of settling one (campaign, owner) group."""

    campaign_id: str
    owner_id: str
    exposures: int
    amount: float
    success: bool
    code: str | None = None
    error: str | None = None
    tx_ref: str | None = None
    placement_ids: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ExposureReceipt:
    """Outcome of an exposure tracking call."""

    unit_id: str
    submitted: int
    accepted: int
    placements_updated: int


class PayoutService:
    """Turns verified exposure into ledger-committed payouts without overspending."""

    def __init__(
        self,
        repository: Repository,
        ledger: Ledger,
        settings: RuntimeSettings | None = None,
        analytics: AnalyticsStore | None = None,
        lock: threading.Lock | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Any = None,
    ) -> None:
        self._repo = repository
        self._ledger = ledger
        self._settings = settings or get_settings()
        self._analytics = analytics
        self._lock = lock or threading.Lock()
        self._sleep = sleep
        self._logger = logger

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    def calculate_earnings(self, views: int, rate: float) -> EarningsBreakdown:
        total = views * rate
        creator = total * self._settings.creator_share
        return EarningsBreakdown(total=total, creator_share=creator, platform_fee=total - creator)

    # ------------------------------------------------------------------
    # Exposure and engagement tracking
    # ------------------------------------------------------------------

    def track_exposure(self, unit_id: str, events: list[ExposureEvent]) -> ExposureReceipt:
        """Count authentic exposures on the unit and its live placements."""
        unit = self._repo.get_unit(unit_id)
        if unit is None:
            raise LookupError(f"unknown content unit {unit_id}")

        accepted = self._ledger.validate_exposure_authenticity(unit_id, events)
        count = len(accepted)
        updated = 0
        if count:
            with self._lock:
                unit = self._repo.get_unit(unit_id) or unit
                unit.total_views += count
                self._repo.save_unit(unit)
                owner = self._repo.get_owner(unit.owner_id)
                if owner is not None:
                    owner.total_views += count
                    self._repo.save_owner(owner)
                for placement in self._repo.list_placements(unit_id=unit_id):
                    if record_exposures(placement, count):
                        self._repo.save_placement(placement)
                        updated += 1

        if self._logger:
            self._logger.info(
                "exposure_tracked",
                extra={"unit_id": unit_id, "submitted": len(events), "accepted": count, "placements": updated},
            )
        return ExposureReceipt(unit_id=unit_id, submitted=len(events), accepted=count, placements_updated=updated)

    def _live_placement(self, placement_id: str) -> AdPlacement:
        placement = self._repo.get_placement(placement_id)
        if placement is None:
            raise LedgerError(UNKNOWN_PLACEMENT, f"unknown placement {placement_id}")
        return placement

    def record_click(self, placement_id: str) -> bool:
        with self._lock:
            placement = self._live_placement(placement_id)
            if not accepts_exposure(placement):
                return False
            placement.clicks += 1
            self._repo.save_placement(placement)
        return True

    def record_conversion(self, placement_id: str) -> bool:
        with self._lock:
            placement = self._live_placement(placement_id)
            if not accepts_exposure(placement):
                return False
            placement.conversions += 1
            self._repo.save_placement(placement)
        return True

    def add_user_feedback(self, placement_id: str, feedback: UserFeedback) -> AdPlacement:
        with self._lock:
            placement = self._live_placement(placement_id)
            placement.user_feedback.append(feedback)
            self._repo.save_placement(placement)
        return placement

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def _is_flagged(self, unit_id: str, cache: dict[str, bool]) -> bool:
        if unit_id not in cache:
            unit = self._repo.get_unit(unit_id)
            cache[unit_id] = unit is None or unit.fraud_flagged
        return cache[unit_id]

    def _payable(self, placements: list[AdPlacement], cache: dict[str, bool]) -> list[AdPlacement]:
        return [
            p for p in placements
            if p.status is PlacementStatus.verified and not self._is_flagged(p.content_unit_id, cache)
        ]

    def eligible_groups(self) -> dict[tuple[str, str], int]:
        """Unpaid exposure per (campaign, owner) group that meets the minimum."""
        cache: dict[str, bool] = {}
        totals: dict[tuple[str, str], int] = {}
        for placement in self._payable(self._repo.list_placements(status=PlacementStatus.verified), cache):
            key = (placement.campaign_id, placement.owner_id)
            totals[key] = totals.get(key, 0) + placement.unpaid_views
        minimum = self._settings.min_payout_exposures
        return {key: unpaid for key, unpaid in totals.items() if unpaid >= minimum}

    def run_payout_sweep(self) -> list[SettlementResult]:
        """Settle every eligible group sequentially; one result per attempted group."""
        results: list[SettlementResult] = []
        for index, (campaign_id, owner_id) in enumerate(self.eligible_groups()):
            if index:
                self._sleep(self._settings.settlement_delay_seconds)
            results.append(self.settle_group(campaign_id, owner_id))
        if self._logger:
            self._logger.info(
                "payout_sweep_done",
                extra={
                    "groups": len(results),
                    "settled": sum(1 for r in results if r.success),
                    "amount": sum(r.amount for r in results if r.success),
                },
            )
        return results

    def settle_group(self, campaign_id: str, owner_id: str) -> SettlementResult:
        """Settle one group against a freshly read budget; all or nothing."""
        with self._lock:
            campaign = self._repo.get_campaign(campaign_id)
            owner = self._repo.get_owner(owner_id)
            if campaign is None or owner is None:
                return self._failed(campaign_id, owner_id, 0, 0.0, UNKNOWN_PLACEMENT, "campaign or owner missing")

            members = self._payable(
                self._repo.list_placements(
                    status=PlacementStatus.verified, campaign_id=campaign_id, owner_id=owner_id
                ),
                {},
            )
            members = [p for p in members if p.unpaid_views > 0]
            exposures = sum(p.unpaid_views for p in members)
            amount = campaign.payout_per_view * exposures
            if exposures < self._settings.min_payout_exposures:
                return self._failed(campaign_id, owner_id, exposures, amount, None, "below minimum exposures")

            remaining = campaign.budget - campaign.spent
            if amount > remaining + _BUDGET_EPSILON:
                if self._logger:
                    self._logger.warning(
                        "settlement_refused",
                        extra={
                            "campaign_id": campaign_id,
                            "owner_id": owner_id,
                            "amount": amount,
                            "remaining_budget": remaining,
                        },
                    )
                return self._failed(
                    campaign_id, owner_id, exposures, amount, INSUFFICIENT_BUDGET,
                    f"payout {amount:.6f} exceeds remaining budget {remaining:.6f}",
                )

            try:
                receipt = self._ledger.settle_exposure(
                    campaign_id, owner_id, owner.owner_address, exposures, amount
                )
            except LedgerError as exc:
                return self._failed(campaign_id, owner_id, exposures, amount, exc.code, exc.message)
            except Exception as exc:
                if self._logger:
                    self._logger.exception("ledger_call_failed", extra={"campaign_id": campaign_id})
                return self._failed(campaign_id, owner_id, exposures, amount, TRANSACTION_FAILED, str(exc))
            if not receipt.success:
                return self._failed(
                    campaign_id, owner_id, exposures, amount, TRANSACTION_FAILED, receipt.error or "ledger refused"
                )

            self._commit(campaign, owner, members, amount)

        earnings = self.calculate_earnings(exposures, campaign.payout_per_view)
        if self._analytics is not None:
            self._analytics.record_settlement(
                ts=datetime.now(timezone.utc),
                campaign_id=campaign_id,
                owner_id=owner_id,
                exposures=exposures,
                amount=amount,
                creator_share=earnings.creator_share,
                platform_fee=earnings.platform_fee,
                tx_ref=receipt.tx_ref,
                metadata={"placements": [p.placement_id for p in members]},
            )
        if self._logger:
            self._logger.info(
                "settlement_committed",
                extra={
                    "campaign_id": campaign_id,
                    "owner_id": owner_id,
                    "exposures": exposures,
                    "amount": amount,
                    "tx_ref": receipt.tx_ref,
                },
            )
        return SettlementResult(
            campaign_id=campaign_id,
            owner_id=owner_id,
            exposures=exposures,
            amount=amount,
            success=True,
            tx_ref=receipt.tx_ref,
            placement_ids=tuple(p.placement_id for p in members),
        )

    def _commit(self, campaign: Campaign, owner: ContentOwner, members: list[AdPlacement], amount: float) -> None:
        units: dict[str, float] = {}
        for placement in members:
            paid = settle(placement, campaign.payout_per_view)
            self._repo.save_placement(placement)
            units[placement.content_unit_id] = units.get(placement.content_unit_id, 0.0) + paid

        campaign.spent = min(campaign.budget, campaign.spent + amount)
        campaign.updated_at = datetime.now(timezone.utc)
        self._repo.save_campaign(campaign)

        share = self._settings.creator_share
        for unit_id, paid in units.items():
            unit = self._repo.get_unit(unit_id)
            if unit is not None:
                unit.total_earnings += paid * share
                self._repo.save_unit(unit)
        owner.total_earnings += amount * share
        self._repo.save_owner(owner)

    def _failed(
        self,
        campaign_id: str,
        owner_id: str,
        exposures: int,
        amount: float,
        code: str | None,
        error: str,
    ) -> SettlementResult:
        return SettlementResult(
            campaign_id=campaign_id,
            owner_id=owner_id,
            exposures=exposures,
            amount=amount,
            success=False,
            code=code,
            error=error,
        )

    def owner_earnings(self, owner_id: str) -> dict:
        owner = self._repo.get_owner(owner_id)
        if owner is None:
            raise LookupError(f"unknown owner {owner_id}")
        placements = self._repo.list_placements(owner_id=owner_id)
        pending = 0.0
        for placement in placements:
            if placement.status is PlacementStatus.verified and placement.unpaid_views:
                campaign = self._repo.get_campaign(placement.campaign_id)
                if campaign is not None:
                    pending += placement.unpaid_views * campaign.payout_per_view * self._settings.creator_share
        return {
            "owner_id": owner_id,
            "total_earnings": owner.total_earnings,
            "pending_earnings": pending,
            "paid_placements": sum(1 for p in placements if p.status is PlacementStatus.paid),
            "ledger": self._ledger.get_owner_state(owner_id),
        }

    # ------------------------------------------------------------------
    # Fraud suppression
    # ------------------------------------------------------------------

    def suppress_fraud(self, flag: FraudFlag) -> list[str]:
        """Flag the unit and force its verified placements to rejected."""
        rejected: list[str] = []
        with self._lock:
            unit = self._repo.get_unit(flag.content_unit_id)
            if unit is None:
                return rejected
            if not unit.fraud_flagged:
                unit.fraud_flagged = True
                self._repo.save_unit(unit)
            for placement in self._repo.list_placements(
                status=PlacementStatus.verified, unit_id=flag.content_unit_id
            ):
                force_reject(placement, flag)
                self._repo.save_placement(placement)
                rejected.append(placement.placement_id)
        if self._logger:
            self._logger.warning(
                "fraud_suppressed",
                extra={
                    "unit_id": flag.content_unit_id,
                    "exposures": flag.exposures,
                    "ceiling": flag.ceiling,
                    "rejected": rejected,
                },
            )
        return rejected

    def scan_for_fraud(self, now: datetime | None = None) -> list[FraudFlag]:
        """Check recent ad-bearing units against the exposure ceiling and suppress offenders."""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(hours=self._settings.fraud_lookback_hours)
        flags: list[FraudFlag] = []
        for unit in self._repo.list_units(since=since, has_ads=True):
            flag = self.flag_for(unit, now)
            if flag is not None:
                self.suppress_fraud(flag)
                flags.append(flag)
        return flags

    def flag_for(self, unit: ContentUnit, now: datetime | None = None) -> FraudFlag | None:
        return check_fraud(
            unit,
            now=now,
            floor=self._settings.fraud_exposure_floor,
            per_hour=self._settings.fraud_exposures_per_hour,
        )
