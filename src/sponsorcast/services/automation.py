"""Automation jobs: verification, payout, fraud, analytics and cleanup sweeps."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from ..config.runtime import RuntimeSettings, get_settings
from ..domain.placement_lifecycle import apply_verdict, reject
from ..domain.sponsorship import AdPlacement, PlacementStatus
from ..modules.analytics.store import AnalyticsStore
from ..ports.ledger import Ledger
from ..ports.repository import Repository
from .payout_service import PayoutService
from .verification_service import VerificationService

FRAUD_REJECTION = "Flagged for potential view fraud"


@dataclass(frozen=True)
class JobOutcome:
    """Result of one job run, collected by the scheduler."""

    job: str
    success: bool
    processed: int = 0
    detail: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


class AutomationJobs:
    """Sweeps over persisted placements; each returns a JobOutcome."""

    def __init__(
        self,
        repository: Repository,
        ledger: Ledger,
        verifier: VerificationService,
        payouts: PayoutService,
        settings: RuntimeSettings | None = None,
        analytics: AnalyticsStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Any = None,
    ) -> None:
        self._repo = repository
        self._ledger = ledger
        self._verifier = verifier
        self._payouts = payouts
        self._settings = settings or get_settings()
        self._analytics = analytics
        self._sleep = sleep
        self._logger = logger

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_placement(self, placement_id: str) -> AdPlacement | None:
        """Give one pending placement its verdict; returns the stored placement."""
        placement = self._repo.get_placement(placement_id)
        if placement is None or placement.status is not PlacementStatus.pending:
            return placement

        unit = self._repo.get_unit(placement.content_unit_id)
        campaign = self._repo.get_campaign(placement.campaign_id)
        if unit is None or campaign is None:
            with self._payouts.lock:
                reject(placement, "Episode or campaign no longer exists")
                self._repo.save_placement(placement)
            return placement
        if unit.fraud_flagged:
            with self._payouts.lock:
                reject(placement, FRAUD_REJECTION)
                self._repo.save_placement(placement)
            return placement

        result = self._verifier.verify(unit.script, campaign)

        with self._payouts.lock:
            current = self._repo.get_placement(placement_id)
            if current is None or current.status is not PlacementStatus.pending:
                return current
            latest_unit = self._repo.get_unit(current.content_unit_id)
            if latest_unit is not None and latest_unit.fraud_flagged:
                reject(current, FRAUD_REJECTION)
            else:
                apply_verdict(current, result, model_id=self._verifier.model_id)
                if result.verified:
                    # a ledger failure raises before the save, so the stored placement stays pending
                    self._ledger.verify_placement(current.placement_id, current.campaign_id, result.quality_score)
            self._repo.save_placement(current)
        return current

    def run_verification_sweep(self) -> JobOutcome:
        pending = self._repo.list_placements(
            status=PlacementStatus.pending, limit=self._settings.verification_batch_size
        )
        counts = {"verified": 0, "rejected": 0, "errors": 0}
        for index, placement in enumerate(pending):
            if index:
                self._sleep(self._settings.verification_delay_seconds)
            try:
                stored = self.verify_placement(placement.placement_id)
            except Exception:
                counts["errors"] += 1
                if self._logger:
                    self._logger.exception(
                        "verification_item_failed", extra={"placement_id": placement.placement_id}
                    )
                continue
            if stored is not None and stored.status is PlacementStatus.verified:
                counts["verified"] += 1
            elif stored is not None and stored.status is PlacementStatus.rejected:
                counts["rejected"] += 1
        return JobOutcome(job="verification", success=True, processed=len(pending), detail=counts)

    # ------------------------------------------------------------------
    # Payout and fraud
    # ------------------------------------------------------------------

    def run_payout_sweep(self) -> JobOutcome:
        results = self._payouts.run_payout_sweep()
        return JobOutcome(
            job="payout",
            success=True,
            processed=len(results),
            detail={
                "settled": sum(1 for r in results if r.success),
                "failed": [
                    {"campaign_id": r.campaign_id, "owner_id": r.owner_id, "code": r.code}
                    for r in results if not r.success
                ],
                "amount": sum(r.amount for r in results if r.success),
            },
        )

    def run_fraud_sweep(self, now: datetime | None = None) -> JobOutcome:
        flags = self._payouts.scan_for_fraud(now)
        return JobOutcome(
            job="fraud",
            success=True,
            processed=len(flags),
            detail={"flagged_units": [f.content_unit_id for f in flags]},
        )

    # ------------------------------------------------------------------
    # Analytics and cleanup
    # ------------------------------------------------------------------

    def run_analytics_rollup(self, day: date | None = None) -> JobOutcome:
        if self._analytics is None:
            return JobOutcome(job="analytics", success=True, detail={"skipped": "no analytics store"})
        day = day or datetime.now(timezone.utc).date()
        campaigns = self._repo.list_campaigns(status="active")
        for campaign in campaigns:
            self._analytics.record_daily_rollup(day, campaign.campaign_id, self._repo.campaign_rollup(campaign.campaign_id))
        return JobOutcome(job="analytics", success=True, processed=len(campaigns), detail={"day": day.isoformat()})

    def run_cleanup(self, now: datetime | None = None) -> JobOutcome:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=self._settings.rejected_retention_days)
        removed = 0
        with self._payouts.lock:
            for placement in self._repo.list_placements(status=PlacementStatus.rejected):
                decided_at = placement.verified_at or placement.created_at
                if decided_at < cutoff:
                    self._repo.delete_placement(placement.placement_id)
                    removed += 1
        purged = 0
        if self._analytics is not None:
            purged = self._analytics.purge_before(now - timedelta(days=self._settings.analytics_retention_days))
        return JobOutcome(
            job="cleanup",
            success=True,
            processed=removed,
            detail={"placements_removed": removed, "analytics_rows_purged": purged},
        )

    def job_table(self, include_cleanup: bool = False) -> dict[str, Callable[[], JobOutcome]]:
        jobs: dict[str, Callable[[], JobOutcome]] = {
            "verification": self.run_verification_sweep,
            "payout": self.run_payout_sweep,
            "fraud": self.run_fraud_sweep,
            "analytics": self.run_analytics_rollup,
        }
        if include_cleanup:
            jobs["cleanup"] = self.run_cleanup
        return jobs
