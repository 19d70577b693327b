"""Automation sweeps and the interval scheduler."""

from datetime import date, timedelta

import pytest

from sponsorcast.adapters.memory_ledger import InMemoryLedger
from sponsorcast.adapters.memory_repository import InMemoryRepository
from sponsorcast.domain.errors import TRANSACTION_FAILED, LedgerError, ServiceKind
from sponsorcast.domain.scoring import AD_END, AD_START
from sponsorcast.domain.sponsorship import PlacementStatus
from sponsorcast.modules.analytics.store import AnalyticsStore
from sponsorcast.services.automation import FRAUD_REJECTION, AutomationJobs, JobOutcome
from sponsorcast.services.compliance import ComplianceService
from sponsorcast.services.payout_service import PayoutService
from sponsorcast.services.scheduler import AutomationScheduler
from sponsorcast.services.verification_service import VerificationService

from fakes import (
    COMPLIANCE,
    QUALITY,
    REQUIREMENT,
    OfflineGenerator,
    RecordingSleep,
    RoutedGenerator,
    compliant_json,
    make_campaign,
    make_invoker,
    make_owner,
    make_placement,
    make_settings,
    make_unit,
    quality_json,
    utc,
)

SCRIPT = (
    "MAYA: Did you back up your laptop?\n"
    "LEO: Speaking of backups, quick note.\n"
    f"{AD_START}\n"
    "This episode is sponsored by ByteBox.\n"
    f"{AD_END}\n"
    "MAYA: Back to the show."
)


def _approving():
    return RoutedGenerator({QUALITY: quality_json(0.9), COMPLIANCE: compliant_json(), REQUIREMENT: "true"})


@pytest.fixture
def repo():
    repository = InMemoryRepository()
    repository.save_campaign(make_campaign())
    repository.save_owner(make_owner())
    repository.save_unit(make_unit(script=SCRIPT, created_at=utc()))
    repository.save_placement(make_placement(status=PlacementStatus.pending))
    return repository


@pytest.fixture
def ledger():
    ledger = InMemoryLedger()
    ledger.fund_campaign("cmp-1", 100.0)
    return ledger


def _jobs(repo, ledger, generator, analytics=None, sleep=None):
    settings = make_settings()
    invoker = make_invoker(generator, ServiceKind.verification)
    verifier = VerificationService(invoker, ComplianceService(invoker), settings=settings)
    sleep = sleep or RecordingSleep()
    payouts = PayoutService(repo, ledger, settings=settings, analytics=analytics, sleep=sleep)
    return AutomationJobs(repo, ledger, verifier, payouts, settings=settings, analytics=analytics, sleep=sleep)


class TestVerificationSweep:

    def test_offline_model_rejects(self, repo, ledger):
        outcome = _jobs(repo, ledger, OfflineGenerator()).run_verification_sweep()
        assert outcome.detail == {"verified": 0, "rejected": 1, "errors": 0}
        placement = repo.get_placement("plc-1")
        assert placement.status is PlacementStatus.rejected
        assert placement.verification_model_id == "test-verification"
        assert ledger.get_placement_state("plc-1") is None

    def test_approved_placement_is_committed_to_ledger(self, repo, ledger):
        outcome = _jobs(repo, ledger, _approving()).run_verification_sweep()
        assert outcome.detail["verified"] == 1
        assert repo.get_placement("plc-1").status is PlacementStatus.verified
        state = ledger.get_placement_state("plc-1")
        assert state["verified"] is True
        assert state["quality_score"] == 0.9

    def test_flagged_unit_is_rejected_without_a_model_call(self, repo, ledger):
        repo.save_unit(make_unit(script=SCRIPT, created_at=utc(), fraud_flagged=True))
        generator = _approving()
        _jobs(repo, ledger, generator).run_verification_sweep()
        placement = repo.get_placement("plc-1")
        assert placement.status is PlacementStatus.rejected
        assert placement.verification_result.feedback == [FRAUD_REJECTION]
        assert generator.prompts == []

    def test_missing_campaign_is_rejected(self, repo, ledger):
        repo.save_placement(make_placement("plc-2", campaign_id="cmp-gone", status=PlacementStatus.pending))
        _jobs(repo, ledger, OfflineGenerator()).run_verification_sweep()
        assert repo.get_placement("plc-2").verification_result.feedback == ["Episode or campaign no longer exists"]

    def test_ledger_failure_leaves_placement_pending(self, repo, ledger, monkeypatch):
        def broken(*args):
            raise LedgerError(TRANSACTION_FAILED, "node unreachable")

        monkeypatch.setattr(ledger, "verify_placement", broken)
        outcome = _jobs(repo, ledger, _approving()).run_verification_sweep()
        assert outcome.detail["errors"] == 1
        assert repo.get_placement("plc-1").status is PlacementStatus.pending

    def test_decided_placements_are_untouched(self, repo, ledger):
        repo.save_placement(make_placement(status=PlacementStatus.paid, view_count=10, total_paid_out=10))
        outcome = _jobs(repo, ledger, _approving()).run_verification_sweep()
        assert outcome.processed == 0
        assert repo.get_placement("plc-1").status is PlacementStatus.paid

    def test_sweep_pauses_between_placements(self, repo, ledger):
        repo.save_placement(make_placement("plc-2", status=PlacementStatus.pending))
        sleep = RecordingSleep()
        _jobs(repo, ledger, OfflineGenerator(), sleep=sleep).run_verification_sweep()
        assert sleep.calls == [2.0]


class TestOtherJobs:

    def test_payout_job_reports_settlements(self, repo, ledger):
        repo.save_placement(make_placement(view_count=30))
        outcome = _jobs(repo, ledger, OfflineGenerator()).run_payout_sweep()
        assert outcome.detail["settled"] == 1
        assert outcome.detail["amount"] == 30.0
        assert outcome.detail["failed"] == []

    def test_fraud_job_lists_flagged_units(self, repo, ledger):
        repo.save_unit(make_unit(script=SCRIPT, created_at=utc(), total_views=1000))
        outcome = _jobs(repo, ledger, OfflineGenerator()).run_fraud_sweep(now=utc(hour=2))
        assert outcome.detail == {"flagged_units": ["ep-1"]}

    def test_analytics_rollup_is_stored(self, repo, ledger, tmp_path):
        analytics = AnalyticsStore(str(tmp_path / "analytics.db"))
        outcome = _jobs(repo, ledger, OfflineGenerator(), analytics=analytics).run_analytics_rollup(date(2026, 1, 2))
        assert outcome.processed == 1
        rows = analytics.daily_rollups("cmp-1")
        assert rows[0]["day"] == "2026-01-02"
        assert rows[0]["placements"] == 1

    def test_analytics_rollup_without_store_is_skipped(self, repo, ledger):
        outcome = _jobs(repo, ledger, OfflineGenerator()).run_analytics_rollup()
        assert outcome.success is True
        assert "skipped" in outcome.detail

    def test_cleanup_removes_old_rejections_only(self, repo, ledger):
        repo.save_placement(make_placement("plc-old", status=PlacementStatus.rejected, verified_at=utc()))
        repo.save_placement(
            make_placement("plc-new", status=PlacementStatus.rejected, verified_at=utc() + timedelta(days=20))
        )
        outcome = _jobs(repo, ledger, OfflineGenerator()).run_cleanup(now=utc() + timedelta(days=40))
        assert outcome.detail["placements_removed"] == 1
        assert repo.get_placement("plc-old") is None
        assert repo.get_placement("plc-new") is not None
        assert repo.get_placement("plc-1") is not None


class _StubJobs:
    """Job table with one failing job; records cleanup requests."""

    def __init__(self):
        self.cleanup_flags: list[bool] = []

    def job_table(self, include_cleanup=False):
        self.cleanup_flags.append(include_cleanup)
        table = {
            "verification": lambda: JobOutcome(job="verification", success=True, processed=2),
            "payout": self._explode,
        }
        if include_cleanup:
            table["cleanup"] = lambda: JobOutcome(job="cleanup", success=True)
        return table

    @staticmethod
    def _explode():
        raise RuntimeError("ledger offline")


class TestScheduler:

    def test_failing_job_does_not_stop_the_tick(self):
        scheduler = AutomationScheduler(_StubJobs(), interval_seconds=60)
        outcomes = {o.job: o for o in scheduler.run_once()}
        assert outcomes["verification"].success is True
        assert outcomes["payout"].success is False
        assert outcomes["payout"].error == "ledger offline"

    def test_named_jobs_run_past_a_failure(self):
        scheduler = AutomationScheduler(_StubJobs(), interval_seconds=60)
        outcomes = scheduler.run_named(["payout", "verification", "cleanup"])
        assert [o.job for o in outcomes] == ["payout", "verification", "cleanup"]
        assert [o.success for o in outcomes] == [False, True, True]
        assert outcomes[0].error == "ledger offline"
        assert scheduler.ticks == 0

    def test_cleanup_runs_on_every_nth_tick(self):
        jobs = _StubJobs()
        scheduler = AutomationScheduler(jobs, interval_seconds=60, cleanup_every_ticks=3)
        for _ in range(6):
            scheduler.run_once()
        assert jobs.cleanup_flags == [False, False, True, False, False, True]
        assert scheduler.ticks == 6

    def test_start_and_stop(self):
        scheduler = AutomationScheduler(_StubJobs(), interval_seconds=0.01)
        scheduler.start()
        assert scheduler.running
        for _ in range(200):
            if scheduler.ticks:
                break
            scheduler.wait(0.01)
        scheduler.stop(timeout=5)
        assert scheduler.ticks >= 1
        assert not scheduler.running
