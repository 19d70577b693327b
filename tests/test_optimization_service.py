"""OptimizationService over the in-memory repository and a SQLite analytics store."""

from datetime import timedelta

import pytest

from sponsorcast.adapters.memory_repository import InMemoryRepository
from sponsorcast.domain.errors import ServiceKind
from sponsorcast.domain.sponsorship import PlacementStatus, VerificationResult
from sponsorcast.modules.analytics.store import AnalyticsStore
from sponsorcast.services.match_service import MatchService
from sponsorcast.services.optimization_service import OptimizationService

from fakes import MATCH, RoutedGenerator, make_campaign, make_invoker, make_owner, make_placement, make_settings, utc


@pytest.fixture
def repo():
    repository = InMemoryRepository()
    repository.save_campaign(make_campaign(created_at=utc()))
    repository.save_owner(make_owner())
    return repository


def _service(repo, score="0.6", analytics=None):
    settings = make_settings()
    generator = RoutedGenerator({MATCH: score})
    matcher = MatchService(make_invoker(generator, ServiceKind.matching), settings=settings)
    return OptimizationService(repo, matcher, settings=settings, analytics=analytics), generator


def _judged(placement_id, quality, status, **overrides):
    verdict = VerificationResult(
        verified=status is not PlacementStatus.rejected, quality_score=quality, compliance_score=1.0
    )
    return make_placement(
        placement_id, status=status, quality_score=quality, verification_result=verdict, **overrides
    )


def _kinds(report):
    return [s.kind for s in report.suggestions]


class TestSuggestions:

    def test_unknown_campaign_raises(self, repo):
        service, _ = _service(repo)
        with pytest.raises(LookupError):
            service.suggest("cmp-missing")

    def test_fresh_campaign_needs_nothing(self, repo):
        service, _ = _service(repo)
        report = service.suggest("cmp-1", now=utc(day=2))
        assert report.suggestions == []
        assert report.campaign_id == "cmp-1"
        assert report.generated_at == utc(day=2)

    def test_weak_verdicts_flag_quality_targeting_and_content(self, repo):
        repo.save_placement(_judged("plc-1", 0.4, PlacementStatus.rejected))
        repo.save_placement(_judged("plc-2", 0.4, PlacementStatus.rejected))
        repo.save_placement(_judged("plc-3", 0.9, PlacementStatus.verified))
        service, _ = _service(repo)
        report = service.suggest("cmp-1", now=utc(day=2))
        assert _kinds(report) == ["quality_improvement", "targeting_improvement", "content_optimization"]
        by_kind = {s.kind: s for s in report.suggestions}
        assert by_kind["targeting_improvement"].data == {"rejected": 2, "verified": 1}
        assert by_kind["content_optimization"].data == {"placement_ids": ["plc-1", "plc-2"]}
        assert by_kind["quality_improvement"].priority == "high"

    def test_paid_placements_count_as_approved(self, repo):
        repo.save_placement(_judged("plc-1", 0.9, PlacementStatus.rejected))
        repo.save_placement(_judged("plc-2", 0.9, PlacementStatus.paid))
        service, _ = _service(repo)
        assert "targeting_improvement" not in _kinds(service.suggest("cmp-1", now=utc(day=2)))

    def test_overspend_and_low_click_through(self, repo):
        repo.save_campaign(make_campaign(created_at=utc(), spent=60.0))
        repo.save_placement(_judged("plc-1", 0.9, PlacementStatus.verified, view_count=20, impressions=100, clicks=1))
        service, _ = _service(repo)
        report = service.suggest("cmp-1", now=utc(day=2))
        assert _kinds(report) == ["budget_optimization", "engagement_optimization"]
        assert report.suggestions[0].data == {"cost_per_view": 3.0}
        assert report.performance["click_through_rate"] == 0.01
        assert report.performance["total_spend"] == 60.0
        assert report.performance["remaining_budget"] == 40.0

    def test_stale_campaign_is_flagged(self, repo):
        service, _ = _service(repo)
        report = service.suggest("cmp-1", now=utc() + timedelta(days=10))
        assert _kinds(report) == ["performance_boost", "budget_utilization"]
        assert report.suggestions[0].description == (
            "Your campaign has been running for 10 days but has low view counts."
        )
        assert report.suggestions[1].data == {"utilization": 0.0}

    def test_strong_matches_exclude_running_owners(self, repo):
        repo.save_owner(make_owner("pod-2"))
        repo.save_placement(make_placement("plc-1", owner_id="pod-2", status=PlacementStatus.pending))
        service, _ = _service(repo, score="0.9")
        report = service.suggest("cmp-1", now=utc(day=2))
        assert _kinds(report) == ["new_opportunities"]
        opportunity = report.suggestions[0]
        assert opportunity.description == "Found 1 new high-quality podcast matches for your campaign."
        assert opportunity.data == {"new_matches": [{"owner_id": "pod-1", "compatibility_score": 0.9}]}

    def test_campaign_without_matching_is_not_scored(self, repo):
        repo.save_campaign(make_campaign(created_at=utc(), ai_matching_enabled=False))
        service, generator = _service(repo, score="0.9")
        assert service.suggest("cmp-1", now=utc(day=2)).suggestions == []
        assert generator.prompts == []


class TestPerformance:

    def test_pending_placements_are_left_out_of_quality(self, repo):
        repo.save_placement(make_placement("plc-1", status=PlacementStatus.pending))
        repo.save_placement(_judged("plc-2", 0.8, PlacementStatus.verified, view_count=30))
        service, _ = _service(repo)
        report = service.suggest("cmp-1", now=utc(day=2))
        assert report.performance["average_quality_score"] == 0.8
        assert report.performance["total_views"] == 30
        assert "quality_improvement" not in _kinds(report)

    def test_settlements_come_from_analytics(self, repo, tmp_path):
        analytics = AnalyticsStore(str(tmp_path / "analytics.db"))
        analytics.record_settlement(
            ts=utc(),
            campaign_id="cmp-1",
            owner_id="pod-1",
            exposures=40,
            amount=40.0,
            creator_share=38.0,
            platform_fee=2.0,
        )
        service, _ = _service(repo, analytics=analytics)
        performance = service.suggest("cmp-1", now=utc(day=2)).performance
        assert performance["settlements"] == 1
        assert performance["settled_exposures"] == 40

    def test_without_analytics_settlements_are_zero(self, repo):
        service, _ = _service(repo)
        performance = service.suggest("cmp-1", now=utc(day=2)).performance
        assert (performance["settlements"], performance["settled_exposures"]) == (0, 0)
