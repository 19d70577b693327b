"""Document mapping, the in-memory repository and seed loading."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from sponsorcast.adapters.documents import (
    campaign_from_document,
    campaign_to_document,
    placement_from_document,
    placement_to_document,
    unit_from_document,
)
from sponsorcast.adapters.memory_ledger import InMemoryLedger
from sponsorcast.adapters.memory_repository import InMemoryRepository
from sponsorcast.domain.sponsorship import PlacementStatus, UserFeedback, VerificationResult, as_utc
from sponsorcast.wiring import load_seed

from fakes import make_campaign, make_placement, make_unit, utc

SEED = Path(__file__).resolve().parent.parent / "data" / "seed.json"


class TestDocuments:

    def test_campaign_uses_camel_case_layout(self):
        campaign = make_campaign(spent=12.5)
        doc = campaign_to_document(campaign)
        assert doc["id"] == "cmp-1"
        assert doc["totalSpent"] == 12.5
        assert doc["payoutPerView"] == 1.0
        assert doc["verificationCriteria"]["minQualityScore"] == 0.7
        assert campaign_from_document(doc) == campaign

    def test_placement_keeps_verdict_and_feedback(self):
        placement = make_placement(
            view_count=12,
            total_paid_out=10,
            verified_at=utc(hour=3),
            verification_result=VerificationResult(
                verified=True, quality_score=0.9, compliance_score=1.0, suggestions=["Shorter read"]
            ),
            user_feedback=[UserFeedback(user_id="u1", rating=5, timestamp=utc())],
        )
        doc = placement_to_document(placement)
        assert doc["status"] == "verified"
        assert doc["verificationResult"]["improvementSuggestions"] == ["Shorter read"]
        restored = placement_from_document(doc)
        assert restored == placement
        assert restored.unpaid_views == 2

    def test_naive_timestamps_are_read_as_utc(self):
        unit = unit_from_document({"id": "ep-1", "ownerId": "pod-1", "title": "T", "createdAt": "2026-01-01T08:00:00"})
        assert unit.created_at == datetime(2026, 1, 1, 8, tzinfo=timezone.utc)

    def test_missing_fields_take_defaults(self):
        placement = placement_from_document({"id": "p", "campaignId": "c", "ownerId": "o", "contentUnitId": "u"})
        assert placement.status is PlacementStatus.pending
        assert placement.ad_content.placement == "mid-roll"
        assert placement.verification_result is None
        assert placement.created_at.tzinfo is not None

    def test_as_utc_normalizes_offsets(self):
        assert as_utc(None) is None
        assert as_utc(datetime(2026, 1, 1, 8)) == datetime(2026, 1, 1, 8, tzinfo=timezone.utc)
        shifted = as_utc(datetime(2026, 1, 1, 10, tzinfo=timezone(timedelta(hours=2))))
        assert shifted.tzinfo is timezone.utc
        assert shifted.hour == 8


class TestRepository:

    def test_reads_are_copies(self):
        repo = InMemoryRepository()
        repo.save_placement(make_placement())
        fetched = repo.get_placement("plc-1")
        fetched.view_count = 99
        assert repo.get_placement("plc-1").view_count == 0

    def test_units_newest_first(self):
        repo = InMemoryRepository()
        for day in range(3):
            repo.save_unit(make_unit(f"ep-{day}", created_at=utc() + timedelta(days=day)))
        assert [u.unit_id for u in repo.list_units(limit=2)] == ["ep-2", "ep-1"]
        assert repo.list_units(since=utc() + timedelta(days=2))[0].unit_id == "ep-2"

    def test_placement_filters(self):
        repo = InMemoryRepository()
        repo.save_placement(make_placement("a", status=PlacementStatus.pending))
        repo.save_placement(make_placement("b", campaign_id="cmp-2"))
        repo.save_placement(make_placement("c", unit_id="ep-2"))
        assert [p.placement_id for p in repo.list_placements(status=PlacementStatus.verified)] == ["b", "c"]
        assert [p.placement_id for p in repo.list_placements(campaign_id="cmp-2")] == ["b"]
        assert [p.placement_id for p in repo.list_placements(unit_id="ep-2")] == ["c"]
        repo.delete_placement("a")
        assert repo.get_placement("a") is None

    def test_episode_and_placements_saved_together(self):
        repo = InMemoryRepository()
        repo.save_episode_with_placements(make_unit(), [make_placement("a"), make_placement("b")])
        assert repo.get_unit("ep-1") is not None
        assert len(repo.list_placements(unit_id="ep-1")) == 2

    def test_campaign_rollup(self):
        repo = InMemoryRepository()
        repo.save_placement(make_placement("a", view_count=10, clicks=2, quality_score=0.8))
        repo.save_placement(make_placement("b", status=PlacementStatus.rejected, quality_score=0.4))
        rollup = repo.campaign_rollup("cmp-1")
        assert rollup["placements"] == 2
        assert rollup["views"] == 10
        assert rollup["clicks"] == 2
        assert rollup["avg_quality"] == pytest.approx(0.6)
        assert rollup["by_status"]["rejected"] == 1


class TestSeed:

    def test_seed_loads_and_funds_ledger(self):
        repo = InMemoryRepository()
        ledger = InMemoryLedger()
        counts = load_seed(repo, ledger, str(SEED))
        assert counts == {"campaigns": 2, "podcasts": 1}
        owner = repo.get_owner("pod_codecoffee")
        assert owner.monetization_enabled is True
        assert [c.name for c in owner.characters] == ["MAYA", "LEO"]
        campaign = repo.get_campaign("cmp_trailfuel")
        assert "include code TRAIL20" in campaign.requirements
        assert ledger.get_campaign_state("cmp_bytebox")["budget"] == 1000.0
