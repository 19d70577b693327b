"""Operator CLI commands against a fake-backed runtime."""

import json
from pathlib import Path

import pytest

from sponsorcast.interface import cli
from sponsorcast.wiring import build_runtime

from fakes import OfflineGenerator, make_campaign, make_owner, make_placement, make_settings, make_unit

SEED = Path(__file__).resolve().parent.parent / "data" / "seed.json"


@pytest.fixture
def settings(tmp_path):
    return make_settings(
        analytics_db_path=str(tmp_path / "analytics.db"),
        verification_max_retries=0,
        verification_delay_seconds=0,
        settlement_delay_seconds=0,
    )


@pytest.fixture
def runtime(settings, monkeypatch):
    runtime = build_runtime(settings, text_generator=OfflineGenerator())
    monkeypatch.setattr(cli, "get_runtime", lambda: runtime)
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    return runtime


def test_seeded_payout_sweep(runtime, capsys):
    runtime.repository.save_unit(make_unit(owner_id="pod_codecoffee"))
    runtime.repository.save_placement(
        make_placement(campaign_id="cmp_bytebox", owner_id="pod_codecoffee", view_count=500)
    )
    assert cli.main(["--seed", str(SEED), "sweep", "--job", "payout"]) == 0
    out = capsys.readouterr().out
    assert "Loaded 2 campaigns and 1 podcasts" in out
    assert "payout" in out
    assert runtime.repository.get_campaign("cmp_bytebox").spent == pytest.approx(5.0)


def test_missing_seed_file_exits(runtime, tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--seed", str(tmp_path / "absent.json"), "sweep"])
    assert exc_info.value.code == 1


def test_unknown_job_is_rejected_by_argparse(runtime):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["sweep", "--job", "reindex"])
    assert exc_info.value.code == 2


def test_scheduler_ticks(runtime, capsys):
    assert cli.main(["run-scheduler", "--ticks", "2"]) == 0
    assert runtime.scheduler.ticks == 2
    out = capsys.readouterr().out
    assert out.count("verification") == 2


def test_report_reads_analytics(runtime, capsys):
    runtime.repository.save_owner(make_owner())
    runtime.repository.save_campaign(make_campaign())
    runtime.repository.save_unit(make_unit())
    runtime.ledger.fund_campaign("cmp-1", 100.0)
    runtime.repository.save_placement(make_placement(view_count=20))
    runtime.payouts.settle_group("cmp-1", "pod-1")
    capsys.readouterr()

    assert cli.main(["report", "--campaign-id", "cmp-1"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["settlements"] == 1
    assert report["exposures"] == 20


def test_no_command_prints_help(runtime, capsys):
    assert cli.main([]) == 0
    assert "sweep" in capsys.readouterr().out