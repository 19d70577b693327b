"""CLI commands for running automation sweeps and reading analytics."""

import argparse
import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ..config.runtime import get_settings
from ..modules.analytics.store import AnalyticsStore
from ..wiring import get_runtime, load_seed

JOB_NAMES = ("verification", "payout", "fraud", "analytics", "cleanup")


def _load_seed_file(path: Path) -> None:
    if not path.exists():
        print(f"Error: seed file not found: {path}", file=sys.stderr)
        sys.exit(1)
    runtime = get_runtime()
    counts = load_seed(runtime.repository, runtime.ledger, str(path))
    print(f"Loaded {counts['campaigns']} campaigns and {counts['podcasts']} podcasts from {path}.")


def _print_outcomes(outcomes) -> bool:
    ok = True
    for outcome in outcomes:
        ok = ok and outcome.success
        status = "ok" if outcome.success else f"FAILED ({outcome.error})"
        print(f"{outcome.job:<13} {status:<10} processed={outcome.processed} {json.dumps(outcome.detail, default=str)}")
    return ok


def run_sweep(jobs: list[str] | None) -> int:
    runtime = get_runtime()
    if not jobs:
        outcomes = runtime.scheduler.run_once()
    else:
        outcomes = runtime.scheduler.run_named(jobs)
    return 0 if _print_outcomes(outcomes) else 1


def run_scheduler(ticks: int | None) -> int:
    runtime = get_runtime()
    scheduler = runtime.scheduler
    if ticks is not None:
        ok = True
        for _ in range(ticks):
            ok = _print_outcomes(scheduler.run_once()) and ok
        return 0 if ok else 1

    print(f"Scheduler running every {runtime.settings.scheduler_interval_seconds:g}s; Ctrl-C to stop.")
    scheduler.start()
    try:
        while scheduler.running:
            scheduler.wait(1.0)
    except KeyboardInterrupt:
        print("Stopping scheduler...")
    finally:
        scheduler.stop(timeout=runtime.settings.scheduler_interval_seconds)
    return 0


def show_report(campaign_id: str | None, since_hours: int) -> int:
    settings = get_settings()
    store = AnalyticsStore(settings.analytics_db_path)
    if campaign_id:
        report = store.campaign_report(campaign_id)
        print(json.dumps(report, indent=2))
    else:
        since = datetime.now(timezone.utc) - timedelta(hours=max(1, since_hours))
        summary = store.summary(since=since)
        print(json.dumps({"since_hours": since_hours, "campaigns": summary}, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="SponsorCast operator commands")
    parser.add_argument("--seed", type=Path, default=None, help="JSON file with campaigns and podcasts to load first")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    sweep_parser = subparsers.add_parser("sweep", help="Run automation jobs once")
    sweep_parser.add_argument(
        "--job",
        action="append",
        choices=JOB_NAMES,
        default=None,
        help="Job to run (repeatable; default: one regular scheduler tick)",
    )

    scheduler_parser = subparsers.add_parser("run-scheduler", help="Run automation jobs on the configured interval")
    scheduler_parser.add_argument("--ticks", type=int, default=None, help="Run this many ticks back to back, then exit")

    report_parser = subparsers.add_parser("report", help="Show campaign analytics")
    report_parser.add_argument("--campaign-id", type=str, default=None, help="Campaign ID for detail report")
    report_parser.add_argument("--since-hours", type=int, default=24, help="Summary window in hours")

    subparsers.add_parser("serve", help="Run the MCP server over stdio")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO), stream=sys.stderr)

    if args.seed is not None:
        _load_seed_file(args.seed)

    if args.command == "sweep":
        return run_sweep(args.job)
    if args.command == "run-scheduler":
        return run_scheduler(args.ticks)
    if args.command == "report":
        return show_report(args.campaign_id, args.since_hours)
    if args.command == "serve":
        from .mcp.server import create_server

        create_server().run(transport="stdio")
        return 0
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
