"""Tool registry for the SponsorCast MCP server.

Request shaping (limits, clamping) on the way in, field allowlists on the
way out. Tool failures are logged with their real cause and answered with a
generic message.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Any

from .observability import log_tool_invocation, metrics_snapshot

from sponsorcast.domain.errors import LedgerError
from sponsorcast.domain.exposure import ExposureEvent
from sponsorcast.domain.sponsorship import UserFeedback, as_utc
from sponsorcast.ports.id_gen import UuidRequestIdProvider
from sponsorcast.services.automation import JobOutcome
from sponsorcast.services.pipeline import EpisodeOptions

TRY_AGAIN = "Something went wrong while processing the request. Please try again."
_MAX_EVENTS = 10_000

# ---------------------------------------------------------------------------
# Response allowlists (field-level)
# ---------------------------------------------------------------------------
ALLOWED_UNIT_KEYS = frozenset({"unit_id", "owner_id", "title", "summary", "script", "has_ads", "ad_count"})
ALLOWED_PLACEMENT_KEYS = frozenset({
    "placement_id",
    "campaign_id",
    "status",
    "quality_score",
    "view_count",
    "clicks",
    "conversions",
    "total_payout",
})
ALLOWED_MATCH_KEYS = frozenset({
    "owner_id",
    "compatibility_score",
    "estimated_reach",
    "suggested_budget_allocation",
    "matching_reasons",
    "confidence",
})

ALLOWED_TOOLS = frozenset({
    "episodes_generate",
    "exposures_track",
    "placements_engage",
    "placements_feedback",
    "automation_run",
    "campaigns_matches",
    "campaigns_analyze",
    "campaigns_optimize",
    "campaigns_report",
    "owners_earnings",
    "owners_profile",
    "ops_metrics",
})

_request_ids = UuidRequestIdProvider()


def _get_runtime():
    from sponsorcast.wiring import get_runtime
    return get_runtime()


def _shape(model: Any, allowed: frozenset[str]) -> dict:
    d = model.model_dump(mode="json") if hasattr(model, "model_dump") else dict(model)
    return {k: d[k] for k in allowed if k in d}


def _failure(tool: str, trace_id: str, t0: float, exc: Exception) -> str:
    latency_ms = (time.monotonic() - t0) * 1000
    log_tool_invocation(tool, trace_id, latency_ms, error=f"{type(exc).__name__}: {exc}")
    return json.dumps({"ok": False, "error": TRY_AGAIN, "trace_id": trace_id})


def _not_found(tool: str, trace_id: str, t0: float, exc: LookupError) -> str:
    latency_ms = (time.monotonic() - t0) * 1000
    log_tool_invocation(tool, trace_id, latency_ms, error="not_found")
    return json.dumps({"ok": False, "error": str(exc.args[0]) if exc.args else "not found", "trace_id": trace_id})


def _parse_event(raw: dict) -> ExposureEvent:
    timestamp = raw.get("timestamp")
    if isinstance(timestamp, str):
        timestamp = as_utc(datetime.fromisoformat(timestamp))
    return ExposureEvent(
        viewer_id=raw.get("viewer_id"),
        source_address=raw.get("source_address"),
        user_agent=str(raw.get("user_agent") or ""),
        duration_seconds=float(raw.get("duration_seconds") or 0.0),
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def _outcome_to_dict(outcome: JobOutcome) -> dict:
    return {
        "job": outcome.job,
        "success": outcome.success,
        "processed": outcome.processed,
        "detail": outcome.detail,
    }


def register_tools(mcp):
    """Register the operator tools with request shaping and response allowlists."""

    @mcp.tool()
    def episodes_generate(
        owner_id: str,
        include_ads: bool = True,
        max_ads: int | None = None,
        verify_immediately: bool = False,
        topic_hint: str | None = None,
    ) -> str:
        """Generate a new episode for a podcast and embed matching sponsor reads.

        Args:
            owner_id: Podcast (content owner) identifier
            include_ads: Try to monetize the episode (default true)
            max_ads: Optional cap below the podcast's own ad limit (0-10)
            verify_immediately: Verify generated ads now instead of in the next sweep
            topic_hint: Optional topic to steer the episode (max 500 chars)

        Returns:
            JSON with the stored episode, its pending/verified placements and whether the ad-free fallback was used
        """
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        options = EpisodeOptions(
            include_ads=include_ads,
            max_ads=None if max_ads is None else max(0, min(10, max_ads)),
            verify_immediately=verify_immediately,
            topic_hint=topic_hint[:500] if topic_hint else None,
        )
        try:
            outcome = _get_runtime().pipeline.run(owner_id, options)
        except LookupError as exc:
            return _not_found("episodes_generate", trace_id, t0, exc)
        except Exception as exc:
            return _failure("episodes_generate", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation(
            "episodes_generate",
            trace_id,
            latency_ms,
            extra={"ads": len(outcome.placements), "fallback": outcome.ad_free_fallback},
        )
        return json.dumps(
            {
                "ok": True,
                "trace_id": trace_id,
                "episode": _shape(outcome.unit, ALLOWED_UNIT_KEYS),
                "placements": [_shape(p, ALLOWED_PLACEMENT_KEYS) for p in outcome.placements],
                "ad_free_fallback": outcome.ad_free_fallback,
                "skipped_campaigns": outcome.skipped_campaigns,
            },
            indent=2,
        )

    @mcp.tool()
    def exposures_track(unit_id: str, events: list[dict]) -> str:
        """Report listens/views for an episode; only authentic ones are counted.

        Args:
            unit_id: Episode identifier
            events: List of {viewer_id, source_address, user_agent, duration_seconds, timestamp} objects (max 10000)

        Returns:
            JSON with submitted and accepted counts and how many placements were updated
        """
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        try:
            parsed = [_parse_event(e) for e in events[:_MAX_EVENTS]]
            receipt = _get_runtime().payouts.track_exposure(unit_id, parsed)
        except LookupError as exc:
            return _not_found("exposures_track", trace_id, t0, exc)
        except Exception as exc:
            return _failure("exposures_track", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation("exposures_track", trace_id, latency_ms, extra={"accepted": receipt.accepted})
        return json.dumps({
            "ok": True,
            "trace_id": trace_id,
            "unit_id": receipt.unit_id,
            "submitted": receipt.submitted,
            "accepted": receipt.accepted,
            "placements_updated": receipt.placements_updated,
        })

    @mcp.tool()
    def placements_engage(placement_id: str, event: str = "click") -> str:
        """Record a click or conversion on a live placement.

        Args:
            placement_id: Placement identifier
            event: 'click' or 'conversion'
        """
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        if event not in ("click", "conversion"):
            return json.dumps({"ok": False, "error": "event must be 'click' or 'conversion'", "trace_id": trace_id})
        try:
            payouts = _get_runtime().payouts
            recorded = payouts.record_click(placement_id) if event == "click" else payouts.record_conversion(placement_id)
        except LedgerError as exc:
            return _not_found("placements_engage", trace_id, t0, LookupError(exc.message))
        except Exception as exc:
            return _failure("placements_engage", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation("placements_engage", trace_id, latency_ms, extra={"event": event, "recorded": recorded})
        return json.dumps({"ok": True, "trace_id": trace_id, "recorded": recorded})

    @mcp.tool()
    def placements_feedback(placement_id: str, user_id: str, rating: int, comment: str = "") -> str:
        """Attach a listener rating (1-5) to a placement."""
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        try:
            feedback = UserFeedback(user_id=user_id, rating=max(1, min(5, rating)), comment=comment[:2000])
            placement = _get_runtime().payouts.add_user_feedback(placement_id, feedback)
        except LedgerError as exc:
            return _not_found("placements_feedback", trace_id, t0, LookupError(exc.message))
        except Exception as exc:
            return _failure("placements_feedback", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation("placements_feedback", trace_id, latency_ms)
        return json.dumps({
            "ok": True,
            "trace_id": trace_id,
            "placement_id": placement.placement_id,
            "average_rating": placement.average_rating,
        })

    @mcp.tool()
    def automation_run(jobs: list[str] | None = None) -> str:
        """Run automation jobs once (verification, payout, fraud, analytics, cleanup).

        Args:
            jobs: Subset of job names to run; omit to run one regular scheduler tick

        Returns:
            JSON list of job outcomes
        """
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        try:
            runtime = _get_runtime()
            if not jobs:
                outcomes = runtime.scheduler.run_once()
            else:
                table = runtime.jobs.job_table(include_cleanup=True)
                unknown = sorted(set(jobs) - set(table))
                if unknown:
                    return json.dumps({
                        "ok": False,
                        "error": f"unknown jobs: {', '.join(unknown)}",
                        "available": sorted(table),
                        "trace_id": trace_id,
                    })
                outcomes = runtime.scheduler.run_named(jobs)
        except Exception as exc:
            return _failure("automation_run", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation("automation_run", trace_id, latency_ms, extra={"jobs": [o.job for o in outcomes]})
        return json.dumps(
            {"ok": all(o.success for o in outcomes), "trace_id": trace_id, "jobs": [_outcome_to_dict(o) for o in outcomes]},
            indent=2,
            default=str,
        )

    @mcp.tool()
    def campaigns_matches(campaign_id: str) -> str:
        """Rank monetized podcasts for a campaign, best first.

        Args:
            campaign_id: Campaign identifier

        Returns:
            JSON with scored matches (owner_id, compatibility_score, estimated_reach, suggested_budget_allocation, matching_reasons, confidence)
        """
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        try:
            runtime = _get_runtime()
            campaign = runtime.repository.get_campaign(campaign_id)
            if campaign is None:
                raise LookupError(f"unknown campaign {campaign_id}")
            matches = runtime.matcher.find_matches(campaign, runtime.repository.list_owners(monetized_only=True))
        except LookupError as exc:
            return _not_found("campaigns_matches", trace_id, t0, exc)
        except Exception as exc:
            return _failure("campaigns_matches", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation("campaigns_matches", trace_id, latency_ms, extra={"matches": len(matches)})
        return json.dumps(
            {"ok": True, "trace_id": trace_id, "campaign_id": campaign_id,
             "matches": [_shape(m, ALLOWED_MATCH_KEYS) for m in matches]},
            indent=2,
        )

    @mcp.tool()
    def campaigns_report(campaign_id: str | None = None, since_hours: int = 24) -> str:
        """Campaign performance: live rollup plus settlement analytics.

        Args:
            campaign_id: Campaign for a detail report; omit for a summary of all campaigns
            since_hours: Summary window in hours (1-720, default 24)
        """
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        try:
            runtime = _get_runtime()
            if campaign_id:
                campaign = runtime.repository.get_campaign(campaign_id)
                if campaign is None:
                    return _not_found("campaigns_report", trace_id, t0, LookupError(f"unknown campaign {campaign_id}"))
                payload: dict[str, Any] = {
                    "campaign_id": campaign_id,
                    "budget": campaign.budget,
                    "spent": campaign.spent,
                    "remaining_budget": campaign.remaining_budget,
                    "live": runtime.repository.campaign_rollup(campaign_id),
                    "settlements": runtime.analytics.campaign_report(campaign_id),
                }
            else:
                hours = max(1, min(720, since_hours))
                since = datetime.now(timezone.utc) - timedelta(hours=hours)
                payload = {"since_hours": hours, "campaigns": runtime.analytics.summary(since=since)}
        except Exception as exc:
            return _failure("campaigns_report", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation("campaigns_report", trace_id, latency_ms)
        return json.dumps({"ok": True, "trace_id": trace_id, **payload}, indent=2, default=str)

    @mcp.tool()
    def owners_earnings(owner_id: str) -> str:
        """Total and pending earnings for a podcast owner."""
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        try:
            earnings = _get_runtime().payouts.owner_earnings(owner_id)
        except LookupError as exc:
            return _not_found("owners_earnings", trace_id, t0, exc)
        except Exception as exc:
            return _failure("owners_earnings", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation("owners_earnings", trace_id, latency_ms)
        return json.dumps({"ok": True, "trace_id": trace_id, **earnings}, indent=2, default=str)

    @mcp.tool()
    def ops_metrics() -> str:
        """Per-tool call and error counters."""
        return json.dumps(metrics_snapshot())

    @mcp.tool()
    def campaigns_analyze(campaign_id: str) -> str:
        """Key features, target demographics and content requirements of a campaign.

        Args:
            campaign_id: Campaign identifier
        """
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        try:
            runtime = _get_runtime()
            campaign = runtime.repository.get_campaign(campaign_id)
            if campaign is None:
                raise LookupError(f"unknown campaign {campaign_id}")
            analysis = runtime.matcher.analyze_campaign(campaign)
        except LookupError as exc:
            return _not_found("campaigns_analyze", trace_id, t0, exc)
        except Exception as exc:
            return _failure("campaigns_analyze", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation("campaigns_analyze", trace_id, latency_ms)
        return json.dumps(
            {"ok": True, "trace_id": trace_id, "campaign_id": campaign_id, "analysis": analysis.model_dump(mode="json")},
            indent=2,
        )

    @mcp.tool()
    def owners_profile(owner_id: str) -> str:
        """Advertising profile of a podcast: themes, audience, engagement and fitting brand categories.

        Args:
            owner_id: Podcast (content owner) identifier
        """
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        try:
            runtime = _get_runtime()
            owner = runtime.repository.get_owner(owner_id)
            if owner is None:
                raise LookupError(f"unknown owner {owner_id}")
            profile = runtime.matcher.profile_owner(owner)
        except LookupError as exc:
            return _not_found("owners_profile", trace_id, t0, exc)
        except Exception as exc:
            return _failure("owners_profile", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation("owners_profile", trace_id, latency_ms)
        return json.dumps(
            {"ok": True, "trace_id": trace_id, "owner_id": owner_id, "profile": profile.model_dump(mode="json")},
            indent=2,
        )

    @mcp.tool()
    def campaigns_optimize(campaign_id: str) -> str:
        """Current campaign performance and prioritized optimization suggestions.

        Args:
            campaign_id: Campaign identifier

        Returns:
            JSON with performance figures and suggestions (kind, priority, title, description, action_items, expected_impact, data), high priority first
        """
        t0 = time.monotonic()
        trace_id = _request_ids.new_request_id()
        try:
            report = _get_runtime().optimizer.suggest(campaign_id)
        except LookupError as exc:
            return _not_found("campaigns_optimize", trace_id, t0, exc)
        except Exception as exc:
            return _failure("campaigns_optimize", trace_id, t0, exc)
        latency_ms = (time.monotonic() - t0) * 1000
        log_tool_invocation(
            "campaigns_optimize", trace_id, latency_ms, extra={"suggestions": len(report.suggestions)}
        )
        return json.dumps({"ok": True, "trace_id": trace_id, **asdict(report)}, indent=2, default=str)
