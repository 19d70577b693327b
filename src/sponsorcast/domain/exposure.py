"""Exposure authenticity and fraud ceiling rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .errors import FraudFlag
from .sponsorship import ContentUnit

BOT_AGENT_PATTERNS: tuple[str, ...] = (
    "bot",
    "crawler",
    "spider",
    "scraper",
    "curl",
    "wget",
    "python",
    "requests",
)
DUPLICATE_VIEWER_WINDOW = timedelta(minutes=5)
MIN_EXPOSURE_SECONDS = 10.0


@dataclass(frozen=True)
class ExposureEvent:
    """One raw listen/view report."""

    viewer_id: str | None = None
    source_address: str | None = None
    user_agent: str = ""
    duration_seconds: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def is_bot_agent(user_agent: str) -> bool:
    lower = user_agent.lower()
    return any(p in lower for p in BOT_AGENT_PATTERNS)


def event_reason(
    event: ExposureEvent,
    seen_addresses: set[str],
    last_seen: dict[str, datetime],
) -> str:
    """Return 'allowed' or 'denied: <reason>' for one event against prior state."""
    if event.duration_seconds < MIN_EXPOSURE_SECONDS:
        return "denied: too_short"
    if is_bot_agent(event.user_agent):
        return "denied: bot_agent"
    if event.source_address and event.source_address in seen_addresses:
        return "denied: duplicate_address"
    if event.viewer_id:
        previous = last_seen.get(event.viewer_id)
        if previous is not None and abs(event.timestamp - previous) < DUPLICATE_VIEWER_WINDOW:
            return "denied: duplicate_viewer"
    return "allowed"


def filter_authentic(
    events: list[ExposureEvent],
    seen_addresses: set[str],
    last_seen: dict[str, datetime],
) -> list[ExposureEvent]:
    """Keep authentic events, recording accepted ones into the given state."""
    accepted: list[ExposureEvent] = []
    for event in events:
        if event_reason(event, seen_addresses, last_seen) != "allowed":
            continue
        if event.source_address:
            seen_addresses.add(event.source_address)
        if event.viewer_id:
            last_seen[event.viewer_id] = event.timestamp
        accepted.append(event)
    return accepted


def exposure_ceiling(age_hours: float, floor: int = 100, per_hour: float = 50.0) -> int:
    """Most exposures a unit of this age can plausibly have."""
    return max(floor, int(age_hours * per_hour))


def unit_age_hours(unit: ContentUnit, now: datetime | None = None) -> float:
    now = now or datetime.now(timezone.utc)
    return max(0.0, (now - unit.created_at).total_seconds() / 3600.0)


def check_fraud(
    unit: ContentUnit,
    now: datetime | None = None,
    floor: int = 100,
    per_hour: float = 50.0,
) -> FraudFlag | None:
    """Return a FraudFlag when the unit's exposures exceed its ceiling."""
    ceiling = exposure_ceiling(unit_age_hours(unit, now), floor=floor, per_hour=per_hour)
    if unit.total_views > ceiling:
        return FraudFlag(
            content_unit_id=unit.unit_id,
            exposures=unit.total_views,
            ceiling=ceiling,
            flagged_at=now or datetime.now(timezone.utc),
        )
    return None
