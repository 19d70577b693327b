"""Shared fakes and model factories for the test suite.

No network or model is ever touched: every generative call goes to a
scripted or routed fake, and sleeps are recorded instead of slept.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sponsorcast.config.runtime import RuntimeSettings
from sponsorcast.domain.errors import ServiceKind
from sponsorcast.domain.sponsorship import (
    AdContent,
    AdPlacement,
    AdPreferences,
    Campaign,
    Character,
    ContentOwner,
    ContentUnit,
    PlacementStatus,
)
from sponsorcast.services.invocation import ResilientInvoker, RetryPolicy

# Prompt openers, used to route fake answers by call kind.
EPISODE = "You are a podcast script writer"
MATCH = "Analyze the compatibility"
AD_COPY = "You are writing a sponsored segment"
EMBED = "You are a podcast script editor"
COMPLIANCE = "Analyze this podcast content for advertising compliance"
QUALITY = "Analyze the quality"
REQUIREMENT = "Check whether this requirement"
NATURALNESS = "Score how naturally"
VARIATION = "Rewrite this podcast ad read"
STYLE = "Adapt this advertising copy"
ANALYSIS = "Analyze this brand campaign"
PROFILE = "Create an advertising profile"


class RecordingSleep:
    """Stands in for time.sleep."""

    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class ScriptedGenerator:
    """Returns (or raises) queued answers in order, then the default."""

    def __init__(self, *answers, default=None):
        self.answers = list(answers)
        self.default = default
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        answer = self.answers.pop(0) if self.answers else self.default
        if isinstance(answer, BaseException):
            raise answer
        if answer is None:
            raise ConnectionError("generator offline")
        return answer


class OfflineGenerator(ScriptedGenerator):
    """Every call fails like an unreachable service."""

    def __init__(self):
        super().__init__()


class RoutedGenerator:
    """Answers by prompt opener; unrouted prompts fail like an offline service."""

    def __init__(self, routes: dict[str, object]):
        self.routes = dict(routes)
        self.prompts: list[str] = []

    def calls_for(self, opener: str) -> list[str]:
        return [p for p in self.prompts if p.startswith(opener)]

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        for opener, answer in self.routes.items():
            if prompt.startswith(opener):
                if callable(answer):
                    answer = answer(prompt)
                if isinstance(answer, BaseException):
                    raise answer
                return answer
        raise ConnectionError("generator offline")


def make_settings(**overrides) -> RuntimeSettings:
    return RuntimeSettings(_env_file=None, **overrides)


def make_invoker(
    generator,
    service: ServiceKind = ServiceKind.generation,
    retries: int = 0,
    sleep=None,
) -> ResilientInvoker:
    return ResilientInvoker(
        generator,
        service,
        policy=RetryPolicy(max_retries=retries, base_delay=0.0),
        model_id=f"test-{service.value}",
        sleep=sleep or RecordingSleep(),
    )


def make_campaign(campaign_id: str = "cmp-1", **overrides) -> Campaign:
    fields = {
        "campaign_id": campaign_id,
        "brand_id": f"brand-{campaign_id}",
        "brand_name": "ByteBox",
        "product_name": "ByteBox Cloud Backup",
        "description": "Encrypted cloud backup for software developers",
        "category": "technology",
        "target_audience": ["developers", "programming"],
        "requirements": [],
        "budget": 100.0,
        "payout_per_view": 1.0,
    }
    fields.update(overrides)
    return Campaign(**fields)


def make_owner(owner_id: str = "pod-1", **overrides) -> ContentOwner:
    fields = {
        "owner_id": owner_id,
        "owner_address": f"0x{owner_id}",
        "title": "Code and Coffee",
        "description": "Two software developers talk programming and developers tools",
        "concept": "Morning chats about software",
        "tone": "casual",
        "length_minutes": 25,
        "characters": [Character(name="MAYA", personality="curious"), Character(name="LEO")],
        "topics": ["technology", "programming"],
        "monetization_enabled": True,
        "ad_preferences": AdPreferences(max_ads_per_episode=2),
        "quality_score": 0.8,
        "average_engagement": 0.6,
    }
    fields.update(overrides)
    return ContentOwner(**fields)


def make_unit(unit_id: str = "ep-1", owner_id: str = "pod-1", **overrides) -> ContentUnit:
    fields = {
        "unit_id": unit_id,
        "owner_id": owner_id,
        "title": "Episode",
        "script": "MAYA: Hello\nLEO: Hi\nMAYA: Topic one\nLEO: Topic two",
        "has_ads": True,
        "ad_count": 1,
    }
    fields.update(overrides)
    return ContentUnit(**fields)


def make_placement(
    placement_id: str = "plc-1",
    campaign_id: str = "cmp-1",
    owner_id: str = "pod-1",
    unit_id: str = "ep-1",
    status: PlacementStatus = PlacementStatus.verified,
    **overrides,
) -> AdPlacement:
    fields = {
        "placement_id": placement_id,
        "campaign_id": campaign_id,
        "owner_id": owner_id,
        "content_unit_id": unit_id,
        "status": status,
        "ad_content": AdContent(script="This episode is sponsored by ByteBox.", placement="mid-roll"),
    }
    fields.update(overrides)
    return AdPlacement(**fields)


def compliant_json() -> str:
    return json.dumps({"compliant": True, "violations": [], "severity": "low", "suggestions": []})


def quality_json(overall: float = 0.9) -> str:
    return json.dumps({
        "overall": overall,
        "naturalness": overall,
        "relevance": overall,
        "engagement": overall,
        "compliance": overall,
        "breakdown": {"ad_integration": overall, "flow_disruption": 0.1},
    })


def ad_json(script: str = "This episode is sponsored by ByteBox. Back up your code today.", **extra) -> str:
    payload = {"script": script, "placement": "mid-roll", "duration": 30}
    payload.update(extra)
    return json.dumps(payload)


def utc(year=2026, month=1, day=1, hour=0, minute=0, second=0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
