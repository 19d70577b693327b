"""Composition root. All wiring happens here.

``build_runtime()`` returns one fully-constructed object graph with real
adapters; ``get_runtime()`` caches it for the MCP tools and CLI so every
surface shares the same repository, ledger and mutation lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from functools import lru_cache

from .adapters.gemini_generator import GeminiTextGenerator
from .adapters.memory_ledger import InMemoryLedger
from .adapters.memory_repository import InMemoryRepository
from .config.runtime import RuntimeSettings, get_settings
from .domain.errors import ServiceKind
from .modules.analytics.store import AnalyticsStore
from .ports.text_generator import TextGenerator
from .services.automation import AutomationJobs
from .services.compliance import ComplianceService
from .services.generation_service import GenerationService
from .services.invocation import ResilientInvoker, RetryPolicy
from .services.match_service import MatchService
from .services.optimization_service import OptimizationService
from .services.payout_service import PayoutService
from .services.pipeline import EpisodePipeline
from .services.scheduler import AutomationScheduler
from .services.verification_service import VerificationService

_LOGGER = logging.getLogger("sponsorcast")


@dataclass
class Runtime:
    """Everything the operator surfaces need."""

    settings: RuntimeSettings
    repository: InMemoryRepository
    ledger: InMemoryLedger
    analytics: AnalyticsStore
    matcher: MatchService
    optimizer: OptimizationService
    generator: GenerationService
    verifier: VerificationService
    payouts: PayoutService
    jobs: AutomationJobs
    scheduler: AutomationScheduler
    pipeline: EpisodePipeline


def _model_for(settings: RuntimeSettings, service: ServiceKind) -> str:
    return {
        ServiceKind.matching: settings.matching_model_id,
        ServiceKind.generation: settings.generation_model_id,
        ServiceKind.verification: settings.verification_model_id,
    }[service]


def build_invoker(
    settings: RuntimeSettings,
    service: ServiceKind,
    text_generator: TextGenerator | None = None,
) -> ResilientInvoker:
    """Construct a ResilientInvoker for one service kind."""
    model_id = _model_for(settings, service)
    generator = text_generator or GeminiTextGenerator(
        api_key=settings.gemini_api_key,
        model_id=model_id,
        service=service,
        temperature=settings.generation_temperature,
        timeout_seconds=settings.request_timeout_seconds,
    )
    return ResilientInvoker(
        generator,
        service,
        policy=RetryPolicy.for_service(settings, service),
        model_id=model_id,
        logger=_LOGGER.getChild("invoker"),
    )


def load_seed(repository: InMemoryRepository, ledger: InMemoryLedger, path: str) -> dict[str, int]:
    """Load campaigns and owners from a JSON file and fund every campaign on the ledger."""
    counts = repository.load_seed(path)
    for campaign in repository.list_campaigns():
        ledger.fund_campaign(campaign.campaign_id, campaign.budget)
    _LOGGER.info("seed_loaded", extra={"path": path, **counts})
    return counts


def build_runtime(
    settings: RuntimeSettings | None = None,
    text_generator: TextGenerator | None = None,
) -> Runtime:
    """Construct the full object graph.

    ``text_generator`` replaces the Gemini adapter for every service kind.
    """
    settings = settings or get_settings()
    repository = InMemoryRepository()
    ledger = InMemoryLedger(creator_share=settings.creator_share)
    if settings.seed_path:
        load_seed(repository, ledger, settings.seed_path)

    analytics = AnalyticsStore(settings.analytics_db_path)
    lock = threading.Lock()

    matching = build_invoker(settings, ServiceKind.matching, text_generator)
    generation = build_invoker(settings, ServiceKind.generation, text_generator)
    verification = build_invoker(settings, ServiceKind.verification, text_generator)

    compliance = ComplianceService(verification, logger=_LOGGER.getChild("compliance"))
    matcher = MatchService(matching, settings=settings, logger=_LOGGER.getChild("match"))
    generator = GenerationService(generation, compliance, settings=settings, logger=_LOGGER.getChild("generation"))
    verifier = VerificationService(
        verification, compliance, settings=settings, logger=_LOGGER.getChild("verification")
    )
    payouts = PayoutService(
        repository,
        ledger,
        settings=settings,
        analytics=analytics,
        lock=lock,
        logger=_LOGGER.getChild("payout"),
    )
    jobs = AutomationJobs(
        repository,
        ledger,
        verifier,
        payouts,
        settings=settings,
        analytics=analytics,
        logger=_LOGGER.getChild("automation"),
    )
    scheduler = AutomationScheduler(
        jobs,
        interval_seconds=settings.scheduler_interval_seconds,
        cleanup_every_ticks=settings.cleanup_every_ticks,
        logger=_LOGGER.getChild("scheduler"),
    )
    optimizer = OptimizationService(
        repository, matcher, settings=settings, analytics=analytics, logger=_LOGGER.getChild("optimization")
    )
    pipeline = EpisodePipeline(
        repository,
        generation,
        matcher,
        generator,
        verifier,
        ledger=ledger,
        lock=lock,
        logger=_LOGGER.getChild("pipeline"),
    )
    return Runtime(
        settings=settings,
        repository=repository,
        ledger=ledger,
        analytics=analytics,
        matcher=matcher,
        optimizer=optimizer,
        generator=generator,
        verifier=verifier,
        payouts=payouts,
        jobs=jobs,
        scheduler=scheduler,
        pipeline=pipeline,
    )


@lru_cache(maxsize=1)
def get_runtime() -> Runtime:
    """Return the process-wide Runtime (cached after first call)."""
    return build_runtime()
