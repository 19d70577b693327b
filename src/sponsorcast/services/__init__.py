"""Application services."""

from .automation import AutomationJobs, JobOutcome
from .compliance import ComplianceService
from .generation_service import GenerationService
from .invocation import ResilientInvoker, Result, RetryPolicy
from .match_service import MatchService
from .optimization_service import OptimizationReport, OptimizationService, Suggestion
from .payout_service import EarningsBreakdown, ExposureReceipt, PayoutService, SettlementResult
from .pipeline import EpisodeOptions, EpisodeOutcome, EpisodePipeline
from .scheduler import AutomationScheduler
from .verification_service import VerificationService

__all__ = [
    "AutomationJobs",
    "AutomationScheduler",
    "ComplianceService",
    "EarningsBreakdown",
    "EpisodeOptions",
    "EpisodeOutcome",
    "EpisodePipeline",
    "ExposureReceipt",
    "GenerationService",
    "JobOutcome",
    "MatchService",
    "OptimizationReport",
    "OptimizationService",
    "PayoutService",
    "ResilientInvoker",
    "Result",
    "RetryPolicy",
    "SettlementResult",
    "Suggestion",
    "VerificationService",
]
