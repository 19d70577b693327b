"""Error taxonomy shared by services and adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ServiceKind(str, Enum):
    matching = "matching"
    generation = "generation"
    verification = "verification"


# Codes carried by AIServiceError.
MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"
INVALID_INPUT = "INVALID_INPUT"
MALFORMED_OUTPUT = "MALFORMED_OUTPUT"
GENERATION_FAILED = "GENERATION_FAILED"
TIMEOUT = "TIMEOUT"

# Codes carried by LedgerError.
INSUFFICIENT_BUDGET = "INSUFFICIENT_BUDGET"
TRANSACTION_FAILED = "TRANSACTION_FAILED"
UNKNOWN_PLACEMENT = "UNKNOWN_PLACEMENT"


class AIServiceError(Exception):
    """Typed failure of a call to the generative collaborator."""

    def __init__(self, service: ServiceKind | str, code: str, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.service = ServiceKind(service)
        self.code = code
        self.message = message
        self.retryable = retryable

    def __repr__(self) -> str:
        return (
            f"AIServiceError(service={self.service.value!r}, code={self.code!r}, "
            f"retryable={self.retryable})"
        )


class InvalidInput(AIServiceError):
    """Required input missing; raised before any network call."""

    def __init__(self, service: ServiceKind | str, message: str) -> None:
        super().__init__(service, INVALID_INPUT, message, retryable=False)


class ComplianceViolation(Exception):
    """Drafted ad copy failed the compliance review."""

    def __init__(self, campaign_id: str, violations: list[str]) -> None:
        super().__init__(f"campaign {campaign_id}: " + "; ".join(violations))
        self.campaign_id = campaign_id
        self.violations = list(violations)


class IllegalTransition(Exception):
    """A placement was asked to move along an edge its lifecycle forbids."""

    def __init__(self, placement_id: str, current: str, target: str) -> None:
        super().__init__(f"placement {placement_id}: {current} -> {target} is not allowed")
        self.placement_id = placement_id
        self.current = current
        self.target = target


class LedgerError(Exception):
    """Failure reported by the settlement ledger."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(frozen=True)
class FraudFlag:
    """Evidence that a content unit's exposures are not credible."""

    content_unit_id: str
    exposures: int
    ceiling: int
    flagged_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def reason(self) -> str:
        return "Flagged for potential view fraud"
