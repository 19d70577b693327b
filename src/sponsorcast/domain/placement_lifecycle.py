"""AdPlacement state machine.

pending -> verified | rejected, verified -> paid. The single exception is
fraud suppression, which may move verified -> rejected when given a
FraudFlag. Everything else raises IllegalTransition.
"""

from __future__ import annotations

from datetime import datetime

from .errors import FraudFlag, IllegalTransition
from .sponsorship import AdPlacement, PlacementStatus, VerificationResult, utcnow

ALLOWED_TRANSITIONS: dict[PlacementStatus, frozenset[PlacementStatus]] = {
    PlacementStatus.pending: frozenset({PlacementStatus.verified, PlacementStatus.rejected}),
    PlacementStatus.verified: frozenset({PlacementStatus.paid}),
    PlacementStatus.rejected: frozenset(),
    PlacementStatus.paid: frozenset(),
}

EXPOSURE_STATES = frozenset({PlacementStatus.verified, PlacementStatus.paid})


def can_transition(current: PlacementStatus, target: PlacementStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(placement: AdPlacement, target: PlacementStatus) -> AdPlacement:
    """Move *placement* to *target* in place, or raise IllegalTransition."""
    if not can_transition(placement.status, target):
        raise IllegalTransition(placement.placement_id, placement.status.value, target.value)
    placement.status = target
    return placement


def apply_verdict(
    placement: AdPlacement,
    result: VerificationResult,
    model_id: str = "",
    now: datetime | None = None,
) -> AdPlacement:
    """Record a verification verdict on a pending placement."""
    target = PlacementStatus.verified if result.verified else PlacementStatus.rejected
    transition(placement, target)
    placement.verification_result = result
    placement.quality_score = result.quality_score
    placement.verification_model_id = model_id
    placement.verified_at = now or utcnow()
    return placement


def reject(placement: AdPlacement, reason: str, now: datetime | None = None) -> AdPlacement:
    """Reject a pending placement without a model verdict."""
    transition(placement, PlacementStatus.rejected)
    placement.verification_result = VerificationResult(
        verified=False,
        quality_score=placement.quality_score,
        compliance_score=0.0,
        feedback=[reason],
    )
    placement.verified_at = now or utcnow()
    return placement


def force_reject(placement: AdPlacement, flag: FraudFlag) -> AdPlacement:
    """Fraud suppression: the only path from verified to rejected."""
    if not isinstance(flag, FraudFlag):
        raise TypeError("force_reject requires a FraudFlag")
    if placement.content_unit_id != flag.content_unit_id:
        raise ValueError(
            f"flag for unit {flag.content_unit_id} does not cover placement {placement.placement_id}"
        )
    if placement.status is not PlacementStatus.verified:
        raise IllegalTransition(placement.placement_id, placement.status.value, PlacementStatus.rejected.value)
    placement.status = PlacementStatus.rejected
    feedback = [flag.reason]
    if placement.verification_result is not None:
        placement.verification_result = placement.verification_result.model_copy(
            update={"verified": False, "feedback": [*placement.verification_result.feedback, flag.reason]}
        )
    else:
        placement.verification_result = VerificationResult(
            verified=False, quality_score=placement.quality_score, compliance_score=0.0, feedback=feedback
        )
    placement.verified_at = flag.flagged_at
    return placement


def accepts_exposure(placement: AdPlacement) -> bool:
    return placement.status in EXPOSURE_STATES


def record_exposures(placement: AdPlacement, count: int, now: datetime | None = None) -> bool:
    """Add *count* exposures if the placement is live; returns whether it counted."""
    if count <= 0 or not accepts_exposure(placement):
        return False
    placement.view_count += count
    placement.impressions += count
    placement.last_viewed_at = now or utcnow()
    return True


def settle(placement: AdPlacement, payout_per_view: float) -> float:
    """Mark a verified placement paid for its unpaid exposures; returns the amount."""
    unpaid = placement.unpaid_views
    transition(placement, PlacementStatus.paid)
    amount = unpaid * payout_per_view
    placement.total_paid_out += unpaid
    placement.total_payout += amount
    return amount
