"""
Payment attempt state machine.

Mirrors the subscription machine's shape with its own graph. The FAILED →
RETRYING → PROCESSING loop is bounded by the retry policy of the failure's
category. Refunds pick REFUNDED or PARTIALLY_REFUNDED from the cumulative
refunded amount.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from uuid import uuid4

import structlog

from .enums import PaymentStatus as Status
from .events import BillingEvents
from .exceptions import PaymentStateError, RefundError
from .logging import log_transition_event
from .models import FailureDetails, PaymentAttempt, RefundRecord, StatusChange
from .money import Money
from .retry_policy import RetryPolicy
from .transitions import (
    Guard,
    TransitionContext,
    TransitionOutcome,
    TransitionResult,
    validate_against,
)

logger = structlog.get_logger(__name__)

TRANSITIONS: Mapping[Status, frozenset[Status]] = {
    Status.PENDING: frozenset({Status.PROCESSING, Status.CANCELED}),
    Status.PROCESSING: frozenset({Status.SUCCEEDED, Status.FAILED, Status.CANCELED}),
    Status.FAILED: frozenset({Status.RETRYING, Status.CANCELED}),
    Status.RETRYING: frozenset({Status.PROCESSING, Status.CANCELED}),
    Status.SUCCEEDED: frozenset({Status.REFUNDED, Status.PARTIALLY_REFUNDED}),
    Status.PARTIALLY_REFUNDED: frozenset({Status.REFUNDED}),
    Status.CANCELED: frozenset(),
    Status.REFUNDED: frozenset(),
}

# SUCCEEDED only moves on through refunds
TERMINAL_STATES = frozenset({Status.SUCCEEDED, Status.CANCELED, Status.REFUNDED})
_REFUND_TARGETS = frozenset({Status.REFUNDED, Status.PARTIALLY_REFUNDED})


def _guard_retrying(from_status: Status, context: TransitionContext) -> TransitionResult:
    if context.failure_category is None:
        return TransitionResult.invalid("Failure category is required for retry")
    policy = RetryPolicy.for_category(context.failure_category)
    if policy.max_retries == 0:
        return TransitionResult.invalid("Payment failure is not retriable")
    if context.attempt_number >= policy.max_retries:
        return TransitionResult.invalid("Maximum retry attempts exceeded")
    return TransitionResult.valid("Payment entered retry state")


def _guard_refund(from_status: Status, context: TransitionContext) -> TransitionResult:
    if context.refund_amount is None:
        return TransitionResult.invalid("Refund amount is required")
    return TransitionResult.valid("Payment refund processed")


GUARDS: Mapping[Status, Guard] = {
    Status.RETRYING: _guard_retrying,
    Status.REFUNDED: _guard_refund,
    Status.PARTIALLY_REFUNDED: _guard_refund,
}


def _check_refund_total(
    payment: PaymentAttempt, to_status: Status, context: TransitionContext
) -> TransitionResult:
    """REFUNDED only when cumulative refunds reach the original amount."""
    amount = context.refund_amount
    if amount is None:
        return TransitionResult.invalid("Refund amount is required")
    if amount.currency != payment.amount.currency:
        return TransitionResult.invalid("Refund currency must match the payment currency")
    if not amount.is_positive():
        return TransitionResult.invalid("Refund amount must be positive")
    if amount > payment.refundable_amount:
        return TransitionResult.invalid(
            f"Refund of {amount} exceeds refundable amount {payment.refundable_amount}"
        )
    refunded_total = payment.total_refunded.add(amount)
    expected = Status.REFUNDED if refunded_total == payment.amount else Status.PARTIALLY_REFUNDED
    if to_status is not expected:
        return TransitionResult.invalid(
            f"Refunded total {refunded_total} of {payment.amount} requires {expected.value}"
        )
    return TransitionResult.valid("Payment refund processed")


def can_transition(from_status: Status, to_status: Status) -> bool:
    return to_status in TRANSITIONS[from_status]


def is_terminal(status: Status) -> bool:
    return status in TERMINAL_STATES


def validate_transition(
    from_status: Status,
    to_status: Status,
    context: TransitionContext | None = None,
) -> TransitionResult:
    context = context or TransitionContext()
    # SUCCEEDED is final for the charge but still accepts refunds
    if from_status is Status.SUCCEEDED and to_status in _REFUND_TARGETS:
        return _guard_refund(from_status, context)
    return validate_against(TRANSITIONS, GUARDS, TERMINAL_STATES, from_status, to_status, context)


def apply_transition(
    payment: PaymentAttempt,
    to_status: Status,
    context: TransitionContext,
    failure_details: FailureDetails | None = None,
    **updates: object,
) -> TransitionOutcome[PaymentAttempt]:
    """
    Validate and perform a payment status change.

    ``failure_details`` is kept only for FAILED/RETRYING targets and cleared
    otherwise. Extra ``updates`` are applied to the new snapshot.
    Refund targets must agree with the cumulative refunded total.

    Raises:
        PaymentStateError: if the edge is missing or its guard fails.
    """
    result = validate_transition(payment.status, to_status, context)
    if result.is_valid and not result.is_noop and to_status in _REFUND_TARGETS:
        result = _check_refund_total(payment, to_status, context)
    if not result.is_valid:
        logger.warning(
            "payment.transition.rejected",
            payment_id=payment.payment_id,
            from_status=payment.status.value,
            to_status=to_status.value,
            message=result.message,
        )
        raise PaymentStateError(
            result.message or "Invalid payment transition",
            current_state=payment.status.value,
            requested_state=to_status.value,
        )
    if result.is_noop:
        return TransitionOutcome(payment, result)

    if to_status in (Status.FAILED, Status.RETRYING):
        details = failure_details or payment.failure_details
    else:
        details = None

    change = StatusChange[Status](
        from_status=payment.status,
        to_status=to_status,
        changed_at=context.at,
        reason=context.reason or result.message or to_status.value.lower(),
        actor=context.actor,
        metadata=dict(context.metadata),
    )
    updated = payment.model_copy(
        update={
            **updates,
            "status": to_status,
            "failure_details": details,
            "status_history": (*payment.status_history, change),
        }
    )
    log_transition_event(
        "payment",
        payment.payment_id,
        change.from_status.value,
        change.to_status.value,
        reason=change.reason,
        actor=change.actor,
    )
    return TransitionOutcome(updated, result)


def record_refund(
    payment: PaymentAttempt,
    amount: Money,
    at: datetime,
    reason: str | None = None,
    actor: str = "system",
    refund_id: str | None = None,
) -> TransitionOutcome[PaymentAttempt]:
    """
    Refund part or all of a settled payment.

    The payment becomes REFUNDED once the cumulative refunds equal the
    original amount and PARTIALLY_REFUNDED before that.
    """
    if amount.currency != payment.amount.currency:
        raise RefundError("Refund currency must match the payment currency", payment.payment_id)
    if not amount.is_positive():
        raise RefundError("Refund amount must be positive", payment.payment_id)
    if amount > payment.refundable_amount:
        raise RefundError(
            f"Refund of {amount} exceeds refundable amount {payment.refundable_amount}",
            payment.payment_id,
        )

    refunded_total = payment.total_refunded.add(amount)
    target = Status.REFUNDED if refunded_total == payment.amount else Status.PARTIALLY_REFUNDED
    refund = RefundRecord(
        refund_id=refund_id or f"refund_{uuid4().hex}",
        amount=amount,
        refunded_at=at,
        reason=reason,
    )
    context = TransitionContext(
        reason=reason or f"refund {refund.refund_id}",
        actor=actor,
        at=at,
        refund_amount=amount,
        metadata={"refund_id": refund.refund_id, "refunded_total": refunded_total.amount},
    )
    logger.info(
        BillingEvents.PAYMENT_REFUNDED,
        payment_id=payment.payment_id,
        refund_id=refund.refund_id,
        amount=amount.amount,
        refunded_total=refunded_total.amount,
    )
    if target is payment.status:
        # A further partial refund keeps the status but still records the refund
        updated = payment.model_copy(update={"refunds": (*payment.refunds, refund)})
        return TransitionOutcome(updated, TransitionResult.noop())

    return apply_transition(payment, target, context, refunds=(*payment.refunds, refund))
