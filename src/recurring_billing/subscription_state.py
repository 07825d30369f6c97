"""
Subscription state machine.

A flat transition table plus one guard per target status. Validation never
mutates anything; ``apply_transition`` returns a new snapshot with exactly one
history entry appended (or the same snapshot for a no-op).
"""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from .enums import SubscriptionStatus as Status
from .exceptions import SubscriptionStateError
from .logging import log_transition_event
from .models import StatusChange, SubscriptionSnapshot
from .transitions import (
    Guard,
    TransitionContext,
    TransitionOutcome,
    TransitionResult,
    validate_against,
)

logger = structlog.get_logger(__name__)

TRANSITIONS: Mapping[Status, frozenset[Status]] = {
    Status.PENDING: frozenset(
        {Status.TRIALING, Status.ACTIVE, Status.RETRY, Status.EXPIRED, Status.CANCELED}
    ),
    Status.TRIALING: frozenset({Status.ACTIVE, Status.EXPIRED, Status.CANCELED}),
    Status.ACTIVE: frozenset(
        {Status.PAUSED, Status.GRACE_PERIOD, Status.RETRY, Status.CANCELED, Status.REFUNDED}
    ),
    Status.PAUSED: frozenset({Status.ACTIVE, Status.CANCELED, Status.EXPIRED}),
    Status.GRACE_PERIOD: frozenset(
        {Status.ACTIVE, Status.RETRY, Status.PAST_DUE, Status.EXPIRED, Status.CANCELED}
    ),
    Status.RETRY: frozenset(
        {Status.ACTIVE, Status.GRACE_PERIOD, Status.PAST_DUE, Status.EXPIRED, Status.CANCELED}
    ),
    Status.PAST_DUE: frozenset({Status.ACTIVE, Status.RETRY, Status.EXPIRED, Status.CANCELED}),
    Status.CANCELED: frozenset({Status.REFUNDED}),
    Status.EXPIRED: frozenset(),
    Status.REFUNDED: frozenset(),
}

TERMINAL_STATES = frozenset({Status.EXPIRED, Status.REFUNDED})

# Statuses a failed collection can leave behind and a payment can resolve
_DELINQUENT_STATES = frozenset({Status.GRACE_PERIOD, Status.RETRY, Status.PAST_DUE})


def _guard_active(from_status: Status, context: TransitionContext) -> TransitionResult:
    if from_status is Status.PENDING and not context.payment_successful:
        return TransitionResult.invalid("Payment must be successful to activate subscription")
    if from_status in _DELINQUENT_STATES and not context.payment_resolved:
        return TransitionResult.invalid(
            "Payment issue must be resolved to reactivate subscription"
        )
    return TransitionResult.valid("Subscription activated")


def _guard_grace_period(from_status: Status, context: TransitionContext) -> TransitionResult:
    if from_status not in (Status.ACTIVE, Status.RETRY):
        return TransitionResult.invalid(
            "Grace period can only be entered from ACTIVE or RETRY state"
        )
    if not context.payment_failed:
        return TransitionResult.invalid("Grace period requires payment failure")
    return TransitionResult.valid("Subscription entered grace period")


def _guard_retry(from_status: Status, context: TransitionContext) -> TransitionResult:
    decision = context.retry_decision
    if decision is not None and not decision.should_retry:
        return TransitionResult.invalid(decision.reason or "Retry not allowed by retry policy")
    if not context.is_retriable:
        return TransitionResult.invalid("Payment failure is not retriable")
    if context.current_retries >= context.max_retries:
        return TransitionResult.invalid("Maximum retry attempts exceeded")

    metadata = {}
    if decision is not None:
        metadata = {
            "next_retry_at": decision.next_retry_at,
            "retry_strategy": decision.strategy.value,
        }
    return TransitionResult.valid("Subscription entered retry state", **metadata)


def _guard_canceled(from_status: Status, context: TransitionContext) -> TransitionResult:
    if from_status in TERMINAL_STATES:
        return TransitionResult.invalid("Cannot cancel subscription from terminal state")
    if not (context.reason or "").strip():
        return TransitionResult.invalid("Cancellation reason is required")
    return TransitionResult.valid("Subscription canceled")


def _guard_refunded(from_status: Status, context: TransitionContext) -> TransitionResult:
    if from_status is not Status.CANCELED:
        return TransitionResult.invalid("Refund can only be processed for canceled subscriptions")
    if not context.refund_approved:
        return TransitionResult.invalid("Refund must be approved before processing")
    return TransitionResult.valid("Subscription refunded")


GUARDS: Mapping[Status, Guard] = {
    Status.ACTIVE: _guard_active,
    Status.GRACE_PERIOD: _guard_grace_period,
    Status.RETRY: _guard_retry,
    Status.CANCELED: _guard_canceled,
    Status.REFUNDED: _guard_refunded,
}


def can_transition(from_status: Status, to_status: Status) -> bool:
    """Whether the edge exists, ignoring guards."""
    return to_status in TRANSITIONS[from_status]


def possible_next_states(status: Status) -> frozenset[Status]:
    return TRANSITIONS[status]


def is_terminal(status: Status) -> bool:
    return status in TERMINAL_STATES


def is_active_state(status: Status) -> bool:
    """Statuses in which the customer keeps service."""
    return status in (Status.TRIALING, Status.ACTIVE, Status.GRACE_PERIOD)


def validate_transition(
    from_status: Status,
    to_status: Status,
    context: TransitionContext | None = None,
) -> TransitionResult:
    return validate_against(
        TRANSITIONS, GUARDS, TERMINAL_STATES, from_status, to_status, context or TransitionContext()
    )


def apply_transition(
    subscription: SubscriptionSnapshot,
    to_status: Status,
    context: TransitionContext,
) -> TransitionOutcome[SubscriptionSnapshot]:
    """
    Validate and perform a status change.

    Raises:
        SubscriptionStateError: if the edge is missing or its guard fails.
    """
    result = validate_transition(subscription.status, to_status, context)
    if not result.is_valid:
        logger.warning(
            "subscription.transition.rejected",
            subscription_id=subscription.subscription_id,
            from_status=subscription.status.value,
            to_status=to_status.value,
            message=result.message,
        )
        raise SubscriptionStateError(
            result.message or "Invalid subscription transition",
            current_state=subscription.status.value,
            requested_state=to_status.value,
        )
    if result.is_noop:
        return TransitionOutcome(subscription, result)

    change = StatusChange[Status](
        from_status=subscription.status,
        to_status=to_status,
        changed_at=context.at,
        reason=context.reason or result.message or to_status.value.lower(),
        actor=context.actor,
        metadata=dict(context.metadata),
    )
    updated = subscription.model_copy(
        update={
            "status": to_status,
            "status_history": (*subscription.status_history, change),
        }
    )
    log_transition_event(
        "subscription",
        subscription.subscription_id,
        change.from_status.value,
        change.to_status.value,
        reason=change.reason,
        actor=change.actor,
    )
    return TransitionOutcome(updated, result)
