"""
Caller-facing subscription lifecycle commands.

Each command takes a snapshot and returns a new one; nothing is persisted
here. Billing runs themselves live in ``orchestrator``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, NamedTuple

import structlog

from .billing_cycle import BillingCycle
from .enums import ProrationMethod, SubscriptionStatus
from .events import BillingEvents, TransitionReasons
from .exceptions import SubscriptionStateError
from .models import RetryState, SubscriptionSnapshot
from .money import Money
from .settings import get_settings
from .subscription_state import apply_transition
from .transitions import TransitionContext

logger = structlog.get_logger(__name__)


class PlanChangeProration(NamedTuple):
    credit: Money
    charge: Money
    net: Money


def create_subscription(
    subscription_id: str,
    customer_id: str,
    amount: Money,
    billing_cycle: BillingCycle,
    start_date: date | datetime,
    payment_method_ref: str | None = None,
    plan_name: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> SubscriptionSnapshot:
    """Build a PENDING subscription whose first period starts on ``start_date``."""
    settings = get_settings()
    return SubscriptionSnapshot(
        subscription_id=subscription_id,
        customer_id=customer_id,
        plan_name=plan_name,
        payment_method_ref=payment_method_ref,
        amount=amount,
        billing_cycle=billing_cycle,
        current_period=billing_cycle.calculate_billing_period(start_date),
        retry_state=RetryState(max_grace_extensions=settings.max_grace_extensions),
        metadata=metadata or {},
    )


def start_subscription(
    subscription: SubscriptionSnapshot,
    now: datetime,
    trial_days: int = 0,
    payment_successful: bool = False,
    actor: str = "system",
) -> SubscriptionSnapshot:
    """
    Move a PENDING subscription into service.

    With ``trial_days`` the subscription starts TRIALING and its first paid
    period begins when the trial ends. Otherwise it becomes ACTIVE, which
    requires the initial payment to have succeeded.

    Raises:
        SubscriptionStateError: if the subscription is not PENDING or the
            initial payment did not succeed.
    """
    if trial_days < 0:
        raise ValueError("trial_days cannot be negative")

    if trial_days:
        trial_end = now + timedelta(days=trial_days)
        outcome = apply_transition(
            subscription,
            SubscriptionStatus.TRIALING,
            TransitionContext(reason=TransitionReasons.TRIAL_STARTED, actor=actor, at=now),
        )
        updated = outcome.entity.model_copy(
            update={
                "trial_end_date": trial_end,
                "current_period": subscription.billing_cycle.calculate_billing_period(trial_end),
            }
        )
    else:
        outcome = apply_transition(
            subscription,
            SubscriptionStatus.ACTIVE,
            TransitionContext(
                reason=TransitionReasons.PAYMENT_SUCCEEDED,
                actor=actor,
                at=now,
                payment_successful=payment_successful,
            ),
        )
        updated = outcome.entity

    logger.info(
        BillingEvents.SUBSCRIPTION_STARTED,
        subscription_id=subscription.subscription_id,
        status=updated.status.value,
        trial_days=trial_days,
    )
    return updated


def end_trial(
    subscription: SubscriptionSnapshot,
    now: datetime,
    payment_successful: bool,
    actor: str = "system",
) -> SubscriptionSnapshot:
    """Convert a trial to ACTIVE, or expire it when the first charge failed."""
    if subscription.status is not SubscriptionStatus.TRIALING:
        raise SubscriptionStateError(
            "Only trialing subscriptions can end a trial",
            current_state=subscription.status.value,
            requested_state=SubscriptionStatus.ACTIVE.value,
        )

    if payment_successful:
        outcome = apply_transition(
            subscription,
            SubscriptionStatus.ACTIVE,
            TransitionContext(
                reason=TransitionReasons.TRIAL_ENDED,
                actor=actor,
                at=now,
                payment_successful=True,
            ),
        )
        # The first paid period starts when the trial actually ends
        updated = outcome.entity.model_copy(
            update={
                "current_period": subscription.billing_cycle.calculate_billing_period(now),
                "trial_end_date": now,
            }
        )
    else:
        updated = apply_transition(
            subscription,
            SubscriptionStatus.EXPIRED,
            TransitionContext(reason=TransitionReasons.TRIAL_ENDED_UNPAID, actor=actor, at=now),
        ).entity

    logger.info(
        BillingEvents.SUBSCRIPTION_TRIAL_ENDED,
        subscription_id=subscription.subscription_id,
        status=updated.status.value,
    )
    return updated


def pause(
    subscription: SubscriptionSnapshot,
    now: datetime,
    reason: str = TransitionReasons.PAUSED,
    actor: str = "system",
) -> SubscriptionSnapshot:
    updated = apply_transition(
        subscription,
        SubscriptionStatus.PAUSED,
        TransitionContext(reason=reason, actor=actor, at=now),
    ).entity
    logger.info(BillingEvents.SUBSCRIPTION_PAUSED, subscription_id=subscription.subscription_id)
    return updated


def resume(
    subscription: SubscriptionSnapshot,
    now: datetime,
    reason: str = TransitionReasons.RESUMED,
    actor: str = "system",
) -> SubscriptionSnapshot:
    """Return a paused subscription to ACTIVE; a lapsed period is due on the next run."""
    if subscription.status is not SubscriptionStatus.PAUSED:
        raise SubscriptionStateError(
            "Only paused subscriptions can be resumed",
            current_state=subscription.status.value,
            requested_state=SubscriptionStatus.ACTIVE.value,
        )
    updated = apply_transition(
        subscription,
        SubscriptionStatus.ACTIVE,
        TransitionContext(reason=reason, actor=actor, at=now),
    ).entity
    logger.info(BillingEvents.SUBSCRIPTION_RESUMED, subscription_id=subscription.subscription_id)
    return updated


def cancel(
    subscription: SubscriptionSnapshot,
    now: datetime,
    reason: str,
    actor: str = "system",
) -> SubscriptionSnapshot:
    """
    Cancel a subscription.

    A pending retry is dropped; the next billing run sees CANCELED and skips.

    Raises:
        SubscriptionStateError: for an empty reason or a terminal subscription.
    """
    outcome = apply_transition(
        subscription,
        SubscriptionStatus.CANCELED,
        TransitionContext(reason=reason, actor=actor, at=now),
    )
    if outcome.result.is_noop:
        return outcome.entity

    updated = outcome.entity.model_copy(
        update={
            "canceled_at": now,
            "cancel_reason": reason,
            "retry_state": subscription.retry_state.model_copy(update={"next_retry_at": None}),
        }
    )
    logger.info(
        BillingEvents.SUBSCRIPTION_CANCELED,
        subscription_id=subscription.subscription_id,
        reason=reason,
        actor=actor,
    )
    return updated


def refund(
    subscription: SubscriptionSnapshot,
    now: datetime,
    refund_approved: bool,
    reason: str = TransitionReasons.REFUND_APPROVED,
    actor: str = "system",
) -> SubscriptionSnapshot:
    """Mark a canceled subscription REFUNDED once the refund is approved."""
    return apply_transition(
        subscription,
        SubscriptionStatus.REFUNDED,
        TransitionContext(reason=reason, actor=actor, at=now, refund_approved=refund_approved),
    ).entity


def plan_change_proration(
    subscription: SubscriptionSnapshot,
    new_amount: Money,
    change_date: date | datetime,
    method: ProrationMethod | None = None,
) -> PlanChangeProration:
    """
    Credit for the unused part of the current plan and charge for the new one.

    Both are prorated over the remainder of the current period; ``net`` is
    positive when the customer owes money.
    """
    method = method or get_settings().proration_method
    cycle = subscription.billing_cycle
    period = subscription.current_period

    credit = cycle.prorate_remaining(period, change_date, subscription.amount, method=method)
    charge = cycle.prorate_remaining(period, change_date, new_amount, method=method)
    return PlanChangeProration(credit=credit, charge=charge, net=charge.subtract(credit))
