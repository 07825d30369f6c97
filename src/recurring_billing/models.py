"""
Entity snapshots handled by the billing engine.

Snapshots are frozen: the engine receives one, returns a new one, and the
caller persists it. History tuples only ever grow.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .billing_cycle import BillingCycle, BillingPeriod
from .enums import FailureCategory, PaymentStatus, SubscriptionStatus
from .money import Money

S = TypeVar("S", SubscriptionStatus, PaymentStatus)


class StatusChange(BaseModel, Generic[S]):
    """One recorded status transition."""

    model_config = ConfigDict(frozen=True)

    from_status: S
    to_status: S
    changed_at: datetime
    reason: str
    actor: str = "system"
    metadata: dict[str, Any] = Field(default_factory=dict)


class RetryState(BaseModel):
    """Retry and grace bookkeeping carried by a subscription."""

    model_config = ConfigDict(frozen=True)

    attempt_number: int = Field(0, ge=0)
    max_retries: int = Field(0, ge=0)
    next_retry_at: datetime | None = None
    last_failure_category: FailureCategory | None = None
    grace_period_extensions: int = Field(0, ge=0)
    max_grace_extensions: int = Field(1, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> RetryState:
        if self.attempt_number > self.max_retries:
            raise ValueError("attempt_number cannot exceed max_retries")
        return self

    @property
    def retries_exhausted(self) -> bool:
        return self.attempt_number >= self.max_retries

    @property
    def grace_exhausted(self) -> bool:
        return self.grace_period_extensions >= self.max_grace_extensions

    def reset(self) -> RetryState:
        """Clear retry and grace counters after a successful collection."""
        return RetryState(max_grace_extensions=self.max_grace_extensions)


class FailureDetails(BaseModel):
    """Why a payment attempt failed."""

    model_config = ConfigDict(frozen=True)

    category: FailureCategory
    is_retriable: bool
    error_code: str | None = None
    error_message: str | None = None
    status_code: str | None = None
    failed_at: datetime


class RefundRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    refund_id: str
    amount: Money
    refunded_at: datetime
    reason: str | None = None


class PaymentAttempt(BaseModel):
    """A charge for one billing period of one subscription."""

    model_config = ConfigDict(frozen=True)

    payment_id: str
    subscription_id: str
    amount: Money
    status: PaymentStatus = PaymentStatus.PENDING
    cycle_number: int = Field(1, ge=1)
    submission_count: int = Field(0, ge=0, description="Gateway submissions so far")
    provider_ref: str | None = None
    failure_details: FailureDetails | None = None
    refunds: tuple[RefundRecord, ...] = ()
    status_history: tuple[StatusChange[PaymentStatus], ...] = ()
    created_at: datetime

    @model_validator(mode="after")
    def _check_failure_details(self) -> PaymentAttempt:
        if self.failure_details is not None and self.status not in (
            PaymentStatus.FAILED,
            PaymentStatus.RETRYING,
        ):
            raise ValueError("failure_details is only allowed on FAILED or RETRYING payments")
        return self

    @property
    def total_refunded(self) -> Money:
        return Money.sum((r.amount for r in self.refunds), currency=self.amount.currency)

    @property
    def refundable_amount(self) -> Money:
        return self.amount.subtract(self.total_refunded)

    @property
    def idempotency_key(self) -> str:
        """Key for the current gateway submission."""
        return f"{self.payment_id}:{self.submission_count}"


class SubscriptionSnapshot(BaseModel):
    """The lifecycle state of one subscription."""

    model_config = ConfigDict(frozen=True)

    subscription_id: str
    customer_id: str
    plan_name: str | None = None
    payment_method_ref: str | None = None
    amount: Money
    billing_cycle: BillingCycle
    status: SubscriptionStatus = SubscriptionStatus.PENDING
    current_period: BillingPeriod
    retry_state: RetryState = Field(default_factory=RetryState)
    trial_end_date: datetime | None = None
    grace_period_end_date: datetime | None = None
    last_payment_id: str | None = None
    canceled_at: datetime | None = None
    cancel_reason: str | None = None
    status_history: tuple[StatusChange[SubscriptionStatus], ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)

    def is_due(self, now: datetime) -> bool:
        """Only ACTIVE subscriptions whose period has ended are due."""
        return self.status is SubscriptionStatus.ACTIVE and self.current_period.is_expired(now)

    def is_retry_due(self, now: datetime) -> bool:
        return (
            self.status is SubscriptionStatus.RETRY
            and self.retry_state.next_retry_at is not None
            and self.retry_state.next_retry_at <= now
        )

    def is_grace_elapsed(self, now: datetime) -> bool:
        return (
            self.status in (SubscriptionStatus.GRACE_PERIOD, SubscriptionStatus.PAST_DUE)
            and self.grace_period_end_date is not None
            and self.grace_period_end_date <= now
        )

    def is_in_trial(self, now: datetime) -> bool:
        return (
            self.status is SubscriptionStatus.TRIALING
            and self.trial_end_date is not None
            and now < self.trial_end_date
        )
