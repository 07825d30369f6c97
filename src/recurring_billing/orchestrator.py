"""
Billing orchestration.

Runs one billing attempt for one subscription: re-checks the stored status,
creates or resumes the payment attempt, calls the gateway under a timeout,
classifies the result and drives both state machines. Payment failures are
handled here as data; only collaborator faults reach the caller.

Runs for the same subscription are serialised by a per-subscription lock;
batches fan out across subscriptions under a semaphore.
"""

from __future__ import annotations

import asyncio
import time
import weakref
from datetime import datetime, timedelta
from enum import Enum
from uuid import NAMESPACE_URL, uuid5

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .enums import BillingOutcome, FailureCategory, PaymentStatus, SubscriptionStatus
from .events import BillingEvents, TransitionReasons
from .exceptions import (
    BillingError,
    CollaboratorUnavailableError,
    CurrencyMismatchError,
    GatewayUnavailableError,
    PaymentNotFoundError,
    PersistenceError,
    SubscriptionNotFoundError,
)
from .failures import GATEWAY_TIMEOUT_CODE, classify_gateway_failure
from .interfaces import (
    DiscountResolver,
    GatewayResult,
    PaymentGateway,
    PaymentMethodValidator,
    SubscriptionRepository,
)
from .metrics import BillingMetrics, get_billing_metrics
from .models import FailureDetails, PaymentAttempt, RetryState, SubscriptionSnapshot
from .money import Money
from .payment_state import apply_transition as apply_payment_transition
from .payment_state import validate_transition as validate_payment_transition
from .retry_policy import RetryDecision, RetryJitter, evaluate_retry
from .settings import BillingEngineSettings, get_settings
from .subscription_state import apply_transition as apply_subscription_transition
from .transitions import TransitionContext

logger = structlog.get_logger(__name__)

# Statuses in which a run may collect money
BILLABLE_STATES = frozenset(
    {
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.RETRY,
        SubscriptionStatus.GRACE_PERIOD,
        SubscriptionStatus.PAST_DUE,
    }
)
_DELINQUENT_STATES = BILLABLE_STATES - {SubscriptionStatus.ACTIVE}


class SkipReason(str, Enum):
    NOT_BILLABLE = "not_billable"
    NOT_DUE = "not_due"
    RETRY_NOT_DUE = "retry_not_due"
    NO_PAYMENT_METHOD = "no_payment_method"


class BillingRunResult(BaseModel):
    """Outcome of one billing run for one subscription."""

    model_config = ConfigDict(frozen=True)

    subscription_id: str
    outcome: BillingOutcome
    subscription: SubscriptionSnapshot
    payment: PaymentAttempt | None = None
    failure_category: FailureCategory | None = None
    retry_decision: RetryDecision | None = None
    message: str | None = None


class BatchBillingResult(BaseModel):
    """Results of a batch run keyed by outcome; failed runs carry the error payload."""

    results: list[BillingRunResult] = Field(default_factory=list)
    errors: dict[str, dict[str, object]] = Field(default_factory=dict)

    def by_outcome(self, outcome: BillingOutcome) -> list[BillingRunResult]:
        return [r for r in self.results if r.outcome is outcome]

    @property
    def succeeded_count(self) -> int:
        return len(self.by_outcome(BillingOutcome.SUCCEEDED))

    @property
    def error_count(self) -> int:
        return len(self.errors)


def payment_id_for(subscription: SubscriptionSnapshot) -> str:
    """Stable payment id for the subscription's current billing attempt."""
    retry = subscription.retry_state
    key = (
        f"recurring-billing:{subscription.subscription_id}:"
        f"{subscription.current_period.cycle_number}:"
        f"{retry.attempt_number}:{retry.grace_period_extensions}"
    )
    return str(uuid5(NAMESPACE_URL, key))


class BillingOrchestrator:
    """
    Drives billing runs against the injected collaborators.

    ``grace_period_days``, ``gateway_timeout`` and ``concurrency`` default to
    the engine settings.
    """

    def __init__(
        self,
        repository: SubscriptionRepository,
        gateway: PaymentGateway,
        payment_method_validator: PaymentMethodValidator | None = None,
        discount_resolver: DiscountResolver | None = None,
        settings: BillingEngineSettings | None = None,
        metrics: BillingMetrics | None = None,
        grace_period_days: int | None = None,
        gateway_timeout: float | None = None,
        concurrency: int | None = None,
        jitter: RetryJitter | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.repository = repository
        self.gateway = gateway
        self.payment_method_validator = payment_method_validator
        self.discount_resolver = discount_resolver
        self.metrics = metrics or get_billing_metrics()
        self.grace_period_days = (
            grace_period_days if grace_period_days is not None else settings.grace_period_days
        )
        self.gateway_timeout = gateway_timeout or settings.gateway_timeout_seconds
        self.concurrency = concurrency or settings.batch_concurrency
        if jitter is None and settings.retry_jitter.enabled:
            jitter = RetryJitter(settings.retry_jitter.seed, settings.retry_jitter.ratio)
        self.jitter = jitter
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, subscription_id: str) -> asyncio.Lock:
        lock = self._locks.get(subscription_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[subscription_id] = lock
        return lock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, subscription_id: str, now: datetime) -> BillingRunResult:
        """
        Run one billing attempt for ``subscription_id``.

        Raises:
            SubscriptionNotFoundError: if the repository has no such subscription.
            GatewayUnavailableError: if the gateway raised instead of answering.
            PersistenceError: if the repository failed to load or save.
            CollaboratorUnavailableError: if the payment-method validator or
                discount resolver raised.
            PaymentNotFoundError: if a scheduled retry's payment is missing.
        """
        lock = self._lock_for(subscription_id)
        async with lock:
            return await self._run_locked(subscription_id, now)

    async def run_batch(self, subscription_ids: list[str], now: datetime) -> BatchBillingResult:
        """Bill many subscriptions concurrently; one failing run does not stop the rest."""
        semaphore = asyncio.Semaphore(self.concurrency)
        batch = BatchBillingResult()

        async def _one(subscription_id: str) -> None:
            async with semaphore:
                try:
                    batch.results.append(await self.run(subscription_id, now))
                except BillingError as exc:
                    logger.error(
                        BillingEvents.RUN_FAILED,
                        subscription_id=subscription_id,
                        error_code=exc.error_code,
                        error=exc.message,
                    )
                    batch.errors[subscription_id] = exc.to_dict()

        await asyncio.gather(*(_one(sid) for sid in dict.fromkeys(subscription_ids)))
        logger.info(
            BillingEvents.BATCH_COMPLETED,
            total=len(subscription_ids),
            succeeded=batch.succeeded_count,
            errors=batch.error_count,
        )
        return batch

    # ------------------------------------------------------------------
    # Run steps
    # ------------------------------------------------------------------

    async def _run_locked(self, subscription_id: str, now: datetime) -> BillingRunResult:
        subscription = await self._load_subscription(subscription_id)
        log = logger.bind(subscription_id=subscription_id, status=subscription.status.value)
        self.metrics.record_run_started(subscription.status)
        log.info(BillingEvents.RUN_STARTED)

        skip = self._skip_reason(subscription, now)
        if skip is not None:
            log.info(BillingEvents.RUN_SKIPPED, reason=skip.value)
            return BillingRunResult(
                subscription_id=subscription_id,
                outcome=BillingOutcome.SKIPPED,
                subscription=subscription,
                message=skip.value,
            )

        settled = await self._settled_payment(subscription)
        if settled is not None:
            return await self._apply_settled_payment(subscription, settled, now)

        if subscription.is_grace_elapsed(now) and subscription.retry_state.grace_exhausted:
            expired = self._transition(
                subscription,
                SubscriptionStatus.EXPIRED,
                TransitionContext(reason=TransitionReasons.GRACE_EXHAUSTED, at=now),
            )
            await self._save_subscription(expired)
            log.info(BillingEvents.SUBSCRIPTION_EXPIRED, reason=TransitionReasons.GRACE_EXHAUSTED)
            return BillingRunResult(
                subscription_id=subscription_id,
                outcome=BillingOutcome.EXPIRED,
                subscription=expired,
                message=TransitionReasons.GRACE_EXHAUSTED,
            )

        if not await self._payment_method_available(subscription):
            log.warning(BillingEvents.RUN_SKIPPED, reason=SkipReason.NO_PAYMENT_METHOD.value)
            return BillingRunResult(
                subscription_id=subscription_id,
                outcome=BillingOutcome.REJECTED,
                subscription=subscription,
                message=SkipReason.NO_PAYMENT_METHOD.value,
            )

        amount = await self._resolve_amount(subscription)
        payment = await self._prepare_payment(subscription, amount, now)
        result = await self._submit(subscription, payment)

        if result.success:
            return await self._handle_success(subscription, payment, result, now)
        return await self._handle_failure(subscription, payment, result, now)

    def _skip_reason(self, subscription: SubscriptionSnapshot, now: datetime) -> SkipReason | None:
        status = subscription.status
        if status not in BILLABLE_STATES:
            return SkipReason.NOT_BILLABLE
        if status is SubscriptionStatus.ACTIVE and not subscription.is_due(now):
            return SkipReason.NOT_DUE
        if status is SubscriptionStatus.RETRY and not subscription.is_retry_due(now):
            return SkipReason.RETRY_NOT_DUE
        return None

    async def _payment_method_available(self, subscription: SubscriptionSnapshot) -> bool:
        ref = subscription.payment_method_ref
        if not ref:
            return False
        if self.payment_method_validator is None:
            return True
        try:
            return await self.payment_method_validator.is_available(ref)
        except Exception as exc:
            raise CollaboratorUnavailableError(
                f"Payment method validator failed: {exc}",
                "payment_method_validator",
                subscription.subscription_id,
            ) from exc

    async def _resolve_amount(self, subscription: SubscriptionSnapshot) -> Money:
        amount = subscription.amount
        if self.discount_resolver is None:
            return amount
        try:
            adjusted = await self.discount_resolver.resolve(subscription, amount)
        except Exception as exc:
            raise CollaboratorUnavailableError(
                f"Discount resolver failed: {exc}",
                "discount_resolver",
                subscription.subscription_id,
            ) from exc
        if adjusted.currency != amount.currency:
            raise CurrencyMismatchError(amount.currency, adjusted.currency)
        # A discount never turns a charge into a credit
        return adjusted.max(Money.zero(amount.currency))

    async def _prepare_payment(
        self, subscription: SubscriptionSnapshot, amount: Money, now: datetime
    ) -> PaymentAttempt:
        """Resume the failed payment of a scheduled retry, or open a new one."""
        previous = await self._resumable_payment(subscription)
        if previous is not None:
            details = previous.failure_details
            retrying = apply_payment_transition(
                previous,
                PaymentStatus.RETRYING,
                TransitionContext(
                    reason=TransitionReasons.RETRY_SCHEDULED,
                    at=now,
                    failure_category=details.category if details else None,
                    attempt_number=subscription.retry_state.attempt_number - 1,
                ),
            ).entity
            return apply_payment_transition(
                retrying,
                PaymentStatus.PROCESSING,
                TransitionContext(reason=TransitionReasons.SUBMITTED, at=now),
                submission_count=retrying.submission_count + 1,
            ).entity

        payment = PaymentAttempt(
            payment_id=payment_id_for(subscription),
            subscription_id=subscription.subscription_id,
            amount=amount,
            cycle_number=subscription.current_period.cycle_number,
            created_at=now,
        )
        return apply_payment_transition(
            payment,
            PaymentStatus.PROCESSING,
            TransitionContext(reason=TransitionReasons.SUBMITTED, at=now),
            submission_count=1,
        ).entity

    async def _resumable_payment(self, subscription: SubscriptionSnapshot) -> PaymentAttempt | None:
        if subscription.status is not SubscriptionStatus.RETRY or not subscription.last_payment_id:
            return None
        payment = await self._load_payment(subscription.last_payment_id)
        if payment is None:
            raise PaymentNotFoundError(
                f"Payment {subscription.last_payment_id} not found",
                subscription.last_payment_id,
            )
        if (
            payment.status is not PaymentStatus.FAILED
            or payment.failure_details is None
            or payment.cycle_number != subscription.current_period.cycle_number
        ):
            return None
        check = validate_payment_transition(
            payment.status,
            PaymentStatus.RETRYING,
            TransitionContext(
                failure_category=payment.failure_details.category,
                attempt_number=subscription.retry_state.attempt_number - 1,
            ),
        )
        return payment if check.is_valid else None

    async def _submit(
        self, subscription: SubscriptionSnapshot, payment: PaymentAttempt
    ) -> GatewayResult:
        """Call the gateway; a timeout becomes a retriable failure result."""
        log = logger.bind(
            subscription_id=subscription.subscription_id,
            payment_id=payment.payment_id,
            idempotency_key=payment.idempotency_key,
        )
        log.info(BillingEvents.PAYMENT_SUBMITTED, amount=payment.amount.amount)
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self.gateway.submit(
                    payment.amount,
                    subscription.payment_method_ref or "",
                    payment.idempotency_key,
                ),
                timeout=self.gateway_timeout,
            )
        except TimeoutError:
            self.metrics.record_gateway_duration(_elapsed_ms(started), "timeout")
            log.warning(BillingEvents.GATEWAY_TIMEOUT, timeout_seconds=self.gateway_timeout)
            return GatewayResult(
                success=False,
                status_code="TIMEOUT",
                error_code=GATEWAY_TIMEOUT_CODE,
                error_message=f"Gateway did not answer within {self.gateway_timeout}s",
            )
        except Exception as exc:
            self.metrics.record_gateway_duration(_elapsed_ms(started), "error")
            log.error(BillingEvents.GATEWAY_ERROR, error=str(exc))
            raise GatewayUnavailableError(
                f"Payment gateway unavailable: {exc}", subscription.subscription_id
            ) from exc

        self.metrics.record_gateway_duration(
            _elapsed_ms(started), "success" if result.success else "failure"
        )
        return result

    async def _settled_payment(self, subscription: SubscriptionSnapshot) -> PaymentAttempt | None:
        """A payment already settled for the current cycle whose renewal was never saved."""
        cycle = subscription.current_period.cycle_number
        candidates = (subscription.last_payment_id, payment_id_for(subscription))
        for payment_id in dict.fromkeys(filter(None, candidates)):
            payment = await self._load_payment(payment_id)
            if (
                payment is not None
                and payment.status is PaymentStatus.SUCCEEDED
                and payment.subscription_id == subscription.subscription_id
                and payment.cycle_number == cycle
            ):
                return payment
        return None

    async def _apply_settled_payment(
        self, subscription: SubscriptionSnapshot, settled: PaymentAttempt, now: datetime
    ) -> BillingRunResult:
        """Finish a renewal whose payment was saved but whose subscription was not."""
        updated = self._renewed(subscription, settled, now)
        await self._save_subscription(updated)
        logger.info(
            BillingEvents.PAYMENT_SETTLEMENT_APPLIED,
            subscription_id=subscription.subscription_id,
            payment_id=settled.payment_id,
            cycle_number=settled.cycle_number,
        )
        return self._renewal_result(subscription, updated, settled)

    async def _handle_success(
        self,
        subscription: SubscriptionSnapshot,
        payment: PaymentAttempt,
        result: GatewayResult,
        now: datetime,
    ) -> BillingRunResult:
        settled = apply_payment_transition(
            payment,
            PaymentStatus.SUCCEEDED,
            TransitionContext(reason=TransitionReasons.PAYMENT_SUCCEEDED, at=now),
            provider_ref=result.provider_ref,
        ).entity
        updated = self._renewed(subscription, settled, now)

        await self._persist(updated, settled)
        self.metrics.record_payment_succeeded(settled.amount.amount, settled.amount.currency)
        logger.info(
            BillingEvents.PAYMENT_SUCCEEDED,
            subscription_id=subscription.subscription_id,
            payment_id=settled.payment_id,
            provider_ref=settled.provider_ref,
        )
        return self._renewal_result(subscription, updated, settled)

    def _renewed(
        self, subscription: SubscriptionSnapshot, settled: PaymentAttempt, now: datetime
    ) -> SubscriptionSnapshot:
        updated = subscription
        if subscription.status in _DELINQUENT_STATES:
            updated = self._transition(
                subscription,
                SubscriptionStatus.ACTIVE,
                TransitionContext(
                    reason=TransitionReasons.PAYMENT_RESOLVED,
                    at=now,
                    payment_resolved=True,
                    metadata={"payment_id": settled.payment_id},
                ),
            )
        return updated.model_copy(
            update={
                "retry_state": subscription.retry_state.reset(),
                "grace_period_end_date": None,
                "current_period": subscription.billing_cycle.next_period(
                    subscription.current_period
                ),
                "last_payment_id": settled.payment_id,
            }
        )

    def _renewal_result(
        self,
        subscription: SubscriptionSnapshot,
        updated: SubscriptionSnapshot,
        settled: PaymentAttempt,
    ) -> BillingRunResult:
        logger.info(
            BillingEvents.SUBSCRIPTION_RENEWED,
            subscription_id=subscription.subscription_id,
            cycle_number=updated.current_period.cycle_number,
            next_period_start=updated.current_period.start_date.isoformat(),
        )
        return BillingRunResult(
            subscription_id=subscription.subscription_id,
            outcome=BillingOutcome.SUCCEEDED,
            subscription=updated,
            payment=settled,
        )

    async def _handle_failure(
        self,
        subscription: SubscriptionSnapshot,
        payment: PaymentAttempt,
        result: GatewayResult,
        now: datetime,
    ) -> BillingRunResult:
        category = classify_gateway_failure(result.status_code, result.error_code)
        details = FailureDetails(
            category=category,
            is_retriable=category.is_retriable,
            error_code=result.error_code,
            error_message=result.error_message,
            status_code=result.status_code,
            failed_at=now,
        )
        failed = apply_payment_transition(
            payment,
            PaymentStatus.FAILED,
            TransitionContext(reason=TransitionReasons.PAYMENT_FAILED, at=now),
            failure_details=details,
            provider_ref=result.provider_ref,
        ).entity
        self.metrics.record_payment_failed(category, payment.amount.currency)
        logger.warning(
            BillingEvents.PAYMENT_FAILED,
            subscription_id=subscription.subscription_id,
            payment_id=failed.payment_id,
            category=category.value,
            error_code=result.error_code,
            attempt=subscription.retry_state.attempt_number,
        )

        retry = subscription.retry_state
        decision = evaluate_retry(category, retry.attempt_number, now, jitter=self.jitter)

        if decision.should_retry:
            updated = self._schedule_retry(subscription, decision, now)
            outcome = BillingOutcome.RETRY_SCHEDULED
            self.metrics.record_retry_scheduled(category, decision.attempt_number + 1)
        else:
            updated = self._enter_delinquency(subscription, decision, now)
            outcome = (
                BillingOutcome.EXPIRED
                if updated.status is SubscriptionStatus.EXPIRED
                else BillingOutcome.PAST_DUE
            )

        updated = updated.model_copy(update={"last_payment_id": failed.payment_id})
        await self._persist(updated, failed)
        logger.info(
            BillingEvents.RUN_COMPLETED,
            subscription_id=subscription.subscription_id,
            outcome=outcome.value,
            reason=decision.reason,
        )
        return BillingRunResult(
            subscription_id=subscription.subscription_id,
            outcome=outcome,
            subscription=updated,
            payment=failed,
            failure_category=category,
            retry_decision=decision,
            message=decision.reason,
        )

    def _schedule_retry(
        self, subscription: SubscriptionSnapshot, decision: RetryDecision, now: datetime
    ) -> SubscriptionSnapshot:
        retry = subscription.retry_state
        updated = self._transition(
            subscription,
            SubscriptionStatus.RETRY,
            TransitionContext(
                reason=TransitionReasons.RETRY_SCHEDULED,
                at=now,
                is_retriable=True,
                current_retries=retry.attempt_number,
                max_retries=decision.max_retries,
                retry_decision=decision,
                metadata={"attempt_number": retry.attempt_number + 1},
            ),
        )
        new_retry = RetryState(
            attempt_number=retry.attempt_number + 1,
            max_retries=decision.max_retries,
            next_retry_at=decision.next_retry_at,
            last_failure_category=decision.category,
            grace_period_extensions=retry.grace_period_extensions,
            max_grace_extensions=retry.max_grace_extensions,
        )
        return updated.model_copy(update={"retry_state": new_retry})

    def _enter_delinquency(
        self, subscription: SubscriptionSnapshot, decision: RetryDecision, now: datetime
    ) -> SubscriptionSnapshot:
        """
        Move an unrecoverable failure into grace, or expire once grace is used up.

        ACTIVE has no direct edge to PAST_DUE or EXPIRED, so it passes through
        GRACE_PERIOD first.
        """
        retry = subscription.retry_state
        updated = subscription
        if updated.status is SubscriptionStatus.ACTIVE:
            updated = self._transition(
                updated,
                SubscriptionStatus.GRACE_PERIOD,
                TransitionContext(
                    reason=TransitionReasons.PAYMENT_FAILED, at=now, payment_failed=True
                ),
            )

        exhausted_retry = RetryState(
            attempt_number=retry.attempt_number,
            max_retries=max(decision.max_retries, retry.attempt_number),
            last_failure_category=decision.category,
            grace_period_extensions=retry.grace_period_extensions,
            max_grace_extensions=retry.max_grace_extensions,
        )

        if retry.grace_exhausted:
            updated = self._transition(
                updated,
                SubscriptionStatus.EXPIRED,
                TransitionContext(
                    reason=TransitionReasons.GRACE_EXHAUSTED,
                    at=now,
                    metadata={"failure_reason": decision.reason},
                ),
            )
            logger.info(
                BillingEvents.SUBSCRIPTION_EXPIRED,
                subscription_id=subscription.subscription_id,
                reason=TransitionReasons.GRACE_EXHAUSTED,
            )
            return updated.model_copy(update={"retry_state": exhausted_retry})

        grace_end = now + timedelta(days=self.grace_period_days)
        if updated.status is SubscriptionStatus.PAST_DUE:
            # Already past due: the window moves but no transition is recorded
            logger.info(
                BillingEvents.SUBSCRIPTION_GRACE_EXTENDED,
                subscription_id=subscription.subscription_id,
                grace_period_end_date=grace_end.isoformat(),
                extension=retry.grace_period_extensions + 1,
            )
        updated = self._transition(
            updated,
            SubscriptionStatus.PAST_DUE,
            TransitionContext(
                reason=decision.reason,
                at=now,
                metadata={"grace_period_end_date": grace_end.isoformat()},
            ),
        )
        return updated.model_copy(
            update={
                "grace_period_end_date": grace_end,
                "retry_state": exhausted_retry.model_copy(
                    update={"grace_period_extensions": retry.grace_period_extensions + 1}
                ),
            }
        )

    def _transition(
        self,
        subscription: SubscriptionSnapshot,
        to_status: SubscriptionStatus,
        context: TransitionContext,
    ) -> SubscriptionSnapshot:
        outcome = apply_subscription_transition(subscription, to_status, context)
        if not outcome.result.is_noop:
            self.metrics.record_transition(subscription.status, to_status)
        return outcome.entity

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _load_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        try:
            subscription = await self.repository.load_subscription(subscription_id)
        except Exception as exc:
            raise PersistenceError(f"Failed to load subscription: {exc}", subscription_id) from exc
        if subscription is None:
            raise SubscriptionNotFoundError(
                f"Subscription {subscription_id} not found", subscription_id
            )
        return subscription

    async def _load_payment(self, payment_id: str) -> PaymentAttempt | None:
        try:
            return await self.repository.load_payment(payment_id)
        except Exception as exc:
            raise PersistenceError(f"Failed to load payment: {exc}", payment_id) from exc

    async def _save_subscription(self, subscription: SubscriptionSnapshot) -> None:
        try:
            await self.repository.save_subscription(subscription)
        except Exception as exc:
            raise PersistenceError(
                f"Failed to save subscription: {exc}", subscription.subscription_id
            ) from exc

    async def _persist(self, subscription: SubscriptionSnapshot, payment: PaymentAttempt) -> None:
        """Payment first, so the subscription never points at an unsaved payment."""
        try:
            await self.repository.save_payment(payment)
        except Exception as exc:
            raise PersistenceError(f"Failed to save payment: {exc}", payment.payment_id) from exc
        await self._save_subscription(subscription)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
