"""Tests for caller-facing lifecycle commands."""

from datetime import date, datetime, timedelta

import pytest

from recurring_billing.billing_cycle import BillingCycle
from recurring_billing.enums import FailureCategory, ProrationMethod, SubscriptionStatus
from recurring_billing.exceptions import SubscriptionStateError
from recurring_billing.lifecycle import (
    cancel,
    create_subscription,
    end_trial,
    pause,
    plan_change_proration,
    refund,
    resume,
    start_subscription,
)
from recurring_billing.models import RetryState
from recurring_billing.money import Money
from recurring_billing.settings import BillingEngineSettings, set_settings

S = SubscriptionStatus


@pytest.fixture
def pending():
    return create_subscription(
        "sub_new",
        "cust_9",
        Money(1000, "TWD"),
        BillingCycle.monthly(),
        date(2024, 3, 1),
        payment_method_ref="pm_card",
        plan_name="basic",
    )


@pytest.mark.unit
class TestCreateAndStart:
    def test_create_is_pending_with_first_period(self, pending):
        assert pending.status is S.PENDING
        assert pending.current_period.start_date == date(2024, 3, 1)
        assert pending.current_period.end_date == date(2024, 3, 31)
        assert pending.current_period.cycle_number == 1
        assert pending.status_history == ()

    def test_create_takes_grace_limit_from_settings(self):
        set_settings(BillingEngineSettings(_env_file=None, max_grace_extensions=3))
        subscription = create_subscription(
            "sub_x", "cust_x", Money(500, "TWD"), BillingCycle.monthly(), date(2024, 3, 1)
        )
        assert subscription.retry_state.max_grace_extensions == 3

    def test_start_with_trial(self, pending, now):
        started = start_subscription(pending, now, trial_days=14)
        assert started.status is S.TRIALING
        assert started.trial_end_date == now + timedelta(days=14)
        assert started.current_period.start_date == date(2024, 3, 15)
        assert started.is_in_trial(now)
        assert started.status_history[-1].reason == "trial_started"

    def test_start_without_trial_needs_payment(self, pending, now):
        with pytest.raises(SubscriptionStateError, match="successful"):
            start_subscription(pending, now)

    def test_start_with_successful_payment(self, pending, now):
        started = start_subscription(pending, now, payment_successful=True, actor="cust_9")
        assert started.status is S.ACTIVE
        assert started.status_history[-1].actor == "cust_9"

    def test_negative_trial_rejected(self, pending, now):
        with pytest.raises(ValueError):
            start_subscription(pending, now, trial_days=-1)

    def test_cannot_start_twice(self, pending, now):
        started = start_subscription(pending, now, payment_successful=True)
        with pytest.raises(SubscriptionStateError):
            start_subscription(started, now, trial_days=7)


@pytest.mark.unit
class TestEndTrial:
    def test_paid_trial_becomes_active(self, pending, now):
        trialing = start_subscription(pending, now, trial_days=14)
        trial_end = now + timedelta(days=14)

        active = end_trial(trialing, trial_end, payment_successful=True)

        assert active.status is S.ACTIVE
        assert active.current_period.start_date == date(2024, 3, 15)
        assert active.current_period.end_date == date(2024, 4, 14)
        assert active.status_history[-1].reason == "trial_ended"
        assert not active.is_in_trial(trial_end)

    def test_unpaid_trial_expires(self, pending, now):
        trialing = start_subscription(pending, now, trial_days=14)
        expired = end_trial(trialing, now + timedelta(days=14), payment_successful=False)
        assert expired.status is S.EXPIRED
        assert expired.status_history[-1].reason == "trial_ended_unpaid"

    def test_only_trialing_subscriptions(self, make_subscription, now):
        with pytest.raises(SubscriptionStateError):
            end_trial(make_subscription(status=S.ACTIVE), now, payment_successful=True)


@pytest.mark.unit
class TestPauseResume:
    def test_pause_then_resume(self, make_subscription, now):
        paused = pause(make_subscription(status=S.ACTIVE), now)
        assert paused.status is S.PAUSED

        resumed = resume(paused, now + timedelta(days=3))
        assert resumed.status is S.ACTIVE
        assert [c.to_status for c in resumed.status_history] == [S.PAUSED, S.ACTIVE]

    def test_resume_requires_paused(self, make_subscription, now):
        with pytest.raises(SubscriptionStateError):
            resume(make_subscription(status=S.ACTIVE), now)

    def test_cannot_pause_while_delinquent(self, make_subscription, now):
        with pytest.raises(SubscriptionStateError):
            pause(make_subscription(status=S.PAST_DUE), now)


@pytest.mark.unit
class TestCancelAndRefund:
    def test_cancel_drops_pending_retry(self, make_subscription, now):
        subscription = make_subscription(
            status=S.RETRY,
            retry_state=RetryState(
                attempt_number=1,
                max_retries=5,
                next_retry_at=now + timedelta(minutes=5),
                last_failure_category=FailureCategory.RETRIABLE,
            ),
        )

        canceled = cancel(subscription, now, reason="customer request", actor="cust_1")

        assert canceled.status is S.CANCELED
        assert canceled.canceled_at == now
        assert canceled.cancel_reason == "customer request"
        assert canceled.retry_state.next_retry_at is None
        assert canceled.retry_state.attempt_number == 1
        assert not canceled.is_retry_due(now + timedelta(hours=1))

    def test_cancel_requires_reason(self, make_subscription, now):
        with pytest.raises(SubscriptionStateError, match="reason"):
            cancel(make_subscription(status=S.ACTIVE), now, reason="")

    def test_cancel_twice_is_a_noop(self, make_subscription, now):
        canceled = cancel(make_subscription(status=S.ACTIVE), now, reason="moving")
        again = cancel(canceled, now + timedelta(days=1), reason="still moving")
        assert again is canceled

    def test_cannot_cancel_expired(self, make_subscription, now):
        with pytest.raises(SubscriptionStateError):
            cancel(make_subscription(status=S.EXPIRED), now, reason="late")

    def test_refund_after_cancel(self, make_subscription, now):
        canceled = cancel(make_subscription(status=S.ACTIVE), now, reason="unhappy")
        refunded = refund(canceled, now, refund_approved=True)
        assert refunded.status is S.REFUNDED

    def test_refund_needs_approval(self, make_subscription, now):
        canceled = cancel(make_subscription(status=S.ACTIVE), now, reason="unhappy")
        with pytest.raises(SubscriptionStateError, match="approved"):
            refund(canceled, now, refund_approved=False)

    def test_refund_needs_cancellation(self, make_subscription, now):
        with pytest.raises(SubscriptionStateError):
            refund(make_subscription(status=S.ACTIVE), now, refund_approved=True)


@pytest.mark.unit
class TestPlanChangeProration:
    def test_upgrade_mid_period(self, make_subscription):
        subscription = make_subscription(amount=Money(3000, "TWD"))
        proration = plan_change_proration(subscription, Money(6000, "TWD"), date(2024, 2, 20))
        assert proration.credit == Money(1000, "TWD")
        assert proration.charge == Money(2000, "TWD")
        assert proration.net == Money(1000, "TWD")

    def test_downgrade_gives_net_credit(self, make_subscription):
        subscription = make_subscription(amount=Money(6000, "TWD"))
        proration = plan_change_proration(subscription, Money(3000, "TWD"), date(2024, 2, 20))
        assert proration.net == Money(-1000, "TWD")

    def test_exact_method(self, make_subscription):
        subscription = make_subscription(amount=Money(2900, "TWD"))
        proration = plan_change_proration(
            subscription,
            Money(5800, "TWD"),
            datetime(2024, 2, 20, 12, 0),
            method=ProrationMethod.EXACT,
        )
        assert proration.credit == Money(1000, "TWD")
        assert proration.charge == Money(2000, "TWD")

    def test_after_period_end_nothing_to_prorate(self, make_subscription):
        subscription = make_subscription(amount=Money(3000, "TWD"))
        proration = plan_change_proration(subscription, Money(6000, "TWD"), date(2024, 3, 2))
        assert proration.net.is_zero()
