"""
Global pytest configuration and fixtures for the billing engine tests.

Collaborators are replaced by the in-memory fakes in ``tests.fakes``;
gateway failure injection uses ``AsyncMock`` where a test needs exceptions
or delays.
"""

from datetime import UTC, date, datetime

import pytest

from recurring_billing.billing_cycle import BillingCycle, BillingPeriod
from recurring_billing.enums import SubscriptionStatus
from recurring_billing.models import RetryState, SubscriptionSnapshot
from recurring_billing.money import Money
from recurring_billing.settings import BillingEngineSettings, reset_settings, set_settings
from tests.fakes import FakeGateway, FakePaymentMethodValidator, InMemoryRepository

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def engine_settings():
    """Isolate every test from .env files and environment overrides."""
    settings = BillingEngineSettings(_env_file=None)
    set_settings(settings)
    yield settings
    reset_settings()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def monthly_cycle() -> BillingCycle:
    return BillingCycle.monthly()


@pytest.fixture
def make_subscription(monthly_cycle):
    """Factory for subscription snapshots whose February period has ended."""

    def _make(
        subscription_id: str = "sub_1",
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        amount: Money | None = None,
        period: BillingPeriod | None = None,
        retry_state: RetryState | None = None,
        payment_method_ref: str | None = "pm_card",
        **updates,
    ) -> SubscriptionSnapshot:
        return SubscriptionSnapshot(
            subscription_id=subscription_id,
            customer_id="cust_1",
            plan_name="pro",
            payment_method_ref=payment_method_ref,
            amount=amount or Money(1000, "TWD"),
            billing_cycle=monthly_cycle,
            status=status,
            current_period=period
            or BillingPeriod(start_date=date(2024, 2, 1), end_date=date(2024, 2, 29)),
            retry_state=retry_state or RetryState(),
            **updates,
        )

    return _make


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def validator() -> FakePaymentMethodValidator:
    return FakePaymentMethodValidator()
