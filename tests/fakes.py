"""In-memory stand-ins for the engine's collaborators."""

import asyncio

from recurring_billing.interfaces import GatewayResult
from recurring_billing.models import PaymentAttempt, SubscriptionSnapshot
from recurring_billing.money import Money


class InMemoryRepository:
    """Dict-backed repository recording every write."""

    def __init__(self) -> None:
        self.subscriptions: dict[str, SubscriptionSnapshot] = {}
        self.payments: dict[str, PaymentAttempt] = {}
        self.writes: list[tuple[str, str]] = []
        self.fail_subscription_save = False

    def add(self, subscription: SubscriptionSnapshot) -> SubscriptionSnapshot:
        self.subscriptions[subscription.subscription_id] = subscription
        return subscription

    async def load_subscription(self, subscription_id: str) -> SubscriptionSnapshot | None:
        return self.subscriptions.get(subscription_id)

    async def save_subscription(self, subscription: SubscriptionSnapshot) -> None:
        if self.fail_subscription_save:
            raise ConnectionError("database is down")
        self.subscriptions[subscription.subscription_id] = subscription
        self.writes.append(("subscription", subscription.subscription_id))

    async def load_payment(self, payment_id: str) -> PaymentAttempt | None:
        return self.payments.get(payment_id)

    async def save_payment(self, payment: PaymentAttempt) -> None:
        self.payments[payment.payment_id] = payment
        self.writes.append(("payment", payment.payment_id))


class FakeGateway:
    """Returns queued results (or succeeds) and records every submission."""

    def __init__(self, *results: GatewayResult, delay: float = 0) -> None:
        self.results = list(results)
        self.delay = delay
        self.calls: list[tuple[Money, str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def submit(
        self, amount: Money, payment_method_ref: str, idempotency_key: str
    ) -> GatewayResult:
        self.calls.append((amount, payment_method_ref, idempotency_key))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        if self.results:
            return self.results.pop(0)
        return GatewayResult(
            success=True, provider_ref=f"ch_{len(self.calls)}", status_code="SUCCEEDED"
        )


class FakePaymentMethodValidator:
    def __init__(self, available: set[str] | None = None) -> None:
        self.available = available if available is not None else {"pm_card"}

    async def is_available(self, payment_method_ref: str) -> bool:
        return payment_method_ref in self.available


class FixedDiscountResolver:
    """Takes a fixed amount off every charge."""

    def __init__(self, discount: Money) -> None:
        self.discount = discount

    async def resolve(self, subscription: SubscriptionSnapshot, amount: Money) -> Money:
        return amount.subtract(self.discount)


def failure(
    error_code: str | None = None, status_code: str = "FAILED", message: str | None = None
) -> GatewayResult:
    return GatewayResult(
        success=False, status_code=status_code, error_code=error_code, error_message=message
    )
