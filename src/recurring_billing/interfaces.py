"""
Contracts the engine consumes from its collaborators.

Gateways, payment-method checks, discount catalogs and persistence live
outside the engine; anything satisfying these protocols can be plugged in.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from .models import PaymentAttempt, SubscriptionSnapshot
from .money import Money


class GatewayResult(BaseModel):
    """What a payment gateway reports for one submission."""

    model_config = ConfigDict(frozen=True)

    success: bool
    provider_ref: str | None = None
    status_code: str | None = None
    error_code: str | None = None
    error_message: str | None = None


@runtime_checkable
class PaymentGateway(Protocol):
    """Protocol for payment gateway clients."""

    async def submit(
        self, amount: Money, payment_method_ref: str, idempotency_key: str
    ) -> GatewayResult:
        ...


@runtime_checkable
class PaymentMethodValidator(Protocol):
    """Protocol for payment method availability checks."""

    async def is_available(self, payment_method_ref: str) -> bool:
        ...


@runtime_checkable
class DiscountResolver(Protocol):
    """Protocol for promotion/discount lookups."""

    async def resolve(self, subscription: SubscriptionSnapshot, amount: Money) -> Money:
        ...


@runtime_checkable
class SubscriptionRepository(Protocol):
    """
    Protocol for subscription and payment persistence.

    Saves are keyed by stable ids and must be idempotent; the engine never
    assumes the two writes share a transaction.
    """

    async def load_subscription(self, subscription_id: str) -> SubscriptionSnapshot | None:
        ...

    async def save_subscription(self, subscription: SubscriptionSnapshot) -> None:
        ...

    async def load_payment(self, payment_id: str) -> PaymentAttempt | None:
        ...

    async def save_payment(self, payment: PaymentAttempt) -> None:
        ...
