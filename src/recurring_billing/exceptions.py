"""
Billing engine exceptions.

Custom exceptions for the subscription billing lifecycle with clear error messages.
Provides error handling with status codes, context, and recovery hints.

Payment failures are not exceptions: a declined card is reported as
``FailureDetails`` on the payment attempt. Only invalid input, illegal
transitions and infrastructure faults are raised.
"""

from typing import Any


class BillingError(Exception):
    """
    Base billing engine error with enhanced context.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        status_code: HTTP status code for this error type
        context: Additional context data about the error
        recovery_hint: Suggested action to resolve the error
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 400,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        self.message = message
        self.error_code = error_code or "BILLING_ERROR"
        self.status_code = status_code
        self.context = context or {}
        self.recovery_hint = recovery_hint
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
            "recovery_hint": self.recovery_hint,
        }


class MoneyError(BillingError):
    """Monetary arithmetic errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message, "MONEY_ERROR", status_code=400, context=context, recovery_hint=recovery_hint
        )


class CurrencyMismatchError(MoneyError):
    """Binary operation attempted between two currencies."""

    def __init__(self, left_currency: str, right_currency: str) -> None:
        super().__init__(
            f"Currency mismatch: {left_currency} != {right_currency}",
            context={"left_currency": left_currency, "right_currency": right_currency},
            recovery_hint="Convert one amount explicitly before combining them",
        )
        self.error_code = "CURRENCY_MISMATCH"


class BillingCycleError(BillingError):
    """Inconsistent billing cycle or period parameters."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            "BILLING_CYCLE_ERROR",
            status_code=400,
            context=context,
            recovery_hint="Check cadence, interval days and anchor day",
        )


class SubscriptionError(BillingError):
    """Subscription-related errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message,
            "SUBSCRIPTION_ERROR",
            status_code=400,
            context=context,
            recovery_hint=recovery_hint,
        )


class SubscriptionNotFoundError(SubscriptionError):
    """Subscription not found error."""

    def __init__(self, message: str, subscription_id: str | None = None) -> None:
        context = {}
        if subscription_id:
            context["subscription_id"] = subscription_id

        super().__init__(
            message,
            context=context,
            recovery_hint="Verify the subscription ID and ensure it exists",
        )
        self.error_code = "SUBSCRIPTION_NOT_FOUND"
        self.status_code = 404


class SubscriptionStateError(SubscriptionError):
    """Invalid subscription state transition error."""

    def __init__(self, message: str, current_state: str, requested_state: str) -> None:
        super().__init__(
            message,
            context={"current_state": current_state, "requested_state": requested_state},
            recovery_hint=f"Cannot transition from {current_state} to {requested_state}. Check subscription status first.",
        )
        self.error_code = "INVALID_SUBSCRIPTION_STATE"
        self.current_state = current_state
        self.requested_state = requested_state


class PaymentError(BillingError):
    """Payment-related errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message, "PAYMENT_ERROR", status_code=402, context=context, recovery_hint=recovery_hint
        )


class PaymentNotFoundError(PaymentError):
    """Payment attempt not found error."""

    def __init__(self, message: str, payment_id: str | None = None) -> None:
        context = {}
        if payment_id:
            context["payment_id"] = payment_id

        super().__init__(message, context=context)
        self.error_code = "PAYMENT_NOT_FOUND"
        self.status_code = 404


class PaymentStateError(PaymentError):
    """Invalid payment state transition error."""

    def __init__(self, message: str, current_state: str, requested_state: str) -> None:
        super().__init__(
            message,
            context={"current_state": current_state, "requested_state": requested_state},
            recovery_hint=f"Cannot move payment from {current_state} to {requested_state}",
        )
        self.error_code = "INVALID_PAYMENT_STATE"
        self.status_code = 400
        self.current_state = current_state
        self.requested_state = requested_state


class RefundError(PaymentError):
    """Refund cannot be applied to the payment."""

    def __init__(self, message: str, payment_id: str | None = None) -> None:
        super().__init__(
            message,
            context={"payment_id": payment_id} if payment_id else None,
            recovery_hint="Refund at most the amount not yet refunded, in the payment currency",
        )
        self.error_code = "REFUND_ERROR"
        self.status_code = 400


class InfrastructureError(BillingError):
    """
    A collaborator (gateway, repository) is unavailable.

    These are system faults, never payment failures, and are safe to retry
    once the collaborator recovers.
    """

    retriable: bool = True

    def __init__(
        self,
        message: str,
        error_code: str = "INFRASTRUCTURE_ERROR",
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            error_code,
            status_code=503,
            context=context,
            recovery_hint="Retry the billing run once the dependency is reachable",
        )


class GatewayUnavailableError(InfrastructureError):
    """The payment gateway could not be reached."""

    def __init__(self, message: str, subscription_id: str | None = None) -> None:
        super().__init__(
            message,
            "GATEWAY_UNAVAILABLE",
            context={"subscription_id": subscription_id} if subscription_id else None,
        )


class PersistenceError(InfrastructureError):
    """The repository rejected a read or write."""

    def __init__(self, message: str, entity_id: str | None = None) -> None:
        super().__init__(
            message,
            "PERSISTENCE_ERROR",
            context={"entity_id": entity_id} if entity_id else None,
        )


class CollaboratorUnavailableError(InfrastructureError):
    """The payment-method validator or discount resolver failed."""

    def __init__(
        self, message: str, collaborator: str, subscription_id: str | None = None
    ) -> None:
        context: dict[str, Any] = {"collaborator": collaborator}
        if subscription_id:
            context["subscription_id"] = subscription_id
        super().__init__(message, "COLLABORATOR_UNAVAILABLE", context=context)
