"""
Billing engine metrics.
"""

from __future__ import annotations

from opentelemetry import metrics
from opentelemetry.metrics import Counter, Histogram, Meter

from .enums import FailureCategory, SubscriptionStatus


class BillingMetrics:
    """Billing metrics collector"""

    def __init__(self, meter: Meter | None = None) -> None:
        self.meter = meter or metrics.get_meter("recurring_billing")

        self.run_started_counter = self._create_counter(
            name="billing.run.started",
            description="Number of billing runs started",
        )
        self.payment_succeeded_counter = self._create_counter(
            name="billing.payment.succeeded",
            description="Number of successful payments",
        )
        self.payment_failed_counter = self._create_counter(
            name="billing.payment.failed",
            description="Number of failed payments",
        )
        self.retry_scheduled_counter = self._create_counter(
            name="billing.retry.scheduled",
            description="Number of payment retries scheduled",
        )
        self.transition_counter = self._create_counter(
            name="billing.subscription.transition",
            description="Number of subscription status transitions",
        )
        self.gateway_duration_histogram = self._create_histogram(
            name="billing.gateway.duration",
            description="Payment gateway call duration",
            unit="ms",
        )

    def _create_counter(self, name: str, description: str, unit: str = "1") -> Counter:
        return self.meter.create_counter(name=name, description=description, unit=unit)

    def _create_histogram(self, name: str, description: str, unit: str = "1") -> Histogram:
        return self.meter.create_histogram(name=name, description=description, unit=unit)

    def record_run_started(self, status: SubscriptionStatus) -> None:
        self.run_started_counter.add(1, {"status": status.value})

    def record_payment_succeeded(self, amount: int, currency: str) -> None:
        self.payment_succeeded_counter.add(1, {"currency": currency})

    def record_payment_failed(self, category: FailureCategory, currency: str) -> None:
        """Record a failed charge, tagged with its failure category"""
        self.payment_failed_counter.add(
            1, {"failure_category": category.value, "currency": currency}
        )

    def record_retry_scheduled(self, category: FailureCategory, attempt_number: int) -> None:
        self.retry_scheduled_counter.add(
            1, {"failure_category": category.value, "attempt_number": attempt_number}
        )

    def record_transition(self, from_status: SubscriptionStatus, to_status: SubscriptionStatus) -> None:
        self.transition_counter.add(
            1, {"from_status": from_status.value, "to_status": to_status.value}
        )

    def record_gateway_duration(self, duration_ms: float, outcome: str) -> None:
        self.gateway_duration_histogram.record(duration_ms, {"outcome": outcome})


# Global metrics instance
_billing_metrics: BillingMetrics | None = None


def get_billing_metrics() -> BillingMetrics:
    """Get global billing metrics instance"""
    global _billing_metrics
    if _billing_metrics is None:
        _billing_metrics = BillingMetrics()
    return _billing_metrics
