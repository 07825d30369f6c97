"""
Closed vocabularies for the billing lifecycle.

Values are surfaced verbatim by any caller-facing API, so they must not change.
"""

from enum import Enum


class Cadence(str, Enum):
    """Recurrence unit of a billing cycle."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
    CUSTOM = "CUSTOM"


ANCHORED_CADENCES = frozenset({Cadence.MONTHLY, Cadence.QUARTERLY, Cadence.YEARLY})


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""

    PENDING = "PENDING"
    TRIALING = "TRIALING"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    GRACE_PERIOD = "GRACE_PERIOD"
    RETRY = "RETRY"
    PAST_DUE = "PAST_DUE"
    EXPIRED = "EXPIRED"
    CANCELED = "CANCELED"
    REFUNDED = "REFUNDED"


class PaymentStatus(str, Enum):
    """Payment attempt status."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    RETRYING = "RETRYING"
    CANCELED = "CANCELED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


class FailureCategory(str, Enum):
    """Classification of a payment failure driving retry eligibility."""

    RETRIABLE = "RETRIABLE"
    DELAYED_RETRY = "DELAYED_RETRY"
    NON_RETRIABLE = "NON_RETRIABLE"

    @property
    def is_retriable(self) -> bool:
        return self is not FailureCategory.NON_RETRIABLE


class RetryStrategyType(str, Enum):
    """How retry delays grow with the attempt number."""

    NONE = "NONE"
    FIXED_INTERVAL = "FIXED_INTERVAL"
    LINEAR = "LINEAR"
    EXPONENTIAL_BACKOFF = "EXPONENTIAL_BACKOFF"


class ProrationMethod(str, Enum):
    """Denominator used when prorating a partial period."""

    CADENCE_AVERAGE = "cadence_average"
    EXACT = "exact"


class BillingOutcome(str, Enum):
    """Result of one orchestration run for one subscription."""

    SUCCEEDED = "SUCCEEDED"
    RETRY_SCHEDULED = "RETRY_SCHEDULED"
    PAST_DUE = "PAST_DUE"
    EXPIRED = "EXPIRED"
    REJECTED = "REJECTED"
    SKIPPED = "SKIPPED"
