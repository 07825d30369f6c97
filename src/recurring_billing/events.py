"""
Billing event and transition reason constants.

Reasons are recorded on status history entries and in log events, so keep
them stable.
"""


class BillingEvents:
    """Log event names emitted by the engine."""

    RUN_STARTED = "billing.run.started"
    RUN_SKIPPED = "billing.run.skipped"
    RUN_COMPLETED = "billing.run.completed"
    RUN_FAILED = "billing.run.failed"
    BATCH_COMPLETED = "billing.batch.completed"

    PAYMENT_SUBMITTED = "payment.submitted"
    PAYMENT_SUCCEEDED = "payment.succeeded"
    PAYMENT_FAILED = "payment.failed"
    PAYMENT_REFUNDED = "payment.refunded"
    PAYMENT_SETTLEMENT_APPLIED = "payment.settlement_applied"
    GATEWAY_TIMEOUT = "payment.gateway_timeout"
    GATEWAY_ERROR = "payment.gateway_error"

    SUBSCRIPTION_STARTED = "subscription.started"
    SUBSCRIPTION_RENEWED = "subscription.renewed"
    SUBSCRIPTION_CANCELED = "subscription.canceled"
    SUBSCRIPTION_PAUSED = "subscription.paused"
    SUBSCRIPTION_RESUMED = "subscription.resumed"
    SUBSCRIPTION_EXPIRED = "subscription.expired"
    SUBSCRIPTION_GRACE_EXTENDED = "subscription.grace_extended"
    SUBSCRIPTION_TRIAL_ENDED = "subscription.trial_ended"


class TransitionReasons:
    """Reasons recorded on status history entries."""

    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_RESOLVED = "payment_resolved"
    PAYMENT_FAILED = "payment_failed"
    RETRY_SCHEDULED = "retry_scheduled"
    RETRIES_EXHAUSTED = "retries_exhausted"
    FAILURE_NOT_RETRIABLE = "failure_not_retriable"
    GRACE_EXHAUSTED = "grace_exhausted"
    TRIAL_STARTED = "trial_started"
    TRIAL_ENDED = "trial_ended"
    TRIAL_ENDED_UNPAID = "trial_ended_unpaid"
    PAUSED = "paused"
    RESUMED = "resumed"
    REFUND_APPROVED = "refund_approved"
    SUBMITTED = "submitted"
