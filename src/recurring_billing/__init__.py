"""
Subscription billing lifecycle engine.

Provides:
- Money arithmetic in integer minor units
- Billing cycles, periods and proration
- Subscription and payment state machines
- Failure classification and retry policies
- Async billing orchestration against pluggable collaborators
"""

from __future__ import annotations

from recurring_billing.billing_cycle import BillingCycle, BillingPeriod
from recurring_billing.enums import (
    BillingOutcome,
    Cadence,
    FailureCategory,
    PaymentStatus,
    ProrationMethod,
    RetryStrategyType,
    SubscriptionStatus,
)
from recurring_billing.exceptions import (
    BillingCycleError,
    BillingError,
    CollaboratorUnavailableError,
    CurrencyMismatchError,
    GatewayUnavailableError,
    InfrastructureError,
    MoneyError,
    PaymentError,
    PaymentNotFoundError,
    PaymentStateError,
    PersistenceError,
    RefundError,
    SubscriptionError,
    SubscriptionNotFoundError,
    SubscriptionStateError,
)
from recurring_billing.interfaces import (
    DiscountResolver,
    GatewayResult,
    PaymentGateway,
    PaymentMethodValidator,
    SubscriptionRepository,
)
from recurring_billing.lifecycle import (
    PlanChangeProration,
    cancel,
    create_subscription,
    end_trial,
    pause,
    plan_change_proration,
    refund,
    resume,
    start_subscription,
)
from recurring_billing.models import (
    FailureDetails,
    PaymentAttempt,
    RefundRecord,
    RetryState,
    StatusChange,
    SubscriptionSnapshot,
)
from recurring_billing.money import Money
from recurring_billing.orchestrator import (
    BatchBillingResult,
    BillingOrchestrator,
    BillingRunResult,
)
from recurring_billing.payment_state import record_refund
from recurring_billing.retry_policy import RetryDecision, RetryJitter, RetryPolicy, evaluate_retry
from recurring_billing.scheduler import select_candidates
from recurring_billing.settings import BillingEngineSettings, get_settings, set_settings
from recurring_billing.transitions import TransitionContext, TransitionResult

__all__ = [
    # Value objects
    "Money",
    "BillingCycle",
    "BillingPeriod",
    # Enums
    "BillingOutcome",
    "Cadence",
    "FailureCategory",
    "PaymentStatus",
    "ProrationMethod",
    "RetryStrategyType",
    "SubscriptionStatus",
    # Snapshots
    "FailureDetails",
    "PaymentAttempt",
    "RefundRecord",
    "RetryState",
    "StatusChange",
    "SubscriptionSnapshot",
    # State machines
    "TransitionContext",
    "TransitionResult",
    # Lifecycle
    "PlanChangeProration",
    "cancel",
    "create_subscription",
    "end_trial",
    "pause",
    "plan_change_proration",
    "record_refund",
    "refund",
    "resume",
    "start_subscription",
    # Retry
    "RetryDecision",
    "RetryJitter",
    "RetryPolicy",
    "evaluate_retry",
    # Orchestration
    "BatchBillingResult",
    "BillingOrchestrator",
    "BillingRunResult",
    "select_candidates",
    # Collaborators
    "DiscountResolver",
    "GatewayResult",
    "PaymentGateway",
    "PaymentMethodValidator",
    "SubscriptionRepository",
    # Configuration
    "BillingEngineSettings",
    "get_settings",
    "set_settings",
    # Exceptions
    "BillingCycleError",
    "BillingError",
    "CollaboratorUnavailableError",
    "CurrencyMismatchError",
    "GatewayUnavailableError",
    "InfrastructureError",
    "MoneyError",
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentStateError",
    "PersistenceError",
    "RefundError",
    "SubscriptionError",
    "SubscriptionNotFoundError",
    "SubscriptionStateError",
]
