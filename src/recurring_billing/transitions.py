"""
Types shared by the subscription and payment state machines.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, Generic, NamedTuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .enums import FailureCategory
from .money import Money
from .retry_policy import RetryDecision

S = TypeVar("S")


class TransitionContext(BaseModel):
    """
    Facts a guard may inspect when validating a transition.

    Flags default to False so a guard never passes on a missing signal.
    """

    model_config = ConfigDict(frozen=True)

    reason: str | None = None
    actor: str = "system"
    at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Subscription guards
    payment_successful: bool = False
    payment_resolved: bool = False
    payment_failed: bool = False
    is_retriable: bool = False
    current_retries: int = 0
    max_retries: int = 0
    retry_decision: RetryDecision | None = None
    refund_approved: bool = False

    # Payment guards
    failure_category: FailureCategory | None = None
    attempt_number: int = 0
    refund_amount: Money | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)


class TransitionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    message: str | None = None
    is_noop: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def valid(cls, message: str | None = None, **metadata: Any) -> TransitionResult:
        return cls(is_valid=True, message=message, metadata=metadata)

    @classmethod
    def invalid(cls, message: str, **metadata: Any) -> TransitionResult:
        return cls(is_valid=False, message=message, metadata=metadata)

    @classmethod
    def noop(cls) -> TransitionResult:
        return cls(is_valid=True, message="No state change required", is_noop=True)


Guard = Callable[[Any, TransitionContext], TransitionResult]


def validate_against(
    graph: Mapping[S, frozenset[S]],
    guards: Mapping[S, Guard],
    terminal: frozenset[S],
    from_status: S,
    to_status: S,
    context: TransitionContext,
) -> TransitionResult:
    """
    Two-phase validation: the edge must exist, then the target's guard must pass.

    Terminal states reject everything; any other same-status request is a no-op.
    """
    if from_status in terminal:
        return TransitionResult.invalid(f"{_name(from_status)} is a terminal state")
    if from_status == to_status:
        return TransitionResult.noop()
    if to_status not in graph.get(from_status, frozenset()):
        return TransitionResult.invalid(
            f"Invalid transition from {_name(from_status)} to {_name(to_status)}"
        )
    guard = guards.get(to_status)
    if guard is None:
        return TransitionResult.valid()
    return guard(from_status, context)


def _name(status: Any) -> str:
    return getattr(status, "value", str(status))


class TransitionOutcome(NamedTuple, Generic[S]):
    """New snapshot plus what happened to it."""

    entity: S
    result: TransitionResult
