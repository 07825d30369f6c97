"""
Retry policy engine.

Maps a ``FailureCategory`` to a bounded retry schedule. Everything here is a
pure function of (category, attempt number, now); randomised spreading of
retries lives in ``RetryJitter``, which is seeded explicitly so schedules
stay reproducible.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import FailureCategory, RetryStrategyType
from .events import TransitionReasons


class RetryPolicyConfig(BaseModel):
    """Shape of a retry schedule."""

    model_config = ConfigDict(frozen=True)

    strategy: RetryStrategyType
    max_retries: int = Field(ge=0)
    base_delay_minutes: int = Field(ge=0)
    max_delay_minutes: int | None = Field(None, ge=0)
    multiplier: float = Field(2.0, gt=0)

    @model_validator(mode="after")
    def _check_cap(self) -> RetryPolicyConfig:
        if self.max_delay_minutes is not None and self.max_delay_minutes < self.base_delay_minutes:
            raise ValueError("max_delay_minutes cannot be less than base_delay_minutes")
        return self


_POLICY_CONFIGS: dict[FailureCategory, RetryPolicyConfig] = {
    FailureCategory.RETRIABLE: RetryPolicyConfig(
        strategy=RetryStrategyType.EXPONENTIAL_BACKOFF,
        max_retries=5,
        base_delay_minutes=5,
        max_delay_minutes=60,
        multiplier=2,
    ),
    FailureCategory.DELAYED_RETRY: RetryPolicyConfig(
        strategy=RetryStrategyType.FIXED_INTERVAL,
        max_retries=3,
        base_delay_minutes=60,
        max_delay_minutes=1440,
    ),
    FailureCategory.NON_RETRIABLE: RetryPolicyConfig(
        strategy=RetryStrategyType.NONE,
        max_retries=0,
        base_delay_minutes=0,
    ),
}


class RetryPolicy(BaseModel):
    """Retry schedule bound to a failure category."""

    model_config = ConfigDict(frozen=True)

    category: FailureCategory
    config: RetryPolicyConfig

    @classmethod
    def for_category(cls, category: FailureCategory) -> RetryPolicy:
        return cls(category=category, config=_POLICY_CONFIGS[category])

    @property
    def max_retries(self) -> int:
        return self.config.max_retries

    def can_retry(self, attempt_number: int) -> bool:
        """Whether another retry may follow ``attempt_number`` retries already made."""
        return (
            self.config.strategy is not RetryStrategyType.NONE
            and attempt_number < self.config.max_retries
        )

    def delay_minutes(self, attempt_number: int) -> int:
        """Delay before retry number ``attempt_number`` (1-based), capped."""
        cfg = self.config
        match cfg.strategy:
            case RetryStrategyType.LINEAR:
                delay = cfg.base_delay_minutes * attempt_number
            case RetryStrategyType.EXPONENTIAL_BACKOFF:
                delay = cfg.base_delay_minutes * cfg.multiplier ** max(0, attempt_number - 1)
            case RetryStrategyType.FIXED_INTERVAL:
                delay = cfg.base_delay_minutes
            case _:
                delay = 0

        if cfg.max_delay_minutes is not None:
            delay = min(delay, cfg.max_delay_minutes)
        return int(delay)

    def next_retry_at(self, attempt_number: int, now: datetime) -> datetime | None:
        """When the next retry is due, or None once retries are exhausted."""
        if not self.can_retry(attempt_number):
            return None
        return now + timedelta(minutes=self.delay_minutes(attempt_number + 1))

    def schedule(self) -> list[int]:
        """Delays in minutes for every retry the policy allows."""
        return [self.delay_minutes(n) for n in range(1, self.config.max_retries + 1)]

    def total_retry_duration(self) -> int:
        return sum(self.schedule())


class RetryDecision(BaseModel):
    """Outcome of consulting the policy for one failure."""

    model_config = ConfigDict(frozen=True)

    should_retry: bool
    category: FailureCategory
    attempt_number: int = Field(ge=0, description="Retries already made")
    max_retries: int = Field(ge=0)
    next_retry_at: datetime | None = None
    strategy: RetryStrategyType
    reason: str


class RetryJitter:
    """
    Deterministic ±``ratio`` spread applied on top of a policy delay.

    The same (seed, attempt number) always yields the same offset.
    """

    def __init__(self, seed: int, ratio: float = 0.25) -> None:
        if not 0 <= ratio < 1:
            raise ValueError("Jitter ratio must be in [0, 1)")
        self.seed = seed
        self.ratio = ratio

    def apply(self, delay_minutes: int, attempt_number: int) -> float:
        rng = random.Random(f"{self.seed}:{attempt_number}")
        spread = delay_minutes * self.ratio
        return max(1.0, delay_minutes + rng.uniform(-spread, spread)) if delay_minutes else 0.0


def evaluate_retry(
    category: FailureCategory,
    attempt_number: int,
    now: datetime,
    jitter: RetryJitter | None = None,
) -> RetryDecision:
    """Decide whether a failure after ``attempt_number`` retries gets another one."""
    policy = RetryPolicy.for_category(category)
    next_retry_at = policy.next_retry_at(attempt_number, now)

    if next_retry_at is None:
        reason = (
            TransitionReasons.FAILURE_NOT_RETRIABLE
            if policy.config.strategy is RetryStrategyType.NONE
            else TransitionReasons.RETRIES_EXHAUSTED
        )
        return RetryDecision(
            should_retry=False,
            category=category,
            attempt_number=attempt_number,
            max_retries=policy.max_retries,
            strategy=policy.config.strategy,
            reason=reason,
        )

    if jitter is not None:
        delay = jitter.apply(policy.delay_minutes(attempt_number + 1), attempt_number + 1)
        next_retry_at = now + timedelta(minutes=delay)

    return RetryDecision(
        should_retry=True,
        category=category,
        attempt_number=attempt_number,
        max_retries=policy.max_retries,
        next_retry_at=next_retry_at,
        strategy=policy.config.strategy,
        reason=TransitionReasons.RETRY_SCHEDULED,
    )
