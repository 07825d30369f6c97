"""
Pull-based selection of subscriptions that need a billing run.

The engine owns no timers: a poller calls ``select_candidates`` with the
snapshots it has and hands the ids to the orchestrator.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .models import SubscriptionSnapshot


def is_candidate(subscription: SubscriptionSnapshot, now: datetime) -> bool:
    return (
        subscription.is_due(now)
        or subscription.is_retry_due(now)
        or subscription.is_grace_elapsed(now)
    )


def select_candidates(
    subscriptions: Iterable[SubscriptionSnapshot], now: datetime
) -> list[SubscriptionSnapshot]:
    """
    Subscriptions to bill on this pass, oldest period first.

    Includes ACTIVE subscriptions whose period has ended, RETRY subscriptions
    whose ``next_retry_at`` has passed, and GRACE_PERIOD/PAST_DUE ones whose
    grace window is over. Every other status is skipped.
    """
    candidates = [s for s in subscriptions if is_candidate(s, now)]
    candidates.sort(key=lambda s: (s.current_period.end_date, s.subscription_id))
    return candidates


def candidate_ids(subscriptions: Iterable[SubscriptionSnapshot], now: datetime) -> list[str]:
    return [s.subscription_id for s in select_candidates(subscriptions, now)]
