"""
Billing cycle and billing period value objects.

``BillingCycle`` advances dates by one cadence unit and computes proration.
``BillingPeriod`` is a closed ``[start_date, end_date]`` range of calendar days;
consecutive periods produced by ``BillingCycle.next_period`` never overlap and
never leave a gap.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import ANCHORED_CADENCES, Cadence, ProrationMethod
from .exceptions import BillingCycleError
from .money import Money

_CADENCE_AVERAGE_DAYS = {
    Cadence.DAILY: 1,
    Cadence.WEEKLY: 7,
    Cadence.MONTHLY: 30,
    Cadence.QUARTERLY: 90,
    Cadence.YEARLY: 365,
}

_MONTH_STEPS = {
    Cadence.MONTHLY: relativedelta(months=1),
    Cadence.QUARTERLY: relativedelta(months=3),
    Cadence.YEARLY: relativedelta(years=1),
}


def as_date(value: date | datetime) -> date:
    """Calendar day of a date or timestamp."""
    if isinstance(value, datetime):
        return value.date()
    return value


def last_day_of_month(value: date) -> int:
    return calendar.monthrange(value.year, value.month)[1]


class BillingPeriod(BaseModel):
    """A closed range of billing days."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    cycle_number: int = Field(1, ge=1)

    @model_validator(mode="after")
    def _check_order(self) -> BillingPeriod:
        if self.start_date > self.end_date:
            raise ValueError("Start date must not be after end date")
        return self

    @property
    def duration_in_days(self) -> int:
        """Number of billed days, both ends included."""
        return (self.end_date - self.start_date).days + 1

    def contains(self, value: date | datetime) -> bool:
        day = as_date(value)
        return self.start_date <= day <= self.end_date

    def remaining_days(self, as_of: date | datetime) -> int:
        """Days left in the period, counting ``as_of`` itself."""
        day = as_date(as_of)
        if day > self.end_date:
            return 0
        if day < self.start_date:
            return self.duration_in_days
        return (self.end_date - day).days + 1

    def is_expired(self, as_of: date | datetime) -> bool:
        return as_date(as_of) > self.end_date

    def is_expiring_soon(self, as_of: date | datetime, days_threshold: int = 3) -> bool:
        remaining = self.remaining_days(as_of)
        return 0 < remaining <= days_threshold


class BillingCycle(BaseModel):
    """
    Recurrence rule for a subscription.

    ``anchor_day`` pins MONTHLY, QUARTERLY and YEARLY billing to a day of the
    month; months shorter than the anchor clamp to their last day.
    ``interval_days`` is required for CUSTOM cadences and not accepted otherwise.
    """

    model_config = ConfigDict(frozen=True)

    cadence: Cadence = Cadence.MONTHLY
    interval_days: int | None = Field(None, ge=1)
    anchor_day: int | None = Field(None, ge=1, le=31)

    @model_validator(mode="after")
    def _check_parameters(self) -> BillingCycle:
        if self.anchor_day is not None and self.cadence not in ANCHORED_CADENCES:
            raise ValueError(f"Anchor day is not supported for {self.cadence.value} cycles")
        if self.cadence is Cadence.CUSTOM and self.interval_days is None:
            raise ValueError("Custom cycles require interval_days")
        if self.cadence is not Cadence.CUSTOM and self.interval_days is not None:
            raise ValueError("interval_days is only valid for custom cycles")
        return self

    @classmethod
    def monthly(cls, anchor_day: int | None = None) -> BillingCycle:
        return cls(cadence=Cadence.MONTHLY, anchor_day=anchor_day)

    @classmethod
    def yearly(cls, anchor_day: int | None = None) -> BillingCycle:
        return cls(cadence=Cadence.YEARLY, anchor_day=anchor_day)

    @classmethod
    def custom(cls, interval_days: int) -> BillingCycle:
        return cls(cadence=Cadence.CUSTOM, interval_days=interval_days)

    @classmethod
    def from_string(cls, value: str) -> BillingCycle:
        """Parse a cadence name; unknown names fall back to monthly."""
        try:
            cadence = Cadence(value.strip().upper())
        except ValueError:
            return cls.monthly()
        if cadence is Cadence.CUSTOM:
            raise BillingCycleError("Custom cycles need interval_days", context={"value": value})
        return cls(cadence=cadence)

    @property
    def description(self) -> str:
        if self.cadence is Cadence.CUSTOM:
            return f"every {self.interval_days} days"
        label = self.cadence.value.lower()
        if self.anchor_day:
            return f"{label} on day {self.anchor_day}"
        return label

    def calculate_next_billing_date(self, from_date: date | datetime) -> date:
        """Advance ``from_date`` by exactly one cadence unit."""
        start = as_date(from_date)
        match self.cadence:
            case Cadence.DAILY:
                return start + timedelta(days=1)
            case Cadence.WEEKLY:
                return start + timedelta(days=7)
            case Cadence.CUSTOM:
                assert self.interval_days is not None
                return start + timedelta(days=self.interval_days)

        # relativedelta clamps e.g. Jan 31 + 1 month to Feb 28/29
        next_date = start + _MONTH_STEPS[self.cadence]
        if self.anchor_day:
            next_date = next_date.replace(day=min(self.anchor_day, last_day_of_month(next_date)))
        return next_date

    def calculate_billing_period(
        self, start_date: date | datetime, cycle_number: int = 1
    ) -> BillingPeriod:
        start = as_date(start_date)
        end = self.calculate_next_billing_date(start) - timedelta(days=1)
        return BillingPeriod(start_date=start, end_date=end, cycle_number=cycle_number)

    def next_period(self, period: BillingPeriod) -> BillingPeriod:
        """The period immediately following ``period``."""
        return self.calculate_billing_period(
            self.calculate_next_billing_date(period.start_date),
            cycle_number=period.cycle_number + 1,
        )

    def get_total_cycle_days(self) -> int:
        """Cadence-average length, only used as a proration denominator."""
        if self.cadence is Cadence.CUSTOM:
            assert self.interval_days is not None
            return self.interval_days
        return _CADENCE_AVERAGE_DAYS[self.cadence]

    def calculate_proration(
        self,
        from_date: date | datetime,
        to_date: date | datetime,
        full_amount: Money,
        method: ProrationMethod = ProrationMethod.CADENCE_AVERAGE,
        period: BillingPeriod | None = None,
    ) -> Money:
        """
        Charge for the days between ``from_date`` and ``to_date``.

        With ``CADENCE_AVERAGE`` the denominator is 30/90/365 etc.; with
        ``EXACT`` it is the real length of ``period`` (or of the period
        starting at ``from_date`` when none is given).
        """
        days = (as_date(to_date) - as_date(from_date)).days
        if days <= 0:
            return Money.zero(full_amount.currency)

        if method is ProrationMethod.EXACT:
            denominator = (period or self.calculate_billing_period(from_date)).duration_in_days
        else:
            denominator = self.get_total_cycle_days()

        return Money(Decimal(full_amount.amount) * days / denominator, full_amount.currency)

    def prorate_remaining(
        self,
        period: BillingPeriod,
        as_of: date | datetime,
        full_amount: Money,
        method: ProrationMethod = ProrationMethod.CADENCE_AVERAGE,
    ) -> Money:
        """Value of the unused rest of ``period``; zero once nothing remains."""
        remaining = period.remaining_days(as_of)
        if remaining <= 0:
            return Money.zero(full_amount.currency)
        day = max(as_date(as_of), period.start_date)
        return self.calculate_proration(
            day, day + timedelta(days=remaining), full_amount, method=method, period=period
        )
