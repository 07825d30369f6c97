"""
Money value object.

Amounts are integer minor units (cents, etc.) tagged with an ISO 4217 code.
Every operation returns a new instance and rounds half-up to the nearest
minor unit. Binary operations across currencies raise ``CurrencyMismatchError``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, NamedTuple, TypeAlias

from moneyed import get_currency
from moneyed.classes import CurrencyDoesNotExist
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import CurrencyMismatchError, MoneyError

Number: TypeAlias = int | float | Decimal | str

_MONEY_STRING = re.compile(r"^(-?\d+)([A-Z]{3})$")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Booleans are not amounts")
    return Decimal(str(value))


def round_minor(value: Number) -> int:
    """Round to the nearest integer minor unit, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class TaxBreakdown(NamedTuple):
    tax_amount: Money
    amount_with_tax: Money
    amount_excluding_tax: Money


class DiscountBreakdown(NamedTuple):
    discount_amount: Money
    final_amount: Money


class Money(BaseModel):
    """Immutable currency amount in minor units."""

    model_config = ConfigDict(frozen=True)

    amount: int = Field(description="Amount in minor units")
    currency: str = Field(default="TWD", description="ISO 4217 currency code")

    def __init__(self, amount: Number = 0, currency: str = "TWD", **data: Any) -> None:
        super().__init__(amount=amount, currency=currency, **data)

    @field_validator("amount", mode="before")
    @classmethod
    def _round_amount(cls, value: Any) -> int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            amount = to_decimal(value)
        except InvalidOperation:
            raise ValueError(f"Amount is not a number: {value!r}")
        if not amount.is_finite():
            raise ValueError("Amount must be finite")
        return round_minor(amount)

    @field_validator("currency", mode="before")
    @classmethod
    def _validate_currency(cls, value: Any) -> str:
        if not isinstance(value, str) or len(value) != 3:
            raise ValueError("Currency must be a 3-character ISO code")
        code = value.upper()
        try:
            get_currency(code)
        except CurrencyDoesNotExist:
            raise ValueError(f"Invalid currency code: {value}")
        return code

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def zero(cls, currency: str = "TWD") -> Money:
        return cls(0, currency)

    @classmethod
    def negative(cls, amount: Number, currency: str = "TWD") -> Money:
        """Create a negative amount (refunds, credits)."""
        return cls(-abs(round_minor(amount)), currency)

    @classmethod
    def from_major_unit(cls, amount: Number, currency: str = "TWD") -> Money:
        """Create from major units, e.g. ``Money.from_major_unit("12.34", "USD")``."""
        from .money_utils import currency_precision

        return cls(to_decimal(amount) * (10 ** currency_precision(currency)), currency)

    @classmethod
    def from_string(cls, value: str) -> Money:
        """Parse the ``"<minor><CUR>"`` form produced by ``str(money)``."""
        match = _MONEY_STRING.match(value)
        if not match:
            raise MoneyError(f"Invalid money string format: {value!r}")
        return cls(int(match.group(1)), match.group(2))

    @classmethod
    def sum(cls, amounts: Iterable[Money], currency: str | None = None) -> Money:
        """Total a sequence of same-currency amounts."""
        items = list(amounts)
        if not items:
            if currency is None:
                raise MoneyError("At least one amount or a currency is required")
            return cls.zero(currency)
        total = cls.zero(currency or items[0].currency)
        for item in items:
            total = total.add(item)
        return total

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _ensure_same_currency(self, other: Money) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Expected Money, got {type(other).__name__}")
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def _new(self, amount: Number) -> Money:
        return Money(amount, self.currency)

    def add(self, other: Money) -> Money:
        self._ensure_same_currency(other)
        return self._new(self.amount + other.amount)

    def subtract(self, other: Money) -> Money:
        """Subtract; the result may be negative (refunds, credits)."""
        self._ensure_same_currency(other)
        return self._new(self.amount - other.amount)

    def safe_subtract(self, other: Money) -> Money:
        """Subtract, refusing to go below zero."""
        self._ensure_same_currency(other)
        if self.amount < other.amount:
            raise MoneyError(
                "Insufficient amount",
                context={"amount": self.amount, "subtrahend": other.amount},
            )
        return self._new(self.amount - other.amount)

    def multiply(self, factor: Number) -> Money:
        return self._new(Decimal(self.amount) * to_decimal(factor))

    def divide(self, divisor: Number) -> Money:
        divisor_dec = to_decimal(divisor)
        if divisor_dec == 0:
            raise MoneyError("Cannot divide by zero")
        return self._new(Decimal(self.amount) / divisor_dec)

    def percentage(self, rate: Number) -> Money:
        """``rate`` percent of this amount (``rate=5`` → 5%)."""
        return self.multiply(to_decimal(rate) / 100)

    def negate(self) -> Money:
        return self._new(-self.amount)

    def abs(self) -> Money:
        return self._new(abs(self.amount))

    def convert_to(self, currency: str, exchange_rate: Number) -> Money:
        rate = to_decimal(exchange_rate)
        if rate <= 0:
            raise MoneyError("Exchange rate must be positive")
        return Money(Decimal(self.amount) * rate, currency)

    # ------------------------------------------------------------------
    # Tax and discount
    # ------------------------------------------------------------------

    def calculate_tax(self, tax_rate: Number) -> TaxBreakdown:
        """Forward tax: this amount is pre-tax."""
        tax_amount = self.percentage(tax_rate)
        return TaxBreakdown(
            tax_amount=tax_amount,
            amount_with_tax=self.add(tax_amount),
            amount_excluding_tax=self,
        )

    def calculate_tax_from_gross(self, tax_rate: Number) -> TaxBreakdown:
        """Reverse tax: this amount already includes tax."""
        amount_excluding_tax = self.divide(1 + to_decimal(tax_rate) / 100)
        return TaxBreakdown(
            tax_amount=self.subtract(amount_excluding_tax),
            amount_with_tax=self,
            amount_excluding_tax=amount_excluding_tax,
        )

    def apply_discount(self, discount_rate: Number) -> DiscountBreakdown:
        rate = to_decimal(discount_rate)
        if rate < 0 or rate > 100:
            raise MoneyError("Discount rate must be between 0 and 100")
        discount_amount = self.percentage(rate)
        return DiscountBreakdown(discount_amount, self.subtract(discount_amount))

    def apply_fixed_discount(self, discount: Money) -> Money:
        return self.subtract(discount)

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def allocate(self, ratios: Sequence[Number]) -> list[Money]:
        """
        Split proportionally to ``ratios``.

        All shares but the last are rounded proportionally; the last share
        takes the remainder so the parts always sum to exactly this amount.
        """
        if not ratios:
            raise MoneyError("Ratios cannot be empty")
        weights = [to_decimal(r) for r in ratios]
        if any(w < 0 for w in weights):
            raise MoneyError("Ratios cannot be negative")
        total_ratio = sum(weights, Decimal(0))
        if total_ratio <= 0:
            raise MoneyError("Total ratio must be positive")

        shares: list[Money] = []
        remainder = self.amount
        for weight in weights[:-1]:
            share = round_minor(Decimal(self.amount) * weight / total_ratio)
            shares.append(self._new(share))
            remainder -= share
        shares.append(self._new(remainder))
        return shares

    def split(self, parts: int) -> list[Money]:
        """Split into ``parts`` equal shares, remainder on the last share."""
        if parts <= 0:
            raise MoneyError("Parts must be positive")
        return self.allocate([1] * parts)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def __lt__(self, other: Money) -> bool:
        self._ensure_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._ensure_same_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        self._ensure_same_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        self._ensure_same_currency(other)
        return self.amount >= other.amount

    def min(self, other: Money) -> Money:
        return self if self <= other else other

    def max(self, other: Money) -> Money:
        return self if self >= other else other

    # Operator sugar over the named operations
    def __add__(self, other: Money) -> Money:
        return self.add(other)

    def __sub__(self, other: Money) -> Money:
        return self.subtract(other)

    def __mul__(self, factor: Number) -> Money:
        return self.multiply(factor)

    __rmul__ = __mul__

    def __truediv__(self, divisor: Number) -> Money:
        return self.divide(divisor)

    def __neg__(self) -> Money:
        return self.negate()

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    @property
    def amount_in_major_unit(self) -> Decimal:
        from .money_utils import currency_precision

        return Decimal(self.amount).scaleb(-currency_precision(self.currency))

    def format(self, locale: str | None = None) -> str:
        from .money_utils import format_money

        return format_money(self, locale)

    def __str__(self) -> str:
        return f"{self.amount}{self.currency}"

    def __repr__(self) -> str:
        return f"Money({self.amount}, {self.currency!r})"
