"""
Money and currency utilities using py-moneyed and Babel.

Bridges the minor-unit ``Money`` value object to py-moneyed objects,
provides locale-aware formatting and the allocation helpers used for
tax and revenue splits.
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Any, NamedTuple

from babel import Locale
from babel.core import UnknownLocaleError
from babel.numbers import format_currency, get_currency_precision
from moneyed import Currency, get_currency
from moneyed import Money as MoneyedMoney
from moneyed.classes import CurrencyDoesNotExist

from .exceptions import MoneyError
from .money import Money, Number, to_decimal
from .settings import get_settings

# Common currencies for quick access
TWD = Currency("TWD")
USD = Currency("USD")
EUR = Currency("EUR")
JPY = Currency("JPY")

# Default locale for formatting
DEFAULT_LOCALE = "zh_TW"


def currency_precision(currency_code: str) -> int:
    """Number of minor-unit digits for a currency (2 for USD, 0 for JPY)."""
    return int(get_currency_precision(currency_code.upper()))


class TaxLine(NamedTuple):
    name: str
    rate: Decimal
    amount: Money


class TaxAllocation(NamedTuple):
    net_amount: Money
    taxes: list[TaxLine]
    total_tax: Money
    gross_amount: Money


class MoneyHandler:
    """Central handler for money conversions and formatting."""

    def __init__(self, default_currency: str = "TWD", default_locale: str = DEFAULT_LOCALE) -> None:
        self.default_currency = self._validate_currency(default_currency)
        self.default_locale = self._validate_locale(default_locale)

    def _validate_currency(self, currency_code: str) -> Currency:
        """Validate and return Currency object."""
        try:
            return get_currency(currency_code.upper())
        except CurrencyDoesNotExist:
            raise ValueError(f"Invalid currency code: {currency_code}")

    def _validate_locale(self, locale_code: str) -> str:
        """Validate locale code."""
        try:
            Locale.parse(locale_code)
            return locale_code
        except (UnknownLocaleError, ValueError):
            return DEFAULT_LOCALE

    def create_money(self, minor_units: Number, currency: str | None = None) -> Money:
        """Create Money from minor units, defaulting the currency."""
        return Money(minor_units, currency or self.default_currency.code)

    def to_moneyed(self, money: Money) -> MoneyedMoney:
        """Convert to a py-moneyed object in major units."""
        return MoneyedMoney(amount=money.amount_in_major_unit, currency=money.currency)

    def from_moneyed(self, money: MoneyedMoney) -> Money:
        """Convert a py-moneyed object back to minor units."""
        code = money.currency.code
        return Money(money.amount * (10 ** currency_precision(code)), code)

    def format_money(self, money: Money, locale: str | None = None, **kwargs: Any) -> str:
        """Format Money with locale-aware formatting."""
        locale = locale or self.default_locale
        validated_locale = self._validate_locale(locale)

        try:
            return format_currency(
                number=money.amount_in_major_unit,
                currency=money.currency,
                locale=validated_locale,
                **kwargs,
            )
        except (TypeError, ValueError):
            # Fallback to simple formatting if locale issues
            return f"{money.currency} {money.amount_in_major_unit}"

    def to_dict(self, money: Money) -> dict[str, Any]:
        """Convert Money to dictionary for serialization."""
        return {
            "amount": money.amount,
            "currency": money.currency,
            "amount_in_major_unit": str(money.amount_in_major_unit),
            "formatted": self.format_money(money),
        }

    def from_dict(self, data: dict[str, Any]) -> Money:
        """Create Money from dictionary."""
        return Money(data["amount"], data["currency"])


# Global instance for convenience
money_handler = MoneyHandler()


def format_money(money: Money, locale: str | None = None, **kwargs: Any) -> str:
    """Format Money with the default handler in the configured locale."""
    return money_handler.format_money(money, locale or get_settings().default_locale, **kwargs)


def create_money(minor_units: Number, currency: str | None = None) -> Money:
    """Create Money in the configured default currency unless one is given."""
    return Money(minor_units, currency or get_settings().default_currency)


def allocate_by_percentages(money: Money, percentages: Sequence[Number]) -> list[Money]:
    """Allocate by percentages that must add up to 100."""
    values = [to_decimal(p) for p in percentages]
    if any(p < 0 or p > 100 for p in values):
        raise MoneyError("Percentages must be between 0 and 100")
    if abs(sum(values, Decimal(0)) - 100) > Decimal("0.01"):
        raise MoneyError("Percentages must sum to 100")
    return money.allocate(values)


def allocate_taxes(gross: Money, tax_rates: Sequence[tuple[str, Number]]) -> TaxAllocation:
    """
    Break a gross amount into named taxes and the remaining net amount.

    Each tax is ``rate`` percent of the gross amount.
    """
    taxes = [
        TaxLine(name=name, rate=to_decimal(rate), amount=gross.percentage(rate))
        for name, rate in tax_rates
    ]
    total_tax = Money.sum((line.amount for line in taxes), currency=gross.currency)
    return TaxAllocation(
        net_amount=gross.subtract(total_tax),
        taxes=taxes,
        total_tax=total_tax,
        gross_amount=gross,
    )


__all__ = [
    "MoneyHandler",
    "money_handler",
    "format_money",
    "create_money",
    "currency_precision",
    "allocate_by_percentages",
    "allocate_taxes",
    "TaxAllocation",
    "TaxLine",
    "TWD",
    "USD",
    "EUR",
    "JPY",
]
