"""Tests for the Money value object."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from recurring_billing.exceptions import CurrencyMismatchError, MoneyError
from recurring_billing.money import Money, round_minor


@pytest.mark.unit
class TestMoneyConstruction:
    """Test Money creation and validation."""

    def test_defaults_to_twd(self):
        money = Money(100)
        assert money.amount == 100
        assert money.currency == "TWD"

    def test_amount_rounds_half_up_to_minor_unit(self):
        assert Money(Decimal("10.5"), "USD").amount == 11
        assert Money("10.49", "USD").amount == 10
        assert Money(Decimal("-10.5"), "USD").amount == -11

    def test_round_minor_rounds_halves_away_from_zero(self):
        assert round_minor("2.5") == 3
        assert round_minor("-2.5") == -3
        assert round_minor(0.5) == 1

    def test_currency_is_uppercased(self):
        assert Money(1, "usd").currency == "USD"

    def test_invalid_currency_code_rejected(self):
        with pytest.raises(ValidationError, match="Invalid currency code"):
            Money(100, "XYZ")

    def test_currency_must_be_three_characters(self):
        with pytest.raises(ValidationError):
            Money(100, "US")

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), Decimal("-Infinity"), "ten"])
    def test_non_finite_or_garbage_amount_rejected(self, value):
        with pytest.raises(ValidationError):
            Money(value, "USD")

    def test_money_is_immutable(self):
        money = Money(100, "USD")
        with pytest.raises(ValidationError):
            money.amount = 200

    def test_zero_and_negative_helpers(self):
        assert Money.zero("USD").is_zero()
        assert Money.negative(250, "USD").amount == -250
        assert Money.negative(-250, "USD").amount == -250

    def test_from_major_unit_uses_currency_precision(self):
        assert Money.from_major_unit("12.34", "USD").amount == 1234
        assert Money.from_major_unit("500", "JPY").amount == 500

    def test_string_form_round_trips(self):
        money = Money(-1050, "EUR")
        assert str(money) == "-1050EUR"
        assert Money.from_string(str(money)) == money

    def test_from_string_rejects_garbage(self):
        with pytest.raises(MoneyError, match="Invalid money string format"):
            Money.from_string("10.50 USD")


@pytest.mark.unit
class TestMoneyArithmetic:
    """Test Money arithmetic operations."""

    def test_add_and_subtract(self):
        a = Money(1000, "TWD")
        b = Money(250, "TWD")
        assert a.add(b) == Money(1250, "TWD")
        assert b.subtract(a) == Money(-750, "TWD")
        assert a + b == Money(1250, "TWD")
        assert a - b == Money(750, "TWD")

    def test_operations_return_new_instances(self):
        a = Money(1000, "TWD")
        a.add(Money(1, "TWD"))
        assert a.amount == 1000

    def test_safe_subtract_refuses_negative_result(self):
        with pytest.raises(MoneyError, match="Insufficient amount"):
            Money(100, "USD").safe_subtract(Money(101, "USD"))

    def test_multiply_rounds(self):
        assert Money(333, "USD").multiply("1.5").amount == 500
        assert (Money(100, "USD") * 3).amount == 300
        assert (3 * Money(100, "USD")).amount == 300

    def test_divide(self):
        assert Money(1000, "USD").divide(3).amount == 333
        assert (Money(1000, "USD") / 4).amount == 250

    def test_divide_by_zero_fails(self):
        with pytest.raises(MoneyError, match="Cannot divide by zero"):
            Money(1000, "USD").divide(0)

    def test_percentage(self):
        assert Money(1999, "USD").percentage(5).amount == 100
        assert Money(1000, "USD").percentage("12.5").amount == 125

    def test_negate_and_abs(self):
        assert (-Money(100, "USD")).amount == -100
        assert Money(-100, "USD").abs().amount == 100

    def test_convert_to(self):
        converted = Money(1000, "USD").convert_to("TWD", "31.5")
        assert converted == Money(31500, "TWD")

    def test_convert_to_requires_positive_rate(self):
        with pytest.raises(MoneyError):
            Money(1000, "USD").convert_to("TWD", 0)

    def test_sum(self):
        total = Money.sum([Money(100, "USD"), Money(250, "USD"), Money(-50, "USD")])
        assert total == Money(300, "USD")
        assert Money.sum([], currency="EUR") == Money.zero("EUR")

    def test_sum_of_nothing_needs_a_currency(self):
        with pytest.raises(MoneyError):
            Money.sum([])


@pytest.mark.unit
class TestCurrencySafety:
    """Cross-currency operations always fail."""

    @pytest.mark.parametrize(
        "operation",
        [
            lambda a, b: a.add(b),
            lambda a, b: a.subtract(b),
            lambda a, b: a < b,
            lambda a, b: a <= b,
            lambda a, b: a > b,
            lambda a, b: a >= b,
            lambda a, b: a.min(b),
            lambda a, b: a.max(b),
        ],
    )
    def test_mismatched_currencies_raise(self, operation):
        with pytest.raises(CurrencyMismatchError) as exc_info:
            operation(Money(100, "USD"), Money(100, "EUR"))
        assert exc_info.value.error_code == "CURRENCY_MISMATCH"

    def test_equality_across_currencies_is_just_false(self):
        assert Money(100, "USD") != Money(100, "EUR")

    def test_same_currency_comparisons(self):
        small, large = Money(100, "USD"), Money(200, "USD")
        assert small < large
        assert large >= small
        assert small.min(large) is small
        assert small.max(large) is large


@pytest.mark.unit
class TestTaxAndDiscount:
    """Test tax extraction and discounts."""

    def test_forward_tax(self):
        breakdown = Money(10000, "TWD").calculate_tax(5)
        assert breakdown.tax_amount == Money(500, "TWD")
        assert breakdown.amount_with_tax == Money(10500, "TWD")
        assert breakdown.amount_excluding_tax == Money(10000, "TWD")

    def test_reverse_tax_from_gross(self):
        breakdown = Money(10500, "TWD").calculate_tax_from_gross(5)
        assert breakdown.amount_excluding_tax == Money(10000, "TWD")
        assert breakdown.tax_amount == Money(500, "TWD")

    def test_reverse_tax_parts_add_up(self):
        gross = Money(9999, "USD")
        breakdown = gross.calculate_tax_from_gross("8.25")
        assert breakdown.amount_excluding_tax + breakdown.tax_amount == gross

    def test_apply_discount(self):
        result = Money(2000, "USD").apply_discount(15)
        assert result.discount_amount == Money(300, "USD")
        assert result.final_amount == Money(1700, "USD")

    def test_discount_rate_out_of_range(self):
        with pytest.raises(MoneyError):
            Money(2000, "USD").apply_discount(101)

    def test_apply_fixed_discount(self):
        assert Money(2000, "USD").apply_fixed_discount(Money(500, "USD")) == Money(1500, "USD")


@pytest.mark.unit
class TestAllocation:
    """Allocation always reconciles to the original total."""

    @pytest.mark.parametrize("amount", [1, 100, 1000, 9999, 10001])
    @pytest.mark.parametrize("parts", [1, 2, 3, 7])
    def test_split_conserves_total(self, amount, parts):
        shares = Money(amount, "TWD").split(parts)
        assert len(shares) == parts
        assert Money.sum(shares) == Money(amount, "TWD")

    def test_split_puts_remainder_on_last_share(self):
        assert [s.amount for s in Money(100, "USD").split(3)] == [33, 33, 34]

    @pytest.mark.parametrize(
        "ratios",
        [[1, 1, 1], [70, 20, 10], ["0.5", "0.3", "0.2"], [3, 0, 7], [1, 2, 3, 4, 5]],
    )
    def test_allocate_conserves_total(self, ratios):
        money = Money(10001, "USD")
        assert Money.sum(money.allocate(ratios)) == money

    def test_allocate_proportional_shares(self):
        assert [s.amount for s in Money(1000, "USD").allocate([70, 20, 10])] == [700, 200, 100]

    def test_allocate_negative_amount(self):
        shares = Money(-100, "USD").allocate([1, 1, 1])
        assert Money.sum(shares) == Money(-100, "USD")

    @pytest.mark.parametrize("ratios", [[], [0, 0], [1, -1]])
    def test_allocate_rejects_degenerate_ratios(self, ratios):
        with pytest.raises(MoneyError):
            Money(100, "USD").allocate(ratios)

    def test_split_rejects_non_positive_parts(self):
        with pytest.raises(MoneyError, match="Parts must be positive"):
            Money(100, "USD").split(0)


@pytest.mark.unit
class TestPresentation:
    def test_amount_in_major_unit(self):
        assert Money(1234, "USD").amount_in_major_unit == Decimal("12.34")
        assert Money(1234, "JPY").amount_in_major_unit == Decimal("1234")

    def test_format_uses_locale(self):
        assert Money(123456, "USD").format("en_US") == "$1,234.56"

    def test_predicates(self):
        assert Money(1, "USD").is_positive()
        assert Money(-1, "USD").is_negative()
        assert not Money(0, "USD").is_positive()
