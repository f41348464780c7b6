"""
Test suite for currency module

Tests Money class and Decimal coercion of caller-supplied amounts.
All monetary calculations must use Decimal precision.
"""

import pytest
from decimal import Decimal

from branch_banking.currency import (
    Money, Currency, to_money, decimal_from_string, validate_decimal_precision
)


class TestMoney:
    """Test Money class operations"""

    def test_money_creation(self):
        """Test Money object creation and rounding to currency precision"""
        money = Money(Decimal('100.50'), Currency.GBP)
        assert money.amount == Decimal('100.50')
        assert money.currency == Currency.GBP

        assert Money(Decimal('100.555')).amount == Decimal('100.56')
        assert Money(Decimal('100.7'), Currency.JPY).amount == Decimal('101')

    def test_default_currency_is_sterling(self):
        assert Money(Decimal('1')).currency == Currency.GBP

    def test_money_arithmetic(self):
        """Test Money arithmetic operations"""
        a = Money(Decimal('100.50'))
        b = Money(Decimal('50.25'))

        assert (a + b).amount == Decimal('150.75')
        assert (a - b).amount == Decimal('50.25')
        assert (b - a).amount == Decimal('-50.25')
        assert (a * Decimal('2')).amount == Decimal('201.00')
        assert (a / Decimal('2')).amount == Decimal('50.25')
        assert (-a).amount == Decimal('-100.50')
        assert abs(-a) == a

    def test_currency_mismatch(self):
        """Mixing currencies is refused"""
        gbp = Money(Decimal('10'), Currency.GBP)
        eur = Money(Decimal('10'), Currency.EUR)

        with pytest.raises(ValueError, match="Cannot add GBP and EUR"):
            gbp + eur
        with pytest.raises(ValueError):
            gbp < eur
        with pytest.raises(TypeError):
            gbp + Decimal('1')

    def test_comparisons_and_predicates(self):
        small = Money(Decimal('1.00'))
        large = Money(Decimal('2.00'))

        assert small < large
        assert large >= small
        assert Money.zero().is_zero()
        assert large.is_positive()
        assert (-large).is_negative()
        assert Money(Decimal('1.0')) == Money(Decimal('1.00'))
        assert Money(Decimal('1'), Currency.GBP) != Money(Decimal('1'), Currency.USD)

    def test_to_string(self):
        assert Money(Decimal('1234.5')).to_string() == "GBP 1,234.50"
        assert Money(Decimal('1234'), Currency.JPY).to_string() == "JPY 1,234"


class TestAmountCoercion:
    """Test conversion of caller-supplied amounts to Money"""

    def test_accepts_decimal_int_and_str(self):
        assert to_money(Decimal('12.345'), Currency.GBP).amount == Decimal('12.35')
        assert to_money(12, Currency.GBP).amount == Decimal('12.00')
        assert to_money("12.30", Currency.GBP).amount == Decimal('12.30')

    def test_passes_through_money_of_same_currency(self):
        money = Money(Decimal('5'))
        assert to_money(money, Currency.GBP) is money

    def test_rejects_floats(self):
        with pytest.raises(ValueError, match="floats"):
            to_money(12.5, Currency.GBP)

    def test_rejects_bools_and_foreign_money(self):
        with pytest.raises(ValueError):
            to_money(True, Currency.GBP)
        with pytest.raises(ValueError, match="does not match"):
            to_money(Money(Decimal('5'), Currency.EUR), Currency.GBP)

    def test_rejects_non_finite_decimals(self):
        with pytest.raises(ValueError):
            to_money(Decimal('NaN'), Currency.GBP)
        with pytest.raises(ValueError):
            to_money(Decimal('Infinity'), Currency.GBP)

    def test_rejects_malformed_strings(self):
        for raw in ("1e3", "12abc34", "£5", "5 GBP", "1,00", "NaN"):
            with pytest.raises(ValueError):
                to_money(raw, Currency.GBP)


class TestDecimalUtilities:
    """Test decimal utility functions"""

    def test_decimal_from_string(self):
        assert decimal_from_string("100.50") == Decimal('100.50')
        assert decimal_from_string(" 1,000.50 ") == Decimal('1000.50')
        assert decimal_from_string("1,234,567") == Decimal('1234567')
        assert decimal_from_string("+7") == Decimal('7')
        assert decimal_from_string("-42") == Decimal('-42')

    def test_decimal_from_string_invalid(self):
        for raw in ("", "abc", "1.2.3", "1e3", "£1,000.50", "1000,50", "12,34,567", "Infinity"):
            with pytest.raises(ValueError):
                decimal_from_string(raw)

    def test_validate_decimal_precision(self):
        assert validate_decimal_precision(Decimal('2.675'), Currency.GBP) == Decimal('2.68')
        assert validate_decimal_precision(Decimal('2.5'), Currency.JPY) == Decimal('3')
