"""
Unit tests for currency module.

Tests rate conversion with explicit rounding and exchange rate handling.
"""

import pytest
from decimal import Decimal

from stmtextract.core.currency import (
    ExchangeRate,
    Rounding,
    as_rate,
    convert,
    convert_inverse,
    inverse_rate,
)
from stmtextract.core.exceptions import CurrencyArithmeticError
from stmtextract.core.money import Money, Unit, UnitType


class TestConversion:
    """Tests for convert and convert_inverse."""

    def test_convert(self):
        assert convert(10000, Decimal("0.9"), rounding=Rounding.HALF_UP) == 9000

    def test_convert_inverse(self):
        assert convert_inverse(9000, Decimal("0.9"), rounding=Rounding.HALF_UP) == 10000

    def test_rounding_modes_on_ties(self):
        # 1 × 0.5 and 3 × 0.5 are exact ties
        assert convert(1, Decimal("0.5"), rounding=Rounding.HALF_UP) == 1
        assert convert(1, Decimal("0.5"), rounding=Rounding.HALF_DOWN) == 0
        assert convert(1, Decimal("0.5"), rounding=Rounding.HALF_EVEN) == 0
        assert convert(3, Decimal("0.5"), rounding=Rounding.HALF_EVEN) == 2

    def test_string_rate_accepted(self):
        assert convert(200, "1.5", rounding=Rounding.HALF_UP) == 300

    def test_float_rate_rejected(self):
        with pytest.raises(TypeError):
            convert(100, 0.9, rounding=Rounding.HALF_UP)

    def test_rounding_must_be_enum(self):
        from decimal import ROUND_HALF_UP

        with pytest.raises(TypeError):
            convert(100, Decimal("0.9"), rounding=ROUND_HALF_UP)

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-1.2")])
    def test_non_positive_rate_raises(self, rate):
        with pytest.raises(CurrencyArithmeticError) as exc_info:
            convert(100, rate, rounding=Rounding.HALF_UP)

        assert exc_info.value.code == "INCONSISTENT_CURRENCY"

    def test_zero_rate_inverse_raises(self):
        with pytest.raises(CurrencyArithmeticError):
            convert_inverse(100, Decimal("0"), rounding=Rounding.HALF_UP)

    def test_invalid_rate_text(self):
        with pytest.raises(CurrencyArithmeticError):
            as_rate("abc")

    @pytest.mark.parametrize("rate", ["0.5", "0.8123", "1.1", "1.2345", "7.5", "150.25"])
    def test_round_trip_within_one_minor_unit(self, rate):
        for amount in (1, 7, 99, 1000, 12345, 987654321):
            there = convert(amount, Decimal(rate), rounding=Rounding.HALF_UP)
            back = convert_inverse(there, Decimal(rate), rounding=Rounding.HALF_UP)
            assert abs(back - amount) <= 1


class TestInverseRate:
    """Tests for inverse rate derivation."""

    def test_ten_decimal_places(self):
        assert inverse_rate(Decimal("1.1"), rounding=Rounding.HALF_DOWN) == Decimal("0.9090909091")

    def test_exact_inverse(self):
        assert inverse_rate(Decimal("2"), rounding=Rounding.HALF_UP) == Decimal("0.5000000000")

    def test_scale_never_below_ten(self):
        rate = inverse_rate(Decimal("3"), rounding=Rounding.HALF_UP, scale=2)
        assert rate == Decimal("0.3333333333")

    def test_wider_scale(self):
        rate = inverse_rate(Decimal("3"), rounding=Rounding.HALF_UP, scale=12)
        assert rate == Decimal("0.333333333333")

    def test_zero_rate_raises(self):
        with pytest.raises(CurrencyArithmeticError):
            inverse_rate(Decimal("0"), rounding=Rounding.HALF_UP)

    @pytest.mark.parametrize("rounding", [Rounding.HALF_UP, Rounding.HALF_DOWN])
    @pytest.mark.parametrize("rate", ["0.0123", "0.5", "0.8123", "1.0850", "1.175100", "3", "7.5", "150.25"])
    def test_round_trip_through_inverse_rate(self, rate, rounding):
        rate = Decimal(rate)
        inverse = inverse_rate(rate, rounding=rounding)

        for amount in (1, 7, 99, 1000, 12345, 9876543):
            foreign = convert(amount, rate, rounding=rounding)
            back = convert(foreign, inverse, rounding=rounding)

            assert abs(back - amount) <= max(Decimal(1), inverse)
            # the pair also satisfies the unit tolerance
            Unit(UnitType.GROSS_VALUE, Money.of("EUR", amount), Money.of("USD", foreign), inverse)


class TestExchangeRate:
    """Tests for the ExchangeRate value type."""

    @pytest.fixture
    def usd_eur(self):
        return ExchangeRate("usd", "eur", Decimal("0.9"))

    def test_currencies_upper_cased(self, usd_eur):
        assert usd_eur.base_currency == "USD"
        assert usd_eur.term_currency == "EUR"

    def test_convert_base_to_term(self, usd_eur):
        result = usd_eur.convert(Money.of("USD", 1000), rounding=Rounding.HALF_UP)
        assert result == Money.of("EUR", 900)

    def test_convert_term_to_base(self, usd_eur):
        result = usd_eur.convert(Money.of("EUR", 900), rounding=Rounding.HALF_UP)
        assert result == Money.of("USD", 1000)

    def test_convert_other_currency_raises(self, usd_eur):
        with pytest.raises(CurrencyArithmeticError):
            usd_eur.convert(Money.of("CHF", 100), rounding=Rounding.HALF_UP)

    def test_inverse(self, usd_eur):
        inverse = usd_eur.inverse(rounding=Rounding.HALF_UP)

        assert inverse.base_currency == "EUR"
        assert inverse.term_currency == "USD"
        assert inverse.value == Decimal("1.1111111111")

    def test_same_currency_rejected(self):
        with pytest.raises(CurrencyArithmeticError):
            ExchangeRate("EUR", "EUR", Decimal("1"))

    def test_zero_rate_rejected(self):
        with pytest.raises(CurrencyArithmeticError):
            ExchangeRate("USD", "EUR", Decimal("0"))
