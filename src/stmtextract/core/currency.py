"""
Exchange-rate arithmetic.

All conversions work on integer minor-unit amounts and ``Decimal`` rates.
The rounding mode is never defaulted: every conversion site states whether it
rounds half-up or half-down, because statements from different institutions
round differently and results must match the printed figures.

Usage:
    rate = ExchangeRate("EUR", "USD", Decimal("1.1200"))

    usd = rate.convert(Money.of("EUR", 10000), rounding=Rounding.HALF_UP)
    # Money("USD", 11200)

    eur = rate.convert(usd, rounding=Rounding.HALF_DOWN)
    # Money("EUR", 10000)
"""

from dataclasses import dataclass
from decimal import (
    Decimal,
    InvalidOperation,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    localcontext,
)
from enum import Enum
from typing import TYPE_CHECKING, Union

from stmtextract.core.exceptions import CurrencyArithmeticError

if TYPE_CHECKING:
    from stmtextract.core.money import Money


# Decimal places kept when deriving an inverse rate
INVERSE_RATE_SCALE = 10

# Working precision for rate arithmetic; wide enough for any quoted rate
_RATE_PRECISION = 50


class Rounding(Enum):
    """Rounding policy for a conversion site."""
    HALF_UP = ROUND_HALF_UP
    HALF_DOWN = ROUND_HALF_DOWN
    HALF_EVEN = ROUND_HALF_EVEN


def as_rate(value: Union[Decimal, int, str]) -> Decimal:
    """
    Coerce a rate to Decimal.

    Floats are rejected: a binary float cannot carry a quoted rate exactly.
    """
    if isinstance(value, Decimal):
        rate = value
    elif isinstance(value, float):
        raise TypeError(f"Exchange rate must not be a float: {value!r}")
    else:
        try:
            rate = Decimal(str(value))
        except InvalidOperation:
            raise CurrencyArithmeticError(f"Not a valid exchange rate: {value!r}")
    return rate


def _checked_rate(value) -> Decimal:
    rate = as_rate(value)
    if not rate.is_finite() or rate <= 0:
        raise CurrencyArithmeticError(f"Exchange rate must be positive, got {rate}")
    return rate


def _round(value: Decimal, rounding: Rounding) -> int:
    if not isinstance(rounding, Rounding):
        raise TypeError(f"rounding must be a Rounding member, got {rounding!r}")
    return int(value.quantize(Decimal(1), rounding=rounding.value))


def convert(amount: int, rate, *, rounding: Rounding) -> int:
    """
    Multiply a minor-unit amount by a rate.

    Args:
        amount: Amount in minor units
        rate: Exchange rate (target units per source unit)
        rounding: Rounding policy for this conversion site

    Returns:
        round(amount × rate) in minor units
    """
    rate = _checked_rate(rate)
    with localcontext() as ctx:
        ctx.prec = _RATE_PRECISION
        return _round(Decimal(amount) * rate, rounding)


def convert_inverse(amount: int, rate, *, rounding: Rounding) -> int:
    """
    Divide a minor-unit amount by a rate.

    Returns:
        round(amount ÷ rate) in minor units
    """
    rate = _checked_rate(rate)
    with localcontext() as ctx:
        ctx.prec = _RATE_PRECISION
        return _round(Decimal(amount) / rate, rounding)


def inverse_rate(rate, *, rounding: Rounding, scale: int = INVERSE_RATE_SCALE) -> Decimal:
    """
    Derive 1 ÷ rate with ``scale`` decimal places.

    Successive conversions with a truncated inverse compound their error, so
    the inverse keeps at least ten decimal places.
    """
    rate = _checked_rate(rate)
    if not isinstance(rounding, Rounding):
        raise TypeError(f"rounding must be a Rounding member, got {rounding!r}")
    scale = max(scale, INVERSE_RATE_SCALE)
    with localcontext() as ctx:
        ctx.prec = _RATE_PRECISION
        return (Decimal(1) / rate).quantize(Decimal(1).scaleb(-scale), rounding=rounding.value)


@dataclass(frozen=True)
class ExchangeRate:
    """
    A quoted exchange rate: one unit of ``base_currency`` buys ``value``
    units of ``term_currency``.
    """

    base_currency: str
    term_currency: str
    value: Decimal

    def __post_init__(self):
        object.__setattr__(self, "base_currency", self.base_currency.upper())
        object.__setattr__(self, "term_currency", self.term_currency.upper())
        object.__setattr__(self, "value", _checked_rate(self.value))
        if self.base_currency == self.term_currency:
            raise CurrencyArithmeticError(
                f"Exchange rate needs two currencies, got {self.base_currency} twice"
            )

    def inverse(self, *, rounding: Rounding) -> "ExchangeRate":
        """Return the rate quoted the other way round."""
        return ExchangeRate(
            self.term_currency,
            self.base_currency,
            inverse_rate(self.value, rounding=rounding),
        )

    def convert(self, money: "Money", *, rounding: Rounding) -> "Money":
        """
        Convert money in either currency of this rate to the other one.

        Raises:
            CurrencyArithmeticError: If the money is in neither currency
        """
        from stmtextract.core.money import Money

        if money.currency_code == self.base_currency:
            return Money.of(self.term_currency, convert(money.amount, self.value, rounding=rounding))
        if money.currency_code == self.term_currency:
            return Money.of(self.base_currency, convert_inverse(money.amount, self.value, rounding=rounding))
        raise CurrencyArithmeticError(
            f"Cannot convert {money.currency_code} with a "
            f"{self.base_currency}/{self.term_currency} rate",
            expected=f"{self.base_currency} or {self.term_currency}",
            actual=money.currency_code,
        )

    def __str__(self) -> str:
        return f"{self.value} {self.term_currency}/{self.base_currency}"
