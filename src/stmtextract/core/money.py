"""
Fixed-point money and transaction units.

Amounts are integers in minor currency units (cents); there is no floating
point anywhere in the money path. A Unit is a typed adjustment attached to a
transaction:

- GROSS_VALUE: the gross amount in the settlement currency, always with
  the forex amount and exchange rate relating them
- TAX: withholding tax, capital gains tax, solidarity surcharge, ...
- FEE: commission, exchange fees, ...

The invariant for a unit carrying a forex pair is
``amount ≈ round(forex × exchange_rate)``, allowing one rounding step on
either side of the conversion.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, List, Optional

from stmtextract.core.exceptions import CurrencyArithmeticError
from stmtextract.core.currency import Rounding, as_rate, convert

# Minor units per major unit
AMOUNT_FACTOR = 100


@dataclass(frozen=True)
class Money:
    """Amount in minor units tagged with an ISO 4217 currency code."""

    currency_code: str
    amount: int

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise TypeError(f"Money amount must be an int in minor units, got {self.amount!r}")
        if not self.currency_code:
            raise CurrencyArithmeticError("Money requires a currency code")
        object.__setattr__(self, "currency_code", self.currency_code.upper())

    @classmethod
    def of(cls, currency_code: str, amount: int) -> "Money":
        return cls(currency_code, amount)

    @classmethod
    def zero(cls, currency_code: str) -> "Money":
        return cls(currency_code, 0)

    @classmethod
    def from_decimal(cls, currency_code: str, value: Decimal) -> "Money":
        """Create money from a major-unit decimal, rounding half-up to cents."""
        minor = (Decimal(value) * AMOUNT_FACTOR).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return cls(currency_code, int(minor))

    def _check_currency(self, other: "Money"):
        if other.currency_code != self.currency_code:
            raise CurrencyArithmeticError(
                f"Currency mismatch: {self.currency_code} and {other.currency_code}",
                expected=self.currency_code,
                actual=other.currency_code,
            )

    def add(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.currency_code, self.amount + other.amount)

    def subtract(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.currency_code, self.amount - other.amount)

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __neg__(self) -> "Money":
        return Money(self.currency_code, -self.amount)

    def absolute(self) -> "Money":
        return Money(self.currency_code, abs(self.amount))

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def to_decimal(self) -> Decimal:
        """Amount in major units."""
        return Decimal(self.amount).scaleb(-2)

    def __str__(self) -> str:
        return f"{self.currency_code} {self.to_decimal():,.2f}"


class UnitType(Enum):
    """Type of monetary adjustment attached to a transaction."""
    GROSS_VALUE = "GROSS_VALUE"
    TAX = "TAX"
    FEE = "FEE"


@dataclass(frozen=True)
class Unit:
    """
    Typed monetary adjustment.

    Attributes:
        type: GROSS_VALUE, TAX or FEE
        amount: Amount in the transaction currency
        forex: Original amount in the foreign currency (optional)
        exchange_rate: Rate with amount = forex × exchange_rate (optional)
    """

    type: UnitType
    amount: Money
    forex: Optional[Money] = None
    exchange_rate: Optional[Decimal] = None

    def __post_init__(self):
        if (self.forex is None) != (self.exchange_rate is None):
            raise CurrencyArithmeticError(
                f"{self.type.value} unit needs both a forex amount and an exchange rate"
            )
        if self.forex is None:
            if self.type is UnitType.GROSS_VALUE:
                raise CurrencyArithmeticError(
                    "GROSS_VALUE unit needs a forex amount and an exchange rate"
                )
            return

        rate = as_rate(self.exchange_rate)
        object.__setattr__(self, "exchange_rate", rate)

        if self.forex.currency_code == self.amount.currency_code:
            raise CurrencyArithmeticError(
                f"{self.type.value} unit forex currency equals amount currency "
                f"({self.amount.currency_code})"
            )
        if rate <= 0:
            raise CurrencyArithmeticError(f"Exchange rate must be positive, got {rate}")

        expected = Decimal(self.forex.amount) * rate
        tolerance = max(Decimal(1), rate)
        if abs(Decimal(self.amount.amount) - expected) > tolerance:
            raise CurrencyArithmeticError(
                f"{self.type.value} unit {self.amount} does not match "
                f"{self.forex} at rate {rate}",
                expected=str(expected),
                actual=str(self.amount.amount),
            )

    @classmethod
    def from_forex(
        cls,
        unit_type: UnitType,
        currency_code: str,
        forex: Money,
        exchange_rate,
        *,
        rounding: Rounding,
    ) -> "Unit":
        """Create a unit whose amount is computed as round(forex × rate)."""
        rate = as_rate(exchange_rate)
        amount = Money.of(currency_code, convert(forex.amount, rate, rounding=rounding))
        return cls(unit_type, amount, forex, rate)


def sum_money(currency_code: str, amounts: Iterable[Money]) -> Money:
    """Sum money amounts, all of which must be in ``currency_code``."""
    total = Money.zero(currency_code)
    for money in amounts:
        total = total + money
    return total


def gross_from_net(net: Money, taxes: Money, fees: Money) -> Money:
    """Gross amount for net-settlement documents: net + taxes + fees."""
    return net + taxes + fees


def net_from_gross(gross: Money, taxes: Money, fees: Money) -> Money:
    """Net amount for gross-settlement documents: gross - taxes - fees."""
    return gross - taxes - fees


class UnitsMixin:
    """
    Unit handling shared by every transaction kind.

    Expects the host class to provide ``units`` (a list) and
    ``currency_code`` (may be None until the currency is known).
    """

    units: List[Unit]
    currency_code: Optional[str]

    def add_unit(self, unit: Unit):
        """
        Attach a unit.

        Raises:
            CurrencyArithmeticError: If the unit amount is not in the
                transaction currency
        """
        if self.currency_code and unit.amount.currency_code != self.currency_code:
            raise CurrencyArithmeticError(
                f"{unit.type.value} unit in {unit.amount.currency_code} cannot be added "
                f"to a {self.currency_code} transaction",
                expected=self.currency_code,
                actual=unit.amount.currency_code,
            )
        self.units.append(unit)

    def get_unit(self, unit_type: UnitType) -> Optional[Unit]:
        """Return the first unit of the given type, if any."""
        for unit in self.units:
            if unit.type == unit_type:
                return unit
        return None

    def units_of(self, unit_type: UnitType) -> List[Unit]:
        return [unit for unit in self.units if unit.type == unit_type]

    def unit_sum(self, unit_type: UnitType, currency_code: str = None) -> Money:
        """Sum of all units of a type in the transaction currency."""
        currency_code = currency_code or self.currency_code
        if not currency_code:
            raise CurrencyArithmeticError("Cannot sum units before the currency is known")
        return sum_money(currency_code, (unit.amount for unit in self.units_of(unit_type)))

    def remove_unit(self, unit: Unit):
        self.units.remove(unit)

    def clear_units(self):
        self.units.clear()

    def check_units(self):
        """
        Verify every unit is in the transaction currency.

        Units may be attached before the currency is assigned, so the check
        is repeated at finalization.
        """
        for unit in self.units:
            if unit.amount.currency_code != self.currency_code:
                raise CurrencyArithmeticError(
                    f"{unit.type.value} unit in {unit.amount.currency_code} does not "
                    f"match transaction currency {self.currency_code}",
                    expected=self.currency_code,
                    actual=unit.amount.currency_code,
                )
