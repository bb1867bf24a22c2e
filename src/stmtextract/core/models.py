"""
Transaction models produced by the extractors.

Two kinds of transaction come out of a statement:

- AccountEntry: a single cash-affecting event (dividends, interest, taxes,
  tax refunds, fees)
- TransferEntry: a buy or sell, pairing a security movement
  (PortfolioTransaction) with the matching cash movement (AccountEntry)

Both share the unit handling of ``UnitsMixin``. Rule callbacks mutate
transactions through ``update(**changes)`` so they can be written as lambdas.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, List, Optional

from stmtextract.core.money import Money, Unit, UnitType, UnitsMixin


class TransactionKind(Enum):
    """Tag distinguishing the two transaction shapes."""
    ACCOUNT = "ACCOUNT"
    TRANSFER = "TRANSFER"


class AccountEntryType(Enum):
    """Type of cash-affecting event."""
    DIVIDENDS = "DIVIDENDS"
    INTEREST = "INTEREST"
    TAXES = "TAXES"
    TAX_REFUND = "TAX_REFUND"
    FEES = "FEES"
    FEES_REFUND = "FEES_REFUND"
    BUY = "BUY"
    SELL = "SELL"

    @property
    def is_credit(self) -> bool:
        """Whether the entry increases the account balance."""
        return self in (
            AccountEntryType.DIVIDENDS,
            AccountEntryType.INTEREST,
            AccountEntryType.TAX_REFUND,
            AccountEntryType.FEES_REFUND,
            AccountEntryType.SELL,
        )


class PortfolioTransactionType(Enum):
    """Type of security movement."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass
class Security:
    """
    Financial instrument referenced by a transaction.

    Identifiers are optional; the resolver matches on whichever are present.
    """

    name: str
    isin: Optional[str] = None
    wkn: Optional[str] = None
    ticker: Optional[str] = None
    currency_code: Optional[str] = None

    def __str__(self) -> str:
        ident = self.isin or self.wkn or self.ticker or "-"
        return f"{self.name} ({ident})"


@dataclass
class Transaction(UnitsMixin):
    """Fields common to account and portfolio transactions."""

    UPDATABLE: ClassVar[tuple] = (
        "type", "currency_code", "amount", "date_time", "security", "shares", "note",
    )

    currency_code: Optional[str] = None
    amount: int = 0
    date_time: Optional[datetime] = None
    security: Optional[Security] = None
    shares: Decimal = Decimal("0")
    note: Optional[str] = None
    units: List[Unit] = field(default_factory=list)

    @property
    def monetary_amount(self) -> Money:
        return Money.of(self.currency_code, self.amount)

    @monetary_amount.setter
    def monetary_amount(self, money: Money):
        self.currency_code = money.currency_code
        self.amount = money.amount

    def update(self, **changes: Any) -> "Transaction":
        """
        Assign several fields at once.

        Raises:
            AttributeError: For names that are not transaction fields
        """
        for name, value in changes.items():
            if name == "monetary_amount":
                self.monetary_amount = value
            elif name in self.UPDATABLE:
                setattr(self, name, value)
            else:
                raise AttributeError(f"{type(self).__name__} has no field {name!r}")
        return self


@dataclass
class AccountEntry(Transaction):
    """Single cash-affecting event such as a dividend or a tax payment."""

    kind: ClassVar[TransactionKind] = TransactionKind.ACCOUNT

    type: Optional[AccountEntryType] = None

    def gross_value(self) -> Money:
        """
        Gross value following the settlement convention of the entry type.

        Income (dividends, interest) settles net, so gross is amount plus
        taxes and fees. Other entries carry their gross value as amount.
        """
        gross = self.get_unit(UnitType.GROSS_VALUE)
        if gross is not None:
            return gross.amount
        if self.type in (AccountEntryType.DIVIDENDS, AccountEntryType.INTEREST):
            return (self.monetary_amount
                    + self.unit_sum(UnitType.TAX)
                    + self.unit_sum(UnitType.FEE))
        return self.monetary_amount


@dataclass
class PortfolioTransaction(Transaction):
    """Security movement of a buy or sell."""

    type: Optional[PortfolioTransactionType] = None

    def gross_value(self) -> Money:
        """
        Gross value of the trade.

        A buy debits amount = gross + fees + taxes; a sell credits
        amount = gross - fees - taxes.
        """
        charges = self.unit_sum(UnitType.FEE) + self.unit_sum(UnitType.TAX)
        if self.type == PortfolioTransactionType.SELL:
            return self.monetary_amount + charges
        return self.monetary_amount - charges


class TransferEntry:
    """
    Buy or sell: a security movement plus the matching cash movement.

    Shared fields are kept in sync on both legs; units live on the
    portfolio transaction.
    """

    kind: ClassVar[TransactionKind] = TransactionKind.TRANSFER

    def __init__(self, type: PortfolioTransactionType = PortfolioTransactionType.BUY):
        self.portfolio_transaction = PortfolioTransaction()
        self.account_transaction = AccountEntry()
        self.type = type

    @property
    def type(self) -> PortfolioTransactionType:
        return self.portfolio_transaction.type

    @type.setter
    def type(self, value: PortfolioTransactionType):
        self.portfolio_transaction.type = value
        self.account_transaction.type = AccountEntryType(value.value)

    def update(self, **changes: Any) -> "TransferEntry":
        for name, value in changes.items():
            if name == "type":
                self.type = value
            else:
                self.portfolio_transaction.update(**{name: value})
                self.account_transaction.update(**{name: value})
        return self

    # Read access delegates to the portfolio leg

    @property
    def currency_code(self) -> Optional[str]:
        return self.portfolio_transaction.currency_code

    @property
    def amount(self) -> int:
        return self.portfolio_transaction.amount

    @property
    def monetary_amount(self) -> Money:
        return self.portfolio_transaction.monetary_amount

    @property
    def date_time(self) -> Optional[datetime]:
        return self.portfolio_transaction.date_time

    @property
    def security(self) -> Optional[Security]:
        return self.portfolio_transaction.security

    @property
    def shares(self) -> Decimal:
        return self.portfolio_transaction.shares

    @property
    def note(self) -> Optional[str]:
        return self.portfolio_transaction.note

    @property
    def units(self) -> List[Unit]:
        return self.portfolio_transaction.units

    def add_unit(self, unit: Unit):
        self.portfolio_transaction.add_unit(unit)

    def get_unit(self, unit_type: UnitType) -> Optional[Unit]:
        return self.portfolio_transaction.get_unit(unit_type)

    def unit_sum(self, unit_type: UnitType, currency_code: str = None) -> Money:
        return self.portfolio_transaction.unit_sum(unit_type, currency_code)

    def check_units(self):
        self.portfolio_transaction.check_units()

    def gross_value(self) -> Money:
        return self.portfolio_transaction.gross_value()

    def __repr__(self) -> str:
        return (f"TransferEntry(type={self.type}, security={self.security}, "
                f"shares={self.shares}, amount={self.amount}, "
                f"currency_code={self.currency_code}, units={self.units})")
