"""
Core module - Foundation components for statement extraction.

Provides:
- Money, Unit, UnitsMixin: Integer minor-unit amounts and transaction units
- Currency arithmetic: Exchange rate conversion with explicit rounding
- Models: Account entries, portfolio transactions and transfers
- SecurityRegistry: Security lookup and creation
- ExtractorConfig: JSON configuration
- Exceptions: Extraction error hierarchy
"""

from stmtextract.core.money import (
    AMOUNT_FACTOR,
    Money,
    Unit,
    UnitType,
    UnitsMixin,
    sum_money,
    gross_from_net,
    net_from_gross,
)
from stmtextract.core.currency import (
    Rounding,
    ExchangeRate,
    as_rate,
    convert,
    convert_inverse,
    inverse_rate,
)
from stmtextract.core.models import (
    TransactionKind,
    AccountEntryType,
    PortfolioTransactionType,
    Security,
    Transaction,
    AccountEntry,
    PortfolioTransaction,
    TransferEntry,
)
from stmtextract.core.securities import SecurityResolver, SecurityRegistry
from stmtextract.core.config import ExtractorConfig, DEFAULT_CONFIG
from stmtextract.core.exceptions import (
    ExtractionError,
    PatternError,
    MissingSectionError,
    MissingFieldError,
    CurrencyArithmeticError,
    InvalidValueError,
    DocumentLoadError,
)

__all__ = [
    # Money
    "AMOUNT_FACTOR",
    "Money",
    "Unit",
    "UnitType",
    "UnitsMixin",
    "sum_money",
    "gross_from_net",
    "net_from_gross",
    # Currency
    "Rounding",
    "ExchangeRate",
    "as_rate",
    "convert",
    "convert_inverse",
    "inverse_rate",
    # Models
    "TransactionKind",
    "AccountEntryType",
    "PortfolioTransactionType",
    "Security",
    "Transaction",
    "AccountEntry",
    "PortfolioTransaction",
    "TransferEntry",
    # Securities
    "SecurityResolver",
    "SecurityRegistry",
    # Config
    "ExtractorConfig",
    "DEFAULT_CONFIG",
    # Exceptions
    "ExtractionError",
    "PatternError",
    "MissingSectionError",
    "MissingFieldError",
    "CurrencyArithmeticError",
    "InvalidValueError",
    "DocumentLoadError",
]
