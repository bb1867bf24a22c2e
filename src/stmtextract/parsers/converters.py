"""
Captured text to typed values.

Statements print numbers in German notation ("1.234,56"): the dot groups
thousands and the comma separates decimals. Every converter raises
InvalidValueError on text it cannot read, so a garbled capture rejects the
block run instead of producing a wrong figure.
"""

import re
from datetime import datetime, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from stmtextract.core.exceptions import InvalidValueError
from stmtextract.core.money import AMOUNT_FACTOR

_NUMBER = re.compile(r"^[+-]?\s*\d{1,3}(\.?\d{3})*(,\d+)?-?$|^[+-]?\s*\d+(,\d+)?-?$")
_DATE = re.compile(r"^(\d{1,2})\D(\d{1,2})\D(\d{2}|\d{4})$")
_TIME = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_CURRENCY = re.compile(r"^[A-Z]{3}$")


def parse_decimal(value: str, expected: str = "number") -> Decimal:
    """
    Parse a German-formatted number.

    A sign may lead ("-5,00", "- 5,00") or trail ("5,00-").

    Raises:
        InvalidValueError: If the text is not a number
    """
    if value is None:
        raise InvalidValueError(value, expected)

    text = value.strip()
    if not _NUMBER.match(text):
        raise InvalidValueError(value, expected)

    negative = text.startswith("-") or text.endswith("-")
    digits = text.strip("+-").strip().replace(".", "").replace(",", ".")
    try:
        number = Decimal(digits)
    except InvalidOperation:
        raise InvalidValueError(value, expected)
    return -number if negative else number


def as_amount(value: str) -> int:
    """
    Amount in minor units, without sign.

    Direction is carried by the transaction type, never by the amount.

    Example:
        as_amount("1.234,56")   # 123456
        as_amount("-5,00")      # 500
    """
    number = abs(parse_decimal(value, "amount"))
    return int((number * AMOUNT_FACTOR).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def as_signed_amount(value: str) -> int:
    """Amount in minor units, keeping the printed sign."""
    number = parse_decimal(value, "amount")
    return int((number * AMOUNT_FACTOR).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def is_negative(value: str) -> bool:
    return parse_decimal(value, "amount") < 0


def as_shares(value: str) -> Decimal:
    number = parse_decimal(value, "shares")
    if number < 0:
        raise InvalidValueError(value, "shares")
    return number


def as_exchange_rate(value: str) -> Decimal:
    """Quoted exchange rate; zero is left for the conversion site to reject."""
    number = parse_decimal(value, "exchange rate")
    if number < 0:
        raise InvalidValueError(value, "exchange rate")
    return number


def as_time(value: str) -> time:
    m = _TIME.match(value.strip()) if value else None
    if m is None:
        raise InvalidValueError(value, "time")
    hour, minute, second = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    try:
        return time(hour, minute, second)
    except ValueError:
        raise InvalidValueError(value, "time")


def as_date(value: str, time_value: Optional[str] = None) -> datetime:
    """
    Parse "dd.mm.yyyy" (or a two-digit year), optionally with "HH:MM[:SS]".

    Any non-digit separates the date parts, so "10-07-2017" is accepted too.
    """
    m = _DATE.match(value.strip()) if value else None
    if m is None:
        raise InvalidValueError(value, "date")

    day, month, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    if len(m.group(3)) == 2:
        year += 2000

    try:
        result = datetime(year, month, day)
    except ValueError:
        raise InvalidValueError(value, "date")

    if time_value:
        clock = as_time(time_value)
        result = result.replace(hour=clock.hour, minute=clock.minute, second=clock.second)
    return result


def as_currency_code(value: str) -> str:
    code = value.strip().upper() if value else ""
    if not _CURRENCY.match(code):
        raise InvalidValueError(value, "currency code")
    return code
