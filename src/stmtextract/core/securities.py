"""
Security resolution.

Extractors never own the security master data. They hand the captured
name/identifier/currency fields to a SecurityResolver, which returns an
existing instrument or registers a new one. The in-memory SecurityRegistry
is the default implementation and is safe to share between worker threads.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, List, Mapping, Optional

from stmtextract.core.models import Security

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class SecurityResolver(ABC):
    """Lookup-or-create capability for financial instruments."""

    @abstractmethod
    def get_or_create(self, values: Mapping[str, str]) -> Security:
        """
        Resolve captured fields to a security.

        Args:
            values: Captured fields; any of name, isin, wkn, ticker, currency

        Returns:
            Existing or newly registered Security
        """
        pass


class SecurityRegistry(SecurityResolver):
    """
    In-memory security master.

    Matching order: ISIN, WKN, ticker symbol, then exact name.

    Example:
        registry = SecurityRegistry()
        security = registry.get_or_create({"name": "BASF SE", "isin": "DE000BASF111"})
    """

    def __init__(self, securities: Iterable[Security] = None):
        self._lock = threading.Lock()
        self._securities: List[Security] = list(securities or [])

    def add(self, security: Security) -> Security:
        with self._lock:
            self._securities.append(security)
        return security

    def find(
        self,
        isin: str = None,
        wkn: str = None,
        ticker: str = None,
        name: str = None,
    ) -> Optional[Security]:
        """Find a registered security by the first identifier that matches."""
        with self._lock:
            return self._find(isin, wkn, ticker, name)

    def _find(self, isin, wkn, ticker, name) -> Optional[Security]:
        for attribute, value in (("isin", isin), ("wkn", wkn), ("ticker", ticker), ("name", name)):
            if not value:
                continue
            for security in self._securities:
                if getattr(security, attribute) == value:
                    return security
        return None

    def get_or_create(self, values: Mapping[str, str]) -> Security:
        isin = _clean(values.get("isin"))
        wkn = _clean(values.get("wkn"))
        ticker = _clean(values.get("ticker"))
        name = _clean(values.get("name"))
        currency = _clean(values.get("currency"))

        with self._lock:
            security = self._find(isin, wkn, ticker, name)
            if security is not None:
                return security

            security = Security(
                name=name or isin or wkn or ticker or "Unknown",
                isin=isin,
                wkn=wkn,
                ticker=ticker,
                currency_code=currency.upper() if currency else None,
            )
            self._securities.append(security)

        logger.info(f"Registered new security: {security}")
        return security

    def __len__(self) -> int:
        with self._lock:
            return len(self._securities)

    def __iter__(self) -> Iterator[Security]:
        # snapshot, so callers never hold the lock while iterating
        with self._lock:
            snapshot = list(self._securities)
        return iter(snapshot)
