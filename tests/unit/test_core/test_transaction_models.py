"""
Unit tests for transaction models.

Tests account entries, transfer entries and their gross value conventions.
"""

import pytest
from datetime import datetime
from decimal import Decimal

from stmtextract.core.models import (
    AccountEntry,
    AccountEntryType,
    PortfolioTransactionType,
    Security,
    TransactionKind,
    TransferEntry,
)
from stmtextract.core.money import Money, Unit, UnitType


class TestAccountEntry:
    """Tests for AccountEntry."""

    def test_update_sets_fields(self):
        entry = AccountEntry()
        entry.update(
            type=AccountEntryType.INTEREST,
            currency_code="EUR",
            amount=1234,
            date_time=datetime(2024, 3, 1),
            note="Zinsen",
        )

        assert entry.type == AccountEntryType.INTEREST
        assert entry.monetary_amount == Money.of("EUR", 1234)
        assert entry.note == "Zinsen"
        assert entry.kind == TransactionKind.ACCOUNT

    def test_update_monetary_amount(self):
        entry = AccountEntry().update(monetary_amount=Money.of("USD", 500))

        assert entry.currency_code == "USD"
        assert entry.amount == 500

    def test_update_unknown_field_raises(self):
        with pytest.raises(AttributeError):
            AccountEntry().update(isin="DE0000000000")

    def test_dividend_gross_value_from_net(self):
        entry = AccountEntry(type=AccountEntryType.DIVIDENDS, currency_code="EUR", amount=7363)
        entry.add_unit(Unit(UnitType.TAX, Money.of("EUR", 2500)))
        entry.add_unit(Unit(UnitType.TAX, Money.of("EUR", 137)))

        assert entry.gross_value() == Money.of("EUR", 10000)

    def test_gross_value_unit_wins(self):
        entry = AccountEntry(type=AccountEntryType.DIVIDENDS, currency_code="EUR", amount=7363)
        # 9900 USD × 0.9090909091 = 9000.00
        entry.add_unit(Unit(UnitType.GROSS_VALUE, Money.of("EUR", 9000),
                            Money.of("USD", 9900), Decimal("0.9090909091")))

        assert entry.gross_value() == Money.of("EUR", 9000)

    def test_tax_entry_gross_is_amount(self):
        entry = AccountEntry(type=AccountEntryType.TAXES, currency_code="EUR", amount=500)
        assert entry.gross_value() == Money.of("EUR", 500)

    def test_is_credit(self):
        assert AccountEntryType.DIVIDENDS.is_credit
        assert AccountEntryType.TAX_REFUND.is_credit
        assert not AccountEntryType.TAXES.is_credit
        assert not AccountEntryType.BUY.is_credit


class TestTransferEntry:
    """Tests for TransferEntry leg synchronisation."""

    def test_default_type_is_buy(self):
        entry = TransferEntry()

        assert entry.type == PortfolioTransactionType.BUY
        assert entry.account_transaction.type == AccountEntryType.BUY
        assert entry.kind == TransactionKind.TRANSFER

    def test_type_change_updates_both_legs(self):
        entry = TransferEntry()
        entry.update(type=PortfolioTransactionType.SELL)

        assert entry.portfolio_transaction.type == PortfolioTransactionType.SELL
        assert entry.account_transaction.type == AccountEntryType.SELL

    def test_shared_fields_on_both_legs(self):
        security = Security(name="BASF SE", isin="DE000BASF111")
        entry = TransferEntry()
        entry.update(
            security=security,
            shares=Decimal("10"),
            currency_code="EUR",
            amount=50495,
            date_time=datetime(2024, 5, 2, 9, 15),
        )

        for leg in (entry.portfolio_transaction, entry.account_transaction):
            assert leg.security is security
            assert leg.amount == 50495
            assert leg.shares == Decimal("10")

        assert entry.monetary_amount == Money.of("EUR", 50495)

    def test_units_live_on_portfolio_leg(self):
        entry = TransferEntry().update(currency_code="EUR", amount=10500)
        fee = Unit(UnitType.FEE, Money.of("EUR", 500))
        entry.add_unit(fee)

        assert entry.units == [fee]
        assert entry.account_transaction.units == []
        assert entry.get_unit(UnitType.FEE) is fee

    def test_buy_gross_value(self):
        entry = TransferEntry().update(currency_code="EUR", amount=10500)
        entry.add_unit(Unit(UnitType.FEE, Money.of("EUR", 500)))

        assert entry.gross_value() == Money.of("EUR", 10000)

    def test_sell_gross_value(self):
        entry = TransferEntry(PortfolioTransactionType.SELL).update(currency_code="EUR", amount=9400)
        entry.add_unit(Unit(UnitType.FEE, Money.of("EUR", 500)))
        entry.add_unit(Unit(UnitType.TAX, Money.of("EUR", 100)))

        assert entry.gross_value() == Money.of("EUR", 10000)


class TestSecurity:
    """Tests for Security display."""

    def test_str_prefers_isin(self):
        assert str(Security(name="BASF", isin="DE000BASF111", wkn="BASF11")) == "BASF (DE000BASF111)"

    def test_str_without_identifiers(self):
        assert str(Security(name="Unknown")) == "Unknown (-)"
