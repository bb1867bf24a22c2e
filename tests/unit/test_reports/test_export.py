"""
Unit tests for result export.
"""

import json

import pandas as pd
import pytest
from datetime import datetime
from decimal import Decimal

from stmtextract.core.models import (
    AccountEntry,
    AccountEntryType,
    PortfolioTransactionType,
    Security,
    TransferEntry,
)
from stmtextract.core.money import Money, Unit, UnitType
from stmtextract.parsers.items import (
    ExtractionResult,
    FailureKind,
    ItemSource,
    NonImportableItem,
    Rejection,
    TransactionItem,
    TransferItem,
)
from stmtextract.reports.export import COLUMNS, export_results, item_to_row, results_to_dataframe


def dividend_item():
    entry = AccountEntry(
        type=AccountEntryType.DIVIDENDS,
        currency_code="EUR",
        amount=1000,
        date_time=datetime(2024, 5, 2),
        security=Security("BASF SE", isin="DE000BASF111", wkn="BASF11"),
        shares=Decimal("10"),
    )
    entry.add_unit(Unit(UnitType.TAX, Money.of("EUR", 250)))
    return TransactionItem(entry, ItemSource(extractor="Consorsbank", rule_set="Dividende", line_index=3))


def buy_item():
    entry = TransferEntry(PortfolioTransactionType.BUY)
    entry.update(currency_code="EUR", amount=10995, shares=Decimal("5"),
                 date_time=datetime(2024, 1, 15, 9, 30))
    entry.add_unit(Unit(UnitType.FEE, Money.of("EUR", 995)))
    return TransferItem(entry, ItemSource(extractor="ING-DiBa", rule_set="Kauf", line_index=1))


@pytest.fixture
def results():
    first = ExtractionResult(document_name="dividende.txt")
    first.extend([
        dividend_item(),
        Rejection(FailureKind.MISSING_SECTION, "Required Section(date) not found",
                  ItemSource(extractor="Consorsbank", rule_set="Dividende", line_index=12)),
    ])

    second = ExtractionResult(document_name="kauf.txt")
    second.extend([
        buy_item(),
        NonImportableItem("Erstattung/Belastung von Steuern mit 0 Euro",
                          AccountEntry(type=AccountEntryType.TAX_REFUND, currency_code="EUR")),
    ])

    broken = ExtractionResult(document_name="broken.txt")
    broken.add_error("Extraction failed: unexpected")
    return [first, second, broken]


class TestItemToRow:
    """Tests for flattening items."""

    def test_account_entry(self):
        row = item_to_row("dividende.txt", dividend_item())

        assert set(row) == set(COLUMNS)
        assert row["kind"] == "ACCOUNT"
        assert row["type"] == "DIVIDENDS"
        assert row["date"] == "2024-05-02T00:00:00"
        assert row["security"] == "BASF SE"
        assert row["amount"] == Decimal("10.00")
        assert row["gross"] == Decimal("12.50")
        assert row["taxes"] == Decimal("2.50")
        assert row["fees"] == Decimal("0.00")
        assert row["line"] == 3

    def test_transfer_entry(self):
        row = item_to_row("kauf.txt", buy_item())

        assert row["kind"] == "TRANSFER"
        assert row["type"] == "BUY"
        assert row["shares"] == Decimal("5")
        assert row["gross"] == Decimal("100.00")
        assert row["fees"] == Decimal("9.95")
        assert row["security"] is None

    def test_money_columns_are_exact_decimals(self):
        row = item_to_row("kauf.txt", buy_item())

        for column in ("amount", "gross", "fees", "shares"):
            assert isinstance(row[column], Decimal)
        assert str(row["amount"]) == "109.95"

    def test_rejection(self):
        rejection = Rejection(FailureKind.MISSING_FIELD, "Missing date")
        row = item_to_row("a.txt", rejection)

        assert row["kind"] == "REJECTED"
        assert row["type"] == "MISSING_FIELD"
        assert row["message"] == "Missing date"
        assert row["amount"] is None

    def test_non_importable(self):
        row = item_to_row("a.txt", NonImportableItem("nothing to book"))

        assert row["kind"] == "NOT_IMPORTABLE"
        assert row["message"] == "nothing to book"


class TestResultsToDataFrame:
    """Tests for building the DataFrame."""

    def test_one_row_per_item(self, results):
        df = results_to_dataframe(results)

        assert list(df.columns) == COLUMNS
        assert len(df) == 4
        assert list(df["kind"]) == ["ACCOUNT", "REJECTED", "TRANSFER", "NOT_IMPORTABLE"]

    def test_without_rejections(self, results):
        df = results_to_dataframe(results, include_rejections=False)

        assert len(df) == 3
        assert "REJECTED" not in set(df["kind"])

    def test_empty(self):
        df = results_to_dataframe([])

        assert df.empty
        assert list(df.columns) == COLUMNS


class TestExportResults:
    """Tests for writing files."""

    def test_csv(self, results, tmp_path):
        path = export_results(results, tmp_path / "out.csv")

        df = pd.read_csv(path)
        assert len(df) == 4
        assert df.loc[0, "amount"] == 10.0
        assert df.loc[2, "document"] == "kauf.txt"

    def test_json(self, results, tmp_path):
        path = export_results(results, tmp_path / "out.json", include_rejections=False)

        rows = json.loads(path.read_text(encoding="utf-8"))
        assert [row["kind"] for row in rows] == ["ACCOUNT", "TRANSFER", "NOT_IMPORTABLE"]
        assert rows[2]["message"] == "Erstattung/Belastung von Steuern mit 0 Euro"
        assert rows[1]["amount"] == "109.95"
        assert rows[1]["fees"] == "9.95"
        assert rows[2]["amount"] == "0.00"
        assert rows[2]["shares"] is None

    def test_xlsx_with_errors_sheet(self, results, tmp_path):
        path = export_results(results, tmp_path / "out.xlsx")

        sheets = pd.read_excel(path, sheet_name=None)
        assert set(sheets) == {"Transactions", "Errors"}
        assert len(sheets["Transactions"]) == 4
        assert sheets["Errors"].loc[0, "document"] == "broken.txt"

    def test_explicit_format_overrides_suffix(self, results, tmp_path):
        path = export_results(results, tmp_path / "out.txt", fmt="csv")

        assert len(pd.read_csv(path)) == 4

    def test_creates_parent_directory(self, results, tmp_path):
        path = export_results(results, tmp_path / "nested" / "out.csv")
        assert path.exists()

    def test_unsupported_format(self, results, tmp_path):
        with pytest.raises(ValueError):
            export_results(results, tmp_path / "out.parquet")
