"""
Unit tests for line patterns and extraction contexts.
"""

import pytest
from decimal import Decimal

from stmtextract.core.exceptions import PatternError
from stmtextract.parsers.context import DocumentContext, ExtractionContext
from stmtextract.parsers.pattern import LinePattern


class TestLinePattern:
    """Tests for LinePattern."""

    def test_full_line_match(self):
        pattern = LinePattern(r"ST (?P<shares>[\d.]+(,\d+)?)")

        assert pattern.match("ST 10") == {"shares": "10"}
        assert pattern.match("ST 10 Umsatz") is None
        assert pattern.match("XST 10") is None

    def test_non_participating_groups_not_bound(self):
        pattern = LinePattern(r"^(?P<date>\d{2}\.\d{2}\.\d{4})( (?P<time>\d{2}:\d{2}))?$")

        assert pattern.match("01.02.2024") == {"date": "01.02.2024"}
        assert pattern.match("01.02.2024 09:15") == {"date": "01.02.2024", "time": "09:15"}

    def test_group_names(self):
        pattern = LinePattern(r"^(?P<currency>[A-Z]{3}) (?P<amount>.*)$")
        assert pattern.group_names == ("currency", "amount")

    def test_matches(self):
        pattern = LinePattern(r"^KAUF AM .*$")

        assert pattern.matches("KAUF AM 05.01.2015")
        assert not pattern.matches("VERKAUF AM 05.01.2015")

    def test_search_anywhere(self):
        pattern = LinePattern(r"Dividendengutschrift")
        assert pattern.search("Header\nDividendengutschrift\nFooter")

    def test_malformed_regex_raises_at_construction(self):
        with pytest.raises(PatternError) as exc_info:
            LinePattern(r"^(?P<amount>[\d.+$")

        assert exc_info.value.code == "PATTERN_ERROR"
        assert exc_info.value.pattern == r"^(?P<amount>[\d.+$"


class TestDocumentContext:
    """Tests for the per-document context."""

    def test_flags(self):
        context = DocumentContext()
        context.set_flag("isjointaccount", True)

        assert context.flag("isjointaccount")
        assert context["isjointaccount"] == "true"
        assert not context.flag("missing")

    def test_decimals(self):
        context = DocumentContext()
        context.put_decimal("exchangeRate", Decimal("1.0899"))

        assert context["exchangeRate"] == "1.0899"
        assert context.get_decimal("exchangeRate") == Decimal("1.0899")
        assert context.get_decimal("missing") is None

    def test_unreadable_decimal(self):
        context = DocumentContext({"exchangeRate": "n/a"})
        assert context.get_decimal("exchangeRate") is None


class TestExtractionContext:
    """Tests for the block context layered over the document context."""

    def test_lookup_falls_through_to_document(self):
        document = DocumentContext({"exchangeRate": "1.1"})
        context = ExtractionContext.for_block(document)

        assert context["exchangeRate"] == "1.1"
        assert context.document is document

    def test_bind_never_writes_document(self):
        document = DocumentContext()
        context = ExtractionContext.for_block(document)
        context.bind({"amount": "1,00"})

        assert context["amount"] == "1,00"
        assert "amount" not in document

    def test_child_scope_does_not_leak(self):
        context = ExtractionContext.for_block(DocumentContext())
        child = context.new_child({"tax": "5,00"})

        assert child["tax"] == "5,00"
        assert "tax" not in context

    def test_unbound(self):
        context = ExtractionContext.for_block(DocumentContext({"currency": "EUR"}))
        context.bind({"amount": "1,00"})

        assert context.unbound(["amount", "currency", "date"]) == ["date"]

    def test_blocks_share_document_context(self):
        document = DocumentContext()
        first = ExtractionContext.for_block(document)
        second = ExtractionContext.for_block(document)

        first.document["exchangeRate"] = "1.2"
        first.bind({"amount": "1,00"})

        assert second["exchangeRate"] == "1.2"
        assert "amount" not in second
