"""
Unit tests for the extractor base class, registry and extraction service.
"""

import pytest

from stmtextract.core.config import ExtractorConfig
from stmtextract.core.models import AccountEntry, AccountEntryType
from stmtextract.parsers.base import BaseExtractor, ExtractorRegistry
from stmtextract.parsers.builder import TransactionBuilder, wrap_transaction
from stmtextract.parsers.document import Block, Document, DocumentType
from stmtextract.parsers.service import ExtractionService


class FeeBankExtractor(BaseExtractor):
    """Minimal extractor reading fee notices of a fictitious bank."""

    def __init__(self, security_resolver=None):
        super().__init__(security_resolver)
        self.add_bank_identifier("Musterbank AG")

        doc_type = self.add_document_type(DocumentType(r"Gebührenabrechnung", name="Fees"))
        doc_type.add_block(Block(r"^Gebühr$")).set(
            TransactionBuilder()
            .subject(lambda: AccountEntry(type=AccountEntryType.FEES))
            .section("currency", "amount")
            .match(r"^Betrag (?P<currency>[A-Z]{3}) (?P<amount>\S+)$")
            .assign(lambda t, v: t.update(currency_code=self.as_currency_code(v["currency"]),
                                          amount=self.as_amount(v["amount"])))
            .wrap(wrap_transaction))

    def get_label(self) -> str:
        return "Musterbank"


class ExplodingExtractor(BaseExtractor):
    """Extractor failing with an unexpected error on documents named 'bad'."""

    def get_label(self) -> str:
        return "Exploding"

    def extract(self, document):
        if document.name == "bad":
            raise RuntimeError("unexpected")
        return super().extract(document)


FEE_NOTICE = "Musterbank AG\nGebührenabrechnung\nGebühr\nBetrag EUR 4,95"


class TestBaseExtractor:
    """Tests for BaseExtractor."""

    def test_bank_identifier_gate(self):
        extractor = FeeBankExtractor()

        assert extractor.accepts(Document.from_text("a", FEE_NOTICE))
        assert not extractor.accepts(Document.from_text("b", "Andere Bank\nGebührenabrechnung"))

    def test_no_identifiers_accepts_everything(self):
        assert ExplodingExtractor().accepts(Document.from_text("a", "anything"))

    def test_extract(self):
        result = FeeBankExtractor().extract(Document.from_text("a", FEE_NOTICE))

        assert result.document_name == "a"
        assert len(result.transactions) == 1
        assert result.transactions[0].entry.amount == 495
        assert result.transactions[0].source.extractor == "Musterbank"

    def test_foreign_document_yields_empty_result(self):
        result = FeeBankExtractor().extract(Document.from_text("b", "Gebührenabrechnung\nGebühr"))

        assert result.items == []
        assert result.success

    def test_shared_security_resolver(self, security_registry):
        extractor = FeeBankExtractor(security_registry)
        security = extractor.get_or_create_security({"name": "BASF", "isin": "DE000BASF111"})

        assert security_registry.find(isin="DE000BASF111") is security


class TestExtractorRegistry:
    """Tests for the extractor registry."""

    def test_register_and_get(self, isolated_registry):
        isolated_registry.register("musterbank", FeeBankExtractor)

        assert "MUSTERBANK" in isolated_registry.list_extractors()
        assert isinstance(isolated_registry.get_extractor("MusterBank"), FeeBankExtractor)

    def test_register_rejects_other_classes(self, isolated_registry):
        with pytest.raises(TypeError):
            isolated_registry.register("dict", dict)

    def test_unknown_extractor(self, isolated_registry):
        with pytest.raises(KeyError):
            isolated_registry.get_extractor("NOPE")

    def test_bundled_extractors_registered(self, isolated_registry):
        names = isolated_registry.list_extractors()

        assert "CONSORSBANK" in names
        assert "INGDIBA" in names

    def test_create_all_shares_resolver(self, isolated_registry, security_registry):
        extractors = isolated_registry.create_all(security_registry, names=["consorsbank", "ingdiba"])

        assert len(extractors) == 2
        assert all(e.security_resolver is security_registry for e in extractors)

    def test_unregister(self, isolated_registry):
        isolated_registry.register("MUSTERBANK", FeeBankExtractor)
        isolated_registry.unregister("musterbank")

        assert "MUSTERBANK" not in isolated_registry.list_extractors()


class TestExtractionService:
    """Tests for batch extraction."""

    def test_extract_merges_extractors(self):
        service = ExtractionService([FeeBankExtractor(), ExplodingExtractor()])
        result = service.extract(Document.from_text("a", FEE_NOTICE))

        assert result.counts() == (1, 0, 0)
        assert result.warnings == []

    def test_warning_when_nothing_found(self):
        service = ExtractionService([FeeBankExtractor()])
        result = service.extract(Document.from_text("a", "Kontoauszug"))

        assert result.warnings == ["No transactions found"]

    @pytest.mark.parametrize("workers", [1, 4])
    def test_failing_document_isolated(self, workers):
        service = ExtractionService([ExplodingExtractor(), FeeBankExtractor()])
        documents = [
            Document.from_text("first", FEE_NOTICE),
            Document.from_text("bad", FEE_NOTICE),
            Document.from_text("last", FEE_NOTICE),
        ]

        results = service.extract_all(documents, max_workers=workers)

        assert [r.document_name for r in results] == ["first", "bad", "last"]
        assert results[0].success and results[2].success
        assert not results[1].success
        assert results[1].errors == ["Extraction failed: unexpected"]
        assert len(results[2].transactions) == 1

    def test_from_config_filters_extractors(self, isolated_registry):
        config = ExtractorConfig.from_dict({
            "extraction": {"enabled_extractors": ["ingdiba", "unknown"], "max_workers": 3},
        })

        service = ExtractionService.from_config(config)

        assert [e.get_label() for e in service.extractors] == ["ING-DiBa"]
        assert service.max_workers == 3

    def test_from_config_all_by_default(self, isolated_registry):
        service = ExtractionService.from_config(ExtractorConfig())
        labels = {e.get_label() for e in service.extractors}

        assert {"Consorsbank", "ING-DiBa"} <= labels
