"""
Unit tests for document loading.
"""

import pytest
from pathlib import Path

from stmtextract.core.config import ExtractorConfig
from stmtextract.core.exceptions import DocumentLoadError
from stmtextract.parsers.loader import DocumentLoader


@pytest.fixture
def loader():
    return DocumentLoader()


class TestDocumentLoader:
    """Tests for DocumentLoader."""

    def test_load_text(self, loader, tmp_path):
        path = tmp_path / "dividende.txt"
        path.write_text("Dividendengutschrift\nValuta 01.03.2024\n", encoding="utf-8")

        document = loader.load(path)

        assert document.name == "dividende.txt"
        assert document.lines == ("Dividendengutschrift", "Valuta 01.03.2024")

    def test_load_with_encoding(self, tmp_path):
        path = tmp_path / "gebuehr.txt"
        path.write_bytes("Gebühr".encode("latin-1"))

        document = DocumentLoader(encoding="latin-1").load(path)

        assert document.lines == ("Gebühr",)

    def test_wrong_encoding_raises(self, loader, tmp_path):
        path = tmp_path / "gebuehr.txt"
        path.write_bytes("Gebühr".encode("latin-1"))

        with pytest.raises(DocumentLoadError):
            loader.load(path)

    def test_missing_file(self, loader, tmp_path):
        with pytest.raises(DocumentLoadError) as exc_info:
            loader.load(tmp_path / "missing.txt")

        assert exc_info.value.code == "LOAD_ERROR"
        assert exc_info.value.reason == "file not found"

    def test_unsupported_type(self, loader, tmp_path):
        path = tmp_path / "statement.csv"
        path.write_text("a,b", encoding="utf-8")

        with pytest.raises(DocumentLoadError):
            loader.load(path)

    def test_is_supported(self):
        assert DocumentLoader.is_supported(Path("a.TXT"))
        assert DocumentLoader.is_supported(Path("a.pdf"))
        assert not DocumentLoader.is_supported(Path("a.xlsx"))

    def test_collect_expands_directories(self, loader, tmp_path):
        (tmp_path / "b.txt").write_text("b", encoding="utf-8")
        (tmp_path / "a.txt").write_text("a", encoding="utf-8")
        (tmp_path / "notes.md").write_text("ignored", encoding="utf-8")

        files = loader.collect([tmp_path])

        assert [f.name for f in files] == ["a.txt", "b.txt"]

    def test_load_all_reports_failures(self, loader, tmp_path):
        good = tmp_path / "good.txt"
        good.write_text("ok", encoding="utf-8")
        missing = tmp_path / "missing.txt"

        documents, failures = loader.load_all([good, missing])

        assert [d.name for d in documents] == ["good.txt"]
        assert failures == {str(missing): "file not found"}

    def test_from_config(self):
        config = ExtractorConfig.from_dict({"loader": {"encoding": "latin-1", "pdf_password": "pw"}})
        loader = DocumentLoader.from_config(config)

        assert loader.encoding == "latin-1"
        assert loader.pdf_password == "pw"
