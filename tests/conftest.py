"""
Shared pytest fixtures for stmtextract tests.

Provides security registries, document helpers and registry isolation.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stmtextract.core.securities import SecurityRegistry
from stmtextract.parsers.base import ExtractorRegistry
from stmtextract.parsers.document import Document


@pytest.fixture
def security_registry():
    """Provide an empty in-memory security registry."""
    return SecurityRegistry()


@pytest.fixture
def make_document():
    """Build a Document from a text block, dropping the common indentation."""
    import textwrap

    def _make(text: str, name: str = "statement.txt") -> Document:
        return Document.from_text(name, textwrap.dedent(text).strip("\n"))

    return _make


@pytest.fixture
def isolated_registry():
    """Snapshot the extractor registry and restore it after the test."""
    import stmtextract.parsers.banks  # noqa: F401

    saved = dict(ExtractorRegistry._extractors)
    yield ExtractorRegistry
    ExtractorRegistry._extractors.clear()
    ExtractorRegistry._extractors.update(saved)
