"""Document loading.

Turns statement files into Documents:
- Plain text (.txt), as produced by an upstream PDF-to-text step
- PDF, converted page by page with pdfplumber
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

try:
    import pdfplumber
    PDF_SUPPORT_AVAILABLE = True
except ImportError:
    PDF_SUPPORT_AVAILABLE = False
    pdfplumber = None

from stmtextract.core.config import ExtractorConfig
from stmtextract.core.exceptions import DocumentLoadError
from stmtextract.parsers.document import Document

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".text"}
PDF_SUFFIXES = {".pdf"}


class DocumentLoader:
    """
    Load text and PDF statements.

    Example:
        loader = DocumentLoader(pdf_password="secret")
        document = loader.load(Path("statements/dividend.pdf"))
    """

    def __init__(self, encoding: str = "utf-8", pdf_password: Optional[str] = None):
        self.encoding = encoding
        self.pdf_password = pdf_password

    @classmethod
    def from_config(cls, config: ExtractorConfig) -> "DocumentLoader":
        return cls(encoding=config.loader.encoding, pdf_password=config.loader.pdf_password)

    @staticmethod
    def is_supported(path: Path) -> bool:
        return Path(path).suffix.lower() in TEXT_SUFFIXES | PDF_SUFFIXES

    def load(self, path: Path) -> Document:
        """
        Load one file.

        Raises:
            DocumentLoadError: If the file is missing, unsupported or unreadable
        """
        path = Path(path)
        if not path.exists():
            raise DocumentLoadError(str(path), "file not found")

        suffix = path.suffix.lower()
        if suffix in TEXT_SUFFIXES:
            text = self._read_text(path)
        elif suffix in PDF_SUFFIXES:
            text = self._read_pdf(path)
        else:
            raise DocumentLoadError(str(path), f"unsupported file type {suffix or '(none)'}")

        document = Document.from_text(path.name, text)
        logger.debug(f"Loaded {path.name}: {len(document)} lines")
        return document

    def _read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentLoadError(str(path), str(e)) from e

    def _read_pdf(self, path: Path) -> str:
        if not PDF_SUPPORT_AVAILABLE:
            raise ImportError(
                "pdfplumber is required for PDF support. "
                "Install it with: pip install pdfplumber"
            )

        try:
            with pdfplumber.open(str(path), password=self.pdf_password or "") as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            raise DocumentLoadError(str(path), str(e)) from e

        return "\n".join(pages)

    def collect(self, paths: Iterable[Path]) -> List[Path]:
        """Expand directories into the supported files they contain, sorted by name."""
        files: List[Path] = []
        for path in paths:
            path = Path(path)
            if path.is_dir():
                files.extend(sorted(p for p in path.rglob("*") if p.is_file() and self.is_supported(p)))
            else:
                files.append(path)
        return files

    def load_all(self, paths: Iterable[Path]) -> Tuple[List[Document], Dict[str, str]]:
        """
        Load several files, skipping the ones that fail.

        Returns:
            Loaded documents and a mapping of failed path to reason
        """
        documents: List[Document] = []
        failures: Dict[str, str] = {}

        for path in self.collect(paths):
            try:
                documents.append(self.load(path))
            except DocumentLoadError as e:
                logger.warning(e.message)
                failures[str(path)] = e.reason

        return documents, failures
