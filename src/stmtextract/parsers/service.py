"""
Extraction service.

Runs every configured extractor over a batch of documents. Each document is
isolated: an unexpected failure is logged and recorded in that document's
result, and the rest of the batch carries on.

Usage:
    service = ExtractionService.from_config(ExtractorConfig.load(path))
    for result in service.extract_all(documents, max_workers=4):
        print(result.document_name, result.counts())
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Sequence

from stmtextract.core.config import ExtractorConfig
from stmtextract.core.securities import SecurityRegistry, SecurityResolver
from stmtextract.parsers.base import BaseExtractor, ExtractorRegistry
from stmtextract.parsers.document import Document
from stmtextract.parsers.items import ExtractionResult

logger = logging.getLogger(__name__)


class ExtractionService:
    """Batch front end over a set of extractors."""

    def __init__(self, extractors: Sequence[BaseExtractor], max_workers: int = 1):
        self.extractors = list(extractors)
        self.max_workers = max(1, max_workers)

    @classmethod
    def from_config(cls, config: ExtractorConfig,
                    security_resolver: SecurityResolver = None) -> "ExtractionService":
        """
        Build a service from configuration.

        Unknown extractor names in ``extraction.enabled_extractors`` are
        logged and ignored.
        """
        # Importing the package registers the bundled extractors
        import stmtextract.parsers.banks  # noqa: F401

        available = ExtractorRegistry.list_extractors()
        names = [name for name in available if config.extraction.is_enabled(name)]
        for name in config.extraction.enabled_extractors:
            if name.upper() not in available:
                logger.warning(f"Unknown extractor in configuration: {name}")

        resolver = security_resolver or SecurityRegistry()
        extractors = [ExtractorRegistry.get_extractor(name, resolver) for name in names]
        logger.info(f"Extraction service with {len(extractors)} extractor(s): {names}")
        return cls(extractors, max_workers=config.extraction.max_workers)

    def extract(self, document: Document) -> ExtractionResult:
        """Run every extractor over one document."""
        result = ExtractionResult(document_name=document.name)

        for extractor in self.extractors:
            result.merge(extractor.extract(document))

        if not result.items:
            result.add_warning("No transactions found")

        transactions, skipped, rejected = result.counts()
        logger.info(f"{document.name}: {transactions} transaction(s), "
                    f"{skipped} not importable, {rejected} rejected")
        return result

    def _safe_extract(self, document: Document) -> ExtractionResult:
        try:
            return self.extract(document)
        except Exception as e:
            logger.exception(f"Extraction of {document.name} failed")
            result = ExtractionResult(document_name=document.name)
            result.add_error(f"Extraction failed: {e}")
            return result

    def extract_all(self, documents: Sequence[Document], max_workers: int = None) -> List[ExtractionResult]:
        """
        Extract a batch of documents.

        Args:
            documents: Documents to extract
            max_workers: Worker threads; defaults to the service setting

        Returns:
            One result per document, in input order
        """
        documents = list(documents)
        workers = max(1, max_workers or self.max_workers)

        if workers == 1 or len(documents) <= 1:
            return [self._safe_extract(document) for document in documents]

        results_map: Dict[int, ExtractionResult] = {}
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self._safe_extract, document): index
                       for index, document in enumerate(documents)}
            for future in as_completed(futures):
                results_map[futures[future]] = future.result()

        return [results_map[index] for index in range(len(documents))]
