"""
Statement extractors - Line-oriented extraction of bank documents.

Architecture:
- LinePattern: Full-line regex with named captures
- SectionPipeline: Ordered required/optional/repeatable sections over a block
- TransactionBuilder: subject -> sections -> wrap rule sets
- Block / DocumentType / DocumentRouter: Region scanning and rule-set routing
- BaseExtractor: Abstract base class for bank extractors
- ExtractorRegistry: Plugin registration and discovery
- ExtractionService: Runs the enabled extractors over documents
- DocumentLoader: Text and PDF input
"""

from .pattern import LinePattern
from .context import DocumentContext, ExtractionContext
from .pipeline import Section, AlternativeGroup, SectionMatch, SectionPipeline
from .items import (
    FailureKind,
    ItemSource,
    Item,
    TransactionItem,
    TransferItem,
    NonImportableItem,
    Rejection,
    ExtractionResult,
)
from .builder import (
    BuildState,
    TransactionBuilder,
    TransactionRun,
    wrap_transaction,
    wrap_transfer,
    require_date,
    non_zero_or_skip,
)
from .document import Document, Block, DocumentType, DocumentRouter
from .base import BaseExtractor, ExtractorRegistry
from .service import ExtractionService
from .loader import DocumentLoader, PDF_SUPPORT_AVAILABLE

__all__ = [
    # Matching
    "LinePattern",
    "DocumentContext",
    "ExtractionContext",
    "Section",
    "AlternativeGroup",
    "SectionMatch",
    "SectionPipeline",
    # Items
    "FailureKind",
    "ItemSource",
    "Item",
    "TransactionItem",
    "TransferItem",
    "NonImportableItem",
    "Rejection",
    "ExtractionResult",
    # Builder
    "BuildState",
    "TransactionBuilder",
    "TransactionRun",
    "wrap_transaction",
    "wrap_transfer",
    "require_date",
    "non_zero_or_skip",
    # Documents
    "Document",
    "Block",
    "DocumentType",
    "DocumentRouter",
    # Extractors
    "BaseExtractor",
    "ExtractorRegistry",
    "ExtractionService",
    "DocumentLoader",
    "PDF_SUPPORT_AVAILABLE",
]
