"""Base extractor infrastructure with plugin registration.

This module provides:
1. BaseExtractor - Abstract base class for per-institution extractors
2. ExtractorRegistry - Plugin registration and discovery
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple, Type

from stmtextract.core.models import Security
from stmtextract.core.securities import SecurityRegistry, SecurityResolver
from stmtextract.parsers import converters
from stmtextract.parsers.document import Document, DocumentRouter, DocumentType
from stmtextract.parsers.items import ExtractionResult

logger = logging.getLogger(__name__)


# =============================================================================
# Base Extractor Interface
# =============================================================================

class BaseExtractor(ABC):
    """
    Abstract base class for institution extractors.

    Subclasses register their bank identifiers and document types in
    ``__init__``. Document types are built once and only read afterwards, so
    one extractor instance may serve several worker threads.

    Example:
        class MyBankExtractor(BaseExtractor):
            def __init__(self, security_resolver=None):
                super().__init__(security_resolver)
                self.add_bank_identifier("My Bank AG")
                self.add_dividend()

            def get_label(self) -> str:
                return "My Bank"
    """

    def __init__(self, security_resolver: SecurityResolver = None):
        self.security_resolver = security_resolver or SecurityRegistry()
        self._bank_identifiers: List[str] = []
        self._document_types: List[DocumentType] = []

    @abstractmethod
    def get_label(self) -> str:
        """Human readable name of the institution."""
        pass

    def add_bank_identifier(self, identifier: str):
        self._bank_identifiers.append(identifier)

    @property
    def bank_identifiers(self) -> Tuple[str, ...]:
        return tuple(self._bank_identifiers)

    def add_document_type(self, document_type: DocumentType) -> DocumentType:
        self._document_types.append(document_type)
        return document_type

    @property
    def document_types(self) -> Tuple[DocumentType, ...]:
        return tuple(self._document_types)

    def accepts(self, document: Document) -> bool:
        """Whether any bank identifier occurs in the document (no identifiers accepts all)."""
        if not self._bank_identifiers:
            return True
        text = document.text
        return any(identifier in text for identifier in self._bank_identifiers)

    def extract(self, document: Document) -> ExtractionResult:
        """
        Run every document type of this extractor over a document.

        Args:
            document: Document to extract

        Returns:
            ExtractionResult, empty when the document is not from this institution
        """
        result = ExtractionResult(document_name=document.name)

        if not self.accepts(document):
            logger.debug(f"{self.get_label()}: no bank identifier in {document.name}")
            return result

        router = DocumentRouter(self._document_types, extractor=self.get_label())
        result.extend(router.extract(document))
        return result

    # -------------------------------------------------------------------------
    # Helpers for rule callbacks
    # -------------------------------------------------------------------------

    def get_or_create_security(self, values: Mapping[str, str]) -> Security:
        return self.security_resolver.get_or_create(values)

    @staticmethod
    def as_amount(value: str) -> int:
        return converters.as_amount(value)

    @staticmethod
    def as_shares(value: str) -> Decimal:
        return converters.as_shares(value)

    @staticmethod
    def as_exchange_rate(value: str) -> Decimal:
        return converters.as_exchange_rate(value)

    @staticmethod
    def as_date(value: str, time_value: Optional[str] = None):
        return converters.as_date(value, time_value)

    @staticmethod
    def as_currency_code(value: str) -> str:
        return converters.as_currency_code(value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_label()!r}, {len(self._document_types)} document types)"


# =============================================================================
# Extractor Registry
# =============================================================================

class ExtractorRegistry:
    """
    Registry for extractor plugins.

    Example:
        # Register an extractor
        ExtractorRegistry.register('CONSORSBANK', ConsorsbankExtractor)

        # Get extractor by name
        extractor = ExtractorRegistry.get_extractor('CONSORSBANK')
    """

    _extractors: Dict[str, Type[BaseExtractor]] = {}

    @classmethod
    def register(cls, name: str, extractor_class: Type[BaseExtractor]):
        """
        Register an extractor class.

        Args:
            name: Unique extractor identifier
            extractor_class: Extractor class (must extend BaseExtractor)
        """
        if not issubclass(extractor_class, BaseExtractor):
            raise TypeError(f"{extractor_class.__name__} does not extend BaseExtractor")
        cls._extractors[name.upper()] = extractor_class
        logger.debug(f"Registered extractor: {name}")

    @classmethod
    def unregister(cls, name: str):
        cls._extractors.pop(name.upper(), None)

    @classmethod
    def get_extractor(cls, name: str, security_resolver: SecurityResolver = None) -> BaseExtractor:
        """
        Get extractor instance by name.

        Raises:
            KeyError if extractor not found
        """
        name = name.upper()
        if name not in cls._extractors:
            raise KeyError(f"Unknown extractor: {name}. Available: {list(cls._extractors.keys())}")
        return cls._extractors[name](security_resolver)

    @classmethod
    def create_all(cls, security_resolver: SecurityResolver = None,
                   names: List[str] = None) -> List[BaseExtractor]:
        """Instantiate the named extractors, or every registered one, sharing one resolver."""
        security_resolver = security_resolver or SecurityRegistry()
        selected = [name.upper() for name in names] if names else list(cls._extractors)
        return [cls.get_extractor(name, security_resolver) for name in selected]

    @classmethod
    def list_extractors(cls) -> List[str]:
        return list(cls._extractors.keys())
