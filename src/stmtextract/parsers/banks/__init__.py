"""
Bank extractors.

Importing this package registers every extractor with ExtractorRegistry.
"""

from stmtextract.parsers.base import ExtractorRegistry
from .consorsbank import ConsorsbankExtractor
from .ingdiba import INGDiBaExtractor

ExtractorRegistry.register("CONSORSBANK", ConsorsbankExtractor)
ExtractorRegistry.register("INGDIBA", INGDiBaExtractor)

__all__ = [
    "ConsorsbankExtractor",
    "INGDiBaExtractor",
]
