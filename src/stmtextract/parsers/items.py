"""
Extraction result items.

Every block run ends in exactly one of:

- TransactionItem: a finalized account entry (dividend, interest, taxes, ...)
- TransferItem: a finalized buy or sell
- NonImportableItem: the document legitimately carries no transaction
- Rejection: the run failed; ``kind`` tells which way

or in nothing at all, when the wrap step decides there is nothing to import.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from stmtextract.core.exceptions import ExtractionError
from stmtextract.core.models import AccountEntry, TransferEntry


class FailureKind(Enum):
    """Machine-distinguishable reason a block run was rejected."""
    MISSING_SECTION = "MISSING_SECTION"
    MISSING_FIELD = "MISSING_FIELD"
    INCONSISTENT_CURRENCY = "INCONSISTENT_CURRENCY"
    INVALID_VALUE = "INVALID_VALUE"
    # pattern, load and unexpected errors raised while running a block
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @classmethod
    def from_error(cls, error: Exception) -> "FailureKind":
        try:
            return cls(getattr(error, "code", None))
        except ValueError:
            return cls.INTERNAL_ERROR


@dataclass
class ItemSource:
    """Where an item came from, for diagnostics."""
    extractor: Optional[str] = None
    rule_set: Optional[str] = None
    block: Optional[str] = None
    line_index: Optional[int] = None
    document: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.extractor or "-", self.rule_set or "-"]
        if self.block:
            parts.append(f"block {self.block!r}")
        if self.line_index is not None:
            parts.append(f"line {self.line_index}")
        return " / ".join(parts)


class Item:
    """Base class of everything a block run can produce."""

    source: ItemSource

    @property
    def is_importable(self) -> bool:
        return False

    @property
    def transaction(self):
        return None


@dataclass
class TransactionItem(Item):
    """Finalized account entry."""

    entry: AccountEntry
    source: ItemSource = field(default_factory=ItemSource)

    @property
    def is_importable(self) -> bool:
        return True

    @property
    def transaction(self) -> AccountEntry:
        return self.entry


@dataclass
class TransferItem(Item):
    """Finalized buy or sell."""

    entry: TransferEntry
    source: ItemSource = field(default_factory=ItemSource)

    @property
    def is_importable(self) -> bool:
        return True

    @property
    def transaction(self) -> TransferEntry:
        return self.entry


@dataclass
class NonImportableItem(Item):
    """A document that legitimately carries no transaction, with the reason."""

    reason: str
    subject: Any = None
    source: ItemSource = field(default_factory=ItemSource)

    @property
    def transaction(self):
        return self.subject


@dataclass
class Rejection(Item):
    """Structured failure of one block run."""

    kind: FailureKind
    message: str
    source: ItemSource = field(default_factory=ItemSource)

    @classmethod
    def from_error(cls, error: Exception, source: ItemSource = None) -> "Rejection":
        if isinstance(error, ExtractionError):
            message = error.message
        else:
            message = f"{type(error).__name__}: {error}"
        return cls(FailureKind.from_error(error), message, source or ItemSource())

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message} ({self.source})"


@dataclass
class ExtractionResult:
    """
    Result of extracting one document.

    Attributes:
        document_name: Name of the source document
        items: Produced items in production order
        errors: Document-level failures (the document could not be processed)
        warnings: Non-fatal notices
    """
    document_name: str = ""
    items: List[Item] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    success: bool = True

    def add_error(self, error: str):
        self.errors.append(error)
        self.success = False

    def add_warning(self, warning: str):
        self.warnings.append(warning)

    def extend(self, items: Sequence[Item]):
        self.items.extend(items)

    def merge(self, other: "ExtractionResult"):
        """Append another result for the same document."""
        self.items.extend(other.items)
        self.warnings.extend(other.warnings)
        for error in other.errors:
            self.add_error(error)

    @property
    def transactions(self) -> List[Item]:
        return [item for item in self.items if item.is_importable]

    @property
    def rejections(self) -> List[Rejection]:
        return [item for item in self.items if isinstance(item, Rejection)]

    @property
    def non_importable(self) -> List[NonImportableItem]:
        return [item for item in self.items if isinstance(item, NonImportableItem)]

    def counts(self) -> Tuple[int, int, int]:
        """(transactions, non-importable, rejections)"""
        return len(self.transactions), len(self.non_importable), len(self.rejections)
