"""
Documents, blocks and document types.

A DocumentType (rule set) is activated by an identifying pattern found
anywhere in the document text. Its blocks locate regions by anchor lines and
run one TransactionBuilder per region. Several document types, even of
different extractors, may activate on the same document.

Example:
    doc_type = DocumentType(r"Dividendengutschrift", name="Dividend")
    block = Block(r"^Dividendengutschrift.*$")
    doc_type.add_block(block)
    block.set(TransactionBuilder().subject(...)...wrap(...))

    items = DocumentRouter([doc_type]).extract(Document.from_text("notice.txt", text))
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from stmtextract.core.exceptions import ExtractionError
from stmtextract.parsers.builder import TransactionBuilder
from stmtextract.parsers.context import DocumentContext, ExtractionContext
from stmtextract.parsers.items import Item, ItemSource, Rejection
from stmtextract.parsers.pattern import LinePattern

logger = logging.getLogger(__name__)

ContextProvider = Callable[[DocumentContext, Sequence[str]], None]


@dataclass(frozen=True)
class Document:
    """A statement as an ordered sequence of text lines."""
    name: str
    lines: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))

    @classmethod
    def from_text(cls, name: str, text: str) -> "Document":
        return cls(name, tuple(text.splitlines()))

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def __len__(self) -> int:
        return len(self.lines)


class Block:
    """
    Repeatable region of a document.

    A region runs from an anchor line to the line before the next anchor
    line, to the end pattern line (inclusive) if one is given and comes
    first, or to the end of the document.
    """

    def __init__(self, anchor: str, end: Optional[str] = None):
        self.anchor = LinePattern(anchor)
        self.end = LinePattern(end) if end else None
        self.builder: Optional[TransactionBuilder] = None

    def set(self, builder: TransactionBuilder) -> TransactionBuilder:
        builder.validate()
        self.builder = builder
        return builder

    def find_regions(self, lines: Sequence[str]) -> List[Tuple[int, int]]:
        """Return (start, end) index pairs; ``end`` is exclusive."""
        starts = [index for index, line in enumerate(lines) if self.anchor.matches(line)]
        regions = []

        for position, start in enumerate(starts):
            limit = starts[position + 1] if position + 1 < len(starts) else len(lines)
            end = limit
            if self.end is not None:
                for index in range(start + 1, limit):
                    if self.end.matches(lines[index]):
                        end = index + 1
                        break
            regions.append((start, end))

        return regions

    def parse(self, lines: Sequence[str], document_context: DocumentContext,
              source: ItemSource = None) -> List[Item]:
        """
        Run the builder once per region.

        A failing region becomes a Rejection; sibling regions still run.
        """
        if self.builder is None:
            raise ValueError(f"Block {self.anchor.regex!r} has no transaction builder")

        source = source or ItemSource()
        items: List[Item] = []

        for start, end in self.find_regions(lines):
            region_source = replace(source, block=self.anchor.regex, line_index=start)
            context = ExtractionContext.for_block(document_context)

            try:
                item = self.builder.parse(lines, start, end, context)
            except ExtractionError as e:
                line_index = getattr(e, "line_index", None)
                rejection = Rejection.from_error(
                    e, replace(region_source, line_index=start if line_index is None else line_index)
                )
                logger.warning(f"Rejected block at line {start}: {rejection}")
                items.append(rejection)
                continue
            except Exception as e:
                logger.exception(f"Unexpected error in block at line {start} ({region_source})")
                items.append(Rejection.from_error(e, region_source))
                continue

            if item is None:
                logger.debug(f"Block at line {start} produced nothing to import")
                continue

            item.source = region_source
            items.append(item)

        return items

    def __repr__(self) -> str:
        return f"Block({self.anchor.regex!r})"


class DocumentType:
    """
    Rule set for one document family.

    Args:
        identifier: Pattern searched anywhere in the document text
        context_provider: Optional pre-scan ``(context, lines) -> None``
            seeding the per-document context
        name: Display name, defaults to the identifier
    """

    def __init__(self, identifier: str, context_provider: ContextProvider = None, name: str = None):
        self.identifier = LinePattern(identifier, re.MULTILINE)
        self.context_provider = context_provider
        self.name = name or identifier
        self._blocks: List[Block] = []

    @property
    def blocks(self) -> Tuple[Block, ...]:
        return tuple(self._blocks)

    def add_block(self, block: Block) -> Block:
        self._blocks.append(block)
        return block

    def matches(self, text: str) -> bool:
        return self.identifier.search(text)

    def new_context(self, lines: Sequence[str]) -> DocumentContext:
        context = DocumentContext()
        if self.context_provider is not None:
            self.context_provider(context, lines)
        return context

    def parse(self, document: Document, extractor: str = None) -> List[Item]:
        """Extract every block from a document this type has activated on."""
        source = ItemSource(extractor=extractor, rule_set=self.name, document=document.name)

        try:
            context = self.new_context(document.lines)
        except ExtractionError as e:
            logger.warning(f"Pre-scan of {self.name!r} failed on {document.name}: {e}")
            return [Rejection.from_error(e, source)]

        items: List[Item] = []
        for block in self._blocks:
            items.extend(block.parse(document.lines, context, source))
        return items

    def __repr__(self) -> str:
        return f"DocumentType({self.name!r})"


class DocumentRouter:
    """Activates every matching document type and aggregates their items."""

    def __init__(self, document_types: Iterable[DocumentType], extractor: str = None):
        self.document_types = list(document_types)
        self.extractor = extractor

    def extract(self, document: Document) -> List[Item]:
        text = document.text
        items: List[Item] = []

        for document_type in self.document_types:
            if not document_type.matches(text):
                continue
            logger.info(f"{self.extractor or 'Router'}: {document_type.name!r} matches {document.name}")
            items.extend(document_type.parse(document, extractor=self.extractor))

        return items
