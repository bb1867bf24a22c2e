"""Transaction builder: the subject / section / wrap lifecycle of one block.

A builder is declared once per block when the rule set is constructed:

    block.set(TransactionBuilder()
        .subject(lambda: AccountEntry(type=AccountEntryType.DIVIDENDS))
        .section("currency", "amount")
        .match(r"^BRUTTO (?P<currency>[A-Z]{3}) (?P<amount>[\\d.]+,\\d+)$")
        .assign(lambda t, v: t.update(currency_code=v["currency"],
                                      amount=as_amount(v["amount"])))
        .wrap(require_date(wrap_transaction)))

and evaluated once per block region through a TransactionRun.
"""

import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from stmtextract.core.exceptions import MissingFieldError
from stmtextract.parsers.context import ExtractionContext
from stmtextract.parsers.items import Item, NonImportableItem, TransactionItem, TransferItem
from stmtextract.parsers.pipeline import AlternativeGroup, Section, SectionPipeline

logger = logging.getLogger(__name__)

Wrapper = Callable[[Any], Optional[Item]]


class BuildState(Enum):
    """Lifecycle of a transaction-in-progress."""
    UNINITIALIZED = "uninitialized"
    SUBJECT_CREATED = "subject_created"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


class TransactionBuilder:
    """Declarative description of how one block becomes a transaction."""

    def __init__(self):
        self.pipeline = SectionPipeline()
        self._subject: Optional[Callable[[], Any]] = None
        self._wrap: Optional[Wrapper] = None

    def subject(self, factory: Callable[[], Any]) -> "TransactionBuilder":
        """Set the factory creating a fresh transaction for every block region."""
        self._subject = factory
        return self

    def section(self, *attributes: str) -> Section:
        """Declare the next step; returns the Section for pattern chaining."""
        return self.pipeline.add(Section(attributes, owner=self))

    def one_of(self, *alternatives: Callable[[Section], Any], optional: bool = False) -> "TransactionBuilder":
        """
        Declare an alternative group.

        Args:
            alternatives: Functions that configure one member section each,
                e.g. ``lambda s: s.attributes("amount").match(...).assign(...)``
            optional: Skip the group silently when no member matches
        """
        members: List[Section] = []
        for configure in alternatives:
            member = Section()
            configure(member)
            members.append(member)
        self.pipeline.add(AlternativeGroup(members, optional=optional))
        return self

    def optional_one_of(self, *alternatives: Callable[[Section], Any]) -> "TransactionBuilder":
        return self.one_of(*alternatives, optional=True)

    def wrap(self, wrapper: Wrapper) -> "TransactionBuilder":
        """Set the finalization function; it receives only the transaction."""
        self._wrap = wrapper
        return self

    def validate(self):
        """Fail early on incomplete declarations."""
        if self._subject is None:
            raise ValueError("TransactionBuilder has no subject factory")
        if self._wrap is None:
            raise ValueError("TransactionBuilder has no wrap function")
        self.pipeline.validate()

    def new_run(self, lines: Sequence[str], start: int, end: int, context: ExtractionContext) -> "TransactionRun":
        return TransactionRun(self, lines, start, end, context)

    def parse(self, lines: Sequence[str], start: int, end: int, context: ExtractionContext) -> Optional[Item]:
        """Run the pipeline over lines[start:end] and finalize."""
        return self.new_run(lines, start, end, context).execute()


class TransactionRun:
    """
    One evaluation of a TransactionBuilder over one block region.

    Holds the transaction-in-progress; ``finalize`` caches its result so the
    wrap function runs at most once.
    """

    def __init__(self, builder: TransactionBuilder, lines: Sequence[str], start: int, end: int,
                 context: ExtractionContext):
        self.builder = builder
        self.lines = lines
        self.start = start
        self.end = end
        self.context = context
        self.state = BuildState.UNINITIALIZED
        self.subject = None
        self._result: Optional[Item] = None

    def create_subject(self):
        if self.state != BuildState.UNINITIALIZED:
            raise RuntimeError(f"Subject already created (state {self.state.value})")
        self.subject = self.builder._subject()
        self.state = BuildState.SUBJECT_CREATED
        return self.subject

    def accumulate(self) -> int:
        if self.state != BuildState.SUBJECT_CREATED:
            raise RuntimeError(f"Cannot accumulate in state {self.state.value}")
        self.state = BuildState.ACCUMULATING
        return self.builder.pipeline.run(self.lines, self.start, self.end, self.subject, self.context)

    def finalize(self) -> Optional[Item]:
        """
        Wrap the accumulated transaction.

        Returns:
            The item produced by the wrap function, or None

        Raises:
            MissingFieldError: If the wrap function finds a required field absent
            CurrencyArithmeticError: If a unit is not in the transaction currency
        """
        if self.state == BuildState.FINALIZED:
            return self._result
        if self.state != BuildState.ACCUMULATING:
            raise RuntimeError(f"Cannot finalize in state {self.state.value}")

        result = self.builder._wrap(self.subject)
        if isinstance(result, (TransactionItem, TransferItem)):
            result.transaction.check_units()

        self._result = result
        self.state = BuildState.FINALIZED
        return result

    def execute(self) -> Optional[Item]:
        self.create_subject()
        self.accumulate()
        return self.finalize()


# =============================================================================
# Wrap policies
# =============================================================================

def wrap_transaction(entry) -> TransactionItem:
    return TransactionItem(entry)


def wrap_transfer(entry) -> TransferItem:
    return TransferItem(entry)


def require_date(wrapper: Wrapper) -> Wrapper:
    """Reject transactions without a date before handing them to ``wrapper``."""

    def wrapped(subject):
        if subject.date_time is None:
            raise MissingFieldError("date_time", "Missing date")
        return wrapper(subject)

    return wrapped


def non_zero_or_skip(wrapper: Wrapper, reason: str = "Amount is zero") -> Wrapper:
    """Mark zero-amount transactions as not importable instead of wrapping them."""

    def wrapped(subject):
        if subject.amount == 0:
            return NonImportableItem(reason, subject)
        return wrapper(subject)

    return wrapped
