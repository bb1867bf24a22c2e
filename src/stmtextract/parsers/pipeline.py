"""Section pipeline.

A pipeline is the ordered list of match steps of one transaction. Steps are
evaluated in declaration order against the lines of a block, with a cursor
that only moves forward:

1. Required section - must match at or after the cursor, else the block run
   fails with MissingSectionError
2. Optional section - may match before the line where the next required
   step matches; a miss is silently skipped
3. Repeatable section - optional, every non-overlapping match within the
   same window triggers the callback in its own scope
4. Alternative group - "one of N" sections, first match in listed order wins

A section's patterns match in order on strictly increasing lines; they need
not be adjacent. There is no backtracking across steps, so a run is linear
in the number of lines per step and deterministic.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from stmtextract.core.exceptions import MissingSectionError
from stmtextract.parsers.context import ExtractionContext
from stmtextract.parsers.pattern import LinePattern

logger = logging.getLogger(__name__)

Assignment = Callable[[Any, ExtractionContext], None]


@dataclass
class SectionMatch:
    """Lines and captured values of one successful section match."""
    first_line: int
    last_line: int
    values: Dict[str, str]


class Section:
    """
    One match-and-assign step.

    Built fluently; ``assign`` returns the owning builder so the next
    section can be declared in the same chain:

        builder.section("shares") \\
               .find("Einheit Umsatz") \\
               .match(r"^ST (?P<shares>[\\d.]+(,\\d+)?).*$") \\
               .assign(lambda t, v: t.update(shares=as_shares(v["shares"])))
    """

    def __init__(self, attributes: Sequence[str] = (), owner=None):
        self.attribute_names: List[str] = list(attributes)
        self.patterns: List[LinePattern] = []
        self.is_optional = False
        self.is_repeatable = False
        self.assignment: Optional[Assignment] = None
        self._owner = owner

    def attributes(self, *names: str) -> "Section":
        self.attribute_names = list(names)
        return self

    def match(self, regex: str) -> "Section":
        self.patterns.append(LinePattern(regex))
        return self

    def find(self, regex: str) -> "Section":
        """Same as match; reads better for header lines that only position the search."""
        return self.match(regex)

    def optional(self) -> "Section":
        self.is_optional = True
        return self

    def multiple_times(self) -> "Section":
        """Allow zero or more matches; a repeatable section is always optional."""
        self.is_optional = True
        self.is_repeatable = True
        return self

    def assign(self, assignment: Assignment):
        self.assignment = assignment
        return self._owner if self._owner is not None else self

    def validate(self):
        if not self.patterns:
            raise ValueError(f"{self!r} declares no patterns")
        if self.assignment is None:
            raise ValueError(f"{self!r} has no assignment")

    def scan(self, lines: Sequence[str], start: int, end: int) -> Optional[SectionMatch]:
        """
        Match the pattern sequence within lines[start:end].

        Each pattern locks onto the first line it matches; the next pattern
        is tried from the following line on.
        """
        values: Dict[str, str] = {}
        pattern_no = 0
        first_line = start

        for index in range(start, end):
            found = self.patterns[pattern_no].match(lines[index])
            if found is None:
                continue
            if pattern_no == 0:
                first_line = index
            values.update(found)
            pattern_no += 1
            if pattern_no == len(self.patterns):
                return SectionMatch(first_line, index, values)

        return None

    def locate(self, lines: Sequence[str], start: int, end: int) -> Optional[int]:
        """First line of the next full match, if any."""
        found = self.scan(lines, start, end)
        return found.first_line if found else None

    def __repr__(self) -> str:
        return f"Section({', '.join(self.attribute_names)})"


class AlternativeGroup:
    """Mutually exclusive sections; the first member that matches wins."""

    is_repeatable = False

    def __init__(self, members: Sequence[Section], optional: bool = False):
        if not members:
            raise ValueError("Alternative group needs at least one member")
        self.members = list(members)
        self.is_optional = optional

    @property
    def attribute_names(self) -> List[str]:
        names: List[str] = []
        for member in self.members:
            names.extend(name for name in member.attribute_names if name not in names)
        return names

    def validate(self):
        for member in self.members:
            member.validate()

    def scan(self, lines: Sequence[str], start: int, end: int) -> Optional[Tuple[Section, SectionMatch]]:
        for member in self.members:
            found = member.scan(lines, start, end)
            if found is not None:
                return member, found
        return None

    def locate(self, lines: Sequence[str], start: int, end: int) -> Optional[int]:
        found = self.scan(lines, start, end)
        return found[1].first_line if found else None

    def __repr__(self) -> str:
        return f"OneOf({' | '.join(repr(member) for member in self.members)})"


class SectionPipeline:
    """Ordered match steps of one transaction."""

    def __init__(self):
        self.steps: List[Any] = []

    def add(self, step):
        self.steps.append(step)
        return step

    def validate(self):
        for step in self.steps:
            step.validate()

    def run(
        self,
        lines: Sequence[str],
        start: int,
        end: int,
        target: Any,
        context: ExtractionContext,
    ) -> int:
        """
        Run every step over lines[start:end].

        Args:
            lines: Document lines
            start: Index of the block anchor line
            end: Index one past the last line of the block
            target: Transaction the assignments mutate
            context: Block-scoped extraction context

        Returns:
            Final cursor position

        Raises:
            MissingSectionError: If a required step does not match
        """
        cursor = start

        for index, step in enumerate(self.steps):
            if isinstance(step, AlternativeGroup):
                cursor = self._run_group(index, step, lines, cursor, end, target, context)
            elif step.is_repeatable:
                cursor = self._run_repeatable(index, step, lines, cursor, end, target, context)
            elif step.is_optional:
                cursor = self._run_optional(index, step, lines, cursor, end, target, context)
            else:
                cursor = self._run_required(step, lines, cursor, end, target, context)

        return cursor

    def _window_end(self, index: int, lines: Sequence[str], cursor: int, end: int) -> int:
        """Line where the next required step would match, bounding optional steps."""
        for step in self.steps[index + 1:]:
            if step.is_optional:
                continue
            position = step.locate(lines, cursor, end)
            return position if position is not None else end
        return end

    def _apply(self, section: Section, found: SectionMatch, target, context: ExtractionContext) -> bool:
        """Bind captures and run the assignment; False if attributes stay unbound."""
        scope = context.new_child(dict(found.values))
        unbound = scope.unbound(section.attribute_names)
        if unbound:
            logger.debug(f"{section!r} matched lines {found.first_line}-{found.last_line} "
                         f"but left {unbound} unbound")
            return False

        context.bind(found.values)
        logger.debug(f"{section!r} matched lines {found.first_line}-{found.last_line}")
        section.assignment(target, context)
        return True

    def _run_required(self, section: Section, lines, cursor, end, target, context) -> int:
        found = section.scan(lines, cursor, end)
        if found is None:
            raise MissingSectionError(
                f"Required {section!r} not found after line {cursor}",
                attributes=section.attribute_names,
                line_index=cursor,
            )

        scope = context.new_child(dict(found.values))
        unbound = scope.unbound(section.attribute_names)
        if unbound:
            raise MissingSectionError(
                f"Required {section!r} matched at line {found.first_line} "
                f"without binding {', '.join(unbound)}",
                attributes=section.attribute_names,
                line_index=found.first_line,
                unbound=unbound,
            )

        self._apply(section, found, target, context)
        return found.last_line + 1

    def _run_optional(self, index, section: Section, lines, cursor, end, target, context) -> int:
        limit = self._window_end(index, lines, cursor, end)
        found = section.scan(lines, cursor, limit)
        if found is None:
            return cursor
        if not self._apply(section, found, target, context):
            return cursor
        return found.last_line + 1

    def _run_repeatable(self, index, section: Section, lines, cursor, end, target, context) -> int:
        limit = self._window_end(index, lines, cursor, end)
        position = cursor
        repetitions = 0

        while position < limit:
            found = section.scan(lines, position, limit)
            if found is None:
                break
            position = found.last_line + 1

            # Each repetition gets its own scope
            scope = context.new_child(dict(found.values))
            unbound = scope.unbound(section.attribute_names)
            if unbound:
                logger.debug(f"{section!r} repetition at line {found.first_line} "
                             f"left {unbound} unbound")
                continue

            section.assignment(target, scope)
            repetitions += 1

        if repetitions:
            logger.debug(f"{section!r} matched {repetitions} time(s)")
            return position
        return cursor

    def _run_group(self, index, group: AlternativeGroup, lines, cursor, end, target, context) -> int:
        limit = self._window_end(index, lines, cursor, end) if group.is_optional else end
        found = group.scan(lines, cursor, limit)

        if found is None:
            if group.is_optional:
                return cursor
            raise MissingSectionError(
                f"None of {group!r} found after line {cursor}",
                attributes=group.attribute_names,
                line_index=cursor,
            )

        member, match = found
        if self._apply(member, match, target, context):
            return match.last_line + 1

        if group.is_optional:
            return cursor
        unbound = context.new_child(dict(match.values)).unbound(member.attribute_names)
        raise MissingSectionError(
            f"{member!r} of {group!r} matched at line {match.first_line} "
            f"without binding {', '.join(unbound)}",
            attributes=member.attribute_names,
            line_index=match.first_line,
            unbound=unbound,
        )
