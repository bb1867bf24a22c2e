"""Line pattern matching.

A LinePattern is compiled once, when the rule set is built, so a malformed
regular expression fails at startup and never in the middle of a document.
Matching is always anchored to one whole line.
"""

import re
from typing import Dict, Optional

from stmtextract.core.exceptions import PatternError


class LinePattern:
    r"""
    Compiled pattern matched against single lines.

    Example:
        pattern = LinePattern(r"^ST (?P<shares>[\d.]+(,\d+)?).*$")
        pattern.match("ST 10 Umsatz")
        # {"shares": "10"}
    """

    __slots__ = ("regex", "_compiled")

    def __init__(self, regex: str, flags: int = 0):
        self.regex = regex
        try:
            self._compiled = re.compile(regex, flags)
        except re.error as e:
            raise PatternError(regex, str(e)) from e

    @property
    def group_names(self):
        return tuple(self._compiled.groupindex)

    def match(self, line: str) -> Optional[Dict[str, str]]:
        """
        Match the whole line.

        Returns:
            None if the line does not match, otherwise a dict of the named
            groups that took part in the match
        """
        m = self._compiled.fullmatch(line)
        if m is None:
            return None
        return {name: value for name, value in m.groupdict().items() if value is not None}

    def matches(self, line: str) -> bool:
        return self._compiled.fullmatch(line) is not None

    def search(self, text: str) -> bool:
        """Whether the pattern occurs anywhere in the text."""
        return self._compiled.search(text) is not None

    def __repr__(self) -> str:
        return f"LinePattern({self.regex!r})"
