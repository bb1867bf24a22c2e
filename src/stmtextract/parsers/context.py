"""Extraction context.

Two scopes of field bindings:

- DocumentContext: created fresh for every document a rule set activates on,
  seeded by the rule set's pre-scan and shared by all of its block runs
  (e.g. a joint-account flag or an exchange rate printed once per document)
- ExtractionContext: captured fields of one block run, layered over the
  document context so lookups fall through to document-level values

Repetitions of a repeatable section run in a child scope, so their captures
never leak into the next repetition or into later sections.
"""

from collections import ChainMap
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Mapping, Optional


class DocumentContext(dict):
    """Field name → string mapping that lives for one document."""

    def set_flag(self, key: str, value: bool):
        self[key] = "true" if value else "false"

    def flag(self, key: str) -> bool:
        return self.get(key) == "true"

    def put_decimal(self, key: str, value: Decimal):
        self[key] = format(value, "f")

    def get_decimal(self, key: str) -> Optional[Decimal]:
        value = self.get(key)
        if value is None:
            return None
        try:
            return Decimal(value)
        except InvalidOperation:
            return None


class ExtractionContext(ChainMap):
    """
    Field bindings of one block run.

    The first map holds values captured (or assigned by callbacks) during
    the run; the last map is the DocumentContext.
    """

    @classmethod
    def for_block(cls, document: DocumentContext) -> "ExtractionContext":
        return cls({}, document)

    @property
    def document(self) -> DocumentContext:
        return self.maps[-1]

    def bind(self, values: Mapping[str, str]):
        """Bind captured values into the innermost scope."""
        self.maps[0].update(values)

    def unbound(self, attributes: Iterable[str]) -> List[str]:
        """Declared attributes that have no value in any scope."""
        return [name for name in attributes if self.get(name) is None]
