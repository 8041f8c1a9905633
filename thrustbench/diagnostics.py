"""
Diagnostics
===========
Non-fatal annotations collected while a file moves through the pipeline.

Warnings are never thrown. Each stage appends Diagnostic records to a
DiagnosticLog, and the log travels back to the caller next to the value
it describes. Domain experts judge data trustworthiness from these
messages, so they are kept verbatim and in first-seen order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional


class DiagnosticCategory(Enum):
    """Where a diagnostic came from."""
    STRUCTURE = "structure"                      # comment/metadata lines, delimiter
    PARSE = "parse"                              # dropped rows, promoted JSON record
    LOW_CONFIDENCE_TYPE = "low_confidence_type"  # type inference below threshold
    METRIC_COMPUTATION = "metric_computation"    # signal engine annotations
    COLUMN_SELECTION = "column_selection"        # auto-selected analysis columns


@dataclass(frozen=True)
class Diagnostic:
    """A single non-fatal message with its category."""
    category: DiagnosticCategory
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {'category': self.category.value, 'message': self.message}

    def __str__(self) -> str:
        return self.message


class DiagnosticLog:
    """
    Ordered, de-duplicated accumulation of diagnostics.

    Two records with the same message are the same warning, whatever
    stage raised them first.
    """

    def __init__(self, diagnostics: Optional[Iterable[Diagnostic]] = None):
        self._items: List[Diagnostic] = []
        self._seen = set()
        if diagnostics:
            self.extend(diagnostics)

    def add(self, category: DiagnosticCategory, message: str) -> None:
        if message in self._seen:
            return
        self._seen.add(message)
        self._items.append(Diagnostic(category, message))

    def add_all(self, category: DiagnosticCategory, messages: Iterable[str]) -> None:
        for message in messages:
            self.add(category, message)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diag in diagnostics:
            self.add(diag.category, diag.message)

    def messages(self) -> List[str]:
        return [d.message for d in self._items]

    def by_category(self, category: DiagnosticCategory) -> List[Diagnostic]:
        return [d for d in self._items if d.category == category]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
