"""
Parsed Dataset Model
====================
RawDataset is the parser's output: column names in first-seen order,
rows as header -> scalar mappings, the inferred type of every column and
the warnings gathered while parsing.

Invariant: every row has an entry (possibly None) for every header.

Row values keep their raw form (CSV cells stay strings, JSON scalars stay
native) except timestamp columns, which hold canonical ISO-8601 strings.
Typed access goes through Cell - a tagged value produced only after the
column type is known, so no value is coerced before inference confirms it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd

from .diagnostics import Diagnostic
from .type_inference import (
    ColumnType,
    TypeInferenceResult,
    is_empty,
    normalize_timestamp,
    to_number,
)


class CellKind(Enum):
    NUMBER = "number"
    TEXT = "text"
    BOOL = "bool"
    TIMESTAMP = "timestamp"
    NULL = "null"


_TRUE_TOKENS = frozenset({'true', '1', 'yes'})
_FALSE_TOKENS = frozenset({'false', '0', 'no'})


@dataclass(frozen=True)
class Cell:
    """
    One typed value.

    Attributes:
        kind: Tag of the value
        value: float for NUMBER, bool for BOOL, ISO string for TIMESTAMP,
            str for TEXT, None for NULL
        raw: The value as it was stored in the row
    """
    kind: CellKind
    value: Any
    raw: Any = None

    @property
    def is_null(self) -> bool:
        return self.kind == CellKind.NULL


def _text_cell(raw: Any) -> Cell:
    return Cell(CellKind.TEXT, raw if isinstance(raw, str) else str(raw), raw)


def to_cell(raw: Any, column_type: ColumnType) -> Cell:
    """
    Tag a raw value according to its column's inferred type.

    A value that does not conform to the column type stays TEXT.
    """
    if is_empty(raw):
        return Cell(CellKind.NULL, None, raw)

    if column_type == ColumnType.NUMBER:
        number = to_number(raw)
        return Cell(CellKind.NUMBER, number, raw) if number is not None else _text_cell(raw)

    if column_type == ColumnType.BOOLEAN:
        if isinstance(raw, bool):
            return Cell(CellKind.BOOL, raw, raw)
        if isinstance(raw, str):
            token = raw.strip().lower()
            if token in _TRUE_TOKENS:
                return Cell(CellKind.BOOL, True, raw)
            if token in _FALSE_TOKENS:
                return Cell(CellKind.BOOL, False, raw)
        return _text_cell(raw)

    if column_type == ColumnType.TIMESTAMP:
        iso = normalize_timestamp(raw)
        return Cell(CellKind.TIMESTAMP, iso, raw) if iso is not None else _text_cell(raw)

    return _text_cell(raw)


@dataclass(frozen=True)
class RawDataset:
    """
    Uniform parsed table.

    Attributes:
        headers: Unique column names, first-seen order
        rows: One dict per data row, keyed by every header
        inferred_types: Column type per header
        warnings: Human-readable parse warnings, verbatim
        type_confidence: Inference confidence per header
        file_name: Source file name, if known
        delimiter: Field delimiter used (None for JSON)
        diagnostics: Categorised form of `warnings`
    """
    headers: List[str]
    rows: List[Dict[str, Any]]
    inferred_types: Dict[str, ColumnType]
    warnings: List[str] = field(default_factory=list)
    type_confidence: Dict[str, float] = field(default_factory=dict)
    file_name: Optional[str] = None
    delimiter: Optional[str] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def n_rows(self) -> int:
        return len(self.rows)

    @property
    def n_columns(self) -> int:
        return len(self.headers)

    def type_of(self, header: str) -> Optional[ColumnType]:
        return self.inferred_types.get(header)

    def inference_result(self, header: str) -> TypeInferenceResult:
        return TypeInferenceResult(
            self.inferred_types[header], self.type_confidence.get(header, 0.0)
        )

    def columns_of_type(self, *types: ColumnType) -> List[str]:
        """Headers whose inferred type is one of `types`, in header order."""
        return [h for h in self.headers if self.inferred_types.get(h) in types]

    def column(self, header: str) -> List[Any]:
        if header not in self.headers:
            raise KeyError(f"Column '{header}' not found. Available columns: {self.headers}")
        return [row.get(header) for row in self.rows]

    def cells(self, header: str) -> List[Cell]:
        column_type = self.inferred_types.get(header, ColumnType.STRING)
        return [to_cell(v, column_type) for v in self.column(header)]

    def typed_rows(self) -> List[Dict[str, Cell]]:
        return [
            {h: to_cell(row.get(h), self.inferred_types.get(h, ColumnType.STRING)) for h in self.headers}
            for row in self.rows
        ]

    def to_dataframe(self) -> pd.DataFrame:
        """
        pandas view of the table.

        Number columns become float (non-numeric cells -> NaN), timestamp
        columns UTC datetimes, boolean columns True/False/None objects.
        """
        df = pd.DataFrame(self.rows, columns=self.headers)

        for header in self.headers:
            column_type = self.inferred_types.get(header)
            if column_type == ColumnType.NUMBER:
                df[header] = pd.to_numeric(df[header], errors='coerce')
            elif column_type == ColumnType.TIMESTAMP:
                df[header] = pd.to_datetime(df[header], errors='coerce', utc=True, format='ISO8601')
            elif column_type == ColumnType.BOOLEAN:
                df[header] = [c.value if c.kind == CellKind.BOOL else None for c in self.cells(header)]

        return df

    def summary(self) -> Dict[str, Any]:
        return {
            'file_name': self.file_name,
            'n_rows': self.n_rows,
            'n_columns': self.n_columns,
            'columns': {
                h: {
                    'type': self.inferred_types[h].value,
                    'confidence': self.type_confidence.get(h),
                }
                for h in self.headers
            },
            'n_warnings': len(self.warnings),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'file_name': self.file_name,
            'headers': list(self.headers),
            'rows': [dict(r) for r in self.rows],
            'inferred_types': {h: t.value for h, t in self.inferred_types.items()},
            'warnings': list(self.warnings),
        }
