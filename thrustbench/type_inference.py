"""
Column Type Inference
=====================
Classifies raw column values as number / boolean / timestamp / string
with a confidence score, and normalizes timestamp columns.

Decision order (first satisfied wins):
1. timestamp - >= 70% of non-empty values are date-like
2. boolean   - >= 80% are boolean tokens
3. number    - >= 80% parse as finite numbers
4. string    - confidence = 1 - max(number fraction, timestamp fraction)

Confidence is always the fraction of non-empty values consistent with the
chosen type, so it lies in [0, 1]. An all-empty column is a string with
confidence 0.

Numeric-looking strings are judged as numbers for the timestamp test: a
plain sensor reading like "250" is not a date, but 1700000000 (Unix
seconds between 2000 and 2038) is. Free-form date strings need an
explicit year in 1900..2100; labels like "T1" or relative words like "now"
are never dates, so normalization does not depend on the clock.
"""

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


class ColumnType(Enum):
    """Inferred column type tag."""
    NUMBER = "number"
    STRING = "string"
    TIMESTAMP = "timestamp"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class TypeInferenceResult:
    """Type tag plus the fraction of non-empty values consistent with it."""
    type: ColumnType
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type.value, 'confidence': self.confidence}


BOOLEAN_TOKENS = frozenset({'true', 'false', '1', '0', 'yes', 'no'})

# 2000-01-01 .. 2038-01-19 (exclusive) in Unix seconds
EPOCH_MIN_S = 946684800
EPOCH_MAX_S = 2147483647

TIMESTAMP_PATTERNS = (
    re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}'),  # ISO 8601
    re.compile(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}'),  # SQL datetime
    re.compile(r'^\d{2}/\d{2}/\d{4}'),                    # MM/DD/YYYY
    re.compile(r'^\d{1,2}/\d{1,2}/\d{2,4}'),              # M/D/YY
    re.compile(r'^\d{4}/\d{2}/\d{2}'),                    # YYYY/MM/DD
)

# A free-form date string must carry an explicit year: a 4-digit year or a
# D/M/Y-style triple. Labels such as "T1", "May" or "now" never qualify.
DATE_STRUCTURE = re.compile(r"\d{4}|\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}")

MIN_YEAR = 1900
MAX_YEAR = 2100

BOOLEAN_THRESHOLD = 0.8
TIMESTAMP_THRESHOLD = 0.7
NUMBER_THRESHOLD = 0.8


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ''
    return isinstance(value, float) and math.isnan(value)


def to_number(value: Any) -> Optional[float]:
    """Finite float for numbers and numeric strings, else None. Booleans are not numbers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def is_boolean_like(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    return isinstance(value, str) and value.strip().lower() in BOOLEAN_TOKENS


def is_number_like(value: Any) -> bool:
    return to_number(value) is not None


def parse_datetime(text: str) -> Optional[pd.Timestamp]:
    """
    Parse a date string to a UTC timestamp; naive strings are taken as UTC.

    Only strings with an explicit year in [MIN_YEAR, MAX_YEAR] are read, so
    the result never depends on the current date.
    """
    if not DATE_STRUCTURE.search(text):
        return None
    try:
        ts = pd.to_datetime(text, format='mixed', errors='coerce', utc=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    if not MIN_YEAR <= ts.year <= MAX_YEAR:
        return None
    return ts


def _epoch_to_timestamp(seconds: float) -> Optional[pd.Timestamp]:
    try:
        return pd.to_datetime(seconds, unit='s', utc=True)
    except (ValueError, OverflowError, pd.errors.OutOfBoundsDatetime):
        return None


def is_timestamp_like(value: Any) -> bool:
    """Date pattern match, parseable date string, or Unix seconds in range."""
    if isinstance(value, bool):
        return False

    number = to_number(value)
    if number is not None:
        return EPOCH_MIN_S < number < EPOCH_MAX_S

    if not isinstance(value, str):
        return False

    text = value.strip()
    if any(pattern.match(text) for pattern in TIMESTAMP_PATTERNS):
        return True
    return parse_datetime(text) is not None


def infer_column_type(values: Sequence[Any]) -> TypeInferenceResult:
    """
    Classify one column.

    Args:
        values: Raw column values (None / '' count as empty)

    Returns:
        TypeInferenceResult with confidence in [0, 1]
    """
    non_empty = [v for v in values if not is_empty(v)]
    if not non_empty:
        return TypeInferenceResult(ColumnType.STRING, 0.0)

    n = len(non_empty)
    timestamp_fraction = sum(1 for v in non_empty if is_timestamp_like(v)) / n
    if timestamp_fraction >= TIMESTAMP_THRESHOLD:
        return TypeInferenceResult(ColumnType.TIMESTAMP, timestamp_fraction)

    boolean_fraction = sum(1 for v in non_empty if is_boolean_like(v)) / n
    if boolean_fraction >= BOOLEAN_THRESHOLD:
        return TypeInferenceResult(ColumnType.BOOLEAN, boolean_fraction)

    number_fraction = sum(1 for v in non_empty if is_number_like(v)) / n
    if number_fraction >= NUMBER_THRESHOLD:
        return TypeInferenceResult(ColumnType.NUMBER, number_fraction)

    return TypeInferenceResult(
        ColumnType.STRING, 1 - max(number_fraction, timestamp_fraction)
    )


def format_timestamp(ts: pd.Timestamp) -> str:
    """Canonical ISO-8601 UTC form, millisecond precision: 2024-05-01T12:00:00.000Z"""
    return (
        f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}T"
        f"{ts.hour:02d}:{ts.minute:02d}:{ts.second:02d}.{ts.microsecond // 1000:03d}Z"
    )


def normalize_timestamp(value: Any) -> Optional[str]:
    """
    Map a raw value to canonical ISO-8601, or None when it cannot be read.

    Numbers (and numeric strings) are Unix epoch seconds.
    """
    if is_empty(value) or isinstance(value, bool):
        return None

    number = to_number(value)
    if number is not None:
        ts = _epoch_to_timestamp(number)
    elif isinstance(value, str):
        ts = parse_datetime(value.strip())
    else:
        return None

    return format_timestamp(ts) if ts is not None else None


def timestamp_to_seconds(value: Any) -> Optional[float]:
    """
    Numeric time in seconds for any time-like cell.

    Numbers pass through unchanged; date strings become Unix seconds.
    """
    number = to_number(value)
    if number is not None:
        return number
    if not isinstance(value, str) or not value.strip():
        return None
    ts = parse_datetime(value.strip())
    if ts is None:
        return None
    return ts.value / 1e9


def infer_dataset_types(
    headers: Sequence[str],
    rows: Sequence[Dict[str, Any]],
    low_confidence_threshold: float = 0.5,
) -> Tuple[Dict[str, TypeInferenceResult], List[str]]:
    """
    Infer every column of a parsed table.

    Returns:
        (results by header, low-confidence warnings)
    """
    results: Dict[str, TypeInferenceResult] = {}
    low_confidence: List[str] = []

    for header in headers:
        result = infer_column_type([row.get(header) for row in rows])
        results[header] = result

        if result.confidence < low_confidence_threshold:
            low_confidence.append(
                f"Low confidence ({result.confidence * 100:.1f}%) for type inference of column '{header}'"
            )

    logger.debug(
        "Inferred column types: %s",
        {h: f"{r.type.value} ({r.confidence:.2f})" for h, r in results.items()},
    )
    return results, low_confidence


def normalize_timestamp_columns(
    headers: Sequence[str],
    rows: Sequence[Dict[str, Any]],
    types: Dict[str, ColumnType],
) -> List[Dict[str, Any]]:
    """
    Copy rows with timestamp columns rewritten in canonical form.

    Values that cannot be read as dates keep their raw form.
    """
    ts_headers = [h for h in headers if types.get(h) == ColumnType.TIMESTAMP]
    if not ts_headers:
        return [dict(row) for row in rows]

    normalized = []
    for row in rows:
        new_row = dict(row)
        for header in ts_headers:
            iso = normalize_timestamp(new_row.get(header))
            if iso is not None:
                new_row[header] = iso
        normalized.append(new_row)
    return normalized
