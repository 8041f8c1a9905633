"""
Column Role Detection
=====================
Maps header names to semantic roles (time, thrust, temperature, pressure)
so analysis columns can be picked without user input.

Matching is case-insensitive substring containment against fixed keyword
tables. Each role is resolved independently: the first header (original
order) containing any of the role's keywords wins that role. Short
keywords such as 't' or 'f' make this deliberately greedy; a role may
resolve to the same header as another role.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from .dataset import RawDataset
from .type_inference import ColumnType

ROLE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    'thrust': ('thrust', 'force', 'f', 'thrust_n', 'thrust_lbs', 'newtons'),
    'time': ('time', 't', 'timestamp', 'datetime', 'time_s', 'seconds', 'ms', 'milliseconds'),
    'temperature': ('temp', 'temperature', 'temp_c', 'temp_f', 'celsius', 'fahrenheit'),
    'pressure': ('pressure', 'press', 'psi', 'bar', 'pa', 'pressure_psi', 'pressure_bar'),
}

ROLES = tuple(ROLE_KEYWORDS)


def detect_common_columns(headers: Sequence[str]) -> Dict[str, str]:
    """
    Resolve roles for a header list.

    Returns:
        role -> header for every role that matched; unmatched roles are absent
    """
    lower_headers = [h.lower() for h in headers]
    detected: Dict[str, str] = {}

    for role, keywords in ROLE_KEYWORDS.items():
        for header, lower in zip(headers, lower_headers):
            if any(keyword in lower for keyword in keywords):
                detected[role] = header
                break

    return detected


def fallback_columns(dataset: RawDataset) -> Tuple[Optional[str], Optional[str]]:
    """
    Heuristic (time, value) pair when role detection cannot supply both.

    Time is the first timestamp- or number-typed column; value is the first
    number-typed column that is not the time column.
    """
    time_candidates: List[str] = dataset.columns_of_type(ColumnType.TIMESTAMP, ColumnType.NUMBER)
    if not time_candidates:
        return None, None

    time_col = time_candidates[0]
    value_col = next(
        (h for h in dataset.columns_of_type(ColumnType.NUMBER) if h != time_col), None
    )
    return time_col, value_col
