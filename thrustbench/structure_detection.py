"""
Delimiter & Structure Detection
===============================
Cleans raw sensor-export text before structured parsing.

DAQ exports rarely start with a clean header row. They carry operator
notes, units blocks and software banners. This module:
1. Strips empty lines and comment/metadata lines (#, //, *)
2. Scores candidate delimiters over the first non-empty lines and picks
   the most frequent AND most consistent one

Pure functions of their input text; the only side channel is the list of
returned warnings.
"""

import re
from typing import Dict, List, Tuple

import numpy as np

COMMENT_PREFIXES = ('#', '//', '*')

# Sentinel for "two or more consecutive spaces" (space-aligned exports)
MULTI_SPACE = '  '

DELIMITER_CANDIDATES = (',', ';', '\t', '|', MULTI_SPACE)

DELIMITER_NAMES: Dict[str, str] = {
    ',': 'comma',
    ';': 'semicolon',
    '\t': 'tab',
    '|': 'pipe',
    MULTI_SPACE: 'multi-space',
}

SAMPLE_LINES = 10

_MULTI_SPACE_RE = re.compile(r' {2,}')


def preprocess_content(content: str) -> Tuple[str, List[str]]:
    """
    Drop empty and comment lines.

    Kept lines lose surrounding spaces and carriage returns; tabs are kept
    so a leading empty TSV field survives.

    Returns:
        (cleaned text, warnings) - one warning per skipped comment line
    """
    warnings: List[str] = []
    kept: List[str] = []

    for raw_line in content.split('\n'):
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith(COMMENT_PREFIXES):
            warnings.append(f"Skipped comment line: {line[:50]}...")
            continue

        kept.append(raw_line.strip(' \r'))

    return '\n'.join(kept), warnings


def count_delimiter(line: str, delimiter: str) -> int:
    """Occurrences of a delimiter candidate in one line."""
    if delimiter == MULTI_SPACE:
        return len(_MULTI_SPACE_RE.findall(line))
    return line.count(delimiter)


def score_delimiter(lines: List[str], delimiter: str) -> float:
    """
    Score = mean count x consistency x (1.2 if mean >= 2).

    Consistency is 1 - variance / max_count^2, so a delimiter that shows up
    the same number of times on every line scores its full mean. Means
    below 1 score zero.
    """
    if not lines:
        return 0.0

    counts = np.array([count_delimiter(line, delimiter) for line in lines], dtype=float)
    mean_count = float(counts.mean())
    max_count = float(counts.max())

    if mean_count < 1:
        return 0.0

    variance = float(np.mean((counts - mean_count) ** 2))
    consistency = 1 - variance / (max_count * max_count) if max_count > 0 else 0.0
    bonus = 1.2 if mean_count >= 2 else 1.0

    return mean_count * consistency * bonus


def detect_delimiter(sample: str) -> str:
    """
    Pick the field delimiter for a block of text.

    Samples the first 10 non-empty lines. Ties and all-zero scores resolve
    in candidate order, so comma wins by default.
    """
    lines = [line for line in sample.split('\n') if line.strip()][:SAMPLE_LINES]
    if not lines:
        return ','

    best = ','
    best_score = 0.0
    for delimiter in DELIMITER_CANDIDATES:
        score = score_delimiter(lines, delimiter)
        if score > best_score:
            best, best_score = delimiter, score

    return best


def delimiter_name(delimiter: str) -> str:
    return DELIMITER_NAMES.get(delimiter, 'custom')
