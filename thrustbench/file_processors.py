"""
File Processors
===============
Turns uploaded sensor exports (CSV, TSV, JSON) into a RawDataset.

Pipeline per file:
    raw bytes -> text -> [structure detection] -> rows -> type inference
              -> timestamp normalization -> RawDataset

Two entry points:
- parse_file():   raises UnsupportedFormatError / ParseError / ValidationError
- process_file(): never raises for malformed input; returns a
                  ProcessingResult carrying either the dataset or the error

Usage:
    from thrustbench.file_processors import process_file

    result = process_file('run_07.csv', open('run_07.csv', 'rb').read())
    if result.success:
        print(result.data.headers, result.data.warnings)
    else:
        print(result.error)
"""

import csv
import io
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd
from pydantic import StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .config import TypeInferenceOptions
from .dataset import RawDataset
from .diagnostics import DiagnosticCategory, DiagnosticLog
from .errors import ParseError, ThrustBenchError, UnsupportedFormatError, ValidationError
from .structure_detection import MULTI_SPACE, delimiter_name, detect_delimiter, preprocess_content
from .type_inference import infer_dataset_types, is_empty, normalize_timestamp_columns

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.csv', '.tsv', '.json')

Scalar = Union[StrictBool, StrictInt, StrictFloat, StrictStr, None]

_RECORD_ARRAY = TypeAdapter(List[Dict[str, Scalar]])
_SINGLE_RECORD = TypeAdapter(Dict[str, Union[Scalar, List[Any]]])


@dataclass
class ProcessingResult:
    """Outcome of processing one file: a dataset or an error message."""
    success: bool
    data: Optional[RawDataset] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


# =============================================================================
# HELPERS
# =============================================================================

def extension_of(file_name: str) -> str:
    """Lower-cased last suffix including the dot ('' when absent)."""
    return Path(file_name).suffix.lower()


def decode_content(content: Union[bytes, str]) -> str:
    """UTF-8 text; a BOM is dropped and undecodable bytes replaced."""
    if isinstance(content, bytes):
        return content.decode('utf-8-sig', errors='replace')
    return content.lstrip('\ufeff')


def _unique_headers(raw_headers: Sequence[Any]) -> List[str]:
    """Trim header names, name blanks, and suffix duplicates (.1, .2, ...)."""
    headers: List[str] = []
    seen = set()
    for i, raw in enumerate(raw_headers):
        name = raw.strip() if isinstance(raw, str) else ''
        if not name:
            name = f"Unnamed: {i}"
        candidate = name
        suffix = 1
        while candidate in seen:
            candidate = f"{name}.{suffix}"
            suffix += 1
        seen.add(candidate)
        headers.append(candidate)
    return headers


def _is_blank(value: Any) -> bool:
    return is_empty(value) or (isinstance(value, str) and not value.strip())


def _build_dataset(
    headers: List[str],
    rows: List[Dict[str, Any]],
    log: DiagnosticLog,
    options: TypeInferenceOptions,
    file_name: Optional[str],
    delimiter: Optional[str],
) -> RawDataset:
    """Type inference + timestamp normalization shared by all formats."""
    results, low_confidence = infer_dataset_types(
        headers, rows, options.low_confidence_threshold
    )
    log.add_all(DiagnosticCategory.LOW_CONFIDENCE_TYPE, low_confidence)

    types = {h: r.type for h, r in results.items()}
    normalized_rows = normalize_timestamp_columns(headers, rows, types)

    return RawDataset(
        headers=headers,
        rows=normalized_rows,
        inferred_types=types,
        warnings=log.messages(),
        type_confidence={h: r.confidence for h, r in results.items()},
        file_name=file_name,
        delimiter=delimiter,
        diagnostics=list(log),
    )


# =============================================================================
# CSV / TSV
# =============================================================================

# Two or more spaces outside a double-quoted field
_MULTI_SPACE_SPLIT = re.compile(r' {2,}(?=(?:[^"]*"[^"]*")*[^"]*$)')


def _multi_space_to_tabs(text: str) -> str:
    """Re-delimit space-aligned text with tabs, leaving quoted fields intact."""
    return '\n'.join('\t'.join(_MULTI_SPACE_SPLIT.split(line)) for line in text.split('\n'))


def _read_table(text: str, delimiter: str) -> pd.DataFrame:
    """
    Tokenize delimited text with the header row treated as data.

    Reading with header=None lets the header row fix the field count:
    longer rows are a parser error, shorter rows come back NaN-padded.
    Explicitly empty fields stay ''.
    """
    if delimiter == MULTI_SPACE:
        text, delimiter = _multi_space_to_tabs(text), '\t'
    return pd.read_csv(
        io.StringIO(text),
        sep=delimiter,
        engine='c',
        header=None,
        dtype=str,
        keep_default_na=False,
        na_filter=True,
        skip_blank_lines=True,
        quotechar='"',
        doublequote=True,
    )


def parse_csv_tsv(
    content: Union[bytes, str],
    file_name: Optional[str] = None,
    options: Optional[TypeInferenceOptions] = None,
    force_tab: bool = False,
) -> RawDataset:
    """
    Parse delimited text into a RawDataset.

    Args:
        content: Raw file content
        file_name: Source name (a .tsv name forces tab delimiter)
        options: Type inference options
        force_tab: Skip delimiter detection and use tab

    Raises:
        ParseError: Malformed quoting, mixed delimiters, or no data at all
    """
    options = options or TypeInferenceOptions()
    log = DiagnosticLog()

    text, skipped = preprocess_content(decode_content(content))
    log.add_all(DiagnosticCategory.STRUCTURE, skipped)
    if skipped:
        logger.debug(f"{file_name}: skipped {len(skipped)} comment/metadata lines")

    if not text.strip():
        raise ParseError("Failed to parse CSV/TSV: no tabular data found after removing comment and empty lines")

    is_tab = force_tab or (file_name is not None and extension_of(file_name) == '.tsv')
    delimiter = '\t' if is_tab else detect_delimiter(text)
    logger.debug(f"{file_name}: using {delimiter_name(delimiter)} delimiter")

    try:
        table = _read_table(text, delimiter)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, csv.Error) as e:
        raise ParseError(
            f"Failed to parse CSV/TSV: {e}. "
            f"Try checking for mixed delimiters, quoted strings, or malformed rows."
        ) from e

    if table.empty:
        raise ParseError("Failed to parse CSV/TSV: no header row found")

    raw_rows = list(table.itertuples(index=False, name=None))
    headers = _unique_headers(raw_rows[0])

    rows: List[Dict[str, Any]] = []
    n_dropped = 0
    for record in raw_rows[1:]:
        values = [v if isinstance(v, str) else None for v in record]
        if all(_is_blank(v) for v in values):
            n_dropped += 1
            continue
        rows.append({h: (values[i] if i < len(values) else None) for i, h in enumerate(headers)})

    if delimiter != ',':
        log.add(DiagnosticCategory.STRUCTURE, f"Detected {delimiter_name(delimiter)} delimiter")
    if n_dropped:
        log.add(DiagnosticCategory.PARSE, f"Removed {n_dropped} empty rows")

    return _build_dataset(headers, rows, log, options, file_name, delimiter)


# =============================================================================
# JSON
# =============================================================================

def _describe_validation_error(exc: PydanticValidationError, limit: int = 3) -> str:
    errors = exc.errors()
    parts = []
    for err in errors[:limit]:
        location = ''.join(
            f"[{p}]" if isinstance(p, int) else f".{p}" for p in err.get('loc', ())
        ) or '(root)'
        parts.append(f"{location}: {err.get('msg')}")
    more = f" (+{len(errors) - limit} more)" if len(errors) > limit else ''
    return '; '.join(parts) + more


def _validate_json_shape(data: Any) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Check the array-of-flat-records / single-flat-record contract.

    Returns:
        (records, promoted) - promoted is True for a single record

    Raises:
        ValidationError: Any other shape
    """
    if isinstance(data, list):
        try:
            _RECORD_ARRAY.validate_python(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid JSON structure: {_describe_validation_error(e)}") from e
        return data, False

    if isinstance(data, dict):
        try:
            _SINGLE_RECORD.validate_python(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid JSON structure: {_describe_validation_error(e)}") from e
        return [data], True

    raise ValidationError("JSON must be an object or array of objects")


def parse_json(
    content: Union[bytes, str],
    file_name: Optional[str] = None,
    options: Optional[TypeInferenceOptions] = None,
) -> RawDataset:
    """
    Parse a JSON export into a RawDataset.

    Headers are the keys of the first record. Later records are projected
    onto those keys; missing keys become None.

    Raises:
        ParseError: Invalid JSON syntax
        ValidationError: Valid JSON with an unsupported shape
    """
    options = options or TypeInferenceOptions()
    log = DiagnosticLog()

    try:
        data = json.loads(decode_content(content))
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse JSON: {e}") from e

    records, promoted = _validate_json_shape(data)
    if promoted:
        log.add(DiagnosticCategory.PARSE, "Single JSON object converted to array format")

    headers = list(records[0].keys()) if records else []
    header_set = set(headers)

    rows = []
    n_extra = 0
    for record in records:
        if set(record) - header_set:
            n_extra += 1
        rows.append({h: record.get(h) for h in headers})

    if n_extra:
        log.add(
            DiagnosticCategory.PARSE,
            f"{n_extra} records contain keys not present in the first record (ignored)",
        )

    return _build_dataset(headers, rows, log, options, file_name, None)


# =============================================================================
# DISPATCH
# =============================================================================

def parse_file(
    file_name: str,
    content: Union[bytes, str],
    options: Optional[TypeInferenceOptions] = None,
) -> RawDataset:
    """
    Parse one uploaded file, dispatching on its extension.

    Raises:
        UnsupportedFormatError: Extension not csv/tsv/json
        ParseError, ValidationError: See the format-specific parsers
    """
    extension = extension_of(file_name)

    if extension in ('.csv', '.tsv'):
        return parse_csv_tsv(content, file_name=file_name, options=options)
    if extension == '.json':
        return parse_json(content, file_name=file_name, options=options)

    raise UnsupportedFormatError(extension)


def process_file(
    file_name: str,
    content: Union[bytes, str],
    options: Optional[TypeInferenceOptions] = None,
) -> ProcessingResult:
    """Non-raising form of parse_file()."""
    try:
        dataset = parse_file(file_name, content, options)
    except ThrustBenchError as e:
        return ProcessingResult(success=False, error=str(e), error_type=type(e).__name__)
    return ProcessingResult(success=True, data=dataset)
