"""
Batch Analysis Module
=====================
Runs the full pipeline over a set of uploaded files with one configuration.

Per file:
    parse -> column role detection -> (fallback column selection)
          -> metric extraction

Features:
- Partial-failure semantics: a file that cannot be parsed contributes one
  error entry and never aborts the rest of the batch
- Optional parallel processing; results keep input order
- Progress callback, aggregate statistics, DataFrame/CSV/JSON export

Usage:
    from thrustbench.batch_analysis import load_input_files, run_batch_analysis

    report = run_batch_analysis(load_input_files(['run_01.csv', 'run_02.json']))
    print(report.summary())
"""

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .column_roles import detect_common_columns, fallback_columns
from .config import AnalysisConfig
from .dataset import RawDataset
from .diagnostics import Diagnostic, DiagnosticCategory, DiagnosticLog
from .errors import ThrustBenchError
from .file_processors import SUPPORTED_EXTENSIONS, parse_file
from .metric_extraction import MetricExtractor, PropulsionMetrics, prepare_time_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InputFile:
    """Name and raw content of one uploaded file."""
    name: str
    content: Union[bytes, str]


@dataclass
class FileAnalysis:
    """Result of running the pipeline on a single file."""
    file_name: str
    success: bool

    # On success
    dataset: Optional[RawDataset] = None
    metrics: Optional[PropulsionMetrics] = None
    time_column: Optional[str] = None
    thrust_column: Optional[str] = None
    column_roles: Dict[str, str] = field(default_factory=dict)
    auto_selected: bool = False
    notices: List[str] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    # On failure
    error_message: Optional[str] = None
    error_type: Optional[str] = None

    processing_time_s: float = 0.0

    @property
    def has_metrics(self) -> bool:
        return self.metrics is not None

    @property
    def error_entry(self) -> Optional[str]:
        """User-facing error line for a failed file."""
        if self.success:
            return None
        return f"{self.file_name}: {self.error_message}"

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'file_name': self.file_name,
            'success': self.success,
            'time_column': self.time_column,
            'thrust_column': self.thrust_column,
            'auto_selected': self.auto_selected,
            'n_rows': self.dataset.n_rows if self.dataset else None,
            'processing_time_s': self.processing_time_s,
            'error_message': self.error_message,
        }

        if self.metrics:
            for key, value in self.metrics.to_dict().items():
                if key != 'warnings':
                    result[key] = value
            result['n_metric_warnings'] = len(self.metrics.warnings)

        return result


@dataclass
class BatchAnalysisReport:
    """Summary report for a batch analysis run."""
    batch_id: str
    config_name: str
    start_time: datetime
    end_time: Optional[datetime] = None

    # Results, in input order
    results: List[FileAnalysis] = field(default_factory=list)

    # Summary stats
    total_files: int = 0
    successful: int = 0
    failed: int = 0
    without_metrics: int = 0

    def __post_init__(self):
        self.update_summary()

    def update_summary(self):
        """Update summary statistics from results."""
        self.total_files = len(self.results)
        self.successful = sum(1 for r in self.results if r.success)
        self.failed = sum(1 for r in self.results if not r.success)
        self.without_metrics = sum(1 for r in self.results if r.success and not r.has_metrics)

    @property
    def analyses(self) -> List[FileAnalysis]:
        """Successfully parsed files; failed files are excluded."""
        return [r for r in self.results if r.success]

    @property
    def errors(self) -> List[str]:
        """One '<file>: <message>' entry per failed file."""
        return [r.error_entry for r in self.results if not r.success]

    @property
    def notices(self) -> List[str]:
        return [n for r in self.results for n in r.notices]

    @property
    def success_rate(self) -> float:
        """Percentage of successfully processed files."""
        return (self.successful / self.total_files * 100) if self.total_files > 0 else 0

    @property
    def total_time_s(self) -> float:
        """Total processing time in seconds."""
        if self.end_time and self.start_time:
            return (self.end_time - self.start_time).total_seconds()
        return sum(r.processing_time_s for r in self.results)

    def get_failed_files(self) -> List[FileAnalysis]:
        return [r for r in self.results if not r.success]

    def get(self, file_name: str) -> Optional[FileAnalysis]:
        return next((r for r in self.results if r.file_name == file_name), None)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert results to DataFrame."""
        return pd.DataFrame([r.to_dict() for r in self.results])

    def summary(self) -> str:
        """Generate summary text."""
        lines = [
            f"Batch Analysis Report: {self.batch_id}",
            f"Configuration: {self.config_name}",
            f"",
            f"Results:",
            f"  Total files: {self.total_files}",
            f"  Successful: {self.successful} ({self.success_rate:.1f}%)",
            f"  Failed: {self.failed}",
            f"  Without metrics: {self.without_metrics}",
            f"",
            f"Processing time: {self.total_time_s:.2f}s",
        ]

        if self.failed > 0:
            lines.append(f"\nFailed files:")
            for entry in self.errors[:5]:
                lines.append(f"  - {entry}")
            if self.failed > 5:
                lines.append(f"  ... and {self.failed - 5} more")

        return "\n".join(lines)


# =============================================================================
# FILE DISCOVERY
# =============================================================================

def discover_input_files(
    directory: Union[str, Path],
    patterns: Sequence[str] = tuple(f"*{ext}" for ext in SUPPORTED_EXTENSIONS),
    recursive: bool = False,
) -> List[Path]:
    """
    Discover sensor export files in a directory.

    Args:
        directory: Directory to search
        patterns: Glob patterns (default: every supported extension)
        recursive: Search subdirectories

    Returns:
        List of file paths, sorted by name
    """
    directory = Path(directory)

    files = set()
    for pattern in patterns:
        matches = directory.rglob(pattern) if recursive else directory.glob(pattern)
        files.update(p for p in matches if p.is_file())

    return sorted(files, key=lambda x: x.name)


def load_input_files(paths: Iterable[Union[str, Path]]) -> List[InputFile]:
    """Read files from disk as raw bytes."""
    return [InputFile(name=Path(p).name, content=Path(p).read_bytes()) for p in paths]


def _as_input_file(item: Union[InputFile, Tuple[str, Union[bytes, str]]]) -> InputFile:
    if isinstance(item, InputFile):
        return item
    name, content = item
    return InputFile(name=name, content=content)


# =============================================================================
# PER-FILE PIPELINE
# =============================================================================

def select_columns(
    dataset: RawDataset,
    roles: Dict[str, str],
) -> Tuple[Optional[str], Optional[str], bool]:
    """
    Pick the (time, thrust) pair for metric extraction.

    Returns:
        (time column, thrust column, auto_selected) - the columns are None
        when neither role detection nor the fallback heuristic finds a pair
    """
    if roles.get('time') and roles.get('thrust'):
        return roles['time'], roles['thrust'], False

    time_col, thrust_col = fallback_columns(dataset)
    if time_col and thrust_col:
        return time_col, thrust_col, True

    return None, None, False


def analyze_file(
    file_name: str,
    content: Union[bytes, str],
    config: Optional[AnalysisConfig] = None,
) -> FileAnalysis:
    """
    Run the full pipeline on one file.

    Never raises for malformed input: parse failures come back as a
    FileAnalysis with success=False.

    Args:
        file_name: Name used for format dispatch and messages
        content: Raw file content
        config: Analysis configuration (defaults when omitted)

    Returns:
        FileAnalysis
    """
    config = config or AnalysisConfig()
    start_time = time.time()
    logger.info(f"Processing {file_name}")

    try:
        dataset = parse_file(file_name, content, config.type_inference)
    except ThrustBenchError as e:
        logger.warning(f"{file_name}: {e}")
        return FileAnalysis(
            file_name=file_name,
            success=False,
            error_message=str(e),
            error_type=type(e).__name__,
            processing_time_s=time.time() - start_time,
        )

    log = DiagnosticLog(dataset.diagnostics)
    notices: List[str] = []

    roles = detect_common_columns(dataset.headers)
    time_col, thrust_col, auto_selected = select_columns(dataset, roles)

    metrics = None
    if time_col is None:
        message = f"{file_name}: No suitable time/thrust columns found - metrics not computed"
        log.add(DiagnosticCategory.COLUMN_SELECTION, message)
        notices.append(message)
    else:
        if auto_selected:
            message = (
                f"{file_name}: Using auto-detected columns - "
                f"Time: '{time_col}', Thrust: '{thrust_col}'"
            )
            log.add(DiagnosticCategory.COLUMN_SELECTION, message)
            notices.append(message)

        series = prepare_time_series(dataset.rows, time_col, thrust_col)
        metrics = MetricExtractor(config.metrics).extract_all_metrics(series)
        log.add_all(DiagnosticCategory.METRIC_COMPUTATION, metrics.warnings)

    processing_time = time.time() - start_time
    logger.info(
        f"Finished {file_name} in {processing_time:.3f}s "
        f"({dataset.n_rows} rows, {len(log)} diagnostics)"
    )

    return FileAnalysis(
        file_name=file_name,
        success=True,
        dataset=dataset,
        metrics=metrics,
        time_column=time_col,
        thrust_column=thrust_col,
        column_roles=roles,
        auto_selected=auto_selected,
        notices=notices,
        diagnostics=list(log),
        processing_time_s=processing_time,
    )


# =============================================================================
# BATCH PROCESSING
# =============================================================================

def run_batch_analysis(
    files: Sequence[Union[InputFile, Tuple[str, Union[bytes, str]]]],
    config: Optional[AnalysisConfig] = None,
    batch_id: Optional[str] = None,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> BatchAnalysisReport:
    """
    Run the pipeline on multiple files.

    Args:
        files: InputFile objects or (name, content) pairs
        config: Analysis configuration; config.max_workers > 1 processes
            files in parallel
        batch_id: Unique identifier for this batch
        progress_callback: Called with (completed, total, current_file)

    Returns:
        BatchAnalysisReport with one FileAnalysis per input, in input order
    """
    config = config or AnalysisConfig()
    inputs = [_as_input_file(f) for f in files]

    if batch_id is None:
        batch_id = datetime.now().strftime("batch_%Y%m%d_%H%M%S")

    report = BatchAnalysisReport(
        batch_id=batch_id,
        config_name=config.config_name,
        start_time=datetime.now(),
    )
    logger.info(f"Starting {batch_id}: {len(inputs)} files, max_workers={config.max_workers}")

    if config.max_workers <= 1:
        # Sequential processing
        for i, item in enumerate(inputs, start=1):
            report.results.append(analyze_file(item.name, item.content, config))
            if progress_callback:
                progress_callback(i, len(inputs), item.name)
    else:
        # Parallel processing; map() yields in submission order
        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            outcomes = executor.map(
                lambda item: analyze_file(item.name, item.content, config), inputs
            )
            for i, (item, result) in enumerate(zip(inputs, outcomes), start=1):
                if progress_callback:
                    progress_callback(i, len(inputs), item.name)
                report.results.append(result)

    report.end_time = datetime.now()
    report.update_summary()

    logger.info(
        f"Finished {batch_id}: {report.successful}/{report.total_files} successful "
        f"in {report.total_time_s:.2f}s"
    )
    return report


def export_batch_results(
    report: BatchAnalysisReport,
    output_path: Union[str, Path],
    format: str = 'csv',
) -> Path:
    """
    Export batch results to file.

    Args:
        report: BatchAnalysisReport
        output_path: Output file path
        format: 'csv' or 'json'

    Returns:
        Path to exported file
    """
    output_path = Path(output_path)

    if format == 'csv':
        report.to_dataframe().to_csv(output_path, index=False)

    elif format == 'json':
        data = {
            'batch_id': report.batch_id,
            'config_name': report.config_name,
            'start_time': report.start_time.isoformat(),
            'end_time': report.end_time.isoformat() if report.end_time else None,
            'summary': {
                'total': report.total_files,
                'successful': report.successful,
                'failed': report.failed,
                'without_metrics': report.without_metrics,
            },
            'errors': report.errors,
            'notices': report.notices,
            'results': [
                {
                    **r.to_dict(),
                    'warnings': list(r.metrics.warnings) if r.metrics else [],
                    'diagnostics': [d.to_dict() for d in r.diagnostics],
                }
                for r in report.results
            ],
        }
        with open(output_path, 'w') as f:
            json.dump(data, f, indent=2, default=str)

    else:
        raise ValueError(f"Unknown format: {format}")

    return output_path
