"""
ThrustBench - Core Module
=========================
Ingestion and metric extraction for rocket-motor static-fire sensor data.

Components:
- structure_detection: Comment/metadata stripping, delimiter scoring
- file_processors: CSV/TSV/JSON parsing into a RawDataset
- type_inference: Column types with confidence, timestamp normalization
- column_roles: Keyword-based time/thrust/temperature/pressure detection
- metric_extraction: Peak thrust, rise time, burn window, total impulse
- batch_analysis: Multi-file processing with per-file error isolation
- comparison: Run alignment and metric drift

Shared Utilities:
- config: Pydantic configuration schemas and ConfigManager
- diagnostics: Non-fatal warning records
- errors: Error taxonomy

Usage:
    from thrustbench.file_processors import process_file
    from thrustbench.metric_extraction import MetricExtractor
    from thrustbench.batch_analysis import run_batch_analysis
    from thrustbench.comparison import compare_runs
    from thrustbench.config import ConfigManager
"""

__version__ = "1.0.0"

# Errors and diagnostics
from .errors import (
    ThrustBenchError,
    UnsupportedFormatError,
    ParseError,
    ValidationError,
    ConfigurationError,
)

from .diagnostics import (
    Diagnostic,
    DiagnosticCategory,
    DiagnosticLog,
)

# Configuration
from .config import (
    MetricCalculationOptions,
    TypeInferenceOptions,
    ComparisonOptions,
    AnalysisConfig,
    ConfigManager,
)

# Parsing
from .structure_detection import (
    detect_delimiter,
    preprocess_content,
)

from .type_inference import (
    ColumnType,
    TypeInferenceResult,
    infer_column_type,
    normalize_timestamp,
)

from .dataset import (
    Cell,
    CellKind,
    RawDataset,
)

from .file_processors import (
    ProcessingResult,
    parse_csv_tsv,
    parse_json,
    parse_file,
    process_file,
)

from .column_roles import (
    detect_common_columns,
    fallback_columns,
)

# Metrics
from .metric_extraction import (
    TimeSeries,
    TimeSeriesPoint,
    PropulsionMetrics,
    MetricExtractor,
    prepare_time_series,
    extract_metrics_from_rows,
)

# Batch processing and comparison
from .batch_analysis import (
    InputFile,
    FileAnalysis,
    BatchAnalysisReport,
    analyze_file,
    run_batch_analysis,
    discover_input_files,
    load_input_files,
    export_batch_results,
)

from .comparison import (
    DriftStatus,
    DriftEntry,
    MetricComparison,
    RunComparison,
    align_runs,
    compare_metrics,
    compare_runs,
)
