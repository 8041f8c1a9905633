"""
Run Comparison and Drift
========================
Compares two or more analysed static-fire runs:
- Time alignment of thrust curves (burn start, peak, or none)
- Metric drift relative to the first run with a ±band "stable" zone

Usage:
    from thrustbench.comparison import compare_runs

    comparison = compare_runs(report.analyses)
    print(comparison.summary())
    comparison.to_dataframe()
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .batch_analysis import FileAnalysis
from .config import ComparisonOptions
from .metric_extraction import prepare_time_series

# (PropulsionMetrics attribute, display name, unit)
COMPARED_METRICS = (
    ('peak_thrust', 'Peak Thrust', 'N'),
    ('rise_time', 'Rise Time', 's'),
    ('burn_duration', 'Burn Duration', 's'),
    ('area_under_curve', 'Total Impulse', 'N·s'),
)


class DriftStatus(Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    STABLE = "stable"


@dataclass
class DriftEntry:
    """One run's change in one metric relative to the first run."""
    file_name: str
    value: Optional[float]
    absolute_change: float
    percent_change: float
    status: DriftStatus


@dataclass
class MetricComparison:
    """Drift of a single metric across all compared runs."""
    metric: str
    name: str
    unit: str
    entries: List[DriftEntry]

    @property
    def baseline(self) -> Optional[float]:
        return self.entries[0].value if self.entries else None

    @property
    def n_drifting(self) -> int:
        return sum(1 for e in self.entries if e.status != DriftStatus.STABLE)

    @property
    def max_abs_percent_change(self) -> float:
        return max((abs(e.percent_change) for e in self.entries), default=0.0)


@dataclass
class RunComparison:
    """Complete comparison of two or more runs."""
    run_names: List[str]
    alignment: str
    stable_band_pct: float
    aligned: pd.DataFrame
    metrics: List[MetricComparison] = field(default_factory=list)

    @property
    def n_runs(self) -> int:
        return len(self.run_names)

    def get(self, metric: str) -> Optional[MetricComparison]:
        return next((m for m in self.metrics if m.metric == metric), None)

    def overlay(self) -> pd.DataFrame:
        """Wide view of the aligned curves: aligned_time index, one column per run."""
        if self.aligned.empty:
            return pd.DataFrame()
        return self.aligned.pivot_table(
            index='aligned_time', columns='run', values='value', aggfunc='mean'
        )

    def to_dataframe(self) -> pd.DataFrame:
        """One row per (metric, run)."""
        return pd.DataFrame([
            {
                'metric': m.metric,
                'name': m.name,
                'unit': m.unit,
                'file_name': e.file_name,
                'value': e.value,
                'absolute_change': e.absolute_change,
                'percent_change': e.percent_change,
                'status': e.status.value,
            }
            for m in self.metrics
            for e in m.entries
        ])

    def summary(self) -> str:
        """Generate text summary."""
        lines = [
            f"Run Comparison: {self.n_runs} runs (baseline: {self.run_names[0]})",
            f"Alignment: {self.alignment}, stable band: ±{self.stable_band_pct:.1f}%",
            "",
        ]

        for m in self.metrics:
            lines.append(f"{m.name} [{m.unit}]:")
            for e in m.entries:
                value = f"{e.value:.4g}" if e.value is not None else "n/a"
                lines.append(
                    f"  {e.file_name}: {value} ({e.percent_change:+.2f}%, {e.status.value})"
                )

        return "\n".join(lines)


# =============================================================================
# COMPARISON FUNCTIONS
# =============================================================================

def _check_analyses(analyses: Sequence[FileAnalysis]) -> None:
    if len(analyses) < 2:
        raise ValueError(f"At least 2 runs are required for comparison, got {len(analyses)}")
    failed = [a.file_name for a in analyses if not a.success]
    if failed:
        raise ValueError(f"Cannot compare failed analyses: {failed}")


def alignment_offset(analysis: FileAnalysis, mode: str) -> float:
    """
    Time shift applied to a run: -burn start, -peak time, or 0.

    A run without the needed marker is not shifted.
    """
    metrics = analysis.metrics
    if mode == 'none' or metrics is None:
        return 0.0
    if mode == 'start' and metrics.burn_start_time is not None:
        return -metrics.burn_start_time
    if mode == 'peak' and metrics.peak_thrust_time is not None:
        return -metrics.peak_thrust_time
    return 0.0


def align_runs(analyses: Sequence[FileAnalysis], mode: str = 'start') -> pd.DataFrame:
    """
    Long-format aligned thrust curves.

    Args:
        analyses: Successful file analyses
        mode: 'start', 'peak' or 'none'

    Returns:
        DataFrame with columns run, time, aligned_time, value
    """
    if mode not in ('start', 'peak', 'none'):
        raise ValueError(f"Unknown alignment mode: {mode}")

    frames = []
    for analysis in analyses:
        if analysis.dataset is None or analysis.time_column is None:
            continue
        series = prepare_time_series(
            analysis.dataset.rows, analysis.time_column, analysis.thrust_column
        )
        offset = alignment_offset(analysis, mode)
        frames.append(pd.DataFrame({
            'run': analysis.file_name,
            'time': series.time,
            'aligned_time': series.time + offset,
            'value': series.value,
        }))

    if not frames:
        return pd.DataFrame(columns=['run', 'time', 'aligned_time', 'value'])
    return pd.concat(frames, ignore_index=True)


def drift_entry(
    file_name: str,
    value: Optional[float],
    baseline: Optional[float],
    stable_band_pct: float = 5.0,
) -> DriftEntry:
    """Change of `value` relative to `baseline`; a missing or zero side counts as stable."""
    if not baseline or not value:
        return DriftEntry(file_name, value, 0.0, 0.0, DriftStatus.STABLE)

    absolute_change = value - baseline
    percent_change = absolute_change / baseline * 100

    status = DriftStatus.STABLE
    if abs(percent_change) > stable_band_pct:
        status = DriftStatus.INCREASE if percent_change > 0 else DriftStatus.DECREASE

    return DriftEntry(file_name, value, absolute_change, percent_change, status)


def compare_metrics(
    analyses: Sequence[FileAnalysis],
    stable_band_pct: float = 5.0,
) -> List[MetricComparison]:
    """
    Drift of each compared metric relative to the first run.

    Raises:
        ValueError: Fewer than 2 runs, or a failed analysis in the input
    """
    _check_analyses(analyses)

    comparisons = []
    for metric, name, unit in COMPARED_METRICS:
        values = [getattr(a.metrics, metric) if a.metrics else None for a in analyses]
        baseline = values[0]
        entries = [
            drift_entry(a.file_name, v, baseline, stable_band_pct)
            for a, v in zip(analyses, values)
        ]
        comparisons.append(MetricComparison(metric, name, unit, entries))

    return comparisons


def compare_runs(
    analyses: Sequence[FileAnalysis],
    options: Optional[ComparisonOptions] = None,
) -> RunComparison:
    """
    Align curves and compute metric drift in one call.

    Raises:
        ValueError: Fewer than 2 runs, or a failed analysis in the input
    """
    options = options or ComparisonOptions()
    _check_analyses(analyses)

    return RunComparison(
        run_names=[a.file_name for a in analyses],
        alignment=options.alignment,
        stable_band_pct=options.stable_band_pct,
        aligned=align_runs(analyses, options.alignment),
        metrics=compare_metrics(analyses, options.stable_band_pct),
    )


def comparison_to_dict(comparison: RunComparison) -> Dict[str, Any]:
    """JSON-friendly form of a RunComparison."""
    return {
        'run_names': list(comparison.run_names),
        'alignment': comparison.alignment,
        'stable_band_pct': comparison.stable_band_pct,
        'metrics': comparison.to_dataframe().to_dict(orient='records'),
    }
