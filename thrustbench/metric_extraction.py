"""
Propulsion Metric Extraction
============================
Derives standard static-fire metrics from an irregular thrust time series.

Metrics:
- Peak thrust and the time it first occurs
- Rise time: 10% -> 90% of peak, crossing times linearly interpolated
- Burn window: first/last sample at or above the thrust threshold
- Total impulse: trapezoidal area under the curve

Design Principles:
- Pure and state-free: the same series always gives identical results
- Every sub-computation runs on its own. An edge case in one (no rise
  time, say) never blocks the others
- Nothing raises. Problems degrade a field to None and add a warning,
  because partial metrics are still useful to the test engineer
- Every computation re-sorts its input by time; caller order is irrelevant

Usage:
    from thrustbench.metric_extraction import MetricExtractor, TimeSeries
    from thrustbench.config import MetricCalculationOptions

    series = TimeSeries.from_points([(0, 0), (1, 10), (2, 100)])
    metrics = MetricExtractor(MetricCalculationOptions()).extract_all_metrics(series)
    print(metrics.rise_time, metrics.area_under_curve)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import MetricCalculationOptions
from .type_inference import timestamp_to_seconds, to_number

NON_UNIFORM_TOLERANCE = 0.5  # max interval deviation as fraction of mean interval


# =============================================================================
# Data Structures
# =============================================================================

@dataclass(frozen=True)
class TimeSeriesPoint:
    time: float
    value: float


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """
    Parallel time/value arrays (float64, read-only).

    NaN values are allowed and reported by validation; points are not
    assumed to be in time order.
    """
    time: np.ndarray
    value: np.ndarray

    def __post_init__(self):
        time = np.asarray(self.time, dtype=float).ravel()
        value = np.asarray(self.value, dtype=float).ravel()
        if time.shape != value.shape:
            raise ValueError(
                f"time and value must have the same length ({len(time)} != {len(value)})"
            )
        time.setflags(write=False)
        value.setflags(write=False)
        object.__setattr__(self, 'time', time)
        object.__setattr__(self, 'value', value)

    @classmethod
    def from_points(cls, points: Iterable[Union[TimeSeriesPoint, Tuple[float, float]]]) -> 'TimeSeries':
        pairs = [
            (p.time, p.value) if isinstance(p, TimeSeriesPoint) else (p[0], p[1])
            for p in points
        ]
        if not pairs:
            return cls(np.empty(0), np.empty(0))
        time, value = zip(*pairs)
        return cls(np.array(time, dtype=float), np.array(value, dtype=float))

    def sorted(self) -> 'TimeSeries':
        """Copy in time order; infinite values become NaN (invalid)."""
        order = np.argsort(self.time, kind='stable')
        value = self.value[order]
        return TimeSeries(self.time[order], np.where(np.isinf(value), np.nan, value))

    def points(self) -> List[TimeSeriesPoint]:
        return [TimeSeriesPoint(float(t), float(v)) for t, v in zip(self.time, self.value)]

    def __len__(self) -> int:
        return len(self.time)


SeriesLike = Union[TimeSeries, Sequence[TimeSeriesPoint], Sequence[Tuple[float, float]]]


def as_time_series(data: SeriesLike) -> TimeSeries:
    if isinstance(data, TimeSeries):
        return data
    return TimeSeries.from_points(data)


@dataclass(frozen=True)
class PeakResult:
    peak_thrust: Optional[float]
    peak_thrust_time: Optional[float]
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RiseTimeResult:
    rise_time: Optional[float]
    start_time: Optional[float]
    end_time: Optional[float]
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class BurnDurationResult:
    burn_duration: Optional[float]
    burn_start_time: Optional[float]
    burn_end_time: Optional[float]
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class AreaResult:
    area_under_curve: Optional[float]
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PropulsionMetrics:
    """
    Metrics for one (file, time column, thrust column) triple.

    Attributes:
        rise_time: 10%->90% of peak duration (s)
        peak_thrust: Maximum value
        peak_thrust_time: Time of first occurrence of the maximum
        burn_duration: burn_end_time - burn_start_time
        area_under_curve: Total impulse (value x time units)
        burn_start_time: First sample at or above threshold
        burn_end_time: Last sample at or above threshold
        warnings: De-duplicated warnings from all sub-computations
    """
    rise_time: Optional[float] = None
    peak_thrust: Optional[float] = None
    peak_thrust_time: Optional[float] = None
    burn_duration: Optional[float] = None
    area_under_curve: Optional[float] = None
    burn_start_time: Optional[float] = None
    burn_end_time: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def total_impulse(self) -> Optional[float]:
        return self.area_under_curve

    @property
    def average_thrust(self) -> Optional[float]:
        """Impulse over burn duration, when both exist."""
        if self.area_under_curve is None or not self.burn_duration:
            return None
        return self.area_under_curve / self.burn_duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rise_time': self.rise_time,
            'peak_thrust': self.peak_thrust,
            'peak_thrust_time': self.peak_thrust_time,
            'burn_duration': self.burn_duration,
            'burn_start_time': self.burn_start_time,
            'burn_end_time': self.burn_end_time,
            'area_under_curve': self.area_under_curve,
            'warnings': list(self.warnings),
        }


# =============================================================================
# Validation
# =============================================================================

def validate_series(series: TimeSeries) -> List[str]:
    """
    Data-quality pre-pass. Informational only; never blocks a computation
    except for the < 2 points case, which the callers short-circuit.
    """
    warnings: List[str] = []

    if len(series) < 2:
        warnings.append('Insufficient data points for metric calculation')
        return warnings

    intervals = np.diff(series.time)
    mean_interval = float(np.mean(intervals))
    max_deviation = float(np.max(np.abs(intervals - mean_interval)))
    if max_deviation > mean_interval * NON_UNIFORM_TOLERANCE:
        warnings.append('Non-uniform time sampling detected - results may be less accurate')

    n_missing = int(np.count_nonzero(~np.isfinite(series.value)))
    if n_missing > 0:
        warnings.append(f'{n_missing} missing or invalid data points detected')

    n_negative = int(np.count_nonzero(series.value < 0))
    if n_negative > 0:
        warnings.append(f'{n_negative} negative thrust values detected')

    return warnings


def interpolate_crossing_time(series: TimeSeries, target: float) -> Optional[float]:
    """
    Time where the signal first crosses `target`, linearly interpolated.

    Scans consecutive pairs in time order and takes the first pair that
    brackets the target from either side. A flat pair sitting exactly on
    the target gives the pair's start time.
    """
    if len(series) < 2:
        return None

    v0, v1 = series.value[:-1], series.value[1:]
    brackets = ((v0 <= target) & (v1 >= target)) | ((v0 >= target) & (v1 <= target))
    hits = np.flatnonzero(brackets)
    if len(hits) == 0:
        return None

    i = int(hits[0])
    t0, t1 = float(series.time[i]), float(series.time[i + 1])
    a, b = float(v0[i]), float(v1[i])
    if b == a:
        return t0
    return t0 + (target - a) / (b - a) * (t1 - t0)


# =============================================================================
# Extractor
# =============================================================================

class MetricExtractor:
    """
    Computes PropulsionMetrics with a fixed set of options.

    The extractor holds no state besides its options; one instance can
    process any number of series.
    """

    def __init__(self, options: Optional[MetricCalculationOptions] = None):
        self.options = options or MetricCalculationOptions()

    def calculate_peak_thrust(self, data: SeriesLike) -> PeakResult:
        series = as_time_series(data).sorted()
        warnings = validate_series(series)

        if len(series) < 2:
            return PeakResult(None, None, warnings)

        if not np.any(~np.isnan(series.value)):
            warnings.append('No valid thrust values found')
            return PeakResult(None, None, warnings)

        idx = int(np.nanargmax(series.value))
        return PeakResult(float(series.value[idx]), float(series.time[idx]), warnings)

    def calculate_rise_time(self, data: SeriesLike) -> RiseTimeResult:
        series = as_time_series(data).sorted()
        warnings = validate_series(series)

        if len(series) < 2:
            return RiseTimeResult(None, None, None, warnings)

        if not np.any(~np.isnan(series.value)):
            warnings.append('No valid thrust values found')
            return RiseTimeResult(None, None, None, warnings)

        peak = float(np.nanmax(series.value))
        if peak <= self.options.thrust_threshold:
            warnings.append('Peak thrust below threshold - rise time calculation skipped')
            return RiseTimeResult(None, None, None, warnings)

        start_time = interpolate_crossing_time(series, peak * self.options.rise_time_start)
        end_time = interpolate_crossing_time(series, peak * self.options.rise_time_end)

        if start_time is None or end_time is None:
            warnings.append('Could not find rise time boundaries')
            return RiseTimeResult(None, start_time, end_time, warnings)

        rise_time = end_time - start_time
        if rise_time <= 0:
            warnings.append('Invalid rise time calculation (negative or zero duration)')
            return RiseTimeResult(None, start_time, end_time, warnings)

        return RiseTimeResult(rise_time, start_time, end_time, warnings)

    def calculate_burn_duration(self, data: SeriesLike) -> BurnDurationResult:
        series = as_time_series(data).sorted()
        warnings = validate_series(series)

        if len(series) < 2:
            return BurnDurationResult(None, None, None, warnings)

        active = np.flatnonzero(series.value >= self.options.thrust_threshold)
        if len(active) == 0:
            warnings.append('Could not determine burn start/end times')
            return BurnDurationResult(None, None, None, warnings)

        burn_start = float(series.time[active[0]])
        burn_end = float(series.time[active[-1]])
        burn_duration = burn_end - burn_start

        if burn_duration < self.options.min_burn_duration:
            warnings.append(
                f'Burn duration ({burn_duration:.3f}s) below minimum threshold '
                f'({self.options.min_burn_duration}s)'
            )

        return BurnDurationResult(burn_duration, burn_start, burn_end, warnings)

    def calculate_area_under_curve(self, data: SeriesLike) -> AreaResult:
        series = as_time_series(data).sorted()
        warnings = validate_series(series)

        if len(series) < 2:
            return AreaResult(None, warnings)

        v0, v1 = series.value[:-1], series.value[1:]
        dt = np.diff(series.time)
        # Pairs touching a NaN are skipped, not zero-filled
        valid = ~np.isnan(v0) & ~np.isnan(v1) & ~np.isnan(dt)
        area = float(np.sum((v0[valid] + v1[valid]) / 2 * dt[valid]))

        if area < 0:
            warnings.append('Negative area under curve - check for data quality issues')

        return AreaResult(area, warnings)

    def extract_all_metrics(self, data: SeriesLike) -> PropulsionMetrics:
        series = as_time_series(data)

        rise = self.calculate_rise_time(series)
        peak = self.calculate_peak_thrust(series)
        burn = self.calculate_burn_duration(series)
        area = self.calculate_area_under_curve(series)

        all_warnings = rise.warnings + peak.warnings + burn.warnings + area.warnings

        return PropulsionMetrics(
            rise_time=rise.rise_time,
            peak_thrust=peak.peak_thrust,
            peak_thrust_time=peak.peak_thrust_time,
            burn_duration=burn.burn_duration,
            area_under_curve=area.area_under_curve,
            burn_start_time=burn.burn_start_time,
            burn_end_time=burn.burn_end_time,
            warnings=list(dict.fromkeys(all_warnings)),
        )


# =============================================================================
# Row-level helpers
# =============================================================================

def prepare_time_series(
    rows: Sequence[Dict[str, Any]],
    time_column: str,
    value_column: str,
) -> TimeSeries:
    """
    Numeric, time-sorted series from parsed rows.

    Time cells may be numbers, numeric strings or ISO timestamps (taken as
    Unix seconds). Rows where either cell is not a finite number are dropped.
    """
    times: List[float] = []
    values: List[float] = []

    for row in rows:
        t = timestamp_to_seconds(row.get(time_column))
        v = to_number(row.get(value_column))
        if t is None or v is None:
            continue
        times.append(t)
        values.append(v)

    return TimeSeries(np.array(times, dtype=float), np.array(values, dtype=float)).sorted()


def extract_metrics_from_rows(
    rows: Sequence[Dict[str, Any]],
    time_column: str,
    thrust_column: str,
    options: Optional[MetricCalculationOptions] = None,
) -> PropulsionMetrics:
    """Main entry point for parsed file data."""
    series = prepare_time_series(rows, time_column, thrust_column)
    return MetricExtractor(options).extract_all_metrics(series)
