"""
Metric Extraction Tests
=======================
Peak thrust, rise time, burn window and total impulse on synthetic series.

Run with: python -m pytest tests/test_metric_extraction.py -v
Or:       python tests/test_metric_extraction.py
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from thrustbench.config import MetricCalculationOptions
from thrustbench.metric_extraction import (
    MetricExtractor,
    TimeSeries,
    TimeSeriesPoint,
    extract_metrics_from_rows,
    interpolate_crossing_time,
    prepare_time_series,
    validate_series,
)


def create_motor_curve(n_samples=800, burn_start=0.5, burn_end=3.0, peak=450.0, seed=42):
    """
    Trapezoidal thrust curve with light noise, sampled at 200 Hz.

    Ramps up over 0.1 s after burn_start and down over 0.1 s before burn_end.
    """
    rng = np.random.default_rng(seed)
    t = np.arange(n_samples) / 200.0
    thrust = np.interp(
        t,
        [0, burn_start, burn_start + 0.1, burn_end - 0.1, burn_end, t[-1]],
        [0, 0, peak, peak, 0, 0],
    )
    thrust = thrust + rng.normal(0, 0.2, n_samples)
    return TimeSeries(t, thrust)


class TestRiseTime:
    """Test 10%-90% rise time interpolation."""

    def test_interpolated_crossings(self):
        """[(0,0),(1,10),(2,100)]: crossings at t=1 and t=1+80/90."""
        result = MetricExtractor().calculate_rise_time([(0, 0), (1, 10), (2, 100)])

        assert result.start_time == pytest.approx(1.0)
        assert result.end_time == pytest.approx(1 + 80 / 90)
        assert result.rise_time == pytest.approx(0.8889, abs=1e-4)
        print(f"[PASS] Rise time: {result.rise_time:.4f}s")

    def test_peak_below_threshold(self):
        options = MetricCalculationOptions(thrust_threshold=50.0)
        result = MetricExtractor(options).calculate_rise_time([(0, 0), (1, 10), (2, 20)])

        assert result.rise_time is None
        assert "Peak thrust below threshold - rise time calculation skipped" in result.warnings

    def test_first_crossing_used(self):
        """An oscillating ignition takes the first bracketing pair."""
        series = [(0, 0), (1, 50), (2, 5), (3, 100), (4, 100)]
        result = MetricExtractor().calculate_rise_time(series)

        # 10 is crossed first between t=0 and t=1, 90 between t=2 and t=3
        assert result.start_time == pytest.approx(0.2)
        assert result.end_time == pytest.approx(2 + 85 / 95)

    def test_custom_fractions(self):
        options = MetricCalculationOptions(rise_time_start=0.2, rise_time_end=0.8)
        result = MetricExtractor(options).calculate_rise_time([(0, 0), (1, 100)])

        assert result.rise_time == pytest.approx(0.6)

    def test_missing_boundary(self):
        """A series that starts above the 10% level never brackets it."""
        result = MetricExtractor().calculate_rise_time([(0, 95), (1, 100), (2, 98)])

        assert result.rise_time is None
        assert "Could not find rise time boundaries" in result.warnings

    def test_non_positive_rise_time_discarded(self):
        """Crossing the 90% level before the 10% level is not a rise."""
        series = [(0, 100), (1, 95), (2, 9), (3, 0)]
        result = MetricExtractor().calculate_rise_time(series)

        assert result.rise_time is None
        assert "Invalid rise time calculation (negative or zero duration)" in result.warnings

    def test_flat_pair_on_threshold(self):
        series = TimeSeries.from_points([(0, 10), (1, 10), (2, 100)])
        assert interpolate_crossing_time(series, 10.0) == 0.0

    def test_sorted_points(self):
        series = TimeSeries.from_points([(2, 20), (0, 0), (1, 10)]).sorted()
        assert series.points()[0] == TimeSeriesPoint(0.0, 0.0)
        assert len(series) == 3


class TestPeakThrust:

    def test_first_occurrence(self):
        result = MetricExtractor().calculate_peak_thrust([(0, 1), (1, 7), (2, 7), (3, 2)])

        assert result.peak_thrust == 7.0
        assert result.peak_thrust_time == 1.0

    def test_nan_values_skipped(self):
        result = MetricExtractor().calculate_peak_thrust([(0, 1), (1, np.nan), (2, 4)])

        assert result.peak_thrust == 4.0
        assert "1 missing or invalid data points detected" in result.warnings

    def test_all_nan(self):
        result = MetricExtractor().calculate_peak_thrust([(0, np.nan), (1, np.nan)])

        assert result.peak_thrust is None
        assert result.peak_thrust_time is None
        assert "No valid thrust values found" in result.warnings


class TestBurnDuration:

    def test_threshold_scan(self):
        """First and last samples at or above threshold bound the burn."""
        series = [(0, 0), (1, 0.5), (2, 5), (3, 5), (4, 0.5), (5, 0)]
        result = MetricExtractor(MetricCalculationOptions(thrust_threshold=1.0)).calculate_burn_duration(series)

        assert result.burn_start_time == 2.0
        assert result.burn_end_time == 3.0
        assert result.burn_duration == 1.0
        print("[PASS] Burn window 2.0s -> 3.0s")

    def test_never_above_threshold(self):
        result = MetricExtractor().calculate_burn_duration([(0, 0), (1, 0.5)])

        assert result.burn_duration is None
        assert result.burn_start_time is None
        assert "Could not determine burn start/end times" in result.warnings

    def test_short_burn_warns_but_keeps_value(self):
        series = [(0.0, 0), (0.01, 5), (0.02, 5), (0.03, 0)]
        result = MetricExtractor().calculate_burn_duration(series)

        assert result.burn_duration == pytest.approx(0.01)
        assert "Burn duration (0.010s) below minimum threshold (0.1s)" in result.warnings


class TestAreaUnderCurve:

    def test_triangle(self):
        """Two trapezoids of area 5 each."""
        result = MetricExtractor().calculate_area_under_curve([(0, 0), (1, 10), (2, 0)])
        assert result.area_under_curve == pytest.approx(10.0)

    def test_nan_pairs_skipped(self):
        """Pairs touching NaN are left out rather than zero-filled."""
        series = [(0, 0), (1, 10), (2, np.nan), (3, 10)]
        result = MetricExtractor().calculate_area_under_curve(series)

        assert result.area_under_curve == pytest.approx(5.0)

    def test_negative_area_reported(self):
        result = MetricExtractor().calculate_area_under_curve([(0, -5), (1, -5)])

        assert result.area_under_curve == pytest.approx(-5.0)
        assert "Negative area under curve - check for data quality issues" in result.warnings
        assert "2 negative thrust values detected" in result.warnings

    def test_caller_order_irrelevant(self):
        ordered = [(0, 0), (1, 10), (2, 0)]
        shuffled = [(2, 0), (0, 0), (1, 10)]
        extractor = MetricExtractor()

        assert (extractor.calculate_area_under_curve(shuffled).area_under_curve
                == extractor.calculate_area_under_curve(ordered).area_under_curve)


class TestValidation:

    def test_insufficient_points(self):
        extractor = MetricExtractor()
        metrics = extractor.extract_all_metrics([(0, 5)])

        assert metrics.peak_thrust is None
        assert metrics.rise_time is None
        assert metrics.burn_duration is None
        assert metrics.area_under_curve is None
        assert metrics.warnings == ['Insufficient data points for metric calculation']

    def test_non_uniform_sampling(self):
        series = TimeSeries.from_points([(0, 1), (1, 2), (2, 3), (10, 4)])
        warnings = validate_series(series)
        assert "Non-uniform time sampling detected - results may be less accurate" in warnings

    def test_uniform_sampling_clean(self):
        series = TimeSeries.from_points([(0, 1), (1, 2), (2, 3), (3, 4)])
        assert validate_series(series) == []


class TestExtractAllMetrics:
    """Test aggregate extraction."""

    def test_warning_deduplication(self):
        """Each sub-computation reports the negative values; the result lists it once."""
        series = [(0, -1), (1, 10), (2, 100), (3, 10), (4, -1)]
        metrics = MetricExtractor().extract_all_metrics(series)

        assert metrics.warnings.count("2 negative thrust values detected") == 1

    def test_idempotent(self):
        series = create_motor_curve()
        extractor = MetricExtractor()

        first = extractor.extract_all_metrics(series)
        second = extractor.extract_all_metrics(series)

        assert first == second

    def test_motor_curve(self):
        """Trapezoid: peak near 450 N, ~2.5 s burn, impulse ~ 450 x 2.4."""
        metrics = MetricExtractor(MetricCalculationOptions(thrust_threshold=5.0)).extract_all_metrics(
            create_motor_curve()
        )

        assert metrics.peak_thrust == pytest.approx(450.0, rel=0.01)
        assert metrics.burn_duration == pytest.approx(2.5, abs=0.02)
        assert metrics.rise_time == pytest.approx(0.08, abs=0.01)
        assert metrics.area_under_curve == pytest.approx(450.0 * 2.4, rel=0.01)
        assert metrics.average_thrust == pytest.approx(
            metrics.area_under_curve / metrics.burn_duration
        )
        print(f"[PASS] Motor curve metrics: {metrics.to_dict()}")

    def test_accepts_points(self):
        points = [TimeSeriesPoint(0, 0), TimeSeriesPoint(1, 10), TimeSeriesPoint(2, 0)]
        metrics = MetricExtractor().extract_all_metrics(points)
        assert metrics.total_impulse == pytest.approx(10.0)

    def test_infinite_values_invalid(self):
        """An infinite sample counts as missing and never becomes the peak."""
        series = [(0, 0), (1, 10), (2, 50), (3, 100), (4, np.inf), (5, 100), (6, -np.inf)]
        metrics = MetricExtractor().extract_all_metrics(series)

        assert metrics.peak_thrust == 100.0
        assert metrics.peak_thrust_time == 3.0
        assert metrics.rise_time == pytest.approx(1.8)
        assert np.isfinite(metrics.area_under_curve)
        assert "2 missing or invalid data points detected" in metrics.warnings


class TestRowPreparation:
    """Test conversion of parsed rows to a numeric series."""

    def test_invalid_points_dropped_and_sorted(self):
        rows = [
            {'t': '2', 'v': '5'},
            {'t': '1', 'v': ''},
            {'t': 'bad', 'v': '3'},
            {'t': '0', 'v': '1'},
        ]
        series = prepare_time_series(rows, 't', 'v')

        assert series.time.tolist() == [0.0, 2.0]
        assert series.value.tolist() == [1.0, 5.0]

    def test_iso_time_column(self):
        rows = [
            {'ts': '2024-01-01T00:00:00.000Z', 'v': 1.0},
            {'ts': '2024-01-01T00:00:01.500Z', 'v': 2.0},
        ]
        series = prepare_time_series(rows, 'ts', 'v')

        assert series.time[1] - series.time[0] == pytest.approx(1.5)

    def test_extract_from_rows(self):
        rows = [{'time': '0', 'thrust': '0'}, {'time': '1', 'thrust': '10'}, {'time': '2', 'thrust': '100'}]
        metrics = extract_metrics_from_rows(rows, 'time', 'thrust')

        assert metrics.peak_thrust == 100.0
        assert metrics.peak_thrust_time == 2.0
        assert metrics.rise_time == pytest.approx(0.8889, abs=1e-4)


def run_all_tests():
    """Run all tests and report results."""
    print("=" * 60)
    print("Metric Extraction Tests")
    print("=" * 60)

    test_classes = [
        TestRiseTime,
        TestPeakThrust,
        TestBurnDuration,
        TestAreaUnderCurve,
        TestValidation,
        TestExtractAllMetrics,
        TestRowPreparation,
    ]

    passed = 0
    failed = 0

    for test_class in test_classes:
        print(f"\n{test_class.__name__}")
        print("-" * 40)

        instance = test_class()
        for method_name in [m for m in dir(instance) if m.startswith('test_')]:
            try:
                getattr(instance, method_name)()
                passed += 1
            except Exception as e:
                print(f"[FAIL] {method_name}: {e}")
                failed += 1

    print("\n" + "=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == '__main__':
    success = run_all_tests()
    sys.exit(0 if success else 1)
