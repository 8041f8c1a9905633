"""
Type Inference Tests
====================
Column classification, confidence bounds and timestamp normalization.

Run with: python -m pytest tests/test_type_inference.py -v
Or:       python tests/test_type_inference.py
"""

import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from thrustbench.type_inference import (
    ColumnType,
    infer_column_type,
    infer_dataset_types,
    is_timestamp_like,
    normalize_timestamp,
    normalize_timestamp_columns,
    timestamp_to_seconds,
    to_number,
)


def create_random_column(rng, n=20):
    """Mixed junk: numbers, words, blanks, booleans, dates."""
    pool = ['1.5', '-3', 'abc', '', None, 'true', 'no', '2024-01-01', '7e3', 'nan?']
    return [pool[i] for i in rng.integers(0, len(pool), size=n)]


class TestColumnClassification:
    """Test the decision order and thresholds."""

    def test_numbers(self):
        result = infer_column_type(['1.5', '2.0', '3', '-4.25'])
        assert result.type == ColumnType.NUMBER
        assert result.confidence == 1.0
        print(f"[PASS] Number column: {result.to_dict()}")

    def test_booleans(self):
        result = infer_column_type(['true', 'FALSE', 'yes', 'no'])
        assert result.type == ColumnType.BOOLEAN
        assert result.confidence == 1.0

    def test_zero_one_column_is_boolean(self):
        """0/1 flags are boolean tokens, checked before number."""
        result = infer_column_type(['0', '1', '1', '0'])
        assert result.type == ColumnType.BOOLEAN

    def test_native_json_booleans(self):
        result = infer_column_type([True, False, True])
        assert result.type == ColumnType.BOOLEAN

    def test_iso_timestamps(self):
        values = ['2024-05-01T12:00:00Z', '2024-05-01T12:00:01Z', '2024-05-01T12:00:02Z']
        result = infer_column_type(values)
        assert result.type == ColumnType.TIMESTAMP
        assert result.confidence == 1.0

    def test_sql_datetimes(self):
        result = infer_column_type(['2024-05-01 12:00:00', '2024-05-01 12:00:01'])
        assert result.type == ColumnType.TIMESTAMP

    def test_epoch_seconds_are_timestamps(self):
        result = infer_column_type(['1700000000', '1700000001', '1700000002'])
        assert result.type == ColumnType.TIMESTAMP

    def test_small_integers_not_timestamps(self):
        """Sensor readings are not mistaken for epoch seconds."""
        assert not is_timestamp_like('250')
        assert not is_timestamp_like(12.5)
        assert is_timestamp_like(1700000000)

    def test_mixed_strings(self):
        """Below every threshold -> string with 1 - max(number, timestamp) fraction."""
        result = infer_column_type(['alpha', 'gamma', '1'])
        assert result.type == ColumnType.STRING
        assert abs(result.confidence - (1 - 1 / 3)) < 1e-9

    def test_empty_values_ignored(self):
        """Blanks do not dilute the fraction."""
        result = infer_column_type(['1.5', '', None, '2.5', float('nan')])
        assert result.type == ColumnType.NUMBER
        assert result.confidence == 1.0

    def test_all_empty_column(self):
        """All null/empty -> string with zero confidence."""
        result = infer_column_type([None, '', None])
        assert result.type == ColumnType.STRING
        assert result.confidence == 0.0

        assert infer_column_type([]).confidence == 0.0

    def test_number_threshold(self):
        """Exactly 80% numeric is enough."""
        result = infer_column_type(['1.5', '2.5', '3.5', '4.5', 'x'])
        assert result.type == ColumnType.NUMBER
        assert abs(result.confidence - 0.8) < 1e-9

    def test_confidence_bounds(self):
        """Confidence stays in [0, 1] for arbitrary input."""
        rng = np.random.default_rng(42)
        for _ in range(50):
            result = infer_column_type(create_random_column(rng))
            assert 0.0 <= result.confidence <= 1.0
        print("[PASS] Confidence bounded for 50 random columns")


class TestNumberParsing:

    def test_to_number(self):
        assert to_number('3.5') == 3.5
        assert to_number(' 7 ') == 7.0
        assert to_number(4) == 4.0
        assert to_number('abc') is None
        assert to_number('') is None
        assert to_number(True) is None
        assert to_number(float('inf')) is None


class TestTimestampNormalization:
    """Test canonical timestamp output."""

    def test_sql_datetime_to_iso(self):
        assert normalize_timestamp('2024-05-01 12:00:00') == '2024-05-01T12:00:00.000Z'

    def test_milliseconds_kept(self):
        assert normalize_timestamp('2024-05-01T12:00:00.250Z') == '2024-05-01T12:00:00.250Z'

    def test_timezone_converted_to_utc(self):
        assert normalize_timestamp('2024-05-01T14:00:00+02:00') == '2024-05-01T12:00:00.000Z'

    def test_epoch_seconds(self):
        assert normalize_timestamp(1700000000) == '2023-11-14T22:13:20.000Z'
        assert normalize_timestamp('1700000000') == '2023-11-14T22:13:20.000Z'

    def test_unreadable(self):
        assert normalize_timestamp('not a date') is None
        assert normalize_timestamp(None) is None
        assert normalize_timestamp('') is None

    def test_timestamp_to_seconds(self):
        """ISO strings become Unix seconds; numbers pass through."""
        assert timestamp_to_seconds('2023-11-14T22:13:20.000Z') == 1700000000.0
        assert timestamp_to_seconds('0.25') == 0.25
        assert timestamp_to_seconds(None) is None
        assert timestamp_to_seconds('garbage') is None

    def test_normalize_columns_copies_rows(self):
        """Input rows are left untouched; only timestamp columns change."""
        rows = [{'ts': '2024-05-01 12:00:00', 'v': '1'}]
        out = normalize_timestamp_columns(['ts', 'v'], rows, {'ts': ColumnType.TIMESTAMP, 'v': ColumnType.NUMBER})

        assert out[0] == {'ts': '2024-05-01T12:00:00.000Z', 'v': '1'}
        assert rows[0]['ts'] == '2024-05-01 12:00:00'

    def test_labels_are_not_dates(self):
        """Run IDs, month names and relative words have no explicit year."""
        for label in ['T1', 'T2', 'May', '1st', 'now', 'today', '12:30']:
            assert not is_timestamp_like(label), label
            assert normalize_timestamp(label) is None, label

        result = infer_column_type(['T1', 'T2', 'T3'])
        assert result.type == ColumnType.STRING

    def test_out_of_range_year(self):
        assert normalize_timestamp('0001-01-01 00:00:00') is None
        assert normalize_timestamp('2024-05-01') == '2024-05-01T00:00:00.000Z'

    def test_month_name_with_year(self):
        assert normalize_timestamp('May 1, 2024') == '2024-05-01T00:00:00.000Z'

    def test_repeatable(self):
        """Normalization never depends on the wall clock."""
        values = ['2024-05-01 12:00:00', 'now', '31.12.2023']
        assert [normalize_timestamp(v) for v in values] == [normalize_timestamp(v) for v in values]
        assert normalize_timestamp('now') is None


class TestDatasetInference:

    def test_low_confidence_warning(self):
        """Columns under the threshold produce a formatted warning."""
        headers = ['notes']
        rows = [{'notes': 'alpha'}, {'notes': '1'}, {'notes': '2'}]
        results, warnings = infer_dataset_types(headers, rows, 0.5)

        assert results['notes'].type == ColumnType.STRING
        assert warnings == ["Low confidence (33.3%) for type inference of column 'notes'"]

    def test_confident_columns_no_warning(self):
        headers = ['time', 'thrust']
        rows = [{'time': '0.0', 'thrust': '1.5'}, {'time': '0.1', 'thrust': '2.5'}]
        results, warnings = infer_dataset_types(headers, rows)

        assert results['time'].type == ColumnType.NUMBER
        assert results['thrust'].type == ColumnType.NUMBER
        assert warnings == []

    def test_all_empty_column_warns(self):
        _, warnings = infer_dataset_types(['x'], [{'x': None}, {'x': ''}])
        assert warnings == ["Low confidence (0.0%) for type inference of column 'x'"]


def run_all_tests():
    """Run all tests and report results."""
    print("=" * 60)
    print("Type Inference Tests")
    print("=" * 60)

    test_classes = [
        TestColumnClassification,
        TestNumberParsing,
        TestTimestampNormalization,
        TestDatasetInference,
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
