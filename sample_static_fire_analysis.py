"""
Sample Script: End-to-end static fire analysis

Generates a small batch of synthetic runs in memory (or reads a directory
of exports), runs the batch pipeline, and prints per-run metrics plus a
drift comparison against the first run.

Usage:
    python sample_static_fire_analysis.py
    python sample_static_fire_analysis.py --input-dir ./sample_static_fire_data
    python sample_static_fire_analysis.py --config bench.yaml --export results.json
"""

import argparse
import logging

from generate_sample_data import SCENARIOS, generate_static_fire_data
from thrustbench.batch_analysis import (
    InputFile,
    discover_input_files,
    export_batch_results,
    load_input_files,
    run_batch_analysis,
)
from thrustbench.comparison import compare_runs
from thrustbench.config import ConfigManager


def create_sample_batch(seed: int = 42):
    """One run per scenario, CSV text in memory, plus one deliberately broken file."""
    files = []
    for i, scenario in enumerate(SCENARIOS):
        df = generate_static_fire_data(scenario=scenario, seed=seed + i)
        files.append(InputFile(f'SF-{scenario}.csv', df.to_csv(index=False)))
    files.append(InputFile('SF-corrupt.json', '[{"time_s": 0, "thrust_n": 1'))
    return files


def main():
    parser = argparse.ArgumentParser(description='Run ThrustBench on a batch of static-fire files')
    parser.add_argument('--input-dir', type=str, default=None,
                        help='Directory of .csv/.tsv/.json exports (default: generate in memory)')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML or JSON configuration file')
    parser.add_argument('--export', type=str, default=None,
                        help='Write results to this .csv or .json path')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
    )

    overrides = ConfigManager.load_from_file(args.config) if args.config else None
    config = ConfigManager.build(overrides)

    if args.input_dir:
        files = load_input_files(discover_input_files(args.input_dir))
    else:
        files = create_sample_batch()

    print("=" * 60)
    print("ThrustBench Static Fire Analysis")
    print("=" * 60)

    report = run_batch_analysis(files, config)
    print(report.summary())

    print("\nPer-run metrics:")
    for analysis in report.analyses:
        m = analysis.metrics
        if m is None:
            print(f"  {analysis.file_name}: no metrics ({'; '.join(analysis.notices)})")
            continue
        print(f"  {analysis.file_name} [{analysis.time_column} / {analysis.thrust_column}]")
        print(f"    Peak thrust:   {m.peak_thrust}")
        print(f"    Rise time:     {m.rise_time}")
        print(f"    Burn duration: {m.burn_duration}")
        print(f"    Total impulse: {m.area_under_curve}")
        for warning in m.warnings:
            print(f"    ! {warning}")

    for notice in report.notices:
        print(f"\nNote: {notice}")

    with_metrics = [a for a in report.analyses if a.metrics is not None]
    if len(with_metrics) >= 2:
        comparison = compare_runs(with_metrics, config.comparison)
        print()
        print(comparison.summary())

    if args.export:
        fmt = 'json' if args.export.lower().endswith('.json') else 'csv'
        path = export_batch_results(report, args.export, format=fmt)
        print(f"\nResults written to {path}")


if __name__ == '__main__':
    main()
