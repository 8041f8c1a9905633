"""
Static Fire Sample Data Generator
=================================
Generates realistic synthetic static-fire thrust data for exercising the
ThrustBench parsers, metric extraction and drift comparison.

Produces:
- CSV (with a commented metadata header), TSV, semicolon CSV or JSON files
- Columns: time_s, thrust_n, chamber_pressure_bar, temp_c

Data profiles simulate real static-fire behaviour:
- Pre-ignition baseline (load cell zero offset)
- Ignition transient (tanh ramp, optional overshoot)
- Sustained burn with sensor noise
- Tail-off and post-burn baseline

Scenarios:
- nominal       Standard solid motor burn
- hard_start    Large ignition overshoot
- short_burn    Sub-second burn
- chuffing      Oscillatory, unstable combustion
- noisy_sensor  Heavy noise with dropouts (empty cells / nulls)

Usage:
    python generate_sample_data.py

    # One scenario, JSON output
    python generate_sample_data.py --scenario hard_start --format json

    # A batch of runs in every format for drift comparison
    python generate_sample_data.py --batch --n-runs 6
"""

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd


# =============================================================================
# DATA GENERATION PROFILES
# =============================================================================

def _burn_profile(t: np.ndarray, t_ignition: float = 0.5,
                  t_burnout: float = 3.0,
                  ramp_sharpness: float = 12.0) -> np.ndarray:
    """
    Smooth ignition/burnout envelope using tanh transitions.

    Args:
        t: Time array in seconds
        t_ignition: Ignition onset (s)
        t_burnout: Tail-off onset (s)
        ramp_sharpness: Transition steepness (higher = sharper)

    Returns:
        Profile array in [0, 1]
    """
    ignition = 0.5 * (1 + np.tanh(ramp_sharpness * (t - t_ignition)))
    burnout = 0.5 * (1 - np.tanh(ramp_sharpness * (t - t_burnout)))
    return ignition * burnout


def _add_ignition_overshoot(signal: np.ndarray, t: np.ndarray,
                            t_ignition: float = 0.5,
                            overshoot_pct: float = 0.10,
                            decay_rate: float = 6.0) -> np.ndarray:
    """Decaying oscillation after ignition, scaled to the signal maximum."""
    mask = t > t_ignition
    overshoot = np.zeros_like(signal)
    overshoot[mask] = (overshoot_pct * np.max(signal) *
                       np.exp(-decay_rate * (t[mask] - t_ignition)) *
                       np.sin(2 * np.pi * 6 * (t[mask] - t_ignition)))
    return signal + overshoot


def generate_sensor_noise(n_samples: int, noise_std: float,
                          rng: np.random.Generator,
                          drift_rate: float = 0.0) -> np.ndarray:
    """White noise with optional linear drift per sample."""
    return rng.normal(0, noise_std, n_samples) + drift_rate * np.arange(n_samples)


# =============================================================================
# SCENARIO DEFINITIONS
# =============================================================================

DEFAULT_MOTOR = {
    'peak_thrust_n': 450.0,
    'chamber_pressure_bar': 35.0,
    'ambient_temp_c': 21.0,
    'duration_s': 4.0,
    'sample_rate_hz': 200,
    't_ignition_s': 0.5,
    't_burnout_s': 3.0,
    'overshoot_pct': 0.08,
    'noise_pct': 0.01,
}

SCENARIOS = {
    'nominal': {
        'description': 'Nominal static fire with standard performance',
        'overrides': {},
    },
    'hard_start': {
        'description': 'Hard start - large ignition pressure spike',
        'overrides': {'overshoot_pct': 0.45},
    },
    'short_burn': {
        'description': 'Short burn (under one second of thrust)',
        'overrides': {'t_burnout_s': 1.2, 'duration_s': 2.0},
    },
    'chuffing': {
        'description': 'Chuffing - oscillatory low-pressure combustion',
        'overrides': {'peak_thrust_n': 180.0, 'chamber_pressure_bar': 12.0},
        'anomaly': 'chuffing',
    },
    'noisy_sensor': {
        'description': 'Nominal burn recorded with a noisy load cell and dropouts',
        'overrides': {'noise_pct': 0.06},
        'anomaly': 'dropout',
    },
}

FORMATS = ('csv', 'tsv', 'semicolon', 'json')


# =============================================================================
# CORE DATA GENERATOR
# =============================================================================

def generate_static_fire_data(
    scenario: str = 'nominal',
    seed: Optional[int] = None,
    motor_params: Optional[Dict[str, Any]] = None,
) -> pd.DataFrame:
    """
    Generate one synthetic static-fire run.

    Args:
        scenario: One of the SCENARIOS keys
        seed: Random seed for reproducibility
        motor_params: Override default motor parameters

    Returns:
        DataFrame with time_s, thrust_n, chamber_pressure_bar, temp_c
    """
    rng = np.random.default_rng(seed)

    params = dict(DEFAULT_MOTOR)
    if motor_params:
        params.update(motor_params)

    scenario_def = SCENARIOS.get(scenario, SCENARIOS['nominal'])
    params.update(scenario_def.get('overrides', {}))

    duration_s = params['duration_s']
    n_samples = int(duration_s * params['sample_rate_hz'])
    time_s = np.linspace(0, duration_s, n_samples)

    profile = _burn_profile(time_s, params['t_ignition_s'], params['t_burnout_s'])

    # --- Thrust (N) ---
    thrust = params['peak_thrust_n'] * profile
    thrust = _add_ignition_overshoot(thrust, time_s, params['t_ignition_s'],
                                     overshoot_pct=params['overshoot_pct'])

    # --- Chamber pressure (bar) ---
    pressure = params['chamber_pressure_bar'] * profile
    pressure = _add_ignition_overshoot(pressure, time_s, params['t_ignition_s'],
                                       overshoot_pct=params['overshoot_pct'] * 1.2)

    anomaly = scenario_def.get('anomaly')
    if anomaly == 'chuffing':
        pulses = 0.5 * (1 + np.sin(2 * np.pi * 4 * time_s))
        thrust = thrust * pulses
        pressure = pressure * pulses

    thrust = thrust + generate_sensor_noise(
        n_samples, params['peak_thrust_n'] * params['noise_pct'], rng)
    pressure = np.maximum(pressure + generate_sensor_noise(
        n_samples, params['chamber_pressure_bar'] * 0.005, rng), 0.0)

    # --- Case temperature (C), lags the burn ---
    heat = np.cumsum(profile) / params['sample_rate_hz']
    temp = (params['ambient_temp_c'] + 18.0 * heat
            + generate_sensor_noise(n_samples, 0.3, rng))

    if anomaly == 'dropout':
        for start in rng.integers(0, n_samples - 10, size=3):
            thrust[start:start + 5] = np.nan

    return pd.DataFrame({
        'time_s': np.round(time_s, 4),
        'thrust_n': thrust,
        'chamber_pressure_bar': pressure,
        'temp_c': temp,
    })


# =============================================================================
# FILE OUTPUT
# =============================================================================

def _metadata_header(run_id: str, scenario: str) -> List[str]:
    return [
        f"# Run: {run_id}",
        f"# Scenario: {scenario} - {SCENARIOS[scenario]['description']}",
        "# Units: s, N, bar, C",
    ]


def write_run_file(
    output_dir: str,
    run_id: str,
    scenario: str = 'nominal',
    file_format: str = 'csv',
    seed: Optional[int] = None,
) -> Path:
    """
    Write one run to disk in the requested format.

    Args:
        output_dir: Directory to write into
        run_id: Run identifier (used in the file name)
        scenario: Scenario name
        file_format: 'csv', 'tsv', 'semicolon' or 'json'
        seed: Random seed

    Returns:
        Path of the written file
    """
    if file_format not in FORMATS:
        raise ValueError(f"Unknown format: {file_format}")

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    df = generate_static_fire_data(scenario=scenario, seed=seed)

    if file_format == 'json':
        path = out / f'{run_id}.json'
        records = json.loads(df.to_json(orient='records', double_precision=6))
        with open(path, 'w') as f:
            json.dump(records, f, indent=1)
        return path

    delimiter = {'csv': ',', 'tsv': '\t', 'semicolon': ';'}[file_format]
    path = out / f'{run_id}.{"tsv" if file_format == "tsv" else "csv"}'
    body = df.to_csv(index=False, sep=delimiter, float_format='%.6f')

    with open(path, 'w', newline='') as f:
        if file_format != 'tsv':
            f.write('\n'.join(_metadata_header(run_id, scenario)) + '\n')
        f.write(body)

    return path


def generate_batch(
    output_dir: str,
    n_runs: int = 6,
    base_seed: int = 42,
) -> List[Path]:
    """
    Generate a batch of runs cycling through every output format.

    The first run is nominal; later runs mix in the off-nominal scenarios
    so a drift comparison has something to show.
    """
    rng = np.random.default_rng(base_seed)
    scenario_pool = ['nominal'] + list(rng.choice(list(SCENARIOS), size=max(0, n_runs - 1)))

    paths = []
    for i in range(n_runs):
        run_id = f'SF-{i + 1:03d}'
        scenario = str(scenario_pool[i])
        file_format = FORMATS[i % len(FORMATS)]
        path = write_run_file(output_dir, run_id, scenario, file_format, seed=base_seed + i)
        paths.append(path)
        print(f'  [{i + 1}/{n_runs}] {path.name} ({scenario})')

    return paths


# =============================================================================
# MAIN / CLI
# =============================================================================

def main():
    parser = argparse.ArgumentParser(
        description='Generate sample static-fire data for ThrustBench',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Scenarios:
  nominal        Standard solid motor burn
  hard_start     Large ignition overshoot
  short_burn     Sub-second burn
  chuffing       Oscillatory, unstable combustion
  noisy_sensor   Heavy noise with dropouts

Examples:
  python generate_sample_data.py
  python generate_sample_data.py --scenario chuffing --format tsv --seed 7
  python generate_sample_data.py --batch --n-runs 8
        """,
    )

    parser.add_argument(
        '--scenario', type=str, default='nominal',
        choices=list(SCENARIOS.keys()),
        help='Run scenario to generate (default: nominal)',
    )
    parser.add_argument(
        '--format', type=str, default='csv', dest='file_format',
        choices=list(FORMATS),
        help='Output format (default: csv)',
    )
    parser.add_argument(
        '--output-dir', type=str, default='./sample_static_fire_data',
        help='Output directory (default: ./sample_static_fire_data)',
    )
    parser.add_argument(
        '--seed', type=int, default=42,
        help='Random seed for reproducibility (default: 42)',
    )
    parser.add_argument(
        '--batch', action='store_true',
        help='Generate a batch of runs in mixed formats',
    )
    parser.add_argument(
        '--n-runs', type=int, default=6,
        help='Number of runs for batch mode (default: 6)',
    )

    args = parser.parse_args()

    print('=' * 70)
    print('ThrustBench Static Fire Sample Data Generator')
    print('=' * 70)
    print()

    if args.batch:
        print(f'Generating batch of {args.n_runs} runs...')
        print(f'Output: {args.output_dir}/')
        print()
        paths = generate_batch(args.output_dir, n_runs=args.n_runs, base_seed=args.seed)
        print()
        print(f'Generated {len(paths)} run files')
    else:
        run_id = f'SF-{args.scenario.upper()}'
        path = write_run_file(
            args.output_dir, run_id, args.scenario, args.file_format, seed=args.seed
        )
        print(f'Scenario:  {args.scenario}')
        print(f'Format:    {args.file_format}')
        print(f'Seed:      {args.seed}')
        print(f'Written:   {path}')

    print()
    print('-' * 70)
    print('Analyze with:')
    print(f'  python sample_static_fire_analysis.py --input-dir {args.output_dir}')
    print()


if __name__ == '__main__':
    main()
