"""
Batch Solve - Random Scenarios
==============================
Generates random target/wind scenarios, solves each, and reports how well
the solver locks on.

Uses:
1. The fire-control target generator (uniform target range and wind)
2. The nested stiffness/angle search
3. Optional check of each solution against the adaptive RK45 flight
"""

import time
from datetime import datetime
from typing import List, Tuple

import numpy as np

from config import LauncherSpec, SearchResult
from catapult_model import derive_release, reference_range
from fire_control import FireControl


def run_batch(n: int = 20, seed: int = None, verify: bool = False) -> List[Tuple[LauncherSpec, SearchResult]]:
    """Solve n random scenarios, printing one line per scenario."""
    rng = np.random.default_rng(seed)
    control = FireControl()
    results = []

    header = f"{'#':>3} {'target':>7} {'wind':>6} {'k':>7} {'angle':>5} {'range':>8} {'error':>6} {'auto':>5}"
    if verify:
        header += f" {'rk45':>8}"
    print(header)
    print("-" * len(header))

    for i in range(n):
        spec = control.generate_target(rng)
        result = control.run_solver()
        results.append((spec, result))

        line = (f"{i + 1:>3} {spec.target_range:>7.0f} {spec.wind_speed:>+6.1f} "
                f"{result.k_stiffness:>7d} {result.launch_angle:>5d} "
                f"{result.range_distance:>8.2f} {result.error:>6.2f} "
                f"{'yes' if result.auto_corrected else 'no':>5}")
        if verify:
            release = derive_release(control.spec)
            line += f" {reference_range(release.pos, release.vel, control.spec):>8.2f}"
        print(line)

    return results


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Solve random catapult scenarios")
    parser.add_argument("--n", type=int, default=20, help="Number of scenarios")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--verify", action="store_true", help="Compare with the RK45 reference flight")
    args = parser.parse_args()

    print("=" * 70)
    print("BATCH SOLVE")
    print("=" * 70)
    print(f"Started: {datetime.now()}")
    print()

    start_time = time.time()
    results = run_batch(n=args.n, seed=args.seed, verify=args.verify)
    elapsed = time.time() - start_time

    n_locked = sum(1 for _, r in results if r.locked)
    n_corrected = sum(1 for _, r in results if r.auto_corrected)
    errors = np.array([r.error for _, r in results])

    print()
    print("=" * 70)
    print("SUMMARY")
    print("=" * 70)
    print(f"Scenarios: {len(results)}")
    print(f"Locked: {n_locked}")
    print(f"Auto-corrected: {n_corrected}")
    if len(errors):
        print(f"Median error: {np.median(errors):.3f} m")
        print(f"Worst error: {np.max(errors):.3f} m")
    print(f"Total time: {elapsed:.1f} s")


if __name__ == "__main__":
    main()
