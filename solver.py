"""
Catapult Commander: Solution Search
===================================
Finds launcher settings that land the projectile on a target range.

Two nested searches:
- Bisection on spring stiffness at a fixed launch angle
- Sweep over launch angles, used only when the requested angle misses

Range grows monotonically with stiffness (more stored energy, faster
release), which is what makes the bisection valid.
"""

import math
import time
from functools import reduce
from typing import Dict, List, NamedTuple, Optional, Tuple

import numpy as np

from config import LauncherSpec, SearchBounds, SearchResult
from catapult_model import derive_release, integrate


class StiffnessFit(NamedTuple):
    """Best stiffness found for one launch angle."""
    k_stiffness: float
    error: float            # |range - target| [m]
    range_distance: float   # [m]


class AngleFit(NamedTuple):
    launch_angle: float
    fit: StiffnessFit


class _Bracket(NamedTuple):
    lo: float
    hi: float
    best: StiffnessFit


def evaluate_range(spec: LauncherSpec, k_stiffness: float, launch_angle: float) -> float:
    """Range of spec with stiffness and angle replaced [m]."""
    trial = spec.with_(k_stiffness=k_stiffness, launch_angle=launch_angle)
    release = derive_release(trial)
    return integrate(release.pos, release.vel, trial)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def solve_stiffness_for_angle(
    spec: LauncherSpec,
    launch_angle: float,
    bounds: SearchBounds = None
) -> StiffnessFit:
    """
    Bisect stiffness so the range at launch_angle matches spec.target_range.

    Every midpoint is evaluated and the best |error| over all of them is
    kept, since the fixed-step range is a staircase in stiffness and the
    final midpoint need not be the closest.

    Parameters
    ----------
    spec : LauncherSpec
        Launcher parameters including the target range
    launch_angle : float
        Launch angle to solve at [degrees]
    bounds : SearchBounds, optional
        Bracket and iteration count

    Returns
    -------
    StiffnessFit
    """
    bounds = bounds if bounds is not None else SearchBounds()
    target = spec.target_range

    def step(bracket: _Bracket, _) -> _Bracket:
        mid = (bracket.lo + bracket.hi) / 2
        dist = evaluate_range(spec, mid, launch_angle)
        err = dist - target

        best = bracket.best
        if abs(err) < best.error:
            best = StiffnessFit(mid, abs(err), dist)

        # Overshoot: less energy needed
        if err > 0:
            return _Bracket(bracket.lo, mid, best)
        return _Bracket(mid, bracket.hi, best)

    lo, hi = bounds.k_stiffness
    start = _Bracket(lo, hi, StiffnessFit(lo, math.inf, math.nan))
    return reduce(step, range(bounds.n_bisection), start).best


def sweep_angles(
    spec: LauncherSpec,
    initial: AngleFit,
    bounds: SearchBounds = None
) -> AngleFit:
    """
    Solve stiffness at every sweep angle and keep the global best.

    The initial fit (usually the requested angle) is only replaced by a
    strictly smaller error.
    """
    bounds = bounds if bounds is not None else SearchBounds()

    def keep_better(best: AngleFit, angle: float) -> AngleFit:
        attempt = solve_stiffness_for_angle(spec, angle, bounds)
        if attempt.error < best.fit.error:
            return AngleFit(angle, attempt)
        return best

    return reduce(keep_better, bounds.sweep_angles(), initial)


def solve(
    spec: LauncherSpec,
    bounds: SearchBounds = None,
    verbose: bool = False
) -> SearchResult:
    """
    Find stiffness (and, if needed, launch angle) that hits spec.target_range.

    Never raises for unreachable targets: the result always carries the best
    candidate and its error, which the caller has to check.

    Parameters
    ----------
    spec : LauncherSpec
        Snapshot of the launcher, target range included
    bounds : SearchBounds, optional
        Search bounds and tolerances
    verbose : bool
        Print progress

    Returns
    -------
    SearchResult
    """
    bounds = bounds if bounds is not None else SearchBounds()
    start_time = time.time()

    if verbose:
        print("=" * 60)
        print("Catapult Solver")
        print("=" * 60)
        print(f"Target: {spec.target_range:.1f} m, wind: {spec.wind_speed:+.1f} m/s")

    # 1. Requested angle
    requested = AngleFit(
        spec.launch_angle,
        solve_stiffness_for_angle(spec, spec.launch_angle, bounds),
    )
    solution = requested

    if verbose:
        print(f"  {spec.launch_angle:.0f} deg: k = {requested.fit.k_stiffness:.1f}, "
              f"error = {requested.fit.error:.2f} m")

    # 2. Requested angle missed, try every angle
    if requested.fit.error > bounds.retry_tolerance:
        best_global = sweep_angles(spec, requested, bounds)

        if verbose:
            print(f"  Sweep best {best_global.launch_angle:.0f} deg: "
                  f"k = {best_global.fit.k_stiffness:.1f}, error = {best_global.fit.error:.2f} m")

        if best_global.fit.error <= bounds.commit_tolerance:
            solution = best_global
        elif verbose:
            print("  Sweep rejected, keeping requested angle")

    result = SearchResult(
        k_stiffness=_round_half_up(solution.fit.k_stiffness),
        launch_angle=_round_half_up(solution.launch_angle),
        range_distance=solution.fit.range_distance,
        error=solution.fit.error,
        auto_corrected=solution.launch_angle != spec.launch_angle,
        requested_angle=spec.launch_angle,
        raw_stiffness=solution.fit.k_stiffness,
    )

    if verbose:
        print(f"Result: k = {result.k_stiffness} N, angle = {result.launch_angle} deg, "
              f"error = {result.error:.2f} m, auto-corrected = {result.auto_corrected}")
        print(f"Time: {time.time() - start_time:.2f} s")

    return result


def parameter_study(
    spec: LauncherSpec = None,
    stiffness_values: Optional[np.ndarray] = None,
    angles: Optional[np.ndarray] = None,
    verbose: bool = True
) -> Dict[str, Tuple[np.ndarray, List[float]]]:
    """
    Study the effect of stiffness and launch angle on range.

    Varies each parameter while keeping the others at the spec's values.
    """
    spec = spec if spec is not None else LauncherSpec()
    bounds = SearchBounds()

    if stiffness_values is None:
        stiffness_values = np.linspace(bounds.k_stiffness[0], 20000.0, 10)
    if angles is None:
        angles = np.array(bounds.sweep_angles())

    if verbose:
        print("=" * 60)
        print("Parameter Study")
        print("=" * 60)

    studies = [
        ('k_stiffness', stiffness_values,
         lambda val: evaluate_range(spec, val, spec.launch_angle)),
        ('launch_angle', angles,
         lambda val: evaluate_range(spec, spec.k_stiffness, val)),
    ]

    results = {}
    for param_name, values, range_at in studies:
        ranges = [range_at(float(val)) for val in values]
        results[param_name] = (values, ranges)

        if verbose:
            best_idx = int(np.argmax(ranges))
            print(f"\nStudying {param_name}...")
            for val, dist in zip(values, ranges):
                print(f"  {param_name} = {val:9.1f}: range = {dist:8.2f} m")
            print(f"  Best {param_name} = {values[best_idx]:.1f}, range = {ranges[best_idx]:.2f} m")

    return results


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1 and sys.argv[1] == '--study':
        parameter_study()
    else:
        solve(LauncherSpec(), verbose=True)
