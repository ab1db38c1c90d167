"""
Test Suite: Solution Search
===========================
Unit tests for the stiffness bisection, the angle sweep and solve().

Tests:
- Inner bisection on its own
- Angle sweep on its own
- End-to-end solve for reachable, unreachable and degenerate targets
- Determinism and presentation rounding
"""

import math

import numpy as np
import pytest

from config import LauncherSpec, SearchBounds, SearchResult, LOCK_TOLERANCE
from solver import (
    AngleFit,
    StiffnessFit,
    evaluate_range,
    parameter_study,
    solve,
    solve_stiffness_for_angle,
    sweep_angles,
    _round_half_up,
)


class TestSearchBounds:

    def test_default_sweep_angles(self):
        assert SearchBounds().sweep_angles() == [15.0, 20.0, 25.0, 30.0, 35.0, 40.0, 45.0,
                                                 50.0, 55.0, 60.0, 65.0, 70.0, 75.0]

    def test_custom_sweep(self):
        bounds = SearchBounds(sweep_start=30.0, sweep_stop=50.0, sweep_step=10.0)
        assert bounds.sweep_angles() == [30.0, 40.0, 50.0]


class TestStiffnessBisection:
    """Inner search at a fixed angle."""

    def test_hits_reachable_target(self, default_spec):
        fit = solve_stiffness_for_angle(default_spec, 45.0)
        assert isinstance(fit, StiffnessFit)
        assert fit.error < 1.0
        assert fit.range_distance == pytest.approx(default_spec.target_range, abs=1.0)

    def test_fit_is_reproducible(self, default_spec):
        fit = solve_stiffness_for_angle(default_spec, 45.0)
        dist = evaluate_range(default_spec, fit.k_stiffness, 45.0)
        assert dist == fit.range_distance
        assert abs(dist - default_spec.target_range) == fit.error

    def test_single_iteration_evaluates_bracket_midpoint(self, default_spec):
        bounds = SearchBounds(n_bisection=1)
        fit = solve_stiffness_for_angle(default_spec, 45.0, bounds)
        assert fit.k_stiffness == pytest.approx((100.0 + 150000.0) / 2)

    def test_farther_target_needs_more_stiffness(self, default_spec):
        near = solve_stiffness_for_angle(default_spec.with_(target_range=100.0), 45.0)
        far = solve_stiffness_for_angle(default_spec.with_(target_range=300.0), 45.0)
        assert far.k_stiffness > near.k_stiffness

    def test_unreachable_target_saturates_bracket(self, default_spec):
        fit = solve_stiffness_for_angle(default_spec.with_(target_range=2000.0), 45.0)
        assert fit.k_stiffness == pytest.approx(150000.0, abs=1.0)
        assert fit.error > LOCK_TOLERANCE

    def test_best_seen_not_worse_than_final_midpoint(self, default_spec):
        bounds = SearchBounds(n_bisection=6)
        fit = solve_stiffness_for_angle(default_spec, 45.0, bounds)

        lo, hi = bounds.k_stiffness
        errors = []
        for _ in range(bounds.n_bisection):
            mid = (lo + hi) / 2
            err = evaluate_range(default_spec, mid, 45.0) - default_spec.target_range
            errors.append(abs(err))
            if err > 0:
                hi = mid
            else:
                lo = mid
        assert fit.error == min(errors)


class TestAngleSweep:
    """Outer search on its own."""

    def test_sweep_replaces_failed_fit(self, default_spec):
        failed = AngleFit(10.0, StiffnessFit(100.0, math.inf, math.nan))
        best = sweep_angles(default_spec, failed)
        assert best.launch_angle in SearchBounds().sweep_angles()
        assert best.fit.error < 1.0

    def test_sweep_keeps_perfect_initial_fit(self, default_spec):
        perfect = AngleFit(42.0, StiffnessFit(5000.0, 0.0, 150.0))
        assert sweep_angles(default_spec, perfect) is perfect


class TestSolve:
    """End-to-end search."""

    def test_reachable_target_at_requested_angle(self, default_spec):
        result = solve(default_spec)

        assert isinstance(result, SearchResult)
        assert result.auto_corrected is False
        assert result.launch_angle == 45
        assert result.requested_angle == 45.0
        assert result.error <= 1.0
        assert result.locked
        assert isinstance(result.k_stiffness, int)
        assert result.k_stiffness == _round_half_up(result.raw_stiffness)

    def test_rounded_settings_hit_target(self, default_spec):
        result = solve(default_spec)
        dist = evaluate_range(default_spec, result.k_stiffness, result.launch_angle)
        assert abs(dist - default_spec.target_range) <= SearchBounds().retry_tolerance

    def test_deterministic(self, default_spec):
        assert solve(default_spec) == solve(default_spec)

    def test_auto_corrects_unusable_angle(self, default_spec):
        """At 10 deg a 6 m arm releases below ground, so only the sweep can hit."""
        spec = default_spec.with_(launch_angle=10.0)
        result = solve(spec)

        assert result.auto_corrected is True
        assert result.requested_angle == 10.0
        assert result.launch_angle != 10
        assert result.launch_angle in [int(a) for a in SearchBounds().sweep_angles()]
        assert result.error < LOCK_TOLERANCE

    def test_unreachable_target_keeps_requested_angle(self, default_spec):
        result = solve(default_spec.with_(target_range=2000.0))

        assert math.isfinite(result.error)
        assert math.isfinite(result.range_distance)
        assert result.error > LOCK_TOLERANCE
        assert not result.locked
        assert result.auto_corrected is False
        assert result.launch_angle == 45
        assert result.k_stiffness == 150000

    def test_zero_target_terminates(self, default_spec):
        result = solve(default_spec.with_(target_range=0.0))

        assert math.isfinite(result.error)
        assert result.error > 0
        assert result.range_distance > 0
        assert 100 <= result.k_stiffness <= 150000

    def test_verbose_prints_progress(self, default_spec, capsys):
        solve(default_spec, verbose=True)
        out = capsys.readouterr().out
        assert "Catapult Solver" in out
        assert "auto-corrected = False" in out

    def test_sweep_committed_at_exact_tolerance(self, default_spec):
        """A sweep result whose error equals the commit tolerance is kept, like locked."""
        spec = default_spec.with_(launch_angle=10.0)
        requested = AngleFit(10.0, solve_stiffness_for_angle(spec, 10.0))
        best = sweep_angles(spec, requested)

        result = solve(spec, SearchBounds(commit_tolerance=best.fit.error))

        assert result.auto_corrected is True
        assert result.error == best.fit.error
        assert result.launch_angle == _round_half_up(best.launch_angle)

    def test_range_and_error_belong_to_raw_stiffness(self, default_spec):
        result = solve(default_spec)
        dist = evaluate_range(default_spec, result.raw_stiffness, result.launch_angle)

        assert result.range_distance == dist
        assert result.error == abs(dist - default_spec.target_range)
        assert result.k_stiffness == _round_half_up(result.raw_stiffness)


class TestRounding:

    @pytest.mark.parametrize("value, expected", [
        (2.5, 3),
        (3.5, 4),
        (4.49, 4),
        (-0.5, 0),
        (149999.99, 150000),
    ])
    def test_round_half_up(self, value, expected):
        assert _round_half_up(value) == expected


class TestParameterStudy:

    def test_stiffness_study_monotonic(self, default_spec):
        results = parameter_study(
            default_spec,
            stiffness_values=np.linspace(1000.0, 50000.0, 8),
            angles=np.array([30.0, 45.0, 60.0]),
            verbose=False,
        )
        values, ranges = results['k_stiffness']
        assert len(ranges) == len(values) == 8
        assert np.all(np.diff(ranges) >= 0)

        angles, angle_ranges = results['launch_angle']
        assert len(angle_ranges) == 3
