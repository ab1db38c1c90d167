"""
Catapult Commander: Simulation Model
====================================
Ballistic kernel for the torsion-lever catapult:
- Analytic launch (energy balance, no swing integration)
- Fixed-step flight with quadratic drag and wind
- High-accuracy reference flight for verification
"""

import math
import warnings
from typing import Iterator, Tuple

import numpy as np
from scipy.integrate import solve_ivp

from config import (
    LauncherSpec, ReleaseState, Trajectory, ShotResult,
    GRAVITY, AIR_DENSITY, DRAG_AREA, PIVOT_X, PIVOT_HEIGHT,
    SWING_ARC, EFFICIENCY, DT, MAX_STEPS,
)


# =============================================================================
# Launch
# =============================================================================

def release_inertia(spec: LauncherSpec) -> float:
    """Rotational inertia about the pivot: arm as a rod about its end plus the projectile at the tip."""
    L = spec.L_arm
    return (spec.m_arm * L**2) / 3 + spec.m_proj * L**2


def release_speed(spec: LauncherSpec) -> float:
    """Tangential speed of the arm tip at release [m/s]."""
    # PE = 0.5 * k * arc^2, only EFFICIENCY of it reaches the arm
    PE = 0.5 * spec.k_stiffness * SWING_ARC**2
    KE_usable = PE * EFFICIENCY

    # KE = 0.5 * I * omega^2
    omega = math.sqrt((2 * KE_usable) / release_inertia(spec))
    return omega * spec.L_arm


def derive_release(spec: LauncherSpec) -> ReleaseState:
    """
    Compute the projectile state at release from stored spring energy.

    The velocity points along the launch angle. The arm has rotated past
    vertical at that instant, so the release point sits on the arm circle at
    (launch angle - 90°).

    Parameters
    ----------
    spec : LauncherSpec
        Launcher parameters

    Returns
    -------
    ReleaseState : position and velocity of the projectile
    """
    rad = spec.launch_angle_rad
    release_theta = spec.release_angle_rad
    v_mag = release_speed(spec)

    vel = np.array([math.cos(rad) * v_mag, math.sin(rad) * v_mag])
    pos = np.array([
        PIVOT_X + math.cos(release_theta) * spec.L_arm,
        PIVOT_HEIGHT + math.sin(release_theta) * spec.L_arm,
    ])
    return ReleaseState(pos=pos, vel=vel)


# =============================================================================
# Flight
# =============================================================================

def _flight_steps(start_pos, start_vel, spec: LauncherSpec) -> Iterator[Tuple[float, float, float, float, float]]:
    """
    Semi-implicit Euler steps from release to ground impact.

    Yields (x, y, vx, vy, t) after every step. Forces use the velocity at the
    start of the step; velocity is advanced first, then position with the new
    velocity. Stops after the first sample with y <= 0 or after MAX_STEPS.

    Wind enters as a constant horizontal force, not through the drag's
    relative velocity.
    """
    x, y = float(start_pos[0]), float(start_pos[1])
    vx, vy = float(start_vel[0]), float(start_vel[1])
    m = spec.m_proj
    Cd = spec.drag_coeff
    wind = spec.wind_speed

    for i in range(1, MAX_STEPS + 1):
        v_sq = vx**2 + vy**2
        v = math.sqrt(v_sq)

        # Quadratic drag: F_drag = 0.5 * rho * v^2 * Cd * A
        F_drag = 0.5 * AIR_DENSITY * v_sq * Cd * DRAG_AREA
        if v > 0:
            ax = -(F_drag * (vx / v) + wind) / m
            ay = -(F_drag * (vy / v)) / m - GRAVITY
        else:
            ax = -wind / m
            ay = -GRAVITY

        vx += ax * DT
        vy += ay * DT
        x += vx * DT
        y += vy * DT

        yield x, y, vx, vy, i * DT

        if y <= 0:
            return


def _warn_step_budget(x: float, y: float):
    warnings.warn(
        f"Flight did not land within {MAX_STEPS} steps "
        f"(x = {x:.1f} m, y = {y:.1f} m), reporting last position",
        RuntimeWarning,
        stacklevel=3,
    )


def integrate(start_pos, start_vel, spec: LauncherSpec) -> float:
    """Horizontal position at ground impact [m]."""
    x, y = float(start_pos[0]), float(start_pos[1])
    for x, y, _, _, _ in _flight_steps(start_pos, start_vel, spec):
        pass

    if y > 0:
        _warn_step_budget(x, y)
    return x


def integrate_path(start_pos, start_vel, spec: LauncherSpec) -> Trajectory:
    """
    Same flight as integrate(), keeping every step.

    Returns
    -------
    Trajectory : time, position and velocity per step, plus summary values
    """
    rows = np.array(list(_flight_steps(start_pos, start_vel, spec)))

    result = Trajectory()
    result.time = rows[:, 4]
    result.pos = rows[:, 0:2]
    result.vel = rows[:, 2:4]

    x, y = result.pos[-1]
    result.range_distance = float(x)
    result.flight_time = float(result.time[-1])
    result.max_height = float(max(np.max(result.pos[:, 1]), start_pos[1]))
    result.landed = bool(y <= 0)

    if not result.landed:
        _warn_step_budget(x, y)
    return result


def reference_range(start_pos, start_vel, spec: LauncherSpec) -> float:
    """
    Range from the same force model integrated with an adaptive RK45 solver.

    Used to measure the discretisation error of the fixed-step integrator.
    """
    drag_factor = 0.5 * AIR_DENSITY * spec.drag_coeff * DRAG_AREA / spec.m_proj
    wind_accel = spec.wind_speed / spec.m_proj

    def ballistic_eom(t, state):
        """Equations of motion with air drag and wind."""
        x, y, vx, vy = state
        v = np.sqrt(vx**2 + vy**2)
        ax = -drag_factor * v * vx - wind_accel
        ay = -GRAVITY - drag_factor * v * vy
        return [vx, vy, ax, ay]

    def ground_hit(t, state):
        return state[1]  # y coordinate
    ground_hit.terminal = True
    ground_hit.direction = -1

    sol = solve_ivp(
        ballistic_eom,
        [0, MAX_STEPS * DT],
        [start_pos[0], start_pos[1], start_vel[0], start_vel[1]],
        method='RK45',
        events=[ground_hit],
        rtol=1e-9,
        atol=1e-9,
        max_step=0.1,
    )

    if sol.t_events[0].size > 0:
        return float(sol.y_events[0][0][0])
    return float(sol.y[0, -1])


def vacuum_range(release: ReleaseState) -> float:
    """Closed-form range without drag or wind, from the release height."""
    x0, y0 = release.pos
    vx, vy = release.vel
    discriminant = vy**2 + 2 * GRAVITY * y0
    # Released below ground and never climbs above it
    if discriminant < 0:
        return float(x0)
    t_flight = (vy + math.sqrt(discriminant)) / GRAVITY
    return float(x0 + vx * t_flight)


# =============================================================================
# Fire mode
# =============================================================================

class CatapultSimulator:
    """
    Fires a launcher spec: analytic release followed by ballistic flight.
    """

    def __init__(self, spec: LauncherSpec):
        """
        Parameters
        ----------
        spec : LauncherSpec
            Snapshot of the launcher parameters
        """
        self.spec = spec
        self.release = derive_release(spec)

    def range_distance(self) -> float:
        return integrate(self.release.pos, self.release.vel, self.spec)

    def simulate(self, record_path: bool = True) -> ShotResult:
        """
        Run the shot.

        Parameters
        ----------
        record_path : bool
            Keep the full trajectory; otherwise only the impact point

        Returns
        -------
        ShotResult : release state, range, and signed impact error
        """
        if record_path:
            trajectory = integrate_path(self.release.pos, self.release.vel, self.spec)
            range_distance = trajectory.range_distance
        else:
            trajectory = None
            range_distance = self.range_distance()

        return ShotResult(
            release=self.release,
            range_distance=range_distance,
            impact_error=range_distance - self.spec.target_range,
            trajectory=trajectory,
        )


def test_simulation():
    """Fire the default launcher and print the results."""
    print("=" * 60)
    print("Catapult Shot Test")
    print("=" * 60)

    spec = LauncherSpec()
    print(f"\nSpecs:")
    print(f"  k_stiffness: {spec.k_stiffness} N")
    print(f"  L_arm: {spec.L_arm} m")
    print(f"  m_arm: {spec.m_arm} kg")
    print(f"  m_proj: {spec.m_proj} kg")
    print(f"  launch_angle: {spec.launch_angle} deg")
    print(f"  wind_speed: {spec.wind_speed} m/s")

    result = CatapultSimulator(spec).simulate()

    print(f"\nResults:")
    print(f"  Release speed: {result.release_speed:.2f} m/s")
    print(f"  Range: {result.range_distance:.2f} m")
    print(f"  Max height: {result.trajectory.max_height:.2f} m")
    print(f"  Flight time: {result.trajectory.flight_time:.2f} s")
    print(f"  Impact error: {result.impact_error:+.2f} m")

    return result


if __name__ == "__main__":
    result = test_simulation()
