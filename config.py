"""
Catapult Commander: Configuration and Constants
===============================================
Dataclasses for launcher parameters, solver results, physical constants, and
search bounds.
"""

from dataclasses import dataclass, replace
from typing import Iterator, List, NamedTuple, Optional, Tuple
import math
import numpy as np


# Physical constants
GRAVITY = 9.81           # m/s^2
AIR_DENSITY = 1.225      # kg/m³ at 15°C, 101.325 kPa

# Projectile aerodynamics
# Reference cross-section scale folded into the drag force
DRAG_AREA = 0.05         # m²

# Launcher geometry (not user-configurable)
PIVOT_X = 0.0            # Horizontal position of the arm pivot [m]
PIVOT_HEIGHT = 5.5       # Height of the arm pivot above ground [m]

# Drive spring
# Travel from cocked (-135°) to the stop bar, approx 2.3 rad
SWING_ARC = 2.3          # [rad]
EFFICIENCY = 0.4         # Friction and arm air resistance losses

# Integration
DT = 1.0 / 60.0          # Fixed flight step [s]
MAX_STEPS = 5000         # Step budget, ~83 s of flight

# Solver
LOCK_TOLERANCE = 2.0     # Largest error a solution may be committed with [m]

# Scenario generator
TARGET_RANGE_BOUNDS = (50.0, 400.0)  # [m]
WIND_BOUNDS = (-20.0, 20.0)          # [m/s]


def _check(condition: bool, message: str):
    if not condition:
        raise ValueError(message)


@dataclass(frozen=True)
class LauncherSpec:
    """Launcher parameters for a single evaluation."""

    # Drive
    k_stiffness: float = 4000.0   # Spring constant [N]

    # Arm
    L_arm: float = 6.0            # Arm length [m]
    m_arm: float = 25.0           # Arm mass [kg]

    # Projectile
    m_proj: float = 10.0          # Projectile mass [kg]

    # Aim
    launch_angle: float = 45.0    # [degrees], 10-80 by convention
    target_range: float = 150.0   # [m]

    # Environment
    wind_speed: float = 0.0       # Horizontal wind [m/s], positive is a headwind
    drag_coeff: float = 0.05      # Cd (dimensionless)

    def __post_init__(self):
        for name in ('k_stiffness', 'L_arm', 'm_arm', 'm_proj', 'launch_angle',
                     'target_range', 'wind_speed', 'drag_coeff'):
            _check(math.isfinite(getattr(self, name)), f"{name} must be finite")
        _check(self.L_arm > 0, f"L_arm must be positive, got {self.L_arm}")
        _check(self.m_proj > 0, f"m_proj must be positive, got {self.m_proj}")
        _check(self.m_arm >= 0, f"m_arm must be non-negative, got {self.m_arm}")
        _check(self.k_stiffness >= 0, f"k_stiffness must be non-negative, got {self.k_stiffness}")
        _check(self.drag_coeff >= 0, f"drag_coeff must be non-negative, got {self.drag_coeff}")
        _check(self.target_range >= 0, f"target_range must be non-negative, got {self.target_range}")

    def with_(self, **changes) -> 'LauncherSpec':
        """Copy of this spec with some fields replaced."""
        return replace(self, **changes)

    @property
    def launch_angle_rad(self) -> float:
        return math.radians(self.launch_angle)

    @property
    def release_angle_rad(self) -> float:
        """Arm angle at release, measured from horizontal."""
        return math.radians(self.launch_angle - 90.0)


@dataclass
class ReleaseState:
    """Projectile state at the instant it leaves the arm."""
    pos: np.ndarray   # (2,) [m]
    vel: np.ndarray   # (2,) [m/s]

    @property
    def speed(self) -> float:
        return float(np.hypot(self.vel[0], self.vel[1]))


class TrajectorySample(NamedTuple):
    pos: np.ndarray
    vel: np.ndarray
    t: float


@dataclass
class Trajectory:
    """Sampled ballistic flight, one row per integration step."""

    time: np.ndarray = None   # (N,)
    pos: np.ndarray = None    # (N, 2)
    vel: np.ndarray = None    # (N, 2)

    range_distance: float = 0.0   # x at ground impact [m]
    max_height: float = 0.0       # [m]
    flight_time: float = 0.0      # [s]
    landed: bool = True           # False if the step budget ran out first

    def __len__(self) -> int:
        return 0 if self.time is None else len(self.time)

    def __iter__(self) -> Iterator[TrajectorySample]:
        for i in range(len(self)):
            yield TrajectorySample(self.pos[i], self.vel[i], float(self.time[i]))


@dataclass
class ShotResult:
    """Results from firing the launcher once."""
    release: ReleaseState
    range_distance: float
    impact_error: float                    # range - target, signed [m]
    trajectory: Optional[Trajectory] = None

    @property
    def release_speed(self) -> float:
        return self.release.speed


@dataclass(frozen=True)
class SearchResult:
    """Best launcher settings found for a target range."""
    k_stiffness: int          # Rounded for presentation
    launch_angle: int         # Rounded for presentation [degrees]
    range_distance: float     # Range at raw_stiffness, not the rounded k_stiffness [m]
    error: float              # |range - target| at raw_stiffness [m]
    auto_corrected: bool      # Angle differs from the requested one
    requested_angle: float
    raw_stiffness: float      # Unrounded best stiffness the range and error belong to

    @property
    def locked(self) -> bool:
        return self.error <= LOCK_TOLERANCE


@dataclass
class SearchBounds:
    """
    Bounds and tolerances for the solution search.

    - Stiffness bisection bracket and iteration count
    - Angle sweep used when the requested angle cannot hit the target
    - Error above which the sweep runs, and below which its result is kept
    """

    k_stiffness: Tuple[float, float] = (100.0, 150000.0)
    n_bisection: int = 40

    # Angle sweep [degrees]
    sweep_start: float = 15.0
    sweep_stop: float = 75.0
    sweep_step: float = 5.0

    retry_tolerance: float = 1.0
    commit_tolerance: float = LOCK_TOLERANCE

    def sweep_angles(self) -> List[float]:
        """Candidate launch angles for the sweep, inclusive of both ends."""
        n = int(round((self.sweep_stop - self.sweep_start) / self.sweep_step))
        return [self.sweep_start + i * self.sweep_step for i in range(n + 1)]
