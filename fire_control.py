"""
Catapult Commander: Fire Control
================================
Caller side of the kernel. Owns the live launcher spec and:
- Solver lifecycle (IDLE -> CALCULATING -> LOCKED -> IDLE on any change)
- Firing, telemetry and the in-memory shot log
- Random target scenarios
- Running the search off the calling thread
"""

import itertools
import logging
import math
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np

from config import (
    LauncherSpec, SearchBounds, SearchResult, ShotResult,
    TARGET_RANGE_BOUNDS, WIND_BOUNDS,
)
from catapult_model import CatapultSimulator
from solver import solve

logger = logging.getLogger(__name__)


class SolverState(Enum):
    IDLE = "IDLE"
    CALCULATING = "CALCULATING"
    LOCKED = "LOCKED"


class ShotState(Enum):
    READY = "READY"
    FIRED = "FIRED"
    IMPACT = "IMPACT"


@dataclass
class Telemetry:
    """Readout of the last shot."""
    range_distance: float = 0.0   # [m]
    release_speed: float = 0.0    # [m/s]
    impact_error: float = 0.0     # range - target [m]


@dataclass(frozen=True)
class ShotRecord:
    """One entry of the flight log."""
    id: int
    range_distance: float
    impact_error: float
    k_stiffness: float
    launch_angle: float


class FireControl:
    """
    Holds the current launcher spec and drives the kernel with snapshots of it.

    The kernel never sees this object; every solve and every shot gets an
    immutable LauncherSpec.
    """

    def __init__(self, spec: LauncherSpec = None, bounds: SearchBounds = None):
        """
        Parameters
        ----------
        spec : LauncherSpec, optional
            Initial launcher parameters
        bounds : SearchBounds, optional
            Search bounds passed to the solver
        """
        self.spec = spec if spec is not None else LauncherSpec()
        self.bounds = bounds if bounds is not None else SearchBounds()

        self.solver_state = SolverState.IDLE
        self.shot_state = ShotState.READY
        self.auto_corrected = False
        self.last_result: Optional[SearchResult] = None
        self.last_shot: Optional[ShotResult] = None

        self.telemetry = Telemetry()
        self.flight_log: List[ShotRecord] = []

        self._lock = threading.Lock()
        self._revision = 0
        self._shot_ids = itertools.count(1)

    # -------------------------------------------------------------------------
    # Spec edits
    # -------------------------------------------------------------------------

    def update_spec(self, **changes) -> LauncherSpec:
        """Replace spec fields. Any change invalidates a running or applied solution."""
        with self._lock:
            self.spec = self.spec.with_(**changes)
            self._revision += 1
            self._set_solver_state(SolverState.IDLE)
            self.auto_corrected = False
            return self.spec

    def generate_target(self, rng: np.random.Generator = None) -> LauncherSpec:
        """Pick a random target range and wind."""
        rng = rng if rng is not None else np.random.default_rng()
        dist = math.floor(rng.uniform(*TARGET_RANGE_BOUNDS))
        wind = round(float(rng.uniform(*WIND_BOUNDS)), 1)

        spec = self.update_spec(target_range=float(dist), wind_speed=wind)
        self.reset()
        logger.info("New target: %.0f m, wind %+.1f m/s", dist, wind)
        return spec

    # -------------------------------------------------------------------------
    # Solver
    # -------------------------------------------------------------------------

    def _set_solver_state(self, state: SolverState):
        if state != self.solver_state:
            logger.debug("Solver %s -> %s", self.solver_state.value, state.value)
        self.solver_state = state

    def _begin_solve(self):
        with self._lock:
            if self.solver_state == SolverState.CALCULATING:
                raise RuntimeError("A search is already running")
            self._set_solver_state(SolverState.CALCULATING)
            self.auto_corrected = False
            return self.spec, self._revision

    def _apply_if_current(self, result: SearchResult, revision: int) -> bool:
        with self._lock:
            if revision != self._revision:
                logger.info("Discarding solution for an outdated spec")
                return False

            self.spec = self.spec.with_(
                k_stiffness=result.k_stiffness,
                launch_angle=result.launch_angle,
            )
            self.last_result = result
            self.auto_corrected = result.auto_corrected
            self._set_solver_state(SolverState.LOCKED)

        if not result.locked:
            logger.warning("Best solution misses the target by %.1f m", result.error)
        logger.info("Locked: k = %d N, angle = %d deg (auto-corrected: %s)",
                    result.k_stiffness, result.launch_angle, result.auto_corrected)
        return True

    def apply_result(self, result: SearchResult) -> LauncherSpec:
        """Commit a search result into the current spec."""
        if result is None:
            raise RuntimeError("No search result to apply")
        self._apply_if_current(result, self._revision)
        return self.spec

    def _solve_and_apply(self, snapshot: LauncherSpec, revision: int) -> SearchResult:
        try:
            result = solve(snapshot, self.bounds)
        except Exception:
            with self._lock:
                if revision == self._revision:
                    self._set_solver_state(SolverState.IDLE)
            raise
        self._apply_if_current(result, revision)
        return result

    def run_solver(self) -> SearchResult:
        """Solve for the current spec on this thread and apply the result."""
        snapshot, revision = self._begin_solve()
        return self._solve_and_apply(snapshot, revision)

    def run_solver_async(self, executor: Executor = None) -> Future:
        """
        Solve in a worker thread.

        The result is applied when the search completes, unless the spec was
        edited in the meantime. The returned future resolves after that.
        """
        snapshot, revision = self._begin_solve()

        own_executor = executor is None
        if own_executor:
            executor = ThreadPoolExecutor(max_workers=1)

        future = executor.submit(self._solve_and_apply, snapshot, revision)
        if own_executor:
            executor.shutdown(wait=False)
        return future

    # -------------------------------------------------------------------------
    # Firing
    # -------------------------------------------------------------------------

    def fire(self, record_path: bool = True) -> ShotResult:
        """Fire the current spec, update telemetry and log the shot. Needs reset() between shots."""
        if self.shot_state != ShotState.READY:
            raise RuntimeError(f"Cannot fire in state {self.shot_state.value}, reset first")
        spec = self.spec
        self.shot_state = ShotState.FIRED

        shot = CatapultSimulator(spec).simulate(record_path=record_path)

        self.shot_state = ShotState.IMPACT
        self.last_shot = shot
        self.telemetry = Telemetry(
            range_distance=shot.range_distance,
            release_speed=shot.release_speed,
            impact_error=shot.impact_error,
        )
        self.flight_log.append(ShotRecord(
            id=next(self._shot_ids),
            range_distance=shot.range_distance,
            impact_error=shot.impact_error,
            k_stiffness=spec.k_stiffness,
            launch_angle=spec.launch_angle,
        ))
        logger.info("Impact at %.1f m (error %+.1f m)", shot.range_distance, shot.impact_error)
        return shot

    def reset(self):
        """Back to the aiming pose."""
        self.shot_state = ShotState.READY
        self.last_shot = None

    def clear_log(self):
        self.flight_log = []
