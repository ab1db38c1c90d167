"""
Catapult Commander Test Suite - Shared Fixtures
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import LauncherSpec


@pytest.fixture
def default_spec():
    """Initial launcher: k=4000, 6 m arm, 45 deg, 150 m target, no wind."""
    return LauncherSpec()


@pytest.fixture
def vacuum_spec():
    """No drag, no wind."""
    return LauncherSpec(k_stiffness=12000.0, drag_coeff=0.0, wind_speed=0.0)


@pytest.fixture
def seeded_rng():
    """Seeded numpy RNG for determinism."""
    return np.random.default_rng(seed=42)
