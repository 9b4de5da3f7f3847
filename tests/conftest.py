"""
Pytest configuration and shared fixtures for relative positioning tests.

Provides reusable fixtures for geodetic projection, calibration, registry,
resolver and wire-message tests.
"""

import sys
import math
from pathlib import Path
from typing import Dict, Tuple

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from relpos_core.metrics import MetricsCollector
from relpos_core.proto import (
    GeodeticFix,
    PlayerFix,
    PositionSnapshot,
    PlayerEventDispatcher,
)
from relpos_core.localization import (
    RelativePositionResolver,
    ResolverConfig,
    PositioningContext,
)

# Meters per degree of latitude at 40N on WGS84 (meridian radius of curvature)
METERS_PER_DEG_LAT_40N = 111034.6


# =============================================================================
# Fix Fixtures
# =============================================================================


@pytest.fixture
def origin_fix() -> GeodeticFix:
    """
    Standard origin fix (central Ohio).

    Returns:
        GeodeticFix at (40.0, -83.0, 0.0).
    """
    return GeodeticFix(latitude=40.0, longitude=-83.0, altitude=0.0)


@pytest.fixture
def second_origin_fix() -> GeodeticFix:
    """A different origin about 110 m north of origin_fix."""
    return GeodeticFix(latitude=40.001, longitude=-83.0, altitude=0.0)


# =============================================================================
# Pipeline Fixtures
# =============================================================================


@pytest.fixture
def metrics() -> MetricsCollector:
    """Fresh metrics collector per test."""
    return MetricsCollector()


@pytest.fixture
def dispatcher() -> PlayerEventDispatcher:
    """Fresh event dispatcher per test."""
    return PlayerEventDispatcher()


@pytest.fixture
def context(metrics: MetricsCollector, dispatcher: PlayerEventDispatcher) -> PositioningContext:
    """Positioning context wired to the per-test metrics and dispatcher."""
    return PositioningContext.create(ResolverConfig(), metrics=metrics, dispatcher=dispatcher)


@pytest.fixture
def resolver(context: PositioningContext) -> RelativePositionResolver:
    """Resolver with default configuration (15 calibration samples)."""
    return RelativePositionResolver(context)


# =============================================================================
# Helper Functions
# =============================================================================


def offset_north(fix: GeodeticFix, meters: float) -> GeodeticFix:
    """Fix displaced north by roughly `meters` (accurate near 40N)."""
    return GeodeticFix(
        latitude=fix.latitude + meters / METERS_PER_DEG_LAT_40N,
        longitude=fix.longitude,
        altitude=fix.altitude,
    )


def offset_up(fix: GeodeticFix, meters: float) -> GeodeticFix:
    """Fix displaced straight up (along the ellipsoid normal)."""
    return GeodeticFix(
        latitude=fix.latitude,
        longitude=fix.longitude,
        altitude=fix.altitude + meters,
    )


def make_snapshot(
    local_player_id: str,
    players: Dict[str, Tuple[GeodeticFix, GeodeticFix]],
    timestamp: int = 1000
) -> PositionSnapshot:
    """
    Build a typed snapshot.

    Args:
        local_player_id: Local player ID
        players: Player ID -> (fix, origin)
        timestamp: Snapshot timestamp (ms)
    """
    return PositionSnapshot(
        local_player_id=local_player_id,
        players={pid: PlayerFix(fix=fix, origin=origin) for pid, (fix, origin) in players.items()},
        timestamp=timestamp,
    )


def wire_entry(fix: GeodeticFix, origin: GeodeticFix) -> Dict:
    """Raw wire form of one player entry."""
    return {'location': fix.to_dict(), 'origin': origin.to_dict()}


def vector_norm(v) -> float:
    return math.sqrt(sum(c * c for c in v))
