"""
Localization Module: Projection, calibration, relative positioning.

Key classes:
- geodetic: WGS84 fix -> ECEF -> local (east, up, north) frame, heading rotation
- OriginCalibrator: Local-player GPS bias, frozen per origin epoch
- PlayerRegistry: One PlayerState per player ID
- RelativePositionResolver: Per-snapshot orchestration
"""

from .geodetic import (
    geodetic_to_ecef,
    ecef_to_enu,
    geodetic_to_local,
    rotate_around_vertical,
)
from .origin_calibrator import (
    OriginCalibrator,
    OriginKey,
    CalibrationConfig,
    CalibrationState,
)
from .player_state import PlayerState
from .player_registry import PlayerRegistry
from .relative_position_resolver import (
    RelativePositionResolver,
    ResolverConfig,
    PositioningContext,
    create_default_resolver,
)

__all__ = [
    # Projection
    'geodetic_to_ecef',
    'ecef_to_enu',
    'geodetic_to_local',
    'rotate_around_vertical',
    # Calibration
    'OriginCalibrator',
    'OriginKey',
    'CalibrationConfig',
    'CalibrationState',
    # Registry
    'PlayerState',
    'PlayerRegistry',
    # Resolver
    'RelativePositionResolver',
    'ResolverConfig',
    'PositioningContext',
    'create_default_resolver',
]
