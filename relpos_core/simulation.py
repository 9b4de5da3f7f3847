"""
Simulated game sessions for demos and tests.

All players share one origin (the game's start point), join standing on it,
then walk in a straight line to their configured (e, n, u) offset. Optional
Gaussian GPS noise is added to every fix.
"""

import math
from typing import Dict, Iterator, Optional

import numpy as np

from relpos_core.proto.snapshot import GeodeticFix, PlayerFix, PositionSnapshot

# Meters per degree (flat approximation, fine over a few hundred meters)
METERS_PER_DEG_LAT = 111000.0


def offset_fix(base: GeodeticFix, east: float, north: float, up: float) -> GeodeticFix:
    """Fix displaced from base by (east, north, up) meters."""
    lat_per_meter = 1.0 / METERS_PER_DEG_LAT
    lon_per_meter = 1.0 / (METERS_PER_DEG_LAT * math.cos(math.radians(base.latitude)))

    return GeodeticFix(
        latitude=base.latitude + north * lat_per_meter,
        longitude=base.longitude + east * lon_per_meter,
        altitude=base.altitude + up,
    )


def simulate_snapshots(
    sim_config: Dict,
    local_player_id: str,
    ticks: int,
    walk_ticks: int = 10,
    noise_std_m: float = 0.0,
    start_timestamp: int = 0,
    tick_ms: int = 1000,
    seed: Optional[int] = None
) -> Iterator[PositionSnapshot]:
    """
    Generate a sequence of snapshots.

    Args:
        sim_config: Dict with base_lat, base_lon, base_alt and a "players"
            map of player ID -> {"e", "n", "u"} final offsets
        local_player_id: Which simulated player is the local device
        ticks: Number of snapshots
        walk_ticks: Ticks taken to reach the final offset
        noise_std_m: Per-axis GPS noise (m)
        start_timestamp: Timestamp of the first snapshot (ms)
        tick_ms: Spacing between snapshots (ms)
        seed: RNG seed for reproducible noise

    Yields:
        PositionSnapshot per tick
    """
    if local_player_id not in sim_config["players"]:
        raise ValueError(f"local player {local_player_id!r} not in simulation config")

    rng = np.random.default_rng(seed)
    origin = GeodeticFix(
        latitude=sim_config["base_lat"],
        longitude=sim_config["base_lon"],
        altitude=sim_config["base_alt"],
    )

    for tick in range(ticks):
        progress = min(1.0, tick / walk_ticks) if walk_ticks > 0 else 1.0
        players = {}
        for player_id, target in sim_config["players"].items():
            noise = rng.normal(0.0, noise_std_m, 3) if noise_std_m > 0 else np.zeros(3)
            fix = offset_fix(
                origin,
                east=target["e"] * progress + noise[0],
                north=target["n"] * progress + noise[1],
                up=target["u"] * progress + noise[2],
            )
            players[player_id] = PlayerFix(fix=fix, origin=origin)

        yield PositionSnapshot(
            local_player_id=local_player_id,
            players=players,
            timestamp=start_timestamp + tick * tick_ms,
        )
