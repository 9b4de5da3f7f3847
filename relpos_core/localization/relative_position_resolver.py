"""
Relative Position Resolver.

Turns one PositionSnapshot plus the local device heading into one
PlayerUpdated per remote player.

Per snapshot:
1. No heading -> drop the whole snapshot (nothing mutated, nothing emitted)
2. Observe the local origin key once (origin change resets calibration)
3. Project the local player once, feed the calibrator once, subtract bias
4. For every remote player: seed bias on first sighting, project, subtract
   bias, subtract the local vector, rotate by heading, store and emit
5. Malformed remote entries are dropped individually

The local-frame work in steps 2-3 must run exactly once per snapshot;
repeating it per remote would feed the calibrator several samples per tick.

Usage:
    context = PositioningContext.create()
    context.dispatcher.subscribe_updated(renderer.update_player)
    resolver = RelativePositionResolver(context)

    for message in transport:
        resolver.process(parse_snapshot(message), heading.current_heading_degrees())
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np

from .geodetic import geodetic_to_local, rotate_around_vertical, as_tuple
from .origin_calibrator import OriginCalibrator, OriginKey, CalibrationConfig
from .player_registry import PlayerRegistry
from relpos_core.proto.snapshot import PositionSnapshot, PlayerFix, SnapshotParseError, parse_snapshot
from relpos_core.proto.events import PlayerEventDispatcher, PlayerUpdated, HeadingProvider
from relpos_core.metrics import MetricsCollector

logger = logging.getLogger(__name__)


@dataclass
class ResolverConfig:
    """
    Configuration for the relative position resolver.

    Attributes:
        calibration: Local-player calibration settings
        local_player_id: Fallback local ID for snapshots parsed by
            process_message() that do not carry localPlayerId
    """

    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    local_player_id: Optional[str] = None


@dataclass
class PositioningContext:
    """
    Mutable state shared by one pipeline instance.

    Built once by the host and handed to the resolver; nothing else should
    write the calibrator or registry directly.
    """

    calibrator: OriginCalibrator
    registry: PlayerRegistry
    dispatcher: PlayerEventDispatcher
    metrics: MetricsCollector

    @classmethod
    def create(
        cls,
        config: Optional[ResolverConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        dispatcher: Optional[PlayerEventDispatcher] = None
    ) -> 'PositioningContext':
        """Build a fresh context with its own collector unless one is given."""
        config = config or ResolverConfig()
        metrics = metrics or MetricsCollector()
        dispatcher = dispatcher or PlayerEventDispatcher()
        return cls(
            calibrator=OriginCalibrator(config.calibration, metrics),
            registry=PlayerRegistry(dispatcher, metrics),
            dispatcher=dispatcher,
            metrics=metrics,
        )


class RelativePositionResolver:
    """
    Per-snapshot orchestration of projection, calibration and rotation.

    Not thread-safe: callers must serialize process() and remove_player().
    """

    def __init__(
        self,
        context: Optional[PositioningContext] = None,
        config: Optional[ResolverConfig] = None
    ):
        self.config = config or ResolverConfig()
        self.context = context or PositioningContext.create(self.config)

    @property
    def calibrator(self) -> OriginCalibrator:
        return self.context.calibrator

    @property
    def registry(self) -> PlayerRegistry:
        return self.context.registry

    @property
    def metrics(self) -> MetricsCollector:
        return self.context.metrics

    def process(
        self,
        snapshot: PositionSnapshot,
        heading_degrees: Optional[float]
    ) -> List[PlayerUpdated]:
        """
        Resolve relative positions for one snapshot.

        Args:
            snapshot: Parsed snapshot
            heading_degrees: Local device heading (0 = north, clockwise);
                None drops the snapshot

        Returns:
            PlayerUpdated events emitted for this snapshot (also published
            through the context's dispatcher)
        """
        self.metrics.increment('snapshots_in')

        if heading_degrees is None or not math.isfinite(heading_degrees):
            self.metrics.increment_drop('missing_heading')
            logger.warning(f"Snapshot {snapshot.timestamp}: no heading, dropped")
            return []

        local_entry = snapshot.local_entry
        if local_entry is None:
            self.metrics.increment_drop('missing_local_player')
            logger.warning(f"Snapshot {snapshot.timestamp}: no usable entry for local "
                           f"player {snapshot.local_player_id}, dropped")
            return []

        # Per-entry drops only count for snapshots that are otherwise processed
        for player_id in snapshot.rejected_players:
            self.metrics.increment_drop('malformed_player_entry')
            logger.warning(f"Snapshot {snapshot.timestamp}: dropping malformed entry for {player_id}")

        local_corrected = self._resolve_local(snapshot.local_player_id, local_entry, snapshot.timestamp)

        events = []
        for player_id, entry in snapshot.remote_entries().items():
            event = self._resolve_remote(
                player_id, entry, local_corrected, heading_degrees, snapshot.timestamp
            )
            if event is not None:
                events.append(event)

        for event in events:
            self.context.dispatcher.publish_updated(event)

        self.metrics.increment('snapshots_processed')
        logger.debug(f"Snapshot {snapshot.timestamp}: {len(events)} updates "
                     f"(heading={heading_degrees:.1f})")
        return events

    def process_with_provider(
        self,
        snapshot: PositionSnapshot,
        heading_provider: HeadingProvider
    ) -> List[PlayerUpdated]:
        """process() with the heading read from a HeadingProvider at call time."""
        return self.process(snapshot, heading_provider.current_heading_degrees())

    def process_message(self, payload: Any, heading_degrees: Optional[float]) -> List[PlayerUpdated]:
        """
        Parse a raw snapshot payload and process it.

        Envelope errors are counted as parse_error and produce no events.
        """
        try:
            snapshot = parse_snapshot(payload, self.config.local_player_id)
        except SnapshotParseError as e:
            self.metrics.increment_drop('parse_error')
            logger.warning(f"Unparseable snapshot: {e}")
            return []
        return self.process(snapshot, heading_degrees)

    def remove_player(self, player_id: str) -> bool:
        """Handle an out-of-band player-left signal."""
        return self.registry.remove(player_id)

    def _resolve_local(self, player_id: str, entry: PlayerFix, timestamp: int) -> np.ndarray:
        """Steps 2-3: calibrate and bias-correct the local player, once."""
        origin_key = OriginKey.from_fix(entry.origin)
        self.calibrator.observe_origin_key(origin_key)

        local_local = geodetic_to_local(entry.fix, entry.origin)
        self.calibrator.accumulate(local_local)
        bias = self.calibrator.bias

        state = self.registry.get_or_create(player_id)
        state.known_origin_key = origin_key
        state.bias_offset = as_tuple(bias)
        state.last_update_timestamp = timestamp

        return local_local - bias

    def _resolve_remote(
        self,
        player_id: str,
        entry: PlayerFix,
        local_corrected: np.ndarray,
        heading_degrees: float,
        timestamp: int
    ) -> Optional[PlayerUpdated]:
        """Step 4 for a single remote player."""
        try:
            state = self.registry.get(player_id)
            if state is None:
                state = self.registry.initialize_from_self_reference(
                    player_id, entry.fix, entry.origin
                )

            remote_local = geodetic_to_local(entry.fix, entry.origin)
            remote_corrected = remote_local - np.asarray(state.bias_offset)

            delta = remote_corrected - local_corrected
            rotated = rotate_around_vertical(delta, heading_degrees)
        except (ValueError, ArithmeticError) as e:
            self.metrics.increment_drop('malformed_player_entry')
            logger.warning(f"Player {player_id}: projection failed ({e}), skipped")
            return None

        if not np.all(np.isfinite(rotated)):
            self.metrics.increment_drop('non_finite_result')
            logger.warning(f"Player {player_id}: non-finite relative position, skipped")
            return None

        position = as_tuple(rotated)
        state.relative_position = position
        state.last_update_timestamp = timestamp

        self.metrics.increment('player_updates')
        self.metrics.record_histogram('relative_distance_m', float(np.linalg.norm(rotated)))

        return PlayerUpdated(player_id=player_id, position=position, timestamp=timestamp)


def create_default_resolver(local_player_id: Optional[str] = None) -> RelativePositionResolver:
    """
    Create a resolver with default configuration and a fresh context.

    Args:
        local_player_id: Fallback local ID for process_message()

    Returns:
        Configured RelativePositionResolver
    """
    config = ResolverConfig(
        calibration=CalibrationConfig(required_samples=15),
        local_player_id=local_player_id,
    )
    return RelativePositionResolver(PositioningContext.create(config), config)
