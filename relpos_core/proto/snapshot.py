"""
Position Snapshot Message Schema.

Typed form of the snapshot delivered by the transport: every player's
current fix and declared origin, plus one shared timestamp.

Wire format (JSON object):
    {
      "localPlayerId": "p1",
      "timestamp": 1734900000000,
      "players": {
        "p1": {"location": {"lat": .., "lon": .., "alt": ..},
               "origin":   {"lat": .., "lon": .., "alt": ..}},
        ...
      }
    }

parse_snapshot() is the transport boundary: untyped payloads never reach the
projector or resolver. A broken envelope raises SnapshotParseError; a broken
player entry only removes that player (its ID goes to rejected_players).
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Ellipsoidal heights beyond this are not a device on the ground
MAX_ABS_ALTITUDE_M = 1e5


class SnapshotParseError(ValueError):
    """Raised when a message cannot be turned into a typed structure."""


@dataclass(frozen=True)
class GeodeticFix:
    """
    Absolute position fix.

    Attributes:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        altitude: Ellipsoidal height in meters
    """

    latitude: float
    longitude: float
    altitude: float

    def is_finite(self) -> bool:
        """True if every component is a finite number."""
        return all(math.isfinite(v) for v in (self.latitude, self.longitude, self.altitude))

    def to_dict(self) -> dict:
        """Wire representation ({lat, lon, alt})."""
        return {'lat': self.latitude, 'lon': self.longitude, 'alt': self.altitude}


@dataclass(frozen=True)
class PlayerFix:
    """One player's entry in a snapshot: current fix and declared origin."""

    fix: GeodeticFix
    origin: GeodeticFix

    def to_dict(self) -> dict:
        return {'location': self.fix.to_dict(), 'origin': self.origin.to_dict()}


@dataclass(frozen=True)
class PositionSnapshot:
    """
    All players' fixes at one instant.

    Attributes:
        local_player_id: ID of the device processing the snapshot
        players: Player ID -> PlayerFix for every well-formed entry
        timestamp: Shared timestamp (ms since epoch)
        rejected_players: IDs whose entries failed validation
    """

    local_player_id: str
    players: Dict[str, PlayerFix]
    timestamp: int
    rejected_players: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.local_player_id, str) or not self.local_player_id:
            raise ValueError(f"local_player_id must be a non-empty string: {self.local_player_id!r}")

    @property
    def local_entry(self) -> Optional[PlayerFix]:
        """Entry for the local player, None if absent or rejected."""
        return self.players.get(self.local_player_id)

    def remote_entries(self) -> Dict[str, PlayerFix]:
        """Every well-formed entry except the local player's."""
        return {
            player_id: entry for player_id, entry in self.players.items()
            if player_id != self.local_player_id
        }

    def to_dict(self) -> dict:
        return {
            'localPlayerId': self.local_player_id,
            'timestamp': self.timestamp,
            'players': {pid: entry.to_dict() for pid, entry in self.players.items()},
        }


def _as_number(value: Any, name: str) -> float:
    # bool is an int subclass; JSON true/false is not a coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} is not numeric: {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"{name} is not finite: {value!r}")
    return value


def parse_fix(payload: Any) -> GeodeticFix:
    """
    Parse a {lat, lon, alt} object.

    Raises:
        ValueError: field missing, not a finite number, or out of range
    """
    if not isinstance(payload, Mapping):
        raise ValueError(f"fix must be an object, got {type(payload).__name__}")

    try:
        lat = _as_number(payload['lat'], 'lat')
        lon = _as_number(payload['lon'], 'lon')
        alt = _as_number(payload['alt'], 'alt')
    except KeyError as e:
        raise ValueError(f"fix missing field {e.args[0]!r}") from e

    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"lat out of range: {lat}")
    if not -180.0 <= lon <= 180.0:
        raise ValueError(f"lon out of range: {lon}")
    if abs(alt) > MAX_ABS_ALTITUDE_M:
        raise ValueError(f"alt out of range: {alt}")

    return GeodeticFix(latitude=lat, longitude=lon, altitude=alt)


def parse_player_entry(payload: Any) -> PlayerFix:
    """
    Parse one {location, origin} player entry.

    Raises:
        ValueError: entry is malformed
    """
    if not isinstance(payload, Mapping):
        raise ValueError(f"player entry must be an object, got {type(payload).__name__}")
    if 'location' not in payload:
        raise ValueError("player entry missing 'location'")
    if 'origin' not in payload:
        raise ValueError("player entry missing 'origin'")

    return PlayerFix(fix=parse_fix(payload['location']), origin=parse_fix(payload['origin']))


def _parse_timestamp(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SnapshotParseError(f"timestamp is not numeric: {value!r}")
    if not math.isfinite(value):
        raise SnapshotParseError(f"timestamp is not finite: {value!r}")
    return int(value)


def parse_snapshot(payload: Any, local_player_id: Optional[str] = None) -> PositionSnapshot:
    """
    Build a PositionSnapshot from a decoded JSON payload.

    Args:
        payload: Decoded message object
        local_player_id: Overrides/supplies localPlayerId (the receiving
            device usually knows its own ID better than the payload does)

    Returns:
        PositionSnapshot with malformed player entries listed in
        rejected_players

    Raises:
        SnapshotParseError: envelope is unusable
    """
    if not isinstance(payload, Mapping):
        raise SnapshotParseError(f"snapshot must be an object, got {type(payload).__name__}")

    local_id = local_player_id if local_player_id is not None else payload.get('localPlayerId')
    if not isinstance(local_id, str) or not local_id:
        raise SnapshotParseError(f"missing or invalid localPlayerId: {local_id!r}")

    if 'timestamp' not in payload:
        raise SnapshotParseError("snapshot missing 'timestamp'")
    timestamp = _parse_timestamp(payload['timestamp'])

    raw_players = payload.get('players')
    if not isinstance(raw_players, Mapping):
        raise SnapshotParseError(f"'players' must be an object, got {type(raw_players).__name__}")

    players: Dict[str, PlayerFix] = {}
    rejected = []
    for player_id, entry in raw_players.items():
        player_id = str(player_id)
        try:
            players[player_id] = parse_player_entry(entry)
        except ValueError as e:
            logger.warning(f"Rejected entry for player {player_id}: {e}")
            rejected.append(player_id)

    return PositionSnapshot(
        local_player_id=local_id,
        players=players,
        timestamp=timestamp,
        rejected_players=tuple(rejected),
    )
