"""
Wire messages exchanged with the game server.

Outbound:
- LOCATION_UPDATE: this device's fix and origin, throttled by LocationReporter
- Game control: CREATE_GAME, START_GAME, JOIN_GAME, LEAVE_GAME, END_GAME

Inbound (decode_message):
- PLAYERS_SNAPSHOT (or any object carrying "players"): SnapshotMessage
- PLAYER_LEFT / LEAVE_GAME with a playerID: PlayerLeftMessage

Nothing here does I/O; payloads are plain dicts and the caller owns the
socket.
"""

import json
import time
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from .snapshot import GeodeticFix, PositionSnapshot, SnapshotParseError, parse_snapshot

logger = logging.getLogger(__name__)

LOCATION_UPDATE = 'LOCATION_UPDATE'
PLAYERS_SNAPSHOT = 'PLAYERS_SNAPSHOT'
PLAYER_LEFT = 'PLAYER_LEFT'
CREATE_GAME = 'CREATE_GAME'
START_GAME = 'START_GAME'
JOIN_GAME = 'JOIN_GAME'
LEAVE_GAME = 'LEAVE_GAME'
END_GAME = 'END_GAME'


def now_ms() -> int:
    """Wall-clock time in ms since epoch."""
    return int(time.time() * 1000)


def encode(payload: Dict[str, Any]) -> str:
    """Serialize a payload to compact JSON text."""
    return json.dumps(payload, separators=(',', ':'))


class UnknownMessageError(SnapshotParseError):
    """Raised for well-formed messages of a type this client does not handle."""


@dataclass(frozen=True)
class SnapshotMessage:
    """Inbound snapshot of all players."""

    snapshot: PositionSnapshot
    heading_degrees: Optional[float] = None


@dataclass(frozen=True)
class PlayerLeftMessage:
    """Inbound notice that a player left the game."""

    player_id: str


InboundMessage = Union[SnapshotMessage, PlayerLeftMessage]


def _optional_heading(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SnapshotParseError(f"heading is not numeric: {value!r}")
    return float(value)


def decode_message(text: Union[str, bytes], local_player_id: Optional[str] = None) -> InboundMessage:
    """
    Decode one inbound JSON message.

    A "heading" field, when present, is carried through on SnapshotMessage so
    recorded sessions can be replayed with the heading they were captured
    with.

    Args:
        text: JSON text
        local_player_id: Receiving device's ID, passed to parse_snapshot

    Returns:
        SnapshotMessage or PlayerLeftMessage

    Raises:
        UnknownMessageError: unrecognised message type
        SnapshotParseError: invalid JSON or broken envelope
    """
    try:
        payload = json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise SnapshotParseError(f"invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise SnapshotParseError(f"message must be an object, got {type(payload).__name__}")

    msg_type = payload.get('type')

    if msg_type in (PLAYER_LEFT, LEAVE_GAME):
        player_id = payload.get('playerID')
        if not isinstance(player_id, str) or not player_id:
            raise SnapshotParseError(f"{msg_type} without playerID")
        return PlayerLeftMessage(player_id=player_id)

    if msg_type == PLAYERS_SNAPSHOT or (msg_type is None and 'players' in payload):
        return SnapshotMessage(
            snapshot=parse_snapshot(payload, local_player_id),
            heading_degrees=_optional_heading(payload.get('heading')),
        )

    raise UnknownMessageError(f"unknown message type: {msg_type!r}")


def build_location_update(
    player_id: str,
    fix: GeodeticFix,
    origin: GeodeticFix,
    timestamp: Optional[int] = None
) -> Dict[str, Any]:
    """LOCATION_UPDATE payload for this device."""
    return {
        'playerID': player_id,
        'type': LOCATION_UPDATE,
        'location': fix.to_dict(),
        'origin': origin.to_dict(),
        'timestamp': now_ms() if timestamp is None else timestamp,
    }


class LocationReporter:
    """
    Throttled producer of LOCATION_UPDATE payloads.

    The location source fires far more often than the server needs; only one
    report per send_interval_s is let through.

    Usage:
        reporter = LocationReporter("p1", send=lambda p: socket.send(encode(p)))
        reporter.on_location(fix, origin)
    """

    def __init__(
        self,
        player_id: str,
        send: Callable[[Dict[str, Any]], None],
        send_interval_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        metrics=None
    ):
        if send_interval_s < 0:
            raise ValueError(f"send_interval_s cannot be negative: {send_interval_s}")

        self.player_id = player_id
        self.send = send
        self.send_interval_s = send_interval_s
        self.clock = clock
        self.metrics = metrics
        self.last_location: Optional[GeodeticFix] = None
        self._last_sent: Optional[float] = None

    def on_location(
        self,
        fix: GeodeticFix,
        origin: GeodeticFix,
        timestamp: Optional[int] = None
    ) -> bool:
        """
        Record a new fix and send it unless throttled.

        Returns:
            True if a payload was sent
        """
        self.last_location = fix
        now = self.clock()

        if self._last_sent is not None and now - self._last_sent < self.send_interval_s:
            if self.metrics is not None:
                self.metrics.increment('location_reports_throttled')
            return False

        self._last_sent = now
        self.send(build_location_update(self.player_id, fix, origin, timestamp))
        if self.metrics is not None:
            self.metrics.increment('location_reports_sent')
        logger.debug(f"Location sent: lat={fix.latitude:.6f}, lon={fix.longitude:.6f}, "
                     f"alt={fix.altitude:.2f}")
        return True


class GameSession:
    """
    Client side of game lifecycle commands.

    Tracks whether a game is active and refuses commands that make no sense
    in the current state (e.g. END_GAME when nothing is running). Each command
    returns the payload that was sent, or None if it was refused.
    """

    def __init__(self, player_id: str, send: Callable[[Dict[str, Any]], None]):
        self.player_id = player_id
        self.send = send
        self.is_active = False

    def _send(self, msg_type: str, **extra) -> Dict[str, Any]:
        payload = {'type': msg_type, 'playerID': self.player_id}
        payload.update(extra)
        self.send(payload)
        return payload

    def create_game(self) -> Dict[str, Any]:
        logger.info("Game created")
        return self._send(CREATE_GAME)

    def join_game(self, game_id: str) -> Dict[str, Any]:
        logger.info(f"Joining game {game_id}")
        return self._send(JOIN_GAME, gameID=game_id)

    def start_game(self) -> Optional[Dict[str, Any]]:
        if self.is_active:
            return None
        self.is_active = True
        logger.info("Game started")
        return self._send(START_GAME)

    def leave_game(self) -> Optional[Dict[str, Any]]:
        if not self.is_active:
            return None
        self.is_active = False
        logger.info("Left game")
        return self._send(LEAVE_GAME)

    def end_game(self) -> Optional[Dict[str, Any]]:
        if not self.is_active:
            return None
        self.is_active = False
        logger.info("Game ended")
        return self._send(END_GAME)

    def on_game_started(self) -> bool:
        """Server confirmed start. Returns True if the state changed."""
        if self.is_active:
            return False
        self.is_active = True
        logger.info("Game active")
        return True

    def on_game_ended(self) -> bool:
        """Server confirmed end. Returns True if the state changed."""
        if not self.is_active:
            return False
        self.is_active = False
        logger.info("Game inactive")
        return True
