"""
Protocol Module: Message schemas and boundary parsing.

- Typed snapshot structures (the core never sees raw payloads)
- Defensive parsing with per-entry rejection
- Output events consumed by the render layer
- Outbound/inbound wire messages
"""

from .snapshot import (
    GeodeticFix,
    PlayerFix,
    PositionSnapshot,
    SnapshotParseError,
    parse_fix,
    parse_player_entry,
    parse_snapshot,
)
from .events import (
    PlayerUpdated,
    PlayerRemoved,
    PlayerEventDispatcher,
    HeadingProvider,
    FixedHeadingProvider,
)
from .messages import (
    SnapshotMessage,
    PlayerLeftMessage,
    UnknownMessageError,
    LocationReporter,
    GameSession,
    build_location_update,
    decode_message,
    encode,
)

__all__ = [
    # Snapshot schema
    'GeodeticFix',
    'PlayerFix',
    'PositionSnapshot',
    'SnapshotParseError',
    'parse_fix',
    'parse_player_entry',
    'parse_snapshot',
    # Events
    'PlayerUpdated',
    'PlayerRemoved',
    'PlayerEventDispatcher',
    'HeadingProvider',
    'FixedHeadingProvider',
    # Wire messages
    'SnapshotMessage',
    'PlayerLeftMessage',
    'UnknownMessageError',
    'LocationReporter',
    'GameSession',
    'build_location_update',
    'decode_message',
    'encode',
]
