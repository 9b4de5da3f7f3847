"""
Output events and collaborator interfaces.

PlayerUpdated / PlayerRemoved are what the render layer consumes. The
dispatcher fans them out to subscribed callbacks in subscription order.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerUpdated:
    """
    New relative position for a remote player.

    Attributes:
        player_id: Remote player ID
        position: (east', up, north') in meters, rotated into the local
            device's heading frame
        timestamp: Snapshot timestamp (ms since epoch)
    """

    player_id: str
    position: Tuple[float, float, float]
    timestamp: int

    def to_dict(self) -> dict:
        return {
            'type': 'PLAYER_UPDATED',
            'id': self.player_id,
            'position': {
                'x': self.position[0],
                'y': self.position[1],
                'z': self.position[2],
            },
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class PlayerRemoved:
    """A player left; the render layer should drop it."""

    player_id: str

    def to_dict(self) -> dict:
        return {'type': 'PLAYER_REMOVED', 'id': self.player_id}


class HeadingProvider(Protocol):
    """Source of the local device's smoothed compass bearing."""

    def current_heading_degrees(self) -> Optional[float]:
        """Heading in degrees clockwise from north, or None if unknown."""
        ...


class FixedHeadingProvider:
    """HeadingProvider returning a constant (None means no heading yet)."""

    def __init__(self, heading_degrees: Optional[float] = None):
        self.heading_degrees = heading_degrees

    def current_heading_degrees(self) -> Optional[float]:
        return self.heading_degrees


UpdateCallback = Callable[[PlayerUpdated], None]
RemoveCallback = Callable[[PlayerRemoved], None]


class PlayerEventDispatcher:
    """
    Callback fan-out for player events.

    Usage:
        dispatcher = PlayerEventDispatcher()
        dispatcher.subscribe_updated(renderer.update_player)
        dispatcher.subscribe_removed(renderer.remove_player)
    """

    def __init__(self):
        self._on_updated: List[UpdateCallback] = []
        self._on_removed: List[RemoveCallback] = []

    def subscribe_updated(self, callback: UpdateCallback):
        self._on_updated.append(callback)

    def subscribe_removed(self, callback: RemoveCallback):
        self._on_removed.append(callback)

    def publish_updated(self, event: PlayerUpdated):
        for callback in self._on_updated:
            callback(event)

    def publish_removed(self, event: PlayerRemoved):
        logger.debug(f"Publishing removal of {event.player_id}")
        for callback in self._on_removed:
            callback(event)
