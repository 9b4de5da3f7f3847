"""
Player Registry.

Holds one PlayerState per known player ID. Records are created lazily the
first time an ID is referenced and removed only on an explicit player-left
signal from the transport.
"""

import logging
from typing import Dict, List, Optional

from .geodetic import geodetic_to_local, as_tuple
from .player_state import PlayerState, ZERO
from relpos_core.proto.snapshot import GeodeticFix
from relpos_core.proto.events import PlayerEventDispatcher, PlayerRemoved
from relpos_core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """
    Map of player ID -> PlayerState.

    Usage:
        registry = PlayerRegistry(dispatcher)
        state = registry.get_or_create("p2")
        registry.remove("p2")   # publishes PlayerRemoved("p2")
    """

    def __init__(
        self,
        dispatcher: Optional[PlayerEventDispatcher] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.dispatcher = dispatcher or PlayerEventDispatcher()
        self.metrics = metrics or get_metrics()
        self._players: Dict[str, PlayerState] = {}

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._players

    def __len__(self) -> int:
        return len(self._players)

    def get(self, player_id: str) -> Optional[PlayerState]:
        return self._players.get(player_id)

    @property
    def player_ids(self) -> List[str]:
        return sorted(self._players)

    def get_or_create(self, player_id: str) -> PlayerState:
        """
        Return the record for player_id, creating a zeroed one if needed.
        """
        state = self._players.get(player_id)
        if state is None:
            state = PlayerState(player_id=player_id)
            self._players[player_id] = state
            self.metrics.increment('players_created')
            logger.info(f"Player {player_id} registered")
        return state

    def initialize_from_self_reference(
        self,
        player_id: str,
        fix: GeodeticFix,
        origin_fix: GeodeticFix
    ) -> PlayerState:
        """
        Cold-start a newly seen remote player.

        A player is assumed to be standing at its declared origin when it
        joins, so its first self-measured local vector is taken as its GPS
        bias. That bias is frozen for the life of the record.

        Args:
            player_id: Remote player ID
            fix: Player's current fix
            origin_fix: Player's declared origin

        Returns:
            The (possibly new) PlayerState with bias_offset seeded
        """
        state = self.get_or_create(player_id)
        state.bias_offset = as_tuple(geodetic_to_local(fix, origin_fix))
        state.relative_position = ZERO

        e, u, n = state.bias_offset
        logger.info(f"Player {player_id} bias seeded at ({e:.2f}, {u:.2f}, {n:.2f}) m")
        return state

    def remove(self, player_id: str) -> bool:
        """
        Forget a player and publish PlayerRemoved.

        Returns:
            True if a record existed
        """
        state = self._players.pop(player_id, None)
        if state is None:
            logger.debug(f"Remove for unknown player {player_id}, ignoring")
            return False

        self.metrics.increment('player_removals')
        logger.info(f"Player {player_id} removed")
        self.dispatcher.publish_removed(PlayerRemoved(player_id))
        return True
