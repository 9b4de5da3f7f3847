"""
Per-player state record.

One PlayerState per known player ID, held by the PlayerRegistry.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .origin_calibrator import OriginKey

ZERO = (0.0, 0.0, 0.0)


@dataclass
class PlayerState:
    """
    State of one player.

    Attributes:
        player_id: Player identifier
        relative_position: Last (east', up, north') offset from the local
            device, in the local heading frame of that snapshot. Only valid
            for the snapshot it was computed from; recompute, never
            interpolate, across headings.
        bias_offset: Frozen GPS bias (east, up, north) subtracted from the
            player's local-frame position
        last_update_timestamp: Timestamp (ms) of the last snapshot that
            updated this record
        known_origin_key: Origin key last seen (local player only)
    """

    player_id: str
    relative_position: Tuple[float, float, float] = ZERO
    bias_offset: Tuple[float, float, float] = ZERO
    last_update_timestamp: Optional[int] = None
    known_origin_key: Optional[OriginKey] = None

    def to_dict(self) -> dict:
        """Dict representation suitable for JSON/logging."""
        return {
            'player_id': self.player_id,
            'relative_position': {
                'e': self.relative_position[0],
                'u': self.relative_position[1],
                'n': self.relative_position[2],
            },
            'bias_offset': {
                'e': self.bias_offset[0],
                'u': self.bias_offset[1],
                'n': self.bias_offset[2],
            },
            'last_update_timestamp': self.last_update_timestamp,
        }
