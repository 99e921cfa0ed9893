"""Domain events for the players bounded context.

Domain events capture facts about things that have happened to a player.
They are immutable value objects that carry all the information needed
to describe the occurrence, and are delivered to handlers through the
outbox.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from players.domain.value_objects import PlayerSegment


@dataclass(frozen=True)
class BonusClaimed:
    """Event raised when a player claims a bonus.

    Attributes:
        player_id: The player who claimed the bonus
        bonus_id: The claimed bonus
        claimed_at: When the bonus was claimed (UTC)
    """

    player_id: str
    bonus_id: str
    claimed_at: datetime


@dataclass(frozen=True)
class PlayerSegmentChanged:
    """Event raised when a player moves to a different segment.

    Attributes:
        player_id: The player whose segment changed
        old_segment: The segment before the change
        new_segment: The segment after the change
        occurred_at: When the event occurred (UTC)
    """

    player_id: str
    old_segment: PlayerSegment
    new_segment: PlayerSegment
    occurred_at: datetime


# Type alias for all domain events in the players context
PlayerEvent = BonusClaimed | PlayerSegmentChanged
