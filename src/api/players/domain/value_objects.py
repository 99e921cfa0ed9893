"""Value objects for the players domain."""

from __future__ import annotations

from enum import StrEnum


class PlayerSegment(StrEnum):
    """Marketing segment a player is assigned to."""

    NEW = "new"
    CASUAL = "casual"
    REGULAR = "regular"
    VIP = "vip"
    HIGH_ROLLER = "high_roller"
    DORMANT = "dormant"
