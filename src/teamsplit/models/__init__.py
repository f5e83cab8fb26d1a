"""Domain models for players and team sides."""

from .player import (
    DEFAULT_STRENGTH,
    MAX_STRENGTH,
    MIN_STRENGTH,
    STRONG_THRESHOLD,
    AgeGroup,
    PlayerRecord,
    Position,
    TeamSide,
    resolve_active,
    resolve_age_group,
    resolve_position,
    resolve_strength,
)

__all__ = [
    "DEFAULT_STRENGTH",
    "MAX_STRENGTH",
    "MIN_STRENGTH",
    "STRONG_THRESHOLD",
    "AgeGroup",
    "PlayerRecord",
    "Position",
    "TeamSide",
    "resolve_active",
    "resolve_age_group",
    "resolve_position",
    "resolve_strength",
]
