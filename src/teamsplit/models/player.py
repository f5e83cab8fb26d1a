"""Canonical player models shared across roster, session and balancer layers."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


MIN_STRENGTH = 1
MAX_STRENGTH = 5
DEFAULT_STRENGTH = 3
STRONG_THRESHOLD = 4


class Position(str, Enum):
    GOALKEEPER = "goalkeeper"
    DEFENSE = "defense"
    ATTACK = "attack"
    UNSET = "unset"


class AgeGroup(str, Enum):
    SENIOR = "senior"
    OVER32 = "over32"
    UNSET = "unset"


class TeamSide(str, Enum):
    A = "A"
    B = "B"

    @property
    def other(self) -> "TeamSide":
        return TeamSide.B if self is TeamSide.A else TeamSide.A


_POSITION_ALIASES = {
    "goalkeeper": Position.GOALKEEPER,
    "gk": Position.GOALKEEPER,
    "torwart": Position.GOALKEEPER,
    "defense": Position.DEFENSE,
    "defence": Position.DEFENSE,
    "def": Position.DEFENSE,
    "hinten": Position.DEFENSE,
    "attack": Position.ATTACK,
    "att": Position.ATTACK,
    "vorne": Position.ATTACK,
}

_AGE_GROUP_ALIASES = {
    "senior": AgeGroup.SENIOR,
    "ah": AgeGroup.SENIOR,
    "over32": AgeGroup.OVER32,
    "ü32": AgeGroup.OVER32,
    "u32": AgeGroup.OVER32,
    "ue32": AgeGroup.OVER32,
}

_FALSE_TOKENS = {"false", "0", "no", "n", "off"}

_ROLE_RANK = {
    Position.GOALKEEPER: 0,
    Position.DEFENSE: 1,
    Position.ATTACK: 2,
    Position.UNSET: 3,
}


def resolve_strength(value: Any) -> int:
    """Return a usable 1-5 strength; anything missing or out of range becomes 3."""

    if value is None or isinstance(value, bool):
        return DEFAULT_STRENGTH
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return DEFAULT_STRENGTH
    if not number.is_integer():
        return DEFAULT_STRENGTH
    strength = int(number)
    if MIN_STRENGTH <= strength <= MAX_STRENGTH:
        return strength
    return DEFAULT_STRENGTH


def resolve_active(value: Any) -> bool:
    """Null means active; only explicit falsy markers deactivate a player."""

    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    token = str(value).strip().lower()
    if not token:
        return True
    return token not in _FALSE_TOKENS


def resolve_position(value: Any) -> Position:
    if isinstance(value, Position):
        return value
    if value is None:
        return Position.UNSET
    return _POSITION_ALIASES.get(str(value).strip().lower(), Position.UNSET)


def resolve_age_group(value: Any) -> AgeGroup:
    if isinstance(value, AgeGroup):
        return value
    if value is None:
        return AgeGroup.UNSET
    return _AGE_GROUP_ALIASES.get(str(value).strip().lower(), AgeGroup.UNSET)


class PlayerRecord(BaseModel):
    """Normalized player payload; attribute defaults are resolved on load."""

    player_id: str = Field(..., min_length=1)
    name: str
    age_group: AgeGroup = AgeGroup.UNSET
    position: Position = Position.UNSET
    strength: int = DEFAULT_STRENGTH
    active: bool = True

    model_config = ConfigDict(frozen=True)

    @field_validator("strength", mode="before")
    @classmethod
    def _resolve_strength(cls, value: Any) -> int:
        return resolve_strength(value)

    @field_validator("active", mode="before")
    @classmethod
    def _resolve_active(cls, value: Any) -> bool:
        return resolve_active(value)

    @field_validator("position", mode="before")
    @classmethod
    def _resolve_position(cls, value: Any) -> Position:
        return resolve_position(value)

    @field_validator("age_group", mode="before")
    @classmethod
    def _resolve_age_group(cls, value: Any) -> AgeGroup:
        return resolve_age_group(value)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PlayerRecord":
        """Build a record from a raw storage row (``id``/``player_id`` keys accepted)."""

        player_id = row.get("player_id", row.get("id"))
        return cls(
            player_id=str(player_id) if player_id is not None else "",
            name=str(row.get("name") or "").strip(),
            age_group=row.get("age_group"),
            position=row.get("position", row.get("preferred_position")),
            strength=row.get("strength"),
            active=row.get("active", row.get("is_active")),
        )

    @property
    def is_goalkeeper(self) -> bool:
        return self.position is Position.GOALKEEPER

    @property
    def is_strong(self) -> bool:
        return self.strength >= STRONG_THRESHOLD and not self.is_goalkeeper

    @property
    def age_score(self) -> int:
        if self.age_group is AgeGroup.OVER32:
            return 1
        if self.age_group is AgeGroup.SENIOR:
            return -1
        return 0

    @property
    def position_score(self) -> int:
        if self.position is Position.ATTACK:
            return 1
        if self.position is Position.DEFENSE:
            return -1
        return 0

    @property
    def role_rank(self) -> int:
        return _ROLE_RANK[self.position]
