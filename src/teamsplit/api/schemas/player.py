from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


PositionLiteral = Literal["goalkeeper", "defense", "attack", "unset"]
AgeGroupLiteral = Literal["senior", "over32", "unset"]


class PlayerResponse(BaseModel):
    player_id: str
    name: str
    age_group: AgeGroupLiteral
    position: PositionLiteral
    strength: int
    active: bool


class PlayerCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    age_group: str | None = None
    position: str | None = None
    strength: int | None = None
    active: bool | None = None


class PlayerUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    age_group: str | None = None
    position: str | None = None
    strength: int | None = None
    active: bool | None = None


class RosterPlayerResponse(BaseModel):
    """Player as shown on team sheets; strength stays internal."""

    player_id: str
    name: str
    age_group: AgeGroupLiteral
    position: PositionLiteral
