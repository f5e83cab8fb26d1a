from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal

from pydantic import BaseModel, Field

from .balance import ScoreBreakdownResponse
from .player import RosterPlayerResponse


class SeasonCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    start_date: date | None = None
    end_date: date | None = None


class SeasonResponse(BaseModel):
    season_id: str
    name: str
    start_date: date | None
    end_date: date | None


class SessionCreateRequest(BaseModel):
    session_date: date
    notes: str | None = None


class SessionResponse(BaseModel):
    session_id: str
    session_date: date
    notes: str | None
    season_id: str | None
    locked: bool = False


class PresenceRequest(BaseModel):
    present: bool


class AssignmentRequest(BaseModel):
    team: Literal["A", "B"] | None = None


class ResultRequest(BaseModel):
    goals_a: int | None = Field(default=None, ge=0)
    goals_b: int | None = Field(default=None, ge=0)


class ResultResponse(BaseModel):
    session_id: str
    goals_a: int | None
    goals_b: int | None
    team_a: List[str]
    team_b: List[str]
    updated_at: datetime


class TeamSummaryResponse(BaseModel):
    size: int
    goalkeepers: int
    defense: int
    attack: int
    senior: int
    over32: int
    strength: int
    strong: int
    average_strength: float


class SessionDetailResponse(BaseModel):
    session: SessionResponse
    present: List[RosterPlayerResponse]
    team_a: List[RosterPlayerResponse]
    team_b: List[RosterPlayerResponse]
    pool: List[RosterPlayerResponse]
    summary_a: TeamSummaryResponse
    summary_b: TeamSummaryResponse
    breakdown: ScoreBreakdownResponse
    locked: bool
    result: ResultResponse | None = None
    message: str | None = None
