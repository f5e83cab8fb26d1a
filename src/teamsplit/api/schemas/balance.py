from __future__ import annotations

from typing import Dict, List, Literal

from pydantic import BaseModel, Field

from .player import PlayerCreateRequest


class BalanceOptionsRequest(BaseModel):
    size_rule: Literal["none", "balanced", "strict"] = "balanced"
    trials: int | None = Field(default=None, ge=1, le=20_000)
    team_a_size: int | None = Field(default=None, ge=0)
    seed: int | None = None
    workers: int | None = Field(default=None, ge=1, le=16)


class BalancePlayer(PlayerCreateRequest):
    player_id: str = Field(..., min_length=1)


class BalanceRequest(BaseModel):
    players: List[BalancePlayer]
    options: BalanceOptionsRequest = Field(default_factory=BalanceOptionsRequest)


class ScoreBreakdownResponse(BaseModel):
    strength_diff: int
    strong_diff: int
    age_diff: int
    position_diff: int
    size_diff: int
    total: float


class BalanceResponse(BaseModel):
    assignments: Dict[str, Literal["A", "B"]]
    team_a: List[str]
    team_b: List[str]
    breakdown: ScoreBreakdownResponse
    trials_run: int
    valid_trials: int
