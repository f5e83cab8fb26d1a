"""Pydantic models for API I/O."""

from .player import PlayerCreateRequest, PlayerResponse, PlayerUpdateRequest, RosterPlayerResponse
from .balance import (
    BalanceOptionsRequest,
    BalancePlayer,
    BalanceRequest,
    BalanceResponse,
    ScoreBreakdownResponse,
)
from .session import (
    AssignmentRequest,
    PresenceRequest,
    ResultRequest,
    ResultResponse,
    SeasonCreateRequest,
    SeasonResponse,
    SessionCreateRequest,
    SessionDetailResponse,
    SessionResponse,
    TeamSummaryResponse,
)

__all__ = [
    "AssignmentRequest",
    "BalanceOptionsRequest",
    "BalancePlayer",
    "BalanceRequest",
    "BalanceResponse",
    "PlayerCreateRequest",
    "PlayerResponse",
    "PlayerUpdateRequest",
    "PresenceRequest",
    "ResultRequest",
    "ResultResponse",
    "RosterPlayerResponse",
    "ScoreBreakdownResponse",
    "SeasonCreateRequest",
    "SeasonResponse",
    "SessionCreateRequest",
    "SessionDetailResponse",
    "SessionResponse",
    "TeamSummaryResponse",
]
