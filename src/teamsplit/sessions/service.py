"""Glue between the stores and the balancer for a single training session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from teamsplit.balancer import (
    Partition,
    ScoreBreakdown,
    TeamSummary,
    balance,
    score_assignment,
    sort_for_display,
    summarize_team,
)
from teamsplit.config import BalanceOptions
from teamsplit.models import PlayerRecord, TeamSide
from teamsplit.persistence import MatchResult, RosterStore, SessionLocked, SessionRecord, SessionStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionView:
    session: SessionRecord
    present: List[PlayerRecord]
    team_a: List[PlayerRecord]
    team_b: List[PlayerRecord]
    pool: List[PlayerRecord]
    summary_a: TeamSummary
    summary_b: TeamSummary
    breakdown: ScoreBreakdown
    locked: bool
    result: Optional[MatchResult]


def _require_session(sessions: SessionStore, session_id: str) -> SessionRecord:
    session = sessions.get_session(session_id)
    if session is None:
        raise KeyError(session_id)
    return session


def present_players(roster: RosterStore, sessions: SessionStore, session_id: str) -> List[PlayerRecord]:
    """Active players marked present, in roster order."""

    present_ids = set(sessions.present_player_ids(session_id))
    return [
        player
        for player in roster.list_players(include_inactive=False)
        if player.player_id in present_ids
    ]


def generate_session_teams(
    roster: RosterStore,
    sessions: SessionStore,
    session_id: str,
    options: Optional[BalanceOptions] = None,
) -> Partition:
    """Balance the present players and store the suggestion as the session's assignment."""

    _require_session(sessions, session_id)
    if sessions.is_locked(session_id):
        raise SessionLocked(session_id)
    players = present_players(roster, sessions, session_id)
    partition = balance(players, options)
    sessions.apply_partition(session_id, partition.assignments)
    logger.info(
        "Session %s teams generated: %s vs %s players (score %.1f)",
        session_id,
        len(partition.team(TeamSide.A)),
        len(partition.team(TeamSide.B)),
        partition.score,
    )
    return partition


def build_session_view(
    roster: RosterStore,
    sessions: SessionStore,
    session_id: str,
    options: Optional[BalanceOptions] = None,
) -> SessionView:
    session = _require_session(sessions, session_id)
    present = present_players(roster, sessions, session_id)
    assignments = sessions.get_assignments(session_id)
    weights = (options or BalanceOptions()).weights

    team_a = sort_for_display(p for p in present if assignments.get(p.player_id) is TeamSide.A)
    team_b = sort_for_display(p for p in present if assignments.get(p.player_id) is TeamSide.B)
    pool = sort_for_display(p for p in present if assignments.get(p.player_id) is None)

    return SessionView(
        session=session,
        present=present,
        team_a=team_a,
        team_b=team_b,
        pool=pool,
        summary_a=summarize_team(team_a),
        summary_b=summarize_team(team_b),
        breakdown=score_assignment(present, assignments, weights),
        locked=sessions.is_locked(session_id),
        result=sessions.get_result(session_id),
    )
