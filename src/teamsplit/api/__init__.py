"""REST API for the club roster, training sessions and team balancer."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException

from teamsplit.api.schemas import (
    AssignmentRequest,
    BalanceOptionsRequest,
    BalanceRequest,
    BalanceResponse,
    PlayerCreateRequest,
    PlayerResponse,
    PlayerUpdateRequest,
    PresenceRequest,
    ResultRequest,
    ResultResponse,
    RosterPlayerResponse,
    ScoreBreakdownResponse,
    SeasonCreateRequest,
    SeasonResponse,
    SessionCreateRequest,
    SessionDetailResponse,
    SessionResponse,
    TeamSummaryResponse,
)
from teamsplit.balancer import (
    BalancerError,
    InsufficientPlayers,
    NoValidPartition,
    Partition,
    ScoreBreakdown,
    TeamSummary,
    balance,
)
from teamsplit.config import BalanceOptions, SizeRule, default_trials, default_workers
from teamsplit.models import PlayerRecord, TeamSide
from teamsplit.persistence import MatchResult, RosterStore, SeasonRecord, SessionLocked, SessionRecord, SessionStore
from teamsplit.sessions import SessionView, build_session_view, generate_session_teams


def _player_to_response(player: PlayerRecord) -> PlayerResponse:
    return PlayerResponse(
        player_id=player.player_id,
        name=player.name,
        age_group=player.age_group.value,
        position=player.position.value,
        strength=player.strength,
        active=player.active,
    )


def _roster_entry(player: PlayerRecord) -> RosterPlayerResponse:
    return RosterPlayerResponse(
        player_id=player.player_id,
        name=player.name,
        age_group=player.age_group.value,
        position=player.position.value,
    )


def _season_to_response(season: SeasonRecord) -> SeasonResponse:
    return SeasonResponse(
        season_id=season.season_id,
        name=season.name,
        start_date=season.start_date,
        end_date=season.end_date,
    )


def _session_to_response(session: SessionRecord, *, locked: bool = False) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        session_date=session.session_date,
        notes=session.notes,
        season_id=session.season_id,
        locked=locked,
    )


def _result_to_response(result: MatchResult) -> ResultResponse:
    return ResultResponse(
        session_id=result.session_id,
        goals_a=result.goals_a,
        goals_b=result.goals_b,
        team_a=list(result.team_a),
        team_b=list(result.team_b),
        updated_at=result.updated_at,
    )


def _breakdown_to_response(breakdown: ScoreBreakdown) -> ScoreBreakdownResponse:
    return ScoreBreakdownResponse(
        strength_diff=breakdown.strength_diff,
        strong_diff=breakdown.strong_diff,
        age_diff=breakdown.age_diff,
        position_diff=breakdown.position_diff,
        size_diff=breakdown.size_diff,
        total=breakdown.total,
    )


def _summary_to_response(summary: TeamSummary) -> TeamSummaryResponse:
    return TeamSummaryResponse(
        size=summary.size,
        goalkeepers=summary.goalkeepers,
        defense=summary.defense,
        attack=summary.attack,
        senior=summary.senior,
        over32=summary.over32,
        strength=summary.strength,
        strong=summary.strong,
        average_strength=summary.average_strength,
    )


def _view_to_response(view: SessionView, message: str | None = None) -> SessionDetailResponse:
    return SessionDetailResponse(
        session=_session_to_response(view.session, locked=view.locked),
        present=[_roster_entry(p) for p in view.present],
        team_a=[_roster_entry(p) for p in view.team_a],
        team_b=[_roster_entry(p) for p in view.team_b],
        pool=[_roster_entry(p) for p in view.pool],
        summary_a=_summary_to_response(view.summary_a),
        summary_b=_summary_to_response(view.summary_b),
        breakdown=_breakdown_to_response(view.breakdown),
        locked=view.locked,
        result=_result_to_response(view.result) if view.result else None,
        message=message,
    )


def _partition_to_response(partition: Partition) -> BalanceResponse:
    return BalanceResponse(
        assignments={pid: side.value for pid, side in partition.assignments.items()},
        team_a=list(partition.team(TeamSide.A)),
        team_b=list(partition.team(TeamSide.B)),
        breakdown=_breakdown_to_response(partition.breakdown),
        trials_run=partition.trials_run,
        valid_trials=partition.valid_trials,
    )


def _options_from_request(request: BalanceOptionsRequest | None) -> BalanceOptions:
    request = request or BalanceOptionsRequest()
    try:
        return BalanceOptions(
            size_rule=SizeRule(request.size_rule),
            trials=request.trials if request.trials is not None else default_trials(),
            team_a_size=request.team_a_size,
            seed=request.seed,
            workers=request.workers if request.workers is not None else default_workers(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _balancer_http_error(exc: BalancerError) -> HTTPException:
    if isinstance(exc, InsufficientPlayers):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, NoValidPartition):
        return HTTPException(status_code=422, detail=exc.message)
    return HTTPException(status_code=400, detail=str(exc))


def create_app(db_path: Optional[Path | str] = None) -> FastAPI:
    app = FastAPI(title="teamsplit")
    roster = RosterStore(db_path)
    sessions = SessionStore(db_path)
    app.state.roster_store = roster
    app.state.session_store = sessions

    def _fetch_session_or_404(session_id: str) -> SessionRecord:
        session = sessions.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    def _session_detail(session_id: str, message: str | None = None) -> SessionDetailResponse:
        _fetch_session_or_404(session_id)
        return _view_to_response(build_session_view(roster, sessions, session_id), message)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # Players

    @app.get("/players", response_model=list[PlayerResponse])
    async def list_players(include_inactive: bool = True):
        return [_player_to_response(p) for p in roster.list_players(include_inactive=include_inactive)]

    @app.post("/players", response_model=PlayerResponse, status_code=201)
    async def create_player(payload: PlayerCreateRequest):
        try:
            player = roster.add_player(**payload.model_dump())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _player_to_response(player)

    @app.get("/players/{player_id}", response_model=PlayerResponse)
    async def get_player(player_id: str):
        player = roster.get_player(player_id)
        if player is None:
            raise HTTPException(status_code=404, detail="Player not found")
        return _player_to_response(player)

    @app.patch("/players/{player_id}", response_model=PlayerResponse)
    async def update_player(player_id: str, payload: PlayerUpdateRequest):
        try:
            player = roster.update_player(player_id, **payload.model_dump(exclude_unset=True))
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Player not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _player_to_response(player)

    @app.delete("/players/{player_id}", status_code=204)
    async def delete_player(player_id: str):
        try:
            roster.delete_player(player_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Player not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

    # Seasons

    @app.get("/seasons", response_model=list[SeasonResponse])
    async def list_seasons():
        return [_season_to_response(s) for s in sessions.list_seasons()]

    @app.post("/seasons", response_model=SeasonResponse, status_code=201)
    async def create_season(payload: SeasonCreateRequest):
        try:
            season = sessions.add_season(
                name=payload.name,
                start_date=payload.start_date,
                end_date=payload.end_date,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _season_to_response(season)

    @app.delete("/seasons/{season_id}", status_code=204)
    async def delete_season(season_id: str):
        try:
            sessions.delete_season(season_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Season not found") from exc

    # Sessions

    @app.get("/sessions", response_model=list[SessionResponse])
    async def list_sessions(season_id: str | None = None, limit: int = 200):
        return [
            _session_to_response(s, locked=sessions.is_locked(s.session_id))
            for s in sessions.list_sessions(season_id=season_id, limit=limit)
        ]

    @app.post("/sessions", response_model=SessionResponse, status_code=201)
    async def create_session(payload: SessionCreateRequest):
        session = sessions.create_session(session_date=payload.session_date, notes=payload.notes)
        return _session_to_response(session)

    @app.get("/sessions/{session_id}", response_model=SessionDetailResponse)
    async def get_session(session_id: str):
        return _session_detail(session_id)

    @app.delete("/sessions/{session_id}", status_code=204)
    async def delete_session(session_id: str):
        try:
            sessions.delete_session(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Session not found") from exc

    @app.put("/sessions/{session_id}/presence/{player_id}", response_model=SessionDetailResponse)
    async def set_presence(session_id: str, player_id: str, payload: PresenceRequest):
        _fetch_session_or_404(session_id)
        try:
            sessions.set_presence(session_id, player_id, payload.present)
        except SessionLocked as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Player not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _session_detail(session_id)

    @app.put("/sessions/{session_id}/assignments/{player_id}", response_model=SessionDetailResponse)
    async def assign_player(session_id: str, player_id: str, payload: AssignmentRequest):
        _fetch_session_or_404(session_id)
        try:
            sessions.assign_player(session_id, player_id, payload.team)
        except SessionLocked as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _session_detail(session_id)

    @app.post("/sessions/{session_id}/teams/generate", response_model=SessionDetailResponse)
    async def generate_teams(session_id: str, payload: BalanceOptionsRequest | None = None):
        _fetch_session_or_404(session_id)
        options = _options_from_request(payload)
        try:
            partition = generate_session_teams(roster, sessions, session_id, options)
        except SessionLocked as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except BalancerError as exc:
            raise _balancer_http_error(exc) from exc
        view = build_session_view(roster, sessions, session_id, options)
        message = (
            f"Teams generated: {view.summary_a.size} vs {view.summary_b.size} players, "
            f"balance score {partition.score:.1f}"
        )
        return _view_to_response(view, message)

    @app.post("/sessions/{session_id}/teams/clear", response_model=SessionDetailResponse)
    async def clear_teams(session_id: str):
        _fetch_session_or_404(session_id)
        try:
            sessions.clear_assignments(session_id)
        except SessionLocked as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return _session_detail(session_id)

    @app.put("/sessions/{session_id}/result", response_model=SessionDetailResponse)
    async def save_result(session_id: str, payload: ResultRequest):
        _fetch_session_or_404(session_id)
        try:
            sessions.save_result(session_id, goals_a=payload.goals_a, goals_b=payload.goals_b)
        except SessionLocked as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _session_detail(session_id, "Result saved; attendance and teams are locked until it is deleted")

    @app.delete("/sessions/{session_id}/result", response_model=SessionDetailResponse)
    async def delete_result(session_id: str):
        _fetch_session_or_404(session_id)
        deleted = sessions.delete_result(session_id)
        message = "Result deleted; attendance and teams can be changed again" if deleted else "No result stored"
        return _session_detail(session_id, message)

    @app.get("/results", response_model=list[ResultResponse])
    async def list_results(season_id: str | None = None):
        return [_result_to_response(r) for r in sessions.list_results(season_id=season_id)]

    # Stateless balancing

    @app.post("/balance", response_model=BalanceResponse)
    async def balance_players(payload: BalanceRequest):
        records = [PlayerRecord(**player.model_dump()) for player in payload.players]
        options = _options_from_request(payload.options)
        try:
            partition = balance(records, options)
        except BalancerError as exc:
            raise _balancer_http_error(exc) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _partition_to_response(partition)

    return app
