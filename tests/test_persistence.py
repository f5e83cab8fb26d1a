from datetime import date

import pytest

from teamsplit.models import AgeGroup, Position, TeamSide
from teamsplit.persistence import RosterStore, SessionLocked, SessionStore


@pytest.fixture()
def stores(tmp_path):
    db_path = tmp_path / "club.sqlite"
    return RosterStore(db_path), SessionStore(db_path)


def _add_players(roster: RosterStore, count: int = 4):
    return [
        roster.add_player(name=f"Player {i}", strength=(i % 5) + 1, player_id=f"p{i}")
        for i in range(count)
    ]


def test_add_and_list_players(stores):
    roster, _ = stores
    roster.add_player(name="zora", position="Torwart", age_group="AH", strength=4)
    roster.add_player(name="Anton", position="vorne", strength=None)
    roster.add_player(name="Bea", active=False)

    names = [p.name for p in roster.list_players()]
    assert names == ["Anton", "Bea", "zora"]
    assert [p.name for p in roster.list_players(include_inactive=False)] == ["Anton", "zora"]

    anton = roster.list_players()[0]
    assert anton.position is Position.ATTACK
    assert anton.strength == 3
    zora = roster.list_players()[2]
    assert zora.age_group is AgeGroup.SENIOR
    assert zora.is_goalkeeper


def test_add_player_validation(stores):
    roster, _ = stores
    with pytest.raises(ValueError):
        roster.add_player(name="   ")
    roster.add_player(name="One", player_id="dup")
    with pytest.raises(ValueError):
        roster.add_player(name="Two", player_id="dup")


def test_update_player(stores):
    roster, _ = stores
    player = roster.add_player(name="Carl", strength=2)

    updated = roster.update_player(player.player_id, strength=5, position="hinten", active=False)
    assert updated.strength == 5
    assert updated.position is Position.DEFENSE
    assert updated.active is False
    assert roster.get_player(player.player_id) == updated

    with pytest.raises(ValueError):
        roster.update_player(player.player_id, shirt_number=9)
    with pytest.raises(ValueError):
        roster.update_player(player.player_id, name="")
    with pytest.raises(KeyError):
        roster.update_player("missing", strength=4)


def test_delete_player(stores):
    roster, _ = stores
    player = roster.add_player(name="Dora")
    roster.delete_player(player.player_id)
    assert roster.get_player(player.player_id) is None
    with pytest.raises(KeyError):
        roster.delete_player(player.player_id)


def test_session_is_attached_to_matching_season(stores):
    _, sessions = stores
    old = sessions.add_season(name="2024", start_date="2024-01-01", end_date="2024-12-31")
    current = sessions.add_season(name="2025", start_date=date(2025, 1, 1))

    assert sessions.create_session(session_date="2024-05-02").season_id == old.season_id
    assert sessions.create_session(session_date="2025-07-10").season_id == current.season_id
    assert sessions.create_session(session_date="2023-03-03").season_id is None


def test_season_dates_validated(stores):
    _, sessions = stores
    with pytest.raises(ValueError):
        sessions.add_season(name="Backwards", start_date="2025-06-01", end_date="2025-01-01")
    with pytest.raises(ValueError):
        sessions.add_season(name=" ")


def test_session_notes_and_ordering(stores):
    _, sessions = stores
    first = sessions.create_session(session_date="2025-03-01", notes="  ")
    second = sessions.create_session(session_date="2025-03-08", notes=" Rain ")

    assert first.notes is None
    assert second.notes == "Rain"
    assert [s.session_id for s in sessions.list_sessions()] == [second.session_id, first.session_id]


def test_presence_toggles_and_rejects_inactive(stores):
    roster, sessions = stores
    players = _add_players(roster, 3)
    inactive = roster.add_player(name="Retired", active=False)
    session = sessions.create_session(session_date="2025-04-01")

    assert sessions.toggle_presence(session.session_id, players[0].player_id) is True
    sessions.set_presence(session.session_id, players[1].player_id, True)
    sessions.set_presence(session.session_id, players[1].player_id, True)
    assert sessions.present_player_ids(session.session_id) == ["p0", "p1"]

    assert sessions.toggle_presence(session.session_id, players[0].player_id) is False
    assert sessions.present_player_ids(session.session_id) == ["p1"]

    with pytest.raises(ValueError):
        sessions.set_presence(session.session_id, inactive.player_id, True)
    with pytest.raises(KeyError):
        sessions.set_presence(session.session_id, "ghost", True)
    with pytest.raises(KeyError):
        sessions.set_presence("no-session", players[2].player_id, True)


def test_leaving_session_drops_assignment(stores):
    roster, sessions = stores
    players = _add_players(roster, 2)
    session = sessions.create_session(session_date="2025-04-01")
    sid = session.session_id
    for player in players:
        sessions.set_presence(sid, player.player_id, True)

    sessions.assign_player(sid, "p0", TeamSide.A)
    sessions.set_presence(sid, "p0", False)
    sessions.set_presence(sid, "p0", True)

    assert sessions.get_assignments(sid)["p0"] is None


def test_assignments(stores):
    roster, sessions = stores
    _add_players(roster, 4)
    sid = sessions.create_session(session_date="2025-04-01").session_id
    for pid in ("p0", "p1", "p2"):
        sessions.set_presence(sid, pid, True)

    sessions.apply_partition(sid, {"p0": TeamSide.A, "p1": "B"})
    assert sessions.get_assignments(sid) == {"p0": TeamSide.A, "p1": TeamSide.B, "p2": None}

    sessions.assign_player(sid, "p2", "A")
    sessions.assign_player(sid, "p0", None)
    assert sessions.get_assignments(sid) == {"p0": None, "p1": TeamSide.B, "p2": TeamSide.A}

    with pytest.raises(ValueError):
        sessions.assign_player(sid, "p3", TeamSide.B)
    with pytest.raises(ValueError):
        sessions.apply_partition(sid, {"p3": TeamSide.A})

    sessions.clear_assignments(sid)
    assert set(sessions.get_assignments(sid).values()) == {None}


def _ready_session(roster, sessions):
    _add_players(roster, 4)
    sid = sessions.create_session(session_date="2025-05-05").session_id
    for pid in ("p0", "p1", "p2", "p3"):
        sessions.set_presence(sid, pid, True)
    sessions.apply_partition(sid, {"p0": "A", "p1": "B", "p2": "A", "p3": "B"})
    return sid


def test_save_result_requires_complete_teams(stores):
    roster, sessions = stores
    sid = _ready_session(roster, sessions)
    sessions.assign_player(sid, "p3", None)

    with pytest.raises(ValueError):
        sessions.save_result(sid, goals_a=3, goals_b=2)

    sessions.assign_player(sid, "p3", "A")
    sessions.assign_player(sid, "p1", "A")
    with pytest.raises(ValueError):
        sessions.save_result(sid, goals_a=3, goals_b=2)

    with pytest.raises(ValueError):
        sessions.save_result(sid, goals_a=-1, goals_b=2)


def test_saved_result_locks_session(stores):
    roster, sessions = stores
    sid = _ready_session(roster, sessions)

    result = sessions.save_result(sid, goals_a=4, goals_b=1)
    assert result.team_a == ("p0", "p2")
    assert result.team_b == ("p1", "p3")
    assert sessions.is_locked(sid)

    with pytest.raises(SessionLocked):
        sessions.set_presence(sid, "p0", False)
    with pytest.raises(SessionLocked):
        sessions.assign_player(sid, "p0", "B")
    with pytest.raises(SessionLocked):
        sessions.apply_partition(sid, {"p0": "B"})
    with pytest.raises(SessionLocked):
        sessions.clear_assignments(sid)

    corrected = sessions.save_result(sid, goals_a=4, goals_b=2)
    assert corrected.goals_b == 2
    assert corrected.team_a == result.team_a
    assert corrected.created_at == result.created_at


def test_delete_result_unlocks_and_returns_players_to_pool(stores):
    roster, sessions = stores
    sid = _ready_session(roster, sessions)
    sessions.save_result(sid, goals_a=1, goals_b=1)

    assert sessions.delete_result(sid) is True
    assert not sessions.is_locked(sid)
    assert sessions.get_result(sid) is None
    assert set(sessions.get_assignments(sid).values()) == {None}
    assert sessions.delete_result(sid) is False

    sessions.set_presence(sid, "p0", False)


def test_list_results_by_season(stores):
    roster, sessions = stores
    season = sessions.add_season(name="2025", start_date="2025-01-01")
    sid = _ready_session(roster, sessions)
    sessions.save_result(sid, goals_a=2, goals_b=0)

    assert [r.session_id for r in sessions.list_results()] == [sid]
    assert [r.session_id for r in sessions.list_results(season.season_id)] == [sid]
    assert sessions.list_results("other-season") == []


def test_deleting_session_cascades(stores):
    roster, sessions = stores
    sid = _ready_session(roster, sessions)
    sessions.save_result(sid, goals_a=0, goals_b=0)

    sessions.delete_session(sid)
    assert sessions.get_session(sid) is None
    assert sessions.get_result(sid) is None
    assert sessions.list_results() == []
    with pytest.raises(KeyError):
        sessions.present_player_ids(sid)


def test_deleting_player_removes_presence(stores):
    roster, sessions = stores
    sid = _ready_session(roster, sessions)

    roster.delete_player("p0")
    assert "p0" not in sessions.present_player_ids(sid)


def test_player_in_locked_session_cannot_be_deleted(stores):
    roster, sessions = stores
    sid = _ready_session(roster, sessions)
    sessions.save_result(sid, goals_a=2, goals_b=1)

    with pytest.raises(ValueError):
        roster.delete_player("p3")
    assert roster.get_player("p3") is not None
    assert sessions.present_player_ids(sid) == ["p0", "p1", "p2", "p3"]

    sessions.delete_result(sid)
    roster.delete_player("p3")
    assert sessions.present_player_ids(sid) == ["p0", "p1", "p2"]


def test_deactivated_attendee_is_left_out_of_session(stores):
    roster, sessions = stores
    sid = _ready_session(roster, sessions)
    sessions.assign_player(sid, "p3", None)

    roster.update_player("p3", active=False)

    assert sessions.present_player_ids(sid) == ["p0", "p1", "p2"]
    assert "p3" not in sessions.get_assignments(sid)
    result = sessions.save_result(sid, goals_a=0, goals_b=1)
    assert result.team_a == ("p0", "p2")
    assert result.team_b == ("p1",)


def test_result_saved_from_second_store_updates_goals(tmp_path):
    db_path = tmp_path / "shared.sqlite"
    roster, first = RosterStore(db_path), SessionStore(db_path)
    sid = _ready_session(roster, first)
    first.save_result(sid, goals_a=1, goals_b=0)

    second = SessionStore(db_path)
    result = second.save_result(sid, goals_a=1, goals_b=1)

    assert result.goals_b == 1
    assert result.team_a == ("p0", "p2")
    assert len(second.list_results()) == 1


def test_deleting_season_keeps_sessions(stores):
    _, sessions = stores
    season = sessions.add_season(name="Old", start_date="2020-01-01", end_date="2020-12-31")
    session = sessions.create_session(session_date="2020-06-01")

    sessions.delete_season(season.season_id)
    assert sessions.get_season(season.season_id) is None
    assert sessions.get_session(session.session_id) is not None
    with pytest.raises(KeyError):
        sessions.delete_season(season.season_id)


def test_env_database_path(tmp_path, monkeypatch):
    db_path = tmp_path / "env.sqlite"
    monkeypatch.setenv("TEAMSPLIT_DB_PATH", str(db_path))

    store = RosterStore()
    store.add_player(name="Env")

    assert store.db_path == db_path
    assert db_path.exists()
