"""Persistence layer for the club roster, training sessions and match results."""

from __future__ import annotations

import os
import sqlite3
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from teamsplit.models import PlayerRecord, TeamSide


_DB_ENV = "TEAMSPLIT_DB_PATH"
_DEFAULT_DB_NAME = "teamsplit.sqlite"

_PLAYER_FIELDS = {"name", "age_group", "position", "strength", "active"}


class SessionLocked(Exception):
    def __init__(self, session_id: str):
        super().__init__(
            f"Session {session_id} is locked because a result is saved; delete the result to make changes"
        )
        self.session_id = session_id


@dataclass
class SeasonRecord:
    season_id: str
    name: str
    start_date: Optional[date]
    end_date: Optional[date]
    created_at: datetime


@dataclass
class SessionRecord:
    session_id: str
    session_date: date
    notes: Optional[str]
    season_id: Optional[str]
    created_at: datetime


@dataclass
class MatchResult:
    session_id: str
    goals_a: Optional[int]
    goals_b: Optional[int]
    team_a: Tuple[str, ...]
    team_b: Tuple[str, ...]
    created_at: datetime
    updated_at: datetime


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _date_str(value: Union[date, str, None]) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return date.fromisoformat(value).isoformat()
    return value.isoformat()


class _SQLiteStore:
    """Shared connection handling; all stores read and write one database file."""

    def __init__(self, db_path: Path | str | None = None):
        self._use_uri = False
        env_db = os.getenv(_DB_ENV)
        if db_path is not None:
            self.db_path: Path | str = Path(db_path)
        elif env_db:
            if env_db.startswith("file:"):
                self.db_path = env_db
                self._use_uri = True
            else:
                self.db_path = Path(env_db)
        elif os.getenv("PYTEST_CURRENT_TEST"):
            test_dir = Path(tempfile.gettempdir()) / "teamsplit-test"
            test_dir.mkdir(parents=True, exist_ok=True)
            self.db_path = test_dir / _DEFAULT_DB_NAME
        else:
            self.db_path = Path.cwd() / _DEFAULT_DB_NAME
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
        else:
            conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._session() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS players (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    age_group TEXT NOT NULL,
                    position TEXT NOT NULL,
                    strength INTEGER NOT NULL,
                    active INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS seasons (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    start_date TEXT,
                    end_date TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    session_date TEXT NOT NULL,
                    notes TEXT,
                    season_id TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS session_players (
                    session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
                    player_id TEXT NOT NULL REFERENCES players(id) ON DELETE CASCADE,
                    team TEXT,
                    PRIMARY KEY (session_id, player_id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS results (
                    session_id TEXT PRIMARY KEY REFERENCES sessions(id) ON DELETE CASCADE,
                    goals_a INTEGER,
                    goals_b INTEGER,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS result_players (
                    session_id TEXT NOT NULL REFERENCES results(session_id) ON DELETE CASCADE,
                    player_id TEXT NOT NULL,
                    team TEXT NOT NULL,
                    PRIMARY KEY (session_id, player_id)
                )
                """
            )


class RosterStore(_SQLiteStore):
    """SQLite-backed store for club players."""

    def add_player(
        self,
        *,
        name: str,
        age_group: Any = None,
        position: Any = None,
        strength: Any = None,
        active: Any = None,
        player_id: Optional[str] = None,
    ) -> PlayerRecord:
        if not name or not name.strip():
            raise ValueError("Player name must not be empty")
        record = PlayerRecord(
            player_id=player_id or uuid4().hex,
            name=name.strip(),
            age_group=age_group,
            position=position,
            strength=strength,
            active=active,
        )
        now = _now()
        with self._session() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO players (
                        id, name, age_group, position, strength, active, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.player_id,
                        record.name,
                        record.age_group.value,
                        record.position.value,
                        record.strength,
                        int(record.active),
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Player {record.player_id} already exists") from exc
        return record

    def get_player(self, player_id: str) -> Optional[PlayerRecord]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM players WHERE id = ?", (player_id,)).fetchone()
        return self._row_to_record(row) if row is not None else None

    def list_players(self, include_inactive: bool = True) -> List[PlayerRecord]:
        query = "SELECT * FROM players"
        if not include_inactive:
            query += " WHERE active = 1"
        query += " ORDER BY name COLLATE NOCASE, id"
        with self._session() as conn:
            rows = conn.execute(query).fetchall()
        return [self._row_to_record(row) for row in rows]

    def update_player(self, player_id: str, **fields: Any) -> PlayerRecord:
        unknown = set(fields) - _PLAYER_FIELDS
        if unknown:
            raise ValueError(f"Unsupported player fields: {', '.join(sorted(unknown))}")
        current = self.get_player(player_id)
        if current is None:
            raise KeyError(player_id)
        if "name" in fields and (fields["name"] is None or not str(fields["name"]).strip()):
            raise ValueError("Player name must not be empty")

        merged = current.model_dump()
        merged.update(fields)
        if "name" in fields:
            merged["name"] = str(fields["name"]).strip()
        updated = PlayerRecord(**merged)
        with self._session() as conn:
            conn.execute(
                """
                UPDATE players
                SET name = ?, age_group = ?, position = ?, strength = ?, active = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    updated.name,
                    updated.age_group.value,
                    updated.position.value,
                    updated.strength,
                    int(updated.active),
                    _now(),
                    player_id,
                ),
            )
        return updated

    def delete_player(self, player_id: str) -> None:
        """Remove a player; refused while they attend a session locked by a result."""

        with self._session() as conn:
            locked = conn.execute(
                """
                SELECT sp.session_id FROM session_players sp
                JOIN results r ON r.session_id = sp.session_id
                WHERE sp.player_id = ?
                LIMIT 1
                """,
                (player_id,),
            ).fetchone()
            if locked is not None:
                raise ValueError(
                    f"Player {player_id} attended locked session {locked['session_id']}; deactivate them instead"
                )
            cursor = conn.execute("DELETE FROM players WHERE id = ?", (player_id,))
            if cursor.rowcount == 0:
                raise KeyError(player_id)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> PlayerRecord:
        return PlayerRecord(
            player_id=row["id"],
            name=row["name"],
            age_group=row["age_group"],
            position=row["position"],
            strength=row["strength"],
            active=bool(row["active"]),
        )


class SessionStore(_SQLiteStore):
    """Seasons, training sessions, attendance, team assignments and results."""

    # Seasons

    def add_season(
        self,
        *,
        name: str,
        start_date: Union[date, str, None] = None,
        end_date: Union[date, str, None] = None,
    ) -> SeasonRecord:
        if not name or not name.strip():
            raise ValueError("Season name must not be empty")
        start = _date_str(start_date)
        end = _date_str(end_date)
        if start and end and end < start:
            raise ValueError("Season end date must not precede its start date")
        season_id = uuid4().hex
        now = _now()
        with self._session() as conn:
            conn.execute(
                "INSERT INTO seasons (id, name, start_date, end_date, created_at) VALUES (?, ?, ?, ?, ?)",
                (season_id, name.strip(), start, end, now),
            )
        return SeasonRecord(
            season_id=season_id,
            name=name.strip(),
            start_date=_parse_date(start),
            end_date=_parse_date(end),
            created_at=datetime.fromisoformat(now),
        )

    def list_seasons(self) -> List[SeasonRecord]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM seasons ORDER BY start_date IS NULL, start_date DESC, created_at DESC"
            ).fetchall()
        return [self._season_row(row) for row in rows]

    def get_season(self, season_id: str) -> Optional[SeasonRecord]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM seasons WHERE id = ?", (season_id,)).fetchone()
        return self._season_row(row) if row is not None else None

    def delete_season(self, season_id: str) -> None:
        # Sessions keep their season_id so historical results stay attributed.
        with self._session() as conn:
            cursor = conn.execute("DELETE FROM seasons WHERE id = ?", (season_id,))
            if cursor.rowcount == 0:
                raise KeyError(season_id)

    def find_season_for_date(self, on: Union[date, str]) -> Optional[SeasonRecord]:
        day = _date_str(on)
        with self._session() as conn:
            row = conn.execute(
                """
                SELECT * FROM seasons
                WHERE start_date IS NOT NULL AND start_date <= ?
                  AND (end_date IS NULL OR end_date >= ?)
                ORDER BY start_date DESC
                LIMIT 1
                """,
                (day, day),
            ).fetchone()
        return self._season_row(row) if row is not None else None

    # Sessions

    def create_session(
        self,
        *,
        session_date: Union[date, str],
        notes: Optional[str] = None,
    ) -> SessionRecord:
        day = _date_str(session_date)
        if day is None:
            raise ValueError("Session date is required")
        cleaned_notes = notes.strip() if notes and notes.strip() else None
        season = self.find_season_for_date(day)
        session_id = uuid4().hex
        now = _now()
        with self._session() as conn:
            conn.execute(
                "INSERT INTO sessions (id, session_date, notes, season_id, created_at) VALUES (?, ?, ?, ?, ?)",
                (session_id, day, cleaned_notes, season.season_id if season else None, now),
            )
        return SessionRecord(
            session_id=session_id,
            session_date=date.fromisoformat(day),
            notes=cleaned_notes,
            season_id=season.season_id if season else None,
            created_at=datetime.fromisoformat(now),
        )

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        return self._session_row(row) if row is not None else None

    def list_sessions(self, season_id: Optional[str] = None, limit: int = 200) -> List[SessionRecord]:
        query = "SELECT * FROM sessions"
        params: tuple = ()
        if season_id is not None:
            query += " WHERE season_id = ?"
            params = (season_id,)
        query += " ORDER BY session_date DESC, created_at DESC LIMIT ?"
        with self._session() as conn:
            rows = conn.execute(query, params + (limit,)).fetchall()
        return [self._session_row(row) for row in rows]

    def delete_session(self, session_id: str) -> None:
        with self._session() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
            if cursor.rowcount == 0:
                raise KeyError(session_id)

    # Presence and assignments

    def present_player_ids(self, session_id: str) -> List[str]:
        """Active players attending the session; deactivated attendees are left out."""

        self._require_session(session_id)
        with self._session() as conn:
            rows = self._attendance_rows(conn, session_id)
        return [row["player_id"] for row in rows]

    def set_presence(self, session_id: str, player_id: str, present: bool) -> bool:
        self._require_unlocked(session_id)
        with self._session() as conn:
            player = conn.execute("SELECT active FROM players WHERE id = ?", (player_id,)).fetchone()
            if player is None:
                raise KeyError(player_id)
            if present:
                if not player["active"]:
                    raise ValueError(f"Player {player_id} is inactive and cannot attend sessions")
                conn.execute(
                    "INSERT OR IGNORE INTO session_players (session_id, player_id, team) VALUES (?, ?, NULL)",
                    (session_id, player_id),
                )
            else:
                # Leaving the session also drops any team assignment with the row.
                conn.execute(
                    "DELETE FROM session_players WHERE session_id = ? AND player_id = ?",
                    (session_id, player_id),
                )
        return present

    def toggle_presence(self, session_id: str, player_id: str) -> bool:
        present = player_id in self.present_player_ids(session_id)
        return self.set_presence(session_id, player_id, not present)

    def get_assignments(self, session_id: str) -> Dict[str, Optional[TeamSide]]:
        self._require_session(session_id)
        with self._session() as conn:
            rows = self._attendance_rows(conn, session_id)
        return self._assignments_from_rows(rows)

    def assign_player(
        self,
        session_id: str,
        player_id: str,
        side: Union[TeamSide, str, None],
    ) -> None:
        self._require_unlocked(session_id)
        team = TeamSide(side).value if side is not None else None
        with self._session() as conn:
            cursor = conn.execute(
                "UPDATE session_players SET team = ? WHERE session_id = ? AND player_id = ?",
                (team, session_id, player_id),
            )
            if cursor.rowcount == 0:
                raise ValueError(f"Player {player_id} is not present in session {session_id}")

    def apply_partition(self, session_id: str, assignments: Mapping[str, Union[TeamSide, str]]) -> None:
        """Replace all assignments; present players missing from ``assignments`` become unassigned."""

        self._require_unlocked(session_id)
        present = set(self.present_player_ids(session_id))
        absent = [pid for pid in assignments if pid not in present]
        if absent:
            raise ValueError(f"Players not present in session {session_id}: {', '.join(sorted(absent))}")
        with self._session() as conn:
            conn.execute("UPDATE session_players SET team = NULL WHERE session_id = ?", (session_id,))
            conn.executemany(
                "UPDATE session_players SET team = ? WHERE session_id = ? AND player_id = ?",
                [(TeamSide(side).value, session_id, pid) for pid, side in assignments.items()],
            )

    def clear_assignments(self, session_id: str) -> None:
        self._require_unlocked(session_id)
        with self._session() as conn:
            conn.execute("UPDATE session_players SET team = NULL WHERE session_id = ?", (session_id,))

    # Results

    def is_locked(self, session_id: str) -> bool:
        with self._session() as conn:
            row = conn.execute("SELECT 1 FROM results WHERE session_id = ?", (session_id,)).fetchone()
        return row is not None

    def save_result(
        self,
        session_id: str,
        *,
        goals_a: Optional[int] = None,
        goals_b: Optional[int] = None,
    ) -> MatchResult:
        """Store the score; the first save also snapshots the rosters and locks the session."""

        for goals in (goals_a, goals_b):
            if goals is not None and goals < 0:
                raise ValueError("Goals must not be negative")
        self._require_session(session_id)
        now = _now()

        with self._session() as conn:
            existing = conn.execute(
                "SELECT 1 FROM results WHERE session_id = ?", (session_id,)
            ).fetchone()
            if existing is not None:
                conn.execute(
                    "UPDATE results SET goals_a = ?, goals_b = ?, updated_at = ? WHERE session_id = ?",
                    (goals_a, goals_b, now, session_id),
                )
            else:
                assignments = self._assignments_from_rows(self._attendance_rows(conn, session_id))
                if any(side is None for side in assignments.values()):
                    raise ValueError("All present players must be assigned to a team before saving a result")
                team_a = [pid for pid, side in assignments.items() if side is TeamSide.A]
                team_b = [pid for pid, side in assignments.items() if side is TeamSide.B]
                if not team_a or not team_b:
                    raise ValueError("Both teams need at least one player")
                try:
                    conn.execute(
                        "INSERT INTO results (session_id, goals_a, goals_b, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                        (session_id, goals_a, goals_b, now, now),
                    )
                except sqlite3.IntegrityError as exc:
                    raise SessionLocked(session_id) from exc
                conn.executemany(
                    "INSERT INTO result_players (session_id, player_id, team) VALUES (?, ?, ?)",
                    [(session_id, pid, TeamSide.A.value) for pid in team_a]
                    + [(session_id, pid, TeamSide.B.value) for pid in team_b],
                )
            result = self._fetch_result(conn, session_id)
        if result is None:
            raise KeyError(session_id)
        return result

    def get_result(self, session_id: str) -> Optional[MatchResult]:
        with self._session() as conn:
            return self._fetch_result(conn, session_id)

    def delete_result(self, session_id: str) -> bool:
        """Remove the result and its rosters; every present player returns to the pool."""

        self._require_session(session_id)
        with self._session() as conn:
            cursor = conn.execute("DELETE FROM results WHERE session_id = ?", (session_id,))
            if cursor.rowcount == 0:
                return False
            conn.execute("UPDATE session_players SET team = NULL WHERE session_id = ?", (session_id,))
        return True

    def list_results(self, season_id: Optional[str] = None) -> List[MatchResult]:
        query = "SELECT r.* FROM results r JOIN sessions s ON s.id = r.session_id"
        params: tuple = ()
        if season_id is not None:
            query += " WHERE s.season_id = ?"
            params = (season_id,)
        query += " ORDER BY s.session_date, s.created_at"
        with self._session() as conn:
            rows = conn.execute(query, params).fetchall()
            results = []
            for row in rows:
                members = conn.execute(
                    "SELECT player_id, team FROM result_players WHERE session_id = ? ORDER BY rowid",
                    (row["session_id"],),
                ).fetchall()
                results.append(self._result_row(row, members))
        return results

    # Helpers

    @staticmethod
    def _attendance_rows(conn: sqlite3.Connection, session_id: str) -> List[sqlite3.Row]:
        return conn.execute(
            """
            SELECT sp.player_id, sp.team FROM session_players sp
            JOIN players p ON p.id = sp.player_id
            WHERE sp.session_id = ? AND p.active = 1
            ORDER BY sp.rowid
            """,
            (session_id,),
        ).fetchall()

    @staticmethod
    def _assignments_from_rows(rows: List[sqlite3.Row]) -> Dict[str, Optional[TeamSide]]:
        return {row["player_id"]: TeamSide(row["team"]) if row["team"] else None for row in rows}

    def _fetch_result(self, conn: sqlite3.Connection, session_id: str) -> Optional[MatchResult]:
        row = conn.execute("SELECT * FROM results WHERE session_id = ?", (session_id,)).fetchone()
        if row is None:
            return None
        members = conn.execute(
            "SELECT player_id, team FROM result_players WHERE session_id = ? ORDER BY rowid",
            (session_id,),
        ).fetchall()
        return self._result_row(row, members)

    def _require_session(self, session_id: str) -> None:
        if self.get_session(session_id) is None:
            raise KeyError(session_id)

    def _require_unlocked(self, session_id: str) -> None:
        self._require_session(session_id)
        if self.is_locked(session_id):
            raise SessionLocked(session_id)

    @staticmethod
    def _season_row(row: sqlite3.Row) -> SeasonRecord:
        return SeasonRecord(
            season_id=row["id"],
            name=row["name"],
            start_date=_parse_date(row["start_date"]),
            end_date=_parse_date(row["end_date"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _session_row(row: sqlite3.Row) -> SessionRecord:
        return SessionRecord(
            session_id=row["id"],
            session_date=date.fromisoformat(row["session_date"]),
            notes=row["notes"],
            season_id=row["season_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _result_row(row: sqlite3.Row, members: List[sqlite3.Row]) -> MatchResult:
        return MatchResult(
            session_id=row["session_id"],
            goals_a=row["goals_a"],
            goals_b=row["goals_b"],
            team_a=tuple(m["player_id"] for m in members if m["team"] == TeamSide.A.value),
            team_b=tuple(m["player_id"] for m in members if m["team"] == TeamSide.B.value),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


__all__ = [
    "MatchResult",
    "RosterStore",
    "SeasonRecord",
    "SessionLocked",
    "SessionRecord",
    "SessionStore",
]
