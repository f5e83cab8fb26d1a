"""Session-level orchestration of presence, team generation and views."""

from .service import SessionView, build_session_view, generate_session_teams, present_players

__all__ = ["SessionView", "build_session_view", "generate_session_teams", "present_players"]
