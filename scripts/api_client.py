"""Lightweight REST client for the teamsplit API."""

from __future__ import annotations

import argparse
import json

import httpx


def _print_team(label: str, players: list[dict]) -> None:
    names = ", ".join(player["name"] for player in players) or "-"
    print(f"{label} ({len(players)}): {names}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the teamsplit REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("--list-players", action="store_true", help="List active players and exit")
    parser.add_argument("--list-sessions", action="store_true", help="List recent sessions and exit")
    parser.add_argument("--session", metavar="SESSION_ID", help="Session to show or generate teams for")
    parser.add_argument("--generate", action="store_true", help="Generate teams for --session")
    parser.add_argument("--size-rule", default="balanced", choices=["none", "balanced", "strict"])
    parser.add_argument("--trials", type=int, default=None, help="Number of search trials")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url) as client:
        if args.list_players:
            resp = client.get("/players", params={"include_inactive": False})
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return
        if args.list_sessions:
            resp = client.get("/sessions")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        if not args.session:
            raise SystemExit("--session is required unless using --list-players/--list-sessions")

        if args.generate:
            options = {"size_rule": args.size_rule, "trials": args.trials, "seed": args.seed}
            resp = client.post(f"/sessions/{args.session}/teams/generate", json=options)
        else:
            resp = client.get(f"/sessions/{args.session}")
        if resp.status_code == 404:
            raise SystemExit(f"session {args.session} not found")
        if resp.status_code in (409, 422):
            raise SystemExit(resp.json().get("detail", resp.text))
        resp.raise_for_status()

        detail = resp.json()
        if detail.get("message"):
            print(detail["message"])
        _print_team("Team A", detail["team_a"])
        _print_team("Team B", detail["team_b"])
        _print_team("Unassigned", detail["pool"])
        print(f"Balance score: {detail['breakdown']['total']:.1f}")


if __name__ == "__main__":
    main()
