"""Command-line interface for splitting a roster CSV into two balanced teams."""

from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path
from typing import Optional, Sequence

from teamsplit.balancer import BalancerError, balance, sort_for_display, summarize_team
from teamsplit.config import BalanceOptions, SizeRule, default_trials, default_workers
from teamsplit.ingest import load_records_from_csv
from teamsplit.models import TeamSide


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Split present players into two balanced teams")
    parser.add_argument("roster", type=Path, help="Path to roster CSV")
    parser.add_argument(
        "--present",
        nargs="*",
        default=None,
        help="Player IDs attending the session (defaults to every active player)",
    )
    parser.add_argument(
        "--size-rule",
        choices=[rule.value for rule in SizeRule],
        default=SizeRule.BALANCED.value,
        help="Hard team size rule",
    )
    parser.add_argument(
        "--team-a-size",
        type=int,
        default=None,
        help="Exact number of players for team A (overrides --size-rule)",
    )
    parser.add_argument("--trials", type=int, default=None, help="Number of search trials")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for a reproducible split")
    parser.add_argument("--workers", type=int, default=None, help="Worker processes for the search")
    parser.add_argument(
        "--column",
        action="append",
        default=[],
        help="Mapping for roster CSV columns (e.g., name=Vorname|Nachname)",
    )
    parser.add_argument("--output", type=Path, default=Path("teams.csv"), help="Output CSV path")
    return parser.parse_args(argv)


def _parse_mapping(entries: list[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for entry in entries:
        if "=" not in entry:
            raise ValueError(f"Invalid mapping entry '{entry}', expected key=value")
        key, value = entry.split("=", 1)
        mapping[key.strip()] = value.strip()
    return mapping


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)

    records = load_records_from_csv(args.roster, mapping=_parse_mapping(args.column) or None)
    players = [record for record in records if record.active]
    if args.present is not None:
        wanted = set(args.present)
        unknown = wanted - {record.player_id for record in players}
        if unknown:
            print(f"Ignoring unknown or inactive players: {', '.join(sorted(unknown))}")
        players = [record for record in players if record.player_id in wanted]

    try:
        options = BalanceOptions(
            size_rule=SizeRule(args.size_rule),
            trials=args.trials if args.trials is not None else default_trials(),
            team_a_size=args.team_a_size,
            seed=args.seed,
            workers=args.workers if args.workers is not None else default_workers(),
        )
        partition = balance(players, options)
    except (BalancerError, ValueError) as exc:
        print(f"Unable to build teams: {exc}", file=sys.stderr)
        return 1

    by_id = {player.player_id: player for player in players}
    teams = {
        side: sort_for_display(by_id[pid] for pid in partition.team(side))
        for side in (TeamSide.A, TeamSide.B)
    }

    with args.output.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["team", "player_id", "name", "position", "age_group"])
        for side, members in teams.items():
            for player in members:
                writer.writerow([side.value, player.player_id, player.name, player.position.value, player.age_group.value])

    for side, members in teams.items():
        summary = summarize_team(members)
        print(
            f"Team {side.value}: {summary.size} players "
            f"(GK {summary.goalkeepers}, defense {summary.defense}, attack {summary.attack}, "
            f"senior {summary.senior}, over32 {summary.over32})"
        )
    print(f"Balance score {partition.score:.1f} after {partition.trials_run} trials; wrote {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
