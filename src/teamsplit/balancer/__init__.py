"""Team balancing built on a many-trials, keep-best greedy search."""

from .service import (
    BalancerError,
    InsufficientPlayers,
    NoValidPartition,
    Partition,
    ScoreBreakdown,
    TeamSummary,
    balance,
    score_assignment,
    score_partition,
    sort_for_display,
    summarize_team,
)

__all__ = [
    "BalancerError",
    "InsufficientPlayers",
    "NoValidPartition",
    "Partition",
    "ScoreBreakdown",
    "TeamSummary",
    "balance",
    "score_assignment",
    "score_partition",
    "sort_for_display",
    "summarize_team",
]
