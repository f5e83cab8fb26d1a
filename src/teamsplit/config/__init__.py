"""Configuration helpers for the team balancer."""

from .balance import (
    DEFAULT_WEIGHTS,
    BalanceOptions,
    BalanceWeights,
    SizeRule,
    default_trials,
    default_workers,
    resolve_size_rule,
)

__all__ = [
    "DEFAULT_WEIGHTS",
    "BalanceOptions",
    "BalanceWeights",
    "SizeRule",
    "default_trials",
    "default_workers",
    "resolve_size_rule",
]
