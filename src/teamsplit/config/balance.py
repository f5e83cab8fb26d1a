"""Balancer configuration: size rules, objective weights and trial budgets."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


logger = logging.getLogger(__name__)

_TRIALS_ENV = "TEAMSPLIT_TRIALS"
_WORKERS_ENV = "TEAMSPLIT_WORKERS"

_TRIALS_DEFAULT = 1200
_WORKERS_DEFAULT = 1


def _env_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid int for %s: %s; using default %d", name, raw, default)
        return default
    if min_value is not None:
        value = max(min_value, value)
    return value


def default_trials() -> int:
    return _env_int(_TRIALS_ENV, _TRIALS_DEFAULT, min_value=1)


def default_workers() -> int:
    return _env_int(_WORKERS_ENV, _WORKERS_DEFAULT, min_value=1)


class SizeRule(str, Enum):
    NONE = "none"
    BALANCED = "balanced"
    STRICT = "strict"


@dataclass(frozen=True)
class BalanceWeights:
    """Multipliers for each objective term.

    The ordering is part of the contract: skill balance dominates the
    demographic terms, which in turn dominate raw headcount.
    """

    strength: float = 10.0
    strong: float = 6.0
    age: float = 2.0
    position: float = 2.0
    size: float = 1.0

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError("size weight must be non-negative")
        if not self.strength > self.strong:
            raise ValueError("strength weight must exceed strong-player weight")
        if not self.strong > max(self.age, self.position):
            raise ValueError("strong-player weight must exceed age and position weights")
        if not min(self.age, self.position) > self.size:
            raise ValueError("age and position weights must exceed size weight")


DEFAULT_WEIGHTS = BalanceWeights()


@dataclass(frozen=True)
class BalanceOptions:
    size_rule: SizeRule = SizeRule.BALANCED
    trials: int = field(default_factory=default_trials)
    team_a_size: Optional[int] = None
    seed: Optional[int] = None
    workers: int = field(default_factory=default_workers)
    weights: BalanceWeights = DEFAULT_WEIGHTS

    def __post_init__(self) -> None:
        if not isinstance(self.size_rule, SizeRule):
            object.__setattr__(self, "size_rule", resolve_size_rule(self.size_rule))
        if self.trials < 1:
            raise ValueError("trials must be at least 1")
        if self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.team_a_size is not None and self.team_a_size < 0:
            raise ValueError("team_a_size must be non-negative")

    def size_targets(self, total: int) -> Optional[Tuple[int, int]]:
        """Return hard (team A, team B) size caps for ``total`` players, if any."""

        if self.team_a_size is not None:
            return self.team_a_size, total - self.team_a_size
        if self.size_rule is SizeRule.BALANCED:
            cap = math.ceil(total / 2)
            return cap, cap
        if self.size_rule is SizeRule.STRICT:
            return math.ceil(total / 2), total // 2
        return None

    def sizes_valid(self, size_a: int, size_b: int) -> bool:
        total = size_a + size_b
        if self.team_a_size is not None:
            return size_a == self.team_a_size
        if self.size_rule is SizeRule.BALANCED:
            return abs(size_a - size_b) <= 1
        if self.size_rule is SizeRule.STRICT:
            return size_a == math.ceil(total / 2) and size_b == total // 2
        return True


def resolve_size_rule(value: Union[str, SizeRule]) -> SizeRule:
    if isinstance(value, SizeRule):
        return value
    if not isinstance(value, str):
        raise TypeError("size_rule must be a str or SizeRule")
    key = value.strip().lower()
    try:
        return SizeRule(key)
    except ValueError:
        raise ValueError(f"Unsupported size rule {value!r}") from None
