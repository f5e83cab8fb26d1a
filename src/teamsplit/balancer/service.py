"""Randomized greedy team balancing with a weighted objective."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import multiprocessing as mp
import random
import time
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from teamsplit.config import DEFAULT_WEIGHTS, BalanceOptions, BalanceWeights
from teamsplit.models import AgeGroup, PlayerRecord, Position, TeamSide


logger = logging.getLogger("uvicorn.error")
logger.setLevel(logging.INFO)


class BalancerError(Exception):
    """Base class for balancer failures reported to the caller."""


class InsufficientPlayers(BalancerError):
    def __init__(self, count: int):
        super().__init__(f"At least 2 players are required to build teams, got {count}")
        self.count = count


class NoValidPartition(BalancerError):
    def __init__(self, message: str, trials_run: int = 0):
        super().__init__(message)
        self.message = message
        self.trials_run = trials_run


@dataclass(frozen=True)
class ScoreBreakdown:
    strength_diff: int
    strong_diff: int
    age_diff: int
    position_diff: int
    size_diff: int
    total: float


@dataclass(frozen=True)
class TeamSummary:
    size: int
    goalkeepers: int
    defense: int
    attack: int
    senior: int
    over32: int
    strength: int
    strong: int
    average_strength: float


@dataclass(frozen=True)
class Partition:
    """Result of a fresh balance: every input player on exactly one side."""

    assignments: Mapping[str, TeamSide]
    breakdown: ScoreBreakdown
    trials_run: int
    valid_trials: int
    best_history: Tuple[float, ...]

    @property
    def score(self) -> float:
        return self.breakdown.total

    def team(self, side: TeamSide) -> Tuple[str, ...]:
        return tuple(pid for pid, assigned in self.assignments.items() if assigned is side)

    def side_of(self, player_id: str) -> TeamSide:
        return self.assignments[player_id]


@dataclass(frozen=True)
class _TrialBatch:
    batch_id: int
    seed: int
    start: int
    stop: int
    field_players: Tuple[PlayerRecord, ...]
    base_a: Tuple[PlayerRecord, ...]
    base_b: Tuple[PlayerRecord, ...]
    options: BalanceOptions


@dataclass(frozen=True)
class _BatchResult:
    batch_id: int
    scores: Tuple[Optional[float], ...]
    best_index: Optional[int]
    best_a: Tuple[str, ...]
    best_b: Tuple[str, ...]
    best_breakdown: Optional[ScoreBreakdown]


def score_partition(
    team_a: Sequence[PlayerRecord],
    team_b: Sequence[PlayerRecord],
    weights: BalanceWeights = DEFAULT_WEIGHTS,
) -> ScoreBreakdown:
    """Weighted sum of absolute differences between two teams; lower is better."""

    strength_diff = abs(sum(p.strength for p in team_a) - sum(p.strength for p in team_b))
    strong_diff = abs(sum(1 for p in team_a if p.is_strong) - sum(1 for p in team_b if p.is_strong))
    age_diff = abs(sum(p.age_score for p in team_a) - sum(p.age_score for p in team_b))
    position_diff = abs(sum(p.position_score for p in team_a) - sum(p.position_score for p in team_b))
    size_diff = abs(len(team_a) - len(team_b))
    total = (
        strength_diff * weights.strength
        + strong_diff * weights.strong
        + age_diff * weights.age
        + position_diff * weights.position
        + size_diff * weights.size
    )
    return ScoreBreakdown(
        strength_diff=strength_diff,
        strong_diff=strong_diff,
        age_diff=age_diff,
        position_diff=position_diff,
        size_diff=size_diff,
        total=float(total),
    )


def _coerce_side(value: Union[TeamSide, str, None]) -> Optional[TeamSide]:
    if value is None or isinstance(value, TeamSide):
        return value
    return TeamSide(value)


def score_assignment(
    players: Iterable[PlayerRecord],
    assignment: Mapping[str, Union[TeamSide, str, None]],
    weights: BalanceWeights = DEFAULT_WEIGHTS,
) -> ScoreBreakdown:
    """Score an existing (possibly locked) assignment; unassigned players are ignored."""

    team_a: List[PlayerRecord] = []
    team_b: List[PlayerRecord] = []
    for player in players:
        side = _coerce_side(assignment.get(player.player_id))
        if side is TeamSide.A:
            team_a.append(player)
        elif side is TeamSide.B:
            team_b.append(player)
    return score_partition(team_a, team_b, weights)


def sort_for_display(players: Iterable[PlayerRecord]) -> List[PlayerRecord]:
    """Goalkeepers first, then defense, attack and unknown roles; by name within a role."""

    return sorted(players, key=lambda p: (p.role_rank, p.name.casefold(), p.player_id))


def summarize_team(players: Sequence[PlayerRecord]) -> TeamSummary:
    strength = sum(p.strength for p in players)
    return TeamSummary(
        size=len(players),
        goalkeepers=sum(1 for p in players if p.position is Position.GOALKEEPER),
        defense=sum(1 for p in players if p.position is Position.DEFENSE),
        attack=sum(1 for p in players if p.position is Position.ATTACK),
        senior=sum(1 for p in players if p.age_group is AgeGroup.SENIOR),
        over32=sum(1 for p in players if p.age_group is AgeGroup.OVER32),
        strength=strength,
        strong=sum(1 for p in players if p.is_strong),
        average_strength=round(strength / len(players), 2) if players else 0.0,
    )


def _open_side(
    preferred: TeamSide,
    size_a: int,
    size_b: int,
    targets: Optional[Tuple[int, int]],
) -> Optional[TeamSide]:
    if targets is None:
        return preferred
    caps = {TeamSide.A: targets[0], TeamSide.B: targets[1]}
    sizes = {TeamSide.A: size_a, TeamSide.B: size_b}
    for side in (preferred, preferred.other):
        if sizes[side] < caps[side]:
            return side
    return None


def _seed_goalkeepers(
    goalkeepers: Sequence[PlayerRecord],
    targets: Optional[Tuple[int, int]],
) -> Optional[Tuple[List[PlayerRecord], List[PlayerRecord]]]:
    team_a: List[PlayerRecord] = []
    team_b: List[PlayerRecord] = []
    for idx, keeper in enumerate(goalkeepers):
        preferred = TeamSide.A if idx % 2 == 0 else TeamSide.B
        side = _open_side(preferred, len(team_a), len(team_b), targets)
        if side is None:
            return None
        (team_a if side is TeamSide.A else team_b).append(keeper)
    return team_a, team_b


def _assign_greedy(
    ordering: Sequence[PlayerRecord],
    base_a: Sequence[PlayerRecord],
    base_b: Sequence[PlayerRecord],
    targets: Optional[Tuple[int, int]],
) -> Optional[Tuple[List[PlayerRecord], List[PlayerRecord]]]:
    team_a = list(base_a)
    team_b = list(base_b)
    sum_a = sum(p.strength for p in team_a)
    sum_b = sum(p.strength for p in team_b)
    for player in ordering:
        if sum_a != sum_b:
            preferred = TeamSide.A if sum_a < sum_b else TeamSide.B
        else:
            preferred = TeamSide.A if len(team_a) <= len(team_b) else TeamSide.B
        side = _open_side(preferred, len(team_a), len(team_b), targets)
        if side is None:
            return None
        if side is TeamSide.A:
            team_a.append(player)
            sum_a += player.strength
        else:
            team_b.append(player)
            sum_b += player.strength
    return team_a, team_b


def _shuffled(players: Sequence[PlayerRecord], rng: random.Random) -> List[PlayerRecord]:
    copy = list(players)
    rng.shuffle(copy)
    return copy


def _run_trial_batch(batch: _TrialBatch) -> _BatchResult:
    """Run trials ``start..stop`` and keep the first strictly best candidate."""

    rng = random.Random(batch.seed)
    options = batch.options
    targets = options.size_targets(
        len(batch.field_players) + len(batch.base_a) + len(batch.base_b)
    )
    scores: List[Optional[float]] = []
    best_index: Optional[int] = None
    best_a: Tuple[str, ...] = ()
    best_b: Tuple[str, ...] = ()
    best_breakdown: Optional[ScoreBreakdown] = None

    for index in range(batch.start, batch.stop):
        # Even trials replay the strength-sorted order; odd trials explore a shuffle of it.
        ordering = batch.field_players if index % 2 == 0 else _shuffled(batch.field_players, rng)
        candidate = _assign_greedy(ordering, batch.base_a, batch.base_b, targets)
        if candidate is None:
            scores.append(None)
            continue
        team_a, team_b = candidate
        if not team_a or not team_b or not options.sizes_valid(len(team_a), len(team_b)):
            scores.append(None)
            continue
        breakdown = score_partition(team_a, team_b, options.weights)
        scores.append(breakdown.total)
        if best_breakdown is None or breakdown.total < best_breakdown.total:
            best_index = index
            best_a = tuple(p.player_id for p in team_a)
            best_b = tuple(p.player_id for p in team_b)
            best_breakdown = breakdown

    return _BatchResult(
        batch_id=batch.batch_id,
        scores=tuple(scores),
        best_index=best_index,
        best_a=best_a,
        best_b=best_b,
        best_breakdown=best_breakdown,
    )


def _plan_batches(
    field_players: Sequence[PlayerRecord],
    base_a: Sequence[PlayerRecord],
    base_b: Sequence[PlayerRecord],
    options: BalanceOptions,
    rng: random.Random,
) -> List[_TrialBatch]:
    workers = min(options.workers, options.trials)
    per_batch = math.ceil(options.trials / workers)
    batches: List[_TrialBatch] = []
    start = 0
    batch_id = 0
    while start < options.trials:
        stop = min(options.trials, start + per_batch)
        batches.append(
            _TrialBatch(
                batch_id=batch_id,
                seed=rng.randint(1, 2 ** 31 - 1),
                start=start,
                stop=stop,
                field_players=tuple(field_players),
                base_a=tuple(base_a),
                base_b=tuple(base_b),
                options=options,
            )
        )
        start = stop
        batch_id += 1
    return batches


def _run_batches(batches: Sequence[_TrialBatch], workers: int) -> List[_BatchResult]:
    if workers <= 1 or len(batches) <= 1:
        return [_run_trial_batch(batch) for batch in batches]
    ctx = mp.get_context("spawn")
    with ctx.Pool(processes=min(workers, len(batches))) as pool:
        results = pool.map(_run_trial_batch, batches)
    return sorted(results, key=lambda result: result.batch_id)


def balance(
    players: Sequence[PlayerRecord],
    options: Optional[BalanceOptions] = None,
) -> Partition:
    """Split present players into two teams; re-rolls differ unless a seed is set.

    The caller is expected to pass only active, present players.
    """

    options = options or BalanceOptions()
    players = list(players)
    if len(players) < 2:
        raise InsufficientPlayers(len(players))

    seen: set[str] = set()
    for player in players:
        if player.player_id in seen:
            raise ValueError(f"Duplicate player id {player.player_id!r}")
        seen.add(player.player_id)

    goalkeepers = [p for p in players if p.is_goalkeeper]
    field_players = [p for p in players if not p.is_goalkeeper]
    targets = options.size_targets(len(players))

    run_start = time.perf_counter()
    logger.info(
        "Balancing %s players (%s goalkeepers) – trials=%s, workers=%s, size_rule=%s, targets=%s",
        len(players),
        len(goalkeepers),
        options.trials,
        options.workers,
        options.size_rule.value,
        targets,
    )

    seeded = _seed_goalkeepers(goalkeepers, targets)
    if seeded is None:
        logger.warning("Goalkeeper seeding cannot satisfy size targets %s", targets)
        raise NoValidPartition(
            f"Goalkeepers cannot be placed within size targets {targets}",
            trials_run=0,
        )
    base_a, base_b = seeded

    field_sorted = sorted(field_players, key=lambda p: p.strength, reverse=True)
    rng = random.Random(options.seed)
    batches = _plan_batches(field_sorted, base_a, base_b, options, rng)
    results = _run_batches(batches, options.workers)

    history: List[float] = []
    best_so_far = math.inf
    valid_trials = 0
    for result in results:
        for score in result.scores:
            if score is not None:
                valid_trials += 1
                best_so_far = min(best_so_far, score)
            history.append(best_so_far)

    winners = [r for r in results if r.best_breakdown is not None and r.best_index is not None]
    if not winners:
        logger.warning(
            "No valid partition after %s trials (targets=%s, rule=%s)",
            options.trials,
            targets,
            options.size_rule.value,
        )
        raise NoValidPartition(
            f"No trial satisfied the size rule {options.size_rule.value!r} with targets {targets}",
            trials_run=options.trials,
        )

    best = min(winners, key=lambda r: (r.best_breakdown.total, r.best_index))
    team_a_ids = set(best.best_a)
    assignments = {
        p.player_id: TeamSide.A if p.player_id in team_a_ids else TeamSide.B
        for p in players
    }
    breakdown = best.best_breakdown

    logger.info(
        "Best split %s vs %s players – score %.1f (strength diff %s) from trial %s; %s/%s valid trials in %.3fs",
        len(best.best_a),
        len(best.best_b),
        breakdown.total,
        breakdown.strength_diff,
        best.best_index,
        valid_trials,
        options.trials,
        time.perf_counter() - run_start,
    )

    return Partition(
        assignments=assignments,
        breakdown=breakdown,
        trials_run=options.trials,
        valid_trials=valid_trials,
        best_history=tuple(history),
    )
