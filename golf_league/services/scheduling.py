"""
Round-robin schedule generation for leagues.

Unlike a fixed circle rotation, the season length is arbitrary (typically 10
weeks for any team count), so pairs repeat once every pair has met. Each week
is built from all C(N, 2) candidate pairs ranked by priority:

    pair_count * 10000 + (games_t1 + games_t2) * 100 + random * 10

(lower is better) so that repeat meetings are avoided first, then the teams
with fewest games are preferred, with a small random tie-breaker.

A backtracking search picks floor(N/2) disjoint pairs in priority order. If it
fails (or runs out of steps) a greedy single pass fills what it can and the
short week is logged, not raised. With an odd team count one team sits out
each week (a bye). The bye goes to a team with the fewest byes so far, so
match counts never drift more than one apart. Byes are not matches and are
not returned.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Hashable, Sequence, TypeVar

from golf_league.logging_config import get_logger
from golf_league.rng import SeededRNG

logger = get_logger(__name__)

T = TypeVar("T", bound=Hashable)

PAIR_REPEAT_WEIGHT = 10000
TEAM_LOAD_WEIGHT = 100
RANDOM_WEIGHT = 10
# Upper bound on recursive calls per week before falling back to greedy.
MAX_BACKTRACK_STEPS = 200_000


@dataclass(frozen=True)
class ScheduleDiscrepancy:
    """A week that ended up with fewer matches than floor(N/2)."""
    week_index: int
    expected: int
    actual: int


def _pair_key(t1: T, t2: T) -> frozenset:
    return frozenset((t1, t2))


def _rank_candidates(
    teams: list[T],
    pair_counts: Counter,
    team_counts: Counter,
    rng: SeededRNG,
) -> list[tuple[T, T]]:
    scored: list[tuple[float, tuple[T, T]]] = []
    n = len(teams)
    for i in range(n):
        for j in range(i + 1, n):
            t1, t2 = teams[i], teams[j]
            priority = (
                pair_counts[_pair_key(t1, t2)] * PAIR_REPEAT_WEIGHT
                + (team_counts[t1] + team_counts[t2]) * TEAM_LOAD_WEIGHT
                + rng.random() * RANDOM_WEIGHT
            )
            scored.append((priority, (t1, t2)))
    scored.sort(key=lambda item: item[0])
    return [pair for _, pair in scored]


class _StepBudgetExceeded(Exception):
    pass


def _backtrack(
    candidates: list[tuple[T, T]],
    team_count: int,
    target: int,
) -> list[tuple[T, T]] | None:
    """Disjoint pairs in candidate order, or None if no complete week exists."""
    used: set[T] = set()
    chosen: list[tuple[T, T]] = []
    steps = 0

    def search(start: int) -> bool:
        nonlocal steps
        steps += 1
        if steps > MAX_BACKTRACK_STEPS:
            raise _StepBudgetExceeded()
        if len(chosen) >= target:
            return True
        remaining = team_count - len(used)
        if remaining < 2 or (target - len(chosen)) * 2 > remaining:
            return False
        for i in range(start, len(candidates)):
            t1, t2 = candidates[i]
            if t1 in used or t2 in used:
                continue
            chosen.append((t1, t2))
            used.add(t1)
            used.add(t2)
            if search(i + 1):
                return True
            chosen.pop()
            used.discard(t1)
            used.discard(t2)
        return False

    try:
        found = search(0)
    except _StepBudgetExceeded:
        return None
    return list(chosen) if found else None


def _greedy(candidates: list[tuple[T, T]], target: int) -> list[tuple[T, T]]:
    used: set[T] = set()
    chosen: list[tuple[T, T]] = []
    for t1, t2 in candidates:
        if len(chosen) >= target:
            break
        if t1 in used or t2 in used:
            continue
        chosen.append((t1, t2))
        used.add(t1)
        used.add(t2)
    return chosen


def _next_bye(teams: list[T], bye_counts: Counter) -> T:
    """First team (in shuffled order) among those with the fewest byes."""
    return min(teams, key=lambda t: bye_counts[t])


def generate_schedule(
    team_ids: Sequence[T],
    week_count: int,
    seed: int | None = None,
) -> list[list[tuple[T, T]]]:
    """
    Return week_count weeks, each a list of disjoint (team, team) pairs.

    No side effects; callers persist the result. Fewer than 2 distinct teams
    (or week_count < 1) yields an empty schedule. Pass seed for reproducible
    output; by default every run differs.
    """
    teams = list(dict.fromkeys(team_ids))
    n = len(teams)
    if n < 2 or week_count < 1:
        return []

    rng = SeededRNG(seed)
    rng.shuffle(teams)
    target = n // 2
    pair_counts: Counter = Counter()
    team_counts: Counter = Counter({t: 0 for t in teams})
    bye_counts: Counter = Counter({t: 0 for t in teams})
    schedule: list[list[tuple[T, T]]] = []

    for week_index in range(week_count):
        candidates = _rank_candidates(teams, pair_counts, team_counts, rng)
        pool_size = n
        if n % 2:
            bye = _next_bye(teams, bye_counts)
            candidates = [pair for pair in candidates if bye not in pair]
            pool_size = n - 1
        week = _backtrack(candidates, pool_size, target)
        if week is None:
            logger.warning("Week %d: backtracking failed, using greedy matching", week_index + 1)
            week = _greedy(candidates, target)
        booked = {t for pair in week for t in pair}
        if len(week) < target:
            logger.warning(
                "Week %d: generated %d/%d matches; unmatched teams: %s",
                week_index + 1, len(week), target,
                ", ".join(str(t) for t in teams if t not in booked),
            )
        for t1, t2 in week:
            pair_counts[_pair_key(t1, t2)] += 1
            team_counts[t1] += 1
            team_counts[t2] += 1
        for t in teams:
            if t not in booked:
                bye_counts[t] += 1
        schedule.append(week)

    return schedule


def find_double_bookings(schedule: list[list[tuple[T, T]]]) -> list[tuple[int, T]]:
    """(week_index, team) for every team listed more than once in the same week."""
    doubles: list[tuple[int, T]] = []
    for week_index, week in enumerate(schedule):
        counts = Counter(t for pair in week for t in pair)
        doubles.extend((week_index, t) for t, c in counts.items() if c > 1)
    return doubles


def team_match_counts(
    schedule: list[list[tuple[T, T]]],
    team_ids: Sequence[T] = (),
) -> dict[T, int]:
    """Matches played per team across the season. Teams in team_ids with no games get 0."""
    counts: dict[T, int] = {t: 0 for t in team_ids}
    for week in schedule:
        for t1, t2 in week:
            counts[t1] = counts.get(t1, 0) + 1
            counts[t2] = counts.get(t2, 0) + 1
    return counts


def schedule_discrepancies(
    schedule: list[list[tuple[T, T]]],
    team_count: int,
) -> list[ScheduleDiscrepancy]:
    """Weeks holding fewer than floor(team_count / 2) pairs."""
    expected = team_count // 2
    return [
        ScheduleDiscrepancy(week_index=i, expected=expected, actual=len(week))
        for i, week in enumerate(schedule)
        if len(week) < expected
    ]
