"""
Rolling handicaps and weighted scores.

Each scored round stores a raw differential (player total minus the round low,
capped) on that player's handicap record for the week. The applied handicap
for week N is the rounded mean of the raw differentials from the 4 most recent
earlier weeks on the same track (regular season or championship). Weighted
score = round(total - applied handicap).

Rounding is half-up toward +infinity everywhere: round_half_up(10.5) == 11,
round_half_up(-0.5) == 0.

Weeks are identified by (league, week_number, is_championship) rather than by
row id so duplicate week rows share one handicap history.
"""
from __future__ import annotations

import math
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator

from golf_league.config import LeagueRules, get_rules
from golf_league.logging_config import get_logger
from golf_league.models import Handicap, HandicapStatus, Score, Week
from golf_league.persistence.store import LeagueStore
from golf_league.services.errors import (
    LeagueNotFoundError,
    PlayerNotFoundError,
    RecalculationInProgressError,
    WeekNotFoundError,
)

logger = get_logger(__name__)


# ---------- Pure helpers ----------


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_raw_handicap(player_total: int, round_low: int, cap: int = 25) -> int:
    """Differential for one round: player total minus the round low, clamped to [0, cap]."""
    return max(0, min(cap, round_half_up(player_total - round_low)))


def calculate_average(values: Iterable[float]) -> int:
    """Rounded mean; 0 for no values."""
    vals = list(values)
    if not vals:
        return 0
    return round_half_up(sum(vals) / len(vals))


def calculate_baseline(raw_handicaps: list[int], rounds: int = 3) -> int:
    """Rounded mean of the first `rounds` differentials."""
    if len(raw_handicaps) < rounds:
        raise ValueError(f"Need at least {rounds} rounds to calculate baseline")
    return calculate_average(raw_handicaps[:rounds])


def weighted_score(total: int | None, handicap: float | None) -> int | None:
    if total is None:
        return None
    return round_half_up(total - (handicap or 0))


# ---------- Results ----------


@dataclass
class WindowResult:
    """Outcome of averaging a player's trailing raw differentials for one week."""
    status: HandicapStatus
    differentials: list[int]
    week_numbers: list[int]
    required: int
    handicap: int | None = None

    def describe(self) -> str:
        if self.status == HandicapStatus.COMPUTED:
            return "can_calculate"
        if self.status == HandicapStatus.BASELINE:
            return "baseline"
        if self.status == HandicapStatus.INSUFFICIENT:
            return f"insufficient_raw_handicaps ({len(self.differentials)}/{self.required})"
        return "no_raw_handicaps"

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "description": self.describe(),
            "differentials": list(self.differentials),
            "week_numbers": list(self.week_numbers),
            "handicap": self.handicap,
        }


@dataclass
class ApplyResult:
    record: Handicap
    scores_touched: int


@dataclass
class RecalculationResult:
    league_id: str
    updated_count: int = 0
    skipped_count: int = 0
    weighted_scores_touched: int = 0
    aborted: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "league_id": self.league_id,
            "updated_count": self.updated_count,
            "skipped_count": self.skipped_count,
            "weighted_scores_touched": self.weighted_scores_touched,
            "aborted": self.aborted,
            "errors": list(self.errors),
        }


# ---------- Per-league sweep serialization ----------

# League ids with a sweep in flight; entries are removed when the sweep ends.
_running_sweeps: set[str] = set()
_running_sweeps_guard = threading.Lock()


@contextmanager
def league_sweep(league_id: str) -> Iterator[None]:
    """Claim league_id for one sweep. Raises RecalculationInProgressError if already claimed."""
    with _running_sweeps_guard:
        if league_id in _running_sweeps:
            raise RecalculationInProgressError(f"Handicap recalculation already running for league {league_id}")
        _running_sweeps.add(league_id)
    try:
        yield
    finally:
        with _running_sweeps_guard:
            _running_sweeps.discard(league_id)


# ---------- Engine ----------


class HandicapEngine:
    """
    Derives applied handicaps and weighted scores from raw differentials.
    All reads and writes go through the injected store.
    """

    def __init__(self, store: LeagueStore, rules: LeagueRules | None = None) -> None:
        self._store = store
        self._rules = rules or get_rules()

    # ---------- lookups ----------

    def _require_week(self, week_id: str) -> Week:
        week = self._store.get_week(week_id)
        if week is None:
            raise WeekNotFoundError(f"Week not found: {week_id}")
        return week

    def _require_player(self, player_id: str) -> None:
        if self._store.get_player(player_id) is None:
            raise PlayerNotFoundError(f"Player not found: {player_id}")

    def _weeks_by_id(self, league_id: str) -> dict[str, Week]:
        return {w.id: w for w in self._store.list_weeks(league_id)}

    def _same_logical_week(self, week: Week, weeks: Iterable[Week]) -> list[Week]:
        return [w for w in weeks if w.track_key == week.track_key]

    def _raw_by_week_number(self, player_id: str, league_id: str, is_championship: bool) -> dict[int, int]:
        """
        week_number -> raw differential for one track. With duplicate week rows
        the most recently updated record carrying a raw value wins.
        """
        weeks = self._weeks_by_id(league_id)
        raw: dict[int, int] = {}
        for h in self._store.list_handicaps_for_player(player_id):
            if h.raw_handicap is None:
                continue
            week = weeks.get(h.week_id)
            if week is None or week.is_championship != is_championship:
                continue
            raw.setdefault(week.week_number, h.raw_handicap)
        return raw

    def _logical_week_records(self, player_id: str, week: Week) -> list[Handicap]:
        """Player's handicap records on any row of week's logical week, newest first."""
        ids = {w.id for w in self._same_logical_week(week, self._store.list_weeks(week.league_id))}
        return [h for h in self._store.list_handicaps_for_player(player_id) if h.week_id in ids]

    # ---------- averaging ----------

    def average_window(self, player_id: str, week_id: str) -> WindowResult:
        """
        Average the raw differentials of the `handicap_window` most recent weeks
        before the target week on its track. Fewer than that: insufficient, no
        handicap produced.
        """
        target = self._require_week(week_id)
        required = self._rules.handicap_window
        raw = self._raw_by_week_number(player_id, target.league_id, target.is_championship)
        prior = sorted(n for n in raw if n < target.week_number)[-required:]
        diffs = [raw[n] for n in prior]
        if not diffs:
            return WindowResult(HandicapStatus.NO_DATA, [], [], required)
        if len(diffs) < required:
            return WindowResult(HandicapStatus.INSUFFICIENT, diffs, prior, required)
        return WindowResult(HandicapStatus.COMPUTED, diffs, prior, required, handicap=calculate_average(diffs))

    def status_for(self, player_id: str, week_id: str) -> WindowResult:
        """average_window, reporting BASELINE when the logical week is pinned."""
        week = self._require_week(week_id)
        pinned = [h for h in self._logical_week_records(player_id, week) if h.is_baseline]
        if pinned:
            return WindowResult(
                HandicapStatus.BASELINE, [], [], self._rules.handicap_window,
                handicap=round_half_up(pinned[0].effective or 0),
            )
        return self.average_window(player_id, week_id)

    def current_handicap(self, player_id: str, week_id: str) -> float | None:
        """Newest effective handicap on week_id's logical week, or None."""
        week = self._require_week(week_id)
        for h in self._logical_week_records(player_id, week):
            if h.effective is not None:
                return h.effective
        return None

    # ---------- writes ----------

    def _reweight_scores(self, player_id: str, week: Week, handicap: float) -> int:
        """Recompute weighted scores for every score row on week's logical week."""
        weeks = self._weeks_by_id(week.league_id)
        touched = 0
        for score in self._store.list_scores_for_player(player_id):
            score_week = weeks.get(score.week_id)
            if score_week is None or score_week.track_key != week.track_key:
                continue
            if score.total is None:
                continue
            self._store.update_weighted_score(score.id, weighted_score(score.total, handicap))
            touched += 1
        return touched

    def apply_handicap(self, player_id: str, week_id: str, handicap: float, pinned: bool = False) -> ApplyResult:
        """
        Upsert the (player, week) handicap record, then rewrite weighted scores
        of every score the player has on the same logical week.

        pinned marks the record as a manual override (is_baseline) so the
        league sweep leaves it alone. pinned=False never clears an existing pin.
        """
        self._require_player(player_id)
        week = self._require_week(week_id)
        fields: dict[str, float | bool] = {"handicap": handicap, "applied_handicap": handicap}
        if pinned:
            fields["is_baseline"] = True
        existing = self._store.get_handicap(player_id, week_id)
        if existing is not None:
            self._store.update_handicap(existing.id, **fields)
            record = self._store.get_handicap(player_id, week_id) or replace(existing, **fields)
        else:
            record = self._store.create_handicap(player_id, week_id, **fields)
        touched = self._reweight_scores(player_id, week, handicap)
        return ApplyResult(record=record, scores_touched=touched)

    def record_round(self, week_id: str) -> int:
        """
        Store each player's raw differential for a completed round.

        Runs only once every league player has a total on the logical week;
        returns the number of differentials written (0 if incomplete).
        """
        week = self._require_week(week_id)
        players = self._store.list_players(week.league_id)
        if not players:
            return 0
        rows = self._same_logical_week(week, self._store.list_weeks(week.league_id))
        latest: dict[str, tuple[Score, int]] = {}
        for row in rows:
            for score in self._store.list_scores_for_week(row.id):
                total = score.total
                if total is None:
                    continue
                current = latest.get(score.player_id)
                if current is None or score.updated_at > current[0].updated_at:
                    latest[score.player_id] = (score, total)
        missing = [p.display_name for p in players if p.id not in latest]
        if missing:
            logger.info(
                "Week %d not complete, waiting on %s; raw handicaps deferred",
                week.week_number, ", ".join(missing),
            )
            return 0
        round_low = min(total for _, total in latest.values())
        for score, total in latest.values():
            raw = calculate_raw_handicap(total, round_low, self._rules.raw_handicap_cap)
            existing = self._store.get_handicap(score.player_id, score.week_id)
            if existing is not None:
                self._store.update_handicap(existing.id, raw_handicap=raw)
            else:
                self._store.create_handicap(score.player_id, score.week_id, raw_handicap=raw)
        logger.info("Week %d: stored %d raw handicaps (round low %d)", week.week_number, len(latest), round_low)
        return len(latest)

    def seed_baselines(self, league_id: str) -> int:
        """
        Pin baseline handicaps from the opening rounds.

        For each player with raw data in regular weeks 1..baseline_rounds, the
        baseline is their rounded mean. Those weeks are pinned (is_baseline)
        and the following week receives the baseline unpinned, so it holds
        until the rolling window fills. Returns players seeded.
        """
        if self._store.get_league(league_id) is None:
            raise LeagueNotFoundError(f"League not found: {league_id}")
        rounds = self._rules.baseline_rounds
        weeks = self._store.list_weeks(league_id, max_week_number=rounds + 1, is_championship=False)
        by_number: dict[int, list[Week]] = {}
        for w in weeks:
            by_number.setdefault(w.week_number, []).append(w)
        seeded = 0
        for player in self._store.list_players(league_id):
            raw = self._raw_by_week_number(player.id, league_id, False)
            opening = [raw[n] for n in range(1, rounds + 1) if n in raw]
            if len(opening) < rounds:
                logger.info(
                    "Player %s: only %d/%d opening rounds, no baseline",
                    player.display_name, len(opening), rounds,
                )
                continue
            baseline = calculate_baseline(opening, rounds)
            for number, rows in sorted(by_number.items()):
                pinned = number <= rounds
                records = self._logical_week_records(player.id, rows[0])
                if records:
                    self._store.update_handicap(
                        records[0].id, handicap=baseline, applied_handicap=baseline, is_baseline=pinned,
                    )
                else:
                    self._store.create_handicap(
                        player.id, rows[0].id, handicap=baseline, applied_handicap=baseline, is_baseline=pinned,
                    )
                self._reweight_scores(player.id, rows[0], baseline)
            logger.info("Player %s: baseline %d from %s", player.display_name, baseline, opening)
            seeded += 1
        return seeded

    def ensure_weighted_scores(self, league_id: str) -> int:
        """
        Re-derive every league score's weighted value from the newest handicap
        on its logical week (0 when none). Returns rows changed.
        """
        weeks = self._weeks_by_id(league_id)
        handicaps: dict[str, list[Handicap]] = {}
        changed = 0
        for score in self._store.list_scores_for_league(league_id):
            week = weeks.get(score.week_id)
            if week is None or score.total is None:
                continue
            if score.player_id not in handicaps:
                handicaps[score.player_id] = self._store.list_handicaps_for_player(score.player_id)
            value = 0.0
            for h in handicaps[score.player_id]:
                h_week = weeks.get(h.week_id)
                if h_week is not None and h_week.track_key == week.track_key and h.effective is not None:
                    value = h.effective
                    break
            expected = weighted_score(score.total, value)
            if score.weighted_score != expected:
                self._store.update_weighted_score(score.id, expected)
                changed += 1
        return changed

    # ---------- sweep ----------

    def recalculate_for_league(self, league_id: str, deadline: float | None = None) -> RecalculationResult:
        """
        Recompute every (player, logical week) handicap in the league.

        Idempotent. Baseline-pinned weeks and weeks without a full window are
        skipped and left as they are. A failing unit is logged and skipped.
        deadline is a time.monotonic() value; past it the sweep stops between
        units and reports aborted=True. Raises RecalculationInProgressError if
        a sweep for this league is already running.
        """
        if self._store.get_league(league_id) is None:
            raise LeagueNotFoundError(f"League not found: {league_id}")
        with league_sweep(league_id):
            return self._sweep(league_id, deadline)

    def _sweep(self, league_id: str, deadline: float | None) -> RecalculationResult:
        result = RecalculationResult(league_id=league_id)
        weeks = self._store.list_weeks(league_id)
        logical: dict[tuple[bool, int], list[Week]] = {}
        for w in weeks:
            logical.setdefault((w.is_championship, w.week_number), []).append(w)
        units = sorted(logical)

        for player in self._store.list_players(league_id):
            for key in units:
                if deadline is not None and time.monotonic() > deadline:
                    result.aborted = True
                    logger.warning(
                        "League %s: recalculation deadline reached (%d updated, %d skipped)",
                        league_id, result.updated_count, result.skipped_count,
                    )
                    return result
                rows = logical[key]
                try:
                    touched = self._recalculate_unit(player.id, rows)
                except Exception as e:
                    logger.exception("Player %s week %d: recalculation failed", player.id, key[1])
                    result.errors.append(f"{player.id}/{key[1]}: {e}")
                    result.skipped_count += 1
                    continue
                if touched is None:
                    result.skipped_count += 1
                else:
                    result.updated_count += 1
                    result.weighted_scores_touched += touched

        logger.info(
            "League %s: handicaps recalculated (%d updated, %d skipped)",
            league_id, result.updated_count, result.skipped_count,
        )
        return result

    def _recalculate_unit(self, player_id: str, rows: list[Week]) -> int | None:
        """Returns weighted scores touched, or None when the unit was skipped."""
        row_ids = {w.id for w in rows}
        records = [h for h in self._store.list_handicaps_for_player(player_id) if h.week_id in row_ids]
        if any(h.is_baseline for h in records):
            return None
        window = self.average_window(player_id, rows[0].id)
        if window.status != HandicapStatus.COMPUTED or window.handicap is None:
            return None
        target_week_id = records[0].week_id if records else rows[0].id
        return self.apply_handicap(player_id, target_week_id, window.handicap).scores_touched
