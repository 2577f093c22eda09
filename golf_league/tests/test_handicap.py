"""
Tests for the handicap engine: rolling window, weighted scores, baselines,
round completion and the league sweep.
"""
from __future__ import annotations

import time
from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from golf_league.config import LeagueRules
from golf_league.models import HandicapStatus
from golf_league.persistence import SqliteLeagueStore
from golf_league.persistence.db import get_connection, init_db, set_db_path
from golf_league.persistence.repositories import (
    LeagueRepository,
    PlayerRepository,
    WeekRepository,
)
from golf_league.services.errors import (
    LeagueNotFoundError,
    PlayerNotFoundError,
    RecalculationInProgressError,
    WeekNotFoundError,
)
from golf_league.services.handicap import (
    HandicapEngine,
    _running_sweeps,
    calculate_average,
    calculate_baseline,
    calculate_raw_handicap,
    league_sweep,
    round_half_up,
    weighted_score,
)


@pytest.fixture
def store(tmp_path):
    """Temporary DB with schema."""
    db_path = tmp_path / "handicap_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield SqliteLeagueStore(conn)
    finally:
        conn.close()


@pytest.fixture
def engine(store):
    return HandicapEngine(store, LeagueRules())


@pytest.fixture
def league(store):
    return LeagueRepository().create(store.conn, "Tuesday Night")


@pytest.fixture
def player(store, league):
    return PlayerRepository().create(store.conn, league.id, "Sam", "Snead")


@pytest.fixture
def weeks(store, league):
    """Regular weeks 1-8 keyed by week number."""
    repo = WeekRepository()
    return {n: repo.create(store.conn, league.id, n) for n in range(1, 9)}


def _set_raw(store, player_id, week, raw):
    existing = store.get_handicap(player_id, week.id)
    if existing is None:
        return store.create_handicap(player_id, week.id, raw_handicap=raw)
    store.update_handicap(existing.id, raw_handicap=raw)
    return store.get_handicap(player_id, week.id)


# ---------- pure helpers ----------


@pytest.mark.parametrize(
    "value,expected",
    [(10.5, 11), (2.5, 3), (10.49, 10), (11.0, 11), (-0.5, 0), (-1.5, -1)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_calculate_average():
    assert calculate_average([10, 12, 9, 11]) == 11
    assert calculate_average([]) == 0


def test_calculate_raw_handicap_clamped():
    assert calculate_raw_handicap(50, 38) == 12
    assert calculate_raw_handicap(38, 38) == 0
    assert calculate_raw_handicap(80, 40) == 25
    assert calculate_raw_handicap(80, 40, cap=30) == 30


def test_calculate_baseline():
    assert calculate_baseline([8, 10, 11, 20]) == 10
    with pytest.raises(ValueError):
        calculate_baseline([8, 10])


def test_weighted_score():
    assert weighted_score(85, 11) == 74
    assert weighted_score(85, 10.5) == 75
    assert weighted_score(85, None) == 85
    assert weighted_score(None, 5) is None


# ---------- average_window ----------


def test_window_of_four_prior_weeks(store, engine, player, weeks):
    for n, raw in zip(range(1, 5), [10, 12, 9, 11]):
        _set_raw(store, player.id, weeks[n], raw)
    window = engine.average_window(player.id, weeks[5].id)
    assert window.status == HandicapStatus.COMPUTED
    assert window.handicap == 11
    assert window.week_numbers == [1, 2, 3, 4]
    assert window.differentials == [10, 12, 9, 11]
    assert window.describe() == "can_calculate"


def test_window_uses_only_most_recent_four(store, engine, player, weeks):
    for n, raw in zip(range(1, 6), [25, 10, 10, 10, 10]):
        _set_raw(store, player.id, weeks[n], raw)
    window = engine.average_window(player.id, weeks[6].id)
    assert window.week_numbers == [2, 3, 4, 5]
    assert window.handicap == 10


def test_window_skips_weeks_without_raw(store, engine, player, weeks):
    for n, raw in [(1, 8), (2, 8), (4, 12), (6, 12)]:
        _set_raw(store, player.id, weeks[n], raw)
    window = engine.average_window(player.id, weeks[7].id)
    assert window.week_numbers == [1, 2, 4, 6]
    assert window.handicap == 10


def test_window_insufficient(store, engine, player, weeks):
    for n in range(1, 4):
        _set_raw(store, player.id, weeks[n], 10)
    window = engine.average_window(player.id, weeks[5].id)
    assert window.status == HandicapStatus.INSUFFICIENT
    assert window.handicap is None
    assert window.describe() == "insufficient_raw_handicaps (3/4)"


def test_window_no_data(engine, player, weeks):
    window = engine.average_window(player.id, weeks[5].id)
    assert window.status == HandicapStatus.NO_DATA
    assert window.describe() == "no_raw_handicaps"


def test_window_ignores_championship_track(store, engine, league, player, weeks):
    for n in range(1, 5):
        _set_raw(store, player.id, weeks[n], 10)
    champ = WeekRepository().create(store.conn, league.id, 1, is_championship=True)
    assert engine.average_window(player.id, champ.id).status == HandicapStatus.NO_DATA


def test_window_collapses_duplicate_week_rows(store, engine, league, player, weeks):
    for n in (1, 2, 4):
        _set_raw(store, player.id, weeks[n], 10)
    older = _set_raw(store, player.id, weeks[3], 2)
    dup = WeekRepository().create(store.conn, league.id, 3)
    newer = _set_raw(store, player.id, dup, 14)
    store.conn.execute("UPDATE handicaps SET updated_at = ? WHERE id = ?", ("2000-01-01T00:00:00+00:00", older.id))
    store.conn.execute("UPDATE handicaps SET updated_at = ? WHERE id = ?", ("2001-01-01T00:00:00+00:00", newer.id))
    store.conn.commit()
    window = engine.average_window(player.id, weeks[5].id)
    assert window.week_numbers == [1, 2, 3, 4]
    assert window.differentials == [10, 10, 14, 10]
    assert window.handicap == 11


def test_window_unknown_week(engine, player):
    with pytest.raises(WeekNotFoundError):
        engine.average_window(player.id, "no-such-week")


# ---------- apply_handicap ----------


def test_apply_handicap_rewrites_weighted_score(store, engine, player, weeks):
    score = store.create_score(player.id, weeks[5].id, total=85)
    result = engine.apply_handicap(player.id, weeks[5].id, 11)
    assert result.record.handicap == 11
    assert result.record.applied_handicap == 11
    assert result.scores_touched == 1
    assert store.get_score(score.id).weighted_score == 74


def test_apply_handicap_updates_existing_record_in_place(store, engine, player, weeks):
    first = engine.apply_handicap(player.id, weeks[5].id, 9).record
    second = engine.apply_handicap(player.id, weeks[5].id, 12).record
    assert first.id == second.id
    assert second.handicap == 12


def test_apply_handicap_reaches_duplicate_week_rows(store, engine, league, player, weeks):
    dup = WeekRepository().create(store.conn, league.id, 5)
    score = store.create_score(player.id, dup.id, total=90)
    result = engine.apply_handicap(player.id, weeks[5].id, 10)
    assert result.scores_touched == 1
    assert store.get_score(score.id).weighted_score == 80


def test_apply_handicap_skips_scores_without_total(store, engine, player, weeks):
    score = store.create_score(player.id, weeks[5].id, holes=[4, 5, 4])
    result = engine.apply_handicap(player.id, weeks[5].id, 10)
    assert result.scores_touched == 0
    assert store.get_score(score.id).weighted_score is None


def test_pinned_manual_handicap_survives_sweep(store, engine, league, player, weeks):
    for n in range(1, 5):
        _set_raw(store, player.id, weeks[n], 10)
    score = store.create_score(player.id, weeks[5].id, total=40)
    record = engine.apply_handicap(player.id, weeks[5].id, 3, pinned=True).record
    assert record.is_baseline is True
    engine.recalculate_for_league(league.id)
    kept = store.get_handicap(player.id, weeks[5].id)
    assert kept.handicap == 3
    assert kept.is_baseline is True
    assert store.get_score(score.id).weighted_score == 37


def test_unpinned_manual_handicap_is_recomputed_by_sweep(store, engine, league, player, weeks):
    for n in range(1, 5):
        _set_raw(store, player.id, weeks[n], 10)
    engine.apply_handicap(player.id, weeks[5].id, 3)
    engine.recalculate_for_league(league.id)
    assert store.get_handicap(player.id, weeks[5].id).handicap == 10


def test_unpinned_apply_keeps_existing_pin(store, engine, player, weeks):
    engine.apply_handicap(player.id, weeks[5].id, 3, pinned=True)
    record = engine.apply_handicap(player.id, weeks[5].id, 6).record
    assert record.handicap == 6
    assert record.is_baseline is True


def test_apply_handicap_unknown_player_writes_nothing(store, engine, weeks):
    with pytest.raises(PlayerNotFoundError):
        engine.apply_handicap("ghost", weeks[5].id, 10)
    assert store.list_handicaps_for_week(weeks[5].id) == []


# ---------- recalculate_for_league ----------


def test_recalculate_insufficient_leaves_week_untouched(store, engine, league, player, weeks):
    for n in range(1, 4):
        _set_raw(store, player.id, weeks[n], 10)
    score = store.create_score(player.id, weeks[4].id, total=88, weighted_score=88)
    result = engine.recalculate_for_league(league.id)
    assert store.get_handicap(player.id, weeks[4].id) is None
    assert store.get_score(score.id).weighted_score == 88
    assert result.updated_count == 0
    assert result.skipped_count == len(weeks)


def test_recalculate_applies_computed_weeks(store, engine, league, player, weeks):
    for n, raw in zip(range(1, 5), [10, 12, 9, 11]):
        _set_raw(store, player.id, weeks[n], raw)
    score = store.create_score(player.id, weeks[5].id, total=85)
    result = engine.recalculate_for_league(league.id)
    assert store.get_handicap(player.id, weeks[5].id).handicap == 11
    assert store.get_score(score.id).weighted_score == 74
    # weeks 5-8 have a full window; 1-4 do not
    assert result.updated_count == 4
    assert result.skipped_count == 4
    assert result.aborted is False


def test_recalculate_boundary_four_vs_five_weeks_back(store, engine, league, player, weeks):
    """Week 2 is four weeks before week 6 (in its window) and five before week 7 (outside)."""
    for n in range(1, 7):
        _set_raw(store, player.id, weeks[n], 10)
    engine.recalculate_for_league(league.id)
    assert store.get_handicap(player.id, weeks[6].id).handicap == 10
    assert store.get_handicap(player.id, weeks[7].id).handicap == 10

    _set_raw(store, player.id, weeks[2], 18)
    engine.recalculate_for_league(league.id)
    assert store.get_handicap(player.id, weeks[6].id).handicap == 12
    assert store.get_handicap(player.id, weeks[7].id).handicap == 10


def test_recalculate_is_idempotent(store, engine, league, player, weeks):
    for n, raw in zip(range(1, 7), [3, 9, 14, 7, 11, 6]):
        _set_raw(store, player.id, weeks[n], raw)
        store.create_score(player.id, weeks[n].id, total=40 + raw)

    def snapshot():
        return (
            sorted((h.week_id, h.handicap, h.raw_handicap) for h in store.list_handicaps_for_player(player.id)),
            sorted((s.id, s.weighted_score) for s in store.list_scores_for_player(player.id)),
        )

    first = engine.recalculate_for_league(league.id)
    after_first = snapshot()
    second = engine.recalculate_for_league(league.id)
    assert snapshot() == after_first
    assert second.updated_count == first.updated_count


def test_recalculate_unknown_league(engine):
    with pytest.raises(LeagueNotFoundError):
        engine.recalculate_for_league("nope")


def test_recalculate_rejects_concurrent_sweep(store, engine, league, player, weeks):
    with league_sweep(league.id):
        with pytest.raises(RecalculationInProgressError):
            engine.recalculate_for_league(league.id)
    assert engine.recalculate_for_league(league.id).aborted is False


def test_finished_sweeps_leave_no_registry_entry(store, engine, league, weeks):
    engine.recalculate_for_league(league.id)
    with pytest.raises(LeagueNotFoundError):
        engine.recalculate_for_league("nope")
    assert league.id not in _running_sweeps
    with league_sweep(league.id):
        assert league.id in _running_sweeps
    assert league.id not in _running_sweeps


def test_other_league_not_blocked(store, engine, league, weeks):
    other = LeagueRepository().create(store.conn, "Thursday Night")
    with league_sweep(league.id):
        result = engine.recalculate_for_league(other.id)
    assert result.league_id == other.id


def test_recalculate_past_deadline_aborts(store, engine, league, player, weeks):
    for n in range(1, 5):
        _set_raw(store, player.id, weeks[n], 10)
    result = engine.recalculate_for_league(league.id, deadline=time.monotonic() - 1)
    assert result.aborted is True
    assert result.updated_count == 0
    assert store.get_handicap(player.id, weeks[5].id) is None


# ---------- baselines ----------


def test_seed_baselines_pins_opening_weeks(store, engine, league, player, weeks):
    for n, raw in zip(range(1, 4), [8, 10, 12]):
        _set_raw(store, player.id, weeks[n], raw)
    score = store.create_score(player.id, weeks[4].id, total=50)
    assert engine.seed_baselines(league.id) == 1

    for n in range(1, 4):
        record = store.get_handicap(player.id, weeks[n].id)
        assert record.is_baseline is True
        assert record.handicap == 10
        assert record.raw_handicap is not None
    week4 = store.get_handicap(player.id, weeks[4].id)
    assert week4.is_baseline is False
    assert week4.handicap == 10
    assert store.get_score(score.id).weighted_score == 40
    assert engine.status_for(player.id, weeks[2].id).status == HandicapStatus.BASELINE


def test_sweep_never_overwrites_baseline(store, engine, league, player, weeks):
    for n, raw in zip(range(1, 4), [8, 10, 12]):
        _set_raw(store, player.id, weeks[n], raw)
    engine.seed_baselines(league.id)
    _set_raw(store, player.id, weeks[2], 25)
    result = engine.recalculate_for_league(league.id)
    for n in range(1, 4):
        assert store.get_handicap(player.id, weeks[n].id).handicap == 10
    # week 4 still has only three prior differentials, so it keeps the baseline
    assert store.get_handicap(player.id, weeks[4].id).handicap == 10
    assert result.skipped_count >= 3


def test_seed_baselines_needs_three_rounds(store, engine, league, player, weeks):
    _set_raw(store, player.id, weeks[1], 10)
    assert engine.seed_baselines(league.id) == 0
    assert store.get_handicap(player.id, weeks[4].id) is None


# ---------- record_round ----------


def test_record_round_waits_for_every_player(store, engine, league, player, weeks):
    other = PlayerRepository().create(store.conn, league.id, "Ben", "Hogan")
    store.create_score(player.id, weeks[1].id, total=40)
    assert engine.record_round(weeks[1].id) == 0
    assert store.get_handicap(player.id, weeks[1].id) is None

    store.create_score(other.id, weeks[1].id, total=46)
    assert engine.record_round(weeks[1].id) == 2
    assert store.get_handicap(player.id, weeks[1].id).raw_handicap == 0
    assert store.get_handicap(other.id, weeks[1].id).raw_handicap == 6


def test_record_round_caps_differential(store, engine, league, player, weeks):
    other = PlayerRepository().create(store.conn, league.id, "Ben", "Hogan")
    store.create_score(player.id, weeks[1].id, total=36)
    store.create_score(other.id, weeks[1].id, total=70)
    engine.record_round(weeks[1].id)
    assert store.get_handicap(other.id, weeks[1].id).raw_handicap == 25


def test_record_round_keeps_existing_handicap(store, engine, league, player, weeks):
    engine.apply_handicap(player.id, weeks[1].id, 7)
    store.create_score(player.id, weeks[1].id, total=40)
    engine.record_round(weeks[1].id)
    record = store.get_handicap(player.id, weeks[1].id)
    assert record.handicap == 7
    assert record.raw_handicap == 0


# ---------- ensure_weighted_scores ----------


def test_ensure_weighted_scores(store, engine, league, player, weeks):
    store.create_handicap(player.id, weeks[5].id, handicap=5, applied_handicap=5)
    with_handicap = store.create_score(player.id, weeks[5].id, total=45)
    without = store.create_score(player.id, weeks[6].id, total=47)
    assert engine.ensure_weighted_scores(league.id) == 2
    assert store.get_score(with_handicap.id).weighted_score == 40
    assert store.get_score(without.id).weighted_score == 47
    assert engine.ensure_weighted_scores(league.id) == 0
