"""
Tests for duplicate week merging and duplicate score cleanup.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from golf_league.persistence import SqliteLeagueStore
from golf_league.persistence.db import get_connection, init_db, set_db_path
from golf_league.persistence.repositories import (
    LeagueRepository,
    PlayerRepository,
    TeamRepository,
    WeekRepository,
)
from golf_league.services.maintenance import cleanup_duplicate_scores, merge_duplicate_weeks


@pytest.fixture
def store(tmp_path):
    """Temporary DB with schema."""
    db_path = tmp_path / "maintenance_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield SqliteLeagueStore(conn)
    finally:
        conn.close()


@pytest.fixture
def league(store):
    return LeagueRepository().create(store.conn, "Legacy League")


@pytest.fixture
def players(store, league):
    repo = PlayerRepository()
    return [repo.create(store.conn, league.id, name) for name in ("Ann", "Bo", "Cy", "Di")]


@pytest.fixture
def week_rows(store, league):
    """Two rows for regular week 3, oldest first."""
    repo = WeekRepository()
    return repo.create(store.conn, league.id, 3), repo.create(store.conn, league.id, 3)


def test_merge_keeps_row_with_most_records(store, league, players, week_rows):
    a, b = week_rows
    moved = store.create_score(players[0].id, a.id, total=40)
    store.create_score(players[1].id, b.id, total=42)
    store.create_score(players[2].id, b.id, total=44)

    report = merge_duplicate_weeks(store, league.id)
    assert report.groups_merged == 1
    assert report.weeks_deleted == 1
    assert report.scores_moved == 1
    assert report.kept_week_ids == [b.id]
    assert [w.id for w in store.list_weeks(league.id)] == [b.id]
    assert store.get_score(moved.id).week_id == b.id
    assert len(store.list_scores_for_week(b.id)) == 3


def test_merge_score_conflict_prefers_scorecard_image(store, league, players, week_rows):
    a, b = week_rows
    with_image = store.create_score(players[0].id, a.id, total=41, scorecard_image="card.png")
    store.create_score(players[0].id, b.id, holes=[4] * 18, total=72)

    report = merge_duplicate_weeks(store, league.id)
    assert report.scores_deleted == 1
    remaining = store.list_scores_for_player(players[0].id)
    assert [s.id for s in remaining] == [with_image.id]
    assert remaining[0].week_id == a.id


def test_merge_score_conflict_prefers_more_holes(store, league, players, week_rows):
    a, b = week_rows
    store.create_score(players[0].id, a.id, holes=[4] * 9, total=36)
    full = store.create_score(players[0].id, b.id, holes=[4] * 18, total=72)

    merge_duplicate_weeks(store, league.id)
    remaining = store.list_scores_for_player(players[0].id)
    assert [s.id for s in remaining] == [full.id]
    assert remaining[0].week_id == a.id


def test_merge_combines_handicap_records(store, league, players, week_rows):
    a, b = week_rows
    kept = store.create_handicap(players[0].id, a.id, handicap=9, applied_handicap=9)
    store.create_handicap(players[0].id, b.id, raw_handicap=5)

    report = merge_duplicate_weeks(store, league.id)
    assert report.handicaps_merged == 1
    records = store.list_handicaps_for_player(players[0].id)
    assert len(records) == 1
    assert records[0].id == kept.id
    assert records[0].handicap == 9
    assert records[0].raw_handicap == 5


def test_merge_moves_handicap_without_conflict(store, league, players, week_rows):
    a, b = week_rows
    store.create_score(players[1].id, b.id, total=40)
    store.create_score(players[2].id, b.id, total=40)
    moved = store.create_handicap(players[0].id, a.id, raw_handicap=3)

    report = merge_duplicate_weeks(store, league.id)
    assert report.handicaps_moved == 1
    assert store.get_handicap(players[0].id, b.id).id == moved.id


def test_merge_drops_duplicate_matches_keeping_decided(store, league, players, week_rows):
    a, b = week_rows
    teams = TeamRepository()
    t1 = teams.create(store.conn, league.id, players[0].id, players[1].id)
    t2 = teams.create(store.conn, league.id, players[2].id, players[3].id)
    store.create_match(a.id, t1.id, t2.id)
    decided = store.create_match(b.id, t2.id, t1.id)
    store.update_match_result(decided.id, 8, 6, t2.id)

    report = merge_duplicate_weeks(store, league.id)
    assert report.matches_deleted == 1
    matches = store.list_matches_for_team(t1.id)
    assert [m.id for m in matches] == [decided.id]
    assert matches[0].week_id == a.id


def test_merge_is_idempotent(store, league, players, week_rows):
    a, b = week_rows
    store.create_score(players[0].id, a.id, total=40)
    merge_duplicate_weeks(store, league.id)
    again = merge_duplicate_weeks(store, league.id)
    assert again.groups_merged == 0
    assert again.weeks_deleted == 0


def test_merge_leaves_championship_week_alone(store, league, players):
    repo = WeekRepository()
    repo.create(store.conn, league.id, 1)
    repo.create(store.conn, league.id, 1, is_championship=True)
    report = merge_duplicate_weeks(store)
    assert report.groups_merged == 0
    assert len(store.list_weeks(league.id)) == 2


def test_cleanup_duplicate_scores(store, league, players, week_rows):
    a, b = week_rows
    full = store.create_score(players[0].id, a.id, holes=[4] * 18, total=72)
    store.create_score(players[0].id, a.id, total=70)
    store.create_score(players[0].id, b.id, total=71)
    store.create_score(players[1].id, a.id, total=50)

    assert cleanup_duplicate_scores(store, league.id) == 2
    assert [s.id for s in store.list_scores_for_player(players[0].id)] == [full.id]
    assert len(store.list_scores_for_player(players[1].id)) == 1
    assert cleanup_duplicate_scores(store, league.id) == 0
