"""
Tests for best-ball match play and standings.
"""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from golf_league.models import Match, Score
from golf_league.services.match_play import (
    calculate_match_play,
    compute_standings,
    is_decided,
    team_hole_scores,
)

_NOW = datetime(2024, 6, 4, tzinfo=timezone.utc)


def _score(holes=None, total=None) -> Score:
    card = (list(holes or []) + [None] * 18)[:18]
    return Score(
        id="s", player_id="p", week_id="w", total=total, weighted_score=None,
        created_at=_NOW, updated_at=_NOW, holes=card,
    )


def _match(mid, t1, t2, p1=0.0, p2=0.0, winner=None) -> Match:
    return Match(
        id=mid, week_id="w", team1_id=t1, team2_id=t2, team1_points=p1, team2_points=p2,
        winner_id=winner, is_manual=False, created_at=_NOW,
    )


def test_best_ball_takes_lower_partner_per_hole():
    team1 = team_hole_scores(_score([4] * 18), _score([6] * 18))
    team2 = team_hole_scores(_score([5] * 18), _score([5] * 18))
    assert calculate_match_play(team1, team2) == (18, 0)


def test_tied_holes_score_nothing():
    team1 = team_hole_scores(_score([4] * 9 + [5] * 9), None)
    team2 = team_hole_scores(_score([4] * 9 + [4] * 9), None)
    assert calculate_match_play(team1, team2) == (0, 9)


def test_partner_without_holes_uses_teammate_card():
    with_holes = _score([4] * 18)
    total_only = _score(total=80)
    cards = team_hole_scores(total_only, with_holes)
    assert cards == [with_holes.holes, with_holes.holes]


def test_no_hole_detail_gives_no_cards():
    assert team_hole_scores(_score(total=40), None) == []
    assert team_hole_scores(None, None) == []


def test_holes_missing_on_either_side_are_skipped():
    front_nine = team_hole_scores(_score([3] * 9), None)
    full = team_hole_scores(_score([4] * 18), None)
    assert calculate_match_play(front_nine, full) == (9, 0)


def test_zero_scores_are_not_counted():
    team1 = [[0] * 18, [0] * 18]
    team2 = [[5] * 18]
    assert calculate_match_play(team1, team2) == (0, 0)


def test_is_decided():
    assert not is_decided(_match("m", "A", None))
    assert not is_decided(_match("m", "A", "B"))
    assert is_decided(_match("m", "A", "B", 10, 8, "A"))
    assert is_decided(_match("m", "A", "B", 9, 9))


def test_compute_standings():
    matches = [
        _match("m1", "A", "B", 10, 6, "A"),
        _match("m2", "C", "A", 7, 7),
        _match("m3", "B", "C", 9, 5, "B"),
        _match("m4", "A", None),
        _match("m5", "B", "C"),
    ]
    rows = compute_standings(matches, ["A", "B", "C", "D"])
    by_team = {r["team_id"]: r for r in rows}
    assert [r["team_id"] for r in rows] == ["A", "B", "C", "D"]
    assert by_team["A"]["wins"] == 1 and by_team["A"]["ties"] == 1 and by_team["A"]["losses"] == 0
    assert by_team["A"]["points_for"] == 17
    assert by_team["B"]["differential"] == 0
    assert by_team["C"]["losses"] == 1
    assert by_team["D"]["wins"] == 0 and by_team["D"]["points_for"] == 0
