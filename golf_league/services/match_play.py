"""
Best-ball match play between two-player teams.

Each hole goes to the side with the lower best score (lowest positive score
among the side's players): 1 point to the winner, none on a tie. Holes where
either side has no usable score are skipped.
"""
from __future__ import annotations

from typing import Any, Iterable, List, Optional

from golf_league.models import HOLE_COUNT, Match, Score

HoleCard = List[Optional[int]]


def team_hole_scores(score_a: Score | None, score_b: Score | None) -> list[HoleCard]:
    """
    Hole cards for one team. A teammate with only a total (or no score) is
    covered by the partner's card; with no hole detail on either side the
    team has no cards.
    """
    a_holes = score_a is not None and score_a.has_hole_scores
    b_holes = score_b is not None and score_b.has_hole_scores
    if a_holes and b_holes:
        return [list(score_a.holes), list(score_b.holes)]
    if a_holes:
        return [list(score_a.holes), list(score_a.holes)]
    if b_holes:
        return [list(score_b.holes), list(score_b.holes)]
    return []


def _best_ball(cards: list[HoleCard], hole: int) -> int | None:
    values = [c[hole] for c in cards if hole < len(c) and c[hole] is not None and c[hole] > 0]
    return min(values) if values else None


def calculate_match_play(
    team1: list[HoleCard],
    team2: list[HoleCard],
    holes: int = HOLE_COUNT,
) -> tuple[int, int]:
    """Return (team1_points, team2_points)."""
    team1_points = team2_points = 0
    for hole in range(holes):
        low1 = _best_ball(team1, hole)
        low2 = _best_ball(team2, hole)
        if low1 is None or low2 is None:
            continue
        if low1 < low2:
            team1_points += 1
        elif low2 < low1:
            team2_points += 1
    return team1_points, team2_points


def match_winner(match: Match, team1_points: float, team2_points: float) -> str | None:
    if team1_points > team2_points:
        return match.team1_id
    if team2_points > team1_points:
        return match.team2_id
    return None


def is_decided(match: Match) -> bool:
    """A match counts toward standings once it has an opponent and a stored result."""
    if match.team2_id is None:
        return False
    return match.winner_id is not None or match.team1_points > 0 or match.team2_points > 0


def compute_standings(matches: Iterable[Match], team_ids: Iterable[str] = ()) -> list[dict[str, Any]]:
    """
    Standings rows {team_id, wins, losses, ties, points_for, points_against,
    differential}, best first. Byes and unplayed matches are ignored; teams in
    team_ids with no results get an empty row.
    """
    by_team: dict[str, dict[str, Any]] = {}

    def row(tid: str) -> dict[str, Any]:
        if tid not in by_team:
            by_team[tid] = {
                "team_id": tid, "wins": 0, "losses": 0, "ties": 0,
                "points_for": 0.0, "points_against": 0.0,
            }
        return by_team[tid]

    for tid in team_ids:
        row(tid)
    for m in matches:
        opponent = m.team2_id
        if opponent is None or not is_decided(m):
            continue
        for tid, pts_for, pts_against in (
            (m.team1_id, m.team1_points, m.team2_points),
            (opponent, m.team2_points, m.team1_points),
        ):
            r = row(tid)
            r["points_for"] += pts_for
            r["points_against"] += pts_against
            if pts_for > pts_against:
                r["wins"] += 1
            elif pts_for < pts_against:
                r["losses"] += 1
            else:
                r["ties"] += 1
    for r in by_team.values():
        r["differential"] = round(r["points_for"] - r["points_against"], 1)
    return sorted(by_team.values(), key=lambda x: (-x["wins"], -x["points_for"], -x["differential"]))
