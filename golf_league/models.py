"""
Data models for the golf league backend.
Domain objects only; no persistence or API logic.

A league owns players, two-player teams and weeks. Each week a player may post
one score; each (player, week) carries one handicap record. Matches pair two
teams within a week (team2 is empty for a bye).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

HOLE_COUNT = 18


# ---------- Handicap status (per player/week) ----------
class HandicapStatus(str, Enum):
    """no_data → insufficient → computed, with baseline as a pinned override."""
    NO_DATA = "no_data"
    INSUFFICIENT = "insufficient"
    COMPUTED = "computed"
    BASELINE = "baseline"


# ---------- League ----------
@dataclass
class League:
    id: str
    name: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Player ----------
@dataclass
class Player:
    """A golfer registered to exactly one league."""
    id: str
    league_id: str
    first_name: str
    last_name: str | None
    created_at: datetime

    @property
    def display_name(self) -> str:
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "league_id": self.league_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Team ----------
@dataclass
class Team:
    """
    Two players from the same league. The scheduler treats teams as opaque ids.
    """
    id: str
    league_id: str
    team_number: int
    player1_id: str
    player2_id: str
    created_at: datetime

    @property
    def player_ids(self) -> tuple[str, str]:
        return (self.player1_id, self.player2_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "league_id": self.league_id,
            "team_number": self.team_number,
            "player1_id": self.player1_id,
            "player2_id": self.player2_id,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Week ----------
@dataclass
class Week:
    """
    Ordered by week_number within a league. Championship weeks form their own
    handicap track and are never part of the regular schedule.
    Rows may be duplicated in legacy data, so handicap logic keys on track_key.
    """
    id: str
    league_id: str
    week_number: int
    is_championship: bool
    created_at: datetime

    @property
    def track_key(self) -> tuple[str, int, bool]:
        return (self.league_id, self.week_number, self.is_championship)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "league_id": self.league_id,
            "week_number": self.week_number,
            "is_championship": self.is_championship,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Score ----------
@dataclass
class Score:
    """
    One player's round for one week. holes has HOLE_COUNT entries, each None
    when unknown. total may be set without any hole detail.
    weighted_score is derived: round(total - handicap). Never edit it directly.
    """
    id: str
    player_id: str
    week_id: str
    total: int | None
    weighted_score: int | None
    created_at: datetime
    updated_at: datetime
    holes: list[int | None] = field(default_factory=lambda: [None] * HOLE_COUNT)
    scorecard_image: str | None = None

    @property
    def has_hole_scores(self) -> bool:
        return any(h is not None for h in self.holes)

    @property
    def hole_count(self) -> int:
        return sum(1 for h in self.holes if h is not None)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "player_id": self.player_id,
            "week_id": self.week_id,
            "holes": list(self.holes),
            "total": self.total,
            "weighted_score": self.weighted_score,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if self.scorecard_image is not None:
            d["scorecard_image"] = self.scorecard_image
        return d


# ---------- Handicap ----------
@dataclass
class Handicap:
    """
    Per (player, week). handicap/applied_handicap is what gets subtracted from
    that week's total; raw_handicap is the differential that week's own round
    contributes to later averages. is_baseline pins the record.
    """
    id: str
    player_id: str
    week_id: str
    handicap: float | None
    applied_handicap: float | None
    raw_handicap: int | None
    is_baseline: bool
    created_at: datetime
    updated_at: datetime

    @property
    def effective(self) -> float | None:
        if self.applied_handicap is not None:
            return self.applied_handicap
        return self.handicap

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "player_id": self.player_id,
            "week_id": self.week_id,
            "handicap": self.handicap,
            "applied_handicap": self.applied_handicap,
            "raw_handicap": self.raw_handicap,
            "is_baseline": self.is_baseline,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# ---------- Match ----------
@dataclass
class Match:
    """
    Team-vs-team fixture within a week. team2_id is None for a bye.
    is_manual matches are created by hand and survive schedule regeneration.
    """
    id: str
    week_id: str
    team1_id: str
    team2_id: str | None
    team1_points: float
    team2_points: float
    winner_id: str | None
    is_manual: bool
    created_at: datetime

    @property
    def team_ids(self) -> list[str]:
        return [t for t in (self.team1_id, self.team2_id) if t is not None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "week_id": self.week_id,
            "team1_id": self.team1_id,
            "team2_id": self.team2_id,
            "team1_points": self.team1_points,
            "team2_points": self.team2_points,
            "winner_id": self.winner_id,
            "is_manual": self.is_manual,
            "created_at": self.created_at.isoformat(),
        }
