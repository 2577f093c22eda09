"""
Store interface consumed by the scheduling and handicap services.

Services receive a LeagueStore in their constructor instead of reaching for a
global connection. SqliteLeagueStore binds the repositories to one connection.
"""
from __future__ import annotations

import sqlite3
from typing import Any, Protocol

from golf_league.models import Handicap, League, Match, Player, Score, Team, Week
from golf_league.persistence.repositories import (
    HandicapRepository,
    LeagueRepository,
    MatchRepository,
    PlayerRepository,
    ScoreRepository,
    TeamRepository,
    WeekRepository,
)


class LeagueStore(Protocol):
    """Reads and writes the league services need. No domain logic."""

    # reads
    def get_league(self, league_id: str) -> League | None: ...
    def get_player(self, player_id: str) -> Player | None: ...
    def list_players(self, league_id: str) -> list[Player]: ...
    def get_team(self, team_id: str) -> Team | None: ...
    def list_teams(self, league_id: str) -> list[Team]: ...
    def list_teams_for_player(self, player_id: str) -> list[Team]: ...
    def get_week(self, week_id: str) -> Week | None: ...
    def list_weeks(
        self, league_id: str, max_week_number: int | None = None, is_championship: bool | None = None
    ) -> list[Week]: ...
    def list_all_weeks(self) -> list[Week]: ...
    def get_score(self, score_id: str) -> Score | None: ...
    def list_scores_for_player(self, player_id: str) -> list[Score]: ...
    def list_scores_for_week(self, week_id: str) -> list[Score]: ...
    def list_scores_for_league(self, league_id: str) -> list[Score]: ...
    def get_handicap(self, player_id: str, week_id: str) -> Handicap | None: ...
    def list_handicaps_for_player(self, player_id: str) -> list[Handicap]: ...
    def list_handicaps_for_week(self, week_id: str) -> list[Handicap]: ...
    def get_match(self, match_id: str) -> Match | None: ...
    def list_matches_for_weeks(self, week_ids: list[str]) -> list[Match]: ...
    def list_matches_for_team(self, team_id: str) -> list[Match]: ...

    # writes
    def create_match(self, week_id: str, team1_id: str, team2_id: str | None, is_manual: bool = False) -> Match: ...
    def update_match_result(
        self, match_id: str, team1_points: float, team2_points: float, winner_id: str | None
    ) -> None: ...
    def move_match(self, match_id: str, week_id: str) -> None: ...
    def delete_match(self, match_id: str) -> None: ...
    def delete_generated_matches(self, week_ids: list[str]) -> int: ...
    def create_handicap(self, player_id: str, week_id: str, **fields: Any) -> Handicap: ...
    def update_handicap(self, handicap_id: str, **fields: Any) -> None: ...
    def delete_handicap(self, handicap_id: str) -> None: ...
    def create_score(self, player_id: str, week_id: str, **fields: Any) -> Score: ...
    def update_score(self, score_id: str, **fields: Any) -> None: ...
    def update_weighted_score(self, score_id: str, weighted_score: int | None) -> None: ...
    def delete_score(self, score_id: str) -> None: ...
    def delete_team(self, team_id: str) -> None: ...
    def delete_player(self, player_id: str) -> None: ...
    def delete_week(self, week_id: str) -> None: ...


class SqliteLeagueStore:
    """LeagueStore over a single sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self._leagues = LeagueRepository()
        self._players = PlayerRepository()
        self._teams = TeamRepository()
        self._weeks = WeekRepository()
        self._scores = ScoreRepository()
        self._handicaps = HandicapRepository()
        self._matches = MatchRepository()

    # ---------- reads ----------

    def get_league(self, league_id: str) -> League | None:
        return self._leagues.get(self.conn, league_id)

    def get_player(self, player_id: str) -> Player | None:
        return self._players.get(self.conn, player_id)

    def list_players(self, league_id: str) -> list[Player]:
        return self._players.list_by_league(self.conn, league_id)

    def get_team(self, team_id: str) -> Team | None:
        return self._teams.get(self.conn, team_id)

    def list_teams(self, league_id: str) -> list[Team]:
        return self._teams.list_by_league(self.conn, league_id)

    def list_teams_for_player(self, player_id: str) -> list[Team]:
        return self._teams.list_by_player(self.conn, player_id)

    def get_week(self, week_id: str) -> Week | None:
        return self._weeks.get(self.conn, week_id)

    def list_weeks(
        self, league_id: str, max_week_number: int | None = None, is_championship: bool | None = None
    ) -> list[Week]:
        return self._weeks.list_by_league(self.conn, league_id, max_week_number, is_championship)

    def list_all_weeks(self) -> list[Week]:
        return self._weeks.list_all(self.conn)

    def get_score(self, score_id: str) -> Score | None:
        return self._scores.get(self.conn, score_id)

    def list_scores_for_player(self, player_id: str) -> list[Score]:
        return self._scores.list_by_player(self.conn, player_id)

    def list_scores_for_week(self, week_id: str) -> list[Score]:
        return self._scores.list_by_week(self.conn, week_id)

    def list_scores_for_league(self, league_id: str) -> list[Score]:
        return self._scores.list_by_league(self.conn, league_id)

    def get_handicap(self, player_id: str, week_id: str) -> Handicap | None:
        return self._handicaps.get_by_player_week(self.conn, player_id, week_id)

    def list_handicaps_for_player(self, player_id: str) -> list[Handicap]:
        return self._handicaps.list_by_player(self.conn, player_id)

    def list_handicaps_for_week(self, week_id: str) -> list[Handicap]:
        return self._handicaps.list_by_week(self.conn, week_id)

    def get_match(self, match_id: str) -> Match | None:
        return self._matches.get(self.conn, match_id)

    def list_matches_for_weeks(self, week_ids: list[str]) -> list[Match]:
        return self._matches.list_by_weeks(self.conn, week_ids)

    def list_matches_for_team(self, team_id: str) -> list[Match]:
        return self._matches.list_by_team(self.conn, team_id)

    # ---------- writes ----------

    def create_match(self, week_id: str, team1_id: str, team2_id: str | None, is_manual: bool = False) -> Match:
        return self._matches.create(self.conn, week_id, team1_id, team2_id, is_manual=is_manual)

    def update_match_result(
        self, match_id: str, team1_points: float, team2_points: float, winner_id: str | None
    ) -> None:
        self._matches.update_result(self.conn, match_id, team1_points, team2_points, winner_id)

    def move_match(self, match_id: str, week_id: str) -> None:
        self._matches.update_week(self.conn, match_id, week_id)

    def delete_match(self, match_id: str) -> None:
        self._matches.delete(self.conn, match_id)

    def delete_generated_matches(self, week_ids: list[str]) -> int:
        return self._matches.delete_generated_for_weeks(self.conn, week_ids)

    def create_handicap(self, player_id: str, week_id: str, **fields: Any) -> Handicap:
        return self._handicaps.create(self.conn, player_id, week_id, **fields)

    def update_handicap(self, handicap_id: str, **fields: Any) -> None:
        self._handicaps.update(self.conn, handicap_id, **fields)

    def delete_handicap(self, handicap_id: str) -> None:
        self._handicaps.delete(self.conn, handicap_id)

    def create_score(self, player_id: str, week_id: str, **fields: Any) -> Score:
        return self._scores.create(self.conn, player_id, week_id, **fields)

    def update_score(self, score_id: str, **fields: Any) -> None:
        self._scores.update(self.conn, score_id, **fields)

    def update_weighted_score(self, score_id: str, weighted_score: int | None) -> None:
        self._scores.update_weighted_score(self.conn, score_id, weighted_score)

    def delete_score(self, score_id: str) -> None:
        self._scores.delete(self.conn, score_id)

    def delete_team(self, team_id: str) -> None:
        self._matches.delete_by_team(self.conn, team_id)
        self._teams.delete(self.conn, team_id)

    def delete_player(self, player_id: str) -> None:
        self._scores.delete_by_player(self.conn, player_id)
        self._handicaps.delete_by_player(self.conn, player_id)
        self._players.delete(self.conn, player_id)

    def delete_week(self, week_id: str) -> None:
        self._weeks.delete(self.conn, week_id)
