"""
Repository interfaces for league data.
No business logic, only read/write operations.
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from golf_league.models import (
    HOLE_COUNT,
    Handicap,
    League,
    Match,
    Player,
    Score,
    Team,
    Week,
)


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _placeholders(values: Iterable[Any]) -> str:
    return ", ".join("?" for _ in values)


def _set_clause(fields: dict[str, Any], allowed: set[str]) -> tuple[str, list[Any]]:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown columns: {sorted(unknown)}")
    cols = sorted(fields)
    return ", ".join(f"{c} = ?" for c in cols), [fields[c] for c in cols]


# ---------- LeagueRepository ----------


class LeagueRepository:
    """CRUD for leagues. No business logic."""

    def create(self, conn: sqlite3.Connection, name: str, id: str | None = None) -> League:
        lid = id or str(uuid.uuid4())
        now = _now_iso()
        conn.execute(
            "INSERT INTO leagues (id, name, created_at) VALUES (?, ?, ?)",
            (lid, name, now),
        )
        conn.commit()
        return League(id=lid, name=name, created_at=_parse_datetime(now))

    def get(self, conn: sqlite3.Connection, league_id: str) -> League | None:
        row = conn.execute(
            "SELECT id, name, created_at FROM leagues WHERE id = ?", (league_id,)
        ).fetchone()
        if row is None:
            return None
        return League(id=row["id"], name=row["name"], created_at=_parse_datetime(row["created_at"]))

    def list_all(self, conn: sqlite3.Connection) -> list[League]:
        rows = conn.execute("SELECT id, name, created_at FROM leagues ORDER BY created_at").fetchall()
        return [
            League(id=r["id"], name=r["name"], created_at=_parse_datetime(r["created_at"]))
            for r in rows
        ]


# ---------- PlayerRepository ----------


def _row_to_player(r: sqlite3.Row) -> Player:
    return Player(
        id=r["id"],
        league_id=r["league_id"],
        first_name=r["first_name"],
        last_name=r["last_name"],
        created_at=_parse_datetime(r["created_at"]),
    )


class PlayerRepository:
    """CRUD for players."""

    _COLS = "id, league_id, first_name, last_name, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        first_name: str,
        last_name: str | None = None,
        id: str | None = None,
    ) -> Player:
        pid = id or str(uuid.uuid4())
        now = _now_iso()
        conn.execute(
            "INSERT INTO players (id, league_id, first_name, last_name, created_at) VALUES (?, ?, ?, ?, ?)",
            (pid, league_id, first_name, last_name, now),
        )
        conn.commit()
        return Player(
            id=pid, league_id=league_id, first_name=first_name, last_name=last_name,
            created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, player_id: str) -> Player | None:
        row = conn.execute(f"SELECT {self._COLS} FROM players WHERE id = ?", (player_id,)).fetchone()
        return _row_to_player(row) if row is not None else None

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[Player]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM players WHERE league_id = ? ORDER BY first_name, last_name, id",
            (league_id,),
        ).fetchall()
        return [_row_to_player(r) for r in rows]

    def delete(self, conn: sqlite3.Connection, player_id: str) -> None:
        conn.execute("DELETE FROM players WHERE id = ?", (player_id,))
        conn.commit()


# ---------- TeamRepository ----------


def _row_to_team(r: sqlite3.Row) -> Team:
    return Team(
        id=r["id"],
        league_id=r["league_id"],
        team_number=r["team_number"],
        player1_id=r["player1_id"],
        player2_id=r["player2_id"],
        created_at=_parse_datetime(r["created_at"]),
    )


class TeamRepository:
    """CRUD for two-player teams."""

    _COLS = "id, league_id, team_number, player1_id, player2_id, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        player1_id: str,
        player2_id: str,
        team_number: int | None = None,
        id: str | None = None,
    ) -> Team:
        tid = id or str(uuid.uuid4())
        now = _now_iso()
        if team_number is None:
            row = conn.execute(
                "SELECT COALESCE(MAX(team_number), 0) AS n FROM teams WHERE league_id = ?",
                (league_id,),
            ).fetchone()
            team_number = row["n"] + 1
        conn.execute(
            "INSERT INTO teams (id, league_id, team_number, player1_id, player2_id, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (tid, league_id, team_number, player1_id, player2_id, now),
        )
        conn.commit()
        return Team(
            id=tid, league_id=league_id, team_number=team_number,
            player1_id=player1_id, player2_id=player2_id, created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, team_id: str) -> Team | None:
        row = conn.execute(f"SELECT {self._COLS} FROM teams WHERE id = ?", (team_id,)).fetchone()
        return _row_to_team(row) if row is not None else None

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[Team]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM teams WHERE league_id = ? ORDER BY team_number, id",
            (league_id,),
        ).fetchall()
        return [_row_to_team(r) for r in rows]

    def list_by_player(self, conn: sqlite3.Connection, player_id: str) -> list[Team]:
        """Teams where the player is either partner."""
        rows = conn.execute(
            f"SELECT {self._COLS} FROM teams WHERE player1_id = ? OR player2_id = ? ORDER BY team_number",
            (player_id, player_id),
        ).fetchall()
        return [_row_to_team(r) for r in rows]

    def delete(self, conn: sqlite3.Connection, team_id: str) -> None:
        conn.execute("DELETE FROM teams WHERE id = ?", (team_id,))
        conn.commit()


# ---------- WeekRepository ----------


def _row_to_week(r: sqlite3.Row) -> Week:
    return Week(
        id=r["id"],
        league_id=r["league_id"],
        week_number=r["week_number"],
        is_championship=bool(r["is_championship"]),
        created_at=_parse_datetime(r["created_at"]),
    )


class WeekRepository:
    """CRUD for weeks. Duplicate rows per logical week are tolerated."""

    _COLS = "id, league_id, week_number, is_championship, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        week_number: int,
        is_championship: bool = False,
        id: str | None = None,
    ) -> Week:
        wid = id or str(uuid.uuid4())
        now = _now_iso()
        conn.execute(
            "INSERT INTO weeks (id, league_id, week_number, is_championship, created_at) VALUES (?, ?, ?, ?, ?)",
            (wid, league_id, week_number, 1 if is_championship else 0, now),
        )
        conn.commit()
        return Week(
            id=wid, league_id=league_id, week_number=week_number,
            is_championship=is_championship, created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, week_id: str) -> Week | None:
        row = conn.execute(f"SELECT {self._COLS} FROM weeks WHERE id = ?", (week_id,)).fetchone()
        return _row_to_week(row) if row is not None else None

    def list_by_league(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        max_week_number: int | None = None,
        is_championship: bool | None = None,
    ) -> list[Week]:
        """Weeks ordered by week_number, then created_at, then id (oldest row first)."""
        sql = f"SELECT {self._COLS} FROM weeks WHERE league_id = ?"
        args: list[Any] = [league_id]
        if max_week_number is not None:
            sql += " AND week_number <= ?"
            args.append(max_week_number)
        if is_championship is not None:
            sql += " AND is_championship = ?"
            args.append(1 if is_championship else 0)
        sql += " ORDER BY week_number, created_at, id"
        return [_row_to_week(r) for r in conn.execute(sql, args).fetchall()]

    def list_all(self, conn: sqlite3.Connection) -> list[Week]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM weeks ORDER BY league_id, week_number, created_at, id"
        ).fetchall()
        return [_row_to_week(r) for r in rows]

    def delete(self, conn: sqlite3.Connection, week_id: str) -> None:
        conn.execute("DELETE FROM weeks WHERE id = ?", (week_id,))
        conn.commit()


# ---------- ScoreRepository ----------


def _encode_holes(holes: list[int | None] | None) -> str:
    values = list(holes) if holes is not None else []
    values = (values + [None] * HOLE_COUNT)[:HOLE_COUNT]
    return json.dumps(values)


def _row_to_score(r: sqlite3.Row) -> Score:
    return Score(
        id=r["id"],
        player_id=r["player_id"],
        week_id=r["week_id"],
        holes=json.loads(r["holes_json"]),
        total=r["total"],
        weighted_score=r["weighted_score"],
        scorecard_image=r["scorecard_image"],
        created_at=_parse_datetime(r["created_at"]),
        updated_at=_parse_datetime(r["updated_at"]),
    )


class ScoreRepository:
    """CRUD for scores. Scores are updated in place so their id stays stable."""

    _COLS = "id, player_id, week_id, holes_json, total, weighted_score, scorecard_image, created_at, updated_at"
    _UPDATABLE = {"week_id", "holes_json", "total", "weighted_score", "scorecard_image"}

    def create(
        self,
        conn: sqlite3.Connection,
        player_id: str,
        week_id: str,
        holes: list[int | None] | None = None,
        total: int | None = None,
        weighted_score: int | None = None,
        scorecard_image: str | None = None,
        id: str | None = None,
    ) -> Score:
        sid = id or str(uuid.uuid4())
        now = _now_iso()
        conn.execute(
            f"INSERT INTO scores ({self._COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (sid, player_id, week_id, _encode_holes(holes), total, weighted_score, scorecard_image, now, now),
        )
        conn.commit()
        created = _parse_datetime(now)
        return Score(
            id=sid,
            player_id=player_id,
            week_id=week_id,
            holes=json.loads(_encode_holes(holes)),
            total=total,
            weighted_score=weighted_score,
            scorecard_image=scorecard_image,
            created_at=created,
            updated_at=created,
        )

    def get(self, conn: sqlite3.Connection, score_id: str) -> Score | None:
        row = conn.execute(f"SELECT {self._COLS} FROM scores WHERE id = ?", (score_id,)).fetchone()
        return _row_to_score(row) if row is not None else None

    def list_by_player(self, conn: sqlite3.Connection, player_id: str) -> list[Score]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM scores WHERE player_id = ? ORDER BY updated_at DESC, id DESC",
            (player_id,),
        ).fetchall()
        return [_row_to_score(r) for r in rows]

    def list_by_week(self, conn: sqlite3.Connection, week_id: str) -> list[Score]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM scores WHERE week_id = ? ORDER BY updated_at DESC, id DESC",
            (week_id,),
        ).fetchall()
        return [_row_to_score(r) for r in rows]

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[Score]:
        cols = ", ".join(f"s.{c.strip()}" for c in self._COLS.split(","))
        rows = conn.execute(
            f"SELECT {cols} FROM scores s JOIN players p ON p.id = s.player_id "
            "WHERE p.league_id = ? ORDER BY s.updated_at DESC, s.id DESC",
            (league_id,),
        ).fetchall()
        return [_row_to_score(r) for r in rows]

    def update(self, conn: sqlite3.Connection, score_id: str, **fields: Any) -> None:
        """Update columns in place. holes may be passed as a list; it is encoded."""
        if "holes" in fields:
            fields["holes_json"] = _encode_holes(fields.pop("holes"))
        set_sql, args = _set_clause(fields, self._UPDATABLE)
        conn.execute(
            f"UPDATE scores SET {set_sql}, updated_at = ? WHERE id = ?",
            (*args, _now_iso(), score_id),
        )
        conn.commit()

    def update_weighted_score(self, conn: sqlite3.Connection, score_id: str, weighted_score: int | None) -> None:
        """Derived field only; does not bump updated_at."""
        conn.execute("UPDATE scores SET weighted_score = ? WHERE id = ?", (weighted_score, score_id))
        conn.commit()

    def delete(self, conn: sqlite3.Connection, score_id: str) -> None:
        conn.execute("DELETE FROM scores WHERE id = ?", (score_id,))
        conn.commit()

    def delete_by_player(self, conn: sqlite3.Connection, player_id: str) -> int:
        cur = conn.execute("DELETE FROM scores WHERE player_id = ?", (player_id,))
        conn.commit()
        return cur.rowcount


# ---------- HandicapRepository ----------


def _row_to_handicap(r: sqlite3.Row) -> Handicap:
    return Handicap(
        id=r["id"],
        player_id=r["player_id"],
        week_id=r["week_id"],
        handicap=r["handicap"],
        applied_handicap=r["applied_handicap"],
        raw_handicap=r["raw_handicap"],
        is_baseline=bool(r["is_baseline"]),
        created_at=_parse_datetime(r["created_at"]),
        updated_at=_parse_datetime(r["updated_at"]),
    )


class HandicapRepository:
    """CRUD for handicaps. One row per (player_id, week_id)."""

    _COLS = "id, player_id, week_id, handicap, applied_handicap, raw_handicap, is_baseline, created_at, updated_at"
    _UPDATABLE = {"week_id", "handicap", "applied_handicap", "raw_handicap", "is_baseline"}

    def create(
        self,
        conn: sqlite3.Connection,
        player_id: str,
        week_id: str,
        handicap: float | None = None,
        applied_handicap: float | None = None,
        raw_handicap: int | None = None,
        is_baseline: bool = False,
        id: str | None = None,
    ) -> Handicap:
        hid = id or str(uuid.uuid4())
        now = _now_iso()
        conn.execute(
            f"INSERT INTO handicaps ({self._COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (hid, player_id, week_id, handicap, applied_handicap, raw_handicap, 1 if is_baseline else 0, now, now),
        )
        conn.commit()
        created = _parse_datetime(now)
        return Handicap(
            id=hid,
            player_id=player_id,
            week_id=week_id,
            handicap=handicap,
            applied_handicap=applied_handicap,
            raw_handicap=raw_handicap,
            is_baseline=is_baseline,
            created_at=created,
            updated_at=created,
        )

    def get(self, conn: sqlite3.Connection, handicap_id: str) -> Handicap | None:
        row = conn.execute(f"SELECT {self._COLS} FROM handicaps WHERE id = ?", (handicap_id,)).fetchone()
        return _row_to_handicap(row) if row is not None else None

    def get_by_player_week(self, conn: sqlite3.Connection, player_id: str, week_id: str) -> Handicap | None:
        row = conn.execute(
            f"SELECT {self._COLS} FROM handicaps WHERE player_id = ? AND week_id = ?",
            (player_id, week_id),
        ).fetchone()
        return _row_to_handicap(row) if row is not None else None

    def list_by_player(self, conn: sqlite3.Connection, player_id: str) -> list[Handicap]:
        """Most recently updated first."""
        rows = conn.execute(
            f"SELECT {self._COLS} FROM handicaps WHERE player_id = ? ORDER BY updated_at DESC, id DESC",
            (player_id,),
        ).fetchall()
        return [_row_to_handicap(r) for r in rows]

    def list_by_week(self, conn: sqlite3.Connection, week_id: str) -> list[Handicap]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM handicaps WHERE week_id = ? ORDER BY updated_at DESC, id DESC",
            (week_id,),
        ).fetchall()
        return [_row_to_handicap(r) for r in rows]

    def update(self, conn: sqlite3.Connection, handicap_id: str, **fields: Any) -> None:
        if "is_baseline" in fields:
            fields["is_baseline"] = 1 if fields["is_baseline"] else 0
        set_sql, args = _set_clause(fields, self._UPDATABLE)
        conn.execute(
            f"UPDATE handicaps SET {set_sql}, updated_at = ? WHERE id = ?",
            (*args, _now_iso(), handicap_id),
        )
        conn.commit()

    def delete(self, conn: sqlite3.Connection, handicap_id: str) -> None:
        conn.execute("DELETE FROM handicaps WHERE id = ?", (handicap_id,))
        conn.commit()

    def delete_by_player(self, conn: sqlite3.Connection, player_id: str) -> int:
        cur = conn.execute("DELETE FROM handicaps WHERE player_id = ?", (player_id,))
        conn.commit()
        return cur.rowcount


# ---------- MatchRepository ----------


def _row_to_match(r: sqlite3.Row) -> Match:
    return Match(
        id=r["id"],
        week_id=r["week_id"],
        team1_id=r["team1_id"],
        team2_id=r["team2_id"],
        team1_points=r["team1_points"],
        team2_points=r["team2_points"],
        winner_id=r["winner_id"],
        is_manual=bool(r["is_manual"]),
        created_at=_parse_datetime(r["created_at"]),
    )


class MatchRepository:
    """CRUD for matches (fixtures). No business logic."""

    _COLS = "id, week_id, team1_id, team2_id, team1_points, team2_points, winner_id, is_manual, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        week_id: str,
        team1_id: str,
        team2_id: str | None,
        is_manual: bool = False,
        id: str | None = None,
    ) -> Match:
        mid = id or str(uuid.uuid4())
        now = _now_iso()
        conn.execute(
            "INSERT INTO matches (id, week_id, team1_id, team2_id, team1_points, team2_points, winner_id, is_manual, created_at) "
            "VALUES (?, ?, ?, ?, 0, 0, NULL, ?, ?)",
            (mid, week_id, team1_id, team2_id, 1 if is_manual else 0, now),
        )
        conn.commit()
        return Match(
            id=mid, week_id=week_id, team1_id=team1_id, team2_id=team2_id,
            team1_points=0.0, team2_points=0.0, winner_id=None, is_manual=is_manual,
            created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, match_id: str) -> Match | None:
        row = conn.execute(f"SELECT {self._COLS} FROM matches WHERE id = ?", (match_id,)).fetchone()
        return _row_to_match(row) if row is not None else None

    def list_by_week(self, conn: sqlite3.Connection, week_id: str) -> list[Match]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM matches WHERE week_id = ? ORDER BY created_at, id",
            (week_id,),
        ).fetchall()
        return [_row_to_match(r) for r in rows]

    def list_by_weeks(self, conn: sqlite3.Connection, week_ids: list[str]) -> list[Match]:
        if not week_ids:
            return []
        rows = conn.execute(
            f"SELECT {self._COLS} FROM matches WHERE week_id IN ({_placeholders(week_ids)}) ORDER BY created_at, id",
            list(week_ids),
        ).fetchall()
        return [_row_to_match(r) for r in rows]

    def list_by_team(self, conn: sqlite3.Connection, team_id: str) -> list[Match]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM matches WHERE team1_id = ? OR team2_id = ? ORDER BY created_at, id",
            (team_id, team_id),
        ).fetchall()
        return [_row_to_match(r) for r in rows]

    def update_result(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        team1_points: float,
        team2_points: float,
        winner_id: str | None,
    ) -> None:
        conn.execute(
            "UPDATE matches SET team1_points = ?, team2_points = ?, winner_id = ? WHERE id = ?",
            (team1_points, team2_points, winner_id, match_id),
        )
        conn.commit()

    def update_week(self, conn: sqlite3.Connection, match_id: str, week_id: str) -> None:
        conn.execute("UPDATE matches SET week_id = ? WHERE id = ?", (week_id, match_id))
        conn.commit()

    def delete(self, conn: sqlite3.Connection, match_id: str) -> None:
        conn.execute("DELETE FROM matches WHERE id = ?", (match_id,))
        conn.commit()

    def delete_generated_for_weeks(self, conn: sqlite3.Connection, week_ids: list[str]) -> int:
        """Delete non-manual matches in the given weeks. Manual matches are kept."""
        if not week_ids:
            return 0
        cur = conn.execute(
            f"DELETE FROM matches WHERE is_manual = 0 AND week_id IN ({_placeholders(week_ids)})",
            list(week_ids),
        )
        conn.commit()
        return cur.rowcount

    def delete_by_team(self, conn: sqlite3.Connection, team_id: str) -> int:
        cur = conn.execute(
            "DELETE FROM matches WHERE team1_id = ? OR team2_id = ?", (team_id, team_id)
        )
        conn.commit()
        return cur.rowcount
