"""
SQLite schema for league entities.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def leagues_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS leagues (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    """


def players_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        league_id TEXT NOT NULL,
        first_name TEXT NOT NULL,
        last_name TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (league_id) REFERENCES leagues(id)
    );
    CREATE INDEX IF NOT EXISTS ix_players_league ON players(league_id);
    """


def teams_schema() -> str:
    """Two-player teams; team_number orders teams within a league."""
    return """
    CREATE TABLE IF NOT EXISTS teams (
        id TEXT PRIMARY KEY,
        league_id TEXT NOT NULL,
        team_number INTEGER NOT NULL,
        player1_id TEXT NOT NULL,
        player2_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (league_id) REFERENCES leagues(id),
        FOREIGN KEY (player1_id) REFERENCES players(id),
        FOREIGN KEY (player2_id) REFERENCES players(id)
    );
    CREATE INDEX IF NOT EXISTS ix_teams_league ON teams(league_id);
    CREATE INDEX IF NOT EXISTS ix_teams_player1 ON teams(player1_id);
    CREATE INDEX IF NOT EXISTS ix_teams_player2 ON teams(player2_id);
    """


def weeks_schema() -> str:
    """
    No unique index on (league_id, week_number, is_championship): legacy data
    holds duplicates, repaired by services.maintenance.merge_duplicate_weeks.
    """
    return """
    CREATE TABLE IF NOT EXISTS weeks (
        id TEXT PRIMARY KEY,
        league_id TEXT NOT NULL,
        week_number INTEGER NOT NULL,
        is_championship INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (league_id) REFERENCES leagues(id)
    );
    CREATE INDEX IF NOT EXISTS ix_weeks_league_number ON weeks(league_id, week_number, is_championship);
    """


def scores_schema() -> str:
    """holes_json: JSON list of 18 ints or nulls."""
    return """
    CREATE TABLE IF NOT EXISTS scores (
        id TEXT PRIMARY KEY,
        player_id TEXT NOT NULL,
        week_id TEXT NOT NULL,
        holes_json TEXT NOT NULL,
        total INTEGER,
        weighted_score INTEGER,
        scorecard_image TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (player_id) REFERENCES players(id),
        FOREIGN KEY (week_id) REFERENCES weeks(id)
    );
    CREATE INDEX IF NOT EXISTS ix_scores_player ON scores(player_id);
    CREATE INDEX IF NOT EXISTS ix_scores_week ON scores(week_id);
    """


def handicaps_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS handicaps (
        id TEXT PRIMARY KEY,
        player_id TEXT NOT NULL,
        week_id TEXT NOT NULL,
        handicap REAL,
        applied_handicap REAL,
        raw_handicap INTEGER,
        is_baseline INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (player_id) REFERENCES players(id),
        FOREIGN KEY (week_id) REFERENCES weeks(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_handicaps_player_week ON handicaps(player_id, week_id);
    CREATE INDEX IF NOT EXISTS ix_handicaps_week ON handicaps(week_id);
    """


def matches_schema() -> str:
    """team2_id NULL = bye. is_manual rows are never touched by schedule generation."""
    return """
    CREATE TABLE IF NOT EXISTS matches (
        id TEXT PRIMARY KEY,
        week_id TEXT NOT NULL,
        team1_id TEXT NOT NULL,
        team2_id TEXT,
        team1_points REAL NOT NULL DEFAULT 0,
        team2_points REAL NOT NULL DEFAULT 0,
        winner_id TEXT,
        is_manual INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (week_id) REFERENCES weeks(id),
        FOREIGN KEY (team1_id) REFERENCES teams(id),
        FOREIGN KEY (team2_id) REFERENCES teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_matches_week ON matches(week_id);
    CREATE INDEX IF NOT EXISTS ix_matches_team1 ON matches(team1_id);
    CREATE INDEX IF NOT EXISTS ix_matches_team2 ON matches(team2_id);
    """


def all_schema_sql() -> str:
    """Combine all schema DDL. Order follows foreign keys."""
    return "\n".join([
        leagues_schema(),
        players_schema(),
        teams_schema(),
        weeks_schema(),
        scores_schema(),
        handicaps_schema(),
        matches_schema(),
    ])
