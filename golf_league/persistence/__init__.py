"""
Persistence layer for league data.
No business logic, only read/write interfaces.
"""
from .db import get_connection, init_db
from .repositories import (
    LeagueRepository,
    PlayerRepository,
    TeamRepository,
    WeekRepository,
    ScoreRepository,
    HandicapRepository,
    MatchRepository,
)
from .store import LeagueStore, SqliteLeagueStore

__all__ = [
    "get_connection",
    "init_db",
    "LeagueRepository",
    "PlayerRepository",
    "TeamRepository",
    "WeekRepository",
    "ScoreRepository",
    "HandicapRepository",
    "MatchRepository",
    "LeagueStore",
    "SqliteLeagueStore",
]
