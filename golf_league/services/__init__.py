"""
Service layer: scheduling, handicap engine, match play and data repair.
scheduling and match_play are pure; league_service orchestrates persistence.
"""
from .errors import (
    LeagueNotFoundError,
    MatchCalculationError,
    MatchNotFoundError,
    PlayerNotFoundError,
    RecalculationInProgressError,
    ScheduleInputError,
    ScoreInputError,
    TeamNotFoundError,
    WeekNotFoundError,
)
from .handicap import HandicapEngine
from .league_service import LeagueService, ScheduleSummary, ScoreSubmission
from .maintenance import cleanup_duplicate_scores, merge_duplicate_weeks
from .scheduling import generate_schedule

__all__ = [
    "LeagueNotFoundError",
    "MatchCalculationError",
    "MatchNotFoundError",
    "PlayerNotFoundError",
    "RecalculationInProgressError",
    "ScheduleInputError",
    "ScoreInputError",
    "TeamNotFoundError",
    "WeekNotFoundError",
    "HandicapEngine",
    "LeagueService",
    "ScheduleSummary",
    "ScoreSubmission",
    "cleanup_duplicate_scores",
    "merge_duplicate_weeks",
    "generate_schedule",
]
