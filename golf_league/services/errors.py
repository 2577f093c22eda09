"""
Domain exceptions for league services.
Validation failures subclass ValueError; the API maps them to 4xx responses.
"""
from __future__ import annotations


class LeagueNotFoundError(ValueError):
    """League id does not exist."""


class PlayerNotFoundError(ValueError):
    """Player id does not exist."""


class TeamNotFoundError(ValueError):
    """Team id does not exist."""


class WeekNotFoundError(ValueError):
    """Week id does not exist."""


class MatchNotFoundError(ValueError):
    """Match id does not exist."""


class ScheduleInputError(ValueError):
    """Schedule cannot be generated (fewer than 2 teams, no weeks)."""


class ScoreInputError(ValueError):
    """Score submission is malformed (bad hole values, no total)."""


class MatchCalculationError(ValueError):
    """Match cannot be scored (bye, missing scores or hole detail)."""


class RecalculationInProgressError(RuntimeError):
    """Another handicap sweep for the same league has not finished."""
