"""League rules configuration."""
from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field

_ENV_PREFIX = "GOLF_LEAGUE_"


class LeagueRules(BaseModel):
    """Tunable constants for scheduling and handicaps."""
    handicap_window: int = Field(4, ge=1, description="Prior rounds averaged into a handicap")
    raw_handicap_cap: int = Field(25, ge=0, description="Upper bound of a single round's differential")
    baseline_rounds: int = Field(3, ge=1, description="Opening rounds averaged into the baseline")
    regular_season_weeks: int = Field(10, ge=1, description="Last week number scheduled automatically")
    holes: int = Field(18, ge=9, le=18)


@lru_cache(maxsize=1)
def get_rules() -> LeagueRules:
    """
    Load rules, applying GOLF_LEAGUE_<FIELD> environment overrides.

    Cached after first load; call clear_rules_cache() after changing the
    environment.
    """
    overrides: dict[str, str] = {}
    for name in LeagueRules.model_fields:
        value = os.environ.get(_ENV_PREFIX + name.upper())
        if value is not None:
            overrides[name] = value
    return LeagueRules(**overrides)


def clear_rules_cache() -> None:
    get_rules.cache_clear()
