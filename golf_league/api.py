"""
REST API for the golf league backend.
Thin wrappers around the league service and maintenance jobs.
"""
from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncGenerator, Generator, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from golf_league.logging_config import get_logger
from golf_league.persistence import SqliteLeagueStore, get_connection, init_db
from golf_league.persistence.db import get_db_path
from golf_league.services.errors import (
    LeagueNotFoundError,
    MatchNotFoundError,
    PlayerNotFoundError,
    RecalculationInProgressError,
    TeamNotFoundError,
    WeekNotFoundError,
)
from golf_league.services.league_service import LeagueService
from golf_league.services.maintenance import cleanup_duplicate_scores, merge_duplicate_weeks

logger = get_logger(__name__)

_NOT_FOUND = (
    LeagueNotFoundError,
    PlayerNotFoundError,
    TeamNotFoundError,
    WeekNotFoundError,
    MatchNotFoundError,
)


@contextmanager
def league_service() -> Generator[LeagueService, None, None]:
    """Yield a service bound to a fresh connection; map domain errors to HTTP errors."""
    conn = get_connection()
    try:
        yield LeagueService(SqliteLeagueStore(conn))
    except _NOT_FOUND as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecalculationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        conn.close()


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    init_db(db_path=get_db_path())
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="Golf League API",
    description="Scheduling, handicaps and match play for golf leagues",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Request models ----------


class GenerateScheduleRequest(BaseModel):
    league_id: str
    max_week: Optional[int] = Field(None, ge=1)
    seed: Optional[int] = None


class ApplyHandicapRequest(BaseModel):
    player_id: str
    week_id: str
    handicap: float
    pinned: bool = False


class SubmitScoreRequest(BaseModel):
    player_id: str
    week_id: str
    holes: Optional[List[Optional[int]]] = Field(None, max_length=18)
    total: Optional[int] = None
    scorecard_image: Optional[str] = None


# ---------- Schedule ----------


@app.post("/schedule/generate")
def post_generate_schedule(req: GenerateScheduleRequest) -> dict[str, Any]:
    """Regenerate the regular-season schedule. Manual matches are kept."""
    with league_service() as svc:
        summary = svc.generate_schedule_for_league(req.league_id, max_week=req.max_week, seed=req.seed)
        return summary.to_dict()


# ---------- Handicaps ----------


@app.post("/handicaps")
def post_handicap(req: ApplyHandicapRequest) -> dict[str, Any]:
    with league_service() as svc:
        result = svc.apply_handicap_and_cascade(req.player_id, req.week_id, req.handicap, pinned=req.pinned)
        return {"handicap": result.record.to_dict(), "scores_touched": result.scores_touched}


@app.post("/handicaps/recalculate")
def post_recalculate_handicaps(league_id: str = Query(...)) -> dict[str, Any]:
    with league_service() as svc:
        return svc.recalculate_handicaps_for_league(league_id).to_dict()


@app.get("/handicaps/window")
def get_handicap_window(player_id: str = Query(...), week_id: str = Query(...)) -> dict[str, Any]:
    """Which raw differentials would feed this week's handicap, and whether there are enough."""
    with league_service() as svc:
        window = svc.engine.status_for(player_id, week_id)
        return {"player_id": player_id, "week_id": week_id, **window.to_dict()}


# ---------- Scores ----------


@app.post("/scores")
def post_score(req: SubmitScoreRequest) -> dict[str, Any]:
    with league_service() as svc:
        submission = svc.submit_score(
            req.player_id,
            req.week_id,
            holes=req.holes,
            total=req.total,
            scorecard_image=req.scorecard_image,
        )
        return submission.to_dict()


# ---------- Deletes ----------


@app.delete("/players/{player_id}")
def delete_player(player_id: str) -> dict[str, Any]:
    with league_service() as svc:
        return {"player_id": player_id, "deleted": svc.delete_player(player_id)}


@app.delete("/teams/{team_id}")
def delete_team(team_id: str) -> dict[str, Any]:
    with league_service() as svc:
        return {"team_id": team_id, "deleted": svc.delete_team(team_id)}


# ---------- Matches ----------


@app.post("/matches/{match_id}/calculate")
def post_calculate_match(match_id: str) -> dict[str, Any]:
    with league_service() as svc:
        return svc.calculate_match(match_id).to_dict()


@app.get("/leagues/{league_id}/standings")
def get_league_standings(league_id: str) -> dict[str, Any]:
    """Standings from calculated matches: wins, losses, ties, points for and against."""
    with league_service() as svc:
        return {"league_id": league_id, "standings": svc.standings(league_id)}


# ---------- Maintenance ----------


@app.post("/maintenance/merge-duplicate-weeks")
def post_merge_duplicate_weeks(league_id: Optional[str] = Query(None)) -> dict[str, Any]:
    """Merge duplicate week rows, then drop duplicate scores left behind."""
    conn = get_connection()
    try:
        store = SqliteLeagueStore(conn)
        report = merge_duplicate_weeks(store, league_id)
        removed = cleanup_duplicate_scores(store, league_id)
    finally:
        conn.close()
    logger.info("Maintenance: %d week groups merged, %d duplicate scores removed", report.groups_merged, removed)
    return {**report.to_dict(), "duplicate_scores_removed": removed}
