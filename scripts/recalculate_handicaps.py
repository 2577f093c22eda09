#!/usr/bin/env python3
"""
Recalculate every handicap and weighted score in a league.
Run from project root: python3 scripts/recalculate_handicaps.py <league_id> [--seed-baselines]
"""
from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from golf_league.logging_config import setup_logging
from golf_league.persistence import SqliteLeagueStore, get_connection, init_db
from golf_league.persistence.db import get_db_path, set_db_path
from golf_league.services.handicap import HandicapEngine


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("league_id")
    parser.add_argument("--db", type=Path, help="SQLite file (default: $GOLF_LEAGUE_DB_PATH or data/league.db)")
    parser.add_argument("--seed-baselines", action="store_true", help="Pin baselines from weeks 1-3 first")
    parser.add_argument("--timeout", type=float, help="Stop after this many seconds")
    parser.add_argument("--log-file", action="store_true", help="Also log to logs/")
    args = parser.parse_args()

    setup_logging(log_to_file=args.log_file)
    if args.db is not None:
        set_db_path(args.db)
    init_db(db_path=get_db_path())

    conn = get_connection()
    try:
        engine = HandicapEngine(SqliteLeagueStore(conn))
        if args.seed_baselines:
            seeded = engine.seed_baselines(args.league_id)
            print(f"Seeded baselines for {seeded} players")
        deadline = time.monotonic() + args.timeout if args.timeout else None
        result = engine.recalculate_for_league(args.league_id, deadline=deadline)
        changed = engine.ensure_weighted_scores(args.league_id)
    finally:
        conn.close()

    print(json.dumps({**result.to_dict(), "weighted_scores_fixed": changed}, indent=2))
    return 1 if result.aborted else 0


if __name__ == "__main__":
    sys.exit(main())
