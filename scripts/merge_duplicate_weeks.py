#!/usr/bin/env python3
"""
Merge duplicate week rows and remove duplicate scores.
Run from project root: python3 scripts/merge_duplicate_weeks.py [--league LEAGUE_ID]
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from golf_league.logging_config import setup_logging
from golf_league.persistence import SqliteLeagueStore, get_connection, init_db
from golf_league.persistence.db import get_db_path, set_db_path
from golf_league.services.maintenance import cleanup_duplicate_scores, merge_duplicate_weeks


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--league", dest="league_id", help="Only this league (default: all)")
    parser.add_argument("--db", type=Path, help="SQLite file (default: $GOLF_LEAGUE_DB_PATH or data/league.db)")
    parser.add_argument("--scores-only", action="store_true", help="Skip week merging")
    args = parser.parse_args()

    setup_logging()
    if args.db is not None:
        set_db_path(args.db)
    init_db(db_path=get_db_path())

    conn = get_connection()
    try:
        store = SqliteLeagueStore(conn)
        out: dict = {}
        if not args.scores_only:
            out.update(merge_duplicate_weeks(store, args.league_id).to_dict())
        out["duplicate_scores_removed"] = cleanup_duplicate_scores(store, args.league_id)
    finally:
        conn.close()
    print(json.dumps(out, indent=2))


if __name__ == "__main__":
    main()
