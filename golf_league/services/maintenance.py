"""
Data repair for legacy leagues: duplicate week rows and duplicate scores.

Both operations are idempotent; a second run on clean data changes nothing.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from golf_league.logging_config import get_logger
from golf_league.models import Handicap, Score, Week
from golf_league.persistence.store import LeagueStore
from golf_league.services.match_play import is_decided

logger = get_logger(__name__)


@dataclass
class MergeReport:
    groups_merged: int = 0
    weeks_deleted: int = 0
    scores_moved: int = 0
    scores_deleted: int = 0
    handicaps_moved: int = 0
    handicaps_merged: int = 0
    matches_moved: int = 0
    matches_deleted: int = 0
    kept_week_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups_merged": self.groups_merged,
            "weeks_deleted": self.weeks_deleted,
            "scores_moved": self.scores_moved,
            "scores_deleted": self.scores_deleted,
            "handicaps_moved": self.handicaps_moved,
            "handicaps_merged": self.handicaps_merged,
            "matches_moved": self.matches_moved,
            "matches_deleted": self.matches_deleted,
            "kept_week_ids": list(self.kept_week_ids),
        }


def score_precedence(score: Score) -> tuple:
    """Higher sorts first: scorecard image, then more hole data, then most recently updated."""
    return (score.scorecard_image is not None, score.hole_count, score.updated_at)


def _weeks_for(store: LeagueStore, league_id: str | None) -> list[Week]:
    if league_id is not None:
        return store.list_weeks(league_id)
    return store.list_all_weeks()


def _group_logical_weeks(weeks: list[Week]) -> dict[tuple[str, int, bool], list[Week]]:
    groups: dict[tuple[str, int, bool], list[Week]] = {}
    for w in weeks:
        groups.setdefault(w.track_key, []).append(w)
    return groups


def _related_count(store: LeagueStore, week: Week) -> int:
    return (
        len(store.list_scores_for_week(week.id))
        + len(store.list_handicaps_for_week(week.id))
        + len(store.list_matches_for_weeks([week.id]))
    )


def _merge_handicap(store: LeagueStore, kept: Handicap, incoming: Handicap) -> None:
    """Fold incoming into kept: non-null fields of the newer record win."""
    newer, older = (incoming, kept) if incoming.updated_at > kept.updated_at else (kept, incoming)
    fields: dict[str, Any] = {}
    for name in ("handicap", "applied_handicap", "raw_handicap"):
        value = getattr(newer, name)
        fields[name] = value if value is not None else getattr(older, name)
    fields["is_baseline"] = kept.is_baseline or incoming.is_baseline
    store.update_handicap(kept.id, **fields)
    store.delete_handicap(incoming.id)


def _move_scores(store: LeagueStore, source: Week, target: Week, report: MergeReport) -> None:
    for score in store.list_scores_for_week(source.id):
        rivals = [s for s in store.list_scores_for_week(target.id) if s.player_id == score.player_id]
        if not rivals:
            store.update_score(score.id, week_id=target.id)
            report.scores_moved += 1
            continue
        best = max([score, *rivals], key=score_precedence)
        for s in (score, *rivals):
            if s.id != best.id:
                store.delete_score(s.id)
                report.scores_deleted += 1
        if best.id == score.id:
            store.update_score(score.id, week_id=target.id)
            report.scores_moved += 1
        logger.info("Player %s week %d: kept score %s", score.player_id, target.week_number, best.id)


def _move_handicaps(store: LeagueStore, source: Week, target: Week, report: MergeReport) -> None:
    for h in store.list_handicaps_for_week(source.id):
        existing = store.get_handicap(h.player_id, target.id)
        if existing is None:
            store.update_handicap(h.id, week_id=target.id)
            report.handicaps_moved += 1
        else:
            _merge_handicap(store, existing, h)
            report.handicaps_merged += 1


def _move_matches(store: LeagueStore, source: Week, target: Week, report: MergeReport) -> None:
    by_pair = {frozenset(m.team_ids): m for m in store.list_matches_for_weeks([target.id])}
    for m in store.list_matches_for_weeks([source.id]):
        pair = frozenset(m.team_ids)
        kept = by_pair.get(pair)
        if kept is None:
            store.move_match(m.id, target.id)
            by_pair[pair] = m
            report.matches_moved += 1
            continue
        if is_decided(m) and not is_decided(kept):
            store.delete_match(kept.id)
            store.move_match(m.id, target.id)
            by_pair[pair] = m
            report.matches_moved += 1
        else:
            store.delete_match(m.id)
        report.matches_deleted += 1


def merge_duplicate_weeks(store: LeagueStore, league_id: str | None = None) -> MergeReport:
    """
    Collapse week rows sharing (league, week_number, is_championship) into one.

    The row with the most scores, handicaps and matches is kept (ties go to
    the earliest-created row); everything on the other rows is moved onto it
    and the emptied rows are deleted.
    """
    report = MergeReport()
    for key, rows in _group_logical_weeks(_weeks_for(store, league_id)).items():
        if len(rows) < 2:
            continue
        counts = {w.id: _related_count(store, w) for w in rows}
        top = max(counts.values())
        leaders = [w for w in rows if counts[w.id] == top]
        keep = leaders[0]
        if len(leaders) > 1:
            logger.info("Week %d: %d rows tie on related records, keeping earliest %s", key[1], len(leaders), keep.id)
        for dup in rows:
            if dup.id == keep.id:
                continue
            _move_scores(store, dup, keep, report)
            _move_handicaps(store, dup, keep, report)
            _move_matches(store, dup, keep, report)
            store.delete_week(dup.id)
            report.weeks_deleted += 1
        report.groups_merged += 1
        report.kept_week_ids.append(keep.id)
        logger.info(
            "League %s week %d%s: merged %d rows into %s",
            key[0], key[1], " (championship)" if key[2] else "", len(rows), keep.id,
        )
    return report


def cleanup_duplicate_scores(store: LeagueStore, league_id: str | None = None) -> int:
    """Keep one score per player and logical week. Returns scores deleted."""
    deleted = 0
    for rows in _group_logical_weeks(_weeks_for(store, league_id)).values():
        by_player: dict[str, list[Score]] = {}
        for w in rows:
            for s in store.list_scores_for_week(w.id):
                by_player.setdefault(s.player_id, []).append(s)
        for player_id, scores in by_player.items():
            if len(scores) < 2:
                continue
            best = max(scores, key=score_precedence)
            for s in scores:
                if s.id != best.id:
                    store.delete_score(s.id)
                    deleted += 1
            logger.info("Player %s: kept score %s, removed %d duplicates", player_id, best.id, len(scores) - 1)
    return deleted
