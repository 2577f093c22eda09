"""
League-centric service: schedule generation, score submission, handicap
cascades, match results and cascading deletes.
Persistence is delegated to the injected LeagueStore.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from golf_league.config import LeagueRules, get_rules
from golf_league.logging_config import get_logger
from golf_league.models import HOLE_COUNT, Match, Score, Week
from golf_league.persistence.store import LeagueStore
from golf_league.services.errors import (
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
from golf_league.services.handicap import (
    ApplyResult,
    HandicapEngine,
    RecalculationResult,
    weighted_score,
)
from golf_league.services.match_play import (
    calculate_match_play,
    compute_standings,
    match_winner,
    team_hole_scores,
)
from golf_league.services.scheduling import (
    ScheduleDiscrepancy,
    generate_schedule,
    schedule_discrepancies,
    team_match_counts,
)

logger = get_logger(__name__)


@dataclass
class ScheduleSummary:
    league_id: str
    weeks_scheduled: int
    matches_created: int
    matches_deleted: int
    team_counts: dict[str, int]
    skipped_pairs: list[tuple[int, str, str]] = field(default_factory=list)
    discrepancies: list[ScheduleDiscrepancy] = field(default_factory=list)

    @property
    def min_matches(self) -> int:
        return min(self.team_counts.values()) if self.team_counts else 0

    @property
    def max_matches(self) -> int:
        return max(self.team_counts.values()) if self.team_counts else 0

    @property
    def balanced(self) -> bool:
        return self.min_matches == self.max_matches

    def to_dict(self) -> dict[str, Any]:
        return {
            "league_id": self.league_id,
            "weeks_scheduled": self.weeks_scheduled,
            "matches_created": self.matches_created,
            "matches_deleted": self.matches_deleted,
            "team_counts": dict(self.team_counts),
            "min_matches": self.min_matches,
            "max_matches": self.max_matches,
            "balanced": self.balanced,
            "skipped_pairs": [
                {"week_number": w, "team1_id": t1, "team2_id": t2} for w, t1, t2 in self.skipped_pairs
            ],
            "discrepancies": [
                {"week_index": d.week_index, "expected": d.expected, "actual": d.actual}
                for d in self.discrepancies
            ],
        }


@dataclass
class ScoreSubmission:
    """
    A saved score plus what happened downstream. recalculation_pending is set
    when another sweep held the league; the score is stored either way.
    """
    score: Score
    raw_handicaps_written: int = 0
    recalculation_pending: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.score.to_dict(),
            "raw_handicaps_written": self.raw_handicaps_written,
            "recalculation_pending": self.recalculation_pending,
        }


class LeagueService:
    """
    Domain operations over one store. The handicap engine shares the store so
    cascades see the same writes.
    """

    def __init__(
        self,
        store: LeagueStore,
        engine: HandicapEngine | None = None,
        rules: LeagueRules | None = None,
    ) -> None:
        self._store = store
        self._rules = rules or get_rules()
        self._engine = engine or HandicapEngine(store, self._rules)

    @property
    def engine(self) -> HandicapEngine:
        return self._engine

    # ---------- guards ----------

    def _require_league(self, league_id: str) -> None:
        if self._store.get_league(league_id) is None:
            raise LeagueNotFoundError(f"League not found: {league_id}")

    def _require_week(self, week_id: str) -> Week:
        week = self._store.get_week(week_id)
        if week is None:
            raise WeekNotFoundError(f"Week not found: {week_id}")
        return week

    def _require_match(self, match_id: str) -> Match:
        match = self._store.get_match(match_id)
        if match is None:
            raise MatchNotFoundError(f"Match not found: {match_id}")
        return match

    # ---------- scheduling ----------

    def generate_schedule_for_league(
        self,
        league_id: str,
        max_week: int | None = None,
        seed: int | None = None,
    ) -> ScheduleSummary:
        """
        Replace the generated matches of regular weeks 1..max_week with a fresh
        round-robin. Manual matches stay; a team booked by one sits out the
        generated pairs of that week.
        """
        self._require_league(league_id)
        teams = self._store.list_teams(league_id)
        if len(teams) < 2:
            raise ScheduleInputError("Need at least 2 teams to generate a schedule")
        last_week = max_week if max_week is not None else self._rules.regular_season_weeks
        week_rows = self._store.list_weeks(league_id, max_week_number=last_week, is_championship=False)
        if not week_rows:
            raise ScheduleInputError(f"No regular-season weeks up to week {last_week}")

        # One target row per week number; duplicates keep the earliest row.
        weeks: dict[int, Week] = {}
        for w in week_rows:
            if w.week_number in weeks:
                logger.warning("Duplicate rows for week %d; scheduling into %s", w.week_number, weeks[w.week_number].id)
                continue
            weeks[w.week_number] = w
        ordered = [weeks[n] for n in sorted(weeks)]
        all_ids = [w.id for w in week_rows]

        deleted = self._store.delete_generated_matches(all_ids)
        booked: dict[int, set[str]] = {n: set() for n in weeks}
        row_numbers = {w.id: w.week_number for w in week_rows}
        for m in self._store.list_matches_for_weeks(all_ids):
            booked[row_numbers[m.week_id]].update(m.team_ids)

        team_ids = [t.id for t in teams]
        schedule = generate_schedule(team_ids, len(ordered), seed=seed)

        created = 0
        skipped: list[tuple[int, str, str]] = []
        for week, pairs in zip(ordered, schedule):
            taken = booked[week.week_number]
            for t1, t2 in pairs:
                if t1 in taken or t2 in taken:
                    logger.warning("Week %d: %s vs %s skipped, team already booked", week.week_number, t1, t2)
                    skipped.append((week.week_number, t1, t2))
                    continue
                self._store.create_match(week.id, t1, t2)
                taken.update((t1, t2))
                created += 1

        played = [
            [(m.team1_id, m.team2_id) for m in self._store.list_matches_for_weeks([w.id]) if m.team2_id is not None]
            for w in ordered
        ]
        summary = ScheduleSummary(
            league_id=league_id,
            weeks_scheduled=len(ordered),
            matches_created=created,
            matches_deleted=deleted,
            team_counts=team_match_counts(played, team_ids),
            skipped_pairs=skipped,
            discrepancies=schedule_discrepancies(played, len(team_ids)),
        )
        if not summary.balanced:
            logger.warning(
                "League %s: unbalanced schedule, matches per team range %d-%d",
                league_id, summary.min_matches, summary.max_matches,
            )
        logger.info(
            "League %s: scheduled %d matches over %d weeks (%d generated matches replaced)",
            league_id, created, len(ordered), deleted,
        )
        return summary

    # ---------- handicaps ----------

    def recalculate_handicaps_for_league(self, league_id: str) -> RecalculationResult:
        return self._engine.recalculate_for_league(league_id)

    def apply_handicap_and_cascade(
        self, player_id: str, week_id: str, handicap: float, pinned: bool = False
    ) -> ApplyResult:
        """
        Set a handicap by hand, then bring every weighted score in the league
        back in line with stored handicaps. With pinned the value is a manual
        override that later sweeps leave in place.
        """
        result = self._engine.apply_handicap(player_id, week_id, handicap, pinned=pinned)
        week = self._require_week(week_id)
        try:
            self._engine.ensure_weighted_scores(week.league_id)
        except Exception:
            logger.exception("League %s: weighted score cascade failed", week.league_id)
            raise
        return result

    # ---------- scores ----------

    def _resolve_total(self, holes: list[int | None] | None, total: int | None) -> tuple[list[int | None], int | None]:
        card: list[int | None] = [None] * HOLE_COUNT
        if holes is not None:
            if len(holes) > HOLE_COUNT:
                raise ScoreInputError(f"At most {HOLE_COUNT} holes, got {len(holes)}")
            for i, value in enumerate(holes):
                if value is not None and value < 1:
                    raise ScoreInputError(f"Hole {i + 1}: score must be positive, got {value}")
                card[i] = value
        played = [h for h in card if h is not None]
        front_complete = all(h is not None for h in card[:9])
        back_complete = all(h is not None for h in card[9:])
        if len(played) == self._rules.holes or (len(played) == 9 and (front_complete or back_complete)):
            derived = sum(played)
            if total is not None and total != derived:
                logger.info("Submitted total %d replaced by hole sum %d", total, derived)
            total = derived
        if total is None and not played:
            raise ScoreInputError("A score needs hole values or a total")
        if total is not None and total < 1:
            raise ScoreInputError(f"Total must be positive, got {total}")
        return card, total

    def _existing_score(self, player_id: str, week: Week) -> Score | None:
        """Player's score on week's row, else on any duplicate row of the same logical week."""
        logical = {w.id for w in self._store.list_weeks(week.league_id) if w.track_key == week.track_key}
        fallback = None
        for score in self._store.list_scores_for_player(player_id):
            if score.week_id == week.id:
                return score
            if fallback is None and score.week_id in logical:
                fallback = score
        return fallback

    def submit_score(
        self,
        player_id: str,
        week_id: str,
        holes: list[int | None] | None = None,
        total: int | None = None,
        scorecard_image: str | None = None,
    ) -> ScoreSubmission:
        """
        Create or update the player's score for the week in place, then store
        raw differentials once the round is complete and recalculate the league.

        The score is committed before the sweep runs. If a sweep for the league
        is already running the submission still succeeds and reports
        recalculation_pending.
        """
        player = self._store.get_player(player_id)
        if player is None:
            raise PlayerNotFoundError(f"Player not found: {player_id}")
        week = self._require_week(week_id)
        if week.league_id != player.league_id:
            raise ScoreInputError(f"Week {week_id} belongs to a different league")
        card, total = self._resolve_total(holes, total)

        fields: dict[str, Any] = {"holes": card, "total": total}
        if scorecard_image is not None:
            fields["scorecard_image"] = scorecard_image
        existing = self._existing_score(player_id, week)
        if existing is not None:
            self._store.update_score(existing.id, **fields)
            score_id = existing.id
        else:
            score_id = self._store.create_score(player_id, week.id, **fields).id
        self._store.update_weighted_score(
            score_id, weighted_score(total, self._engine.current_handicap(player_id, week.id))
        )

        written = self._engine.record_round(week.id)
        pending = False
        try:
            self._engine.recalculate_for_league(week.league_id)
        except RecalculationInProgressError:
            logger.warning(
                "League %s: recalculation already running; score %s saved, handicaps pending",
                week.league_id, score_id,
            )
            pending = True
        saved = self._store.get_score(score_id)
        if saved is None:
            raise ScoreInputError(f"Score {score_id} was removed while being submitted")
        return ScoreSubmission(score=saved, raw_handicaps_written=written, recalculation_pending=pending)

    # ---------- deletes ----------

    def delete_player(self, player_id: str) -> dict[str, int]:
        """Delete a player with their teams, those teams' matches, scores and handicaps."""
        if self._store.get_player(player_id) is None:
            raise PlayerNotFoundError(f"Player not found: {player_id}")
        counts = {"teams": 0, "matches": 0, "scores": 0, "handicaps": 0}
        for team in self._store.list_teams_for_player(player_id):
            counts["matches"] += self._delete_team(team.id)
            counts["teams"] += 1
        counts["scores"] = len(self._store.list_scores_for_player(player_id))
        counts["handicaps"] = len(self._store.list_handicaps_for_player(player_id))
        self._store.delete_player(player_id)
        logger.info("Deleted player %s: %s", player_id, counts)
        return counts

    def _delete_team(self, team_id: str) -> int:
        matches = len(self._store.list_matches_for_team(team_id))
        self._store.delete_team(team_id)
        return matches

    def delete_team(self, team_id: str) -> dict[str, int]:
        if self._store.get_team(team_id) is None:
            raise TeamNotFoundError(f"Team not found: {team_id}")
        return {"teams": 1, "matches": self._delete_team(team_id)}

    # ---------- matches ----------

    def calculate_match(self, match_id: str) -> Match:
        """Score a match by best-ball match play and store points and winner."""
        match = self._require_match(match_id)
        if match.team2_id is None:
            raise MatchCalculationError("Match does not have an opponent")
        week = self._require_week(match.week_id)
        cards = []
        for label, team_id in (("Team 1", match.team1_id), ("Team 2", match.team2_id)):
            team = self._store.get_team(team_id)
            if team is None:
                raise TeamNotFoundError(f"Team not found: {team_id}")
            s1, s2 = (self._existing_score(pid, week) for pid in team.player_ids)
            if s1 is None and s2 is None:
                raise MatchCalculationError(f"{label} has no scores for week {week.week_number}")
            team_cards = team_hole_scores(s1, s2)
            if not team_cards:
                raise MatchCalculationError(f"{label} has no hole-by-hole scores for week {week.week_number}")
            cards.append(team_cards)

        team1_points, team2_points = calculate_match_play(cards[0], cards[1], self._rules.holes)
        winner_id = match_winner(match, team1_points, team2_points)
        self._store.update_match_result(match.id, team1_points, team2_points, winner_id)
        logger.info("Match %s: %d-%d", match.id, team1_points, team2_points)
        return self._store.get_match(match.id) or match

    def calculate_week_matches(self, week_id: str) -> tuple[int, int]:
        """Score every match of the week that can be scored. Returns (calculated, skipped)."""
        self._require_week(week_id)
        calculated = skipped = 0
        for match in self._store.list_matches_for_weeks([week_id]):
            try:
                self.calculate_match(match.id)
            except MatchCalculationError as e:
                logger.info("Match %s skipped: %s", match.id, e)
                skipped += 1
                continue
            calculated += 1
        return calculated, skipped

    def standings(self, league_id: str) -> list[dict[str, Any]]:
        self._require_league(league_id)
        teams = {t.id: t for t in self._store.list_teams(league_id)}
        week_ids = [w.id for w in self._store.list_weeks(league_id)]
        rows = compute_standings(self._store.list_matches_for_weeks(week_ids), teams)
        for r in rows:
            team = teams.get(r["team_id"])
            r["team_number"] = team.team_number if team else None
        return rows
