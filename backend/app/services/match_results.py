"""
Match result entry.

Completing a match:
1. checks that attributed goals add up to the entered score
2. stores the score and marks the match completed
3. folds the result into both teams' group standings (group matches only)
4. runs the suspension processor for the two teams
Steps 2-3 share one transaction; step 4 commits on its own.

A completed match can be re-scored: the previous result is taken out of the
group standings before the new one goes in, and suspensions are not served
a second time. Deleting a completed match takes its result out the same way.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from app.models.group import GroupTeam
from app.models.match import MATCH_COMPLETED, Match
from app.models.match_event import Goal, MatchEvent
from app.services import suspension_processor
from app.services.entity_store import EntityStore
from app.services.errors import PreconditionFailed
from app.services.match_event_ledger import rebuild_player_statistics
from app.services.standings import POINTS_DRAW, POINTS_WIN

logger = logging.getLogger(__name__)


def standing_patch(row: GroupTeam, scored: int, conceded: int, sign: int = 1) -> Dict[str, int]:
    """Counters after adding (sign=1) or taking out (sign=-1) one result."""
    goals_for = max(0, row.goals_for + sign * scored)
    goals_against = max(0, row.goals_against + sign * conceded)
    patch = {
        "goals_for": goals_for,
        "goals_against": goals_against,
        "goal_difference": goals_for - goals_against,
    }
    if scored > conceded:
        patch.update(wins=max(0, row.wins + sign), points=max(0, row.points + sign * POINTS_WIN))
    elif scored == conceded:
        patch.update(draws=max(0, row.draws + sign), points=max(0, row.points + sign * POINTS_DRAW))
    else:
        patch["losses"] = max(0, row.losses + sign)
    return patch


def _apply_to_group_standing(
    store: EntityStore, group_id: int, team_id: int, scored: int, conceded: int, sign: int = 1
) -> None:
    row = store.first(GroupTeam, GroupTeam.group_id == group_id, GroupTeam.team_id == team_id)
    if row is None:
        if sign < 0:
            return
        row = GroupTeam(group_id=group_id, team_id=team_id)
        store.insert(row)
    store.update(GroupTeam, row.id, standing_patch(row, scored, conceded, sign), expected_version=row.version)


def _counted_in_standings(match: Match) -> bool:
    return (
        match.status == MATCH_COMPLETED
        and match.group_id is not None
        and match.home_score is not None
        and match.away_score is not None
    )


def _apply_result(store: EntityStore, match: Match, home_score: int, away_score: int, sign: int) -> None:
    _apply_to_group_standing(store, match.group_id, match.home_team_id, home_score, away_score, sign)
    _apply_to_group_standing(store, match.group_id, match.away_team_id, away_score, home_score, sign)


def record_result(store: EntityStore, match_id: int, home_score: int, away_score: int) -> Dict:
    """
    Enter (or correct) the final score of a match.

    Raises:
        NotFound: match missing
        PreconditionFailed: negative score, or the attributed goals do not
            match the score
    """
    if home_score < 0 or away_score < 0:
        raise PreconditionFailed("Scores cannot be negative")

    match = store.get_or_404(Match, match_id, "Match")

    home_goals = store.count(Goal, Goal.match_id == match_id, Goal.team_id == match.home_team_id)
    away_goals = store.count(Goal, Goal.match_id == match_id, Goal.team_id == match.away_team_id)
    if (home_goals, away_goals) != (home_score, away_score):
        raise PreconditionFailed(
            f"Attributed goals ({home_goals}-{away_goals}) do not match the score ({home_score}-{away_score})"
        )

    rescore = match.status == MATCH_COMPLETED
    previous = (match.home_score, match.away_score) if _counted_in_standings(match) else None
    group_id = match.group_id

    standings_updated = 0
    with store.transaction():
        if previous is not None:
            _apply_result(store, match, previous[0], previous[1], sign=-1)
        store.update(
            Match,
            match_id,
            {"home_score": home_score, "away_score": away_score, "status": MATCH_COMPLETED},
            expected_version=match.version,
        )
        if group_id is not None:
            _apply_result(store, match, home_score, away_score, sign=1)
            standings_updated = 2

    if rescore:
        logger.info("Match %d re-scored %d-%d (was %s)", match_id, home_score, away_score, previous)
        processed = 0
    else:
        logger.info("Match %d completed %d-%d", match_id, home_score, away_score)
        processed = suspension_processor.process_suspensions(store, match_id, match.tournament_id)["processedPlayers"]

    return {
        "match": store.get(Match, match_id),
        "standings_updated": standings_updated,
        "processedPlayers": processed,
    }


def add_goal(store: EntityStore, match_id: int, team_id: int, player_id: int, minute: Optional[int] = None) -> Goal:
    """Attribute a goal; allowed after completion too, the score check runs at result entry."""
    match = store.get_or_404(Match, match_id, "Match")
    if not match.involves(team_id):
        raise PreconditionFailed(f"Team {team_id} did not play match {match_id}")

    goal = Goal(match_id=match_id, team_id=team_id, player_id=player_id, minute=minute)
    with store.transaction():
        store.insert(goal)
    return goal


def remove_goal(store: EntityStore, goal_id: int) -> None:
    store.get_or_404(Goal, goal_id, "Goal")
    with store.transaction():
        store.delete(Goal, Goal.id == goal_id)


def reschedule_match(
    store: EntityStore,
    match_id: int,
    match_date: Optional[datetime] = None,
    location: Optional[str] = None,
) -> Match:
    """Move a match to another date and/or location."""
    match = store.get_or_404(Match, match_id, "Match")
    patch: Dict[str, Any] = {}
    if match_date is not None:
        patch["match_date"] = match_date
    if location is not None:
        patch["location"] = location
    if patch:
        with store.transaction():
            store.update(Match, match_id, patch, expected_version=match.version)
        logger.info("Rescheduled match %d: %s", match_id, sorted(patch))
    return store.get(Match, match_id)


def delete_match(store: EntityStore, match_id: int) -> Dict[str, int]:
    """
    Delete a match after its events and goals.

    A completed group match is first taken out of both teams' standings.
    Player statistics fed by the deleted events are re-derived afterwards.
    """
    match = store.get_or_404(Match, match_id, "Match")
    tournament_id = match.tournament_id

    with store.transaction():
        if _counted_in_standings(match):
            _apply_result(store, match, match.home_score, match.away_score, sign=-1)
        events = store.delete(MatchEvent, MatchEvent.match_id == match_id)
        goals = store.delete(Goal, Goal.match_id == match_id)
        store.delete(Match, Match.id == match_id)

    if events:
        rebuild_player_statistics(store, tournament_id)

    logger.info("Deleted match %d (%d events, %d goals)", match_id, events, goals)
    return {"match_events": events, "goals": goals, "matches": 1}
