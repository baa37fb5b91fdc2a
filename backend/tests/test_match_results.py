"""
Result entry: goal attribution check, group standings and follow-up suspension processing.
"""

from datetime import datetime

import pytest
from sqlmodel import Session, select

from app.models.group import GroupTeam
from app.models.match import MATCH_COMPLETED
from app.models.match_event import Goal
from app.models.player_statistic import PlayerStatistic
from app.services import group_partitioner, match_event_ledger, match_results
from app.services.entity_store import EntityStore
from app.services.errors import PreconditionFailed
from tests.factories import make_match, make_teams, make_tournament


@pytest.fixture
def group_match(session: Session, store: EntityStore):
    """Teams 1 and 3 share Group A (incremental order A, B, A, B)"""
    tournament = make_tournament(session, max_participants=8)
    group_partitioner.create_missing_groups(store, tournament.id)
    teams = make_teams(session, tournament, 4)
    groups = [group_partitioner.assign_team_to_group(store, tournament.id, t.id) for t in teams]
    home, away = teams[0], teams[2]
    match = make_match(session, tournament, home, away, group_id=groups[0].id)
    return {"tournament": tournament, "home": home, "away": away, "match": match, "teams": teams}


def _standing(session: Session, team_id: int) -> GroupTeam:
    session.expire_all()
    return session.exec(select(GroupTeam).where(GroupTeam.team_id == team_id)).one()


def test_result_updates_group_standings(session: Session, store: EntityStore, group_match):
    match, home, away = group_match["match"], group_match["home"], group_match["away"]
    match_results.add_goal(store, match.id, home.id, 9, 12)
    match_results.add_goal(store, match.id, home.id, 9, 50)
    match_results.add_goal(store, match.id, away.id, 21, 77)

    outcome = match_results.record_result(store, match.id, 2, 1)

    assert outcome["standings_updated"] == 2
    assert outcome["match"].status == MATCH_COMPLETED
    assert outcome["match"].version == 2

    winner = _standing(session, home.id)
    assert (winner.wins, winner.points, winner.goals_for, winner.goals_against, winner.goal_difference) == (
        1,
        3,
        2,
        1,
        1,
    )
    loser = _standing(session, away.id)
    assert (loser.losses, loser.points, loser.goal_difference) == (1, 0, -1)


def test_draw_gives_one_point_each(session: Session, store: EntityStore, group_match):
    match, home, away = group_match["match"], group_match["home"], group_match["away"]

    match_results.record_result(store, match.id, 0, 0)

    assert _standing(session, home.id).points == 1
    assert _standing(session, away.id).draws == 1


def test_score_must_match_attributed_goals(store: EntityStore, group_match):
    match, home = group_match["match"], group_match["home"]
    match_results.add_goal(store, match.id, home.id, 9, 12)

    with pytest.raises(PreconditionFailed, match="do not match"):
        match_results.record_result(store, match.id, 2, 0)


def test_negative_scores_rejected(store: EntityStore, group_match):
    with pytest.raises(PreconditionFailed):
        match_results.record_result(store, group_match["match"].id, -1, 0)


def test_goal_for_team_not_in_match(store: EntityStore, group_match):
    outsider = group_match["teams"][1]
    with pytest.raises(PreconditionFailed):
        match_results.add_goal(store, group_match["match"].id, outsider.id, 9)


def test_completing_a_match_serves_suspensions(session: Session, store: EntityStore, group_match):
    tournament, home, away = group_match["tournament"], group_match["home"], group_match["away"]
    earlier = make_match(session, tournament, home, away)
    match_event_ledger.add_event(store, earlier.id, 30, home.id, "red_card", 60)

    outcome = match_results.record_result(store, group_match["match"].id, 0, 0)

    assert outcome["processedPlayers"] == 1
    session.expire_all()
    stats = session.exec(select(PlayerStatistic).where(PlayerStatistic.player_id == 30)).one()
    assert stats.is_suspended is False


def test_delete_match_rebuilds_statistics(session: Session, store: EntityStore, group_match):
    match, home = group_match["match"], group_match["home"]
    match_event_ledger.add_event(store, match.id, 9, home.id, "goal", 12)

    assert match_results.delete_match(store, match.id) == {"match_events": 1, "goals": 0, "matches": 1}

    session.expire_all()
    stats = session.exec(select(PlayerStatistic).where(PlayerStatistic.player_id == 9)).one()
    assert stats.goals == 0
def test_completed_match_can_be_rescored(session: Session, store: EntityStore, group_match):
    match, home, away = group_match["match"], group_match["home"], group_match["away"]
    match_results.record_result(store, match.id, 0, 0)

    match_results.add_goal(store, match.id, home.id, 9, 70)
    outcome = match_results.record_result(store, match.id, 1, 0)

    assert outcome["match"].home_score == 1
    assert outcome["standings_updated"] == 2
    winner = _standing(session, home.id)
    assert (winner.wins, winner.draws, winner.points, winner.goals_for) == (1, 0, 3, 1)
    loser = _standing(session, away.id)
    assert (loser.losses, loser.draws, loser.points, loser.goal_difference) == (1, 0, 0, -1)


def test_rescore_does_not_serve_suspensions_again(session: Session, store: EntityStore, group_match):
    tournament, home, away = group_match["tournament"], group_match["home"], group_match["away"]
    match = group_match["match"]
    match_results.record_result(store, match.id, 0, 0)

    earlier = make_match(session, tournament, home, away)
    match_event_ledger.add_event(store, earlier.id, 30, home.id, "red_card", 60)
    outcome = match_results.record_result(store, match.id, 0, 0)

    assert outcome["processedPlayers"] == 0
    session.expire_all()
    stats = session.exec(select(PlayerStatistic).where(PlayerStatistic.player_id == 30)).one()
    assert (stats.is_suspended, stats.suspension_matches_remaining) == (True, 1)
    assert _standing(session, home.id).draws == 1


def test_goals_can_be_corrected_after_completion(store: EntityStore, group_match):
    match, home = group_match["match"], group_match["home"]
    match_results.record_result(store, match.id, 0, 0)

    goal = match_results.add_goal(store, match.id, home.id, 9, 12)
    assert goal.id is not None
    match_results.remove_goal(store, goal.id)
    assert store.count(Goal, Goal.match_id == match.id) == 0


def test_reschedule_match(store: EntityStore, group_match):
    match = group_match["match"]
    kickoff = datetime(2026, 7, 4, 18, 30)

    moved = match_results.reschedule_match(store, match.id, match_date=kickoff, location="North Field")

    assert (moved.match_date, moved.location) == (kickoff, "North Field")
    assert moved.version == 2
    assert match_results.reschedule_match(store, match.id, location="South Field").match_date == kickoff


def test_delete_completed_match_reverts_standings(session: Session, store: EntityStore, group_match):
    match, home, away = group_match["match"], group_match["home"], group_match["away"]
    match_results.add_goal(store, match.id, home.id, 9, 12)
    match_results.record_result(store, match.id, 1, 0)

    match_results.delete_match(store, match.id)

    winner = _standing(session, home.id)
    assert (winner.wins, winner.points, winner.goals_for, winner.goal_difference) == (0, 0, 0, 0)
    loser = _standing(session, away.id)
    assert (loser.losses, loser.goals_against, loser.goal_difference) == (0, 0, 0)
