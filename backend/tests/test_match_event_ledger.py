"""
Match event ledger: event log plus running player statistics and card suspensions.
"""

import pytest
from sqlmodel import Session, select

from app.models.match_event import MatchEvent
from app.models.player_statistic import PlayerStatistic
from app.services import match_event_ledger
from app.services.entity_store import EntityStore
from app.services.errors import NotFound, PreconditionFailed
from app.services.match_event_ledger import StatLine, event_added_patch, event_removed_patch
from tests.factories import make_match, make_teams, make_tournament

PLAYER = 7


@pytest.fixture
def fixture_match(session: Session):
    tournament = make_tournament(session)
    home, away = make_teams(session, tournament, 2)
    match = make_match(session, tournament, home, away)
    return {"tournament": tournament, "home": home, "away": away, "match": match}


def _stats(session: Session, player_id: int = PLAYER) -> PlayerStatistic:
    session.expire_all()
    return session.exec(select(PlayerStatistic).where(PlayerStatistic.player_id == player_id)).one()


def test_second_yellow_suspends():
    line = StatLine(yellow_cards=1)
    assert event_added_patch(line, "yellow_card") == {
        "yellow_cards": 2,
        "is_suspended": True,
        "suspension_matches_remaining": 1,
    }


def test_removing_red_restores_nothing():
    line = StatLine(red_cards=1, is_suspended=True, suspension_matches_remaining=1)
    assert event_removed_patch(line, "red_card") == {"red_cards": 0}


def test_removal_is_floored_at_zero():
    assert event_removed_patch(StatLine(), "goal") == {"goals": 0}


def test_goal_add_then_remove_restores_counters(session: Session, store: EntityStore, fixture_match):
    match, home = fixture_match["match"], fixture_match["home"]

    event = match_event_ledger.add_event(store, match.id, PLAYER, home.id, "goal", 23)
    assert _stats(session).goals == 1

    removed = match_event_ledger.remove_event(store, event.id)
    assert removed["event_type"] == "goal"
    stats = _stats(session)
    assert stats.goals == 0
    assert session.exec(select(MatchEvent)).all() == []


def test_removing_second_yellow_clears_suspension(session: Session, store: EntityStore, fixture_match):
    match, home = fixture_match["match"], fixture_match["home"]

    match_event_ledger.add_event(store, match.id, PLAYER, home.id, "yellow_card", 10)
    second = match_event_ledger.add_event(store, match.id, PLAYER, home.id, "yellow_card", 80)

    stats = _stats(session)
    assert stats.yellow_cards == 2
    assert stats.is_suspended is True
    assert stats.suspension_matches_remaining == 1

    match_event_ledger.remove_event(store, second.id)

    stats = _stats(session)
    assert stats.yellow_cards == 1
    assert stats.is_suspended is False
    assert stats.suspension_matches_remaining == 0


def test_red_card_suspends_and_removal_keeps_suspension(session: Session, store: EntityStore, fixture_match):
    match, away = fixture_match["match"], fixture_match["away"]

    red = match_event_ledger.add_event(store, match.id, PLAYER, away.id, "red_card", 55)
    assert _stats(session).is_suspended is True

    match_event_ledger.remove_event(store, red.id)
    stats = _stats(session)
    assert stats.red_cards == 0
    assert stats.is_suspended is True
    assert stats.suspension_matches_remaining == 1


@pytest.mark.parametrize(
    "event_type,minute",
    [("own_goal", 10), ("goal", -1), ("goal", 151)],
)
def test_add_event_validation(store: EntityStore, fixture_match, event_type, minute):
    match, home = fixture_match["match"], fixture_match["home"]
    with pytest.raises(PreconditionFailed):
        match_event_ledger.add_event(store, match.id, PLAYER, home.id, event_type, minute)


def test_add_event_for_team_not_in_match(session: Session, store: EntityStore, fixture_match):
    outsider = make_teams(session, fixture_match["tournament"], 1, start=3)[0]
    with pytest.raises(PreconditionFailed):
        match_event_ledger.add_event(store, fixture_match["match"].id, PLAYER, outsider.id, "goal", 5)


def test_remove_missing_event(store: EntityStore):
    with pytest.raises(NotFound):
        match_event_ledger.remove_event(store, 12345)


def test_events_listed_by_minute_with_unknown_last(store: EntityStore, fixture_match):
    match, home = fixture_match["match"], fixture_match["home"]
    for minute in (30, None, 5):
        match_event_ledger.add_event(store, match.id, PLAYER, home.id, "assist", minute)

    minutes = [e.minute for e in match_event_ledger.list_events(store, match.id)]
    assert minutes == [5, 30, None]


def test_rebuild_repairs_drifted_counters(session: Session, store: EntityStore, fixture_match):
    match, home = fixture_match["match"], fixture_match["home"]
    match_event_ledger.add_event(store, match.id, PLAYER, home.id, "goal", 3)
    match_event_ledger.add_event(store, match.id, PLAYER, home.id, "goal", 9)
    match_event_ledger.add_event(store, match.id, PLAYER, home.id, "yellow_card", 40)
    match_event_ledger.add_event(store, match.id, PLAYER, home.id, "yellow_card", 41)

    stats = _stats(session)
    stats.goals = 0
    stats.yellow_cards = 1
    stats.is_suspended = False
    stats.suspension_matches_remaining = 0
    session.add(stats)
    session.commit()

    result = match_event_ledger.rebuild_player_statistics(store, fixture_match["tournament"].id)

    assert result == {"players_repaired": 1, "events_replayed": 3}
    stats = _stats(session)
    assert stats.goals == 2
    assert stats.yellow_cards == 2
    assert stats.is_suspended is True
    assert stats.suspension_matches_remaining == 1


def test_rebuild_is_a_no_op_when_consistent(store: EntityStore, fixture_match):
    match, home = fixture_match["match"], fixture_match["home"]
    match_event_ledger.add_event(store, match.id, PLAYER, home.id, "goal", 3)

    result = match_event_ledger.rebuild_player_statistics(store, fixture_match["tournament"].id)
    assert result == {"players_repaired": 0, "events_replayed": 0}
