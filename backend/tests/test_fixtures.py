"""
Fixture generation from the draw and the operator's random pairing.
"""

import random

import pytest
from sqlmodel import Session, select

from app.models.match import Match
from app.services import draw_trigger, fixtures, group_partitioner
from app.services.entity_store import EntityStore
from app.services.errors import PreconditionFailed
from tests.factories import approve, make_teams, make_tournament


def _matches(session: Session, tournament_id: int):
    return session.exec(select(Match).where(Match.tournament_id == tournament_id)).all()


def test_group_fixtures_pair_every_team_in_each_group(session: Session, store: EntityStore):
    tournament = make_tournament(session, max_participants=8)
    group_partitioner.create_missing_groups(store, tournament.id)
    for team in make_teams(session, tournament, 8):
        approve(session, team)
    draw_trigger.populate_draws(store, tournament.id, rng=random.Random(11))

    assert fixtures.generate_fixtures(store, tournament.id) == {"matches_created": 12}
    assert fixtures.generate_fixtures(store, tournament.id) == {"matches_created": 0}

    matches = _matches(session, tournament.id)
    assert all(m.group_id is not None and m.round == "group_stage" for m in matches)
    assert all(m.location == "City Park" for m in matches)


def test_round_robin_fixtures(session: Session, store: EntityStore):
    tournament = make_tournament(session, format="round-robin", max_participants=6)
    for team in make_teams(session, tournament, 4):
        approve(session, team)

    assert fixtures.generate_fixtures(store, tournament.id, location="Arena") == {"matches_created": 6}
    matches = _matches(session, tournament.id)
    assert all(m.group_id is None and m.location == "Arena" for m in matches)


def test_knockout_fixtures_pair_consecutive_positions(session: Session, store: EntityStore):
    tournament = make_tournament(session, format="knockout", max_participants=8)
    teams = make_teams(session, tournament, 5)
    for team in teams:
        draw_trigger.trigger_draw(store, tournament.id, team.id, "approved", "pending")

    assert fixtures.generate_fixtures(store, tournament.id) == {"matches_created": 2}

    matches = sorted(_matches(session, tournament.id), key=lambda m: m.id)
    assert [(m.home_team_id, m.away_team_id) for m in matches] == [(teams[0].id, teams[1].id), (teams[2].id, teams[3].id)]
    assert all(m.round == "quarter_finals" for m in matches)


def test_knockout_pairs_skip_half_empty_slots():
    assert fixtures.knockout_pairs({1: 10, 2: 20, 3: 30}, 4) == [(10, 20)]


def test_random_pairings_with_bye(session: Session, store: EntityStore):
    tournament = make_tournament(session, format="knockout", max_participants=8)
    teams = [approve(session, t) for t in make_teams(session, tournament, 5)]

    result = fixtures.random_pairings(store, tournament.id, rng=random.Random(4))

    assert result["matches_created"] == 2
    matches = _matches(session, tournament.id)
    paired = {m.home_team_id for m in matches} | {m.away_team_id for m in matches}
    assert paired | {result["bye_team_id"]} == {t.id for t in teams}
    assert all(m.round == "first_round" for m in matches)


def test_random_pairings_need_two_teams(session: Session, store: EntityStore):
    tournament = make_tournament(session, format="knockout", max_participants=8)
    approve(session, make_teams(session, tournament, 1)[0])

    with pytest.raises(PreconditionFailed):
        fixtures.random_pairings(store, tournament.id)
