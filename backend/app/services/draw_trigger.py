"""
Draw Trigger & Reset

Entry points that turn payment approvals into draw rows:
- trigger_draw: one team, fired when payment_status moves into "approved"
- populate_draws: operator bulk draw over every approved, undrawn team
- reset_tournament: wipe draws, matches and derived statistics

Each invocation is stateless. Concurrent bulk and incremental draws for the
same tournament are not mutually excluded; the store's uniqueness on
(tournament, team) and (tournament, bracket_position) rejects a colliding
write with ConstraintViolation but cannot prevent an unbalanced outcome.
"""

import logging
import random
from typing import Dict, Optional

from sqlmodel import select

from app.models.group import Group, GroupTeam
from app.models.match import Match
from app.models.match_event import Goal, MatchEvent
from app.models.player_statistic import PlayerStatistic
from app.models.team import PAYMENT_APPROVED, Team
from app.models.team_draw import TeamDraw
from app.models.tournament import FORMAT_KNOCKOUT, FORMAT_ROUND_ROBIN, GROUP_FORMATS, Tournament
from app.services import bracket_slotter, group_partitioner
from app.services.entity_store import EntityStore
from app.services.errors import NotFound, PreconditionFailed

logger = logging.getLogger(__name__)


def is_approval_transition(new_payment_status: Optional[str], old_payment_status: Optional[str]) -> bool:
    return new_payment_status == PAYMENT_APPROVED and old_payment_status != PAYMENT_APPROVED


def trigger_draw(
    store: EntityStore,
    tournament_id: int,
    team_id: int,
    new_payment_status: Optional[str],
    old_payment_status: Optional[str],
) -> Dict:
    """
    Draw one team when its payment status transitions into "approved".

    Returns {"drawn": bool, "reason": str}. Idempotent: a team that already
    has a draw in this tournament yields drawn=False.

    Raises:
        NotFound: tournament or team missing, or team not in tournament
        PreconditionFailed: group format without groups
        CapacityExceeded: knockout bracket full
    """
    if not is_approval_transition(new_payment_status, old_payment_status):
        return {"drawn": False, "reason": "no action needed"}

    tournament = store.get_or_404(Tournament, tournament_id, "Tournament")
    team = store.get_or_404(Team, team_id, "Team")
    if team.tournament_id != tournament_id:
        raise NotFound(f"Team {team_id} does not belong to tournament {tournament_id}")

    logger.info("Team %d approved for tournament %d (format %s)", team_id, tournament_id, tournament.format)

    existing = store.first(TeamDraw, TeamDraw.tournament_id == tournament_id, TeamDraw.team_id == team_id)
    if existing is not None:
        logger.info("Draw already exists for team %d", team_id)
        return {"drawn": False, "reason": "draw already exists"}

    if tournament.format in GROUP_FORMATS:
        group = group_partitioner.assign_team_to_group(store, tournament_id, team_id)
        reason = f"assigned to {group.name}"
    elif tournament.format == FORMAT_KNOCKOUT:
        position = bracket_slotter.assign_team_to_slot(store, tournament, team_id)
        reason = f"assigned to bracket position {position}"
    elif tournament.format == FORMAT_ROUND_ROBIN:
        with store.transaction():
            store.insert(TeamDraw(tournament_id=tournament_id, team_id=team_id))
        reason = "registered for round-robin"
    else:
        raise PreconditionFailed(f"Unknown tournament format '{tournament.format}'")

    return {"drawn": True, "reason": reason}


def undrawn_approved_teams(store: EntityStore, tournament_id: int):
    teams = store.query(
        Team,
        Team.tournament_id == tournament_id,
        Team.payment_status == PAYMENT_APPROVED,
        order_by=(Team.id,),
    )
    drawn = {draw.team_id for draw in store.query(TeamDraw, TeamDraw.tournament_id == tournament_id)}
    return [team for team in teams if team.id not in drawn]


def populate_draws(store: EntityStore, tournament_id: int, rng: Optional[random.Random] = None) -> Dict[str, int]:
    """
    Bulk draw over all approved teams that have no draw yet.

    Computed from one snapshot read, then written in a single transaction.
    teams_processed counts only previously undrawn teams.
    """
    tournament = store.get_or_404(Tournament, tournament_id, "Tournament")
    teams = undrawn_approved_teams(store, tournament_id)

    if not teams:
        logger.info("No undrawn approved teams for tournament %d", tournament_id)
        return {"teams_processed": 0}

    logger.info("Populating draws for %d teams (tournament %d)", len(teams), tournament_id)

    if tournament.format in GROUP_FORMATS:
        processed = group_partitioner.populate_group_draws(store, tournament_id, teams, rng=rng)
    elif tournament.format == FORMAT_KNOCKOUT:
        processed = bracket_slotter.populate_bracket_draws(store, tournament, teams, rng=rng)
    elif tournament.format == FORMAT_ROUND_ROBIN:
        with store.transaction():
            for team in teams:
                store.insert(TeamDraw(tournament_id=tournament_id, team_id=team.id))
        processed = len(teams)
    else:
        raise PreconditionFailed(f"Unknown tournament format '{tournament.format}'")

    return {"teams_processed": processed}


def reset_tournament(store: EntityStore, tournament_id: int) -> Dict[str, int]:
    """
    Irreversible reset of everything the draw produced.

    Deletes, in dependency order and inside one transaction:
    match events -> goals -> matches -> player statistics -> group standings -> draws.
    Every step is delete-if-exists, so re-running after a partial failure converges.
    Groups themselves are kept.
    """
    store.get_or_404(Tournament, tournament_id, "Tournament")

    match_ids = select(Match.id).where(Match.tournament_id == tournament_id)
    group_ids = select(Group.id).where(Group.tournament_id == tournament_id)

    deleted: Dict[str, int] = {}
    with store.transaction():
        deleted["match_events"] = store.delete(MatchEvent, MatchEvent.match_id.in_(match_ids))
        deleted["goals"] = store.delete(Goal, Goal.match_id.in_(match_ids))
        deleted["matches"] = store.delete(Match, Match.tournament_id == tournament_id)
        deleted["player_statistics"] = store.delete(PlayerStatistic, PlayerStatistic.tournament_id == tournament_id)
        deleted["group_teams"] = store.delete(GroupTeam, GroupTeam.group_id.in_(group_ids))
        deleted["team_draws"] = store.delete(TeamDraw, TeamDraw.tournament_id == tournament_id)

    logger.info("Reset tournament %d: %s", tournament_id, deleted)
    return deleted
