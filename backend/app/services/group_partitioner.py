"""
Group Partitioner

Splits a tournament's approved teams into balanced groups.

Two assignment paths exist side by side:
- incremental: one team at a time as payments are approved, always into the
  least-populated group (first group by display order on ties)
- bulk: operator-triggered; all undrawn teams shuffled and dealt round-robin
"""

import logging
import random
import string
from typing import Dict, List, Optional, Sequence

from app.models.group import Group, GroupTeam
from app.models.team import Team
from app.models.team_draw import TeamDraw
from app.models.tournament import Tournament
from app.services.entity_store import EntityStore
from app.services.errors import PreconditionFailed

logger = logging.getLogger(__name__)


def calculate_group_count(max_participants: int) -> int:
    """
    Number of groups for a tournament capacity.

    | max_participants | groups |
    |------------------|--------|
    | <= 8             | 2      |  (4 per group)
    | <= 16            | 4      |  (4 per group)
    | <= 24            | 4      |  (6 per group)
    | <= 32            | 8      |  (4 per group)
    | otherwise        | 4      |
    """
    if max_participants <= 8:
        return 2
    if max_participants <= 16:
        return 4
    if max_participants <= 24:
        return 4
    if max_participants <= 32:
        return 8
    return 4


def group_name(index: int) -> str:
    """0 -> 'Group A', 1 -> 'Group B', ..."""
    return f"Group {string.ascii_uppercase[index]}"


def list_groups(store: EntityStore, tournament_id: int) -> List[Group]:
    return store.query(
        Group,
        Group.tournament_id == tournament_id,
        order_by=(Group.display_order, Group.id),
    )


def create_missing_groups(store: EntityStore, tournament_id: int) -> Dict[str, int]:
    """
    Create the tournament's groups once.

    Idempotent: returns groups_created=0 without touching anything when the
    tournament already has groups.
    """
    tournament = store.get_or_404(Tournament, tournament_id, "Tournament")

    existing = store.count(Group, Group.tournament_id == tournament_id)
    if existing > 0:
        logger.info("Groups already exist for tournament %d (%d)", tournament_id, existing)
        return {"groups_created": 0}

    num_groups = calculate_group_count(tournament.max_participants)
    with store.transaction():
        for i in range(num_groups):
            store.insert(Group(tournament_id=tournament_id, name=group_name(i), display_order=i + 1))

    logger.info("Created %d groups for tournament %d", num_groups, tournament_id)
    return {"groups_created": num_groups}


def group_member_counts(store: EntityStore, tournament_id: int, groups: Sequence[Group]) -> Dict[int, int]:
    """Members per group, counted from draw rows with a group assigned."""
    counts = {group.id: 0 for group in groups}
    draws = store.query(
        TeamDraw,
        TeamDraw.tournament_id == tournament_id,
        TeamDraw.group_id.is_not(None),
    )
    for draw in draws:
        counts[draw.group_id] = counts.get(draw.group_id, 0) + 1
    return counts


def pick_least_populated(groups: Sequence[Group], counts: Dict[int, int]) -> Group:
    """First group (in the given order) holding the minimum member count."""
    selected = groups[0]
    min_count = counts.get(selected.id, 0)
    for group in groups[1:]:
        count = counts.get(group.id, 0)
        if count < min_count:
            selected = group
            min_count = count
    return selected


def _write_group_draw(store: EntityStore, tournament_id: int, team_id: int, group_id: int) -> TeamDraw:
    draw = TeamDraw(tournament_id=tournament_id, team_id=team_id, group_id=group_id)
    store.insert(draw)
    if store.first(GroupTeam, GroupTeam.group_id == group_id, GroupTeam.team_id == team_id) is None:
        store.insert(GroupTeam(group_id=group_id, team_id=team_id))
    return draw


def assign_team_to_group(store: EntityStore, tournament_id: int, team_id: int) -> Group:
    """
    Incremental assignment of a single newly approved team.

    Writes one TeamDraw and one GroupTeam row.

    Raises:
        PreconditionFailed: the tournament has no groups yet
    """
    groups = list_groups(store, tournament_id)
    if not groups:
        raise PreconditionFailed("groups not configured")

    counts = group_member_counts(store, tournament_id, groups)
    group = pick_least_populated(groups, counts)

    with store.transaction():
        _write_group_draw(store, tournament_id, team_id, group.id)

    logger.info("Assigned team %d to %s (tournament %d)", team_id, group.name, tournament_id)
    return group


def populate_group_draws(
    store: EntityStore,
    tournament_id: int,
    teams: Sequence[Team],
    rng: Optional[random.Random] = None,
) -> int:
    """
    Bulk assignment: shuffle `teams` and deal shuffled team i to groups[i mod G].

    Returns the number of teams assigned.
    """
    groups = list_groups(store, tournament_id)
    if not groups:
        raise PreconditionFailed("groups not configured")

    shuffled = list(teams)
    (rng or random).shuffle(shuffled)

    with store.transaction():
        for i, team in enumerate(shuffled):
            _write_group_draw(store, tournament_id, team.id, groups[i % len(groups)].id)

    logger.info("Distributed %d teams across %d groups (tournament %d)", len(shuffled), len(groups), tournament_id)
    return len(shuffled)
