"""
Bracket Slotter

Assigns approved teams to integer bracket positions 1..max_participants for
single-elimination play, and derives the first-round labels and pairings
from the same slot count.
"""

import logging
import random
from typing import Dict, Iterable, List, Optional, Sequence

from app.models.team import Team
from app.models.team_draw import TeamDraw
from app.models.tournament import Tournament
from app.services.entity_store import EntityStore
from app.services.errors import CapacityExceeded

logger = logging.getLogger(__name__)

# (minimum slot count, round code, display name), largest first
ROUND_THRESHOLDS = (
    (16, "round_of_16", "Round of 16"),
    (8, "quarter_finals", "Quarterfinals"),
    (4, "semi_finals", "Semifinals"),
)
FINAL_ROUND = ("final", "Final")


def initial_round_code(slot_count: int) -> str:
    for threshold, code, _name in ROUND_THRESHOLDS:
        if slot_count >= threshold:
            return code
    return FINAL_ROUND[0]


def initial_round_name(slot_count: int) -> str:
    """>=16 -> Round of 16, >=8 -> Quarterfinals, >=4 -> Semifinals, else Final."""
    for threshold, _code, name in ROUND_THRESHOLDS:
        if slot_count >= threshold:
            return name
    return FINAL_ROUND[1]


def used_positions(store: EntityStore, tournament_id: int) -> List[int]:
    draws = store.query(
        TeamDraw,
        TeamDraw.tournament_id == tournament_id,
        TeamDraw.bracket_position.is_not(None),
        order_by=(TeamDraw.bracket_position,),
    )
    return [draw.bracket_position for draw in draws]


def free_positions(used: Iterable[int], max_participants: int) -> List[int]:
    taken = set(used)
    return [position for position in range(1, max_participants + 1) if position not in taken]


def next_free_position(used: Iterable[int], max_participants: int) -> int:
    """
    Smallest position in 1..max_participants not in `used`.

    Raises:
        CapacityExceeded: every position is taken
    """
    available = free_positions(used, max_participants)
    if not available:
        raise CapacityExceeded(f"Tournament is full: all {max_participants} bracket positions are taken")
    return available[0]


def assign_team_to_slot(store: EntityStore, tournament: Tournament, team_id: int) -> int:
    """Incremental assignment of one team to the lowest free position."""
    position = next_free_position(used_positions(store, tournament.id), tournament.max_participants)

    with store.transaction():
        store.insert(TeamDraw(tournament_id=tournament.id, team_id=team_id, bracket_position=position))

    logger.info("Assigned team %d to bracket position %d (tournament %d)", team_id, position, tournament.id)
    return position


def populate_bracket_draws(
    store: EntityStore,
    tournament: Tournament,
    teams: Sequence[Team],
    rng: Optional[random.Random] = None,
) -> int:
    """
    Bulk assignment: the first N free positions (1..N on an empty bracket)
    are shuffled and handed out one per team.
    """
    available = free_positions(used_positions(store, tournament.id), tournament.max_participants)
    if len(teams) > len(available):
        raise CapacityExceeded(
            f"Tournament is full: {len(teams)} teams to place but only {len(available)} bracket positions free"
        )

    positions = available[: len(teams)]
    (rng or random).shuffle(positions)

    with store.transaction():
        for team, position in zip(teams, positions):
            store.insert(TeamDraw(tournament_id=tournament.id, team_id=team.id, bracket_position=position))

    logger.info("Assigned %d teams to bracket positions (tournament %d)", len(teams), tournament.id)
    return len(teams)


def bracket_matchups(store: EntityStore, tournament_id: int) -> Dict:
    """
    First-round pairings over all max_participants slots: (1,2), (3,4), ...

    Empty slots carry team_id None so the view can show them as open.
    """
    tournament = store.get_or_404(Tournament, tournament_id, "Tournament")
    draws = store.query(
        TeamDraw,
        TeamDraw.tournament_id == tournament_id,
        TeamDraw.bracket_position.is_not(None),
    )
    team_by_position = {draw.bracket_position: draw.team_id for draw in draws}
    names = {team.id: team.name for team in store.query(Team, Team.tournament_id == tournament_id)}

    def _slot(position: Optional[int]) -> Dict:
        team_id = team_by_position.get(position) if position is not None else None
        return {"position": position, "team_id": team_id, "team_name": names.get(team_id)}

    slots = tournament.max_participants
    matchups = []
    for i, first in enumerate(range(1, slots + 1, 2)):
        second = first + 1 if first + 1 <= slots else None
        matchups.append({"matchup": i + 1, "home": _slot(first), "away": _slot(second)})

    return {
        "tournament_id": tournament_id,
        "slot_count": slots,
        "initial_round": initial_round_code(slots),
        "initial_round_name": initial_round_name(slots),
        "matchups": matchups,
    }
