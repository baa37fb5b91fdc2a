"""
Fixture generation from the draw.

- group formats: every pair inside each group (round "group_stage")
- round-robin:   every pair of approved teams (round "group_stage")
- knockout:      consecutive bracket positions (1v2, 3v4, ...), round code
                 taken from the bracket size
Existing pairings are skipped, so generation can be re-run safely.

random_pairings() is the operator's quick draw: shuffled approved teams
paired off into "first_round" matches.
"""

import logging
import random
from datetime import datetime
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Set, Tuple

from app.models.match import Match
from app.models.team import PAYMENT_APPROVED, Team
from app.models.team_draw import TeamDraw
from app.models.tournament import FORMAT_KNOCKOUT, FORMAT_ROUND_ROBIN, GROUP_FORMATS, Tournament
from app.services.bracket_slotter import initial_round_code
from app.services.entity_store import EntityStore
from app.services.errors import PreconditionFailed
from app.services.group_partitioner import list_groups

logger = logging.getLogger(__name__)

ROUND_GROUP_STAGE = "group_stage"
ROUND_FIRST = "first_round"


def _existing_pairs(store: EntityStore, tournament_id: int) -> Set[Tuple[str, frozenset]]:
    return {
        (match.round, frozenset((match.home_team_id, match.away_team_id)))
        for match in store.query(Match, Match.tournament_id == tournament_id)
    }


def round_robin_pairs(team_ids: Sequence[int]) -> List[Tuple[int, int]]:
    return list(combinations(team_ids, 2))


def knockout_pairs(team_ids_by_position: Dict[int, int], slot_count: int) -> List[Tuple[int, int]]:
    """Pairs (1,2), (3,4), ... where both positions hold a team."""
    pairs = []
    for first in range(1, slot_count + 1, 2):
        home = team_ids_by_position.get(first)
        away = team_ids_by_position.get(first + 1)
        if home is not None and away is not None:
            pairs.append((home, away))
    return pairs


def generate_fixtures(store: EntityStore, tournament_id: int, location: Optional[str] = None) -> Dict[str, int]:
    tournament = store.get_or_404(Tournament, tournament_id, "Tournament")
    draws = store.query(TeamDraw, TeamDraw.tournament_id == tournament_id, order_by=(TeamDraw.id,))
    existing = _existing_pairs(store, tournament_id)
    planned: List[Dict] = []

    def _plan(pairs, round_code, group_id=None):
        for home, away in pairs:
            key = (round_code, frozenset((home, away)))
            if key in existing:
                continue
            existing.add(key)
            planned.append({"home_team_id": home, "away_team_id": away, "round": round_code, "group_id": group_id})

    if tournament.format in GROUP_FORMATS:
        for group in list_groups(store, tournament_id):
            team_ids = [draw.team_id for draw in draws if draw.group_id == group.id]
            if len(team_ids) < 2:
                continue
            _plan(round_robin_pairs(team_ids), ROUND_GROUP_STAGE, group.id)
    elif tournament.format == FORMAT_ROUND_ROBIN:
        teams = store.query(
            Team, Team.tournament_id == tournament_id, Team.payment_status == PAYMENT_APPROVED, order_by=(Team.id,)
        )
        _plan(round_robin_pairs([team.id for team in teams]), ROUND_GROUP_STAGE)
    elif tournament.format == FORMAT_KNOCKOUT:
        by_position = {draw.bracket_position: draw.team_id for draw in draws if draw.bracket_position is not None}
        slots = tournament.max_participants
        _plan(knockout_pairs(by_position, slots), initial_round_code(slots))
    else:
        raise PreconditionFailed(f"Unknown tournament format '{tournament.format}'")

    kickoff = datetime.utcnow()
    with store.transaction():
        for fixture in planned:
            store.insert(
                Match(tournament_id=tournament_id, match_date=kickoff, location=location or tournament.location, **fixture)
            )

    logger.info("Generated %d fixtures for tournament %d", len(planned), tournament_id)
    return {"matches_created": len(planned)}


def random_pairings(
    store: EntityStore,
    tournament_id: int,
    location: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> Dict:
    """
    Pair shuffled approved teams into first-round matches.

    With an odd count the last shuffled team gets a bye.

    Raises:
        PreconditionFailed: fewer than two approved teams
    """
    tournament = store.get_or_404(Tournament, tournament_id, "Tournament")
    teams = store.query(
        Team, Team.tournament_id == tournament_id, Team.payment_status == PAYMENT_APPROVED, order_by=(Team.id,)
    )
    if len(teams) < 2:
        raise PreconditionFailed("At least two approved teams are required for a random draw")

    shuffled = list(teams)
    (rng or random).shuffle(shuffled)

    kickoff = datetime.utcnow()
    with store.transaction():
        for i in range(0, len(shuffled) - 1, 2):
            store.insert(
                Match(
                    tournament_id=tournament_id,
                    home_team_id=shuffled[i].id,
                    away_team_id=shuffled[i + 1].id,
                    round=ROUND_FIRST,
                    match_date=kickoff,
                    location=location or tournament.location,
                )
            )

    created = len(shuffled) // 2
    bye_team_id = shuffled[-1].id if len(shuffled) % 2 else None
    logger.info("Random draw created %d matches for tournament %d", created, tournament_id)
    return {"matches_created": created, "bye_team_id": bye_team_id}
