"""
Suspension Processor

Runs after a match is completed: every suspended player of the two competing
teams serves one match. A suspension is match-count based; accumulated
yellows are wiped only when an accumulation suspension (2+ yellows, no red)
completes.
"""

import logging
from typing import Dict

from app.models.match import MATCH_COMPLETED, Match
from app.models.match_event import EVENT_RED_CARD, EVENT_YELLOW_CARD, MatchEvent
from app.models.player_statistic import PlayerStatistic
from app.services.entity_store import EntityStore
from app.services.errors import NotFound, PreconditionFailed

logger = logging.getLogger(__name__)


def _carded_in_match(store: EntityStore, match_id: int):
    """(player_id, team_id) pairs booked in this match; their suspension starts after it."""
    events = store.query(
        MatchEvent,
        MatchEvent.match_id == match_id,
        MatchEvent.event_type.in_((EVENT_YELLOW_CARD, EVENT_RED_CARD)),
    )
    return {(event.player_id, event.team_id) for event in events}


def process_suspensions(store: EntityStore, match_id: int, tournament_id: int) -> Dict[str, int]:
    """
    Decrement outstanding suspensions for players of both teams of a completed match.

    Returns {"processedPlayers": n} where n is the number of statistics rows decremented.

    Raises:
        NotFound: match missing or not part of the tournament
        PreconditionFailed: match not completed yet
    """
    match = store.get(Match, match_id)
    if match is None or match.tournament_id != tournament_id:
        raise NotFound(f"Match {match_id} not found in tournament {tournament_id}")
    if match.status != MATCH_COMPLETED:
        raise PreconditionFailed(f"Match {match_id} is not completed")

    suspended = store.query(
        PlayerStatistic,
        PlayerStatistic.tournament_id == tournament_id,
        PlayerStatistic.is_suspended == True,  # noqa: E712
        PlayerStatistic.suspension_matches_remaining > 0,
        PlayerStatistic.team_id.in_((match.home_team_id, match.away_team_id)),
        order_by=(PlayerStatistic.id,),
    )
    logger.info("Processing suspensions for match %d: %d suspended players", match_id, len(suspended))

    booked_here = _carded_in_match(store, match_id)
    processed = 0
    with store.transaction():
        for stats in suspended:
            if (stats.player_id, stats.team_id) in booked_here:
                continue

            remaining = stats.suspension_matches_remaining - 1
            if remaining <= 0:
                patch = {"is_suspended": False, "suspension_matches_remaining": 0}
                if stats.yellow_cards >= 2 and stats.red_cards == 0:
                    patch["yellow_cards"] = 0
                    patch["yellow_cards_served"] = stats.yellow_cards_served + stats.yellow_cards
                    logger.info("Resetting yellow cards for player %d", stats.player_id)
            else:
                patch = {"suspension_matches_remaining": remaining}

            store.update(PlayerStatistic, stats.id, patch, expected_version=stats.version)
            processed += 1

    return {"processedPlayers": processed}


def suspended_players(store: EntityStore, tournament_id: int, team_id: int = None):
    filters = [
        PlayerStatistic.tournament_id == tournament_id,
        PlayerStatistic.is_suspended == True,  # noqa: E712
    ]
    if team_id is not None:
        filters.append(PlayerStatistic.team_id == team_id)
    return store.query(PlayerStatistic, *filters, order_by=(PlayerStatistic.team_id, PlayerStatistic.player_id))
