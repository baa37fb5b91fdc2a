"""
Match Event Ledger

Records goals/assists/cards per player per match and keeps the running
per-tournament PlayerStatistic totals in step.

Recording is a two-step sequence with separate commits:
  1. insert/delete the MatchEvent
  2. read + upsert the PlayerStatistic for (tournament, player, team)
If step 2 fails the event stays as written and the error surfaces unchanged;
rebuild_player_statistics() re-derives the counters from the event log.

Suspension rules:
- 2nd yellow (yellow_cards >= 2) or any red -> suspended for 1 match
- removing a yellow that leaves < 2 yellows clears the suspension
- removing a red never restores or clears anything
"""

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import select

from app.models.match import Match
from app.models.match_event import (
    EVENT_ASSIST,
    EVENT_GOAL,
    EVENT_RED_CARD,
    EVENT_TYPES,
    EVENT_YELLOW_CARD,
    MatchEvent,
)
from app.models.player_statistic import PlayerStatistic
from app.models.tournament import Tournament
from app.services.entity_store import EntityStore
from app.services.errors import DrawError, PreconditionFailed

logger = logging.getLogger(__name__)

COUNTER_BY_EVENT = {
    EVENT_GOAL: "goals",
    EVENT_ASSIST: "assists",
    EVENT_YELLOW_CARD: "yellow_cards",
    EVENT_RED_CARD: "red_cards",
}

MAX_MINUTE = 150


@dataclass(frozen=True)
class StatLine:
    """Counters of one PlayerStatistic row (all zero when the row is absent)."""

    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    is_suspended: bool = False
    suspension_matches_remaining: int = 0

    @classmethod
    def of(cls, stats: Optional[PlayerStatistic]) -> "StatLine":
        if stats is None:
            return cls()
        return cls(
            goals=stats.goals,
            assists=stats.assists,
            yellow_cards=stats.yellow_cards,
            red_cards=stats.red_cards,
            is_suspended=stats.is_suspended,
            suspension_matches_remaining=stats.suspension_matches_remaining,
        )

    def apply(self, patch: Dict[str, Any]) -> "StatLine":
        return replace(self, **patch)


def event_added_patch(line: StatLine, event_type: str) -> Dict[str, Any]:
    if event_type == EVENT_GOAL:
        return {"goals": line.goals + 1}
    if event_type == EVENT_ASSIST:
        return {"assists": line.assists + 1}
    if event_type == EVENT_YELLOW_CARD:
        yellow_cards = line.yellow_cards + 1
        patch: Dict[str, Any] = {"yellow_cards": yellow_cards}
        if yellow_cards >= 2:
            patch.update(is_suspended=True, suspension_matches_remaining=1)
        return patch
    if event_type == EVENT_RED_CARD:
        return {"red_cards": line.red_cards + 1, "is_suspended": True, "suspension_matches_remaining": 1}
    raise PreconditionFailed(f"Unknown event type '{event_type}'")


def event_removed_patch(line: StatLine, event_type: str) -> Dict[str, Any]:
    if event_type == EVENT_GOAL:
        return {"goals": max(0, line.goals - 1)}
    if event_type == EVENT_ASSIST:
        return {"assists": max(0, line.assists - 1)}
    if event_type == EVENT_YELLOW_CARD:
        yellow_cards = max(0, line.yellow_cards - 1)
        patch: Dict[str, Any] = {"yellow_cards": yellow_cards}
        if yellow_cards < 2:
            patch.update(is_suspended=False, suspension_matches_remaining=0)
        return patch
    if event_type == EVENT_RED_CARD:
        return {"red_cards": max(0, line.red_cards - 1)}
    raise PreconditionFailed(f"Unknown event type '{event_type}'")


def _find_statistic(store: EntityStore, tournament_id: int, player_id: int, team_id: int) -> Optional[PlayerStatistic]:
    return store.first(
        PlayerStatistic,
        PlayerStatistic.tournament_id == tournament_id,
        PlayerStatistic.player_id == player_id,
        PlayerStatistic.team_id == team_id,
    )


def _write_statistic(
    store: EntityStore,
    stats: Optional[PlayerStatistic],
    tournament_id: int,
    player_id: int,
    team_id: int,
    patch: Dict[str, Any],
) -> None:
    if stats is None:
        store.insert(PlayerStatistic(tournament_id=tournament_id, player_id=player_id, team_id=team_id, **patch))
    else:
        store.update(PlayerStatistic, stats.id, patch, expected_version=stats.version)


def _apply_statistic_delta(
    store: EntityStore, tournament_id: int, player_id: int, team_id: int, event_type: str, added: bool
) -> None:
    stats = _find_statistic(store, tournament_id, player_id, team_id)
    if stats is None and not added:
        return

    line = StatLine.of(stats)
    patch = event_added_patch(line, event_type) if added else event_removed_patch(line, event_type)
    with store.transaction():
        _write_statistic(store, stats, tournament_id, player_id, team_id, patch)


def add_event(
    store: EntityStore,
    match_id: int,
    player_id: int,
    team_id: int,
    event_type: str,
    minute: Optional[int] = None,
) -> MatchEvent:
    """
    Record one event and fold it into the player's tournament statistics.

    Raises:
        NotFound: match missing
        PreconditionFailed: unknown event type, bad minute, team not in match
    """
    if event_type not in EVENT_TYPES:
        raise PreconditionFailed(f"Unknown event type '{event_type}'")
    if minute is not None and not 0 <= minute <= MAX_MINUTE:
        raise PreconditionFailed(f"minute must be between 0 and {MAX_MINUTE}")

    match = store.get_or_404(Match, match_id, "Match")
    if not match.involves(team_id):
        raise PreconditionFailed(f"Team {team_id} did not play match {match_id}")

    event = MatchEvent(match_id=match_id, player_id=player_id, team_id=team_id, event_type=event_type, minute=minute)
    with store.transaction():
        store.insert(event)

    try:
        _apply_statistic_delta(store, match.tournament_id, player_id, team_id, event_type, added=True)
    except DrawError:
        logger.exception(
            "Event %d recorded but statistics update failed (player %d, tournament %d)",
            event.id,
            player_id,
            match.tournament_id,
        )
        raise

    logger.info("Recorded %s for player %d in match %d", event_type, player_id, match_id)
    return event


def remove_event(store: EntityStore, event_id: int) -> Dict[str, Any]:
    """Delete one event and apply the inverse delta (floored at 0)."""
    event = store.get_or_404(MatchEvent, event_id, "Match event")
    match = store.get_or_404(Match, event.match_id, "Match")
    removed = event.model_dump()

    with store.transaction():
        store.delete(MatchEvent, MatchEvent.id == event_id)

    try:
        _apply_statistic_delta(
            store, match.tournament_id, removed["player_id"], removed["team_id"], removed["event_type"], added=False
        )
    except DrawError:
        logger.exception("Event %d removed but statistics update failed", event_id)
        raise

    logger.info("Removed %s event %d from match %d", removed["event_type"], event_id, match.id)
    return removed


def list_events(store: EntityStore, match_id: int) -> List[MatchEvent]:
    """Events of a match, by minute (unknown minutes last) then insertion."""
    store.get_or_404(Match, match_id, "Match")
    return store.query(
        MatchEvent,
        MatchEvent.match_id == match_id,
        order_by=(MatchEvent.minute.is_(None), MatchEvent.minute, MatchEvent.id),
    )


def _event_totals(store: EntityStore, tournament_id: int) -> Dict[Tuple[int, int], Dict[str, int]]:
    match_ids = select(Match.id).where(Match.tournament_id == tournament_id)
    events = store.query(MatchEvent, MatchEvent.match_id.in_(match_ids), order_by=(MatchEvent.id,))
    totals: Dict[Tuple[int, int], Dict[str, int]] = defaultdict(lambda: dict.fromkeys(EVENT_TYPES, 0))
    for event in events:
        totals[(event.player_id, event.team_id)][event.event_type] += 1
    return totals


def rebuild_player_statistics(store: EntityStore, tournament_id: int) -> Dict[str, int]:
    """
    Re-derive every PlayerStatistic of a tournament from the event log.

    For each (player, team) the difference between logged events and stored
    counters is replayed through the same add/remove rules, so a missing 2nd
    yellow or red still triggers its suspension and a surplus yellow still
    clears it. Yellows already wiped by a served accumulation suspension
    (yellow_cards_served) are not counted again.
    """
    store.get_or_404(Tournament, tournament_id, "Tournament")
    totals = _event_totals(store, tournament_id)
    existing = {
        (stats.player_id, stats.team_id): stats
        for stats in store.query(PlayerStatistic, PlayerStatistic.tournament_id == tournament_id)
    }

    repaired = 0
    replayed = 0
    with store.transaction():
        for key in sorted(set(totals) | set(existing)):
            player_id, team_id = key
            stats = existing.get(key)
            logged = totals.get(key, dict.fromkeys(EVENT_TYPES, 0))
            before = StatLine.of(stats)
            line = before

            for event_type in EVENT_TYPES:
                expected = logged[event_type]
                if event_type == EVENT_YELLOW_CARD and stats is not None:
                    expected = max(0, expected - stats.yellow_cards_served)
                diff = expected - getattr(line, COUNTER_BY_EVENT[event_type])
                for _ in range(abs(diff)):
                    patch = event_added_patch(line, event_type) if diff > 0 else event_removed_patch(line, event_type)
                    line = line.apply(patch)
                replayed += abs(diff)

            if line.is_suspended != (line.suspension_matches_remaining > 0):
                line = line.apply({"is_suspended": line.suspension_matches_remaining > 0})

            if line != before:
                _write_statistic(store, stats, tournament_id, player_id, team_id, asdict(line))
                repaired += 1

    logger.info("Rebuilt statistics for tournament %d: %d rows repaired, %d events replayed", tournament_id, repaired, replayed)
    return {"players_repaired": repaired, "events_replayed": replayed}
