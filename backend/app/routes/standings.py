"""
Standings API Routes

Read-only views: group tables, the round-robin league table and top scorers.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from app.services import standings
from app.services.entity_store import EntityStore
from app.services.errors import DrawError
from app.utils.api import get_store, to_http_exception

router = APIRouter()


@router.get("/tournaments/{tournament_id}/standings/groups")
def get_group_standings(tournament_id: int, store: EntityStore = Depends(get_store)) -> List[Dict]:
    """
    One ranked table per group.

    Tables are padded with "TBD" placeholder rows up to the group capacity.
    """
    try:
        return standings.group_tables(store, tournament_id)
    except DrawError as e:
        raise to_http_exception(e)


@router.get("/tournaments/{tournament_id}/standings/round-robin")
def get_round_robin_standings(tournament_id: int, store: EntityStore = Depends(get_store)) -> Dict:
    try:
        return standings.round_robin_table(store, tournament_id)
    except DrawError as e:
        raise to_http_exception(e)


@router.get("/tournaments/{tournament_id}/top-scorers")
def get_top_scorers(
    tournament_id: int,
    limit: Optional[int] = Query(None, ge=1, description="Maximum number of players"),
    store: EntityStore = Depends(get_store),
) -> List[Dict]:
    try:
        return standings.top_scorers(store, tournament_id, limit)
    except DrawError as e:
        raise to_http_exception(e)
