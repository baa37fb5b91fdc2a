"""
Draw API Routes

Operator and webhook entry points of the structuring engine:
- POST /draws/trigger           payment approval of one team
- POST /draws/populate          bulk draw of every approved, undrawn team
- POST /groups/create-missing   create the tournament's groups once
plus read views of groups, draws and the knockout bracket.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.models.team_draw import TeamDraw
from app.models.tournament import Tournament
from app.services import bracket_slotter, draw_trigger, group_partitioner
from app.services.entity_store import EntityStore
from app.services.errors import DrawError
from app.utils.api import get_store, require_ids, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TriggerDrawRequest(BaseModel):
    tournament_id: Optional[int] = None
    team_id: Optional[int] = None
    new_payment_status: Optional[str] = None
    old_payment_status: Optional[str] = None


class TournamentRef(BaseModel):
    tournament_id: Optional[int] = None


class TriggerDrawResponse(BaseModel):
    drawn: bool
    reason: str


class GroupResponse(BaseModel):
    id: int
    tournament_id: int
    name: str
    display_order: int
    team_ids: List[int] = []


class DrawResponse(BaseModel):
    id: int
    tournament_id: int
    team_id: int
    group_id: Optional[int] = None
    bracket_position: Optional[int] = None

    class Config:
        from_attributes = True


# ============================================================================
# Draw Endpoints
# ============================================================================


@router.post("/draws/trigger", response_model=TriggerDrawResponse)
def trigger_draw(request: TriggerDrawRequest, store: EntityStore = Depends(get_store)):
    """
    Draw one team after a payment status change.

    Only a transition into "approved" draws; anything else answers
    drawn=false / "no action needed". Re-sending the same approval is harmless.
    """
    require_ids(tournament_id=request.tournament_id, team_id=request.team_id)
    try:
        return draw_trigger.trigger_draw(
            store,
            request.tournament_id,
            request.team_id,
            request.new_payment_status,
            request.old_payment_status,
        )
    except DrawError as e:
        logger.warning("Draw trigger failed for team %s: %s", request.team_id, e.message)
        raise to_http_exception(e)


@router.post("/draws/populate")
def populate_draws(request: TournamentRef, store: EntityStore = Depends(get_store)) -> Dict[str, int]:
    """Bulk draw; teams_processed counts only teams that had no draw before."""
    require_ids(tournament_id=request.tournament_id)
    try:
        return draw_trigger.populate_draws(store, request.tournament_id)
    except DrawError as e:
        raise to_http_exception(e)


@router.post("/groups/create-missing")
def create_missing_groups(request: TournamentRef, store: EntityStore = Depends(get_store)) -> Dict[str, int]:
    """Create groups sized from max_participants; no-op when groups already exist."""
    require_ids(tournament_id=request.tournament_id)
    try:
        return group_partitioner.create_missing_groups(store, request.tournament_id)
    except DrawError as e:
        raise to_http_exception(e)


# ============================================================================
# Read Views
# ============================================================================


@router.get("/tournaments/{tournament_id}/groups", response_model=List[GroupResponse])
def get_groups(tournament_id: int, store: EntityStore = Depends(get_store)):
    """Groups in display order with the ids of their drawn teams"""
    try:
        store.get_or_404(Tournament, tournament_id, "Tournament")
    except DrawError as e:
        raise to_http_exception(e)
    groups = group_partitioner.list_groups(store, tournament_id)
    draws = store.query(
        TeamDraw,
        TeamDraw.tournament_id == tournament_id,
        TeamDraw.group_id.is_not(None),
        order_by=(TeamDraw.id,),
    )
    return [
        GroupResponse(
            id=group.id,
            tournament_id=group.tournament_id,
            name=group.name,
            display_order=group.display_order,
            team_ids=[draw.team_id for draw in draws if draw.group_id == group.id],
        )
        for group in groups
    ]


@router.get("/tournaments/{tournament_id}/draws", response_model=List[DrawResponse])
def get_draws(tournament_id: int, store: EntityStore = Depends(get_store)):
    try:
        store.get_or_404(Tournament, tournament_id, "Tournament")
        return store.query(TeamDraw, TeamDraw.tournament_id == tournament_id, order_by=(TeamDraw.id,))
    except DrawError as e:
        raise to_http_exception(e)


@router.get("/tournaments/{tournament_id}/bracket")
def get_bracket(tournament_id: int, store: EntityStore = Depends(get_store)) -> Dict:
    """First-round matchups over every bracket slot; open slots have team_id null"""
    try:
        return bracket_slotter.bracket_matchups(store, tournament_id)
    except DrawError as e:
        raise to_http_exception(e)
