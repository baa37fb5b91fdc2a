"""
Team Registration API Routes
CRUD for tournament entrants plus payment-status updates, which feed the draw trigger.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.database import get_session
from app.models.group import GroupTeam
from app.models.team import PAYMENT_STATUSES, Team
from app.models.team_draw import TeamDraw
from app.services import draw_trigger
from app.services.entity_store import EntityStore
from app.services.errors import DrawError
from app.utils.registration_guards import get_team_or_404, get_tournament_or_404, require_team_deletable

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TeamCreateRequest(BaseModel):
    name: str
    players_count: int = 0

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()


class TeamUpdateRequest(BaseModel):
    name: Optional[str] = None
    players_count: Optional[int] = None


class PaymentStatusRequest(BaseModel):
    payment_status: str

    @field_validator("payment_status")
    @classmethod
    def validate_payment_status(cls, v):
        if v not in PAYMENT_STATUSES:
            raise ValueError(f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}")
        return v


class TeamResponse(BaseModel):
    id: int
    tournament_id: int
    name: str
    payment_status: str
    players_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentStatusResponse(BaseModel):
    team: TeamResponse
    drawn: bool
    reason: Optional[str] = None


# ============================================================================
# Team CRUD Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def get_teams(
    tournament_id: int,
    payment_status: Optional[str] = Query(None, description="Filter by payment status"),
    session: Session = Depends(get_session),
):
    """Get the teams of a tournament in registration order."""
    get_tournament_or_404(session, tournament_id)

    query = select(Team).where(Team.tournament_id == tournament_id)
    if payment_status is not None:
        query = query.where(Team.payment_status == payment_status)
    return session.exec(query.order_by(Team.created_at, Team.id)).all()


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamResponse, status_code=201)
def create_team(tournament_id: int, request: TeamCreateRequest, session: Session = Depends(get_session)):
    """
    Register a team (payment pending).

    Constraints:
    - (tournament_id, name) must be unique
    """
    get_tournament_or_404(session, tournament_id)

    team = Team(tournament_id=tournament_id, name=request.name, players_count=request.players_count)
    try:
        session.add(team)
        session.commit()
        session.refresh(team)
        return team
    except IntegrityError:
        session.rollback()
        raise HTTPException(
            status_code=409, detail=f"Team with name '{request.name}' already exists for this tournament"
        )


@router.patch("/tournaments/{tournament_id}/teams/{team_id}", response_model=TeamResponse)
def update_team(
    tournament_id: int, team_id: int, request: TeamUpdateRequest, session: Session = Depends(get_session)
):
    """Update a team's name or player count."""
    team = get_team_or_404(session, team_id, tournament_id)

    if request.name is not None:
        team.name = request.name
    if request.players_count is not None:
        team.players_count = request.players_count

    try:
        session.add(team)
        session.commit()
        session.refresh(team)
        return team
    except IntegrityError:
        session.rollback()
        raise HTTPException(
            status_code=409, detail=f"Team with name '{request.name}' already exists for this tournament"
        )


@router.delete("/tournaments/{tournament_id}/teams/{team_id}", status_code=204)
def delete_team(tournament_id: int, team_id: int, session: Session = Depends(get_session)):
    """
    Delete a team.

    Approved teams of paid tournaments (entry_fee > 0) cannot be deleted.
    The team's draw and group standing go with it.
    """
    tournament = get_tournament_or_404(session, tournament_id)
    team = get_team_or_404(session, team_id, tournament_id)
    require_team_deletable(tournament, team)

    for row in session.exec(select(TeamDraw).where(TeamDraw.team_id == team_id)).all():
        session.delete(row)
    for row in session.exec(select(GroupTeam).where(GroupTeam.team_id == team_id)).all():
        session.delete(row)
    session.delete(team)
    session.commit()
    return None


# ============================================================================
# Payment Status -> Draw Trigger
# ============================================================================


@router.patch("/teams/{team_id}/payment-status", response_model=PaymentStatusResponse)
def update_payment_status(
    team_id: int,
    request: PaymentStatusRequest,
    session: Session = Depends(get_session),
):
    """
    Change a team's payment status.

    Moving into "approved" fires the draw trigger. The status change is kept
    even when the draw fails; the failure is reported as drawn=false with a reason.
    """
    team = get_team_or_404(session, team_id)
    tournament_id = team.tournament_id
    old_status = team.payment_status

    team.payment_status = request.payment_status
    session.add(team)
    session.commit()
    session.refresh(team)

    store = EntityStore(session)
    try:
        outcome = draw_trigger.trigger_draw(store, tournament_id, team_id, request.payment_status, old_status)
    except DrawError as e:
        logger.warning("Draw failed for approved team %d: %s", team_id, e.message)
        outcome = {"drawn": False, "reason": e.message}

    session.refresh(team)
    return PaymentStatusResponse(team=TeamResponse.model_validate(team), **outcome)
