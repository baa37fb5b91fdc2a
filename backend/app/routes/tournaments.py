from datetime import date, datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session, select

from app.database import get_session
from app.models.group import Group
from app.models.team import Team
from app.models.tournament import TOURNAMENT_FORMATS, Tournament
from app.services import draw_trigger
from app.services.entity_store import EntityStore
from app.services.errors import DrawError
from app.utils.api import get_store, to_http_exception
from app.utils.registration_guards import (
    get_tournament_or_404,
    require_status_transition,
    require_structure_editable,
)

router = APIRouter()


def _validate_format(v):
    if v is not None and v not in TOURNAMENT_FORMATS:
        raise ValueError(f"format must be one of {', '.join(TOURNAMENT_FORMATS)}")
    return v


class TournamentCreate(BaseModel):
    name: str
    location: str
    sport: str = "football"
    start_date: date
    end_date: date
    entry_fee: float = 0
    format: str
    max_participants: int

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        return _validate_format(v)

    @field_validator("max_participants")
    @classmethod
    def validate_max_participants(cls, v):
        if v < 2:
            raise ValueError("max_participants must be >= 2")
        return v

    @field_validator("entry_fee")
    @classmethod
    def validate_entry_fee(cls, v):
        if v < 0:
            raise ValueError("entry_fee must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    sport: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    entry_fee: Optional[float] = None
    format: Optional[str] = None
    max_participants: Optional[int] = None
    status: Optional[str] = None

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        return _validate_format(v)

    @field_validator("max_participants")
    @classmethod
    def validate_max_participants(cls, v):
        if v is not None and v < 2:
            raise ValueError("max_participants must be >= 2")
        return v

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentResponse(BaseModel):
    id: int
    name: str
    location: str
    sport: str
    start_date: date
    end_date: date
    entry_fee: float
    format: str
    max_participants: int
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    """Create a new tournament (starts in draft)"""
    tournament = Tournament(**tournament_data.model_dump())
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return get_tournament_or_404(session, tournament_id)


@router.put("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(tournament_id: int, tournament_data: TournamentUpdate, session: Session = Depends(get_session)):
    """
    Update a tournament.

    Rules:
    - format and max_participants are frozen once any draw exists
    - status only moves forward
    """
    tournament = get_tournament_or_404(session, tournament_id)
    update_data = tournament_data.model_dump(exclude_unset=True)

    require_structure_editable(session, tournament, update_data.get("format"), update_data.get("max_participants"))
    if update_data.get("status") is not None:
        require_status_transition(tournament.status, update_data["status"])

    new_start = update_data.get("start_date", tournament.start_date)
    new_end = update_data.get("end_date", tournament.end_date)
    if new_end < new_start:
        raise HTTPException(status_code=422, detail="end_date must be >= start_date")

    for field, value in update_data.items():
        if value is not None:
            setattr(tournament, field, value)

    tournament.updated_at = datetime.utcnow()
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.post("/tournaments/{tournament_id}/reset")
def reset_tournament(tournament_id: int, store: EntityStore = Depends(get_store)) -> Dict[str, int]:
    """
    Irreversible: delete match events, goals, matches, player statistics,
    group standings and draws of the tournament. Safe to re-run.
    """
    try:
        return draw_trigger.reset_tournament(store, tournament_id)
    except DrawError as e:
        raise to_http_exception(e)


@router.delete("/tournaments/{tournament_id}", status_code=204)
def delete_tournament(tournament_id: int, store: EntityStore = Depends(get_store)):
    """Delete a tournament and everything under it"""
    try:
        with store.transaction():
            draw_trigger.reset_tournament(store, tournament_id)
            store.delete(Group, Group.tournament_id == tournament_id)
            store.delete(Team, Team.tournament_id == tournament_id)
            store.delete(Tournament, Tournament.id == tournament_id)
    except DrawError as e:
        raise to_http_exception(e)
    return Response(status_code=204)
