"""
Registration Guards

Reusable guards for the registration-side rules:
- tournament format/capacity frozen once any draw exists
- tournament status only moves forward
- approved teams of paid tournaments cannot be deleted
"""

from typing import Optional

from fastapi import HTTPException
from sqlmodel import Session, func, select

from app.models.team import PAYMENT_APPROVED, Team
from app.models.team_draw import TeamDraw
from app.models.tournament import TOURNAMENT_STATUSES, Tournament
from app.utils.sql import scalar_int


def get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def get_team_or_404(session: Session, team_id: int, tournament_id: Optional[int] = None) -> Team:
    """
    Get a team or raise 404.

    Args:
        session: Database session
        team_id: Team ID
        tournament_id: Optional tournament ID the team must belong to

    Raises:
        HTTPException 404: Team not found or doesn't belong to tournament
    """
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")

    if tournament_id and team.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail=f"Team {team_id} does not belong to tournament {tournament_id}")

    return team


def has_draws(session: Session, tournament_id: int) -> bool:
    count = session.exec(
        select(func.count(TeamDraw.id)).where(TeamDraw.tournament_id == tournament_id)
    ).one()
    return scalar_int(count) > 0


def require_structure_editable(session: Session, tournament: Tournament, new_format: Optional[str], new_max: Optional[int]) -> None:
    """
    Require that format / max_participants only change before the first draw.

    Raises:
        HTTPException 400: a draw exists and the value would change
    """
    changes_format = new_format is not None and new_format != tournament.format
    changes_capacity = new_max is not None and new_max != tournament.max_participants
    if not (changes_format or changes_capacity):
        return

    if has_draws(session, tournament.id):
        raise HTTPException(
            status_code=400,
            detail="TOURNAMENT_STRUCTURE_LOCKED: format and max_participants cannot change once draws exist. Reset the draw first.",
        )


def require_status_transition(current: str, new: str) -> None:
    """
    Require a forward move along draft -> registration_open -> registration_closed -> in_progress -> completed.

    Raises:
        HTTPException 422: unknown status or backwards move
    """
    if new not in TOURNAMENT_STATUSES:
        raise HTTPException(status_code=422, detail=f"Invalid status: {new}")
    if TOURNAMENT_STATUSES.index(new) < TOURNAMENT_STATUSES.index(current):
        raise HTTPException(status_code=422, detail=f"Cannot move tournament status back from '{current}' to '{new}'")


def require_team_deletable(tournament: Tournament, team: Team) -> None:
    """
    Require that a team may be deleted.

    Raises:
        HTTPException 400: approved team in a paid tournament
    """
    if tournament.is_paid and team.payment_status == PAYMENT_APPROVED:
        raise HTTPException(
            status_code=400,
            detail="TEAM_PAYMENT_APPROVED: approved teams of paid tournaments cannot be deleted",
        )
