from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.tournament import Tournament


class Group(SQLModel, table=True):
    __tablename__ = "tournament_group"
    __table_args__ = (SAUniqueConstraint("tournament_id", "display_order", name="uq_tournament_group_order"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str  # "Group A", "Group B", ...
    display_order: int  # 1-based; also the tie-break for incremental assignment
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationship
    tournament: "Tournament" = Relationship(back_populates="groups")


class GroupTeam(SQLModel, table=True):
    """Group standing row: one per (group, team)."""

    __table_args__ = (SAUniqueConstraint("group_id", "team_id", name="uq_group_team"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="tournament_group.id", index=True)
    team_id: int = Field(foreign_key="team.id")
    wins: int = Field(default=0)
    draws: int = Field(default=0)
    losses: int = Field(default=0)
    goals_for: int = Field(default=0)
    goals_against: int = Field(default=0)
    goal_difference: int = Field(default=0)
    points: int = Field(default=0)
    version: int = Field(default=1)  # optimistic concurrency token
    created_at: datetime = Field(default_factory=datetime.utcnow)
