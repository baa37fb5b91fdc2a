from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.group import Group
    from app.models.match import Match
    from app.models.team import Team

FORMAT_GROUPS_KNOCKOUT = "groups-knockout"
FORMAT_GROUPS_ONLY = "groups-only"
FORMAT_KNOCKOUT = "knockout"
FORMAT_ROUND_ROBIN = "round-robin"

TOURNAMENT_FORMATS = (FORMAT_GROUPS_KNOCKOUT, FORMAT_GROUPS_ONLY, FORMAT_KNOCKOUT, FORMAT_ROUND_ROBIN)
GROUP_FORMATS = (FORMAT_GROUPS_KNOCKOUT, FORMAT_GROUPS_ONLY)

# Forward-only lifecycle
TOURNAMENT_STATUSES = ("draft", "registration_open", "registration_closed", "in_progress", "completed")


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    location: str
    sport: str = Field(default="football")
    start_date: date
    end_date: date
    entry_fee: float = Field(default=0)
    format: str  # "groups-knockout" | "groups-only" | "knockout" | "round-robin"
    max_participants: int
    status: str = Field(default="draft")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    teams: List["Team"] = Relationship(back_populates="tournament")
    groups: List["Group"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")

    @property
    def is_paid(self) -> bool:
        return (self.entry_fee or 0) > 0
