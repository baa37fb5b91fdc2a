from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.tournament import Tournament

MATCH_SCHEDULED = "scheduled"
MATCH_COMPLETED = "completed"


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    home_team_id: int = Field(foreign_key="team.id")
    away_team_id: int = Field(foreign_key="team.id")
    group_id: Optional[int] = Field(default=None, foreign_key="tournament_group.id")
    round: str = Field(default="group_stage")  # "group_stage" | "first_round" | "round_of_16" | ...
    match_date: datetime = Field(default_factory=datetime.utcnow)
    location: Optional[str] = None
    status: str = Field(default=MATCH_SCHEDULED)  # "scheduled" | "completed"

    # Nullable until entered
    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)
