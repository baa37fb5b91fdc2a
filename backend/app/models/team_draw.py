from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class TeamDraw(SQLModel, table=True):
    __table_args__ = (
        # At most one draw per team per tournament
        SAUniqueConstraint("tournament_id", "team_id", name="uq_draw_tournament_team"),
        # NULL positions (group and round-robin draws) do not collide
        SAUniqueConstraint("tournament_id", "bracket_position", name="uq_draw_bracket_position"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    team_id: int = Field(foreign_key="team.id")

    # group_id XOR bracket_position; neither for round-robin registration markers
    group_id: Optional[int] = Field(default=None, foreign_key="tournament_group.id")
    bracket_position: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
