from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class PlayerStatistic(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "player_id", "team_id", name="uq_player_statistic"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    player_id: int
    team_id: int = Field(foreign_key="team.id")
    goals: int = Field(default=0)
    assists: int = Field(default=0)
    yellow_cards: int = Field(default=0)
    red_cards: int = Field(default=0)

    # is_suspended must be true iff suspension_matches_remaining > 0
    is_suspended: bool = Field(default=False)
    suspension_matches_remaining: int = Field(default=0)

    # Yellows wiped when an accumulation suspension was served
    yellow_cards_served: int = Field(default=0)

    version: int = Field(default=1)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
