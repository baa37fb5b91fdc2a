from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

EVENT_GOAL = "goal"
EVENT_ASSIST = "assist"
EVENT_YELLOW_CARD = "yellow_card"
EVENT_RED_CARD = "red_card"

EVENT_TYPES = (EVENT_GOAL, EVENT_ASSIST, EVENT_YELLOW_CARD, EVENT_RED_CARD)


class MatchEvent(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    player_id: int  # external player identity
    team_id: int = Field(foreign_key="team.id")
    event_type: str  # "goal" | "assist" | "yellow_card" | "red_card"
    minute: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Goal(SQLModel, table=True):
    """Per-goal attribution checked against the final score."""

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    team_id: int = Field(foreign_key="team.id")
    player_id: int
    minute: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
