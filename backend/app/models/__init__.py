from app.models.group import Group, GroupTeam
from app.models.match import Match
from app.models.match_event import Goal, MatchEvent
from app.models.player_statistic import PlayerStatistic
from app.models.team import Team
from app.models.team_draw import TeamDraw
from app.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Team",
    "Group",
    "GroupTeam",
    "TeamDraw",
    "Match",
    "MatchEvent",
    "Goal",
    "PlayerStatistic",
]
