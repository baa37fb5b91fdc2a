# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from app.models.group import Group, GroupTeam  # noqa: F401
from app.models.match import Match  # noqa: F401
from app.models.match_event import Goal, MatchEvent  # noqa: F401
from app.models.player_statistic import PlayerStatistic  # noqa: F401
from app.models.team import Team  # noqa: F401
from app.models.team_draw import TeamDraw  # noqa: F401
from app.models.tournament import Tournament  # noqa: F401
