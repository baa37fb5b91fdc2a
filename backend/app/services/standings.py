"""
Standings Aggregator

Read-only derivation of league tables. Nothing here mutates the store.

Ranking: points desc -> wins desc -> goal_difference desc -> goals_for desc.
Remaining ties keep input order (sorted() is stable). Unfilled capacity is
rendered as explicit placeholder rows so operators can see open slots.
"""

from dataclasses import dataclass
from math import ceil
from typing import Dict, Iterable, List, Optional, Sequence

from app.models.group import GroupTeam
from app.models.match import MATCH_COMPLETED, Match
from app.models.player_statistic import PlayerStatistic
from app.models.team import PAYMENT_APPROVED, Team
from app.models.team_draw import TeamDraw
from app.models.tournament import Tournament
from app.services.entity_store import EntityStore
from app.services.group_partitioner import list_groups

PLACEHOLDER_NAME = "TBD"

POINTS_WIN = 3
POINTS_DRAW = 1


@dataclass
class StandingRow:
    team_id: Optional[int]
    team_name: str
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    is_placeholder: bool = False

    @property
    def played(self) -> int:
        return self.wins + self.draws + self.losses

    def record(self, scored: int, conceded: int) -> None:
        self.goals_for += scored
        self.goals_against += conceded
        self.goal_difference = self.goals_for - self.goals_against
        if scored > conceded:
            self.wins += 1
            self.points += POINTS_WIN
        elif scored == conceded:
            self.draws += 1
            self.points += POINTS_DRAW
        else:
            self.losses += 1

    def as_dict(self) -> Dict:
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "played": self.played,
            "wins": self.wins,
            "draws": self.draws,
            "losses": self.losses,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
            "is_placeholder": self.is_placeholder,
        }


def standing_sort_key(row) -> tuple:
    return (-row.points, -row.wins, -row.goal_difference, -row.goals_for)


def sort_standings(rows: Iterable) -> List:
    """Rank rows (anything exposing points/wins/goal_difference/goals_for)."""
    return sorted(rows, key=standing_sort_key)


def pad_with_placeholders(rows: List[StandingRow], capacity: int) -> List[StandingRow]:
    empty_slots = max(0, capacity - len(rows))
    return rows + [StandingRow(team_id=None, team_name=PLACEHOLDER_NAME, is_placeholder=True) for _ in range(empty_slots)]


def row_from_group_team(team: Team, group_team: Optional[GroupTeam]) -> StandingRow:
    if group_team is None:
        return StandingRow(team_id=team.id, team_name=team.name)
    return StandingRow(
        team_id=team.id,
        team_name=team.name,
        wins=group_team.wins,
        draws=group_team.draws,
        losses=group_team.losses,
        goals_for=group_team.goals_for,
        goals_against=group_team.goals_against,
        goal_difference=group_team.goal_difference,
        points=group_team.points,
    )


def ranked_table(rows: Sequence[StandingRow], capacity: int) -> List[Dict]:
    ranked = pad_with_placeholders(sort_standings(rows), capacity)
    return [dict(row.as_dict(), position=i + 1) for i, row in enumerate(ranked)]


def group_tables(store: EntityStore, tournament_id: int) -> List[Dict]:
    """
    One table per group in display order, each padded to
    ceil(max_participants / group_count) rows.
    """
    tournament = store.get_or_404(Tournament, tournament_id, "Tournament")
    groups = list_groups(store, tournament_id)
    if not groups:
        return []

    capacity = ceil(tournament.max_participants / len(groups))
    teams = {team.id: team for team in store.query(Team, Team.tournament_id == tournament_id)}
    draws = store.query(
        TeamDraw,
        TeamDraw.tournament_id == tournament_id,
        TeamDraw.group_id.is_not(None),
        order_by=(TeamDraw.id,),
    )
    group_ids = [group.id for group in groups]
    group_teams = {
        (gt.group_id, gt.team_id): gt for gt in store.query(GroupTeam, GroupTeam.group_id.in_(group_ids))
    }

    tables = []
    for group in groups:
        rows = [
            row_from_group_team(teams[draw.team_id], group_teams.get((group.id, draw.team_id)))
            for draw in draws
            if draw.group_id == group.id and draw.team_id in teams
        ]
        tables.append(
            {
                "group_id": group.id,
                "name": group.name,
                "display_order": group.display_order,
                "capacity": capacity,
                "rows": ranked_table(rows, capacity),
            }
        )
    return tables


def tally_matches(teams: Sequence[Team], matches: Iterable[Match]) -> List[StandingRow]:
    """Standing rows built from completed, scored matches between `teams`."""
    rows = {team.id: StandingRow(team_id=team.id, team_name=team.name) for team in teams}
    for match in matches:
        if match.status != MATCH_COMPLETED or match.home_score is None or match.away_score is None:
            continue
        if match.home_team_id in rows:
            rows[match.home_team_id].record(match.home_score, match.away_score)
        if match.away_team_id in rows:
            rows[match.away_team_id].record(match.away_score, match.home_score)
    return list(rows.values())


def round_robin_table(store: EntityStore, tournament_id: int) -> Dict:
    """League table over all approved teams, padded to max_participants."""
    tournament = store.get_or_404(Tournament, tournament_id, "Tournament")
    teams = store.query(
        Team,
        Team.tournament_id == tournament_id,
        Team.payment_status == PAYMENT_APPROVED,
        order_by=(Team.id,),
    )
    matches = store.query(Match, Match.tournament_id == tournament_id, Match.group_id.is_(None))
    rows = tally_matches(teams, matches)
    return {
        "tournament_id": tournament_id,
        "capacity": tournament.max_participants,
        "rows": ranked_table(rows, tournament.max_participants),
    }


def top_scorers(store: EntityStore, tournament_id: int, limit: Optional[int] = None) -> List[Dict]:
    store.get_or_404(Tournament, tournament_id, "Tournament")
    names = {team.id: team.name for team in store.query(Team, Team.tournament_id == tournament_id)}
    scorers = store.query(
        PlayerStatistic,
        PlayerStatistic.tournament_id == tournament_id,
        PlayerStatistic.goals > 0,
        order_by=(PlayerStatistic.goals.desc(), PlayerStatistic.assists.desc(), PlayerStatistic.id),
    )
    if limit is not None:
        scorers = scorers[:limit]
    return [
        {
            "rank": i + 1,
            "player_id": stats.player_id,
            "team_id": stats.team_id,
            "team_name": names.get(stats.team_id),
            "goals": stats.goals,
            "assists": stats.assists,
        }
        for i, stats in enumerate(scorers)
    ]
