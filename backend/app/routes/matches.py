"""
Match API Routes

Matches, fixture generation, result entry, goal attribution, the match event
ledger and the suspension processor.
"""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, field_validator, model_validator

from app.models.match import Match
from app.models.match_event import EVENT_TYPES, Goal
from app.models.team import Team
from app.models.tournament import Tournament
from app.services import fixtures, match_event_ledger, match_results, suspension_processor
from app.services.entity_store import EntityStore
from app.services.errors import DrawError
from app.utils.api import get_store, require_ids, to_http_exception

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class MatchCreateRequest(BaseModel):
    home_team_id: int
    away_team_id: int
    group_id: Optional[int] = None
    round: str = "group_stage"
    match_date: Optional[datetime] = None
    location: Optional[str] = None

    @model_validator(mode="after")
    def validate_teams(self):
        if self.home_team_id == self.away_team_id:
            raise ValueError("a team cannot play itself")
        return self


class MatchResponse(BaseModel):
    id: int
    tournament_id: int
    home_team_id: int
    away_team_id: int
    group_id: Optional[int] = None
    round: str
    match_date: datetime
    location: Optional[str] = None
    status: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    version: int

    class Config:
        from_attributes = True


class MatchUpdateRequest(BaseModel):
    match_date: Optional[datetime] = None
    location: Optional[str] = None

    @model_validator(mode="after")
    def validate_not_empty(self):
        if self.match_date is None and self.location is None:
            raise ValueError("match_date or location is required")
        return self


class FixtureRequest(BaseModel):
    location: Optional[str] = None


class ResultRequest(BaseModel):
    home_score: int
    away_score: int


class ResultResponse(BaseModel):
    match: MatchResponse
    standings_updated: int
    processedPlayers: int


class GoalRequest(BaseModel):
    team_id: int
    player_id: int
    minute: Optional[int] = None


class GoalResponse(BaseModel):
    id: int
    match_id: int
    team_id: int
    player_id: int
    minute: Optional[int] = None

    class Config:
        from_attributes = True


class EventRequest(BaseModel):
    player_id: int
    team_id: int
    event_type: str
    minute: Optional[int] = None

    @field_validator("event_type")
    @classmethod
    def validate_event_type(cls, v):
        if v not in EVENT_TYPES:
            raise ValueError(f"event_type must be one of {', '.join(EVENT_TYPES)}")
        return v


class EventResponse(BaseModel):
    id: int
    match_id: int
    player_id: int
    team_id: int
    event_type: str
    minute: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SuspensionRequest(BaseModel):
    match_id: Optional[int] = None
    tournament_id: Optional[int] = None


class PlayerStatisticResponse(BaseModel):
    id: int
    tournament_id: int
    player_id: int
    team_id: int
    goals: int
    assists: int
    yellow_cards: int
    red_cards: int
    is_suspended: bool
    suspension_matches_remaining: int

    class Config:
        from_attributes = True


# ============================================================================
# Matches & Fixtures
# ============================================================================


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchResponse])
def list_matches(
    tournament_id: int,
    round: Optional[str] = Query(None, description="Filter by round code"),
    store: EntityStore = Depends(get_store),
):
    try:
        store.get_or_404(Tournament, tournament_id, "Tournament")
    except DrawError as e:
        raise to_http_exception(e)

    filters = [Match.tournament_id == tournament_id]
    if round is not None:
        filters.append(Match.round == round)
    return store.query(Match, *filters, order_by=(Match.match_date, Match.id))


@router.post("/tournaments/{tournament_id}/matches", response_model=MatchResponse, status_code=201)
def create_match(tournament_id: int, request: MatchCreateRequest, store: EntityStore = Depends(get_store)):
    """Schedule a single match by hand"""
    try:
        tournament = store.get_or_404(Tournament, tournament_id, "Tournament")
        for team_id in (request.home_team_id, request.away_team_id):
            team = store.get_or_404(Team, team_id, "Team")
            if team.tournament_id != tournament_id:
                raise HTTPException(
                    status_code=400, detail=f"Team {team_id} does not belong to tournament {tournament_id}"
                )

        match = Match(
            tournament_id=tournament_id,
            home_team_id=request.home_team_id,
            away_team_id=request.away_team_id,
            group_id=request.group_id,
            round=request.round,
            match_date=request.match_date or datetime.utcnow(),
            location=request.location or tournament.location,
        )
        store.insert(match)
        return match
    except DrawError as e:
        raise to_http_exception(e)


@router.patch("/matches/{match_id}", response_model=MatchResponse)
def update_match(match_id: int, request: MatchUpdateRequest, store: EntityStore = Depends(get_store)):
    """Reschedule a match (date and/or location), completed matches included"""
    try:
        return match_results.reschedule_match(store, match_id, request.match_date, request.location)
    except DrawError as e:
        raise to_http_exception(e)


@router.delete("/matches/{match_id}")
def delete_match(match_id: int, store: EntityStore = Depends(get_store)) -> Dict[str, int]:
    """Delete a match with its events and goals; its result leaves the standings"""
    try:
        return match_results.delete_match(store, match_id)
    except DrawError as e:
        raise to_http_exception(e)


@router.post("/tournaments/{tournament_id}/fixtures/generate")
def generate_fixtures(
    tournament_id: int, request: Optional[FixtureRequest] = None, store: EntityStore = Depends(get_store)
) -> Dict[str, int]:
    """
    Create fixtures from the current draw.

    Safe to re-run: pairings that already have a match in the same round are skipped.
    """
    location = request.location if request else None
    try:
        return fixtures.generate_fixtures(store, tournament_id, location)
    except DrawError as e:
        raise to_http_exception(e)


@router.post("/tournaments/{tournament_id}/random-draw")
def random_draw(
    tournament_id: int, request: Optional[FixtureRequest] = None, store: EntityStore = Depends(get_store)
) -> Dict:
    location = request.location if request else None
    try:
        return fixtures.random_pairings(store, tournament_id, location)
    except DrawError as e:
        raise to_http_exception(e)


# ============================================================================
# Results & Goals
# ============================================================================


@router.post("/matches/{match_id}/result", response_model=ResultResponse)
def record_result(match_id: int, request: ResultRequest, store: EntityStore = Depends(get_store)):
    """
    Enter or correct the final score.

    Attributed goals must add up to the score. Completing the match updates
    group standings and serves one match of every outstanding suspension.
    A correction swaps the old result out of the standings and serves nothing.
    """
    try:
        outcome = match_results.record_result(store, match_id, request.home_score, request.away_score)
    except DrawError as e:
        raise to_http_exception(e)

    return ResultResponse(
        match=MatchResponse.model_validate(outcome["match"]),
        standings_updated=outcome["standings_updated"],
        processedPlayers=outcome["processedPlayers"],
    )


@router.get("/matches/{match_id}/goals", response_model=List[GoalResponse])
def list_goals(match_id: int, store: EntityStore = Depends(get_store)):
    try:
        store.get_or_404(Match, match_id, "Match")
    except DrawError as e:
        raise to_http_exception(e)
    return store.query(Goal, Goal.match_id == match_id, order_by=(Goal.minute, Goal.id))


@router.post("/matches/{match_id}/goals", response_model=GoalResponse, status_code=201)
def add_goal(match_id: int, request: GoalRequest, store: EntityStore = Depends(get_store)):
    try:
        return match_results.add_goal(store, match_id, request.team_id, request.player_id, request.minute)
    except DrawError as e:
        raise to_http_exception(e)


@router.delete("/goals/{goal_id}", status_code=204)
def remove_goal(goal_id: int, store: EntityStore = Depends(get_store)):
    try:
        match_results.remove_goal(store, goal_id)
    except DrawError as e:
        raise to_http_exception(e)
    return Response(status_code=204)


# ============================================================================
# Match Events & Player Statistics
# ============================================================================


@router.get("/matches/{match_id}/events", response_model=List[EventResponse])
def list_events(match_id: int, store: EntityStore = Depends(get_store)):
    try:
        return match_event_ledger.list_events(store, match_id)
    except DrawError as e:
        raise to_http_exception(e)


@router.post("/matches/{match_id}/events", response_model=EventResponse, status_code=201)
def add_event(match_id: int, request: EventRequest, store: EntityStore = Depends(get_store)):
    """
    Record a goal, assist or card.

    A second yellow or any red suspends the player for one match.
    """
    try:
        return match_event_ledger.add_event(
            store, match_id, request.player_id, request.team_id, request.event_type, request.minute
        )
    except DrawError as e:
        raise to_http_exception(e)


@router.delete("/events/{event_id}")
def remove_event(event_id: int, store: EntityStore = Depends(get_store)) -> Dict:
    """Delete an event and reverse its effect on the player's statistics"""
    try:
        removed = match_event_ledger.remove_event(store, event_id)
    except DrawError as e:
        raise to_http_exception(e)
    return {"removed": removed["id"], "event_type": removed["event_type"]}


@router.post("/tournaments/{tournament_id}/player-statistics/rebuild")
def rebuild_player_statistics(tournament_id: int, store: EntityStore = Depends(get_store)) -> Dict[str, int]:
    """Re-derive player statistics from the event log"""
    try:
        return match_event_ledger.rebuild_player_statistics(store, tournament_id)
    except DrawError as e:
        raise to_http_exception(e)


@router.post("/suspensions/process")
def process_suspensions(request: SuspensionRequest, store: EntityStore = Depends(get_store)) -> Dict[str, int]:
    """Serve one match of every outstanding suspension for both teams of a completed match"""
    require_ids(match_id=request.match_id, tournament_id=request.tournament_id)
    try:
        return suspension_processor.process_suspensions(store, request.match_id, request.tournament_id)
    except DrawError as e:
        raise to_http_exception(e)


@router.get("/tournaments/{tournament_id}/suspensions", response_model=List[PlayerStatisticResponse])
def get_suspended_players(
    tournament_id: int,
    team_id: Optional[int] = Query(None, description="Only players of this team"),
    store: EntityStore = Depends(get_store),
):
    try:
        store.get_or_404(Tournament, tournament_id, "Tournament")
    except DrawError as e:
        raise to_http_exception(e)
    return suspension_processor.suspended_players(store, tournament_id, team_id)
