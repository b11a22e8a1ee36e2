from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tourney.api.dependencies import get_current_user, get_db
from tourney.core.errors import tournament_not_found
from tourney.models import TeamStatus
from tourney.schemas import match_schemas, team_schemas, tournament_schemas
from tourney.schemas.auth_schemas import CurrentUser
from tourney.services import (
    bracket_service, checkin_service, match_service, team_service, tournament_service,
)

# Handlers are plain functions so FastAPI runs them in its threadpool;
# tournament locks must never block the event loop.
router = APIRouter()

@router.get("/", response_model=List[tournament_schemas.TournamentRead])
def list_tournaments_endpoint(db: Session = Depends(get_db)):
    return [tournament_service.to_read(t) for t in tournament_service.list_tournaments(db)]

@router.get("/active", response_model=Optional[tournament_schemas.TournamentRead])
def get_active_tournament_endpoint(db: Session = Depends(get_db)):
    tournament = tournament_service.get_active_tournament(db)
    return tournament_service.to_read(tournament) if tournament else None

@router.post("/", response_model=tournament_schemas.TournamentRead, status_code=status.HTTP_201_CREATED)
def create_tournament_endpoint(
    tournament_in: tournament_schemas.TournamentCreate,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    tournament = tournament_service.create_tournament(db=db, tournament_in=tournament_in, actor=current_user)
    return tournament_service.to_read(tournament)

@router.get("/{tournament_id}", response_model=tournament_schemas.TournamentRead)
def get_tournament_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    tournament = tournament_service.get_tournament(db=db, tournament_id=tournament_id)
    if not tournament:
        raise tournament_not_found(tournament_id)
    return tournament_service.to_read(tournament)

@router.patch("/{tournament_id}", response_model=tournament_schemas.TournamentRead)
def update_tournament_endpoint(
    tournament_id: int,
    tournament_in: tournament_schemas.TournamentUpdate,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    tournament = tournament_service.update_tournament(
        db=db, tournament_id=tournament_id, tournament_update=tournament_in, actor=current_user
    )
    return tournament_service.to_read(tournament)

@router.delete("/{tournament_id}")
def delete_tournament_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    tournament_service.delete_tournament(db=db, tournament_id=tournament_id, actor=current_user)
    return {"message": "Tournament deleted successfully"}

@router.post("/{tournament_id}/open-registration", response_model=tournament_schemas.TournamentRead)
def open_registration_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    tournament = tournament_service.open_registration(db=db, tournament_id=tournament_id, actor=current_user)
    return tournament_service.to_read(tournament)

@router.post("/{tournament_id}/close-registration", response_model=tournament_schemas.TournamentRead)
def close_registration_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    tournament = tournament_service.close_registration(db=db, tournament_id=tournament_id, actor=current_user)
    return tournament_service.to_read(tournament)

# --- Teams ---

@router.get("/{tournament_id}/teams", response_model=List[team_schemas.TeamRead])
def list_teams_endpoint(
    tournament_id: int,
    status: Optional[TeamStatus] = Query(None, description="Only teams with this approval status"),
    search: Optional[str] = Query(None, description="Case-insensitive match on team or captain name"),
    db: Session = Depends(get_db),
):
    return team_service.list_teams(db=db, tournament_id=tournament_id, status=status, search=search)

@router.post("/{tournament_id}/register", response_model=team_schemas.TeamRegistered, status_code=status.HTTP_201_CREATED)
def register_team_endpoint(
    tournament_id: int,
    team_in: team_schemas.TeamCreate,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    team = team_service.register(db=db, tournament_id=tournament_id, team_in=team_in, actor=current_user)
    return team_schemas.TeamRegistered(
        id=team.id,
        name=team.name,
        status=team.status,
        message="Team registered successfully! Once approved, your check-in code appears in the team's notifications.",
    )

@router.post("/{tournament_id}/check-in", response_model=team_schemas.CheckInResult)
def check_in_endpoint(
    tournament_id: int,
    check_in: team_schemas.CheckInRequest,
    db: Session = Depends(get_db),
):
    team = checkin_service.check_in(db=db, tournament_id=tournament_id, code=check_in.code)
    return team_schemas.CheckInResult(
        team_id=team.id,
        team_name=team.name,
        checked_in_at=team.checked_in_at,
        message="Check-in successful! Your team is ready.",
    )

# --- Bracket ---

@router.post("/{tournament_id}/generate-bracket", response_model=List[match_schemas.MatchRead], status_code=status.HTTP_201_CREATED)
def generate_bracket_endpoint(
    tournament_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return tournament_service.generate_bracket(db=db, tournament_id=tournament_id, actor=current_user)

@router.get("/{tournament_id}/matches", response_model=List[match_schemas.MatchRead])
def get_tournament_matches_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return match_service.get_matches(db=db, tournament_id=tournament_id)

@router.get("/{tournament_id}/bracket", response_model=match_schemas.BracketRead)
def get_bracket_endpoint(tournament_id: int, db: Session = Depends(get_db)):
    return bracket_service.get_bracket(db=db, tournament_id=tournament_id)
