from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tourney.api.dependencies import get_current_user, get_db
from tourney.core.errors import team_not_found
from tourney.models import TeamStatus
from tourney.schemas import notification_schemas, team_schemas
from tourney.schemas.auth_schemas import CurrentUser
from tourney.services import notification_service, team_service

router = APIRouter()

@router.get("/{team_id}", response_model=team_schemas.TeamRead)
def get_team_endpoint(team_id: int, db: Session = Depends(get_db)):
    team = team_service.get_team(db=db, team_id=team_id)
    if not team:
        raise team_not_found(team_id)
    return team

@router.patch("/{team_id}/approve", response_model=team_schemas.TeamAdminRead)
def approve_team_endpoint(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return team_service.set_approval(db=db, team_id=team_id, status=TeamStatus.APPROVED.value, actor=current_user)

@router.patch("/{team_id}/reject", response_model=team_schemas.TeamAdminRead)
def reject_team_endpoint(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return team_service.set_approval(db=db, team_id=team_id, status=TeamStatus.REJECTED.value, actor=current_user)

@router.patch("/{team_id}/seed", response_model=team_schemas.TeamAdminRead)
def set_team_seed_endpoint(
    team_id: int,
    seed_in: team_schemas.TeamSeedUpdate,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return team_service.set_seed(db=db, team_id=team_id, seed=seed_in.seed, actor=current_user)

# --- Notifications ---

@router.get("/{team_id}/notifications", response_model=List[notification_schemas.NotificationRead])
def get_team_notifications_endpoint(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return notification_service.get_team_notifications(db=db, team_id=team_id, actor=current_user)

@router.patch("/{team_id}/notifications/{notification_id}/read", response_model=notification_schemas.NotificationRead)
def mark_notification_as_read_endpoint(
    team_id: int,
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return notification_service.mark_notification_as_read(
        db=db, team_id=team_id, notification_id=notification_id, actor=current_user
    )
