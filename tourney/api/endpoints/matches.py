from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tourney.api.dependencies import get_current_user, get_db
from tourney.core.errors import match_not_found
from tourney.schemas import match_schemas
from tourney.schemas.auth_schemas import CurrentUser
from tourney.services import match_service

router = APIRouter()

@router.get("/{match_id}", response_model=match_schemas.MatchRead)
def get_match_details_endpoint(match_id: int, db: Session = Depends(get_db)):
    match = match_service.get_match(db=db, match_id=match_id)
    if not match:
        raise match_not_found(match_id)
    return match

@router.post("/{match_id}/result", response_model=match_schemas.MatchRead)
def submit_match_result_endpoint(
    match_id: int,
    result_in: match_schemas.MatchResultUpdate,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    # Final when an admin submits it; otherwise reported and awaiting confirmation
    return match_service.report_result(
        db=db, match_id=match_id, score1=result_in.score1, score2=result_in.score2, actor=current_user
    )

@router.post("/{match_id}/confirm", response_model=match_schemas.MatchRead)
def confirm_match_result_endpoint(
    match_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return match_service.confirm_result(db=db, match_id=match_id, actor=current_user)

@router.post("/{match_id}/dispute", response_model=match_schemas.MatchRead)
def dispute_match_result_endpoint(
    match_id: int,
    dispute_in: match_schemas.MatchDispute,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return match_service.dispute_result(
        db=db, match_id=match_id, reason=dispute_in.reason, evidence=dispute_in.evidence, actor=current_user
    )

@router.post("/{match_id}/start", response_model=match_schemas.MatchRead)
def start_match_endpoint(
    match_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return match_service.start_match(db=db, match_id=match_id, actor=current_user)

@router.get("/{match_id}/audit-log", response_model=List[match_schemas.AuditLogRead])
def get_match_audit_log_endpoint(
    match_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user),
):
    return match_service.get_audit_log(db=db, match_id=match_id, actor=current_user)
