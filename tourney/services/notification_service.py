"""
Team inbox.

Messages a team needs to act on (its check-in code, a rejection, the bracket
going live) are stored against the team. The team's captain reads them from
``GET /teams/{id}/notifications`` once signed in with the identity used at
registration or the team's Discord id.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from tourney.core.clock import utcnow
from tourney.core.errors import NotFoundError, PermissionDeniedError, team_not_found
from tourney.models import Notification, NotificationKind, Team, Tournament
from tourney.schemas.auth_schemas import CurrentUser
from tourney.services import auth_service

logger = logging.getLogger(__name__)


def notify_team(db: Session, team: Team, kind: NotificationKind, subject: str, message: str,
                now: Optional[datetime] = None) -> Notification:
    """Queues a message for ``team``. Runs inside the caller's tournament scope."""
    notification = Notification(
        tournament_id=team.tournament_id,
        team_id=team.id,
        kind=kind.value,
        recipient=team.email,
        subject=subject,
        message=message,
        created_at=now or utcnow(),
    )
    db.add(notification)
    logger.info(f"Team {team.id} ({team.name}): queued {kind.value} notification")
    return notification


def send_check_in_code(db: Session, team: Team, tournament: Tournament) -> Notification:
    return notify_team(
        db, team, NotificationKind.CHECK_IN_CODE,
        subject=f"Your check-in code for {tournament.name}",
        message=(
            f"{team.name} is approved for {tournament.name}. "
            f"Your check-in code is {team.check_in_code}. "
            f"Check in during the hour before the tournament starts."
        ),
    )


def send_rejection(db: Session, team: Team, tournament: Tournament) -> Notification:
    return notify_team(
        db, team, NotificationKind.TEAM_REJECTED,
        subject=f"Registration update for {tournament.name}",
        message=f"{team.name} does not have a place in {tournament.name}.",
    )


def send_bracket_generated(db: Session, team: Team, tournament: Tournament) -> Notification:
    return notify_team(
        db, team, NotificationKind.BRACKET_GENERATED,
        subject=f"{tournament.name} bracket is live",
        message=f"The bracket for {tournament.name} is out. Check your first match.",
    )


def _team_for_reader(db: Session, team_id: int, actor: Optional[CurrentUser]) -> Team:
    actor = auth_service.require_user(actor)
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise team_not_found(team_id)
    if not actor.is_admin and not team.is_member(actor.id):
        raise PermissionDeniedError("Only the team's captain can read its notifications", "NotTeamMember")
    return team


def get_team_notifications(db: Session, team_id: int, actor: Optional[CurrentUser]) -> List[Notification]:
    team = _team_for_reader(db, team_id, actor)
    return db.query(Notification)\
        .filter(Notification.team_id == team.id)\
        .order_by(Notification.created_at.desc(), Notification.id.desc())\
        .all()


def mark_notification_as_read(db: Session, team_id: int, notification_id: int,
                              actor: Optional[CurrentUser], now: Optional[datetime] = None) -> Notification:
    team = _team_for_reader(db, team_id, actor)
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.team_id == team.id,
    ).first()
    if not notification:
        raise NotFoundError(f"Notification {notification_id} not found", "NotificationNotFound")

    if notification.read_at is None: # Avoid a write if already read
        notification.read_at = now or utcnow()
        db.commit()
        db.refresh(notification)
    return notification
