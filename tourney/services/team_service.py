import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from tourney.core.clock import utcnow
from tourney.core.errors import InvalidStateError, ValidationError, team_not_found, tournament_not_found
from tourney.core.locks import tournament_scope
from tourney.models import Team, TeamStatus, Tournament, TournamentPhase, normalize_name
from tourney.schemas import team_schemas
from tourney.schemas.auth_schemas import CurrentUser
from tourney.services import auth_service, checkin_service, lifecycle, notification_service

logger = logging.getLogger(__name__)

# Teams that hold a place in the tournament
ACTIVE_STATUSES = (TeamStatus.PENDING.value, TeamStatus.APPROVED.value)


def _get_tournament(db: Session, tournament_id: int) -> Tournament:
    tournament = db.query(Tournament).filter(Tournament.id == tournament_id).first()
    if not tournament:
        raise tournament_not_found(tournament_id)
    return tournament


def get_team(db: Session, team_id: int) -> Optional[Team]:
    return db.query(Team).filter(Team.id == team_id).first()


def list_teams(db: Session, tournament_id: int, status: Optional[str] = None, search: Optional[str] = None) -> List[Team]:
    _get_tournament(db, tournament_id)

    query = db.query(Team).filter(Team.tournament_id == tournament_id)
    if status:
        query = query.filter(Team.status == TeamStatus(status).value)
    term = normalize_name(search)
    if term:
        query = query.filter(or_(
            Team.name_key.contains(term, autoescape=True),
            Team.captain_key.contains(term, autoescape=True),
        ))
    return query.order_by(Team.id).all()


def register(db: Session, tournament_id: int, team_in: team_schemas.TeamCreate,
             actor: Optional[CurrentUser] = None, now: Optional[datetime] = None) -> Team:
    now = now or utcnow()

    with tournament_scope(db, tournament_id):
        tournament = _get_tournament(db, tournament_id)
        lifecycle.sync_phase(tournament, now)

        if not lifecycle.is_registration_open(tournament, now):
            raise InvalidStateError("Registration is closed", "RegistrationClosed")

        active_count = db.query(Team).filter(
            Team.tournament_id == tournament_id,
            Team.status.in_(ACTIVE_STATUSES),
        ).count()
        if active_count >= tournament.max_teams:
            raise ValidationError(
                f"Tournament is full ({tournament.max_teams} teams)", "CapacityExceeded"
            )

        duplicate = db.query(Team).filter(
            Team.tournament_id == tournament_id,
            Team.name_key == normalize_name(team_in.name),
        ).first()
        if duplicate:
            raise ValidationError("Team name already taken", "DuplicateTeam")

        team = Team(
            tournament_id=tournament_id,
            status=TeamStatus.PENDING.value,
            is_checked_in=False,
            registered_at=now,
            captain_user_id=actor.id if actor else None,
            **team_in.model_dump(),
        )
        db.add(team)
        db.flush()
        logger.info(f"Tournament {tournament_id}: team {team.id} ({team.name}) registered")

    return team


def set_approval(db: Session, team_id: int, status: str, actor: Optional[CurrentUser]) -> Team:
    """
    Moves a team between approval states.

    pending -> approved | rejected, and approved -> rejected to revoke a place.
    Rejected is terminal. Setting the current status again is a no-op.
    Approval hands the team its check-in code.
    """
    auth_service.require_admin(actor, "change team approval")
    try:
        target = TeamStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown team status {status!r}", "InvalidTransition")

    team = get_team(db, team_id)
    if not team:
        raise team_not_found(team_id)

    with tournament_scope(db, team.tournament_id):
        team = get_team(db, team_id)
        if not team:
            raise team_not_found(team_id)

        current = TeamStatus(team.status)
        if current == target:
            return team

        if lifecycle.has_reached(team.tournament, TournamentPhase.BRACKET_GENERATED):
            raise InvalidStateError(
                "Team approval cannot change once the bracket exists", "InvalidPhase"
            )
        if current == TeamStatus.REJECTED or target == TeamStatus.PENDING:
            raise InvalidStateError(
                f"Team cannot move from {current.value} to {target.value}", "InvalidTransition"
            )

        team.status = target.value
        if target == TeamStatus.APPROVED:
            checkin_service.generate_code(db, team)
            notification_service.send_check_in_code(db, team, team.tournament)
        else:
            team.is_checked_in = False
            team.checked_in_at = None
            notification_service.send_rejection(db, team, team.tournament)
        logger.info(f"Team {team.id} ({team.name}): {current.value} -> {target.value}")

    return team


def set_seed(db: Session, team_id: int, seed: Optional[int], actor: Optional[CurrentUser]) -> Team:
    auth_service.require_admin(actor, "seed teams")
    if seed is not None and (isinstance(seed, bool) or seed < 1):
        raise ValidationError("Seed must be a positive integer", "InvalidSeed")

    team = get_team(db, team_id)
    if not team:
        raise team_not_found(team_id)

    with tournament_scope(db, team.tournament_id):
        team = get_team(db, team_id)
        if not team:
            raise team_not_found(team_id)
        if lifecycle.has_reached(team.tournament, TournamentPhase.BRACKET_GENERATED):
            raise InvalidStateError("Seeds cannot change once the bracket exists", "InvalidPhase")

        if seed is not None:
            taken = db.query(Team).filter(
                Team.tournament_id == team.tournament_id,
                Team.seed == seed,
                Team.id != team.id,
            ).first()
            if taken:
                raise ValidationError(f"Seed {seed} is already held by {taken.name}", "InvalidSeed")

        team.seed = seed

    return team
