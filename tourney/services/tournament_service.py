"""
Tournament lifecycle controller.

Owns the phase transitions that need an organiser (opening and closing
registration, generating the bracket) and builds the read views clients
poll, with the clock-derived flags filled in.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from tourney.core.clock import utcnow
from tourney.core.errors import InvalidStateError, ValidationError, tournament_not_found
from tourney.core.locks import tournament_scope
from tourney.models import Match, Team, TeamStatus, Tournament, TournamentPhase
from tourney.schemas import tournament_schemas
from tourney.schemas.auth_schemas import CurrentUser
from tourney.services import auth_service, bracket_service, lifecycle, notification_service

logger = logging.getLogger(__name__)

# Fields an organiser may still edit once registration has opened
OPEN_EDITABLE_FIELDS = {"name", "prize_pool", "rules_md"}


def get_tournament(db: Session, tournament_id: int) -> Optional[Tournament]:
    return db.query(Tournament).filter(Tournament.id == tournament_id).first()


def _get_or_raise(db: Session, tournament_id: int) -> Tournament:
    tournament = get_tournament(db, tournament_id)
    if not tournament:
        raise tournament_not_found(tournament_id)
    return tournament


def list_tournaments(db: Session) -> List[Tournament]:
    return db.query(Tournament).order_by(Tournament.start_time, Tournament.id).all()


def get_active_tournament(db: Session) -> Optional[Tournament]:
    """The next tournament still running, else the most recently scheduled one."""
    published = db.query(Tournament).filter(Tournament.phase != TournamentPhase.DRAFT.value)
    running = published.filter(Tournament.phase != TournamentPhase.COMPLETED.value)\
        .order_by(Tournament.start_time, Tournament.id)\
        .first()
    if running:
        return running
    return published.order_by(Tournament.start_time.desc(), Tournament.id.desc()).first()


def to_read(tournament: Tournament, now: Optional[datetime] = None) -> tournament_schemas.TournamentRead:
    now = now or utcnow()
    teams = tournament.teams
    return tournament_schemas.TournamentRead(
        id=tournament.id,
        name=tournament.name,
        start_time=tournament.start_time,
        max_teams=tournament.max_teams,
        bracket_size=tournament.bracket_size,
        format=tournament.format,
        team_size=tournament.team_size,
        prize_pool=tournament.prize_pool,
        rules_md=tournament.rules_md,
        phase=lifecycle.effective_phase(tournament, now).value,
        registration_open=lifecycle.is_registration_open(tournament, now),
        check_in_open=lifecycle.is_check_in_open(tournament, now),
        winner_team_id=tournament.winner_team_id,
        created_at=tournament.created_at,
        team_count=sum(1 for t in teams if t.status != TeamStatus.REJECTED.value),
        approved_team_count=sum(1 for t in teams if t.status == TeamStatus.APPROVED.value),
    )


def _check_capacity(max_teams: Optional[int], bracket_size: Optional[int]) -> None:
    if max_teams and bracket_size and bracket_size < max_teams:
        raise ValidationError(
            f"bracket_size {bracket_size} cannot hold max_teams {max_teams}", "CapacityExceeded"
        )


def create_tournament(db: Session, tournament_in: tournament_schemas.TournamentCreate,
                      actor: Optional[CurrentUser]) -> Tournament:
    auth_service.require_admin(actor, "create tournaments")
    _check_capacity(tournament_in.max_teams, tournament_in.bracket_size)

    db_tournament = Tournament(
        **tournament_in.model_dump(),
        phase=TournamentPhase.DRAFT.value,
        created_at=utcnow(),
    )
    db.add(db_tournament)
    db.commit()
    db.refresh(db_tournament)
    logger.info(f"Tournament {db_tournament.id} ({db_tournament.name}) created")
    return db_tournament


def update_tournament(db: Session, tournament_id: int, tournament_update: tournament_schemas.TournamentUpdate,
                      actor: Optional[CurrentUser]) -> Tournament:
    auth_service.require_admin(actor, "edit tournaments")
    update_data = tournament_update.model_dump(exclude_unset=True, exclude_none=True)

    with tournament_scope(db, tournament_id):
        db_tournament = _get_or_raise(db, tournament_id)

        if db_tournament.phase != TournamentPhase.DRAFT.value:
            locked = sorted(set(update_data) - OPEN_EDITABLE_FIELDS)
            if locked:
                raise InvalidStateError(
                    f"{', '.join(locked)} cannot change once registration has opened", "MetadataLocked"
                )

        _check_capacity(
            update_data.get("max_teams", db_tournament.max_teams),
            update_data.get("bracket_size", db_tournament.bracket_size),
        )
        for key, value in update_data.items():
            setattr(db_tournament, key, value)

    return db_tournament


def delete_tournament(db: Session, tournament_id: int, actor: Optional[CurrentUser]) -> bool:
    auth_service.require_admin(actor, "delete tournaments")

    with tournament_scope(db, tournament_id):
        db_tournament = _get_or_raise(db, tournament_id)
        # Teams and matches go with it (cascade)
        db.delete(db_tournament)

    logger.info(f"Tournament {tournament_id} deleted")
    return True


def open_registration(db: Session, tournament_id: int, actor: Optional[CurrentUser],
                      now: Optional[datetime] = None) -> Tournament:
    auth_service.require_admin(actor, "open registration")
    now = now or utcnow()

    with tournament_scope(db, tournament_id):
        db_tournament = _get_or_raise(db, tournament_id)
        if db_tournament.phase != TournamentPhase.DRAFT.value:
            raise InvalidStateError(
                f"Registration can only open from draft, tournament is {db_tournament.phase}",
                "InvalidTransition",
            )
        if db_tournament.start_time is None or not db_tournament.max_teams:
            raise ValidationError(
                "start_time and max_teams must be set before registration opens", "MissingSchedule"
            )
        lifecycle.advance_phase(db_tournament, TournamentPhase.REGISTRATION_OPEN)
        # Opening inside the check-in window skips straight to check-in
        lifecycle.sync_phase(db_tournament, now)

    return db_tournament


def close_registration(db: Session, tournament_id: int, actor: Optional[CurrentUser],
                       now: Optional[datetime] = None) -> Tournament:
    auth_service.require_admin(actor, "close registration")
    now = now or utcnow()

    with tournament_scope(db, tournament_id):
        db_tournament = _get_or_raise(db, tournament_id)
        lifecycle.sync_phase(db_tournament, now)

        phase = TournamentPhase(db_tournament.phase)
        if phase == TournamentPhase.CHECK_IN_OPEN:
            return db_tournament
        if phase != TournamentPhase.REGISTRATION_OPEN:
            raise InvalidStateError(
                f"Registration is not open, tournament is {phase.value}", "InvalidTransition"
            )
        lifecycle.advance_phase(db_tournament, TournamentPhase.CHECK_IN_OPEN)

    return db_tournament


def generate_bracket(db: Session, tournament_id: int, actor: Optional[CurrentUser],
                     now: Optional[datetime] = None) -> List[Match]:
    """
    Seeds every approved, checked-in team into a single elimination bracket.
    Only runs once per tournament; a retry fails with BracketAlreadyGenerated.
    """
    auth_service.require_admin(actor, "generate brackets")
    now = now or utcnow()

    with tournament_scope(db, tournament_id):
        db_tournament = _get_or_raise(db, tournament_id)
        lifecycle.sync_phase(db_tournament, now)

        existing = db.query(Match).filter(Match.tournament_id == tournament_id).count()
        if existing or lifecycle.has_reached(db_tournament, TournamentPhase.BRACKET_GENERATED):
            raise InvalidStateError("Bracket has already been generated", "BracketAlreadyGenerated")
        if db_tournament.phase != TournamentPhase.CHECK_IN_OPEN.value:
            raise InvalidStateError(
                f"Bracket can only be generated once check-in has started, tournament is {db_tournament.phase}",
                "InvalidPhase",
            )

        qualified = db.query(Team).filter(
            Team.tournament_id == tournament_id,
            Team.status == TeamStatus.APPROVED.value,
            Team.is_checked_in.is_(True),
        ).order_by(Team.id).all()

        matches = bracket_service.create_bracket(db, db_tournament, qualified)
        lifecycle.advance_phase(db_tournament, TournamentPhase.BRACKET_GENERATED)
        for team in qualified:
            notification_service.send_bracket_generated(db, team, db_tournament)

    return matches
