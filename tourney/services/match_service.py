"""
Match results.

A result reaches the bracket in one of two ways: an admin enters it directly,
or one team reports it and the opposing team (or an admin) confirms it.
Either team may dispute a reported score; an admin settles the dispute by
entering the result. Only a completed result moves the winner on. Every
report, confirmation and dispute leaves an audit entry.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from tourney.core.clock import utcnow
from tourney.core.errors import (
    ConflictError, InvalidStateError, PermissionDeniedError, ValidationError,
    match_not_found, tournament_not_found,
)
from tourney.core.locks import tournament_scope
from tourney.models import AuditLog, Match, MatchStatus, Team, Tournament, TournamentPhase
from tourney.schemas.auth_schemas import CurrentUser
from tourney.services import audit_service, auth_service, lifecycle
from tourney.services.bracket_service import feeds_into, place_winner

logger = logging.getLogger(__name__)


def get_match(db: Session, match_id: int) -> Optional[Match]:
    return db.query(Match).filter(Match.id == match_id).first()


def get_matches(db: Session, tournament_id: int) -> List[Match]:
    tournament = db.query(Tournament).filter(Tournament.id == tournament_id).first()
    if not tournament:
        raise tournament_not_found(tournament_id)
    return db.query(Match).filter(Match.tournament_id == tournament_id)\
        .order_by(Match.round, Match.slot)\
        .all()


def _validate_scores(score1, score2) -> None:
    for score in (score1, score2):
        if isinstance(score, bool) or not isinstance(score, int) or score < 0:
            raise ValidationError("Scores must be non-negative integers", "InvalidScore")
    if score1 == score2:
        raise ValidationError(
            "Scores cannot be equal in a single elimination match. A winner must be determined.",
            "InvalidScore",
        )


def _next_match(db: Session, match: Match) -> Optional[Match]:
    next_round, next_slot, _ = feeds_into(match.round, match.slot)
    return db.query(Match).filter(
        Match.tournament_id == match.tournament_id,
        Match.round == next_round,
        Match.slot == next_slot,
    ).first()


def _load_for_update(db: Session, match_id: int) -> Match:
    match = get_match(db, match_id)
    if not match:
        raise match_not_found(match_id)
    return match


def _require_teams(match: Match) -> None:
    if match.team1_id is None or match.team2_id is None:
        raise InvalidStateError(
            "Match does not have two teams assigned yet", "TeamsNotAssigned"
        )


def _actor_team_id(db: Session, match: Match, actor: CurrentUser) -> Optional[int]:
    """Id of the team in ``match`` that ``actor`` speaks for, if any."""
    for team_id in (match.team1_id, match.team2_id):
        if team_id is None:
            continue
        team = db.query(Team).filter(Team.id == team_id).first()
        if team and team.is_member(actor.id):
            return team_id
    return None


def _complete(db: Session, match: Match, actor: CurrentUser, now: datetime) -> None:
    """Settles the match on its current scores and pushes the winner on."""
    tournament = match.tournament
    next_match = _next_match(db, match)

    match.winner_id = match.team1_id if match.score1 > match.score2 else match.team2_id
    match.status = MatchStatus.COMPLETED.value
    match.resolved_by = actor.id
    match.resolved_at = now

    if next_match is not None:
        place_winner(next_match, match.slot, match.winner_id)
        lifecycle.advance_phase(tournament, TournamentPhase.IN_PROGRESS)
    else:
        lifecycle.advance_phase(tournament, TournamentPhase.COMPLETED)
        tournament.winner_team_id = match.winner_id
        logger.info(f"Tournament {tournament.id} won by team {match.winner_id}")


def report_result(db: Session, match_id: int, score1: int, score2: int,
                  actor: Optional[CurrentUser], now: Optional[datetime] = None) -> Match:
    """
    Records a score for a match.

    From an admin the score is final: the match completes and the winner moves
    into the next round in the same commit. An admin may also correct a
    completed match while the match it feeds has not started; correcting the
    final changes the tournament winner.

    From a member of either team the score is only reported and waits for the
    opposing team or an admin to confirm it.
    """
    actor = auth_service.require_user(actor)
    now = now or utcnow()

    tournament_id = _load_for_update(db, match_id).tournament_id
    with tournament_scope(db, tournament_id):
        match = _load_for_update(db, match_id)
        team_id = None if actor.is_admin else _actor_team_id(db, match, actor)
        if not actor.is_admin and team_id is None:
            raise PermissionDeniedError(
                "Only the teams in this match or an admin can report its result", "NotMatchParticipant"
            )

        _require_teams(match)
        _validate_scores(score1, score2)

        correcting = match.status == MatchStatus.COMPLETED.value
        if not actor.is_admin:
            if correcting:
                raise PermissionDeniedError("Only admins can correct a completed result")
            if match.status == MatchStatus.DISPUTED.value:
                raise InvalidStateError(
                    "Match result is disputed and waits for an admin", "MatchDisputed"
                )

        next_match = _next_match(db, match)
        if correcting and next_match is not None and (
            next_match.status != MatchStatus.PENDING.value or next_match.score1 is not None
        ):
            raise ConflictError(
                f"Match {next_match.id} fed by this result has already started",
                "DownstreamAlreadyStarted",
            )

        match.score1 = score1
        match.score2 = score2
        match.reported_by = actor.id
        match.reported_at = now
        match.reported_by_team_id = team_id

        if actor.is_admin:
            _complete(db, match, actor, now)
            action = "match_correct" if correcting else "match_result"
        else:
            match.status = MatchStatus.REPORTED.value
            lifecycle.advance_phase(match.tournament, TournamentPhase.IN_PROGRESS)
            action = "match_report"

        audit_service.record(
            db, tournament_id, actor, action, "match", match.id,
            {"score1": score1, "score2": score2}, now=now,
        )
        logger.info(
            f"Match {match.id} (round {match.round}, slot {match.slot}) "
            f"{action}: {score1}-{score2}, status {match.status}"
        )

    return match


def confirm_result(db: Session, match_id: int, actor: Optional[CurrentUser],
                   now: Optional[datetime] = None) -> Match:
    """Accepts a reported score. Only the opposing team or an admin may confirm."""
    actor = auth_service.require_user(actor)
    now = now or utcnow()

    tournament_id = _load_for_update(db, match_id).tournament_id
    with tournament_scope(db, tournament_id):
        match = _load_for_update(db, match_id)
        if match.status != MatchStatus.REPORTED.value:
            raise InvalidStateError(
                f"Match is {match.status}. Only reported results can be confirmed.", "InvalidTransition"
            )

        if not actor.is_admin:
            team_id = _actor_team_id(db, match, actor)
            if team_id is None or team_id == match.reported_by_team_id:
                raise PermissionDeniedError(
                    "Only the opposing team can confirm the score", "OpponentConfirmationRequired"
                )

        _complete(db, match, actor, now)
        audit_service.record(
            db, tournament_id, actor, "match_confirm", "match", match.id,
            {"winner_id": match.winner_id}, now=now,
        )
        logger.info(f"Match {match.id} confirmed, winner {match.winner_id}")

    return match


def dispute_result(db: Session, match_id: int, reason: str, evidence: Optional[str],
                   actor: Optional[CurrentUser], now: Optional[datetime] = None) -> Match:
    """Either team (or an admin) contests a reported score; an admin then enters the result."""
    actor = auth_service.require_user(actor)
    now = now or utcnow()
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required to dispute a result", "ReasonRequired")

    tournament_id = _load_for_update(db, match_id).tournament_id
    with tournament_scope(db, tournament_id):
        match = _load_for_update(db, match_id)
        if not actor.is_admin and _actor_team_id(db, match, actor) is None:
            raise PermissionDeniedError(
                "Only the teams in this match or an admin can dispute its result", "NotMatchParticipant"
            )
        if match.status != MatchStatus.REPORTED.value:
            raise InvalidStateError(
                f"Match is {match.status}. Only reported results can be disputed.", "InvalidTransition"
            )

        match.status = MatchStatus.DISPUTED.value
        audit_service.record(
            db, tournament_id, actor, "match_dispute", "match", match.id,
            {"reason": reason, "evidence": evidence}, now=now,
        )
        logger.warning(f"Match {match.id} disputed by {actor.id}: {reason}")

    return match


def start_match(db: Session, match_id: int, actor: Optional[CurrentUser]) -> Match:
    auth_service.require_admin(actor, "start matches")

    tournament_id = _load_for_update(db, match_id).tournament_id
    with tournament_scope(db, tournament_id):
        match = _load_for_update(db, match_id)
        _require_teams(match)
        if match.status != MatchStatus.PENDING.value:
            raise InvalidStateError(
                f"Match is {match.status}. Only pending matches can start.", "InvalidTransition"
            )
        match.status = MatchStatus.IN_PROGRESS.value
        lifecycle.advance_phase(match.tournament, TournamentPhase.IN_PROGRESS)
        logger.info(f"Match {match.id} started")

    return match


def get_audit_log(db: Session, match_id: int, actor: Optional[CurrentUser]) -> List[AuditLog]:
    auth_service.require_admin(actor, "read the audit log")
    if not get_match(db, match_id):
        raise match_not_found(match_id)
    return audit_service.get_entries(db, "match", match_id)
