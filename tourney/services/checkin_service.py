import logging
import secrets
import string
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from tourney.core.clock import utcnow
from tourney.core.config import settings
from tourney.core.errors import ConflictError, InvalidStateError, ValidationError, tournament_not_found
from tourney.core.locks import tournament_scope
from tourney.models import Team, TeamStatus, Tournament
from tourney.services import lifecycle

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def random_code(length: int = None) -> str:
    length = length or settings.CHECK_IN_CODE_LENGTH
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_code(db: Session, team: Team, code_factory: Callable[[], str] = random_code) -> str:
    """
    Gives an approved team its check-in code, unique within the tournament.
    A team that already has a code keeps it.
    """
    if team.check_in_code:
        return team.check_in_code

    taken = {
        code for (code,) in db.query(Team.check_in_code).filter(
            Team.tournament_id == team.tournament_id,
            Team.check_in_code.isnot(None),
        )
    }
    for _ in range(settings.CHECK_IN_CODE_ATTEMPTS):
        code = normalize_code(code_factory())
        if code not in taken:
            team.check_in_code = code
            return code

    raise ConflictError(
        f"Could not allocate a unique check-in code for team {team.id}", "CodeSpaceExhausted"
    )


def check_in(db: Session, tournament_id: int, code: str, now: Optional[datetime] = None) -> Team:
    """
    Marks the approved team owning ``code`` as checked in.

    Codes are matched case-insensitively. Unknown codes fail with InvalidCode
    whether or not the window is open; a known code outside the window fails
    with CheckInClosed. Repeating a successful check-in changes nothing.
    """
    now = now or utcnow()
    normalized = normalize_code(code)

    with tournament_scope(db, tournament_id):
        tournament = db.query(Tournament).filter(Tournament.id == tournament_id).first()
        if not tournament:
            raise tournament_not_found(tournament_id)
        lifecycle.sync_phase(tournament, now)

        team = None
        if normalized:
            team = db.query(Team).filter(
                Team.tournament_id == tournament_id,
                Team.check_in_code == normalized,
                Team.status == TeamStatus.APPROVED.value,
            ).first()
        if team is None:
            logger.warning(f"Tournament {tournament_id}: rejected check-in code {normalized!r}")
            raise ValidationError("Invalid check-in code", "InvalidCode")

        if team.is_checked_in:
            return team

        if not lifecycle.is_check_in_open(tournament, now):
            raise InvalidStateError("Check-in is closed for this tournament", "CheckInClosed")

        team.is_checked_in = True
        team.checked_in_at = now
        logger.info(f"Tournament {tournament_id}: team {team.id} ({team.name}) checked in")

    return team
