"""
Tournament phase state machine.

    draft -> registration_open -> check_in_open -> bracket_generated -> in_progress -> completed

Phases only move forward. The ``registration_open -> check_in_open`` edge is
driven by the clock: read paths compute it with ``effective_phase`` while
writes persist it with ``sync_phase`` before doing anything else.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from tourney.core.config import settings
from tourney.core.errors import InvalidStateError
from tourney.models import Tournament, TournamentPhase, PHASE_ORDER

logger = logging.getLogger(__name__)


def check_in_window(tournament: Tournament) -> Optional[Tuple[datetime, datetime]]:
    """Half-open ``[start - window, start)`` interval, or None without a start time."""
    if tournament.start_time is None:
        return None
    opens = tournament.start_time - timedelta(minutes=settings.CHECK_IN_WINDOW_MINUTES)
    return opens, tournament.start_time


def effective_phase(tournament: Tournament, now: datetime) -> TournamentPhase:
    phase = TournamentPhase(tournament.phase)
    if phase == TournamentPhase.REGISTRATION_OPEN:
        window = check_in_window(tournament)
        if window is not None and now >= window[0]:
            return TournamentPhase.CHECK_IN_OPEN
    return phase


def is_registration_open(tournament: Tournament, now: datetime) -> bool:
    return effective_phase(tournament, now) == TournamentPhase.REGISTRATION_OPEN


def is_check_in_open(tournament: Tournament, now: datetime) -> bool:
    if effective_phase(tournament, now) != TournamentPhase.CHECK_IN_OPEN:
        return False
    window = check_in_window(tournament)
    return window is not None and window[0] <= now < window[1]


def has_reached(tournament: Tournament, phase: TournamentPhase) -> bool:
    return PHASE_ORDER[TournamentPhase(tournament.phase)] >= PHASE_ORDER[phase]


def advance_phase(tournament: Tournament, target: TournamentPhase) -> None:
    current = TournamentPhase(tournament.phase)
    if PHASE_ORDER[target] < PHASE_ORDER[current]:
        raise InvalidStateError(
            f"Tournament {tournament.id} cannot move from {current.value} back to {target.value}",
            "InvalidTransition",
        )
    if target != current:
        logger.info(f"Tournament {tournament.id}: {current.value} -> {target.value}")
        tournament.phase = target.value


def sync_phase(tournament: Tournament, now: datetime) -> None:
    """Persist any clock-driven transition. Call inside a tournament scope."""
    advance_phase(tournament, effective_phase(tournament, now))
