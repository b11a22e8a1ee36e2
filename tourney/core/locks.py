"""
Per-tournament mutual exclusion.

Every write to a tournament (approval, check-in, bracket generation, result
reporting) runs inside ``tournament_scope``. The scope holds the tournament's
lock, expires the session so reads inside it are fresh, and commits once at
the end, so a propagated winner becomes visible together with the result
that produced it. Reads never take the lock.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from sqlalchemy.orm import Session

from tourney.core.config import settings
from tourney.core.errors import ConflictError

logger = logging.getLogger(__name__)


class TournamentLockRegistry:
    def __init__(self, timeout: Optional[float] = None):
        self.timeout = settings.LOCK_TIMEOUT_SECONDS if timeout is None else timeout
        self._locks: Dict[int, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, tournament_id: int) -> threading.Lock:
        # Locks are never dropped, even when their tournament is deleted: a
        # request still queued on the old lock must exclude any later one.
        with self._guard:
            lock = self._locks.get(tournament_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[tournament_id] = lock
            return lock

    @contextmanager
    def hold(self, tournament_id: int) -> Iterator[None]:
        lock = self.lock_for(tournament_id)
        if not lock.acquire(timeout=self.timeout):
            logger.warning(f"Timed out waiting for lock on tournament {tournament_id}")
            raise ConflictError(
                f"Tournament {tournament_id} is busy, retry shortly", "TournamentBusy"
            )
        try:
            yield
        finally:
            lock.release()


tournament_locks = TournamentLockRegistry()


@contextmanager
def tournament_scope(db: Session, tournament_id: int,
                     registry: Optional[TournamentLockRegistry] = None) -> Iterator[Session]:
    registry = registry or tournament_locks
    with registry.hold(tournament_id):
        # Drop anything read before the lock was taken
        db.expire_all()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
