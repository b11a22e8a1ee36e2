import json
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from tourney.core.clock import utcnow
from tourney.models import AuditLog
from tourney.schemas.auth_schemas import CurrentUser

logger = logging.getLogger(__name__)


def record(db: Session, tournament_id: int, actor: Optional[CurrentUser], action: str,
           entity_type: str, entity_id: Optional[int], payload: Optional[dict] = None,
           now: Optional[datetime] = None) -> AuditLog:
    """Adds an audit entry to the caller's transaction; it commits with the change it describes."""
    entry = AuditLog(
        tournament_id=tournament_id,
        actor_id=actor.id if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        payload=json.dumps(payload, sort_keys=True) if payload is not None else None,
        created_at=now or utcnow(),
    )
    db.add(entry)
    logger.info(f"Audit: {action} on {entity_type} {entity_id} by {entry.actor_id}")
    return entry


def get_entries(db: Session, entity_type: str, entity_id: int) -> List[AuditLog]:
    return db.query(AuditLog)\
        .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)\
        .order_by(AuditLog.id)\
        .all()
