import datetime

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text
from tourney.core.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(String, nullable=True)
    action = Column(String, nullable=False) # e.g. "match_report", "match_confirm", "match_dispute"
    entity_type = Column(String, nullable=False)
    entity_id = Column(Integer, nullable=True)
    payload = Column(Text, nullable=True) # JSON
    created_at = Column(DateTime, default=datetime.datetime.utcnow)
