import datetime
from enum import Enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from tourney.core.database import Base


class NotificationKind(str, Enum):
    CHECK_IN_CODE = "check_in_code"
    TEAM_REJECTED = "team_rejected"
    BRACKET_GENERATED = "bracket_generated"


class Notification(Base):
    """A message addressed to one team; teams read them from their inbox."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String, nullable=False)
    recipient = Column(String, nullable=True) # team email at the time of sending
    subject = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    read_at = Column(DateTime, nullable=True)

    team = relationship("Team", back_populates="notifications")
