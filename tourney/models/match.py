from enum import Enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from tourney.core.database import Base


class MatchStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    REPORTED = "reported" # score submitted by a team, awaiting confirmation
    DISPUTED = "disputed"
    COMPLETED = "completed"


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("tournament_id", "round", "slot", name="uq_match_position"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    round = Column(Integer, nullable=False) # 1 is the earliest round
    slot = Column(Integer, nullable=False) # 0-based position within the round
    team1_id = Column(Integer, nullable=True)
    team2_id = Column(Integer, nullable=True)
    score1 = Column(Integer, nullable=True)
    score2 = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default=MatchStatus.PENDING.value)
    winner_id = Column(Integer, nullable=True) # derived from the scores
    is_bye = Column(Boolean, nullable=False, default=False)
    reported_by = Column(String, nullable=True)
    reported_at = Column(DateTime, nullable=True)
    reported_by_team_id = Column(Integer, nullable=True) # None when an admin entered the score
    resolved_by = Column(String, nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    tournament = relationship("Tournament", back_populates="matches")
