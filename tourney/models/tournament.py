import datetime
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import relationship
from tourney.core.database import Base


class TournamentPhase(str, Enum):
    DRAFT = "draft"
    REGISTRATION_OPEN = "registration_open"
    CHECK_IN_OPEN = "check_in_open"
    BRACKET_GENERATED = "bracket_generated"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Position of each phase in the lifecycle; transitions only move forward
PHASE_ORDER = {phase: index for index, phase in enumerate(TournamentPhase)}


class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=True)
    max_teams = Column(Integer, nullable=True)
    bracket_size = Column(Integer, nullable=True) # configured ceiling, actual size once generated
    phase = Column(String, nullable=False, default=TournamentPhase.DRAFT.value)
    format = Column(String, nullable=False, default="2v2") # e.g., "1v1", "2v2", "5v5"
    team_size = Column(Integer, nullable=False, default=2)
    prize_pool = Column(Integer, nullable=False, default=0)
    rules_md = Column(Text, nullable=True)
    winner_team_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    teams = relationship(
        "Team", back_populates="tournament", cascade="all, delete-orphan", order_by="Team.id"
    )
    matches = relationship(
        "Match", back_populates="tournament", cascade="all, delete-orphan",
        order_by="Match.id",
    )
    audit_logs = relationship("AuditLog", cascade="all, delete-orphan", order_by="AuditLog.id")
