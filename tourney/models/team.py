import datetime
from enum import Enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship, validates
from tourney.core.database import Base


class TeamStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def normalize_name(value):
    """Comparison key for names: trimmed and Unicode case-folded."""
    return (value or "").strip().casefold()


class Team(Base):
    __tablename__ = "teams"
    __table_args__ = (
        UniqueConstraint("tournament_id", "check_in_code", name="uq_team_check_in_code"),
        UniqueConstraint("tournament_id", "name_key", name="uq_team_name_key"),
    )

    # Ascending id is registration order
    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    name_key = Column(String, nullable=False) # set from name, see _set_keys
    captain_name = Column(String, nullable=False)
    captain_key = Column(String, nullable=False)
    captain_rank = Column(String, nullable=False)
    captain_user_id = Column(String, nullable=True) # identity of the registering user, if signed in
    duo_name = Column(String, nullable=False, default="")
    duo_rank = Column(String, nullable=False, default="")
    discord_id = Column(String, nullable=True)
    email = Column(String, nullable=True)
    status = Column(String, nullable=False, default=TeamStatus.PENDING.value)
    seed = Column(Integer, nullable=True)
    is_checked_in = Column(Boolean, nullable=False, default=False)
    check_in_code = Column(String(6), nullable=True)
    checked_in_at = Column(DateTime, nullable=True)
    registered_at = Column(DateTime, default=datetime.datetime.utcnow)

    tournament = relationship("Tournament", back_populates="teams")
    notifications = relationship(
        "Notification", back_populates="team", cascade="all, delete-orphan", order_by="Notification.id"
    )

    @validates("name", "captain_name")
    def _set_keys(self, key, value):
        # SQLite's lower() only folds ASCII, so lookups go through these columns
        if key == "name":
            self.name_key = normalize_name(value)
        else:
            self.captain_key = normalize_name(value)
        return value

    def is_member(self, user_id) -> bool:
        """Whether the signed-in identity ``user_id`` speaks for this team."""
        if not user_id:
            return False
        return user_id in (self.captain_user_id, self.discord_id)
