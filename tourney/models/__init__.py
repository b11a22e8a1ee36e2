from tourney.core.database import Base

# Import all models here to ensure they are registered with Base
from .tournament import Tournament, TournamentPhase, PHASE_ORDER
from .team import Team, TeamStatus, normalize_name
from .match import Match, MatchStatus
from .notification import Notification, NotificationKind
from .audit_log import AuditLog
