from datetime import datetime
from typing import List, Optional

from .base import APIModel


class MatchRead(APIModel):
    id: int
    tournament_id: int
    round: int
    slot: int
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    score1: Optional[int] = None
    score2: Optional[int] = None
    status: str
    winner_id: Optional[int] = None
    is_bye: bool = False
    reported_by: Optional[str] = None
    reported_at: Optional[datetime] = None
    reported_by_team_id: Optional[int] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None


class MatchResultUpdate(APIModel):
    score1: int
    score2: int


class MatchDispute(APIModel):
    reason: str
    evidence: Optional[str] = None


class AuditLogRead(APIModel):
    id: int
    actor_id: Optional[str] = None
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    payload: Optional[str] = None
    created_at: datetime


class BracketRound(APIModel):
    round: int
    name: str
    matches: List[MatchRead]


class BracketRead(APIModel):
    tournament_id: int
    bracket_size: int
    rounds: List[BracketRound]
