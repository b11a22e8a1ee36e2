from datetime import datetime
from typing import Optional

from .base import APIModel


class NotificationRead(APIModel):
    id: int
    team_id: int
    kind: str
    recipient: Optional[str] = None
    subject: str
    message: str
    created_at: datetime
    read_at: Optional[datetime] = None
