from pydantic import BaseModel
from typing import Optional

from .base import APIModel

ADMIN_ROLES = {"admin"}

class TokenData(BaseModel):
    user_id: str
    username: Optional[str] = None
    role: str = "user"

class CurrentUser(APIModel):
    """Identity resolved once per request from the session provider's token."""
    id: str
    username: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
