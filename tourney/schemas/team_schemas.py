from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .base import APIModel


class TeamCreate(APIModel):
    name: str = Field(min_length=2, max_length=50)
    captain_name: str = Field(min_length=1, max_length=50)
    captain_rank: str = Field(min_length=1, max_length=50)
    duo_name: str = ""
    duo_rank: str = ""
    discord_id: Optional[str] = None
    email: Optional[EmailStr] = None

    # Stripped before the length checks run
    @field_validator("name", "captain_name", "captain_rank", "duo_name", "duo_rank", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class TeamRead(APIModel):
    id: int
    tournament_id: int
    name: str
    captain_name: str
    captain_rank: str
    duo_name: str
    duo_rank: str
    status: str
    seed: Optional[int] = None
    is_checked_in: bool
    checked_in_at: Optional[datetime] = None
    registered_at: Optional[datetime] = None


class TeamAdminRead(TeamRead):
    # Only organisers see contact details and the check-in code
    discord_id: Optional[str] = None
    email: Optional[str] = None
    check_in_code: Optional[str] = None
    captain_user_id: Optional[str] = None


class TeamRegistered(APIModel):
    id: int
    name: str
    status: str
    message: str


class TeamSeedUpdate(APIModel):
    seed: Optional[int] = None


class CheckInRequest(APIModel):
    code: str


class CheckInResult(APIModel):
    success: bool = True
    team_id: int
    team_name: str
    checked_in_at: Optional[datetime] = None
    message: str
