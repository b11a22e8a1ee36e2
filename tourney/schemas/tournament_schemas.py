from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from tourney.core.clock import to_naive_utc
from .base import APIModel


def _is_power_of_two(value: int) -> bool:
    return value >= 2 and value & (value - 1) == 0


class TournamentBase(APIModel):
    name: str = Field(min_length=3, max_length=100)
    start_time: Optional[datetime] = None
    max_teams: Optional[int] = Field(default=None, ge=2)
    bracket_size: Optional[int] = None
    format: str = "2v2"
    team_size: int = Field(default=2, ge=1)
    prize_pool: int = Field(default=0, ge=0)
    rules_md: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("start_time")
    @classmethod
    def normalise_start_time(cls, v):
        return to_naive_utc(v) if v is not None else v

    @field_validator("bracket_size")
    @classmethod
    def bracket_size_power_of_two(cls, v):
        if v is not None and not _is_power_of_two(v):
            raise ValueError("bracket_size must be a power of two >= 2")
        return v


class TournamentCreate(TournamentBase):
    pass


class TournamentUpdate(TournamentBase):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    format: Optional[str] = None
    team_size: Optional[int] = Field(default=None, ge=1)
    prize_pool: Optional[int] = Field(default=None, ge=0)


class TournamentRead(TournamentBase):
    id: int
    phase: str
    registration_open: bool
    check_in_open: bool
    winner_team_id: Optional[int] = None
    created_at: Optional[datetime] = None
    team_count: int = 0
    approved_team_count: int = 0
