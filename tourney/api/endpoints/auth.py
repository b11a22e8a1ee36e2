from typing import Optional

from fastapi import APIRouter, Depends

from tourney.api.dependencies import get_current_user
from tourney.schemas.auth_schemas import CurrentUser
from tourney.services import auth_service

router = APIRouter()

@router.get("/me", response_model=CurrentUser)
def read_current_user(current_user: Optional[CurrentUser] = Depends(get_current_user)):
    return auth_service.require_user(current_user)
