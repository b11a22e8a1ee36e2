from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from tourney.core import security
from tourney.core.database import SessionLocal
from tourney.schemas.auth_schemas import CurrentUser
from tourney.services import auth_service


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security.bearer_scheme),
) -> Optional[CurrentUser]:
    # Resolved once per request; never cached across requests
    return auth_service.resolve_current_user(security.token_from_credentials(credentials))
