from typing import Optional

from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tourney.core.config import settings
from tourney.core.errors import AuthenticationError
from tourney.schemas import auth_schemas

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM

# Tokens are issued by the session provider, never by this service; auto_error
# is off so anonymous requests reach public endpoints.
bearer_scheme = HTTPBearer(auto_error=False, description="Session token from the session provider")


def token_from_credentials(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    return credentials.credentials if credentials else None


def verify_token(token: str) -> auth_schemas.TokenData:
    credentials_exception = AuthenticationError("Could not validate credentials")
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise credentials_exception
    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception
    return auth_schemas.TokenData(
        user_id=str(user_id),
        username=payload.get("username"),
        role=payload.get("role") or "user",
    )
