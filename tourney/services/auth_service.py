from typing import Optional

from tourney.core import security
from tourney.core.errors import AuthenticationError, PermissionDeniedError
from tourney.schemas.auth_schemas import CurrentUser


def resolve_current_user(token: Optional[str]) -> Optional[CurrentUser]:
    """
    Turns the session provider's bearer token into the request's identity.
    Returns None for anonymous requests; a malformed or expired token is an error.
    """
    if not token:
        return None
    token_data = security.verify_token(token)
    return CurrentUser(id=token_data.user_id, username=token_data.username, role=token_data.role)


def require_user(actor: Optional[CurrentUser]) -> CurrentUser:
    if actor is None:
        raise AuthenticationError("Not authenticated")
    return actor


def require_admin(actor: Optional[CurrentUser], action: str) -> CurrentUser:
    actor = require_user(actor)
    if not actor.is_admin:
        raise PermissionDeniedError(f"Only admins can {action}")
    return actor
