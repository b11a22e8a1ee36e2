"""
Typed failures raised by the tournament services.

Each error has a stable machine-readable ``kind`` and a human ``message``.
The HTTP layer turns them into ``{"error": message, "kind": kind}`` bodies
with the category's status code.
"""
from fastapi import status


class TournamentError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_kind = "TournamentError"

    def __init__(self, message: str, kind: str = None):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class NotFoundError(TournamentError):
    status_code = status.HTTP_404_NOT_FOUND
    default_kind = "NotFound"


class InvalidStateError(TournamentError):
    status_code = status.HTTP_409_CONFLICT
    default_kind = "InvalidState"


class ValidationError(TournamentError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_kind = "ValidationError"


class ConflictError(TournamentError):
    status_code = status.HTTP_409_CONFLICT
    default_kind = "Conflict"


class PermissionDeniedError(TournamentError):
    status_code = status.HTTP_403_FORBIDDEN
    default_kind = "AdminRequired"


class AuthenticationError(TournamentError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_kind = "NotAuthenticated"


def tournament_not_found(tournament_id) -> NotFoundError:
    return NotFoundError(f"Tournament {tournament_id} not found", "TournamentNotFound")


def team_not_found(team_id) -> NotFoundError:
    return NotFoundError(f"Team {team_id} not found", "TeamNotFound")


def match_not_found(match_id) -> NotFoundError:
    return NotFoundError(f"Match {match_id} not found", "MatchNotFound")
