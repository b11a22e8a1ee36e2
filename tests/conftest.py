import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tourney.api.dependencies import get_db
from tourney.core.config import settings
from tourney.core.database import init_db
from tourney.main import app
from tourney.models import Team, TeamStatus, Tournament, TournamentPhase
from tourney.schemas.auth_schemas import CurrentUser

# Fixed "current time" for service tests; services take ``now`` explicitly
NOW = datetime(2026, 3, 1, 18, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin():
    return CurrentUser(id="admin-1", username="organiser", role="admin")


@pytest.fixture
def player():
    return CurrentUser(id="player-1", username="somebody", role="user")


@pytest.fixture
def user():
    """Builds a signed-in non-admin identity."""
    def _make(user_id):
        return CurrentUser(id=user_id, username=user_id, role="user")
    return _make


@pytest.fixture
def make_tournament(db):
    def _make(phase=TournamentPhase.CHECK_IN_OPEN, start_time=NOW + timedelta(minutes=30),
              max_teams=8, bracket_size=None, name="Friday Night Cup"):
        tournament = Tournament(
            name=name,
            start_time=start_time,
            max_teams=max_teams,
            bracket_size=bracket_size,
            phase=phase.value,
            created_at=NOW - timedelta(days=7),
        )
        db.add(tournament)
        db.commit()
        db.refresh(tournament)
        return tournament
    return _make


@pytest.fixture
def make_team(db):
    def _make(tournament, name, status=TeamStatus.APPROVED, checked_in=True, seed=None, code=None,
              captain_user_id=None, discord_id=None):
        team = Team(
            tournament_id=tournament.id,
            name=name,
            captain_name=f"{name} Captain",
            captain_rank="Diamond",
            status=status.value,
            seed=seed,
            is_checked_in=checked_in,
            check_in_code=code,
            captain_user_id=captain_user_id,
            discord_id=discord_id,
            checked_in_at=NOW - timedelta(minutes=5) if checked_in else None,
            registered_at=NOW - timedelta(days=1),
        )
        db.add(team)
        db.commit()
        db.refresh(team)
        return team
    return _make


# --- HTTP fixtures ---

@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # Not used as a context manager: startup would create the real database
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_token(sub: str, role: str = "user", expires_in: timedelta = timedelta(minutes=30)) -> str:
    """Mints a token the way the session provider does."""
    claims = {"sub": sub, "username": sub, "role": role, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _auth_headers(sub: str, role: str) -> dict:
    token = make_token(sub, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _auth_headers("admin-1", "admin")


@pytest.fixture
def player_headers():
    return _auth_headers("player-1", "user")


@pytest.fixture
def headers_for():
    """Builds bearer headers for any signed-in identity."""
    def _make(sub, role="user"):
        return _auth_headers(sub, role)
    return _make


@pytest.fixture
def now():
    return NOW
