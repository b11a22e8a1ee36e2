from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from tourney.core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # Handlers run in FastAPI's threadpool
    connect_args["check_same_thread"] = False

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    # Models must be imported so they register on Base.metadata
    import tourney.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
