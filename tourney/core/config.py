from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./tourney.db"
    SECRET_KEY: str = "YOUR_SECRET_KEY_HERE"
    ALGORITHM: str = "HS256"

    CHECK_IN_WINDOW_MINUTES: int = 60
    CHECK_IN_CODE_LENGTH: int = 6
    CHECK_IN_CODE_ATTEMPTS: int = 20

    # How long a tournament-scoped write waits for the tournament lock
    LOCK_TIMEOUT_SECONDS: float = 5.0

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
