# ticketing/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose injects the
    # root .env). Defaults are development values only.
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"

    DATABASE_URL_PROD: str = "postgresql://postgres:postgres@db:5432/ticketing_db"
    DATABASE_URL_LOCAL: str = "sqlite:///./ticketing.sqlite3"

    # Identity tokens are issued by the auth service; we only verify them.
    JWT_SECRET: str = "dev-jwt-secret-change-me"

    # Ticket credentials (QR payloads) are signed with their own secret.
    QR_SIGNING_SECRET: str = "CHANGE-ME-IN-PRODUCTION-use-a-64-char-random-string"
    CREDENTIAL_TTL_HOURS_AFTER_EVENT: int = 24

    # Registration policy
    CANCELLATION_LOCKOUT_HOURS: int = 24
    REGISTRATION_MAX_ATTEMPTS: int = 3
    REGISTRATION_RETRY_BACKOFF: float = 0.05

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    REGISTRATION_RATE_LIMIT: str = "30/minute"
    CHECK_IN_RATE_LIMIT: str = "120/minute"

    LOG_LEVEL: str = "INFO"

    @property
    def DATABASE_URL(self) -> str:
        return (
            self.DATABASE_URL_LOCAL if self.ENV == "local" else self.DATABASE_URL_PROD
        )


# Create a single instance of the settings
settings = Settings()
