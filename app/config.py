"""Application configuration using Pydantic Settings."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "habit_planner"

    # JWT
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 10080  # 7 days

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Scheduling
    # IANA name (e.g. "America/New_York") or "local" for the system timezone.
    timezone: str = "local"
    week_start_day: str = "sunday"
    streak_window: int = 100

    @field_validator("week_start_day")
    @classmethod
    def _known_weekday(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in WEEKDAY_NAMES:
            raise ValueError(f"week_start_day must be one of {', '.join(WEEKDAY_NAMES)}")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


settings = Settings()
