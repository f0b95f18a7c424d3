"""Settings for the shortlinks service.

Besides the usual app and database values, this module carries the
short-code allocation settings: ``SHORT_CODE_ALPHABET``,
``SHORT_CODE_LENGTH`` and ``CODE_ALLOCATION_MAX_ATTEMPTS``. They are
validated on load, so a bad alphabet or budget fails at startup instead of
at the first request.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortlinks"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8000"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://shortlinks:shortlinks@db:5432/shortlinks"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_CONNECT_TIMEOUT_SECONDS: int = 10
    DB_ECHO: bool | None = None

    # Short code allocation
    SHORT_CODE_ALPHABET: str = "0123456789abcdefghijklmnopqrstuvwxyz"
    SHORT_CODE_LENGTH: int = 6
    CODE_ALLOCATION_MAX_ATTEMPTS: int = 50

    # Link defaults
    DEFAULT_CAPTION: str = "Untitled"
    REDIRECT_STATUS_CODE: int = 302

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("SHORT_CODE_ALPHABET")
    @classmethod
    def validate_alphabet(cls, v: str) -> str:
        if len(set(v)) != len(v):
            raise ValueError("Short code alphabet must not repeat characters")
        if len(v) < 2:
            raise ValueError("Short code alphabet needs at least two characters")
        return v

    @field_validator("SHORT_CODE_LENGTH", "CODE_ALLOCATION_MAX_ATTEMPTS")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be a positive integer")
        return v

    @field_validator("REDIRECT_STATUS_CODE")
    @classmethod
    def validate_redirect_status(cls, v: int) -> int:
        if v not in (301, 302, 303, 307, 308):
            raise ValueError("Redirect status must be a 3xx redirect code")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def sql_echo(self) -> bool:
        if self.DB_ECHO is not None:
            return self.DB_ECHO
        return self.APP_ENV == "development"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
