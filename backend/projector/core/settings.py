import re
from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SECRET_LENGTH = 32

# Placeholder and dictionary values that must never sign tokens.
WEAK_SECRETS = frozenset({
    "your-jwt-secret-here",
    "your-refresh-secret-here",
    "secret",
    "password",
    "123456",
    "admin",
    "changeme",
})

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value: str) -> timedelta:
    """
    Parse a TTL such as "15m", "7d", "12h", "30s" or "900" (seconds).
    """
    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration {value!r}; expected <int>[s|m|h|d]")
    amount, unit = int(match.group(1)), match.group(2)
    if amount <= 0:
        raise ValueError(f"Duration must be positive, got {value!r}")
    return timedelta(**{_DURATION_UNITS[unit]: amount})


class Settings(BaseSettings):
    PROJECT_NAME: str = "Projector"
    ENVIRONMENT: str = "development"
    DATABASE_URL: str = "sqlite:///./data/projector.db"

    # Auth Config
    JWT_SECRET: str
    REFRESH_SECRET: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_TTL: str = "15m"
    REFRESH_TOKEN_TTL: str = "7d"
    CLOCK_SKEW_SECONDS: int = Field(default=0, ge=0)

    # Login throttling, per client address
    LOGIN_RATE_LIMIT: int = Field(default=5, ge=1)
    LOGIN_RATE_WINDOW: str = "15m"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Initial administrator
    SEED_ADMIN: bool = True
    ADMIN_EMPLOYEE_ID: str = "ADMIN001"
    ADMIN_PASSWORD: str = "admin123!"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("ACCESS_TOKEN_TTL", "REFRESH_TOKEN_TTL", "LOGIN_RATE_WINDOW")
    @classmethod
    def check_ttl(cls, value: str) -> str:
        parse_duration(value)
        return value

    @field_validator("JWT_SECRET", "REFRESH_SECRET")
    @classmethod
    def check_secret_strength(cls, value: str) -> str:
        if value.strip().lower() in WEAK_SECRETS:
            raise ValueError("JWT secrets must not use default or weak values")
        if len(value) < MIN_SECRET_LENGTH:
            raise ValueError(f"JWT secrets must be at least {MIN_SECRET_LENGTH} characters long")
        return value

    @model_validator(mode="after")
    def check_secrets_differ(self) -> "Settings":
        if self.JWT_SECRET == self.REFRESH_SECRET:
            raise ValueError("JWT_SECRET and REFRESH_SECRET must be different")
        return self

    @property
    def access_token_ttl(self) -> timedelta:
        return parse_duration(self.ACCESS_TOKEN_TTL)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return parse_duration(self.REFRESH_TOKEN_TTL)

    @property
    def login_rate_window(self) -> timedelta:
        return parse_duration(self.LOGIN_RATE_WINDOW)

    @property
    def clock_skew(self) -> timedelta:
        return timedelta(seconds=self.CLOCK_SKEW_SECONDS)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
