# kuurier/core/config.py

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from loguru import logger

# =========================
# TRUST / INVITE CONSTANTS
# =========================

INITIAL_TRUST_SCORE = 15       # browsing-only tier for invited users
TRUST_PER_VOUCH = 10
MIN_TRUST_TO_VOUCH = 30
MIN_TRUST_TO_INVITE = 30

BASE_INVITE_ALLOWANCE = 3      # allowance at MIN_TRUST_TO_INVITE
INVITES_PER_TRUST_INCREMENT = 1
TRUST_INCREMENT_SIZE = 20

INVITE_CODE_EXPIRY_DAYS = 7
CHALLENGE_EXPIRY_MINUTES = 5

INSECURE_DEV_SECRET = "INSECURE_DEV_SECRET_CHANGE_IN_PRODUCTION"


class ConfigError(Exception):
    """Raised when the environment cannot produce a usable configuration."""


@dataclass
class Settings:
    environment: str = "development"
    database_url: str = ""
    jwt_secret: bytes = b""
    token_duration_hours: int = 720
    allowed_origins: List[str] = field(default_factory=list)
    log_level: str = "INFO"
    rate_limit_per_minute: int = 100
    public_rate_limit: str = "10/minute"
    rate_limit_storage_uri: str = "memory://"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _get_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {value!r}")


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    db_user = os.getenv("DB_USER", "kuurier")
    db_pass = os.getenv("DB_PASS", "kuurier")
    db_host = os.getenv("DB_HOST", "localhost")
    db_port = os.getenv("DB_PORT", "5432")
    db_name = os.getenv("DB_NAME", "kuurier")
    return f"postgresql://{db_user}:{db_pass}@{db_host}:{db_port}/{db_name}"


def load_settings() -> Settings:
    """Build Settings from the environment, enforcing production requirements."""
    settings = Settings(
        environment=os.getenv("ENVIRONMENT", "development"),
        database_url=_database_url(),
        token_duration_hours=_get_int("TOKEN_DURATION_HOURS", 720),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        rate_limit_per_minute=_get_int("RATE_LIMIT_PER_MINUTE", 100),
        public_rate_limit=os.getenv("PUBLIC_RATE_LIMIT", "10/minute"),
        rate_limit_storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
    )

    jwt_secret = os.getenv("JWT_SECRET", "")
    if not jwt_secret:
        if settings.is_production:
            raise ConfigError("JWT_SECRET is required in production")
        logger.warning("Using insecure default JWT secret. Set JWT_SECRET in production!")
        jwt_secret = INSECURE_DEV_SECRET
    if len(jwt_secret) < 32:
        raise ConfigError("JWT_SECRET must be at least 32 characters")
    settings.jwt_secret = jwt_secret.encode()

    origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if origins:
        settings.allowed_origins = [o.strip() for o in origins.split(",") if o.strip()]
    elif settings.is_production:
        raise ConfigError("CORS_ALLOWED_ORIGINS is required in production (comma-separated list)")

    return settings


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
