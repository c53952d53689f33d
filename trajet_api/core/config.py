"""
Configuration helpers for the Trajet backend.

Every tunable (database, JWT, SMTP, code/token lifetimes, search defaults)
comes from environment variables so that routers/services never read
os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    jwt_secret: str
    jwt_expiration_seconds: int
    verification_code_length: int
    verification_code_ttl_seconds: int
    reset_password_ttl_seconds: int
    trajet_search_range_days: int
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    log_level: str
    cors_origins: tuple[str, ...]


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str | None, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _csv(value: str | None) -> tuple[str, ...]:
        return tuple(item.strip().rstrip("/") for item in (value or "").split(",") if item.strip())

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./trajet.db"),
        jwt_secret=os.getenv("JWT_SECRET", "change-me"),
        jwt_expiration_seconds=_int(os.getenv("JWT_EXPIRATION"), 86400),
        verification_code_length=_int(os.getenv("VERIFICATION_CODE_LENGTH"), 6),
        verification_code_ttl_seconds=_int(os.getenv("VERIFICATION_CODE_EXPIRY"), 3600),
        reset_password_ttl_seconds=_int(os.getenv("RESET_PASSWORD_EXPIRY"), 3600),
        trajet_search_range_days=_int(os.getenv("TRAJET_SEARCH_RANGE_DAYS"), 5),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT"), 465),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        cors_origins=_csv(os.getenv("CORS_ORIGINS")),
    )
