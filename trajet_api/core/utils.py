"""
Utility helpers shared across routers/services.
"""

from datetime import datetime, timezone
from typing import Optional

from .config import get_settings


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path into an absolute URL rooted at PUBLIC_BASE_URL.
    """
    settings = get_settings()
    base_url = (base or settings.public_base_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
