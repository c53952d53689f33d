"""
Centralised logging configuration.

The whole package logs under the ``trajet_api`` logger; modules ask for a
child with :func:`get_logger`.  :func:`configure_logging` is called once by the
application factory and may be called again safely (tests, scripts).
"""

from __future__ import annotations

import logging
import logging.config

ROOT_LOGGER = "trajet_api"

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            # uvicorn/sqlalchemy loggers keep their own handlers
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": _FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                ROOT_LOGGER: {
                    "handlers": ["console"],
                    "level": (level or "INFO").upper(),
                    "propagate": False,
                },
            },
        }
    )


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``trajet_api`` or one of its children (``trajet_api.<name>``)."""
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
