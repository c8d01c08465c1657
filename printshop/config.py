"""
Settings and logging.

Values come from the environment (or a `.env` file) via python-decouple:

    PRINTSHOP_DATABASE_URL       sqlite+aiosqlite:///:memory:
    PRINTSHOP_SESSION_TTL_HOURS  24
    PRINTSHOP_LOG_LEVEL          INFO
    PRINTSHOP_ARTWORK_BUCKET     artwork
    PRINTSHOP_PRODUCT_TYPE       default
"""

from __future__ import annotations

import logging.config
from dataclasses import dataclass
from datetime import timedelta

from decouple import config


# ═══════════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///:memory:"
    session_ttl: timedelta = timedelta(hours=24)
    log_level: str = "INFO"
    artwork_bucket: str = "artwork"
    default_product_type: str = "default"


def load_settings() -> Settings:
    """Read settings from the environment."""
    return Settings(
        database_url=config(
            "PRINTSHOP_DATABASE_URL", default="sqlite+aiosqlite:///:memory:"
        ),
        session_ttl=timedelta(
            hours=config("PRINTSHOP_SESSION_TTL_HOURS", default=24, cast=float)
        ),
        log_level=config("PRINTSHOP_LOG_LEVEL", default="INFO").upper(),
        artwork_bucket=config("PRINTSHOP_ARTWORK_BUCKET", default="artwork"),
        default_product_type=config("PRINTSHOP_PRODUCT_TYPE", default="default"),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════════

def logging_config(level: str) -> dict[str, object]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{levelname} {asctime} {name} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
        },
        "loggers": {
            "printshop": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(settings: Settings | None = None) -> None:
    """Install the console handler for the `printshop` logger tree."""
    level = (settings or load_settings()).log_level
    logging.config.dictConfig(logging_config(level))


__all__ = (
    "Settings",
    "load_settings",
    "logging_config",
    "configure_logging",
)
