"""Process-wide settings accessor and logging setup.

Settings are read from the environment once and cached:

    from soochna.core.settings import get_settings

    uploads_dir = get_settings().storage.uploads_dir

Invalid configuration stops the process at startup rather than
surfacing on the first request that needs it.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import ValidationError

from soochna.core.config import (
    ConfigValidationError,
    Settings,
    validate_settings,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _describe_validation_error(error: ValidationError) -> str:
    """One line per invalid field, as dotted path and message."""
    lines = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "settings"
        lines.append(f"  - {location}: {item['msg']}")
    return "\n".join(lines)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load, validate and cache settings from the environment.

    Raises:
        SystemExit: If the environment does not describe a usable configuration.
    """
    try:
        settings = Settings()
        validate_settings(settings)
    except ValidationError as e:
        logger.critical("Invalid configuration:\n%s", _describe_validation_error(e))
        raise SystemExit(1) from e
    except ConfigValidationError as e:
        logger.critical("Invalid configuration: %s (field: %s)", e.message, e.field or "unknown")
        raise SystemExit(1) from e

    logger.info(
        "Configuration loaded: environment=%s, uploads_dir=%s, notifications=%s",
        settings.environment.value,
        settings.storage.uploads_dir,
        "on" if settings.notifications.enabled else "off",
    )
    return settings


def clear_settings_cache() -> None:
    """Forget cached settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()


def configure_logging(settings: Settings) -> None:
    """Configure root logging at the configured level.

    SQL echo is routed through the same handlers when enabled.
    """
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    if settings.database.echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
