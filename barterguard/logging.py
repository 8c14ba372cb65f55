import logging
from typing import Mapping, Optional, Union


def configure_logging(
    level: Union[int, str] = logging.INFO,
    overrides: Optional[Mapping[str, str]] = None,
) -> logging.Logger:
    """Set up root logging and apply per-logger levels.

    *overrides* maps logger names to level names, normally
    ``ModerationConfig.log_levels``, e.g. ``{"barterguard.moderation": "DEBUG"}``.
    """
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level.upper() if isinstance(level, str) else level,
    )
    for name, name_level in (overrides or {}).items():
        logging.getLogger(name).setLevel(name_level.upper())
    return logging.getLogger("barterguard")
