import logging
import os
from typing import Optional

_CONFIGURED = False


def setup_logging(level: Optional[str] = None, force: bool = False) -> None:
    """Configure root logging once with a consistent, readable format.

    Args:
        level: Optional log level name (e.g. "INFO", "DEBUG"). If omitted,
               reads LOG_LEVEL env or defaults to WARNING.
        force: Reconfigure even if logging was already set up.
    """
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    log_level_name = (level or os.getenv("LOG_LEVEL") or "WARNING").upper()
    log_level = getattr(logging, log_level_name, logging.WARNING)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=force,
    )

    _CONFIGURED = True
