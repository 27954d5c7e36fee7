from __future__ import annotations

import logging
import os

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str | int | None = None) -> None:
    """Configure root logging once.

    Level comes from *level*, then ``RENTMATCH_LOG_LEVEL``, then DEBUG when
    ``RENTMATCH_ENV=dev``, otherwise INFO. Later calls do nothing.
    """
    global _configured
    if _configured:
        return
    if level is None:
        level = os.getenv("RENTMATCH_LOG_LEVEL")
    if not level:
        level = "DEBUG" if os.getenv("RENTMATCH_ENV", "").lower() == "dev" else "INFO"
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=_FORMAT)
    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name or "rentmatch")
