"""Logging configuration."""

import logging
from pathlib import Path

from photo_culling.config import LOG_DATE_FORMAT, LOG_FORMAT, LOG_LEVEL


def setup_logging(
    level: int | str = LOG_LEVEL,
    log_file: Path | None = None,
    console: bool = True,
) -> None:
    """Configure the root logger.

    Args:
        level: Logging level name or number.
        log_file: Optional file that receives a copy of every record.
        console: Whether to also log to stderr.
    """
    handlers: list[logging.Handler] = []
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    if console:
        handlers.append(logging.StreamHandler())
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    # Quiet noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
