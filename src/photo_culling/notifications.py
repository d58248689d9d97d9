"""Transient user-facing notifications."""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from photo_culling.config import NOTIFICATION_HISTORY
from photo_culling.errors import CullingError, ExternalServiceError

logger = logging.getLogger(__name__)


class Level(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    Level.INFO: logging.INFO,
    Level.SUCCESS: logging.INFO,
    Level.WARNING: logging.WARNING,
    Level.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class Notifier:
    """Keeps the most recent notifications and mirrors them to the log."""

    def __init__(self, history: int = NOTIFICATION_HISTORY) -> None:
        self._items: deque[Notification] = deque(maxlen=history)

    def notify(self, level: Level | str, message: str) -> Notification:
        item = Notification(Level(level), message)
        self._items.append(item)
        logger.log(_LOG_LEVELS[item.level], message)
        return item

    def info(self, message: str) -> Notification:
        return self.notify(Level.INFO, message)

    def success(self, message: str) -> Notification:
        return self.notify(Level.SUCCESS, message)

    def warning(self, message: str) -> Notification:
        return self.notify(Level.WARNING, message)

    def error(self, message: str) -> Notification:
        return self.notify(Level.ERROR, message)

    def report(self, exc: CullingError) -> Notification:
        """External failures are errors; everything else is a warning."""
        if isinstance(exc, ExternalServiceError):
            return self.error(str(exc))
        return self.warning(str(exc))

    @property
    def items(self) -> list[Notification]:
        return list(self._items)

    @property
    def latest(self) -> Notification | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()
