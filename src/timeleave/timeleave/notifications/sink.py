from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Outbound channel for user-facing events (toasts, push, e-mail)."""

    def notify(self, user_id: int, *, title: str, message: str, kind: str = "info") -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    """Default sink: writes notifications to the application log."""

    def notify(self, user_id: int, *, title: str, message: str, kind: str = "info") -> None:
        logger.info("notify user=%s kind=%s title=%r message=%r", user_id, kind, title, message)
