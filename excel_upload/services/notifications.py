"""
Notification Channel

Non-blocking notification events emitted by the upload orchestrator.

Business logic emits a tagged Notification {kind, message, operation};
presentation layers subscribe and decide how to render it. Emitting
never waits on, or fails because of, a subscriber.
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Callable, Dict, Any, List, Optional

from excel_upload.models.enums import NotificationKind, Operation

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """A user-facing notification tied to the operation that raised it."""
    kind: NotificationKind
    message: str
    operation: Optional[Operation] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["operation"] = self.operation.value if self.operation else None
        data["timestamp"] = self.timestamp.isoformat()
        return data


NotificationHandler = Callable[[Notification], None]


class NotificationChannel:
    """
    Fan-out of notifications to subscribers.

    Keeps the emitted notifications in `history` so that callers (and
    tests) can inspect what the user was told.
    """

    def __init__(self):
        self._subscribers: List[NotificationHandler] = []
        self.history: List[Notification] = []

    def subscribe(self, handler: NotificationHandler) -> Callable[[], None]:
        """Register a handler. Returns a function that unsubscribes it."""
        self._subscribers.append(handler)

        def unsubscribe():
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def emit(
        self,
        kind: NotificationKind,
        message: str,
        operation: Optional[Operation] = None
    ) -> Notification:
        notification = Notification(kind=kind, message=message, operation=operation)
        self.history.append(notification)

        log_entry = {
            "notification_kind": kind.value,
            "operation": operation.value if operation else None,
        }
        if kind == NotificationKind.success:
            logger.info(f"Notify: {message}", extra=log_entry)
        else:
            logger.warning(f"Notify: {message}", extra=log_entry)

        for handler in list(self._subscribers):
            try:
                handler(notification)
            except Exception as e:
                logger.error(f"Notification subscriber failed: {e}", exc_info=True)

        return notification

    def success(self, message: str, operation: Optional[Operation] = None) -> Notification:
        return self.emit(NotificationKind.success, message, operation)

    def error(self, message: str, operation: Optional[Operation] = None) -> Notification:
        return self.emit(NotificationKind.error, message, operation)

    def warning(self, message: str, operation: Optional[Operation] = None) -> Notification:
        return self.emit(NotificationKind.warning, message, operation)

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None
