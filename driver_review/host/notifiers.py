"""
Notifier implementations.
"""

from typing_extensions import override

from ..interfaces import NotificationKind, Notifier
from ..logging_config import get_logger
from ..models import Rating


class LoggingNotifier(Notifier):
    """Sends notifications to the log; used by the CLI."""

    def __init__(self) -> None:
        self.logger = get_logger("notifier")

    @override
    def notify(self, message: str, kind: NotificationKind = NotificationKind.NORMAL) -> None:
        if kind is NotificationKind.ERROR:
            self.logger.warning(message)
        else:
            self.logger.info(f"[{kind.value}] {message}")

    @override
    def alert_new_review(self, rating: Rating) -> None:
        self.logger.info(f"New review from {rating.reviewer}: {rating.rating} stars")


class RecordingNotifier(Notifier):
    """Remembers every notification and alert, for tests."""

    def __init__(self) -> None:
        self.notifications = list[tuple[str, NotificationKind]]()
        self.alerts = list[Rating]()

    @override
    def notify(self, message: str, kind: NotificationKind = NotificationKind.NORMAL) -> None:
        self.notifications.append((message, kind))

    @override
    def alert_new_review(self, rating: Rating) -> None:
        self.alerts.append(rating)
