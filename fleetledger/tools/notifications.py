"""
Notification dispatch for booking events.

Delivery is fire-and-forget: a failing notifier is logged and never affects
the command that triggered it.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Iterable, Optional

import structlog
from pydantic import BaseModel


class Notification(BaseModel):
    """A message for a carrier or driver."""

    recipient_kind: str  # "carrier" or "driver"
    recipient_id: str
    recipient_contact: Optional[str] = None
    subject: str
    body: str


class Notifier(ABC):
    """Delivery channel for notifications (email, SMS, push...)."""

    @abstractmethod
    def send(self, notification: Notification) -> None:
        """Deliver one notification. May raise on failure."""


class LoggingNotifier(Notifier):
    """Writes notifications to the structured log instead of delivering them."""

    def __init__(self, logger: Optional[structlog.BoundLogger] = None) -> None:
        self.logger = logger or structlog.get_logger(component="notifier")

    def send(self, notification: Notification) -> None:
        self.logger.info(
            "notification_sent",
            recipient_kind=notification.recipient_kind,
            recipient_id=notification.recipient_id,
            recipient_contact=notification.recipient_contact,
            subject=notification.subject,
        )


class NotificationDispatcher:
    """
    Hands notifications to a notifier without blocking the caller.

    With an executor, each notification is submitted as its own task;
    without one, delivery happens inline but errors are still contained.
    """

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        executor: Optional[Executor] = None,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        self.notifier = notifier or LoggingNotifier()
        self.executor = executor
        self.logger = logger or structlog.get_logger(component="notification_dispatcher")

    def dispatch(self, notifications: Iterable[Notification]) -> None:
        """Queue every notification for delivery."""
        for notification in notifications:
            if self.executor is not None:
                self.executor.submit(self._deliver, notification)
            else:
                self._deliver(notification)

    def _deliver(self, notification: Notification) -> None:
        try:
            self.notifier.send(notification)
        except Exception as e:
            self.logger.error(
                "notification_failed",
                recipient_kind=notification.recipient_kind,
                recipient_id=notification.recipient_id,
                error=str(e),
            )
