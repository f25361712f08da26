"""Notifier that fans events out through a Django signal."""

import logging
from typing import Any

from ticketing.collaborators.interfaces import Notifier
from ticketing.signals import ticketing_event

logger = logging.getLogger(__name__)


class SignalNotifier(Notifier):
    def notify(self, event: str, payload: dict[str, Any]) -> None:
        responses = ticketing_event.send_robust(sender=self.__class__, event=event, payload=payload)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.warning(
                    "Notification receiver %r failed for %s: %s",
                    receiver,
                    event,
                    response,
                )


class RecordingNotifier(Notifier):
    """Keeps every notification in memory."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        self.sent.append((event, payload))

    def events(self) -> list[str]:
        return [event for event, _ in self.sent]
