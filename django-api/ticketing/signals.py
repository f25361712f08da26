"""Django signals carrying ticketing notifications.

Email and other delivery channels subscribe to ``ticketing_event``; the receiver
below only records each notification in the log.
"""

import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# kwargs: event (str), payload (dict)
ticketing_event = Signal()


@receiver(ticketing_event)
def log_ticketing_event(sender, event: str, payload: dict, **kwargs):
    """Write every notification to the log."""
    logger.info("Notification %s: %s", event, payload)
