"""Delivery of bus messages to the domain event handlers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN_EVENTS_PATTERN = "domain.events.*"


@dataclass
class Message:
    """A message received from the bus, acknowledged at most once."""

    subject: str
    data: bytes
    acknowledged: bool = False
    rejected: bool = False

    def _settle(self) -> None:
        if self.acknowledged or self.rejected:
            raise RuntimeError("message was already acknowledged")

    def ack(self) -> None:
        self._settle()
        self.acknowledged = True

    def nak(self) -> None:
        self._settle()
        self.rejected = True


class MessagingService:
    """Hands domain event messages to the registry and settles them."""

    def __init__(
        self,
        registry,
        dead_letter: Callable[[bytes], None],
        domain_events_pattern: str = DEFAULT_DOMAIN_EVENTS_PATTERN,
    ) -> None:
        self._registry = registry
        self._dead_letter = dead_letter
        self._subject_root = domain_events_pattern.replace("*", "")

    def process_message(self, message: Message) -> None:
        """Handle one message; failed events go to the dead-letter queue."""
        logger.info("Received event from subject: %s", message.subject)
        if self._subject_root not in message.subject:
            logger.warning("Unknown subject: %s", message.subject)
            try:
                message.nak()
            except RuntimeError as exc:
                logger.error("Error sending NAK: %s", exc)
            return
        try:
            self.handle_domain_event(message.data)
        except Exception as exc:
            logger.error("Error handling domain event (%r): %s", message.data, exc)
            try:
                self._dead_letter(message.data)
            except Exception as dlq_exc:
                logger.error("Error sending event to DLQ: %s", dlq_exc)
        try:
            message.ack()
        except RuntimeError as exc:
            logger.error("Error sending ACK: %s", exc)

    def handle_domain_event(self, data: bytes) -> None:
        self._registry.handle_event(data)