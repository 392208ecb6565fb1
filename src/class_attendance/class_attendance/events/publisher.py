from __future__ import annotations

import json
import logging
from typing import Protocol

from ..core.constants import EVENT_EXCHANGE
from .model import DomainEvent

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    def publish(self, event: DomainEvent) -> None:
        raise NotImplementedError


class LoggingEventPublisher(EventPublisher):
    """Writes events to the log; stands in where no broker is configured."""

    def __init__(self, exchange: str = EVENT_EXCHANGE):
        self._exchange = exchange

    def publish(self, event: DomainEvent) -> None:
        logger.info("%s %s %s", self._exchange, event.routing_key, json.dumps(event.to_payload(), sort_keys=True))


class RecordingEventPublisher(EventPublisher):
    """Keeps published events in memory (tests, local runs)."""

    def __init__(self):
        self.events: list[DomainEvent] = []

    def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_cls) -> list:
        return [e for e in self.events if isinstance(e, event_cls)]
