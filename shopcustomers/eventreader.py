"""The event reader service: consumes events from a bus and dispatches handlers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from shopcustomers.events import CustomerEvent

logger = logging.getLogger(__name__)


class EventBus(ABC):
    """A message bus that publishes events and feeds them to handlers."""

    @abstractmethod
    def publish(self, topic: str, event: CustomerEvent) -> None:
        """Publish an event on the topic."""

    @abstractmethod
    def publish_raw(self, topic: str, event_type: str, data: bytes) -> None:
        """Publish already encoded event data on the topic."""

    @abstractmethod
    def start_consuming(self) -> None:
        """Begin delivering events to the registered handlers."""

    @abstractmethod
    def register_handler(self, factory: Any, handler: Callable[[Any], Any]) -> None:
        """Register a handler together with the factory that decodes its events."""

    @abstractmethod
    def write_topic(self) -> str:
        """Return the topic events are written to."""

    @abstractmethod
    def read_topics(self) -> list[str]:
        """Return the topics events are read from."""


class EventServiceBase:
    """A named service that owns an event bus and its handlers."""

    def __init__(self, name: str, event_bus: EventBus) -> None:
        self.name = name
        self.event_bus = event_bus
        self.running = False
        self._handlers: list[tuple[Any, Callable[[Any], Any]]] = []

    def register_handler(self, factory: Any, handler: Callable[[Any], Any]) -> None:
        """Register a handler with the bus and remember it."""
        self.event_bus.register_handler(factory, handler)
        self._handlers.append((factory, handler))
        logger.debug("Service %s registered handler #%d", self.name, len(self._handlers))

    def handler_count(self) -> int:
        """Return how many handlers have been registered."""
        return len(self._handlers)

    def start(self) -> None:
        """Start consuming events from the bus."""
        logger.info("Service %s starting", self.name)
        self.event_bus.start_consuming()
        self.running = True

    def stop(self) -> None:
        """Stop the service."""
        logger.info("Service %s stopping", self.name)
        self.running = False

    def health(self) -> bool:
        """Return True when the service is able to process events."""
        return True


class EventReaderService(EventServiceBase):
    """The service that reads platform events and runs their handlers."""

    def __init__(self, event_bus: EventBus) -> None:
        super().__init__("eventreader", event_bus)


def register_handler(
    service: EventServiceBase, factory: Any, handler: Callable[[Any], Any]
) -> None:
    """Register a handler and its event factory on the service."""
    service.register_handler(factory, handler)