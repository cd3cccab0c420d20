"""Event handlers run by the event reader service."""

from __future__ import annotations

import logging
from typing import Any, Callable

from shopcustomers.events import CustomerEvent, CustomerEventFactory, EventType

logger = logging.getLogger(__name__)


def _log_event_processing(event_type: str, customer_id: str, resource_id: str) -> None:
    logger.info(
        "Eventreader: processing %s for customer %s (resource %s)",
        event_type,
        customer_id,
        resource_id or "-",
    )


def _log_event_completion(
    event_type: str, customer_id: str, error: BaseException | None
) -> None:
    if error is None:
        logger.info("Eventreader: completed %s for customer %s", event_type, customer_id)
    else:
        logger.error(
            "Eventreader: %s for customer %s failed: %s", event_type, customer_id, error
        )


class OnCustomerCreated:
    """Follows up on newly created customers."""

    def handle(self, event: Any) -> bool:
        """Process a customer-created event; return False if the event is ignored."""
        if not isinstance(event, CustomerEvent):
            logger.error("Eventreader: Expected CustomerEvent, got %s", type(event).__name__)
            return False
        if event.event_type != EventType.CUSTOMER_CREATED:
            logger.debug(
                "Eventreader: Ignoring non-CustomerCreated event: %s", event.event_type
            )
            return False

        payload = event.event_payload
        _log_event_processing(self.event_type(), payload.customer_id, payload.resource_id)
        self._process_customer_created(event)
        return True

    def _process_customer_created(self, event: CustomerEvent) -> None:
        customer_id = event.event_payload.customer_id
        steps = (
            self._send_welcome_email,
            self._initialize_customer_preferences,
            self._update_customer_analytics,
            self._create_customer_profile,
        )
        for step in steps:
            try:
                step(customer_id)
            except Exception as exc:  # one failed follow-up must not stop the rest
                _log_event_completion(self.event_type(), customer_id, exc)
        _log_event_completion(self.event_type(), customer_id, None)

    def _send_welcome_email(self, customer_id: str) -> None:
        logger.debug("Eventreader: welcome email step for customer %s", customer_id)

    def _initialize_customer_preferences(self, customer_id: str) -> None:
        logger.debug("Eventreader: preference initialisation step for customer %s", customer_id)

    def _update_customer_analytics(self, customer_id: str) -> None:
        logger.debug("Eventreader: analytics step for customer %s", customer_id)

    def _create_customer_profile(self, customer_id: str) -> None:
        logger.debug("Eventreader: profile creation step for customer %s", customer_id)

    def event_type(self) -> str:
        """Return the event type this handler processes."""
        return EventType.CUSTOMER_CREATED.value

    def create_factory(self) -> CustomerEventFactory:
        """Return the factory that decodes this handler's events."""
        return CustomerEventFactory()

    def create_handler(self) -> Callable[[CustomerEvent], bool]:
        """Return a callable that handles one event."""
        return self.handle