"""Customer domain events, their wire form and their validation."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

logger = logging.getLogger(__name__)


class EventValidationError(ValueError):
    """Raised when an event is malformed or breaks a domain rule."""


class EventType(str, Enum):
    """The kinds of customer event the platform knows."""

    CUSTOMER_CREATED = "customer.created"
    CUSTOMER_UPDATED = "customer.updated"
    ADDRESS_ADDED = "address.added"
    ADDRESS_UPDATED = "address.updated"
    ADDRESS_DELETED = "address.deleted"
    CARD_ADDED = "card.added"
    CARD_UPDATED = "card.updated"
    CARD_DELETED = "card.deleted"
    DEFAULT_SHIPPING_ADDRESS_CHANGED = "default.shipping_address.changed"
    DEFAULT_BILLING_ADDRESS_CHANGED = "default.billing_address.changed"
    DEFAULT_CREDIT_CARD_CHANGED = "default.credit_card.changed"


_RESOURCE_EVENTS = frozenset(EventType) - {
    EventType.CUSTOMER_CREATED,
    EventType.CUSTOMER_UPDATED,
}


def _type_name(value: EventType | str) -> str:
    return value.value if isinstance(value, EventType) else str(value)


def _coerce_type(value: EventType | str) -> EventType | str:
    try:
        return EventType(value)
    except ValueError:
        return value


@dataclass
class CustomerEventPayload:
    """What a customer event says happened and to which resource."""

    customer_id: str
    event_type: EventType | str
    resource_id: str = ""
    details: dict[str, str] = field(default_factory=dict)


@dataclass
class CustomerEvent:
    """A customer event as it travels through the event bus."""

    event_type: EventType | str
    event_payload: CustomerEventPayload
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self) -> str:
        """Serialise the event to its JSON wire form."""
        payload = self.event_payload
        return json.dumps(
            {
                "id": self.id,
                "type": _type_name(self.event_type),
                "timestamp": self.timestamp.isoformat(),
                "payload": {
                    "customer_id": payload.customer_id,
                    "event_type": _type_name(payload.event_type),
                    "resource_id": payload.resource_id,
                    "details": dict(payload.details),
                },
            }
        )


class CustomerEventFactory:
    """Rebuilds customer events from their JSON wire form."""

    def from_json(self, data: str | bytes) -> CustomerEvent:
        try:
            obj = json.loads(data)
            payload = obj["payload"]
            return CustomerEvent(
                id=obj["id"],
                event_type=_coerce_type(obj["type"]),
                timestamp=datetime.fromisoformat(obj["timestamp"]),
                event_payload=CustomerEventPayload(
                    customer_id=payload["customer_id"],
                    event_type=_coerce_type(payload["event_type"]),
                    resource_id=payload.get("resource_id", ""),
                    details=dict(payload.get("details") or {}),
                ),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise EventValidationError(f"malformed customer event: {exc}") from exc


def _new_event(
    event_type: EventType,
    customer_id: str,
    resource_id: str,
    details: Mapping[str, str] | None,
) -> CustomerEvent:
    return CustomerEvent(
        event_type=event_type,
        event_payload=CustomerEventPayload(
            customer_id=customer_id,
            event_type=event_type,
            resource_id=resource_id,
            details=dict(details or {}),
        ),
    )


def new_customer_created_event(customer_id, details):
    """Event announcing a new customer."""
    return _new_event(EventType.CUSTOMER_CREATED, customer_id, "", details)


def new_customer_updated_event(customer_id, details):
    """Event announcing a change to a customer record."""
    return _new_event(EventType.CUSTOMER_UPDATED, customer_id, "", details)


def new_address_added_event(customer_id, address_id, details):
    """Event announcing a new address."""
    return _new_event(EventType.ADDRESS_ADDED, customer_id, address_id, details)


def new_address_updated_event(customer_id, address_id, details):
    """Event announcing a changed address."""
    return _new_event(EventType.ADDRESS_UPDATED, customer_id, address_id, details)


def new_address_deleted_event(customer_id, address_id, details):
    """Event announcing a removed address."""
    return _new_event(EventType.ADDRESS_DELETED, customer_id, address_id, details)


def new_card_added_event(customer_id, card_id, details):
    """Event announcing a new credit card."""
    return _new_event(EventType.CARD_ADDED, customer_id, card_id, details)


def new_card_updated_event(customer_id, card_id, details):
    """Event announcing a changed credit card."""
    return _new_event(EventType.CARD_UPDATED, customer_id, card_id, details)


def new_card_deleted_event(customer_id, card_id, details):
    """Event announcing a removed credit card."""
    return _new_event(EventType.CARD_DELETED, customer_id, card_id, details)


def new_default_shipping_address_changed_event(customer_id, address_id, details):
    """Event announcing a new (or cleared) default shipping address."""
    return _new_event(
        EventType.DEFAULT_SHIPPING_ADDRESS_CHANGED, customer_id, address_id, details
    )


def new_default_billing_address_changed_event(customer_id, address_id, details):
    """Event announcing a new (or cleared) default billing address."""
    return _new_event(
        EventType.DEFAULT_BILLING_ADDRESS_CHANGED, customer_id, address_id, details
    )


def new_default_credit_card_changed_event(customer_id, card_id, details):
    """Event announcing a new (or cleared) default credit card."""
    return _new_event(EventType.DEFAULT_CREDIT_CARD_CHANGED, customer_id, card_id, details)


class CustomerEventValidator:
    """Domain rules that a customer event must satisfy."""

    def validate_customer_event(self, event: CustomerEvent) -> None:
        """Raise EventValidationError if the event breaks a customer-event rule."""
        customer_id = event.event_payload.customer_id
        type_name = _type_name(event.event_type)

        if not customer_id:
            logger.error("Customer event validation failed: missing CustomerID")
            raise EventValidationError("customer ID is required")
        if not type_name:
            logger.error("Customer event validation failed: missing EventType")
            raise EventValidationError("event type is required")
        if len(customer_id) < 3:
            logger.error(
                "Customer event validation failed: CustomerID too short: %s", customer_id
            )
            raise EventValidationError("customer ID must be at least 3 characters")

        event_type = _coerce_type(type_name)
        if not isinstance(event_type, EventType):
            logger.error(
                "Customer event validation failed: unknown event type: %s", type_name
            )
            raise EventValidationError(f"unknown customer event type: {type_name}")

        if event_type in _RESOURCE_EVENTS and not event.event_payload.resource_id:
            logger.error(
                "Customer event validation failed: missing ResourceID for event type: %s",
                type_name,
            )
            raise EventValidationError(
                f"resource ID is required for event type: {type_name}"
            )

        logger.debug(
            "Customer event validation passed for customer %s, event type %s",
            customer_id,
            type_name,
        )

    def validate_customer_event_payload(self, payload: CustomerEventPayload) -> None:
        """Raise EventValidationError if the payload lacks required fields."""
        if not payload.customer_id:
            raise EventValidationError("customer ID cannot be empty")
        if not _type_name(payload.event_type):
            raise EventValidationError("event type cannot be empty")