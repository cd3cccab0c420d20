import pytest

from shopcustomers.events import (
    CustomerEvent,
    CustomerEventFactory,
    CustomerEventPayload,
    CustomerEventValidator,
    EventType,
    EventValidationError,
    new_address_added_event,
    new_address_deleted_event,
    new_address_updated_event,
    new_card_added_event,
    new_card_deleted_event,
    new_card_updated_event,
    new_customer_created_event,
    new_customer_updated_event,
    new_default_billing_address_changed_event,
    new_default_credit_card_changed_event,
    new_default_shipping_address_changed_event,
)

RESOURCE_CONSTRUCTORS = [
    (new_address_added_event, EventType.ADDRESS_ADDED),
    (new_address_updated_event, EventType.ADDRESS_UPDATED),
    (new_address_deleted_event, EventType.ADDRESS_DELETED),
    (new_card_added_event, EventType.CARD_ADDED),
    (new_card_updated_event, EventType.CARD_UPDATED),
    (new_card_deleted_event, EventType.CARD_DELETED),
    (new_default_shipping_address_changed_event, EventType.DEFAULT_SHIPPING_ADDRESS_CHANGED),
    (new_default_billing_address_changed_event, EventType.DEFAULT_BILLING_ADDRESS_CHANGED),
    (new_default_credit_card_changed_event, EventType.DEFAULT_CREDIT_CARD_CHANGED),
]


def test_customer_created_event_fields():
    event = new_customer_created_event("customer-123", {"source": "test"})
    assert event.event_type is EventType.CUSTOMER_CREATED
    assert event.event_payload.event_type is EventType.CUSTOMER_CREATED
    assert event.event_payload.customer_id == "customer-123"
    assert event.event_payload.resource_id == ""
    assert event.event_payload.details == {"source": "test"}


def test_details_default_to_empty_and_are_copied():
    details = {"source": "test"}
    event = new_customer_updated_event("customer-123", details)
    details["source"] = "changed"
    assert event.event_payload.details == {"source": "test"}
    assert new_customer_updated_event("customer-123", None).event_payload.details == {}


@pytest.mark.parametrize("constructor,event_type", RESOURCE_CONSTRUCTORS)
def test_resource_constructors(constructor, event_type):
    event = constructor("customer-123", "resource-1", None)
    assert event.event_type is event_type
    assert event.event_payload.resource_id == "resource-1"
    assert CustomerEventValidator().validate_customer_event(event) is None


def test_events_get_distinct_ids():
    first = new_customer_created_event("customer-123", None)
    second = new_customer_created_event("customer-123", None)
    assert first.id != second.id
    assert first.id and second.id


def test_json_round_trip():
    event = new_card_added_event("customer-123", "card-1", {"card_number": "[card-number]"})
    restored = CustomerEventFactory().from_json(event.to_json())
    assert restored == event
    assert restored.event_type is EventType.CARD_ADDED


def test_from_json_accepts_bytes():
    event = new_customer_created_event("customer-123", None)
    restored = CustomerEventFactory().from_json(event.to_json().encode())
    assert restored.event_payload.customer_id == "customer-123"


@pytest.mark.parametrize("data", ["not json", "{}", '{"id": "x"}'])
def test_from_json_rejects_malformed(data):
    with pytest.raises(EventValidationError):
        CustomerEventFactory().from_json(data)


def _event(customer_id, event_type, resource_id=""):
    return CustomerEvent(
        event_type=event_type,
        event_payload=CustomerEventPayload(customer_id, event_type, resource_id),
    )


@pytest.mark.parametrize(
    "event,message",
    [
        (_event("", EventType.CUSTOMER_CREATED), "customer ID is required"),
        (_event("customer-123", ""), "event type is required"),
        (_event("ab", EventType.CUSTOMER_CREATED), "at least 3 characters"),
        (_event("customer-123", "bogus"), "unknown customer event type: bogus"),
        (_event("customer-123", EventType.ADDRESS_ADDED), "resource ID is required"),
    ],
)
def test_validator_rejects(event, message):
    with pytest.raises(EventValidationError, match=message):
        CustomerEventValidator().validate_customer_event(event)


def test_validator_accepts_customer_events_without_resource():
    validator = CustomerEventValidator()
    for event in (
        new_customer_created_event("customer-123", None),
        new_customer_updated_event("customer-123", None),
    ):
        assert validator.validate_customer_event(event) is None


def test_validator_accepts_known_type_given_as_string():
    event = _event("customer-123", EventType.CUSTOMER_UPDATED.value)
    assert CustomerEventValidator().validate_customer_event(event) is None


def test_payload_validation():
    validator = CustomerEventValidator()
    with pytest.raises(EventValidationError, match="customer ID cannot be empty"):
        validator.validate_customer_event_payload(
            CustomerEventPayload("", EventType.CUSTOMER_CREATED)
        )
    with pytest.raises(EventValidationError, match="event type cannot be empty"):
        validator.validate_customer_event_payload(CustomerEventPayload("customer-123", ""))
    assert (
        validator.validate_customer_event_payload(
            CustomerEventPayload("customer-123", EventType.CUSTOMER_CREATED)
        )
        is None
    )