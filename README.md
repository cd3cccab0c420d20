# shopcustomers

Customer management for a small shop. The package has these parts:

- Dataclass records for customers, addresses, credit cards and status history.
- A repository that stores those records in SQLite through the standard `sqlite3` module.
- An outbox that records a domain event for every change. The event is written inside the same transaction as the change.
- A service layer that validates requests before they reach the repository.
- An event reader service that registers handlers on an event bus.

The package uses only the standard library.

## Install

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
import sqlite3

from shopcustomers.models import Customer
from shopcustomers.repository import CustomerRepository
from shopcustomers.service import CustomerService
from shopcustomers.store import MemoryOutbox, create_schema

connection = sqlite3.connect(":memory:")
create_schema(connection)
outbox = MemoryOutbox()

service = CustomerService(CustomerRepository(connection, outbox))
customer = Customer(username="jdoe", email="jdoe@example.com")
service.create_customer(customer)

found = service.get_customer_by_email("jdoe@example.com")
print(found.customer_id, found.customer_status)   # a fresh UUID, "active"
print(outbox.events[-1].event_type.value)         # "customer.created"
```

## Modules

### `shopcustomers.models`

This module holds the records `Customer`, `Address`, `CreditCard` and `CustomerStatus`.

Validation is done by `validate()` methods, which raise `ValidationError` (a `ValueError`):

- `Customer.validate()` requires a username and an email address that contains `@`.
- `Address.validate()` requires the type, first line, city, state and zip.
- `CreditCard.validate()` requires the type, number, holder name and expiry.

Partial updates are described by `PatchCustomerRequest`, `PatchAddressRequest` and `PatchCreditCardRequest`:

- Each has a `from_dict()` class method that builds it from decoded JSON and ignores unknown keys.
- In a `PatchCustomerRequest`, a field left as `None` is not changed.

### `shopcustomers.events`

This module holds the customer events:

- `EventType` enumerates the eleven customer event kinds, for example `"customer.created"` and `"address.added"`.
- `CustomerEvent` and `CustomerEventPayload` are the event and its contents.
- The constructors are `new_customer_created_event`, `new_customer_updated_event`, `new_address_added_event`, `new_address_updated_event`, `new_address_deleted_event`, `new_card_added_event`, `new_card_updated_event`, `new_card_deleted_event`, `new_default_shipping_address_changed_event`, `new_default_billing_address_changed_event` and `new_default_credit_card_changed_event`.
- `CustomerEvent.to_json()` writes an event as JSON, and `CustomerEventFactory().from_json()` reads it back.
- `CustomerEventValidator` checks an event against the domain rules:
  - the customer ID must be present and at least 3 characters long;
  - the event type must be known;
  - address, card and default-change events must carry a resource ID.

  A broken rule raises `EventValidationError`.

### `shopcustomers.store`

This module provides the storage foundations:

- `create_schema(connection)` creates the tables and turns on SQLite foreign keys. Deleting a customer then cascades to its rows. Deleting an address or card clears any default that points at it.
- `parse_uuid(value)` returns a `UUID` or raises `InvalidUUIDError`.
- `OutboxWriter` is the abstract base for outboxes. `MemoryOutbox` is the one included; it keeps written events in its `events` list.
- `RepositoryBase(db, outbox_writer)` provides `transaction()`, a context manager that commits on success and rolls back on error. It also provides these operations:
  - `add_address`, `update_address`, `delete_address`;
  - `add_credit_card`, `update_credit_card`, `delete_credit_card`;
  - `update_default_shipping_address`, `update_default_billing_address`, `update_default_credit_card`;
  - `clear_default_shipping_address`, `clear_default_billing_address`, `clear_default_credit_card`.

### `shopcustomers.repository`

`CustomerRepository` extends `RepositoryBase` with whole-customer operations:

- `insert_customer()` creates a customer. It assigns a new ID and defaults the status to `"active"`. It stores the addresses and cards and an initial status-history entry, then reloads the relations.
- `get_customer_by_id()` and `get_customer_by_email()` look a customer up. Each returns `None` when there is no match.
- `update_customer()` replaces the record and all related rows (PUT).
- `patch_customer()` applies a `PatchCustomerRequest` (PATCH):
  - a non-empty address or card list replaces the stored list;
  - an empty string for a default ID clears that default.

### `shopcustomers.service`

- `BaseService` gives a service its `name` and `health()`, `start()` and `stop()`.
- `CustomerService(repo)` validates customers, their addresses and cards, and patch data, then passes the work to the repository. Invalid input raises `ValidationError`.

### `shopcustomers.eventreader`

- `EventBus` is the abstract interface for a message bus.
- `EventServiceBase` registers handlers on the bus and counts them with `handler_count()`. Its `start()` calls the bus's `start_consuming()`.
- `EventReaderService(event_bus)` is the event reader service.
- `register_handler(service, factory, handler)` registers a handler on a service.

### `shopcustomers.handlers`

`OnCustomerCreated` handles `customer.created` events:

- `handle()` returns `True` for an event it processed.
- It returns `False` for any other event type, or for an object that is not a `CustomerEvent`.

### `shopcustomers.utils`

- `CustomerServiceUtils` logs customer operations and validates customer IDs.
- `new_customer_error(message, cause)` logs a failure and returns the exception to raise.

## Errors

Failures are raised as exceptions:

- `CustomerNotFoundError`, `AddressNotFoundError` and `CreditCardNotFoundError` for missing records.
- `InvalidUUIDError` for malformed identifiers.
- `DatabaseOperationError` for failed statements.
- `TransactionFailedError` for transactions that cannot begin or commit.

All of these derive from `RepositoryError`.

## What it does not do

- It provides no HTTP API, server or command-line program.
- It ships no message-broker client. `EventBus` is only an interface, and you supply the implementation.
- Nothing delivers outbox events anywhere. `MemoryOutbox` only collects them in memory.
- The follow-up steps of `OnCustomerCreated` (welcome email, preferences, analytics, profile) only write log messages.