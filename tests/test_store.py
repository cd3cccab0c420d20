import sqlite3
from uuid import UUID, uuid4

import pytest

from shopcustomers.events import EventType
from shopcustomers.models import Address, CreditCard
from shopcustomers.store import (
    AddressNotFoundError,
    CreditCardNotFoundError,
    CustomerNotFoundError,
    DatabaseOperationError,
    InvalidUUIDError,
    MemoryOutbox,
    OutboxWriter,
    RepositoryBase,
    RepositoryError,
    create_schema,
    parse_uuid,
)


class FailingOutbox(OutboxWriter):
    def write_event(self, connection, event):
        raise RuntimeError("outbox down")


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def outbox():
    return MemoryOutbox()


@pytest.fixture
def repo(conn, outbox):
    return RepositoryBase(conn, outbox)


def _insert_customer(conn):
    customer_uuid = uuid4()
    conn.execute(
        "INSERT INTO customer (customer_id, user_name, email) VALUES (?, ?, ?)",
        (str(customer_uuid), "tester", "tester@example.com"),
    )
    conn.commit()
    return str(customer_uuid)


def _address():
    return Address(
        address_type="shipping",
        first_name="Test",
        last_name="User",
        address_1="123 Main St",
        city="Test City",
        state="TS",
        zip="12345",
    )


def _card():
    return CreditCard(
        card_type="visa",
        card_number="test-card-number",
        card_holder_name="Test User",
        card_expires="12/25",
        card_cvv="000",
    )


def _count(conn, table):
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def test_parse_uuid_round_trip():
    value = uuid4()
    assert parse_uuid(str(value)) == value
    assert parse_uuid(value) is value


def test_parse_uuid_rejects_garbage():
    with pytest.raises(InvalidUUIDError):
        parse_uuid("test-id")


def test_error_hierarchy(repo):
    with pytest.raises(RepositoryError) as uuid_error:
        parse_uuid("test-id")
    assert isinstance(uuid_error.value, InvalidUUIDError)
    with pytest.raises(LookupError) as lookup_error:
        repo.delete_address(str(uuid4()))
    assert isinstance(lookup_error.value, AddressNotFoundError)


def test_create_schema_creates_tables(conn):
    names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"customer", "address", "credit_card", "customer_status_history"} <= names


def test_memory_outbox_records_events(conn, outbox, repo):
    customer_id = _insert_customer(conn)
    repo.clear_default_credit_card(customer_id)
    assert len(outbox.events) == 1
    assert outbox.events[0].event_type == EventType.DEFAULT_CREDIT_CARD_CHANGED


def test_add_address_stores_and_publishes(conn, outbox, repo):
    customer_id = _insert_customer(conn)
    address = repo.add_address(customer_id, _address())
    assert address.customer_id == UUID(customer_id)
    assert address.address_id is not None
    stored = repo._addresses_for(UUID(customer_id))
    assert stored == [address]
    event = outbox.events[-1]
    assert event.event_type == EventType.ADDRESS_ADDED
    assert event.event_payload.resource_id == str(address.address_id)
    assert event.event_payload.details == {"address_type": "shipping"}


def test_add_address_invalid_customer_id(repo, outbox):
    with pytest.raises(InvalidUUIDError):
        repo.add_address("not-a-uuid", _address())
    assert outbox.events == []


def test_add_address_unknown_customer_rolls_back(conn, repo, outbox):
    with pytest.raises(DatabaseOperationError):
        repo.add_address(str(uuid4()), _address())
    assert _count(conn, "address") == 0
    assert outbox.events == []


def test_outbox_failure_rolls_back_insert(conn):
    customer_id = _insert_customer(conn)
    repo = RepositoryBase(conn, FailingOutbox())
    with pytest.raises(RuntimeError):
        repo.add_address(customer_id, _address())
    assert _count(conn, "address") == 0


def test_transaction_rolls_back_on_error(conn, repo):
    customer_id = _insert_customer(conn)
    with pytest.raises(KeyError):
        with repo.transaction() as tx:
            tx.execute("DELETE FROM customer WHERE customer_id = ?", (customer_id,))
            raise KeyError("boom")
    assert _count(conn, "customer") == 1


def test_update_address(conn, outbox, repo):
    customer_id = _insert_customer(conn)
    added = repo.add_address(customer_id, _address())
    change = _address()
    change.city = "Other City"
    change.customer_id = added.customer_id
    repo.update_address(str(added.address_id), change)
    stored = repo._addresses_for(UUID(customer_id))
    assert stored[0].city == "Other City"
    assert outbox.events[-1].event_type == EventType.ADDRESS_UPDATED
    assert outbox.events[-1].event_payload.customer_id == customer_id


def test_update_missing_address(repo):
    with pytest.raises(AddressNotFoundError):
        repo.update_address(str(uuid4()), _address())


def test_delete_address(conn, outbox, repo):
    customer_id = _insert_customer(conn)
    added = repo.add_address(customer_id, _address())
    repo.delete_address(str(added.address_id))
    assert _count(conn, "address") == 0
    event = outbox.events[-1]
    assert event.event_type == EventType.ADDRESS_DELETED
    assert event.event_payload.customer_id == ""
    assert event.event_payload.resource_id == str(added.address_id)


def test_delete_missing_address(repo):
    with pytest.raises(AddressNotFoundError):
        repo.delete_address(str(uuid4()))


def test_add_credit_card(conn, outbox, repo):
    customer_id = _insert_customer(conn)
    card = repo.add_credit_card(customer_id, _card())
    assert repo._credit_cards_for(UUID(customer_id)) == [card]
    event = outbox.events[-1]
    assert event.event_type == EventType.CARD_ADDED
    assert event.event_payload.details == {"card_number": "test-card-number"}


def test_update_credit_card_keeps_number(conn, repo):
    customer_id = _insert_customer(conn)
    card = repo.add_credit_card(customer_id, _card())
    change = _card()
    change.card_number = "other-number"
    change.card_holder_name = "New Holder"
    repo.update_credit_card(str(card.card_id), change)
    stored = repo._credit_cards_for(UUID(customer_id))[0]
    assert stored.card_holder_name == "New Holder"
    assert stored.card_number == "test-card-number"


def test_update_missing_credit_card(repo):
    with pytest.raises(CreditCardNotFoundError):
        repo.update_credit_card(str(uuid4()), _card())


def test_delete_credit_card(conn, outbox, repo):
    customer_id = _insert_customer(conn)
    card = repo.add_credit_card(customer_id, _card())
    repo.delete_credit_card(str(card.card_id))
    assert _count(conn, "credit_card") == 0
    assert outbox.events[-1].event_type == EventType.CARD_DELETED
    with pytest.raises(CreditCardNotFoundError):
        repo.delete_credit_card(str(card.card_id))


def _default(conn, column, customer_id):
    return conn.execute(
        f"SELECT {column} FROM customer WHERE customer_id = ?", (customer_id,)
    ).fetchone()[0]


def test_set_and_clear_default_shipping(conn, outbox, repo):
    customer_id = _insert_customer(conn)
    address = repo.add_address(customer_id, _address())
    repo.update_default_shipping_address(customer_id, str(address.address_id))
    assert _default(conn, "default_shipping_address_id", customer_id) == str(address.address_id)
    assert outbox.events[-1].event_payload.resource_id == str(address.address_id)
    repo.clear_default_shipping_address(customer_id)
    assert _default(conn, "default_shipping_address_id", customer_id) is None
    assert outbox.events[-1].event_type == EventType.DEFAULT_SHIPPING_ADDRESS_CHANGED
    assert outbox.events[-1].event_payload.resource_id == ""


def test_set_default_billing_and_card(conn, repo):
    customer_id = _insert_customer(conn)
    address = repo.add_address(customer_id, _address())
    card = repo.add_credit_card(customer_id, _card())
    repo.update_default_billing_address(customer_id, str(address.address_id))
    repo.update_default_credit_card(customer_id, str(card.card_id))
    assert _default(conn, "default_billing_address_id", customer_id) == str(address.address_id)
    assert _default(conn, "default_credit_card_id", customer_id) == str(card.card_id)
    repo.clear_default_billing_address(customer_id)
    assert _default(conn, "default_billing_address_id", customer_id) is None


def test_default_for_unknown_customer(repo):
    with pytest.raises(CustomerNotFoundError):
        repo.clear_default_billing_address(str(uuid4()))


def test_default_with_invalid_address_id(conn, repo):
    customer_id = _insert_customer(conn)
    with pytest.raises(InvalidUUIDError):
        repo.update_default_shipping_address(customer_id, "bogus")


def test_deleting_default_address_clears_default(conn, repo):
    customer_id = _insert_customer(conn)
    address = repo.add_address(customer_id, _address())
    repo.update_default_shipping_address(customer_id, str(address.address_id))
    repo.delete_address(str(address.address_id))
    assert _default(conn, "default_shipping_address_id", customer_id) is None


def test_deleting_customer_cascades(conn, repo):
    customer_id = _insert_customer(conn)
    repo.add_address(customer_id, _address())
    repo.add_credit_card(customer_id, _card())
    with repo.transaction() as tx:
        tx.execute("DELETE FROM customer WHERE customer_id = ?", (customer_id,))
    assert _count(conn, "address") == 0
    assert _count(conn, "credit_card") == 0