"""SQLite persistence for customer data: schema, errors, transactions and outbox."""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, Iterator, Sequence
from uuid import UUID, uuid4

from shopcustomers.events import (
    CustomerEvent,
    new_address_added_event,
    new_address_deleted_event,
    new_address_updated_event,
    new_card_added_event,
    new_card_deleted_event,
    new_card_updated_event,
    new_default_billing_address_changed_event,
    new_default_credit_card_changed_event,
    new_default_shipping_address_changed_event,
)
from shopcustomers.models import Address, CreditCard, CustomerStatus

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base class for failures in the customer store."""


class CustomerNotFoundError(RepositoryError, LookupError):
    """No customer has the given ID."""


class AddressNotFoundError(RepositoryError, LookupError):
    """No address has the given ID."""


class CreditCardNotFoundError(RepositoryError, LookupError):
    """No credit card has the given ID."""


class InvalidUUIDError(RepositoryError, ValueError):
    """An identifier is not a valid UUID."""


class DatabaseOperationError(RepositoryError):
    """A statement failed in the database."""


class TransactionFailedError(RepositoryError):
    """A transaction could not be started or committed."""


def parse_uuid(value: UUID | str) -> UUID:
    """Return value as a UUID, raising InvalidUUIDError if it is not one."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (ValueError, TypeError, AttributeError) as exc:
        raise InvalidUUIDError(f"invalid UUID format: {value}") from exc


_SCHEMA = """
CREATE TABLE IF NOT EXISTS customer (
    customer_id TEXT PRIMARY KEY,
    user_name TEXT NOT NULL,
    email TEXT NOT NULL,
    first_name TEXT NOT NULL DEFAULT '',
    last_name TEXT NOT NULL DEFAULT '',
    phone TEXT NOT NULL DEFAULT '',
    customer_since TEXT,
    customer_status TEXT NOT NULL DEFAULT '',
    status_date_time TEXT,
    default_shipping_address_id TEXT
        REFERENCES address(address_id) ON DELETE SET NULL,
    default_billing_address_id TEXT
        REFERENCES address(address_id) ON DELETE SET NULL,
    default_credit_card_id TEXT
        REFERENCES credit_card(card_id) ON DELETE SET NULL
);
CREATE TABLE IF NOT EXISTS address (
    address_id TEXT PRIMARY KEY,
    customer_id TEXT NOT NULL REFERENCES customer(customer_id) ON DELETE CASCADE,
    address_type TEXT NOT NULL DEFAULT '',
    first_name TEXT NOT NULL DEFAULT '',
    last_name TEXT NOT NULL DEFAULT '',
    address_1 TEXT NOT NULL DEFAULT '',
    address_2 TEXT NOT NULL DEFAULT '',
    city TEXT NOT NULL DEFAULT '',
    state TEXT NOT NULL DEFAULT '',
    zip TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS credit_card (
    card_id TEXT PRIMARY KEY,
    customer_id TEXT NOT NULL REFERENCES customer(customer_id) ON DELETE CASCADE,
    card_type TEXT NOT NULL DEFAULT '',
    card_number TEXT NOT NULL DEFAULT '',
    card_holder_name TEXT NOT NULL DEFAULT '',
    card_expires TEXT NOT NULL DEFAULT '',
    card_cvv TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS customer_status_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id TEXT NOT NULL REFERENCES customer(customer_id) ON DELETE CASCADE,
    old_status TEXT NOT NULL DEFAULT '',
    new_status TEXT NOT NULL DEFAULT '',
    changed_at TEXT
);
"""


def create_schema(connection: sqlite3.Connection) -> None:
    """Create the customer tables on the connection and enable foreign keys."""
    connection.executescript(_SCHEMA)
    connection.execute("PRAGMA foreign_keys = ON")


def _to_db_time(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_db_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _to_db_uuid(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


def _from_db_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


def _uuid_text(value: UUID | None) -> str:
    return str(value) if value is not None else ""


def _execute(
    connection: sqlite3.Connection, sql: str, params: Sequence[Any] = ()
) -> sqlite3.Cursor:
    try:
        return connection.execute(sql, tuple(params))
    except sqlite3.Error as exc:
        raise DatabaseOperationError(f"database operation failed: {exc}") from exc


class OutboxWriter(ABC):
    """Records domain events as part of the caller's transaction."""

    @abstractmethod
    def write_event(self, connection: sqlite3.Connection, event: CustomerEvent) -> None:
        """Record the event using the open transaction on the connection."""


class MemoryOutbox(OutboxWriter):
    """An outbox that keeps written events in a list."""

    def __init__(self) -> None:
        self.events: list[CustomerEvent] = []

    def write_event(self, connection: sqlite3.Connection, event: CustomerEvent) -> None:
        self.events.append(event)


_ADDRESS_COLUMNS = (
    "address_id, customer_id, address_type, first_name, last_name, "
    "address_1, address_2, city, state, zip"
)
_CARD_COLUMNS = (
    "card_id, customer_id, card_type, card_number, card_holder_name, "
    "card_expires, card_cvv"
)


def _address_row(address: Address) -> tuple[Any, ...]:
    return (
        _to_db_uuid(address.address_id),
        _to_db_uuid(address.customer_id),
        address.address_type,
        address.first_name,
        address.last_name,
        address.address_1,
        address.address_2,
        address.city,
        address.state,
        address.zip,
    )


def _card_row(card: CreditCard) -> tuple[Any, ...]:
    return (
        _to_db_uuid(card.card_id),
        _to_db_uuid(card.customer_id),
        card.card_type,
        card.card_number,
        card.card_holder_name,
        card.card_expires,
        card.card_cvv,
    )


class RepositoryBase:
    """Transactions plus address, credit card and default-selection operations."""

    def __init__(self, db: sqlite3.Connection, outbox_writer: OutboxWriter) -> None:
        self.db = db
        self.outbox_writer = outbox_writer
        if not db.in_transaction:
            db.execute("PRAGMA foreign_keys = ON")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the block in one transaction, rolled back if it raises."""
        try:
            self.db.execute("BEGIN")
        except sqlite3.Error as exc:
            raise TransactionFailedError(f"failed to begin transaction: {exc}") from exc
        try:
            yield self.db
        except BaseException:
            self.db.rollback()
            raise
        try:
            self.db.commit()
        except sqlite3.Error as exc:
            self.db.rollback()
            raise TransactionFailedError(f"failed to commit transaction: {exc}") from exc

    # --- shared row helpers -------------------------------------------------

    def _insert_addresses(
        self,
        connection: sqlite3.Connection,
        addresses: Iterable[Address],
        customer_uuid: UUID,
    ) -> None:
        for address in addresses:
            address.customer_id = customer_uuid
            address.address_id = uuid4()
            _execute(
                connection,
                f"INSERT INTO address ({_ADDRESS_COLUMNS}) VALUES (?,?,?,?,?,?,?,?,?,?)",
                _address_row(address),
            )

    def _insert_credit_cards(
        self,
        connection: sqlite3.Connection,
        cards: Iterable[CreditCard],
        customer_uuid: UUID,
    ) -> None:
        for card in cards:
            card.customer_id = customer_uuid
            card.card_id = uuid4()
            _execute(
                connection,
                f"INSERT INTO credit_card ({_CARD_COLUMNS}) VALUES (?,?,?,?,?,?,?)",
                _card_row(card),
            )

    def _insert_status_history(
        self,
        connection: sqlite3.Connection,
        history: Iterable[CustomerStatus],
        customer_uuid: UUID,
    ) -> None:
        for status in history:
            changed_at = status.changed_at or datetime.now()
            _execute(
                connection,
                "INSERT INTO customer_status_history "
                "(customer_id, old_status, new_status, changed_at) VALUES (?,?,?,?)",
                (str(customer_uuid), status.old_status, status.new_status,
                 _to_db_time(changed_at)),
            )

    def _delete_addresses(self, connection: sqlite3.Connection, customer_uuid: UUID) -> None:
        _execute(connection, "DELETE FROM address WHERE customer_id = ?", (str(customer_uuid),))

    def _delete_credit_cards(
        self, connection: sqlite3.Connection, customer_uuid: UUID
    ) -> None:
        _execute(
            connection, "DELETE FROM credit_card WHERE customer_id = ?", (str(customer_uuid),)
        )

    def _delete_status_history(
        self, connection: sqlite3.Connection, customer_uuid: UUID
    ) -> None:
        _execute(
            connection,
            "DELETE FROM customer_status_history WHERE customer_id = ?",
            (str(customer_uuid),),
        )

    def _addresses_for(self, customer_uuid: UUID) -> list[Address]:
        rows = _execute(
            self.db,
            f"SELECT {_ADDRESS_COLUMNS} FROM address WHERE customer_id = ?",
            (str(customer_uuid),),
        ).fetchall()
        return [
            Address(
                address_id=_from_db_uuid(row[0]),
                customer_id=_from_db_uuid(row[1]),
                address_type=row[2],
                first_name=row[3],
                last_name=row[4],
                address_1=row[5],
                address_2=row[6],
                city=row[7],
                state=row[8],
                zip=row[9],
            )
            for row in rows
        ]

    def _credit_cards_for(self, customer_uuid: UUID) -> list[CreditCard]:
        rows = _execute(
            self.db,
            f"SELECT {_CARD_COLUMNS} FROM credit_card WHERE customer_id = ?",
            (str(customer_uuid),),
        ).fetchall()
        return [
            CreditCard(
                card_id=_from_db_uuid(row[0]),
                customer_id=_from_db_uuid(row[1]),
                card_type=row[2],
                card_number=row[3],
                card_holder_name=row[4],
                card_expires=row[5],
                card_cvv=row[6],
            )
            for row in rows
        ]

    def _status_history_for(self, customer_uuid: UUID) -> list[CustomerStatus]:
        rows = _execute(
            self.db,
            "SELECT id, customer_id, old_status, new_status, changed_at "
            "FROM customer_status_history WHERE customer_id = ? ORDER BY id",
            (str(customer_uuid),),
        ).fetchall()
        return [
            CustomerStatus(
                id=row[0],
                customer_id=_from_db_uuid(row[1]),
                old_status=row[2],
                new_status=row[3],
                changed_at=_from_db_time(row[4]),
            )
            for row in rows
        ]

    # --- addresses ----------------------------------------------------------

    def add_address(self, customer_id: str, address: Address) -> Address:
        """Store a new address for the customer and return it with its IDs set."""
        logger.debug("Repository: Adding address for customer %s", customer_id)
        customer_uuid = parse_uuid(customer_id)
        address.customer_id = customer_uuid
        address.address_id = uuid4()
        with self.transaction() as conn:
            _execute(
                conn,
                f"INSERT INTO address ({_ADDRESS_COLUMNS}) VALUES (?,?,?,?,?,?,?,?,?,?)",
                _address_row(address),
            )
            event = new_address_added_event(
                customer_id, str(address.address_id), {"address_type": address.address_type}
            )
            self.outbox_writer.write_event(conn, event)
        return address

    def update_address(self, address_id: str, address: Address) -> None:
        """Replace the stored fields of an existing address."""
        logger.debug("Repository: Updating address %s", address_id)
        address.address_id = parse_uuid(address_id)
        with self.transaction() as conn:
            cursor = _execute(
                conn,
                "UPDATE address SET first_name = ?, last_name = ?, address_1 = ?, "
                "address_2 = ?, city = ?, state = ?, zip = ?, address_type = ? "
                "WHERE address_id = ?",
                (
                    address.first_name,
                    address.last_name,
                    address.address_1,
                    address.address_2,
                    address.city,
                    address.state,
                    address.zip,
                    address.address_type,
                    str(address.address_id),
                ),
            )
            if cursor.rowcount == 0:
                raise AddressNotFoundError(f"address not found: {address_id}")
            event = new_address_updated_event(
                _uuid_text(address.customer_id), str(address.address_id), None
            )
            self.outbox_writer.write_event(conn, event)

    def delete_address(self, address_id: str) -> None:
        """Remove an address; defaults pointing at it are cleared by the schema."""
        logger.debug("Repository: Deleting address with ID %s", address_id)
        address_uuid = parse_uuid(address_id)
        with self.transaction() as conn:
            cursor = _execute(
                conn, "DELETE FROM address WHERE address_id = ?", (str(address_uuid),)
            )
            if cursor.rowcount == 0:
                raise AddressNotFoundError(f"address not found: {address_id}")
            self.outbox_writer.write_event(
                conn, new_address_deleted_event("", address_id, None)
            )

    # --- credit cards -------------------------------------------------------

    def add_credit_card(self, customer_id: str, card: CreditCard) -> CreditCard:
        """Store a new credit card for the customer and return it with its IDs set."""
        logger.debug("Repository: Adding credit card for customer %s", customer_id)
        customer_uuid = parse_uuid(customer_id)
        card.customer_id = customer_uuid
        card.card_id = uuid4()
        with self.transaction() as conn:
            _execute(
                conn,
                f"INSERT INTO credit_card ({_CARD_COLUMNS}) VALUES (?,?,?,?,?,?,?)",
                _card_row(card),
            )
            event = new_card_added_event(
                str(card.customer_id), str(card.card_id), {"card_number": card.card_number}
            )
            self.outbox_writer.write_event(conn, event)
        return card

    def update_credit_card(self, card_id: str, card: CreditCard) -> None:
        """Update type, holder, expiry and CVV of an existing card."""
        logger.debug("Repository: Updating credit card %s", card_id)
        card.card_id = parse_uuid(card_id)
        with self.transaction() as conn:
            cursor = _execute(
                conn,
                "UPDATE credit_card SET card_type = ?, card_holder_name = ?, "
                "card_expires = ?, card_cvv = ? WHERE card_id = ?",
                (
                    card.card_type,
                    card.card_holder_name,
                    card.card_expires,
                    card.card_cvv,
                    str(card.card_id),
                ),
            )
            if cursor.rowcount == 0:
                raise CreditCardNotFoundError(f"credit card not found: {card_id}")
            event = new_card_updated_event(_uuid_text(card.customer_id), str(card.card_id), None)
            self.outbox_writer.write_event(conn, event)

    def delete_credit_card(self, card_id: str) -> None:
        """Remove a credit card; a default pointing at it is cleared by the schema."""
        logger.debug("Repository: Deleting credit card with ID %s", card_id)
        card_uuid = parse_uuid(card_id)
        with self.transaction() as conn:
            cursor = _execute(
                conn, "DELETE FROM credit_card WHERE card_id = ?", (str(card_uuid),)
            )
            if cursor.rowcount == 0:
                raise CreditCardNotFoundError(f"credit card not found: {card_id}")
            self.outbox_writer.write_event(conn, new_card_deleted_event("", card_id, None))

    # --- defaults -----------------------------------------------------------

    def _set_default(
        self, column: str, customer_id: str, value: UUID | None, event: CustomerEvent
    ) -> None:
        customer_uuid = parse_uuid(customer_id)
        with self.transaction() as conn:
            cursor = _execute(
                conn,
                f"UPDATE customer SET {column} = ? WHERE customer_id = ?",
                (_to_db_uuid(value), str(customer_uuid)),
            )
            if cursor.rowcount == 0:
                raise CustomerNotFoundError(f"customer not found: {customer_id}")
            self.outbox_writer.write_event(conn, event)

    def update_default_shipping_address(self, customer_id: str, address_id: str) -> None:
        """Make the address the customer's default shipping address."""
        logger.debug(
            "Repository: Setting default shipping address %s for customer %s",
            address_id,
            customer_id,
        )
        parse_uuid(customer_id)
        address_uuid = parse_uuid(address_id)
        self._set_default(
            "default_shipping_address_id",
            customer_id,
            address_uuid,
            new_default_shipping_address_changed_event(customer_id, address_id, None),
        )

    def update_default_billing_address(self, customer_id: str, address_id: str) -> None:
        """Make the address the customer's default billing address."""
        logger.debug(
            "Repository: Setting default billing address %s for customer %s",
            address_id,
            customer_id,
        )
        parse_uuid(customer_id)
        address_uuid = parse_uuid(address_id)
        self._set_default(
            "default_billing_address_id",
            customer_id,
            address_uuid,
            new_default_billing_address_changed_event(customer_id, address_id, None),
        )

    def update_default_credit_card(self, customer_id: str, card_id: str) -> None:
        """Make the card the customer's default credit card."""
        logger.debug(
            "Repository: Setting default credit card %s for customer %s", card_id, customer_id
        )
        parse_uuid(customer_id)
        card_uuid = parse_uuid(card_id)
        self._set_default(
            "default_credit_card_id",
            customer_id,
            card_uuid,
            new_default_credit_card_changed_event(customer_id, card_id, None),
        )

    def clear_default_shipping_address(self, customer_id: str) -> None:
        """Remove the customer's default shipping address."""
        logger.debug("Repository: Clearing default shipping address for customer %s", customer_id)
        self._set_default(
            "default_shipping_address_id",
            customer_id,
            None,
            new_default_shipping_address_changed_event(customer_id, "", None),
        )

    def clear_default_billing_address(self, customer_id: str) -> None:
        """Remove the customer's default billing address."""
        logger.debug("Repository: Clearing default billing address for customer %s", customer_id)
        self._set_default(
            "default_billing_address_id",
            customer_id,
            None,
            new_default_billing_address_changed_event(customer_id, "", None),
        )

    def clear_default_credit_card(self, customer_id: str) -> None:
        """Remove the customer's default credit card."""
        logger.debug("Repository: Clearing default credit card for customer %s", customer_id)
        self._set_default(
            "default_credit_card_id",
            customer_id,
            None,
            new_default_credit_card_changed_event(customer_id, "", None),
        )