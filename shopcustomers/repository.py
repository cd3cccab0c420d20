"""Customer persistence: creation, lookup, full replacement and partial updates."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from shopcustomers.events import new_customer_created_event, new_customer_updated_event
from shopcustomers.models import (
    Address,
    CreditCard,
    Customer,
    CustomerStatus,
    PatchCustomerRequest,
    ValidationError,
)
from shopcustomers.store import (
    CustomerNotFoundError,
    RepositoryBase,
    _execute,
    _from_db_time,
    _from_db_uuid,
    _to_db_time,
    _to_db_uuid,
    parse_uuid,
)

logger = logging.getLogger(__name__)

_CUSTOMER_COLUMNS = (
    "customer_id, user_name, email, first_name, last_name, phone, customer_since, "
    "customer_status, status_date_time, default_shipping_address_id, "
    "default_billing_address_id, default_credit_card_id"
)


def _customer_from_row(row: tuple[Any, ...]) -> Customer:
    return Customer(
        customer_id=row[0],
        username=row[1],
        email=row[2],
        first_name=row[3],
        last_name=row[4],
        phone=row[5],
        customer_since=_from_db_time(row[6]),
        customer_status=row[7],
        status_date_time=_from_db_time(row[8]),
        default_shipping_address_id=_from_db_uuid(row[9]),
        default_billing_address_id=_from_db_uuid(row[10]),
        default_credit_card_id=_from_db_uuid(row[11]),
    )


def _patched_uuid(current: UUID | None, value: str | None) -> UUID | None:
    """Apply a patch value to a UUID field: None keeps, "" clears, bad text is ignored."""
    if value is None:
        return current
    if value == "":
        return None
    try:
        return UUID(value)
    except ValueError:
        return current


class CustomerRepository(RepositoryBase):
    """Stores customers with their addresses, cards and status history."""

    # --- creation -----------------------------------------------------------

    def insert_customer(self, customer: Customer) -> None:
        """Create the customer and its related rows, then reload what was stored."""
        logger.debug("Repository: Inserting new customer...")
        self.prepare_customer_defaults(customer)
        customer_uuid = parse_uuid(customer.customer_id)

        with self.transaction() as conn:
            self._insert_customer_row(conn, customer)
            if customer.addresses:
                self._insert_addresses(conn, customer.addresses, customer_uuid)
            if customer.credit_cards:
                self._insert_credit_cards(conn, customer.credit_cards, customer_uuid)
            initial = CustomerStatus(
                customer_id=customer_uuid,
                old_status="",
                new_status=customer.customer_status,
                changed_at=customer.status_date_time,
            )
            self._insert_status_history(conn, [initial], customer_uuid)
            self.outbox_writer.write_event(
                conn, new_customer_created_event(customer.customer_id, None)
            )

        self.load_customer_relations(customer)

    def prepare_customer_defaults(self, customer: Customer) -> None:
        """Give the customer a fresh ID and fill in unset dates and status."""
        customer.customer_id = str(uuid4())
        if customer.customer_since is None:
            customer.customer_since = datetime.now()
        if not customer.customer_status:
            customer.customer_status = "active"
        if customer.status_date_time is None:
            customer.status_date_time = datetime.now()

    def insert_customer_record(self, customer: Customer) -> None:
        """Insert only the customer row and record a created event."""
        with self.transaction() as conn:
            self._insert_customer_row(conn, customer)
            self.outbox_writer.write_event(
                conn, new_customer_created_event(customer.customer_id, None)
            )

    def _insert_customer_row(self, conn: sqlite3.Connection, customer: Customer) -> None:
        _execute(
            conn,
            "INSERT INTO customer (customer_id, user_name, email, first_name, last_name, "
            "phone, customer_since, customer_status, status_date_time) "
            "VALUES (?,?,?,?,?,?,?,?,?)",
            (
                customer.customer_id,
                customer.username,
                customer.email,
                customer.first_name,
                customer.last_name,
                customer.phone,
                _to_db_time(customer.customer_since),
                customer.customer_status,
                _to_db_time(customer.status_date_time),
            ),
        )

    # --- lookup -------------------------------------------------------------

    def load_customer_relations(self, customer: Customer) -> None:
        """Fill in the customer's addresses, credit cards and status history."""
        customer_uuid = parse_uuid(customer.customer_id)
        customer.addresses = self._addresses_for(customer_uuid)
        customer.credit_cards = self._credit_cards_for(customer_uuid)
        customer.status_history = self._status_history_for(customer_uuid)

    def get_customer_by_id(self, customer_id: str) -> Customer | None:
        """Return the customer with its relations, or None if there is none."""
        logger.debug("Repository: Fetching customer by ID...")
        customer_uuid = parse_uuid(customer_id)
        row = _execute(
            self.db,
            f"SELECT {_CUSTOMER_COLUMNS} FROM customer WHERE customer_id = ?",
            (str(customer_uuid),),
        ).fetchone()
        if row is None:
            return None
        customer = _customer_from_row(row)
        self.load_customer_relations(customer)
        return customer

    def get_customer_by_email(self, email: str) -> Customer | None:
        """Return the customer with this email and its relations, or None."""
        logger.debug("Repository: Fetching customer by email...")
        row = _execute(
            self.db,
            f"SELECT {_CUSTOMER_COLUMNS} FROM customer WHERE email = ?",
            (email,),
        ).fetchone()
        if row is None:
            return None
        customer = _customer_from_row(row)
        self.load_customer_relations(customer)
        return customer

    # --- updates ------------------------------------------------------------

    def update_customer(self, customer: Customer) -> None:
        """Replace the customer record and all of its related rows."""
        logger.debug("Repository: Updating customer (PUT - complete replace)...")
        if not (customer.customer_id and customer.username and customer.email):
            raise ValidationError(
                "PUT requires complete customer record with customer_id, username, and email"
            )
        customer_uuid = parse_uuid(customer.customer_id)

        with self.transaction() as conn:
            self._update_customer_row(conn, customer)
            self._delete_addresses(conn, customer_uuid)
            self._delete_credit_cards(conn, customer_uuid)
            self._delete_status_history(conn, customer_uuid)
            self._insert_addresses(conn, customer.addresses, customer_uuid)
            self._insert_credit_cards(conn, customer.credit_cards, customer_uuid)
            self._insert_status_history(conn, customer.status_history, customer_uuid)
            self.outbox_writer.write_event(
                conn, new_customer_updated_event(customer.customer_id, None)
            )

    def patch_customer(self, customer_id: str, patch: PatchCustomerRequest) -> None:
        """Apply the fields set in the patch; non-empty lists replace the stored ones."""
        logger.debug("Repository: Patching customer %s", customer_id)
        existing = self.get_customer_by_id(customer_id)
        if existing is None:
            raise CustomerNotFoundError(f"customer not found: {customer_id}")

        updates = {
            name: value
            for name, value in (
                ("username", patch.user_name),
                ("email", patch.email),
                ("first_name", patch.first_name),
                ("last_name", patch.last_name),
                ("phone", patch.phone),
                ("customer_status", patch.customer_status),
            )
            if value is not None
        }
        updated = replace(
            existing,
            **updates,
            default_shipping_address_id=_patched_uuid(
                existing.default_shipping_address_id, patch.default_shipping_address_id
            ),
            default_billing_address_id=_patched_uuid(
                existing.default_billing_address_id, patch.default_billing_address_id
            ),
            default_credit_card_id=_patched_uuid(
                existing.default_credit_card_id, patch.default_credit_card_id
            ),
        )

        new_addresses = [
            Address(
                address_type=item.address_type,
                first_name=item.first_name,
                last_name=item.last_name,
                address_1=item.address_1,
                address_2=item.address_2,
                city=item.city,
                state=item.state,
                zip=item.zip,
            )
            for item in patch.addresses or ()
        ]
        new_cards = [
            CreditCard(
                card_type=item.card_type,
                card_number=item.card_number,
                card_holder_name=item.card_holder_name,
                card_expires=item.card_expires,
                card_cvv=item.card_cvv,
            )
            for item in patch.credit_cards or ()
        ]

        customer_uuid = parse_uuid(customer_id)
        with self.transaction() as conn:
            self._update_customer_row(conn, updated)
            if new_addresses:
                self._delete_addresses(conn, customer_uuid)
                self._insert_addresses(conn, new_addresses, customer_uuid)
            if new_cards:
                self._delete_credit_cards(conn, customer_uuid)
                self._insert_credit_cards(conn, new_cards, customer_uuid)
            self.outbox_writer.write_event(
                conn, new_customer_updated_event(updated.customer_id, None)
            )

    def _update_customer_row(self, conn: sqlite3.Connection, customer: Customer) -> None:
        cursor = _execute(
            conn,
            "UPDATE customer SET user_name = ?, email = ?, first_name = ?, last_name = ?, "
            "phone = ?, customer_since = ?, customer_status = ?, status_date_time = ?, "
            "default_shipping_address_id = ?, default_billing_address_id = ?, "
            "default_credit_card_id = ? WHERE customer_id = ?",
            (
                customer.username,
                customer.email,
                customer.first_name,
                customer.last_name,
                customer.phone,
                _to_db_time(customer.customer_since),
                customer.customer_status,
                _to_db_time(customer.status_date_time),
                _to_db_uuid(customer.default_shipping_address_id),
                _to_db_uuid(customer.default_billing_address_id),
                _to_db_uuid(customer.default_credit_card_id),
                customer.customer_id,
            ),
        )
        if cursor.rowcount == 0:
            raise CustomerNotFoundError(f"customer not found: {customer.customer_id}")