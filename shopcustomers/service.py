"""Customer business operations layered over the customer repository."""

from __future__ import annotations

import logging
from typing import Any, Iterable
from uuid import UUID

from shopcustomers.models import (
    Address,
    CreditCard,
    Customer,
    PatchAddressRequest,
    PatchCreditCardRequest,
    PatchCustomerRequest,
    ValidationError,
)
from shopcustomers.repository import _patched_uuid

logger = logging.getLogger(__name__)


class BaseService:
    """Name and lifecycle shared by the platform's services."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.running = False

    def health(self) -> bool:
        """Return True when the service is able to serve requests."""
        return True

    def start(self) -> None:
        """Mark the service as running."""
        logger.info("Service %s starting", self.name)
        self.running = True

    def stop(self) -> None:
        """Mark the service as stopped."""
        logger.info("Service %s stopping", self.name)
        self.running = False


class CustomerService(BaseService):
    """Validates customer requests and hands them to the repository."""

    def __init__(self, repo: Any) -> None:
        super().__init__("customer")
        self.repo = repo

    # --- customers ----------------------------------------------------------

    def get_customer_by_email(self, email: str) -> Customer | None:
        """Return the customer with this email, or None."""
        return self.repo.get_customer_by_email(email)

    def get_customer_by_id(self, customer_id: str) -> Customer | None:
        """Return the customer with this ID, or None."""
        return self.repo.get_customer_by_id(customer_id)

    def create_customer(self, customer: Customer) -> None:
        """Validate the customer with its addresses and cards, then store it."""
        try:
            customer.validate()
        except ValidationError as exc:
            raise ValidationError(f"customer validation failed: {exc}") from exc
        for index, address in enumerate(customer.addresses):
            try:
                address.validate()
            except ValidationError as exc:
                raise ValidationError(f"address {index} validation failed: {exc}") from exc
        for index, card in enumerate(customer.credit_cards):
            try:
                card.validate()
            except ValidationError as exc:
                raise ValidationError(
                    f"credit card {index} validation failed: {exc}"
                ) from exc
        self.repo.insert_customer(customer)

    def update_customer(self, customer: Customer) -> None:
        """Replace the stored customer completely."""
        self.repo.update_customer(customer)

    def patch_customer(self, customer_id: str, patch: PatchCustomerRequest) -> None:
        """Validate the patch and apply it to the stored customer."""
        try:
            self.validate_patch_data(patch)
        except ValidationError as exc:
            raise ValidationError(f"invalid patch data: {exc}") from exc
        self.repo.patch_customer(customer_id, patch)

    def validate_patch_data(self, patch: PatchCustomerRequest | None) -> None:
        """Raise ValidationError if the patch is missing or holds a malformed ID."""
        if patch is None:
            raise ValidationError("patch data cannot be None")
        for label, value in (
            ("default_shipping_address_id", patch.default_shipping_address_id),
            ("default_billing_address_id", patch.default_billing_address_id),
            ("default_credit_card_id", patch.default_credit_card_id),
        ):
            if value:
                try:
                    UUID(value)
                except ValueError as exc:
                    raise ValidationError(f"invalid {label}: {exc}") from exc

    def apply_field_updates(self, customer: Customer, patch: PatchCustomerRequest) -> None:
        """Copy the fields set in the patch onto the customer."""
        for attribute, value in (
            ("username", patch.user_name),
            ("email", patch.email),
            ("first_name", patch.first_name),
            ("last_name", patch.last_name),
            ("phone", patch.phone),
            ("customer_status", patch.customer_status),
        ):
            if value is not None:
                setattr(customer, attribute, value)
        customer.default_shipping_address_id = _patched_uuid(
            customer.default_shipping_address_id, patch.default_shipping_address_id
        )
        customer.default_billing_address_id = _patched_uuid(
            customer.default_billing_address_id, patch.default_billing_address_id
        )
        customer.default_credit_card_id = _patched_uuid(
            customer.default_credit_card_id, patch.default_credit_card_id
        )

    def transform_addresses_from_patch(
        self, patch_addresses: Iterable[PatchAddressRequest]
    ) -> list[Address]:
        """Turn patch address requests into address entities."""
        return [
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
            for item in patch_addresses
        ]

    def transform_credit_cards_from_patch(
        self, patch_cards: Iterable[PatchCreditCardRequest]
    ) -> list[CreditCard]:
        """Turn patch credit card requests into credit card entities."""
        return [
            CreditCard(
                card_type=item.card_type,
                card_number=item.card_number,
                card_holder_name=item.card_holder_name,
                card_expires=item.card_expires,
                card_cvv=item.card_cvv,
            )
            for item in patch_cards
        ]

    # --- addresses and cards ------------------------------------------------

    def add_address(self, customer_id: str, address: Address) -> Address:
        """Add an address to the customer."""
        return self.repo.add_address(customer_id, address)

    def update_address(self, address_id: str, address: Address) -> None:
        """Update an existing address."""
        self.repo.update_address(address_id, address)

    def delete_address(self, address_id: str) -> None:
        """Delete an address."""
        self.repo.delete_address(address_id)

    def add_credit_card(self, customer_id: str, card: CreditCard) -> CreditCard:
        """Add a credit card to the customer."""
        return self.repo.add_credit_card(customer_id, card)

    def update_credit_card(self, card_id: str, card: CreditCard) -> None:
        """Update an existing credit card."""
        self.repo.update_credit_card(card_id, card)

    def delete_credit_card(self, card_id: str) -> None:
        """Delete a credit card."""
        self.repo.delete_credit_card(card_id)

    # --- defaults -----------------------------------------------------------

    def set_default_shipping_address(self, customer_id: str, address_id: str) -> None:
        """Make the address the default shipping address."""
        self.repo.update_default_shipping_address(customer_id, address_id)

    def set_default_billing_address(self, customer_id: str, address_id: str) -> None:
        """Make the address the default billing address."""
        self.repo.update_default_billing_address(customer_id, address_id)

    def set_default_credit_card(self, customer_id: str, card_id: str) -> None:
        """Make the card the default credit card."""
        self.repo.update_default_credit_card(customer_id, card_id)

    def clear_default_shipping_address(self, customer_id: str) -> None:
        """Remove the default shipping address."""
        self.repo.clear_default_shipping_address(customer_id)

    def clear_default_billing_address(self, customer_id: str) -> None:
        """Remove the default billing address."""
        self.repo.clear_default_billing_address(customer_id)

    def clear_default_credit_card(self, customer_id: str) -> None:
        """Remove the default credit card."""
        self.repo.clear_default_credit_card(customer_id)