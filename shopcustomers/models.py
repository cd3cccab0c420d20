"""Customer domain entities and typed patch requests."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Iterable, Mapping
from uuid import UUID


class ValidationError(ValueError):
    """Raised when an entity or a request fails validation."""


def _require(entity: object, names: Iterable[str]) -> None:
    missing = [name for name in names if not getattr(entity, name)]
    if missing:
        raise ValidationError(
            f"{type(entity).__name__}: missing required field(s): {', '.join(missing)}"
        )


def _known_fields(cls: type, data: Mapping[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass
class Address:
    """A postal address belonging to a customer."""

    address_type: str = ""
    first_name: str = ""
    last_name: str = ""
    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    address_id: UUID | None = None
    customer_id: UUID | None = None

    def validate(self) -> None:
        """Raise ValidationError unless the address is complete enough to store."""
        _require(self, ("address_type", "address_1", "city", "state", "zip"))


@dataclass
class CreditCard:
    """A payment card belonging to a customer."""

    card_type: str = ""
    card_number: str = ""
    card_holder_name: str = ""
    card_expires: str = ""
    card_cvv: str = ""
    card_id: UUID | None = None
    customer_id: UUID | None = None

    def validate(self) -> None:
        """Raise ValidationError unless the card is complete enough to store."""
        _require(self, ("card_type", "card_number", "card_holder_name", "card_expires"))


@dataclass
class CustomerStatus:
    """One entry in a customer's status history."""

    customer_id: UUID | None = None
    old_status: str = ""
    new_status: str = ""
    changed_at: datetime | None = None
    id: int | None = None


@dataclass
class Customer:
    """A customer together with its addresses, cards and status history."""

    username: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    customer_id: str = ""
    customer_since: datetime | None = None
    customer_status: str = ""
    status_date_time: datetime | None = None
    default_shipping_address_id: UUID | None = None
    default_billing_address_id: UUID | None = None
    default_credit_card_id: UUID | None = None
    addresses: list[Address] = field(default_factory=list)
    credit_cards: list[CreditCard] = field(default_factory=list)
    status_history: list[CustomerStatus] = field(default_factory=list)

    def validate(self) -> None:
        """Raise ValidationError unless username and a plausible email are set."""
        _require(self, ("username", "email"))
        if "@" not in self.email:
            raise ValidationError(f"Customer: invalid email address: {self.email}")


@dataclass
class PatchAddressRequest:
    """Address data carried by a customer patch request."""

    address_type: str = ""
    first_name: str = ""
    last_name: str = ""
    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PatchAddressRequest:
        """Build a request from decoded JSON, ignoring unknown keys."""
        return cls(**_known_fields(cls, data))


@dataclass
class PatchCreditCardRequest:
    """Credit card data carried by a customer patch request."""

    card_type: str = ""
    card_number: str = ""
    card_holder_name: str = ""
    card_expires: str = ""
    card_cvv: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PatchCreditCardRequest:
        """Build a request from decoded JSON, ignoring unknown keys."""
        return cls(**_known_fields(cls, data))


@dataclass
class PatchCustomerRequest:
    """A partial customer update; fields left as None are not changed."""

    user_name: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    customer_status: str | None = None
    default_shipping_address_id: str | None = None
    default_billing_address_id: str | None = None
    default_credit_card_id: str | None = None
    addresses: list[PatchAddressRequest] | None = None
    credit_cards: list[PatchCreditCardRequest] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PatchCustomerRequest:
        """Build a request from decoded JSON, ignoring unknown keys."""
        values = _known_fields(cls, data)
        if values.get("addresses") is not None:
            values["addresses"] = [
                PatchAddressRequest.from_dict(item) for item in values["addresses"]
            ]
        if values.get("credit_cards") is not None:
            values["credit_cards"] = [
                PatchCreditCardRequest.from_dict(item) for item in values["credit_cards"]
            ]
        return cls(**values)