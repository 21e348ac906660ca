"""Payment records: cart items, customer, order, addresses and the prepared snapshot."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ValidationError
from .text import shorten

_PHONE_RE = re.compile(r"(\+|00)?\d{1,3}\.[0-9 ]{3,}")
_COUNTRY_RE = re.compile(r"[A-Z]{3}", re.IGNORECASE)


class PayOperation(str, Enum):
    """Value of the ``payOperation`` field."""

    PAYMENT = "payment"
    # Deprecated since eAPI 1.7, replaced by one-click payments.
    RECURRENT = "recurrentPayment"
    ONE_CLICK = "oneclickPayment"


class WireRecord(BaseModel):
    """Base for records sent to the gateway under their camelCase names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump in declaration order, dropping absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class CartItem(WireRecord):
    """One cart line. ``amount`` is the total for all pieces, in hundredths."""

    name: str
    quantity: int | float
    amount: int
    description: str = ""


class Address(WireRecord):
    """Billing or shipping address."""

    address1: str
    city: str
    zip: str
    country: str

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "Address":
        """Validate and normalize raw address data.

        Raises:
            ValidationError: If any of address1, city, zip, country is missing
                or the country is not a three-letter code.
        """
        data = data or {}
        address1 = data.get("address1")
        city = data.get("city")
        zip_code = data.get("zip")
        country = data.get("country")

        if (
            address1 is None
            or city is None
            or zip_code is None
            or country is None
            or not _COUNTRY_RE.fullmatch(str(country))
        ):
            raise ValidationError(
                "Invalid or missing mandatory address fields (address1, city, zip, country)"
            )

        return cls(
            address1=shorten(address1, 50),
            city=shorten(city, 50),
            zip=shorten(zip_code, 16),
            country=str(country).upper(),
        )


class Customer(WireRecord):
    """Optional customer details. Absent fields are omitted on the wire."""

    name: Optional[str] = None
    email: Optional[str] = None
    home_phone: Optional[str] = Field(None, alias="homePhone")
    work_phone: Optional[str] = Field(None, alias="workPhone")
    mobile_phone: Optional[str] = Field(None, alias="mobilePhone")
    account: Optional[dict[str, Any]] = None
    login: Optional[dict[str, Any]] = None

    def is_empty(self) -> bool:
        return not self.to_wire()


class Order(WireRecord):
    """Optional order details; billing is mandatory once an order is set.

    ``addressMatch`` is only sent when true.
    """

    type: Optional[str] = "purchase"
    address_match: Optional[bool] = Field(None, alias="addressMatch")
    billing: Address
    shipping: Optional[Address] = None


def filter_phone(phone: Optional[str]) -> Optional[str]:
    """Return the phone when it matches the gateway pattern, None otherwise."""
    if not phone:
        return None
    if not _PHONE_RE.fullmatch(phone):
        return None
    return phone


def non_empty(value: Optional[str]) -> Optional[str]:
    """Map empty strings to None so the field is omitted."""
    return value or None


class PreparedPayment(BaseModel):
    """Snapshot of a finalized request with every default resolved."""

    model_config = ConfigDict(frozen=True)

    merchant_id: str
    order_no: str
    dttm: str
    pay_operation: PayOperation
    pay_method: str
    total_amount: int
    currency: str
    close_payment: bool
    return_url: str
    return_method: Optional[str] = None
    cart: tuple[CartItem, ...]
    customer: Optional[Customer] = None
    order: Optional[Order] = None
    description: str
    merchant_data: Optional[str] = None
    customer_id: Optional[str] = None
    language: str
    ttl_sec: int
    logo_version: Optional[int] = None
    color_scheme_version: Optional[int] = None
