"""Canonical field order of the payment/init request.

The gateway rebuilds the signature base from the received fields in this
exact order, so the same descriptor sequence drives both the JSON payload and
the signature entries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, NamedTuple

from ...crypto.signing import SignatureEntry
from .entities import PreparedPayment, WireRecord

if TYPE_CHECKING:
    from ...env import Settings

# API version from which the gateway no longer accepts ``description``.
DESCRIPTION_DROPPED_IN = "1.8"

# Fields holding records; absent ones are left out of the payload.
STRUCTURED_FIELDS = frozenset({"cart", "customer", "order"})


class FieldDescriptor(NamedTuple):
    """One wire field: its name, how to read it and when it is sent."""

    name: str
    read: Callable[[PreparedPayment], Any]
    include: Callable[["Settings"], bool]


def _always(settings: "Settings") -> bool:
    return True


def _before_description_drop(settings: "Settings") -> bool:
    return not settings.query_api_version(DESCRIPTION_DROPPED_IN)


PAYMENT_FIELDS: tuple[FieldDescriptor, ...] = (
    FieldDescriptor("merchantId", lambda p: p.merchant_id, _always),
    FieldDescriptor("orderNo", lambda p: p.order_no, _always),
    FieldDescriptor("dttm", lambda p: p.dttm, _always),
    FieldDescriptor("payOperation", lambda p: p.pay_operation.value, _always),
    FieldDescriptor("payMethod", lambda p: p.pay_method, _always),
    FieldDescriptor("totalAmount", lambda p: p.total_amount, _always),
    FieldDescriptor("currency", lambda p: p.currency, _always),
    FieldDescriptor("closePayment", lambda p: p.close_payment, _always),
    FieldDescriptor("returnUrl", lambda p: p.return_url, _always),
    FieldDescriptor("returnMethod", lambda p: p.return_method, _always),
    FieldDescriptor("cart", lambda p: p.cart, _always),
    FieldDescriptor("customer", lambda p: p.customer, _always),
    FieldDescriptor("order", lambda p: p.order, _always),
    FieldDescriptor("description", lambda p: p.description, _before_description_drop),
    FieldDescriptor("merchantData", lambda p: p.merchant_data, _always),
    FieldDescriptor("customerId", lambda p: p.customer_id, _always),
    FieldDescriptor("language", lambda p: p.language, _always),
    FieldDescriptor("ttlSec", lambda p: p.ttl_sec, _always),
)

# Appended after the main sequence, only when the value is set.
AUX_FIELDS: tuple[FieldDescriptor, ...] = (
    FieldDescriptor("logoVersion", lambda p: p.logo_version, _always),
    FieldDescriptor("colorSchemeVersion", lambda p: p.color_scheme_version, _always),
)


def fields_for(settings: "Settings") -> list[FieldDescriptor]:
    """Main fields the negotiated API version expects, in canonical order."""
    return [field for field in PAYMENT_FIELDS if field.include(settings)]


def _to_wire(value: Any) -> Any:
    if isinstance(value, tuple):
        return [_to_wire(item) for item in value]
    if isinstance(value, WireRecord):
        return value.to_wire()
    return value


def _to_entries(value: Any) -> Any:
    """Turn records into nested entry sequences preserving their own order."""
    if isinstance(value, (tuple, list)):
        return [_to_entries(item) for item in value]
    if isinstance(value, WireRecord):
        return _to_entries(value.to_wire())
    if isinstance(value, dict):
        return [SignatureEntry(str(name), _to_entries(item)) for name, item in value.items()]
    return value


def _is_empty_record(name: str, value: Any) -> bool:
    return name in STRUCTURED_FIELDS and (value is None or value == ())


def build_payload(prepared: PreparedPayment, settings: "Settings") -> dict[str, Any]:
    """Wire payload without the signature.

    Empty records are left out, absent scalars become ``""``.
    """
    payload: dict[str, Any] = {}
    for field in fields_for(settings):
        value = field.read(prepared)
        if _is_empty_record(field.name, value):
            continue
        payload[field.name] = "" if value is None else _to_wire(value)

    for field in AUX_FIELDS:
        value = field.read(prepared)
        if value is not None:
            payload[field.name] = value
    return payload


def build_signature_entries(
    prepared: PreparedPayment, settings: "Settings"
) -> list[SignatureEntry]:
    """Ordered entries handed to the signer.

    Unlike the payload, empty records keep their position as empty sequences.
    """
    entries: list[SignatureEntry] = []
    for field in fields_for(settings):
        value = field.read(prepared)
        if _is_empty_record(field.name, value):
            value = []
        entries.append(SignatureEntry(field.name, _to_entries(value)))

    for field in AUX_FIELDS:
        value = field.read(prepared)
        if value is not None:
            entries.append(SignatureEntry(field.name, value))
    return entries
