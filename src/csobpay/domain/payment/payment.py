"""Payment request sent to the gateway's payment/init operation.

Build the request with the ``add_*``/``set_*`` methods, resolve defaults with
``check_and_prepare`` and export it with ``sign_and_export``. The client does
the last two steps for you.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import warnings
from datetime import datetime
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, PrivateAttr, field_validator

from ...crypto.signing import SignatureEntry, create_signature_base, sign_string
from ..errors import ValidationError
from .entities import (
    Address,
    CartItem,
    Customer,
    Order,
    PayOperation,
    PreparedPayment,
    filter_phone,
    non_empty,
)
from .fields import build_payload, build_signature_entries
from .text import is_numeric, round_half_away, shorten, to_number

if TYPE_CHECKING:
    from ...env import Settings
    from ..shared import GatewayClientProtocol

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "CZK"
DEFAULT_LANGUAGE = "cs"
DEFAULT_PAY_METHOD = "card"
DEFAULT_TTL_SEC = 1800
DTTM_FORMAT = "%Y%m%d%H%M%S"

MAX_CART_ITEMS = 2
MAX_MERCHANT_DATA_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 240

_ORDER_NO_RE = re.compile(r"^[0-9]{1,10}$")


class PaymentRequest(BaseModel):
    """A payment request.

    ``order_no`` (1 to 10 digits, basically the variable symbol) is the only
    value you have to supply. Fields left as None are resolved from Settings
    or from gateway defaults when the request is prepared.
    """

    model_config = ConfigDict(validate_assignment=True)

    order_no: str
    currency: Optional[str] = None
    close_payment: Optional[bool] = None
    return_url: Optional[str] = None
    return_method: Optional[str] = None
    description: Optional[str] = None
    customer_id: Optional[str] = None
    language: Optional[str] = None
    pay_operation: Optional[PayOperation] = None
    pay_method: Optional[str] = None
    ttl_sec: Optional[Any] = None
    logo_version: Optional[int] = None
    color_scheme_version: Optional[int] = None

    _merchant_id: Optional[str] = PrivateAttr(default=None)
    _dttm: Optional[str] = PrivateAttr(default=None)
    _total_amount: int = PrivateAttr(default=0)
    _cart: list[CartItem] = PrivateAttr(default_factory=list)
    _customer: Optional[Customer] = PrivateAttr(default=None)
    _order: Optional[Order] = PrivateAttr(default=None)
    _merchant_data: Optional[str] = PrivateAttr(default=None)
    _pay_id: Optional[str] = PrivateAttr(default=None)
    _prepared: Optional[PreparedPayment] = PrivateAttr(default=None)

    @field_validator("order_no", mode="before")
    @classmethod
    def coerce_order_no(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name in type(self).model_fields:
            self._prepared = None

    @classmethod
    def create(
        cls,
        order_no: Union[str, int],
        merchant_data: Optional[Union[str, bytes]] = None,
        customer_id: Optional[str] = None,
        one_click_payment: Optional[bool] = None,
    ) -> "PaymentRequest":
        """Shortcut for the most common constructor arguments."""
        payment = cls(order_no=order_no)
        if merchant_data:
            payment.set_merchant_data(merchant_data)
        if customer_id:
            payment.customer_id = customer_id
        if one_click_payment is not None:
            payment.set_one_click_payment(one_click_payment)
        return payment

    # Builder

    def set_one_click_payment(self, one_click: bool = True) -> "PaymentRequest":
        """Mark this payment as a one-click payment template."""
        self.pay_operation = PayOperation.ONE_CLICK if one_click else PayOperation.PAYMENT
        return self

    def set_recurrent_payment(self, recurrent: bool = True) -> "PaymentRequest":
        """Mark this payment as a template for recurrent payments.

        Deprecated since eAPI 1.7, use ``set_one_click_payment``.
        """
        warnings.warn(
            "set_recurrent_payment() is deprecated, use set_one_click_payment() instead.",
            DeprecationWarning,
            stacklevel=2,
        )
        logger.warning(
            "Recurrent payment requested for order %s; recurrentPayment is deprecated",
            self.order_no,
        )
        self.pay_operation = PayOperation.RECURRENT if recurrent else PayOperation.PAYMENT
        return self

    def add_cart_item(
        self,
        name: str,
        quantity: Union[int, float, str],
        amount: Union[int, float, str],
        description: str = "",
    ) -> "PaymentRequest":
        """Add one cart item. One or two items are required.

        Args:
            name: Name the customer will see, trimmed to 20 characters
            quantity: Number of pieces, numeric and at least 1
            amount: Total price for all pieces in hundredths of the currency
                unit, rounded half away from zero
            description: Aux description, trimmed to 40 characters

        Raises:
            ValidationError: When the cart is full or quantity/amount is invalid.
        """
        if len(self._cart) >= MAX_CART_ITEMS:
            raise ValidationError(
                f"The gateway supports only up to {MAX_CART_ITEMS} cart items in a single payment"
            )
        if not is_numeric(quantity) or to_number(quantity) < 1:
            raise ValidationError(
                f"Invalid quantity: {quantity}. It must be numeric and >= 1"
            )
        if not is_numeric(amount):
            raise ValidationError(f"Invalid amount: {amount}. It must be numeric")

        self._cart.append(
            CartItem(
                name=shorten(name, 20),
                quantity=to_number(quantity),
                amount=round_half_away(amount),
                description=shorten(description, 40),
            )
        )
        self._prepared = None
        return self

    def set_customer_data(
        self,
        name: Optional[str],
        email: Optional[str] = None,
        home_phone: Optional[str] = None,
        work_phone: Optional[str] = None,
        mobile_phone: Optional[str] = None,
        account: Optional[Mapping[str, Any]] = None,
        login: Optional[Mapping[str, Any]] = None,
    ) -> "PaymentRequest":
        """Attach customer details.

        Phones not matching the gateway pattern are dropped silently. If
        nothing usable remains, the request carries no customer record.
        """
        customer = Customer(
            name=non_empty(shorten(name, 45)),
            email=non_empty(shorten(email, 100)),
            home_phone=filter_phone(home_phone),
            work_phone=filter_phone(work_phone),
            mobile_phone=filter_phone(mobile_phone),
            account=dict(account) if account else None,
            login=dict(login) if login else None,
        )
        self._customer = None if customer.is_empty() else customer
        self._prepared = None
        return self

    def set_order_data(
        self,
        billing: Mapping[str, Any],
        address_match: bool,
        shipping: Optional[Mapping[str, Any]] = None,
        type: Optional[str] = "purchase",
    ) -> "PaymentRequest":
        """Attach order details with a mandatory billing address.

        Raises:
            ValidationError: When an address lacks address1, city, zip or
                country, or the country is not a three-letter code.
        """
        self._order = Order(
            type=type or None,
            address_match=address_match or None,
            billing=Address.from_mapping(billing),
            shipping=Address.from_mapping(shipping) if shipping else None,
        )
        self._prepared = None
        return self

    def set_merchant_data(
        self, data: Union[str, bytes], already_encoded: bool = False
    ) -> "PaymentRequest":
        """Set arbitrary data you will receive back when the customer returns.

        Raises:
            ValidationError: When ``already_encoded`` data is not base64 or the
                base64 text is longer than 255 characters.
        """
        if already_encoded:
            try:
                encoded = data.decode("ascii") if isinstance(data, bytes) else data
                base64.b64decode(encoded, validate=True)
            except (UnicodeDecodeError, ValueError) as e:
                raise ValidationError("Merchant data is not valid base64") from e
        else:
            raw = data.encode("utf-8") if isinstance(data, str) else data
            encoded = base64.b64encode(raw).decode("ascii")

        if len(encoded) > MAX_MERCHANT_DATA_LENGTH:
            raise ValidationError(
                f"Merchant data can not be longer than {MAX_MERCHANT_DATA_LENGTH} "
                "characters after base64 encoding"
            )
        self._merchant_data = encoded
        self._prepared = None
        return self

    # Accessors

    def get_merchant_data(self) -> bytes:
        """Merchant data decoded back to the original bytes."""
        if not self._merchant_data:
            return b""
        try:
            return base64.b64decode(self._merchant_data)
        except binascii.Error as e:
            raise ValidationError("Merchant data is not valid base64") from e

    def get_merchant_data_encoded(self) -> str:
        return self._merchant_data or ""

    def get_cart(self) -> list[dict[str, Any]]:
        return [item.to_wire() for item in self._cart]

    def get_customer(self) -> dict[str, Any]:
        return self._customer.to_wire() if self._customer else {}

    def get_order(self) -> dict[str, Any]:
        return self._order.to_wire() if self._order else {}

    def get_total_amount(self) -> int:
        """Sum of all cart items in hundredths of the currency unit."""
        self._total_amount = sum(item.amount for item in self._cart)
        return self._total_amount

    def get_merchant_id(self) -> Optional[str]:
        return self._merchant_id

    def get_dttm(self) -> Optional[str]:
        return self._dttm

    def get_pay_id(self) -> Optional[str]:
        """PayID assigned by the gateway after payment/init."""
        return self._pay_id

    def set_pay_id(self, pay_id: str) -> None:
        """Store the gateway's PayID. Called by the client, once."""
        if self._pay_id is not None and self._pay_id != pay_id:
            raise ValidationError(
                f"PayID is already assigned ({self._pay_id}), it can not be changed"
            )
        self._pay_id = pay_id

    @property
    def is_prepared(self) -> bool:
        return self._prepared is not None

    @property
    def prepared(self) -> PreparedPayment:
        """Finalized snapshot. Raises ValidationError if not prepared yet."""
        if self._prepared is None:
            raise ValidationError(
                "Payment request is not prepared, call check_and_prepare() first"
            )
        return self._prepared

    # Finalize

    def check_and_prepare(
        self, settings: "Settings", now: Optional[datetime] = None
    ) -> "PaymentRequest":
        """Validate the request and resolve every default from ``settings``.

        Raises:
            ValidationError: When no return URL is available, the cart is empty
                or the order number is not 1 to 10 digits.
        """
        self._prepared = None
        self._merchant_id = settings.merchant_id
        self._dttm = (now or datetime.now()).strftime(DTTM_FORMAT)

        if not self.pay_operation:
            self.pay_operation = PayOperation.PAYMENT
        if not self.pay_method:
            self.pay_method = DEFAULT_PAY_METHOD
        if not self.currency:
            self.currency = DEFAULT_CURRENCY
        if not self.language:
            self.language = DEFAULT_LANGUAGE

        if not self.ttl_sec or not is_numeric(self.ttl_sec):
            self.ttl_sec = DEFAULT_TTL_SEC
        else:
            self.ttl_sec = int(to_number(self.ttl_sec))

        if self.close_payment is None:
            self.close_payment = bool(settings.close_payment)

        if not self.return_url:
            self.return_url = settings.return_url
        if not self.return_url:
            raise ValidationError(
                "A return URL must be set, either on the payment or in Settings"
            )

        if not self.return_method:
            self.return_method = settings.return_method

        if not self.description:
            self.description = f"{settings.shop_name}, {self.order_no}"
        self.description = shorten(
            self.description, DESCRIPTION_MAX_LENGTH, "...", whole_words=True
        )

        if self.customer_id is not None:
            self.customer_id = shorten(self.customer_id, 50)

        if not self._cart:
            raise ValidationError(
                "Cart is empty. Please add one or two items using add_cart_item()"
            )

        if not self.order_no or not _ORDER_NO_RE.fullmatch(self.order_no):
            raise ValidationError(
                "Invalid order number, it must be a non-empty numeric value, 10 characters max"
            )

        total_amount = self.get_total_amount()

        self._prepared = PreparedPayment(
            merchant_id=self._merchant_id,
            order_no=self.order_no,
            dttm=self._dttm,
            pay_operation=self.pay_operation,
            pay_method=self.pay_method,
            total_amount=total_amount,
            currency=self.currency,
            close_payment=self.close_payment,
            return_url=self.return_url,
            return_method=self.return_method,
            cart=tuple(self._cart),
            customer=self._customer,
            order=self._order,
            description=self.description,
            merchant_data=self._merchant_data,
            customer_id=self.customer_id,
            language=self.language,
            ttl_sec=self.ttl_sec,
            logo_version=self.logo_version,
            color_scheme_version=self.color_scheme_version,
        )
        return self

    # Export

    def signature_entries(self, settings: "Settings") -> list[SignatureEntry]:
        """Ordered name/value entries the signature is computed over."""
        return build_signature_entries(self.prepared, settings)

    def signature_base(self, settings: "Settings") -> str:
        return create_signature_base(self.signature_entries(settings))

    def export_payload(self, settings: "Settings") -> dict[str, Any]:
        """JSON payload for payment/init, without the signature."""
        return build_payload(self.prepared, settings)

    def sign_and_export(self, client: "GatewayClientProtocol") -> dict[str, Any]:
        """Sign the prepared request and return the payload including ``signature``."""
        settings = client.settings
        payload = self.export_payload(settings)

        string_to_sign = self.signature_base(settings)
        logger.debug(
            "Signing payment request, base for the signature:\n%s", string_to_sign
        )

        payload["signature"] = sign_string(
            string_to_sign,
            settings.private_key_file,
            settings.private_key_password,
            settings.get_hash_method(),
        )
        return payload
