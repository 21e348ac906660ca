from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Type, Union
from types import TracebackType
from urllib.parse import quote

import httpx
from cryptography.exceptions import InvalidSignature

from ...crypto.signing import (
    SignatureEntry,
    create_signature_base,
    entries_from_mapping,
    sign_string,
    verify_signature,
)
from ...domain.errors import GatewayError, ValidationError
from ...domain.payment.payment import DTTM_FORMAT, PaymentRequest
from ...env import Settings
from ..http.http_client import HttpClient

logger = logging.getLogger(__name__)

# Order in which the gateway signs its payment responses.
PAYMENT_RESPONSE_FIELDS = (
    "payId",
    "dttm",
    "resultCode",
    "resultMessage",
    "paymentStatus",
    "authCode",
    "statusDetail",
)


class GatewayClient:
    """Synchronous client for the card gateway's payment operations.

    Signs outgoing requests with the merchant key from Settings and, when a
    bank public key is configured, verifies the signature of every response.
    """

    def __init__(
        self,
        settings: Settings,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._http = HttpClient(settings.base_url, timeout=timeout, transport=transport)

    @property
    def settings(self) -> Settings:
        return self._settings

    def payment_init(
        self, payment: PaymentRequest, now: Optional[datetime] = None
    ) -> dict[str, Any]:
        """Prepare, sign and send a payment; store the returned PayID on it.

        Raises:
            ValidationError: When the payment is incomplete or invalid.
            GatewayError: When the gateway rejects it or the response signature
                does not verify.
        """
        payment.check_and_prepare(self._settings, now=now)
        payload = payment.sign_and_export(self)

        logger.info(
            "Sending payment/init for merchant %s, order %s at %s, total amount %s %s",
            payment.get_merchant_id(),
            payment.order_no,
            payment.get_dttm(),
            payment.get_total_amount(),
            payment.currency,
        )
        resp = self._http.post("payment/init", json=payload)
        data = resp.json()

        self._verify_response(data)
        self._check_result(data)

        pay_id = data.get("payId")
        if not pay_id:
            raise GatewayError("Gateway response does not contain a PayID")
        payment.set_pay_id(pay_id)
        logger.info("Payment for order %s got PayID %s", payment.order_no, pay_id)
        return data

    def get_payment_process_url(
        self,
        payment: Union[PaymentRequest, str],
        now: Optional[datetime] = None,
    ) -> str:
        """URL to redirect the customer to after a successful payment/init."""
        return self._http.url(self._signed_path("process", payment, now))

    def payment_status(
        self,
        payment: Union[PaymentRequest, str],
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """Fetch the current state of a payment from the gateway."""
        resp = self._http.get(self._signed_path("status", payment, now))
        data = resp.json()
        self._verify_response(data)
        self._check_result(data)
        return data

    def _signed_path(
        self,
        operation: str,
        payment: Union[PaymentRequest, str],
        now: Optional[datetime],
    ) -> str:
        pay_id = self._pay_id_of(payment)
        dttm = (now or datetime.now()).strftime(DTTM_FORMAT)
        entries = [
            SignatureEntry("merchantId", self._settings.merchant_id),
            SignatureEntry("payId", pay_id),
            SignatureEntry("dttm", dttm),
        ]
        signature = sign_string(
            create_signature_base(entries),
            self._settings.private_key_file,
            self._settings.private_key_password,
            self._settings.get_hash_method(),
        )
        return (
            f"payment/{operation}/{quote(self._settings.merchant_id, safe='')}"
            f"/{quote(pay_id, safe='')}/{dttm}/{quote(signature, safe='')}"
        )

    @staticmethod
    def _pay_id_of(payment: Union[PaymentRequest, str]) -> str:
        if isinstance(payment, PaymentRequest):
            pay_id = payment.get_pay_id()
            if not pay_id:
                raise ValidationError(
                    "Payment has no PayID yet, call payment_init() first"
                )
            return pay_id
        if not payment:
            raise ValidationError("PayID can not be empty")
        return payment

    def _verify_response(self, data: dict[str, Any]) -> None:
        key_file = self._settings.bank_public_key_file
        if not key_file:
            logger.debug("No bank public key configured, skipping response verification")
            return

        signature = data.get("signature")
        if not signature:
            raise GatewayError("Gateway response is not signed")

        base = create_signature_base(entries_from_mapping(data, PAYMENT_RESPONSE_FIELDS))
        logger.debug("Verifying gateway response, base for the signature:\n%s", base)
        try:
            verify_signature(base, signature, key_file, self._settings.get_hash_method())
        except (InvalidSignature, ValueError) as e:
            raise GatewayError("Gateway response signature is invalid") from e

    @staticmethod
    def _check_result(data: dict[str, Any]) -> None:
        result_code = data.get("resultCode")
        result_message = data.get("resultMessage")
        if result_code is None:
            raise GatewayError("Gateway response does not contain a result code")
        if int(result_code) != 0:
            raise GatewayError(
                f"Gateway returned error {result_code}: {result_message}",
                result_code=int(result_code),
                result_message=result_message,
            )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GatewayClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
