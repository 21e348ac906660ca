"""Unit tests for PaymentRequest.check_and_prepare."""

import pytest

from csobpay.domain.errors import ValidationError
from csobpay.domain.payment.entities import PayOperation
from csobpay.domain.payment.payment import PaymentRequest
from csobpay.env import Settings
from tests.fixtures import FIXED_DTTM, FIXED_NOW


class TestDefaults:
    """Defaults resolved from Settings and gateway constants."""

    def test_gateway_defaults(self, payment: PaymentRequest, settings: Settings) -> None:
        payment.check_and_prepare(settings, now=FIXED_NOW)

        assert payment.pay_operation == PayOperation.PAYMENT
        assert payment.pay_method == "card"
        assert payment.currency == "CZK"
        assert payment.language == "cs"
        assert payment.ttl_sec == 1800
        assert payment.get_merchant_id() == "A1029DTmM7"
        assert payment.get_dttm() == FIXED_DTTM

    def test_returns_self(self, payment: PaymentRequest, settings: Settings) -> None:
        assert payment.check_and_prepare(settings) is payment

    def test_explicit_values_are_kept(self, payment: PaymentRequest, settings: Settings) -> None:
        payment.currency = "EUR"
        payment.language = "en"
        payment.ttl_sec = 600
        payment.close_payment = False
        payment.return_url = "https://other.example.com/back"
        payment.return_method = "GET"

        payment.check_and_prepare(settings)

        assert payment.currency == "EUR"
        assert payment.language == "en"
        assert payment.ttl_sec == 600
        assert payment.close_payment is False
        assert payment.return_url == "https://other.example.com/back"
        assert payment.return_method == "GET"

    @pytest.mark.parametrize("ttl", ["abc", "", 0, None])
    def test_invalid_ttl_falls_back_to_default(
        self, payment: PaymentRequest, settings: Settings, ttl: object
    ) -> None:
        payment.ttl_sec = ttl
        payment.check_and_prepare(settings)
        assert payment.ttl_sec == 1800

    def test_numeric_string_ttl_is_converted(
        self, payment: PaymentRequest, settings: Settings
    ) -> None:
        payment.ttl_sec = "900"
        payment.check_and_prepare(settings)
        assert payment.ttl_sec == 900

    def test_close_payment_from_settings(
        self, payment: PaymentRequest, settings: Settings
    ) -> None:
        payment.check_and_prepare(settings.model_copy(update={"close_payment": False}))
        assert payment.close_payment is False

    def test_return_url_and_method_from_settings(
        self, payment: PaymentRequest, settings: Settings
    ) -> None:
        payment.check_and_prepare(settings)
        assert payment.return_url == "https://shop.example.com/return"
        assert payment.return_method == "POST"


class TestDescription:
    """Description defaulting and truncation."""

    def test_derived_from_shop_name(self, payment: PaymentRequest, settings: Settings) -> None:
        payment.check_and_prepare(settings)
        assert payment.description == "Example Shop, 1234567"

    def test_long_description_is_truncated_with_ellipsis(
        self, payment: PaymentRequest, settings: Settings
    ) -> None:
        payment.description = "word " * 100
        payment.check_and_prepare(settings)
        assert len(payment.description) <= 240
        assert payment.description.endswith("word...")

    def test_short_description_is_untouched(
        self, payment: PaymentRequest, settings: Settings
    ) -> None:
        payment.description = "Order from Example Shop"
        payment.check_and_prepare(settings)
        assert payment.description == "Order from Example Shop"


class TestCustomerId:
    def test_truncated_to_50(self, payment: PaymentRequest, settings: Settings) -> None:
        payment.customer_id = "c" * 80
        payment.check_and_prepare(settings)
        assert payment.customer_id == "c" * 50

    def test_unset_stays_unset(self, payment: PaymentRequest, settings: Settings) -> None:
        payment.check_and_prepare(settings)
        assert payment.customer_id is None


class TestFailures:
    """Finalize-time checks that depend on configuration."""

    def test_missing_return_url(self, payment: PaymentRequest, settings: Settings) -> None:
        no_return = settings.model_copy(update={"return_url": None})
        with pytest.raises(ValidationError, match="return URL"):
            payment.check_and_prepare(no_return)
        assert payment.is_prepared is False

    def test_empty_cart(self, settings: Settings) -> None:
        with pytest.raises(ValidationError, match="Cart is empty"):
            PaymentRequest(order_no="1").check_and_prepare(settings)

    @pytest.mark.parametrize("order_no", ["", "12345678901", "12a", "-1", "1.5"])
    def test_invalid_order_number(self, settings: Settings, order_no: str) -> None:
        payment = PaymentRequest(order_no=order_no).add_cart_item("A", 1, 100)
        with pytest.raises(ValidationError, match="order number"):
            payment.check_and_prepare(settings)

    @pytest.mark.parametrize("order_no", ["1", "0000000001", "9999999999"])
    def test_valid_order_number(self, settings: Settings, order_no: str) -> None:
        payment = PaymentRequest(order_no=order_no).add_cart_item("A", 1, 100)
        assert payment.check_and_prepare(settings).is_prepared


class TestPreparedState:
    """The prepared snapshot and its invalidation."""

    def test_snapshot_holds_resolved_values(
        self, full_payment: PaymentRequest, settings: Settings
    ) -> None:
        prepared = full_payment.check_and_prepare(settings, now=FIXED_NOW).prepared
        assert prepared.total_amount == 10501
        assert prepared.order_no == "42"
        assert len(prepared.cart) == 2
        assert prepared.customer is not None
        assert prepared.order is not None

    def test_unprepared_request_can_not_be_exported(
        self, payment: PaymentRequest, settings: Settings
    ) -> None:
        with pytest.raises(ValidationError, match="not prepared"):
            payment.export_payload(settings)

    def test_mutation_discards_snapshot(self, payment: PaymentRequest, settings: Settings) -> None:
        payment.check_and_prepare(settings)
        payment.add_cart_item("Extra", 1, 100)
        assert payment.is_prepared is False

        payment.check_and_prepare(settings)
        payment.currency = "EUR"
        assert payment.is_prepared is False

    def test_pay_id_does_not_discard_snapshot(
        self, payment: PaymentRequest, settings: Settings
    ) -> None:
        payment.check_and_prepare(settings)
        payment.set_pay_id("abc")
        assert payment.is_prepared is True
