"""Shared pytest fixtures for payment request tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from csobpay.domain.payment.payment import PaymentRequest
from csobpay.env import Settings


def _write_key_pair(directory: Path, name: str) -> tuple[str, str]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_path = directory / f"{name}.key"
    public_path = directory / f"{name}.pub"
    private_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    return str(private_path), str(public_path)


@pytest.fixture(scope="session")
def key_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("keys")


@pytest.fixture(scope="session")
def merchant_keys(key_dir: Path) -> tuple[str, str]:
    """Merchant RSA key pair as (private PEM path, public PEM path)."""
    return _write_key_pair(key_dir, "merchant")


@pytest.fixture(scope="session")
def bank_keys(key_dir: Path) -> tuple[str, str]:
    """Gateway RSA key pair as (private PEM path, public PEM path)."""
    return _write_key_pair(key_dir, "bank")


@pytest.fixture
def settings(merchant_keys: tuple[str, str]) -> Settings:
    """Settings for the current API version (description not sent)."""
    private_path, _ = merchant_keys
    return Settings(
        merchant_id="A1029DTmM7",
        private_key_file=private_path,
        return_url="https://shop.example.com/return",
        shop_name="Example Shop",
        api_version="1.9",
    )


@pytest.fixture
def legacy_settings(merchant_keys: tuple[str, str]) -> Settings:
    """Settings for an API version that still carries the description."""
    private_path, _ = merchant_keys
    return Settings(
        merchant_id="A1029DTmM7",
        private_key_file=private_path,
        return_url="https://shop.example.com/return",
        shop_name="Example Shop",
        api_version="1.7",
    )


@pytest.fixture
def payment() -> PaymentRequest:
    """A request with a single cart item, ready to be prepared."""
    return PaymentRequest(order_no="1234567").add_cart_item("Shopping", 1, 15000)


@pytest.fixture
def full_payment() -> PaymentRequest:
    """A request using every optional part: two items, customer and order."""
    payment = PaymentRequest.create("42", merchant_data="hello", customer_id="cust-7")
    payment.add_cart_item("Shopping", 2, 10000, "Two pieces")
    payment.add_cart_item("Shipping", 1, 500.5, "DPL")
    payment.set_customer_data(
        "Jan Novak",
        "jan.novak@example.com",
        mobile_phone="+420.800300300",
        account={"createdAt": "2022-01-12T12:10:37+01:00", "changedAt": "2022-01-15T15:10:12+01:00"},
    )
    payment.set_order_data(
        {"address1": "Karlova 1", "city": "Praha", "zip": "11000", "country": "cze"},
        True,
        shipping={"address1": "Mostecka 2", "city": "Brno", "zip": "60200", "country": "CZE"},
    )
    payment.logo_version = 1
    return payment
