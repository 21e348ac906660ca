from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, field_validator

from .crypto.signing import HASH_SHA1, HASH_SHA256

# Gateway's test environment; production is https://api.platebnibrana.csob.cz/api/v1.9
DEFAULT_BASE_URL = "https://iapi.iplatebnibrana.csob.cz/api/v1.9"

# API version from which the gateway expects SHA-256 signatures.
SHA256_SINCE = "1.8"


def _parse_version(version: str) -> tuple[int, ...]:
    return tuple(int(part) for part in version.strip().split("."))


class Settings(BaseModel):
    """Typed merchant configuration consumed by payment requests and the client."""

    merchant_id: str
    private_key_file: str
    private_key_password: Optional[str] = None
    bank_public_key_file: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL

    return_url: Optional[str] = None
    return_method: str = "POST"
    shop_name: str = ""
    close_payment: bool = True

    api_version: str = "1.9"
    hash_method: Optional[str] = None

    @field_validator("merchant_id")
    @classmethod
    def validate_merchant_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Merchant ID cannot be empty")
        return v.strip()

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"}:
            raise ValueError("Base URL must start with http:// or https://")
        if not parsed.netloc:
            raise ValueError("Base URL must include a host")
        return v.rstrip("/")

    @field_validator("return_url")
    @classmethod
    def validate_return_url(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("Return URL must be an absolute http(s) URL")
        return v

    @field_validator("return_method")
    @classmethod
    def validate_return_method(cls, v: str) -> str:
        method = v.upper()
        if method not in {"POST", "GET"}:
            raise ValueError("Return method must be POST or GET")
        return method

    @field_validator("api_version")
    @classmethod
    def validate_api_version(cls, v: str) -> str:
        try:
            _parse_version(v)
        except ValueError as e:
            raise ValueError(f"Invalid API version: {v}") from e
        return v.strip()

    @field_validator("hash_method")
    @classmethod
    def validate_hash_method(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        method = v.lower()
        if method not in {HASH_SHA1, HASH_SHA256}:
            raise ValueError(f"Hash method must be {HASH_SHA1} or {HASH_SHA256}")
        return method

    def query_api_version(self, version: str) -> bool:
        """True when the configured API version is at least ``version``."""
        return _parse_version(self.api_version) >= _parse_version(version)

    def get_hash_method(self) -> str:
        if self.hash_method:
            return self.hash_method
        return HASH_SHA256 if self.query_api_version(SHA256_SINCE) else HASH_SHA1


def get_settings() -> Settings:
    """Return typed settings instance sourced from env vars."""
    merchant_id = os.environ.get("CSOB_MERCHANT_ID")
    private_key_file = os.environ.get("CSOB_PRIVATE_KEY_FILE")
    if not (merchant_id and private_key_file):
        raise ValueError("CSOB_MERCHANT_ID and CSOB_PRIVATE_KEY_FILE are required")
    return Settings(
        merchant_id=merchant_id,
        private_key_file=private_key_file,
        private_key_password=os.environ.get("CSOB_PRIVATE_KEY_PASSWORD") or None,
        bank_public_key_file=os.environ.get("CSOB_BANK_PUBLIC_KEY_FILE") or None,
        base_url=os.environ.get("CSOB_BASE_URL", DEFAULT_BASE_URL),
        return_url=os.environ.get("CSOB_RETURN_URL") or None,
        return_method=os.environ.get("CSOB_RETURN_METHOD", "POST"),
        shop_name=os.environ.get("CSOB_SHOP_NAME", ""),
        close_payment=os.environ.get("CSOB_CLOSE_PAYMENT", "true").lower() == "true",
        api_version=os.environ.get("CSOB_API_VERSION", "1.9"),
        hash_method=os.environ.get("CSOB_HASH_METHOD") or None,
    )
