"""Test doubles shared by the payment and client tests."""

from .gateway_stubs import FIXED_DTTM, FIXED_NOW, StubClient

__all__ = ["FIXED_DTTM", "FIXED_NOW", "StubClient"]
