"""Domain-specific exceptions."""

from __future__ import annotations

from typing import Optional


class ValidationError(ValueError):
    """Raised when a payment request violates a gateway field constraint."""


class GatewayError(Exception):
    """Raised when the gateway rejects a request or its response cannot be trusted."""

    def __init__(
        self,
        message: str,
        result_code: Optional[int] = None,
        result_message: Optional[str] = None,
    ) -> None:
        self.result_code = result_code
        self.result_message = result_message
        super().__init__(message)
