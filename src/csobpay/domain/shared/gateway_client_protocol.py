"""Protocol interface for gateway client implementations.

A payment request only needs the merchant settings from whoever signs and
sends it, which keeps the request testable without a live client.
"""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from ...env import Settings


class GatewayClientProtocol(Protocol):
    """Anything that exposes the merchant settings used for signing."""

    @property
    def settings(self) -> "Settings":
        """Merchant configuration: identity, defaults and key material."""
        ...
