"""Shared domain utilities.

This package is domain-accessible and should not depend on infrastructure code.
"""

from .gateway_client_protocol import GatewayClientProtocol

__all__ = ["GatewayClientProtocol"]
