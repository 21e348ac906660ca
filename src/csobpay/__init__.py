"""Client library for the card payment gateway's payment/init operation."""

from .domain.errors import GatewayError, ValidationError
from .domain.payment.entities import PayOperation
from .domain.payment.payment import PaymentRequest
from .env import Settings, get_settings
from .infrastructure.gateway.gateway_client import GatewayClient

__all__ = [
    "GatewayClient",
    "GatewayError",
    "PayOperation",
    "PaymentRequest",
    "Settings",
    "ValidationError",
    "get_settings",
]
