# gateway_errors.py
"""
Exceptions raised by the payment gateway clients.

Every failure surfaces as a PaymentGatewayError tagged with an ErrorKind so
callers can map it to a response without inspecting vendor payloads.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    NETWORK = "network"
    GATEWAY = "gateway"


class PaymentGatewayError(Exception):
    """
    Base error for gateway operations.

    Attributes:
        message: human readable description
        kind: ErrorKind tag
        status_code: HTTP status returned by the vendor, if any
        gateway_response: parsed vendor body, if any
        gateway: vendor name ("phonepe", "cashfree")
    """

    default_kind = ErrorKind.GATEWAY

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        status_code: Optional[int] = None,
        gateway_response: Optional[Any] = None,
        gateway: Optional[str] = None,
    ):
        self.message = message
        self.kind = kind or self.default_kind
        self.status_code = status_code
        self.gateway_response = gateway_response
        self.gateway = gateway
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind.value,
            "message": self.message,
            "gateway": self.gateway,
            "status_code": self.status_code,
        }


class ConfigurationError(PaymentGatewayError):
    default_kind = ErrorKind.CONFIGURATION


class NetworkError(PaymentGatewayError):
    default_kind = ErrorKind.NETWORK


class GatewayError(PaymentGatewayError):
    default_kind = ErrorKind.GATEWAY


class AuthConfigError(ConfigurationError):
    """PhonePe OAuth credentials are not configured."""


class AuthRequestError(GatewayError):
    """PhonePe OAuth token request failed or returned no token."""


class InvalidWebhookError(GatewayError):
    """Webhook payload does not have the shape the vendor documents."""
