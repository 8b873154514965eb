# webhooks.py
"""
Inbound webhook handling for PhonePe and Cashfree.

Normalizers reshape the vendor payload into a WebhookEvent. They are pure:
the same payload always produces an equal event. Verifiers check the
vendor's authenticity header against the raw request body and fail closed
when credentials or headers are missing.
"""

import base64
import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from gateway_errors import InvalidWebhookError

logger = logging.getLogger("webhooks")
logger.setLevel(os.getenv("PAYMENTS_LOG_LEVEL", "INFO").upper())

CASHFREE_PAID_STATUS = "PAID"


@dataclass(frozen=True)
class WebhookEvent:
    processed: bool
    order_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[Any] = None
    success: Optional[bool] = None
    payment_status: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "orderId": self.order_id,
            "status": self.status,
            "amount": self.amount,
            "success": self.success,
            "paymentStatus": self.payment_status,
            "message": self.message,
        }


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    # Starlette headers are case-insensitive already; plain dicts are not
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, v in headers.items():
            if key.lower() == lowered:
                return v
    return value


def normalize_phonepe_webhook(payload: Any) -> WebhookEvent:
    """
    Reshape a PhonePe webhook.

    Never raises: a payload without a `data` object yields processed=False.
    An empty `data` object is still processed, with its fields left as None.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        logger.warning("PhonePe webhook missing data field")
        return WebhookEvent(processed=False, message="Invalid webhook format")

    event = WebhookEvent(
        processed=True,
        order_id=data.get("merchantOrderId"),
        status=data.get("state"),
        amount=data.get("amount"),
        success=payload.get("success"),
    )
    logger.info(
        "PhonePe webhook processed orderId=%s status=%s success=%s",
        event.order_id,
        event.status,
        event.success,
    )
    return event


def normalize_cashfree_webhook(payload: Any) -> WebhookEvent:
    """
    Reshape a Cashfree webhook; success means order_payment_status == "PAID".

    Raises:
        InvalidWebhookError: payload has no data.order object
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    order = data.get("order") if isinstance(data, dict) else None
    if not isinstance(order, dict):
        logger.error("Cashfree webhook missing data.order: %s", payload)
        raise InvalidWebhookError(
            "Invalid Cashfree webhook format: missing data.order",
            gateway_response=payload,
            gateway="cashfree",
        )

    payment_status = order.get("order_payment_status")
    event = WebhookEvent(
        processed=True,
        order_id=order.get("order_id"),
        status=order.get("order_status"),
        amount=order.get("order_amount"),
        success=payment_status == CASHFREE_PAID_STATUS,
        payment_status=payment_status,
    )
    logger.info(
        "Cashfree webhook processed orderId=%s status=%s paymentStatus=%s",
        event.order_id,
        event.status,
        payment_status,
    )
    return event


def phonepe_authorization_digest(username: str, password: str) -> str:
    return hashlib.sha256(f"{username}:{password}".encode("utf-8")).hexdigest()


def verify_phonepe_authorization(
    headers: Mapping[str, str],
    username: Optional[str],
    password: Optional[str],
) -> bool:
    """
    PhonePe sends Authorization: SHA256(username:password) as a hex digest,
    using the credentials configured on the merchant dashboard.
    """
    if not username or not password:
        logger.warning("PhonePe webhook credentials not configured; rejecting callback")
        return False

    received = _header(headers, "Authorization")
    if not received:
        logger.warning("No Authorization header present on PhonePe callback")
        return False

    received = received.strip()
    if received.upper().startswith("SHA256"):
        received = received[len("SHA256"):].strip(" ()")
    expected = phonepe_authorization_digest(username, password)
    return hmac.compare_digest(expected.lower(), received.lower())


def cashfree_signature(raw_body: bytes, timestamp: str, secret: str) -> str:
    message = timestamp.encode("utf-8") + raw_body
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_cashfree_signature(
    raw_body: bytes,
    headers: Mapping[str, str],
    secret: Optional[str],
) -> bool:
    """Cashfree signs timestamp + raw body with HMAC-SHA256 (base64)."""
    if not secret:
        logger.warning("CASHFREE_APP_SECRET not configured; rejecting webhook")
        return False

    signature = _header(headers, "x-webhook-signature")
    timestamp = _header(headers, "x-webhook-timestamp")
    if not signature or not timestamp:
        logger.warning("Cashfree webhook missing signature or timestamp header")
        return False

    expected = cashfree_signature(raw_body or b"", timestamp, secret)
    return hmac.compare_digest(expected, signature.strip())
