from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping, Optional

from gateway_base import BasePaymentGateway, register_gateway
from gateway_errors import ConfigurationError
from utils import customer_id_from_email, from_minor_units, to_minor_units
from webhooks import WebhookEvent, normalize_cashfree_webhook, verify_cashfree_signature

logger = logging.getLogger("cashfree_client")
logger.setLevel(os.getenv("PAYMENTS_LOG_LEVEL", "INFO").upper())

DEFAULT_REFUND_NOTE = "Refund"


class CashfreeClient(BasePaymentGateway):
    """
    Cashfree PG client.

    Authenticates every call with the app id / secret headers; amounts go
    over the wire in major units (rupees) as Cashfree expects.
    """

    name = "cashfree"

    def __init__(self, settings, session=None, clock=None):
        super().__init__(settings, session=session, clock=clock)
        self.config = settings.cashfree
        self.base_url = self.config.base_url.rstrip("/")

        if not self.config.has_credentials:
            logger.warning("CASHFREE_APP_ID or CASHFREE_APP_SECRET not set; Cashfree calls will fail.")

    def _headers(self, idempotency_key: Optional[str] = None) -> Dict[str, str]:
        if not self.config.has_credentials:
            raise ConfigurationError(
                "Cashfree credentials not configured. Set CASHFREE_APP_ID and CASHFREE_APP_SECRET",
                gateway=self.name,
            )
        headers = {
            "Content-Type": "application/json",
            "x-api-version": self.config.api_version,
            "x-client-id": self.config.app_id,
            "x-client-secret": self.config.app_secret,
        }
        if idempotency_key:
            headers["x-idempotency-key"] = idempotency_key
        return headers

    def create_order(
        self,
        amount,
        order_id: Optional[str] = None,
        customer: Optional[Mapping[str, Any]] = None,
        description: Optional[str] = None,
        currency: str = "INR",
    ) -> Dict[str, Any]:
        """
        Create an order and return {orderId, paymentSessionId, status}.

        customer must carry at least an email; it doubles as the Cashfree
        customer_id once stripped of non-alphanumerics.
        """
        customer = customer or {}
        email = customer.get("email")
        if not email:
            raise ValueError("customer email is required for Cashfree orders")

        order_id = order_id or self.references("ORD")
        order_amount = from_minor_units(to_minor_units(amount))
        headers = self._headers(idempotency_key=order_id)

        payload: Dict[str, Any] = {
            "order_id": order_id,
            "order_amount": order_amount,
            "order_currency": currency,
            "customer_details": {
                "customer_id": customer_id_from_email(email),
                "customer_name": customer.get("name"),
                "customer_email": email,
                "customer_phone": customer.get("phone"),
            },
            "order_meta": {
                "return_url": f"{self.settings.frontend_url}/payment-status?orderId={order_id}",
                "notify_url": f"{self.settings.backend_url}/api/webhook/cashfree",
            },
        }
        if description:
            payload["order_note"] = description

        logger.info("Creating Cashfree order orderId=%s amount=%s customer=%s", order_id, order_amount, email)
        body = self._send("POST", f"{self.base_url}/orders", "create order", json=payload, headers=headers)
        return {
            "orderId": body.get("order_id"),
            "paymentSessionId": body.get("payment_session_id"),
            "status": body.get("order_status"),
        }

    def get_order_status(self, order_id: str) -> Dict[str, Any]:
        logger.info("Fetching Cashfree order orderId=%s", order_id)
        return self._send("GET", f"{self.base_url}/orders/{order_id}", "order status", headers=self._headers())

    def get_payment_details(self, order_id: str, payment_id: str) -> Dict[str, Any]:
        url = f"{self.base_url}/orders/{order_id}/payments/{payment_id}"
        logger.info("Fetching Cashfree payment orderId=%s paymentId=%s", order_id, payment_id)
        return self._send("GET", url, "payment details", headers=self._headers())

    def refund(self, payment_id: str, amount, order_id: Optional[str] = None) -> Dict[str, Any]:
        if not order_id:
            raise ValueError("order_id is required for Cashfree refunds")

        refund_id = self.references("REFUND")
        payload = {
            "refund_amount": from_minor_units(to_minor_units(amount)),
            "refund_note": DEFAULT_REFUND_NOTE,
            "refund_id": refund_id,
        }
        url = f"{self.base_url}/orders/{order_id}/payments/{payment_id}/refunds"
        logger.info("Initiating Cashfree refund orderId=%s paymentId=%s refundId=%s", order_id, payment_id, refund_id)
        return self._send("POST", url, "refund", json=payload, headers=self._headers(idempotency_key=refund_id))

    def normalize_webhook(self, payload: Any) -> WebhookEvent:
        return normalize_cashfree_webhook(payload)

    def verify_webhook(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        return verify_cashfree_signature(raw_body, headers, self.config.app_secret)


register_gateway(CashfreeClient.name, CashfreeClient)
