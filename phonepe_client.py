from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from gateway_base import BasePaymentGateway, register_gateway
from gateway_errors import AuthConfigError, AuthRequestError, ErrorKind, NetworkError
from utils import sanitize_merchant_order_id, to_minor_units
from webhooks import WebhookEvent, normalize_phonepe_webhook, verify_phonepe_authorization

logger = logging.getLogger("phonepe_client")
logger.setLevel(os.getenv("PAYMENTS_LOG_LEVEL", "INFO").upper())

TOKEN_SAFETY_MARGIN_MS = 60_000
# expires_at values below this are epoch seconds, anything above is milliseconds
SECONDS_EPOCH_CEILING = 9_999_999_999
# used when the token response carries neither expires_at nor expires_in
FALLBACK_TOKEN_TTL_MS = 300_000

DEFAULT_ORDER_MESSAGE = "Payment for course"


def normalize_expiry_ms(expires_at: Any) -> int:
    value = int(expires_at)
    if value < SECONDS_EPOCH_CEILING:
        value *= 1000
    return value


def _to_iso(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()


@dataclass
class TokenCache:
    """Single cached OAuth token; expires_at_ms already has the safety margin removed."""

    value: Optional[str] = None
    expires_at_ms: Optional[int] = None

    def is_valid(self, now_ms: int) -> bool:
        return bool(self.value) and self.expires_at_ms is not None and self.expires_at_ms > now_ms

    def store(self, value: str, expires_at_ms: int) -> None:
        self.value = value
        self.expires_at_ms = expires_at_ms

    def clear(self) -> None:
        self.value = None
        self.expires_at_ms = None


class PhonePeClient(BasePaymentGateway):
    """
    PhonePe v2 checkout client.

    Authenticates with an OAuth client-credentials token that is cached on the
    instance and refreshed lazily. The endpoint set (production or sandbox) is
    fixed at construction from settings.phonepe.environment.
    """

    name = "phonepe"

    def __init__(self, settings, session=None, clock=None, token_cache: Optional[TokenCache] = None):
        super().__init__(settings, session=session, clock=clock)
        self.config = settings.phonepe
        self.endpoints = self.config.endpoints
        self.token_cache = token_cache if token_cache is not None else TokenCache()
        self._refresh_lock = threading.Lock()

        if not self.config.has_credentials:
            logger.warning("PHONEPE_CLIENT_ID or PHONEPE_CLIENT_SECRET not set; OAuth calls will fail.")

    # OAuth

    def get_access_token(self) -> str:
        if self.token_cache.is_valid(self.clock()):
            logger.debug("Using cached PhonePe access token")
            return self.token_cache.value

        with self._refresh_lock:
            # another thread may have refreshed while we waited
            if self.token_cache.is_valid(self.clock()):
                return self.token_cache.value
            return self._fetch_token()

    def _fetch_token(self) -> str:
        if not self.config.has_credentials:
            logger.error(
                "PhonePe credentials check has_client_id=%s has_client_secret=%s",
                bool(self.config.client_id),
                bool(self.config.client_secret),
            )
            raise AuthConfigError(
                "PhonePe credentials not configured. Set PHONEPE_CLIENT_ID and PHONEPE_CLIENT_SECRET",
                gateway=self.name,
            )

        logger.info(
            "Requesting PhonePe OAuth token endpoint=%s environment=%s",
            self.endpoints.oauth,
            self.config.environment,
        )
        form = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "client_version": self.config.client_version,
            "grant_type": "client_credentials",
        }
        try:
            body = self._send(
                "POST",
                self.endpoints.oauth,
                "oauth token",
                error_cls=AuthRequestError,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except NetworkError as e:
            raise AuthRequestError(
                f"PhonePe OAuth Error: {e.message}",
                kind=ErrorKind.NETWORK,
                gateway=self.name,
            ) from e

        access_token = body.get("access_token")
        if not access_token:
            logger.error("No access token in PhonePe response: %s", body)
            raise AuthRequestError(
                "PhonePe OAuth Error: no access token in response",
                status_code=200,
                gateway_response=body,
                gateway=self.name,
            )

        expiry_ms = self._expiry_from_response(body) - TOKEN_SAFETY_MARGIN_MS
        self.token_cache.store(access_token, expiry_ms)
        logger.info("PhonePe OAuth token generated, expires_at=%s", _to_iso(expiry_ms))
        return access_token

    def _expiry_from_response(self, body: Dict[str, Any]) -> int:
        expires_at = body.get("expires_at")
        if expires_at is not None:
            try:
                return normalize_expiry_ms(expires_at)
            except (TypeError, ValueError):
                logger.warning("PhonePe token expires_at not numeric: %r", expires_at)

        expires_in = body.get("expires_in")
        if expires_in is not None:
            try:
                return self.clock() + int(expires_in) * 1000
            except (TypeError, ValueError):
                logger.warning("PhonePe token expires_in not numeric: %r", expires_in)
        return self.clock() + FALLBACK_TOKEN_TTL_MS

    def clear_token_cache(self) -> None:
        self.token_cache.clear()
        logger.info("PhonePe token cache cleared")

    def token_info(self) -> Dict[str, Any]:
        expires_at = self.token_cache.expires_at_ms
        return {
            "has_token": bool(self.token_cache.value),
            "valid": self.token_cache.is_valid(self.clock()),
            "expires_at": expires_at,
            "expires_at_iso": _to_iso(expires_at) if expires_at else None,
            "environment": self.config.environment,
        }

    def _auth_headers(self, scheme: str = "O-Bearer") -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"{scheme} {self.get_access_token()}",
        }

    # Orders

    def create_order(
        self,
        amount,
        order_id: Optional[str] = None,
        customer: Optional[Mapping[str, Any]] = None,
        description: Optional[str] = None,
        currency: str = "INR",
    ) -> Dict[str, Any]:
        """
        Create a checkout order; returns PhonePe's response (redirectUrl, state, ...) as-is.
        """
        if not order_id:
            order_id = self.references("ORD")
        merchant_order_id = sanitize_merchant_order_id(order_id)
        amount_paise = to_minor_units(amount)

        logger.info(
            "Creating PhonePe order merchantOrderId=%s amount=%s customer=%s",
            merchant_order_id,
            amount_paise,
            (customer or {}).get("email"),
        )
        headers = self._auth_headers()

        redirect_url = f"{self.settings.frontend_url}/payment-success"
        payload = {
            "merchantOrderId": merchant_order_id,
            "amount": amount_paise,
            "currency": currency,
            "redirectUrl": redirect_url,
            "message": description or DEFAULT_ORDER_MESSAGE,
            "paymentFlow": {
                "type": "PG_CHECKOUT",
                "merchantUrls": {"redirectUrl": redirect_url},
            },
        }

        body = self._send("POST", self.endpoints.pay, "create order", json=payload, headers=headers)
        logger.info(
            "PhonePe order created merchantOrderId=%s state=%s redirectUrl=%s",
            merchant_order_id,
            body.get("state"),
            body.get("redirectUrl"),
        )
        return body

    def get_order_status(self, order_id: str, details: bool = False) -> Dict[str, Any]:
        merchant_order_id = sanitize_merchant_order_id(order_id)
        logger.info("Checking PhonePe transaction status merchantOrderId=%s", merchant_order_id)

        url = f"{self.endpoints.status}/{merchant_order_id}/status"
        params = {"details": "true" if details else "false"}
        body = self._send("GET", url, "order status", headers=self._auth_headers(), params=params)
        logger.info(
            "PhonePe transaction status merchantOrderId=%s state=%s",
            merchant_order_id,
            body.get("state"),
        )
        return body

    # Refunds

    def refund(self, payment_id: str, amount, order_id: Optional[str] = None) -> Dict[str, Any]:
        amount_paise = to_minor_units(amount)
        refund_id = self.references("REFUND")
        logger.info("Initiating PhonePe refund transactionId=%s refundId=%s amount=%s", payment_id, refund_id, amount_paise)

        headers = self._auth_headers(scheme="Bearer")
        headers["X-Client-Version"] = self.config.client_version
        payload = {
            "transactionId": payment_id,
            "amount": amount_paise,
            "refundId": refund_id,
        }
        body = self._send("POST", self.endpoints.refund, "refund", json=payload, headers=headers)
        logger.info("PhonePe refund initiated transactionId=%s refundId=%s success=%s", payment_id, refund_id, body.get("success"))
        return body

    def get_refund_status(self, refund_id: str) -> Dict[str, Any]:
        if not isinstance(refund_id, str) or not refund_id or len(refund_id) > 63:
            raise ValueError("refund_id must be a non-empty string of at most 63 characters")
        url = f"{self.endpoints.refund_status}/{refund_id}/status"
        logger.info("PhonePe refund_status refundId=%s", refund_id)
        return self._send("GET", url, "refund status", headers=self._auth_headers())

    # Webhooks

    def normalize_webhook(self, payload: Any) -> WebhookEvent:
        return normalize_phonepe_webhook(payload)

    def verify_webhook(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        return verify_phonepe_authorization(
            headers,
            self.config.webhook_username,
            self.config.webhook_password,
        )


register_gateway(PhonePeClient.name, PhonePeClient)
