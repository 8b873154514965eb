# gateway_base.py
"""
Shared plumbing for the gateway clients.

Each client owns a requests.Session (injectable for tests), funnels every
vendor call through _send() so failures come back as one of the
gateway_errors types, and registers itself under a short name so routes can
look gateways up by path parameter.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Type

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import HttpSettings, Settings
from gateway_errors import ConfigurationError, GatewayError, NetworkError
from utils import ReferenceGenerator, now_millis

logger = logging.getLogger("gateway_base")


def build_session(http: Optional[HttpSettings] = None) -> requests.Session:
    http = http or HttpSettings()
    s = requests.Session()
    retries = Retry(
        total=http.retry_total,
        backoff_factor=http.retry_backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        raise_on_status=False,
        allowed_methods=frozenset(["HEAD", "GET", "OPTIONS", "POST", "PUT", "DELETE"]),
    )
    adapter = HTTPAdapter(max_retries=retries)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    return s


def vendor_error_message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        for key in ("error", "message", "code"):
            value = body.get(key)
            if value:
                return str(value)
    return fallback


class BasePaymentGateway(ABC):
    """
    Interface every gateway client implements.

    Operations return the vendor's parsed JSON (possibly reshaped) and raise
    a PaymentGatewayError subclass on failure.
    """

    name = "base"

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.settings = settings
        self.session = session if session is not None else build_session(settings.http)
        self.clock = clock or now_millis
        self.references = ReferenceGenerator(self.clock)
        self.timeout = settings.http.timeout

    @abstractmethod
    def create_order(
        self,
        amount,
        order_id: Optional[str] = None,
        customer: Optional[Mapping[str, Any]] = None,
        description: Optional[str] = None,
        currency: str = "INR",
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    def get_order_status(self, order_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    def refund(self, payment_id: str, amount, order_id: Optional[str] = None) -> Dict[str, Any]:
        pass

    @abstractmethod
    def normalize_webhook(self, payload: Any):
        pass

    @abstractmethod
    def verify_webhook(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        pass

    def _send(
        self,
        method: str,
        url: str,
        operation: str,
        error_cls: Type[GatewayError] = GatewayError,
        ok_statuses=(200, 201),
        **kwargs,
    ) -> Dict[str, Any]:
        """Issue one vendor request and return its JSON body."""
        kwargs.setdefault("timeout", self.timeout)
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.exception("%s %s request failed url=%s", self.name, operation, url)
            raise NetworkError(
                f"{self.name} {operation} request failed: {e}",
                gateway=self.name,
            ) from e

        try:
            body = resp.json()
        except ValueError:
            logger.error("%s %s returned non-json status=%s body=%s", self.name, operation, resp.status_code, resp.text[:1000])
            raise error_cls(
                f"{self.name} {operation} returned non-json response",
                status_code=resp.status_code,
                gateway_response=resp.text[:1000],
                gateway=self.name,
            )

        if resp.status_code not in ok_statuses:
            message = vendor_error_message(body, f"HTTP {resp.status_code}")
            logger.error("%s %s error status=%s body=%s", self.name, operation, resp.status_code, body)
            raise error_cls(
                f"{self.name} {operation} failed: {message} (Status: {resp.status_code})",
                status_code=resp.status_code,
                gateway_response=body,
                gateway=self.name,
            )

        if not isinstance(body, dict):
            logger.error("%s %s returned non-object json status=%s body=%s", self.name, operation, resp.status_code, body)
            raise error_cls(
                f"{self.name} {operation} returned unexpected response: expected a JSON object",
                status_code=resp.status_code,
                gateway_response=body,
                gateway=self.name,
            )
        return body


# Gateway registry - maps gateway names to their classes
GATEWAY_REGISTRY: Dict[str, Type[BasePaymentGateway]] = {}


def register_gateway(name: str, gateway_class: type) -> type:
    """Register a gateway class under name (case-insensitive)."""
    if not (isinstance(gateway_class, type) and issubclass(gateway_class, BasePaymentGateway)):
        raise ConfigurationError("Gateway class must extend BasePaymentGateway")
    GATEWAY_REGISTRY[name.lower().strip()] = gateway_class
    return gateway_class


def get_gateway(gateway_name: str, settings: Settings, **kwargs) -> BasePaymentGateway:
    """
    Build a gateway client by name.

    Raises:
        ConfigurationError: unknown gateway name
    """
    gateway_name = gateway_name.lower().strip()
    if gateway_name not in GATEWAY_REGISTRY:
        supported = ", ".join(sorted(GATEWAY_REGISTRY))
        raise ConfigurationError(
            f"Unsupported payment gateway: {gateway_name}. Supported gateways: {supported}"
        )
    return GATEWAY_REGISTRY[gateway_name](settings, **kwargs)


def list_available_gateways():
    return sorted(GATEWAY_REGISTRY)
