# config.py
"""
Environment-driven settings.

Nothing here reads the environment at import time: call Settings.from_env()
after the .env file has been loaded (main.py does this).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

SANDBOX_ENV_NAMES = ("sandbox", "uat", "preprod", "test", "development")
DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "static" / "courses.json"


@dataclass(frozen=True)
class PhonePeEndpoints:
    oauth: str
    pay: str
    status: str
    refund: str
    refund_status: str


PHONEPE_ENDPOINTS = {
    "production": PhonePeEndpoints(
        oauth="https://api.phonepe.com/apis/identity-manager/v1/oauth/token",
        pay="https://api.phonepe.com/apis/pg/checkout/v2/pay",
        status="https://api.phonepe.com/apis/pg/checkout/v2/order",
        refund="https://api.phonepe.com/apis/hermes/pg/v1/refund",
        refund_status="https://api.phonepe.com/apis/pg/payments/v2/refund",
    ),
    "sandbox": PhonePeEndpoints(
        oauth="https://api-preprod.phonepe.com/apis/pg-sandbox/v1/oauth/token",
        pay="https://api-preprod.phonepe.com/apis/pg-sandbox/checkout/v2/pay",
        status="https://api-preprod.phonepe.com/apis/pg-sandbox/checkout/v2/order",
        refund="https://api-preprod.phonepe.com/apis/pg-sandbox/pg/v1/refund",
        refund_status="https://api-preprod.phonepe.com/apis/pg-sandbox/payments/v2/refund",
    ),
}

CASHFREE_BASE_URLS = {
    "production": "https://api.cashfree.com/pg",
    "sandbox": "https://sandbox.cashfree.com/pg",
}


def normalize_environment(value: Optional[str]) -> str:
    """Map an environment flag onto 'production' or 'sandbox'."""
    v = (value or "production").strip().lower()
    return "sandbox" if v in SANDBOX_ENV_NAMES else "production"


@dataclass(frozen=True)
class HttpSettings:
    timeout: float = 20.0
    retry_total: int = 0
    retry_backoff_factor: float = 0.5


@dataclass(frozen=True)
class PhonePeSettings:
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    client_version: str = "1"
    environment: str = "production"
    webhook_username: Optional[str] = None
    webhook_password: Optional[str] = None

    @property
    def endpoints(self) -> PhonePeEndpoints:
        return PHONEPE_ENDPOINTS[self.environment]

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass(frozen=True)
class CashfreeSettings:
    app_id: Optional[str] = None
    app_secret: Optional[str] = None
    environment: str = "production"
    api_url: Optional[str] = None
    api_version: str = "2025-01-01"

    @property
    def base_url(self) -> str:
        return self.api_url or CASHFREE_BASE_URLS[self.environment]

    @property
    def has_credentials(self) -> bool:
        return bool(self.app_id and self.app_secret)


@dataclass(frozen=True)
class Settings:
    phonepe: PhonePeSettings = field(default_factory=PhonePeSettings)
    cashfree: CashfreeSettings = field(default_factory=CashfreeSettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    frontend_url: str = ""
    backend_url: str = ""
    log_level: str = "INFO"
    course_catalog_path: Path = DEFAULT_CATALOG_PATH
    site_name: str = "Course Catalog"
    diag_secret: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        phonepe = PhonePeSettings(
            client_id=env.get("PHONEPE_CLIENT_ID"),
            client_secret=env.get("PHONEPE_CLIENT_SECRET"),
            client_version=env.get("PHONEPE_CLIENT_VERSION", "1"),
            environment=normalize_environment(env.get("PHONEPE_ENV")),
            webhook_username=env.get("PHONEPE_WEBHOOK_USERNAME"),
            webhook_password=env.get("PHONEPE_WEBHOOK_PASSWORD"),
        )
        cashfree = CashfreeSettings(
            app_id=env.get("CASHFREE_APP_ID"),
            app_secret=env.get("CASHFREE_APP_SECRET"),
            environment=normalize_environment(env.get("CASHFREE_ENV")),
            api_url=env.get("CASHFREE_API_URL") or None,
            api_version=env.get("CASHFREE_API_VERSION", "2025-01-01"),
        )
        http = HttpSettings(
            timeout=float(env.get("PAYMENTS_HTTP_TIMEOUT", "20")),
            retry_total=int(env.get("PAYMENTS_RETRY_TOTAL", "0")),
            retry_backoff_factor=float(env.get("PAYMENTS_RETRY_BACKOFF_FACTOR", "0.5")),
        )
        catalog = env.get("COURSE_CATALOG_PATH")
        return cls(
            phonepe=phonepe,
            cashfree=cashfree,
            http=http,
            frontend_url=env.get("FRONTEND_URL", "").rstrip("/"),
            backend_url=env.get("BACKEND_URL", "").rstrip("/"),
            log_level=env.get("PAYMENTS_LOG_LEVEL", "INFO").upper(),
            course_catalog_path=Path(catalog) if catalog else DEFAULT_CATALOG_PATH,
            site_name=env.get("SITE_NAME", "Course Catalog"),
            diag_secret=env.get("DIAG_SECRET") or None,
        )
