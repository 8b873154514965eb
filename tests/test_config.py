from pathlib import Path

import pytest

from config import DEFAULT_CATALOG_PATH, PHONEPE_ENDPOINTS, Settings, normalize_environment


class TestNormalizeEnvironment:

    @pytest.mark.parametrize("value", [None, "", "production", "prod", "PRODUCTION", "live"])
    def test_production(self, value):
        assert normalize_environment(value) == "production"

    @pytest.mark.parametrize("value", ["sandbox", "UAT", "preprod", "development", " test "])
    def test_sandbox(self, value):
        assert normalize_environment(value) == "sandbox"


class TestSettingsFromEnv:

    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.phonepe.client_id is None
        assert settings.phonepe.has_credentials is False
        assert settings.phonepe.client_version == "1"
        assert settings.phonepe.endpoints == PHONEPE_ENDPOINTS["production"]
        assert settings.cashfree.base_url == "https://api.cashfree.com/pg"
        assert settings.http.timeout == 20.0
        assert settings.http.retry_total == 0
        assert settings.course_catalog_path == DEFAULT_CATALOG_PATH
        assert settings.diag_secret is None

    def test_values_from_environment(self):
        settings = Settings.from_env({
            "PHONEPE_CLIENT_ID": "id",
            "PHONEPE_CLIENT_SECRET": "secret",
            "PHONEPE_CLIENT_VERSION": "2",
            "PHONEPE_ENV": "sandbox",
            "CASHFREE_APP_ID": "app",
            "CASHFREE_APP_SECRET": "cfsecret",
            "CASHFREE_ENV": "sandbox",
            "FRONTEND_URL": "https://shop.example.com/",
            "BACKEND_URL": "https://api.example.com/",
            "PAYMENTS_HTTP_TIMEOUT": "7.5",
            "PAYMENTS_RETRY_TOTAL": "2",
            "COURSE_CATALOG_PATH": "/srv/courses.json",
        })

        assert settings.phonepe.has_credentials is True
        assert settings.phonepe.client_version == "2"
        assert settings.phonepe.endpoints.pay == PHONEPE_ENDPOINTS["sandbox"].pay
        assert settings.cashfree.base_url == "https://sandbox.cashfree.com/pg"
        assert settings.frontend_url == "https://shop.example.com"
        assert settings.backend_url == "https://api.example.com"
        assert settings.http.timeout == 7.5
        assert settings.http.retry_total == 2
        assert settings.course_catalog_path == Path("/srv/courses.json")

    def test_cashfree_api_url_override(self):
        settings = Settings.from_env({"CASHFREE_API_URL": "https://proxy.local/pg"})
        assert settings.cashfree.base_url == "https://proxy.local/pg"
