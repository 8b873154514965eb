"""
Shared fixtures.

HTTP sessions are Mock objects injected through the client constructors, so
no test touches the network.
"""

from unittest.mock import Mock

import pytest
import requests

from config import CashfreeSettings, HttpSettings, PhonePeSettings, Settings
from tests.helpers import FakeClock, make_response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        phonepe=PhonePeSettings(
            client_id="PP_CLIENT",
            client_secret="pp_secret",
            client_version="1",
            environment="sandbox",
            webhook_username="hook_user",
            webhook_password="hook_pass",
        ),
        cashfree=CashfreeSettings(
            app_id="CF_APP",
            app_secret="cf_secret",
            environment="sandbox",
        ),
        http=HttpSettings(timeout=5.0),
        frontend_url="https://shop.example.com",
        backend_url="https://api.example.com",
        course_catalog_path=tmp_path / "courses.json",
        site_name="Test Courses",
        diag_secret="diag-secret",
    )


@pytest.fixture
def token_response():
    return make_response(200, {"access_token": "tok_abc", "expires_at": 1700000000, "token_type": "O-Bearer"})
