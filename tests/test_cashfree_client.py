"""
Tests for the Cashfree client.
"""

import pytest
import requests

from cashfree_client import CashfreeClient
from config import CashfreeSettings, Settings
from gateway_errors import ConfigurationError, GatewayError, NetworkError
from tests.helpers import make_response

BASE = "https://sandbox.cashfree.com/pg"
CUSTOMER = {"name": "Asha Rao", "email": "asha.rao@example.com", "phone": "9876543210"}


@pytest.fixture
def client(settings, session, clock):
    return CashfreeClient(settings, session=session, clock=clock)


class TestCreateOrder:

    def test_payload_and_reshaped_response(self, client, session, clock):
        session.request.return_value = make_response(200, {
            "order_id": "ORD1",
            "payment_session_id": "session_abc",
            "order_status": "ACTIVE",
            "cf_order_id": "2149460581",
        })

        result = client.create_order(amount=199.5, order_id="ORD1", customer=CUSTOMER)

        assert result == {"orderId": "ORD1", "paymentSessionId": "session_abc", "status": "ACTIVE"}
        call = session.request.call_args
        assert call.args == ("POST", f"{BASE}/orders")
        body = call.kwargs["json"]
        assert body["order_id"] == "ORD1"
        assert body["order_amount"] == 199.5
        assert body["order_currency"] == "INR"
        assert body["customer_details"] == {
            "customer_id": "asharaoexamplecom",
            "customer_name": "Asha Rao",
            "customer_email": "asha.rao@example.com",
            "customer_phone": "9876543210",
        }
        assert body["order_meta"] == {
            "return_url": "https://shop.example.com/payment-status?orderId=ORD1",
            "notify_url": "https://api.example.com/api/webhook/cashfree",
        }

    def test_api_key_headers(self, client, session, clock):
        session.request.return_value = make_response(200, {})

        client.create_order(amount=10, order_id="ORD1", customer=CUSTOMER)

        headers = session.request.call_args.kwargs["headers"]
        assert headers["x-client-id"] == "CF_APP"
        assert headers["x-client-secret"] == "cf_secret"
        assert headers["x-api-version"] == "2025-01-01"
        assert headers["x-idempotency-key"] == "ORD1"

    def test_generated_order_id(self, client, session, clock):
        session.request.return_value = make_response(200, {})
        client.create_order(amount=10, customer=CUSTOMER)
        assert session.request.call_args.kwargs["json"]["order_id"] == f"ORD_{clock()}"

    def test_amount_rounded_to_paise(self, client, session):
        session.request.return_value = make_response(200, {})
        client.create_order(amount=199.004, order_id="ORD1", customer=CUSTOMER)
        assert session.request.call_args.kwargs["json"]["order_amount"] == 199.0

    def test_customer_email_required(self, client, session):
        with pytest.raises(ValueError):
            client.create_order(amount=10, order_id="ORD1", customer={"name": "x"})
        session.request.assert_not_called()

    def test_missing_credentials(self, session, clock):
        client = CashfreeClient(Settings(cashfree=CashfreeSettings()), session=session, clock=clock)

        with pytest.raises(ConfigurationError):
            client.create_order(amount=10, order_id="ORD1", customer=CUSTOMER)

    def test_vendor_error(self, client, session):
        session.request.return_value = make_response(400, {
            "message": "order_amount : invalid value provided",
            "code": "order_amount_invalid",
            "type": "invalid_request_error",
        })

        with pytest.raises(GatewayError) as exc_info:
            client.create_order(amount=10, order_id="ORD1", customer=CUSTOMER)

        assert exc_info.value.status_code == 400
        assert exc_info.value.gateway == "cashfree"
        assert "order_amount : invalid value provided" in exc_info.value.message


class TestOrderQueries:

    def test_order_status(self, client, session):
        session.request.return_value = make_response(200, {"order_id": "ORD1", "order_status": "PAID"})

        assert client.get_order_status("ORD1")["order_status"] == "PAID"
        assert session.request.call_args.args == ("GET", f"{BASE}/orders/ORD1")

    def test_payment_details(self, client, session):
        session.request.return_value = make_response(200, {"cf_payment_id": "P1", "payment_status": "SUCCESS"})

        assert client.get_payment_details("ORD1", "P1")["payment_status"] == "SUCCESS"
        assert session.request.call_args.args == ("GET", f"{BASE}/orders/ORD1/payments/P1")

    def test_network_failure(self, client, session):
        session.request.side_effect = requests.ConnectionError("dns failure")

        with pytest.raises(NetworkError):
            client.get_order_status("ORD1")


class TestRefund:

    def test_refund_request(self, client, session, clock):
        session.request.return_value = make_response(200, {"refund_status": "PENDING"})

        result = client.refund(payment_id="P1", amount=50, order_id="ORD1")

        assert result == {"refund_status": "PENDING"}
        call = session.request.call_args
        assert call.args == ("POST", f"{BASE}/orders/ORD1/payments/P1/refunds")
        assert call.kwargs["json"] == {
            "refund_amount": 50.0,
            "refund_note": "Refund",
            "refund_id": f"REFUND_{clock()}",
        }
        assert call.kwargs["headers"]["x-idempotency-key"] == f"REFUND_{clock()}"

    def test_refunds_in_same_millisecond_get_distinct_references(self, client, session, clock):
        session.request.return_value = make_response(200, {"refund_status": "PENDING"})

        client.refund(payment_id="P1", amount=50, order_id="ORD1")
        client.refund(payment_id="P1", amount=50, order_id="ORD1")

        first, second = session.request.call_args_list
        assert first.kwargs["json"]["refund_id"] == f"REFUND_{clock()}"
        assert second.kwargs["json"]["refund_id"] == f"REFUND_{clock() + 1}"
        assert first.kwargs["headers"]["x-idempotency-key"] != second.kwargs["headers"]["x-idempotency-key"]

    def test_status_queries_carry_no_idempotency_key(self, client, session):
        session.request.return_value = make_response(200, {})
        client.get_order_status("ORD1")
        assert "x-idempotency-key" not in session.request.call_args.kwargs["headers"]

    def test_refund_requires_order_id(self, client, session):
        with pytest.raises(ValueError):
            client.refund(payment_id="P1", amount=50)
        session.request.assert_not_called()

    def test_refund_failure(self, client, session):
        session.request.return_value = make_response(409, {"message": "refund already exists"})

        with pytest.raises(GatewayError) as exc_info:
            client.refund(payment_id="P1", amount=50, order_id="ORD1")

        assert exc_info.value.status_code == 409


def test_api_url_override(session, clock):
    settings = Settings(cashfree=CashfreeSettings(app_id="a", app_secret="b", api_url="https://proxy.local/pg/"))
    assert CashfreeClient(settings, session=session, clock=clock).base_url == "https://proxy.local/pg"
