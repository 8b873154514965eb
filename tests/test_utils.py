from decimal import Decimal

import pytest

from tests.helpers import FakeClock
from utils import (
    ReferenceGenerator,
    customer_id_from_email,
    from_minor_units,
    sanitize_merchant_order_id,
    to_minor_units,
)


class TestMinorUnits:

    @pytest.mark.parametrize("amount, expected", [
        (500, 50000),
        (199.5, 19950),
        (199.004, 19900),
        (199.005, 19901),
        (0.125, 13),
        ("49.99", 4999),
        (Decimal("10.10"), 1010),
    ])
    def test_to_minor_units(self, amount, expected):
        assert to_minor_units(amount) == expected

    @pytest.mark.parametrize("amount", ["abc", float("nan"), float("inf")])
    def test_rejects_non_numeric(self, amount):
        with pytest.raises(ValueError):
            to_minor_units(amount)

    def test_from_minor_units(self):
        assert from_minor_units(19950) == 199.5


class TestReferenceGenerator:

    def test_uses_clock(self):
        references = ReferenceGenerator(lambda: 1700000000123)
        assert references("REFUND") == "REFUND_1700000000123"

    def test_same_millisecond_is_bumped(self):
        references = ReferenceGenerator(lambda: 1700000000123)

        assert [references("REFUND") for _ in range(3)] == [
            "REFUND_1700000000123",
            "REFUND_1700000000124",
            "REFUND_1700000000125",
        ]

    def test_follows_clock_once_it_moves_ahead(self):
        clock = FakeClock(1000)
        references = ReferenceGenerator(clock)
        references("ORD")
        clock.advance(50)
        assert references("ORD") == "ORD_1050"


class TestMerchantOrderId:

    def test_valid(self):
        assert sanitize_merchant_order_id("ORD_1-a") == "ORD_1-a"

    @pytest.mark.parametrize("value", ["", "has space", "a" * 64, "semi;colon", 123])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            sanitize_merchant_order_id(value)


def test_customer_id_from_email():
    assert customer_id_from_email("first.last+tag@example.co.in") == "firstlasttagexamplecoin"