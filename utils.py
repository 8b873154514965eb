import re
import threading
import time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, Union

Number = Union[int, float, str, Decimal]

_ORDER_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def now_millis() -> int:
    return int(time.time() * 1000)


def to_minor_units(amount: Number) -> int:
    """
    Convert a major-unit amount (rupees) to minor units (paise).

    Rounds half-up to the nearest integer: 199.5 -> 19950, 199.004 -> 19900.
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"amount must be numeric, got {amount!r}")
    if not value.is_finite():
        raise ValueError(f"amount must be finite, got {amount!r}")
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_minor: int) -> float:
    return float(Decimal(amount_minor) / 100)


class ReferenceGenerator:
    """
    Issues `PREFIX_<epoch ms>` references that never repeat for one generator.

    Two calls inside the same millisecond get consecutive stamps instead of
    the same one.
    """

    def __init__(self, clock: Callable[[], int] = now_millis):
        self.clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self, prefix: str) -> str:
        with self._lock:
            stamp = max(self.clock(), self._last + 1)
            self._last = stamp
        return f"{prefix}_{stamp}"


def sanitize_merchant_order_id(m: str) -> str:
    if not isinstance(m, str):
        raise ValueError("merchantOrderId must be a string")
    if not m or len(m) > 63:
        raise ValueError("merchantOrderId length must be between 1 and 63 characters")
    if not _ORDER_ID_RE.match(m):
        raise ValueError("merchantOrderId contains invalid characters; only A-Z a-z 0-9 _ - allowed")
    return m


def customer_id_from_email(email: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "", email or "")