from unittest.mock import Mock

import requests

NOW_MS = 1_600_000_000_000


def make_response(status_code=200, body=None, text=None):
    """Fake requests.Response with a JSON body (or non-JSON text)."""
    resp = Mock(spec=requests.Response)
    resp.status_code = status_code
    if body is None and text is not None:
        resp.json.side_effect = ValueError("not json")
        resp.text = text
    else:
        resp.json.return_value = body if body is not None else {}
        resp.text = str(body)
    return resp


class FakeClock:
    def __init__(self, now_ms=NOW_MS):
        self.now_ms = now_ms

    def __call__(self):
        return self.now_ms

    def advance(self, ms):
        self.now_ms += ms
