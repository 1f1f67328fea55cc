import pytest
import requests

from vrc_world_opener.core.utils.http import request_with_retry
from vrc_world_opener.core.utils.retry import retry


def test_retry_succeeds_after_transient_errors():
    calls = {"n": 0}
    sleeps = []

    def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise ConnectionError("transient")
        return "ok"

    assert retry(flaky, attempts=3, base_delay=0.1, jitter=0, sleep=sleeps.append) == "ok"
    assert sleeps == [0.1, 0.2]


def test_retry_reraises_last_error():
    seen = []

    def always_fails():
        raise ValueError("nope")

    with pytest.raises(ValueError):
        retry(always_fails, attempts=2, jitter=0, on_retry=lambda n, e: seen.append(n), sleep=lambda _: None)
    assert seen == [1]


def test_retry_ignores_unlisted_exceptions():
    def broken():
        raise KeyError("x")

    with pytest.raises(KeyError):
        retry(broken, exceptions=(ValueError,), sleep=lambda _: pytest.fail("should not sleep"))


def test_retry_rejects_zero_attempts():
    with pytest.raises(ValueError):
        retry(lambda: None, attempts=0)


class _Resp:
    def __init__(self, status_code):
        self.status_code = status_code


class _Session:
    def __init__(self, statuses):
        self.statuses = list(statuses)
        self.calls = 0

    def request(self, method, url, **kwargs):
        self.calls += 1
        status = self.statuses.pop(0)
        if isinstance(status, Exception):
            raise status
        return _Resp(status)


def test_request_with_retry_retries_5xx_then_returns():
    session = _Session([503, 200])
    resp = request_with_retry(session, "GET", "https://example.invalid", attempts=3, base_delay=0)
    assert resp.status_code == 200
    assert session.calls == 2


def test_request_with_retry_returns_last_5xx():
    session = _Session([502, 502])
    resp = request_with_retry(session, "GET", "https://example.invalid", attempts=2, base_delay=0)
    assert resp.status_code == 502
    assert session.calls == 2


def test_request_with_retry_does_not_retry_client_errors():
    session = _Session([404, 200])
    resp = request_with_retry(session, "GET", "https://example.invalid", attempts=3, base_delay=0)
    assert resp.status_code == 404
    assert session.calls == 1


def test_request_with_retry_retries_connection_errors():
    session = _Session([requests.ConnectionError("reset"), 200])
    resp = request_with_retry(session, "GET", "https://example.invalid", attempts=2, base_delay=0)
    assert resp.status_code == 200
