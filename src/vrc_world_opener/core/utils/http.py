"""
Purpose: HTTP helpers that retry transient 5xx responses.
Constraints: No business logic; callers handle response validation.
"""

from __future__ import annotations

import os
from typing import Optional

import requests

from vrc_world_opener.core.utils.retry import retry

RETRY_ON_STATUS = frozenset({500, 502, 503, 504})


class RetryableStatus(requests.HTTPError):
    """A response status worth another attempt."""


def request_with_retry(
    session: requests.Session,
    method: str,
    url: str,
    *,
    retry_on_status: Optional[set[int]] = None,
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    **kwargs,
) -> requests.Response:
    """
    Issue a request through session, retrying 5xx statuses and connection errors.

    The final response is returned even when its status is still retriable,
    so callers can report it instead of catching an exception.
    """
    retry_on_status = retry_on_status or RETRY_ON_STATUS
    attempts = attempts or int(os.getenv("HTTP_RETRY_ATTEMPTS", "3"))
    base_delay = base_delay if base_delay is not None else float(os.getenv("HTTP_RETRY_BASE_DELAY", "0.5"))
    state = {"attempt": 0}

    def _do_request() -> requests.Response:
        state["attempt"] += 1
        resp = session.request(method, url, **kwargs)
        if resp.status_code in retry_on_status and state["attempt"] < attempts:
            raise RetryableStatus(f"Retryable HTTP status: {resp.status_code}", response=resp)
        return resp

    return retry(
        _do_request,
        attempts=attempts,
        base_delay=base_delay,
        exceptions=(RetryableStatus, requests.ConnectionError),
    )
