"""
Purpose: Retry helper with exponential backoff for the API client.
Constraints: Utility only; callers decide which exceptions are retriable.
"""

# Imports
import random
import time
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


# Public API
def retry(
    func: Callable[[], T],
    *,
    attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    jitter: float = 0.2,
    exceptions: Iterable[type[Exception]] = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call func until it returns, re-raising the last error after `attempts` tries."""
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    retriable = tuple(exceptions)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retriable as exc:
            if attempt >= attempts:
                raise
            if on_retry:
                on_retry(attempt, exc)
            delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
            if jitter:
                delay += random.uniform(0, jitter)
            sleep(delay)
    raise AssertionError("unreachable")
