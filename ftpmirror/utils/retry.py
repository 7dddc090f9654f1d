"""
Exponential back-off for network operations
"""
import time
from typing import Callable, TypeVar

from .logging import log, warn

T = TypeVar("T")


def retry_with_backoff(fn: Callable[[], T], max_retries: int, initial_delay: float,
                       sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Call fn up to max_retries times, sleeping initial_delay, 2*initial_delay, …
    between attempts. The last exception is re-raised once attempts run out.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")
    delay = initial_delay
    for attempt in range(1, max_retries + 1):
        try:
            return fn()
        except Exception as exc:
            if attempt == max_retries:
                raise
            warn(f"{getattr(fn, '__name__', 'operation')} failed "
                 f"(attempt {attempt}/{max_retries}): {exc}")
            log(f"  retrying in {delay:.1f}s …")
            sleep(delay)
            delay = min(delay * 2, 60)
