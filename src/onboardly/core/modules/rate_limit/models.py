"""Fixed-window request counters kept in the database."""

from collections.abc import Awaitable, Callable
from datetime import datetime

from pydantic import BaseModel

# Capability handed to rate-limited operations: awaited with the caller's identifier,
# raises RateLimitExceeded when the caller is over its budget.
RateLimitCheck = Callable[[str], Awaitable[None]]


class RateLimitCounter(BaseModel):
    """Hits of one identifier on one route within one window.

    Indexed on (key, window_start) - unique, expires_at (TTL).
    """

    key: str  # "<route>:<identifier>"
    window_start: int  # Unix seconds, aligned to the window size
    hits: int = 0
    expires_at: datetime
