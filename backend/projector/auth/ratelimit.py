import math
import time
from collections import deque
from datetime import timedelta
from typing import Callable, Optional

from ..core.logging import get_logger
from .errors import RateLimitExceeded

logger = get_logger(__name__)


def _mask_identifier(identifier: str) -> str:
    if len(identifier) <= 8:
        return f"{identifier[:2]}...{identifier[-2:]}"
    return f"{identifier[:4]}...{identifier[-4:]}"


class LoginRateLimiter:
    """
    Sliding-window attempt counter, kept in process memory.

    Every attempt counts, successful or not. Once a key has used `limit`
    attempts inside `window`, further attempts are refused until the oldest
    one leaves the window.
    """

    def __init__(
        self,
        limit: int = 5,
        window: timedelta = timedelta(minutes=15),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window = window.total_seconds()
        self._clock = clock
        self._attempts: dict[str, deque[float]] = {}

    def check(self, key: str) -> tuple[bool, Optional[int]]:
        """Record an attempt for `key`; returns (allowed, retry_after_seconds)."""
        now = self._clock()
        attempts = self._attempts.setdefault(key, deque())
        while attempts and attempts[0] <= now - self.window:
            attempts.popleft()

        if len(attempts) >= self.limit:
            retry_after = max(1, math.ceil(attempts[0] + self.window - now))
            return False, retry_after

        attempts.append(now)
        return True, None

    def enforce(self, scope: str, identifier: Optional[str]) -> None:
        if not identifier:
            return
        allowed, retry_after = self.check(f"{scope}:{identifier}")
        if allowed:
            return
        logger.warning("rate_limit_exceeded", scope=scope, client=_mask_identifier(identifier))
        raise RateLimitExceeded(retry_after, reason=f"{scope}_rate_limited")
