"""Minimum-delay gate shared by every outbound request."""

import time
from typing import Callable, Optional

from goldwatch.core.logger import logger


class RateGate:
    """Sequence outbound calls so free-tier quotas are never exceeded.

    The gate remembers when the previous outbound call completed. ``wait``
    blocks until the requested interval has elapsed since then; the first
    call never blocks. Single-threaded use only.

    Args:
        clock: Monotonic clock in seconds (injectable for tests).
        sleep: Blocking sleep in seconds (injectable for tests).
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None

    def wait(self, min_interval_ms: int) -> float:
        """Block until ``min_interval_ms`` has passed since the last completed call.

        Returns:
            float: Seconds actually slept (0.0 when no wait was needed).
        """
        if self._last_call is None or min_interval_ms <= 0:
            return 0.0
        elapsed = self._clock() - self._last_call
        remaining = min_interval_ms / 1000.0 - elapsed
        if remaining <= 0:
            return 0.0
        logger.debug(f"RateGate: sleeping {remaining:.3f}s")
        self._sleep(remaining)
        return remaining

    def mark(self) -> None:
        """Record that an outbound call has just completed."""
        self._last_call = self._clock()
