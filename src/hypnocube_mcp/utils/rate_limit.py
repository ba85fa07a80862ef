"""Minimum-interval pacing for writes to the cube."""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

# The cube drops data when driven faster than this
MIN_SEND_INTERVAL = 0.003333


class RateLimiter:
    """Enforce a fixed floor between successive sends.

    There is no burst credit: however long the link has been idle, two
    consecutive calls to :meth:`wait` are always at least ``interval``
    seconds apart.
    """

    def __init__(
        self,
        interval: float = MIN_SEND_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError(f"Interval must be >= 0, got {interval}")
        self._interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last_send = clock()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def last_send(self) -> float:
        return self._last_send

    def wait(self) -> float:
        """Block until the interval since the previous send has elapsed.

        Returns:
            The number of seconds slept (0.0 if no wait was needed).
        """
        elapsed = self._clock() - self._last_send
        pause = 0.0
        if elapsed < self._interval:
            pause = self._interval - elapsed
            logger.debug("Rate limit: sleeping %.6fs", pause)
            self._sleep(pause)
        self._last_send = self._clock()
        return pause
