"""
Fixed-window log throttling.

Under sustained overload many retry chains hit the same condition at once;
a ThrottledLogger emits its message at most once per window no matter how
many chains call it.
"""

import logging
import threading
import time
from collections.abc import Callable


class ThrottledLogger:
    """
    Emits a fixed warning at most once every ``interval`` seconds.

    Examples:
        >>> warning = ThrottledLogger(logger, "cluster overloaded", interval=5.0)
        >>> warning()   # logged
        >>> warning()   # suppressed until 5s have passed
    """

    def __init__(
        self,
        logger: logging.Logger,
        message: str,
        interval: float = 5.0,
        level: int = logging.WARNING,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.logger = logger
        self.message = message
        self.interval = interval
        self.level = level
        self._clock = clock
        self._last_emitted: float | None = None
        self._suppressed = 0
        self._lock = threading.Lock()

    def __call__(self) -> bool:
        """
        Log the message unless it was logged within the current window.

        Returns:
            True if the message was emitted
        """
        with self._lock:
            now = self._clock()
            if self._last_emitted is not None and now - self._last_emitted < self.interval:
                self._suppressed += 1
                return False
            self._last_emitted = now
            self._suppressed = 0

        self.logger.log(self.level, self.message)
        return True

    @property
    def suppressed(self) -> int:
        """Calls swallowed since the last emitted message."""
        return self._suppressed

    def reset(self) -> None:
        with self._lock:
            self._last_emitted = None
            self._suppressed = 0
