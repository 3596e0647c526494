"""
Central Clock System
Provides sample timestamps and wall-clock time for every sensor on the node
"""

import threading
import logging
import time
from datetime import datetime, timezone, timedelta
from typing import Optional

logger = logging.getLogger(__name__)


class CentralClock:
    """
    Thread-safe central clock shared by all collectors

    Two time bases:
    - Monotonic sample time (now_us / now_ms) counted from clock creation,
      strictly increasing across threads. Detectors run on this.
    - Wall-clock UTC time (now / epoch_ms) for stamping snapshots.
    """

    def __init__(self):
        """Initialize central clock"""
        self._lock = threading.Lock()
        self._origin_ns = time.monotonic_ns()
        self._last_us: Optional[int] = None
        self._last_timestamp: Optional[datetime] = None
        self._call_count = 0

        logger.info("Central clock initialized")

    def now_us(self) -> int:
        """
        Get the monotonic sample time

        Returns:
            int: Microseconds since the clock was created, strictly increasing
        """
        with self._lock:
            current = (time.monotonic_ns() - self._origin_ns) // 1000

            # Two threads in the same microsecond still get distinct stamps
            if self._last_us is not None and current <= self._last_us:
                current = self._last_us + 1

            self._last_us = current
            self._call_count += 1

            return current

    def now_ms(self) -> int:
        """
        Get the monotonic sample time in milliseconds

        Returns:
            int: Milliseconds since the clock was created (non-decreasing)
        """
        return self.now_us() // 1000

    def now(self) -> datetime:
        """
        Get current wall-clock timestamp

        Returns:
            datetime: Current UTC timestamp with microsecond precision
        """
        with self._lock:
            current_time = datetime.now(timezone.utc)

            if self._last_timestamp and current_time <= self._last_timestamp:
                current_time = self._last_timestamp + timedelta(microseconds=1)
                logger.debug("Adjusted timestamp to maintain monotonic sequence")

            self._last_timestamp = current_time
            self._call_count += 1

            return current_time

    def epoch_ms(self) -> int:
        """
        Wall-clock time as UNIX milliseconds (snapshot timestamp format)

        Returns:
            int: Milliseconds since the UNIX epoch
        """
        return int(self.now().timestamp() * 1000)

    def reset(self):
        """Restart the sample time base (useful for testing)"""
        with self._lock:
            self._origin_ns = time.monotonic_ns()
            self._last_us = None
            self._last_timestamp = None
            self._call_count = 0
            logger.info("Central clock reset")

    def get_stats(self) -> dict:
        """
        Get clock statistics

        Returns:
            dict: Clock usage statistics
        """
        with self._lock:
            return {
                'total_calls': self._call_count,
                'last_sample_us': self._last_us,
                'last_timestamp': self._last_timestamp.isoformat() if self._last_timestamp else None,
            }

    def __repr__(self):
        return f"<CentralClock(calls={self._call_count})>"
