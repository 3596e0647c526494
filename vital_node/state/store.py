"""
Sensor State Store
Lock-guarded aggregator written by producer threads and read as atomic snapshots
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Optional

from .snapshot import FIELD_NAMES, LocationFix, SensorSnapshot

logger = logging.getLogger(__name__)


class StoreLockTimeout(RuntimeError):
    """The store lock could not be acquired within the configured timeout."""


class SensorStateStore:
    """
    Thread-safe holder of the node's latest sensor state

    - One lock guards one record
    - Each setter writes a single field and raises its validity bit
    - get_snapshot() returns the whole record taken under the same lock

    The record is an immutable SensorSnapshot that setters replace, so a
    snapshot handed to the consumer can never change underneath it.
    """

    def __init__(self, lock=None, lock_timeout: Optional[float] = None):
        """
        Initialize the store with every field zero and invalid.

        Args:
            lock:         Lock object to guard the record. Defaults to threading.Lock().
            lock_timeout: Seconds to wait for the lock before raising
                          StoreLockTimeout. None waits forever.
        """
        self._lock = lock if lock is not None else threading.Lock()
        self._lock_timeout = lock_timeout
        self._record = SensorSnapshot()
        self._write_count = 0

        logger.info("Sensor state store initialized")

    @contextmanager
    def _locked(self):
        timeout = -1 if self._lock_timeout is None else self._lock_timeout
        if not self._lock.acquire(timeout=timeout):
            logger.error(f"✗ State store lock not acquired within {self._lock_timeout}s")
            raise StoreLockTimeout(f"State store lock not acquired within {self._lock_timeout}s")
        try:
            yield
        finally:
            self._lock.release()

    def _write(self, field_name: str, value):
        """Replace one field and raise its validity bit (caller holds the lock)."""
        validity = replace(self._record.validity, **{field_name: True})
        self._record = replace(self._record, validity=validity, **{field_name: value})
        self._write_count += 1

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def set_heart_rate(self, bpm: float):
        with self._locked():
            self._write('heart_rate', float(bpm))

    def set_temperature(self, celsius: float):
        with self._locked():
            self._write('temperature', float(celsius))

    def set_humidity(self, percent: float):
        with self._locked():
            self._write('humidity', float(percent))

    def set_tvoc(self, ppb: float):
        with self._locked():
            self._write('tvoc', float(ppb))

    def set_lux(self, lux: float):
        with self._locked():
            self._write('lux', float(lux))

    def set_spo2(self, percent: int):
        with self._locked():
            self._write('spo2', int(percent))

    def set_steps(self, steps: int):
        """
        Set the cumulative step count.

        Step counts never go backwards; a lower value is logged and ignored.

        Args:
            steps: New cumulative count.
        """
        with self._locked():
            current = self._record.steps
            if steps < current:
                logger.warning(f"Refused step count decrease ({current} -> {steps})")
                return
            self._write('steps', int(steps))

    def increment_steps(self, count: int = 1) -> int:
        """
        Atomically add to the step count.

        Args:
            count: Steps to add (must not be negative).

        Returns:
            The new cumulative count.
        """
        if count < 0:
            raise ValueError(f"Step increment must not be negative, got {count}")

        with self._locked():
            steps = self._record.steps + count
            self._write('steps', steps)
            return steps

    def set_fall_detected(self, detected: bool):
        with self._locked():
            self._write('fall_detected', bool(detected))

    def set_location(self, major: int, minor: int, rssi: int):
        with self._locked():
            self._write('location', LocationFix(major=major, minor=minor, rssi=rssi))

    def set_timestamp(self, timestamp_ms: int):
        """Stamp the record (UNIX ms). The timestamp has no validity bit."""
        with self._locked():
            self._record = replace(self._record, timestamp_ms=int(timestamp_ms))
            self._write_count += 1

    def invalidate(self, field_name: str):
        """
        Clear one validity bit, keeping the stored value.

        Args:
            field_name: One of FIELD_NAMES.

        Raises:
            ValueError for an unknown field.
        """
        if field_name not in FIELD_NAMES:
            raise ValueError(f"Unknown sensor field: {field_name}")

        with self._locked():
            if getattr(self._record.validity, field_name):
                validity = replace(self._record.validity, **{field_name: False})
                self._record = replace(self._record, validity=validity)
                self._write_count += 1
                logger.debug(f"Invalidated {field_name}")

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get_snapshot(self) -> SensorSnapshot:
        """
        Take a consistent copy of the whole record.

        Returns:
            SensorSnapshot as of the last completed write.
        """
        with self._locked():
            return self._record

    def has_valid_measurements(self) -> bool:
        return self.get_snapshot().validity.any()

    def valid_count(self) -> int:
        return self.get_snapshot().validity.count()

    def get_status(self) -> dict:
        snapshot = self.get_snapshot()
        return {
            'valid_fields': snapshot.validity.count(),
            'writes': self._write_count,
            'timestamp_ms': snapshot.timestamp_ms,
        }

    def __repr__(self):
        return f"<SensorStateStore(writes={self._write_count})>"
