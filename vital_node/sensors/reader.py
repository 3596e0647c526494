"""
Sample Reader
Capability interface for raw sensor acquisition, plus the retry wrapper
used by every collector
"""

import logging
import time
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class SampleReadError(Exception):
    """A sensor read failed (bus error, no data ready, etc.)."""


@runtime_checkable
class SampleReader(Protocol):
    """
    Anything that can deliver one raw sample per call.

    Implementations wrap a hardware driver (or a simulator) and raise
    SampleReadError or OSError when a read fails.
    """

    def read(self) -> Any:
        ...


def read_with_retry(
        reader: SampleReader,
        sensor_name: str,
        max_retries: int = 3,
        retry_delay: float = 0.02
) -> Any:
    """
    Read one sample, retrying transient failures.

    Args:
        reader:      SampleReader to poll.
        sensor_name: Name used in log messages.
        max_retries: Total number of attempts.
        retry_delay: Seconds to wait between attempts.

    Raises:
        SampleReadError once every attempt has failed.

    Returns:
        The sample returned by reader.read().
    """
    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            sample = reader.read()
            if attempt > 1:
                logger.warning(f"{sensor_name}: read succeeded after {attempt - 1} retries")
            return sample
        except (SampleReadError, OSError) as e:
            last_error = e
            logger.warning(f"{sensor_name}: read failed ({attempt}/{max_retries}): {e}")
            if attempt < max_retries:
                time.sleep(retry_delay)

    logger.error(f"{sensor_name}: giving up after {max_retries} attempts")
    raise SampleReadError(f"{sensor_name}: {max_retries} consecutive read failures") from last_error
