"""
MPU6050 Data Collector
Polls raw accelerometer/gyroscope samples, runs step and fall detection,
and publishes step count and fall flag to the shared state store
"""

import logging
import threading
from typing import Optional, TYPE_CHECKING

from ..reader import SampleReader, SampleReadError, read_with_retry
from .config import MPU6050Config
from .processor import FallResult, InertialSample, MotionDetector

if TYPE_CHECKING:
    from vital_node.coordinator import SensorCoordinator

logger = logging.getLogger(__name__)


class MPU6050Collector:
    """
    MPU6050 collector - motion sampling task

    Feeds every sample to its own MotionDetector and writes results into the
    coordinator's SensorStateStore:
    - each accepted step increments the step count
    - a detected fall raises fall_detected once and clears it again after
      config.fall_hold_ms

    Uses coordinator's central clock for sample timestamps.
    """

    def __init__(
            self,
            reader: SampleReader,
            coordinator: 'SensorCoordinator',
            config: Optional[MPU6050Config] = None,
            detector: Optional[MotionDetector] = None
    ):
        """
        Initialize MPU6050 collector

        Args:
            reader: SampleReader returning InertialSample
            coordinator: Sensor coordinator for timestamps and state store
            config: MPU6050 configuration
            detector: Pre-built MotionDetector. Defaults to one built from config
        """
        self.reader = reader
        self.coordinator = coordinator
        self.config = config if config else MPU6050Config()
        self.detector = detector if detector else MotionDetector(self.config)

        # State management
        self.is_running = False
        self.collection_thread = None
        self.stop_event = threading.Event()

        # Fall flag hold
        self.fall_active = False
        self.fall_clear_at_ms: Optional[int] = None
        self.last_fall: Optional[FallResult] = None

        # Sample tracking
        self.sample_count = 0
        self.step_count = 0
        self.fall_count = 0
        self.read_failures = 0

        logger.info("MPU6050 Collector initialized")

    def start(self):
        """
        Start the collection thread.

        Returns:
            None.
        """
        if self.is_running:
            logger.warning("MPU6050 collector already running")
            return

        self.is_running = True
        self.stop_event.clear()

        self.collection_thread = threading.Thread(
            target=self._collection_loop,
            name="MPU6050-Collection-Thread",
            daemon=True
        )
        self.collection_thread.start()

        logger.info("✓ MPU6050 data collection started successfully")

    def stop(self):
        """
        Signal the collection thread to stop and wait for it.

        Returns:
            None.
        """
        if not self.is_running:
            logger.warning("MPU6050 collector not running")
            return

        logger.info("Stopping MPU6050 data collection...")
        self.stop_event.set()

        if self.collection_thread and self.collection_thread.is_alive():
            self.collection_thread.join(timeout=5)

        self.is_running = False
        logger.info(f"✓ MPU6050 stopped: {self.sample_count} samples, {self.step_count} steps, {self.fall_count} falls")

    def _collection_loop(self):
        """
        Main data collection loop, run in a background thread.

        Reads one sample per collection interval and processes it. Read
        failures are logged and the loop moves on to the next interval.

        Returns:
            None.
        """
        logger.info("MPU6050 collection loop started")

        while not self.stop_event.is_set():
            try:
                sample = read_with_retry(self.reader, "MPU6050")
                now_ms = self.coordinator.clock.now_ms()
                self.process_sample(sample, now_ms)

            except SampleReadError as e:
                self.read_failures += 1
                logger.error(f"MPU6050 read failed: {e}")
            except Exception as e:
                logger.error(f"Error in collection loop: {e}", exc_info=True)

            self.stop_event.wait(self.config.collection_interval)

        logger.info("MPU6050 collection loop stopped")

    def process_sample(self, sample: InertialSample, now_ms: int) -> FallResult:
        """
        Run step and fall detection on one sample and publish the results.

        Args:
            sample: Raw inertial sample
            now_ms: Sample time in milliseconds

        Returns:
            FallResult for this sample
        """
        store = self.coordinator.store
        self.sample_count += 1

        if self.detector.detect_step(sample, now_ms):
            self.step_count = store.increment_steps()

        result = self.detector.detect_fall(sample, now_ms)

        if result.fall_detected and not self.fall_active:
            self.fall_count += 1
            self.last_fall = result
            self.fall_active = True
            self.fall_clear_at_ms = now_ms + self.config.fall_hold_ms
            store.set_fall_detected(True)
            logger.warning(
                f"⚠ Fall published: direction={result.direction.name}, "
                f"roll={result.roll_deg:.1f}°, pitch={result.pitch_deg:.1f}°"
            )

        if self.fall_active and now_ms >= self.fall_clear_at_ms:
            store.set_fall_detected(False)
            self.fall_active = False
            self.fall_clear_at_ms = None
            logger.debug("Fall flag cleared")

        return result

    def get_status(self) -> dict:
        """
        Return the current collector state.

        Returns:
            Dict containing sensor type, running state and sample counts.
        """
        return {
            'sensor_type': 'MPU6050',
            'is_running': self.is_running,
            'samples_collected': self.sample_count,
            'steps': self.step_count,
            'falls': self.fall_count,
            'read_failures': self.read_failures,
        }

    def __repr__(self):
        """String representation showing running state."""
        status = "running" if self.is_running else "stopped"
        return f"<MPU6050Collector(status={status})>"
