"""
MAX30102 Data Collector
Polls raw Red/IR samples, runs the vital estimator and publishes
heart rate and SpO2 to the shared state store
"""

import logging
import threading
from typing import Optional, TYPE_CHECKING

from ..reader import SampleReader, SampleReadError, read_with_retry
from .config import MAX30102Config
from .processor import PPGSample, VitalEstimate, VitalEstimator

if TYPE_CHECKING:
    from vital_node.coordinator import SensorCoordinator

logger = logging.getLogger(__name__)


class MAX30102Collector:
    """
    MAX30102 collector - PPG sampling task

    - Reads one PPGSample per collection interval
    - Stamps it with the coordinator's clock (µs)
    - Publishes heart rate whenever the estimator holds a valid value
    - Publishes SpO2 when valid and invalidates it in the store otherwise
    """

    def __init__(
            self,
            reader: SampleReader,
            coordinator: 'SensorCoordinator',
            config: Optional[MAX30102Config] = None,
            estimator: Optional[VitalEstimator] = None
    ):
        """
        Initialize MAX30102 collector

        Args:
            reader: SampleReader returning PPGSample
            coordinator: Sensor coordinator for timestamps and state store
            config: MAX30102 configuration
            estimator: Pre-built VitalEstimator. Defaults to one built from config
        """
        self.reader = reader
        self.coordinator = coordinator
        self.config = config if config else MAX30102Config()
        self.estimator = estimator if estimator else VitalEstimator(self.config)

        # State management
        self.is_running = False
        self.collection_thread = None
        self.stop_event = threading.Event()

        # Sample tracking
        self.sample_count = 0
        self.read_failures = 0
        self.latest: VitalEstimate = VitalEstimate()

        logger.info("MAX30102 Collector initialized")

    def start(self):
        """
        Start the collection thread.

        Returns:
            None.
        """
        if self.is_running:
            logger.warning("MAX30102 collector already running")
            return

        self.is_running = True
        self.stop_event.clear()

        self.collection_thread = threading.Thread(
            target=self._collection_loop,
            name="MAX30102-Collection-Thread",
            daemon=True
        )
        self.collection_thread.start()

        logger.info("✓ MAX30102 data collection started successfully")

    def stop(self):
        """
        Signal the collection thread to stop and wait for it.

        Returns:
            None.
        """
        if not self.is_running:
            logger.warning("MAX30102 collector not running")
            return

        logger.info("Stopping MAX30102 data collection...")
        self.stop_event.set()

        if self.collection_thread and self.collection_thread.is_alive():
            self.collection_thread.join(timeout=5)

        self.is_running = False
        logger.info(f"✓ MAX30102 stopped: {self.sample_count} samples processed")

    def _collection_loop(self):
        """Background loop: read, timestamp, process, wait."""
        logger.info("MAX30102 collection loop started")

        while not self.stop_event.is_set():
            try:
                sample = read_with_retry(self.reader, "MAX30102")
                now_us = self.coordinator.clock.now_us()
                self.process_sample(sample, now_us)

            except SampleReadError as e:
                self.read_failures += 1
                logger.error(f"MAX30102 read failed: {e}")
            except Exception as e:
                logger.error(f"Error in collection loop: {e}", exc_info=True)

            self.stop_event.wait(self.config.collection_interval)

        logger.info("MAX30102 collection loop stopped")

    def process_sample(self, sample: PPGSample, now_us: int) -> VitalEstimate:
        """
        Feed one sample to the estimator and publish its output.

        Args:
            sample: Raw Red/IR reading
            now_us: Sample time in microseconds

        Returns:
            VitalEstimate after this sample
        """
        store = self.coordinator.store
        estimate = self.estimator.update_sample(sample.red, sample.ir, now_us)
        self.sample_count += 1

        if estimate.heart_rate_valid:
            store.set_heart_rate(estimate.heart_rate_bpm)

        if estimate.spo2_valid:
            store.set_spo2(estimate.spo2_pct)
        elif self.latest.spo2_valid:
            store.invalidate('spo2')

        if estimate.heart_rate_valid and not self.latest.heart_rate_valid:
            logger.info(f"✓ Heart rate acquired: {estimate.heart_rate_bpm:.1f} bpm")

        self.latest = estimate
        return estimate

    def get_status(self) -> dict:
        """
        Return the current collector state.

        Returns:
            Dict containing sensor type, running state and latest estimate.
        """
        return {
            'sensor_type': 'MAX30102',
            'is_running': self.is_running,
            'samples_collected': self.sample_count,
            'read_failures': self.read_failures,
            'heart_rate': self.latest.heart_rate_bpm if self.latest.heart_rate_valid else None,
            'spo2': self.latest.spo2_pct if self.latest.spo2_valid else None,
            'estimator': self.estimator.get_status(),
        }

    def __repr__(self):
        """String representation showing running state."""
        status = "running" if self.is_running else "stopped"
        return f"<MAX30102Collector(status={status})>"
