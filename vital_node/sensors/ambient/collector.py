"""
Ambient Data Collector
Slow polling of temperature/humidity, and on the anchor board TVOC and light,
into the shared state store
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from ..reader import SampleReader, SampleReadError, read_with_retry
from .config import AmbientConfig

if TYPE_CHECKING:
    from vital_node.coordinator import SensorCoordinator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AmbientSample:
    """
    One ambient reading.

    Optional values are None when the board has no such sensor: humidity on
    temperature-only parts, TVOC (MQ135) and lux on the wearable.
    """

    temperature_c: float
    humidity_pct: Optional[float] = None
    tvoc_ppb: Optional[float] = None
    lux: Optional[float] = None


class AmbientCollector:
    """
    Ambient collector - temperature/humidity/air quality/light task

    Each value is range-checked on its own: a plausible temperature is
    still published when the humidity of the same reading is not.
    """

    def __init__(
            self,
            reader: SampleReader,
            coordinator: 'SensorCoordinator',
            config: Optional[AmbientConfig] = None
    ):
        """
        Initialize ambient collector

        Args:
            reader: SampleReader returning AmbientSample
            coordinator: Sensor coordinator for the state store
            config: Ambient configuration
        """
        self.reader = reader
        self.coordinator = coordinator
        self.config = config if config else AmbientConfig()

        # State management
        self.is_running = False
        self.collection_thread = None
        self.stop_event = threading.Event()

        # Sample tracking
        self.sample_count = 0
        self.skipped_count = 0
        self.read_failures = 0
        self.latest: Optional[AmbientSample] = None
        self._comfort_warnings = set()

        logger.info("Ambient Collector initialized")

    def start(self):
        """Start the collection thread."""
        if self.is_running:
            logger.warning("Ambient collector already running")
            return

        self.is_running = True
        self.stop_event.clear()

        self.collection_thread = threading.Thread(
            target=self._collection_loop,
            name="Ambient-Collection-Thread",
            daemon=True
        )
        self.collection_thread.start()

        logger.info("✓ Ambient data collection started successfully")

    def stop(self):
        """Signal the collection thread to stop and wait for it."""
        if not self.is_running:
            logger.warning("Ambient collector not running")
            return

        logger.info("Stopping ambient data collection...")
        self.stop_event.set()

        if self.collection_thread and self.collection_thread.is_alive():
            self.collection_thread.join(timeout=5)

        self.is_running = False
        logger.info(f"✓ Ambient stopped: {self.sample_count} samples, {self.skipped_count} skipped")

    def _collection_loop(self):
        logger.info("Ambient collection loop started")

        while not self.stop_event.is_set():
            try:
                sample = read_with_retry(self.reader, "Ambient", retry_delay=0.1)
                self.process_sample(sample)

            except SampleReadError as e:
                self.read_failures += 1
                logger.error(f"Ambient read failed: {e}")
            except Exception as e:
                logger.error(f"Error in collection loop: {e}", exc_info=True)

            self.stop_event.wait(self.config.collection_interval)

        logger.info("Ambient collection loop stopped")

    def process_sample(self, sample: AmbientSample) -> bool:
        """
        Publish one reading after range checks.

        Args:
            sample: Ambient reading

        Returns:
            True if at least one value was published
        """
        cfg = self.config
        store = self.coordinator.store
        self.sample_count += 1
        published = False

        temperature = sample.temperature_c
        if cfg.min_temperature_c <= temperature <= cfg.max_temperature_c:
            store.set_temperature(temperature)
            published = True
            self._check_comfort('high_temperature', temperature > cfg.comfort_high_temperature_c,
                                f"High temperature: {temperature:.1f}°C")
            self._check_comfort('low_temperature', temperature < cfg.comfort_low_temperature_c,
                                f"Low temperature: {temperature:.1f}°C")
        else:
            logger.warning(f"⚠ Implausible temperature {temperature:.1f}°C skipped")

        humidity = sample.humidity_pct
        if humidity is not None:
            if cfg.min_humidity_pct <= humidity <= cfg.max_humidity_pct:
                store.set_humidity(humidity)
                published = True
                self._check_comfort('high_humidity', humidity > cfg.comfort_high_humidity_pct,
                                    f"High humidity: {humidity:.1f}%")
                self._check_comfort('low_humidity', humidity < cfg.comfort_low_humidity_pct,
                                    f"Low humidity: {humidity:.1f}%")
            else:
                logger.warning(f"⚠ Implausible humidity {humidity:.1f}% skipped")

        tvoc = sample.tvoc_ppb
        if tvoc is not None:
            if 0.0 <= tvoc <= cfg.max_tvoc_ppb:
                store.set_tvoc(tvoc)
                published = True
                self._check_comfort('high_tvoc', tvoc >= cfg.tvoc_alert_ppb,
                                    f"Poor indoor air quality: TVOC {tvoc:.1f}ppb")
            else:
                logger.warning(f"⚠ Implausible TVOC {tvoc:.1f}ppb skipped")

        lux = sample.lux
        if lux is not None:
            if 0.0 <= lux <= cfg.max_lux:
                store.set_lux(lux)
                published = True
            else:
                logger.warning(f"⚠ Implausible light level {lux:.1f}lx skipped")

        if published:
            self.latest = sample
        else:
            self.skipped_count += 1

        return published

    def _check_comfort(self, key: str, active: bool, message: str):
        """Warn once when a comfort limit is crossed, log again when it clears."""
        if active and key not in self._comfort_warnings:
            self._comfort_warnings.add(key)
            logger.warning(f"⚠ {message}")
        elif not active and key in self._comfort_warnings:
            self._comfort_warnings.discard(key)
            logger.info(f"{key.replace('_', ' ').capitalize()} cleared")

    def get_status(self) -> dict:
        return {
            'sensor_type': 'Ambient',
            'is_running': self.is_running,
            'samples_collected': self.sample_count,
            'samples_skipped': self.skipped_count,
            'read_failures': self.read_failures,
            'temperature': self.latest.temperature_c if self.latest else None,
            'humidity': self.latest.humidity_pct if self.latest else None,
            'tvoc': self.latest.tvoc_ppb if self.latest else None,
            'lux': self.latest.lux if self.latest else None,
        }

    def __repr__(self):
        status = "running" if self.is_running else "stopped"
        return f"<AmbientCollector(status={status})>"
