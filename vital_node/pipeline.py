"""
vital-node - Sensor Pipeline
============================
Central module that owns the full lifecycle of all sensors on the node.

Usage:
    pipeline = SensorPipeline(mpu6050_reader=imu, max30102_reader=ppg)
    pipeline.start()
    # ... telemetry publisher polls pipeline.snapshot() ...
    pipeline.stop()

Sensors managed:
    - MPU6050   : 3-axis accelerometer + gyroscope -> steps, falls
    - MAX30102  : Heart rate (PPG) + pulse oximeter -> heart rate, SpO2
    - Ambient   : Temperature / humidity

Failure policy:
    A sensor without a reader is not started. A sensor that fails to
    initialise is skipped and recorded in the sensor log; the node keeps
    running with whichever sensors are available.
"""

import logging
from typing import Optional

from vital_node.coordinator.clock import CentralClock
from vital_node.coordinator.coordinator import SensorCoordinator
from vital_node.sensors.reader import SampleReader
from vital_node.state import SensorSnapshot, SensorStateStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Sensor labels, also used as coordinator registry keys
# ---------------------------------------------------------------------------
SENSOR_MPU6050 = 'mpu6050'
SENSOR_MAX30102 = 'max30102'
SENSOR_AMBIENT = 'ambient'


class SensorPipeline:
    """
    Owns the lifecycle of all node sensors.

    Responsibilities:
      - Build each sensor's collector around its SampleReader
      - Register all sensors with the SensorCoordinator
      - Record each sensor's init outcome in the sensor log
      - Provide a clean start() / stop() interface
      - Hand out stamped snapshots of the shared state
      - Report which sensors are active via get_status()
    """

    def __init__(
        self,
        mpu6050_reader: Optional[SampleReader] = None,
        max30102_reader: Optional[SampleReader] = None,
        ambient_reader: Optional[SampleReader] = None,
        store: Optional[SensorStateStore] = None,
        clock: Optional[CentralClock] = None,
        mpu6050_config=None,
        max30102_config=None,
        ambient_config=None,
        node_id: Optional[str] = None,
    ):
        """
        Args:
            mpu6050_reader  : Reader returning InertialSample, None to skip the IMU
            max30102_reader : Reader returning PPGSample, None to skip the PPG sensor
            ambient_reader  : Reader returning AmbientSample, None to skip ambient
            store           : Shared state store. Defaults to a new one
            clock           : Shared clock. Defaults to a new one
            *_config        : Optional per-sensor configuration
            node_id         : Identifier used in logs and status
        """
        self.coordinator = SensorCoordinator(store=store, clock=clock, node_id=node_id)
        self.clock = self.coordinator.clock
        self.store = self.coordinator.store

        self._readers = {
            SENSOR_MPU6050: mpu6050_reader,
            SENSOR_MAX30102: max30102_reader,
            SENSOR_AMBIENT: ambient_reader,
        }
        self._configs = {
            SENSOR_MPU6050: mpu6050_config,
            SENSOR_MAX30102: max30102_config,
            SENSOR_AMBIENT: ambient_config,
        }

        # Tracks which sensors successfully initialised
        self._active_sensors: list[str] = []
        self._failed_sensors: list[str] = []
        self.sensor_log: list[dict] = []

        # Collectors that started, keyed by sensor label
        self._collectors: dict = {}

        self._started = False

        logger.info(f"SensorPipeline created for node {self.coordinator.node_id}")

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def start(self):
        """
        Initialise and start all sensors that have a reader.
        Failed sensors are logged and skipped.
        """
        if self._started:
            logger.warning("Sensor pipeline already started")
            return

        logger.info("=" * 55)
        logger.info("  vital-node Sensor Pipeline — starting")
        logger.info("=" * 55)

        if self._readers[SENSOR_MPU6050] is not None:
            self._init_mpu6050()
        if self._readers[SENSOR_MAX30102] is not None:
            self._init_max30102()
        if self._readers[SENSOR_AMBIENT] is not None:
            self._init_ambient()

        self._started = True
        logger.info(
            f"Pipeline ready — active: {self._active_sensors or 'none'} | "
            f"failed: {self._failed_sensors or 'none'}"
        )

    def stop(self):
        """Gracefully stop all active sensors."""
        if not self._started:
            return

        logger.info("Stopping sensor pipeline...")
        self.coordinator.stop_all_sensors()
        self._started = False
        logger.info("✓ Sensor pipeline stopped")

    def snapshot(self) -> SensorSnapshot:
        """
        Stamp the record with the current wall-clock time and read it.

        Returns:
            SensorSnapshot taken under the store lock
        """
        self.store.set_timestamp(self.clock.epoch_ms())
        return self.store.get_snapshot()

    @property
    def active_sensors(self) -> list:
        return list(self._active_sensors)

    @property
    def failed_sensors(self) -> list:
        return list(self._failed_sensors)

    @property
    def collector_status(self) -> dict:
        """Live get_status() of every running collector, keyed by sensor label."""
        return {name: collector.get_status() for name, collector in self._collectors.items()}

    def get_status(self) -> dict:
        """
        Return a summary of sensor states for logging.
        """
        return {
            'node_id'        : self.coordinator.node_id,
            'running'        : self._started,
            'active_sensors' : self._active_sensors,
            'failed_sensors' : self._failed_sensors,
            'collectors'     : self.collector_status,
            'coordinator'    : self.coordinator.get_coordinator_status(),
        }

    # -----------------------------------------------------------------------
    # Private: sensor initialisation helpers
    # -----------------------------------------------------------------------

    def _init_mpu6050(self):
        """Initialise MPU6050 accelerometer/gyroscope."""
        sensor_name = SENSOR_MPU6050
        try:
            from vital_node.sensors.mpu6050.collector import MPU6050Collector
            from vital_node.sensors.mpu6050.config import MPU6050Config

            config = self._configs[sensor_name] or MPU6050Config()
            collector = MPU6050Collector(
                reader=self._readers[sensor_name],
                coordinator=self.coordinator,
                config=config,
            )

            self.coordinator.register_sensor(sensor_name, collector)
            self.coordinator.start_sensor(sensor_name)

            self._collectors[sensor_name] = collector
            self._active_sensors.append(sensor_name)

            self._log_sensor_status(
                sensor_type=sensor_name,
                status='active',
                sampling_rate_hz=config.sample_rate,
                params={
                    'accel_sensitivity': config.accel_sensitivity,
                    'gyro_sensitivity' : config.gyro_sensitivity,
                    'fall_hold_ms'     : config.fall_hold_ms,
                },
            )
            logger.info(f"✓ MPU6050 initialised ({config.sample_rate} Hz)")

        except Exception as e:
            self._handle_sensor_failure(sensor_name, e)

    def _init_max30102(self):
        """Initialise MAX30102 heart rate / SpO2 sensor."""
        sensor_name = SENSOR_MAX30102
        try:
            from vital_node.sensors.max30102.collector import MAX30102Collector
            from vital_node.sensors.max30102.config import MAX30102Config

            config = self._configs[sensor_name] or MAX30102Config()
            collector = MAX30102Collector(
                reader=self._readers[sensor_name],
                coordinator=self.coordinator,
                config=config,
            )

            self.coordinator.register_sensor(sensor_name, collector)
            self.coordinator.start_sensor(sensor_name)

            self._collectors[sensor_name] = collector
            self._active_sensors.append(sensor_name)

            self._log_sensor_status(
                sensor_type=sensor_name,
                status='active',
                sampling_rate_hz=config.sample_rate,
                params={
                    'buffer_size'  : config.buffer_size,
                    'spo2_interval': config.spo2_interval,
                },
            )
            logger.info(f"✓ MAX30102 initialised ({config.sample_rate} Hz)")

        except Exception as e:
            self._handle_sensor_failure(sensor_name, e)

    def _init_ambient(self):
        """Initialise the ambient sensors (temperature, humidity, TVOC, light)."""
        sensor_name = SENSOR_AMBIENT
        try:
            from vital_node.sensors.ambient.collector import AmbientCollector
            from vital_node.sensors.ambient.config import AmbientConfig

            config = self._configs[sensor_name] or AmbientConfig()
            collector = AmbientCollector(
                reader=self._readers[sensor_name],
                coordinator=self.coordinator,
                config=config,
            )

            self.coordinator.register_sensor(sensor_name, collector)
            self.coordinator.start_sensor(sensor_name)

            self._collectors[sensor_name] = collector
            self._active_sensors.append(sensor_name)

            self._log_sensor_status(
                sensor_type=sensor_name,
                status='active',
                sampling_rate_hz=1.0 / config.collection_interval,
                params={
                    'temperature_range': (config.min_temperature_c, config.max_temperature_c),
                    'humidity_range'   : (config.min_humidity_pct, config.max_humidity_pct),
                    'tvoc_alert_ppb'   : config.tvoc_alert_ppb,
                },
            )
            logger.info(f"✓ Ambient sensor initialised (every {config.collection_interval:.1f}s)")

        except Exception as e:
            self._handle_sensor_failure(sensor_name, e)

    # -----------------------------------------------------------------------
    # Private: failure handling + sensor log
    # -----------------------------------------------------------------------

    def _handle_sensor_failure(self, sensor_name: str, exc: Exception):
        """
        Record a failed sensor and mark it as skipped.
        The node keeps running without data for this sensor.
        """
        self._failed_sensors.append(sensor_name)

        logger.warning(
            f"⚠ {sensor_name} failed to initialise — skipping. "
            f"Error: {exc}"
        )

        self._log_sensor_status(
            sensor_type=sensor_name,
            status='failed',
            sampling_rate_hz=None,
            params={},
            notes=f"{type(exc).__name__}: {exc}",
        )

    def _log_sensor_status(
        self,
        sensor_type: str,
        status: str,
        sampling_rate_hz: Optional[float],
        params: dict,
        notes: str = None,
    ):
        """Append one init record so the run keeps a trace of every sensor's outcome."""
        self.sensor_log.append({
            'sensor_type'     : sensor_type,
            'status'          : status,
            'sampling_rate_hz': sampling_rate_hz,
            'timestamp'       : self.clock.now(),
            'params'          : params or {},
            'notes'           : notes,
        })

    # -----------------------------------------------------------------------
    # Dunder helpers
    # -----------------------------------------------------------------------

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def __repr__(self):
        return (
            f"<SensorPipeline("
            f"active={self._active_sensors}, "
            f"failed={self._failed_sensors})>"
        )
