"""
Sensor Coordinator
Holds the collector registry together with the clock and state store every
collector on the node shares
"""

import logging
from typing import Any, Dict, Optional

from .clock import CentralClock
from ..state import SensorStateStore

logger = logging.getLogger(__name__)


class SensorCoordinator:
    """
    Shared context handed to every collector.

    Collectors read sample times from ``clock`` and publish into ``store``.
    The registry lets the owner start collectors one by one and stop all of
    them together on shutdown.
    """

    def __init__(
            self,
            store: Optional[SensorStateStore] = None,
            clock: Optional[CentralClock] = None,
            node_id: Optional[str] = None
    ):
        """
        Args:
            store: State store the collectors write into. Defaults to a new one
            clock: Sample clock. Defaults to a new one
            node_id: Name of this node in logs and status
        """
        self.node_id = node_id or 'vital-node'
        self.clock = clock if clock else CentralClock()
        self.store = store if store else SensorStateStore()
        self.sensors: Dict[str, Any] = {}

        logger.info(f"Sensor Coordinator ready for node {self.node_id}")

    def register_sensor(self, sensor_name: str, collector: Any):
        """Add a collector under sensor_name, replacing any earlier one."""
        if sensor_name in self.sensors:
            logger.warning(f"⚠ Replacing collector registered as '{sensor_name}'")
        self.sensors[sensor_name] = collector
        logger.info(f"✓ Registered sensor: {sensor_name}")

    def start_sensor(self, sensor_name: str):
        """
        Start one registered collector.

        Raises:
            ValueError: sensor_name was never registered
            Exception: whatever the collector's start() raised
        """
        collector = self.sensors.get(sensor_name)
        if collector is None:
            raise ValueError(f"Unknown sensor: {sensor_name}")

        try:
            collector.start()
        except Exception as e:
            logger.error(f"✗ {sensor_name} did not start: {e}", exc_info=True)
            raise
        logger.info(f"✓ Started sensor: {sensor_name}")

    def stop_all_sensors(self):
        """Stop every registered collector, most recently registered first."""
        for sensor_name, collector in reversed(list(self.sensors.items())):
            try:
                collector.stop()
            except Exception as e:
                logger.error(f"✗ {sensor_name} did not stop cleanly: {e}", exc_info=True)

        logger.info(f"✓ Stopped {len(self.sensors)} sensors")

    def get_coordinator_status(self) -> dict:
        """Registry, clock and store summary for status reports."""
        return {
            'node_id': self.node_id,
            'registered_sensors': list(self.sensors),
            'clock_stats': self.clock.get_stats(),
            'store': self.store.get_status(),
        }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop_all_sensors()

    def __repr__(self):
        return f"<SensorCoordinator(node={self.node_id}, sensors={len(self.sensors)})>"
