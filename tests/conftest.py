"""Shared fixtures and sample builders for the vital-node test suite."""

import pytest

from vital_node.coordinator import SensorCoordinator
from vital_node.sensors.mpu6050.processor import InertialSample
from vital_node.state import SensorStateStore

ONE_G = 16384  # ±2 g range


def flat(ax_g=0.0, ay_g=0.0, az_g=1.0, gx=0, gy=0, gz=0, t_ms=0):
    """Raw sample for a device lying flat, with optional extra acceleration in g."""
    return InertialSample(
        ax=int(ax_g * ONE_G),
        ay=int(ay_g * ONE_G),
        az=int(az_g * ONE_G),
        gx=gx, gy=gy, gz=gz,
        t_ms=t_ms,
    )


@pytest.fixture
def store():
    return SensorStateStore()


@pytest.fixture
def coordinator(store):
    coordinator = SensorCoordinator(store=store, node_id='test-node')
    yield coordinator
    coordinator.stop_all_sensors()
