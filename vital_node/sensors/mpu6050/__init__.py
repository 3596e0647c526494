"""
MPU6050 Sensor Module for vital-node
3-axis accelerometer and gyroscope with step counting and fall detection

Architecture:
- Collector: Raw X,Y,Z sampling thread publishing into the state store
- Processor: Per-sample step and fall detection

Capabilities:
- Step counting (gravity-removed XY activity with hysteresis)
- Fall detection (extreme acceleration, or impact plus tilt)
- Fall direction (8 sectors from roll/pitch)

Usage:
    collector = MPU6050Collector(reader, coordinator)
    collector.start()
    # ... steps and falls land in coordinator.store ...
    collector.stop()
"""

from .collector import MPU6050Collector
from .processor import (
    MotionDetector,
    InertialSample,
    FallResult,
    FallDirection,
    calculate_roll_angle,
    calculate_pitch_angle,
    determine_fall_direction,
)
from .config import MPU6050Config

__all__ = [
    'MPU6050Collector',
    'MotionDetector',
    'InertialSample',
    'FallResult',
    'FallDirection',
    'calculate_roll_angle',
    'calculate_pitch_angle',
    'determine_fall_direction',
    'MPU6050Config',
]

__version__ = '1.0.0'
