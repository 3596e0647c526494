"""
vital-node Sensors
Raw sample acquisition and per-sensor signal processing

Available Sensors:
- MPU6050: 3-axis accelerometer and gyroscope (100 Hz) - steps, falls
- MAX30102: Heart rate and SpO2 pulse oximeter (100 Hz)
- Ambient: Temperature and humidity (~1 Hz), TVOC and light on the anchor board

All sensors support:
- Pluggable SampleReader (hardware driver or simulator) with read retries
- Coordinator-based timestamps
- Publishing into the shared SensorStateStore
"""

from .reader import SampleReader, SampleReadError, read_with_retry
from .max30102 import MAX30102Collector, MAX30102Config, VitalEstimator
from .mpu6050 import MPU6050Collector, MPU6050Config, MotionDetector
from .ambient import AmbientCollector, AmbientConfig, AmbientSample

__all__ = [
    # Acquisition
    'SampleReader',
    'SampleReadError',
    'read_with_retry',

    # MAX30102 (Heart Rate + SpO2)
    'MAX30102Collector',
    'MAX30102Config',
    'VitalEstimator',

    # MPU6050 (Accelerometer + Gyroscope)
    'MPU6050Collector',
    'MPU6050Config',
    'MotionDetector',

    # Ambient (Temperature, Humidity, TVOC, Light)
    'AmbientCollector',
    'AmbientConfig',
    'AmbientSample',
]

__version__ = '1.0.0'
