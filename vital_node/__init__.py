"""
vital-node
Sensor node core: fuses raw inertial and PPG samples into steps, falls,
heart rate and SpO2, and exposes one consistent snapshot of the node state
"""

from .coordinator import CentralClock, SensorCoordinator
from .state import SensorSnapshot, SensorStateStore, LocationFix, ValidityFlags, StoreLockTimeout
from .pipeline import SensorPipeline

__all__ = [
    'CentralClock',
    'SensorCoordinator',
    'SensorSnapshot',
    'SensorStateStore',
    'LocationFix',
    'ValidityFlags',
    'StoreLockTimeout',
    'SensorPipeline',
]

__version__ = '1.0.0'
