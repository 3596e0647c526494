"""
Sensor State
Shared, lock-guarded node state and its immutable snapshot record
"""

from .snapshot import SensorSnapshot, LocationFix, ValidityFlags, FIELD_NAMES
from .store import SensorStateStore, StoreLockTimeout

__all__ = [
    'SensorSnapshot',
    'LocationFix',
    'ValidityFlags',
    'FIELD_NAMES',
    'SensorStateStore',
    'StoreLockTimeout',
]
