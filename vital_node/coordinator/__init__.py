"""
vital-node Sensor Coordinator
Manages the node's collectors with a shared clock and state store
"""

from .clock import CentralClock
from .coordinator import SensorCoordinator

__all__ = [
    'CentralClock',
    'SensorCoordinator',
]

__version__ = '1.0.0'
