"""
Ambient Sensor Module for vital-node
Temperature and humidity (DHT11/DHT22 class sensors) at ~1 Hz, plus the
anchor board's MQ135 TVOC and photoresistor light level
"""

from .analog import GasReading, light_lux, mq135_reading, mq135_tvoc_ppb
from .collector import AmbientCollector, AmbientSample
from .config import AmbientConfig

__all__ = [
    'AmbientCollector',
    'AmbientSample',
    'AmbientConfig',
    'GasReading',
    'light_lux',
    'mq135_reading',
    'mq135_tvoc_ppb',
]

__version__ = '1.0.0'
