"""
Ambient Sensor Configuration
Temperature/humidity polling (DHT11/DHT22 class sensors) plus the anchor
board's TVOC and light limits
"""

from dataclasses import dataclass


@dataclass
class AmbientConfig:
    """
    Configuration parameters for the ambient sensors.

    Readings outside the plausible range are treated as sensor faults and
    skipped. The comfort band only drives log warnings.
    """

    # Sampling settings
    collection_interval: float = 1.0  # seconds between reads

    # Plausible sensor range
    min_temperature_c: float = -40.0
    max_temperature_c: float = 80.0
    min_humidity_pct: float = 0.0
    max_humidity_pct: float = 100.0
    max_tvoc_ppb: float = 100000.0
    max_lux: float = 100000.0

    # Comfort band (warnings only)
    comfort_low_temperature_c: float = 10.0
    comfort_high_temperature_c: float = 30.0
    comfort_low_humidity_pct: float = 30.0
    comfort_high_humidity_pct: float = 70.0
    tvoc_alert_ppb: float = 50.0  # indoor air quality warning

    @classmethod
    def dht11(cls) -> 'AmbientConfig':
        """DHT11: 0-50 °C, 20-90 %RH, at most one read per second."""
        return cls(
            collection_interval=1.0,
            min_temperature_c=0.0,
            max_temperature_c=50.0,
            min_humidity_pct=20.0,
            max_humidity_pct=90.0,
        )

    @classmethod
    def dht22(cls) -> 'AmbientConfig':
        """DHT22: -40-80 °C, 0-100 %RH, at most one read every two seconds."""
        return cls(collection_interval=2.0)
