"""
Sensor Snapshot
Immutable record of the latest value of every measured quantity
"""

from dataclasses import dataclass, field, fields, asdict

FIELD_NAMES = (
    'heart_rate',
    'temperature',
    'humidity',
    'tvoc',
    'lux',
    'spo2',
    'steps',
    'fall_detected',
    'location',
)


@dataclass(frozen=True)
class LocationFix:
    """Nearest beacon (iBeacon major/minor) and its signal strength."""

    major: int = 0
    minor: int = 0
    rssi: int = 0


@dataclass(frozen=True)
class ValidityFlags:
    """One bit per measured field; set on the first write to that field."""

    heart_rate: bool = False
    temperature: bool = False
    humidity: bool = False
    tvoc: bool = False
    lux: bool = False
    spo2: bool = False
    steps: bool = False
    fall_detected: bool = False
    location: bool = False

    def count(self) -> int:
        return sum(1 for f in fields(self) if getattr(self, f.name))

    def any(self) -> bool:
        return self.count() > 0


@dataclass(frozen=True)
class SensorSnapshot:
    """
    Externally visible node state.

    Instances are never mutated: the store swaps in a new record on every
    write, so a snapshot reference always describes one consistent point in time.
    """

    heart_rate: float = 0.0  # bpm
    temperature: float = 0.0  # °C
    humidity: float = 0.0  # %RH
    tvoc: float = 0.0  # ppb, MQ135 estimate
    lux: float = 0.0  # illuminance
    spo2: int = 0  # %
    steps: int = 0  # cumulative
    fall_detected: bool = False
    location: LocationFix = field(default_factory=LocationFix)
    timestamp_ms: int = 0  # UNIX ms
    validity: ValidityFlags = field(default_factory=ValidityFlags)

    def to_dict(self) -> dict:
        """Plain nested dict, ready for an external serializer."""
        return asdict(self)
