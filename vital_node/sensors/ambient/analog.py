"""
Analog Ambient Sensors
ADC conversions for the anchor board's MQ135 gas sensor and photoresistor
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


# 12-bit ADC on a 3.3 V reference
ADC_MAX = 4095
ADC_VREF = 3.3

# MQ135 load resistor and clean-air reference resistance
MQ135_RLOAD_OHM = 10000.0
MQ135_R0_KOHM = 10.0

# TVOC power-law fit: ppb = A * (Rs/R0) ** B
MQ135_TVOC_A = 116.6020682
MQ135_TVOC_B = -2.769034857

# Photoresistor full-scale value (fully lit)
LIGHT_FULL_SCALE_LUX = 100.0


@dataclass(frozen=True)
class GasReading:
    """One MQ135 conversion: sensor resistance, Rs/R0 and the TVOC estimate."""

    rs_kohm: float
    ratio: float
    tvoc_ppb: float


def mq135_resistance_kohm(adc_raw: int, rload_ohm: float = MQ135_RLOAD_OHM) -> float:
    """
    Sensor resistance Rs from the voltage divider reading.

    Args:
        adc_raw: 12-bit ADC count of the analog output
        rload_ohm: Load resistor in ohms

    Returns:
        Rs in kΩ

    Raises:
        ValueError: adc_raw is zero or out of range (no divider voltage)
    """
    if not 0 < adc_raw <= ADC_MAX:
        raise ValueError(f"MQ135 ADC reading out of range: {adc_raw}")

    voltage = adc_raw / ADC_MAX * ADC_VREF
    return (ADC_VREF - voltage) * rload_ohm / voltage / 1000.0


def mq135_tvoc_ppb(ratio: float) -> float:
    """
    TVOC estimate from Rs/R0.

    Raises:
        ValueError: ratio is not positive
    """
    if ratio <= 0:
        raise ValueError(f"Rs/R0 ratio must be positive, got {ratio}")
    return MQ135_TVOC_A * ratio ** MQ135_TVOC_B


def mq135_reading(adc_raw: int, r0_kohm: float = MQ135_R0_KOHM,
                  rload_ohm: float = MQ135_RLOAD_OHM) -> GasReading:
    """
    Full MQ135 conversion from one ADC count.

    Args:
        adc_raw: 12-bit ADC count of the analog output
        r0_kohm: Calibrated clean-air resistance
        rload_ohm: Load resistor in ohms

    Returns:
        GasReading with Rs, Rs/R0 and TVOC in ppb
    """
    rs = mq135_resistance_kohm(adc_raw, rload_ohm)
    ratio = rs / r0_kohm
    reading = GasReading(rs_kohm=rs, ratio=ratio, tvoc_ppb=mq135_tvoc_ppb(ratio))
    logger.debug(f"MQ135: Rs={rs:.2f}kΩ ratio={ratio:.3f} TVOC={reading.tvoc_ppb:.1f}ppb")
    return reading


def light_lux(adc_raw: int, full_scale_lux: float = LIGHT_FULL_SCALE_LUX) -> float:
    """
    Illuminance from the photoresistor divider.

    The divider output falls as light rises, so a zero count reads as
    full scale and ADC_MAX reads as dark.

    Raises:
        ValueError: adc_raw outside the 12-bit range
    """
    if not 0 <= adc_raw <= ADC_MAX:
        raise ValueError(f"Light sensor ADC reading out of range: {adc_raw}")
    return full_scale_lux * (ADC_MAX - adc_raw) / ADC_MAX
