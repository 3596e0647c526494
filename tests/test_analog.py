"""Anchor board analog conversions: MQ135 TVOC and photoresistor light level."""

import pytest

from vital_node.sensors.ambient import GasReading, light_lux, mq135_reading, mq135_tvoc_ppb
from vital_node.sensors.ambient.analog import ADC_MAX, mq135_resistance_kohm


def test_clean_air_ratio_gives_curve_constant():
    # Rs == R0 leaves only the curve's scale factor
    assert mq135_tvoc_ppb(1.0) == pytest.approx(116.6020682)


def test_tvoc_falls_as_resistance_rises():
    assert mq135_tvoc_ppb(2.0) == pytest.approx(116.6020682 * 2.0 ** -2.769034857)
    assert mq135_tvoc_ppb(2.0) < mq135_tvoc_ppb(1.0) < mq135_tvoc_ppb(0.5)


def test_resistance_from_divider():
    # Mid-scale: Vout = Vref / 2, so Rs equals the 10 kΩ load
    assert mq135_resistance_kohm(ADC_MAX / 2) == pytest.approx(10.0)


def test_full_reading():
    reading = mq135_reading(1417)

    assert isinstance(reading, GasReading)
    assert reading.rs_kohm == pytest.approx(18.90, abs=0.01)
    assert reading.ratio == pytest.approx(reading.rs_kohm / 10.0)
    assert reading.tvoc_ppb == pytest.approx(20.0, abs=0.5)


@pytest.mark.parametrize('adc_raw', [0, -5, ADC_MAX + 1])
def test_gas_reading_rejects_bad_adc(adc_raw):
    with pytest.raises(ValueError):
        mq135_reading(adc_raw)


def test_tvoc_rejects_non_positive_ratio():
    with pytest.raises(ValueError):
        mq135_tvoc_ppb(0.0)


def test_light_scale():
    assert light_lux(0) == pytest.approx(100.0)
    assert light_lux(ADC_MAX) == pytest.approx(0.0)
    assert light_lux(2048) == pytest.approx(50.0, abs=0.1)
    with pytest.raises(ValueError):
        light_lux(ADC_MAX + 1)
