"""Heart rate, SpO2 and signal quality on synthetic PPG."""

import pytest

from vital_node.sensors.max30102 import (
    HeartBeatHistory,
    MAX30102Config,
    SignalBuffer,
    SpO2Status,
    VitalEstimator,
    classify_spo2,
)
from vital_node.sensors.simulated import SimulatedPPGReader

PERIOD_US = 10000


def feed(estimator, reader, n, start=0):
    estimate = None
    for i in range(start, start + n):
        sample = reader.read()
        estimate = estimator.update_sample(sample.red, sample.ir, i * PERIOD_US)
    return estimate


def test_initial_estimate_is_invalid():
    estimate = VitalEstimator().estimate

    assert not estimate.heart_rate_valid
    assert estimate.heart_rate_bpm == 0.0
    assert not estimate.spo2_valid
    assert estimate.spo2_pct == 0
    assert estimate.spo2_status == SpO2Status.INVALID


def test_heart_rate_and_spo2_from_clean_signal():
    estimator = VitalEstimator()
    estimate = feed(estimator, SimulatedPPGReader(heart_rate_bpm=72.0, r_ratio=0.6), 1000)

    assert estimate.heart_rate_valid
    assert estimate.heart_rate_bpm == pytest.approx(72.0, abs=2.0)
    assert estimate.spo2_valid
    assert estimate.spo2_pct in (96, 97, 98)
    assert estimate.spo2_status == SpO2Status.NORMAL
    assert estimate.r_ratio == pytest.approx(0.6, abs=0.05)


def test_slower_pulse_gives_lower_rate():
    estimator = VitalEstimator()
    estimate = feed(estimator, SimulatedPPGReader(heart_rate_bpm=60.0), 1200)

    assert estimate.heart_rate_valid
    assert estimate.heart_rate_bpm == pytest.approx(60.0, abs=2.0)


@pytest.mark.parametrize('bpm', [60.0, 72.0, 90.0])
def test_reported_rate_tracks_simulated_pulse(bpm):
    estimate = feed(VitalEstimator(), SimulatedPPGReader(heart_rate_bpm=bpm), 1200)

    assert estimate.heart_rate_valid
    assert estimate.heart_rate_bpm == pytest.approx(bpm, abs=2.0)


def test_signal_quality_on_good_contact():
    estimator = VitalEstimator()
    feed(estimator, SimulatedPPGReader(), 200)
    quality = estimator.signal_quality

    assert quality.contact_detected
    assert quality.quality_good
    assert quality.ir_ac_rms >= estimator.config.min_ac_amplitude
    assert quality.perfusion_index >= estimator.config.min_perfusion_index


def test_no_spo2_without_enough_history():
    estimator = VitalEstimator()
    reader = SimulatedPPGReader()

    assert not feed(estimator, reader, 499).spo2_valid
    assert feed(estimator, reader, 1, start=499).spo2_valid


def test_detached_sensor_gates_everything():
    # DC below the contact floor
    estimator = VitalEstimator()
    reader = SimulatedPPGReader(ir_dc=3000.0, red_dc=3000.0, ir_ac=2000.0)
    estimate = feed(estimator, reader, 800)

    assert not estimator.quality.contact_detected
    assert not estimator.quality.quality_good
    assert not estimate.spo2_valid
    assert estimate.spo2_status == SpO2Status.INVALID
    assert not estimate.heart_rate_valid


def test_flat_signal_is_poor_quality():
    estimator = VitalEstimator()
    estimate = feed(estimator, SimulatedPPGReader(ir_ac=0.0), 600)

    assert estimator.quality.contact_detected
    assert not estimator.quality.quality_good
    assert not estimate.spo2_valid
    assert not estimate.heart_rate_valid


def test_implausibly_low_spo2_is_rejected():
    # R = 2.0 maps below the severe floor
    estimator = VitalEstimator()
    estimate = feed(estimator, SimulatedPPGReader(r_ratio=2.0), 600)

    assert not estimate.spo2_valid
    assert estimate.spo2_pct == 0
    assert estimate.spo2_status == SpO2Status.INVALID


def test_hypoxia_band_reported():
    # R = 1.0 -> 110 - 25 = 85 %
    estimator = VitalEstimator()
    estimate = feed(estimator, SimulatedPPGReader(r_ratio=1.0), 600)

    assert estimate.spo2_valid
    assert estimate.spo2_pct == 85
    assert estimate.spo2_status == SpO2Status.DANGER


def test_heart_rate_held_when_contact_lost():
    estimator = VitalEstimator()
    good = feed(estimator, SimulatedPPGReader(), 1000)
    assert good.heart_rate_valid

    detached = SimulatedPPGReader(ir_dc=1000.0, red_dc=1000.0, ir_ac=0.0)
    held = feed(estimator, detached, 100, start=1000)
    estimate = feed(estimator, detached, 200, start=1100)

    assert not estimator.quality.contact_detected
    assert estimate.heart_rate_valid
    assert estimate.heart_rate_bpm == held.heart_rate_bpm
    assert estimate.heart_rate_bpm == pytest.approx(72.0, abs=10.0)
    assert not estimate.spo2_valid


def test_heart_rate_variability():
    estimator = VitalEstimator()
    assert estimator.heart_rate_variability() is None

    feed(estimator, SimulatedPPGReader(), 1500)
    hrv = estimator.heart_rate_variability()

    assert hrv is not None
    assert 0.0 <= hrv['sdnn_ms'] < 20.0
    assert 0.0 <= hrv['rmssd_ms'] < 40.0


def test_replay_matches_streaming():
    red, ir = SimulatedPPGReader(heart_rate_bpm=80.0).generate(1000)
    estimate = VitalEstimator().replay(red, ir, sample_rate_hz=100)

    assert estimate.heart_rate_valid
    assert estimate.heart_rate_bpm == pytest.approx(80.0, abs=2.5)
    assert estimate.spo2_valid


def test_replay_length_mismatch():
    with pytest.raises(ValueError):
        VitalEstimator().replay([1, 2, 3], [1, 2])


def test_reset_clears_estimates():
    estimator = VitalEstimator()
    feed(estimator, SimulatedPPGReader(), 1000)
    estimator.reset()

    assert estimator.total_samples == 0
    assert len(estimator.buffer) == 0
    assert len(estimator.beats) == 0
    assert not estimator.estimate.heart_rate_valid
    assert not estimator.estimate.spo2_valid


def test_buffer_count_saturates():
    estimator = VitalEstimator()
    feed(estimator, SimulatedPPGReader(), 1200)

    assert len(estimator.buffer) == estimator.config.buffer_size
    assert estimator.total_samples == 1200


# ----------------------------------------------------------------------
# Building blocks
# ----------------------------------------------------------------------

def test_signal_buffer_recent_newest_first():
    buffer = SignalBuffer(3)
    for i in range(5):
        index = buffer.push(100 + i, 200 + i, i)
        buffer.set_derived(index, 0.0, 0.0, float(i), float(i))

    assert len(buffer) == 3
    assert list(buffer.recent(buffer.ir_filtered, 3)) == [4.0, 3.0, 2.0]
    assert list(buffer.recent(buffer.red_raw, 10)) == [104, 103, 102]


def test_beat_history_order():
    history = HeartBeatHistory(3)
    for interval in (800, 810, 820, 830):
        history.add(interval, 0)

    assert list(history.recent(2)) == [830, 820]
    assert list(history.chronological()) == [810, 820, 830]


@pytest.mark.parametrize('capacity', [0, -5])
def test_invalid_capacity(capacity):
    with pytest.raises(ValueError):
        SignalBuffer(capacity)
    with pytest.raises(ValueError):
        HeartBeatHistory(capacity)


@pytest.mark.parametrize('value, status', [
    (100, SpO2Status.NORMAL),
    (95, SpO2Status.NORMAL),
    (94, SpO2Status.WARNING),
    (90, SpO2Status.WARNING),
    (89, SpO2Status.DANGER),
    (80, SpO2Status.DANGER),
    (79, SpO2Status.SEVERE),
    (75, SpO2Status.SEVERE),
    (74, SpO2Status.INVALID),
])
def test_classify_spo2(value, status):
    assert classify_spo2(value) == status


def test_status_labels():
    assert SpO2Status.NORMAL.label == 'Normal'
    assert SpO2Status.INVALID.label == 'Not measurable'


# ----------------------------------------------------------------------
# Beat refractory period
# ----------------------------------------------------------------------

def primed_peak(last_beat_us):
    """Estimator whose next sample closes a 0 -> 100 -> 50 peak."""
    estimator = VitalEstimator()
    estimator.last_beat_us = last_beat_us
    estimator._prev_prev = 0.0
    estimator._prev = 100.0
    return estimator


def test_beat_accepted_exactly_at_min_interval():
    estimator = primed_peak(1_000_000)

    assert estimator._detect_heartbeat(50.0, 1_000_000 + estimator.config.min_beat_interval_us)


def test_beat_rejected_inside_min_interval():
    estimator = primed_peak(1_000_000)

    assert not estimator._detect_heartbeat(50.0, 1_000_000 + estimator.config.min_beat_interval_us - 1)


# ----------------------------------------------------------------------
# Config
# ----------------------------------------------------------------------

def test_config_for_sample_rate():
    config = MAX30102Config.for_sample_rate(200)

    assert config.buffer_size == 2000
    assert config.spo2_interval == 100
    assert config.spo2_min_samples == 1000
    assert MAX30102Config.for_sample_rate(50).buffer_size == 1000


def test_config_rejects_bad_rate():
    with pytest.raises(ValueError):
        MAX30102Config.for_sample_rate(0)


def test_estimator_rejects_history_longer_than_buffer():
    with pytest.raises(ValueError):
        VitalEstimator(MAX30102Config(spo2_min_samples=2000))
