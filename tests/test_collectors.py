"""Collectors: per-sample publishing into the store, fall hold and thread lifecycle."""

import time

import pytest

from vital_node.sensors.ambient import AmbientCollector, AmbientConfig, AmbientSample
from vital_node.sensors.max30102 import MAX30102Collector, PPGSample
from vital_node.sensors.mpu6050 import FallDirection, MPU6050Collector
from vital_node.sensors.simulated import (
    SequenceReader,
    SimulatedAmbientReader,
    SimulatedIMUReader,
    SimulatedPPGReader,
)

from conftest import flat


# ----------------------------------------------------------------------
# MPU6050
# ----------------------------------------------------------------------

def test_steps_reach_the_store(coordinator):
    reader = SimulatedIMUReader(cadence_spm=120, walk_after_s=1.0)
    collector = MPU6050Collector(reader, coordinator)

    for _ in range(600):
        sample = reader.read()
        collector.process_sample(sample, sample.t_ms)

    snapshot = coordinator.store.get_snapshot()
    assert reader.expected_steps(600) == 10
    assert snapshot.steps == 10
    assert snapshot.validity.steps
    assert collector.step_count == 10


def test_fall_is_held_then_cleared(coordinator):
    reader = SimulatedIMUReader(cadence_spm=0, fall_at_s=3.0)
    collector = MPU6050Collector(reader, coordinator)
    flags = {}

    for _ in range(800):
        sample = reader.read()
        collector.process_sample(sample, sample.t_ms)
        flags[sample.t_ms] = coordinator.store.get_snapshot().fall_detected

    assert not flags[2990]
    assert flags[3000]
    assert flags[5990]
    assert not flags[6000]
    assert not flags[7990]
    assert collector.fall_count == 1
    assert collector.last_fall.direction == FallDirection.RIGHT


def test_fall_flag_raised_once_per_event(coordinator):
    collector = MPU6050Collector(SequenceReader([]), coordinator)
    collector.detector.reset_fall()

    collector.process_sample(flat(ay_g=6.0), 1000)
    collector.detector.reset_fall()
    collector.process_sample(flat(ay_g=6.0), 1500)

    # Second impact falls inside the hold window
    assert collector.fall_count == 1
    assert coordinator.store.get_snapshot().fall_detected


# ----------------------------------------------------------------------
# MAX30102
# ----------------------------------------------------------------------

def test_vitals_reach_the_store(coordinator):
    reader = SimulatedPPGReader(heart_rate_bpm=72.0)
    collector = MAX30102Collector(reader, coordinator)

    for i in range(1000):
        collector.process_sample(reader.read(), i * 10000)

    snapshot = coordinator.store.get_snapshot()
    assert snapshot.validity.heart_rate
    assert snapshot.heart_rate == pytest.approx(72.0, abs=2.0)
    assert snapshot.validity.spo2
    assert 96 <= snapshot.spo2 <= 98


def test_spo2_invalidated_when_contact_lost(coordinator):
    reader = SimulatedPPGReader()
    collector = MAX30102Collector(reader, coordinator)

    for i in range(1000):
        collector.process_sample(reader.read(), i * 10000)
    assert coordinator.store.get_snapshot().validity.spo2

    for i in range(1000, 1300):
        collector.process_sample(PPGSample(red=1000, ir=1000), i * 10000)

    snapshot = coordinator.store.get_snapshot()
    assert not snapshot.validity.spo2
    assert snapshot.validity.heart_rate


def test_nothing_published_without_signal(coordinator):
    collector = MAX30102Collector(SequenceReader([]), coordinator)

    for i in range(600):
        collector.process_sample(PPGSample(red=0, ir=0), i * 10000)

    assert coordinator.store.valid_count() == 0


# ----------------------------------------------------------------------
# Ambient
# ----------------------------------------------------------------------

def test_ambient_reading_published(coordinator):
    collector = AmbientCollector(SequenceReader([]), coordinator)

    assert collector.process_sample(AmbientSample(23.4, 40.0))
    snapshot = coordinator.store.get_snapshot()
    assert snapshot.temperature == 23.4
    assert snapshot.humidity == 40.0
    assert snapshot.validity.temperature and snapshot.validity.humidity


def test_implausible_values_skipped(coordinator):
    collector = AmbientCollector(SequenceReader([]), coordinator)

    assert collector.process_sample(AmbientSample(150.0, 40.0))
    snapshot = coordinator.store.get_snapshot()
    assert not snapshot.validity.temperature
    assert snapshot.validity.humidity

    assert not collector.process_sample(AmbientSample(-999.0, 120.0))
    assert collector.skipped_count == 1
    assert coordinator.store.get_snapshot().humidity == 40.0


def test_temperature_only_sensor(coordinator):
    collector = AmbientCollector(SequenceReader([]), coordinator, AmbientConfig.dht11())

    assert collector.process_sample(AmbientSample(25.0))
    snapshot = coordinator.store.get_snapshot()
    assert snapshot.validity.temperature
    assert not snapshot.validity.humidity


def test_dht11_range():
    config = AmbientConfig.dht11()
    assert config.max_temperature_c == 50.0
    assert config.min_humidity_pct == 20.0


def test_anchor_air_quality_and_light_published(coordinator):
    collector = AmbientCollector(SequenceReader([]), coordinator)

    assert collector.process_sample(AmbientSample(22.0, 45.0, tvoc_ppb=20.0, lux=50.0))
    snapshot = coordinator.store.get_snapshot()
    assert snapshot.tvoc == 20.0
    assert snapshot.lux == 50.0
    assert snapshot.validity.tvoc and snapshot.validity.lux
    assert collector.get_status()['tvoc'] == 20.0


def test_wearable_reading_leaves_tvoc_and_lux_invalid(coordinator):
    collector = AmbientCollector(SequenceReader([]), coordinator)

    collector.process_sample(AmbientSample(22.0, 45.0))
    snapshot = coordinator.store.get_snapshot()
    assert not snapshot.validity.tvoc
    assert not snapshot.validity.lux


def test_implausible_tvoc_and_lux_skipped(coordinator):
    collector = AmbientCollector(SequenceReader([]), coordinator)

    assert not collector.process_sample(AmbientSample(-999.0, tvoc_ppb=-1.0, lux=1e9))
    snapshot = coordinator.store.get_snapshot()
    assert not snapshot.validity.tvoc
    assert not snapshot.validity.lux
    assert collector.skipped_count == 1


def test_simulated_anchor_board_reaches_the_store(coordinator):
    reader = SimulatedAmbientReader(gas_adc=1417, light_adc=2048, drift_amplitude=0.0)
    collector = AmbientCollector(reader, coordinator)

    collector.process_sample(reader.read())
    snapshot = coordinator.store.get_snapshot()
    assert snapshot.tvoc == pytest.approx(20.0, abs=0.5)
    assert snapshot.lux == pytest.approx(50.0, abs=0.1)


# ----------------------------------------------------------------------
# Thread lifecycle
# ----------------------------------------------------------------------

def test_collector_thread_start_stop(coordinator):
    collector = MPU6050Collector(SimulatedIMUReader(), coordinator)

    collector.start()
    assert collector.is_running
    time.sleep(0.2)
    collector.stop()

    assert not collector.is_running
    assert collector.sample_count > 0
    assert not collector.collection_thread.is_alive()
    assert repr(collector) == '<MPU6050Collector(status=stopped)>'


def test_read_failures_do_not_kill_the_loop(coordinator):
    reader = SequenceReader([])
    collector = AmbientCollector(reader, coordinator, AmbientConfig(collection_interval=0.01))

    collector.start()
    time.sleep(0.2)
    assert collector.collection_thread.is_alive()
    collector.stop()

    assert collector.read_failures > 0
    assert collector.sample_count == 0


def test_status_reports_sensor_type(coordinator):
    collectors = [
        MPU6050Collector(SequenceReader([]), coordinator),
        MAX30102Collector(SequenceReader([]), coordinator),
        AmbientCollector(SequenceReader([]), coordinator),
    ]
    types = [c.get_status()['sensor_type'] for c in collectors]

    assert types == ['MPU6050', 'MAX30102', 'Ambient']
