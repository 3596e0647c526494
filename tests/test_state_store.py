"""Shared sensor state: setters, validity, snapshots and thread safety."""

import dataclasses
import threading

import pytest

from vital_node.state import (
    FIELD_NAMES,
    LocationFix,
    SensorSnapshot,
    SensorStateStore,
    StoreLockTimeout,
)


def test_initial_state_is_all_invalid(store):
    snapshot = store.get_snapshot()

    assert snapshot == SensorSnapshot()
    assert snapshot.steps == 0
    assert not snapshot.fall_detected
    assert not snapshot.validity.any()
    assert store.valid_count() == 0
    assert not store.has_valid_measurements()


def test_setters_raise_validity(store):
    store.set_heart_rate(72.5)
    store.set_temperature(21.3)
    store.set_humidity(44.0)
    store.set_tvoc(35.2)
    store.set_lux(48.5)
    store.set_spo2(97)
    store.set_steps(12)
    store.set_fall_detected(True)
    store.set_location(major=1, minor=7, rssi=-61)

    snapshot = store.get_snapshot()
    assert snapshot.heart_rate == 72.5
    assert snapshot.temperature == 21.3
    assert snapshot.humidity == 44.0
    assert snapshot.tvoc == 35.2
    assert snapshot.lux == 48.5
    assert snapshot.spo2 == 97
    assert snapshot.steps == 12
    assert snapshot.fall_detected
    assert snapshot.location == LocationFix(major=1, minor=7, rssi=-61)
    assert store.valid_count() == len(FIELD_NAMES)


def test_setting_one_field_leaves_others_invalid(store):
    store.set_heart_rate(60.0)
    validity = store.get_snapshot().validity

    assert validity.heart_rate
    assert not validity.spo2
    assert store.valid_count() == 1


def test_timestamp_has_no_validity_bit(store):
    store.set_timestamp(1_700_000_000_000)

    snapshot = store.get_snapshot()
    assert snapshot.timestamp_ms == 1_700_000_000_000
    assert store.valid_count() == 0


def test_step_count_never_decreases(store):
    store.set_steps(10)
    store.set_steps(4)

    assert store.get_snapshot().steps == 10


def test_increment_steps(store):
    assert store.increment_steps() == 1
    assert store.increment_steps(3) == 4
    assert store.get_snapshot().validity.steps

    with pytest.raises(ValueError):
        store.increment_steps(-1)


def test_invalidate_keeps_value(store):
    store.set_spo2(96)
    store.invalidate('spo2')

    snapshot = store.get_snapshot()
    assert snapshot.spo2 == 96
    assert not snapshot.validity.spo2


def test_invalidate_unknown_field(store):
    with pytest.raises(ValueError):
        store.invalidate('blood_pressure')


def test_snapshot_is_immutable_copy(store):
    store.set_heart_rate(70.0)
    before = store.get_snapshot()
    store.set_heart_rate(90.0)

    assert before.heart_rate == 70.0
    assert store.get_snapshot().heart_rate == 90.0
    with pytest.raises(dataclasses.FrozenInstanceError):
        before.heart_rate = 0.0


def test_snapshot_to_dict(store):
    store.set_location(2, 3, -70)
    data = store.get_snapshot().to_dict()

    assert data['location'] == {'major': 2, 'minor': 3, 'rssi': -70}
    assert data['validity']['location'] is True


def test_lock_timeout():
    lock = threading.Lock()
    store = SensorStateStore(lock=lock, lock_timeout=0.05)

    lock.acquire()
    try:
        with pytest.raises(StoreLockTimeout):
            store.set_heart_rate(70.0)
        with pytest.raises(StoreLockTimeout):
            store.get_snapshot()
    finally:
        lock.release()

    store.set_heart_rate(70.0)
    assert store.get_snapshot().heart_rate == 70.0


def test_concurrent_increments_are_atomic(store):
    threads = [
        threading.Thread(target=lambda: [store.increment_steps() for _ in range(1000)])
        for _ in range(4)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.get_snapshot().steps == 4000


def test_snapshots_under_concurrent_writes(store):
    """Every snapshot shows committed values only, steps never go backwards."""
    stop = threading.Event()
    written_rates = {float(v) for v in range(60, 100)}
    problems = []

    def heart_writer():
        while not stop.is_set():
            for bpm in range(60, 100):
                store.set_heart_rate(bpm)

    def step_writer():
        for _ in range(2000):
            store.increment_steps()

    def reader():
        last_steps = 0
        while not stop.is_set():
            snapshot = store.get_snapshot()
            if snapshot.steps < last_steps:
                problems.append(f"steps went back {last_steps} -> {snapshot.steps}")
            if snapshot.validity.heart_rate and snapshot.heart_rate not in written_rates:
                problems.append(f"uncommitted heart rate {snapshot.heart_rate}")
            last_steps = snapshot.steps

    workers = [threading.Thread(target=heart_writer), threading.Thread(target=reader)]
    for w in workers:
        w.start()
    step_thread = threading.Thread(target=step_writer)
    step_thread.start()
    step_thread.join()
    stop.set()
    for w in workers:
        w.join()

    assert problems == []
    assert store.get_snapshot().steps == 2000
