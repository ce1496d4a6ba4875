import logging

import pytest
from sqlalchemy.exc import SQLAlchemyError

from calibration import CalibrationCache, CalibrationEntry, CalibrationSnapshot, CalibrationStore


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def store(tmp_path):
    return CalibrationStore(f"sqlite:///{tmp_path / 'calibration.db'}")


def test_snapshot_lookup():
    snapshot = CalibrationSnapshot(entries={("hot", "high"): CalibrationEntry(success_rate=0.8, total_outcomes=12)})
    assert snapshot.get("hot", "high") == 0.8
    assert snapshot.get("hot", "low") is None
    assert len(snapshot) == 1
    assert len(CalibrationSnapshot()) == 0


def test_store_upsert_and_load(store):
    store.upsert("hot", "high", 0.8, 12)
    store.upsert("niche", "low", 0.4, 2)
    store.upsert("hot", "high", 0.65, 15)

    entries = store.load_entries(min_outcomes=3)
    assert entries == {("hot", "high"): CalibrationEntry(success_rate=0.65, total_outcomes=15)}
    assert ("niche", "low") in store.load_entries(min_outcomes=1)


def test_store_clamps_success_rate(store):
    store.upsert("stable", "medium", 1.7, 5)
    assert store.load_entries()[("stable", "medium")].success_rate == 1.0


def test_cache_respects_ttl():
    calls = []

    def loader():
        calls.append(1)
        return {("hot", "high"): CalibrationEntry(success_rate=0.9, total_outcomes=10)}

    clock = FakeClock()
    cache = CalibrationCache(loader, ttl_seconds=60, clock=clock)
    assert cache.get("hot", "high") is None

    assert cache.refresh_if_stale() is True
    assert cache.get("hot", "high") == 0.9

    clock.now = 59
    assert cache.refresh_if_stale() is False
    clock.now = 60
    assert cache.refresh_if_stale() is True
    assert len(calls) == 2


def test_cache_accepts_explicit_now():
    cache = CalibrationCache(lambda: {}, ttl_seconds=10, clock=FakeClock(100.0))
    assert cache.refresh_if_stale(now=100.0) is True
    assert cache.refresh_if_stale(now=105.0) is False
    assert cache.refresh_if_stale(now=110.0) is True


def test_cache_serves_empty_snapshot_when_loader_fails(caplog):
    def broken():
        raise SQLAlchemyError("database is locked")

    cache = CalibrationCache(broken, ttl_seconds=60, clock=FakeClock())
    with caplog.at_level(logging.WARNING, logger="pipeline.calibration"):
        assert cache.refresh_if_stale() is True
    assert cache.snapshot() == CalibrationSnapshot()
    assert "Failed to load calibration data" in caplog.text


def test_store_cache_integration(store):
    store.upsert("growing", "medium", 0.55, 8)
    cache = store.cache(ttl_seconds=3600, min_outcomes=3)
    cache.refresh_if_stale()
    snapshot = cache.snapshot()
    assert snapshot.get("growing", "medium") == 0.55
    # the snapshot does not change when the table does
    store.upsert("growing", "medium", 0.1, 8)
    assert snapshot.get("growing", "medium") == 0.55
