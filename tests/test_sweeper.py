import threading
import uuid

import pytest
from redis.lock import Lock as RedisLock

from sentinel.container import build_container
from sentinel.core.exceptions import StorageFailure
from sentinel.models.reason import ReasonCategory
from sentinel.services.sweeper import ExpirationSweeper, build_sweep_lock
from sentinel.tasks import sweep_tasks


class _FailingEngine:
    def sweep_expired(self):
        raise StorageFailure("revocation_sweep", "OperationalError")


class _PeerEngine:
    """Lets another sweeper take a tick while this one is mid-sweep."""

    def __init__(self):
        self.peer = None
        self.peer_result = "unset"

    def sweep_expired(self):
        self.peer_result = self.peer.run_once()
        return 2


class _ReentrantEngine:
    """Calls back into the sweeper while a sweep is running."""

    def __init__(self):
        self.sweeper = None
        self.nested_result = "unset"

    def sweep_expired(self):
        self.nested_result = self.sweeper.run_once()
        return 3


def test_run_once_returns_swept_count(revocations, reasons, clock):
    reasons.save("spam", ReasonCategory.BAN, 60)
    revocations.create_auto(uuid.uuid4(), "Alice", "Mod1", ["spam"])
    sweeper = ExpirationSweeper(revocations)

    assert sweeper.run_once() == 0
    clock.advance(60)
    assert sweeper.run_once() == 1
    assert sweeper.run_once() == 0
    assert sweeper.running is False


def test_overlapping_run_is_skipped():
    engine = _ReentrantEngine()
    sweeper = ExpirationSweeper(engine)
    engine.sweeper = sweeper

    assert sweeper.run_once() == 3
    assert engine.nested_result is None
    assert sweeper.running is False


def test_storage_failure_is_raised_and_lock_released():
    sweeper = ExpirationSweeper(_FailingEngine())

    with pytest.raises(StorageFailure):
        sweeper.run_once()
    assert sweeper.running is False


def test_sweepers_sharing_a_lock_never_overlap():
    shared = threading.Lock()
    engine = _PeerEngine()
    first = ExpirationSweeper(engine, lock=shared)
    engine.peer = ExpirationSweeper(_FailingEngine(), lock=shared)

    assert first.run_once() == 2
    assert engine.peer_result is None
    assert engine.peer.running is False


def test_sweep_lock_is_shared_through_redis_by_default(db_settings):
    config = db_settings.model_copy(
        update={"SWEEP_LOCK_BACKEND": "redis", "SWEEP_LOCK_KEY": "sentinel:test-sweep", "SWEEP_INTERVAL_SECONDS": 120}
    )

    lock = build_sweep_lock(config)

    assert isinstance(lock, RedisLock)
    assert lock.name == "sentinel:test-sweep"
    assert lock.timeout == 120


def test_local_sweep_lock_for_single_process_deployments(db_settings):
    lock = build_sweep_lock(db_settings)

    assert lock.acquire(blocking=False) is True
    assert lock.locked() is True
    lock.release()


@pytest.fixture()
def task_container(db_settings, db_engine, clock):
    container = build_container(db_settings, db_engine=db_engine, clock=clock)
    sweep_tasks.set_container(container)
    try:
        yield container
    finally:
        sweep_tasks.set_container(None)


def test_sweep_task_uses_the_worker_container(task_container, clock):
    task_container.reasons.save("spam", ReasonCategory.BAN, 60)
    player = uuid.uuid4()
    task_container.revocations.create_auto(player, "Alice", "Mod1", ["spam"])
    clock.advance(61)

    result = sweep_tasks.sweep_expired_revocations.apply().get()

    assert result == {"swept": 1, "skipped": False}
    assert task_container.revocations.get_active(player) is None


def test_sweep_task_reports_storage_failure_without_retrying(task_container, db_engine):
    from sentinel.db.base_class import Base

    Base.metadata.tables["sentinel_bans"].drop(bind=db_engine)

    result = sweep_tasks.sweep_expired_revocations.apply().get()

    assert result["swept"] == 0
    assert "revocation_sweep" in result["error"]
