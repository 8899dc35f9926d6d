import threading
from typing import Optional, Protocol

import redis
import structlog

from sentinel.core.config import Settings
from sentinel.core.exceptions import StorageFailure
from sentinel.services.revocation_service import RevocationEngine

logger = structlog.get_logger()


class SweepLock(Protocol):
    """The subset of ``threading.Lock`` and ``redis.lock.Lock`` the sweeper uses."""

    def acquire(self, blocking: bool = ...) -> bool:
        ...

    def release(self) -> None:
        ...

    def locked(self) -> bool:
        ...


def build_sweep_lock(config: Settings) -> SweepLock:
    """Lock shared by every worker process that may pick up a sweep tick.

    The Redis lock expires after the task's hard time limit so a worker
    killed mid-sweep cannot block later ticks.
    """
    if config.SWEEP_LOCK_BACKEND == "local":
        return threading.Lock()
    client = redis.Redis.from_url(config.REDIS_URL)
    return client.lock(config.SWEEP_LOCK_KEY, timeout=config.sweep_time_limit)


class ExpirationSweeper:
    """Runs the engine's expiry sweep, never more than one run at a time.

    A tick that arrives while the previous run is still going is skipped
    rather than queued. Storage failures are logged and re-raised; the next
    scheduled tick is the retry.
    """

    def __init__(self, engine: RevocationEngine, lock: Optional[SweepLock] = None):
        self._engine = engine
        self._lock = lock if lock is not None else threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run_once(self) -> Optional[int]:
        if not self._lock.acquire(blocking=False):
            logger.info("sweep_skipped", reason="previous sweep still running")
            return None
        try:
            return self._engine.sweep_expired()
        except StorageFailure as exc:
            logger.warning("sweep_failed", operation=exc.operation, error=exc.message)
            raise
        finally:
            self._lock.release()
