from typing import Optional

import structlog
from celery import shared_task

from sentinel.container import Container, build_container
from sentinel.core.exceptions import StorageFailure
from sentinel.core.logging_config import configure_logging

logger = structlog.get_logger()

_container: Optional[Container] = None


def get_container() -> Container:
    """Container for this worker process, built on first use."""
    global _container
    if _container is None:
        configure_logging()
        _container = build_container()
    return _container


def set_container(container: Optional[Container]) -> None:
    global _container
    _container = container


@shared_task(bind=True)
def sweep_expired_revocations(self):
    """
    Deactivate revocations whose expiry has passed.
    Runs periodically via Celery Beat; a failed run is retried by the next tick.
    """
    try:
        swept = get_container().sweeper.run_once()
    except StorageFailure as exc:
        return {"swept": 0, "skipped": False, "error": exc.message}
    if swept is None:
        return {"swept": 0, "skipped": True}
    return {"swept": swept, "skipped": False}
