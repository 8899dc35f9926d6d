from celery import Celery
from sentinel.core.config import settings

celery_app = Celery(
    "sentinel",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["sentinel.tasks.sweep_tasks"]
)

# Celery Configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    task_track_started=True,

    # a sweep is one UPDATE statement; anything slower is stuck
    task_time_limit=settings.sweep_time_limit,
    task_soft_time_limit=settings.sweep_time_limit - 5,

    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    result_expires=3600,  # 1 hour
)

celery_app.conf.task_routes = {
    "sentinel.tasks.sweep_tasks.*": {"queue": "sweeps"},
}

celery_app.conf.beat_schedule = {
    "sweep-expired-revocations": {
        "task": "sentinel.tasks.sweep_tasks.sweep_expired_revocations",
        "schedule": float(settings.SWEEP_INTERVAL_SECONDS),
        # a tick nobody picked up before the next one is dropped, not replayed
        "options": {"expires": settings.SWEEP_INTERVAL_SECONDS},
    },
}
