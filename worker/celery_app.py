"""Celery application configuration."""

import os

from celery import Celery
from celery.signals import worker_init

from chatbilling.config import get_settings

settings = get_settings()

app = Celery(
    "chatbilling",
    broker=os.environ.get("CELERY_BROKER_URL", settings.CELERY_BROKER_URL),
    backend=os.environ.get("CELERY_RESULT_BACKEND", settings.CELERY_RESULT_BACKEND),
    include=[
        "worker.tasks.renewals",
    ],
)

app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timeouts
    task_time_limit=600,       # 10 min hard limit
    task_soft_time_limit=540,  # 9 min soft limit

    worker_prefetch_multiplier=1,

    # A sweep interrupted mid-way is safe to re-run
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    task_routes={
        "worker.tasks.renewals.process_renewals": {"queue": "billing"},
    },

    # Beat schedule (periodic tasks)
    beat_schedule={
        "process-auto-renewals": {
            "task": "worker.tasks.renewals.process_renewals",
            "schedule": settings.RENEWAL_SWEEP_INTERVAL_SECONDS,
        },
    },

    result_expires=3600,
)


@worker_init.connect
def on_worker_init(**kwargs):
    """Configure structured logging for the worker process."""
    from chatbilling.middleware.observability import configure_logging
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    import structlog
    structlog.get_logger().info("worker_init", pid=os.getpid())
