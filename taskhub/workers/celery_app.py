"""
Celery application instance.

Configured with Redis broker and backend. Beat runs the daily activity
retention purge.
"""

from celery import Celery
from celery.schedules import crontab

from taskhub.core.config import settings

celery_app = Celery(
    "taskhub",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "taskhub.workers.activity_tasks",
    ],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Results
    result_expires=3600,
    # Retry policy
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Concurrency
    worker_prefetch_multiplier=1,
    # Routing
    task_default_queue="default",
    task_queues={
        "default": {},
        "maintenance": {},
    },
    task_routes={
        "taskhub.workers.activity_tasks.*": {"queue": "maintenance"},
    },
    beat_schedule={
        "purge-expired-activity": {
            "task": "taskhub.workers.activity_tasks.purge_expired_activity",
            "schedule": crontab(hour=3, minute=0),
        },
    },
)
