"""
Background tasks for the signature service
"""

from celery import Celery

from config import settings

celery_app = Celery(
    "signatures",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks.notification_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_time_limit=5 * 60,
    worker_prefetch_multiplier=1,
)

__all__ = ["celery_app"]
