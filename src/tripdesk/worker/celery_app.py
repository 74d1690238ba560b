from __future__ import annotations

from celery import Celery

from tripdesk.core.config import settings


def make_celery() -> Celery:
    app = Celery("tripdesk", broker=settings.redis_url, backend=settings.redis_url)
    app.conf.update(
        task_always_eager=settings.environment in {"dev", "test"},
        task_eager_propagates=True,
        task_track_started=True,
        task_serializer="json",
        accept_content=["json"],
    )
    app.autodiscover_tasks(["tripdesk.worker.tasks"])
    return app


celery_app = make_celery()
