from celery import Celery

from discounts_service.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "discounts_service",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "discounts_service.workers.tasks.outbox_dispatch",
    ],
)

celery_app.conf.update(
    task_default_queue="q_outbox",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    enable_utc=True,
)
