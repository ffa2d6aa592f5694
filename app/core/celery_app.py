"""
Celery application: broker and result backend from settings.
Tasks relay domain events from the access core to the CRM and the mailer (app.workers.tasks).
"""
from celery import Celery

from app.core.config import settings

celery_app = Celery(
    "app",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "app.workers.tasks.crm_sync",
        "app.workers.tasks.magic_link_delivery",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_time_limit=300,
    result_expires=86400,
)

celery_app.conf.task_routes = {
    "app.workers.tasks.crm_sync.relay_event": {"queue": "crm"},
    "app.workers.tasks.magic_link_delivery.deliver_magic_link": {"queue": "mail"},
}
