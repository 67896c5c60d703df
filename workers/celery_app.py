"""
Celery application configuration.

Configures Celery with:
- Redis as broker and result backend
- Separate queues for awarding and repository sync
- Late acknowledgement so a lost worker requeues its task
"""

from celery import Celery
from celery.signals import worker_process_init
from kombu import Exchange, Queue

from badge_core.config import get_settings
from workers.schedules import apply_beat_schedule

settings = get_settings()

celery_app = Celery(
    "contribution_badges",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "workers.tasks.awarding",
        "workers.tasks.sync",
    ],
)

# =============================================================================
# Queues and Routing
# =============================================================================

awarding_exchange = Exchange("awarding", type="direct")
sync_exchange = Exchange("sync", type="direct")

celery_app.conf.task_queues = (
    Queue("awarding", awarding_exchange, routing_key="awarding"),
    Queue("sync", sync_exchange, routing_key="sync"),
)

celery_app.conf.task_default_queue = "awarding"
celery_app.conf.task_default_exchange = "awarding"
celery_app.conf.task_default_routing_key = "awarding"

celery_app.conf.task_routes = {
    "workers.tasks.awarding.*": {"queue": "awarding", "routing_key": "awarding"},
    "workers.tasks.sync.*": {"queue": "sync", "routing_key": "sync"},
}

# Run one worker per queue, e.g.:
# celery -A workers worker -Q awarding -c 2 --prefetch-multiplier=1
# celery -A workers worker -Q sync -c 1 --prefetch-multiplier=1

# =============================================================================
# Serialization, Limits and Acknowledgement
# =============================================================================

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
    result_expires=86400,
    task_soft_time_limit=300,
    task_time_limit=600,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_hijack_root_logger=False,
    task_send_sent_event=True,
)


@worker_process_init.connect
def setup_worker(**kwargs):
    """Configure structured logging and the database in each worker process."""
    from badge_core.db import db
    from badge_core.logging import configure_celery_logging, configure_logging

    configure_logging(level="DEBUG" if settings.debug else "INFO")
    configure_celery_logging()
    if not db.is_initialized:
        db.initialize(settings.database_url)


apply_beat_schedule(celery_app)
