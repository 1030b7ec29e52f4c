"""Celery application configuration."""

from celery import Celery
from kombu import Queue, Exchange

from socialsignals.config import settings
from socialsignals.logging_config import configure_logging

configure_logging()

celery_app = Celery(
    "socialsignals",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "socialsignals.workers.tasks.scraping",
        "socialsignals.workers.tasks.enrichment",
    ],
)

# Sync jobs scrape, import and enrich; enrichment-only jobs skip the scrape
celery_app.conf.update(
    task_queues=[
        Queue("engagement", Exchange("engagement"), routing_key="engagement"),
        Queue("enrichment", Exchange("enrichment"), routing_key="enrichment"),
    ],
    task_default_queue="engagement",
    task_routes={
        "socialsignals.workers.tasks.scraping.*": {"queue": "engagement"},
        "socialsignals.workers.tasks.enrichment.*": {"queue": "enrichment"},
    },
    # A job holds its worker slot for the whole run
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_track_started=True,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    result_expires=86400,  # 24 hours
    broker_transport_options={"visibility_timeout": 3600},  # 1 hour
    timezone="UTC",
    enable_utc=True,
)
