"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Run the worker (and beat, for the periodic image sync):
    celery -A app.celery_worker worker --beat --loglevel=info
"""

from celery import Celery

from app.core.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    'storefront_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['app.tasks']  # Module containing our tasks
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,  # Process one task at a time
    worker_concurrency=1,  # One sync pass at a time per worker

    # Result settings
    result_expires=3600,  # Results expire after 1 hour

    # Task execution settings
    task_acks_late=True,  # Acknowledge task after completion
    task_reject_on_worker_lost=True,  # Requeue task if worker dies

    broker_connection_retry_on_startup=True,
)

if settings.cdn_sync_enabled:
    celery_app.conf.beat_schedule = {
        'sync-cdn-images': {
            'task': 'app.tasks.sync_cdn_images',
            'schedule': float(settings.cdn_sync_interval_seconds),
            # A pass that misses its slot is dropped, not queued
            'options': {'expires': float(settings.cdn_sync_interval_seconds)},
        },
    }


if __name__ == '__main__':
    celery_app.start()
