"""
Celery Tasks
Background tasks for keeping the catalog in sync with the image CDN.
"""

import asyncio
import logging
import time
from datetime import datetime

from app import database
from app.celery_worker import celery_app
from app.services.cdn import get_cdn_service
from app.services.storage import initialize_storage
from app.services.sync import CatalogSyncService

logger = logging.getLogger(__name__)


async def _run_sync_pass() -> dict:
    storage = await initialize_storage()
    if storage.provider_name == "memory":
        logger.warning("Worker is syncing into in-memory storage; rows will not reach the API process")

    try:
        report = await CatalogSyncService(storage, get_cdn_service()).run_once()
    finally:
        # Pooled connections belong to this task's event loop
        if database.engine is not None:
            await database.engine.dispose()
    return report.model_dump()


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def sync_cdn_images(self) -> dict:
    """
    Run one CDN sync pass.
    This task runs asynchronously via Celery worker.

    Returns:
        dict: Sync report plus task metadata
    """
    task_id = self.request.id

    logger.info(f"📋 Task {task_id}: Starting image sync")
    start_time = time.time()

    try:
        result = asyncio.run(_run_sync_pass())

        elapsed = round(time.time() - start_time, 3)
        result['task_id'] = task_id
        result['processing_time_seconds'] = elapsed

        logger.info(
            f"✅ Task {task_id}: Sync completed in {elapsed}s "
            f"({result['new_products_added']} new products)"
        )
        return result

    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        logger.error(f"❌ Task {task_id}: Sync error after {elapsed}s - {str(e)}")

        # Celery will auto-retry based on configuration
        raise


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
