import logging
from celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def push_notification_task(self, user_id: str, notification_type: str, title: str, order_id: str = None) -> None:
    """Log the push instead of sending it to a device gateway."""
    logger.info("[push disabled] %s to %s: %s (order %s)", notification_type, user_id, title, order_id)
