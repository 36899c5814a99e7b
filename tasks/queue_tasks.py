"""
Celery tasks for queue maintenance
"""
import logging
from mediqueue.extensions import celery
from mediqueue.services.queue_service import expire_stale_visits as expire_visits

logger = logging.getLogger(__name__)


@celery.task(name='tasks.expire_stale_visits')
def expire_stale_visits():
    """
    Expire tokens from previous days that were never seen
    (waiting, checked_in or held).

    Returns:
        dict: Update results
    """
    try:
        expired = expire_visits()
        logger.info(f"Expired {expired} stale visits")
        return {
            'success': True,
            'expired_count': expired
        }
    except Exception as e:
        logger.error(f"Error expiring stale visits: {e}", exc_info=True)
        return {
            'success': False,
            'error': str(e)
        }
