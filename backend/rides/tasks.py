"""Celery tasks for ride-related background processing."""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def expire_stale_offers_task():
    """Expire pending ride offers whose time window has passed."""
    from services.matching import expire_stale_offers

    count = expire_stale_offers()
    logger.info("Offer expiry run finished: %s expired", count)
    return count
