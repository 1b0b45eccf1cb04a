"""Periodic subscription maintenance run by celery beat."""

import logging

from celery import shared_task

from . import services

logger = logging.getLogger(__name__)


@shared_task
def expire_subscriptions_task():
    count = services.expire_subscriptions()
    logger.info("Subscription expiry run finished: %s expired", count)
    return count


@shared_task
def send_email_reminders_task():
    result = services.send_expiry_reminder_emails()
    logger.info("Email reminders: %(sent)s sent, %(failed)s failed of %(total)s", result)
    return result


@shared_task
def send_sms_reminders_task():
    result = services.send_expiry_reminder_sms()
    logger.info("SMS reminders: %(sent)s sent, %(failed)s failed of %(total)s", result)
    return result
