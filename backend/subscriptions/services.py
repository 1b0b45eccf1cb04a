"""
Driver subscription lifecycle.

Covers free grants, PayPal checkout and verification, Google Play purchase
verification, the expiry sweep and reminder delivery. Provider HTTP calls
live in paypal.py and google_play.py.
"""

import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from common.messaging import MessagingError, normalize_phone, send_email, send_sms
from common.utils.currency import normalize_currency
from pricing.models import AppSettings
from .exceptions import SubscriptionConfigError, SubscriptionNotActiveError
from .google_play import GooglePlayService
from .models import DriverSubscription
from .paypal import PayPalService

logger = logging.getLogger(__name__)


def get_subscription(driver) -> Optional[DriverSubscription]:
    return DriverSubscription.objects.filter(driver=driver).first()


def _get_or_create(driver) -> DriverSubscription:
    subscription, _ = DriverSubscription.objects.select_for_update().get_or_create(driver=driver)
    return subscription


# ===================== Free access =====================

@transaction.atomic
def grant_free_access(driver, days: int, reason: str = "") -> DriverSubscription:
    """Give a driver ``days`` of free access starting now."""
    now = timezone.now()
    subscription = _get_or_create(driver)
    subscription.status = 'free'
    subscription.is_free_access = True
    subscription.free_days_granted = days
    subscription.free_access_reason = reason
    subscription.started_at = now
    subscription.expires_at = now + timedelta(days=days)
    subscription.provider = 'manual'
    subscription.payment_method = 'free'
    subscription.auto_renew = False
    subscription.save()
    logger.info("Granted %s free days to driver %s", days, driver.id)
    return subscription


@transaction.atomic
def revoke_free_access(driver) -> DriverSubscription:
    subscription = _get_or_create(driver)
    subscription.status = 'expired'
    subscription.is_free_access = False
    subscription.save(update_fields=['status', 'is_free_access', 'updated_at'])
    logger.info("Revoked free access for driver %s", driver.id)
    return subscription


def grant_default_free_access(driver) -> Optional[DriverSubscription]:
    """Signup grant, only when the platform currently offers one."""
    app_settings = AppSettings.load()
    if not app_settings.enable_free_driver_access or app_settings.default_free_days <= 0:
        return None
    return grant_free_access(driver, app_settings.default_free_days, reason='signup')


# ===================== PayPal =====================

def resolve_paypal_plan(paypal: PayPalService, requested_plan_id: str = None) -> str:
    """Plan from the request, then AppSettings, then env; otherwise create one."""
    app_settings = AppSettings.load()
    plan_id = requested_plan_id or app_settings.paypal_plan_id or settings.PAYPAL_PLAN_ID
    if plan_id:
        return plan_id

    if not settings.PAYPAL_PRODUCT_ID:
        raise SubscriptionConfigError("Missing PAYPAL_PLAN_ID or PAYPAL_PRODUCT_ID")

    price = app_settings.driver_subscription_price
    days = app_settings.subscription_period_days or 30
    currency = normalize_currency(app_settings.subscription_currency, app_settings.currency)
    plan_id = paypal.create_plan(settings.PAYPAL_PRODUCT_ID, price, days, currency)
    logger.info("Created PayPal plan %s (%s %s / %s days)", plan_id, price, currency, days)
    return plan_id


def start_paypal_checkout(driver, plan_id=None, return_url=None, cancel_url=None) -> dict:
    paypal = PayPalService()
    plan_id = resolve_paypal_plan(paypal, plan_id)

    site_url = settings.FRONTEND_URL.rstrip('/')
    return_url = return_url or f"{site_url}/subscription?paypal=success"
    cancel_url = cancel_url or f"{site_url}/subscription?paypal=cancel"

    result = paypal.create_subscription(plan_id, custom_id=driver.id, return_url=return_url, cancel_url=cancel_url)
    result["plan_id"] = plan_id
    return result


def _paypal_expiry(data, period_days):
    next_billing = (data.get("billing_info") or {}).get("next_billing_time")
    expires_at = parse_datetime(next_billing) if next_billing else None
    return expires_at or timezone.now() + timedelta(days=period_days)


@transaction.atomic
def activate_paypal_subscription(driver, subscription_id: str) -> DriverSubscription:
    """
    Verify a PayPal subscription by id and activate the driver.

    Raises:
        SubscriptionNotActiveError: PayPal does not report the subscription ACTIVE
            or it belongs to another driver
        SubscriptionProviderError: PayPal rejected the request
    """
    data = PayPalService().get_subscription(subscription_id)

    if data.get("status") != "ACTIVE":
        raise SubscriptionNotActiveError(f"Subscription status is {data.get('status')}")
    custom_id = data.get("custom_id")
    if custom_id and str(custom_id) != str(driver.id):
        raise SubscriptionNotActiveError("Subscription belongs to another account")

    app_settings = AppSettings.load()
    last_payment = (data.get("billing_info") or {}).get("last_payment") or {}
    amount = (last_payment.get("amount") or {})
    now = timezone.now()

    subscription = _get_or_create(driver)
    if not (subscription.status == 'active' and subscription.started_at):
        subscription.started_at = now
    subscription.status = 'active'
    subscription.expires_at = _paypal_expiry(data, app_settings.subscription_period_days)
    subscription.is_free_access = False
    subscription.provider = 'paypal'
    subscription.provider_subscription_id = subscription_id
    subscription.provider_product_id = data.get("plan_id") or ""
    subscription.payment_method = 'paypal'
    subscription.auto_renew = True
    subscription.last_payment_amount = Decimal(str(amount.get("value") or app_settings.driver_subscription_price))
    subscription.last_payment_currency = amount.get("currency_code") or app_settings.subscription_currency
    subscription.last_payment_date = now
    subscription.save()

    transaction.on_commit(lambda: _after_activation(subscription))
    return subscription


# ===================== Google Play =====================

@transaction.atomic
def verify_google_play_purchase(driver, purchase_token, product_id, package_name=None) -> DriverSubscription:
    package_name = package_name or settings.GOOGLE_PLAY_PACKAGE_NAME
    if not package_name:
        raise SubscriptionConfigError("Missing Google Play package name")

    data = GooglePlayService().get_subscription(package_name, product_id, purchase_token)

    expiry_ms = int(data.get("expiryTimeMillis") or 0)
    now = timezone.now()
    expires_at = (
        datetime.fromtimestamp(expiry_ms / 1000, tz=dt_timezone.utc) if expiry_ms else None
    )
    is_active = expires_at is not None and expires_at > now

    subscription = _get_or_create(driver)
    subscription.status = 'active' if is_active else 'expired'
    subscription.started_at = subscription.started_at or now
    subscription.expires_at = expires_at
    subscription.auto_renew = bool(data.get("autoRenewing"))
    subscription.is_free_access = False
    subscription.payment_method = 'google_play'
    subscription.provider = 'google_play'
    subscription.provider_product_id = product_id
    subscription.provider_purchase_token = purchase_token
    subscription.provider_subscription_id = data.get("orderId") or ""
    micros = data.get("priceAmountMicros")
    subscription.last_payment_amount = Decimal(int(micros)) / Decimal(1000000) if micros else None
    subscription.last_payment_currency = data.get("priceCurrencyCode") or ""
    subscription.last_payment_date = now
    subscription.save()

    if is_active:
        transaction.on_commit(lambda: _after_activation(subscription))
    return subscription


# ===================== Notifications =====================

def _after_activation(subscription):
    from realtime.notifications import notify_user_event

    try:
        send_subscription_receipt(subscription)
    except MessagingError:
        logger.exception("Failed to send subscription receipt to driver %s", subscription.driver_id)
    notify_user_event(subscription.driver_id, 'subscription_updated', {
        'status': subscription.status,
        'expires_at': subscription.expires_at.isoformat() if subscription.expires_at else None,
    })


def _date_label(value, default):
    return value.strftime('%m/%d/%Y') if value else default


def send_subscription_receipt(subscription):
    driver = subscription.driver
    if not driver.email:
        return
    app_settings = AppSettings.load()
    name = driver.display_name or 'Driver'
    price = subscription.last_payment_amount or app_settings.driver_subscription_price
    currency = subscription.last_payment_currency or app_settings.subscription_currency
    days = app_settings.subscription_period_days
    expires_label = _date_label(subscription.expires_at, 'N/A')

    subject = f'Your {app_settings.app_name} subscription is active'
    text = "\n".join([
        f"Hi {name},",
        "",
        f"Your {app_settings.app_name} driver subscription is active.",
        f"Amount: {price} {currency}",
        f"Period: {days} days",
        f"Next renewal: {expires_label}",
        "",
        f"Thank you for using {app_settings.app_name}.",
    ])
    html = (
        '<div style="font-family: Arial, sans-serif; line-height: 1.5;">'
        f'<h2>{subject}</h2>'
        f'<p>Hi {name},</p>'
        '<p>Your driver subscription is now active.</p>'
        '<ul>'
        f'<li><strong>Amount:</strong> {price} {currency}</li>'
        f'<li><strong>Period:</strong> {days} days</li>'
        f'<li><strong>Next renewal:</strong> {expires_label}</li>'
        '</ul>'
        f'<p>Thank you for using {app_settings.app_name}.</p>'
        '</div>'
    )
    send_email(driver.email, subject, html, text)


def expiring_subscriptions(days: int, now=None):
    now = now or timezone.now()
    return DriverSubscription.objects.filter(
        expires_at__gte=now,
        expires_at__lt=now + timedelta(days=days),
    ).select_related('driver')


def send_expiry_reminder_emails(days: int = None, now=None) -> dict:
    """Email every driver whose access ends within ``days``. Failures are counted."""
    days = days if days is not None else settings.SUBSCRIPTION_REMINDER_DAYS
    app_name = AppSettings.load().app_name
    subs = list(expiring_subscriptions(days, now))
    sent = failed = 0

    for sub in subs:
        email = sub.driver.email
        if not email:
            continue
        name = sub.driver.display_name or 'Driver'
        expires_label = _date_label(sub.expires_at, 'soon')
        subject = f'Your {app_name} subscription is expiring soon'
        text = "\n".join([
            f"Hi {name},",
            "",
            f"Your driver subscription is expiring on {expires_label}.",
            "Please renew to keep receiving ride requests.",
            "",
            f"Thank you for using {app_name}.",
        ])
        html = (
            '<div style="font-family: Arial, sans-serif; line-height: 1.5;">'
            f'<h2>{subject}</h2>'
            f'<p>Hi {name},</p>'
            f'<p>Your driver subscription is expiring on <strong>{expires_label}</strong>.</p>'
            '<p>Please renew to keep receiving ride requests.</p>'
            '</div>'
        )
        try:
            send_email(email, subject, html, text)
            sent += 1
        except MessagingError:
            logger.warning("Reminder email failed for driver %s", sub.driver_id)
            failed += 1

    return {"sent": sent, "failed": failed, "total": len(subs)}


def send_expiry_reminder_sms(days: int = None, now=None) -> dict:
    days = days if days is not None else settings.SMS_REMINDER_DAYS
    app_name = AppSettings.load().app_name
    subs = list(expiring_subscriptions(days, now))
    sent = failed = 0

    for sub in subs:
        phone = normalize_phone(sub.driver.phone_number)
        if not phone:
            continue
        name = sub.driver.display_name or 'Driver'
        body = (
            f"Hi {name}, your {app_name} subscription expires on "
            f"{_date_label(sub.expires_at, 'soon')}. Please renew to keep receiving ride requests."
        )
        try:
            send_sms(phone, body)
            sent += 1
        except MessagingError:
            logger.warning("Reminder SMS failed for driver %s", sub.driver_id)
            failed += 1

    return {"sent": sent, "failed": failed, "total": len(subs)}


# ===================== Expiry sweep =====================

def expire_subscriptions(now=None) -> int:
    """Move lapsed paid subscriptions and lapsed free grants to expired."""
    now = now or timezone.now()
    paid = DriverSubscription.objects.filter(
        status='active', is_free_access=False, expires_at__lt=now,
    ).update(status='expired', updated_at=now)
    free = DriverSubscription.objects.filter(
        is_free_access=True, expires_at__lt=now,
    ).update(status='expired', is_free_access=False, updated_at=now)
    if paid or free:
        logger.info("Expired %s paid and %s free subscriptions", paid, free)
    return paid + free
