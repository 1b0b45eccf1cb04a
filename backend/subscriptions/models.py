import math

from django.db import models
from django.conf import settings
from django.utils import timezone


class DriverSubscription(models.Model):
    """Paid or granted platform access for a single driver"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('expired', 'Expired'),
        ('cancelled', 'Cancelled'),
        ('free', 'Free access'),
    ]
    PROVIDER_CHOICES = [
        ('paypal', 'PayPal'),
        ('google_play', 'Google Play'),
        ('manual', 'Manual'),
    ]

    driver = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='driver_subscription'
    )

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='expired')
    started_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    is_free_access = models.BooleanField(default=False)
    free_days_granted = models.PositiveIntegerField(default=0)
    free_access_reason = models.CharField(max_length=255, blank=True)

    last_payment_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    last_payment_currency = models.CharField(max_length=3, blank=True)
    last_payment_date = models.DateTimeField(null=True, blank=True)
    payment_method = models.CharField(max_length=20, blank=True)

    provider = models.CharField(max_length=20, choices=PROVIDER_CHOICES, blank=True)
    provider_subscription_id = models.CharField(max_length=128, blank=True)
    provider_product_id = models.CharField(max_length=128, blank=True)
    provider_purchase_token = models.TextField(blank=True)
    auto_renew = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'driver_subscriptions'

    def __str__(self):
        return f"Subscription {self.driver_id} ({self.status})"

    @property
    def is_active(self):
        if self.is_free_access:
            return True
        return (
            self.status == 'active'
            and self.expires_at is not None
            and self.expires_at > timezone.now()
        )

    @property
    def days_remaining(self):
        if not self.expires_at:
            return 0
        seconds = (self.expires_at - timezone.now()).total_seconds()
        return max(0, math.ceil(seconds / 86400))
