from decimal import Decimal

from django.db import models


class AppSettings(models.Model):
    """Platform knobs edited by the owner at runtime. Always row id=1."""
    PRICING_MODE_CHOICES = [
        ('fixed', 'Fixed price'),
        ('distance', 'Per kilometre'),
    ]

    pricing_mode = models.CharField(max_length=10, choices=PRICING_MODE_CHOICES, default='fixed')
    fixed_price_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('10.00'))
    price_per_km = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1.00'))
    currency = models.CharField(max_length=3, default='USD')

    require_driver_subscription = models.BooleanField(default=True)
    driver_subscription_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('2.00'))
    subscription_currency = models.CharField(max_length=3, default='USD')
    subscription_period_days = models.PositiveIntegerField(default=30)
    enable_free_driver_access = models.BooleanField(default=True)
    default_free_days = models.PositiveIntegerField(default=30)

    paypal_client_id = models.CharField(max_length=128, blank=True)
    paypal_plan_id = models.CharField(max_length=64, blank=True)

    app_name = models.CharField(max_length=64, default='Supertez')
    support_email = models.EmailField(blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'app_settings'
        verbose_name = 'app settings'
        verbose_name_plural = 'app settings'

    def __str__(self):
        return f"{self.app_name} settings"

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj
