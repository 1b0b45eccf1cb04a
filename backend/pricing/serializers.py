from rest_framework import serializers

from common.utils.currency import is_paypal_currency_supported
from .models import AppSettings


class PublicAppSettingsSerializer(serializers.ModelSerializer):
    """Safe subset exposed to every visitor."""

    class Meta:
        model = AppSettings
        fields = [
            'pricing_mode',
            'fixed_price_amount',
            'price_per_km',
            'currency',
            'require_driver_subscription',
            'driver_subscription_price',
            'subscription_currency',
            'subscription_period_days',
            'enable_free_driver_access',
            'default_free_days',
            'paypal_client_id',
            'app_name',
            'support_email',
        ]


class AppSettingsSerializer(serializers.ModelSerializer):

    class Meta:
        model = AppSettings
        exclude = ['id']
        read_only_fields = ['updated_at']

    def validate_fixed_price_amount(self, value):
        if value < 0:
            raise serializers.ValidationError("Must not be negative")
        return value

    def validate_price_per_km(self, value):
        if value < 0:
            raise serializers.ValidationError("Must not be negative")
        return value

    def validate_driver_subscription_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Must not be negative")
        return value

    def validate_subscription_period_days(self, value):
        if value < 1:
            raise serializers.ValidationError("Must be at least 1 day")
        return value

    def validate_currency(self, value):
        return value.strip().upper()

    def validate_subscription_currency(self, value):
        if not is_paypal_currency_supported(value):
            raise serializers.ValidationError("PayPal does not support this currency")
        return value.strip().upper()
