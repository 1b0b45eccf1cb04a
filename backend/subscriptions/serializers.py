from rest_framework import serializers

from .models import DriverSubscription


class DriverSubscriptionSerializer(serializers.ModelSerializer):
    is_active = serializers.BooleanField(read_only=True)
    days_remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = DriverSubscription
        fields = [
            "status", "is_active", "days_remaining",
            "started_at", "expires_at",
            "is_free_access", "free_days_granted", "free_access_reason",
            "last_payment_amount", "last_payment_currency", "last_payment_date",
            "payment_method", "provider", "auto_renew",
        ]
        read_only_fields = fields


class PayPalCreateSerializer(serializers.Serializer):
    plan_id = serializers.CharField(required=False, allow_blank=True)
    return_url = serializers.URLField(required=False)
    cancel_url = serializers.URLField(required=False)


class PayPalVerifySerializer(serializers.Serializer):
    subscription_id = serializers.CharField(max_length=128)


class GooglePlayVerifySerializer(serializers.Serializer):
    purchase_token = serializers.CharField()
    product_id = serializers.CharField(max_length=128)
    package_name = serializers.CharField(max_length=255, required=False, allow_blank=True)


class FreeAccessGrantSerializer(serializers.Serializer):
    days = serializers.IntegerField(min_value=1, max_value=3650)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
