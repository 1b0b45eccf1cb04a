from decimal import Decimal

from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from .models import Ride, RideMessage, RideOffer


class RideSerializer(serializers.ModelSerializer):
    """Full ride details as seen by its client, its driver and the back office"""
    client = UserBasicSerializer(read_only=True)
    driver = UserBasicSerializer(read_only=True)
    vehicle = serializers.SerializerMethodField()

    class Meta:
        model = Ride
        fields = [
            'id', 'client', 'driver', 'vehicle',
            'pickup_lat', 'pickup_lng', 'pickup_address', 'pickup_city',
            'drop_lat', 'drop_lng', 'drop_address',
            'distance_km', 'estimated_time_minutes', 'passengers',
            'base_price', 'final_price', 'currency', 'client_offer_price',
            'status', 'payment_status', 'payment_method',
            'driver_lat', 'driver_lng', 'driver_speed', 'driver_heading', 'driver_location_updated_at',
            'created_at', 'accepted_at', 'arrived_at', 'started_at', 'completed_at', 'cancelled_at',
            'cancellation_reason',
        ]
        read_only_fields = fields

    def get_vehicle(self, obj):
        profile = getattr(obj.driver, "driver_profile", None) if obj.driver_id else None
        if profile is None:
            return None
        return {"model": profile.vehicle_model, "plate": profile.vehicle_plate}


class RideCreateSerializer(serializers.ModelSerializer):
    """Client input for a new ride. Prices and ETA are computed server-side."""
    passengers = serializers.IntegerField(min_value=1, max_value=20, default=1)
    client_offer_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True, min_value=Decimal('0.01')
    )

    class Meta:
        model = Ride
        fields = ['pickup_lat', 'pickup_lng', 'pickup_address', 'pickup_city',
                  'drop_lat', 'drop_lng', 'drop_address', 'passengers',
                  'payment_method', 'client_offer_price']
        extra_kwargs = {
            'drop_lat': {'required': True, 'allow_null': False},
            'drop_lng': {'required': True, 'allow_null': False},
        }


class RideCancelSerializer(serializers.Serializer):
    """Serializer for ride cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class RideOfferSerializer(serializers.ModelSerializer):
    driver = UserBasicSerializer(read_only=True)

    class Meta:
        model = RideOffer
        fields = ['id', 'ride', 'driver', 'price_offer', 'client_counter_price',
                  'driver_lat', 'driver_lng', 'message', 'status', 'expires_at',
                  'created_at', 'updated_at']
        read_only_fields = fields


class OfferCreateSerializer(serializers.Serializer):
    price_offer = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    message = serializers.CharField(required=False, allow_blank=True, default="", max_length=500)
    driver_lat = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    driver_lng = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)


class CounterOfferSerializer(serializers.Serializer):
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))


class LivePositionSerializer(serializers.Serializer):
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    speed = serializers.FloatField(required=False, allow_null=True)
    heading = serializers.FloatField(required=False, allow_null=True)


class RideMessageSerializer(serializers.ModelSerializer):

    class Meta:
        model = RideMessage
        fields = ['id', 'ride', 'sender', 'sender_role', 'message', 'created_at']
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=RideMessage.MAX_LENGTH, trim_whitespace=True)
