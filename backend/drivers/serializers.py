from rest_framework import serializers

from accounts.serializers import UserSerializer
from drivers.models import DriverProfile, DriverVerification


class DriverProfileSerializer(serializers.ModelSerializer):
    """
    Full driver profile serializer
    """
    user = serializers.SerializerMethodField()

    class Meta:
        model = DriverProfile
        fields = [
            "id",
            "user",
            "vehicle_model",
            "vehicle_plate",
            "status",
            "current_latitude",
            "current_longitude",
            "last_location_update",
        ]
        read_only_fields = ["id", "status", "current_latitude", "current_longitude", "last_location_update"]

    def get_user(self, obj):
        return UserSerializer(obj.user, context=self.context).data


class DriverStatusSerializer(serializers.Serializer):
    """
    Serializer for updating driver availability (available/offline).
    """
    status = serializers.ChoiceField(choices=["available", "offline"])


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating driver GPS location.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6)


class VerificationSubmitSerializer(serializers.Serializer):
    id_document_type = serializers.ChoiceField(choices=DriverVerification.DOCUMENT_TYPE_CHOICES)
    id_document_number = serializers.CharField(max_length=64)
    license_number = serializers.CharField(max_length=64)
    license_class = serializers.CharField(max_length=16, required=False, allow_blank=True, default="")
    vehicle_plate = serializers.CharField(max_length=20)
    id_front = serializers.FileField(required=False)
    id_back = serializers.FileField(required=False)
    license_file = serializers.FileField(required=False)


class DriverVerificationSerializer(serializers.ModelSerializer):
    """Verification record without raw file paths; documents go through signed URLs."""
    documents = serializers.SerializerMethodField()
    driver_name = serializers.CharField(source="driver.display_name", read_only=True)

    class Meta:
        model = DriverVerification
        fields = [
            "id",
            "driver",
            "driver_name",
            "id_document_type",
            "id_document_number",
            "license_number",
            "license_class",
            "vehicle_plate",
            "status",
            "admin_note",
            "reviewed_by",
            "reviewed_at",
            "submitted_at",
            "documents",
        ]
        read_only_fields = fields

    def get_documents(self, obj):
        from drivers.services import signed_document_urls
        return signed_document_urls(obj, self.context.get("request"))
