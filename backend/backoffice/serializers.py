from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from drivers.serializers import DriverVerificationSerializer


class DriverBlockSerializer(serializers.Serializer):
    blocked = serializers.BooleanField()


class VerificationReviewSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["approve", "reject"])
    note = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class VerificationQueueSerializer(DriverVerificationSerializer):
    """Queue entry with the driver's contact details inlined."""
    driver = UserBasicSerializer(read_only=True)
