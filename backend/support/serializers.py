from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from .models import SupportMessage, SupportThread


class SupportMessageSerializer(serializers.ModelSerializer):
    sender_name = serializers.SerializerMethodField()

    class Meta:
        model = SupportMessage
        fields = ["id", "thread", "sender", "sender_name", "sender_role", "message", "created_at"]
        read_only_fields = fields

    def get_sender_name(self, obj):
        return obj.sender.display_name if obj.sender else None


class SupportThreadSerializer(serializers.ModelSerializer):
    user = UserBasicSerializer(read_only=True)
    last_message = serializers.SerializerMethodField()

    class Meta:
        model = SupportThread
        fields = ["id", "user", "status", "created_at", "updated_at", "last_message"]
        read_only_fields = fields

    def get_last_message(self, obj):
        message = obj.messages.order_by("-created_at").first()
        return SupportMessageSerializer(message).data if message else None


class SupportMessageCreateSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=SupportMessage.MAX_LENGTH, trim_whitespace=True)
