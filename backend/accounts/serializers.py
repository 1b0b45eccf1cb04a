from rest_framework import serializers
from django.contrib.auth import authenticate
from django.db import transaction

from .models import User


class UserSerializer(serializers.ModelSerializer):
    avatar_url = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "role",
            "full_name",
            "phone_number",
            "country",
            "city",
            "completed_rides",
            "admin_approved",
            "admin_blocked",
            "referred_by_code",
            "avatar_url",
            "date_joined",
        ]
        read_only_fields = fields

    def get_avatar_url(self, obj):
        if obj.avatar:
            request = self.context.get("request")
            if request:
                return request.build_absolute_uri(obj.avatar.url)
            return obj.avatar.url
        return None


class UserBasicSerializer(serializers.ModelSerializer):
    """Lite user info embedded in rides, chats and support threads."""

    class Meta:
        model = User
        fields = ["id", "username", "full_name", "phone_number", "role"]


class LoginSerializer(serializers.Serializer):
    """Accepts either a username or an email in ``username``."""
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        identifier = data["username"].strip()
        if "@" in identifier:
            match = User.objects.filter(email__iexact=identifier).first()
            if match:
                identifier = match.username

        user = authenticate(username=identifier, password=data["password"])
        if not user:
            raise serializers.ValidationError("Invalid username or password")
        return user


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6)
    ref = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta:
        model = User
        fields = ['username', 'password', 'email', 'role', 'full_name',
                  'phone_number', 'country', 'city', 'ref']
        extra_kwargs = {
            'email': {'required': True, 'allow_blank': False},
            'role': {'required': True},
        }

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value

    def validate_role(self, value):
        if value not in User.SELF_REGISTER_ROLES:
            raise serializers.ValidationError("This role cannot be self-registered")
        return value

    def validate(self, data):
        if data['role'] in User.PHONE_REQUIRED_ROLES and not (data.get('phone_number') or '').strip():
            raise serializers.ValidationError({
                'phone_number': 'Phone number is required for clients and drivers'
            })
        return data

    @transaction.atomic
    def create(self, validated_data):
        from affiliates.services import ensure_affiliate_code, resolve_referral_code
        from drivers.models import DriverProfile
        from subscriptions.services import grant_default_free_access

        ref = validated_data.pop('ref', '')
        password = validated_data.pop('password')

        user = User(**validated_data)
        user.phone_number = (user.phone_number or '').strip()
        # Unknown referral codes are ignored
        user.referred_by_code = resolve_referral_code(ref) or ''
        user.set_password(password)
        user.save()

        if user.role == User.ROLE_DRIVER:
            DriverProfile.objects.create(user=user)
            grant_default_free_access(user)
        elif user.role == User.ROLE_AFFILIATE:
            ensure_affiliate_code(user)

        return user


class ProfileUpdateSerializer(serializers.ModelSerializer):

    class Meta:
        model = User
        fields = ['full_name', 'phone_number', 'country', 'city']

    def validate_phone_number(self, value):
        value = (value or '').strip()
        if not value and self.instance.role in User.PHONE_REQUIRED_ROLES:
            raise serializers.ValidationError("Phone number cannot be removed")
        return value


class ChangeEmailSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def validate_email(self, value):
        user = self.context['request'].user
        if User.objects.filter(email__iexact=value).exclude(pk=user.pk).exists():
            raise serializers.ValidationError("Email already exists")
        return value


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=6)
    confirm_password = serializers.CharField(write_only=True)

    def validate_current_password(self, value):
        if not self.context['request'].user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect")
        return value

    def validate(self, data):
        if data['new_password'] != data['confirm_password']:
            raise serializers.ValidationError({'confirm_password': 'Passwords do not match'})
        return data


class AvatarSerializer(serializers.Serializer):
    avatar = serializers.ImageField()
