from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin panel for custom User model"""

    list_display = [
        "username",
        "email",
        "role",
        "full_name",
        "phone_number",
        "admin_approved",
        "admin_blocked",
        "is_active",
    ]

    list_filter = [
        "role",
        "admin_approved",
        "admin_blocked",
        "is_active",
        "date_joined",
    ]

    search_fields = [
        "username",
        "email",
        "full_name",
        "phone_number",
        "referred_by_code",
    ]

    ordering = ("username",)

    fieldsets = BaseUserAdmin.fieldsets + (
        (
            "Marketplace",
            {
                "fields": (
                    "role",
                    "full_name",
                    "phone_number",
                    "country",
                    "city",
                    "avatar",
                    "completed_rides",
                    "admin_approved",
                    "admin_blocked",
                    "referred_by_code",
                )
            },
        ),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        (
            "Marketplace",
            {
                "fields": (
                    "role",
                    "full_name",
                    "phone_number",
                )
            },
        ),
    )
