from django.contrib import admin
from drivers.models import DriverProfile, DriverVerification


@admin.register(DriverProfile)
class DriverProfileAdmin(admin.ModelAdmin):
    """Admin panel for managing Driver Profiles"""

    list_display = [
        "user",
        "vehicle_plate",
        "status",
        "current_latitude",
        "current_longitude",
        "last_location_update",
    ]

    list_filter = [
        "status",
        "last_location_update",
    ]

    search_fields = [
        "user__username",
        "vehicle_plate",
    ]

    readonly_fields = [
        "last_location_update",
    ]

    ordering = ("user__username",)


@admin.register(DriverVerification)
class DriverVerificationAdmin(admin.ModelAdmin):
    list_display = ("driver", "id_document_type", "vehicle_plate", "status", "submitted_at", "reviewed_at")
    list_filter = ("status", "id_document_type")
    search_fields = ("driver__username", "driver__full_name", "vehicle_plate", "license_number")
    readonly_fields = ("submitted_at", "reviewed_at")
