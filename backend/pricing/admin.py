from django.contrib import admin

from .models import AppSettings


@admin.register(AppSettings)
class AppSettingsAdmin(admin.ModelAdmin):
    list_display = ("app_name", "pricing_mode", "currency", "require_driver_subscription", "updated_at")
