from django.contrib import admin

from .models import DriverSubscription


@admin.register(DriverSubscription)
class DriverSubscriptionAdmin(admin.ModelAdmin):
    list_display = ("driver", "status", "is_free_access", "provider", "expires_at", "auto_renew")
    list_filter = ("status", "provider", "is_free_access")
    search_fields = ("driver__username", "driver__email", "provider_subscription_id")
    readonly_fields = ("created_at", "updated_at", "last_payment_date")
