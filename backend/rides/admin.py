"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import Ride, RideMessage, RideOffer


@admin.register(Ride)
class RideAdmin(admin.ModelAdmin):
    """Ride admin"""
    list_display = ['id', 'client', 'driver', 'status', 'payment_status', 'final_price', 'currency', 'created_at']
    list_filter = ['status', 'payment_status', 'payment_method', 'created_at']
    search_fields = ['client__username', 'driver__username', 'pickup_address', 'drop_address', 'pickup_city']
    readonly_fields = ['created_at', 'accepted_at', 'arrived_at', 'started_at', 'completed_at', 'cancelled_at']
    date_hierarchy = 'created_at'


@admin.register(RideOffer)
class RideOfferAdmin(admin.ModelAdmin):
    list_display = ("ride", "driver", "price_offer", "client_counter_price", "status", "expires_at")
    list_filter = ("status",)
    search_fields = ("ride__id", "driver__username")


@admin.register(RideMessage)
class RideMessageAdmin(admin.ModelAdmin):
    list_display = ("ride", "sender", "sender_role", "created_at")
    search_fields = ("ride__id", "sender__username", "message")
