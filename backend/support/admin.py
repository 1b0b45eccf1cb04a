from django.contrib import admin

from .models import SupportMessage, SupportThread


class SupportMessageInline(admin.TabularInline):
    model = SupportMessage
    extra = 0
    readonly_fields = ("sender", "sender_role", "message", "created_at")


@admin.register(SupportThread)
class SupportThreadAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "status", "updated_at")
    list_filter = ("status",)
    search_fields = ("user__username", "user__full_name", "user__email")
    inlines = [SupportMessageInline]
