from django.contrib import admin

from .models import AffiliateCode


@admin.register(AffiliateCode)
class AffiliateCodeAdmin(admin.ModelAdmin):
    list_display = ("code", "affiliate", "created_at")
    search_fields = ("code", "affiliate__username", "affiliate__full_name", "affiliate__email")
