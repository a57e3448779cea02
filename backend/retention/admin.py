from django.contrib import admin

from .models import RetentionPolicy


@admin.register(RetentionPolicy)
class RetentionPolicyAdmin(admin.ModelAdmin):
    list_display = ("name", "retention_days", "is_active", "created_by", "created_at")
    list_filter = ("is_active",)
