from django.contrib import admin

from .models import EvidenceTag, Tag


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "color", "usage_count", "created_by", "created_at")
    list_filter = ("category",)
    search_fields = ("name",)


@admin.register(EvidenceTag)
class EvidenceTagAdmin(admin.ModelAdmin):
    list_display = ("evidence", "tag", "tagged_by", "tagged_at")
