"""
Tags app serializers.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import Tag

_HEX_COLOR_RE = r"^#[0-9A-Fa-f]{6}$"


class TagSerializer(serializers.ModelSerializer):
    created_by = serializers.CharField(source="created_by.identity", read_only=True, default=None)

    class Meta:
        model = Tag
        fields = ["id", "name", "color", "category", "usage_count", "created_by", "created_at"]
        read_only_fields = fields


class TagCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=50, error_messages={"required": "Tag name is required"})
    color = serializers.RegexField(_HEX_COLOR_RE, required=False, allow_blank=True)
    category = serializers.CharField(max_length=50, required=False, allow_blank=True)


class TagSuggestQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, default="")


class EvidenceTagAddSerializer(serializers.Serializer):
    tagIds = serializers.ListField(
        source="tag_ids",
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        error_messages={"required": "Tag IDs are required"},
    )


class BatchTagSerializer(serializers.Serializer):
    evidenceIds = serializers.ListField(
        source="evidence_ids",
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
    )
    tagIds = serializers.ListField(
        source="tag_ids",
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
    )


class FilterByTagsQuerySerializer(serializers.Serializer):
    tags = serializers.CharField(help_text="Comma-separated tag ids.")
    logic = serializers.CharField(required=False, default="OR", help_text="AND or OR.")

    def validate_tags(self, value: str) -> list[int]:
        ids = []
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            if not part.isdigit():
                raise serializers.ValidationError("Tag IDs must be numeric")
            ids.append(int(part))
        if not ids:
            raise serializers.ValidationError("Tag IDs are required")
        return ids

    def validate_logic(self, value: str) -> str:
        value = value.strip().upper()
        if value not in ("AND", "OR"):
            raise serializers.ValidationError("logic must be AND or OR")
        return value
