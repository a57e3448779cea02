"""
Retention app serializers.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import RetentionPolicy
from .services import EXPIRY_FILTER_ALL, EXPIRY_FILTERS


class RetentionPolicySerializer(serializers.ModelSerializer):
    class Meta:
        model = RetentionPolicy
        fields = ["id", "name", "description", "retention_days", "is_active", "created_by", "created_at"]
        read_only_fields = fields


class RetentionPolicyCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120, error_messages={"required": "Policy name is required"})
    retentionDays = serializers.IntegerField(
        source="retention_days",
        min_value=1,
        error_messages={
            "required": "retentionDays is required",
            "min_value": "Retention days must be at least 1",
        },
    )
    description = serializers.CharField(required=False, allow_blank=True, default="")


class ExpiryQuerySerializer(serializers.Serializer):
    filter = serializers.ChoiceField(choices=EXPIRY_FILTERS, required=False, default=EXPIRY_FILTER_ALL)


class LegalHoldSerializer(serializers.Serializer):
    legalHold = serializers.BooleanField(source="legal_hold")


class BulkRetentionSerializer(serializers.Serializer):
    policyId = serializers.IntegerField(source="policy_id", min_value=1)
    evidenceIds = serializers.ListField(
        source="evidence_ids",
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
    )


class TimelineExportSerializer(serializers.Serializer):
    caseId = serializers.IntegerField(source="case_id", required=False, allow_null=True, min_value=1)
    title = serializers.CharField(required=False, allow_blank=True, max_length=200, default="")
