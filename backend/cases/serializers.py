"""
Cases app serializers.

Contains all Request and Response serializers for the Cases API.
Serializers handle field definitions, read/write constraints, and field-level
validation only.  **No business logic or workflow transitions live
here** — those belong in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Case read serializers (list, detail)
3. Case write serializers (create)
4. Workflow action serializers (status change, assignment)
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import (
    AssignmentRole,
    AssignmentType,
    Case,
    CaseAssignment,
    CasePriority,
    CaseStatus,
    CaseStatusHistory,
    CaseStatusTransition,
)
from .services import TIMEFRAMES

User = get_user_model()

SORT_FIELDS = ("created_at", "updated_at", "priority", "title", "case_number")


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseFilterSerializer(serializers.Serializer):
    """
    Validates the query-parameter filters shared by
    ``GET /api/cases/enhanced/`` and ``GET /api/cases/export/``.

    All fields are optional.  Parameter names are camelCase on the wire
    and snake_case in ``validated_data``.
    """

    status = serializers.CharField(required=False, allow_blank=True, help_text="Status code, e.g. 'open'.")
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False)
    assignedTo = serializers.CharField(
        source="assigned_to", required=False, allow_blank=True,
        help_text="User PK, wallet address or e-mail of an assigned investigator, prosecutor or judge.",
    )
    caseType = serializers.CharField(source="case_type", required=False, allow_blank=True)
    jurisdiction = serializers.CharField(required=False, allow_blank=True)
    dateFrom = serializers.DateField(source="date_from", required=False)
    dateTo = serializers.DateField(source="date_to", required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=200)


class CaseListQuerySerializer(CaseFilterSerializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=20)
    sortBy = serializers.ChoiceField(source="sort_by", choices=SORT_FIELDS, required=False, default="created_at")
    sortOrder = serializers.ChoiceField(source="sort_order", choices=("asc", "desc"), required=False, default="desc")


class CaseStatisticsQuerySerializer(serializers.Serializer):
    timeframe = serializers.ChoiceField(choices=tuple(TIMEFRAMES), required=False, default="30d")


# ═══════════════════════════════════════════════════════════════════
#  2. Case Read Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = CaseStatus
        fields = ["id", "code", "name", "description", "color", "sort_order", "is_terminal"]
        read_only_fields = fields


class CaseTimelineSerializer(serializers.ModelSerializer):
    """Minimal case row for timelines (``GET /api/cases/``)."""

    status = serializers.CharField(source="status.code", read_only=True)

    class Meta:
        model = Case
        fields = ["id", "case_number", "title", "description", "status", "created_at"]
        read_only_fields = fields


class CaseListSerializer(serializers.ModelSerializer):
    """Row representation for the enhanced listing."""

    status = CaseStatusSerializer(read_only=True)
    created_by = serializers.CharField(source="created_by.identity", read_only=True)
    assigned_investigator = serializers.PrimaryKeyRelatedField(read_only=True)
    assigned_prosecutor = serializers.PrimaryKeyRelatedField(read_only=True)
    assigned_judge = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Case
        fields = [
            "id",
            "case_number",
            "title",
            "description",
            "status",
            "priority",
            "case_type",
            "jurisdiction",
            "incident_date",
            "location",
            "created_by",
            "assigned_investigator",
            "assigned_prosecutor",
            "assigned_judge",
            "status_changed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CaseStatusHistorySerializer(serializers.ModelSerializer):
    """Read-only serializer for status history entries."""

    from_status = serializers.CharField(source="from_status.code", read_only=True, default=None)
    to_status = serializers.CharField(source="to_status.code", read_only=True)
    changed_by = serializers.CharField(source="changed_by.identity", read_only=True, default=None)
    case_number = serializers.CharField(source="case.case_number", read_only=True)

    class Meta:
        model = CaseStatusHistory
        fields = ["id", "case", "case_number", "from_status", "to_status", "changed_by", "reason", "metadata", "changed_at"]
        read_only_fields = fields


class CaseAssignmentSerializer(serializers.ModelSerializer):
    user_identity = serializers.CharField(source="user.identity", read_only=True)
    user_full_name = serializers.CharField(source="user.full_name", read_only=True)
    assigned_by = serializers.CharField(source="assigned_by.identity", read_only=True, default=None)

    class Meta:
        model = CaseAssignment
        fields = [
            "id",
            "case",
            "user",
            "user_identity",
            "user_full_name",
            "role_type",
            "assignment_type",
            "assigned_by",
            "notes",
            "is_active",
            "assigned_at",
        ]
        read_only_fields = fields


class CaseTransitionSerializer(serializers.ModelSerializer):
    """An entry of the available-transitions list."""

    from_status = serializers.CharField(source="from_status.code", read_only=True)
    to_status = CaseStatusSerializer(read_only=True)

    class Meta:
        model = CaseStatusTransition
        fields = ["id", "from_status", "to_status", "required_role", "transition_name"]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  3. Case Write Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseCreateSerializer(serializers.Serializer):
    """Payload for ``POST /api/cases/``."""

    title = serializers.CharField(
        max_length=255,
        error_messages={"required": "Case title is required", "blank": "Case title is required"},
    )
    description = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False, default=CasePriority.NORMAL)
    caseType = serializers.CharField(source="case_type", max_length=50, required=False, allow_blank=True)
    jurisdiction = serializers.CharField(max_length=120, required=False, allow_blank=True)
    incidentDate = serializers.DateTimeField(source="incident_date", required=False, allow_null=True)
    location = serializers.CharField(max_length=500, required=False, allow_blank=True)


# ═══════════════════════════════════════════════════════════════════
#  4. Workflow Action Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseStatusChangeSerializer(serializers.Serializer):
    newStatus = serializers.CharField(source="new_status", max_length=40)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    metadata = serializers.DictField(required=False, default=dict)


class CaseAssignSerializer(serializers.Serializer):
    userId = serializers.IntegerField(source="user_id", min_value=1)
    roleType = serializers.ChoiceField(source="role_type", choices=AssignmentRole.choices)
    assignmentType = serializers.ChoiceField(
        source="assignment_type",
        choices=AssignmentType.choices,
        required=False,
        default=AssignmentType.PRIMARY,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
