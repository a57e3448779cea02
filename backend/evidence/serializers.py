"""
Evidence app serializers.

Field definitions and field-level validation only.  Pipeline rules (MIME
allow-list, size limits, permission gates, id-count limits) live in
``services.py`` so they apply identically to every caller.

Structure
---------
1. Evidence read serializers
2. Query-parameter serializers
3. Upload / export / verification request serializers
4. Comparison serializers
"""

from __future__ import annotations

from rest_framework import serializers

from ledger.blockchain import explorer_url
from ledger.ipfs import IPFSStorageService

from .models import ComparisonReport, Evidence, EvidenceStatus


# ═══════════════════════════════════════════════════════════════════
#  1. Evidence Read Serializers
# ═══════════════════════════════════════════════════════════════════


class EvidenceSerializer(serializers.ModelSerializer):
    """
    Full evidence row enriched with ``explorerUrl`` / ``ipfsUrl`` links
    and the attached tags.

    Querysets should prefetch ``evidence_tags__tag``.
    """

    case_number = serializers.CharField(source="case.case_number", read_only=True, default=None)
    submitted_by = serializers.CharField(source="submitted_by.identity", read_only=True)
    retention_policy = serializers.PrimaryKeyRelatedField(read_only=True)
    tags = serializers.SerializerMethodField()
    explorerUrl = serializers.SerializerMethodField()
    ipfsUrl = serializers.SerializerMethodField()

    class Meta:
        model = Evidence
        fields = [
            "id",
            "case",
            "case_number",
            "name",
            "description",
            "location",
            "collection_date",
            "file_type",
            "file_size",
            "hash",
            "ipfs_cid",
            "blockchain_tx_hash",
            "blockchain_block_number",
            "gas_used",
            "blockchain_verified",
            "blockchain_timestamp",
            "submitted_by",
            "status",
            "retention_policy",
            "expiry_date",
            "legal_hold",
            "created_at",
            "tags",
            "explorerUrl",
            "ipfsUrl",
        ]
        read_only_fields = fields

    def get_tags(self, obj: Evidence) -> list[dict]:
        return [
            {"id": link.tag_id, "name": link.tag.name, "color": link.tag.color}
            for link in obj.evidence_tags.all()
        ]

    def get_explorerUrl(self, obj: Evidence) -> str | None:
        return explorer_url(obj.blockchain_tx_hash)

    def get_ipfsUrl(self, obj: Evidence) -> str | None:
        return IPFSStorageService().gateway_url(obj.ipfs_cid)


class EvidenceComparisonSerializer(serializers.ModelSerializer):
    """Reduced row used by ``GET /api/evidence/compare/``."""

    case_number = serializers.CharField(source="case.case_number", read_only=True, default=None)

    class Meta:
        model = Evidence
        fields = [
            "id",
            "name",
            "case",
            "case_number",
            "file_type",
            "file_size",
            "hash",
            "ipfs_cid",
            "blockchain_tx_hash",
            "blockchain_verified",
            "status",
            "created_at",
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  2. Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class EvidenceListQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1, max_value=500, default=50)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)
    case_id = serializers.IntegerField(required=False, min_value=1)
    status = serializers.ChoiceField(choices=EvidenceStatus.choices, required=False)
    submitted_by = serializers.CharField(
        required=False,
        allow_blank=True,
        help_text="User PK, wallet address or e-mail of the submitter.",
    )


class EvidenceCompareQuerySerializer(serializers.Serializer):
    ids = serializers.CharField(
        required=False,
        allow_blank=True,
        help_text="Comma-separated evidence ids (2-4).",
    )


# ═══════════════════════════════════════════════════════════════════
#  3. Request Serializers
# ═══════════════════════════════════════════════════════════════════


class EvidenceUploadSerializer(serializers.Serializer):
    """Multipart payload of ``POST /api/evidence/upload/``."""

    file = serializers.FileField(required=False, allow_empty_file=False)
    caseId = serializers.IntegerField(source="case_id", required=False, allow_null=True, min_value=1)
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    location = serializers.CharField(required=False, allow_blank=True, max_length=500, default="")
    collectionDate = serializers.DateTimeField(source="collection_date", required=False, allow_null=True)


class EvidenceBulkExportSerializer(serializers.Serializer):
    evidenceIds = serializers.ListField(
        source="evidence_ids",
        child=serializers.IntegerField(min_value=1),
        allow_empty=True,
        error_messages={"required": "Evidence IDs array is required"},
    )


class VerifyIntegritySerializer(serializers.Serializer):
    calculatedHash = serializers.CharField(
        source="calculated_hash",
        max_length=66,
        error_messages={
            "required": "calculatedHash is required and must be a non-empty string",
            "blank": "calculatedHash is required and must be a non-empty string",
        },
    )
    evidenceId = serializers.IntegerField(source="evidence_id", required=False, allow_null=True, min_value=1)
    fileName = serializers.CharField(source="file_name", required=False, allow_blank=True, max_length=255)
    fileSize = serializers.IntegerField(source="file_size", required=False, allow_null=True, min_value=0)


class VerificationCertificateSerializer(serializers.Serializer):
    evidenceId = serializers.IntegerField(source="evidence_id", min_value=1)
    calculatedHash = serializers.CharField(source="calculated_hash", max_length=66)


# ═══════════════════════════════════════════════════════════════════
#  4. Comparison Serializers
# ═══════════════════════════════════════════════════════════════════


class ComparisonReportCreateSerializer(serializers.Serializer):
    evidenceIds = serializers.ListField(
        source="evidence_ids",
        child=serializers.CharField(),
        error_messages={"required": "At least 2 evidence IDs required"},
    )
    reportData = serializers.DictField(source="report_data", required=False, default=dict)


class ComparisonReportSerializer(serializers.ModelSerializer):
    generated_by = serializers.CharField(source="generated_by.identity", read_only=True, default=None)

    class Meta:
        model = ComparisonReport
        fields = ["id", "evidence_ids", "report_data", "report_type", "generated_by", "generated_at"]
        read_only_fields = fields
