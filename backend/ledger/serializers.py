"""
Ledger app serializers.
"""

from rest_framework import serializers


class GasEstimateSerializer(serializers.Serializer):
    """Request body of ``POST /api/blockchain/estimate-gas/``."""

    fileSize = serializers.IntegerField(source="file_size", min_value=0, required=False)
    fileName = serializers.CharField(source="file_name", max_length=255, required=False, default="sample.pdf")
    caseId = serializers.CharField(source="case_id", max_length=64, required=False, allow_blank=True)
    metadata = serializers.DictField(required=False)
