"""
Retention app views.

- ``RetentionPolicyViewSet`` — GET/POST /api/retention-policies/
- ``EvidenceExpiryView``     — GET  /api/evidence/expiry/
- ``LegalHoldView``          — PUT  /api/evidence/{id}/legal-hold/
- ``BulkRetentionView``      — POST /api/evidence/bulk-retention/
- ``CheckExpiryView``        — POST /api/evidence/check-expiry/
- ``TimelineExportView``     — POST /api/timeline/export-pdf/
"""

from __future__ import annotations

from django.http import HttpResponse
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from evidence.serializers import EvidenceSerializer

from .serializers import (
    BulkRetentionSerializer,
    ExpiryQuerySerializer,
    LegalHoldSerializer,
    RetentionPolicyCreateSerializer,
    RetentionPolicySerializer,
    TimelineExportSerializer,
)
from .services import EvidenceRetentionService, RetentionPolicyService, TimelineExportService


class RetentionPolicyViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]
    throttle_scope = "policy"

    @extend_schema(
        summary="List active retention policies",
        responses={200: RetentionPolicySerializer(many=True)},
        tags=["Retention"],
    )
    def list(self, request: Request) -> Response:
        policies = RetentionPolicyService.list_active()
        return Response({"success": True, "policies": RetentionPolicySerializer(policies, many=True).data})

    @extend_schema(
        summary="Create a retention policy",
        request=RetentionPolicyCreateSerializer,
        responses={
            201: RetentionPolicySerializer,
            403: OpenApiResponse(description="Admin or Evidence Manager role required."),
            409: OpenApiResponse(description="Policy name already used."),
        },
        tags=["Retention"],
    )
    def create(self, request: Request) -> Response:
        serializer = RetentionPolicyCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        policy = RetentionPolicyService.create_policy(request.user, serializer.validated_data)
        return Response(
            {"success": True, "policy": RetentionPolicySerializer(policy).data},
            status=status.HTTP_201_CREATED,
        )


class EvidenceExpiryView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "policy"

    @extend_schema(
        summary="Evidence by expiry",
        parameters=[ExpiryQuerySerializer],
        responses={200: EvidenceSerializer(many=True)},
        tags=["Retention"],
    )
    def get(self, request: Request) -> Response:
        query = ExpiryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        evidence = EvidenceRetentionService.expiring(query.validated_data["filter"])
        return Response({"success": True, "evidence": EvidenceSerializer(evidence, many=True).data})


class LegalHoldView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "policy"

    @extend_schema(
        summary="Place or lift a legal hold",
        request=LegalHoldSerializer,
        responses={
            200: OpenApiResponse(description="``evidence_id`` and the new ``legal_hold`` flag."),
            403: OpenApiResponse(description="Role may not set legal holds."),
            404: OpenApiResponse(description="Evidence not found."),
        },
        tags=["Retention"],
    )
    def put(self, request: Request, evidence_id: int) -> Response:
        serializer = LegalHoldSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        evidence = EvidenceRetentionService.set_legal_hold(
            request.user, evidence_id, serializer.validated_data["legal_hold"]
        )
        return Response(
            {
                "success": True,
                "evidence_id": evidence.pk,
                "legal_hold": evidence.legal_hold,
            }
        )


class BulkRetentionView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "policy"

    @extend_schema(
        summary="Apply a retention policy to evidence",
        request=BulkRetentionSerializer,
        responses={
            200: OpenApiResponse(description="``updated`` row count."),
            404: OpenApiResponse(description="Retention policy not found."),
        },
        tags=["Retention"],
    )
    def post(self, request: Request) -> Response:
        serializer = BulkRetentionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        updated = EvidenceRetentionService.bulk_apply(
            request.user,
            serializer.validated_data["policy_id"],
            serializer.validated_data["evidence_ids"],
        )
        return Response({"success": True, "updated": updated})


class CheckExpiryView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "policy"

    @extend_schema(
        summary="Notify submitters of evidence expiring within 30 days",
        request=None,
        responses={200: OpenApiResponse(description="``notifications_sent`` count.")},
        tags=["Retention"],
    )
    def post(self, request: Request) -> Response:
        sent = EvidenceRetentionService.check_expiry(request.user)
        return Response({"success": True, "notifications_sent": sent})


class TimelineExportView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "export"

    @extend_schema(
        summary="Export an evidence timeline as PDF",
        request=TimelineExportSerializer,
        responses={
            (200, "application/pdf"): OpenApiResponse(description="PDF attachment."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Retention"],
    )
    def post(self, request: Request) -> HttpResponse:
        serializer = TimelineExportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        content, filename = TimelineExportService.export_pdf(
            request.user,
            serializer.validated_data.get("case_id"),
            serializer.validated_data["title"],
        )
        response = HttpResponse(content, content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response
