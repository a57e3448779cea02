"""
Evidence app views.

Architecture: views are intentionally thin.  Every view parses input
through a serializer, delegates to a service in ``evidence.services`` and
wraps the result in a ``Response`` (or a file ``HttpResponse`` for
downloads, ZIP exports and certificates).

Views
-----
- ``EvidenceViewSet``    — listing, upload, download/export, verification
  and comparison under ``/api/evidence/``.
- ``PublicVerifyView``   — GET /api/verify/{hash}/ (no authentication).
"""

from __future__ import annotations

import logging

from django.http import HttpResponse
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from core.serializers import ActivityLogSerializer

from .serializers import (
    ComparisonReportCreateSerializer,
    ComparisonReportSerializer,
    EvidenceBulkExportSerializer,
    EvidenceCompareQuerySerializer,
    EvidenceComparisonSerializer,
    EvidenceListQuerySerializer,
    EvidenceSerializer,
    EvidenceUploadSerializer,
    VerificationCertificateSerializer,
    VerifyIntegritySerializer,
)
from .services import (
    EvidenceComparisonService,
    EvidenceFileService,
    EvidenceQueryService,
    EvidenceUploadService,
    EvidenceVerificationService,
)

logger = logging.getLogger(__name__)


class EvidenceViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the evidence app.

    Permission Strategy
    -------------------
    The base permission is ``IsAuthenticated``; the integrity check and
    the certificate are public.  Role rules (who may upload, download,
    export or audit) are enforced inside the service layer.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"
    lookup_value_regex = r"\d+"

    # ── Listing ──────────────────────────────────────────────────────

    @extend_schema(
        summary="List evidence",
        parameters=[EvidenceListQuerySerializer],
        responses={200: EvidenceSerializer(many=True)},
        tags=["Evidence"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/evidence/"""
        query = EvidenceListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        page, total = EvidenceQueryService.list_evidence(request.user, query.validated_data)
        return Response(
            {
                "success": True,
                "evidence": EvidenceSerializer(page, many=True).data,
                "total": total,
                "limit": query.validated_data["limit"],
                "offset": query.validated_data["offset"],
            }
        )

    @extend_schema(
        summary="Retrieve evidence",
        responses={200: EvidenceSerializer, 404: OpenApiResponse(description="Evidence not found.")},
        tags=["Evidence"],
    )
    def retrieve(self, request: Request, pk: int = None) -> Response:
        """GET /api/evidence/{id}/"""
        evidence = EvidenceQueryService.get(request.user, pk)
        return Response({"success": True, "evidence": EvidenceSerializer(evidence).data})

    @action(detail=False, methods=["get"], url_path=r"case/(?P<case_id>\d+)", url_name="by-case")
    @extend_schema(
        summary="Evidence of a case",
        description="Ordered by upload time, oldest first.",
        responses={200: EvidenceSerializer(many=True)},
        tags=["Evidence"],
    )
    def by_case(self, request: Request, case_id: str = None) -> Response:
        """GET /api/evidence/case/{case_id}/"""
        evidence = EvidenceQueryService.by_case(request.user, case_id)
        return Response({"success": True, "evidence": EvidenceSerializer(evidence, many=True).data})

    # ── Upload ───────────────────────────────────────────────────────

    @action(
        detail=False,
        methods=["post"],
        url_path="upload",
        url_name="upload",
        parser_classes=[MultiPartParser, FormParser],
    )
    @extend_schema(
        summary="Upload evidence",
        description=(
            "Hashes the file, pins it on IPFS, anchors the hash on-chain and "
            "stores the record.  IPFS or blockchain failures are reported in "
            "``warnings`` and do not abort the upload."
        ),
        request={"multipart/form-data": EvidenceUploadSerializer},
        responses={
            201: OpenApiResponse(response=EvidenceSerializer, description="Evidence stored."),
            400: OpenApiResponse(description="No file, unsupported type (with supportedTypes) or too large."),
            403: OpenApiResponse(description="Role may not upload evidence."),
        },
        tags=["Evidence"],
    )
    def upload(self, request: Request) -> Response:
        """POST /api/evidence/upload/"""
        serializer = EvidenceUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        uploaded_file = data.pop("file", None)
        result = EvidenceUploadService.upload(uploaded_file, data, request.user)

        warnings = result["warnings"]
        if warnings:
            message = "Evidence uploaded with warnings: " + "; ".join(
                f"{w['service']}: {w['error']}" for w in warnings
            )
        else:
            message = "Evidence uploaded successfully"

        return Response(
            {
                "success": True,
                "evidence": EvidenceSerializer(result["evidence"]).data,
                "blockchain": result["blockchain"],
                "ipfs": result["ipfs"],
                "warnings": warnings,
                "message": message,
            },
            status=status.HTTP_201_CREATED,
        )

    # ── Download / export ────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="download", url_name="download")
    @extend_schema(
        summary="Download a watermarked copy",
        request=None,
        responses={
            (200, "application/octet-stream"): OpenApiResponse(description="File attachment."),
            403: OpenApiResponse(description="Public viewers cannot download evidence."),
            404: OpenApiResponse(description="Evidence not found."),
        },
        tags=["Evidence – Files"],
    )
    def download(self, request: Request, pk: int = None) -> HttpResponse:
        """POST /api/evidence/{id}/download/"""
        result = EvidenceFileService.download(pk, request.user)
        response = HttpResponse(result["content"], content_type=result["content_type"])
        response["Content-Disposition"] = f'attachment; filename="{result["filename"]}"'
        response["X-Watermark-Applied"] = "true" if result["watermark_applied"] else "false"
        response["X-Downloaded-By"] = result["downloaded_by"]
        return response

    @action(detail=True, methods=["get"], url_path="download-history", url_name="download-history")
    @extend_schema(
        summary="Download history of an evidence item",
        responses={
            200: ActivityLogSerializer(many=True),
            403: OpenApiResponse(description="Admin or Auditor role required."),
        },
        tags=["Evidence – Files"],
    )
    def download_history(self, request: Request, pk: int = None) -> Response:
        """GET /api/evidence/{id}/download-history/"""
        history = EvidenceFileService.download_history(pk, request.user)
        return Response(
            {
                "success": True,
                "evidence_id": int(pk),
                "download_history": ActivityLogSerializer(history, many=True).data,
            }
        )

    @action(
        detail=False,
        methods=["post"],
        url_path="bulk-export",
        url_name="bulk-export",
        throttle_scope="export",
    )
    @extend_schema(
        summary="Export several evidence files as ZIP",
        request=EvidenceBulkExportSerializer,
        responses={
            (200, "application/zip"): OpenApiResponse(description="ZIP attachment with export_metadata.json."),
            400: OpenApiResponse(description="1-50 evidence ids required."),
            404: OpenApiResponse(description="No evidence found with provided IDs."),
        },
        tags=["Evidence – Files"],
    )
    def bulk_export(self, request: Request) -> HttpResponse:
        """POST /api/evidence/bulk-export/"""
        serializer = EvidenceBulkExportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        content, filename, count = EvidenceFileService.bulk_export(
            serializer.validated_data["evidence_ids"], request.user
        )
        response = HttpResponse(content, content_type="application/zip")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        response["X-Export-Count"] = str(count)
        return response

    # ── Verification ─────────────────────────────────────────────────

    @action(detail=True, methods=["get"], url_path="verify", url_name="verify")
    @extend_schema(
        summary="Verify an evidence item against blockchain and IPFS",
        responses={200: OpenApiResponse(description="blockchainVerified, ipfsVerified, overallValid, hashes.")},
        tags=["Evidence – Verification"],
    )
    def verify(self, request: Request, pk: int = None) -> Response:
        """GET /api/evidence/{id}/verify/"""
        result = EvidenceVerificationService.verify(pk, request.user)
        return Response({"success": True, **result})

    @action(detail=True, methods=["get"], url_path="blockchain-proof", url_name="blockchain-proof")
    @extend_schema(
        summary="On-chain proof of an evidence item",
        responses={
            200: OpenApiResponse(description="On-chain record and transaction receipt."),
            404: OpenApiResponse(description="Evidence not found or not anchored."),
            502: OpenApiResponse(description="Blockchain node unreachable."),
        },
        tags=["Evidence – Verification"],
    )
    def blockchain_proof(self, request: Request, pk: int = None) -> Response:
        """GET /api/evidence/{id}/blockchain-proof/"""
        proof = EvidenceVerificationService.blockchain_proof(pk, request.user)
        return Response({"success": True, "proof": proof})

    @action(
        detail=False,
        methods=["post"],
        url_path="verify-integrity",
        url_name="verify-integrity",
        permission_classes=[AllowAny],
    )
    @extend_schema(
        summary="Check a file hash against the records",
        description="Public.  Looks the hash up by ``evidenceId`` when given, otherwise by value.",
        request=VerifyIntegritySerializer,
        responses={200: OpenApiResponse(description="verified, evidence, verificationUrl.")},
        tags=["Evidence – Verification"],
    )
    def verify_integrity(self, request: Request) -> Response:
        """POST /api/evidence/verify-integrity/"""
        serializer = VerifyIntegritySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = EvidenceVerificationService.verify_integrity(
            serializer.validated_data["calculated_hash"],
            serializer.validated_data.get("evidence_id"),
            request.user,
        )
        return Response({"success": True, **result})

    @action(
        detail=False,
        methods=["post"],
        url_path="verification-certificate",
        url_name="verification-certificate",
        permission_classes=[AllowAny],
    )
    @extend_schema(
        summary="Download a verification certificate",
        request=VerificationCertificateSerializer,
        responses={(200, "text/plain"): OpenApiResponse(description="Certificate attachment.")},
        tags=["Evidence – Verification"],
    )
    def verification_certificate(self, request: Request) -> HttpResponse:
        """POST /api/evidence/verification-certificate/"""
        serializer = VerificationCertificateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        text, filename = EvidenceVerificationService.certificate(
            serializer.validated_data["evidence_id"],
            serializer.validated_data["calculated_hash"],
            request.user,
        )
        response = HttpResponse(text, content_type="text/plain; charset=utf-8")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response

    @action(detail=False, methods=["get"], url_path="verification-history", url_name="verification-history")
    @extend_schema(
        summary="Recent verification activity",
        parameters=[OpenApiParameter("limit", int, description="1-1000, default 100.")],
        responses={200: ActivityLogSerializer(many=True)},
        tags=["Evidence – Verification"],
    )
    def verification_history(self, request: Request) -> Response:
        """GET /api/evidence/verification-history/"""
        history = EvidenceVerificationService.history(request.user, request.query_params.get("limit"))
        return Response({"success": True, "history": ActivityLogSerializer(history, many=True).data})

    # ── Comparison ───────────────────────────────────────────────────

    @action(detail=False, methods=["get"], url_path="compare", url_name="compare")
    @extend_schema(
        summary="Compare 2-4 evidence items",
        parameters=[EvidenceCompareQuerySerializer],
        responses={200: EvidenceComparisonSerializer(many=True)},
        tags=["Evidence – Comparison"],
    )
    def compare(self, request: Request) -> Response:
        """GET /api/evidence/compare/?ids=1,2,3"""
        query = EvidenceCompareQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        items = EvidenceComparisonService.compare(request.user, query.validated_data.get("ids"))
        return Response(
            {
                "success": True,
                "count": len(items),
                "evidence": EvidenceComparisonSerializer(items, many=True).data,
            }
        )

    @action(
        detail=False,
        methods=["post"],
        url_path="comparison-report",
        url_name="comparison-report",
        parser_classes=[JSONParser],
    )
    @extend_schema(
        summary="Save a comparison report",
        request=ComparisonReportCreateSerializer,
        responses={201: ComparisonReportSerializer},
        tags=["Evidence – Comparison"],
    )
    def comparison_report(self, request: Request) -> Response:
        """POST /api/evidence/comparison-report/"""
        serializer = ComparisonReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = EvidenceComparisonService.create_report(
            request.user,
            serializer.validated_data["evidence_ids"],
            serializer.validated_data["report_data"],
        )
        return Response(
            {"success": True, "report": ComparisonReportSerializer(report).data},
            status=status.HTTP_201_CREATED,
        )


class PublicVerifyView(APIView):
    """GET /api/verify/{hash}/ — public hash lookup."""

    permission_classes = [AllowAny]
    throttle_scope = "api"

    @extend_schema(
        summary="Public verification by hash",
        responses={200: OpenApiResponse(description="verified flag and non-sensitive evidence fields.")},
        tags=["Evidence – Verification"],
    )
    def get(self, request: Request, file_hash: str) -> Response:
        result = EvidenceVerificationService.public_verify(file_hash)
        return Response({"success": True, **result})
