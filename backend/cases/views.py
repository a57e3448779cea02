"""
Cases app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

No database queries or workflow logic lives here.

Views
-----
- ``CaseViewSet``       — The single ViewSet for all case endpoints.
  Custom @action methods handle listing variants, workflow and
  assignment so the URL structure stays clean and discoverable.
- ``CaseStatusListView`` — GET /api/case-statuses/
"""

from __future__ import annotations

import logging

from django.http import HttpResponse
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    CaseAssignmentSerializer,
    CaseAssignSerializer,
    CaseCreateSerializer,
    CaseFilterSerializer,
    CaseListQuerySerializer,
    CaseListSerializer,
    CaseStatisticsQuerySerializer,
    CaseStatusChangeSerializer,
    CaseStatusHistorySerializer,
    CaseStatusSerializer,
    CaseTimelineSerializer,
    CaseTransitionSerializer,
)
from .services import (
    CaseAssignmentService,
    CaseCreationService,
    CaseExportService,
    CaseQueryService,
    CaseWorkflowService,
)

logger = logging.getLogger(__name__)


class CaseStatusListView(APIView):
    """GET /api/case-statuses/ — active statuses in display order."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List case statuses",
        responses={200: CaseStatusSerializer(many=True)},
        tags=["Cases"],
    )
    def get(self, request: Request) -> Response:
        statuses = CaseQueryService.list_statuses()
        return Response({"success": True, "statuses": CaseStatusSerializer(statuses, many=True).data})


class CaseViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the cases app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined, preventing accidental exposure of unintended
    CRUD operations.

    Permission Strategy
    -------------------
    The base permission is ``IsAuthenticated``.  Fine-grained permission
    checks (permission codenames, the role-keyed transition table) are
    enforced exclusively inside the service layer — never in the view.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"
    lookup_value_regex = r"\d+"

    # ── Listing ──────────────────────────────────────────────────────

    @extend_schema(
        summary="List all cases (timeline)",
        description="Every case, newest first.",
        responses={200: CaseTimelineSerializer(many=True)},
        tags=["Cases"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/cases/"""
        cases = CaseQueryService.list_all(request.user)
        return Response({"success": True, "cases": CaseTimelineSerializer(cases, many=True).data})

    @action(detail=False, methods=["get"], url_path="enhanced", url_name="enhanced")
    @extend_schema(
        summary="Filtered, sorted, paginated case listing",
        parameters=[CaseListQuerySerializer],
        responses={200: CaseListSerializer(many=True)},
        tags=["Cases"],
    )
    def enhanced(self, request: Request) -> Response:
        """
        GET /api/cases/enhanced/

        Filters: ``status``, ``priority``, ``assignedTo``, ``caseType``,
        ``jurisdiction``, ``dateFrom``, ``dateTo``, ``search``.
        Paging: ``page`` / ``limit`` (max 100).  Sorting: ``sortBy`` /
        ``sortOrder``.
        """
        query = CaseListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        cases, pagination = CaseQueryService.enhanced(request.user, query.validated_data)
        return Response(
            {
                "success": True,
                "cases": CaseListSerializer(cases, many=True).data,
                "pagination": pagination,
            }
        )

    @action(detail=False, methods=["get"], url_path="statistics", url_name="statistics")
    @extend_schema(
        summary="Case statistics",
        parameters=[CaseStatisticsQuerySerializer],
        responses={200: OpenApiResponse(description="Breakdown by status and priority.")},
        tags=["Cases"],
    )
    def statistics(self, request: Request) -> Response:
        """GET /api/cases/statistics/?timeframe=7d|30d|90d|1y"""
        query = CaseStatisticsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        stats = CaseQueryService.statistics(request.user, query.validated_data["timeframe"])
        stats["recent_activity"] = CaseStatusHistorySerializer(stats["recent_activity"], many=True).data
        return Response({"success": True, "statistics": stats})

    @action(
        detail=False,
        methods=["get"],
        url_path="export",
        url_name="export",
        throttle_scope="export",
    )
    @extend_schema(
        summary="Export cases as CSV",
        parameters=[CaseFilterSerializer],
        responses={200: OpenApiResponse(description="text/csv attachment.")},
        tags=["Cases"],
    )
    def export(self, request: Request) -> HttpResponse:
        """GET /api/cases/export/ — same filters as the enhanced listing."""
        query = CaseFilterSerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        content, filename, count = CaseExportService.export_csv(request.user, query.validated_data)
        response = HttpResponse(content, content_type="text/csv")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        response["X-Export-Count"] = str(count)
        return response

    # ── Create / Details ─────────────────────────────────────────────

    @extend_schema(
        summary="Create a new case",
        description="Creates a case in the 'open' status and records the initial history row.",
        request=CaseCreateSerializer,
        responses={
            201: OpenApiResponse(response=CaseListSerializer, description="Case created."),
            400: OpenApiResponse(description="Case title is required."),
            403: OpenApiResponse(description="Permission denied."),
        },
        tags=["Cases"],
    )
    def create(self, request: Request) -> Response:
        """POST /api/cases/"""
        serializer = CaseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = CaseCreationService.create_case(serializer.validated_data, request.user)
        return Response(
            {"success": True, "case": CaseListSerializer(case).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get"], url_path="details", url_name="details")
    @extend_schema(
        summary="Case details with history and assignments",
        responses={
            200: OpenApiResponse(description="Case, status history, active assignments, evidence count."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Cases"],
    )
    def details(self, request: Request, pk: int = None) -> Response:
        """GET /api/cases/{id}/details/"""
        data = CaseQueryService.details(request.user, pk)
        payload = CaseListSerializer(data["case"]).data
        payload["status_history"] = CaseStatusHistorySerializer(data["status_history"], many=True).data
        payload["assignments"] = CaseAssignmentSerializer(data["assignments"], many=True).data
        payload["evidence_count"] = data["evidence_count"]
        return Response({"success": True, "case": payload})

    # ── Workflow @actions ─────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="status", url_name="status")
    @extend_schema(
        summary="Change case status",
        description=(
            "Moves the case to ``newStatus`` if the transition table holds an "
            "active row for (current status, newStatus, caller's role)."
        ),
        request=CaseStatusChangeSerializer,
        responses={
            200: OpenApiResponse(response=CaseStatusHistorySerializer, description="Status changed."),
            400: OpenApiResponse(description="Invalid status."),
            403: OpenApiResponse(description="Status transition not allowed for role."),
            404: OpenApiResponse(description="Case not found."),
            409: OpenApiResponse(description="Case already has that status."),
        },
        tags=["Cases – Workflow"],
    )
    def change_status(self, request: Request, pk: int = None) -> Response:
        """POST /api/cases/{id}/status/"""
        serializer = CaseStatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case, history = CaseWorkflowService.change_status(
            pk,
            serializer.validated_data["new_status"],
            request.user,
            reason=serializer.validated_data["reason"],
            metadata=serializer.validated_data["metadata"],
        )
        return Response(
            {
                "success": True,
                "message": "Case status updated successfully",
                "newStatus": case.status.code,
                "history": CaseStatusHistorySerializer(history).data,
            }
        )

    @action(
        detail=True,
        methods=["get"],
        url_path="available-transitions",
        url_name="available-transitions",
    )
    @extend_schema(
        summary="Transitions available to the caller",
        responses={200: CaseTransitionSerializer(many=True)},
        tags=["Cases – Workflow"],
    )
    def available_transitions(self, request: Request, pk: int = None) -> Response:
        """GET /api/cases/{id}/available-transitions/"""
        transitions = CaseWorkflowService.available_transitions(pk, request.user)
        return Response({"success": True, "transitions": CaseTransitionSerializer(transitions, many=True).data})

    # ── Assignment @actions ───────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="assign", url_name="assign")
    @extend_schema(
        summary="Assign a user to a case",
        request=CaseAssignSerializer,
        responses={
            201: CaseAssignmentSerializer,
            403: OpenApiResponse(description="Insufficient permissions to assign cases."),
            404: OpenApiResponse(description="Case or assignee not found."),
        },
        tags=["Cases – Assignment"],
    )
    def assign(self, request: Request, pk: int = None) -> Response:
        """POST /api/cases/{id}/assign/"""
        serializer = CaseAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = CaseAssignmentService.assign(pk, serializer.validated_data, request.user)
        return Response(
            {
                "success": True,
                "message": "Case assigned successfully",
                "assignment": CaseAssignmentSerializer(assignment).data,
            },
            status=status.HTTP_201_CREATED,
        )
