"""
Core app views.

Notifications inbox, client-reported activity entries, and the public
health check.  All business logic is delegated to ``core.services``.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    ActivityCreateSerializer,
    ActivityLogSerializer,
    HealthSerializer,
    NotificationListQuerySerializer,
    NotificationSerializer,
)
from .services import ActivityRecordingService, HealthService, NotificationInboxService


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — inbox of the authenticated user.

    Endpoints
    ---------
    GET  /api/notifications/              → list (with ``unreadCount``)
    PUT  /api/notifications/{id}/read/    → mark one as read
    PUT  /api/notifications/read-all/     → mark all as read
    POST /api/notifications/test/         → send yourself a test notification
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"
    lookup_value_regex = r"\d+"

    @extend_schema(
        summary="List notifications",
        parameters=[NotificationListQuerySerializer],
        responses={200: OpenApiResponse(response=NotificationSerializer(many=True), description="Notification list.")},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        query = NotificationListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        notifications, unread_count = NotificationInboxService(user=request.user).list_notifications(
            **query.validated_data
        )
        return Response(
            {
                "success": True,
                "notifications": NotificationSerializer(notifications, many=True).data,
                "unreadCount": unread_count,
            }
        )

    @action(detail=True, methods=["put"], url_path="read", url_name="read")
    @extend_schema(
        summary="Mark notification as read",
        request=None,
        responses={
            200: OpenApiResponse(response=NotificationSerializer, description="Updated notification."),
            404: OpenApiResponse(description="Notification not found."),
        },
        tags=["Notifications"],
    )
    def mark_as_read(self, request: Request, pk: int = None) -> Response:
        notification = NotificationInboxService(user=request.user).mark_as_read(pk)
        return Response({"success": True, "notification": NotificationSerializer(notification).data})

    @action(detail=False, methods=["put"], url_path="read-all", url_name="read-all")
    @extend_schema(
        summary="Mark all notifications as read",
        request=None,
        responses={200: OpenApiResponse(description="Number of notifications updated.")},
        tags=["Notifications"],
    )
    def mark_all_as_read(self, request: Request) -> Response:
        updated = NotificationInboxService(user=request.user).mark_all_as_read()
        return Response({"success": True, "updated": updated})

    @action(detail=False, methods=["post"], url_path="test", url_name="test")
    @extend_schema(
        summary="Send a test notification to yourself",
        request=None,
        responses={201: NotificationSerializer},
        tags=["Notifications"],
    )
    def test(self, request: Request) -> Response:
        notification = NotificationInboxService(user=request.user).send_test()
        return Response(
            {"success": True, "notification": NotificationSerializer(notification).data},
            status=status.HTTP_201_CREATED,
        )


class ActivityLogView(APIView):
    """POST /api/activity/ — append a client-reported activity entry."""

    permission_classes = [AllowAny]
    throttle_scope = "api"

    @extend_schema(
        summary="Record an activity",
        description=(
            "Authenticated callers log as themselves.  Anonymous callers "
            "must supply ``user_id``."
        ),
        request=ActivityCreateSerializer,
        responses={
            201: ActivityLogSerializer,
            400: OpenApiResponse(description="Action is required / user_id is required."),
        },
        tags=["Activity"],
    )
    def post(self, request: Request) -> Response:
        serializer = ActivityCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = ActivityRecordingService.record(request.user, serializer.validated_data)
        return Response(
            {"success": True, "activity": ActivityLogSerializer(entry).data},
            status=status.HTTP_201_CREATED,
        )


class HealthView(APIView):
    """GET /api/health/ — public, unthrottled."""

    permission_classes = [AllowAny]
    authentication_classes: list = []
    throttle_classes: list = []

    @extend_schema(
        summary="Health check",
        responses={200: HealthSerializer},
        tags=["Health"],
    )
    def get(self, request: Request) -> Response:
        return Response(HealthSerializer(HealthService.check()).data)
