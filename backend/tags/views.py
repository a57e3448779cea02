"""
Tags app views.

Thin views over ``tags.services``:

- ``TagViewSet``               — tag catalogue and suggestions.
- ``EvidenceTagsView``         — POST /api/evidence/{id}/tags/
- ``EvidenceTagDetailView``    — DELETE /api/evidence/{id}/tags/{tag_id}/
- ``BatchTagView``             — POST /api/evidence/batch-tag/
- ``FilterByTagsView``         — GET /api/evidence/filter-by-tags/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from evidence.serializers import EvidenceSerializer

from .serializers import (
    BatchTagSerializer,
    EvidenceTagAddSerializer,
    FilterByTagsQuerySerializer,
    TagCreateSerializer,
    TagSerializer,
    TagSuggestQuerySerializer,
)
from .services import EvidenceTagService, TagService


class TagViewSet(viewsets.ViewSet):
    """
    GET  /api/tags/            → list
    POST /api/tags/            → create
    GET  /api/tags/suggest/    → name suggestions
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="List tags",
        description="Ordered by usage count, then name.",
        responses={200: TagSerializer(many=True)},
        tags=["Tags"],
    )
    def list(self, request: Request) -> Response:
        tags = TagService.list_tags()
        return Response({"success": True, "tags": TagSerializer(tags, many=True).data})

    @extend_schema(
        summary="Create a tag",
        request=TagCreateSerializer,
        responses={
            201: TagSerializer,
            409: OpenApiResponse(description="Tag already exists."),
        },
        tags=["Tags"],
    )
    def create(self, request: Request) -> Response:
        serializer = TagCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tag = TagService.create_tag(request.user, serializer.validated_data)
        return Response(
            {"success": True, "tag": TagSerializer(tag).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"], url_path="suggest", url_name="suggest")
    @extend_schema(
        summary="Suggest tags",
        parameters=[TagSuggestQuerySerializer],
        responses={200: TagSerializer(many=True)},
        tags=["Tags"],
    )
    def suggest(self, request: Request) -> Response:
        query = TagSuggestQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        tags = TagService.suggest(query.validated_data["q"])
        return Response({"success": True, "suggestions": TagSerializer(tags, many=True).data})


class EvidenceTagsView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Tag an evidence item",
        request=EvidenceTagAddSerializer,
        responses={
            200: OpenApiResponse(description="Number of new links."),
            404: OpenApiResponse(description="Evidence or tag not found."),
        },
        tags=["Tags"],
    )
    def post(self, request: Request, evidence_id: int) -> Response:
        serializer = EvidenceTagAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        added = EvidenceTagService.add_tags(request.user, evidence_id, serializer.validated_data["tag_ids"])
        return Response({"success": True, "added": added})


class EvidenceTagDetailView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Remove a tag from an evidence item",
        description="Only links created by the caller can be removed.",
        responses={
            200: OpenApiResponse(description="Link removed."),
            404: OpenApiResponse(description="Tag not found on evidence."),
        },
        tags=["Tags"],
    )
    def delete(self, request: Request, evidence_id: int, tag_id: int) -> Response:
        EvidenceTagService.remove_tag(request.user, evidence_id, tag_id)
        return Response({"success": True, "message": "Tag removed"})


class BatchTagView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Tag several evidence items at once",
        request=BatchTagSerializer,
        responses={200: OpenApiResponse(description="``tagged_count`` of new links.")},
        tags=["Tags"],
    )
    def post(self, request: Request) -> Response:
        serializer = BatchTagSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tagged = EvidenceTagService.batch_tag(
            request.user,
            serializer.validated_data["evidence_ids"],
            serializer.validated_data["tag_ids"],
        )
        return Response({"success": True, "tagged_count": tagged})


class FilterByTagsView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Filter evidence by tags",
        parameters=[FilterByTagsQuerySerializer],
        responses={200: EvidenceSerializer(many=True)},
        tags=["Tags"],
    )
    def get(self, request: Request) -> Response:
        query = FilterByTagsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        evidence = EvidenceTagService.filter_by_tags(
            query.validated_data["tags"],
            query.validated_data["logic"],
        )
        return Response(
            {
                "success": True,
                "logic": query.validated_data["logic"],
                "evidence": EvidenceSerializer(evidence, many=True).data,
            }
        )
