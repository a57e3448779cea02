"""
Tags app Service Layer.

Architecture
------------
- ``TagService``          — Tag catalogue: listing, creation, suggestions.
- ``EvidenceTagService``  — Linking tags to evidence and filtering by tags.

``Tag.usage_count`` mirrors the number of ``EvidenceTag`` rows for the
tag.  Every link created increments it and every link removed decrements
it (never below zero); both happen inside the same transaction as the
link write.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q, QuerySet
from django.db.models.functions import Greatest

from core.domain.access import require_permission
from core.domain.exceptions import Conflict, DomainError, NotFound
from core.permissions_constants import TagsPerms, perm_string
from evidence.models import Evidence

from .models import DEFAULT_TAG_CATEGORY, DEFAULT_TAG_COLOR, EvidenceTag, Tag

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 10
TAG_LOGIC_AND = "AND"
TAG_LOGIC_OR = "OR"


class TagService:

    @staticmethod
    def list_tags() -> QuerySet[Tag]:
        """All tags, most used first, then alphabetically."""
        return Tag.objects.order_by("-usage_count", "name")

    @staticmethod
    @transaction.atomic
    def create_tag(requesting_user: Any, validated_data: dict[str, Any]) -> Tag:
        """
        Create a tag.

        The name is stripped and lowercased, so ``"Weapon "`` and
        ``"weapon"`` collide.

        Raises:
            PermissionDenied: caller lacks ``tags.add_tag``.
            DomainError:      the name is empty after stripping.
            Conflict:         a tag with that name exists.
        """
        require_permission(
            requesting_user,
            perm_string("tags", TagsPerms.ADD_TAG),
            message="Your role is not allowed to create tags",
        )
        name = validated_data["name"].strip().lower()
        if not name:
            raise DomainError("Tag name is required")
        if Tag.objects.filter(name=name).exists():
            raise Conflict("Tag already exists")

        try:
            with transaction.atomic():
                tag = Tag.objects.create(
                    name=name,
                    color=validated_data.get("color") or DEFAULT_TAG_COLOR,
                    category=validated_data.get("category") or DEFAULT_TAG_CATEGORY,
                    created_by=requesting_user,
                )
        except IntegrityError:
            raise Conflict("Tag already exists")

        logger.info("Tag '%s' created (id=%s)", tag.name, tag.pk)
        return tag

    @staticmethod
    def suggest(query: str) -> QuerySet[Tag]:
        """Up to ten tags whose name contains ``query`` (case-insensitive)."""
        query = (query or "").strip()
        if not query:
            return Tag.objects.none()
        return Tag.objects.filter(name__icontains=query).order_by("-usage_count", "name")[:SUGGESTION_LIMIT]


class EvidenceTagService:

    @staticmethod
    def _link(evidence_id: int, tag_id: int, user: Any) -> bool:
        """Create one link; return ``False`` if the pair already existed."""
        _, created = EvidenceTag.objects.get_or_create(
            evidence_id=evidence_id,
            tag_id=tag_id,
            defaults={"tagged_by": user},
        )
        if created:
            Tag.objects.filter(pk=tag_id).update(usage_count=F("usage_count") + 1)
        return created

    @staticmethod
    @transaction.atomic
    def add_tags(requesting_user: Any, evidence_id: int, tag_ids: list[int]) -> int:
        """
        Attach tags to one evidence item, skipping pairs already linked.

        Returns the number of new links.

        Raises:
            NotFound: the evidence or one of the tags does not exist.
        """
        require_permission(
            requesting_user,
            perm_string("tags", TagsPerms.ADD_EVIDENCETAG),
            message="Your role is not allowed to tag evidence",
        )
        if not Evidence.objects.filter(pk=evidence_id).exists():
            raise NotFound("Evidence not found")

        tag_ids = list(dict.fromkeys(tag_ids))
        if Tag.objects.filter(pk__in=tag_ids).count() != len(tag_ids):
            raise NotFound("Tag not found")

        added = sum(
            EvidenceTagService._link(evidence_id, tag_id, requesting_user)
            for tag_id in tag_ids
        )
        logger.info("Evidence %s: %d tag(s) added", evidence_id, added)
        return added

    @staticmethod
    @transaction.atomic
    def remove_tag(requesting_user: Any, evidence_id: int, tag_id: int) -> None:
        """
        Detach a tag the caller attached.

        Links created by other users are reported as missing.

        Raises:
            NotFound: no such link made by the caller.
        """
        require_permission(
            requesting_user,
            perm_string("tags", TagsPerms.DELETE_EVIDENCETAG),
            message="Your role is not allowed to remove tags",
        )
        deleted, _ = EvidenceTag.objects.filter(
            evidence_id=evidence_id,
            tag_id=tag_id,
            tagged_by=requesting_user,
        ).delete()
        if not deleted:
            raise NotFound("Tag not found on evidence")

        Tag.objects.filter(pk=tag_id).update(usage_count=Greatest(F("usage_count") - 1, 0))
        logger.info("Evidence %s: tag %s removed", evidence_id, tag_id)

    @staticmethod
    @transaction.atomic
    def batch_tag(requesting_user: Any, evidence_ids: list[int], tag_ids: list[int]) -> int:
        """
        Link every tag to every evidence item.

        Unknown ids are ignored; existing pairs are skipped.  Returns the
        number of links created.
        """
        require_permission(
            requesting_user,
            perm_string("tags", TagsPerms.ADD_EVIDENCETAG),
            message="Your role is not allowed to tag evidence",
        )
        if not evidence_ids or not tag_ids:
            raise DomainError("Evidence IDs and tag IDs are required")

        existing_evidence = list(
            Evidence.objects.filter(pk__in=evidence_ids).values_list("pk", flat=True)
        )
        existing_tags = list(Tag.objects.filter(pk__in=tag_ids).values_list("pk", flat=True))

        tagged = 0
        for evidence_id in existing_evidence:
            for tag_id in existing_tags:
                tagged += EvidenceTagService._link(evidence_id, tag_id, requesting_user)

        logger.info(
            "Batch tag: %d link(s) over %d evidence x %d tag(s)",
            tagged,
            len(existing_evidence),
            len(existing_tags),
        )
        return tagged

    @staticmethod
    def filter_by_tags(tag_ids: list[int], logic: str = TAG_LOGIC_OR) -> QuerySet[Evidence]:
        """
        Evidence carrying any (``OR``) or all (``AND``) of ``tag_ids``.

        Raises:
            DomainError: no tag ids given.
        """
        tag_ids = list(dict.fromkeys(tag_ids))
        if not tag_ids:
            raise DomainError("Tag IDs are required")

        queryset = (
            Evidence.objects
            .select_related("case", "submitted_by", "retention_policy")
            .prefetch_related("evidence_tags__tag")
        )
        if logic.upper() == TAG_LOGIC_AND:
            queryset = queryset.annotate(
                matched_tags=Count(
                    "evidence_tags",
                    filter=Q(evidence_tags__tag_id__in=tag_ids),
                    distinct=True,
                )
            ).filter(matched_tags=len(tag_ids))
        else:
            queryset = queryset.filter(evidence_tags__tag_id__in=tag_ids).distinct()
        return queryset.order_by("-created_at", "-id")
