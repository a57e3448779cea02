"""
Core app Service Layer.

Architecture
------------
- ``NotificationInboxService`` — Per-user notification listing and read state.
- ``ActivityRecordingService`` — Client-submitted custody log entries.
- ``HealthService``            — Liveness and database reachability.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, connection
from django.db.models import Q, QuerySet
from django.utils import timezone

from core.domain.activity import ActivityLogService, identity_of
from core.domain.exceptions import DomainError, NotFound
from core.domain.notifications import NotificationService

from .models import ActivityLog, Notification

logger = logging.getLogger(__name__)

User = get_user_model()

_STARTED_AT = time.monotonic()


# ═══════════════════════════════════════════════════════════════════
#  Notifications
# ═══════════════════════════════════════════════════════════════════


class NotificationInboxService:
    """
    Notification inbox of one user.

    Every query is scoped to ``self.user``; notifications of other users
    are indistinguishable from missing ones.
    """

    def __init__(self, user: Any) -> None:
        self.user = user

    def _queryset(self) -> QuerySet[Notification]:
        return Notification.objects.filter(user=self.user)

    def list_notifications(
        self,
        *,
        limit: int = 50,
        offset: int = 0,
        unread_only: bool = False,
    ) -> tuple[QuerySet[Notification], int]:
        """Return ``(page, unread_count)``."""
        qs = self._queryset().order_by("-created_at", "-id")
        if unread_only:
            qs = qs.filter(is_read=False)
        unread_count = self._queryset().filter(is_read=False).count()
        return qs[offset:offset + limit], unread_count

    def mark_as_read(self, notification_id: Any) -> Notification:
        """
        Raises:
            NotFound: the notification does not exist or belongs to
                      another user.
        """
        try:
            notification = self._queryset().get(pk=notification_id)
        except (Notification.DoesNotExist, ValueError, TypeError):
            raise NotFound("Notification not found")
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
        return notification

    def mark_all_as_read(self) -> int:
        updated = self._queryset().filter(is_read=False).update(is_read=True, updated_at=timezone.now())
        logger.info("Marked %d notification(s) read for user id=%s", updated, self.user.pk)
        return updated

    def send_test(self) -> Notification:
        notifications = NotificationService.create(
            actor=self.user,
            recipients=self.user,
            event_type="test",
            payload={"test": True},
            include_actor=True,
        )
        return notifications[0]


# ═══════════════════════════════════════════════════════════════════
#  Activity log
# ═══════════════════════════════════════════════════════════════════


class ActivityRecordingService:

    @staticmethod
    def record(requesting_user: Any, validated_data: dict[str, Any]) -> ActivityLog:
        """
        Append a client-reported activity.

        Authenticated callers log as themselves.  Anonymous callers must
        name the actor in ``user_id`` (a user PK, wallet address or
        e-mail, matched case-insensitively); an unknown actor is kept as
        lower-cased free-text identity.  ``metadata.actor_user_id`` always
        names the resolved user, or is null.

        Raises:
            DomainError: anonymous caller without ``user_id``.
        """
        metadata = validated_data.get("metadata") or {}
        if getattr(requesting_user, "is_authenticated", False):
            return ActivityLogService.record(
                user=requesting_user,
                action=validated_data["action"],
                details=validated_data.get("details") or "",
                metadata={**metadata, "actor_user_id": requesting_user.pk},
            )

        reference = (validated_data.get("user_id") or "").strip().lower()
        if not reference:
            raise DomainError("user_id is required")

        lookup = Q(wallet_address__iexact=reference) | Q(email__iexact=reference)
        if reference.isdigit():
            lookup |= Q(pk=int(reference))
        actor = User.objects.filter(lookup, is_active=True).first()

        return ActivityLogService.record(
            user=None,
            identity=identity_of(actor) if actor else reference,
            action=validated_data["action"],
            details=validated_data.get("details") or "",
            metadata={**metadata, "actor_user_id": actor.pk if actor else None},
        )


# ═══════════════════════════════════════════════════════════════════
#  Health
# ═══════════════════════════════════════════════════════════════════


class HealthService:

    @staticmethod
    def check() -> dict[str, Any]:
        try:
            connection.ensure_connection()
            database = "connected"
        except DatabaseError as exc:
            logger.error("Health check could not reach the database: %s", exc)
            database = "unavailable"
        return {
            "status": "OK",
            "timestamp": timezone.now(),
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "environment": settings.APP_ENV,
            "port": settings.PORT,
            "database": database,
        }
