"""
core.domain.notifications — Synchronous notification creation helper.

Centralises notification creation so every app uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **Synchronous** — all DB writes happen in the calling thread.  Clients
  poll ``GET /api/notifications/``; there is no socket push.
* **Supports multiple recipients** — pass a single ``User`` or an
  iterable of ``User`` instances.  ``None`` entries are dropped, which
  lets callers pass optional assignees straight through.
* **Templated** — ``event_type`` selects a title/message/type triple
  from ``_EVENT_TEMPLATES``; templates are formatted with ``payload``.
  Callers may override ``title`` and ``message`` explicitly.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.create(
        actor=request.user,
        recipients=[case.assigned_investigator, case.assigned_judge],
        event_type="case_status_changed",
        payload={"case_number": case.case_number, "new_status": "closed"},
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.db import models

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)


class _SafeFormatDict(dict):
    """Leave unknown ``{placeholders}`` untouched instead of raising."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


# ── Event-type → (title, message, notification type) ───────────────
_EVENT_TEMPLATES: dict[str, tuple[str, str, str]] = {
    "case_status_changed":    ("Case Status Updated",       "Case {case_number} status changed to {new_status}.", "case_update"),
    "case_assigned":          ("Case Assignment",           "You have been assigned to case {case_number} as {role_type}.", "assignment"),
    "evidence_expiry":        ("Evidence Expiry Warning",   "Evidence \"{evidence_name}\" will expire in 30 days.", "system"),
    "user_welcome":           ("Welcome to the Evidence Management System", "Your account has been created with role {role}.", "success"),
    "user_created":           ("User Created Successfully", "Account for {full_name} was created with role {role}.", "success"),
    "role_change_approved":   ("Role Change Approved",      "Your role has been changed to {new_role}.", "info"),
    "role_change_rejected":   ("Role Change Rejected",      "A requested role change to {new_role} was rejected.", "warning"),
    "test":                   ("Test Notification",         "This is a test notification.", "info"),
}


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def create(
        cls,
        *,
        actor: User | None,
        recipients: User | Iterable[User | None] | None,
        event_type: str,
        payload: dict[str, Any] | None = None,
        title: str | None = None,
        message: str | None = None,
        include_actor: bool = False,
    ) -> list[Notification]:
        """
        Create one ``Notification`` per recipient.

        Args:
            actor:       The user who performed the action.  The actor is
                         skipped unless ``include_actor`` is set.
            recipients:  A single ``User`` or iterable of ``User``
                         instances (``None`` entries are skipped).
            event_type:  Key into ``_EVENT_TEMPLATES``.  If unknown the
                         raw event_type is used as title.
            payload:     Context dict, stored in ``Notification.data`` and
                         used to format the templates.
            title:       Explicit title overriding the template.
            message:     Explicit message overriding the template.
            include_actor: Deliver to the actor as well (self-addressed
                         confirmations and test notifications).

        Returns:
            List of created ``Notification`` instances.
        """
        from core.models import Notification  # lazy import

        if recipients is None:
            recipients = []
        elif isinstance(recipients, models.Model):
            recipients = [recipients]

        unique: dict[int, Any] = {}
        for recipient in recipients:
            if recipient is None:
                continue
            if not include_actor and actor is not None and recipient.pk == actor.pk:
                continue
            unique[recipient.pk] = recipient

        if not unique:
            logger.debug(
                "No recipients left for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

        payload = payload or {}
        default_title, default_message, notif_type = _EVENT_TEMPLATES.get(
            event_type,
            (event_type.replace("_", " ").title(), f"Event: {event_type}", "info"),
        )
        context = _SafeFormatDict(payload)
        resolved_title = title or default_title.format_map(context)
        resolved_message = message or default_message.format_map(context)

        notifications = [
            Notification.objects.create(
                user=recipient,
                title=resolved_title,
                message=resolved_message,
                type=notif_type,
                data=payload,
            )
            for recipient in unique.values()
        ]

        logger.info(
            "Created %d notification(s) [%s] by actor=%s",
            len(notifications),
            event_type,
            actor,
        )
        return notifications
