"""
core.domain.activity — Chain-of-custody activity recording.

Every app records custody-relevant events (uploads, downloads, exports,
verifications, legal holds, logins, status changes) through
``ActivityLogService.record`` so that the audit trail has one shape.

Usage::

    from core.domain.activity import ActivityLogService

    ActivityLogService.record(
        user=request.user,
        action="evidence_download",
        details=f"Evidence ID: {evidence.pk}",
        metadata={"watermarked": True},
    )
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import ActivityLog

logger = logging.getLogger(__name__)


def identity_of(user: User | None) -> str:
    """
    Return the external identity a user acts under.

    Wallet users are identified by their (lowercase) wallet address,
    e-mail users by their e-mail, everyone else by ``username``.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return ""
    return user.wallet_address or user.email or user.username


def mask_identity(identity: str, keep: int = 8) -> str:
    """Shorten an identity for public responses and log lines."""
    if not identity:
        return ""
    if len(identity) <= keep:
        return identity
    return f"{identity[:keep]}..."


class ActivityLogService:
    """Stateless writer for ``ActivityLog`` rows."""

    @classmethod
    def record(
        cls,
        *,
        action: str,
        user: User | None = None,
        identity: str | None = None,
        details: str | dict[str, Any] = "",
        metadata: dict[str, Any] | None = None,
    ) -> ActivityLog:
        """
        Append one entry to the activity log.

        Args:
            action:   Machine-readable action name (``evidence_upload`` …).
            user:     Acting user, if authenticated.
            identity: Explicit actor identity; defaults to ``identity_of(user)``.
            details:  Free text, or a dict that is stored as JSON text.
            metadata: Structured context stored in the JSON column.
        """
        from core.models import ActivityLog  # lazy import

        if isinstance(details, dict):
            details = json.dumps(details, default=str)

        if user is not None and not getattr(user, "is_authenticated", False):
            user = None

        entry = ActivityLog.objects.create(
            user=user,
            actor_identity=identity if identity is not None else identity_of(user),
            action=action,
            details=details,
            metadata=metadata or {},
        )
        logger.debug(
            "Activity [%s] by %s",
            action,
            mask_identity(entry.actor_identity),
        )
        return entry
