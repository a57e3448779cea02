"""
Core app models.

Provides the abstract timestamp base used across the project together
with the two cross-cutting records every app writes to: user
notifications and the chain-of-custody activity log.
"""

from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class NotificationType(models.TextChoices):
    INFO = "info", "Info"
    SUCCESS = "success", "Success"
    WARNING = "warning", "Warning"
    ERROR = "error", "Error"
    SYSTEM = "system", "System"
    CASE_UPDATE = "case_update", "Case Update"
    EVIDENCE = "evidence", "Evidence"
    ASSIGNMENT = "assignment", "Assignment"


class Notification(TimeStampedModel):
    """
    Persisted notification for a single user.

    ``data`` carries the machine-readable context of the event
    (e.g. ``{"case_id": 4, "new_status": "closed"}``) so that clients
    can deep-link without parsing ``message``.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    type = models.CharField(
        max_length=20,
        choices=NotificationType.choices,
        default=NotificationType.INFO,
        verbose_name="Type",
    )
    data = models.JSONField(default=dict, blank=True, verbose_name="Data")
    is_read = models.BooleanField(default=False, verbose_name="Read")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read"]),
        ]

    def __str__(self):
        return f"[{self.user}] {self.title}"


class ActivityLog(models.Model):
    """
    Append-only audit trail entry.

    This is the chain of custody: uploads, downloads, verifications,
    exports, legal holds, status changes and logins are all recorded
    here.  ``actor_identity`` keeps the wallet address or e-mail the
    action was performed under, so entries survive account changes and
    anonymous public verifications can still be logged.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activity_logs",
        verbose_name="User",
    )
    actor_identity = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        verbose_name="Actor Identity",
    )
    action = models.CharField(max_length=100, db_index=True, verbose_name="Action")
    details = models.TextField(blank=True, default="", verbose_name="Details")
    metadata = models.JSONField(default=dict, blank=True, verbose_name="Metadata")
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="Timestamp")

    class Meta:
        verbose_name = "Activity Log"
        verbose_name_plural = "Activity Logs"
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.action} by {self.actor_identity or 'anonymous'}"
