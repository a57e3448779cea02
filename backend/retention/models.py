"""
Retention app models.

A ``RetentionPolicy`` fixes how long evidence is kept.  Applying a policy
stamps ``Evidence.expiry_date``; evidence under legal hold is never
treated as expired.
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel
from core.permissions_constants import RetentionPerms


class RetentionPolicy(TimeStampedModel):
    name = models.CharField(max_length=120, unique=True, verbose_name="Name")
    description = models.TextField(blank=True, default="", verbose_name="Description")
    retention_days = models.PositiveIntegerField(verbose_name="Retention (days)")
    is_active = models.BooleanField(default=True, verbose_name="Active")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="retention_policies",
        verbose_name="Created By",
    )

    class Meta:
        verbose_name = "Retention Policy"
        verbose_name_plural = "Retention Policies"
        ordering = ["name"]
        permissions = [
            (RetentionPerms.CAN_SET_LEGAL_HOLD, "Can place or lift a legal hold"),
            (RetentionPerms.CAN_APPLY_RETENTION, "Can apply retention policies to evidence"),
        ]

    def __str__(self):
        return f"{self.name} ({self.retention_days} days)"
