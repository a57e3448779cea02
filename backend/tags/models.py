"""
Tags app models.

Tags are free-form, lowercase labels shared across all evidence.
``usage_count`` tracks how many evidence links a tag has and drives the
ordering of the tag list and of suggestions.
"""

from django.conf import settings
from django.db import models

DEFAULT_TAG_COLOR = "#3B82F6"
DEFAULT_TAG_CATEGORY = "general"


class Tag(models.Model):
    name = models.CharField(max_length=50, unique=True, verbose_name="Name")
    color = models.CharField(max_length=7, default=DEFAULT_TAG_COLOR, verbose_name="Color")
    category = models.CharField(max_length=50, default=DEFAULT_TAG_CATEGORY, verbose_name="Category")
    usage_count = models.PositiveIntegerField(default=0, verbose_name="Usage Count")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_tags",
        verbose_name="Created By",
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    class Meta:
        verbose_name = "Tag"
        verbose_name_plural = "Tags"
        ordering = ["-usage_count", "name"]

    def save(self, *args, **kwargs):
        self.name = self.name.strip().lower()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class EvidenceTag(models.Model):
    evidence = models.ForeignKey(
        "evidence.Evidence",
        on_delete=models.CASCADE,
        related_name="evidence_tags",
        verbose_name="Evidence",
    )
    tag = models.ForeignKey(
        Tag,
        on_delete=models.CASCADE,
        related_name="evidence_tags",
        verbose_name="Tag",
    )
    tagged_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="+",
        verbose_name="Tagged By",
    )
    tagged_at = models.DateTimeField(auto_now_add=True, verbose_name="Tagged At")

    class Meta:
        verbose_name = "Evidence Tag"
        verbose_name_plural = "Evidence Tags"
        constraints = [
            models.UniqueConstraint(fields=["evidence", "tag"], name="unique_evidence_tag"),
        ]

    def __str__(self):
        return f"{self.tag} → evidence #{self.evidence_id}"
