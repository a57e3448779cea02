"""
Evidence app models.

An ``Evidence`` row describes one uploaded file: where it is stored
(local media storage and, when pinning succeeded, IPFS), its SHA-256
digest, and the transaction that anchored the digest on-chain.  Retention
fields (policy, expiry date, legal hold) live on the same row.

``ComparisonReport`` persists the side-by-side reports auditors generate
over two or more evidence items.
"""

from django.conf import settings
from django.db import models

from core.permissions_constants import EvidencePerms


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class EvidenceStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    VERIFIED = "verified", "Verified"
    REJECTED = "rejected", "Rejected"
    ARCHIVED = "archived", "Archived"


def evidence_upload_path(instance, filename):
    return f"evidence/{instance.hash[:2]}/{instance.hash}/{filename}"


# ────────────────────────────────────────────────────────────────────
# Evidence
# ────────────────────────────────────────────────────────────────────

class Evidence(models.Model):
    """
    A single piece of evidence and its custody anchors.

    ``hash`` is the hex SHA-256 of the bytes exactly as uploaded; the
    stored file, the IPFS copy and the on-chain record all refer to it.
    """

    case = models.ForeignKey(
        "cases.Case",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="evidence_items",
        verbose_name="Case",
    )
    name = models.CharField(max_length=255, verbose_name="Name")
    description = models.TextField(blank=True, default="", verbose_name="Description")
    location = models.CharField(max_length=500, blank=True, default="", verbose_name="Location")
    collection_date = models.DateTimeField(null=True, blank=True, verbose_name="Collection Date")

    # ── File ────────────────────────────────────────────────────────
    file = models.FileField(
        upload_to=evidence_upload_path,
        max_length=500,
        blank=True,
        verbose_name="File",
    )
    file_type = models.CharField(max_length=150, blank=True, default="", verbose_name="MIME Type")
    file_size = models.PositiveBigIntegerField(default=0, verbose_name="File Size (bytes)")
    hash = models.CharField(max_length=64, db_index=True, verbose_name="SHA-256")

    # ── IPFS / blockchain anchors ───────────────────────────────────
    ipfs_cid = models.CharField(max_length=128, null=True, blank=True, verbose_name="IPFS CID")
    blockchain_tx_hash = models.CharField(
        max_length=80,
        null=True,
        blank=True,
        db_index=True,
        verbose_name="Transaction Hash",
    )
    blockchain_block_number = models.PositiveBigIntegerField(null=True, blank=True, verbose_name="Block Number")
    gas_used = models.CharField(max_length=40, null=True, blank=True, verbose_name="Gas Used")
    blockchain_verified = models.BooleanField(default=False, verbose_name="Anchored On-Chain")
    blockchain_timestamp = models.DateTimeField(null=True, blank=True, verbose_name="Anchored At")

    # ── Custody ─────────────────────────────────────────────────────
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="submitted_evidence",
        verbose_name="Submitted By",
    )
    status = models.CharField(
        max_length=20,
        choices=EvidenceStatus.choices,
        default=EvidenceStatus.PENDING,
        db_index=True,
        verbose_name="Status",
    )

    # ── Retention ───────────────────────────────────────────────────
    retention_policy = models.ForeignKey(
        "retention.RetentionPolicy",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="evidence_items",
        verbose_name="Retention Policy",
    )
    expiry_date = models.DateTimeField(null=True, blank=True, db_index=True, verbose_name="Expiry Date")
    legal_hold = models.BooleanField(default=False, verbose_name="Legal Hold")

    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    class Meta:
        verbose_name = "Evidence"
        verbose_name_plural = "Evidence"
        ordering = ["-created_at", "-id"]
        permissions = [
            (EvidencePerms.CAN_DOWNLOAD_EVIDENCE, "Can download watermarked evidence"),
            (EvidencePerms.CAN_EXPORT_EVIDENCE, "Can bulk-export evidence as ZIP"),
            (EvidencePerms.CAN_AUDIT_EVIDENCE, "Can read download/verification history and compare evidence"),
        ]

    def __str__(self):
        return f"#{self.pk} {self.name}"


# ────────────────────────────────────────────────────────────────────
# Comparison reports
# ────────────────────────────────────────────────────────────────────

class ComparisonReport(models.Model):
    evidence_ids = models.JSONField(default=list, verbose_name="Evidence IDs")
    report_data = models.JSONField(default=dict, blank=True, verbose_name="Report Data")
    report_type = models.CharField(max_length=50, default="comparison", verbose_name="Report Type")
    generated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="comparison_reports",
        verbose_name="Generated By",
    )
    generated_at = models.DateTimeField(auto_now_add=True, verbose_name="Generated At")

    class Meta:
        verbose_name = "Comparison Report"
        verbose_name_plural = "Comparison Reports"
        ordering = ["-generated_at"]

    def __str__(self):
        return f"Comparison of {self.evidence_ids}"
