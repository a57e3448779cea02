"""
Retention app Service Layer.

Architecture
------------
- ``RetentionPolicyService``   — Catalogue of retention policies.
- ``EvidenceRetentionService`` — Expiry listing, legal hold, bulk policy
  application and the expiry notification sweep.
- ``TimelineExportService``    — PDF timeline of a case's evidence.

Evidence under legal hold is never reported as expired and never
triggers an expiry notification, whatever its ``expiry_date``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from io import BytesIO
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from cases.models import Case
from core.domain.access import require_permission
from core.domain.activity import ActivityLogService
from core.domain.exceptions import Conflict, DomainError, NotFound
from core.domain.notifications import NotificationService
from core.permissions_constants import EvidencePerms, RetentionPerms, perm_string
from evidence.models import Evidence

from .models import RetentionPolicy

logger = logging.getLogger(__name__)

EXPIRY_FILTER_ALL = "all"
EXPIRY_FILTER_EXPIRED = "expired"
EXPIRY_FILTER_30_DAYS = "30days"
EXPIRY_FILTER_7_DAYS = "7days"
EXPIRY_FILTER_LEGAL_HOLD = "legal_hold"

EXPIRY_FILTERS = (
    EXPIRY_FILTER_ALL,
    EXPIRY_FILTER_EXPIRED,
    EXPIRY_FILTER_30_DAYS,
    EXPIRY_FILTER_7_DAYS,
    EXPIRY_FILTER_LEGAL_HOLD,
)

EXPIRY_WARNING_DAYS = 30
DEFAULT_TIMELINE_TITLE = "Evidence Timeline"


# ═══════════════════════════════════════════════════════════════════
#  Policies
# ═══════════════════════════════════════════════════════════════════


class RetentionPolicyService:

    @staticmethod
    def list_active() -> QuerySet[RetentionPolicy]:
        return RetentionPolicy.objects.filter(is_active=True).order_by("name")

    @staticmethod
    def create_policy(requesting_user: Any, validated_data: dict[str, Any]) -> RetentionPolicy:
        """
        Create a retention policy.

        Raises:
            PermissionDenied: caller is not an admin or evidence manager.
            Conflict:         a policy with that name exists.
        """
        require_permission(
            requesting_user,
            perm_string("retention", RetentionPerms.ADD_RETENTIONPOLICY),
            message="Unauthorized: Admin or Evidence Manager role required",
        )
        name = validated_data["name"].strip()
        if RetentionPolicy.objects.filter(name__iexact=name).exists():
            raise Conflict("Retention policy already exists")

        try:
            with transaction.atomic():
                policy = RetentionPolicy.objects.create(
                    name=name,
                    description=validated_data.get("description", ""),
                    retention_days=validated_data["retention_days"],
                    created_by=requesting_user,
                )
        except IntegrityError:
            raise Conflict("Retention policy already exists")

        logger.info("Retention policy '%s' created (%s days)", policy.name, policy.retention_days)
        return policy


# ═══════════════════════════════════════════════════════════════════
#  Evidence retention
# ═══════════════════════════════════════════════════════════════════


class EvidenceRetentionService:

    @staticmethod
    def expiring(filter_name: str = EXPIRY_FILTER_ALL) -> QuerySet[Evidence]:
        """
        Evidence with an expiry date, narrowed by ``filter_name``.

        ``all`` lists every dated item; ``expired`` those past their date
        and not on hold; ``30days`` / ``7days`` those due within the
        window; ``legal_hold`` everything on hold.  Ordered by expiry,
        soonest first.
        """
        now = timezone.now()
        queryset = Evidence.objects.select_related("case", "submitted_by", "retention_policy").prefetch_related(
            "evidence_tags__tag"
        )

        if filter_name == EXPIRY_FILTER_EXPIRED:
            queryset = queryset.filter(expiry_date__lt=now, legal_hold=False)
        elif filter_name == EXPIRY_FILTER_30_DAYS:
            queryset = queryset.filter(expiry_date__gte=now, expiry_date__lte=now + timedelta(days=30))
        elif filter_name == EXPIRY_FILTER_7_DAYS:
            queryset = queryset.filter(expiry_date__gte=now, expiry_date__lte=now + timedelta(days=7))
        elif filter_name == EXPIRY_FILTER_LEGAL_HOLD:
            queryset = queryset.filter(legal_hold=True)
        else:
            queryset = queryset.filter(expiry_date__isnull=False)

        return queryset.order_by("expiry_date", "id")

    @staticmethod
    @transaction.atomic
    def set_legal_hold(requesting_user: Any, evidence_id: int, legal_hold: bool) -> Evidence:
        """
        Place or lift a legal hold.

        Raises:
            PermissionDenied: caller is not admin, evidence manager or
                              legal professional.
            NotFound:         unknown evidence.
        """
        require_permission(
            requesting_user,
            perm_string("retention", RetentionPerms.CAN_SET_LEGAL_HOLD),
            message="Unauthorized: Admin, Evidence Manager or Legal Professional role required",
        )
        evidence = Evidence.objects.select_for_update().filter(pk=evidence_id).first()
        if evidence is None:
            raise NotFound("Evidence not found")

        evidence.legal_hold = legal_hold
        evidence.save(update_fields=["legal_hold"])

        action = "legal_hold_set" if legal_hold else "legal_hold_removed"
        ActivityLogService.record(
            user=requesting_user,
            action=action,
            details=f"Evidence ID: {evidence.pk}",
            metadata={"evidence_id": evidence.pk, "legal_hold": legal_hold},
        )
        logger.info("Evidence %s: %s", evidence.pk, action)
        return evidence

    @staticmethod
    @transaction.atomic
    def bulk_apply(requesting_user: Any, policy_id: int, evidence_ids: list[int]) -> int:
        """
        Attach a policy to evidence and stamp ``expiry_date`` as
        *now + retention_days*.

        Returns the number of rows updated.

        Raises:
            NotFound: unknown or inactive policy.
        """
        require_permission(
            requesting_user,
            perm_string("retention", RetentionPerms.CAN_APPLY_RETENTION),
            message="Unauthorized: Admin or Evidence Manager role required",
        )
        if not evidence_ids:
            raise DomainError("Evidence IDs are required")

        policy = RetentionPolicy.objects.filter(pk=policy_id, is_active=True).first()
        if policy is None:
            raise NotFound("Retention policy not found")

        expiry = timezone.now() + timedelta(days=policy.retention_days)
        updated = Evidence.objects.filter(pk__in=evidence_ids).update(
            retention_policy=policy,
            expiry_date=expiry,
        )

        ActivityLogService.record(
            user=requesting_user,
            action="retention_policy_applied",
            details=f"Policy '{policy.name}' applied to {updated} evidence item(s)",
            metadata={"policy_id": policy.pk, "evidence_ids": list(evidence_ids)},
        )
        logger.info("Retention policy %s applied to %d evidence item(s)", policy.pk, updated)
        return updated

    @staticmethod
    def check_expiry(requesting_user: Any) -> int:
        """
        Notify submitters of evidence expiring within 30 days.

        Items on legal hold are skipped.  Returns the number of
        notifications created.
        """
        require_permission(
            requesting_user,
            perm_string("retention", RetentionPerms.CAN_APPLY_RETENTION),
            message="Unauthorized: Admin or Evidence Manager role required",
        )
        now = timezone.now()
        expiring = Evidence.objects.select_related("submitted_by").filter(
            expiry_date__gte=now,
            expiry_date__lte=now + timedelta(days=EXPIRY_WARNING_DAYS),
            legal_hold=False,
        )

        sent = 0
        for evidence in expiring:
            sent += len(
                NotificationService.create(
                    actor=requesting_user,
                    recipients=evidence.submitted_by,
                    event_type="evidence_expiry",
                    payload={
                        "evidence_id": evidence.pk,
                        "evidence_name": evidence.name,
                        "expiry_date": evidence.expiry_date.isoformat(),
                    },
                    include_actor=True,
                )
            )

        logger.info("Expiry check: %d notification(s) sent", sent)
        return sent


# ═══════════════════════════════════════════════════════════════════
#  Timeline export
# ═══════════════════════════════════════════════════════════════════


class TimelineExportService:
    """Renders the evidence timeline of a case (or of all evidence) as PDF."""

    PAGE_MARGIN = 20 * mm
    LINE_HEIGHT = 6 * mm

    @classmethod
    def export_pdf(cls, requesting_user: Any, case_id: int | None = None, title: str = "") -> tuple[bytes, str]:
        """
        Build the PDF.

        Returns
        -------
        tuple
            ``(pdf_bytes, filename)``.

        Raises
        ------
        NotFound
            ``case_id`` does not reference an existing case.
        """
        require_permission(
            requesting_user,
            perm_string("evidence", EvidencePerms.VIEW_EVIDENCE),
            message="Your role is not allowed to view evidence",
        )
        case = None
        evidence = Evidence.objects.select_related("submitted_by")
        if case_id is not None:
            case = Case.objects.select_related("status").filter(pk=case_id).first()
            if case is None:
                raise NotFound("Case not found")
            evidence = evidence.filter(case=case)
        evidence = list(evidence.order_by("created_at", "id"))

        title = title.strip() or DEFAULT_TIMELINE_TITLE
        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(title)
        _, height = A4
        y = height - cls.PAGE_MARGIN

        def line(text: str, font: str = "Helvetica", size: int = 9) -> None:
            nonlocal y
            if y < cls.PAGE_MARGIN:
                pdf.showPage()
                y = height - cls.PAGE_MARGIN
            pdf.setFont(font, size)
            pdf.drawString(cls.PAGE_MARGIN, y, text[:120])
            y -= cls.LINE_HEIGHT

        line(title, "Helvetica-Bold", 16)
        line(f"Generated: {timezone.now().isoformat()}")
        if case is not None:
            line(f"Case: {case.case_number} - {case.title}", "Helvetica-Bold", 11)
            line(f"Status: {case.status.name if case.status_id else 'N/A'}")
        line(f"Evidence items: {len(evidence)}")
        y -= cls.LINE_HEIGHT

        for item in evidence:
            line(f"{item.created_at:%Y-%m-%d %H:%M}  {item.name}", "Helvetica-Bold", 10)
            line(f"    Type: {item.file_type or 'unknown'}   Hash: {item.hash[:16]}...")
            line(f"    Tx: {item.blockchain_tx_hash or 'not anchored'}")

        pdf.showPage()
        pdf.save()

        ActivityLogService.record(
            user=requesting_user,
            action="timeline_export",
            details=f"Case ID: {case.pk if case else 'all'}",
            metadata={"case_id": case.pk if case else None, "evidence_count": len(evidence)},
        )
        filename = f"timeline-{case.case_number if case else 'all'}.pdf"
        logger.info("Timeline PDF exported (%d evidence item(s))", len(evidence))
        return buffer.getvalue(), filename
