"""
Cases app models.

Covers case records and their role-gated status workflow: a lookup table
of statuses, a table of allowed ``(from, to, role)`` transitions, an
immutable status history, and personnel assignments.
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel
from core.permissions_constants import CasesPerms


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class CasePriority(models.IntegerChoices):
    """1 is the lowest priority, 5 the highest."""

    LOWEST = 1, "Lowest"
    LOW = 2, "Low"
    NORMAL = 3, "Normal"
    HIGH = 4, "High"
    CRITICAL = 5, "Critical"


class AssignmentRole(models.TextChoices):
    """
    Capacity in which a user is assigned to a case.

    ``investigator``, ``legal_professional`` and ``court_official``
    primary assignments are mirrored onto ``Case.assigned_investigator``,
    ``assigned_prosecutor`` and ``assigned_judge`` respectively.
    """

    INVESTIGATOR = "investigator", "Investigator"
    LEGAL_PROFESSIONAL = "legal_professional", "Prosecutor"
    COURT_OFFICIAL = "court_official", "Judge"
    FORENSIC_ANALYST = "forensic_analyst", "Forensic Analyst"
    EVIDENCE_MANAGER = "evidence_manager", "Evidence Manager"


class AssignmentType(models.TextChoices):
    PRIMARY = "primary", "Primary"
    SECONDARY = "secondary", "Secondary"
    CONSULTANT = "consultant", "Consultant"


# ────────────────────────────────────────────────────────────────────
# Workflow lookup tables
# ────────────────────────────────────────────────────────────────────

class CaseStatus(models.Model):
    """
    A case status row (``open``, ``under_investigation`` …).

    Statuses are data, not code: they are seeded by ``setup_rbac`` and
    may be extended through the Django admin.
    """

    code = models.CharField(max_length=40, unique=True, verbose_name="Status Code")
    name = models.CharField(max_length=100, verbose_name="Status Name")
    description = models.TextField(blank=True, default="")
    color = models.CharField(max_length=7, default="#6B7280", verbose_name="Color")
    is_active = models.BooleanField(default=True)
    is_terminal = models.BooleanField(default=False)
    sort_order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        verbose_name = "Case Status"
        verbose_name_plural = "Case Statuses"
        ordering = ["sort_order", "id"]

    def __str__(self):
        return self.code


class CaseStatusTransition(models.Model):
    """
    One allowed move ``from_status → to_status`` for holders of
    ``required_role`` (a role code).  A transition exists for a role only
    if a row with ``is_active=True`` exists for that exact triple.
    """

    from_status = models.ForeignKey(
        CaseStatus,
        on_delete=models.CASCADE,
        related_name="outgoing_transitions",
    )
    to_status = models.ForeignKey(
        CaseStatus,
        on_delete=models.CASCADE,
        related_name="incoming_transitions",
    )
    required_role = models.CharField(max_length=50, db_index=True, verbose_name="Required Role")
    transition_name = models.CharField(max_length=100, verbose_name="Transition Name")
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Case Status Transition"
        verbose_name_plural = "Case Status Transitions"
        constraints = [
            models.UniqueConstraint(
                fields=["from_status", "to_status", "required_role"],
                name="unique_case_status_transition",
            ),
        ]

    def __str__(self):
        return f"{self.from_status} → {self.to_status} [{self.required_role}]"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Case(TimeStampedModel):
    """
    A case file that evidence is collected under.

    ``case_number`` is assigned on first save as ``CASE-<year>-<NNNN>``
    using the primary key.
    """

    case_number = models.CharField(
        max_length=20,
        unique=True,
        null=True,
        blank=True,
        verbose_name="Case Number",
    )
    title = models.CharField(max_length=255, verbose_name="Case Title")
    description = models.TextField(blank=True, default="", verbose_name="Description")
    status = models.ForeignKey(
        CaseStatus,
        on_delete=models.PROTECT,
        related_name="cases",
        verbose_name="Current Status",
    )
    priority = models.PositiveSmallIntegerField(
        choices=CasePriority.choices,
        default=CasePriority.NORMAL,
        db_index=True,
        verbose_name="Priority",
    )
    case_type = models.CharField(max_length=50, default="criminal", verbose_name="Case Type")
    jurisdiction = models.CharField(max_length=120, default="local", verbose_name="Jurisdiction")
    incident_date = models.DateTimeField(null=True, blank=True, verbose_name="Incident Date/Time")
    location = models.CharField(max_length=500, blank=True, default="", verbose_name="Incident Location")
    status_changed_at = models.DateTimeField(null=True, blank=True)

    # ── Key personnel ───────────────────────────────────────────────
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_cases",
        verbose_name="Created By",
    )
    assigned_investigator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="investigator_cases",
        verbose_name="Assigned Investigator",
    )
    assigned_prosecutor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="prosecutor_cases",
        verbose_name="Assigned Prosecutor",
    )
    assigned_judge = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="judge_cases",
        verbose_name="Assigned Judge",
    )

    class Meta:
        verbose_name = "Case"
        verbose_name_plural = "Cases"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["case_type"]),
            models.Index(fields=["status", "priority"]),
        ]
        permissions = [
            (CasesPerms.CAN_CHANGE_CASE_STATUS, "Can request a case status transition"),
            (CasesPerms.CAN_ASSIGN_CASE, "Can assign personnel to a case"),
            (CasesPerms.CAN_EXPORT_CASES, "Can export cases as CSV"),
        ]

    def __str__(self):
        return f"{self.case_number or f'Case #{self.pk}'} — {self.title}"

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        if not self.case_number:
            self.case_number = f"CASE-{self.created_at:%Y}-{self.pk:04d}"
            super().save(update_fields=["case_number"])

    @property
    def assigned_users(self) -> list:
        """Assigned investigator, prosecutor and judge (``None`` skipped)."""
        return [
            user
            for user in (self.assigned_investigator, self.assigned_prosecutor, self.assigned_judge)
            if user is not None
        ]


class CaseStatusHistory(models.Model):
    """
    Immutable audit trail of every status change for a case.

    ``from_status`` is null for the initial row written at creation.
    """

    case = models.ForeignKey(
        Case,
        on_delete=models.CASCADE,
        related_name="status_history",
        verbose_name="Case",
    )
    from_status = models.ForeignKey(
        CaseStatus,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Previous Status",
    )
    to_status = models.ForeignKey(
        CaseStatus,
        on_delete=models.PROTECT,
        related_name="+",
        verbose_name="New Status",
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="case_status_changes",
        verbose_name="Changed By",
    )
    reason = models.TextField(blank=True, default="", verbose_name="Reason")
    metadata = models.JSONField(default=dict, blank=True)
    changed_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = "Case Status History"
        verbose_name_plural = "Case Status History"
        ordering = ["-changed_at", "-id"]

    def __str__(self):
        return f"{self.case_id}: {self.from_status} → {self.to_status}"


class CaseAssignment(models.Model):
    """A user assigned to a case in a given capacity."""

    case = models.ForeignKey(
        Case,
        on_delete=models.CASCADE,
        related_name="assignments",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="case_assignments",
    )
    role_type = models.CharField(max_length=30, choices=AssignmentRole.choices)
    assignment_type = models.CharField(
        max_length=20,
        choices=AssignmentType.choices,
        default=AssignmentType.PRIMARY,
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="made_case_assignments",
    )
    notes = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True, db_index=True)
    assigned_at = models.DateTimeField(auto_now_add=True)
    unassigned_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "Case Assignment"
        verbose_name_plural = "Case Assignments"
        ordering = ["-assigned_at"]

    def __str__(self):
        return f"{self.user} → {self.case_id} as {self.role_type} ({self.assignment_type})"
