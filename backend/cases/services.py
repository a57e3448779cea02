"""
Cases app Service Layer.

This module is the **single source of truth** for all business logic
in the ``cases`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``CaseQueryService``        — Listings, filtering, details, statistics.
- ``CaseExportService``       — CSV export of a filtered case list.
- ``CaseCreationService``     — New cases in the default ``open`` status.
- ``CaseWorkflowService``     — Role-gated status transitions.
- ``CaseAssignmentService``   — Assign personnel to a case.

Workflow
--------
Legal moves are rows of ``CaseStatusTransition``: a transition from the
current status to the requested one is allowed only if an active row
exists whose ``required_role`` equals the caller's role code.  The table
is data; ``setup_rbac`` seeds the defaults from ``cases.workflow``.

Permission constants used here (from ``core.permissions_constants.CasesPerms``):
  - VIEW_CASE               → every role
  - ADD_CASE                → case workers (investigator, analyst, legal, court, evidence manager)
  - CAN_CHANGE_CASE_STATUS  → case workers (then gated by the transition table)
  - CAN_ASSIGN_CASE         → admin, court official, evidence manager
  - CAN_EXPORT_CASES        → case workers and auditors
"""

from __future__ import annotations

import csv
import io
import logging
import re
from datetime import timedelta
from typing import Any

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q, QuerySet
from django.utils import timezone

from core.domain.access import get_user_role_name, require_permission
from core.domain.activity import ActivityLogService, mask_identity
from core.domain.exceptions import DomainError, InvalidTransition, NotFound, PermissionDenied
from core.domain.notifications import NotificationService
from core.domain.transactions import lock_for_update
from core.permissions_constants import CasesPerms, perm_string

from .models import (
    AssignmentRole,
    AssignmentType,
    Case,
    CaseAssignment,
    CaseStatus,
    CaseStatusHistory,
    CaseStatusTransition,
)
from .workflow import CASE_STATUSES, DEFAULT_STATUS

logger = logging.getLogger(__name__)

User = get_user_model()

_SEARCH_STRIP_RE = re.compile(r"[^\w\s-]")

# Timeframe code → window length for ``statistics``.
TIMEFRAMES: dict[str, timedelta] = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
}

# Primary assignments in these capacities are mirrored onto the case.
_ASSIGNMENT_FIELDS: dict[str, str] = {
    AssignmentRole.INVESTIGATOR: "assigned_investigator",
    AssignmentRole.LEGAL_PROFESSIONAL: "assigned_prosecutor",
    AssignmentRole.COURT_OFFICIAL: "assigned_judge",
}

CSV_HEADER = ["Case Number", "Title", "Status", "Priority", "Type", "Jurisdiction", "Created Date", "Created By"]


def _perm(codename: str) -> str:
    return perm_string("cases", codename)


def sanitize_search(term: str) -> str:
    """Keep word characters, whitespace and hyphens only."""
    return _SEARCH_STRIP_RE.sub("", term or "").strip()


def _get_case(case_id: int) -> Case:
    try:
        return Case.objects.select_related(
            "status", "created_by", "assigned_investigator", "assigned_prosecutor", "assigned_judge",
        ).get(pk=case_id)
    except Case.DoesNotExist:
        raise NotFound("Case not found")


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════


class CaseQueryService:
    """
    Constructs filtered querysets and read-side aggregates for cases.

    All heavy query concerns (filter assembly, ordering, counting) live
    here so the view stays thin.
    """

    @staticmethod
    def list_all(requesting_user: Any) -> QuerySet:
        """Every case, newest first (used for timelines)."""
        require_permission(requesting_user, _perm(CasesPerms.VIEW_CASE))
        return Case.objects.select_related("status", "created_by").order_by("-created_at")

    @staticmethod
    def list_statuses() -> QuerySet:
        return CaseStatus.objects.filter(is_active=True).order_by("sort_order", "id")

    @staticmethod
    def apply_filters(qs: QuerySet, filters: dict[str, Any]) -> QuerySet:
        """
        Apply the enhanced-listing filters to ``qs``.

        Parameters
        ----------
        filters : dict
            Cleaned query-parameter dict from ``CaseFilterSerializer``.
            Supported keys:
            - ``status``       : str  (``CaseStatus.code``)
            - ``priority``     : int  (1–5)
            - ``assigned_to``  : str  (user PK, wallet address or e-mail)
            - ``case_type``    : str
            - ``jurisdiction`` : str
            - ``date_from``    : date
            - ``date_to``      : date
            - ``search``       : str  (title/description/case number)
        """
        if filters.get("status"):
            qs = qs.filter(status__code=filters["status"])
        if filters.get("priority"):
            qs = qs.filter(priority=filters["priority"])
        if filters.get("assigned_to"):
            qs = qs.filter(CaseQueryService._assigned_to_q(filters["assigned_to"]))
        if filters.get("case_type"):
            qs = qs.filter(case_type=filters["case_type"])
        if filters.get("jurisdiction"):
            qs = qs.filter(jurisdiction=filters["jurisdiction"])
        if filters.get("date_from"):
            qs = qs.filter(created_at__date__gte=filters["date_from"])
        if filters.get("date_to"):
            qs = qs.filter(created_at__date__lte=filters["date_to"])

        term = sanitize_search(filters.get("search", ""))
        if term:
            qs = qs.filter(
                Q(title__icontains=term)
                | Q(description__icontains=term)
                | Q(case_number__icontains=term)
            )
        return qs

    @staticmethod
    def _assigned_to_q(value: str) -> Q:
        fields = ("assigned_investigator", "assigned_prosecutor", "assigned_judge")
        q = Q()
        value = str(value).strip()
        for field in fields:
            if value.isdigit():
                q |= Q(**{f"{field}_id": int(value)})
            else:
                q |= Q(**{f"{field}__wallet_address": value.lower()})
                q |= Q(**{f"{field}__email": value.lower()})
        return q

    @classmethod
    def enhanced(cls, requesting_user: Any, filters: dict[str, Any]) -> tuple[QuerySet, dict[str, int]]:
        """
        Filtered, sorted, paginated case listing.

        Returns
        -------
        tuple
            ``(page_queryset, pagination)`` where ``pagination`` is
            ``{page, limit, total, pages}``.
        """
        require_permission(requesting_user, _perm(CasesPerms.VIEW_CASE))
        qs = cls.apply_filters(
            Case.objects.select_related(
                "status", "created_by", "assigned_investigator", "assigned_prosecutor", "assigned_judge",
            ),
            filters,
        )

        sort_by = filters.get("sort_by", "created_at")
        order = sort_by if filters.get("sort_order", "desc") == "asc" else f"-{sort_by}"
        qs = qs.order_by(order, "-id")

        page = filters.get("page", 1)
        limit = filters.get("limit", 20)
        total = qs.count()
        offset = (page - 1) * limit
        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        }
        return qs[offset:offset + limit], pagination

    @staticmethod
    def details(requesting_user: Any, case_id: int) -> dict[str, Any]:
        """
        Return the case together with its status history (newest first),
        its active assignments and the number of linked evidence items.
        """
        require_permission(requesting_user, _perm(CasesPerms.VIEW_CASE))
        case = _get_case(case_id)
        history = (
            case.status_history
            .select_related("from_status", "to_status", "changed_by")
            .order_by("-changed_at", "-id")
        )
        assignments = case.assignments.filter(is_active=True).select_related("user", "assigned_by")
        return {
            "case": case,
            "status_history": history,
            "assignments": assignments,
            "evidence_count": case.evidence_items.count(),
        }

    @staticmethod
    def statistics(requesting_user: Any, timeframe: str = "30d") -> dict[str, Any]:
        """
        Status/priority breakdown of cases created within ``timeframe``
        plus the ten most recent status changes in that window.
        """
        require_permission(requesting_user, _perm(CasesPerms.VIEW_CASE))
        if timeframe not in TIMEFRAMES:
            raise DomainError(f"Invalid timeframe. Use one of: {', '.join(TIMEFRAMES)}")
        since = timezone.now() - TIMEFRAMES[timeframe]

        cases = Case.objects.filter(created_at__gte=since)
        by_status = list(
            cases.values("status__code", "status__name", "status__color")
            .annotate(count=Count("id"))
            .order_by("status__sort_order")
        )
        by_priority = {
            row["priority"]: row["count"]
            for row in cases.values("priority").annotate(count=Count("id")).order_by("priority")
        }
        recent = (
            CaseStatusHistory.objects
            .filter(changed_at__gte=since)
            .select_related("case", "from_status", "to_status", "changed_by")
            .order_by("-changed_at", "-id")[:10]
        )
        return {
            "by_status": [
                {
                    "status_code": row["status__code"],
                    "status_name": row["status__name"],
                    "color": row["status__color"],
                    "count": row["count"],
                }
                for row in by_status
            ],
            "by_priority": by_priority,
            "recent_activity": recent,
            "total": cases.count(),
            "timeframe": timeframe,
        }


# ═══════════════════════════════════════════════════════════════════
#  Export Service
# ═══════════════════════════════════════════════════════════════════


class CaseExportService:
    """Renders filtered case lists as CSV."""

    @staticmethod
    def export_csv(requesting_user: Any, filters: dict[str, Any]) -> tuple[str, str, int]:
        """
        Returns
        -------
        tuple
            ``(csv_text, filename, row_count)``.  Every field is quoted.
        """
        require_permission(requesting_user, _perm(CasesPerms.CAN_EXPORT_CASES))
        cases = CaseQueryService.apply_filters(
            Case.objects.select_related("status", "created_by"),
            filters,
        ).order_by("-created_at")

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        count = 0
        for case in cases:
            writer.writerow([
                case.case_number or "",
                case.title,
                case.status.name,
                case.priority,
                case.case_type,
                case.jurisdiction,
                case.created_at.date().isoformat(),
                mask_identity(case.created_by.identity),
            ])
            count += 1

        filename = f"cases-export-{timezone.now():%Y-%m-%d}.csv"
        ActivityLogService.record(
            user=requesting_user,
            action="cases_exported",
            details={"count": count},
        )
        logger.info("Exported %d case(s) to CSV", count)
        return buffer.getvalue(), filename, count


# ═══════════════════════════════════════════════════════════════════
#  Case Creation Service
# ═══════════════════════════════════════════════════════════════════


class CaseCreationService:
    """Opens new cases."""

    @staticmethod
    def _default_status() -> CaseStatus:
        defaults = next(row for row in CASE_STATUSES if row[0] == DEFAULT_STATUS)
        _code, name, description, color, sort_order, is_terminal = defaults
        status, _ = CaseStatus.objects.get_or_create(
            code=DEFAULT_STATUS,
            defaults={
                "name": name,
                "description": description,
                "color": color,
                "sort_order": sort_order,
                "is_terminal": is_terminal,
            },
        )
        return status

    @classmethod
    @transaction.atomic
    def create_case(cls, validated_data: dict[str, Any], requesting_user: Any) -> Case:
        """
        Create a case in the default ``open`` status.

        Parameters
        ----------
        validated_data : dict
            ``title`` plus optional ``description``, ``priority``,
            ``case_type``, ``jurisdiction``, ``incident_date``,
            ``location``.
        requesting_user : User
            Must hold ``cases.add_case``.

        Returns
        -------
        Case
            The new case; an initial ``CaseStatusHistory`` row is written.
        """
        require_permission(
            requesting_user,
            _perm(CasesPerms.ADD_CASE),
            message="You do not have permission to create cases.",
        )
        status = cls._default_status()
        case = Case.objects.create(
            title=validated_data["title"],
            description=validated_data.get("description") or "",
            priority=validated_data.get("priority") or 3,
            case_type=validated_data.get("case_type") or "criminal",
            jurisdiction=validated_data.get("jurisdiction") or "local",
            incident_date=validated_data.get("incident_date"),
            location=validated_data.get("location") or "",
            status=status,
            status_changed_at=timezone.now(),
            created_by=requesting_user,
        )
        CaseStatusHistory.objects.create(
            case=case,
            from_status=None,
            to_status=status,
            changed_by=requesting_user,
            reason="Case created",
            metadata={"user_role": get_user_role_name(requesting_user)},
        )
        ActivityLogService.record(
            user=requesting_user,
            action="case_created",
            details={"case_id": case.pk, "case_title": case.title, "case_type": case.case_type},
        )
        logger.info("Case %s created by user id=%s", case.case_number, requesting_user.pk)
        return case


# ═══════════════════════════════════════════════════════════════════
#  Workflow Service
# ═══════════════════════════════════════════════════════════════════


class CaseWorkflowService:
    """
    Role-gated status transitions.

    ``change_status`` is the single gateway: it resolves the requested
    status, looks up the ``(current, requested, role)`` triple in the
    transition table, and only then mutates the case.
    """

    @staticmethod
    def _resolve_status(code: str) -> CaseStatus:
        try:
            return CaseStatus.objects.get(code=code, is_active=True)
        except CaseStatus.DoesNotExist:
            raise DomainError("Invalid status")

    @classmethod
    def change_status(
        cls,
        case_id: int,
        new_status_code: str,
        requesting_user: Any,
        reason: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> tuple[Case, CaseStatusHistory]:
        """
        Move a case to ``new_status_code``.

        Raises
        ------
        PermissionDenied
            If the user is inactive, lacks ``can_change_case_status``, or
            no active transition row matches ``(current, new, role)``.
        DomainError
            If ``new_status_code`` is unknown or inactive.
        InvalidTransition
            If the case already has the requested status.
        NotFound
            If the case does not exist.
        """
        if not requesting_user.is_active:
            raise PermissionDenied("User not found or inactive")
        require_permission(requesting_user, _perm(CasesPerms.CAN_CHANGE_CASE_STATUS))
        role = get_user_role_name(requesting_user)
        target = cls._resolve_status(new_status_code)

        with transaction.atomic():
            case = lock_for_update(Case, case_id, label="Case")
            current = case.status
            if current.pk == target.pk:
                raise InvalidTransition(current=current.code, target=target.code)

            transition = CaseStatusTransition.objects.filter(
                from_status=current,
                to_status=target,
                required_role=role,
                is_active=True,
            ).first()
            if transition is None:
                raise PermissionDenied(f"Status transition not allowed for role: {role}")

            case.status = target
            case.status_changed_at = timezone.now()
            case.save(update_fields=["status", "status_changed_at", "updated_at"])

            history = CaseStatusHistory.objects.create(
                case=case,
                from_status=current,
                to_status=target,
                changed_by=requesting_user,
                reason=reason or "Status updated via API",
                metadata={
                    **(metadata or {}),
                    "user_role": role,
                    "transition_name": transition.transition_name,
                },
            )

        case = _get_case(case.pk)
        NotificationService.create(
            actor=requesting_user,
            recipients=case.assigned_users,
            event_type="case_status_changed",
            payload={
                "case_id": case.pk,
                "case_number": case.case_number,
                "old_status": current.code,
                "new_status": target.code,
            },
        )
        ActivityLogService.record(
            user=requesting_user,
            action="case_status_change",
            details={
                "case_id": case.pk,
                "from_status": current.code,
                "to_status": target.code,
                "reason": reason,
            },
        )
        logger.info(
            "Case %s: %s → %s by role %s",
            case.case_number,
            current.code,
            target.code,
            role,
        )
        return case, history

    @staticmethod
    def available_transitions(case_id: int, requesting_user: Any) -> QuerySet:
        """Active transitions out of the current status for the caller's role."""
        require_permission(requesting_user, _perm(CasesPerms.VIEW_CASE))
        case = _get_case(case_id)
        return (
            CaseStatusTransition.objects
            .filter(
                from_status=case.status,
                required_role=get_user_role_name(requesting_user),
                is_active=True,
            )
            .select_related("from_status", "to_status")
            .order_by("to_status__sort_order")
        )


# ═══════════════════════════════════════════════════════════════════
#  Assignment Service
# ═══════════════════════════════════════════════════════════════════


class CaseAssignmentService:
    """Assigns personnel to cases."""

    @staticmethod
    def assign(case_id: int, validated_data: dict[str, Any], requesting_user: Any) -> CaseAssignment:
        """
        Assign ``user_id`` to the case as ``role_type``.

        The previous active assignment with the same
        ``(case, role_type, assignment_type)`` is deactivated first.
        Primary investigator / prosecutor / judge assignments are mirrored
        onto the case's ``assigned_*`` fields.

        Raises
        ------
        PermissionDenied
            If the assigner lacks ``cases.can_assign_case``.
        NotFound
            If the case or the assignee does not exist.
        """
        require_permission(
            requesting_user,
            _perm(CasesPerms.CAN_ASSIGN_CASE),
            message="Insufficient permissions to assign cases",
        )
        role_type = validated_data["role_type"]
        assignment_type = validated_data.get("assignment_type") or AssignmentType.PRIMARY

        try:
            assignee = User.objects.get(pk=validated_data["user_id"], is_active=True)
        except User.DoesNotExist:
            raise NotFound("Assignee not found")

        with transaction.atomic():
            case = lock_for_update(Case, case_id, label="Case")
            now = timezone.now()
            CaseAssignment.objects.filter(
                case=case,
                role_type=role_type,
                assignment_type=assignment_type,
                is_active=True,
            ).update(is_active=False, unassigned_at=now)

            assignment = CaseAssignment.objects.create(
                case=case,
                user=assignee,
                role_type=role_type,
                assignment_type=assignment_type,
                assigned_by=requesting_user,
                notes=validated_data.get("notes") or "",
            )

            field = _ASSIGNMENT_FIELDS.get(role_type)
            if field and assignment_type == AssignmentType.PRIMARY:
                setattr(case, field, assignee)
                case.save(update_fields=[field, "updated_at"])

        NotificationService.create(
            actor=requesting_user,
            recipients=assignee,
            event_type="case_assigned",
            payload={"case_id": case.pk, "case_number": case.case_number, "role_type": role_type},
        )
        ActivityLogService.record(
            user=requesting_user,
            action="case_assignment",
            details={
                "case_id": case.pk,
                "assigned_to": assignee.pk,
                "role_type": role_type,
                "assignee_name": assignee.full_name,
            },
        )
        logger.info(
            "Case %s: user id=%s assigned as %s (%s)",
            case.case_number,
            assignee.pk,
            role_type,
            assignment_type,
        )
        return assignment
