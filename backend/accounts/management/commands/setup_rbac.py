"""
Management command: setup_rbac
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Seeds the database with the base **Roles**, links each role to its set
of Django permissions, and seeds the **case workflow** (statuses and the
role-gated transition table).

Key design principle — **this command does NOT create Permission objects**.
Permissions must already exist in the database:
    • Standard CRUD permissions are auto-created by Django after
      ``migrate`` (one per model × {add, change, delete, view}).
    • Custom workflow permissions are declared in each model's
      ``Meta.permissions`` tuple and inserted by ``migrate``.

The command is **idempotent** — safe to run multiple times.  Existing
roles are updated; permissions are replaced (set) to match the
mapping below.

Usage::

    python manage.py setup_rbac

Prerequisites::

    python manage.py makemigrations
    python manage.py migrate
"""

from django.contrib.auth.models import Permission
from django.core.management.base import BaseCommand
from django.db import transaction

from accounts.models import Role
from cases.models import CaseStatus, CaseStatusTransition
from cases.workflow import CASE_STATUSES, CASE_TRANSITIONS
from core import constants
from core.permissions_constants import (
    AccountsPerms,
    CasesPerms,
    CorePerms,
    EvidencePerms,
    RetentionPerms,
    TagsPerms,
)

# ────────────────────────────────────────────────────────────────────
# Shared permission bundles
# ────────────────────────────────────────────────────────────────────

_BASE = [
    CasesPerms.VIEW_CASE, CasesPerms.VIEW_CASESTATUS,
    EvidencePerms.VIEW_EVIDENCE,
    TagsPerms.VIEW_TAG,
    RetentionPerms.VIEW_RETENTIONPOLICY,
    CorePerms.VIEW_NOTIFICATION, CorePerms.CHANGE_NOTIFICATION,
    CorePerms.ADD_ACTIVITYLOG,
]

_CASE_READ = [
    CasesPerms.VIEW_CASESTATUSTRANSITION, CasesPerms.VIEW_CASESTATUSHISTORY,
    CasesPerms.VIEW_CASEASSIGNMENT,
]

_CASE_WORK = _CASE_READ + [
    CasesPerms.ADD_CASE, CasesPerms.CHANGE_CASE,
    CasesPerms.CAN_CHANGE_CASE_STATUS, CasesPerms.CAN_EXPORT_CASES,
]

_EVIDENCE_WORK = [
    EvidencePerms.ADD_EVIDENCE, EvidencePerms.CAN_DOWNLOAD_EVIDENCE,
    EvidencePerms.CAN_EXPORT_EVIDENCE,
    TagsPerms.ADD_TAG, TagsPerms.ADD_EVIDENCETAG, TagsPerms.DELETE_EVIDENCETAG,
]


def _all_codenames() -> list[str]:
    codenames: list[str] = []
    for group in (AccountsPerms, CasesPerms, EvidencePerms, TagsPerms, RetentionPerms, CorePerms):
        codenames.extend(
            value for key, value in vars(group).items()
            if key.isupper() and isinstance(value, str)
        )
    return codenames


# ────────────────────────────────────────────────────────────────────
# Role → Permission mapping (codenames from core.permissions_constants)
# ────────────────────────────────────────────────────────────────────
# Key:   (role_code, description, hierarchy_level)
# Value: list of codenames from ``core.permissions_constants``

ROLE_PERMISSIONS_MAP: dict[tuple[str, str, int], list[str]] = {

    # ── Administrator ───────────────────────────────────────────────
    (
        constants.ADMIN,
        "Full system access — manages users, roles, and all records.",
        100,
    ): _all_codenames(),

    # ── Court Official (judge) ──────────────────────────────────────
    (
        constants.COURT_OFFICIAL,
        "Presides over cases in court; assigns personnel and closes cases.",
        70,
    ): _BASE + _CASE_WORK + _EVIDENCE_WORK + [
        CasesPerms.CAN_ASSIGN_CASE,
    ],

    # ── Evidence Manager ────────────────────────────────────────────
    (
        constants.EVIDENCE_MANAGER,
        "Custodian of evidence — retention, legal hold and assignments.",
        60,
    ): _BASE + _CASE_WORK + _EVIDENCE_WORK + [
        CasesPerms.CAN_ASSIGN_CASE,
        TagsPerms.CHANGE_TAG, TagsPerms.DELETE_TAG,
        RetentionPerms.ADD_RETENTIONPOLICY, RetentionPerms.CHANGE_RETENTIONPOLICY,
        RetentionPerms.CAN_SET_LEGAL_HOLD, RetentionPerms.CAN_APPLY_RETENTION,
    ],

    # ── Legal Professional (prosecutor) ─────────────────────────────
    (
        constants.LEGAL_PROFESSIONAL,
        "Prosecution — reviews evidence and may place legal holds.",
        50,
    ): _BASE + _CASE_WORK + _EVIDENCE_WORK + [
        RetentionPerms.CAN_SET_LEGAL_HOLD,
    ],

    # ── Auditor ─────────────────────────────────────────────────────
    (
        constants.AUDITOR,
        "Read-only oversight of custody trails, downloads and verifications.",
        50,
    ): _BASE + _CASE_READ + [
        CasesPerms.CAN_EXPORT_CASES,
        EvidencePerms.CAN_DOWNLOAD_EVIDENCE, EvidencePerms.CAN_EXPORT_EVIDENCE,
        EvidencePerms.CAN_AUDIT_EVIDENCE,
        EvidencePerms.VIEW_COMPARISONREPORT, EvidencePerms.ADD_COMPARISONREPORT,
        CorePerms.VIEW_ACTIVITYLOG,
    ],

    # ── Forensic Analyst ────────────────────────────────────────────
    (
        constants.FORENSIC_ANALYST,
        "Examines evidence and reports forensic findings.",
        40,
    ): _BASE + _CASE_WORK + _EVIDENCE_WORK,

    # ── Investigator ────────────────────────────────────────────────
    (
        constants.INVESTIGATOR,
        "Opens cases, collects and uploads evidence.",
        40,
    ): _BASE + _CASE_WORK + _EVIDENCE_WORK,

    # ── Public Viewer ───────────────────────────────────────────────
    (
        constants.PUBLIC_VIEWER,
        "Read-only access to case and evidence listings.",
        0,
    ): _BASE,
}


class Command(BaseCommand):
    help = (
        "Seeds the database with base Roles, maps each role to its "
        "Django permissions and seeds the case status workflow.  Safe to "
        "run multiple times (idempotent).  Does NOT create permissions — "
        "run `migrate` first."
    )

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n══════════════════════════════════════════"
            "\n  RBAC Setup — Seeding Roles & Permissions"
            "\n══════════════════════════════════════════\n"
        ))

        with transaction.atomic():
            roles_created, roles_updated, warnings = self._seed_roles()
            statuses, transitions = self._seed_workflow()

        # ── Summary ─────────────────────────────────────────────────
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n──────────────────────────────────────────"
        ))
        summary = (
            f"  Done!  {roles_created} role(s) created, "
            f"{roles_updated} role(s) updated.  "
            f"{statuses} status(es), {transitions} transition(s)."
        )
        if warnings:
            summary += f"  ({warnings} permission warning(s) — see above.)"
        self.stdout.write(self.style.SUCCESS(summary + "\n"))

    def _seed_roles(self) -> tuple[int, int, int]:
        # Pre-fetch ALL permissions into a dict for fast look-up
        all_permissions: dict[str, Permission] = {
            p.codename: p
            for p in Permission.objects.select_related("content_type").all()
        }

        roles_created = 0
        roles_updated = 0
        warnings = 0

        for (role_name, description, hierarchy_level), codenames in ROLE_PERMISSIONS_MAP.items():
            # ── 1. Idempotent role creation / update ────────────────
            role, created = Role.objects.update_or_create(
                name=role_name,
                defaults={
                    "description": description,
                    "hierarchy_level": hierarchy_level,
                },
            )

            # ── 2. Resolve permission codenames ─────────────────────
            resolved_permissions: list[Permission] = []
            for codename in dict.fromkeys(codenames):
                perm = all_permissions.get(codename)
                if perm is not None:
                    resolved_permissions.append(perm)
                else:
                    warnings += 1
                    self.stdout.write(self.style.WARNING(
                        f"  ⚠  Permission '{codename}' not found — "
                        f"skipped for role '{role_name}'.  "
                        f"(Run makemigrations & migrate first?)"
                    ))

            # ── 3. Set permissions (replaces old set entirely) ──────
            role.permissions.set(resolved_permissions)

            if created:
                roles_created += 1
            else:
                roles_updated += 1

            self.stdout.write(self.style.SUCCESS(
                f"  ✔  {'Created' if created else 'Updated'} role: {role_name:<20s} "
                f"(hierarchy={hierarchy_level}, "
                f"permissions={len(resolved_permissions)})"
            ))

        return roles_created, roles_updated, warnings

    def _seed_workflow(self) -> tuple[int, int]:
        statuses: dict[str, CaseStatus] = {}
        for code, name, description, color, sort_order, is_terminal in CASE_STATUSES:
            statuses[code], _ = CaseStatus.objects.update_or_create(
                code=code,
                defaults={
                    "name": name,
                    "description": description,
                    "color": color,
                    "sort_order": sort_order,
                    "is_terminal": is_terminal,
                    "is_active": True,
                },
            )

        transitions = 0
        for from_code, to_code, transition_name, roles in CASE_TRANSITIONS:
            for role_code in roles:
                CaseStatusTransition.objects.update_or_create(
                    from_status=statuses[from_code],
                    to_status=statuses[to_code],
                    required_role=role_code,
                    defaults={"transition_name": transition_name, "is_active": True},
                )
                transitions += 1

        self.stdout.write(self.style.SUCCESS(
            f"  ✔  Case workflow: {len(statuses)} statuses, {transitions} transitions"
        ))
        return len(statuses), transitions
