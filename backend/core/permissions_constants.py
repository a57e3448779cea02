"""
Permissions Constants — **Single Source of Truth**

Every permission referenced in code (services, ``setup_rbac``, tests)
MUST use one of the constants defined here.

Organisation
------------
- **Standard CRUD** permissions follow Django's auto-generated naming:
  ``<action>_<model_lowercase>``. They are listed here so that the
  ``setup_rbac`` command can map them to roles without typos.

- **Custom workflow** permissions map to codenames registered via each
  model's ``Meta.permissions`` tuple. Adding a new one requires:
    1. Add the constant below.
    2. Add the ``(codename, description)`` to the related model's
       ``Meta.permissions``.
    3. Run ``makemigrations`` + ``migrate``.
    4. Add the constant to the appropriate role lists in ``setup_rbac``.

All constants store the **codename only** (no ``app_label.`` prefix).
Use ``perm_string`` when a full ``app_label.codename`` is needed for
``user.has_perm``.
"""


def perm_string(app_label: str, codename: str) -> str:
    """Return ``"<app_label>.<codename>"`` for ``user.has_perm`` calls."""
    return f"{app_label}.{codename}"


# ════════════════════════════════════════════════════════════════════
#  ACCOUNTS APP
# ════════════════════════════════════════════════════════════════════

class AccountsPerms:
    """Standard + custom permissions for the accounts app."""

    # Role
    VIEW_ROLE = "view_role"
    ADD_ROLE = "add_role"
    CHANGE_ROLE = "change_role"
    DELETE_ROLE = "delete_role"

    # User
    VIEW_USER = "view_user"
    ADD_USER = "add_user"
    CHANGE_USER = "change_user"
    DELETE_USER = "delete_user"

    # RoleChangeRequest / AdminAction
    VIEW_ROLECHANGEREQUEST = "view_rolechangerequest"
    VIEW_ADMINACTION = "view_adminaction"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_MANAGE_USERS = "can_manage_users"
    """Create, deactivate and list user accounts."""

    CAN_MANAGE_ADMINS = "can_manage_admins"
    """Create additional administrator accounts."""

    CAN_REVIEW_ROLE_CHANGES = "can_review_role_changes"
    """Raise, approve and reject role-change requests."""


# ════════════════════════════════════════════════════════════════════
#  CASES APP
# ════════════════════════════════════════════════════════════════════

class CasesPerms:
    """Standard + custom permissions for the cases app."""

    # ── Case — standard CRUD ────────────────────────────────────────
    VIEW_CASE = "view_case"
    ADD_CASE = "add_case"
    CHANGE_CASE = "change_case"
    DELETE_CASE = "delete_case"

    # ── Lookup tables ───────────────────────────────────────────────
    VIEW_CASESTATUS = "view_casestatus"
    VIEW_CASESTATUSTRANSITION = "view_casestatustransition"
    VIEW_CASESTATUSHISTORY = "view_casestatushistory"
    VIEW_CASEASSIGNMENT = "view_caseassignment"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_CHANGE_CASE_STATUS = "can_change_case_status"
    """Request a status transition (still gated by the transition table)."""

    CAN_ASSIGN_CASE = "can_assign_case"
    """Assign personnel to a case."""

    CAN_EXPORT_CASES = "can_export_cases"
    """Download the CSV case export."""


# ════════════════════════════════════════════════════════════════════
#  EVIDENCE APP
# ════════════════════════════════════════════════════════════════════

class EvidencePerms:
    """Standard + custom permissions for the evidence app."""

    VIEW_EVIDENCE = "view_evidence"
    ADD_EVIDENCE = "add_evidence"
    CHANGE_EVIDENCE = "change_evidence"
    DELETE_EVIDENCE = "delete_evidence"

    VIEW_COMPARISONREPORT = "view_comparisonreport"
    ADD_COMPARISONREPORT = "add_comparisonreport"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_DOWNLOAD_EVIDENCE = "can_download_evidence"
    """Download a watermarked copy of an evidence file."""

    CAN_EXPORT_EVIDENCE = "can_export_evidence"
    """Download a ZIP bundle of several evidence files."""

    CAN_AUDIT_EVIDENCE = "can_audit_evidence"
    """Read download/verification history and compare evidence items."""


# ════════════════════════════════════════════════════════════════════
#  TAGS APP
# ════════════════════════════════════════════════════════════════════

class TagsPerms:
    """Standard permissions for the tags app."""

    VIEW_TAG = "view_tag"
    ADD_TAG = "add_tag"
    CHANGE_TAG = "change_tag"
    DELETE_TAG = "delete_tag"

    ADD_EVIDENCETAG = "add_evidencetag"
    DELETE_EVIDENCETAG = "delete_evidencetag"


# ════════════════════════════════════════════════════════════════════
#  RETENTION APP
# ════════════════════════════════════════════════════════════════════

class RetentionPerms:
    """Standard + custom permissions for the retention app."""

    VIEW_RETENTIONPOLICY = "view_retentionpolicy"
    ADD_RETENTIONPOLICY = "add_retentionpolicy"
    CHANGE_RETENTIONPOLICY = "change_retentionpolicy"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_SET_LEGAL_HOLD = "can_set_legal_hold"
    """Place or lift a legal hold on evidence."""

    CAN_APPLY_RETENTION = "can_apply_retention"
    """Apply a retention policy to evidence and run expiry checks."""


# ════════════════════════════════════════════════════════════════════
#  CORE APP
# ════════════════════════════════════════════════════════════════════

class CorePerms:
    """Standard permissions for the core app."""

    VIEW_NOTIFICATION = "view_notification"
    CHANGE_NOTIFICATION = "change_notification"

    VIEW_ACTIVITYLOG = "view_activitylog"
    ADD_ACTIVITYLOG = "add_activitylog"
