"""
core.domain.access — Permission guards shared by app services.

╔══════════════════════════════════════════════════════════════════╗
║  Two kinds of gate exist in this system:                         ║
║    1) Permission gates — ``require_permission`` checks a Django  ║
║       permission resolved through the user's Role. The admin /   ║
║       auditor gates are permission bundles seeded per role.      ║
║    2) Role-name gates — the case status transition table keyed   ║
║       by ``required_role``, read via ``get_user_role_name``.     ║
╚══════════════════════════════════════════════════════════════════╝

Usage in an app's service layer::

    from core.domain.access import require_permission

    require_permission(user, "evidence.add_evidence")
    require_permission(user, "evidence.can_audit_evidence",
                       message="Unauthorized: Admin or Auditor role required")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User


def get_user_role_name(user: User) -> str | None:
    """
    Return the role code of a user, or ``None`` if unassigned.

    Superusers created through ``createsuperuser`` count as ``admin``.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    role = getattr(user, "role", None)
    if role is not None:
        return role.name
    if user.is_superuser:
        return "admin"
    return None


def require_permission(user: User, *perms: str, message: str = "") -> None:
    """
    Guard that raises ``PermissionDenied`` if the user lacks **all** of
    the given permissions (OR-logic: having any one is sufficient).

    Args:
        user:    Authenticated user.
        *perms:  One or more full permission strings (``app.codename``).
        message: Optional custom error message.

    Raises:
        core.domain.exceptions.PermissionDenied

    Example::

        require_permission(user, "cases.can_assign_case")
    """
    for perm in perms:
        if user.has_perm(perm):
            return
    raise PermissionDenied(
        message or f"Missing required permission: {', '.join(perms)}."
    )
