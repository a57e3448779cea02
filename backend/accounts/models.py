"""
Accounts app models.

Defines the dynamic Role system, a custom User model that extends Django's
``AbstractUser`` with wallet/e-mail identities, and the two admin-audit
records: role-change requests (four-eyes approval) and admin actions.
"""

from django.conf import settings
from django.contrib.auth.models import AbstractUser, Permission
from django.db import models

from core.permissions_constants import AccountsPerms


class Role(models.Model):
    """
    Role assigned to a user.

    ``name`` holds the role code (``admin``, ``investigator``, ``auditor`` …,
    see ``core.constants``).  The code doubles as the ``required_role`` key
    of the case status transition table, so renaming a role also changes
    which transitions it may perform.

    Permissions are linked by the ``setup_rbac`` management command; it
    never creates permissions itself, it only resolves codenames that
    ``migrate`` has inserted.
    """

    name = models.CharField(
        max_length=50,
        unique=True,
        verbose_name="Role Code",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    hierarchy_level = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Hierarchy Level",
        help_text="Higher value = more authority (admin=100, public_viewer=0).",
    )
    permissions = models.ManyToManyField(
        Permission,
        blank=True,
        verbose_name="Permissions",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["-hierarchy_level"]

    def __str__(self):
        return self.name


class AuthType(models.TextChoices):
    WALLET = "wallet", "Wallet"
    EMAIL = "email", "E-mail"


class AccountType(models.TextChoices):
    REAL = "real", "Real"
    TEST = "test", "Test"


class User(AbstractUser):
    """
    System user identified either by an Ethereum-style wallet address
    or by an e-mail + password pair.

    ``username`` mirrors whichever identity the account was created with,
    so Django's admin and ``createsuperuser`` keep working.  Both
    ``wallet_address`` and ``email`` are unique when present; wallet
    addresses are always stored lowercase.

    Accounts are never hard-deleted by the API; deactivation sets
    ``is_active=False``.
    """

    wallet_address = models.CharField(
        max_length=42,
        unique=True,
        null=True,
        blank=True,
        verbose_name="Wallet Address",
    )
    email = models.EmailField(
        unique=True,
        null=True,
        blank=True,
        verbose_name="Email Address",
    )
    full_name = models.CharField(max_length=255, blank=True, default="", verbose_name="Full Name")
    department = models.CharField(max_length=120, blank=True, default="", verbose_name="Department")
    jurisdiction = models.CharField(max_length=120, blank=True, default="", verbose_name="Jurisdiction")
    badge_number = models.CharField(max_length=50, blank=True, default="", verbose_name="Badge Number")
    auth_type = models.CharField(
        max_length=10,
        choices=AuthType.choices,
        default=AuthType.WALLET,
        verbose_name="Auth Type",
    )
    account_type = models.CharField(
        max_length=10,
        choices=AccountType.choices,
        default=AccountType.REAL,
        verbose_name="Account Type",
    )
    created_by = models.CharField(
        max_length=255,
        blank=True,
        default="self_registration",
        verbose_name="Created By",
        help_text="'self_registration' or the identity of the creating admin.",
    )

    # ── E-mail verification ──────────────────────────────────────────
    email_verified = models.BooleanField(default=False, verbose_name="Email Verified")
    verification_token = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        unique=True,
        verbose_name="Verification Token",
    )
    verification_token_expires = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Verification Token Expires",
    )

    # ── Single-role assignment ───────────────────────────────────────
    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )

    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        permissions = [
            (AccountsPerms.CAN_MANAGE_USERS, "Create, deactivate and list users"),
            (AccountsPerms.CAN_MANAGE_ADMINS, "Create administrator accounts"),
            (AccountsPerms.CAN_REVIEW_ROLE_CHANGES, "Request and review role changes"),
        ]

    def __str__(self):
        role_name = self.role.name if self.role else "no role"
        return f"{self.identity} ({role_name})"

    def save(self, *args, **kwargs):
        if self.wallet_address:
            self.wallet_address = self.wallet_address.lower()
        else:
            self.wallet_address = None
        if self.email:
            self.email = self.email.lower()
        else:
            self.email = None
        super().save(*args, **kwargs)

    @property
    def identity(self) -> str:
        """Wallet address, else e-mail, else username."""
        return self.wallet_address or self.email or self.username

    @property
    def role_name(self) -> str | None:
        return self.role.name if self.role else None

    # ── RBAC Permission Overrides ────────────────────────────────────

    def get_all_permissions(self, obj=None) -> set:
        """
        Return a set of permission strings ('app_label.codename') the user has.
        """
        if not self.is_active:
            return set()

        if self.is_superuser:
            if not hasattr(self, "_superuser_perm_cache"):
                perms = Permission.objects.select_related("content_type").all()
                self._superuser_perm_cache = {f"{p.content_type.app_label}.{p.codename}" for p in perms}
            return self._superuser_perm_cache

        if not self.role:
            return set()

        if not hasattr(self, "_perm_cache"):
            perms = self.role.permissions.select_related("content_type")
            self._perm_cache = {f"{p.content_type.app_label}.{p.codename}" for p in perms}

        return self._perm_cache

    def has_perm(self, perm: str, obj=None) -> bool:
        """
        Superusers always have all permissions; everyone else gets the
        permissions of their role.
        """
        if self.is_active and self.is_superuser:
            return True

        return perm in self.get_all_permissions(obj)

    def has_perms(self, perm_list, obj=None) -> bool:
        return all(self.has_perm(perm, obj) for perm in perm_list)

    def has_module_perms(self, app_label: str) -> bool:
        if self.is_active and self.is_superuser:
            return True

        return any(perm.startswith(f"{app_label}.") for perm in self.get_all_permissions())

    @property
    def permissions_list(self) -> list[str]:
        """Sorted permission strings, handed to clients for UI gating."""
        return sorted(self.get_all_permissions())


class RoleChangeStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class RoleChangeRequest(models.Model):
    """
    A role change proposed by one admin that a *different* admin must
    approve or reject.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="role_change_requests",
        verbose_name="Target User",
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="raised_role_change_requests",
        verbose_name="Requested By",
    )
    old_role = models.CharField(max_length=50, blank=True, default="", verbose_name="Old Role")
    new_role = models.CharField(max_length=50, verbose_name="New Role")
    reason = models.TextField(blank=True, default="", verbose_name="Reason")
    status = models.CharField(
        max_length=10,
        choices=RoleChangeStatus.choices,
        default=RoleChangeStatus.PENDING,
        db_index=True,
        verbose_name="Status",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_role_change_requests",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rejected_role_change_requests",
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    class Meta:
        verbose_name = "Role Change Request"
        verbose_name_plural = "Role Change Requests"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.user} → {self.new_role} [{self.status}]"


class AdminAction(models.Model):
    """Audit record of every privileged operation performed by an admin."""

    admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="admin_actions",
        verbose_name="Admin",
    )
    action_type = models.CharField(max_length=50, db_index=True, verbose_name="Action Type")
    target_identity = models.CharField(max_length=255, blank=True, default="", verbose_name="Target")
    details = models.JSONField(default=dict, blank=True, verbose_name="Details")
    timestamp = models.DateTimeField(auto_now_add=True, verbose_name="Timestamp")

    class Meta:
        verbose_name = "Admin Action"
        verbose_name_plural = "Admin Actions"
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.action_type} → {self.target_identity}"
