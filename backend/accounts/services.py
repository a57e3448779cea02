"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service method, and return the result
wrapped in a DRF ``Response``.

Architecture
------------
- ``RoleResolver``              — role-code → ``Role`` lookup.
- ``AuthenticationService``     — wallet / e-mail login + JWT issuance.
- ``UserRegistrationService``   — public wallet and e-mail registration.
- ``EmailVerificationService``  — 24h verification tokens.
- ``UserProfileService``        — profile edits and wallet lookup.
- ``AdminUserService``          — admin-only user creation / deactivation.
- ``RoleChangeService``         — four-eyes role change requests.

Identity rules
--------------
* Wallet addresses are validated against ``^0x[a-fA-F0-9]{40}$`` and
  stored lowercase.
* E-mail addresses are stored lowercase.
* ``admin`` can never be chosen through public registration.
* Accounts are deactivated (``is_active=False``), never deleted.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Any

from django.conf import settings
from django.contrib.auth import authenticate as django_authenticate
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone
from rest_framework_simplejwt.tokens import RefreshToken

from core.constants import (
    ADMIN,
    ALL_ROLES,
    ALLOWED_ROLES,
    DEFAULT_DEPARTMENT,
    DEFAULT_JURISDICTION,
    is_valid_wallet,
)
from core.domain.access import require_permission
from core.domain.activity import ActivityLogService, mask_identity
from core.domain.exceptions import (
    AuthenticationFailed,
    Conflict,
    DomainError,
    NotFound,
    PermissionDenied,
)
from core.domain.notifications import NotificationService
from core.domain.transactions import lock_for_update
from core.permissions_constants import AccountsPerms, perm_string

from .models import (
    AccountType,
    AdminAction,
    AuthType,
    Role,
    RoleChangeRequest,
    RoleChangeStatus,
)

logger = logging.getLogger(__name__)

User = get_user_model()

_PUBLIC_ADMIN_MESSAGE = "Administrator registration is not allowed via public registration."

# Default hierarchy used when a role has not been seeded by ``setup_rbac``.
_ROLE_HIERARCHY: dict[str, int] = {
    ADMIN: 100,
    "court_official": 70,
    "evidence_manager": 60,
    "legal_professional": 50,
    "auditor": 50,
    "forensic_analyst": 40,
    "investigator": 40,
    "public_viewer": 0,
}


# ═══════════════════════════════════════════════════════════════════
#  Role resolution
# ═══════════════════════════════════════════════════════════════════


class RoleResolver:
    """Maps role codes to ``Role`` rows."""

    @staticmethod
    def get(code: str) -> Role:
        """
        Return the ``Role`` for ``code``.

        Roles are normally seeded by ``setup_rbac``; if a known code has
        not been seeded yet it is created without permissions so that
        registration does not depend on the seeding order.

        Raises
        ------
        DomainError
            If ``code`` is not a known role code.
        """
        if code not in ALL_ROLES:
            raise DomainError("Invalid role selected")
        role, created = Role.objects.get_or_create(
            name=code,
            defaults={"hierarchy_level": _ROLE_HIERARCHY.get(code, 0)},
        )
        if created:
            logger.warning("Role '%s' was not seeded; created without permissions.", code)
        return role

    @staticmethod
    def validate_public_role(code: str) -> None:
        """
        Reject roles that may not be self-selected.

        Raises
        ------
        PermissionDenied
            For ``admin``.
        DomainError
            For codes outside ``ALLOWED_ROLES``.
        """
        if code == ADMIN:
            raise PermissionDenied(_PUBLIC_ADMIN_MESSAGE)
        if code not in ALLOWED_ROLES:
            raise DomainError("Invalid role selected")


# ═══════════════════════════════════════════════════════════════════
#  Authentication Service
# ═══════════════════════════════════════════════════════════════════


class AuthenticationService:
    """Wallet and e-mail login, returning a JWT pair with RBAC claims."""

    @staticmethod
    def issue_tokens(user: User) -> dict[str, str]:
        """
        Build a refresh/access token pair.

        The access token carries ``role``, ``identity`` and
        ``permissions_list`` claims so the frontend can gate UI without
        a separate ``/me`` call.
        """
        refresh = RefreshToken.for_user(user)
        refresh["role"] = user.role_name
        refresh["identity"] = user.identity
        refresh["permissions_list"] = user.permissions_list
        return {"access": str(refresh.access_token), "refresh": str(refresh)}

    @staticmethod
    def wallet_login(wallet_address: str) -> User:
        """
        Resolve an active user by wallet address.

        Raises
        ------
        DomainError
            On a malformed address.
        AuthenticationFailed
            If the wallet is unknown or the account is inactive.
        """
        if not is_valid_wallet(wallet_address):
            raise DomainError("Invalid wallet address format")

        try:
            user = User.objects.select_related("role").get(
                wallet_address=wallet_address.lower(),
                is_active=True,
            )
        except User.DoesNotExist:
            raise AuthenticationFailed("Wallet address not registered")

        ActivityLogService.record(
            user=user,
            action="wallet_login",
            details={"auth_type": AuthType.WALLET},
        )
        logger.info("Wallet login for %s", mask_identity(user.wallet_address))
        return user

    @staticmethod
    def email_login(email: str, password: str, request=None) -> User:
        """
        Verify an e-mail/password pair through Django's auth backends.

        Raises
        ------
        AuthenticationFailed
            On unknown e-mail, wrong password or inactive account.
        """
        user = django_authenticate(request=request, email=email, password=password)
        if user is None or not user.is_active:
            raise AuthenticationFailed("Invalid email or password")

        ActivityLogService.record(
            user=user,
            action="email_login",
            details={"auth_type": AuthType.EMAIL},
        )
        logger.info("E-mail login for user id=%s", user.pk)
        return user


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class UserRegistrationService:
    """Public self-registration for wallet and e-mail identities."""

    @staticmethod
    def register_wallet_user(validated_data: dict[str, Any]) -> User:
        """
        Create a wallet-authenticated account.

        Parameters
        ----------
        validated_data : dict
            ``wallet_address``, ``full_name``, ``role`` and optionally
            ``department``, ``jurisdiction``, ``badge_number``.

        Raises
        ------
        PermissionDenied
            If ``role == "admin"``.
        DomainError
            On an invalid role.
        Conflict
            If the wallet is already registered.
        """
        role_code = validated_data["role"]
        RoleResolver.validate_public_role(role_code)
        wallet = validated_data["wallet_address"].lower()

        if User.objects.filter(wallet_address=wallet).exists():
            raise Conflict("Wallet address already registered")

        role = RoleResolver.get(role_code)
        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    username=wallet,
                    wallet_address=wallet,
                    full_name=validated_data["full_name"],
                    department=validated_data.get("department") or DEFAULT_DEPARTMENT,
                    jurisdiction=validated_data.get("jurisdiction") or DEFAULT_JURISDICTION,
                    badge_number=validated_data.get("badge_number") or "",
                    auth_type=AuthType.WALLET,
                    account_type=AccountType.REAL,
                    created_by="self_registration",
                    role=role,
                )
        except IntegrityError:
            raise Conflict("Wallet address already registered")

        ActivityLogService.record(
            user=user,
            action="wallet_registration",
            details={
                "role": role_code,
                "auth_type": AuthType.WALLET,
                "department": user.department,
            },
        )
        logger.info(
            "Registered wallet user %s with role %s",
            mask_identity(wallet),
            role_code,
        )
        return user

    @staticmethod
    def register_email_user(validated_data: dict[str, Any]) -> User:
        """
        Create an e-mail/password account and issue a verification token.

        Parameters
        ----------
        validated_data : dict
            ``email``, ``password``, ``full_name``, ``role`` and optionally
            ``department``, ``jurisdiction``.

        Raises
        ------
        PermissionDenied
            If ``role == "admin"``.
        DomainError
            On an invalid role.
        Conflict
            If the e-mail is already registered.
        """
        role_code = validated_data["role"]
        RoleResolver.validate_public_role(role_code)
        email = validated_data["email"].strip().lower()

        if User.objects.filter(email=email).exists():
            raise Conflict("Email address already registered")

        role = RoleResolver.get(role_code)
        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    username=email,
                    email=email,
                    password=validated_data["password"],
                    full_name=validated_data["full_name"],
                    department=validated_data.get("department") or DEFAULT_DEPARTMENT,
                    jurisdiction=validated_data.get("jurisdiction") or DEFAULT_JURISDICTION,
                    auth_type=AuthType.EMAIL,
                    account_type=AccountType.REAL,
                    created_by="self_registration",
                    role=role,
                )
                EmailVerificationService.issue_token(user)
        except IntegrityError:
            raise Conflict("Email address already registered")

        ActivityLogService.record(
            user=user,
            action="email_registration",
            details={
                "role": role_code,
                "auth_type": AuthType.EMAIL,
                "department": user.department,
            },
        )
        logger.info("Registered e-mail user id=%s with role %s", user.pk, role_code)
        return user


# ═══════════════════════════════════════════════════════════════════
#  E-mail verification
# ═══════════════════════════════════════════════════════════════════


class EmailVerificationService:
    """
    Random 32-byte hex tokens with a fixed time-to-live
    (``settings.EMAIL_VERIFICATION_TTL``, 24h by default).
    """

    @staticmethod
    def issue_token(user: User) -> str:
        token = secrets.token_hex(32)
        user.verification_token = token
        user.verification_token_expires = timezone.now() + settings.EMAIL_VERIFICATION_TTL
        user.save(update_fields=["verification_token", "verification_token_expires"])
        return token

    @staticmethod
    def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
        if expires_at is None:
            return True
        return (now or timezone.now()) > expires_at

    @classmethod
    def verify(cls, token: str) -> User:
        """
        Mark the owning account as verified.

        Raises
        ------
        DomainError
            If the token is unknown or expired.
        """
        try:
            user = User.objects.get(verification_token=token)
        except User.DoesNotExist:
            raise DomainError("Invalid verification token")

        if cls.is_expired(user.verification_token_expires):
            raise DomainError("Verification token has expired")

        user.email_verified = True
        user.verification_token = None
        user.verification_token_expires = None
        user.save(update_fields=["email_verified", "verification_token", "verification_token_expires"])

        ActivityLogService.record(user=user, action="email_verified")
        logger.info("E-mail verified for user id=%s", user.pk)
        return user

    @classmethod
    def resend(cls, email: str) -> str | None:
        """
        Issue a fresh token for an unverified, active e-mail account.

        Returns ``None`` when no such account exists so that callers can
        answer identically either way.
        """
        user = User.objects.filter(
            email=email.strip().lower(),
            is_active=True,
            auth_type=AuthType.EMAIL,
            email_verified=False,
        ).first()
        if user is None:
            return None
        return cls.issue_token(user)


# ═══════════════════════════════════════════════════════════════════
#  Profile Service
# ═══════════════════════════════════════════════════════════════════


class UserProfileService:
    """Self-service profile edits and public wallet lookup."""

    _EDITABLE_FIELDS = ("full_name", "department", "jurisdiction", "badge_number")

    @classmethod
    def update_profile(cls, actor: User, user_id: int, data: dict[str, Any]) -> User:
        """
        Update profile fields of ``user_id``.

        Only the user themself or someone holding ``accounts.change_user``
        may edit a profile.

        Raises
        ------
        PermissionDenied, NotFound
        """
        if actor.pk != user_id and not actor.has_perm(perm_string("accounts", AccountsPerms.CHANGE_USER)):
            raise PermissionDenied("You can only update your own profile")

        try:
            user = User.objects.select_related("role").get(pk=user_id, is_active=True)
        except User.DoesNotExist:
            raise NotFound("User not found")

        changed = []
        for field in cls._EDITABLE_FIELDS:
            if field in data and data[field] is not None:
                setattr(user, field, data[field])
                changed.append(field)

        if changed:
            user.save(update_fields=changed)
            ActivityLogService.record(
                user=actor,
                action="profile_updated",
                details={"user_id": user.pk, "fields": changed},
            )
        return user

    @staticmethod
    def get_by_wallet(wallet_address: str) -> User:
        if not is_valid_wallet(wallet_address):
            raise DomainError("Invalid wallet address")
        try:
            return User.objects.select_related("role").get(
                wallet_address=wallet_address.lower(),
                is_active=True,
            )
        except User.DoesNotExist:
            raise NotFound("User not found")

    @staticmethod
    def reject_self_deletion(user: User) -> None:
        ActivityLogService.record(user=user, action="self_deletion_blocked")
        raise PermissionDenied("Users cannot delete their own accounts. Contact administrator.")


# ═══════════════════════════════════════════════════════════════════
#  Admin user management
# ═══════════════════════════════════════════════════════════════════


def _record_admin_action(admin: User, action_type: str, target: str, details: dict[str, Any]) -> AdminAction:
    action = AdminAction.objects.create(
        admin=admin,
        action_type=action_type,
        target_identity=target,
        details=details,
    )
    logger.info(
        "Admin action [%s] by %s on %s",
        action_type,
        mask_identity(admin.identity),
        mask_identity(target),
    )
    return action


class AdminUserService:
    """User creation, admin creation, deactivation and listing."""

    @staticmethod
    def _ensure_unique(wallet: str | None, email: str | None) -> None:
        if wallet and User.objects.filter(wallet_address=wallet.lower()).exists():
            raise Conflict("Wallet address already registered")
        if email and User.objects.filter(email=email.lower()).exists():
            raise Conflict("Email address already registered")

    @classmethod
    def create_user(cls, admin: User, validated_data: dict[str, Any]) -> User:
        """
        Create a non-admin account on behalf of ``admin``.

        ``user_type`` selects the identity: ``wallet`` requires
        ``wallet_address``; ``email`` requires ``email`` + ``password``.
        Both the new user and the admin receive a notification.
        """
        require_permission(
            admin,
            perm_string("accounts", AccountsPerms.CAN_MANAGE_USERS),
            message="Admin access required",
        )
        role_code = validated_data["role"]
        if role_code == ADMIN:
            raise DomainError("Use the create-admin operation to create administrators")
        if role_code not in ALLOWED_ROLES:
            raise DomainError("Invalid role selected")

        wallet = (validated_data.get("wallet_address") or "").lower() or None
        email = (validated_data.get("email") or "").strip().lower() or None
        cls._ensure_unique(wallet, email)

        is_wallet = validated_data["user_type"] == AuthType.WALLET
        role = RoleResolver.get(role_code)
        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    username=wallet if is_wallet else email,
                    wallet_address=wallet,
                    email=email,
                    password=None if is_wallet else validated_data["password"],
                    full_name=validated_data["full_name"],
                    department=validated_data.get("department") or DEFAULT_DEPARTMENT,
                    jurisdiction=validated_data.get("jurisdiction") or DEFAULT_JURISDICTION,
                    badge_number=validated_data.get("badge_number") or "",
                    auth_type=AuthType.WALLET if is_wallet else AuthType.EMAIL,
                    account_type=AccountType.REAL,
                    created_by=admin.identity,
                    email_verified=not is_wallet,
                    role=role,
                )
        except IntegrityError:
            raise Conflict("A user with this wallet address or email already exists")

        _record_admin_action(
            admin,
            "create_user",
            user.identity,
            {"role": role_code, "user_type": validated_data["user_type"], "full_name": user.full_name},
        )
        NotificationService.create(
            actor=admin,
            recipients=user,
            event_type="user_welcome",
            payload={"role": role_code, "created_by": admin.identity},
        )
        NotificationService.create(
            actor=admin,
            recipients=admin,
            event_type="user_created",
            payload={"full_name": user.full_name, "role": role_code, "user_id": user.pk},
            include_actor=True,
        )
        return user

    @classmethod
    def create_admin(cls, admin: User, validated_data: dict[str, Any]) -> User:
        """
        Create another administrator, capped at
        ``settings.MAX_ACTIVE_ADMINS`` active admins.
        """
        require_permission(
            admin,
            perm_string("accounts", AccountsPerms.CAN_MANAGE_ADMINS),
            message="Admin access required",
        )
        wallet = validated_data["wallet_address"].lower()

        with transaction.atomic():
            admin_role = RoleResolver.get(ADMIN)
            Role.objects.select_for_update().get(pk=admin_role.pk)
            active_admins = User.objects.filter(role=admin_role, is_active=True).count()
            if active_admins >= settings.MAX_ACTIVE_ADMINS:
                raise DomainError("Maximum admin limit reached")

            cls._ensure_unique(wallet, None)
            try:
                new_admin = User.objects.create_user(
                    username=wallet,
                    wallet_address=wallet,
                    full_name=validated_data["full_name"],
                    department="Administration",
                    jurisdiction="System",
                    auth_type=AuthType.WALLET,
                    account_type=AccountType.REAL,
                    created_by=admin.identity,
                    role=admin_role,
                )
            except IntegrityError:
                raise Conflict("Wallet address already registered")

        _record_admin_action(admin, "create_admin", wallet, {"full_name": new_admin.full_name})
        return new_admin

    @staticmethod
    def deactivate_user(admin: User, user_id: int) -> User:
        """
        Soft-delete ``user_id`` (``is_active=False``).

        Raises
        ------
        DomainError
            If an admin targets their own account.
        NotFound
            If the user does not exist.
        """
        require_permission(
            admin,
            perm_string("accounts", AccountsPerms.CAN_MANAGE_USERS),
            message="Admin access required",
        )
        if admin.pk == user_id:
            raise DomainError("Cannot delete your own admin account")

        with transaction.atomic():
            user = lock_for_update(User, user_id, label="User")
            user.is_active = False
            user.save(update_fields=["is_active"])

        _record_admin_action(admin, "delete_user", user.identity, {"user_id": user.pk})
        return user

    @staticmethod
    def list_users(
        admin: User,
        *,
        limit: int = 50,
        offset: int = 0,
        role: str | None = None,
        active_only: bool = True,
    ) -> tuple[QuerySet, int]:
        """Return ``(page, total)`` of users ordered newest first."""
        require_permission(
            admin,
            perm_string("accounts", AccountsPerms.CAN_MANAGE_USERS),
            message="Admin access required",
        )
        qs = User.objects.select_related("role").order_by("-date_joined")
        if role:
            qs = qs.filter(role__name=role)
        if active_only:
            qs = qs.filter(is_active=True)
        total = qs.count()
        return qs[offset:offset + limit], total

    @staticmethod
    def list_actions(admin: User, *, limit: int = 100) -> QuerySet:
        """Most recent admin audit records."""
        require_permission(
            admin,
            perm_string("accounts", AccountsPerms.VIEW_ADMINACTION),
            message="Admin access required",
        )
        return AdminAction.objects.select_related("admin")[:limit]


# ═══════════════════════════════════════════════════════════════════
#  Role change requests
# ═══════════════════════════════════════════════════════════════════


class RoleChangeService:
    """
    Two-admin role changes: one admin raises a request, a *different*
    admin approves or rejects it.
    """

    _PERM = perm_string("accounts", AccountsPerms.CAN_REVIEW_ROLE_CHANGES)

    @classmethod
    def request_change(cls, admin: User, user_id: int, new_role: str, reason: str) -> RoleChangeRequest:
        require_permission(admin, cls._PERM, message="Admin access required")
        if admin.pk == user_id:
            raise DomainError("Cannot change your own role")
        if new_role not in ALL_ROLES:
            raise DomainError("Invalid role selected")

        try:
            user = User.objects.select_related("role").get(pk=user_id, is_active=True)
        except User.DoesNotExist:
            raise NotFound("User not found")

        if user.role_name == new_role:
            raise DomainError("User already has this role")
        if RoleChangeRequest.objects.filter(user=user, status=RoleChangeStatus.PENDING).exists():
            raise Conflict("A pending role change request already exists for this user")

        request = RoleChangeRequest.objects.create(
            user=user,
            requested_by=admin,
            old_role=user.role_name or "",
            new_role=new_role,
            reason=reason,
        )
        _record_admin_action(
            admin,
            "role_change_requested",
            user.identity,
            {"request_id": request.pk, "old_role": request.old_role, "new_role": new_role},
        )
        return request

    @classmethod
    def list_pending(cls, admin: User) -> QuerySet:
        """Pending requests raised by *other* admins."""
        require_permission(admin, cls._PERM, message="Admin access required")
        return (
            RoleChangeRequest.objects
            .filter(status=RoleChangeStatus.PENDING)
            .exclude(requested_by=admin)
            .select_related("user", "requested_by")
        )

    @classmethod
    def _lock_pending(cls, admin: User, request_id: int) -> RoleChangeRequest:
        request = lock_for_update(RoleChangeRequest, request_id, label="Role change request")
        if request.status != RoleChangeStatus.PENDING:
            raise NotFound("Role change request not found or already processed")
        if request.requested_by_id == admin.pk:
            raise PermissionDenied("Cannot approve or reject your own request")
        return request

    @classmethod
    def approve(cls, admin: User, request_id: int) -> RoleChangeRequest:
        require_permission(admin, cls._PERM, message="Admin access required")
        with transaction.atomic():
            request = cls._lock_pending(admin, request_id)
            user = request.user
            user.role = RoleResolver.get(request.new_role)
            user.save(update_fields=["role"])

            request.status = RoleChangeStatus.APPROVED
            request.approved_by = admin
            request.approved_at = timezone.now()
            request.save(update_fields=["status", "approved_by", "approved_at"])

        _record_admin_action(
            admin,
            "role_change_approved",
            user.identity,
            {"request_id": request.pk, "old_role": request.old_role, "new_role": request.new_role},
        )
        NotificationService.create(
            actor=admin,
            recipients=user,
            event_type="role_change_approved",
            payload={"new_role": request.new_role, "old_role": request.old_role},
        )
        return request

    @classmethod
    def reject(cls, admin: User, request_id: int, reason: str) -> RoleChangeRequest:
        require_permission(admin, cls._PERM, message="Admin access required")
        with transaction.atomic():
            request = cls._lock_pending(admin, request_id)
            request.status = RoleChangeStatus.REJECTED
            request.rejected_by = admin
            request.rejected_at = timezone.now()
            request.rejection_reason = reason or ""
            request.save(update_fields=["status", "rejected_by", "rejected_at", "rejection_reason"])

        _record_admin_action(
            admin,
            "role_change_rejected",
            request.user.identity,
            {"request_id": request.pk, "reason": request.rejection_reason},
        )
        NotificationService.create(
            actor=admin,
            recipients=request.requested_by,
            event_type="role_change_rejected",
            payload={"new_role": request.new_role, "user_id": request.user_id},
        )
        return request
