"""
Accounts app serializers.

Request serializers accept the camelCase field names used on the wire
(``walletAddress``, ``fullName`` …) and map them onto model field names
through ``source`` so that ``validated_data`` is snake_case.  **No
business logic** lives here — domain rules (admin role refusal,
uniqueness, caps) are enforced in ``services.py``.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model
from rest_framework import serializers

from core.constants import is_valid_wallet

from .models import AdminAction, AuthType, Role, RoleChangeRequest

User = get_user_model()


def _validate_wallet(value: str) -> str:
    if not is_valid_wallet(value):
        raise serializers.ValidationError("Invalid wallet address")
    return value.lower()


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class WalletRegisterSerializer(serializers.Serializer):
    walletAddress = serializers.CharField(source="wallet_address", validators=[_validate_wallet])
    fullName = serializers.CharField(source="full_name", max_length=255)
    role = serializers.CharField(max_length=50)
    department = serializers.CharField(max_length=120, required=False, allow_blank=True)
    jurisdiction = serializers.CharField(max_length=120, required=False, allow_blank=True)
    badgeNumber = serializers.CharField(
        source="badge_number", max_length=50, required=False, allow_blank=True,
    )

    def validate_walletAddress(self, value: str) -> str:
        return value.lower()


class WalletLoginSerializer(serializers.Serializer):
    walletAddress = serializers.CharField(
        source="wallet_address",
        error_messages={"required": "Wallet address is required"},
    )


class EmailRegisterSerializer(serializers.Serializer):
    """
    E-mail registration payload.

    ``password`` must be at least 6 characters; it is hashed by the
    service via ``create_user``.
    """

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        min_length=6,
        style={"input_type": "password"},
        error_messages={"min_length": "Password must be at least 6 characters long"},
    )
    fullName = serializers.CharField(source="full_name", max_length=255)
    role = serializers.CharField(max_length=50)
    department = serializers.CharField(max_length=120, required=False, allow_blank=True)
    jurisdiction = serializers.CharField(max_length=120, required=False, allow_blank=True)


class EmailLoginSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField(write_only=True, style={"input_type": "password"})


class EmailVerifySerializer(serializers.Serializer):
    token = serializers.CharField(max_length=64)


class ResendVerificationSerializer(serializers.Serializer):
    email = serializers.EmailField()


# ═══════════════════════════════════════════════════════════════════
#  User Serializers
# ═══════════════════════════════════════════════════════════════════


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Full user representation used by login, registration, ``/me`` and
    the admin listing.

    ``permissions`` is a flat list such as
    ``['cases.view_case', 'evidence.add_evidence', ...]``.
    """

    role = serializers.CharField(source="role_name", read_only=True, default=None)
    permissions = serializers.ListField(
        child=serializers.CharField(),
        source="permissions_list",
        read_only=True,
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "wallet_address",
            "email",
            "full_name",
            "role",
            "department",
            "jurisdiction",
            "badge_number",
            "auth_type",
            "account_type",
            "created_by",
            "email_verified",
            "is_active",
            "date_joined",
            "permissions",
        ]
        read_only_fields = fields


class PublicUserSerializer(serializers.ModelSerializer):
    """Subset returned by the wallet lookup endpoint."""

    role = serializers.CharField(source="role_name", read_only=True, default=None)

    class Meta:
        model = User
        fields = [
            "id",
            "wallet_address",
            "full_name",
            "role",
            "department",
            "jurisdiction",
            "badge_number",
        ]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.Serializer):
    fullName = serializers.CharField(source="full_name", max_length=255, required=False)
    department = serializers.CharField(max_length=120, required=False, allow_blank=True)
    jurisdiction = serializers.CharField(max_length=120, required=False, allow_blank=True)
    badgeNumber = serializers.CharField(
        source="badge_number", max_length=50, required=False, allow_blank=True,
    )


# ═══════════════════════════════════════════════════════════════════
#  Admin Serializers
# ═══════════════════════════════════════════════════════════════════


class AdminCreateUserSerializer(serializers.Serializer):
    """
    Admin-side account creation.

    ``userType == "wallet"`` requires ``walletAddress``;
    ``userType == "email"`` requires ``email`` and ``password``.
    """

    userType = serializers.ChoiceField(source="user_type", choices=AuthType.choices, default=AuthType.WALLET)
    walletAddress = serializers.CharField(source="wallet_address", required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    password = serializers.CharField(write_only=True, required=False, allow_blank=True)
    fullName = serializers.CharField(source="full_name", max_length=255)
    role = serializers.CharField(max_length=50)
    department = serializers.CharField(max_length=120, required=False, allow_blank=True)
    jurisdiction = serializers.CharField(max_length=120, required=False, allow_blank=True)
    badgeNumber = serializers.CharField(
        source="badge_number", max_length=50, required=False, allow_blank=True,
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs["user_type"] == AuthType.WALLET:
            wallet = attrs.get("wallet_address") or ""
            if not is_valid_wallet(wallet):
                raise serializers.ValidationError({"walletAddress": "Invalid wallet address"})
            attrs["wallet_address"] = wallet.lower()
        else:
            if not attrs.get("email"):
                raise serializers.ValidationError({"email": "Email is required for email users"})
            if len(attrs.get("password") or "") < 6:
                raise serializers.ValidationError(
                    {"password": "Password must be at least 6 characters long"}
                )
        return attrs


class AdminCreateAdminSerializer(serializers.Serializer):
    walletAddress = serializers.CharField(source="wallet_address", validators=[_validate_wallet])
    fullName = serializers.CharField(source="full_name", max_length=255)


class AdminUserIdSerializer(serializers.Serializer):
    userId = serializers.IntegerField(source="user_id", min_value=1)


class AdminUserListQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=500, default=50)
    offset = serializers.IntegerField(min_value=0, default=0)
    role = serializers.CharField(required=False, allow_blank=True)
    active_only = serializers.BooleanField(default=True)


class RoleChangeRequestCreateSerializer(serializers.Serializer):
    userId = serializers.IntegerField(source="user_id", min_value=1)
    newRole = serializers.CharField(source="new_role", max_length=50)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class RoleChangeDecisionSerializer(serializers.Serializer):
    requestId = serializers.IntegerField(source="request_id", min_value=1)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class RoleChangeRequestSerializer(serializers.ModelSerializer):
    user_identity = serializers.CharField(source="user.identity", read_only=True)
    user_full_name = serializers.CharField(source="user.full_name", read_only=True)
    requested_by_identity = serializers.CharField(source="requested_by.identity", read_only=True)

    class Meta:
        model = RoleChangeRequest
        fields = [
            "id",
            "user",
            "user_identity",
            "user_full_name",
            "requested_by",
            "requested_by_identity",
            "old_role",
            "new_role",
            "reason",
            "status",
            "approved_by",
            "approved_at",
            "rejected_by",
            "rejected_at",
            "rejection_reason",
            "created_at",
        ]
        read_only_fields = fields


class AdminActionSerializer(serializers.ModelSerializer):
    class Meta:
        model = AdminAction
        fields = ["id", "admin", "action_type", "target_identity", "details", "timestamp"]
        read_only_fields = fields


class RoleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Role
        fields = ["id", "name", "description", "hierarchy_level"]
        read_only_fields = fields
