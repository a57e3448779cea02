"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``WalletRegisterView``        — POST /auth/wallet/register/
- ``WalletLoginView``           — POST /auth/wallet/login/
- ``EmailRegisterView``         — POST /auth/email/register/
- ``EmailLoginView``            — POST /auth/email/login/
- ``EmailVerifyView``           — POST /auth/email/verify/
- ``ResendVerificationView``    — POST /auth/email/resend-verification/
- ``MeView``                    — GET  /me/
- ``RoleListView``              — GET  /roles/
- ``ProfileUpdateView``         — PUT  /users/<id>/profile/
- ``UserByWalletView``          — GET  /users/wallet/<wallet>/
- ``SelfDeleteView``            — POST /users/delete-self/
- ``Admin*View``                — /admin/...  (see ``accounts.urls``)
- ``AdminActionListView``       — GET  /admin/actions/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from core.constants import ALLOWED_ROLES
from core.throttling import FailedAttemptsOnlyMixin

from .models import Role
from .serializers import (
    AdminActionSerializer,
    AdminCreateAdminSerializer,
    AdminCreateUserSerializer,
    AdminUserIdSerializer,
    AdminUserListQuerySerializer,
    EmailLoginSerializer,
    EmailRegisterSerializer,
    EmailVerifySerializer,
    ProfileUpdateSerializer,
    PublicUserSerializer,
    ResendVerificationSerializer,
    RoleChangeDecisionSerializer,
    RoleChangeRequestCreateSerializer,
    RoleChangeRequestSerializer,
    RoleSerializer,
    UserDetailSerializer,
    WalletLoginSerializer,
    WalletRegisterSerializer,
)
from .services import (
    AdminUserService,
    AuthenticationService,
    EmailVerificationService,
    RoleChangeService,
    UserProfileService,
    UserRegistrationService,
)


def _auth_payload(user, message: str | None = None) -> dict:
    payload = {"success": True}
    if message:
        payload["message"] = message
    payload.update(AuthenticationService.issue_tokens(user))
    payload["user"] = UserDetailSerializer(user).data
    return payload


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class WalletRegisterView(FailedAttemptsOnlyMixin, APIView):
    """
    POST /api/auth/wallet/register/

    Public endpoint.  Registers a wallet identity with a self-selected,
    non-admin role.  Department/jurisdiction default to ``General``.
    """

    permission_classes = [AllowAny]
    throttle_scope = "auth"

    @extend_schema(
        summary="Register with a wallet address",
        request=WalletRegisterSerializer,
        responses={
            201: OpenApiResponse(description="Registered; token pair + user."),
            400: OpenApiResponse(description="Invalid wallet address or role."),
            403: OpenApiResponse(description="Administrator role requested."),
            409: OpenApiResponse(description="Wallet already registered."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = WalletRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_wallet_user(serializer.validated_data)
        return Response(
            _auth_payload(user, "Registration successful"),
            status=status.HTTP_201_CREATED,
        )


class WalletLoginView(FailedAttemptsOnlyMixin, APIView):
    """
    POST /api/auth/wallet/login/

    Public endpoint.  Resolves an active account by wallet address and
    issues a JWT pair.
    """

    permission_classes = [AllowAny]
    throttle_scope = "auth"

    @extend_schema(
        summary="Log in with a wallet address",
        request=WalletLoginSerializer,
        responses={
            200: OpenApiResponse(description="Token pair + user."),
            400: OpenApiResponse(description="Missing or malformed wallet address."),
            401: OpenApiResponse(description="Wallet address not registered."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = WalletLoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AuthenticationService.wallet_login(serializer.validated_data["wallet_address"])
        return Response(_auth_payload(user), status=status.HTTP_200_OK)


class EmailRegisterView(FailedAttemptsOnlyMixin, APIView):
    """
    POST /api/auth/email/register/

    Public endpoint.  Creates an e-mail/password account and issues an
    e-mail verification token (valid 24h).
    """

    permission_classes = [AllowAny]
    throttle_scope = "auth"

    @extend_schema(
        summary="Register with e-mail and password",
        request=EmailRegisterSerializer,
        responses={
            201: OpenApiResponse(description="Registered; token pair + user."),
            400: OpenApiResponse(description="Missing fields, short password or invalid role."),
            403: OpenApiResponse(description="Administrator role requested."),
            409: OpenApiResponse(description="E-mail already registered."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = EmailRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_email_user(serializer.validated_data)
        return Response(
            _auth_payload(user, "Registration successful"),
            status=status.HTTP_201_CREATED,
        )


class EmailLoginView(FailedAttemptsOnlyMixin, APIView):
    """POST /api/auth/email/login/ — e-mail + password login."""

    permission_classes = [AllowAny]
    throttle_scope = "auth"

    @extend_schema(
        summary="Log in with e-mail and password",
        request=EmailLoginSerializer,
        responses={
            200: OpenApiResponse(description="Token pair + user."),
            401: OpenApiResponse(description="Invalid email or password."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = EmailLoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AuthenticationService.email_login(
            serializer.validated_data["email"],
            serializer.validated_data["password"],
            request=request,
        )
        return Response(_auth_payload(user), status=status.HTTP_200_OK)


class EmailVerifyView(FailedAttemptsOnlyMixin, APIView):
    """POST /api/auth/email/verify/ — consume a verification token."""

    permission_classes = [AllowAny]
    throttle_scope = "auth"

    @extend_schema(
        summary="Verify an e-mail address",
        request=EmailVerifySerializer,
        responses={
            200: OpenApiResponse(description="E-mail verified."),
            400: OpenApiResponse(description="Invalid or expired token."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = EmailVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = EmailVerificationService.verify(serializer.validated_data["token"])
        return Response(
            {"success": True, "message": "Email verified successfully", "user": UserDetailSerializer(user).data},
            status=status.HTTP_200_OK,
        )


class ResendVerificationView(FailedAttemptsOnlyMixin, APIView):
    """
    POST /api/auth/email/resend-verification/

    Always answers 200 so the endpoint cannot be used to discover which
    addresses are registered.
    """

    permission_classes = [AllowAny]
    throttle_scope = "auth"

    @extend_schema(
        summary="Re-issue an e-mail verification token",
        request=ResendVerificationSerializer,
        responses={200: OpenApiResponse(description="Token re-issued if the account exists.")},
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = ResendVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        EmailVerificationService.resend(serializer.validated_data["email"])
        return Response(
            {"success": True, "message": "If the account exists, a new verification link has been issued"},
            status=status.HTTP_200_OK,
        )


# ═══════════════════════════════════════════════════════════════════
#  Current user / roles
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """GET /api/me/ — the authenticated user's profile and permissions."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: UserDetailSerializer},
        tags=["Users"],
    )
    def get(self, request: Request) -> Response:
        return Response(UserDetailSerializer(request.user).data, status=status.HTTP_200_OK)


class RoleListView(APIView):
    """GET /api/roles/ — roles offered during self-registration."""

    permission_classes = [AllowAny]

    @extend_schema(
        summary="List registrable roles",
        responses={200: RoleSerializer(many=True)},
        tags=["Users"],
    )
    def get(self, request: Request) -> Response:
        roles = Role.objects.filter(name__in=ALLOWED_ROLES)
        return Response(
            {"allowedRoles": list(ALLOWED_ROLES), "roles": RoleSerializer(roles, many=True).data},
            status=status.HTTP_200_OK,
        )


# ═══════════════════════════════════════════════════════════════════
#  User Views
# ═══════════════════════════════════════════════════════════════════


class ProfileUpdateView(APIView):
    """PUT /api/users/<id>/profile/ — edit own profile (or any, as admin)."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Update a user profile",
        request=ProfileUpdateSerializer,
        responses={
            200: UserDetailSerializer,
            403: OpenApiResponse(description="Not your profile."),
            404: OpenApiResponse(description="User not found."),
        },
        tags=["Users"],
    )
    def put(self, request: Request, pk: int) -> Response:
        serializer = ProfileUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserProfileService.update_profile(request.user, pk, serializer.validated_data)
        return Response(
            {"success": True, "user": UserDetailSerializer(user).data},
            status=status.HTTP_200_OK,
        )


class UserByWalletView(APIView):
    """GET /api/users/wallet/<wallet>/ — public profile for a wallet."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "api"

    @extend_schema(
        summary="Look up a user by wallet address",
        responses={200: PublicUserSerializer, 400: OpenApiResponse(), 404: OpenApiResponse()},
        tags=["Users"],
    )
    def get(self, request: Request, wallet: str) -> Response:
        user = UserProfileService.get_by_wallet(wallet)
        return Response({"success": True, "user": PublicUserSerializer(user).data})


class SelfDeleteView(APIView):
    """POST /api/users/delete-self/ — always refused."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Self-deletion (not permitted)",
        request=None,
        responses={403: OpenApiResponse(description="Users cannot delete their own accounts.")},
        tags=["Users"],
    )
    def post(self, request: Request) -> Response:
        UserProfileService.reject_self_deletion(request.user)
        return Response(status=status.HTTP_403_FORBIDDEN)  # pragma: no cover


# ═══════════════════════════════════════════════════════════════════
#  Admin Views
# ═══════════════════════════════════════════════════════════════════


class _AdminView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "admin"


class AdminCreateUserView(_AdminView):
    """POST /api/admin/create-user/"""

    @extend_schema(
        summary="Create a user account",
        request=AdminCreateUserSerializer,
        responses={201: UserDetailSerializer, 403: OpenApiResponse(), 409: OpenApiResponse()},
        tags=["Admin"],
    )
    def post(self, request: Request) -> Response:
        serializer = AdminCreateUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AdminUserService.create_user(request.user, serializer.validated_data)
        return Response(
            {"success": True, "message": "User created successfully", "user": UserDetailSerializer(user).data},
            status=status.HTTP_201_CREATED,
        )


class AdminCreateAdminView(_AdminView):
    """POST /api/admin/create-admin/"""

    @extend_schema(
        summary="Create an administrator",
        request=AdminCreateAdminSerializer,
        responses={201: UserDetailSerializer, 400: OpenApiResponse(description="Admin limit reached.")},
        tags=["Admin"],
    )
    def post(self, request: Request) -> Response:
        serializer = AdminCreateAdminSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        admin = AdminUserService.create_admin(request.user, serializer.validated_data)
        return Response(
            {"success": True, "message": "Administrator created successfully", "user": UserDetailSerializer(admin).data},
            status=status.HTTP_201_CREATED,
        )


class AdminDeleteUserView(_AdminView):
    """POST /api/admin/delete-user/ — soft delete."""

    @extend_schema(
        summary="Deactivate a user",
        request=AdminUserIdSerializer,
        responses={200: OpenApiResponse(), 400: OpenApiResponse(), 404: OpenApiResponse()},
        tags=["Admin"],
    )
    def post(self, request: Request) -> Response:
        serializer = AdminUserIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AdminUserService.deactivate_user(request.user, serializer.validated_data["user_id"])
        return Response({"success": True, "message": "User deactivated", "userId": user.pk})


class AdminUserListView(_AdminView):
    """GET /api/admin/users/?limit=&offset=&role=&active_only="""

    @extend_schema(
        summary="List users",
        parameters=[AdminUserListQuerySerializer],
        responses={200: UserDetailSerializer(many=True)},
        tags=["Admin"],
    )
    def get(self, request: Request) -> Response:
        query = AdminUserListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        users, total = AdminUserService.list_users(request.user, **query.validated_data)
        return Response(
            {
                "success": True,
                "users": UserDetailSerializer(users, many=True).data,
                "total": total,
                "limit": query.validated_data["limit"],
                "offset": query.validated_data["offset"],
            }
        )


class RoleChangeRequestView(_AdminView):
    """POST /api/admin/role-change-request/"""

    @extend_schema(
        summary="Request a role change",
        request=RoleChangeRequestCreateSerializer,
        responses={201: RoleChangeRequestSerializer},
        tags=["Admin"],
    )
    def post(self, request: Request) -> Response:
        serializer = RoleChangeRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        change = RoleChangeService.request_change(
            request.user,
            serializer.validated_data["user_id"],
            serializer.validated_data["new_role"],
            serializer.validated_data["reason"],
        )
        return Response(
            {"success": True, "request": RoleChangeRequestSerializer(change).data},
            status=status.HTTP_201_CREATED,
        )


class RoleChangeRequestListView(_AdminView):
    """GET /api/admin/role-change-requests/ — pending, raised by others."""

    @extend_schema(
        summary="List pending role change requests",
        responses={200: RoleChangeRequestSerializer(many=True)},
        tags=["Admin"],
    )
    def get(self, request: Request) -> Response:
        pending = RoleChangeService.list_pending(request.user)
        return Response({"success": True, "requests": RoleChangeRequestSerializer(pending, many=True).data})


class RoleChangeApproveView(_AdminView):
    """POST /api/admin/role-change-approve/"""

    @extend_schema(
        summary="Approve a role change request",
        request=RoleChangeDecisionSerializer,
        responses={200: RoleChangeRequestSerializer},
        tags=["Admin"],
    )
    def post(self, request: Request) -> Response:
        serializer = RoleChangeDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        change = RoleChangeService.approve(request.user, serializer.validated_data["request_id"])
        return Response({"success": True, "request": RoleChangeRequestSerializer(change).data})


class RoleChangeRejectView(_AdminView):
    """POST /api/admin/role-change-reject/"""

    @extend_schema(
        summary="Reject a role change request",
        request=RoleChangeDecisionSerializer,
        responses={200: RoleChangeRequestSerializer},
        tags=["Admin"],
    )
    def post(self, request: Request) -> Response:
        serializer = RoleChangeDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        change = RoleChangeService.reject(
            request.user,
            serializer.validated_data["request_id"],
            serializer.validated_data["reason"],
        )
        return Response({"success": True, "request": RoleChangeRequestSerializer(change).data})


class AdminCatchAllView(APIView):
    """Any other POST under /api/admin/ is refused outright."""

    permission_classes = [AllowAny]

    @extend_schema(exclude=True)
    def post(self, request: Request, *args, **kwargs) -> Response:
        return Response(
            {"detail": "Unauthorized admin operation"},
            status=status.HTTP_403_FORBIDDEN,
        )


class AdminActionListView(_AdminView):
    """GET /api/admin/actions/?limit=100 — admin audit trail."""

    @extend_schema(
        summary="List recent admin actions",
        responses={200: AdminActionSerializer(many=True)},
        tags=["Admin"],
    )
    def get(self, request: Request) -> Response:
        try:
            limit = min(max(int(request.query_params.get("limit", 100)), 1), 500)
        except ValueError:
            limit = 100
        actions = AdminUserService.list_actions(request.user, limit=limit)
        return Response({"success": True, "actions": AdminActionSerializer(actions, many=True).data})
