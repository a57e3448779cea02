"""
Accounts app URL configuration.

All routes are namespaced under ``accounts`` and included in the
project-level ``urls.py`` as::

    path('api/', include('accounts.urls')),

Endpoint Map
------------
Authentication
    POST   /auth/wallet/register/            → WalletRegisterView
    POST   /auth/wallet/login/               → WalletLoginView
    POST   /auth/email/register/             → EmailRegisterView
    POST   /auth/email/login/                → EmailLoginView
    POST   /auth/email/verify/               → EmailVerifyView
    POST   /auth/email/resend-verification/  → ResendVerificationView
    POST   /auth/token/refresh/              → TokenRefreshView (SimpleJWT)

Current User / Roles
    GET    /me/                              → MeView
    GET    /roles/                           → RoleListView

Users
    PUT    /users/{id}/profile/              → ProfileUpdateView
    GET    /users/wallet/{wallet}/           → UserByWalletView
    POST   /users/delete-self/               → SelfDeleteView

Administration
    POST   /admin/create-user/               → AdminCreateUserView
    POST   /admin/create-admin/              → AdminCreateAdminView
    POST   /admin/delete-user/               → AdminDeleteUserView
    GET    /admin/users/                     → AdminUserListView
    GET    /admin/actions/                   → AdminActionListView
    POST   /admin/role-change-request/       → RoleChangeRequestView
    GET    /admin/role-change-requests/      → RoleChangeRequestListView
    POST   /admin/role-change-approve/       → RoleChangeApproveView
    POST   /admin/role-change-reject/        → RoleChangeRejectView
    POST   /admin/*                          → AdminCatchAllView (403)
"""

from django.urls import path, re_path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    AdminActionListView,
    AdminCatchAllView,
    AdminCreateAdminView,
    AdminCreateUserView,
    AdminDeleteUserView,
    AdminUserListView,
    EmailLoginView,
    EmailRegisterView,
    EmailVerifyView,
    MeView,
    ProfileUpdateView,
    ResendVerificationView,
    RoleChangeApproveView,
    RoleChangeRejectView,
    RoleChangeRequestListView,
    RoleChangeRequestView,
    RoleListView,
    SelfDeleteView,
    UserByWalletView,
    WalletLoginView,
    WalletRegisterView,
)

app_name = "accounts"

urlpatterns = [
    # ── Authentication ───────────────────────────────────────────────
    path("auth/wallet/register/", WalletRegisterView.as_view(), name="wallet-register"),
    path("auth/wallet/login/", WalletLoginView.as_view(), name="wallet-login"),
    path("auth/email/register/", EmailRegisterView.as_view(), name="email-register"),
    path("auth/email/login/", EmailLoginView.as_view(), name="email-login"),
    path("auth/email/verify/", EmailVerifyView.as_view(), name="email-verify"),
    path(
        "auth/email/resend-verification/",
        ResendVerificationView.as_view(),
        name="email-resend-verification",
    ),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),

    # ── Current User / Roles ─────────────────────────────────────────
    path("me/", MeView.as_view(), name="me"),
    path("roles/", RoleListView.as_view(), name="role-list"),

    # ── Users ────────────────────────────────────────────────────────
    path("users/<int:pk>/profile/", ProfileUpdateView.as_view(), name="user-profile"),
    path("users/wallet/<str:wallet>/", UserByWalletView.as_view(), name="user-by-wallet"),
    path("users/delete-self/", SelfDeleteView.as_view(), name="user-delete-self"),

    # ── Administration ───────────────────────────────────────────────
    path("admin/create-user/", AdminCreateUserView.as_view(), name="admin-create-user"),
    path("admin/create-admin/", AdminCreateAdminView.as_view(), name="admin-create-admin"),
    path("admin/delete-user/", AdminDeleteUserView.as_view(), name="admin-delete-user"),
    path("admin/users/", AdminUserListView.as_view(), name="admin-users"),
    path("admin/actions/", AdminActionListView.as_view(), name="admin-actions"),
    path("admin/role-change-request/", RoleChangeRequestView.as_view(), name="admin-role-change-request"),
    path("admin/role-change-requests/", RoleChangeRequestListView.as_view(), name="admin-role-change-requests"),
    path("admin/role-change-approve/", RoleChangeApproveView.as_view(), name="admin-role-change-approve"),
    path("admin/role-change-reject/", RoleChangeRejectView.as_view(), name="admin-role-change-reject"),
    re_path(r"^admin/.*$", AdminCatchAllView.as_view(), name="admin-catch-all"),
]
