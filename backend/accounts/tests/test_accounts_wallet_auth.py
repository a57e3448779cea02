"""
Integration tests — wallet registration and login.

Endpoints under test:
    POST /api/auth/wallet/register/   (accounts:wallet-register)
    POST /api/auth/wallet/login/      (accounts:wallet-login)
    GET  /api/me/                     (accounts:me)

Failed login attempts share the ``auth`` throttle budget; successful ones
do not.

Registration payload:  {"walletAddress", "fullName", "role", ...}
Success response:      {"success": true, "access", "refresh", "user": {...}}
"""

from __future__ import annotations

from io import StringIO

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from core.models import ActivityLog
from core.throttling import WindowedScopedRateThrottle

User = get_user_model()

_WALLET = "0x" + "A1" * 20


class TestWalletRegistration(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = reverse("accounts:wallet-register")

    def _register(self, **overrides):
        payload = {
            "walletAddress": _WALLET,
            "fullName": "Dana Investigator",
            "role": "investigator",
        }
        payload.update(overrides)
        return self.client.post(self.url, payload, format="json")

    def test_register_returns_tokens_and_lowercases_wallet(self):
        resp = self._register()

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertIn("access", resp.data)
        self.assertIn("refresh", resp.data)
        self.assertEqual(resp.data["user"]["wallet_address"], _WALLET.lower())
        self.assertEqual(resp.data["user"]["role"], "investigator")
        self.assertEqual(resp.data["user"]["department"], "General")

        user = User.objects.get(wallet_address=_WALLET.lower())
        self.assertEqual(user.created_by, "self_registration")
        self.assertTrue(
            ActivityLog.objects.filter(user=user, action="wallet_registration").exists()
        )

    def test_register_grants_role_permissions(self):
        resp = self._register()

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertIn("evidence.add_evidence", resp.data["user"]["permissions"])

    def test_duplicate_wallet_conflict(self):
        self._register()
        resp = self._register(fullName="Someone Else")

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["detail"], "Wallet address already registered")

    def test_admin_role_is_refused(self):
        resp = self._register(role="admin")

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(User.objects.filter(wallet_address=_WALLET.lower()).exists())

    def test_unknown_role_is_rejected(self):
        resp = self._register(role="sheriff")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["detail"], "Invalid role selected")

    def test_malformed_wallet_is_rejected(self):
        resp = self._register(walletAddress="0x1234")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("walletAddress", resp.data)


class TestWalletLogin(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        from accounts.models import Role

        cls.user = User.objects.create_user(
            username=_WALLET.lower(),
            wallet_address=_WALLET,
            full_name="Login Tester",
            role=Role.objects.get(name="auditor"),
        )

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = reverse("accounts:wallet-login")

    def test_login_is_case_insensitive(self):
        resp = self.client.post(self.url, {"walletAddress": _WALLET.upper().replace("0X", "0x")}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["user"]["id"], self.user.pk)
        self.assertTrue(ActivityLog.objects.filter(user=self.user, action="wallet_login").exists())

    def test_unknown_wallet_is_unauthorized(self):
        resp = self.client.post(self.url, {"walletAddress": "0x" + "0" * 40}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(resp.data["detail"], "Wallet address not registered")

    def test_inactive_user_cannot_login(self):
        User.objects.filter(pk=self.user.pk).update(is_active=False)

        resp = self.client.post(self.url, {"walletAddress": _WALLET}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_missing_wallet_is_bad_request(self):
        resp = self.client.post(self.url, {}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_token_authenticates_me(self):
        login = self.client.post(self.url, {"walletAddress": _WALLET}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")

        resp = self.client.get(reverse("accounts:me"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["role"], "auditor")
        self.assertIn("evidence.can_audit_evidence", resp.data["permissions"])

    def test_me_requires_authentication(self):
        resp = self.client.get(reverse("accounts:me"))

        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


class TestLoginThrottle(TestCase):
    """The ``auth`` scope only spends its budget on failed attempts."""

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        from accounts.models import Role

        User.objects.create_user(
            username=_WALLET.lower(),
            wallet_address=_WALLET,
            role=Role.objects.get(name="auditor"),
        )

    def setUp(self):
        cache.clear()
        self.addCleanup(cache.clear)
        self.client = APIClient()
        self.url = reverse("accounts:wallet-login")
        self.limit, _ = WindowedScopedRateThrottle().parse_rate(WindowedScopedRateThrottle.THROTTLE_RATES["auth"])

    def test_successful_logins_are_not_counted(self):
        codes = [
            self.client.post(self.url, {"walletAddress": _WALLET}, format="json").status_code
            for _ in range(self.limit + 1)
        ]

        self.assertEqual(codes, [status.HTTP_200_OK] * (self.limit + 1))

    def test_failed_logins_are_throttled(self):
        codes = [
            self.client.post(self.url, {"walletAddress": "0x" + "0" * 40}, format="json").status_code
            for _ in range(self.limit + 1)
        ]

        self.assertEqual(codes[: self.limit], [status.HTTP_401_UNAUTHORIZED] * self.limit)
        self.assertEqual(codes[-1], status.HTTP_429_TOO_MANY_REQUESTS)

    def test_success_after_failures_keeps_earlier_failures(self):
        unknown = {"walletAddress": "0x" + "0" * 40}
        for _ in range(self.limit - 1):
            self.client.post(self.url, unknown, format="json")

        self.assertEqual(self.client.post(self.url, {"walletAddress": _WALLET}, format="json").status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.post(self.url, unknown, format="json").status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(self.client.post(self.url, unknown, format="json").status_code, status.HTTP_429_TOO_MANY_REQUESTS)
