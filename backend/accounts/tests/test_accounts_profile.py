"""
Profile, lookup and role-catalogue endpoints, exercised through real JWT
headers from the shared ``auth_header`` fixture.

    GET  /api/me/
    GET  /api/roles/
    PUT  /api/users/{id}/profile/
    GET  /api/users/wallet/{wallet}/
"""

from __future__ import annotations

from io import StringIO

import pytest
from django.core.management import call_command
from django.urls import reverse
from rest_framework import status

from accounts.models import Role
from core.models import ActivityLog

WALLET = "0x" + "c4" * 20


@pytest.fixture()
def roles(db):
    call_command("setup_rbac", stdout=StringIO())
    return {role.name: role for role in Role.objects.all()}


def test_me_with_bearer_token(api_client, auth_header, roles):
    header = auth_header(wallet_address=WALLET, full_name="Field Officer", role=roles["investigator"])
    api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])

    resp = api_client.get(reverse("accounts:me"))

    assert resp.status_code == status.HTTP_200_OK
    assert resp.data["wallet_address"] == WALLET
    assert resp.data["role"] == "investigator"
    assert "evidence.add_evidence" in resp.data["permissions"]


def test_me_rejects_garbage_token(api_client):
    api_client.credentials(HTTP_AUTHORIZATION="Bearer nope")

    resp = api_client.get(reverse("accounts:me"))

    assert resp.status_code == status.HTTP_401_UNAUTHORIZED


def test_roles_catalogue_is_public_and_hides_admin(api_client, roles):
    resp = api_client.get(reverse("accounts:role-list"))

    assert resp.status_code == status.HTTP_200_OK
    assert "admin" not in resp.data["allowedRoles"]
    assert {r["name"] for r in resp.data["roles"]} == set(resp.data["allowedRoles"])


class TestProfileUpdate:

    def test_user_edits_own_profile(self, api_client, create_user, roles):
        user = create_user(wallet_address=WALLET, role=roles["forensic_analyst"])
        api_client.force_authenticate(user=user)

        resp = api_client.put(
            reverse("accounts:user-profile", kwargs={"pk": user.pk}),
            {"fullName": "Dr. Lab", "department": "Forensics", "badgeNumber": "F-17"},
            format="json",
        )

        assert resp.status_code == status.HTTP_200_OK, resp.data
        assert resp.data["user"]["full_name"] == "Dr. Lab"
        assert resp.data["user"]["badge_number"] == "F-17"
        log = ActivityLog.objects.get(action="profile_updated")
        assert log.user == user

    def test_cannot_edit_someone_else(self, api_client, create_user, roles):
        me = create_user(role=roles["investigator"])
        other = create_user(role=roles["investigator"])
        api_client.force_authenticate(user=me)

        resp = api_client.put(
            reverse("accounts:user-profile", kwargs={"pk": other.pk}), {"fullName": "Hijacked"}, format="json"
        )

        assert resp.status_code == status.HTTP_403_FORBIDDEN
        other.refresh_from_db()
        assert other.full_name != "Hijacked"

    def test_admin_edits_any_profile(self, api_client, create_user, roles):
        admin = create_user(role=roles["admin"])
        other = create_user(role=roles["auditor"])
        api_client.force_authenticate(user=admin)

        resp = api_client.put(
            reverse("accounts:user-profile", kwargs={"pk": other.pk}), {"jurisdiction": "County"}, format="json"
        )

        assert resp.status_code == status.HTTP_200_OK
        other.refresh_from_db()
        assert other.jurisdiction == "County"

    def test_admin_editing_unknown_user(self, api_client, create_user, roles):
        api_client.force_authenticate(user=create_user(role=roles["admin"]))

        resp = api_client.put(reverse("accounts:user-profile", kwargs={"pk": 999999}), {}, format="json")

        assert resp.status_code == status.HTTP_404_NOT_FOUND


class TestWalletLookup:

    def test_lookup_is_case_insensitive(self, api_client, create_user, roles):
        target = create_user(wallet_address=WALLET, full_name="Lookup Target", role=roles["auditor"])
        api_client.force_authenticate(user=create_user(role=roles["investigator"]))

        resp = api_client.get(reverse("accounts:user-by-wallet", kwargs={"wallet": WALLET.upper().replace("0X", "0x")}))

        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["user"]["id"] == target.pk
        assert "email" not in resp.data["user"]

    def test_malformed_wallet(self, api_client, create_user, roles):
        api_client.force_authenticate(user=create_user(role=roles["investigator"]))

        resp = api_client.get(reverse("accounts:user-by-wallet", kwargs={"wallet": "0x123"}))

        assert resp.status_code == status.HTTP_400_BAD_REQUEST

    def test_inactive_wallet_is_hidden(self, api_client, create_user, roles):
        create_user(wallet_address=WALLET, is_active=False)
        api_client.force_authenticate(user=create_user(role=roles["investigator"]))

        resp = api_client.get(reverse("accounts:user-by-wallet", kwargs={"wallet": WALLET}))

        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_wallet_with_trailing_newline_is_malformed(self, api_client, create_user, roles):
        create_user(wallet_address=WALLET, role=roles["auditor"])
        api_client.force_authenticate(user=create_user(role=roles["investigator"]))
        url = reverse("accounts:user-by-wallet", kwargs={"wallet": WALLET}).replace(WALLET, WALLET + "%0A")

        resp = api_client.get(url)

        assert resp.status_code == status.HTTP_400_BAD_REQUEST
