"""
Smoke tests — verify that Django boots, URL routing resolves, and
the core domain modules behave as the services expect.

Only ``TestURLRouting`` touches Django internals; nothing here needs a
database.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from django.urls import resolve, reverse


# ════════════════════════════════════════════════════════════════════
#  URL Routing Smoke Tests
# ════════════════════════════════════════════════════════════════════

class TestURLRouting:
    """Ensure every app's named URLs land under ``/api/``."""

    EXPECTED_URLS = [
        # (url_name, expected_path)
        ("accounts:wallet-login",       "/api/auth/wallet/login/"),
        ("accounts:me",                 "/api/me/"),
        ("case-list",                   "/api/cases/"),
        ("case-status-list",            "/api/case-statuses/"),
        ("evidence-list",               "/api/evidence/"),
        ("evidence-upload",             "/api/evidence/upload/"),
        ("tag-list",                    "/api/tags/"),
        ("evidence-filter-by-tags",     "/api/evidence/filter-by-tags/"),
        ("retention-policy-list",       "/api/retention-policies/"),
        ("evidence-expiry",             "/api/evidence/expiry/"),
        ("timeline-export-pdf",         "/api/timeline/export-pdf/"),
        ("blockchain-status",           "/api/blockchain/status/"),
        ("blockchain-estimate-gas",     "/api/blockchain/estimate-gas/"),
        ("notification-list",           "/api/notifications/"),
        ("activity-create",             "/api/activity/"),
        ("health",                      "/api/health/"),
    ]

    @pytest.mark.parametrize("url_name,expected_path", EXPECTED_URLS)
    def test_url_reverses(self, url_name: str, expected_path: str):
        assert reverse(url_name) == expected_path

    @pytest.mark.parametrize("url_name,expected_path", EXPECTED_URLS)
    def test_path_resolves_to_view(self, url_name: str, expected_path: str):
        match = resolve(expected_path)
        assert match.func is not None

    def test_explicit_evidence_paths_win_over_detail_route(self):
        """``/api/evidence/expiry/`` must not be taken for an evidence id."""
        assert resolve("/api/evidence/expiry/").url_name == "evidence-expiry"
        assert resolve("/api/evidence/12/").url_name == "evidence-detail"


# ════════════════════════════════════════════════════════════════════
#  Exception Behaviour Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptions:
    """Unit tests for domain exception classes."""

    def test_hierarchy(self):
        from core.domain.exceptions import (
            AuthenticationFailed,
            Conflict,
            DomainError,
            ExternalServiceError,
            InvalidTransition,
            NotFound,
            PermissionDenied,
        )
        assert issubclass(InvalidTransition, Conflict)
        for exc in (AuthenticationFailed, Conflict, ExternalServiceError, NotFound, PermissionDenied):
            assert issubclass(exc, DomainError)

    def test_ledger_errors_are_external(self):
        from core.domain.exceptions import ExternalServiceError
        from ledger.exceptions import IPFSError, LedgerError, LedgerNotConfigured

        assert issubclass(LedgerNotConfigured, LedgerError)
        assert issubclass(LedgerError, ExternalServiceError)
        assert issubclass(IPFSError, ExternalServiceError)
        assert str(LedgerNotConfigured()) == "Blockchain not configured"

    def test_invalid_transition_structured(self):
        from core.domain.exceptions import InvalidTransition

        err = InvalidTransition(current="open", target="open")
        assert str(err) == "Invalid state transition from 'open' to 'open'."
        assert err.current == "open"
        assert err.target == "open"

    def test_invalid_transition_plain_message(self):
        from core.domain.exceptions import InvalidTransition

        err = InvalidTransition("Case already has this status")
        assert str(err) == "Case already has this status"


# ════════════════════════════════════════════════════════════════════
#  Access / Activity Helper Unit Tests
# ════════════════════════════════════════════════════════════════════

class TestAccessHelpers:
    """Unit tests for core.domain.access helpers."""

    def test_require_permission_any_of(self):
        from core.domain.access import require_permission

        user = MagicMock()
        user.has_perm.side_effect = lambda perm: perm == "evidence.view_evidence"

        require_permission(user, "evidence.add_evidence", "evidence.view_evidence")

    def test_require_permission_custom_message(self):
        from core.domain.access import require_permission
        from core.domain.exceptions import PermissionDenied

        user = MagicMock()
        user.has_perm.return_value = False

        with pytest.raises(PermissionDenied, match="Admin access required"):
            require_permission(user, "accounts.can_manage_users", message="Admin access required")

    def test_superuser_without_role_counts_as_admin(self):
        from core.domain.access import get_user_role_name

        user = MagicMock(is_authenticated=True, is_superuser=True, role=None)
        assert get_user_role_name(user) == "admin"

    def test_anonymous_has_no_role(self):
        from core.domain.access import get_user_role_name

        user = MagicMock(is_authenticated=False)
        assert get_user_role_name(user) is None


class TestActivityHelpers:

    def test_identity_prefers_wallet(self):
        from core.domain.activity import identity_of

        user = MagicMock(is_authenticated=True, wallet_address="0xabc", email="a@b.c", username="u")
        assert identity_of(user) == "0xabc"

        user.wallet_address = None
        assert identity_of(user) == "a@b.c"

    def test_mask_identity(self):
        from core.domain.activity import mask_identity

        assert mask_identity("0x1234567890abcdef") == "0x123456..."
        assert mask_identity("short") == "short"
        assert mask_identity("") == ""
