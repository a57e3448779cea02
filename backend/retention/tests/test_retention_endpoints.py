"""
Integration tests — retention policies, expiry, legal holds and the
timeline PDF.

Endpoints under test:
    GET/POST /api/retention-policies/              (retention-policy-list)
    GET      /api/evidence/expiry/?filter=         (evidence-expiry)
    PUT      /api/evidence/{id}/legal-hold/        (evidence-legal-hold)
    POST     /api/evidence/bulk-retention/         (evidence-bulk-retention)
    POST     /api/evidence/check-expiry/           (evidence-check-expiry)
    POST     /api/timeline/export-pdf/             (timeline-export-pdf)
"""

from __future__ import annotations

import hashlib
import io
from datetime import timedelta
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from PyPDF2 import PdfReader
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role
from cases.services import CaseCreationService
from core.models import ActivityLog, Notification
from evidence.models import Evidence
from retention.models import RetentionPolicy

User = get_user_model()


def _make_user(n: int, role_name: str) -> User:
    wallet = "0x" + f"{n:040x}"
    return User.objects.create_user(
        username=wallet,
        wallet_address=wallet,
        full_name=f"{role_name.title()} {n}",
        role=Role.objects.get(name=role_name),
    )


def _evidence(user, n: int, case=None, expires_in: int | None = None, legal_hold: bool = False) -> Evidence:
    return Evidence.objects.create(
        case=case,
        name=f"item-{n}.txt",
        file_type="text/plain",
        file_size=4,
        hash=hashlib.sha256(f"item-{n}".encode()).hexdigest(),
        submitted_by=user,
        expiry_date=None if expires_in is None else timezone.now() + timedelta(days=expires_in),
        legal_hold=legal_hold,
    )


class TestRetentionPolicies(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        cls.manager = _make_user(501, "evidence_manager")
        cls.investigator = _make_user(502, "investigator")
        RetentionPolicy.objects.create(name="Standard", retention_days=365)
        RetentionPolicy.objects.create(name="Retired", retention_days=10, is_active=False)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.manager)

    def test_list_shows_active_policies_only(self):
        resp = self.client.get(reverse("retention-policy-list"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([p["name"] for p in resp.data["policies"]], ["Standard"])

    def test_manager_creates_policy(self):
        resp = self.client.post(
            reverse("retention-policy-list"),
            {"name": "Homicide", "retentionDays": 3650, "description": "Kept for ten years"},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        policy = RetentionPolicy.objects.get(name="Homicide")
        self.assertEqual(policy.retention_days, 3650)
        self.assertEqual(policy.created_by, self.manager)

    def test_duplicate_policy_name_conflicts(self):
        resp = self.client.post(
            reverse("retention-policy-list"), {"name": "standard", "retentionDays": 30}, format="json"
        )

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_retention_days_must_be_positive(self):
        resp = self.client.post(reverse("retention-policy-list"), {"name": "Zero", "retentionDays": 0}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("retentionDays", resp.data)

    def test_investigator_cannot_create_policy(self):
        self.client.force_authenticate(user=self.investigator)

        resp = self.client.post(
            reverse("retention-policy-list"), {"name": "Mine", "retentionDays": 5}, format="json"
        )

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["detail"], "Unauthorized: Admin or Evidence Manager role required")


class TestEvidenceRetention(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        cls.manager = _make_user(511, "evidence_manager")
        cls.prosecutor = _make_user(512, "legal_professional")
        cls.investigator = _make_user(513, "investigator")
        cls.policy = RetentionPolicy.objects.create(name="Short", retention_days=14)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.manager)
        self.expired = _evidence(self.investigator, 1, expires_in=-2)
        self.soon = _evidence(self.investigator, 2, expires_in=5)
        self.later = _evidence(self.investigator, 3, expires_in=20)
        self.held = _evidence(self.investigator, 4, expires_in=3, legal_hold=True)
        self.undated = _evidence(self.investigator, 5)

    def _expiry(self, filter_name: str) -> list[int]:
        resp = self.client.get(reverse("evidence-expiry"), {"filter": filter_name})
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        return [row["id"] for row in resp.data["evidence"]]

    # ── Expiry listing ───────────────────────────────────────────────

    def test_expiry_filters(self):
        self.assertEqual(
            self._expiry("all"), [self.expired.pk, self.held.pk, self.soon.pk, self.later.pk]
        )
        self.assertEqual(self._expiry("expired"), [self.expired.pk])
        self.assertEqual(self._expiry("7days"), [self.held.pk, self.soon.pk])
        self.assertEqual(self._expiry("30days"), [self.held.pk, self.soon.pk, self.later.pk])
        self.assertEqual(self._expiry("legal_hold"), [self.held.pk])

    def test_unknown_expiry_filter_is_rejected(self):
        resp = self.client.get(reverse("evidence-expiry"), {"filter": "someday"})

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    # ── Legal hold ───────────────────────────────────────────────────

    def test_prosecutor_places_and_lifts_hold(self):
        self.client.force_authenticate(user=self.prosecutor)
        url = reverse("evidence-legal-hold", kwargs={"evidence_id": self.soon.pk})

        placed = self.client.put(url, {"legalHold": True}, format="json")
        lifted = self.client.put(url, {"legalHold": False}, format="json")

        self.assertEqual(placed.status_code, status.HTTP_200_OK, msg=placed.data)
        self.assertTrue(placed.data["legal_hold"])
        self.assertFalse(lifted.data["legal_hold"])
        actions = list(
            ActivityLog.objects.filter(metadata__evidence_id=self.soon.pk)
            .order_by("id")
            .values_list("action", flat=True)
        )
        self.assertEqual(actions, ["legal_hold_set", "legal_hold_removed"])

    def test_investigator_cannot_set_hold(self):
        self.client.force_authenticate(user=self.investigator)

        resp = self.client.put(
            reverse("evidence-legal-hold", kwargs={"evidence_id": self.soon.pk}), {"legalHold": True}, format="json"
        )

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.soon.refresh_from_db()
        self.assertFalse(self.soon.legal_hold)

    def test_hold_on_unknown_evidence(self):
        resp = self.client.put(
            reverse("evidence-legal-hold", kwargs={"evidence_id": 999999}), {"legalHold": True}, format="json"
        )

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    # ── Bulk retention ───────────────────────────────────────────────

    def test_bulk_retention_stamps_expiry(self):
        before = timezone.now()

        resp = self.client.post(
            reverse("evidence-bulk-retention"),
            {"policyId": self.policy.pk, "evidenceIds": [self.undated.pk, self.later.pk, 999999]},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["updated"], 2)
        self.undated.refresh_from_db()
        self.assertEqual(self.undated.retention_policy, self.policy)
        self.assertGreaterEqual(self.undated.expiry_date, before + timedelta(days=14))
        self.assertTrue(ActivityLog.objects.filter(action="retention_policy_applied").exists())

    def test_bulk_retention_with_unknown_policy(self):
        resp = self.client.post(
            reverse("evidence-bulk-retention"),
            {"policyId": 999999, "evidenceIds": [self.undated.pk]},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["detail"], "Retention policy not found")

    def test_prosecutor_cannot_apply_retention(self):
        self.client.force_authenticate(user=self.prosecutor)

        resp = self.client.post(
            reverse("evidence-bulk-retention"),
            {"policyId": self.policy.pk, "evidenceIds": [self.undated.pk]},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    # ── Expiry check ─────────────────────────────────────────────────

    def test_check_expiry_notifies_submitters_of_unheld_items(self):
        resp = self.client.post(reverse("evidence-check-expiry"), {}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["notifications_sent"], 2)
        notices = Notification.objects.filter(user=self.investigator, title="Evidence Expiry Warning")
        self.assertEqual(notices.count(), 2)
        self.assertEqual({n.data["evidence_id"] for n in notices}, {self.soon.pk, self.later.pk})


class TestTimelineExport(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        cls.investigator = _make_user(521, "investigator")
        cls.case = CaseCreationService.create_case({"title": "Timeline case"}, cls.investigator)
        for n in range(3):
            _evidence(cls.investigator, 100 + n, case=cls.case)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.investigator)

    def test_case_timeline_is_a_pdf(self):
        resp = self.client.post(
            reverse("timeline-export-pdf"), {"caseId": self.case.pk, "title": "Custody timeline"}, format="json"
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp["Content-Type"], "application/pdf")
        self.assertEqual(
            resp["Content-Disposition"], f'attachment; filename="timeline-{self.case.case_number}.pdf"'
        )
        reader = PdfReader(io.BytesIO(resp.content))
        text = reader.pages[0].extract_text()
        self.assertIn("Custody timeline", text)
        self.assertIn(self.case.case_number, text)

        log = ActivityLog.objects.get(action="timeline_export")
        self.assertEqual(log.metadata, {"case_id": self.case.pk, "evidence_count": 3})

    def test_timeline_of_all_evidence(self):
        resp = self.client.post(reverse("timeline-export-pdf"), {}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn('filename="timeline-all.pdf"', resp["Content-Disposition"])

    def test_timeline_of_unknown_case(self):
        resp = self.client.post(reverse("timeline-export-pdf"), {"caseId": 999999}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["detail"], "Case not found")
