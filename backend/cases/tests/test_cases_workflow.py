"""
Integration tests — case creation, role-gated status workflow and
assignment.

Endpoints under test:
    GET  /api/case-statuses/                      (case-status-list)
    POST /api/cases/                              (case-list)
    GET  /api/cases/{id}/details/                 (case-details)
    POST /api/cases/{id}/status/                  (case-status)
    GET  /api/cases/{id}/available-transitions/   (case-available-transitions)
    POST /api/cases/{id}/assign/                  (case-assign)

Transition table reference: cases/workflow.py  CASE_TRANSITIONS
"""

from __future__ import annotations

from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role
from cases.models import Case, CaseAssignment, CaseStatusHistory
from core.models import ActivityLog, Notification

User = get_user_model()


def _make_user(n: int, role_name: str) -> User:
    wallet = "0x" + f"{n:040x}"
    return User.objects.create_user(
        username=wallet,
        wallet_address=wallet,
        full_name=f"{role_name.title()} {n}",
        role=Role.objects.get(name=role_name),
    )


class TestCaseWorkflow(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        cls.investigator = _make_user(1, "investigator")
        cls.prosecutor = _make_user(2, "legal_professional")
        cls.judge = _make_user(3, "court_official")
        cls.viewer = _make_user(4, "public_viewer")
        cls.manager = _make_user(5, "evidence_manager")

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.investigator)

    def _create_case(self, **overrides):
        payload = {"title": "Warehouse burglary", "priority": 4, "location": "Dock 9"}
        payload.update(overrides)
        return self.client.post(reverse("case-list"), payload, format="json")

    def _change_status(self, case_id: int, new_status: str):
        return self.client.post(
            reverse("case-status", kwargs={"pk": case_id}),
            {"newStatus": new_status, "reason": "test"},
            format="json",
        )

    # ── Statuses / creation ──────────────────────────────────────────

    def test_statuses_are_seeded_in_order(self):
        resp = self.client.get(reverse("case-status-list"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        codes = [row["code"] for row in resp.data["statuses"]]
        self.assertEqual(codes[0], "open")
        self.assertIn("archived", codes)

    def test_create_case_starts_open_with_history(self):
        resp = self._create_case()

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        case = Case.objects.get(pk=resp.data["case"]["id"])
        self.assertEqual(case.status.code, "open")
        self.assertTrue(case.case_number.startswith("CASE-"))
        self.assertEqual(case.status_history.count(), 1)
        self.assertTrue(ActivityLog.objects.filter(action="case_created", user=self.investigator).exists())

    def test_public_viewer_cannot_create_case(self):
        self.client.force_authenticate(user=self.viewer)

        resp = self._create_case()

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_title_is_rejected(self):
        resp = self.client.post(reverse("case-list"), {"priority": 2}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    # ── Status transitions ───────────────────────────────────────────

    def test_allowed_transition_records_history(self):
        case_id = self._create_case().data["case"]["id"]

        resp = self._change_status(case_id, "under_investigation")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["newStatus"], "under_investigation")
        last = CaseStatusHistory.objects.filter(case_id=case_id).order_by("-id").first()
        self.assertEqual(last.from_status.code, "open")
        self.assertEqual(last.metadata["transition_name"], "Start Investigation")

    def test_transition_not_in_table_for_role_is_forbidden(self):
        case_id = self._create_case().data["case"]["id"]

        resp = self._change_status(case_id, "closed")

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["detail"], "Status transition not allowed for role: investigator")
        self.assertEqual(Case.objects.get(pk=case_id).status.code, "open")

    def test_same_status_conflicts(self):
        case_id = self._create_case().data["case"]["id"]

        resp = self._change_status(case_id, "open")

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_unknown_status_is_bad_request(self):
        case_id = self._create_case().data["case"]["id"]

        resp = self._change_status(case_id, "teleported")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["detail"], "Invalid status")

    def test_unknown_case_is_not_found(self):
        resp = self._change_status(999999, "under_investigation")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_available_transitions_follow_role(self):
        case_id = self._create_case().data["case"]["id"]

        resp = self.client.get(reverse("case-available-transitions", kwargs={"pk": case_id}))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        targets = {row["to_status"]["code"] for row in resp.data["transitions"]}
        self.assertEqual(targets, {"under_investigation"})

    # ── Assignment ───────────────────────────────────────────────────

    def test_assignment_mirrors_primary_prosecutor_and_notifies(self):
        case_id = self._create_case().data["case"]["id"]
        self.client.force_authenticate(user=self.manager)

        resp = self.client.post(
            reverse("case-assign", kwargs={"pk": case_id}),
            {"userId": self.prosecutor.pk, "roleType": "legal_professional"},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual(Case.objects.get(pk=case_id).assigned_prosecutor_id, self.prosecutor.pk)
        self.assertTrue(Notification.objects.filter(user=self.prosecutor, type="assignment").exists())

    def test_reassignment_deactivates_previous_primary(self):
        case_id = self._create_case().data["case"]["id"]
        self.client.force_authenticate(user=self.manager)
        url = reverse("case-assign", kwargs={"pk": case_id})

        self.client.post(url, {"userId": self.investigator.pk, "roleType": "investigator"}, format="json")
        self.client.post(url, {"userId": self.manager.pk, "roleType": "investigator"}, format="json")

        active = CaseAssignment.objects.filter(case_id=case_id, role_type="investigator", is_active=True)
        self.assertEqual(list(active.values_list("user_id", flat=True)), [self.manager.pk])

    def test_investigator_cannot_assign(self):
        case_id = self._create_case().data["case"]["id"]

        resp = self.client.post(
            reverse("case-assign", kwargs={"pk": case_id}),
            {"userId": self.judge.pk, "roleType": "court_official"},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["detail"], "Insufficient permissions to assign cases")

    def test_status_change_notifies_assigned_users(self):
        case_id = self._create_case().data["case"]["id"]
        self.client.force_authenticate(user=self.manager)
        self.client.post(
            reverse("case-assign", kwargs={"pk": case_id}),
            {"userId": self.judge.pk, "roleType": "court_official"},
            format="json",
        )
        self.client.force_authenticate(user=self.investigator)

        self._change_status(case_id, "under_investigation")

        self.assertTrue(Notification.objects.filter(user=self.judge, type="case_update").exists())

    def test_details_include_history_and_assignments(self):
        case_id = self._create_case().data["case"]["id"]
        self._change_status(case_id, "under_investigation")

        resp = self.client.get(reverse("case-details", kwargs={"pk": case_id}))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data["case"]["status_history"]), 2)
        self.assertEqual(resp.data["case"]["evidence_count"], 0)
