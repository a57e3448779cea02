"""
Integration tests for the notification inbox.

Scope in this file:
- GET /api/notifications/
- PUT /api/notifications/{id}/read/
- PUT /api/notifications/read-all/
- POST /api/notifications/test/
- NotificationService fan-out rules (actor exclusion, de-duplication).
"""

from __future__ import annotations

from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role, User
from core.domain.notifications import NotificationService
from core.models import Notification


class TestNotificationInbox(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        role = Role.objects.get(name="investigator")
        cls.owner = User.objects.create_user(
            username="inbox_owner", email="owner@example.com", full_name="Inbox Owner", role=role,
        )
        cls.stranger = User.objects.create_user(
            username="inbox_stranger", email="stranger@example.com", full_name="Stranger", role=role,
        )

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.owner)
        self.first = Notification.objects.create(user=self.owner, title="First", message="one", type="info")
        self.second = Notification.objects.create(user=self.owner, title="Second", message="two", type="info")
        self.foreign = Notification.objects.create(user=self.stranger, title="Theirs", message="x", type="info")

    def test_list_is_scoped_to_owner(self):
        resp = self.client.get(reverse("notification-list"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([n["title"] for n in resp.data["notifications"]], ["Second", "First"])
        self.assertEqual(resp.data["unreadCount"], 2)

    def test_mark_one_as_read(self):
        resp = self.client.put(reverse("notification-read", kwargs={"pk": self.first.pk}))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["notification"]["is_read"])
        unread = self.client.get(reverse("notification-list"), {"unread_only": "true"})
        self.assertEqual([n["id"] for n in unread.data["notifications"]], [self.second.pk])

    def test_cannot_read_someone_elses_notification(self):
        resp = self.client.put(reverse("notification-read", kwargs={"pk": self.foreign.pk}))

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)

    def test_mark_all_as_read(self):
        resp = self.client.put(reverse("notification-read-all"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["updated"], 2)
        self.assertFalse(Notification.objects.get(pk=self.foreign.pk).is_read)

    def test_send_test_notification_to_self(self):
        resp = self.client.post(reverse("notification-test"))

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["notification"]["title"], "Test Notification")
        self.assertEqual(Notification.objects.filter(user=self.owner).count(), 3)

    def test_inbox_requires_authentication(self):
        self.client.force_authenticate(user=None)

        resp = self.client.get(reverse("notification-list"))

        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


class TestNotificationService(TestCase):

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        role = Role.objects.get(name="court_official")
        cls.actor = User.objects.create_user(
            username="actor", email="actor@example.com", full_name="Actor", role=role,
        )
        cls.other = User.objects.create_user(
            username="other", email="other@example.com", full_name="Other", role=role,
        )

    def test_actor_is_skipped_and_recipients_deduplicated(self):
        created = NotificationService.create(
            actor=self.actor,
            recipients=[self.actor, self.other, self.other, None],
            event_type="case_status_changed",
            payload={"case_number": "CASE-2024-0001", "new_status": "closed"},
        )

        self.assertEqual([n.user for n in created], [self.other])
        self.assertEqual(created[0].data["case_number"], "CASE-2024-0001")

    def test_include_actor_delivers_to_self(self):
        created = NotificationService.create(
            actor=self.actor,
            recipients=self.actor,
            event_type="evidence_expiry",
            payload={"evidence_name": "clip.mp4"},
            include_actor=True,
        )

        self.assertEqual(len(created), 1)
        self.assertEqual(created[0].message, 'Evidence "clip.mp4" will expire in 30 days.')

    def test_unknown_event_type_gets_generic_title(self):
        created = NotificationService.create(actor=None, recipients=[self.other], event_type="custom_event")

        self.assertEqual(created[0].title, "Custom Event")
        self.assertEqual(created[0].type, "info")
