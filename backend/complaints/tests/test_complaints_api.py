"""
Integration tests for the complaint HTTP API.

Endpoints under test (``complaints.urls``, app_name="complaints")::

    GET/POST  /api/complaints/                 complaints:complaint-list
    GET/DEL   /api/complaints/{id}/            complaints:complaint-detail
    POST      /api/complaints/{id}/status/     complaints:complaint-update-status
    POST      /api/complaints/{id}/assign/     complaints:complaint-assign
    POST      /api/complaints/{id}/vote/       complaints:complaint-vote
    GET       /api/complaints/{id}/history/    complaints:complaint-history

Every request authenticates through the real login endpoint so the JWT
path is exercised end to end.
"""

from __future__ import annotations

from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from complaints.models import Complaint, StatusUpdate
from core.domain.storage import BlobStore
from core.models import Notification

User = get_user_model()

_PASSWORD = "Str0ng!Pass99"

_PAYLOAD = {
    "title": "Burst water main",
    "description": "Water has been gushing onto the street since morning.",
    "category": "water_leakage",
    "address": "12 Station Road",
    "latitude": 18.5204,
    "longitude": 73.8567,
}


def _image(name: str = "photo.jpg") -> SimpleUploadedFile:
    return SimpleUploadedFile(name, b"\xff\xd8\xff\xe0fake-jpeg", content_type="image/jpeg")


@override_settings(STORAGES={
    "default": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
})
class ComplaintApiTestCase(TestCase):
    """Shared users and login helper."""

    @classmethod
    def setUpTestData(cls):
        cls.citizen = User.objects.create_user(
            username="rita", email="rita@example.com", password=_PASSWORD,
            first_name="Rita", last_name="Rao", role="citizen",
        )
        cls.other_citizen = User.objects.create_user(
            username="sam", email="sam@example.com", password=_PASSWORD,
            first_name="Sam", last_name="Shah", role="citizen",
        )
        cls.officer = User.objects.create_user(
            username="olga", email="olga@example.com", password=_PASSWORD,
            first_name="Olga", last_name="Iyer", role="officer", department="Water Supply",
        )
        cls.admin = User.objects.create_user(
            username="adam", email="adam@example.com", password=_PASSWORD,
            first_name="Adam", last_name="Nair", role="admin",
        )

    def setUp(self):
        self.client = APIClient()

    def login_as(self, user) -> None:
        response = self.client.post(
            reverse("accounts:login"),
            {"identifier": user.username, "password": _PASSWORD},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def file_complaint(self, user=None, **overrides) -> dict:
        self.login_as(user or self.citizen)
        response = self.client.post(
            reverse("complaints:complaint-list"), {**_PAYLOAD, **overrides}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        return response.data


class TestCreateComplaintApi(ComplaintApiTestCase):

    def test_json_create(self):
        with self.captureOnCommitCallbacks(execute=True):
            data = self.file_complaint()

        self.assertRegex(data["human_id"], r"^CMP-\d{6}-\d{4}$")
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["priority"], "urgent")
        self.assertEqual(
            Notification.objects.filter(recipient=self.citizen, reference=data["human_id"]).count(), 1,
        )

    def test_multipart_create_with_images(self):
        self.login_as(self.citizen)
        response = self.client.post(
            reverse("complaints:complaint-list"),
            {**_PAYLOAD, "images": [_image("a.jpg"), _image("b.png")]},
            format="multipart",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)

        complaint = Complaint.objects.get(pk=response.data["id"])
        blob_ids = list(complaint.report_images.values_list("blob_id", flat=True))
        self.assertEqual(len(blob_ids), 2)
        for blob_id in blob_ids:
            self.assertTrue(blob_id.startswith("civic-resolve/complaints/"))
            self.assertTrue(default_storage.exists(blob_id))

    def test_too_many_images(self):
        self.login_as(self.citizen)
        response = self.client.post(
            reverse("complaints:complaint-list"),
            {**_PAYLOAD, "images": [_image(f"{i}.jpg") for i in range(6)]},
            format="multipart",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_failed")
        self.assertIn("images", response.data["errors"])
        self.assertFalse(Complaint.objects.exists())

    def test_missing_fields(self):
        self.login_as(self.citizen)
        response = self.client.post(
            reverse("complaints:complaint-list"), {"title": "Only a title"}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ("description", "category", "address", "latitude", "longitude"):
            self.assertIn(field, response.data["errors"])

    def test_latitude_out_of_range(self):
        self.login_as(self.citizen)
        response = self.client.post(
            reverse("complaints:complaint-list"), {**_PAYLOAD, "latitude": 95}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("latitude", response.data["errors"])

    def test_anonymous_rejected(self):
        response = self.client.post(reverse("complaints:complaint-list"), _PAYLOAD, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["code"], "unauthenticated")

    def test_disabled_account_token_rejected(self):
        self.login_as(self.other_citizen)
        User.objects.filter(pk=self.other_citizen.pk).update(is_active=False)

        response = self.client.post(reverse("complaints:complaint-list"), _PAYLOAD, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TestComplaintWorkflowApi(ComplaintApiTestCase):

    def setUp(self):
        super().setUp()
        self.created = self.file_complaint()
        self.pk = self.created["id"]

    def test_resolve_with_images(self):
        self.login_as(self.officer)
        response = self.client.post(
            reverse("complaints:complaint-update-status", kwargs={"pk": self.pk}),
            {"status": "resolved", "comment": "fixed pipe", "resolution_images": [_image("after.jpg")]},
            format="multipart",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], "resolved")

        resolution = response.data["resolution"]
        self.assertEqual(resolution["notes"], "fixed pipe")
        self.assertEqual(resolution["resolved_by"]["id"], self.officer.pk)
        self.assertIsNotNone(resolution["resolved_at"])
        self.assertEqual(len(resolution["images"]), 1)

        history = response.data["status_history"]
        self.assertEqual([entry["status"] for entry in history], ["resolved", "pending"])
        self.assertEqual(history[0]["previous_status"], "pending")

    def test_resolution_images_rejected_for_other_status(self):
        self.login_as(self.officer)
        response = self.client.post(
            reverse("complaints:complaint-update-status", kwargs={"pk": self.pk}),
            {"status": "in_progress", "resolution_images": [_image()]},
            format="multipart",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_citizen_cannot_change_status(self):
        self.login_as(self.citizen)
        response = self.client.post(
            reverse("complaints:complaint-update-status", kwargs={"pk": self.pk}),
            {"status": "closed"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "forbidden")

    def test_citizen_resolution_images_never_reach_the_store(self):
        self.login_as(self.citizen)
        with mock.patch.object(BlobStore, "upload_many") as upload_many:
            response = self.client.post(
                reverse("complaints:complaint-update-status", kwargs={"pk": self.pk}),
                {"status": "resolved", "resolution_images": [_image("after.jpg")]},
                format="multipart",
            )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        upload_many.assert_not_called()

    def test_status_on_unknown_complaint(self):
        self.login_as(self.officer)
        response = self.client.post(
            reverse("complaints:complaint-update-status", kwargs={"pk": 999999}),
            {"status": "closed"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "not_found")

    def test_assign(self):
        self.login_as(self.admin)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                reverse("complaints:complaint-assign", kwargs={"pk": self.pk}),
                {"officer_id": self.officer.pk},
                format="json",
            )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], "in_progress")
        self.assertEqual(response.data["assigned_to"]["id"], self.officer.pk)
        self.assertTrue(Notification.objects.filter(recipient=self.officer, kind="assignment").exists())

    def test_assign_to_citizen_rejected(self):
        self.login_as(self.admin)
        response = self.client.post(
            reverse("complaints:complaint-assign", kwargs={"pk": self.pk}),
            {"officer_id": self.other_citizen.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("officer_id", response.data["errors"])

    def test_officer_cannot_assign(self):
        self.login_as(self.officer)
        response = self.client.post(
            reverse("complaints:complaint-assign", kwargs={"pk": self.pk}),
            {"officer_id": self.officer.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_vote_toggle(self):
        self.login_as(self.other_citizen)
        url = reverse("complaints:complaint-vote", kwargs={"pk": self.pk})

        first = self.client.post(url, {"direction": "up"}, format="json")
        self.assertEqual(first.data, {"upvotes": 1, "downvotes": 0, "user_vote": "up"})

        second = self.client.post(url, {"direction": "up"}, format="json")
        self.assertEqual(second.data, {"upvotes": 0, "downvotes": 0, "user_vote": None})

    def test_vote_bad_direction(self):
        self.login_as(self.citizen)
        response = self.client.post(
            reverse("complaints:complaint-vote", kwargs={"pk": self.pk}),
            {"direction": "sideways"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_history(self):
        self.login_as(self.admin)
        self.client.post(
            reverse("complaints:complaint-assign", kwargs={"pk": self.pk}),
            {"officer_id": self.officer.pk},
            format="json",
        )
        response = self.client.get(reverse("complaints:complaint-history", kwargs={"pk": self.pk}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([entry["status"] for entry in response.data], ["in_progress", "pending"])
        self.assertEqual(response.data[0]["updated_by"]["username"], "adam")

    def test_delete_then_history_is_empty(self):
        self.login_as(self.admin)
        response = self.client.delete(reverse("complaints:complaint-detail", kwargs={"pk": self.pk}))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(StatusUpdate.objects.filter(complaint_id=self.pk).exists())

        history = self.client.get(reverse("complaints:complaint-history", kwargs={"pk": self.pk}))
        self.assertEqual(history.status_code, status.HTTP_200_OK)
        self.assertEqual(history.data, [])

        detail = self.client.get(reverse("complaints:complaint-detail", kwargs={"pk": self.pk}))
        self.assertEqual(detail.status_code, status.HTTP_404_NOT_FOUND)

    def test_citizen_cannot_delete(self):
        self.login_as(self.citizen)
        response = self.client.delete(reverse("complaints:complaint-detail", kwargs={"pk": self.pk}))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Complaint.objects.filter(pk=self.pk).exists())


class TestComplaintReadApi(ComplaintApiTestCase):

    def test_retrieve_counts_views_and_reports_vote(self):
        created = self.file_complaint()
        url = reverse("complaints:complaint-detail", kwargs={"pk": created["id"]})
        self.client.post(
            reverse("complaints:complaint-vote", kwargs={"pk": created["id"]}),
            {"direction": "down"},
            format="json",
        )

        self.client.get(url)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["view_count"], 2)
        self.assertEqual(response.data["user_vote"], "down")
        self.assertIsNone(response.data["resolution"])
        self.assertEqual(response.data["location"]["address"], "12 Station Road")
        self.assertAlmostEqual(response.data["location"]["latitude"], 18.5204)

    def test_citizen_cannot_open_foreign_complaint(self):
        created = self.file_complaint()
        self.login_as(self.other_citizen)
        response = self.client.get(reverse("complaints:complaint-detail", kwargs={"pk": created["id"]}))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_envelope_and_scope(self):
        self.file_complaint()
        self.file_complaint(title="Second leak")
        self.file_complaint(user=self.other_citizen, title="Someone else")

        self.login_as(self.citizen)
        response = self.client.get(reverse("complaints:complaint-list"), {"limit": 1})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total"], 2)
        self.assertEqual(response.data["total_pages"], 2)
        self.assertEqual(len(response.data["items"]), 1)
        self.assertEqual(response.data["items"][0]["title"], "Second leak")
        self.assertEqual(response.data["items"][0]["reported_by"]["username"], "rita")

        self.login_as(self.officer)
        response = self.client.get(reverse("complaints:complaint-list"))
        self.assertEqual(response.data["total"], 3)

    def test_list_rejects_unknown_sort(self):
        self.login_as(self.officer)
        response = self.client.get(reverse("complaints:complaint-list"), {"sort_by": "password"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("sort_by", response.data["errors"])
