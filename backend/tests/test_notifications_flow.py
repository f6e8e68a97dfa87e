"""
Notification flow — lifecycle events land in the right inbox, and the
inbox endpoints list, count and mark them read.
"""

from __future__ import annotations

import pytest
from rest_framework import status

from complaints.services import ComplaintAssignmentService, ComplaintCreationService
from core.domain.notifications import NotificationService as NotificationSink
from core.models import Notification

LIST_URL = "/api/core/notifications/"
UNREAD_URL = "/api/core/notifications/unread-count/"
READ_ALL_URL = "/api/core/notifications/read-all/"


def _read_url(pk: int) -> str:
    return f"/api/core/notifications/{pk}/read/"


_DRAFT = {
    "title": "Blocked drain",
    "description": "Sewage is overflowing onto the footpath.",
    "category": "drainage",
    "address": "Canal Street",
    "latitude": 22.5726,
    "longitude": 88.3639,
}


@pytest.mark.django_db
class TestNotificationSink:

    def test_render_known_event(self):
        kind, title, message = NotificationSink.render(
            "complaint_status_updated", {"human_id": "CMP-202401-0001", "status": "closed"},
        )
        assert kind == "status_update"
        assert title == "Complaint Status Updated"
        assert message == "Your complaint #CMP-202401-0001 status has been updated to closed."

    def test_render_unknown_event(self):
        kind, title, _ = NotificationSink.render("weekly_digest")
        assert kind == "system"
        assert title == "Weekly Digest"

    def test_missing_payload_keys_are_left_visible(self):
        _, _, message = NotificationSink.render("complaint_submitted", {})
        assert "{human_id}" in message

    def test_create_for_many_recipients(self, create_user):
        a, b = create_user(), create_user()
        created = NotificationSink.create(
            actor=None, recipients=[a, None, b], event_type="account_status_changed",
            payload={"state": "activated"},
        )
        assert len(created) == 2
        assert Notification.objects.filter(message="Your account has been activated.").count() == 2

    def test_empty_recipients(self):
        assert NotificationSink.create(actor=None, recipients=[], event_type="complaint_submitted") == []


@pytest.mark.django_db
class TestNotificationInbox:

    @pytest.fixture()
    def inbox(self, create_user, django_capture_on_commit_callbacks):
        """A citizen with two notifications and an officer with one."""
        citizen = create_user(role="citizen")
        officer = create_user(role="officer")
        admin = create_user(role="admin")
        with django_capture_on_commit_callbacks(execute=True):
            complaint = ComplaintCreationService.create_complaint(dict(_DRAFT), citizen)
        with django_capture_on_commit_callbacks(execute=True):
            ComplaintAssignmentService.assign(complaint.pk, officer.pk, admin)
        return {"citizen": citizen, "officer": officer, "complaint": complaint}

    def test_events_reach_the_right_people(self, inbox):
        citizen_titles = set(
            Notification.objects.filter(recipient=inbox["citizen"]).values_list("title", flat=True)
        )
        assert citizen_titles == {"Complaint Submitted", "Complaint Assigned"}

        officer_note = Notification.objects.get(recipient=inbox["officer"])
        assert officer_note.kind == "assignment"
        assert officer_note.content_object == inbox["complaint"]
        assert officer_note.reference == inbox["complaint"].human_id

    def test_list_is_private_and_newest_first(self, api_client, auth_header, inbox):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header(user=inbox["citizen"])["Authorization"])
        resp = api_client.get(LIST_URL)
        assert resp.status_code == status.HTTP_200_OK
        assert [n["title"] for n in resp.data] == ["Complaint Assigned", "Complaint Submitted"]
        assert resp.data[0]["action_url"] == f"/complaints/{inbox['complaint'].pk}"

    def test_mark_one_read(self, api_client, auth_header, inbox):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header(user=inbox["citizen"])["Authorization"])
        note = Notification.objects.filter(recipient=inbox["citizen"]).first()

        resp = api_client.post(_read_url(note.pk))
        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["is_read"] is True
        assert resp.data["read_at"] is not None

        assert api_client.get(UNREAD_URL).data == {"unread": 1}
        assert len(api_client.get(LIST_URL, {"unread": "true"}).data) == 1

    def test_cannot_read_someone_elses(self, api_client, auth_header, inbox):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header(user=inbox["officer"])["Authorization"])
        foreign = Notification.objects.filter(recipient=inbox["citizen"]).first()

        resp = api_client.post(_read_url(foreign.pk))
        assert resp.status_code == status.HTTP_404_NOT_FOUND
        foreign.refresh_from_db()
        assert foreign.is_read is False

    def test_mark_all_read(self, api_client, auth_header, inbox):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header(user=inbox["citizen"])["Authorization"])

        resp = api_client.post(READ_ALL_URL)
        assert resp.data == {"updated": 2}
        assert api_client.get(UNREAD_URL).data == {"unread": 0}
        # officer's inbox is untouched
        assert Notification.objects.filter(recipient=inbox["officer"], is_read=False).count() == 1

    def test_requires_authentication(self, api_client):
        assert api_client.get(LIST_URL).status_code == status.HTTP_401_UNAUTHORIZED
