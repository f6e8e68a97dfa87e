"""
Service-level tests for the complaint lifecycle.

Creation → assignment → status updates → resolution → deletion, with the
status ledger and post-commit notifications checked along the way.
"""

from __future__ import annotations

from unittest import mock

import pytest
from django.core.files.base import ContentFile

from complaints.constants import ASSIGNED_COMMENT, CREATED_COMMENT
from complaints.models import Complaint, ComplaintImage, ComplaintVote, StatusUpdate
from complaints.services import (
    ComplaintAssignmentService,
    ComplaintCreationService,
    ComplaintDeletionService,
    ComplaintHistoryService,
    ComplaintWorkflowService,
)
from core.domain.exceptions import NotFound, PermissionDenied, ValidationFailed
from core.domain.storage import BlobStore, StoredBlob
from core.models import Notification, PendingBlobDeletion

from .conftest import DRAFT


# ═══════════════════════════════════════════════════════════════════
#  Creation
# ═══════════════════════════════════════════════════════════════════


@pytest.mark.django_db
class TestCreateComplaint:

    def test_defaults_from_category(self, make_complaint, citizen):
        complaint = make_complaint()

        assert complaint.status == "pending"
        assert complaint.priority == "urgent"
        assert complaint.reported_by == citizen
        assert complaint.upvotes == complaint.downvotes == complaint.view_count == 0
        assert complaint.assigned_to is None
        assert complaint.resolved_at is None

    def test_first_ledger_entry(self, make_complaint, citizen):
        complaint = make_complaint()

        entries = list(complaint.status_updates.all())
        assert len(entries) == 1
        assert entries[0].status == "pending"
        assert entries[0].previous_status is None
        assert entries[0].comment == CREATED_COMMENT
        assert entries[0].updated_by == citizen

    def test_reporter_notified_after_commit(
        self, make_complaint, citizen, django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            complaint = make_complaint()

        assert len(callbacks) == 1
        notification = Notification.objects.get(recipient=citizen)
        assert notification.reference == complaint.human_id
        assert complaint.human_id in notification.message
        assert notification.action_url == f"/complaints/{complaint.pk}"

    def test_coordinates_stored_with_six_decimals(self, make_complaint):
        complaint = make_complaint(latitude=18.52043219, longitude=-73.1)
        complaint.refresh_from_db()
        assert str(complaint.latitude) == "18.520432"
        assert str(complaint.longitude) == "-73.100000"

    def test_images_attached_as_report_images(self, make_complaint):
        blobs = [
            StoredBlob(url="/media/a.jpg", blob_id="civic-resolve/complaints/a.jpg"),
            {"url": "/media/b.jpg", "blob_id": "civic-resolve/complaints/b.jpg"},
        ]
        complaint = make_complaint(images=blobs)

        images = list(complaint.report_images.values_list("blob_id", flat=True))
        assert images == ["civic-resolve/complaints/a.jpg", "civic-resolve/complaints/b.jpg"]

    @pytest.mark.parametrize(
        "override, field",
        [
            ({"title": "   "}, "title"),
            ({"title": "x" * 101}, "title"),
            ({"description": ""}, "description"),
            ({"category": "volcano"}, "category"),
            ({"address": ""}, "address"),
            ({"latitude": 91}, "latitude"),
            ({"longitude": -180.5}, "longitude"),
        ],
    )
    def test_invalid_draft_rejected(self, citizen, override, field):
        with pytest.raises(ValidationFailed) as exc_info:
            ComplaintCreationService.create_complaint({**DRAFT, **override}, citizen)

        assert field in exc_info.value.errors
        assert Complaint.objects.count() == 0

    def test_too_many_images_rejected(self, citizen):
        blobs = [StoredBlob(url=f"/m/{i}", blob_id=f"b{i}") for i in range(6)]
        with pytest.raises(ValidationFailed) as exc_info:
            ComplaintCreationService.create_complaint(dict(DRAFT), citizen, images=blobs)
        assert "images" in exc_info.value.errors

    def test_anonymous_cannot_file(self):
        from django.contrib.auth.models import AnonymousUser

        with pytest.raises(PermissionDenied):
            ComplaintCreationService.create_complaint(dict(DRAFT), AnonymousUser())


# ═══════════════════════════════════════════════════════════════════
#  Status workflow
# ═══════════════════════════════════════════════════════════════════


@pytest.mark.django_db
class TestUpdateStatus:

    def test_resolve_records_resolution(self, make_complaint, officer):
        complaint = make_complaint()

        updated = ComplaintWorkflowService.update_status(
            complaint.pk, {"status": "resolved", "comment": "fixed pipe"}, officer,
        )

        assert updated.status == "resolved"
        assert updated.resolved_by == officer
        assert updated.resolution_notes == "fixed pipe"
        assert updated.resolved_at is not None

        latest = StatusUpdate.objects.filter(complaint=complaint).first()
        assert latest.previous_status == "pending"
        assert latest.status == "resolved"
        assert latest.comment == "fixed pipe"
        assert StatusUpdate.objects.filter(complaint=complaint).count() == 2

    def test_default_comment_when_blank(self, make_complaint, officer):
        complaint = make_complaint()
        ComplaintWorkflowService.update_status(complaint.pk, {"status": "in_progress"}, officer)

        latest = StatusUpdate.objects.filter(complaint=complaint).first()
        assert latest.comment == "Status updated to in_progress"

    def test_resolved_at_is_first_write_wins(self, make_complaint, officer, create_user):
        complaint = make_complaint()
        ComplaintWorkflowService.update_status(complaint.pk, {"status": "resolved"}, officer)
        first_resolved_at = Complaint.objects.get(pk=complaint.pk).resolved_at

        ComplaintWorkflowService.update_status(complaint.pk, {"status": "in_progress"}, officer)
        other = create_user(role="officer")
        updated = ComplaintWorkflowService.update_status(
            complaint.pk, {"status": "resolved", "comment": "done again"}, other,
        )

        assert updated.resolved_at == first_resolved_at
        assert updated.resolved_by == other
        assert updated.resolution_notes == "done again"

    def test_priority_can_be_changed(self, make_complaint, officer):
        complaint = make_complaint()
        updated = ComplaintWorkflowService.update_status(
            complaint.pk, {"status": "in_progress", "priority": "low"}, officer,
        )
        assert updated.priority == "low"

    def test_any_status_may_follow_any_other(self, make_complaint, officer):
        complaint = make_complaint()
        for target in ("closed", "pending", "rejected", "in_progress"):
            updated = ComplaintWorkflowService.update_status(complaint.pk, {"status": target}, officer)
            assert updated.status == target

    def test_resolution_images_attached(self, make_complaint, officer):
        complaint = make_complaint()
        blob = StoredBlob(url="/media/after.jpg", blob_id="civic-resolve/resolutions/after.jpg")

        ComplaintWorkflowService.update_status(
            complaint.pk, {"status": "resolved"}, officer, resolution_images=[blob],
        )

        assert list(complaint.resolution_images.values_list("blob_id", flat=True)) == [blob.blob_id]
        latest = StatusUpdate.objects.filter(complaint=complaint).first()
        assert latest.images == [blob.as_dict()]

    def test_resolution_images_require_resolved_status(self, make_complaint, officer):
        complaint = make_complaint()
        blob = StoredBlob(url="/media/after.jpg", blob_id="after.jpg")

        with pytest.raises(ValidationFailed) as exc_info:
            ComplaintWorkflowService.update_status(
                complaint.pk, {"status": "in_progress"}, officer, resolution_images=[blob],
            )
        assert "resolution_images" in exc_info.value.errors

    def test_citizen_cannot_update_status(self, make_complaint, citizen):
        complaint = make_complaint()
        with pytest.raises(PermissionDenied):
            ComplaintWorkflowService.update_status(complaint.pk, {"status": "closed"}, citizen)
        assert Complaint.objects.get(pk=complaint.pk).status == "pending"

    def test_invalid_status_rejected(self, make_complaint, officer):
        complaint = make_complaint()
        with pytest.raises(ValidationFailed) as exc_info:
            ComplaintWorkflowService.update_status(complaint.pk, {"status": "archived"}, officer)
        assert "status" in exc_info.value.errors

    def test_comment_too_long_rejected(self, make_complaint, officer):
        complaint = make_complaint()
        with pytest.raises(ValidationFailed):
            ComplaintWorkflowService.update_status(
                complaint.pk, {"status": "resolved", "comment": "x" * 1001}, officer,
            )

    def test_unknown_complaint(self, officer):
        with pytest.raises(NotFound):
            ComplaintWorkflowService.update_status(999999, {"status": "closed"}, officer)

    def test_reporter_notified(
        self, make_complaint, officer, citizen, django_capture_on_commit_callbacks,
    ):
        complaint = make_complaint()
        with django_capture_on_commit_callbacks(execute=True):
            ComplaintWorkflowService.update_status(complaint.pk, {"status": "resolved"}, officer)

        notification = Notification.objects.get(recipient=citizen)
        assert notification.title == "Complaint Status Updated"
        assert "resolved" in notification.message

    def test_failing_notification_does_not_undo_update(
        self, make_complaint, officer, django_capture_on_commit_callbacks,
    ):
        complaint = make_complaint()
        with mock.patch(
            "complaints.services.NotificationService.create",
            side_effect=RuntimeError("sink down"),
        ):
            with django_capture_on_commit_callbacks(execute=True):
                ComplaintWorkflowService.update_status(complaint.pk, {"status": "closed"}, officer)

        assert Complaint.objects.get(pk=complaint.pk).status == "closed"


# ═══════════════════════════════════════════════════════════════════
#  Assignment
# ═══════════════════════════════════════════════════════════════════


@pytest.mark.django_db
class TestAssignComplaint:

    def test_pending_complaint_moves_to_in_progress(self, make_complaint, officer, admin_user):
        complaint = make_complaint()

        updated = ComplaintAssignmentService.assign(complaint.pk, officer.pk, admin_user)

        assert updated.assigned_to == officer
        assert updated.assigned_at is not None
        assert updated.status == "in_progress"
        latest = StatusUpdate.objects.filter(complaint=complaint).first()
        assert latest.previous_status == "pending"
        assert latest.status == "in_progress"
        assert latest.comment == ASSIGNED_COMMENT

    def test_other_statuses_are_kept(self, make_complaint, officer, admin_user):
        complaint = make_complaint()
        ComplaintWorkflowService.update_status(complaint.pk, {"status": "resolved"}, officer)

        updated = ComplaintAssignmentService.assign(complaint.pk, officer.pk, admin_user)

        assert updated.status == "resolved"
        latest = StatusUpdate.objects.filter(complaint=complaint).first()
        assert latest.previous_status == latest.status == "resolved"

    def test_reassignment_replaces_assignee(self, make_complaint, officer, admin_user, create_user):
        complaint = make_complaint()
        ComplaintAssignmentService.assign(complaint.pk, officer.pk, admin_user)
        second = create_user(role="officer")

        updated = ComplaintAssignmentService.assign(complaint.pk, second.pk, admin_user)
        assert updated.assigned_to == second
        assert updated.status == "in_progress"

    def test_officer_cannot_assign(self, make_complaint, officer):
        complaint = make_complaint()
        with pytest.raises(PermissionDenied):
            ComplaintAssignmentService.assign(complaint.pk, officer.pk, officer)

    @pytest.mark.parametrize("kind", ["citizen", "inactive", "missing"])
    def test_assignee_must_be_active_staff(self, make_complaint, admin_user, create_user, kind):
        complaint = make_complaint()
        if kind == "citizen":
            target_id = create_user(role="citizen").pk
        elif kind == "inactive":
            target_id = create_user(role="officer", is_active=False).pk
        else:
            target_id = 987654

        with pytest.raises(ValidationFailed) as exc_info:
            ComplaintAssignmentService.assign(complaint.pk, target_id, admin_user)

        assert "officer_id" in exc_info.value.errors
        assert Complaint.objects.get(pk=complaint.pk).assigned_to is None

    def test_both_parties_notified(
        self, make_complaint, officer, admin_user, citizen, django_capture_on_commit_callbacks,
    ):
        complaint = make_complaint()
        with django_capture_on_commit_callbacks(execute=True):
            ComplaintAssignmentService.assign(complaint.pk, officer.pk, admin_user)

        assert Notification.objects.get(recipient=officer).kind == "assignment"
        assert Notification.objects.get(recipient=citizen).title == "Complaint Assigned"


# ═══════════════════════════════════════════════════════════════════
#  Deletion and history
# ═══════════════════════════════════════════════════════════════════


class _FlakyStore(BlobStore):
    """Blob store whose deletes fail for ids listed in ``broken``."""

    def __init__(self, broken=()):
        super().__init__()
        self.broken = set(broken)
        self.deleted: list[str] = []

    def delete(self, blob_id: str) -> bool:
        if blob_id in self.broken:
            return False
        self.deleted.append(blob_id)
        return True


@pytest.mark.django_db
class TestDeleteComplaint:

    def test_cascade_removes_everything(
        self, make_complaint, admin_user, citizen, officer, django_capture_on_commit_callbacks,
    ):
        blobs = [StoredBlob(url="/m/a", blob_id="a.jpg"), StoredBlob(url="/m/b", blob_id="b.jpg")]
        with django_capture_on_commit_callbacks(execute=True):
            complaint = make_complaint(images=blobs)
        ComplaintVote.objects.create(complaint=complaint, voter=officer, direction="up")
        store = _FlakyStore()

        with django_capture_on_commit_callbacks(execute=True):
            ComplaintDeletionService.delete(complaint.pk, admin_user, blob_store=store)

        assert not Complaint.objects.filter(pk=complaint.pk).exists()
        assert not ComplaintImage.objects.exists()
        assert not ComplaintVote.objects.exists()
        assert not StatusUpdate.objects.exists()
        assert not Notification.objects.filter(object_id=complaint.pk).exists()
        assert sorted(store.deleted) == ["a.jpg", "b.jpg"]
        assert list(ComplaintHistoryService.get_history(complaint.pk)) == []

    def test_failed_blob_delete_is_queued(
        self, make_complaint, admin_user, django_capture_on_commit_callbacks,
    ):
        blobs = [StoredBlob(url="/m/a", blob_id="a.jpg"), StoredBlob(url="/m/b", blob_id="b.jpg")]
        complaint = make_complaint(images=blobs)
        store = _FlakyStore(broken={"b.jpg"})

        with django_capture_on_commit_callbacks(execute=True):
            ComplaintDeletionService.delete(complaint.pk, admin_user, blob_store=store)

        assert not Complaint.objects.filter(pk=complaint.pk).exists()
        pending = PendingBlobDeletion.objects.get()
        assert pending.blob_id == "b.jpg"
        assert pending.attempts == 1

    def test_real_store_blobs_are_removed(
        self, make_complaint, admin_user, django_capture_on_commit_callbacks,
    ):
        store = BlobStore()
        blob = store.upload(ContentFile(b"jpeg-bytes", name="leak.jpg"), "civic-resolve/complaints")
        complaint = make_complaint(images=[blob])
        assert store.storage.exists(blob.blob_id)

        with django_capture_on_commit_callbacks(execute=True):
            ComplaintDeletionService.delete(complaint.pk, admin_user, blob_store=store)

        assert not store.storage.exists(blob.blob_id)

    def test_only_admins_delete(self, make_complaint, officer):
        complaint = make_complaint()
        with pytest.raises(PermissionDenied):
            ComplaintDeletionService.delete(complaint.pk, officer)
        assert Complaint.objects.filter(pk=complaint.pk).exists()

    def test_unknown_complaint(self, admin_user):
        with pytest.raises(NotFound):
            ComplaintDeletionService.delete(424242, admin_user)


@pytest.mark.django_db
class TestHistory:

    def test_newest_first(self, make_complaint, officer, admin_user):
        complaint = make_complaint()
        ComplaintAssignmentService.assign(complaint.pk, officer.pk, admin_user)
        ComplaintWorkflowService.update_status(complaint.pk, {"status": "resolved"}, officer)

        statuses = [entry.status for entry in ComplaintHistoryService.get_history(complaint.pk)]
        assert statuses == ["resolved", "in_progress", "pending"]

    def test_unknown_id_is_empty(self):
        assert list(ComplaintHistoryService.get_history(123456)) == []
        assert list(ComplaintHistoryService.get_history("abc")) == []

    def test_citizen_cannot_read_foreign_history(self, make_complaint, create_user):
        complaint = make_complaint()
        stranger = create_user(role="citizen")
        with pytest.raises(PermissionDenied):
            ComplaintHistoryService.get_history_for_user(stranger, complaint.pk)
