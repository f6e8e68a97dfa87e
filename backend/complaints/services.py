"""
Complaints app Service Layer.

This module is the **single source of truth** for all business logic
in the ``complaints`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``ComplaintIdGenerator``        — ``CMP-YYYYMM-NNNN`` allocation.
- ``ComplaintCreationService``    — filing a new complaint.
- ``ComplaintWorkflowService``    — status transitions and resolution.
- ``ComplaintAssignmentService``  — assigning an officer.
- ``ComplaintVoteService``        — up/down vote toggling.
- ``ComplaintDeletionService``    — cascade delete and blob release.
- ``ComplaintQueryService``       — role-scoped listing and detail reads.
- ``ComplaintHistoryService``     — status ledger reads.

Concurrency model
-----------------
Every mutation runs inside ``transaction.atomic`` and re-reads the
complaint through ``lock_for_update`` (``SELECT ... FOR UPDATE``) before
touching it, so concurrent votes / status updates on the same complaint
serialise.  Side effects (notifications, blob deletion) are collected on
a ``PostCommitEffects`` list and only run once the transaction commits.

Status Graph
------------
Any staff member may move a complaint to any status; the graph is kept
permissive on purpose and expressed as a single wildcard rule in
``STATUS_TRANSITIONS``::

  pending → in_progress → resolved → closed
  pending | in_progress → rejected
  (any status → any status is accepted)

Tightening the workflow means replacing the wildcard entry with explicit
``{current: {targets}}`` rows; ``InvalidTransition`` is already raised
for anything the table does not allow.
"""

from __future__ import annotations

import datetime
import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Case, F, IntegerField, Q, QuerySet, Value, When
from django.utils import timezone

from core.domain.access import (
    ADMIN_ROLES,
    STAFF_ROLES,
    apply_role_scope,
    get_user_role_name,
    require_role,
)
from core.domain.effects import PostCommitEffects
from core.domain.exceptions import (
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)
from core.domain.notifications import NotificationService
from core.domain.storage import BlobStore, StoredBlob, get_blob_store
from core.domain.transactions import lock_for_update, retry_on_integrity_error

from .constants import (
    ASSIGNED_COMMENT,
    CREATED_COMMENT,
    STATUS_COMMENT_TEMPLATE,
    SORTABLE_FIELDS,
    default_priority_for,
    get_setting,
)
from .models import (
    Complaint,
    ComplaintCategory,
    ComplaintImage,
    ComplaintPriority,
    ComplaintSequence,
    ComplaintStatus,
    ComplaintVote,
    ImageKind,
    StatusUpdate,
    VoteDirection,
)

User = get_user_model()
logger = logging.getLogger(__name__)

WILDCARD = "*"

#: current status → statuses it may move to.
STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    WILDCARD: frozenset(ComplaintStatus.values),
}

#: Citizens only ever see their own complaints; staff see everything.
COMPLAINT_SCOPE_RULES = {
    "citizen": lambda qs, u: qs.filter(reported_by=u),
}

PRIORITY_RANK = {
    ComplaintPriority.LOW: 0,
    ComplaintPriority.MEDIUM: 1,
    ComplaintPriority.HIGH: 2,
    ComplaintPriority.URGENT: 3,
}

STATUS_RANK = {
    ComplaintStatus.PENDING: 0,
    ComplaintStatus.IN_PROGRESS: 1,
    ComplaintStatus.RESOLVED: 2,
    ComplaintStatus.CLOSED: 3,
    ComplaintStatus.REJECTED: 4,
}

MAX_COMMENT_LENGTH = 1000


def _complaint_url(complaint: Complaint) -> str:
    return f"/complaints/{complaint.pk}"


def _normalise_blobs(images: Iterable[StoredBlob | dict] | None) -> list[StoredBlob]:
    blobs = []
    for image in images or ():
        if isinstance(image, StoredBlob):
            blobs.append(image)
        else:
            blobs.append(StoredBlob(url=image["url"], blob_id=image["blob_id"]))
    return blobs


def _coordinate(value: Any) -> Decimal:
    return Decimal(str(round(float(value), 6)))


def _require_principal(user: User) -> str:
    role_name = get_user_role_name(user)
    if role_name is None:
        raise PermissionDenied("Authentication is required for this operation.")
    return role_name


def _attach_images(complaint: Complaint, blobs: list[StoredBlob], kind: str) -> list[ComplaintImage]:
    return ComplaintImage.objects.bulk_create([
        ComplaintImage(complaint=complaint, kind=kind, url=blob.url, blob_id=blob.blob_id)
        for blob in blobs
    ])


# ════════════════════════════════════════════════════════════════════
#  Human-readable id allocation
# ════════════════════════════════════════════════════════════════════

class ComplaintIdGenerator:
    """
    Allocates ``CMP-YYYYMM-NNNN`` identifiers.

    The sequence restarts at ``0001`` every calendar month.  Allocation
    takes a row lock on the month's ``ComplaintSequence`` counter, so two
    concurrent creators can never receive the same number.  The counter
    is also reconciled with the highest id already stored for the month,
    which keeps it correct for rows imported without going through the
    counter.
    """

    @staticmethod
    def period_for(now: datetime.datetime | None = None) -> str:
        now = now or timezone.now()
        return timezone.localtime(now).strftime("%Y%m")

    @staticmethod
    def format_id(period: str, value: int) -> str:
        return f"{get_setting('ID_PREFIX')}-{period}-{value:04d}"

    @classmethod
    def next_id(cls, now: datetime.datetime | None = None) -> str:
        period = cls.period_for(now)
        with transaction.atomic():
            counter = cls._lock_counter(period)
            value = max(counter.last_value, cls._last_issued_value(period)) + 1
            counter.last_value = value
            counter.save(update_fields=["last_value"])
        return cls.format_id(period, value)

    @staticmethod
    def _lock_counter(period: str) -> ComplaintSequence:
        try:
            return ComplaintSequence.objects.select_for_update().get(period=period)
        except ComplaintSequence.DoesNotExist:
            pass
        try:
            with transaction.atomic():
                ComplaintSequence.objects.create(period=period, last_value=0)
        except IntegrityError:
            logger.debug("Sequence row for %s created concurrently", period)
        return ComplaintSequence.objects.select_for_update().get(period=period)

    @staticmethod
    def _last_issued_value(period: str) -> int:
        """Numeric suffix of the lexicographically-last id of ``period`` (0 if none)."""
        prefix = f"{get_setting('ID_PREFIX')}-{period}-"
        last = (
            Complaint.objects
            .filter(human_id__startswith=prefix)
            .order_by("-human_id")
            .values_list("human_id", flat=True)
            .first()
        )
        if not last:
            return 0
        try:
            return int(last[len(prefix):])
        except ValueError:
            return 0


# ════════════════════════════════════════════════════════════════════
#  Creation
# ════════════════════════════════════════════════════════════════════

class ComplaintCreationService:
    """Filing of new complaints by any authenticated principal."""

    @staticmethod
    def validate_draft(validated_data: dict[str, Any], image_count: int = 0) -> None:
        """
        Re-check the draft independently of the HTTP serializer.

        Raises
        ------
        ValidationFailed
            With field-level ``errors``.
        """
        errors: dict[str, list[str]] = {}

        title = (validated_data.get("title") or "").strip()
        if not title:
            errors.setdefault("title", []).append("This field is required.")
        elif len(title) > 100:
            errors.setdefault("title", []).append("Title cannot exceed 100 characters.")

        description = (validated_data.get("description") or "").strip()
        if not description:
            errors.setdefault("description", []).append("This field is required.")
        elif len(description) > 2000:
            errors.setdefault("description", []).append("Description cannot exceed 2000 characters.")

        if validated_data.get("category") not in ComplaintCategory.values:
            errors.setdefault("category", []).append("Invalid category.")

        if not (validated_data.get("address") or "").strip():
            errors.setdefault("address", []).append("This field is required.")

        for field, bound in (("latitude", 90), ("longitude", 180)):
            value = validated_data.get(field)
            if value is None:
                errors.setdefault(field, []).append("This field is required.")
            elif not -bound <= float(value) <= bound:
                errors.setdefault(field, []).append(f"Must be between -{bound} and {bound}.")

        max_images = get_setting("MAX_COMPLAINT_IMAGES")
        if image_count > max_images:
            errors.setdefault("images", []).append(f"At most {max_images} images are allowed.")

        if errors:
            raise ValidationFailed("The complaint is invalid.", errors=errors)

    @staticmethod
    def create_complaint(
        validated_data: dict[str, Any],
        requesting_user: User,
        images: Iterable[StoredBlob | dict] | None = None,
    ) -> Complaint:
        """
        File a new complaint.

        Parameters
        ----------
        validated_data : dict
            ``title``, ``description``, ``category``, ``address``,
            ``latitude``, ``longitude`` and optional ``landmark``.
        requesting_user : User
            The reporter.
        images : list[StoredBlob | dict], optional
            Blob references uploaded beforehand by the caller.

        Returns
        -------
        Complaint
            With ``status=pending`` and priority derived from the category.

        Raises
        ------
        ValidationFailed
            Invalid draft or too many images.
        Conflict
            The id allocator collided on every retry.
        """
        _require_principal(requesting_user)
        blobs = _normalise_blobs(images)
        ComplaintCreationService.validate_draft(validated_data, image_count=len(blobs))

        complaint = retry_on_integrity_error(
            ComplaintCreationService._insert,
            validated_data,
            requesting_user,
            blobs,
            attempts=get_setting("ID_MAX_ATTEMPTS"),
            exhausted_message="Could not allocate a complaint id, please retry.",
        )
        logger.info(
            "Complaint %s (id=%s) filed by user id=%s",
            complaint.human_id, complaint.pk, requesting_user.pk,
        )
        return complaint

    @staticmethod
    def _insert(
        validated_data: dict[str, Any],
        requesting_user: User,
        blobs: list[StoredBlob],
    ) -> Complaint:
        category = validated_data["category"]
        complaint = Complaint.objects.create(
            human_id=ComplaintIdGenerator.next_id(),
            title=validated_data["title"].strip(),
            description=validated_data["description"].strip(),
            category=category,
            address=validated_data["address"].strip(),
            latitude=_coordinate(validated_data["latitude"]),
            longitude=_coordinate(validated_data["longitude"]),
            landmark=(validated_data.get("landmark") or "").strip(),
            status=ComplaintStatus.PENDING,
            priority=default_priority_for(category),
            reported_by=requesting_user,
        )
        _attach_images(complaint, blobs, ImageKind.REPORT)

        StatusUpdate.objects.create(
            complaint=complaint,
            status=ComplaintStatus.PENDING,
            previous_status=None,
            comment=CREATED_COMMENT,
            updated_by=requesting_user,
        )

        effects = PostCommitEffects(label=f"complaint.create {complaint.human_id}")
        effects.add(
            "notify reporter",
            NotificationService.create,
            actor=requesting_user,
            recipients=requesting_user,
            event_type="complaint_submitted",
            payload={"human_id": complaint.human_id},
            related_object=complaint,
            action_url=_complaint_url(complaint),
        )
        effects.dispatch()
        return complaint


# ════════════════════════════════════════════════════════════════════
#  Status workflow
# ════════════════════════════════════════════════════════════════════

class ComplaintWorkflowService:
    """Status transitions, including resolution bookkeeping."""

    @staticmethod
    def allowed_targets(current: str) -> frozenset[str]:
        if current in STATUS_TRANSITIONS:
            return STATUS_TRANSITIONS[current]
        return STATUS_TRANSITIONS.get(WILDCARD, frozenset())

    @staticmethod
    def is_transition_allowed(current: str, target: str) -> bool:
        return target in ComplaintWorkflowService.allowed_targets(current)

    @staticmethod
    def ensure_can_update_status(requesting_user: User) -> None:
        require_role(
            requesting_user, *STAFF_ROLES,
            message="Only officers and admins can update complaint status.",
        )

    @staticmethod
    def update_status(
        complaint_id: Any,
        validated_data: dict[str, Any],
        requesting_user: User,
        resolution_images: Iterable[StoredBlob | dict] | None = None,
    ) -> Complaint:
        """
        Move a complaint to a new status.

        Parameters
        ----------
        complaint_id : int
        validated_data : dict
            ``status`` (required), ``comment`` and ``priority`` (optional).
        requesting_user : User
            Officer, admin or superadmin.
        resolution_images : list, optional
            Already-uploaded blobs; only accepted when resolving.

        Returns
        -------
        Complaint

        Implementation Contract
        -----------------------
        1. Guard the role and validate input before any write.
        2. Lock the complaint row.
        3. Check ``STATUS_TRANSITIONS``.
        4. On ``resolved``: set ``resolved_at`` only if unset, overwrite
           ``resolved_by`` / ``resolution_notes``, append images.
        5. Append a ``StatusUpdate`` with the previous status.
        6. Notify the reporter after commit.

        Raises
        ------
        PermissionDenied, ValidationFailed, NotFound, InvalidTransition
        """
        ComplaintWorkflowService.ensure_can_update_status(requesting_user)

        target = validated_data.get("status")
        comment = (validated_data.get("comment") or "").strip()
        priority = validated_data.get("priority") or None
        blobs = _normalise_blobs(resolution_images)

        errors: dict[str, list[str]] = {}
        if target not in ComplaintStatus.values:
            errors["status"] = ["Invalid status."]
        if priority is not None and priority not in ComplaintPriority.values:
            errors["priority"] = ["Invalid priority."]
        if len(comment) > MAX_COMMENT_LENGTH:
            errors["comment"] = [f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters."]
        if blobs and target != ComplaintStatus.RESOLVED:
            errors["resolution_images"] = ["Resolution images can only be attached when resolving."]
        if len(blobs) > get_setting("MAX_RESOLUTION_IMAGES"):
            errors["resolution_images"] = [
                f"At most {get_setting('MAX_RESOLUTION_IMAGES')} images are allowed."
            ]
        if errors:
            raise ValidationFailed("The status update is invalid.", errors=errors)

        with transaction.atomic():
            complaint = lock_for_update(Complaint, complaint_id)
            previous = complaint.status

            if not ComplaintWorkflowService.is_transition_allowed(previous, target):
                raise InvalidTransition(current=previous, target=target)

            complaint.status = target
            update_fields = ["status", "updated_at"]

            if priority is not None:
                complaint.priority = priority
                update_fields.append("priority")

            if target == ComplaintStatus.RESOLVED:
                if complaint.resolved_at is None:
                    complaint.resolved_at = timezone.now()
                complaint.resolved_by = requesting_user
                complaint.resolution_notes = comment
                update_fields += ["resolved_at", "resolved_by", "resolution_notes"]
                _attach_images(complaint, blobs, ImageKind.RESOLUTION)

            complaint.save(update_fields=update_fields)

            StatusUpdate.objects.create(
                complaint=complaint,
                status=target,
                previous_status=previous,
                comment=comment or STATUS_COMMENT_TEMPLATE.format(status=target),
                updated_by=requesting_user,
                images=[blob.as_dict() for blob in blobs],
            )

            effects = PostCommitEffects(label=f"complaint.update_status {complaint.human_id}")
            effects.add(
                "notify reporter",
                NotificationService.create,
                actor=requesting_user,
                recipients=complaint.reported_by,
                event_type="complaint_status_updated",
                payload={"human_id": complaint.human_id, "status": target},
                related_object=complaint,
                action_url=_complaint_url(complaint),
            )
            effects.dispatch()

        logger.info(
            "Complaint %s status %s → %s by user id=%s",
            complaint.human_id, previous, target, requesting_user.pk,
        )
        return complaint


# ════════════════════════════════════════════════════════════════════
#  Assignment
# ════════════════════════════════════════════════════════════════════

class ComplaintAssignmentService:
    """Assigning complaints to staff members."""

    @staticmethod
    def resolve_assignee(officer_id: Any) -> User:
        """
        Return the active staff user behind ``officer_id``.

        Raises
        ------
        ValidationFailed
            Unknown id, inactive account, or a citizen account.
        """
        try:
            officer = User.objects.get(pk=officer_id)
        except (User.DoesNotExist, ValueError, TypeError):
            officer = None

        if officer is None or not officer.is_active or not officer.is_staff_role:
            raise ValidationFailed(
                "The selected user is not an active officer.",
                errors={"officer_id": ["Must reference an active officer, admin or superadmin."]},
            )
        return officer

    @staticmethod
    def assign(complaint_id: Any, officer_id: Any, requesting_user: User) -> Complaint:
        """
        Assign a complaint to an officer.

        A ``pending`` complaint is advanced to ``in_progress`` as part of
        the same write; any other status is left untouched.

        Raises
        ------
        PermissionDenied
            Requester is not an admin.
        ValidationFailed
            ``officer_id`` is not an active staff account.
        NotFound
            No complaint with ``complaint_id``.
        """
        require_role(
            requesting_user, *ADMIN_ROLES,
            message="Only admins can assign complaints.",
        )
        officer = ComplaintAssignmentService.resolve_assignee(officer_id)

        with transaction.atomic():
            complaint = lock_for_update(Complaint, complaint_id)
            previous = complaint.status

            complaint.assigned_to = officer
            complaint.assigned_at = timezone.now()
            if previous == ComplaintStatus.PENDING:
                complaint.status = ComplaintStatus.IN_PROGRESS
            complaint.save(update_fields=["assigned_to", "assigned_at", "status", "updated_at"])

            StatusUpdate.objects.create(
                complaint=complaint,
                status=complaint.status,
                previous_status=previous,
                comment=ASSIGNED_COMMENT,
                updated_by=requesting_user,
            )

            effects = PostCommitEffects(label=f"complaint.assign {complaint.human_id}")
            payload = {"human_id": complaint.human_id}
            effects.add(
                "notify assignee",
                NotificationService.create,
                actor=requesting_user,
                recipients=officer,
                event_type="complaint_assigned_officer",
                payload=payload,
                related_object=complaint,
                action_url=_complaint_url(complaint),
            )
            effects.add(
                "notify reporter",
                NotificationService.create,
                actor=requesting_user,
                recipients=complaint.reported_by,
                event_type="complaint_assigned_reporter",
                payload=payload,
                related_object=complaint,
                action_url=_complaint_url(complaint),
            )
            effects.dispatch()

        logger.info(
            "Complaint %s assigned to user id=%s by user id=%s",
            complaint.human_id, officer.pk, requesting_user.pk,
        )
        return complaint


# ════════════════════════════════════════════════════════════════════
#  Voting
# ════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class VoteResult:
    upvotes: int
    downvotes: int
    user_vote: str | None


class ComplaintVoteService:
    """
    Toggle voting.

    ============  ===========  =======================================
    existing      requested    effect
    ============  ===========  =======================================
    none          up / down    add vote, +1 on that counter
    same          same         remove vote, -1 on that counter
    up / down     other        flip vote, -1 old counter, +1 new one
    ============  ===========  =======================================
    """

    @staticmethod
    def _counter_field(direction: str) -> str:
        return "upvotes" if direction == VoteDirection.UP else "downvotes"

    @staticmethod
    def vote(complaint_id: Any, direction: str, requesting_user: User) -> VoteResult:
        _require_principal(requesting_user)
        if direction not in VoteDirection.values:
            raise ValidationFailed(
                "Vote direction must be 'up' or 'down'.",
                errors={"direction": ["Must be 'up' or 'down'."]},
            )

        counter = ComplaintVoteService._counter_field
        with transaction.atomic():
            complaint = lock_for_update(Complaint, complaint_id)
            existing = ComplaintVote.objects.filter(
                complaint=complaint, voter=requesting_user,
            ).first()

            if existing is None:
                ComplaintVote.objects.create(
                    complaint=complaint, voter=requesting_user, direction=direction,
                )
                field = counter(direction)
                setattr(complaint, field, getattr(complaint, field) + 1)
                user_vote = direction
            elif existing.direction == direction:
                existing.delete()
                field = counter(direction)
                setattr(complaint, field, max(0, getattr(complaint, field) - 1))
                user_vote = None
            else:
                old_field = counter(existing.direction)
                new_field = counter(direction)
                existing.direction = direction
                existing.save(update_fields=["direction"])
                setattr(complaint, old_field, max(0, getattr(complaint, old_field) - 1))
                setattr(complaint, new_field, getattr(complaint, new_field) + 1)
                user_vote = direction

            complaint.save(update_fields=["upvotes", "downvotes"])

        logger.info(
            "Vote %s on complaint %s by user id=%s → up=%d down=%d",
            direction, complaint.human_id, requesting_user.pk,
            complaint.upvotes, complaint.downvotes,
        )
        return VoteResult(
            upvotes=complaint.upvotes,
            downvotes=complaint.downvotes,
            user_vote=user_vote,
        )

    @staticmethod
    def retract_all(voter: User) -> int:
        """
        Remove every vote cast by ``voter`` and take each one off its
        complaint's counter.  Runs before a principal is deleted, since
        the vote rows would otherwise cascade away under the counters.
        """
        retracted = 0
        with transaction.atomic():
            for vote in list(ComplaintVote.objects.filter(voter=voter)):
                complaint = lock_for_update(Complaint, vote.complaint_id)
                field = ComplaintVoteService._counter_field(vote.direction)
                setattr(complaint, field, max(0, getattr(complaint, field) - 1))
                complaint.save(update_fields=[field])
                vote.delete()
                retracted += 1
        return retracted

    @staticmethod
    def get_user_vote(complaint: Complaint, user: User) -> str | None:
        if not getattr(user, "is_authenticated", False):
            return None
        return (
            ComplaintVote.objects
            .filter(complaint=complaint, voter=user)
            .values_list("direction", flat=True)
            .first()
        )


# ════════════════════════════════════════════════════════════════════
#  Deletion
# ════════════════════════════════════════════════════════════════════

class ComplaintDeletionService:
    """Hard delete with best-effort blob cleanup."""

    @staticmethod
    def delete(
        complaint_id: Any,
        requesting_user: User,
        blob_store: BlobStore | None = None,
    ) -> None:
        """
        Delete a complaint, its ledger entries, votes, images and the
        notifications pointing at it.

        Blobs are released after the commit; a failed release is logged
        and queued as a ``core.PendingBlobDeletion`` row instead of
        aborting the deletion.
        """
        require_role(
            requesting_user, *ADMIN_ROLES,
            message="Only admins can delete complaints.",
        )
        store = blob_store or get_blob_store()

        with transaction.atomic():
            complaint = lock_for_update(Complaint, complaint_id)
            human_id = complaint.human_id
            blob_ids = list(complaint.images.values_list("blob_id", flat=True))

            StatusUpdate.objects.filter(complaint=complaint).delete()
            NotificationService.delete_for_object(complaint)
            complaint.delete()

            effects = PostCommitEffects(label=f"complaint.delete {human_id}")
            effects.add(
                "release blobs",
                ComplaintDeletionService.release_blobs,
                blob_ids,
                store,
            )
            effects.dispatch()

        logger.info(
            "Complaint %s deleted by user id=%s (%d blob(s) to release)",
            human_id, requesting_user.pk, len(blob_ids),
        )

    @staticmethod
    def release_blobs(blob_ids: list[str], store: BlobStore) -> list[str]:
        """Delete each blob; queue the ones that fail.  Returns the failures."""
        from core.models import PendingBlobDeletion

        failed = [blob_id for blob_id in blob_ids if not store.delete(blob_id)]
        if failed:
            PendingBlobDeletion.objects.bulk_create([
                PendingBlobDeletion(blob_id=blob_id, last_error="delete failed")
                for blob_id in failed
            ])
            logger.warning("Queued %d blob(s) for deletion retry", len(failed))
        return failed


# ════════════════════════════════════════════════════════════════════
#  Queries
# ════════════════════════════════════════════════════════════════════

class ComplaintQueryService:
    """Role-scoped reads over complaints."""

    @staticmethod
    def base_queryset() -> QuerySet:
        return Complaint.objects.select_related("reported_by", "assigned_to", "resolved_by")

    @staticmethod
    def scoped_queryset(requesting_user: User) -> QuerySet:
        """Complaints ``requesting_user`` is allowed to see at all."""
        return apply_role_scope(
            ComplaintQueryService.base_queryset(),
            requesting_user,
            scope_rules=COMPLAINT_SCOPE_RULES,
            default="all",
        )

    @staticmethod
    def date_range_bounds(
        date_range: str | None,
        now: datetime.datetime | None = None,
    ) -> tuple[datetime.datetime | None, datetime.datetime | None]:
        """
        ``(gte, lt)`` bounds on ``created_at`` for a named range.

        ``today`` and ``yesterday`` follow the server's local midnight;
        ``week`` is a rolling seven days.
        """
        if not date_range or date_range == "all":
            return None, None
        now = timezone.localtime(now or timezone.now())
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if date_range == "today":
            return midnight, None
        if date_range == "yesterday":
            return midnight - datetime.timedelta(days=1), midnight
        if date_range == "week":
            return now - datetime.timedelta(days=7), None
        raise ValidationFailed(
            "Invalid date range.",
            errors={"date_range": ["Must be one of today, yesterday, week, all."]},
        )

    @staticmethod
    def get_filtered_queryset(requesting_user: User, filters: dict[str, Any]) -> QuerySet:
        """
        Apply role scope, filters and ordering.

        Citizens are always restricted to their own complaints, whatever
        ``my_complaints`` says.  ``assigned_to_me`` and ``assigned_to``
        only apply to staff.
        """
        qs = ComplaintQueryService.scoped_queryset(requesting_user)
        role_name = get_user_role_name(requesting_user)
        is_staff = role_name in STAFF_ROLES

        if filters.get("my_complaints"):
            qs = qs.filter(reported_by=requesting_user)
        if is_staff and filters.get("assigned_to_me"):
            qs = qs.filter(assigned_to=requesting_user)
        if is_staff and filters.get("assigned_to"):
            qs = qs.filter(assigned_to_id=filters["assigned_to"])

        for field in ("status", "category", "priority"):
            value = filters.get(field)
            if value and value != "all":
                qs = qs.filter(**{field: value})

        search = (filters.get("search") or "").strip()
        if search:
            qs = qs.filter(
                Q(title__icontains=search)
                | Q(human_id__icontains=search)
                | Q(description__icontains=search)
            )

        gte, lt = ComplaintQueryService.date_range_bounds(filters.get("date_range"))
        if gte is not None:
            qs = qs.filter(created_at__gte=gte)
        if lt is not None:
            qs = qs.filter(created_at__lt=lt)

        return ComplaintQueryService.apply_ordering(
            qs,
            filters.get("sort_by") or "created_at",
            filters.get("order") or "desc",
        )

    @staticmethod
    def apply_ordering(qs: QuerySet, sort_by: str, order: str) -> QuerySet:
        """Order by a whitelisted field; priority and status sort by severity / pipeline stage."""
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationFailed(
                "Invalid sort field.",
                errors={"sort_by": [f"Must be one of {', '.join(SORTABLE_FIELDS)}."]},
            )
        prefix = "-" if order == "desc" else ""

        if sort_by in ("priority", "status"):
            ranks = PRIORITY_RANK if sort_by == "priority" else STATUS_RANK
            qs = qs.annotate(
                _sort_rank=Case(
                    *[When(**{sort_by: key}, then=Value(rank)) for key, rank in ranks.items()],
                    default=Value(-1),
                    output_field=IntegerField(),
                )
            )
            return qs.order_by(f"{prefix}_sort_rank", "-id")
        return qs.order_by(f"{prefix}{sort_by}", "-id")

    @staticmethod
    def list_complaints(requesting_user: User, filters: dict[str, Any]) -> dict[str, Any]:
        """
        Return one page of complaints.

        Returns
        -------
        dict
            ``{"items", "page", "limit", "total", "total_pages"}`` with
            ``total_pages = ceil(total / limit)``.
        """
        _require_principal(requesting_user)
        qs = ComplaintQueryService.get_filtered_queryset(requesting_user, filters)

        page = max(1, int(filters.get("page") or 1))
        limit = int(filters.get("limit") or get_setting("DEFAULT_PAGE_SIZE"))
        limit = max(1, min(limit, get_setting("MAX_PAGE_SIZE")))

        total = qs.count()
        offset = (page - 1) * limit
        items = list(qs[offset:offset + limit])

        return {
            "items": items,
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit),
        }

    @staticmethod
    def ensure_can_view(requesting_user: User, complaint: Complaint) -> None:
        """Citizens may only look at complaints they reported."""
        role_name = _require_principal(requesting_user)
        if role_name == "citizen" and complaint.reported_by_id != requesting_user.pk:
            raise PermissionDenied("You can only view your own complaints.")

    @staticmethod
    def get_complaint(complaint_id: Any) -> Complaint:
        try:
            return (
                ComplaintQueryService.base_queryset()
                .prefetch_related("images")
                .get(pk=complaint_id)
            )
        except (Complaint.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Complaint with id={complaint_id} does not exist.")

    @staticmethod
    def get_complaint_detail(requesting_user: User, complaint_id: Any) -> Complaint:
        """
        Return a complaint for display and count the read.

        ``view_count`` is bumped with a single ``UPDATE`` on every
        successful read, repeated reads included.

        Raises
        ------
        NotFound, PermissionDenied
        """
        complaint = ComplaintQueryService.get_complaint(complaint_id)
        ComplaintQueryService.ensure_can_view(requesting_user, complaint)

        Complaint.objects.filter(pk=complaint.pk).update(view_count=F("view_count") + 1)
        complaint.refresh_from_db(fields=["view_count"])
        return complaint


# ════════════════════════════════════════════════════════════════════
#  Status ledger
# ════════════════════════════════════════════════════════════════════

class ComplaintHistoryService:
    """Read side of the append-only ``StatusUpdate`` ledger."""

    @staticmethod
    def get_history(complaint_id: Any) -> QuerySet:
        """
        All ledger entries for ``complaint_id``, newest first.

        An unknown or deleted complaint yields an empty queryset.
        """
        try:
            complaint_pk = int(complaint_id)
        except (TypeError, ValueError):
            return StatusUpdate.objects.none()
        return (
            StatusUpdate.objects
            .filter(complaint_id=complaint_pk)
            .select_related("updated_by")
            .order_by("-created_at", "-id")
        )

    @staticmethod
    def get_history_for_user(requesting_user: User, complaint_id: Any) -> QuerySet:
        """Ledger entries visible to ``requesting_user``."""
        _require_principal(requesting_user)
        complaint = None
        if str(complaint_id).isdigit():
            complaint = Complaint.objects.filter(pk=complaint_id).only("id", "reported_by_id").first()
        if complaint is not None:
            ComplaintQueryService.ensure_can_view(requesting_user, complaint)
        return ComplaintHistoryService.get_history(complaint_id)
