"""
Complaints app serializers.

Contains all Request and Response serializers for the Complaints API.
Serializers handle field definitions, read/write constraints, and field-level
validation only.  **No business logic, status transitions or id allocation
live here**, those belong in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Complaint read serializers (list, detail, created summary, ledger entry)
3. Complaint write serializers (create)
4. Workflow action serializers (status, assign, vote)
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from accounts.serializers import UserSummarySerializer

from .constants import DATE_RANGES, SORTABLE_FIELDS, get_setting
from .models import (
    Complaint,
    ComplaintCategory,
    ComplaintImage,
    ComplaintPriority,
    ComplaintStatus,
    StatusUpdate,
    VoteDirection,
)


def _with_all(choices) -> list[tuple[str, str]]:
    return [("all", "All"), *choices]


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintFilterSerializer(serializers.Serializer):
    """
    Validates and cleans query-parameter filters for ``GET /api/complaints/``.

    All fields are optional.  The view passes the validated dict directly
    to ``ComplaintQueryService.list_complaints``.

    Query Parameters
    ----------------
    ``page``            : int     — 1-indexed page number
    ``limit``           : int     — page size (1..MAX_PAGE_SIZE)
    ``sort_by``         : str     — whitelisted sort field
    ``order``           : str     — ``asc`` or ``desc``
    ``status``          : str     — ``ComplaintStatus`` value or ``all``
    ``category``        : str     — ``ComplaintCategory`` value or ``all``
    ``priority``        : str     — ``ComplaintPriority`` value or ``all``
    ``search``          : str     — title / human id / description substring
    ``date_range``      : str     — ``today``, ``yesterday``, ``week``, ``all``
    ``my_complaints``   : bool    — only complaints I reported
    ``assigned_to_me``  : bool    — staff: only complaints assigned to me
    ``assigned_to``     : int     — staff: only complaints assigned to this user
    """

    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1)
    sort_by = serializers.ChoiceField(
        choices=[(field, field) for field in SORTABLE_FIELDS],
        required=False,
        default="created_at",
    )
    order = serializers.ChoiceField(
        choices=[("asc", "Ascending"), ("desc", "Descending")],
        required=False,
        default="desc",
    )
    status = serializers.ChoiceField(choices=_with_all(ComplaintStatus.choices), required=False)
    category = serializers.ChoiceField(choices=_with_all(ComplaintCategory.choices), required=False)
    priority = serializers.ChoiceField(choices=_with_all(ComplaintPriority.choices), required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=200)
    date_range = serializers.ChoiceField(
        choices=[(value, value) for value in DATE_RANGES],
        required=False,
    )
    my_complaints = serializers.BooleanField(required=False, default=False)
    assigned_to_me = serializers.BooleanField(required=False, default=False)
    assigned_to = serializers.IntegerField(required=False, min_value=1)

    def validate_limit(self, value: int) -> int:
        return min(value, get_setting("MAX_PAGE_SIZE"))


# ═══════════════════════════════════════════════════════════════════
#  2. Complaint Read Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ComplaintImage
        fields = ["id", "url", "blob_id", "uploaded_at"]
        read_only_fields = fields


class LocationSerializer(serializers.Serializer):
    address = serializers.CharField()
    latitude = serializers.FloatField()
    longitude = serializers.FloatField()
    landmark = serializers.CharField()


class ComplaintListSerializer(serializers.ModelSerializer):
    """Compact representation for list and dashboard endpoints."""

    category_display = serializers.CharField(source="get_category_display", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    reported_by = UserSummarySerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)

    class Meta:
        model = Complaint
        fields = [
            "id",
            "human_id",
            "title",
            "category",
            "category_display",
            "status",
            "status_display",
            "priority",
            "address",
            "reported_by",
            "assigned_to",
            "upvotes",
            "downvotes",
            "view_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComplaintCreatedSerializer(serializers.ModelSerializer):
    """Summary returned by ``POST /api/complaints/``."""

    class Meta:
        model = Complaint
        fields = ["id", "human_id", "title", "status", "priority", "created_at"]
        read_only_fields = fields


class StatusUpdateSerializer(serializers.ModelSerializer):
    """One ledger entry, with the author's display fields."""

    updated_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = StatusUpdate
        fields = [
            "id",
            "status",
            "previous_status",
            "comment",
            "updated_by",
            "images",
            "is_public",
            "created_at",
        ]
        read_only_fields = fields


class ComplaintDetailSerializer(serializers.ModelSerializer):
    """
    Full complaint representation.

    Expects ``user_vote`` in the serializer context; the status history
    is embedded newest first.
    """

    category_display = serializers.CharField(source="get_category_display", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    priority_display = serializers.CharField(source="get_priority_display", read_only=True)
    location = serializers.SerializerMethodField()
    images = serializers.SerializerMethodField()
    resolution = serializers.SerializerMethodField()
    reported_by = UserSummarySerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)
    user_vote = serializers.SerializerMethodField()
    status_history = serializers.SerializerMethodField()

    class Meta:
        model = Complaint
        fields = [
            "id",
            "human_id",
            "title",
            "description",
            "category",
            "category_display",
            "status",
            "status_display",
            "priority",
            "priority_display",
            "location",
            "images",
            "resolution",
            "reported_by",
            "assigned_to",
            "assigned_at",
            "upvotes",
            "downvotes",
            "view_count",
            "user_vote",
            "is_public",
            "status_history",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_location(self, obj: Complaint) -> dict[str, Any]:
        return LocationSerializer({
            "address": obj.address,
            "latitude": obj.latitude,
            "longitude": obj.longitude,
            "landmark": obj.landmark,
        }).data

    def get_images(self, obj: Complaint) -> list[dict]:
        return ComplaintImageSerializer(obj.report_images, many=True).data

    def get_resolution(self, obj: Complaint) -> dict[str, Any] | None:
        if obj.resolved_at is None and obj.resolved_by_id is None:
            return None
        return {
            "notes": obj.resolution_notes,
            "resolved_by": (
                UserSummarySerializer(obj.resolved_by).data if obj.resolved_by else None
            ),
            "resolved_at": (
                serializers.DateTimeField().to_representation(obj.resolved_at)
                if obj.resolved_at else None
            ),
            "images": ComplaintImageSerializer(obj.resolution_images, many=True).data,
        }

    def get_user_vote(self, obj: Complaint) -> str | None:
        return self.context.get("user_vote")

    def get_status_history(self, obj: Complaint) -> list[dict]:
        history = obj.status_updates.select_related("updated_by").order_by("-created_at", "-id")
        return StatusUpdateSerializer(history, many=True).data


# ═══════════════════════════════════════════════════════════════════
#  3. Complaint Write Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintCreateSerializer(serializers.Serializer):
    """
    ``POST /api/complaints/`` body (JSON or multipart).

    ``images`` is only populated on multipart requests; the files are
    uploaded by the view before the service is called.
    """

    title = serializers.CharField(max_length=100, trim_whitespace=True)
    description = serializers.CharField(max_length=2000, trim_whitespace=True)
    category = serializers.ChoiceField(choices=ComplaintCategory.choices)
    address = serializers.CharField(max_length=300)
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    landmark = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    images = serializers.ListField(
        child=serializers.FileField(),
        required=False,
        default=list,
        write_only=True,
    )

    def validate_images(self, value: list) -> list:
        max_images = get_setting("MAX_COMPLAINT_IMAGES")
        if len(value) > max_images:
            raise serializers.ValidationError(f"At most {max_images} images are allowed.")
        return value


# ═══════════════════════════════════════════════════════════════════
#  4. Workflow Action Serializers
# ═══════════════════════════════════════════════════════════════════


class StatusUpdateRequestSerializer(serializers.Serializer):
    """``POST /api/complaints/{id}/status/``."""

    status = serializers.ChoiceField(choices=ComplaintStatus.choices)
    comment = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")
    priority = serializers.ChoiceField(choices=ComplaintPriority.choices, required=False)
    resolution_images = serializers.ListField(
        child=serializers.FileField(),
        required=False,
        default=list,
        write_only=True,
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        images = attrs.get("resolution_images") or []
        if images and attrs["status"] != ComplaintStatus.RESOLVED:
            raise serializers.ValidationError(
                {"resolution_images": "Resolution images can only be attached when resolving."}
            )
        max_images = get_setting("MAX_RESOLUTION_IMAGES")
        if len(images) > max_images:
            raise serializers.ValidationError(
                {"resolution_images": f"At most {max_images} images are allowed."}
            )
        return attrs


class AssignRequestSerializer(serializers.Serializer):
    """``POST /api/complaints/{id}/assign/``."""

    officer_id = serializers.IntegerField(min_value=1)


class VoteRequestSerializer(serializers.Serializer):
    """``POST /api/complaints/{id}/vote/``."""

    direction = serializers.ChoiceField(choices=VoteDirection.choices)


class VoteResultSerializer(serializers.Serializer):
    upvotes = serializers.IntegerField()
    downvotes = serializers.IntegerField()
    user_vote = serializers.CharField(allow_null=True)
