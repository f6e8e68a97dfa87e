"""
Core app serializers.

Response serializers for the cross-app aggregation endpoints (dashboard,
map data, performance), the system constants catalogue and the
notification inbox, plus the query-parameter serializers those
endpoints validate their input with.
"""

from __future__ import annotations

from rest_framework import serializers

from accounts.serializers import UserSummarySerializer
from complaints.constants import DASHBOARD_PERIODS, DEFAULT_DASHBOARD_PERIOD
from complaints.models import ComplaintCategory, ComplaintStatus
from core.models import Notification


def _with_all(choices) -> list[tuple[str, str]]:
    return [("all", "All"), *choices]


# ════════════════════════════════════════════════════════════════════
#  Query parameters
# ════════════════════════════════════════════════════════════════════

class PeriodQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(
        choices=[(key, key) for key in DASHBOARD_PERIODS],
        required=False,
        default=DEFAULT_DASHBOARD_PERIOD,
        help_text="Trailing window: " + ", ".join(DASHBOARD_PERIODS) + ".",
    )


class PerformanceQuerySerializer(PeriodQuerySerializer):
    officer_id = serializers.IntegerField(required=False, min_value=1)


class MapDataQuerySerializer(serializers.Serializer):
    """
    Filters for ``GET /api/core/map-data/``.

    The bounding box is only applied when all four edges are given.
    """

    status = serializers.ChoiceField(choices=_with_all(ComplaintStatus.choices), required=False)
    category = serializers.ChoiceField(choices=_with_all(ComplaintCategory.choices), required=False)
    south = serializers.FloatField(required=False, min_value=-90, max_value=90)
    west = serializers.FloatField(required=False, min_value=-180, max_value=180)
    north = serializers.FloatField(required=False, min_value=-90, max_value=90)
    east = serializers.FloatField(required=False, min_value=-180, max_value=180)

    def validate(self, attrs):
        edges = [key for key in ("south", "west", "north", "east") if key in attrs]
        if edges and len(edges) != 4:
            raise serializers.ValidationError(
                {"bounds": "south, west, north and east must be given together."}
            )
        return attrs


# ════════════════════════════════════════════════════════════════════
#  Dashboard
# ════════════════════════════════════════════════════════════════════

class OverviewSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    pending = serializers.IntegerField()
    in_progress = serializers.IntegerField()
    resolved = serializers.IntegerField()
    closed = serializers.IntegerField()
    rejected = serializers.IntegerField()


class GroupCountSerializer(serializers.Serializer):
    key = serializers.CharField(help_text="Category or priority value.")
    label = serializers.CharField()
    count = serializers.IntegerField()


class TrendPointSerializer(serializers.Serializer):
    date = serializers.DateField()
    complaints = serializers.IntegerField()
    resolved = serializers.IntegerField()


class RecentComplaintSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    human_id = serializers.CharField()
    title = serializers.CharField()
    category = serializers.CharField()
    status = serializers.CharField()
    priority = serializers.CharField()
    reported_by = UserSummarySerializer()
    assigned_to = UserSummarySerializer(allow_null=True)
    created_at = serializers.DateTimeField()


class TopReporterSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    name = serializers.CharField()
    count = serializers.IntegerField()


class OfficerWorkloadSerializer(serializers.Serializer):
    officer_id = serializers.IntegerField()
    name = serializers.CharField()
    count = serializers.IntegerField(help_text="Open (pending / in-progress) complaints assigned.")


class DashboardStatsSerializer(serializers.Serializer):
    """
    Read-only serializer for the dashboard statistics payload.

    ``top_reporters`` and ``officer_workload`` are empty lists for
    citizens.
    """

    period = serializers.CharField()
    overview = OverviewSerializer()
    by_category = GroupCountSerializer(many=True)
    by_priority = GroupCountSerializer(many=True)
    daily_trend = TrendPointSerializer(many=True)
    avg_resolution_days = serializers.FloatField(
        help_text="Mean days from creation to resolution, one decimal.",
    )
    recent_complaints = RecentComplaintSerializer(many=True)
    top_reporters = TopReporterSerializer(many=True)
    officer_workload = OfficerWorkloadSerializer(many=True)


class MapPointSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    human_id = serializers.CharField()
    title = serializers.CharField()
    category = serializers.CharField()
    status = serializers.CharField()
    priority = serializers.CharField()
    latitude = serializers.FloatField()
    longitude = serializers.FloatField()
    address = serializers.CharField()


class OfficerResolutionSerializer(serializers.Serializer):
    officer_id = serializers.IntegerField()
    name = serializers.CharField()
    avg_resolution_days = serializers.FloatField()
    total_resolved = serializers.IntegerField()


class DepartmentStatsSerializer(serializers.Serializer):
    department = serializers.CharField()
    total = serializers.IntegerField()
    resolved = serializers.IntegerField()
    pending = serializers.IntegerField()
    in_progress = serializers.IntegerField()
    resolution_rate = serializers.FloatField(help_text="Resolved / total, in percent.")


class PerformanceSerializer(serializers.Serializer):
    period = serializers.CharField()
    resolution_by_officer = OfficerResolutionSerializer(many=True)
    by_department = DepartmentStatsSerializer(many=True)


# ════════════════════════════════════════════════════════════════════
#  System Constants
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """A single ``{value, label}`` pair from a Django choices enum."""

    value = serializers.CharField(help_text="Internal value stored in the database.")
    label = serializers.CharField(help_text="Human-readable display label.")


class CategoryItemSerializer(ChoiceItemSerializer):
    default_priority = serializers.CharField()
    estimated_resolution_days = serializers.IntegerField()
    department = serializers.CharField()
    description = serializers.CharField()


class SystemConstantsSerializer(serializers.Serializer):
    """
    Read-only serializer for system-wide choice enumerations.

    Consumed by the frontend to build dropdowns and labels without
    hard-coding values.
    """

    categories = CategoryItemSerializer(many=True)
    statuses = ChoiceItemSerializer(many=True)
    priorities = ChoiceItemSerializer(many=True)
    roles = ChoiceItemSerializer(many=True)
    dashboard_periods = serializers.ListField(child=serializers.CharField())


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for ``Notification`` instances.

    ``reference`` holds the complaint id the notification is about and
    stays meaningful after the complaint has been deleted.
    """

    content_type = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = Notification
        fields = [
            "id",
            "kind",
            "title",
            "message",
            "reference",
            "action_url",
            "is_read",
            "read_at",
            "content_type",
            "object_id",
            "created_at",
        ]
        read_only_fields = fields


class UnreadCountSerializer(serializers.Serializer):
    unread = serializers.IntegerField()
