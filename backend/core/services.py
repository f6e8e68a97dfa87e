"""
Core app services — **Service Layer**.

Contains cross-app aggregation logic (dashboard, map, performance), the
public constants catalogue and the per-user notification inbox.  Views
delegate all business logic to the service classes defined here.

╔══════════════════════════════════════════════════════════════════════╗
║  CROSS-APP IMPORT RULEBOOK                                           ║
║                                                                      ║
║  The core app is the ONLY app allowed to aggregate models from       ║
║  other apps.  To prevent circular imports at module load time:       ║
║                                                                      ║
║  1. NEVER import models from other apps at the **module level**.     ║
║     Use ``apps.get_model("complaints", "Complaint")`` inside the     ║
║     method, or import lazily.                                        ║
║                                                                      ║
║  2. Choice/enum classes (``ComplaintStatus`` …) live in the owning   ║
║     app's ``models.py``.  Import them lazily inside methods too.     ║
║                                                                      ║
║  3. Prefer ORM ``.aggregate()`` / ``.values().annotate()`` over      ║
║     Python-side loops for counting.                                  ║
╚══════════════════════════════════════════════════════════════════════╝
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from django.apps import apps
from django.db.models import Count, Q, QuerySet
from django.db.models.functions import TruncDate
from django.utils import timezone

from core.domain.access import STAFF_ROLES, apply_role_scope, require_role
from core.domain.exceptions import NotFound, ValidationFailed

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)


def _seconds_to_days(seconds: float) -> float:
    return seconds / 86400


def _average_resolution_days(rows) -> float:
    """Mean of ``resolved_at - created_at`` in days over ``(created_at, resolved_at)`` rows."""
    durations = [
        _seconds_to_days((resolved_at - created_at).total_seconds())
        for created_at, resolved_at in rows
        if created_at and resolved_at
    ]
    if not durations:
        return 0
    return round(sum(durations) / len(durations), 1)


# ════════════════════════════════════════════════════════════════════
#  Dashboard Aggregation Service
# ════════════════════════════════════════════════════════════════════

class DashboardAggregationService:
    """
    Aggregates complaint statistics for the dashboard, the map view and
    the staff performance page.

    Scoping
    -------
    * Citizens only ever aggregate over complaints they reported.
    * Officers, admins and superadmins aggregate over everything and
      additionally receive ``top_reporters`` and ``officer_workload``.

    ``period`` restricts ``created_at`` to the trailing window; the
    officer workload is deliberately computed over all open complaints.
    """

    _SCOPE_RULES = {
        "citizen": lambda qs, u: qs.filter(reported_by=u),
    }

    RECENT_LIMIT: int = 5
    TOP_LIMIT: int = 5
    TREND_POINTS: int = 30
    PERFORMANCE_OFFICER_LIMIT: int = 10

    def __init__(self, user: User, period: str | None = None) -> None:
        from complaints.constants import DASHBOARD_PERIODS, DEFAULT_DASHBOARD_PERIOD

        self.user = user
        self.period = period or DEFAULT_DASHBOARD_PERIOD
        if self.period not in DASHBOARD_PERIODS:
            raise ValidationFailed(
                "Invalid period.",
                errors={"period": [f"Must be one of {', '.join(DASHBOARD_PERIODS)}."]},
            )
        self.since = timezone.now() - timedelta(days=DASHBOARD_PERIODS[self.period])

    # ── Public API ──────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """
        Build the dashboard payload.

        Returns
        -------
        dict
            ``overview``, ``by_category``, ``by_priority``, ``daily_trend``,
            ``avg_resolution_days``, ``recent_complaints``,
            ``top_reporters``, ``officer_workload``.
        """
        qs = self._get_period_queryset()
        is_staff = self._is_staff()

        return {
            "period": self.period,
            "overview": self._get_overview(qs),
            "by_category": self._group_by(qs, "category"),
            "by_priority": self._group_by(qs, "priority"),
            "daily_trend": self._get_daily_trend(qs),
            "avg_resolution_days": _average_resolution_days(
                qs.filter(resolved_at__isnull=False).values_list("created_at", "resolved_at")
            ),
            "recent_complaints": list(
                qs.select_related("reported_by", "assigned_to")
                .order_by("-created_at", "-id")[: self.RECENT_LIMIT]
            ),
            "top_reporters": self._get_top_reporters(qs) if is_staff else [],
            "officer_workload": self._get_officer_workload() if is_staff else [],
        }

    def get_map_data(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Complaints with coordinates for the map view.

        Parameters
        ----------
        filters : dict
            Optional ``status`` / ``category`` (``"all"`` means no filter)
            and an optional ``south``/``west``/``north``/``east`` box.
        """
        from complaints.constants import get_setting

        qs = self._get_complaint_queryset()
        for field in ("status", "category"):
            value = filters.get(field)
            if value and value != "all":
                qs = qs.filter(**{field: value})

        bounds = [filters.get(key) for key in ("south", "west", "north", "east")]
        if all(value is not None for value in bounds):
            south, west, north, east = bounds
            qs = qs.filter(
                latitude__gte=south, latitude__lte=north,
                longitude__gte=west, longitude__lte=east,
            )

        rows = qs.order_by("-created_at", "-id").values(
            "id", "human_id", "title", "category", "status", "priority",
            "latitude", "longitude", "address",
        )[: get_setting("MAP_DATA_LIMIT")]
        return [
            {**row, "latitude": float(row["latitude"]), "longitude": float(row["longitude"])}
            for row in rows
        ]

    def get_performance(self, officer_id: int | None = None) -> dict[str, Any]:
        """
        Staff-only resolution metrics.

        Returns
        -------
        dict
            ``resolution_by_officer`` (avg days, resolved count, top 10 by
            count) and ``by_department`` (grouped by the assignee's
            department).

        Raises
        ------
        PermissionDenied
            Citizens.
        """
        require_role(self.user, *STAFF_ROLES, message="Only staff can view performance metrics.")
        from complaints.models import ComplaintStatus

        Complaint = apps.get_model("complaints", "Complaint")
        qs = Complaint.objects.filter(created_at__gte=self.since)
        if officer_id:
            qs = qs.filter(assigned_to_id=officer_id)

        resolved = (
            qs.filter(
                assigned_to__isnull=False,
                status=ComplaintStatus.RESOLVED,
                resolved_at__isnull=False,
            )
            .select_related("assigned_to")
        )
        per_officer: dict[int, dict[str, Any]] = {}
        for complaint in resolved:
            entry = per_officer.setdefault(complaint.assigned_to_id, {
                "officer_id": complaint.assigned_to_id,
                "name": complaint.assigned_to.display_name,
                "_rows": [],
            })
            entry["_rows"].append((complaint.created_at, complaint.resolved_at))

        resolution_by_officer = sorted(
            (
                {
                    "officer_id": entry["officer_id"],
                    "name": entry["name"],
                    "avg_resolution_days": _average_resolution_days(entry["_rows"]),
                    "total_resolved": len(entry["_rows"]),
                }
                for entry in per_officer.values()
            ),
            key=lambda row: (-row["total_resolved"], row["avg_resolution_days"]),
        )[: self.PERFORMANCE_OFFICER_LIMIT]

        departments = (
            qs.exclude(Q(assigned_to__isnull=True) | Q(assigned_to__department=""))
            .values("assigned_to__department")
            .annotate(
                total=Count("id"),
                resolved=Count("id", filter=Q(status=ComplaintStatus.RESOLVED)),
                pending=Count("id", filter=Q(status=ComplaintStatus.PENDING)),
                in_progress=Count("id", filter=Q(status=ComplaintStatus.IN_PROGRESS)),
            )
            .order_by("-total", "assigned_to__department")
        )
        by_department = [
            {
                "department": row["assigned_to__department"],
                "total": row["total"],
                "resolved": row["resolved"],
                "pending": row["pending"],
                "in_progress": row["in_progress"],
                "resolution_rate": round(row["resolved"] / row["total"] * 100, 1),
            }
            for row in departments
        ]

        return {
            "period": self.period,
            "resolution_by_officer": resolution_by_officer,
            "by_department": by_department,
        }

    # ── Private helpers ─────────────────────────────────────────────

    def _is_staff(self) -> bool:
        from core.domain.access import get_user_role_name

        return get_user_role_name(self.user) in STAFF_ROLES

    def _get_complaint_queryset(self) -> QuerySet:
        """``Complaint`` queryset scoped to the requesting user's role."""
        Complaint = apps.get_model("complaints", "Complaint")
        return apply_role_scope(
            Complaint.objects.all(),
            self.user,
            scope_rules=self._SCOPE_RULES,
            default="all",
        )

    def _get_period_queryset(self) -> QuerySet:
        return self._get_complaint_queryset().filter(created_at__gte=self.since)

    def _get_overview(self, qs: QuerySet) -> dict[str, int]:
        from complaints.models import ComplaintStatus

        return qs.aggregate(
            total=Count("id"),
            pending=Count("id", filter=Q(status=ComplaintStatus.PENDING)),
            in_progress=Count("id", filter=Q(status=ComplaintStatus.IN_PROGRESS)),
            resolved=Count("id", filter=Q(status=ComplaintStatus.RESOLVED)),
            closed=Count("id", filter=Q(status=ComplaintStatus.CLOSED)),
            rejected=Count("id", filter=Q(status=ComplaintStatus.REJECTED)),
        )

    def _group_by(self, qs: QuerySet, field: str) -> list[dict[str, Any]]:
        """Group ``qs`` by ``field`` and return ``[{key, label, count}]``, largest first."""
        Complaint = apps.get_model("complaints", "Complaint")
        label_map = dict(Complaint._meta.get_field(field).choices)
        rows = (
            qs.values(field)
            .annotate(count=Count("id"))
            .order_by("-count", field)
        )
        return [
            {
                "key": row[field],
                "label": label_map.get(row[field], row[field]),
                "count": row["count"],
            }
            for row in rows
        ]

    def _get_daily_trend(self, qs: QuerySet) -> list[dict[str, Any]]:
        from complaints.models import ComplaintStatus

        rows = (
            qs.annotate(day=TruncDate("created_at"))
            .values("day")
            .annotate(
                complaints=Count("id"),
                resolved=Count("id", filter=Q(status=ComplaintStatus.RESOLVED)),
            )
            .order_by("day")[: self.TREND_POINTS]
        )
        return [
            {"date": row["day"], "complaints": row["complaints"], "resolved": row["resolved"]}
            for row in rows
        ]

    def _get_top_reporters(self, qs: QuerySet) -> list[dict[str, Any]]:
        User = apps.get_model("accounts", "User")
        rows = list(
            qs.values("reported_by")
            .annotate(count=Count("id"))
            .order_by("-count", "reported_by")[: self.TOP_LIMIT]
        )
        names = {
            user.pk: user.display_name
            for user in User.objects.filter(pk__in=[row["reported_by"] for row in rows])
        }
        return [
            {"user_id": row["reported_by"], "name": names.get(row["reported_by"], ""), "count": row["count"]}
            for row in rows
        ]

    def _get_officer_workload(self) -> list[dict[str, Any]]:
        from complaints.models import ComplaintStatus

        Complaint = apps.get_model("complaints", "Complaint")
        User = apps.get_model("accounts", "User")
        rows = list(
            Complaint.objects
            .filter(
                assigned_to__isnull=False,
                status__in=[ComplaintStatus.PENDING, ComplaintStatus.IN_PROGRESS],
            )
            .values("assigned_to")
            .annotate(count=Count("id"))
            .order_by("-count", "assigned_to")[: self.TOP_LIMIT]
        )
        names = {
            user.pk: user.display_name
            for user in User.objects.filter(pk__in=[row["assigned_to"] for row in rows])
        }
        return [
            {"officer_id": row["assigned_to"], "name": names.get(row["assigned_to"], ""), "count": row["count"]}
            for row in rows
        ]


# ════════════════════════════════════════════════════════════════════
#  System Constants Service
# ════════════════════════════════════════════════════════════════════

class SystemConstantsService:
    """
    Gathers all system-wide choice enumerations into a single dict for
    the frontend.

    This service is **stateless** — it does not depend on the requesting
    user.  All constants are public information needed by the frontend
    to render dropdowns and labels.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        """Return all system constants as a dict."""
        from accounts.models import UserRole
        from complaints.constants import CATEGORY_METADATA, DASHBOARD_PERIODS
        from complaints.models import ComplaintCategory, ComplaintPriority, ComplaintStatus

        to_list = SystemConstantsService._choices_to_list

        categories = [
            {
                "value": value,
                "label": str(label),
                "default_priority": CATEGORY_METADATA[value]["priority"],
                "estimated_resolution_days": CATEGORY_METADATA[value]["estimated_resolution_days"],
                "department": CATEGORY_METADATA[value]["department"],
                "description": CATEGORY_METADATA[value]["description"],
            }
            for value, label in ComplaintCategory.choices
        ]

        return {
            "categories": categories,
            "statuses": to_list(ComplaintStatus),
            "priorities": to_list(ComplaintPriority),
            "roles": to_list(UserRole),
            "dashboard_periods": list(DASHBOARD_PERIODS),
        }

    @staticmethod
    def _choices_to_list(
        choices_class: type,
    ) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` class to a list of
        ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]


# ═══════════════════════════════════════════════════════════════════
#  Notification Service
# ═══════════════════════════════════════════════════════════════════

class NotificationService:
    """
    Handles listing and marking notifications as read for a given user.
    """

    def __init__(self, user: Any) -> None:
        self.user = user

    def list_notifications(self, unread_only: bool = False) -> QuerySet:
        """Return the notifications for ``self.user``, most recent first."""
        from core.models import Notification

        qs = Notification.objects.filter(recipient=self.user).order_by("-created_at", "-id")
        if unread_only:
            qs = qs.filter(is_read=False)
        return qs

    def unread_count(self) -> int:
        from core.models import Notification

        return Notification.objects.filter(recipient=self.user, is_read=False).count()

    def mark_as_read(self, notification_id: Any) -> Any:
        """
        Mark a single notification as read.

        Raises
        ------
        NotFound
            The notification does not exist or belongs to someone else.
        """
        from core.models import Notification

        try:
            notification = Notification.objects.get(pk=notification_id, recipient=self.user)
        except (Notification.DoesNotExist, ValueError, TypeError):
            raise NotFound("Notification not found.")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=["is_read", "read_at", "updated_at"])
        return notification

    def mark_all_as_read(self) -> int:
        """Mark every unread notification as read; return how many changed."""
        from core.models import Notification

        updated = Notification.objects.filter(recipient=self.user, is_read=False).update(
            is_read=True,
            read_at=timezone.now(),
        )
        logger.info("Marked %d notification(s) read for user id=%s", updated, self.user.pk)
        return updated
