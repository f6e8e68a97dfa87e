"""
Core app URL configuration.

Provides cross-app aggregation endpoints that serve the frontend dashboard,
the complaint map, staff performance metrics, system-wide constants and
notifications.

URL prefix (registered in ``civic_resolve/urls.py``)::

    path('api/core/', include('core.urls'))

Endpoint summary
----------------
GET  /api/core/dashboard/                     — Aggregated dashboard statistics (role-aware).
GET  /api/core/map-data/                      — Complaint pins for the map view.
GET  /api/core/performance/                   — Staff-only resolution metrics.
GET  /api/core/constants/                     — Categories, statuses, priorities, roles.
GET  /api/core/notifications/                 — List notifications for the authenticated user.
GET  /api/core/notifications/unread-count/    — Unread notification count.
POST /api/core/notifications/{id}/read/       — Mark a single notification as read.
POST /api/core/notifications/read-all/        — Mark every notification as read.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

app_name = "core"

# ── Router for ViewSet-based endpoints ───────────────────────────────
router = DefaultRouter()
router.register(
    prefix=r"notifications",
    viewset=views.NotificationViewSet,
    basename="notification",
)

urlpatterns = [
    # ── Dashboard ────────────────────────────────────────────────────
    path(
        "dashboard/",
        views.DashboardStatsView.as_view(),
        name="dashboard-stats",
    ),
    path(
        "map-data/",
        views.MapDataView.as_view(),
        name="map-data",
    ),
    path(
        "performance/",
        views.PerformanceView.as_view(),
        name="performance",
    ),

    # ── System Constants / Enums ─────────────────────────────────────
    path(
        "constants/",
        views.SystemConstantsView.as_view(),
        name="system-constants",
    ),

    # ── Notifications (router-generated URLs) ────────────────────────
    path("", include(router.urls)),
]
