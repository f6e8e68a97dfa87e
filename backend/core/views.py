"""
Core app views — **Thin Views**.

Each view delegates all business logic to the corresponding service in
``core.services``.  Views are responsible only for:

1. Extracting and validating query parameters from the request.
2. Calling the service with the authenticated user and parameters.
3. Serialising the result and returning an HTTP ``Response``.

No model imports, no aggregation logic, no cross-app queries.
"""

from __future__ import annotations

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    DashboardStatsSerializer,
    MapDataQuerySerializer,
    MapPointSerializer,
    NotificationSerializer,
    PerformanceQuerySerializer,
    PerformanceSerializer,
    PeriodQuerySerializer,
    SystemConstantsSerializer,
    UnreadCountSerializer,
)
from .services import (
    DashboardAggregationService,
    NotificationService,
    SystemConstantsService,
)

_PERIOD_PARAM = OpenApiParameter(
    name="period",
    type=str,
    location=OpenApiParameter.QUERY,
    description="7days / 30days / 90days / 1year (default 30days).",
)


class DashboardStatsView(APIView):
    """
    **GET /api/core/dashboard/?period=30days**

    Return aggregated dashboard statistics for the authenticated user.

    The response payload is **role-aware**: a citizen only sees numbers
    about their own complaints, staff see everything plus the top
    reporters and the officer workload.  See
    ``DashboardAggregationService`` for the full scoping logic.

    **Authentication**: Required (``IsAuthenticated``).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Dashboard statistics",
        parameters=[_PERIOD_PARAM],
        responses={
            200: OpenApiResponse(response=DashboardStatsSerializer, description="Dashboard stats."),
            400: OpenApiResponse(description="Invalid period."),
        },
        tags=["Dashboard"],
    )
    def get(self, request: Request) -> Response:
        params = PeriodQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)

        service = DashboardAggregationService(user=request.user, period=params.validated_data["period"])
        serializer = DashboardStatsSerializer(service.get_stats())
        return Response(serializer.data, status=status.HTTP_200_OK)


class MapDataView(APIView):
    """
    **GET /api/core/map-data/**

    Complaint pins for the map, capped at ``MAP_DATA_LIMIT`` rows and
    scoped like the dashboard.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Map data",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Status or 'all'."),
            OpenApiParameter(name="category", type=str, location=OpenApiParameter.QUERY, description="Category or 'all'."),
            OpenApiParameter(name="south", type=float, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="west", type=float, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="north", type=float, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="east", type=float, location=OpenApiParameter.QUERY),
        ],
        responses={200: MapPointSerializer(many=True)},
        tags=["Dashboard"],
    )
    def get(self, request: Request) -> Response:
        params = MapDataQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)

        service = DashboardAggregationService(user=request.user)
        points = service.get_map_data(params.validated_data)
        return Response(MapPointSerializer(points, many=True).data, status=status.HTTP_200_OK)


class PerformanceView(APIView):
    """
    **GET /api/core/performance/?period=30days[&officer_id=<id>]**

    Resolution metrics per officer and per department.  Staff only.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Performance metrics",
        parameters=[
            _PERIOD_PARAM,
            OpenApiParameter(name="officer_id", type=int, location=OpenApiParameter.QUERY),
        ],
        responses={
            200: PerformanceSerializer,
            403: OpenApiResponse(description="Staff only."),
        },
        tags=["Dashboard"],
    )
    def get(self, request: Request) -> Response:
        params = PerformanceQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)

        service = DashboardAggregationService(user=request.user, period=params.validated_data["period"])
        data = service.get_performance(officer_id=params.validated_data.get("officer_id"))
        return Response(PerformanceSerializer(data).data, status=status.HTTP_200_OK)


class SystemConstantsView(APIView):
    """
    **GET /api/core/constants/**

    Return the complaint categories (with their default priority and
    handling department), statuses, priorities, roles and dashboard
    periods so the frontend can build dropdowns and labels without
    hardcoding values.

    **Authentication**: Not required (``AllowAny``).
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="System constants",
        responses={200: OpenApiResponse(response=SystemConstantsSerializer, description="System constants.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemConstantsService.get_constants()
        serializer = SystemConstantsSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — inbox of the authenticated user.

    Endpoints
    ---------
    GET  /api/core/notifications/               → list (``?unread=true`` for unread only)
    GET  /api/core/notifications/unread-count/  → ``{"unread": n}``
    POST /api/core/notifications/{id}/read/     → mark one as read
    POST /api/core/notifications/read-all/      → mark all as read
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    @extend_schema(
        summary="List notifications",
        parameters=[OpenApiParameter(name="unread", type=bool, location=OpenApiParameter.QUERY)],
        responses={200: NotificationSerializer(many=True)},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        unread_only = request.query_params.get("unread", "").lower() in ("1", "true", "yes")
        service = NotificationService(user=request.user)
        notifications = service.list_notifications(unread_only=unread_only)
        return Response(NotificationSerializer(notifications, many=True).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="unread-count")
    @extend_schema(
        summary="Unread notification count",
        responses={200: UnreadCountSerializer},
        tags=["Notifications"],
    )
    def unread_count(self, request: Request) -> Response:
        service = NotificationService(user=request.user)
        return Response({"unread": service.unread_count()}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="read")
    @extend_schema(
        summary="Mark notification as read",
        request=None,
        responses={200: NotificationSerializer, 404: OpenApiResponse(description="Not found.")},
        tags=["Notifications"],
    )
    def mark_as_read(self, request: Request, pk: str = None) -> Response:
        service = NotificationService(user=request.user)
        notification = service.mark_as_read(notification_id=pk)
        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="read-all")
    @extend_schema(
        summary="Mark all notifications as read",
        request=None,
        responses={200: OpenApiResponse(description="``{\"updated\": n}``")},
        tags=["Notifications"],
    )
    def mark_all_as_read(self, request: Request) -> Response:
        service = NotificationService(user=request.user)
        return Response({"updated": service.mark_all_as_read()}, status=status.HTTP_200_OK)
