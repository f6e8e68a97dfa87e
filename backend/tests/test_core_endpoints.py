"""
Tests for the core aggregation endpoints: dashboard statistics, map
data, performance metrics and the public constants catalogue.
"""

from __future__ import annotations

import datetime

import pytest
from django.utils import timezone
from rest_framework import status

from complaints.models import Complaint
from complaints.services import (
    ComplaintAssignmentService,
    ComplaintCreationService,
    ComplaintWorkflowService,
)
from core.domain.exceptions import PermissionDenied, ValidationFailed
from core.services import DashboardAggregationService, SystemConstantsService

DASHBOARD_URL = "/api/core/dashboard/"
MAP_URL = "/api/core/map-data/"
PERFORMANCE_URL = "/api/core/performance/"
CONSTANTS_URL = "/api/core/constants/"


def _file(reporter, **overrides):
    data = {
        "title": "Streetlight out",
        "description": "The lamp post has been dark for a week.",
        "category": "street_light",
        "address": "MG Road",
        "latitude": 12.9716,
        "longitude": 77.5946,
        **overrides,
    }
    return ComplaintCreationService.create_complaint(data, reporter)


@pytest.fixture()
def people(create_user):
    return {
        "citizen": create_user(username="carla", role="citizen"),
        "neighbour": create_user(username="nina", role="citizen"),
        "officer": create_user(username="oscar", role="officer", department="Electrical"),
        "admin": create_user(username="ada", role="admin"),
    }


@pytest.fixture()
def complaints(people):
    """Three complaints: two by carla (one resolved), one by nina."""
    officer, admin = people["officer"], people["admin"]
    light = _file(people["citizen"])
    leak = _file(people["citizen"], category="water_leakage", title="Leak", latitude=19.0, longitude=72.8)
    garbage = _file(people["neighbour"], category="garbage", title="Garbage")

    ComplaintAssignmentService.assign(light.pk, officer.pk, admin)
    ComplaintAssignmentService.assign(leak.pk, officer.pk, admin)
    ComplaintWorkflowService.update_status(light.pk, {"status": "resolved"}, officer)
    # two days from filing to resolution
    Complaint.objects.filter(pk=light.pk).update(
        created_at=timezone.now() - datetime.timedelta(days=2),
        resolved_at=timezone.now(),
    )
    return {"light": light, "leak": leak, "garbage": garbage}


@pytest.mark.django_db
class TestDashboardStats:

    def test_citizen_sees_own_numbers(self, people, complaints):
        stats = DashboardAggregationService(people["citizen"]).get_stats()

        assert stats["period"] == "30days"
        assert stats["overview"]["total"] == 2
        assert stats["overview"]["resolved"] == 1
        assert stats["overview"]["in_progress"] == 1
        assert stats["top_reporters"] == []
        assert stats["officer_workload"] == []
        assert {row["key"] for row in stats["by_category"]} == {"street_light", "water_leakage"}

    def test_staff_see_everything(self, people, complaints):
        stats = DashboardAggregationService(people["officer"]).get_stats()

        assert stats["overview"]["total"] == 3
        assert stats["overview"]["pending"] == 1
        assert stats["top_reporters"][0] == {
            "user_id": people["citizen"].pk, "name": "Carla Tester", "count": 2,
        }
        assert stats["officer_workload"] == [
            {"officer_id": people["officer"].pk, "name": "Oscar Tester", "count": 1},
        ]

    def test_average_resolution_days(self, people, complaints):
        stats = DashboardAggregationService(people["admin"]).get_stats()
        assert stats["avg_resolution_days"] == 2.0

    def test_group_labels(self, people, complaints):
        stats = DashboardAggregationService(people["admin"]).get_stats()
        labels = {row["key"]: row["label"] for row in stats["by_priority"]}
        assert labels["urgent"] == "Urgent"

    def test_period_excludes_old_complaints(self, people, complaints):
        Complaint.objects.filter(pk=complaints["garbage"].pk).update(
            created_at=timezone.now() - datetime.timedelta(days=10),
        )
        assert DashboardAggregationService(people["admin"], "7days").get_stats()["overview"]["total"] == 2
        assert DashboardAggregationService(people["admin"], "30days").get_stats()["overview"]["total"] == 3

    def test_daily_trend_is_ascending(self, people, complaints):
        trend = DashboardAggregationService(people["admin"]).get_stats()["daily_trend"]
        dates = [point["date"] for point in trend]
        assert dates == sorted(dates)
        assert sum(point["complaints"] for point in trend) == 3

    def test_invalid_period(self, people):
        with pytest.raises(ValidationFailed):
            DashboardAggregationService(people["admin"], "decade")

    def test_endpoint(self, api_client, auth_header, people, complaints):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header(user=people["citizen"])["Authorization"])
        resp = api_client.get(DASHBOARD_URL, {"period": "7days"})
        assert resp.status_code == status.HTTP_200_OK, resp.data
        assert resp.data["period"] == "7days"
        assert resp.data["overview"]["total"] == 2
        assert resp.data["recent_complaints"][0]["reported_by"]["username"] == "carla"

    def test_endpoint_rejects_bad_period(self, api_client, auth_header):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header()["Authorization"])
        resp = api_client.get(DASHBOARD_URL, {"period": "decade"})
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert "period" in resp.data["errors"]

    def test_requires_authentication(self, api_client):
        assert api_client.get(DASHBOARD_URL).status_code == status.HTTP_401_UNAUTHORIZED


@pytest.fixture()
def busy_city(create_user):
    """
    Seven reporters filing 7, 6, ... 1 complaints (newest first, an hour
    apart) and seven officers holding 1, 2, ... 7 open assignments.
    Officer 0 also carries six finished complaints filed two months ago.
    """
    reporters = [create_user(username=f"reporter{i}") for i in range(7)]
    officers = [create_user(username=f"officer{i}", role="officer") for i in range(7)]
    archivist = create_user(username="archivist")

    filed = []
    for i, reporter in enumerate(reporters):
        filed += [_file(reporter) for _ in range(7 - i)]
    now = timezone.now()
    for hours, complaint in enumerate(filed):
        Complaint.objects.filter(pk=complaint.pk).update(
            created_at=now - datetime.timedelta(hours=hours),
        )

    start = 0
    for k, officer in enumerate(officers):
        for n, complaint in enumerate(filed[start:start + k + 1]):
            Complaint.objects.filter(pk=complaint.pk).update(
                assigned_to=officer,
                status="pending" if n % 2 else "in_progress",
            )
        start += k + 1

    finished = [_file(archivist) for _ in range(6)]
    Complaint.objects.filter(pk__in=[c.pk for c in finished]).update(
        assigned_to=officers[0],
        created_at=now - datetime.timedelta(days=60),
    )
    for complaint, final in zip(finished, ["resolved", "closed", "rejected"] * 2):
        Complaint.objects.filter(pk=complaint.pk).update(status=final)

    return {
        "reporters": reporters,
        "officers": officers,
        "filed": filed,
        "finished": finished,
        "admin": create_user(username="overseer", role="admin"),
    }


@pytest.mark.django_db
class TestDashboardLimits:

    def test_recent_complaints_are_the_five_newest(self, busy_city):
        stats = DashboardAggregationService(busy_city["admin"]).get_stats()
        assert stats["overview"]["total"] == 28
        assert [c.pk for c in stats["recent_complaints"]] == [c.pk for c in busy_city["filed"][:5]]

    def test_top_reporters_capped_at_five(self, busy_city):
        rows = DashboardAggregationService(busy_city["admin"]).get_stats()["top_reporters"]
        assert [row["user_id"] for row in rows] == [r.pk for r in busy_city["reporters"][:5]]
        assert [row["count"] for row in rows] == [7, 6, 5, 4, 3]
        assert rows[0]["name"] == "Reporter0 Tester"

    def test_officer_workload_counts_only_open_complaints(self, busy_city):
        rows = DashboardAggregationService(busy_city["admin"]).get_stats()["officer_workload"]
        officers = busy_city["officers"]

        assert [row["officer_id"] for row in rows] == [o.pk for o in officers[6:1:-1]]
        assert [row["count"] for row in rows] == [7, 6, 5, 4, 3]
        # six finished assignments do not lift officer 0 into the list
        assert officers[0].pk not in {row["officer_id"] for row in rows}

    def test_workload_ignores_the_period(self, busy_city):
        Complaint.objects.filter(assigned_to=busy_city["officers"][6]).update(
            created_at=timezone.now() - datetime.timedelta(days=200),
        )
        rows = DashboardAggregationService(busy_city["admin"], "7days").get_stats()["officer_workload"]
        assert rows[0] == {
            "officer_id": busy_city["officers"][6].pk, "name": "Officer6 Tester", "count": 7,
        }

    def test_daily_trend_capped_at_thirty_points(self, busy_city):
        now = timezone.now()
        everything = busy_city["filed"] + busy_city["finished"]
        for days, complaint in enumerate(everything):
            Complaint.objects.filter(pk=complaint.pk).update(
                created_at=now - datetime.timedelta(days=days),
            )

        trend = DashboardAggregationService(busy_city["admin"], "1year").get_stats()["daily_trend"]

        assert len(everything) == 34
        assert len(trend) == 30
        dates = [point["date"] for point in trend]
        assert dates == sorted(set(dates))
        assert dates[0] == timezone.localdate(now - datetime.timedelta(days=33))
        assert all(point["complaints"] == 1 for point in trend)

    def test_endpoint_applies_the_same_caps(self, api_client, auth_header, busy_city):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header(user=busy_city["admin"])["Authorization"])
        resp = api_client.get(DASHBOARD_URL)
        assert resp.status_code == status.HTTP_200_OK
        assert len(resp.data["recent_complaints"]) == 5
        assert len(resp.data["top_reporters"]) == 5
        assert len(resp.data["officer_workload"]) == 5


@pytest.mark.django_db
class TestMapData:

    def test_points_are_scoped_and_filtered(self, people, complaints):
        citizen_points = DashboardAggregationService(people["citizen"]).get_map_data({})
        assert len(citizen_points) == 2

        staff = DashboardAggregationService(people["admin"])
        leaks = staff.get_map_data({"category": "water_leakage"})
        assert [p["human_id"] for p in leaks] == [complaints["leak"].human_id]
        assert isinstance(leaks[0]["latitude"], float)

    def test_bounding_box(self, people, complaints):
        box = {"south": 18.0, "west": 72.0, "north": 20.0, "east": 73.0}
        points = DashboardAggregationService(people["admin"]).get_map_data(box)
        assert [p["human_id"] for p in points] == [complaints["leak"].human_id]

    def test_partial_box_rejected(self, api_client, auth_header):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header(role="officer")["Authorization"])
        resp = api_client.get(MAP_URL, {"south": 1, "north": 2})
        assert resp.status_code == status.HTTP_400_BAD_REQUEST

    def test_limit(self, people, complaints, settings):
        settings.CIVIC_RESOLVE = {**settings.CIVIC_RESOLVE, "MAP_DATA_LIMIT": 2}
        assert len(DashboardAggregationService(people["admin"]).get_map_data({})) == 2

    def test_endpoint(self, api_client, auth_header, people, complaints):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header(user=people["officer"])["Authorization"])
        resp = api_client.get(MAP_URL, {"status": "resolved"})
        assert resp.status_code == status.HTTP_200_OK
        assert [p["human_id"] for p in resp.data] == [complaints["light"].human_id]


@pytest.mark.django_db
class TestPerformance:

    def test_resolution_by_officer(self, people, complaints):
        data = DashboardAggregationService(people["admin"]).get_performance()
        assert data["resolution_by_officer"] == [
            {
                "officer_id": people["officer"].pk,
                "name": "Oscar Tester",
                "avg_resolution_days": 2.0,
                "total_resolved": 1,
            },
        ]

    def test_by_department(self, people, complaints):
        data = DashboardAggregationService(people["admin"]).get_performance()
        assert data["by_department"] == [
            {
                "department": "Electrical",
                "total": 2,
                "resolved": 1,
                "pending": 0,
                "in_progress": 1,
                "resolution_rate": 50.0,
            },
        ]

    def test_officer_filter(self, people, complaints, create_user):
        other = create_user(role="officer")
        data = DashboardAggregationService(people["admin"]).get_performance(officer_id=other.pk)
        assert data["resolution_by_officer"] == []
        assert data["by_department"] == []

    def test_citizens_forbidden(self, people):
        with pytest.raises(PermissionDenied):
            DashboardAggregationService(people["citizen"]).get_performance()

    def test_endpoint(self, api_client, auth_header, people, complaints):
        api_client.credentials(HTTP_AUTHORIZATION=auth_header(user=people["citizen"])["Authorization"])
        assert api_client.get(PERFORMANCE_URL).status_code == status.HTTP_403_FORBIDDEN

        api_client.credentials(HTTP_AUTHORIZATION=auth_header(user=people["officer"])["Authorization"])
        resp = api_client.get(PERFORMANCE_URL, {"period": "90days"})
        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["period"] == "90days"


@pytest.mark.django_db
class TestSystemConstants:

    def test_catalogue(self):
        data = SystemConstantsService.get_constants()
        leak = next(c for c in data["categories"] if c["value"] == "water_leakage")
        assert leak["default_priority"] == "urgent"
        assert leak["department"] == "Water Supply"
        assert {s["value"] for s in data["statuses"]} == {
            "pending", "in_progress", "resolved", "closed", "rejected",
        }
        assert [p["value"] for p in data["priorities"]] == ["low", "medium", "high", "urgent"]
        assert data["dashboard_periods"] == ["7days", "30days", "90days", "1year"]

    def test_public_endpoint(self, api_client):
        resp = api_client.get(CONSTANTS_URL)
        assert resp.status_code == status.HTTP_200_OK
        assert len(resp.data["categories"]) == 10
        assert {"value": "citizen", "label": "Citizen"} in resp.data["roles"]
