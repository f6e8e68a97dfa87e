"""
Fixtures shared by the complaint test modules.

``make_complaint`` files a complaint through the creation service so
every test starts from a row with a real ``human_id`` and a first
ledger entry.
"""

from __future__ import annotations

import pytest

from complaints.services import ComplaintCreationService

DRAFT = {
    "title": "Burst water main",
    "description": "Water has been gushing onto the street since morning.",
    "category": "water_leakage",
    "address": "12 Station Road",
    "latitude": 18.5204,
    "longitude": 73.8567,
    "landmark": "Opposite the bus depot",
}


@pytest.fixture()
def citizen(create_user):
    return create_user(username="citizen_a", role="citizen")


@pytest.fixture()
def officer(create_user):
    return create_user(username="officer_o", role="officer", department="Water Supply")


@pytest.fixture()
def admin_user(create_user):
    return create_user(username="admin_x", role="admin")


@pytest.fixture()
def make_complaint(citizen):
    def _make(reporter=None, images=None, **overrides):
        data = {**DRAFT, **overrides}
        return ComplaintCreationService.create_complaint(
            data, reporter or citizen, images=images,
        )

    return _make
