"""
Complaint domain constants.

Category metadata mirrors the municipal category catalogue: every
category has a default priority (applied at creation), an indicative
resolution time and the department that usually handles it.
"""

from __future__ import annotations

from typing import Any

from django.conf import settings

_DEFAULTS: dict[str, Any] = {
    "ID_PREFIX": "CMP",
    "ID_MAX_ATTEMPTS": 5,
    "MAX_COMPLAINT_IMAGES": 5,
    "MAX_RESOLUTION_IMAGES": 5,
    "DEFAULT_PAGE_SIZE": 10,
    "MAX_PAGE_SIZE": 100,
    "MAP_DATA_LIMIT": 500,
    "COMPLAINT_IMAGE_FOLDER": "civic-resolve/complaints",
    "RESOLUTION_IMAGE_FOLDER": "civic-resolve/resolutions",
}


def get_setting(name: str) -> Any:
    """Read a key from ``settings.CIVIC_RESOLVE`` falling back to the defaults."""
    return getattr(settings, "CIVIC_RESOLVE", {}).get(name, _DEFAULTS[name])


# category → (default priority, estimated resolution days, department)
CATEGORY_METADATA: dict[str, dict[str, Any]] = {
    "pothole": {
        "priority": "high",
        "estimated_resolution_days": 7,
        "department": "Roads & Infrastructure",
        "description": "Potholes and surface damage on roads.",
    },
    "garbage": {
        "priority": "medium",
        "estimated_resolution_days": 2,
        "department": "Sanitation",
        "description": "Uncollected garbage and illegal dumping.",
    },
    "water_leakage": {
        "priority": "urgent",
        "estimated_resolution_days": 1,
        "department": "Water Supply",
        "description": "Burst pipes and water leaks.",
    },
    "street_light": {
        "priority": "medium",
        "estimated_resolution_days": 3,
        "department": "Electrical",
        "description": "Broken or flickering street lights.",
    },
    "electricity": {
        "priority": "high",
        "estimated_resolution_days": 2,
        "department": "Electrical",
        "description": "Power outages and exposed wiring.",
    },
    "drainage": {
        "priority": "high",
        "estimated_resolution_days": 5,
        "department": "Sewerage",
        "description": "Blocked drains and sewage overflow.",
    },
    "road_damage": {
        "priority": "high",
        "estimated_resolution_days": 10,
        "department": "Roads & Infrastructure",
        "description": "Cracked, sunken or collapsed roads.",
    },
    "illegal_construction": {
        "priority": "medium",
        "estimated_resolution_days": 30,
        "department": "Town Planning",
        "description": "Unauthorised construction and encroachment.",
    },
    "noise_pollution": {
        "priority": "low",
        "estimated_resolution_days": 3,
        "department": "Environment",
        "description": "Excessive noise from construction, events or vehicles.",
    },
    "other": {
        "priority": "low",
        "estimated_resolution_days": 7,
        "department": "General Administration",
        "description": "Anything that does not fit another category.",
    },
}

FALLBACK_PRIORITY = "medium"


def default_priority_for(category: str) -> str:
    return CATEGORY_METADATA.get(category, {}).get("priority", FALLBACK_PRIORITY)


# Ledger comments written by the lifecycle engine.
CREATED_COMMENT = "Complaint received and is being reviewed."
ASSIGNED_COMMENT = "Complaint assigned to officer"
STATUS_COMMENT_TEMPLATE = "Status updated to {status}"

# Dashboard periods → days.
DASHBOARD_PERIODS: dict[str, int] = {
    "7days": 7,
    "30days": 30,
    "90days": 90,
    "1year": 365,
}
DEFAULT_DASHBOARD_PERIOD = "30days"

# Whitelisted sort keys for the complaint list.
SORTABLE_FIELDS = (
    "created_at",
    "updated_at",
    "title",
    "status",
    "priority",
    "category",
    "human_id",
    "view_count",
    "upvotes",
)

DATE_RANGES = ("today", "yesterday", "week", "all")
