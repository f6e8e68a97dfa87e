"""
Complaints app URL configuration.

Included in the project-level ``urls.py`` as::

    path('api/', include('complaints.urls')),

Endpoint Map
------------
    GET    /complaints/                  → ComplaintViewSet.list
    POST   /complaints/                  → ComplaintViewSet.create
    GET    /complaints/{id}/             → ComplaintViewSet.retrieve
    DELETE /complaints/{id}/             → ComplaintViewSet.destroy
    POST   /complaints/{id}/status/      → ComplaintViewSet.update_status
    POST   /complaints/{id}/assign/      → ComplaintViewSet.assign
    POST   /complaints/{id}/vote/        → ComplaintViewSet.vote
    GET    /complaints/{id}/history/     → ComplaintViewSet.history
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ComplaintViewSet

app_name = "complaints"

router = DefaultRouter()
router.register(prefix=r"complaints", viewset=ComplaintViewSet, basename="complaint")

urlpatterns = [
    path("", include(router.urls)),
]
