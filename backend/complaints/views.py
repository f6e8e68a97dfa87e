"""
Complaints app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

The only extra step is moving uploaded files into the blob store
before the service is called; the service only ever sees blob
references.

ViewSets
--------
- ``ComplaintViewSet`` — list / create / retrieve / destroy plus the
  ``status``, ``assign``, ``vote`` and ``history`` actions.
"""

from __future__ import annotations

import dataclasses

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.domain.storage import get_blob_store

from .constants import get_setting
from .models import Complaint
from .serializers import (
    AssignRequestSerializer,
    ComplaintCreatedSerializer,
    ComplaintCreateSerializer,
    ComplaintDetailSerializer,
    ComplaintFilterSerializer,
    ComplaintListSerializer,
    StatusUpdateRequestSerializer,
    StatusUpdateSerializer,
    VoteRequestSerializer,
    VoteResultSerializer,
)
from .services import (
    ComplaintAssignmentService,
    ComplaintCreationService,
    ComplaintDeletionService,
    ComplaintHistoryService,
    ComplaintQueryService,
    ComplaintVoteService,
    ComplaintWorkflowService,
)


class ComplaintViewSet(viewsets.ViewSet):
    """
    All complaint endpoints under ``/api/complaints/``.

    Role checks are enforced in the service layer; the view only
    requires an authenticated principal.
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    lookup_value_regex = r"\d+"

    def _detail_response(self, request: Request, complaint: Complaint, code: int) -> Response:
        user_vote = ComplaintVoteService.get_user_vote(complaint, request.user)
        serializer = ComplaintDetailSerializer(
            complaint,
            context={"request": request, "user_vote": user_vote},
        )
        return Response(serializer.data, status=code)

    # ── Standard CRUD ────────────────────────────────────────────────
    @extend_schema(
        summary="List complaints",
        description=(
            "Paginated, role-scoped complaint list.  Citizens only ever see "
            "their own complaints."
        ),
        parameters=[
            OpenApiParameter(name="page", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="limit", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="sort_by", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="order", type=str, location=OpenApiParameter.QUERY, description="asc / desc."),
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Status or 'all'."),
            OpenApiParameter(name="category", type=str, location=OpenApiParameter.QUERY, description="Category or 'all'."),
            OpenApiParameter(name="priority", type=str, location=OpenApiParameter.QUERY, description="Priority or 'all'."),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Title, complaint id or description."),
            OpenApiParameter(name="date_range", type=str, location=OpenApiParameter.QUERY, description="today / yesterday / week / all."),
            OpenApiParameter(name="my_complaints", type=bool, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="assigned_to_me", type=bool, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="assigned_to", type=int, location=OpenApiParameter.QUERY),
        ],
        responses={200: OpenApiResponse(description="``{items, page, limit, total, total_pages}``")},
        tags=["Complaints"],
    )
    def list(self, request: Request) -> Response:
        filters = ComplaintFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)

        page = ComplaintQueryService.list_complaints(request.user, filters.validated_data)
        page["items"] = ComplaintListSerializer(page["items"], many=True).data
        return Response(page, status=status.HTTP_200_OK)

    @extend_schema(
        summary="File a complaint",
        description="JSON or multipart; multipart requests may attach up to five ``images``.",
        request=ComplaintCreateSerializer,
        responses={
            201: ComplaintCreatedSerializer,
            400: OpenApiResponse(description="Validation error."),
            503: OpenApiResponse(description="Image storage unavailable."),
        },
        tags=["Complaints"],
    )
    def create(self, request: Request) -> Response:
        """
        POST /api/complaints/

        Steps
        -----
        1. Validate the draft.
        2. Upload the images (all or nothing).
        3. Delegate to ``ComplaintCreationService.create_complaint``.
        4. Release the uploaded blobs if the service fails.
        """
        serializer = ComplaintCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        files = data.pop("images", [])

        store = get_blob_store()
        blobs = store.upload_many(files, get_setting("COMPLAINT_IMAGE_FOLDER"))
        try:
            complaint = ComplaintCreationService.create_complaint(data, request.user, images=blobs)
        except Exception:
            store.release(blobs)
            raise

        return Response(ComplaintCreatedSerializer(complaint).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a complaint",
        description="Counts as a view.  Citizens may only open their own complaints.",
        responses={
            200: ComplaintDetailSerializer,
            403: OpenApiResponse(description="Not your complaint."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Complaints"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        complaint = ComplaintQueryService.get_complaint_detail(request.user, pk)
        return self._detail_response(request, complaint, status.HTTP_200_OK)

    @extend_schema(
        summary="Delete a complaint",
        responses={
            204: OpenApiResponse(description="Deleted."),
            403: OpenApiResponse(description="Admins only."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Complaints"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        ComplaintDeletionService.delete(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ── Workflow @actions ─────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="status")
    @extend_schema(
        summary="Update complaint status",
        description="Officers and admins.  ``resolution_images`` are only accepted when resolving.",
        request=StatusUpdateRequestSerializer,
        responses={
            200: ComplaintDetailSerializer,
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Staff only."),
            404: OpenApiResponse(description="Not found."),
            409: OpenApiResponse(description="Transition not allowed."),
        },
        tags=["Complaints - Workflow"],
    )
    def update_status(self, request: Request, pk: str = None) -> Response:
        serializer = StatusUpdateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        files = data.pop("resolution_images", [])
        ComplaintWorkflowService.ensure_can_update_status(request.user)

        store = get_blob_store()
        blobs = store.upload_many(files, get_setting("RESOLUTION_IMAGE_FOLDER"))
        try:
            complaint = ComplaintWorkflowService.update_status(
                pk, data, request.user, resolution_images=blobs,
            )
        except Exception:
            store.release(blobs)
            raise

        complaint = ComplaintQueryService.get_complaint(complaint.pk)
        return self._detail_response(request, complaint, status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="assign")
    @extend_schema(
        summary="Assign complaint to an officer",
        request=AssignRequestSerializer,
        responses={
            200: ComplaintDetailSerializer,
            400: OpenApiResponse(description="Not an active officer."),
            403: OpenApiResponse(description="Admins only."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Complaints - Workflow"],
    )
    def assign(self, request: Request, pk: str = None) -> Response:
        serializer = AssignRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = ComplaintAssignmentService.assign(
            pk, serializer.validated_data["officer_id"], request.user,
        )
        complaint = ComplaintQueryService.get_complaint(complaint.pk)
        return self._detail_response(request, complaint, status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="vote")
    @extend_schema(
        summary="Vote on a complaint",
        description="Toggle: voting the same direction twice removes the vote.",
        request=VoteRequestSerializer,
        responses={200: VoteResultSerializer, 404: OpenApiResponse(description="Not found.")},
        tags=["Complaints - Workflow"],
    )
    def vote(self, request: Request, pk: str = None) -> Response:
        serializer = VoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = ComplaintVoteService.vote(pk, serializer.validated_data["direction"], request.user)
        return Response(
            VoteResultSerializer(dataclasses.asdict(result)).data,
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["get"], url_path="history")
    @extend_schema(
        summary="Status history",
        description="Newest first.  An unknown complaint id yields an empty list.",
        responses={200: StatusUpdateSerializer(many=True), 403: OpenApiResponse(description="Not your complaint.")},
        tags=["Complaints"],
    )
    def history(self, request: Request, pk: str = None) -> Response:
        entries = ComplaintHistoryService.get_history_for_user(request.user, pk)
        return Response(StatusUpdateSerializer(entries, many=True).data, status=status.HTTP_200_OK)
