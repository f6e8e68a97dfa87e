"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``RegisterView``  — POST /auth/register/
- ``LoginView``     — POST /auth/login/
- ``MeView``        — GET / PATCH /me/
- ``ChangePasswordView`` — PUT /auth/change-password/
- ``UserViewSet``   — /users/  (list, create, retrieve, update,
                      destroy, officers, toggle-status)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    ChangePasswordSerializer,
    CustomTokenObtainPairSerializer,
    LoginRequestSerializer,
    MeUpdateSerializer,
    RegisterRequestSerializer,
    UserCreateSerializer,
    UserDetailSerializer,
    UserFilterSerializer,
    UserListSerializer,
    UserSummarySerializer,
    UserUpdateSerializer,
)
from .services import (
    CurrentUserService,
    UserManagementService,
    UserRegistrationService,
)


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class RegisterView(generics.CreateAPIView):
    """
    POST /api/accounts/auth/register/

    Public endpoint.  Creates a new ``citizen`` account.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = RegisterRequestSerializer

    @extend_schema(
        summary="Register",
        responses={
            201: OpenApiResponse(response=UserDetailSerializer, description="Account created."),
            400: OpenApiResponse(description="Validation error."),
            409: OpenApiResponse(description="Username or email already taken."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request, *args, **kwargs) -> Response:
        return super().post(request, *args, **kwargs)

    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_user(dict(serializer.validated_data))
        return Response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user via username, email or phone
    number plus password and returns a JWT pair with the user profile.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Login",
        request=LoginRequestSerializer,
        responses={
            200: OpenApiResponse(description="``{access, refresh, user}``"),
            401: OpenApiResponse(description="Invalid credentials or disabled account."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = dict(serializer.validated_data)
        payload["user"] = UserDetailSerializer(serializer.user).data
        return Response(payload, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") View
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """
    GET  /api/accounts/me/  → Retrieve current user profile.
    PATCH /api/accounts/me/ → Update own profile fields.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user profile",
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update current user profile",
        request=MeUpdateSerializer,
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def patch(self, request: Request) -> Response:
        serializer = MeUpdateSerializer(
            instance=request.user,
            data=request.data,
            partial=True,
        )
        serializer.is_valid(raise_exception=True)
        user = CurrentUserService.update_profile(request.user, dict(serializer.validated_data))
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)


class ChangePasswordView(APIView):
    """PUT /api/accounts/auth/change-password/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Change password",
        request=ChangePasswordSerializer,
        responses={
            200: OpenApiResponse(description="Password changed."),
            400: OpenApiResponse(description="Wrong current password or weak new password."),
        },
        tags=["Auth"],
    )
    def put(self, request: Request) -> Response:
        serializer = ChangePasswordSerializer(
            data=request.data,
            context={"user": request.user},
        )
        serializer.is_valid(raise_exception=True)
        CurrentUserService.change_password(
            request.user,
            serializer.validated_data["current_password"],
            serializer.validated_data["new_password"],
        )
        return Response({"detail": "Password changed successfully."}, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  User Management ViewSet
# ═══════════════════════════════════════════════════════════════════


class UserViewSet(viewsets.ViewSet):
    """
    User management for admins, plus the officer picklist for staff.

    Role checks are enforced inside ``UserManagementService``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List users",
        parameters=[
            OpenApiParameter(name="role", type=str, location=OpenApiParameter.QUERY, description="citizen / officer / admin / superadmin."),
            OpenApiParameter(name="is_active", type=bool, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Username, email, phone or name."),
        ],
        responses={200: UserListSerializer(many=True), 403: OpenApiResponse(description="Admins only.")},
        tags=["Users"],
    )
    def list(self, request: Request) -> Response:
        filters = UserFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = UserManagementService.list_users(request.user, **filters.validated_data)
        return Response(UserListSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Create user",
        request=UserCreateSerializer,
        responses={
            201: UserDetailSerializer,
            403: OpenApiResponse(description="Admins only; superadmin for admin accounts."),
            409: OpenApiResponse(description="Username or email already taken."),
        },
        tags=["Users"],
    )
    def create(self, request: Request) -> Response:
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.create_user(dict(serializer.validated_data), request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve user",
        responses={200: UserDetailSerializer, 404: OpenApiResponse(description="Not found.")},
        tags=["Users"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        user = UserManagementService.get_user(request.user, pk)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update user",
        description="Every field is optional; omitted fields keep their value.",
        request=UserUpdateSerializer,
        responses={
            200: UserDetailSerializer,
            400: OpenApiResponse(description="Own role or own deactivation."),
            403: OpenApiResponse(description="Admins only; superadmin for admin roles."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Users"],
    )
    def update(self, request: Request, pk: str = None) -> Response:
        serializer = UserUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.update_user(pk, dict(serializer.validated_data), request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Partially update user",
        request=UserUpdateSerializer,
        responses={200: UserDetailSerializer},
        tags=["Users"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        return self.update(request, pk)

    @extend_schema(
        summary="Delete user",
        responses={
            204: None,
            400: OpenApiResponse(description="Own account."),
            409: OpenApiResponse(description="The user has reported complaints."),
        },
        tags=["Users"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        UserManagementService.delete_user(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="officers")
    @extend_schema(
        summary="List assignable officers",
        responses={200: UserSummarySerializer(many=True)},
        tags=["Users"],
    )
    def officers(self, request: Request) -> Response:
        qs = UserManagementService.list_officers(request.user)
        return Response(UserSummarySerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="toggle-status")
    @extend_schema(
        summary="Activate / deactivate user",
        request=None,
        responses={200: UserDetailSerializer, 400: OpenApiResponse(description="Own account.")},
        tags=["Users"],
    )
    def toggle_status(self, request: Request, pk: str = None) -> Response:
        user = UserManagementService.toggle_status(pk, request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)
