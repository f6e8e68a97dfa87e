"""
Accounts app serializers.

Contains all Request and Response serializers for the accounts API.
Serializers handle field definitions, read/write constraints, and
basic validation.  **No business logic** lives here — all domain
rules are delegated to ``services.py``.
"""

from __future__ import annotations

import re
from typing import Any

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import exceptions, serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import UserRole

User = get_user_model()

_PHONE_RE = re.compile(r"^\+?\d{10,15}$")


def _validate_phone(value: str) -> str:
    if value and not _PHONE_RE.match(value):
        raise serializers.ValidationError("Phone number must contain 10 to 15 digits.")
    return value


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class RegisterRequestSerializer(serializers.ModelSerializer):
    """
    Validates new-user registration data.

    Required fields: username, password, email, first_name, last_name.
    The ``password`` field is write-only and will be hashed by the
    service layer before persisting.
    """

    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Minimum 8 characters.",
    )
    password_confirm = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="Must match 'password'.",
    )

    class Meta:
        model = User
        fields = [
            "username",
            "password",
            "password_confirm",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "address",
        ]
        extra_kwargs = {
            "email": {"required": True, "validators": []},
            "first_name": {"required": True},
            "last_name": {"required": True},
            # uniqueness is reported by the service as a 409
            "username": {"validators": []},
        }

    def validate_phone_number(self, value: str) -> str:
        return _validate_phone(value)

    def validate_email(self, value: str) -> str:
        return value.lower()

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs["password"] != attrs["password_confirm"]:
            raise serializers.ValidationError(
                {"password_confirm": "Passwords do not match."}
            )
        attrs.pop("password_confirm")
        return attrs


class LoginRequestSerializer(serializers.Serializer):
    """
    Accepts multi-field login credentials.

    ``identifier`` may be a username, email address, or phone number.
    """

    identifier = serializers.CharField(
        help_text="Username, Email, or Phone Number.",
    )
    password = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="User account password.",
    )


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via the ``MultiFieldAuthBackend``.
    3. Injects the ``role`` claim into the JWT payload.
    4. Rejects bad credentials and disabled accounts with 401.
    """

    username_field = "identifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)
        self.fields["identifier"] = serializers.CharField(
            help_text="Username, Email, or Phone Number.",
        )

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = user.effective_role
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        user = authenticate(
            request=self.context.get("request"),
            identifier=attrs.get("identifier"),
            password=attrs.get("password"),
        )

        if user is None:
            raise exceptions.AuthenticationFailed("Invalid credentials.")

        if not user.is_active:
            raise exceptions.AuthenticationFailed("User account is disabled.")

        refresh = self.get_token(user)
        self.user = user
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


# ═══════════════════════════════════════════════════════════════════
#  User Serializers
# ═══════════════════════════════════════════════════════════════════


class UserSummarySerializer(serializers.ModelSerializer):
    """Display fields embedded in complaints, history entries and stats."""

    name = serializers.CharField(source="display_name", read_only=True)
    role = serializers.CharField(source="effective_role", read_only=True)

    class Meta:
        model = User
        fields = ["id", "username", "name", "email", "role"]
        read_only_fields = fields


class UserListSerializer(serializers.ModelSerializer):
    """Serializer for listing users (admin views)."""

    role = serializers.CharField(source="effective_role", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "role",
            "department",
            "is_active",
            "date_joined",
        ]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """Full user representation (retrieve, me, registration response)."""

    role = serializers.CharField(source="effective_role", read_only=True)
    role_display = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "address",
            "role",
            "role_display",
            "department",
            "is_active",
            "date_joined",
            "last_login",
        ]
        read_only_fields = fields

    def get_role_display(self, obj: User) -> str:
        return UserRole(obj.effective_role).label


class UserCreateSerializer(serializers.ModelSerializer):
    """Admin-side account creation with an explicit role."""

    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
    )
    role = serializers.ChoiceField(choices=UserRole.choices, default=UserRole.OFFICER)

    class Meta:
        model = User
        fields = [
            "username",
            "password",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "role",
            "department",
        ]
        extra_kwargs = {
            "email": {"required": True, "validators": []},
            "first_name": {"required": True},
            "last_name": {"required": True},
            "username": {"validators": []},
        }

    def validate_phone_number(self, value: str) -> str:
        return _validate_phone(value)

    def validate_email(self, value: str) -> str:
        return value.lower()

    def validate_password(self, value: str) -> str:
        validate_password(value)
        return value


class UserUpdateSerializer(serializers.ModelSerializer):
    """Admin-side edit; every field is optional."""

    role = serializers.ChoiceField(choices=UserRole.choices, required=False)

    class Meta:
        model = User
        fields = [
            "first_name",
            "last_name",
            "phone_number",
            "address",
            "role",
            "department",
            "is_active",
        ]
        extra_kwargs = {
            "first_name": {"required": False},
            "last_name": {"required": False},
            "is_active": {"required": False},
        }

    def validate_phone_number(self, value: str) -> str:
        return _validate_phone(value)


class UserFilterSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=UserRole.choices, required=False)
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)


class MeUpdateSerializer(serializers.ModelSerializer):
    """Fields a user may change on their own profile."""

    class Meta:
        model = User
        fields = ["email", "phone_number", "first_name", "last_name", "address"]
        extra_kwargs = {
            "email": {"validators": []},
        }

    def validate_phone_number(self, value: str) -> str:
        return _validate_phone(value)

    def validate_email(self, value: str) -> str:
        return value.lower()


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
    )
    new_password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Minimum 8 characters; must differ from the current password.",
    )

    def validate_new_password(self, value: str) -> str:
        validate_password(value, user=self.context.get("user"))
        return value

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs["current_password"] == attrs["new_password"]:
            raise serializers.ValidationError(
                {"new_password": "New password must differ from the current one."}
            )
        return attrs
