"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service method, and return the result
wrapped in a DRF ``Response``.

Architecture
------------
- ``UserRegistrationService``  — public sign-up (always ``citizen``).
- ``UserManagementService``    — admin user listing / creation / editing /
                                 deletion / activation toggling, officer
                                 picklist.
- ``CurrentUserService``       — "Me" endpoint and password change.

JWT issuance lives in ``serializers.CustomTokenObtainPairSerializer``;
token verification is SimpleJWT's ``JWTAuthentication`` (which rejects
inactive users before any complaint service runs).
"""

from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import ProtectedError, Q, QuerySet

from core.domain.access import ADMIN_ROLES, STAFF_ROLES, require_role
from core.domain.exceptions import Conflict, NotFound, PermissionDenied, ValidationFailed
from core.domain.effects import PostCommitEffects
from core.domain.notifications import NotificationService

from .models import UserRole

User = get_user_model()
logger = logging.getLogger(__name__)


def _check_unique_fields(validated_data: dict[str, Any], exclude_pk: int | None = None) -> None:
    """Raise ``Conflict`` naming every unique field that is already taken."""
    qs = User.objects.all()
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)

    conflicts = []
    username = validated_data.get("username")
    if username and qs.filter(username=username).exists():
        conflicts.append("username")
    email = validated_data.get("email")
    if email and qs.filter(email__iexact=email).exists():
        conflicts.append("email")

    if conflicts:
        raise Conflict(
            f"The following field(s) already exist: {', '.join(conflicts)}."
        )


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class UserRegistrationService:
    """Public self-registration.  New accounts are always citizens."""

    @staticmethod
    @transaction.atomic
    def register_user(validated_data: dict[str, Any]) -> User:
        """
        Create a new citizen account.

        Parameters
        ----------
        validated_data : dict
            Cleaned data from ``RegisterRequestSerializer``
            (``password_confirm`` already consumed).

        Raises
        ------
        core.domain.exceptions.Conflict
            If the username or email is already taken.
        """
        validated_data.pop("password_confirm", None)
        password = validated_data.pop("password")
        validated_data.pop("role", None)

        _check_unique_fields(validated_data)

        user = User.objects.create_user(
            password=password,
            role=UserRole.CITIZEN,
            **validated_data,
        )
        logger.info("Registered citizen user id=%s username=%s", user.pk, user.username)
        return user


# ═══════════════════════════════════════════════════════════════════
#  User Management Service
# ═══════════════════════════════════════════════════════════════════


class UserManagementService:
    """
    Administrative operations on users.

    Access policy
    -------------
    * list / retrieve / create / update / delete / toggle-status: admin or
      superadmin.
    * Only a superadmin may create admins, grant admin roles, or edit or
      delete a superadmin.
    * Nobody may deactivate, delete or re-role their own account.
    * The officer picklist is visible to every staff role.
    """

    @staticmethod
    def list_users(
        requesting_user: User,
        *,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> QuerySet[User]:
        """
        Return a filtered queryset of users.

        ``search`` matches username, email, phone number, first and last
        name case-insensitively.
        """
        require_role(requesting_user, *ADMIN_ROLES, message="Only admins can list users.")

        qs = User.objects.all()
        if role:
            qs = qs.filter(role=role)
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        if search:
            qs = qs.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(phone_number__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )
        return qs.order_by("-date_joined", "-id")

    @staticmethod
    def get_user(requesting_user: User, user_id: int) -> User:
        require_role(requesting_user, *ADMIN_ROLES, message="Only admins can view users.")
        try:
            return User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"User with id {user_id} not found.")

    @staticmethod
    @transaction.atomic
    def create_user(validated_data: dict[str, Any], requesting_user: User) -> User:
        """
        Create an account with an explicit role.

        Raises
        ------
        PermissionDenied
            Non-admin requester, or an admin trying to mint another admin.
        Conflict
            Username or email already taken.
        """
        require_role(requesting_user, *ADMIN_ROLES, message="Only admins can create users.")

        role = validated_data.get("role", UserRole.CITIZEN)
        if role in ADMIN_ROLES and not requesting_user.has_role(UserRole.SUPERADMIN):
            raise PermissionDenied("Only a superadmin can create admin accounts.")

        _check_unique_fields(validated_data)

        data = dict(validated_data)
        password = data.pop("password")
        user = User.objects.create_user(password=password, **data)
        logger.info(
            "User id=%s (%s) created by user id=%s",
            user.pk, user.role, requesting_user.pk,
        )
        return user

    @staticmethod
    @transaction.atomic
    def toggle_status(user_id: int, requesting_user: User) -> User:
        """
        Flip ``is_active`` on the target user.

        Raises
        ------
        ValidationFailed
            When the requester targets their own account.
        PermissionDenied
            Non-admin requester, or an admin toggling a superadmin.
        """
        require_role(requesting_user, *ADMIN_ROLES, message="Only admins can change account status.")

        try:
            target_user = User.objects.select_for_update().get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"User with id {user_id} not found.")

        if target_user.pk == requesting_user.pk:
            raise ValidationFailed("You cannot change the status of your own account.")

        if (
            target_user.effective_role == UserRole.SUPERADMIN
            and not requesting_user.has_role(UserRole.SUPERADMIN)
        ):
            raise PermissionDenied("Only a superadmin can change another superadmin's status.")

        target_user.is_active = not target_user.is_active
        target_user.save(update_fields=["is_active"])

        effects = PostCommitEffects(label="accounts.toggle_status")
        effects.add(
            "notify account owner",
            NotificationService.create,
            actor=requesting_user,
            recipients=target_user,
            event_type="account_status_changed",
            payload={"state": "activated" if target_user.is_active else "deactivated"},
        )
        effects.dispatch()

        logger.info(
            "User id=%s is_active=%s set by user id=%s",
            target_user.pk, target_user.is_active, requesting_user.pk,
        )
        return target_user

    @staticmethod
    @transaction.atomic
    def update_user(user_id: int, validated_data: dict[str, Any], requesting_user: User) -> User:
        """
        Admin-side edit of another account.

        Accepts any of ``first_name``, ``last_name``, ``phone_number``,
        ``address``, ``role``, ``department`` and ``is_active``; fields not
        supplied keep their value.

        Raises
        ------
        PermissionDenied
            Non-admin requester; an admin granting an admin role or editing
            a superadmin.
        ValidationFailed
            When the requester changes their own role or deactivates
            themselves.
        """
        require_role(requesting_user, *ADMIN_ROLES, message="Only admins can update users.")

        try:
            target_user = User.objects.select_for_update().get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"User with id {user_id} not found.")

        is_superadmin = requesting_user.has_role(UserRole.SUPERADMIN)
        if target_user.effective_role == UserRole.SUPERADMIN and not is_superadmin:
            raise PermissionDenied("Only a superadmin can edit a superadmin account.")

        role = validated_data.get("role")
        if role is not None and role != target_user.role:
            if target_user.pk == requesting_user.pk:
                raise ValidationFailed(
                    "You cannot change your own role.",
                    errors={"role": ["You cannot change your own role."]},
                )
            if role in ADMIN_ROLES and not is_superadmin:
                raise PermissionDenied("Only a superadmin can grant admin roles.")

        if validated_data.get("is_active") is False and target_user.pk == requesting_user.pk:
            raise ValidationFailed(
                "You cannot deactivate your own account.",
                errors={"is_active": ["You cannot deactivate your own account."]},
            )

        changed = [
            field for field, value in validated_data.items()
            if getattr(target_user, field) != value
        ]
        for field in changed:
            setattr(target_user, field, validated_data[field])
        if changed:
            target_user.save(update_fields=changed)

        effects = PostCommitEffects(label="accounts.update_user")
        if "is_active" in changed:
            effects.add(
                "notify account owner of status",
                NotificationService.create,
                actor=requesting_user,
                recipients=target_user,
                event_type="account_status_changed",
                payload={"state": "activated" if target_user.is_active else "deactivated"},
            )
        if "role" in changed:
            effects.add(
                "notify account owner of role",
                NotificationService.create,
                actor=requesting_user,
                recipients=target_user,
                event_type="account_role_changed",
                payload={"role": UserRole(target_user.role).label},
            )
        effects.dispatch()

        logger.info(
            "User id=%s updated (%s) by user id=%s",
            target_user.pk, ", ".join(changed) or "no changes", requesting_user.pk,
        )
        return target_user

    @staticmethod
    @transaction.atomic
    def delete_user(user_id: int, requesting_user: User) -> None:
        """
        Permanently remove an account.

        The account's votes are retracted first so complaint counters
        stay equal to the remaining vote rows.  Accounts that reported
        complaints cannot be removed; deactivate them instead.

        Raises
        ------
        ValidationFailed
            When the requester targets their own account.
        PermissionDenied
            Non-admin requester, or an admin deleting a superadmin.
        Conflict
            The account still owns reported complaints.
        """
        from complaints.services import ComplaintVoteService

        require_role(requesting_user, *ADMIN_ROLES, message="Only admins can delete users.")

        try:
            target_user = User.objects.select_for_update().get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"User with id {user_id} not found.")

        if target_user.pk == requesting_user.pk:
            raise ValidationFailed("You cannot delete your own account.")

        if (
            target_user.effective_role == UserRole.SUPERADMIN
            and not requesting_user.has_role(UserRole.SUPERADMIN)
        ):
            raise PermissionDenied("Only a superadmin can delete a superadmin account.")

        ComplaintVoteService.retract_all(target_user)
        try:
            target_user.delete()
        except ProtectedError as exc:
            raise Conflict(
                "This user has reported complaints and cannot be deleted; "
                "deactivate the account instead."
            ) from exc

        logger.info("User id=%s deleted by user id=%s", user_id, requesting_user.pk)

    @staticmethod
    def list_officers(requesting_user: User) -> QuerySet[User]:
        """Active staff accounts that complaints can be assigned to."""
        require_role(requesting_user, *STAFF_ROLES, message="Only staff can list officers.")
        return (
            User.objects
            .filter(is_active=True)
            .filter(Q(role__in=STAFF_ROLES) | Q(is_superuser=True))
            .order_by("first_name", "last_name", "username")
        )


# ═══════════════════════════════════════════════════════════════════
#  Current User Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:
    """Helpers for the "Me" endpoint."""

    @staticmethod
    def get_profile(user: User) -> User:
        return User.objects.get(pk=user.pk)

    @staticmethod
    def update_profile(user: User, validated_data: dict[str, Any]) -> User:
        """
        Update the authenticated user's own profile fields.

        The user may NOT change their own ``role``, ``is_active`` or
        ``username`` via this endpoint; the serializer does not expose
        those fields.
        """
        if "email" in validated_data:
            _check_unique_fields({"email": validated_data["email"]}, exclude_pk=user.pk)

        for field, value in validated_data.items():
            setattr(user, field, value)
        if validated_data:
            user.save(update_fields=list(validated_data.keys()))
        return User.objects.get(pk=user.pk)

    @staticmethod
    def change_password(user: User, current_password: str, new_password: str) -> None:
        """
        Replace the user's password after re-checking the current one.

        Issued JWTs stay valid until they expire.
        """
        if not user.check_password(current_password):
            raise ValidationFailed(
                "Current password is incorrect.",
                errors={"current_password": ["Current password is incorrect."]},
            )
        user.set_password(new_password)
        user.save(update_fields=["password"])
        logger.info("User id=%s changed their password", user.pk)
