"""
Accounts app models.

Defines the closed role set of the platform and a custom User model that
extends Django's ``AbstractUser``.  Every principal holds exactly one
role; the role decides what the complaint services let them see and do.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class UserRole(models.TextChoices):
    """
    Roles, from least to most privileged.

    * ``citizen``    — files complaints, sees only their own.
    * ``officer``    — triages and resolves complaints.
    * ``admin``      — assigns and deletes complaints, manages users.
    * ``superadmin`` — admin that may also create other admins.
    """

    CITIZEN = "citizen", "Citizen"
    OFFICER = "officer", "Officer"
    ADMIN = "admin", "Admin"
    SUPERADMIN = "superadmin", "Super Admin"


STAFF_ROLES = frozenset({UserRole.OFFICER.value, UserRole.ADMIN.value, UserRole.SUPERADMIN.value})
ADMIN_ROLES = frozenset({UserRole.ADMIN.value, UserRole.SUPERADMIN.value})


class User(AbstractUser):
    """
    Custom user model for the civic complaint platform.

    Registration requires at minimum: username, password, email,
    first_name and last_name.  Login is supported via *any one* of
    username / email / phone_number together with the password.

    New users register as ``citizen``; staff accounts are created by an
    admin through the user-management API.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    phone_number = models.CharField(
        max_length=15,
        blank=True,
        default="",
        verbose_name="Phone Number",
        db_index=True,
    )
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CITIZEN,
        verbose_name="Role",
        db_index=True,
    )
    department = models.CharField(
        max_length=100,
        blank=True,
        default="",
        verbose_name="Department",
        help_text="Municipal department of staff accounts (e.g. Water Supply).",
    )
    address = models.CharField(
        max_length=300,
        blank=True,
        default="",
        verbose_name="Address",
    )

    REQUIRED_FIELDS = ["email", "first_name", "last_name"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        ordering = ["-date_joined", "-id"]

    def __str__(self):
        return f"{self.username} ({self.get_full_name()}) - {self.effective_role}"

    # ── Helper predicates for role checks ────────────────────────────

    @property
    def effective_role(self) -> str:
        """Role used for authorization; superusers always act as superadmin."""
        if self.is_superuser:
            return UserRole.SUPERADMIN.value
        return self.role

    def has_role(self, *role_names: str) -> bool:
        """Check if the user's effective role is one of ``role_names``."""
        return self.effective_role in role_names

    @property
    def is_staff_role(self) -> bool:
        return self.effective_role in STAFF_ROLES

    @property
    def is_admin_role(self) -> bool:
        return self.effective_role in ADMIN_ROLES

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
