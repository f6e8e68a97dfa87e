"""
core.domain.access — Role-scoped queryset selectors and guards.

The platform has a fixed, closed set of roles (citizen, officer, admin,
superadmin; see ``accounts.models.UserRole``).  This module provides the
shared helpers every service layer uses to turn a principal into a
visibility scope or an authorization decision.

╔══════════════════════════════════════════════════════════════════╗
║  Per-app scoping logic does NOT live here.                       ║
║  Each app's ``services.py`` owns its own scope-rules mapping.    ║
║  This module provides:                                           ║
║    1) ``get_user_role_name`` — resolve the effective role.       ║
║    2) ``apply_role_scope``   — role-keyed queryset dispatch.     ║
║    3) ``require_role``       — guard raising PermissionDenied.   ║
╚══════════════════════════════════════════════════════════════════╝

Usage in an app's service layer::

    from core.domain.access import apply_role_scope

    COMPLAINT_SCOPE_RULES = {
        "citizen": lambda qs, u: qs.filter(reported_by=u),
    }

    qs = apply_role_scope(
        Complaint.objects.all(), user,
        scope_rules=COMPLAINT_SCOPE_RULES,
        default="all",
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from django.db.models import QuerySet

from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User

# Type alias for a scope filter function.
# Takes (queryset, user) and returns a filtered queryset.
ScopeFilter = Callable[[QuerySet, "User"], QuerySet]

# Role name → filter function.
ScopeRules = dict[str, ScopeFilter]

STAFF_ROLES = ("officer", "admin", "superadmin")
ADMIN_ROLES = ("admin", "superadmin")


def get_user_role_name(user: User) -> str | None:
    """
    Return the effective role name for a user.

    Django superusers are always treated as ``superadmin``; anonymous or
    inactive principals have no role.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    if not getattr(user, "is_active", True):
        return None
    if getattr(user, "is_superuser", False):
        return "superadmin"
    return getattr(user, "role", None) or None


def apply_role_scope(
    queryset: QuerySet,
    user: User,
    *,
    scope_rules: ScopeRules,
    default: str = "none",
) -> QuerySet:
    """
    Apply the scope rule registered for the user's role.

    Args:
        queryset:     Base (unfiltered) queryset.
        user:         The authenticated user.
        scope_rules:  Mapping of role name → ``filter_fn(qs, user)``.
        default:      What to do when the role has no rule.
                      ``"none"`` (default) → empty queryset.
                      ``"all"`` → return unfiltered.

    Returns:
        The (possibly filtered) queryset.
    """
    role_name = get_user_role_name(user)
    if role_name is None:
        return queryset.none()

    if role_name in scope_rules:
        return scope_rules[role_name](queryset, user)

    if default == "none":
        return queryset.none()
    return queryset


def require_role(user: User, *allowed_roles: str, message: str = "") -> None:
    """
    Guard that raises ``PermissionDenied`` if the user's role is not
    among ``allowed_roles``.

    Example::

        require_role(user, *ADMIN_ROLES, message="Only admins can assign complaints.")
    """
    role_name = get_user_role_name(user)
    if role_name not in allowed_roles:
        raise PermissionDenied(
            message
            or f"Role '{role_name}' is not permitted for this operation. "
               f"Required: {', '.join(allowed_roles)}."
        )
