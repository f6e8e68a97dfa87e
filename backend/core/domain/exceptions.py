"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the lifecycle engine
stays framework-agnostic.  ``core.domain.exception_handler`` maps them to
HTTP responses carrying a stable ``code`` next to the human message.

Mapping cheatsheet
------------------
┌─────────────────────┬────────────────────┬──────┐
│ Domain Exception    │ code               │ HTTP │
├─────────────────────┼────────────────────┼──────┤
│ DomainError         │ domain_error       │ 400  │
│ ValidationFailed    │ validation_failed  │ 400  │
│ PermissionDenied    │ forbidden          │ 403  │
│ NotFound            │ not_found          │ 404  │
│ Conflict            │ conflict           │ 409  │
│ InvalidTransition   │ invalid_transition │ 409  │
│ DependencyFailed    │ dependency_failed  │ 503  │
└─────────────────────┴────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import InvalidTransition

    if not ComplaintWorkflowService.is_transition_allowed(current, target):
        raise InvalidTransition(current=current, target=target)
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    code = "domain_error"

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class ValidationFailed(DomainError):
    """
    Malformed or semantically invalid input.

    ``errors`` optionally carries field-level detail, e.g.
    ``{"officer_id": ["User is not an active officer."]}``.
    """

    code = "validation_failed"

    def __init__(
        self,
        message: str = "The submitted data is invalid.",
        *,
        errors: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or {}


class PermissionDenied(DomainError):
    """
    The authenticated user does not have the required role, or does not
    own the resource.

    Maps to HTTP 403.
    """

    code = "forbidden"

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist.

    Maps to HTTP 404.
    """

    code = "not_found"

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: unique-key collision that survived every retry.
    Maps to HTTP 409.
    """

    code = "conflict"

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A status transition that the transition table does not allow.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="closed",
            target="pending",
            reason="Closed complaints cannot be reopened.",
        )
    """

    code = "invalid_transition"

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid status transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"({reason})")
            message = " ".join(parts) + "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


class DependencyFailed(DomainError):
    """
    An external collaborator (blob store, notification sink) failed.

    Raised only on paths where the dependency is required, such as
    uploading the images of a new complaint.  Best-effort paths log the
    failure instead.  Maps to HTTP 503.
    """

    code = "dependency_failed"

    def __init__(self, message: str = "An external service is currently unavailable.") -> None:
        super().__init__(message)
