"""
core.domain.exception_handler — DRF-compatible global exception handler.

Maps domain exceptions from ``core.domain.exceptions`` to proper
DRF ``Response`` objects so that views don't need per-endpoint
try/except boilerplate.

Every error body has the same shape::

    {"detail": "<human readable message>", "code": "<stable kind>"}

Validation failures additionally carry ``errors`` with field-level detail.

Registered in ``settings.py``::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }
"""

from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    Conflict,
    DependencyFailed,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

# Domain exception → HTTP status code
_STATUS_MAP: dict[type, int] = {
    ValidationFailed:  400,
    PermissionDenied:  403,
    NotFound:          404,
    InvalidTransition: 409,
    Conflict:          409,
    DependencyFailed:  503,
    DomainError:       400,  # catch-all base class last
}

# DRF exception → stable error kind
_DRF_CODE_MAP: dict[type, str] = {
    drf_exceptions.NotAuthenticated:     "unauthenticated",
    drf_exceptions.AuthenticationFailed: "unauthenticated",
    drf_exceptions.PermissionDenied:     "forbidden",
    drf_exceptions.NotFound:             "not_found",
    drf_exceptions.ValidationError:      "validation_failed",
    Http404:                             "not_found",
    DjangoPermissionDenied:              "forbidden",
}


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler that also handles ``core.domain.exceptions``.

    The default DRF handler is called first.  If it returns ``None``
    (meaning DRF doesn't recognise the exception), we check whether
    it's one of our domain exceptions and return an appropriate response.
    """
    # Let DRF handle its own exceptions (ValidationError, AuthN, Http404, ...)
    response = drf_default_handler(exc, context)
    if response is not None:
        _attach_drf_code(exc, response)
        return response

    # Most specific exception class first
    for exc_class, status_code in _STATUS_MAP.items():
        if isinstance(exc, exc_class):
            logger.warning(
                "Domain exception [%s] in %s: %s",
                exc_class.__name__,
                context.get("view", "unknown"),
                exc,
            )
            body = {"detail": str(exc), "code": exc.code}
            if isinstance(exc, ValidationFailed) and exc.errors:
                body["errors"] = exc.errors
            return Response(body, status=status_code)

    # Not a domain exception, let it propagate
    return None


def _attach_drf_code(exc: Exception, response: Response) -> None:
    """Add a stable ``code`` to DRF-generated error bodies."""
    if not isinstance(response.data, dict):
        response.data = {
            "detail": "The submitted data is invalid.",
            "code": "validation_failed",
            "errors": response.data,
        }
        return

    if isinstance(exc, drf_exceptions.ValidationError):
        errors = response.data
        response.data = {
            "detail": "The submitted data is invalid.",
            "code": "validation_failed",
            "errors": errors,
        }
        return

    for exc_class, code in _DRF_CODE_MAP.items():
        if isinstance(exc, exc_class):
            response.data.setdefault("code", code)
            return
    response.data.setdefault("code", "error")
