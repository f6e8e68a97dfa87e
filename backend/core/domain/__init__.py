"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF exception handler for the exceptions above.
transactions       Helpers for ``transaction.atomic`` + ``select_for_update``.
access             Role-scoped queryset selectors and guards.
effects            Post-commit side-effect list.
notifications      Notification sink (always invoked post-commit).
storage            Blob store over Django's storage API.

Usage from any app::

    from core.domain.exceptions import NotFound, ValidationFailed
    from core.domain.effects import PostCommitEffects
    from core.domain.transactions import lock_for_update
    from core.domain.access import apply_role_scope, require_role
"""
