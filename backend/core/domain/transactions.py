"""
core.domain.transactions — Helpers for safe read-modify-write cycles.

Provides utilities that wrap ``transaction.atomic`` and
``select_for_update`` into reusable patterns so that every mutation of a
complaint follows the same concurrency-safe approach.

Design goals
------------
* Every mutating service reads the row it changes through
  ``lock_for_update`` so two concurrent votes or status updates on the
  same complaint serialise instead of overwriting each other.
* Unique-key races (e.g. the human-readable complaint id) are retried a
  bounded number of times with ``retry_on_integrity_error`` instead of
  leaking an ``IntegrityError`` to the caller.

Usage::

    from core.domain.transactions import lock_for_update

    with transaction.atomic():
        complaint = lock_for_update(Complaint, complaint_id)
        complaint.status = "resolved"
        complaint.save(update_fields=["status", "updated_at"])

    # Retry a whole atomic unit on unique violations:
    complaint = retry_on_integrity_error(
        create_once, validated_data, user,
        attempts=5,
        exhausted_message="Could not allocate a complaint id.",
    )
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from django.db import IntegrityError, models, transaction

from core.domain.exceptions import Conflict, NotFound

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=models.Model)


def run_in_atomic(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Execute ``fn(*args, **kwargs)`` inside ``transaction.atomic()``.

    Convenient when a service function should be fully atomic but you
    don't want to decorate the function itself (e.g. because the caller
    retries it and each attempt needs its own transaction or savepoint).

    Raises:
        Any exception raised by ``fn`` — the transaction is rolled back.
    """
    with transaction.atomic():
        return fn(*args, **kwargs)


def retry_on_integrity_error(
    fn: Callable[..., T],
    *args: Any,
    attempts: int,
    exhausted_message: str,
    **kwargs: Any,
) -> T:
    """
    Run ``fn`` atomically, retrying up to ``attempts`` times when the
    database reports a unique-constraint violation.

    Each attempt runs in its own ``atomic()`` block (a savepoint when the
    caller already holds a transaction) so a failed attempt leaves no
    partial rows behind.

    Raises:
        Conflict: When every attempt collided.
    """
    last_error: IntegrityError | None = None
    for attempt in range(1, attempts + 1):
        try:
            return run_in_atomic(fn, *args, **kwargs)
        except IntegrityError as exc:
            last_error = exc
            logger.warning(
                "Integrity error on attempt %d/%d of %s: %s",
                attempt,
                attempts,
                getattr(fn, "__qualname__", fn),
                exc,
            )
    raise Conflict(exhausted_message) from last_error


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except (model_class.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"{model_class._meta.verbose_name.title()} with id={pk} does not exist.")
