"""
core.domain.notifications — Notification sink.

Centralises notification creation so every app uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **Post-commit only** — lifecycle services never call ``create`` inline;
  they register it on a ``core.domain.effects.PostCommitEffects`` list so
  a failing sink can never roll back a complaint mutation.
* **Supports multiple recipients** — pass a single ``User`` or an
  iterable of ``User`` instances.
* **Templated text** — titles and messages come from ``_EVENT_TEMPLATES``
  and are formatted with the ``payload`` dict.
* **Generic relation** — ``related_object`` is optional; if provided
  its ``ContentType`` and PK are stored via the ``Notification`` model's
  ``GenericForeignKey``.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.create(
        actor=request.user,
        recipients=complaint.reported_by,
        event_type="complaint_status_updated",
        payload={"human_id": complaint.human_id, "status": "resolved"},
        related_object=complaint,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.contrib.contenttypes.models import ContentType
from django.db import models

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → (kind, title, message) templates ───────────────────
_EVENT_TEMPLATES: dict[str, tuple[str, str, str]] = {
    "complaint_submitted": (
        "status_update",
        "Complaint Submitted",
        "Your complaint #{human_id} has been submitted successfully.",
    ),
    "complaint_status_updated": (
        "status_update",
        "Complaint Status Updated",
        "Your complaint #{human_id} status has been updated to {status}.",
    ),
    "complaint_assigned_officer": (
        "assignment",
        "New Complaint Assigned",
        "You have been assigned complaint #{human_id}.",
    ),
    "complaint_assigned_reporter": (
        "status_update",
        "Complaint Assigned",
        "Your complaint #{human_id} has been assigned to an officer.",
    ),
    "account_status_changed": (
        "system",
        "Account Status Changed",
        "Your account has been {state}.",
    ),
    "account_role_changed": (
        "system",
        "Account Role Changed",
        "Your role has been changed to {role}.",
    ),
}


class _SafeDict(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def render(cls, event_type: str, payload: dict[str, Any] | None = None) -> tuple[str, str, str]:
        """Return ``(kind, title, message)`` for ``event_type``."""
        kind, title, message = _EVENT_TEMPLATES.get(
            event_type,
            ("system", event_type.replace("_", " ").title(), f"Event: {event_type}"),
        )
        values = _SafeDict(payload or {})
        return kind, title.format_map(values), message.format_map(values)

    @classmethod
    def create(
        cls,
        *,
        actor: User | None,
        recipients: User | Iterable[User],
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
        action_url: str = "",
    ) -> list[Notification]:
        """
        Create one ``Notification`` per recipient.

        Args:
            actor:          The user who performed the action (used for
                            logging only).
            recipients:     A single ``User`` or iterable of ``User``
                            instances.  ``None`` entries are skipped.
            event_type:     Key into ``_EVENT_TEMPLATES``.  If unknown
                            the raw event_type is used as title.
            payload:        Values interpolated into the templates.  The
                            ``human_id`` key is also stored as the
                            notification ``reference``.
            related_object: Optional model instance linked via
                            ``GenericForeignKey``.
            action_url:     Frontend route the notification links to.

        Returns:
            List of created ``Notification`` instances.
        """
        from core.models import Notification  # lazy import, avoids circular deps

        # Normalise recipients to a list
        if isinstance(recipients, models.Model):
            recipients = [recipients]
        else:
            recipients = [r for r in recipients if r is not None]

        if not recipients:
            logger.warning(
                "NotificationService.create called with empty recipients "
                "for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

        kind, title, message = cls.render(event_type, payload)

        # Resolve GenericFK fields
        content_type = None
        object_id = None
        if related_object is not None:
            content_type = ContentType.objects.get_for_model(related_object)
            object_id = related_object.pk

        reference = str((payload or {}).get("human_id", ""))

        notifications = Notification.objects.bulk_create([
            Notification(
                recipient=recipient,
                kind=kind,
                title=title,
                message=message,
                reference=reference,
                action_url=action_url,
                content_type=content_type,
                object_id=object_id,
            )
            for recipient in recipients
        ])

        logger.info(
            "Created %d notification(s) [%s] by actor=%s",
            len(notifications),
            event_type,
            actor,
        )
        return notifications

    @classmethod
    def delete_for_object(cls, related_object: models.Model) -> int:
        """Delete every notification that points at ``related_object``."""
        from core.models import Notification

        content_type = ContentType.objects.get_for_model(related_object)
        deleted, _ = Notification.objects.filter(
            content_type=content_type,
            object_id=related_object.pk,
        ).delete()
        return deleted
