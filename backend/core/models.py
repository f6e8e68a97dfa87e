"""
Core app models.

Provides abstract base models and the cross-app records owned by the
shared domain layer: in-app notifications and the queue of blob
deletions that still need to be retried.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class NotificationKind(models.TextChoices):
    STATUS_UPDATE = "status_update", "Status Update"
    ASSIGNMENT = "assignment", "Assignment"
    REMINDER = "reminder", "Reminder"
    SYSTEM = "system", "System"
    MENTION = "mention", "Mention"


class Notification(TimeStampedModel):
    """
    In-app notification delivered to a user when one of their complaints
    changes (submitted, status updated, assigned) or when they are
    assigned a complaint.

    Uses a GenericForeignKey so any model instance can be the *source* of
    a notification.  ``reference`` keeps the human-readable id of the
    source so the message still makes sense after the source is gone.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    kind = models.CharField(
        max_length=20,
        choices=NotificationKind.choices,
        default=NotificationKind.SYSTEM,
        verbose_name="Kind",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    reference = models.CharField(
        max_length=30,
        blank=True,
        default="",
        verbose_name="Reference",
        help_text="Human-readable id of the related object, e.g. CMP-202610-0001.",
    )
    action_url = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Action URL",
    )
    is_read = models.BooleanField(default=False, verbose_name="Read")
    read_at = models.DateTimeField(null=True, blank=True, verbose_name="Read At")

    # Generic relation to the object that triggered the notification
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        verbose_name="Related Content Type",
    )
    object_id = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        verbose_name="Related Object ID",
    )
    content_object = GenericForeignKey("content_type", "object_id")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
            models.Index(fields=["content_type", "object_id"], name="notification_object_idx"),
        ]

    def __str__(self):
        return f"[{self.recipient}] {self.title}"


class PendingBlobDeletion(TimeStampedModel):
    """
    A blob whose best-effort deletion failed.

    Rows are written after a complaint has been deleted and its blobs
    could not be released; ``manage.py retry_blob_cleanup`` drains them.
    """

    blob_id = models.CharField(max_length=500, verbose_name="Blob ID")
    attempts = models.PositiveIntegerField(default=1, verbose_name="Attempts")
    last_error = models.TextField(blank=True, default="", verbose_name="Last Error")

    class Meta:
        verbose_name = "Pending Blob Deletion"
        verbose_name_plural = "Pending Blob Deletions"
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.blob_id} ({self.attempts} attempt(s))"
