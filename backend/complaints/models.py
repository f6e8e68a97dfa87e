"""
Complaints app models.

Defines the complaint entity, its images, votes and the append-only
status ledger, plus the per-month counter that backs human-readable
complaint ids (``CMP-YYYYMM-NNNN``).
"""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class ComplaintCategory(models.TextChoices):
    POTHOLE = "pothole", "Pothole"
    GARBAGE = "garbage", "Garbage"
    WATER_LEAKAGE = "water_leakage", "Water Leakage"
    STREET_LIGHT = "street_light", "Street Light"
    ELECTRICITY = "electricity", "Electricity"
    DRAINAGE = "drainage", "Drainage"
    ROAD_DAMAGE = "road_damage", "Road Damage"
    ILLEGAL_CONSTRUCTION = "illegal_construction", "Illegal Construction"
    NOISE_POLLUTION = "noise_pollution", "Noise Pollution"
    OTHER = "other", "Other"


class ComplaintStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    RESOLVED = "resolved", "Resolved"
    CLOSED = "closed", "Closed"
    REJECTED = "rejected", "Rejected"


class ComplaintPriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class VoteDirection(models.TextChoices):
    UP = "up", "Upvote"
    DOWN = "down", "Downvote"


class ImageKind(models.TextChoices):
    REPORT = "report", "Report"
    RESOLUTION = "resolution", "Resolution"


class ComplaintSequence(models.Model):
    """
    Monotonic per-month counter for human-readable complaint ids.

    One row per ``YYYYMM`` period.  ``last_value`` only ever grows, so a
    sequence number is never handed out twice, even after the complaint
    that used it has been deleted.
    """

    period = models.CharField(max_length=6, unique=True, verbose_name="Period (YYYYMM)")
    last_value = models.PositiveIntegerField(default=0, verbose_name="Last Issued Value")

    class Meta:
        verbose_name = "Complaint Sequence"
        verbose_name_plural = "Complaint Sequences"

    def __str__(self):
        return f"{self.period}: {self.last_value}"


class Complaint(TimeStampedModel):
    """
    A citizen report about a municipal issue.

    ``human_id`` is the public identifier shown to users; the integer
    primary key stays internal.  Vote counters are denormalised from
    ``ComplaintVote`` and only ever changed under a row lock.
    """

    human_id = models.CharField(
        max_length=20,
        unique=True,
        editable=False,
        verbose_name="Complaint ID",
    )
    title = models.CharField(max_length=100, verbose_name="Title")
    description = models.TextField(max_length=2000, verbose_name="Description")
    category = models.CharField(
        max_length=30,
        choices=ComplaintCategory.choices,
        verbose_name="Category",
    )

    # ── Location ─────────────────────────────────────────────────────
    address = models.CharField(max_length=300, verbose_name="Address")
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        validators=[MinValueValidator(-90), MaxValueValidator(90)],
        verbose_name="Latitude",
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        validators=[MinValueValidator(-180), MaxValueValidator(180)],
        verbose_name="Longitude",
    )
    landmark = models.CharField(max_length=200, blank=True, default="", verbose_name="Landmark")

    # ── Workflow ─────────────────────────────────────────────────────
    status = models.CharField(
        max_length=20,
        choices=ComplaintStatus.choices,
        default=ComplaintStatus.PENDING,
        verbose_name="Status",
    )
    priority = models.CharField(
        max_length=10,
        choices=ComplaintPriority.choices,
        default=ComplaintPriority.MEDIUM,
        verbose_name="Priority",
    )
    reported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reported_complaints",
        verbose_name="Reported By",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_complaints",
        verbose_name="Assigned To",
    )
    assigned_at = models.DateTimeField(null=True, blank=True, verbose_name="Assigned At")

    # ── Resolution ───────────────────────────────────────────────────
    resolution_notes = models.TextField(blank=True, default="", verbose_name="Resolution Notes")
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_complaints",
        verbose_name="Resolved By",
    )
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name="Resolved At")

    # ── Engagement ───────────────────────────────────────────────────
    upvotes = models.PositiveIntegerField(default=0, verbose_name="Upvotes")
    downvotes = models.PositiveIntegerField(default=0, verbose_name="Downvotes")
    view_count = models.PositiveIntegerField(default=0, verbose_name="View Count")
    is_public = models.BooleanField(default=True, verbose_name="Public")

    class Meta:
        verbose_name = "Complaint"
        verbose_name_plural = "Complaints"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "-created_at"], name="complaint_status_created_idx"),
            models.Index(fields=["category", "-created_at"], name="complaint_category_created_idx"),
            models.Index(fields=["reported_by", "-created_at"], name="complaint_reporter_created_idx"),
            models.Index(fields=["assigned_to", "status"], name="complaint_assignee_status_idx"),
        ]

    def __str__(self):
        return f"{self.human_id} — {self.title}"

    @property
    def report_images(self):
        return self.images.filter(kind=ImageKind.REPORT)

    @property
    def resolution_images(self):
        return self.images.filter(kind=ImageKind.RESOLUTION)


class ComplaintImage(models.Model):
    """
    A blob reference attached to a complaint, either by the reporter
    (``report``) or by the officer who resolved it (``resolution``).
    """

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="images",
        verbose_name="Complaint",
    )
    kind = models.CharField(
        max_length=20,
        choices=ImageKind.choices,
        default=ImageKind.REPORT,
        verbose_name="Kind",
    )
    url = models.CharField(max_length=500, verbose_name="URL")
    blob_id = models.CharField(max_length=500, verbose_name="Blob ID")
    uploaded_at = models.DateTimeField(auto_now_add=True, verbose_name="Uploaded At")

    class Meta:
        verbose_name = "Complaint Image"
        verbose_name_plural = "Complaint Images"
        ordering = ["uploaded_at", "id"]

    def __str__(self):
        return f"{self.complaint_id} [{self.kind}] {self.blob_id}"


class ComplaintVote(models.Model):
    """One principal's vote on one complaint."""

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="votes",
        verbose_name="Complaint",
    )
    voter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="complaint_votes",
        verbose_name="Voter",
    )
    direction = models.CharField(
        max_length=4,
        choices=VoteDirection.choices,
        verbose_name="Direction",
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    class Meta:
        verbose_name = "Complaint Vote"
        verbose_name_plural = "Complaint Votes"
        constraints = [
            models.UniqueConstraint(
                fields=["complaint", "voter"],
                name="unique_vote_per_voter",
            ),
        ]

    def __str__(self):
        return f"{self.voter_id} {self.direction} {self.complaint_id}"


class StatusUpdate(TimeStampedModel):
    """
    Immutable ledger entry written on every lifecycle mutation
    (creation, status change, assignment).

    Entries are never edited; they disappear only with their complaint.
    """

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="status_updates",
        verbose_name="Complaint",
    )
    status = models.CharField(
        max_length=20,
        choices=ComplaintStatus.choices,
        verbose_name="Status",
    )
    previous_status = models.CharField(
        max_length=20,
        choices=ComplaintStatus.choices,
        null=True,
        blank=True,
        verbose_name="Previous Status",
    )
    comment = models.TextField(max_length=1000, blank=True, default="", verbose_name="Comment")
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="complaint_status_updates",
        verbose_name="Updated By",
    )
    images = models.JSONField(default=list, blank=True, verbose_name="Images")
    is_public = models.BooleanField(default=True, verbose_name="Public")

    class Meta:
        verbose_name = "Status Update"
        verbose_name_plural = "Status Updates"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return (
            f"Complaint #{self.complaint_id}: "
            f"{self.previous_status or '-'} → {self.status}"
        )
