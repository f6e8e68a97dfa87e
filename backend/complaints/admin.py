from django.contrib import admin

from .models import Complaint, ComplaintImage, ComplaintSequence, ComplaintVote, StatusUpdate


class ComplaintImageInline(admin.TabularInline):
    model = ComplaintImage
    extra = 0
    readonly_fields = ("kind", "url", "blob_id", "uploaded_at")


class StatusUpdateInline(admin.TabularInline):
    model = StatusUpdate
    extra = 0
    readonly_fields = ("status", "previous_status", "comment",
                       "updated_by", "created_at")


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ("human_id", "title", "category", "status", "priority",
                    "reported_by", "assigned_to", "created_at")
    list_filter = ("status", "category", "priority")
    search_fields = ("human_id", "title", "description")
    readonly_fields = ("human_id", "upvotes", "downvotes", "view_count")
    inlines = [ComplaintImageInline, StatusUpdateInline]


@admin.register(ComplaintVote)
class ComplaintVoteAdmin(admin.ModelAdmin):
    list_display = ("complaint", "voter", "direction", "created_at")
    list_filter = ("direction",)


@admin.register(StatusUpdate)
class StatusUpdateAdmin(admin.ModelAdmin):
    list_display = ("complaint", "previous_status", "status",
                    "updated_by", "created_at")
    list_filter = ("status",)


@admin.register(ComplaintSequence)
class ComplaintSequenceAdmin(admin.ModelAdmin):
    list_display = ("period", "last_value")
