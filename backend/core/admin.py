from django.contrib import admin

from .models import Notification, PendingBlobDeletion


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("recipient", "kind", "title", "reference", "is_read", "created_at")
    list_filter = ("kind", "is_read")
    search_fields = ("title", "message", "reference")


@admin.register(PendingBlobDeletion)
class PendingBlobDeletionAdmin(admin.ModelAdmin):
    list_display = ("blob_id", "attempts", "created_at", "updated_at")
    search_fields = ("blob_id",)
