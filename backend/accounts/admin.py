from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "phone_number", "first_name",
                    "last_name", "role", "department", "is_active")
    search_fields = ("username", "email", "phone_number", "first_name", "last_name")
    list_filter = ("role", "is_active", "department")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Civic Resolve", {"fields": ("role", "department", "phone_number", "address")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Civic Resolve", {"fields": ("email", "first_name", "last_name",
                                      "role", "department", "phone_number")}),
    )
