from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


# ============================================================
# USER ADMIN
# ============================================================

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    ordering = ("username",)

    list_display = (
        "username",
        "email",
        "name",
        "is_active",
        "is_staff",
    )

    list_filter = (
        "is_active",
        "is_staff",
    )

    search_fields = (
        "username",
        "email",
        "name",
    )

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Notifications", {
            "fields": ("name",)
        }),
    )
