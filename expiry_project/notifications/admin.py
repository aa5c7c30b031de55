from django.contrib import admin
from django.utils.html import format_html

from .models import ScheduledJob


@admin.register(ScheduledJob)
class ScheduledJobAdmin(admin.ModelAdmin):
    """
    Read-mostly view of queued notification jobs.
    """

    # =====================================================
    # LIST VIEW
    # =====================================================
    list_display = (
        "id",
        "job_type",
        "reminder_id",
        "days_before",
        "fire_at",
        "colored_status",
        "finished_at",
    )

    list_filter = (
        "status",
        "job_type",
        "fire_at",
    )

    search_fields = (
        "reminder_id",
    )

    ordering = ("fire_at",)
    list_per_page = 25

    readonly_fields = (
        "job_type",
        "reminder_id",
        "days_before",
        "fire_at",
        "status",
        "created_at",
        "finished_at",
    )

    def has_add_permission(self, request):
        return False

    # =====================================================
    # CUSTOM DISPLAY HELPERS
    # =====================================================
    def colored_status(self, obj):
        color_map = {
            ScheduledJob.Status.PENDING: "#f59e0b",   # orange
            ScheduledJob.Status.RUNNING: "#2563eb",   # blue
            ScheduledJob.Status.DONE: "#16a34a",      # green
            ScheduledJob.Status.FAILED: "#dc2626",    # red
        }

        return format_html(
            '<span style="color:{}; font-weight:600;">{}</span>',
            color_map.get(obj.status, "#000000"),
            obj.get_status_display(),
        )

    colored_status.short_description = "Status"
