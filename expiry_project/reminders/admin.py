from django.contrib import admin

from .models import Reminder, SentNotification


class SentNotificationInline(admin.TabularInline):
    """
    Delivery log is append-only; shown read-only.
    """
    model = SentNotification
    extra = 0
    can_delete = False
    readonly_fields = ("days_before", "sent_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Reminder)
class ReminderAdmin(admin.ModelAdmin):

    # =====================================================
    # LIST VIEW
    # =====================================================
    list_display = (
        "id",
        "item_type",
        "owner",
        "expiry_date",
        "notify_before_days",
        "sent_count",
    )

    list_filter = (
        "expiry_date",
    )

    search_fields = (
        "item_type",
        "owner__username",
        "owner__email",
    )

    ordering = ("expiry_date",)
    list_per_page = 25
    list_select_related = ("owner",)

    # =====================================================
    # DETAIL VIEW
    # =====================================================
    fieldsets = (
        ("Item", {
            "fields": ("owner", "item_type", "image", "attachment"),
        }),
        ("Expiry", {
            "fields": ("expiry_date", "notify_before_days"),
        }),
        ("Timestamps", {
            "fields": ("created_at", "updated_at"),
        }),
    )

    readonly_fields = (
        "created_at",
        "updated_at",
    )

    inlines = (SentNotificationInline,)

    def sent_count(self, obj):
        return obj.notifications_sent.count()

    sent_count.short_description = "Sent"
