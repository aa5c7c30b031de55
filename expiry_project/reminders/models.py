import json

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


DEFAULT_NOTIFY_BEFORE_DAYS = [1, 3, 7]


def default_notify_before_days():
    return list(DEFAULT_NOTIFY_BEFORE_DAYS)


def normalize_notify_before_days(value):
    """
    Coerce user input into a sorted list of unique non-negative day offsets.

    Accepts ints, numeric strings, JSON-encoded strings and arbitrarily
    nested lists of those. Anything else is dropped.
    """
    if value is None:
        return []

    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return [int(text)]
        try:
            value = json.loads(text)
        except ValueError:
            return []

    if isinstance(value, bool):
        return []

    if isinstance(value, (int, float)):
        value = [value]

    if not isinstance(value, (list, tuple, set)):
        return []

    offsets = set()
    for element in value:
        if isinstance(element, (list, tuple, set, str)):
            offsets.update(normalize_notify_before_days(element))
        elif isinstance(element, bool):
            continue
        elif isinstance(element, (int, float)) and element >= 0 and element == int(element):
            offsets.add(int(element))

    return sorted(offsets)


class Reminder(models.Model):
    """
    A tracked item with an expiry date and the day offsets at which
    its owner wants to be told about it.
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reminders",
    )

    item_type = models.CharField(
        max_length=200,
        help_text="What is expiring (shown in notification emails)"
    )

    image = models.CharField(max_length=255, blank=True, default="")
    attachment = models.CharField(max_length=255, blank=True, default="")

    expiry_date = models.DateField(db_index=True)

    notify_before_days = models.JSONField(
        default=default_notify_before_days,
        help_text="Days before expiry to send a notification, e.g. [1, 3, 7]"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["expiry_date", "id"]

    def __str__(self):
        return f"{self.item_type} (expires {self.expiry_date:%Y-%m-%d})"

    def clean(self):
        offsets = normalize_notify_before_days(self.notify_before_days)
        if not offsets:
            raise ValidationError({
                "notify_before_days": "Notify before days must be a non-empty list of non-negative numbers."
            })
        self.notify_before_days = offsets

    # =====================================================
    # SCHEDULING HELPERS
    # =====================================================
    @property
    def notify_offsets(self):
        """Valid offsets only; tolerates whatever is stored."""
        return normalize_notify_before_days(self.notify_before_days)

    @property
    def expiry_day(self):
        """expiry_date as a date, even if a datetime or string was assigned."""
        return self._meta.get_field("expiry_date").to_python(self.expiry_date)

    def sent_log(self):
        return list(self.notifications_sent.all())

    def record_sent(self, days_before, sent_at=None):
        """
        Append one entry to the delivery log.

        Only creates a SentNotification row; the reminder itself is not
        saved, so recording never re-triggers scheduling.
        """
        return SentNotification.objects.create(
            reminder=self,
            days_before=days_before,
            sent_at=sent_at or timezone.now(),
        )


class SentNotification(models.Model):
    """Append-only record of one delivered notification."""

    reminder = models.ForeignKey(
        Reminder,
        on_delete=models.CASCADE,
        related_name="notifications_sent",
    )

    days_before = models.PositiveIntegerField()
    sent_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["sent_at", "id"]
        indexes = [
            models.Index(fields=["reminder", "days_before"], name="reminders_sent_lookup_idx"),
        ]

    def __str__(self):
        return f"{self.reminder_id} | {self.days_before}d | {self.sent_at:%Y-%m-%d %H:%M}"
