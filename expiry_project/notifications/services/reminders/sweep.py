"""
notifications/services/reminders/sweep.py

Daily sweep over every reminder.
Works alongside the event-driven jobs as a catch-all: even with the job
queue lost entirely, each offset still goes out on its calendar day.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.utils import timezone

from reminders.models import Reminder
from notifications.services.dedupe import already_sent_on
from notifications.services.delivery import deliver_notification

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    examined: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


def send_expiry_reminders(today=None):
    """
    Sends every notification due on `today` (default: local today)
    that is not already in the reminder's sent log for that day.
    """
    now = timezone.localtime()
    if today is None:
        today = now.date()
    else:
        # Entries must land on the swept day for the gate to see them
        now = timezone.make_aware(datetime.combine(today, now.time()))
    result = SweepResult()

    reminders = (
        Reminder.objects
        .prefetch_related("notifications_sent")
    )

    for reminder in reminders:
        result.examined += 1
        try:
            _process_reminder(reminder, today, now, result)
        except Exception:
            result.failed += 1
            logger.exception("Error processing reminder %s", reminder.pk)

    logger.info(
        "Sweep for %s: %s reminders examined, %s sent, %s skipped, %s failed",
        today, result.examined, result.sent, result.skipped, result.failed
    )
    return result


def _process_reminder(reminder, today, now, result):
    if not reminder.expiry_date:
        return

    expiry_day = reminder.expiry_day
    log = reminder.sent_log()

    for days_before in reminder.notify_offsets:
        notification_date = expiry_day - timedelta(days=days_before)
        if notification_date != today:
            continue

        if already_sent_on(log, days_before, today):
            result.skipped += 1
            continue

        try:
            sent = deliver_notification(reminder, days_before, now=now)
        except Exception:
            result.failed += 1
            logger.exception(
                "Failed to send reminder email for reminder %s (owner %s, %sd before)",
                reminder.pk, reminder.owner_id, days_before
            )
            continue

        if not sent:
            result.skipped += 1
            continue

        result.sent += 1
