"""
notifications/services/reminders/schedule.py

Event-driven notification jobs for reminders.

Every create/update/delete of a Reminder recomputes its jobs:
- create  -> one job per offset (or an immediate send if already due)
- update  -> cancel everything for the reminder, then as create
- delete  -> cancel everything for the reminder

Works alongside the daily sweep; the sweep recovers anything a job misses.
"""

import logging
from datetime import datetime, time, timedelta

from django.utils import timezone

from reminders.models import Reminder
from notifications.services.dedupe import already_sent
from notifications.services.delivery import deliver_notification

logger = logging.getLogger(__name__)


SEND_NOTIFICATION = "send-notification"


def fire_instant(expiry_date, days_before):
    """
    Local midnight of the day `days_before` days ahead of `expiry_date`.
    """
    day = expiry_date - timedelta(days=days_before)
    return timezone.make_aware(datetime.combine(day, time.min))


class ReminderScheduleService:
    """
    Long-lived service holding the job queue.

    Built once per process (see NotificationsConfig.ready) and handed to
    the Reminder signal receivers.
    """

    def __init__(self, job_queue):
        self.job_queue = job_queue
        job_queue.register(SEND_NOTIFICATION, self.send_notification)

    # =====================================================
    # MUTATION HOOKS
    # =====================================================
    def reminder_created(self, reminder, *, now=None):
        return self.schedule(reminder, now=now)

    def reminder_updated(self, reminder, *, now=None):
        # Cancel first so a removed offset or old expiry date never fires
        self.cancel(reminder.pk)
        return self.schedule(reminder, now=now)

    def reminder_deleted(self, reminder_id):
        self.cancel(reminder_id)

    # =====================================================
    # QUEUE OPERATIONS
    # =====================================================
    def cancel(self, reminder_id):
        try:
            return self.job_queue.cancel_all(reminder_id=reminder_id)
        except Exception:
            logger.exception("Failed to cancel existing jobs for reminder %s", reminder_id)
            return 0

    def schedule(self, reminder, *, now=None):
        """
        Queue one job per offset. Returns [(days_before, fire_at, queued)],
        where queued is False for offsets sent immediately.
        """
        now = now or timezone.now()
        planned = []

        for days_before in reminder.notify_offsets:
            fire_at = fire_instant(reminder.expiry_day, days_before)
            payload = {"reminder_id": reminder.pk, "days_before": days_before}

            try:
                if fire_at > now:
                    self.job_queue.enqueue(fire_at, SEND_NOTIFICATION, payload)
                    planned.append((days_before, fire_at, True))
                else:
                    self.job_queue.run_now(SEND_NOTIFICATION, payload)
                    planned.append((days_before, fire_at, False))
            except Exception:
                logger.exception(
                    "Failed to schedule notification for reminder %s (%sd before)",
                    reminder.pk, days_before
                )

        return planned

    # =====================================================
    # JOB EXECUTION
    # =====================================================
    def send_notification(self, reminder_id, days_before):
        """
        Job handler. Always works from a fresh copy of the reminder.
        """
        reminder = Reminder.objects.filter(pk=reminder_id).first()
        if reminder is None:
            logger.debug("Reminder %s no longer exists, skipping job.", reminder_id)
            return False

        if already_sent(reminder.sent_log(), days_before):
            logger.debug(
                "Reminder %s already notified for %sd before, skipping job.",
                reminder_id, days_before
            )
            return False

        return deliver_notification(reminder, days_before)
