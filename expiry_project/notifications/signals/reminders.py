"""
notifications/signals/reminders.py

Real-time rescheduling of notification jobs when a Reminder changes.
Work is deferred until the surrounding transaction commits, so job
threads never read an uncommitted reminder and a rolled-back save
leaves no jobs behind.
"""

from django.db import transaction
from django.db.models.signals import post_delete, post_save

from reminders.models import Reminder


def connect_reminder_signals(schedule_service):
    """
    Connect Reminder save/delete to `schedule_service`.
    """

    # ============================================================
    # POST_SAVE: CREATE OR RESCHEDULE
    # ============================================================
    def reschedule_on_save(sender, instance, created, raw=False, using=None, **kwargs):
        if raw:
            return

        if created:
            hook = schedule_service.reminder_created
        else:
            hook = schedule_service.reminder_updated

        transaction.on_commit(lambda: hook(instance), using=using)

    # ============================================================
    # POST_DELETE: CANCEL PENDING JOBS
    # ============================================================
    def cancel_on_delete(sender, instance, using=None, **kwargs):
        reminder_id = instance.pk
        transaction.on_commit(
            lambda: schedule_service.reminder_deleted(reminder_id),
            using=using,
        )

    post_save.connect(
        reschedule_on_save,
        sender=Reminder,
        weak=False,
        dispatch_uid="notifications.reschedule_on_save",
    )
    post_delete.connect(
        cancel_on_delete,
        sender=Reminder,
        weak=False,
        dispatch_uid="notifications.cancel_on_delete",
    )
