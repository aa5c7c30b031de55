"""
Recompute queued notification jobs for every reminder.

Useful after the job table was cleared or restored from an old backup.
"""

from django.apps import apps
from django.core.management.base import BaseCommand

from reminders.models import Reminder


class Command(BaseCommand):
    help = "Cancel and re-create notification jobs for all reminders"

    def handle(self, *args, **options):
        schedule_service = apps.get_app_config("notifications").schedule_service

        rebuilt = 0
        queued = 0

        for reminder in Reminder.objects.all():
            planned = schedule_service.reminder_updated(reminder)
            queued += sum(1 for _, _, is_queued in planned if is_queued)
            rebuilt += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Rebuilt jobs for {rebuilt} reminders ({queued} queued)"
            )
        )
