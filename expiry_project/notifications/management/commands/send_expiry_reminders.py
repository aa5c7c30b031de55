"""
notifications/management/commands/send_expiry_reminders.py

Daily sweep (scheduled at NOTIFICATION_SWEEP_TIME).

- Catch-all for notifications whose queued job was lost or failed
- Sends only offsets due exactly today, once per offset per day
"""

from datetime import date

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from notifications.services.reminders import send_expiry_reminders


class Command(BaseCommand):
    help = "Send expiry notifications due today (catch-all for missed jobs)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            dest="day",
            help="Run the sweep as if today were this date (YYYY-MM-DD)",
        )

    def handle(self, *args, **options):
        now = timezone.now()
        today = None

        if options.get("day"):
            try:
                today = date.fromisoformat(options["day"])
            except ValueError:
                raise CommandError(f"Invalid --date {options['day']!r}, expected YYYY-MM-DD")

        self.stdout.write(
            self.style.NOTICE(
                f"[{now:%Y-%m-%d %H:%M:%S}] Starting expiry reminder sweep"
            )
        )

        result = send_expiry_reminders(today=today)

        self.stdout.write(
            self.style.SUCCESS(
                f"[{now:%Y-%m-%d %H:%M:%S}] Completed: "
                f"{result.examined} reminders examined, "
                f"{result.sent} sent, "
                f"{result.skipped} skipped, "
                f"{result.failed} failed"
            )
        )
