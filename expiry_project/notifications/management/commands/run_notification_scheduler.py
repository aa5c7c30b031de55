"""
Run the notification scheduler in the foreground.

For deployments where the web process does not go through Django's
autoreloader (gunicorn, uwsgi) and so never starts the scheduler itself.
"""

import time

from django.apps import apps
from django.core.management.base import BaseCommand

from notifications.scheduler import start_scheduler


class Command(BaseCommand):
    help = "Start the expiry sweep and notification job scheduler and block"

    def handle(self, *args, **options):
        job_queue = apps.get_app_config("notifications").job_queue
        scheduler = start_scheduler(job_queue, force=True)

        self.stdout.write(self.style.SUCCESS("Notification scheduler running. Ctrl+C to stop."))

        try:
            while True:
                time.sleep(60)
        except KeyboardInterrupt:
            self.stdout.write("Shutting down notification scheduler...")
        finally:
            scheduler.shutdown(wait=False)
