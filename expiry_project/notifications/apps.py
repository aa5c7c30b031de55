from django.apps import AppConfig
import os


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"

    job_queue = None
    schedule_service = None

    def ready(self):
        from .jobs import JobQueue
        from .scheduler import build_scheduler, start_scheduler
        from .services.reminders import ReminderScheduleService
        from .signals import connect_reminder_signals

        # --------------------------------------------------
        # One scheduler service per process, passed explicitly
        # --------------------------------------------------
        self.job_queue = JobQueue(build_scheduler())
        self.schedule_service = ReminderScheduleService(self.job_queue)

        connect_reminder_signals(self.schedule_service)

        # --------------------------------------------------
        # Start APScheduler SAFELY
        # --------------------------------------------------
        # Prevent duplicate scheduler from Django autoreload
        if os.environ.get("RUN_MAIN") != "true":
            return

        start_scheduler(self.job_queue)
