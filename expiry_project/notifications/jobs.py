"""
notifications/jobs.py

Durable one-shot job queue on top of APScheduler.

ScheduledJob rows are the source of truth; APScheduler only holds
in-memory timers pointing back at those rows. Restarting the process
and calling restore() rebuilds the timers; poll_due() picks up rows
enqueued by other processes (web workers, management commands).
"""

import logging

from apscheduler.jobstores.base import JobLookupError
from django.utils import timezone

from .models import ScheduledJob

logger = logging.getLogger(__name__)


class JobQueue:

    def __init__(self, scheduler):
        self.scheduler = scheduler
        self._handlers = {}

    # --------------------------------------------
    # HANDLERS
    # --------------------------------------------
    def register(self, job_type, handler):
        self._handlers[job_type] = handler

    @staticmethod
    def scheduler_job_id(job_pk):
        return f"notification-job-{job_pk}"

    # --------------------------------------------
    # PRODUCER API
    # --------------------------------------------
    def enqueue(self, fire_at, job_type, payload):
        """
        Persist a job row and arm a timer for `fire_at`.
        """
        job = ScheduledJob.objects.create(
            job_type=job_type,
            reminder_id=payload["reminder_id"],
            days_before=payload["days_before"],
            fire_at=fire_at,
        )
        self._arm(job, run_date=fire_at)

        logger.debug("Enqueued %s", job)
        return job

    def cancel_all(self, reminder_id):
        """
        Cancel every pending job for a reminder. Returns how many were removed.
        """
        pending = ScheduledJob.objects.filter(
            reminder_id=reminder_id,
            status=ScheduledJob.Status.PENDING,
        )
        job_pks = list(pending.values_list("pk", flat=True))

        for job_pk in job_pks:
            try:
                self.scheduler.remove_job(self.scheduler_job_id(job_pk))
            except JobLookupError:
                pass

        # A job claimed by fire() in the meantime keeps its row
        deleted, _ = ScheduledJob.objects.filter(
            pk__in=job_pks,
            status=ScheduledJob.Status.PENDING,
        ).delete()

        if deleted:
            logger.debug("Cancelled %s job(s) for reminder %s", deleted, reminder_id)
        return deleted

    def run_now(self, job_type, payload):
        """
        Fire a job immediately, without a durable row.

        Handed to the scheduler's worker pool when it is running;
        executed inline otherwise (scheduler disabled, commands, tests).
        """
        if self.scheduler.running:
            self.scheduler.add_job(
                self.execute,
                args=[job_type, payload],
                misfire_grace_time=None,
            )
            return None

        return self.execute(job_type, payload)

    # --------------------------------------------
    # CONSUMER SIDE
    # --------------------------------------------
    def fire(self, job_pk):
        """
        Timer callback. Claims the row so a job runs at most once.
        """
        claimed = ScheduledJob.objects.filter(
            pk=job_pk,
            status=ScheduledJob.Status.PENDING,
        ).update(status=ScheduledJob.Status.RUNNING)

        if not claimed:
            logger.debug("Job %s was cancelled or already fired, skipping.", job_pk)
            return False

        job = ScheduledJob.objects.get(pk=job_pk)
        succeeded = self.execute(job.job_type, job.payload)
        job.mark_finished(succeeded)
        return succeeded

    def execute(self, job_type, payload) -> bool:
        """
        Run a handler. Errors are logged and end the job; nothing is retried.
        """
        handler = self._handlers.get(job_type)
        if handler is None:
            logger.error("No handler registered for job type %r", job_type)
            return False

        try:
            handler(**payload)
        except Exception:
            logger.exception("Job %s failed for payload %s", job_type, payload)
            return False

        return True

    # --------------------------------------------
    # STARTUP
    # --------------------------------------------
    def restore(self):
        """
        Re-arm timers for every pending row. Overdue rows fire right away.
        """
        now = timezone.now()
        restored = 0

        for job in ScheduledJob.objects.filter(status=ScheduledJob.Status.PENDING):
            self._arm(job, run_date=max(job.fire_at, now))
            restored += 1

        if restored:
            logger.info("Restored %s pending notification job(s)", restored)
        return restored

    def poll_due(self, now=None):
        """
        Fire every pending row whose fire_at has passed.

        Rows enqueued in another process never get a timer here, so the
        running scheduler polls for them. fire() claims each row, so a
        local timer firing the same row is harmless.
        """
        now = now or timezone.now()
        due = list(
            ScheduledJob.objects
            .filter(status=ScheduledJob.Status.PENDING, fire_at__lte=now)
            .order_by("fire_at", "pk")
            .values_list("pk", flat=True)
        )

        fired = 0
        for job_pk in due:
            try:
                self.scheduler.remove_job(self.scheduler_job_id(job_pk))
            except JobLookupError:
                pass

            if self.fire(job_pk):
                fired += 1

        if due:
            logger.info("Polled %s due notification job(s), %s succeeded", len(due), fired)
        return fired

    def _arm(self, job, *, run_date):
        self.scheduler.add_job(
            self.fire,
            trigger="date",
            run_date=run_date,
            args=[job.pk],
            id=self.scheduler_job_id(job.pk),
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )
