from django.db import models
from django.utils import timezone


class ScheduledJob(models.Model):
    """
    Durable record of one queued notification job.

    The APScheduler job store is in-memory; these rows are what survives
    a restart and what cancellation matches against.
    """

    # =====================================================
    # STATUS
    # =====================================================
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        RUNNING = "running", "Running"
        DONE = "done", "Done"
        FAILED = "failed", "Failed"

    job_type = models.CharField(max_length=50, db_index=True)

    # Plain id, not a foreign key: a job must outlive its reminder
    reminder_id = models.BigIntegerField(db_index=True)
    days_before = models.PositiveIntegerField()

    fire_at = models.DateTimeField(db_index=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )

    created_at = models.DateTimeField(default=timezone.now)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["fire_at", "id"]
        indexes = [
            models.Index(fields=["reminder_id", "status"], name="notif_job_reminder_idx"),
        ]

    def __str__(self):
        return (
            f"{self.job_type} | reminder {self.reminder_id} | "
            f"{self.days_before}d | {self.fire_at:%Y-%m-%d %H:%M}"
        )

    @property
    def payload(self):
        return {
            "reminder_id": self.reminder_id,
            "days_before": self.days_before,
        }

    def mark_finished(self, succeeded):
        self.status = self.Status.DONE if succeeded else self.Status.FAILED
        self.finished_at = timezone.now()
        self.save(update_fields=["status", "finished_at"])
