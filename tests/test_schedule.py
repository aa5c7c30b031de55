# Tests for event-driven notification jobs.
#
# Reminders go through Reminder.objects.create()/save()/delete(), so the
# post_save/post_delete receivers drive the schedule service. The app's
# scheduler is never started in tests: queued jobs stay pending until a
# test fires them, and immediate sends run inline. The receivers wait for
# the transaction to commit, so these tests run with transaction=True.

from datetime import date, datetime, time, timedelta
from unittest.mock import patch

import pytest
from django.db import DatabaseError, transaction
from django.db.models.signals import post_save
from django.utils import timezone

from notifications.exceptions import NotificationDeliveryError
from notifications.models import ScheduledJob
from notifications.services.reminders import SEND_NOTIFICATION, fire_instant, send_expiry_reminders
from reminders.models import Reminder, SentNotification


def local_midnight(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def test_fire_instant_is_local_midnight():
    assert fire_instant(date(2025, 6, 30), 7) == local_midnight(date(2025, 6, 23))


@pytest.mark.django_db(transaction=True)
class TestCreate:

    def test_future_offsets_are_queued(self, make_reminder, job_queue, today, mailoutbox):
        reminder = make_reminder(expiry_date=today + timedelta(days=30), notify_before_days=[1, 7])

        jobs = ScheduledJob.objects.filter(reminder_id=reminder.pk).order_by("days_before")

        assert [job.days_before for job in jobs] == [1, 7]
        assert jobs[0].fire_at == local_midnight(today + timedelta(days=29))
        assert jobs[1].fire_at == local_midnight(today + timedelta(days=23))
        assert all(job.job_type == SEND_NOTIFICATION for job in jobs)
        assert all(job.status == ScheduledJob.Status.PENDING for job in jobs)
        assert job_queue.scheduler.get_job(job_queue.scheduler_job_id(jobs[0].pk)) is not None
        assert mailoutbox == []

    def test_past_due_offset_fires_immediately(self, make_reminder, today, mailoutbox):
        reminder = make_reminder(expiry_date=today + timedelta(days=1), notify_before_days=[7])

        assert ScheduledJob.objects.filter(reminder_id=reminder.pk).count() == 0
        assert len(mailoutbox) == 1
        assert list(reminder.notifications_sent.values_list("days_before", flat=True)) == [7]

    def test_offset_due_today_fires_immediately(self, make_reminder, today, mailoutbox):
        make_reminder(expiry_date=today + timedelta(days=3), notify_before_days=[3])

        assert len(mailoutbox) == 1

    def test_empty_offsets_are_a_no_op(self, make_reminder, mailoutbox):
        reminder = make_reminder(notify_before_days=[])

        assert ScheduledJob.objects.filter(reminder_id=reminder.pk).count() == 0
        assert mailoutbox == []

    def test_owner_without_email_does_not_send_or_raise(
        self, make_reminder, owner_without_email, today, mailoutbox
    ):
        reminder = make_reminder(
            owner=owner_without_email,
            expiry_date=today + timedelta(days=1),
            notify_before_days=[7],
        )

        assert mailoutbox == []
        assert reminder.notifications_sent.count() == 0

    def test_enqueue_failure_does_not_break_the_save(self, job_queue, make_reminder):
        with patch.object(job_queue, "enqueue", side_effect=DatabaseError("locked")):
            reminder = make_reminder(notify_before_days=[1])

        assert Reminder.objects.filter(pk=reminder.pk).exists()

    def test_raw_save_is_ignored(self, owner, today):
        reminder = Reminder(owner=owner, item_type="Milk", expiry_date=today + timedelta(days=30))
        Reminder.objects.bulk_create([reminder])
        reminder = Reminder.objects.get(item_type="Milk")

        post_save.send(sender=Reminder, instance=reminder, created=True, raw=True)

        assert ScheduledJob.objects.filter(reminder_id=reminder.pk).count() == 0


@pytest.mark.django_db(transaction=True)
class TestUpdate:

    def test_update_replaces_all_jobs(self, make_reminder, job_queue, today):
        reminder = make_reminder(expiry_date=today + timedelta(days=30), notify_before_days=[1, 7])
        old_pks = list(ScheduledJob.objects.filter(reminder_id=reminder.pk).values_list("pk", flat=True))

        reminder.expiry_date = today + timedelta(days=60)
        reminder.notify_before_days = [3]
        reminder.save()

        jobs = list(ScheduledJob.objects.filter(reminder_id=reminder.pk))
        assert len(jobs) == 1
        assert jobs[0].days_before == 3
        assert jobs[0].fire_at == local_midnight(today + timedelta(days=57))
        for pk in old_pks:
            assert job_queue.scheduler.get_job(job_queue.scheduler_job_id(pk)) is None

    def test_removed_offset_never_fires(self, make_reminder, job_queue, today, mailoutbox):
        reminder = make_reminder(expiry_date=today + timedelta(days=30), notify_before_days=[1, 7])
        removed = ScheduledJob.objects.get(reminder_id=reminder.pk, days_before=7)

        reminder.notify_before_days = [1]
        reminder.save()

        assert job_queue.fire(removed.pk) is False
        assert mailoutbox == []

    def test_cancel_failure_is_not_fatal(self, make_reminder, job_queue):
        reminder = make_reminder(notify_before_days=[1])

        with patch.object(job_queue, "cancel_all", side_effect=DatabaseError("unavailable")):
            reminder.item_type = "Oat milk"
            reminder.save()

        assert Reminder.objects.get(pk=reminder.pk).item_type == "Oat milk"


@pytest.mark.django_db(transaction=True)
class TestDelete:

    def test_delete_cancels_pending_jobs(self, make_reminder, job_queue):
        reminder = make_reminder(notify_before_days=[1, 7])
        pks = list(ScheduledJob.objects.filter(reminder_id=reminder.pk).values_list("pk", flat=True))
        reminder_id = reminder.pk

        reminder.delete()

        assert ScheduledJob.objects.filter(reminder_id=reminder_id).count() == 0
        for pk in pks:
            assert job_queue.scheduler.get_job(job_queue.scheduler_job_id(pk)) is None

    def test_job_for_deleted_reminder_is_a_no_op(self, make_reminder, schedule_service, mailoutbox):
        reminder = make_reminder(notify_before_days=[1])
        reminder_id = reminder.pk
        reminder.delete()

        assert schedule_service.send_notification(reminder_id=reminder_id, days_before=1) is False
        assert mailoutbox == []


@pytest.mark.django_db(transaction=True)
class TestJobExecution:

    def test_fired_job_sends_and_records(self, make_reminder, job_queue, mailoutbox):
        reminder = make_reminder(notify_before_days=[7])
        job = ScheduledJob.objects.get(reminder_id=reminder.pk)

        assert job_queue.fire(job.pk) is True

        job.refresh_from_db()
        assert job.status == ScheduledJob.Status.DONE
        assert job.finished_at is not None
        assert len(mailoutbox) == 1
        assert reminder.notifications_sent.get().days_before == 7

    def test_job_fires_at_most_once(self, make_reminder, job_queue, mailoutbox):
        reminder = make_reminder(notify_before_days=[7])
        job = ScheduledJob.objects.get(reminder_id=reminder.pk)

        job_queue.fire(job.pk)
        assert job_queue.fire(job.pk) is False
        assert len(mailoutbox) == 1

    def test_offset_already_in_log_is_skipped(self, make_reminder, job_queue, mailoutbox):
        reminder = make_reminder(notify_before_days=[7])
        reminder.record_sent(7, sent_at=timezone.now() - timedelta(days=40))
        job = ScheduledJob.objects.get(reminder_id=reminder.pk)

        job_queue.fire(job.pk)

        assert mailoutbox == []
        assert reminder.notifications_sent.count() == 1

    def test_job_reads_fresh_reminder(self, make_reminder, job_queue, mailoutbox):
        reminder = make_reminder(item_type="Milk", notify_before_days=[7])
        job = ScheduledJob.objects.get(reminder_id=reminder.pk)
        Reminder.objects.filter(pk=reminder.pk).update(item_type="Yoghurt")

        job_queue.fire(job.pk)

        assert "Yoghurt" in mailoutbox[0].subject

    def test_delivery_failure_marks_job_failed(self, make_reminder, job_queue, mailoutbox):
        reminder = make_reminder(notify_before_days=[7])
        job = ScheduledJob.objects.get(reminder_id=reminder.pk)

        with patch(
            "notifications.services.dispatcher.send_expiry_notification",
            side_effect=NotificationDeliveryError("smtp down"),
        ):
            assert job_queue.fire(job.pk) is False

        job.refresh_from_db()
        assert job.status == ScheduledJob.Status.FAILED
        assert SentNotification.objects.count() == 0

    def test_job_path_then_sweep_same_day_sends_once(self, make_reminder, today, mailoutbox):
        make_reminder(expiry_date=today + timedelta(days=7), notify_before_days=[7])
        result = send_expiry_reminders(today=today)

        assert result.sent == 0
        assert result.skipped == 1
        assert len(mailoutbox) == 1


@pytest.mark.django_db(transaction=True)
class TestTransactions:

    def test_jobs_are_created_after_commit(self, owner, today, mailoutbox):
        with transaction.atomic():
            reminder = Reminder.objects.create(
                owner=owner,
                item_type="Milk",
                expiry_date=today + timedelta(days=30),
                notify_before_days=[1, 7],
            )
            assert ScheduledJob.objects.filter(reminder_id=reminder.pk).count() == 0

        assert ScheduledJob.objects.filter(reminder_id=reminder.pk).count() == 2

    def test_immediate_send_sees_the_committed_reminder(self, owner, today, mailoutbox):
        with transaction.atomic():
            reminder = Reminder.objects.create(
                owner=owner,
                item_type="Milk",
                expiry_date=today + timedelta(days=1),
                notify_before_days=[7],
            )
            assert mailoutbox == []

        assert len(mailoutbox) == 1
        assert reminder.notifications_sent.get().days_before == 7

    def test_rolled_back_save_leaves_no_jobs(self, owner, today, mailoutbox):
        with pytest.raises(RuntimeError):
            with transaction.atomic():
                Reminder.objects.create(
                    owner=owner,
                    item_type="Milk",
                    expiry_date=today + timedelta(days=30),
                    notify_before_days=[1, 7],
                )
                raise RuntimeError("request failed")

        assert ScheduledJob.objects.count() == 0
        assert Reminder.objects.count() == 0
