from datetime import timedelta

import pytest
from django.apps import apps
from django.contrib.auth import get_user_model
from django.utils import timezone

from reminders.models import Reminder


@pytest.fixture
def notifications_app():
    return apps.get_app_config("notifications")


@pytest.fixture
def job_queue(notifications_app):
    return notifications_app.job_queue


@pytest.fixture
def schedule_service(notifications_app):
    return notifications_app.schedule_service


@pytest.fixture
def owner(db):
    return get_user_model().objects.create_user(
        username="alice",
        email="alice@example.com",
        password="not-used",
        name="Alice",
    )


@pytest.fixture
def owner_without_email(db):
    return get_user_model().objects.create_user(
        username="bob",
        email="",
        password="not-used",
    )


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def make_reminder(owner):
    """
    Create a reminder. quiet=True bypasses save signals (no jobs, no
    immediate sends), for tests that drive the sweep on fixed dates.
    """
    def _make(*, quiet=False, **fields):
        fields.setdefault("owner", owner)
        fields.setdefault("item_type", "Milk")
        fields.setdefault("notify_before_days", [7])
        fields.setdefault("expiry_date", timezone.localdate() + timedelta(days=30))

        if quiet:
            Reminder.objects.bulk_create([Reminder(**fields)])
            return Reminder.objects.order_by("-id").first()
        return Reminder.objects.create(**fields)

    return _make


@pytest.fixture(autouse=True)
def clear_pending_scheduler_jobs():
    """
    The app scheduler is never started in tests, so armed jobs pile up
    in its pending list; drop them between tests.
    """
    yield
    apps.get_app_config("notifications").job_queue.scheduler.remove_all_jobs()
