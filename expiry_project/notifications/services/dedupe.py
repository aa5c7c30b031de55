"""
notifications/services/dedupe.py

"Already delivered?" checks shared by the job path and the daily sweep.

Both paths consult the same append-only sent log. Matching on the
calendar day of `sent_at` (not the exact timestamp) is what lets each
path recognise the other's sends.
"""

from datetime import datetime

from django.utils import timezone


def as_local_date(value):
    """
    Reduce a date or datetime to a local calendar date.
    """
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            return timezone.localdate(value)
        return value.date()
    return value


def already_sent_on(log, days_before, day) -> bool:
    """
    True if `log` has an entry for `days_before` sent on calendar day `day`.
    """
    for entry in log:
        if entry.days_before != days_before or entry.sent_at is None:
            continue
        if as_local_date(entry.sent_at) == day:
            return True
    return False


def already_sent(log, days_before) -> bool:
    """
    True if `log` has any entry for `days_before`, whatever the day.
    """
    return any(entry.days_before == days_before for entry in log)
