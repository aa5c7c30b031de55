"""
notifications/services/delivery.py

The send-and-record step used by both the job path and the daily sweep.
Callers run their own "already sent?" check first.
"""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import DatabaseError
from django.utils import timezone

from notifications.exceptions import NotificationRecordError
from notifications.services import dispatcher

logger = logging.getLogger(__name__)


def find_recipient(owner_id):
    """
    Owner lookup for message composition; credentials are never loaded.
    Returns None when the user is gone or has no usable email.
    """
    user = (
        get_user_model().objects
        .only("id", "username", "email", "name", "first_name", "last_name")
        .filter(pk=owner_id)
        .first()
    )
    if user is None or not user.email:
        return None

    try:
        validate_email(user.email)
    except ValidationError:
        logger.warning("User %s has an invalid email address, skipping.", owner_id)
        return None

    return user


def deliver_notification(reminder, days_before, *, now=None) -> bool:
    """
    Email the reminder's owner about `days_before`, then append to the sent log.

    Returns False when there is nobody to send to. Transport errors
    propagate as NotificationDeliveryError; a failed append after a
    successful send raises NotificationRecordError.
    """
    user = find_recipient(reminder.owner_id)
    if user is None:
        logger.debug(
            "No recipient email for reminder %s (owner %s), skipping.",
            reminder.pk, reminder.owner_id
        )
        return False

    dispatcher.send_expiry_notification(
        email=user.email,
        name=user.display_name,
        item=reminder.item_type,
        expiry_date=reminder.expiry_day,
        days_before=days_before,
    )

    try:
        reminder.record_sent(days_before, sent_at=now or timezone.now())
    except DatabaseError as exc:
        logger.exception(
            "Notification for reminder %s (%sd before) was sent but not recorded.",
            reminder.pk, days_before
        )
        raise NotificationRecordError(
            f"Sent log append failed for reminder {reminder.pk}"
        ) from exc

    logger.info(
        "Reminder email sent for reminder %s (%sd before) to %s",
        reminder.pk, days_before, user.email
    )
    return True
