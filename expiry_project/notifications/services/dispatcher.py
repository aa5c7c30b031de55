import logging
import smtplib
from email.utils import make_msgid

from django.conf import settings
from django.core.mail import BadHeaderError, EmailMultiAlternatives
from django.utils.html import escape

from notifications.exceptions import NotificationDeliveryError

logger = logging.getLogger(__name__)


def _day_word(days):
    return "day" if days == 1 else "days"


def build_expiry_message(*, name, item, expiry_date, days_before):
    """
    Returns (subject, text_body, html_body).
    """
    expiry_label = f"{expiry_date:%A, %d %B %Y}"
    greeting = f"Hi {name}," if name else "Hi,"

    if days_before > 0:
        subject = f"Reminder: {item} will expire in {days_before} {_day_word(days_before)}"
        when = f"This is your {days_before}-day reminder."
    else:
        subject = f"Reminder: {item} expires today"
        when = "It expires today."

    text_body = (
        f"{greeting}\n\n"
        f'Your item "{item}" is set to expire on {expiry_label}. '
        f"{when}\n\n"
        "Regards,\n"
        "Expiry Date Tracker"
    )

    html_body = (
        f"<p>{escape(greeting)}</p>"
        f'<p>Your item "{escape(item)}" is set to expire on '
        f"<strong>{escape(expiry_label)}</strong>. {escape(when)}</p>"
        "<p>Regards,<br/>Expiry Date Tracker</p>"
    )

    return subject, text_body, html_body


def send_expiry_notification(*, email, name, item, expiry_date, days_before):
    """
    Send one expiry notification email.

    Returns the Message-ID of the sent message. Transport failures are
    raised as NotificationDeliveryError; callers decide whether that is
    fatal (it never is for the schedulers).
    """
    subject, text_body, html_body = build_expiry_message(
        name=name,
        item=item,
        expiry_date=expiry_date,
        days_before=days_before,
    )

    message_id = make_msgid()
    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[email],
        headers={"Message-ID": message_id},
    )
    message.attach_alternative(html_body, "text/html")

    try:
        message.send(fail_silently=False)
    except (BadHeaderError, smtplib.SMTPException, OSError) as exc:
        raise NotificationDeliveryError(
            f"Could not send expiry notification to {email}: {exc}"
        ) from exc

    logger.debug("Email sent: %s", message_id)
    return message_id
