from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


SWEEP_JOB_ID = "send_expiry_reminders"
STARTUP_SWEEP_JOB_ID = "send_expiry_reminders_startup"
POLL_JOB_ID = "poll_notification_jobs"


def sweep_time():
    """
    Parse NOTIFICATION_SWEEP_TIME ("HH:MM") into (hour, minute).
    """
    raw = getattr(settings, "NOTIFICATION_SWEEP_TIME", "09:00")
    try:
        hour_text, minute_text = str(raw).strip().split(":")
        hour, minute = int(hour_text), int(minute_text)
    except ValueError:
        raise ImproperlyConfigured(
            f"NOTIFICATION_SWEEP_TIME must look like HH:MM, got {raw!r}"
        )

    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ImproperlyConfigured(
            f"NOTIFICATION_SWEEP_TIME is out of range: {raw!r}"
        )
    return hour, minute


def sweep_timezone():
    return getattr(settings, "NOTIFICATION_SWEEP_TIMEZONE", None) or settings.TIME_ZONE


def poll_interval():
    seconds = int(getattr(settings, "NOTIFICATION_POLL_SECONDS", 60))
    if seconds <= 0:
        raise ImproperlyConfigured(
            f"NOTIFICATION_POLL_SECONDS must be positive, got {seconds}"
        )
    return seconds


def build_scheduler():
    """
    Unstarted scheduler. Jobs added before start() are held until then.
    """
    return BackgroundScheduler(timezone=sweep_timezone())


def start_scheduler(job_queue, *, force=False):
    """
    Start APScheduler safely.

    - Respects ENABLE_SCHEDULER setting (unless force=True)
    - Prevents double start (Django autoreload, imports)
    - Registers the daily sweep and re-arms durable notification jobs
    - Polls for due jobs enqueued by other processes
    """
    scheduler = job_queue.scheduler

    # --------------------------------------------
    # DEV / PROD TOGGLE
    # --------------------------------------------
    if not force and not getattr(settings, "ENABLE_SCHEDULER", False):
        logger.info("APScheduler disabled via settings (ENABLE_SCHEDULER=False)")
        return None

    # --------------------------------------------
    # SAFETY LOCK (NO DOUBLE START)
    # --------------------------------------------
    if scheduler.running:
        logger.info("APScheduler already running, skipping initialization")
        return scheduler

    hour, minute = sweep_time()
    tz = sweep_timezone()

    logger.info("Starting APScheduler...")

    # --------------------------------------------
    # SCHEDULE: DAILY SWEEP AT A FIXED LOCAL TIME
    # --------------------------------------------
    scheduler.add_job(
        run_expiry_sweep,
        trigger=CronTrigger(hour=hour, minute=minute, timezone=tz),
        id=SWEEP_JOB_ID,
        replace_existing=True,
        max_instances=1,      # Prevent overlapping runs
        coalesce=True,        # Merge missed runs if server was down
    )

    # --------------------------------------------
    # SCHEDULE: PICK UP JOBS QUEUED BY OTHER PROCESSES
    # --------------------------------------------
    scheduler.add_job(
        job_queue.poll_due,
        trigger="interval",
        seconds=poll_interval(),
        id=POLL_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    # --------------------------------------------
    # OPTIONAL CATCH-UP RUN
    # --------------------------------------------
    if getattr(settings, "RUN_SWEEP_ON_STARTUP", False):
        scheduler.add_job(
            run_expiry_sweep,
            id=STARTUP_SWEEP_JOB_ID,
            replace_existing=True,
        )
        logger.info("Immediate expiry sweep queued for startup")

    job_queue.restore()
    scheduler.start()

    logger.info(
        "APScheduler started: expiry sweep scheduled daily at %02d:%02d (%s)",
        hour, minute, tz
    )
    return scheduler


def run_expiry_sweep():
    """
    Wrapper job that calls the Django management command.
    Keeps all business logic out of the scheduler.
    """
    now = timezone.now()
    logger.info(f"Running scheduled expiry sweep at {now:%Y-%m-%d %H:%M:%S}")

    try:
        call_command("send_expiry_reminders")
    except Exception:
        logger.exception("Scheduled expiry sweep failed")
