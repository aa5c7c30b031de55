from .schedule import (
    SEND_NOTIFICATION,
    ReminderScheduleService,
    fire_instant,
)
from .sweep import (
    SweepResult,
    send_expiry_reminders,
)

__all__ = [
    "SEND_NOTIFICATION",
    "ReminderScheduleService",
    "fire_instant",
    "SweepResult",
    "send_expiry_reminders",
]
