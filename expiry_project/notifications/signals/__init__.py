from .reminders import connect_reminder_signals

__all__ = ["connect_reminder_signals"]
