"""
Notification service layer.

- dispatcher: composes and sends one expiry email
- dedupe:     "already delivered?" checks over the sent log
- delivery:   recipient lookup + send + append, shared by both schedulers
- reminders:  the event-driven job scheduler and the daily sweep
"""
