class NotificationError(Exception):
    """Base class for notification delivery problems."""


class NotificationDeliveryError(NotificationError):
    """The mail transport refused or failed to send a message."""


class NotificationRecordError(NotificationError):
    """A message went out but could not be appended to the sent log."""
