from .scheduler import (
    CAUTION,
    DISMISSED,
    PENDING,
    SUCCESS,
    ConsoleSink,
    LoggingSink,
    Notification,
    NotificationHandle,
    NotificationScheduler,
)

__all__ = [
    "CAUTION",
    "DISMISSED",
    "PENDING",
    "SUCCESS",
    "ConsoleSink",
    "LoggingSink",
    "Notification",
    "NotificationHandle",
    "NotificationScheduler",
]
