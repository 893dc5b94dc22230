"""
Notification engine exceptions.

Nothing here is fatal to the host: sync() only raises SyncError, and only
when the notification collection itself is unreadable.
"""


class NotificationError(Exception):
    """Base exception for notification engine errors"""
    pass


class StoreError(NotificationError):
    """Raised when the record store rejects a read or write"""
    pass


class SourceReadError(StoreError):
    """Raised when a source collection is unreadable or not a list of records"""
    pass


class SyncError(NotificationError):
    """Raised when a sync run cannot start because notifications are unreadable"""
    pass
