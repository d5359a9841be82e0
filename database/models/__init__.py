from .base import Base, JSONType
from .notification import Notification, NotificationEventLog
from .preferences import NotificationPreference
from .practice import Profile, Case

__all__ = [
    'Base',
    'JSONType',
    'Notification',
    'NotificationEventLog',
    'NotificationPreference',
    'Profile',
    'Case',
]
