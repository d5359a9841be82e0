from database.repositories.base import BaseRepository
from database.repositories.notification import NotificationEventRepository, NotificationRepository
from database.repositories.preferences import PreferenceRepository
from database.repositories.practice import PracticeRepository

__all__ = [
    'BaseRepository',
    'NotificationEventRepository',
    'NotificationRepository',
    'PreferenceRepository',
    'PracticeRepository',
]
