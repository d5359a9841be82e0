from sqlalchemy.orm import Session

from database.repositories import (
    NotificationEventRepository,
    NotificationRepository,
    PreferenceRepository,
    PracticeRepository,
)


class DispatchRepository:
    """Facade over the repositories the dispatch engine touches, sharing one session."""

    def __init__(self, db: Session):
        self.db = db
        self.events = NotificationEventRepository(db)
        self.notifications = NotificationRepository(db)
        self.preferences = PreferenceRepository(db)
        self.practice = PracticeRepository(db)
