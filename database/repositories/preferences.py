from typing import Optional
from sqlalchemy import select

from database.models import NotificationPreference
from database.repositories.base import BaseRepository


class PreferenceRepository(BaseRepository):
    def get_for_user(self, user_id: str) -> Optional[NotificationPreference]:
        stmt = select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()
