from typing import Optional
from sqlalchemy import select

from database.models import Case, Profile
from database.repositories.base import BaseRepository


class PracticeRepository(BaseRepository):
    """Read-only lookups against practice records."""

    def get_display_name(self, user_id: str) -> Optional[str]:
        stmt = select(Profile.full_name).where(Profile.id == str(user_id))
        return self.db.execute(stmt).scalar_one_or_none()

    def get_case(self, case_id: str) -> Optional[Case]:
        stmt = select(Case).where(Case.id == str(case_id))
        return self.db.execute(stmt).scalar_one_or_none()
