from typing import List, Optional, Dict, Any

from sqlalchemy import select, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from database.models import Notification, NotificationEventLog
from database.repositories.base import BaseRepository


class NotificationEventRepository(BaseRepository):
    def insert_event_key(
        self,
        event_key: str,
        entity_type: str,
        operation: str,
        record_id: str
    ) -> bool:
        """
        Atomically insert an event key if absent.

        Returns True when this call inserted the row, False when the key
        already existed. Uses ON CONFLICT DO NOTHING where the dialect has
        it, otherwise relies on the unique constraint.
        """
        values = {
            'event_key': event_key,
            'entity_type': entity_type,
            'operation': operation,
            'record_id': record_id,
        }
        dialect = self.dialect_name

        if dialect == 'postgresql':
            stmt = postgresql.insert(NotificationEventLog).values(**values).on_conflict_do_nothing(
                index_elements=['event_key']
            )
        elif dialect == 'sqlite':
            stmt = sqlite.insert(NotificationEventLog).values(**values).on_conflict_do_nothing(
                index_elements=['event_key']
            )
        else:
            try:
                with self.db.begin_nested():
                    self.db.execute(insert(NotificationEventLog).values(**values))
            except IntegrityError:
                return False
            return True

        result = self.db.execute(stmt)
        return result.rowcount == 1

    def exists(self, event_key: str) -> bool:
        stmt = select(NotificationEventLog.id).where(NotificationEventLog.event_key == event_key)
        return self.db.execute(stmt).first() is not None


class NotificationRepository(BaseRepository):
    def create_notification(
        self,
        recipient_id: str,
        notification_type: str,
        title: str,
        message: str,
        category: str,
        priority: str,
        delivery_status: str,
        reference_id: Optional[str] = None,
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        delivery_channels: Optional[Dict[str, bool]] = None,
        snoozed_until=None,
        digest_batch_id: Optional[str] = None
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            notification_type=notification_type,
            title=title,
            message=message,
            reference_id=reference_id,
            category=category,
            priority=priority,
            action_url=action_url,
            metadata_=metadata or {},
            delivery_channels=delivery_channels or {},
            delivery_status=delivery_status,
            read=False,
            snoozed_until=snoozed_until,
            digest_batch_id=digest_batch_id,
        )
        self.db.add(notification)
        self.db.flush()  # Generate ID
        return notification

    def list_for_recipient(self, recipient_id: str) -> List[Notification]:
        stmt = select(Notification).where(
            Notification.recipient_id == recipient_id
        ).order_by(Notification.created_at)
        return list(self.db.execute(stmt).scalars().all())

    def count_for_reference(self, reference_id: str) -> int:
        stmt = select(Notification.id).where(Notification.reference_id == reference_id)
        return len(self.db.execute(stmt).all())
