import uuid

from sqlalchemy import Column, Text, TIMESTAMP, Boolean, Uuid, UniqueConstraint, Index, func

from .base import Base, JSONType


class NotificationEventLog(Base):
    """
    Dedup ledger for inbound change events.

    One row per admitted event. The unique event_key is the only
    compare-and-set in the dispatch path: a second insert of the same key
    is how a retried or concurrent delivery of an event is detected.
    Rows are never updated or deleted here.
    """
    __tablename__ = 'notification_event_log'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # sha256(entity_type:operation:record_id)[:32]
    event_key = Column(Text, nullable=False)

    entity_type = Column(Text, nullable=False)
    operation = Column(Text, nullable=False)
    record_id = Column(Text, nullable=False)

    processed_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint('event_key', name='uq_notification_event_key'),
    )


class Notification(Base):
    """
    A notification delivered (or deferred) to one recipient.

    delivery_status is 'delivered' for instant delivery, or 'pending' when
    deferred by quiet hours (snoozed_until set) or digesting
    (digest_batch_id set). Pending rows are picked up by external jobs.
    """
    __tablename__ = 'notifications'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    recipient_id = Column(Text, nullable=False)
    notification_type = Column(Text, nullable=False)  # case_created, task_completed, ...
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    reference_id = Column(Text)

    category = Column(Text, nullable=False)
    priority = Column(Text, nullable=False, default='normal')
    action_url = Column(Text)
    metadata_ = Column('metadata', JSONType, default=dict)
    delivery_channels = Column(JSONType, default=dict)

    delivery_status = Column(Text, nullable=False, default='delivered')  # delivered|pending
    read = Column(Boolean, nullable=False, default=False)
    snoozed_until = Column(TIMESTAMP(timezone=True))
    digest_batch_id = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index('idx_notifications_recipient', 'recipient_id', 'created_at'),
        Index('idx_notifications_pending', 'delivery_status', 'snoozed_until'),
        Index('idx_notifications_digest', 'digest_batch_id'),
    )
