import uuid

from sqlalchemy import Column, Text, Boolean, TIMESTAMP, Uuid, func

from .base import Base, JSONType


class NotificationPreference(Base):
    """
    Per-user notification settings.

    Written by the settings UI; the dispatch engine only reads it. Any
    column may hold a partial document, missing keys fall back to defaults.
    """
    __tablename__ = 'notification_preferences'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, unique=True)
    firm_id = Column(Text)

    enabled = Column(Boolean, nullable=False, default=True)

    quiet_hours_enabled = Column(Boolean, nullable=False, default=False)
    quiet_hours_start = Column(Text, default='22:00')  # HH:MM
    quiet_hours_end = Column(Text, default='08:00')

    delivery_preferences = Column(JSONType, default=dict)  # in_app, email, browser, sound
    categories = Column(JSONType, default=dict)  # {category: {enabled, frequency, priority_filter}}
    event_preferences = Column(JSONType, default=dict)  # {event_type: {enabled}}

    digest_frequency = Column(Text, default='daily')
    digest_time = Column(Text, default='09:00')

    muted_cases = Column(JSONType, default=list)
    muted_clients = Column(JSONType, default=list)
    muted_users = Column(JSONType, default=list)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
