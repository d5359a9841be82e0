"""
Change events and notification payload types.

A ChangeEvent describes one insert/update/delete on a practice record as
delivered by the database change-capture hook. The dispatch engine turns it
into a NotificationPayload and then into zero or more Notification rows.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any


class DispatchError(Exception):
    """Base exception for dispatch engine errors."""
    pass


class MalformedEventError(DispatchError):
    """Raised when an inbound change event cannot be parsed."""
    pass


class ProviderError(DispatchError):
    """Raised when the push provider call fails. Always handled by the router."""
    pass


class Operation(Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class NotificationCategory(Enum):
    CASE = "case"
    HEARING = "hearing"
    APPOINTMENT = "appointment"
    TASK = "task"
    DOCUMENT = "document"
    INVOICE = "invoice"
    MESSAGE = "message"
    CLIENT = "client"
    TEAM = "team"
    NOTE = "note"
    ECOURTS = "ecourts"
    LEGAL_NEWS = "legal_news"
    SYSTEM = "system"


class NotificationPriority(Enum):
    """Priority levels for notifications."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def coerce(cls, value: Any, default: "NotificationPriority" = None) -> "NotificationPriority":
        """Map a raw record value to a priority, falling back to default (NORMAL)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return default or cls.NORMAL


_PRIORITY_RANK = {
    NotificationPriority.LOW: 0,
    NotificationPriority.NORMAL: 1,
    NotificationPriority.HIGH: 2,
    NotificationPriority.URGENT: 3,
}


@dataclass
class ChangeEvent:
    entity_type: str
    operation: Operation
    new_record: Dict[str, Any]
    old_record: Optional[Dict[str, Any]] = None

    @property
    def record_id(self) -> str:
        return str(self.new_record['id'])

    @classmethod
    def from_payload(cls, body: Any) -> "ChangeEvent":
        """
        Parse the inbound webhook body.

        Accepts {table, eventType, record, oldRecord} as well as the
        trigger spelling {table, type, record, old_record}. The trigger sends
        DELETE with a null record; the deleted row in oldRecord stands in.

        Raises:
            MalformedEventError: if table, operation or record are missing or invalid
        """
        if not isinstance(body, dict):
            raise MalformedEventError("Event body must be a JSON object")

        table = body.get('table')
        if not isinstance(table, str) or not table.strip():
            raise MalformedEventError("Event is missing 'table'")

        raw_operation = body.get('eventType') or body.get('type')
        try:
            operation = Operation(str(raw_operation).upper())
        except ValueError:
            raise MalformedEventError(f"Unsupported eventType: {raw_operation!r}")

        old_record = body.get('oldRecord')
        if old_record is None:
            old_record = body.get('old_record')
        if old_record is not None and not isinstance(old_record, dict):
            raise MalformedEventError("'oldRecord' must be an object or null")

        record = body.get('record')
        if record is None and operation == Operation.DELETE:
            record = old_record
        if not isinstance(record, dict):
            raise MalformedEventError("Event is missing 'record'")
        if record.get('id') in (None, ''):
            raise MalformedEventError("Event record has no 'id'")

        return cls(
            entity_type=table.strip(),
            operation=operation,
            new_record=record,
            old_record=old_record,
        )


@dataclass
class NotificationPayload:
    """Constructed, not-yet-persisted notification content for one event."""
    subject: str
    body: str
    category: NotificationCategory
    priority: NotificationPriority = NotificationPriority.NORMAL
    event_type: str = "general"
    reference_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    action_url: Optional[str] = None
    suppress: bool = False
