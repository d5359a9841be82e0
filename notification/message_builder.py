import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, Callable

from dateutil import parser as date_parser
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database.uow import dispatch_uow
from notification.events import (
    NotificationCategory,
    NotificationPayload,
    NotificationPriority,
    Operation,
)

logger = logging.getLogger(__name__)


class RecordLookup:
    """
    Read-only display lookups used while building messages.

    Lookup failures return None so a message can still be built with
    placeholder text.
    """

    def __init__(self, session_factory: sessionmaker = None):
        self.session_factory = session_factory

    def display_name(self, user_id: Optional[str]) -> Optional[str]:
        if not user_id:
            return None
        try:
            with dispatch_uow(self.session_factory) as repo:
                return repo.practice.get_display_name(user_id)
        except SQLAlchemyError as e:
            logger.warning(f"Display name lookup failed for {user_id}: {e}")
            return None

    def case_title(self, case_id: Optional[str]) -> Optional[str]:
        if not case_id:
            return None
        try:
            with dispatch_uow(self.session_factory) as repo:
                case = repo.practice.get_case(case_id)
                return case.case_title if case else None
        except SQLAlchemyError as e:
            logger.warning(f"Case lookup failed for {case_id}: {e}")
            return None


@dataclass
class BuildContext:
    entity_type: str
    operation: Operation
    record: Dict[str, Any]
    old: Dict[str, Any]
    lookup: RecordLookup

    @property
    def record_id(self) -> str:
        return str(self.record.get('id'))

    def changed(self, field_name: str) -> bool:
        return self.old.get(field_name) != self.record.get(field_name)

    def priority(self, minimum: Optional[NotificationPriority] = None) -> NotificationPriority:
        """Record priority (normal when absent), raised to minimum if given."""
        priority = NotificationPriority.coerce(self.record.get('priority'))
        if minimum and minimum.rank > priority.rank:
            return minimum
        return priority

    def payload(
        self,
        subject: str,
        body: str,
        category: NotificationCategory,
        event_type: str,
        priority: Optional[NotificationPriority] = None,
        action_url: Optional[str] = None,
        suppress: bool = False,
        **metadata
    ) -> NotificationPayload:
        base_metadata = {
            'table': self.entity_type,
            'event_type': event_type,
            'operation': self.operation.value,
            'record_id': self.record_id,
        }
        actor_id = self.record.get('updated_by') or self.record.get('created_by')
        if actor_id:
            base_metadata['actor_id'] = actor_id
        base_metadata.update({k: v for k, v in metadata.items() if v is not None})

        return NotificationPayload(
            subject=subject,
            body=body,
            category=category,
            priority=priority or self.priority(),
            event_type=event_type,
            reference_id=self.record_id,
            metadata=base_metadata,
            action_url=action_url,
            suppress=suppress,
        )


BuilderFn = Callable[[BuildContext], NotificationPayload]


class NotificationMessageBuilder:
    """
    Builds a NotificationPayload for a change event.

    One builder function per entity type, registered in _builders. Unknown
    entity types get a generic message; building never raises for them.
    """

    _builders: Dict[str, BuilderFn] = {}

    def __init__(self, lookup: Optional[RecordLookup] = None):
        self.lookup = lookup or RecordLookup()

    @classmethod
    def register_builder(cls, entity_type: str) -> Callable[[BuilderFn], BuilderFn]:
        """Decorator registering a builder for entity_type."""
        def decorator(fn: BuilderFn) -> BuilderFn:
            cls._builders[entity_type] = fn
            return fn
        return decorator

    @classmethod
    def list_entity_types(cls) -> list:
        return list(cls._builders.keys())

    def build(
        self,
        entity_type: str,
        operation: Operation,
        new_record: Dict[str, Any],
        old_record: Optional[Dict[str, Any]] = None
    ) -> NotificationPayload:
        ctx = BuildContext(
            entity_type=entity_type,
            operation=operation,
            record=new_record or {},
            old=old_record or {},
            lookup=self.lookup,
        )
        builder = self._builders.get(entity_type, build_generic_message)
        return builder(ctx)

    @staticmethod
    def format_date(value: Any) -> str:
        """Format a date/datetime value for display, 'upcoming' when absent."""
        if not value:
            return "upcoming"
        try:
            parsed = value if hasattr(value, 'strftime') else date_parser.parse(str(value))
            return parsed.strftime("%d %b %Y")
        except (ValueError, OverflowError):
            return str(value)


_PAST_TENSE = {
    Operation.INSERT: "created",
    Operation.UPDATE: "updated",
    Operation.DELETE: "deleted",
}


def build_generic_message(ctx: BuildContext) -> NotificationPayload:
    """Fallback for tables without a dedicated builder."""
    verb = _PAST_TENSE.get(ctx.operation, str(ctx.operation).lower())
    return ctx.payload(
        subject=f"Update in {ctx.entity_type}",
        body=f"A record in {ctx.entity_type} was {verb}.",
        category=NotificationCategory.SYSTEM,
        event_type=f"{ctx.entity_type}_{verb}",
    )


@NotificationMessageBuilder.register_builder('cases')
def build_case_message(ctx: BuildContext) -> NotificationPayload:
    title = ctx.record.get('case_title') or "Untitled"
    common = dict(
        category=NotificationCategory.CASE,
        action_url=f"/cases/{ctx.record_id}",
        case_id=ctx.record_id,
        case_title=title,
        case_number=ctx.record.get('case_number'),
    )

    if ctx.operation == Operation.INSERT:
        return ctx.payload(
            subject="New Case Created",
            body=f'Case "{title}" has been created.',
            event_type='case_created',
            **common
        )

    if ctx.operation == Operation.DELETE:
        return ctx.payload(
            subject="Case Deleted",
            body=f'Case "{title}" was deleted.',
            event_type='case_deleted',
            **common
        )

    # Status change takes precedence over every other update rule
    if ctx.changed('status'):
        old_status = ctx.old.get('status')
        new_status = ctx.record.get('status')
        if new_status == 'disposed':
            return ctx.payload(
                subject="Case Disposed",
                body=f'Case "{title}" has been disposed.',
                event_type='case_disposed',
                priority=ctx.priority(NotificationPriority.HIGH),
                old_status=old_status,
                new_status=new_status,
                disposal_date=ctx.record.get('disposal_date'),
                **common
            )
        return ctx.payload(
            subject="Case Status Updated",
            body=f'Case "{title}" status changed from {old_status or "unknown"} to {new_status or "unknown"}.',
            event_type='case_status_changed',
            old_status=old_status,
            new_status=new_status,
            **common
        )

    if ctx.changed('assigned_to') or ctx.changed('assigned_users'):
        return ctx.payload(
            subject="Case Assigned to You",
            body=f'You have been assigned to case "{title}".',
            event_type='case_assigned',
            priority=ctx.priority(NotificationPriority.HIGH),
            **common
        )

    return ctx.payload(
        subject="Case Updated",
        body=f'Case "{title}" was updated.',
        event_type='case_updated',
        **common
    )


@NotificationMessageBuilder.register_builder('tasks')
def build_task_message(ctx: BuildContext) -> NotificationPayload:
    title = ctx.record.get('title') or "Untitled"
    case_id = ctx.record.get('case_id')
    common = dict(
        category=NotificationCategory.TASK,
        action_url=f"/cases/{case_id}" if case_id else "/tasks",
        case_id=case_id,
        task_title=title,
        due_date=ctx.record.get('due_date'),
    )

    if ctx.operation == Operation.INSERT:
        body = f'New task: "{title}"'
        if ctx.record.get('due_date'):
            body += f", due {NotificationMessageBuilder.format_date(ctx.record['due_date'])}"
        return ctx.payload(
            subject="Task Assigned to You",
            body=body + ".",
            event_type='task_assigned',
            **common
        )

    if ctx.operation == Operation.DELETE:
        return ctx.payload(
            subject="Task Removed",
            body=f'Task "{title}" was removed.',
            event_type='task_deleted',
            **common
        )

    status = ctx.record.get('status')
    if ctx.changed('status') and status == 'completed':
        completed_by = ctx.lookup.display_name(ctx.record.get('assigned_to'))
        body = f'Task "{title}" has been marked as completed'
        body += f" by {completed_by}." if completed_by else "."
        return ctx.payload(
            subject="Task Completed",
            body=body,
            event_type='task_completed',
            completed_by=ctx.record.get('assigned_to'),
            **common
        )

    if ctx.changed('assigned_to') and ctx.record.get('assigned_to'):
        return ctx.payload(
            subject="Task Reassigned to You",
            body=f'Task "{title}" has been reassigned to you.',
            event_type='task_reassigned',
            priority=ctx.priority(NotificationPriority.HIGH),
            **common
        )

    if ctx.changed('priority') and ctx.record.get('priority') == 'urgent':
        return ctx.payload(
            subject="Task Priority Updated",
            body=f'Task "{title}" is now marked as URGENT.',
            event_type='task_priority_changed',
            new_priority='urgent',
            **common
        )

    return ctx.payload(
        subject="Task Updated",
        body=f'Task "{title}" is now {status or "pending"}.',
        event_type='task_updated',
        status=status,
        **common
    )


@NotificationMessageBuilder.register_builder('appointments')
def build_appointment_message(ctx: BuildContext) -> NotificationPayload:
    client_name = ctx.record.get('client_name') or "a client"
    date = NotificationMessageBuilder.format_date(
        ctx.record.get('appointment_date') or ctx.record.get('start_time')
    )
    time = ctx.record.get('appointment_time') or "unspecified time"
    common = dict(
        category=NotificationCategory.APPOINTMENT,
        action_url="/appointments",
        case_id=ctx.record.get('case_id'),
        client_id=ctx.record.get('client_id'),
        appointment_date=date,
        appointment_time=time,
    )

    if ctx.operation == Operation.INSERT:
        return ctx.payload(
            subject=f"New appointment with {client_name}",
            body=f"You have a new appointment with {client_name} on {date} at {time}.",
            event_type='appointment_created',
            **common
        )

    # Updates and removals are driven by the external calendar sync and never notify
    return ctx.payload(
        subject="Appointment details updated",
        body="Appointment details updated.",
        event_type='appointment_updated' if ctx.operation == Operation.UPDATE else 'appointment_cancelled',
        suppress=True,
        **common
    )


@NotificationMessageBuilder.register_builder('hearings')
def build_hearing_message(ctx: BuildContext) -> NotificationPayload:
    case_id = ctx.record.get('case_id')
    case_title = ctx.record.get('case_title') or ctx.lookup.case_title(case_id) or "a case"
    hearing_date = NotificationMessageBuilder.format_date(ctx.record.get('hearing_date'))
    common = dict(
        category=NotificationCategory.HEARING,
        action_url=f"/cases/{case_id}" if case_id else None,
        case_id=case_id,
        case_title=case_title,
        hearing_date=ctx.record.get('hearing_date'),
        hearing_time=ctx.record.get('hearing_time'),
        court_name=ctx.record.get('court_name'),
    )

    if ctx.operation == Operation.INSERT:
        body = f'A hearing for "{case_title}" has been scheduled for {hearing_date}'
        if ctx.record.get('court_name'):
            body += f" at {ctx.record['court_name']}"
        return ctx.payload(
            subject="Hearing Scheduled",
            body=body + ".",
            event_type='hearing_scheduled',
            **common
        )

    if ctx.operation == Operation.DELETE:
        return ctx.payload(
            subject="Hearing Cancelled",
            body=f'The hearing for "{case_title}" on {hearing_date} was cancelled.',
            event_type='hearing_cancelled',
            **common
        )

    if ctx.changed('hearing_date') or ctx.changed('hearing_time'):
        return ctx.payload(
            subject="Hearing Rescheduled",
            body=f'Hearing for "{case_title}" rescheduled to {hearing_date}.',
            event_type='hearing_updated',
            old_date=ctx.old.get('hearing_date'),
            **common
        )

    if not ctx.old.get('outcome') and ctx.record.get('outcome'):
        return ctx.payload(
            subject="Hearing Outcome Recorded",
            body=f'Outcome recorded for the hearing on {hearing_date} in "{case_title}".',
            event_type='hearing_outcome_recorded',
            outcome=ctx.record.get('outcome'),
            **common
        )

    if not ctx.old.get('next_hearing_date') and ctx.record.get('next_hearing_date'):
        next_date = NotificationMessageBuilder.format_date(ctx.record['next_hearing_date'])
        return ctx.payload(
            subject="Next Hearing Scheduled",
            body=f'Next hearing for "{case_title}" scheduled for {next_date}.',
            event_type='next_hearing_set',
            next_hearing_date=ctx.record.get('next_hearing_date'),
            **common
        )

    return ctx.payload(
        subject="Hearing Updated",
        body=f'Hearing for "{case_title}" on {hearing_date} was updated.',
        event_type='hearing_updated',
        **common
    )


@NotificationMessageBuilder.register_builder('documents')
def build_document_message(ctx: BuildContext) -> NotificationPayload:
    file_name = ctx.record.get('file_name') or ctx.record.get('title') or "document"
    case_id = ctx.record.get('case_id')
    case_title = ctx.lookup.case_title(case_id)
    uploader = ctx.lookup.display_name(ctx.record.get('uploaded_by')) or "A team member"
    suffix = f' to case "{case_title}"' if case_title else ""
    common = dict(
        category=NotificationCategory.DOCUMENT,
        action_url=f"/cases/{case_id}" if case_id else "/documents",
        case_id=case_id,
        client_id=ctx.record.get('client_id'),
        file_name=file_name,
        uploaded_by=ctx.record.get('uploaded_by'),
    )

    if ctx.operation == Operation.INSERT:
        return ctx.payload(
            subject="Document Uploaded",
            body=f'{uploader} uploaded "{file_name}"{suffix}.',
            event_type='document_uploaded',
            **common
        )

    if ctx.operation == Operation.DELETE:
        return ctx.payload(
            subject="Document Removed",
            body=f'Document "{file_name}" was removed.',
            event_type='document_deleted',
            **common
        )

    return ctx.payload(
        subject="Document Updated",
        body=f'Document "{file_name}" was updated.',
        event_type='document_version_updated',
        **common
    )


@NotificationMessageBuilder.register_builder('clients')
def build_client_message(ctx: BuildContext) -> NotificationPayload:
    name = ctx.record.get('full_name') or "Unnamed client"
    common = dict(
        category=NotificationCategory.CLIENT,
        action_url=f"/clients/{ctx.record_id}",
        client_id=ctx.record_id,
        client_name=name,
    )

    if ctx.operation == Operation.INSERT:
        return ctx.payload(
            subject="New Client Added",
            body=f'Client "{name}" was added.',
            event_type='client_created',
            **common
        )

    if ctx.operation == Operation.DELETE:
        return ctx.payload(
            subject="Client Removed",
            body=f'Client "{name}" was removed.',
            event_type='client_deleted',
            **common
        )

    if ctx.changed('assigned_lawyer_id') and ctx.record.get('assigned_lawyer_id'):
        return ctx.payload(
            subject="Client Assigned to You",
            body=f'Client "{name}" has been assigned to you.',
            event_type='client_assigned',
            priority=ctx.priority(NotificationPriority.HIGH),
            **common
        )

    return ctx.payload(
        subject="Client Updated",
        body=f'Client "{name}" information was updated.',
        event_type='client_updated',
        **common
    )


@NotificationMessageBuilder.register_builder('notes')
def build_note_message(ctx: BuildContext) -> NotificationPayload:
    title = ctx.record.get('title') or "Untitled note"
    case_id = ctx.record.get('case_id')
    author = ctx.lookup.display_name(ctx.record.get('created_by')) or "A team member"
    common = dict(
        category=NotificationCategory.NOTE,
        action_url=f"/cases/{case_id}" if case_id else None,
        case_id=case_id,
        client_id=ctx.record.get('client_id'),
        note_title=title,
    )

    if ctx.operation == Operation.INSERT:
        return ctx.payload(
            subject="Note Shared",
            body=f'{author} added a note "{title}".',
            event_type='note_shared',
            **common
        )

    if ctx.operation == Operation.DELETE:
        return ctx.payload(
            subject="Note Removed",
            body=f'Note "{title}" was removed.',
            event_type='note_deleted',
            **common
        )

    return ctx.payload(
        subject="Note Updated",
        body=f'Note "{title}" was updated.',
        event_type='note_updated',
        **common
    )


@NotificationMessageBuilder.register_builder('case_orders')
def build_case_order_message(ctx: BuildContext) -> NotificationPayload:
    case_id = ctx.record.get('case_id')
    case_title = ctx.lookup.case_title(case_id) or "a case"
    order_date = NotificationMessageBuilder.format_date(ctx.record.get('order_date'))
    common = dict(
        category=NotificationCategory.HEARING,
        action_url=f"/cases/{case_id}" if case_id else None,
        case_id=case_id,
        case_title=case_title,
        order_date=ctx.record.get('order_date'),
    )

    if ctx.operation == Operation.INSERT:
        return ctx.payload(
            subject="Court Order Received",
            body=f'A court order dated {order_date} was added to "{case_title}".',
            event_type='court_order_received',
            **common
        )

    if ctx.operation == Operation.DELETE:
        return ctx.payload(
            subject="Court Order Removed",
            body=f'The court order dated {order_date} was removed from "{case_title}".',
            event_type='court_order_deleted',
            **common
        )

    return ctx.payload(
        subject="Court Order Updated",
        body=f'The court order dated {order_date} in "{case_title}" was updated.',
        event_type='court_order_updated',
        **common
    )
