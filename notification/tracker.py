#!/usr/bin/env python3
"""
Notification Tracker - Event Deduplication

Guarantees at-most-once processing of a change event. The database-change
hook may deliver the same event more than once (retries, concurrent
webhook invocations); the first delivery inserts the event key and every
later one is turned away.

Usage:
    from notification.tracker import EventDedupGuard

    guard = EventDedupGuard(session_factory)
    result = guard.admit(event)
    if not result.admitted:
        return  # duplicate, answer "skipped"
"""

import hashlib
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database.uow import dispatch_uow
from notification.events import ChangeEvent

logger = logging.getLogger(__name__)


@dataclass
class DedupResult:
    admitted: bool
    key: str


def generate_dedup_key(entity_type: str, operation: str, record_id: str) -> str:
    """
    Generate deduplication key for an event.

    Deterministic in (entity_type, operation, record_id).
    """
    key = f"{entity_type}:{operation}:{record_id}"
    return hashlib.sha256(key.encode('utf-8')).hexdigest()[:32]


class EventDedupGuard:
    """
    Insert-if-absent guard over the notification_event_log table.

    The unique constraint on event_key is the concurrency primitive; no
    in-process locking is done. Storage errors other than the duplicate
    case are fail-open: a duplicate notification beats a dropped one.
    """

    def __init__(self, session_factory: sessionmaker = None):
        self.session_factory = session_factory

    def admit(self, event: ChangeEvent) -> DedupResult:
        key = generate_dedup_key(event.entity_type, event.operation.value, event.record_id)

        try:
            with dispatch_uow(self.session_factory) as repo:
                inserted = repo.events.insert_event_key(
                    event_key=key,
                    entity_type=event.entity_type,
                    operation=event.operation.value,
                    record_id=event.record_id,
                )
        except SQLAlchemyError as e:
            logger.warning(f"Dedup store unavailable for {key}, processing anyway: {e}")
            return DedupResult(admitted=True, key=key)

        if not inserted:
            logger.info(
                f"Duplicate event {event.entity_type} {event.operation.value} "
                f"{event.record_id} (key {key}), skipping"
            )
        return DedupResult(admitted=inserted, key=key)
