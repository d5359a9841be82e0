#!/usr/bin/env python3
"""
Notification Dispatch Service

Main handler for change events coming from the practice database:

    ChangeEvent -> dedup -> message -> recipients -> delivery routing

Uses:
- EventDedupGuard for at-most-once processing
- NotificationMessageBuilder / RecipientResolver (per-entity strategies)
- DeliveryRouter: push provider first, direct write as fallback
- Redis Queue for optional async processing

Usage:
    from notification.service import NotificationDispatchService

    service = NotificationDispatchService.from_config(config)
    result = service.handle({
        "table": "tasks",
        "eventType": "INSERT",
        "record": {"id": "t1", "title": "File reply", "assigned_to": "U1"},
        "oldRecord": None,
    })
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, Sequence

from redis import Redis
from rq import Queue, Retry
from sqlalchemy.orm import sessionmaker

from core.config_loader import AppConfig, NotificationConfig, get_config
from notification.channels import DirectWriteChannel, PushProviderChannel
from notification.events import ChangeEvent, NotificationPayload, ProviderError
from notification.message_builder import NotificationMessageBuilder, RecordLookup
from notification.preferences import PreferenceEngine
from notification.recipients import RecipientResolver
from notification.tracker import EventDedupGuard

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_SKIPPED = "skipped"


@dataclass
class DeliveryResult:
    method: str  # provider|direct
    count: int


@dataclass
class DispatchResult:
    status: str
    reason: Optional[str] = None
    recipient_count: Optional[int] = None
    method: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'status': self.status}
        if self.reason is not None:
            data['reason'] = self.reason
        if self.recipient_count is not None:
            data['recipientCount'] = self.recipient_count
        if self.method is not None:
            data['method'] = self.method
        return data


class DeliveryRouter:
    """
    Chooses between the push provider and direct persistence.

    The provider is tried once when configured; absence, errors,
    timeouts and non-2xx answers all fall back to the direct writer.
    """

    def __init__(self, direct: DirectWriteChannel, provider: Optional[PushProviderChannel] = None):
        self.direct = direct
        self.provider = provider

    def deliver(self, recipients: Sequence[str], payload: NotificationPayload) -> DeliveryResult:
        recipients = sorted(recipients)

        if self.provider is not None and self.provider.validate_config():
            try:
                count = self.provider.send(recipients, payload)
                return DeliveryResult(method=self.provider.channel_type, count=count)
            except ProviderError as e:
                logger.warning(f"Push provider failed, falling back to direct write: {e}")
        else:
            logger.debug("No push provider configured, writing notifications directly")

        count = self.direct.send(recipients, payload)
        return DeliveryResult(method=self.direct.channel_type, count=count)


class NotificationDispatchService:
    """
    Stateless handler for one change event per call.

    All state lives in the store (event log, preferences, notifications),
    so any number of invocations can run side by side.
    """

    def __init__(
        self,
        dedup_guard: EventDedupGuard,
        message_builder: NotificationMessageBuilder,
        recipient_resolver: RecipientResolver,
        router: DeliveryRouter
    ):
        self.dedup_guard = dedup_guard
        self.message_builder = message_builder
        self.recipient_resolver = recipient_resolver
        self.router = router

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        session_factory: sessionmaker = None,
        preference_engine: Optional[PreferenceEngine] = None
    ) -> "NotificationDispatchService":
        """Wire the service from configuration. session_factory defaults to the configured database."""
        notification_config = config.notifications or NotificationConfig()
        engine = preference_engine or PreferenceEngine(
            session_factory,
            timezone_name=notification_config.timezone
        )
        router = DeliveryRouter(
            direct=DirectWriteChannel(engine, session_factory, notification_config.max_workers),
            provider=PushProviderChannel(notification_config.provider),
        )
        return cls(
            dedup_guard=EventDedupGuard(session_factory),
            message_builder=NotificationMessageBuilder(RecordLookup(session_factory)),
            recipient_resolver=RecipientResolver(session_factory),
            router=router,
        )

    def handle(self, body: Dict[str, Any]) -> DispatchResult:
        """
        Process one inbound change event.

        Raises:
            MalformedEventError: if the body is not a valid change event
        """
        event = ChangeEvent.from_payload(body)
        return self.dispatch(event)

    def dispatch(self, event: ChangeEvent) -> DispatchResult:
        logger.info(f"Incoming {event.operation.value} on {event.entity_type} ({event.record_id})")

        if not self.dedup_guard.admit(event).admitted:
            return DispatchResult(status=STATUS_SKIPPED, reason="duplicate")

        payload = self.message_builder.build(
            event.entity_type,
            event.operation,
            event.new_record,
            event.old_record
        )
        if payload.suppress:
            logger.info(f"{payload.event_type} for {event.record_id} is suppressed")
            return DispatchResult(status=STATUS_SKIPPED, reason="suppressed")

        recipients = self.recipient_resolver.resolve(event.entity_type, event.new_record)
        if not recipients:
            logger.warning(f"No recipients for {event.entity_type} {event.record_id}, skipping")
            return DispatchResult(status=STATUS_SKIPPED, reason="no_recipients")

        result = self.router.deliver(recipients, payload)
        logger.info(
            f"Dispatched {payload.event_type} for {event.record_id} via {result.method}: "
            f"{result.count}/{len(recipients)} recipient(s)"
        )
        return DispatchResult(
            status=STATUS_OK,
            recipient_count=result.count,
            method=result.method,
        )


def enqueue_change_event(body: Dict[str, Any], config: NotificationConfig) -> str:
    """
    Put a raw change event on the Redis queue for a worker to dispatch.

    Returns:
        RQ job id
    """
    redis_conn = Redis.from_url(config.redis_url or 'redis://localhost:6379/0')
    queue = Queue(config.queue_name, connection=redis_conn)
    # Redelivered events are dropped by the dedup guard
    job = queue.enqueue(
        process_change_event_task,
        body,
        job_timeout='2m',
        result_ttl=86400,
        retry=Retry(max=3, interval=[10, 30, 60])
    )
    logger.info(f"Queued change event as job {job.id}")
    return job.id


# Worker task - must be at module level for RQ
def process_change_event_task(body: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch one queued change event (called by the RQ worker)."""
    service = NotificationDispatchService.from_config(get_config())
    return service.handle(body).to_dict()
